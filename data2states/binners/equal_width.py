"""Equal-width binning between the sample minimum and maximum."""

from __future__ import annotations

import numpy as np

from .base import Binner
from ..utils import bin_by_edges, unique_states


class EqualWidthBinner(Binner):
    """Split ``[min, max]`` into *bins* equally sized intervals.

    States are interval indices, so an interval that no sample falls into
    leaves a gap in the realized labels: ``[0, 0, 1, 2, 10]`` with 3 bins
    gives ``[1, 1, 1, 1, 3]``.
    """

    def __init__(self, bins: int) -> None:
        self.n_states = bins

    def bin(self, values: np.ndarray, row: int) -> tuple[np.ndarray, np.ndarray]:
        if np.unique(values).size <= self.n_states:
            return unique_states(values, self.metadata_width())

        edges = np.linspace(values.min(), values.max(), self.n_states + 1)
        # Open the outer edges so the extremes are always captured
        edges[0] = -np.inf
        edges[-1] = np.inf
        return bin_by_edges(values, edges), edges
