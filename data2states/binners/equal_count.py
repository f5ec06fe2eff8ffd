"""Equal-count (quantile) binning with tie handling."""

from __future__ import annotations

import numpy as np

from .base import Binner
from ..utils import state_minima_row, tied_rank, unique_states


class EqualCountBinner(Binner):
    """Divide samples into *bins* groups holding (nearly) equal counts.

    Tied values always share a state. When ties merge groups, the number of
    virtual bins is raised until *bins* states appear; if that overshoots,
    the count backs off by one so that fewer states are preferred to more.
    """

    def __init__(self, bins: int) -> None:
        self.n_states = bins

    def bin(self, values: np.ndarray, row: int) -> tuple[np.ndarray, np.ndarray]:
        if np.unique(values).size <= self.n_states:
            return unique_states(values, self.metadata_width())

        ranks = tied_rank(values)
        n = values.size

        shadow_bins = self.n_states
        groups = _rank_groups(ranks, shadow_bins, n)
        while np.unique(groups).size < self.n_states:
            shadow_bins += 1
            groups = _rank_groups(ranks, shadow_bins, n)

        if np.unique(groups).size > self.n_states:
            groups = _rank_groups(ranks, shadow_bins - 1, n)

        _, inverse = np.unique(groups, return_inverse=True)
        states = inverse.reshape(-1) + 1
        return states, state_minima_row(values, states, self.n_states)


def _rank_groups(ranks: np.ndarray, n_bins: int, n: int) -> np.ndarray:
    return np.ceil(n_bins * ranks / n).astype(np.int64)
