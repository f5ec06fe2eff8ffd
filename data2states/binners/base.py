"""Abstract base class for all binners."""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np


class Binner(ABC):
    """Base class for per-time-bin state binners.

    Subclasses implement :meth:`bin` and set :attr:`n_states`, the number of
    states requested from the method table.
    """

    #: Requested number of states; metadata rows have ``n_states + 1`` columns.
    n_states: int = 1

    @abstractmethod
    def bin(self, values: np.ndarray, row: int) -> tuple[np.ndarray, np.ndarray]:
        """State one sample vector.

        Parameters
        ----------
        values:
            1-D float array of raw samples (trials, or time bins for
            single-trial data).
        row:
            Index of the binning row, used by binners with per-row
            parameters.

        Returns
        -------
        tuple
            ``(states, metadata)``: 1-based integer states with the shape of
            *values*, and a metadata row of length ``n_states + 1`` where
            ``nan`` marks unset cells.
        """

    def metadata_width(self) -> int:
        return self.n_states + 1
