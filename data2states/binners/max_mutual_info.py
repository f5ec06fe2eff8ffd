"""Adjacent-bin partition maximising mutual information with a reference."""

from __future__ import annotations

from itertools import chain, combinations, islice

import numpy as np

from .base import Binner
from ..utils import bin_by_edges, mutual_information


class MaxMutualInfoBinner(Binner):
    """Choose ``bins - 1`` split values that maximise MI with *reference*.

    Every combination of split points drawn from the sorted distinct sample
    values is scored; the first best partition in lexicographic split-index
    order wins. The search is exhaustive, which is why the bin count is
    capped at :data:`~data2states.methods.MAX_MI_BINS`.

    Parameters
    ----------
    bins:
        Number of adjacent bins (states).
    reference:
        Already-resolved integer states of the reference variable, aligned
        with the samples passed to :meth:`bin`.
    block_size:
        Number of candidate partitions scored per vectorized batch.
    """

    def __init__(self, bins: int, reference: np.ndarray, block_size: int = 2 ** 16) -> None:
        if block_size < 1:
            raise ValueError(f"block_size must be >= 1, got {block_size}")
        self.n_states = bins
        self._block_size = block_size
        _, ref_idx = np.unique(np.asarray(reference), return_inverse=True)
        self._ref_idx = ref_idx.reshape(-1)
        self._n_ref = int(self._ref_idx.max()) + 1 if self._ref_idx.size else 1

    def bin(self, values: np.ndarray, row: int) -> tuple[np.ndarray, np.ndarray]:
        distinct, value_idx = np.unique(values, return_inverse=True)
        value_idx = value_idx.reshape(-1)
        meta = np.full(self.metadata_width(), np.nan)

        if distinct.size == 1:
            meta[0] = -np.inf
            meta[1] = np.inf
            return np.ones(values.shape, dtype=np.int64), meta

        splits = self._best_splits(value_idx, distinct.size) if self.n_states > 1 else ()
        edges = np.concatenate(([-np.inf], distinct[list(splits)], [np.inf]))
        meta[:] = edges
        return bin_by_edges(values, edges), meta

    def _best_splits(self, value_idx: np.ndarray, n_distinct: int) -> tuple[int, ...]:
        n_splits = self.n_states - 1

        # Joint counts per distinct value, cumulated so any run of adjacent
        # values can be summed in O(1).
        joint = np.zeros((n_distinct, self._n_ref), dtype=np.int64)
        np.add.at(joint, (value_idx, self._ref_idx), 1)
        cumulative = np.vstack([np.zeros((1, self._n_ref), dtype=np.int64), joint.cumsum(axis=0)])

        # Candidates are scored a block at a time to keep memory bounded
        candidates = combinations(range(n_distinct), n_splits)
        best_score = -np.inf
        best_splits: tuple[int, ...] = tuple(range(n_splits))
        while True:
            block = np.fromiter(
                chain.from_iterable(islice(candidates, self._block_size)), dtype=np.int64
            ).reshape(-1, n_splits)
            if block.shape[0] == 0:
                break
            n_cand = block.shape[0]
            bounds = np.hstack([
                np.zeros((n_cand, 1), dtype=np.int64),
                block + 1,
                np.full((n_cand, 1), n_distinct, dtype=np.int64),
            ])
            # tables[c, b, r]: samples of bin b (for candidate c) with reference state r
            tables = cumulative[bounds[:, 1:]] - cumulative[bounds[:, :-1]]
            scores = mutual_information(tables)
            top = int(np.argmax(scores))
            # Strict comparison keeps the earliest partition on ties
            if scores[top] > best_score:
                best_score = scores[top]
                best_splits = tuple(int(i) for i in block[top])
        return best_splits
