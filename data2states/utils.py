"""Shared binning primitives: edge binning, tie-aware ranks, degenerate states, MI."""

from __future__ import annotations

import numpy as np
from scipy.stats import rankdata


def bin_by_edges(values: np.ndarray, edges: np.ndarray) -> np.ndarray:
    """Return 1-based bin indices using half-open ``(edge[i], edge[i+1]]`` bins.

    Outer edges are expected to be ``-inf``/``+inf`` so every value lands in
    a bin.
    """
    return np.searchsorted(np.asarray(edges, dtype=np.float64), values, side="left")


def tied_rank(values: np.ndarray) -> np.ndarray:
    """1-based fractional ranks; ties share the mean of their rank range."""
    return rankdata(values, method="average")


def unique_states(values: np.ndarray, n_columns: int) -> tuple[np.ndarray, np.ndarray]:
    """State each value by the rank of its distinct value.

    Used by every binner when the sample has no more distinct values than
    requested states. Returns ``(states, row)`` where *row* holds the sorted
    distinct values padded with ``nan`` to *n_columns*.
    """
    distinct, inverse = np.unique(values, return_inverse=True)
    row = np.full(n_columns, np.nan)
    row[: distinct.size] = distinct
    return inverse.reshape(-1) + 1, row


def relabel_by_value(values: np.ndarray, labels: np.ndarray) -> np.ndarray:
    """Renumber *labels* 1..k so that state order follows the minimum value."""
    occupied = np.unique(labels)
    minima = np.array([values[labels == lab].min() for lab in occupied])
    order = occupied[np.argsort(minima, kind="stable")]
    mapping = {int(lab): i + 1 for i, lab in enumerate(order)}
    return np.array([mapping[int(lab)] for lab in labels], dtype=np.int64)


def state_minima_row(values: np.ndarray, states: np.ndarray, n_states: int) -> np.ndarray:
    """``-inf``, the minimum value of each state 2..n (``nan`` if empty), ``+inf``."""
    row = np.full(n_states + 1, np.nan)
    row[0] = -np.inf
    for state in range(2, n_states + 1):
        members = values[states == state]
        if members.size > 0:
            row[state - 1] = members.min()
    row[n_states] = np.inf
    return row


def contingency_table(x_states: np.ndarray, y_states: np.ndarray) -> np.ndarray:
    """Joint count matrix of two integer state vectors (rows follow *x*)."""
    _, x_idx = np.unique(x_states, return_inverse=True)
    _, y_idx = np.unique(y_states, return_inverse=True)
    x_idx = x_idx.reshape(-1)
    y_idx = y_idx.reshape(-1)
    counts = np.zeros((x_idx.max() + 1, y_idx.max() + 1), dtype=np.int64)
    np.add.at(counts, (x_idx, y_idx), 1)
    return counts


def mutual_information(counts: np.ndarray) -> np.ndarray | float:
    """Mutual information in bits of one or more contingency tables.

    *counts* has shape ``(..., rows, cols)``; leading axes are treated as a
    batch and an array of the same leading shape is returned. A single 2-D
    table yields a float.
    """
    counts = np.asarray(counts, dtype=np.float64)
    total = counts.sum(axis=(-2, -1), keepdims=True)
    with np.errstate(divide="ignore", invalid="ignore"):
        joint = counts / total
        p_row = joint.sum(axis=-1, keepdims=True)
        p_col = joint.sum(axis=-2, keepdims=True)
        terms = joint * np.log2(joint / (p_row * p_col))
    mi = np.where(joint > 0, terms, 0.0).sum(axis=(-2, -1))
    if mi.ndim == 0:
        return float(mi)
    return mi
