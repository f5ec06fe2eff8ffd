"""Output writers: states → NPY / NPZ, method results → JSON / CSV."""

from __future__ import annotations

import json
import math
from pathlib import Path
from typing import Sequence

import numpy as np
import pandas as pd


def write_states(states: np.ndarray | Sequence[np.ndarray], output_path: str | Path) -> None:
    """Write a stated raster to *output_path*.

    ``.npy`` accepts a bare array only; ``.npz`` stores one array per
    category as ``arr_0``, ``arr_1``, …
    """
    output_path = Path(output_path)
    suffix = output_path.suffix.lower()

    if suffix == ".npy":
        if not isinstance(states, np.ndarray):
            raise ValueError("Multi-category rasters must be written to .npz")
        np.save(str(output_path), states)
    elif suffix == ".npz":
        arrays = [states] if isinstance(states, np.ndarray) else list(states)
        np.savez(str(output_path), *arrays)
    else:
        raise ValueError(f"Unsupported output format '{suffix}'. Use .npy or .npz.")


def write_method_results(results: Sequence[np.ndarray], output_path: str | Path) -> None:
    """Write per-row method results to *output_path*.

    The format is inferred from the file extension:
    - ``.json`` → list (one entry per method row) of row matrices; unset
      cells become ``null`` and infinite edges ``"-inf"``/``"inf"``
    - ``.csv`` → long format, see :func:`results_to_frame`
    """
    output_path = Path(output_path)
    suffix = output_path.suffix.lower()

    if suffix == ".json":
        _write_json(results, output_path)
    elif suffix == ".csv":
        results_to_frame(results).to_csv(output_path, index=False)
    else:
        raise ValueError(
            f"Unsupported output format '{suffix}'. Use .json or .csv."
        )


def results_to_frame(results: Sequence[np.ndarray]) -> pd.DataFrame:
    """Long-format DataFrame with columns ``row, time_bin, column, value``.

    Unset (``nan``) cells and identity rows are omitted.
    """
    records = []
    for row, table in enumerate(results):
        table = np.atleast_2d(table)
        for time_bin, column in zip(*np.nonzero(~np.isnan(table))):
            records.append({
                "row": row,
                "time_bin": int(time_bin),
                "column": int(column),
                "value": float(table[time_bin, column]),
            })
    return pd.DataFrame.from_records(records, columns=["row", "time_bin", "column", "value"])


def _write_json(results: Sequence[np.ndarray], path: Path) -> None:
    clean = [
        [[_json_value(v) for v in line] for line in np.atleast_2d(table)] if np.size(table) else []
        for table in results
    ]
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(clean, fh, indent=2)


def _json_value(value: float):
    value = float(value)
    if math.isnan(value):
        return None
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    return value
