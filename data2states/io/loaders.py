"""Raster and method-table loaders.

Supported raster formats:
- NumPy ``.npy`` → single-category (bare) raster
- NumPy ``.npz`` → one category per stored array, in archive order
- MATLAB ``.mat`` → numeric array (bare) or cell array (one category per cell)

Supported method-table formats:
- ``.json`` → list of rows (sequences or objects)
- ``.csv``  → columns ``category`` (optional), ``variable``, ``method``,
  ``params`` (JSON-encoded)
"""

from __future__ import annotations

import json
from pathlib import Path

import numpy as np
import pandas as pd
from scipy.io import loadmat


def load_raster(path: str | Path, variable: str | None = None) -> np.ndarray | list[np.ndarray]:
    """Load a raster from *path*.

    Parameters
    ----------
    path:
        ``.npy``, ``.npz`` or ``.mat`` file.
    variable:
        MAT-file variable holding the raster. Optional when the file stores
        exactly one variable.
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix == ".npy":
        return np.load(str(path))

    if suffix == ".npz":
        with np.load(str(path)) as archive:
            return [archive[name] for name in archive.files]

    if suffix == ".mat":
        return _load_mat(path, variable)

    raise ValueError(f"Unsupported raster format '{suffix}'. Use .npy, .npz or .mat.")


def load_method_table(path: str | Path) -> list:
    """Load a method table from a ``.json`` or ``.csv`` file."""
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix == ".json":
        with open(path, encoding="utf-8") as fh:
            rows = json.load(fh)
        if not isinstance(rows, list):
            raise ValueError(f"Method table in {path} must be a JSON list of rows")
        return rows

    if suffix == ".csv":
        return _load_csv_table(path)

    raise ValueError(f"Unsupported method table format '{suffix}'. Use .json or .csv.")


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------

def _load_mat(path: Path, variable: str | None) -> np.ndarray | list[np.ndarray]:
    contents = {k: v for k, v in loadmat(str(path)).items() if not k.startswith("__")}
    if variable is None:
        if len(contents) != 1:
            raise ValueError(
                f"{path} holds {len(contents)} variables {sorted(contents)}; choose one"
            )
        variable = next(iter(contents))
    if variable not in contents:
        raise KeyError(f"Variable {variable!r} not found in {path}")

    data = contents[variable]
    if data.dtype == object:
        # Cell array: one category per cell
        return [_as_raster(cell) for cell in data.ravel()]
    return _as_raster(data)


def _as_raster(arr: np.ndarray) -> np.ndarray:
    arr = np.asarray(arr, dtype=np.float64)
    # MATLAB drops trailing singleton dimensions
    while arr.ndim < 3:
        arr = arr[..., np.newaxis]
    return arr


def _load_csv_table(path: Path) -> list[dict]:
    df = pd.read_csv(path)
    missing = {"variable", "method"} - set(df.columns)
    if missing:
        raise ValueError(f"Method table {path} is missing columns {sorted(missing)}")

    rows = []
    for record in df.to_dict(orient="records"):
        params = record.get("params")
        if isinstance(params, str):
            params = json.loads(params)
        elif params is not None and pd.isna(params):
            params = None
        row = {"variable": record["variable"], "method": record["method"], "params": params}
        if "category" in record and not pd.isna(record["category"]):
            row["category"] = record["category"]
        rows.append(row)
    return rows
