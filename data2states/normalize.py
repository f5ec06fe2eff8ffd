"""Canonicalize rasters and method tables.

A raster is either one ``(variables, time bins, trials)`` array or a
sequence of them (one per data category). Method tables may omit the
category column when there is exactly one category.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

import numpy as np

from .exceptions import InputShapeError

#: Column names of a normalized method table.
METHOD_COLUMNS = ("category", "variable", "method", "params")


def normalize_raster(raster: Any) -> tuple[list[np.ndarray], bool]:
    """Return ``(categories, bare)``.

    *bare* is ``True`` when *raster* was a single array, so the caller can
    unwrap the output again.
    """
    if isinstance(raster, np.ndarray) and raster.dtype != object:
        categories = [raster]
        bare = True
    elif isinstance(raster, (Sequence, np.ndarray)) and not isinstance(raster, (str, bytes)):
        categories = [np.asarray(cat) for cat in raster]
        bare = False
    else:
        raise InputShapeError(f"Raster must be an array or a sequence of arrays, got {type(raster)!r}")

    if not categories:
        raise InputShapeError("Raster has no data categories")
    for i, cat in enumerate(categories):
        if cat.ndim != 3:
            raise InputShapeError(
                f"Category {i} must be (variables, time bins, trials), got shape {cat.shape}"
            )
        if not np.issubdtype(cat.dtype, np.number):
            raise InputShapeError(f"Category {i} must be numeric, got dtype {cat.dtype}")
    return categories, bare


def normalize_method_table(methods: Any, n_categories: int) -> list[tuple]:
    """Return a list of ``(category, variable, method, params)`` rows.

    Accepts a sequence of row sequences, a sequence of mappings, or a
    :class:`pandas.DataFrame` with :data:`METHOD_COLUMNS` (``category``
    optional for single-category rasters).
    """
    if methods is None:
        return []
    if hasattr(methods, "to_dict") and hasattr(methods, "columns"):
        methods = methods.to_dict(orient="records")
    elif isinstance(methods, np.ndarray):
        methods = methods.tolist()

    rows = list(methods)
    if not rows:
        return []

    if all(isinstance(row, Mapping) for row in rows):
        return [_mapping_row(i, row, n_categories) for i, row in enumerate(rows)]

    widths = set()
    for i, row in enumerate(rows):
        if isinstance(row, (str, bytes)) or not isinstance(row, (Sequence, np.ndarray)):
            raise InputShapeError(f"Method row {i} must be a sequence, got {row!r}")
        widths.add(len(row))
    if len(widths) != 1:
        raise InputShapeError(f"Method rows have inconsistent widths: {sorted(widths)}")

    width = widths.pop()
    if width == 4:
        return [tuple(row) for row in rows]
    if width == 3:
        if n_categories != 1:
            raise InputShapeError(
                "Method table has 3 columns but the raster has "
                f"{n_categories} categories; the category column is missing"
            )
        return [(0, *row) for row in rows]
    raise InputShapeError(f"Method table must have 3 or 4 columns, got {width}")


def _mapping_row(i: int, row: Mapping, n_categories: int) -> tuple:
    missing = [key for key in ("variable", "method") if key not in row]
    if missing:
        raise InputShapeError(f"Method row {i} is missing {missing}")
    category = row.get("category")
    if category is None or _is_missing(category):
        if n_categories != 1:
            raise InputShapeError(
                f"Method row {i} has no category but the raster has {n_categories} categories"
            )
        category = 0
    params = row.get("params")
    if _is_missing(params):
        params = None
    return (category, row["variable"], row["method"], params)


def _is_missing(value: Any) -> bool:
    # pandas fills absent cells with float nan
    return isinstance(value, float) and np.isnan(value)
