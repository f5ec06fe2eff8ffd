"""Method encoding: human-readable method rows → typed method records.

Each row of a method table names one variable and the method used to turn
its raw values into states. Rows are parsed into one of five frozen
dataclasses (the method *kind*), cross-validated as a whole, and ordered
so that every variable a max-mutual-information row references is
resolved before that row runs.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Any, ClassVar, Sequence, Union

import numpy as np

from .exceptions import (
    BinCountExceededError,
    DependencyError,
    DuplicateAssignmentError,
    InputShapeError,
    InvalidMethodError,
    ProbabilityMismatchError,
    ProbabilityNormalizationError,
)

logger = logging.getLogger(__name__)

#: Exhaustive split search grows with choose(distinct values, bins - 1).
MAX_MI_BINS = 3


class MethodKind(IntEnum):
    """Method kinds, valued in execution order."""

    IDENTITY = 0
    EQUAL_WIDTH = 1
    EQUAL_COUNT = 2
    POISSON_MIXTURE = 3
    MAX_MUTUAL_INFO = 4


class ProbabilityMode(str, Enum):
    DEFAULT = "default"
    SET = "set"


@dataclass(frozen=True)
class Identity:
    kind: ClassVar[MethodKind] = MethodKind.IDENTITY


@dataclass(frozen=True)
class EqualWidth:
    bins: int
    kind: ClassVar[MethodKind] = MethodKind.EQUAL_WIDTH


@dataclass(frozen=True)
class EqualCount:
    bins: int
    kind: ClassVar[MethodKind] = MethodKind.EQUAL_COUNT


@dataclass(frozen=True)
class MaxMutualInfo:
    ref_category: int
    ref_variable: int
    ref_time_bin: int
    bins: int
    kind: ClassVar[MethodKind] = MethodKind.MAX_MUTUAL_INFO

    @property
    def reference(self) -> tuple[int, int]:
        return (self.ref_category, self.ref_variable)


@dataclass(frozen=True, eq=False)
class PoissonMixture:
    """Poisson mixture with *states* components.

    *probabilities* is ``None`` for uniform weights, otherwise a 2-D array
    with one row per binning row (or a single broadcast row).
    """

    states: int
    probability_mode: ProbabilityMode = ProbabilityMode.DEFAULT
    probabilities: np.ndarray | None = None
    kind: ClassVar[MethodKind] = MethodKind.POISSON_MIXTURE

    def weights(self, row: int) -> np.ndarray:
        """Mixture weights for binning row *row*."""
        if self.probabilities is None:
            return np.full(self.states, 1.0 / self.states)
        if self.probabilities.shape[0] == 1:
            return self.probabilities[0]
        return self.probabilities[row]


MethodParams = Union[Identity, EqualWidth, EqualCount, MaxMutualInfo, PoissonMixture]


@dataclass(frozen=True)
class EncodedMethod:
    """One validated method-table row."""

    row: int
    category: int
    variable: int
    params: MethodParams

    @property
    def key(self) -> tuple[int, int]:
        return (self.category, self.variable)

    @property
    def kind(self) -> MethodKind:
        return self.params.kind


_METHOD_NAMES = {
    "identity": MethodKind.IDENTITY,
    "equal-width": MethodKind.EQUAL_WIDTH,
    "equal-count": MethodKind.EQUAL_COUNT,
    "max-mutual-information": MethodKind.MAX_MUTUAL_INFO,
    "poisson-mixture": MethodKind.POISSON_MIXTURE,
}

METHOD_ALIASES = {
    "nat": "identity",
    "native": "identity",
    "uniwb": "equal-width",
    "unicb": "equal-count",
    "maxmi": "max-mutual-information",
    "poismle": "poisson-mixture",
}


def method_names() -> dict[str, list[str]]:
    """Canonical method names mapped to their accepted aliases."""
    names: dict[str, list[str]] = {name: [] for name in _METHOD_NAMES}
    for alias, name in METHOD_ALIASES.items():
        names[name].append(alias)
    return names


def parse_method_name(name: Any) -> MethodKind:
    if not isinstance(name, str):
        raise InvalidMethodError(f"Method name must be a string, got {name!r}")
    key = name.strip().lower().replace("_", "-").replace(" ", "-")
    key = METHOD_ALIASES.get(key, key)
    try:
        return _METHOD_NAMES[key]
    except KeyError:
        raise InvalidMethodError(f"Unknown method: {name!r}") from None


# ---------------------------------------------------------------------------
# Parameter parsing
# ---------------------------------------------------------------------------

def _as_count(value: Any, what: str) -> int:
    if isinstance(value, (bool, np.bool_)):
        raise InvalidMethodError(f"{what} must be an integer, got {value!r}")
    try:
        as_float = float(value)
    except (TypeError, ValueError):
        raise InvalidMethodError(f"{what} must be an integer, got {value!r}") from None
    if not as_float.is_integer():
        raise InvalidMethodError(f"{what} must be an integer, got {value!r}")
    return int(as_float)


def _positive_count(value: Any, what: str) -> int:
    count = _as_count(value, what)
    if count < 1:
        raise InvalidMethodError(f"{what} must be >= 1, got {count}")
    return count


def _as_list(params: Any) -> list:
    if params is None:
        return []
    if isinstance(params, (str, bytes)):
        return [params]
    if isinstance(params, np.ndarray):
        return [params] if params.ndim == 0 else list(params)
    if isinstance(params, Sequence):
        return list(params)
    return [params]


def _parse_bins(params: Any, method: str) -> int:
    values = _as_list(params)
    if len(values) != 1:
        raise InvalidMethodError(f"{method} takes exactly one parameter (bins), got {params!r}")
    return _positive_count(values[0], f"{method} bins")


def _parse_max_mi(params: Any, category: int) -> MaxMutualInfo:
    values = _as_list(params)
    if len(values) == 4:
        ref_category, ref_variable, ref_time_bin, bins = values
    elif len(values) == 3:
        ref_category = category
        ref_variable, ref_time_bin, bins = values
    else:
        raise InvalidMethodError(
            "max-mutual-information takes [category, variable, time_bin, bins] "
            f"or [variable, time_bin, bins], got {params!r}"
        )
    return MaxMutualInfo(
        ref_category=_as_count(ref_category, "reference category"),
        ref_variable=_as_count(ref_variable, "reference variable"),
        ref_time_bin=_as_count(ref_time_bin, "reference time bin"),
        bins=_positive_count(bins, "max-mutual-information bins"),
    )


def _parse_probability_mode(mode: Any) -> ProbabilityMode:
    if isinstance(mode, ProbabilityMode):
        return mode
    key = str(mode).strip().lower()
    if key in ("default", "uniform"):
        return ProbabilityMode.DEFAULT
    if key in ("set", "manual"):
        return ProbabilityMode.SET
    raise InvalidMethodError(f"Unknown poisson-mixture probability mode: {mode!r}")


def _parse_poisson(params: Any) -> PoissonMixture:
    values = _as_list(params)
    if not 1 <= len(values) <= 3:
        raise InvalidMethodError(
            f"poisson-mixture takes [states, mode, probabilities], got {params!r}"
        )
    states = _positive_count(values[0], "poisson-mixture states")
    mode = _parse_probability_mode(values[1]) if len(values) > 1 else ProbabilityMode.DEFAULT
    probabilities = values[2] if len(values) > 2 else None

    if mode is ProbabilityMode.DEFAULT:
        return PoissonMixture(states=states)

    if probabilities is None or np.size(probabilities) == 0:
        raise ProbabilityMismatchError(
            "poisson-mixture mode 'set' requires manual probabilities"
        )
    try:
        table = np.atleast_2d(np.asarray(probabilities, dtype=np.float64))
    except (TypeError, ValueError):
        raise InvalidMethodError(
            f"poisson-mixture probabilities must be numeric, got {probabilities!r}"
        ) from None
    if table.ndim != 2 or table.shape[1] != states:
        raise ProbabilityMismatchError(
            f"poisson-mixture: {states} hidden states but probability rows have "
            f"{table.shape[-1]} entries"
        )
    return PoissonMixture(states=states, probability_mode=mode, probabilities=table)


def encode_row(row: int, category: int, variable: int, method: Any, params: Any) -> EncodedMethod:
    """Parse one normalized method-table row into an :class:`EncodedMethod`."""
    kind = parse_method_name(method)
    category = _as_count(category, "category")
    variable = _as_count(variable, "variable")

    if kind is MethodKind.IDENTITY:
        parsed: MethodParams = Identity()
    elif kind is MethodKind.EQUAL_WIDTH:
        parsed = EqualWidth(bins=_parse_bins(params, "equal-width"))
    elif kind is MethodKind.EQUAL_COUNT:
        parsed = EqualCount(bins=_parse_bins(params, "equal-count"))
    elif kind is MethodKind.MAX_MUTUAL_INFO:
        parsed = _parse_max_mi(params, category)
    elif kind is MethodKind.POISSON_MIXTURE:
        parsed = _parse_poisson(params)
    else:  # pragma: no cover - MethodKind is closed
        raise InvalidMethodError(f"Unhandled method kind: {kind!r}")

    return EncodedMethod(row=row, category=category, variable=variable, params=parsed)


# ---------------------------------------------------------------------------
# Cross-row validation
# ---------------------------------------------------------------------------

def _check_unique(methods: Sequence[EncodedMethod]) -> None:
    seen: dict[tuple[int, int], int] = {}
    for method in methods:
        if method.key in seen:
            raise DuplicateAssignmentError(
                f"Duplicate method assignments for category {method.category}, "
                f"variable {method.variable} (rows {seen[method.key]} and {method.row})"
            )
        seen[method.key] = method.row


def _check_references(methods: Sequence[EncodedMethod]) -> None:
    by_key = {method.key: method for method in methods}
    for method in methods:
        if method.kind is not MethodKind.MAX_MUTUAL_INFO:
            continue
        params = method.params
        target = by_key.get(params.reference)
        if target is None:
            raise DependencyError(
                f"Row {method.row}: max-mutual-information reference "
                f"(category {params.ref_category}, variable {params.ref_variable}) "
                "is not assigned a method"
            )
        if target.kind is MethodKind.POISSON_MIXTURE:
            raise DependencyError(
                f"Row {method.row}: max-mutual-information cannot reference the "
                f"poisson-mixture variable in row {target.row}"
            )
        if target.key == method.key:
            raise DependencyError(f"Row {method.row}: max-mutual-information references itself")
        if params.bins > MAX_MI_BINS:
            raise BinCountExceededError(
                f"Row {method.row}: max-mutual-information supports at most "
                f"{MAX_MI_BINS} bins, got {params.bins}"
            )


def _check_probabilities(
    methods: Sequence[EncodedMethod],
    tolerance: float,
    strict: bool,
) -> None:
    for method in methods:
        if method.kind is not MethodKind.POISSON_MIXTURE:
            continue
        table = method.params.probabilities
        if table is None:
            continue
        if np.any(table < 0):
            raise ProbabilityNormalizationError(
                f"Row {method.row}: poisson-mixture probabilities must be non-negative"
            )
        sums = table.sum(axis=1)
        if strict:
            ok = sums == 1
        else:
            ok = np.abs(sums - 1.0) <= tolerance
        if not np.all(ok):
            raise ProbabilityNormalizationError(
                f"Row {method.row}: poisson-mixture probabilities were not properly "
                f"normalized (row sums {sums.tolist()})"
            )


def validate_methods(
    methods: Sequence[EncodedMethod],
    *,
    probability_tolerance: float = 1e-9,
    strict_probability_sum: bool = False,
) -> None:
    """Raise on any table-level inconsistency. Performs no data access."""
    _check_unique(methods)
    _check_references(methods)
    _check_probabilities(methods, probability_tolerance, strict_probability_sum)


def check_against_raster(methods: Sequence[EncodedMethod], shapes: Sequence[tuple]) -> None:
    """Validate ids, reference lengths and probability rows against raster *shapes*."""
    for method in methods:
        _check_address(method.row, method.category, method.variable, shapes)

    for method in methods:
        _, n_time, n_trials = shapes[method.category]
        single_trial = n_trials == 1
        n_rows = 1 if single_trial else n_time
        n_samples = n_time if single_trial else n_trials
        params = method.params

        if method.kind is MethodKind.POISSON_MIXTURE and params.probabilities is not None:
            n_prob_rows = params.probabilities.shape[0]
            if n_prob_rows not in (1, n_rows):
                raise ProbabilityMismatchError(
                    f"Row {method.row}: {n_prob_rows} probability rows for {n_rows} time bins"
                )

        if method.kind is MethodKind.MAX_MUTUAL_INFO:
            _, ref_time, ref_trials = shapes[params.ref_category]
            if single_trial:
                ref_length = ref_time
            else:
                if not 0 <= params.ref_time_bin < ref_time:
                    raise DependencyError(
                        f"Row {method.row}: reference time bin {params.ref_time_bin} "
                        f"out of range (0..{ref_time - 1})"
                    )
                ref_length = ref_trials
            if ref_length != n_samples:
                raise DependencyError(
                    f"Row {method.row}: reference has {ref_length} samples but the "
                    f"target variable has {n_samples}"
                )


def _check_address(row: int, category: int, variable: int, shapes: Sequence[tuple]) -> None:
    if not 0 <= category < len(shapes):
        raise InputShapeError(
            f"Row {row}: category {category} out of range (raster has {len(shapes)})"
        )
    n_vars = shapes[category][0]
    if not 0 <= variable < n_vars:
        raise InputShapeError(
            f"Row {row}: variable {variable} out of range for category {category} "
            f"({n_vars} variables)"
        )


# ---------------------------------------------------------------------------
# Execution order
# ---------------------------------------------------------------------------

def execution_order(methods: Sequence[EncodedMethod]) -> list[EncodedMethod]:
    """Order rows by kind; max-mutual-information rows follow their references.

    Within a kind, rows are ordered by (category, variable) so the result
    does not depend on table row order.
    """
    ordered = sorted(
        (m for m in methods if m.kind is not MethodKind.MAX_MUTUAL_INFO),
        key=lambda m: (m.kind, m.key),
    )
    pending = sorted(
        (m for m in methods if m.kind is MethodKind.MAX_MUTUAL_INFO),
        key=lambda m: m.key,
    )
    resolved = {m.key for m in ordered}
    while pending:
        ready = [m for m in pending if m.params.reference in resolved]
        if not ready:
            raise DependencyError(
                "Circular max-mutual-information references between "
                + ", ".join(f"(category {m.category}, variable {m.variable})" for m in pending)
            )
        for method in ready:
            ordered.append(method)
            resolved.add(method.key)
        pending = [m for m in pending if m.key not in resolved]
    return ordered


def encode_methods(
    rows: Sequence[tuple],
    *,
    probability_tolerance: float = 1e-9,
    strict_probability_sum: bool = False,
) -> list[EncodedMethod]:
    """Encode and validate normalized ``(category, variable, method, params)`` rows.

    Returned records keep table order; use :func:`execution_order` to run them.
    """
    methods = [
        encode_row(i, category, variable, method, params)
        for i, (category, variable, method, params) in enumerate(rows)
    ]
    validate_methods(
        methods,
        probability_tolerance=probability_tolerance,
        strict_probability_sum=strict_probability_sum,
    )
    execution_order(methods)
    logger.debug("Encoded %d method rows", len(methods))
    return methods
