"""StateConverter — orchestrates normalization, method encoding, and binning."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np

from .binners import (
    Binner,
    EqualCountBinner,
    EqualWidthBinner,
    MaxMutualInfoBinner,
    PoissonMixtureBinner,
)
from .exceptions import DependencyError, InvalidMethodError
from .methods import (
    EncodedMethod,
    MethodKind,
    check_against_raster,
    encode_methods,
    execution_order,
)
from .normalize import normalize_method_table, normalize_raster

logger = logging.getLogger(__name__)


@dataclass
class ConversionResult:
    """Output of :meth:`StateConverter.convert`.

    Attributes
    ----------
    states:
        Stated raster with the input's shape and category structure (a bare
        array when the input was a bare array).
    method_results:
        One metadata array per method-table row, in table order.
    methods:
        The encoded method records, in table order.
    """

    states: np.ndarray | list[np.ndarray]
    method_results: list[np.ndarray]
    methods: list[EncodedMethod]


class StateConverter:
    """Convert raw variables to integer states, one method per variable.

    Parameters
    ----------
    probability_tolerance:
        Absolute tolerance when checking that manual Poisson-mixture
        probability rows sum to one.
    strict_probability_sum:
        If ``True``, require the row sums to equal one exactly.
    max_iterations:
        Nelder-Mead iteration cap per fitted Poisson rate (``None`` → 1000).
    on_nonconvergence:
        ``"raise"`` or ``"warn"`` when a Poisson-mixture fit does not converge.
    """

    def __init__(
        self,
        probability_tolerance: float = 1e-9,
        strict_probability_sum: bool = False,
        max_iterations: int | None = None,
        on_nonconvergence: str = "raise",
    ) -> None:
        if on_nonconvergence not in ("raise", "warn"):
            raise ValueError(f"on_nonconvergence must be 'raise' or 'warn', got {on_nonconvergence!r}")
        if max_iterations is not None and max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {max_iterations}")
        self.probability_tolerance = probability_tolerance
        self.strict_probability_sum = strict_probability_sum
        self.max_iterations = max_iterations
        self.on_nonconvergence = on_nonconvergence

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def encode(self, raster: Any, methods: Any) -> tuple[list[np.ndarray], bool, list[EncodedMethod]]:
        """Normalize and validate inputs without transforming any data."""
        categories, bare = normalize_raster(raster)
        rows = normalize_method_table(methods, len(categories))
        encoded = encode_methods(
            rows,
            probability_tolerance=self.probability_tolerance,
            strict_probability_sum=self.strict_probability_sum,
        )
        check_against_raster(encoded, [cat.shape for cat in categories])
        _check_poisson_data(encoded, categories)
        return categories, bare, encoded

    def convert(self, raster: Any, methods: Any) -> ConversionResult:
        """State *raster* according to the method table *methods*.

        Parameters
        ----------
        raster:
            ``(variables, time bins, trials)`` array, or a sequence of such
            arrays (one per data category).
        methods:
            Method table; see :func:`~data2states.normalize.normalize_method_table`.
            Variables without a row are treated as already stated.
        """
        categories, bare, encoded = self.encode(raster, methods)

        states = [cat.copy() for cat in categories]
        results: list[np.ndarray] = [np.empty(0) for _ in encoded]
        resolved = {m.key for m in encoded if m.kind is MethodKind.IDENTITY}

        for method in execution_order(encoded):
            if method.kind is MethodKind.IDENTITY:
                continue
            if method.key in resolved:
                raise DependencyError(
                    f"Category {method.category} variable {method.variable} was already stated"
                )
            slice_states, results[method.row] = self._convert_variable(
                method, categories, states, resolved
            )
            states[method.category][method.variable] = slice_states
            resolved.add(method.key)

        logger.info(
            "Stated %d of %d method rows across %d categories",
            sum(m.kind is not MethodKind.IDENTITY for m in encoded),
            len(encoded),
            len(categories),
        )
        return ConversionResult(
            states=states[0] if bare else states,
            method_results=results,
            methods=encoded,
        )

    def to_dataframe(self, result: ConversionResult):
        """Convert method results to a long-format pandas DataFrame."""
        from .io.writers import results_to_frame

        return results_to_frame(result.method_results)

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _convert_variable(
        self,
        method: EncodedMethod,
        categories: Sequence[np.ndarray],
        states: Sequence[np.ndarray],
        resolved: set[tuple[int, int]],
    ) -> tuple[np.ndarray, np.ndarray]:
        raw = categories[method.category][method.variable].astype(np.float64)
        # Single-trial data: time bins become the sample axis
        single_trial = raw.shape[1] == 1
        samples = raw.T if single_trial else raw

        binner = self._make_binner(method, states, resolved, single_trial)
        logger.debug(
            "Category %d variable %d: %s over %d rows (single_trial=%s)",
            method.category, method.variable, method.kind.name, samples.shape[0], single_trial,
        )

        out = np.empty(samples.shape, dtype=np.int64)
        meta = np.full((samples.shape[0], binner.metadata_width()), np.nan)
        for row in range(samples.shape[0]):
            out[row], meta[row] = binner.bin(samples[row], row)

        return (out.T if single_trial else out), meta

    def _make_binner(
        self,
        method: EncodedMethod,
        states: Sequence[np.ndarray],
        resolved: set[tuple[int, int]],
        single_trial: bool,
    ) -> Binner:
        params = method.params
        if method.kind is MethodKind.EQUAL_WIDTH:
            return EqualWidthBinner(params.bins)
        if method.kind is MethodKind.EQUAL_COUNT:
            return EqualCountBinner(params.bins)
        if method.kind is MethodKind.POISSON_MIXTURE:
            return PoissonMixtureBinner(
                params,
                max_iterations=self.max_iterations,
                on_nonconvergence=self.on_nonconvergence,
            )
        if method.kind is MethodKind.MAX_MUTUAL_INFO:
            if params.reference not in resolved:
                raise DependencyError(
                    f"Reference category {params.ref_category} variable "
                    f"{params.ref_variable} has not been stated yet"
                )
            ref = states[params.ref_category][params.ref_variable]
            reference = ref[:, 0] if single_trial else ref[params.ref_time_bin, :]
            return MaxMutualInfoBinner(params.bins, reference)
        raise InvalidMethodError(f"No binner for method kind {method.kind!r}")


def _check_poisson_data(methods: Sequence[EncodedMethod], categories: Sequence[np.ndarray]) -> None:
    for method in methods:
        if method.kind is not MethodKind.POISSON_MIXTURE:
            continue
        data = categories[method.category][method.variable]
        if np.any(data < 0):
            raise InvalidMethodError(
                f"Row {method.row}: poisson-mixture requires non-negative count data"
            )


def data2states(raster: Any, methods: Any, **settings) -> tuple[Any, list[np.ndarray]]:
    """Convert *raster* to states; returns ``(states, method_results)``.

    Keyword arguments are forwarded to :class:`StateConverter`.
    """
    result = StateConverter(**settings).convert(raster, methods)
    return result.states, result.method_results
