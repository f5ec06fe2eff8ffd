"""Hidden-state assignment under a Poisson mixture model.

The samples are modelled as drawn from ``n`` Poisson distributions with
fixed mixture weights. Rates are fitted by maximum likelihood with a
Nelder-Mead simplex search, then each sample is assigned to the component
with the largest ``weight * Poisson(x; rate)``.
"""

from __future__ import annotations

import logging

import numpy as np
from scipy.optimize import minimize
from scipy.special import gammaln, logsumexp, xlogy

from .base import Binner
from ..exceptions import ConvergenceError
from ..methods import PoissonMixture
from ..utils import relabel_by_value, state_minima_row, unique_states

logger = logging.getLogger(__name__)

_XATOL = 1e-4
_FATOL = 1e-4


class PoissonMixtureBinner(Binner):
    """Fit a Poisson mixture per binning row and state samples by component.

    Parameters
    ----------
    params:
        Encoded poisson-mixture method (state count and mixture weights).
    max_iterations:
        Nelder-Mead iteration cap per fitted rate. ``None`` uses 1000.
    on_nonconvergence:
        ``"raise"`` to raise :class:`ConvergenceError`, ``"warn"`` to log a
        warning and keep the best simplex vertex.
    """

    def __init__(
        self,
        params: PoissonMixture,
        *,
        max_iterations: int | None = None,
        on_nonconvergence: str = "raise",
    ) -> None:
        if on_nonconvergence not in ("raise", "warn"):
            raise ValueError(f"on_nonconvergence must be 'raise' or 'warn', got {on_nonconvergence!r}")
        self.params = params
        self.n_states = params.states
        self.max_iterations = max_iterations
        self.on_nonconvergence = on_nonconvergence

    def bin(self, values: np.ndarray, row: int) -> tuple[np.ndarray, np.ndarray]:
        if np.unique(values).size <= self.n_states:
            return unique_states(values, self.metadata_width())

        with np.errstate(divide="ignore"):
            log_weights = np.log(self.params.weights(row))

        rates = self.fit_rates(values, log_weights, row)
        labels = np.argmax(_log_joint(values, rates, log_weights), axis=1)
        states = relabel_by_value(values, labels)
        return states, state_minima_row(values, states, self.n_states)

    def fit_rates(self, values: np.ndarray, log_weights: np.ndarray, row: int = 0) -> np.ndarray:
        """Maximum-likelihood Poisson rates for *values*."""
        # n + 2 evenly spaced points; the two end points are dropped
        start = np.linspace(values.min(), values.max(), self.n_states + 2)[1:-1]
        max_iter = self.max_iterations or 1000
        max_iter *= self.n_states

        def negative_log_likelihood(rates: np.ndarray) -> float:
            if np.any(rates <= 0):
                return np.inf
            return -float(logsumexp(_log_joint(values, rates, log_weights), axis=1).sum())

        result = minimize(
            negative_log_likelihood,
            start,
            method="Nelder-Mead",
            options={"maxiter": max_iter, "maxfev": 2 * max_iter, "xatol": _XATOL, "fatol": _FATOL},
        )
        if not result.success:
            message = (
                f"Poisson mixture fit for row {row} did not converge after "
                f"{result.nit} iterations: {result.message}"
            )
            if self.on_nonconvergence == "raise":
                raise ConvergenceError(message)
            logger.warning(message)
        else:
            logger.debug("Row %d rates %s after %d iterations", row, result.x, result.nit)
        return np.asarray(result.x, dtype=np.float64)


def _log_joint(values: np.ndarray, rates: np.ndarray, log_weights: np.ndarray) -> np.ndarray:
    """``log(weight_s) + log Poisson(x; rate_s)`` with shape (samples, states)."""
    x = values[:, None]
    return log_weights[None, :] + xlogy(x, rates[None, :]) - rates[None, :] - gammaln(x + 1)
