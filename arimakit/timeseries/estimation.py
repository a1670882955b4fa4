"""Parameter estimation routines for seasonal ARIMA models.

This module provides the building blocks the model fit is assembled from:
- Conditional sum-of-squares (CSS) fit of the differenced series
- Unconditional sum-of-squares (USS) fit with AR back-forecasting
- Exact Gaussian likelihood via the Kalman filter (ML)
- Packing of coefficients into the flat vector the optimizer works on
- The scalar objective minimized by BFGS

References:
    - Box & Jenkins (1976): Time Series Analysis: Forecasting and Control
    - Hamilton (1994): Time Series Analysis
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Sequence, Tuple

import numpy as np

from ..logging import get_logger
from .coefficients import ArimaCoefficients
from .kalman import DIFFUSE_VARIANCE, STABILITY_THRESHOLD, kalman_filter
from .order import ArimaOrder
from .statespace import arima_state_space, differencing_delta
from .utils import seasonal_difference

logger = get_logger(__name__)

EPSILON = float(np.finfo(float).eps)

#: Objective value reported for coefficient vectors that cannot be evaluated.
POOR_OBJECTIVE = 1e10


class FittingStrategy(Enum):
    """How the coefficients of an ARIMA model are estimated.

    - CSS: conditional sum of squares.
    - USS: unconditional sum of squares with back-forecasting.
    - ML: exact maximum likelihood through the Kalman filter.
    - CSSML: ML started from the CSS estimates.
    - USSML: ML started from the USS estimates.
    """

    CSS = "css"
    USS = "uss"
    ML = "ml"
    CSSML = "cssml"
    USSML = "ussml"

    @property
    def uses_likelihood(self) -> bool:
        return self in (FittingStrategy.ML, FittingStrategy.CSSML, FittingStrategy.USSML)

    @property
    def warm_start(self) -> Optional[FittingStrategy]:
        """Strategy whose fit seeds this one, if any."""
        if self is FittingStrategy.CSSML:
            return FittingStrategy.CSS
        if self is FittingStrategy.USSML:
            return FittingStrategy.USS
        return None


def _concentrated_loglik(n: int, sigma2: float) -> float:
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(-0.5 * n * (np.log(2 * np.pi * sigma2) + 1))


@dataclass(frozen=True)
class ModelInformation:
    """Summary of a fit at fixed coefficients.

    Attributes:
        npar: Number of estimated parameters.
        sigma2: Innovation variance estimate.
        log_likelihood: Log-likelihood (exact for ML, conditional otherwise).
        residuals: Model residuals.
        fitted: Fitted values, aligned with ``residuals``. The evaluators
            report both on the scale of the series they receive: the
            differenced series for CSS and USS, the series with regression
            effects removed for ML. ``ArimaModel.information`` carries them
            on the observation scale.
        aic: Akaike Information Criterion, 2 npar - 2 loglik.
    """

    npar: int
    sigma2: float
    log_likelihood: float
    residuals: np.ndarray
    fitted: np.ndarray
    aic: float = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "aic", 2 * self.npar - 2 * self.log_likelihood)


def _css_recursion(
    y: np.ndarray, ar: np.ndarray, ma: np.ndarray
) -> Tuple[np.ndarray, np.ndarray]:
    n = y.size
    p = ar.size
    q = ma.size
    fitted = np.zeros(n)
    residuals = np.zeros(n)
    for t in range(p, n):
        value = 0.0
        if p > 0:
            value += np.dot(ar, y[t - p : t][::-1])
        k = min(t, q)
        if k > 0:
            value += np.dot(ma[:k], residuals[t - k : t][::-1])
        fitted[t] = value
        residuals[t] = y[t] - value
    return fitted, residuals


def fit_css(
    differenced: np.ndarray,
    ar: Sequence[float],
    ma: Sequence[float],
    npar: int,
) -> ModelInformation:
    """Conditional sum-of-squares fit at fixed coefficients.

    Runs the ARMA difference equation
        fitted_t = sum_i ar_i y_{t-i-1} + sum_j ma_j e_{t-j-1}
    from t = p onwards, treating the first p observations as given history.

    Args:
        differenced: Differenced series with regression effects removed,
            shape (n,).
        ar: Expanded AR coefficients, shape (p,).
        ma: Expanded MA coefficients, shape (q,).
        npar: Number of estimated parameters, reported in the result.

    Returns:
        ModelInformation with residuals and fitted values of length n; the
        first p entries of both are zero.

    Example:
        >>> y = np.array([1.0, -1.0, 1.0, -1.0])
        >>> info = fit_css(y, [], [], npar=0)
        >>> info.sigma2
        1.0
    """
    y = np.asarray(differenced, dtype=float)
    if y.ndim != 1:
        raise ValueError(f"differenced must be 1D array, got shape {y.shape}")
    ar = np.asarray(ar, dtype=float)
    ma = np.asarray(ma, dtype=float)

    fitted, residuals = _css_recursion(y, ar, ma)
    n = y.size
    m = n - ar.size
    sigma2 = float(np.sum(residuals**2) / m) if m > 0 else np.nan
    return ModelInformation(
        npar=npar,
        sigma2=sigma2,
        log_likelihood=_concentrated_loglik(n, sigma2),
        residuals=residuals,
        fitted=fitted,
    )


def fit_uss(
    differenced: np.ndarray,
    ar: Sequence[float],
    ma: Sequence[float],
    npar: int,
) -> ModelInformation:
    """Unconditional sum-of-squares fit with AR back-forecasting.

    The reversed series is extended by 2p values through the AR recursion.
    These backcasts stand in for the unobserved history, so the CSS recursion
    run over the extended series also produces residuals for the first p
    observations.

    Args:
        differenced: Differenced series with regression effects removed,
            shape (n,).
        ar: Expanded AR coefficients, shape (p,).
        ma: Expanded MA coefficients, shape (q,).
        npar: Number of estimated parameters, reported in the result.

    Returns:
        ModelInformation whose residuals and fitted values cover the n
        observed points. sigma2 and the log-likelihood use the extended
        length.
    """
    y = np.asarray(differenced, dtype=float)
    if y.ndim != 1:
        raise ValueError(f"differenced must be 1D array, got shape {y.shape}")
    ar = np.asarray(ar, dtype=float)
    ma = np.asarray(ma, dtype=float)
    n = y.size
    p = ar.size

    backward = np.concatenate((y[::-1], np.zeros(2 * p)))
    for t in range(n, n + 2 * p):
        history = backward[max(t - p, 0) : t][::-1]
        backward[t] = np.dot(ar[: history.size], history)
    extended = backward[::-1]

    fitted, residuals = _css_recursion(extended, ar, ma)
    n_ext = extended.size
    m = n_ext - p
    sigma2 = float(np.sum(residuals**2) / m) if m > 0 else np.nan
    return ModelInformation(
        npar=npar,
        sigma2=sigma2,
        log_likelihood=_concentrated_loglik(n_ext, sigma2),
        residuals=residuals[2 * p :],
        fitted=fitted[2 * p :],
    )


def fit_ml(
    series: np.ndarray,
    ar: Sequence[float],
    ma: Sequence[float],
    delta: Sequence[float],
    npar: int,
    stability_threshold: float = STABILITY_THRESHOLD,
    diffuse_variance: float = DIFFUSE_VARIANCE,
) -> ModelInformation:
    """Exact Gaussian likelihood fit at fixed coefficients.

    Args:
        series: Undifferenced series with regression effects removed.
        ar: Expanded AR coefficients.
        ma: Expanded MA coefficients.
        delta: Differencing coefficients (see ``differencing_delta``).
        npar: Number of estimated coefficients; one is added for sigma2.

    Returns:
        ModelInformation with full-length standardized residuals and
        ``fitted = series - residuals``.
    """
    y = np.asarray(series, dtype=float)
    output = kalman_filter(
        arima_state_space(ar, ma, delta),
        y,
        stability_threshold=stability_threshold,
        diffuse_variance=diffuse_variance,
    )
    residuals = np.array(output.residuals)
    return ModelInformation(
        npar=npar + 1,
        sigma2=output.sigma2,
        log_likelihood=output.log_likelihood,
        residuals=residuals,
        fitted=y - residuals,
    )


def regression_matrix(n: int, order: ArimaOrder) -> np.ndarray:
    """Design matrix of the regression terms, shape (n, num_regressors).

    The mean column is all ones and the drift column is the time index
    1, ..., n.
    """
    return forecast_regression_matrix(0, n, order)


def forecast_regression_matrix(n: int, steps: int, order: ArimaOrder) -> np.ndarray:
    """Regression design matrix for time indices n + 1, ..., n + steps."""
    columns = []
    if order.constant:
        columns.append(np.ones(steps))
    if order.drift:
        columns.append(np.arange(n + 1, n + steps + 1, dtype=float))
    if not columns:
        return np.zeros((steps, 0))
    return np.column_stack(columns)


def regression_effects(
    coefficients: ArimaCoefficients, order: ArimaOrder, n: int
) -> np.ndarray:
    """Mean and drift contribution at time indices 1, ..., n."""
    return regression_matrix(n, order) @ coefficients.regressors(order)


@dataclass(frozen=True)
class ParameterScales:
    """Divisors applied to the mean and drift inside the optimizer.

    Attributes:
        mean: Scale of the mean parameter.
        drift: Scale of the drift parameter.
    """

    mean: float = 1.0
    drift: float = 1.0

    @classmethod
    def from_standard_errors(
        cls, order: ArimaOrder, stderr: Sequence[float]
    ) -> ParameterScales:
        """Scales of 10 standard errors of the regression estimates.

        Scales that are not finite or are below machine epsilon fall back to
        1.0.
        """
        stderr = np.asarray(stderr, dtype=float)

        def _scale(index: int) -> float:
            value = 10.0 * stderr[index]
            if not np.isfinite(value) or value < EPSILON:
                return 1.0
            return float(value)

        mean = _scale(0) if order.constant else 1.0
        drift = _scale(int(order.constant)) if order.drift else 1.0
        return cls(mean=mean, drift=drift)

    def for_order(self, order: ArimaOrder) -> np.ndarray:
        """Scales of the regression parameters selected by ``order``."""
        values = []
        if order.constant:
            values.append(self.mean)
        if order.drift:
            values.append(self.drift)
        return np.array(values, dtype=float)


def pack_parameters(
    coefficients: ArimaCoefficients, order: ArimaOrder, scales: ParameterScales
) -> np.ndarray:
    """Flatten coefficients to ``[ar, ma, sar, sma, mean?, drift?]``.

    Mean and drift are divided by their scales.
    """
    regressors = coefficients.regressors(order) / scales.for_order(order)
    return np.concatenate((coefficients.arma_coefficients(), regressors))


def unpack_parameters(
    params: Sequence[float],
    order: ArimaOrder,
    seasonal_frequency: int,
    scales: ParameterScales,
) -> ArimaCoefficients:
    """Inverse of :func:`pack_parameters`.

    Raises:
        ValueError: If ``params`` does not have ``order.npar`` entries.
    """
    params = np.asarray(params, dtype=float)
    if params.shape != (order.npar,):
        raise ValueError(
            f"params must have shape ({order.npar},), got {params.shape}"
        )
    p, q, P, Q = order.p, order.q, order.P, order.Q
    splits = np.cumsum([p, q, P, Q])
    ar, ma, sar, sma, regressors = np.split(params, splits)
    mean = 0.0
    drift = 0.0
    if order.constant:
        mean = regressors[0] * scales.mean
    if order.drift:
        drift = regressors[int(order.constant)] * scales.drift
    return ArimaCoefficients.create(
        ar=ar,
        ma=ma,
        sar=sar,
        sma=sma,
        d=order.d,
        D=order.D,
        seasonal_frequency=seasonal_frequency,
        mean=mean,
        drift=drift,
    )


class ArimaObjective:
    """Scalar objective minimized over the packed parameter vector.

    CSS and USS minimize half the log residual variance of the differenced
    series. The likelihood strategies minimize the concentrated negative
    log-likelihood per observation, 0.5 (log sigma2 + sumlog / n).
    Coefficients that cannot be evaluated map to ``POOR_OBJECTIVE``.

    Args:
        observations: Undifferenced observations, shape (N,).
        order: Model order.
        strategy: Fitting strategy; warm-started strategies use the ML
            objective.
        seasonal_frequency: Observations per seasonal cycle.
        scales: Scales of the regression parameters.
        stability_threshold: Passed to the Kalman filter.
        diffuse_variance: Passed to the Kalman filter.
    """

    def __init__(
        self,
        observations: np.ndarray,
        order: ArimaOrder,
        strategy: FittingStrategy,
        seasonal_frequency: int,
        scales: ParameterScales,
        stability_threshold: float = STABILITY_THRESHOLD,
        diffuse_variance: float = DIFFUSE_VARIANCE,
    ) -> None:
        self.observations = np.asarray(observations, dtype=float)
        self.order = order
        self.strategy = strategy
        self.seasonal_frequency = seasonal_frequency
        self.scales = scales
        self.stability_threshold = stability_threshold
        self.diffuse_variance = diffuse_variance
        self.design = regression_matrix(self.observations.size, order)
        self.delta = differencing_delta(order.d, order.D, seasonal_frequency)
        self.evaluations = 0

    def __call__(self, params: np.ndarray) -> float:
        self.evaluations += 1
        params = np.asarray(params, dtype=float)
        if not np.all(np.isfinite(params)):
            return POOR_OBJECTIVE
        with np.errstate(all="ignore"):
            value = self._evaluate(params)
        if not np.isfinite(value):
            return POOR_OBJECTIVE
        return float(value)

    def _evaluate(self, params: np.ndarray) -> float:
        coefficients = unpack_parameters(
            params, self.order, self.seasonal_frequency, self.scales
        )
        ar = coefficients.expanded_ar
        ma = coefficients.expanded_ma
        arma_series = self.observations - self.design @ coefficients.regressors(self.order)

        if self.strategy.uses_likelihood:
            output = kalman_filter(
                arima_state_space(ar, ma, self.delta),
                arma_series,
                stability_threshold=self.stability_threshold,
                diffuse_variance=self.diffuse_variance,
            )
            if output.n == 0 or not output.sigma2 > 0:
                return POOR_OBJECTIVE
            return 0.5 * (np.log(output.sigma2) + output.sumlog / output.n)

        differenced = seasonal_difference(
            arma_series, self.order.d, self.order.D, self.seasonal_frequency
        )
        fit = fit_uss if self.strategy is FittingStrategy.USS else fit_css
        info = fit(differenced, ar, ma, self.order.npar)
        if not info.sigma2 > 0:
            return POOR_OBJECTIVE
        return 0.5 * np.log(info.sigma2)


__all__ = [
    "POOR_OBJECTIVE",
    "ArimaObjective",
    "FittingStrategy",
    "ModelInformation",
    "ParameterScales",
    "fit_css",
    "fit_ml",
    "fit_uss",
    "forecast_regression_matrix",
    "pack_parameters",
    "regression_effects",
    "regression_matrix",
    "unpack_parameters",
]
