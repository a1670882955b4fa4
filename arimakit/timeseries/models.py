"""Fitted seasonal ARIMA models.

:func:`fit_arima` estimates the coefficients of a model of given order and
returns an immutable :class:`ArimaModel`; :func:`arima_from_coefficients`
wraps known coefficients without estimation. Both expose the fit summary,
the residual and fitted series, and forecasting.

Example:
    >>> import numpy as np
    >>> from arimakit.timeseries import ArimaOrder, fit_arima
    >>> np.random.seed(0)
    >>> eps = np.random.normal(size=200)
    >>> x = np.zeros(200)
    >>> for t in range(1, 200):
    ...     x[t] = 0.5 * x[t - 1] + eps[t]
    >>> model = fit_arima(x, ArimaOrder.create(1, 0, 0))
    >>> abs(model.coefficients.ar[0] - 0.5) < 0.15
    True
    >>> fc = model.forecast(steps=5)
    >>> len(fc)
    5

References:
    - Box & Jenkins (1976): Time Series Analysis: Forecasting and Control
    - Hamilton (1994): Time Series Analysis
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Union

import numpy as np

from ..logging import get_logger
from ..optimize import DEFAULT_TOL, EPSILON, OptimizeResult, Problem, bfgs
from .coefficients import ArimaCoefficients
from .estimation import (
    ArimaObjective,
    FittingStrategy,
    ModelInformation,
    ParameterScales,
    fit_css,
    fit_ml,
    fit_uss,
    pack_parameters,
    regression_effects,
    regression_matrix,
    unpack_parameters,
)
from .forecast import ArimaForecast, forecast_arima
from .kalman import DIFFUSE_VARIANCE, STABILITY_THRESHOLD
from .order import ArimaConfigurationError, ArimaOrder
from .series import TimePeriod, TimeSeries, as_series
from .statespace import differencing_delta
from .utils import difference_columns, ols, seasonal_difference

logger = get_logger(__name__)

SeriesLike = Union[TimeSeries, np.ndarray, list]


@dataclass(frozen=True)
class FitConfig:
    """Numerical settings of an ARIMA fit.

    Attributes:
        max_iterations: BFGS iteration budget.
        tolerance: Gradient and relative-change tolerance of BFGS.
        gradient_step: Finite-difference step of the numerical gradient.
        stability_threshold: Kalman innovation variances at or above this are
            excluded from the likelihood.
        diffuse_variance: Prior variance of the differencing states.
    """

    max_iterations: int = 100
    tolerance: float = DEFAULT_TOL
    gradient_step: float = 1e-6
    stability_threshold: float = STABILITY_THRESHOLD
    diffuse_variance: float = DIFFUSE_VARIANCE

    def __post_init__(self) -> None:
        """Validate FitConfig settings."""
        if self.max_iterations < 0:
            raise ValueError(f"max_iterations must be >= 0, got {self.max_iterations}")
        for name in ("tolerance", "gradient_step", "stability_threshold", "diffuse_variance"):
            value = getattr(self, name)
            if not (np.isfinite(value) and value > 0):
                raise ValueError(f"{name} must be positive and finite, got {value}")


@dataclass(frozen=True)
class ArimaModel:
    """An ARIMA model with its coefficients fixed.

    Attributes:
        observations: The modelled series.
        differenced: Observations after d lag-1 and D seasonal differences.
        order: Model order.
        coefficients: Estimated (or supplied) coefficients.
        strategy: Strategy the coefficients were fitted with.
        seasonal_frequency: Observations per seasonal cycle.
        information: Fit summary at the final coefficients, with residuals
            and fitted values on the observation scale.
        std_errors: Standard errors ordered like the packed parameters
            ``[ar, ma, sar, sma, mean?, drift?]``.
        residuals: Residuals aligned with the observations, shape (N,).
        fitted: ``observations - residuals``, shape (N,).
        optimizer_result: BFGS result, or None when no optimization ran.
    """

    observations: TimeSeries
    differenced: np.ndarray
    order: ArimaOrder
    coefficients: ArimaCoefficients
    strategy: FittingStrategy
    seasonal_frequency: int
    information: ModelInformation
    std_errors: np.ndarray
    residuals: np.ndarray
    fitted: np.ndarray
    optimizer_result: Optional[OptimizeResult] = None

    @property
    def sigma2(self) -> float:
        return self.information.sigma2

    @property
    def log_likelihood(self) -> float:
        return self.information.log_likelihood

    @property
    def aic(self) -> float:
        return self.information.aic

    @property
    def npar(self) -> int:
        return self.information.npar

    def forecast(self, steps: int = 12, alpha: float = 0.05) -> ArimaForecast:
        """Forecast ``steps`` periods ahead with 100 (1 - alpha)% intervals."""
        return forecast_arima(self, steps, alpha)

    def __str__(self) -> str:
        lines = [
            str(self.order),
            f"strategy: {self.strategy.name}",
            f"coefficients: ar={self.coefficients.ar.tolist()} "
            f"ma={self.coefficients.ma.tolist()} "
            f"sar={self.coefficients.sar.tolist()} "
            f"sma={self.coefficients.sma.tolist()}",
        ]
        if self.order.constant:
            lines.append(f"mean: {self.coefficients.mean:.6g}")
        if self.order.drift:
            lines.append(f"drift: {self.coefficients.drift:.6g}")
        lines.append(
            f"sigma2: {self.sigma2:.6g}  log-likelihood: {self.log_likelihood:.6g}"
            f"  AIC: {self.aic:.6g}"
        )
        return "\n".join(lines)


def _coerce_strategy(strategy: Union[FittingStrategy, str]) -> FittingStrategy:
    if isinstance(strategy, FittingStrategy):
        return strategy
    by_name = {s.value: s for s in FittingStrategy}
    if isinstance(strategy, str) and strategy.lower() in by_name:
        return by_name[strategy.lower()]
    options = ", ".join(s.value for s in FittingStrategy)
    raise ArimaConfigurationError(
        f"strategy must be one of {options}, got {strategy!r}"
    )


def _readonly(arr: np.ndarray) -> np.ndarray:
    arr = np.array(arr, dtype=float)
    arr.setflags(write=False)
    return arr


def _model_information(
    observations: np.ndarray,
    order: ArimaOrder,
    coefficients: ArimaCoefficients,
    strategy: FittingStrategy,
    seasonal_frequency: int,
    config: FitConfig,
) -> tuple[ModelInformation, np.ndarray]:
    """Fit summary and observation-aligned residuals at fixed coefficients."""
    arma_series = observations - regression_effects(coefficients, order, observations.size)
    ar = coefficients.expanded_ar
    ma = coefficients.expanded_ma
    if strategy.uses_likelihood:
        info = fit_ml(
            arma_series,
            ar,
            ma,
            differencing_delta(order.d, order.D, seasonal_frequency),
            order.npar,
            stability_threshold=config.stability_threshold,
            diffuse_variance=config.diffuse_variance,
        )
        return info, info.residuals

    differenced = seasonal_difference(arma_series, order.d, order.D, seasonal_frequency)
    fit = fit_uss if strategy is FittingStrategy.USS else fit_css
    info = fit(differenced, ar, ma, order.npar)
    span = observations.size - differenced.size
    return info, np.concatenate((np.zeros(span), info.residuals))


def _build_model(
    series: TimeSeries,
    order: ArimaOrder,
    coefficients: ArimaCoefficients,
    strategy: FittingStrategy,
    seasonal_frequency: int,
    std_errors: np.ndarray,
    config: FitConfig,
    optimizer_result: Optional[OptimizeResult] = None,
) -> ArimaModel:
    observations = series.values
    info, residuals = _model_information(
        observations, order, coefficients, strategy, seasonal_frequency, config
    )
    residuals = _readonly(residuals)
    fitted = _readonly(observations - residuals)
    info = replace(info, residuals=residuals, fitted=fitted)
    return ArimaModel(
        observations=series,
        differenced=_readonly(
            seasonal_difference(observations, order.d, order.D, seasonal_frequency)
        ),
        order=order,
        coefficients=coefficients,
        strategy=strategy,
        seasonal_frequency=seasonal_frequency,
        information=info,
        std_errors=_readonly(std_errors),
        residuals=residuals,
        fitted=fitted,
        optimizer_result=optimizer_result,
    )


def _initial_inverse_hessian(
    first: ArimaModel, order: ArimaOrder, scales: ParameterScales
) -> np.ndarray:
    """Inverse Hessian implied by the standard errors of a preliminary fit."""
    n_diff = first.differenced.size
    stderr = np.array(first.std_errors, dtype=float)
    stderr[order.sum_arma :] /= scales.for_order(order)
    with np.errstate(invalid="ignore", over="ignore"):
        diagonal = stderr**2 * n_diff
    diagonal[~(np.isfinite(diagonal) & (diagonal > 0))] = 1.0
    return np.diag(diagonal)


def _check_polynomials(coefficients: ArimaCoefficients) -> None:
    if not coefficients.is_stationary():
        logger.warning(
            "Fitted AR polynomial is not stationary: ar=%s sar=%s",
            coefficients.ar.tolist(),
            coefficients.sar.tolist(),
        )
    if not coefficients.is_invertible():
        logger.warning(
            "Fitted MA polynomial is not invertible: ma=%s sma=%s",
            coefficients.ma.tolist(),
            coefficients.sma.tolist(),
        )


def fit_arima(
    series: SeriesLike,
    order: ArimaOrder,
    strategy: Union[FittingStrategy, str] = FittingStrategy.CSSML,
    seasonal_cycle: Optional[TimePeriod] = None,
    config: Optional[FitConfig] = None,
) -> ArimaModel:
    """Estimate a seasonal ARIMA model of the given order.

    The mean and drift are first estimated by least squares on the
    differenced series, which also sets their scales in the optimizer. With
    a warm-started strategy (CSSML, USSML) a preliminary CSS or USS fit
    seeds every parameter and the inverse Hessian. BFGS then minimizes the
    strategy's objective; running out of iterations is accepted.

    Args:
        series: Observations; arrays are wrapped with a one-year period.
        order: Model order, typically from :meth:`ArimaOrder.create`.
        strategy: Fitting strategy or its name ("css", "uss", "ml", "cssml",
            "ussml").
        seasonal_cycle: Length of the seasonal cycle (default one year). The
            seasonal frequency is the number of observation periods in it.
        config: Numerical settings (default :class:`FitConfig`).

    Returns:
        Immutable fitted ArimaModel.

    Raises:
        ArimaConfigurationError: If the order or strategy is invalid, or the
            series is too short for the differencing.
        ValueError: If the observations are not a finite 1D series.
    """
    if not isinstance(order, ArimaOrder):
        raise ArimaConfigurationError(
            f"order must be an ArimaOrder, got {type(order).__name__}"
        )
    strategy = _coerce_strategy(strategy)
    config = config or FitConfig()
    y = as_series(series)
    cycle = seasonal_cycle or TimePeriod.one_year()
    s = y.period.seasonal_frequency(cycle)
    span = order.d + order.D * s
    if len(y) < span + 1:
        raise ArimaConfigurationError(
            f"Series of length {len(y)} is too short for differencing of "
            f"span {span}; at least {span + 1} observations are needed"
        )

    logger.info("Fitting %s by %s to %d observations", order, strategy.name, len(y))
    observations = y.values
    n_obs = observations.size
    differenced = seasonal_difference(observations, order.d, order.D, s)
    n_diff = differenced.size

    design = difference_columns(regression_matrix(n_obs, order), order.d, order.D, s)
    regression = ols(differenced, design)
    scales = ParameterScales.from_standard_errors(order, regression.stderr)
    regressors = regression.beta
    start = ArimaCoefficients.create(
        ar=np.zeros(order.p),
        ma=np.zeros(order.q),
        sar=np.zeros(order.P),
        sma=np.zeros(order.Q),
        d=order.d,
        D=order.D,
        seasonal_frequency=s,
        mean=regressors[0] if order.constant else 0.0,
        drift=regressors[int(order.constant)] if order.drift else 0.0,
    )

    if order.sum_arma == 0:
        if regression.sigma2 <= EPSILON:
            logger.warning(
                "Residual variance is zero after removing the regression terms"
            )
        logger.debug("No ARMA terms; using the regression estimate directly")
        model = _build_model(y, order, start, strategy, s, regression.stderr, config)
        logger.info("Fit complete: sigma2=%.6g, AIC=%.6g", model.sigma2, model.aic)
        return model

    inv_hessian0 = None
    warm_start = strategy.warm_start
    if warm_start is not None:
        first = fit_arima(y, order, warm_start, cycle, config)
        start = first.coefficients
        inv_hessian0 = _initial_inverse_hessian(first, order, scales)

    x0 = pack_parameters(start, order, scales)
    objective = ArimaObjective(
        observations,
        order,
        strategy,
        s,
        scales,
        stability_threshold=config.stability_threshold,
        diffuse_variance=config.diffuse_variance,
    )
    result = bfgs(
        Problem(fun=objective, dim=x0.size),
        x0,
        maxiter=config.max_iterations,
        gtol=config.tolerance,
        xtol=config.tolerance,
        inv_hessian0=inv_hessian0,
        grad_eps=config.gradient_step,
    )
    logger.debug(
        "Objective evaluated %d times; optimizer: %s", objective.evaluations, result.message
    )

    coefficients = unpack_parameters(result.x, order, s, scales)
    with np.errstate(invalid="ignore"):
        std_errors = np.sqrt(np.diag(result.inv_hessian) / n_diff)
    std_errors[order.sum_arma :] *= scales.for_order(order)

    model = _build_model(
        y, order, coefficients, strategy, s, std_errors, config, optimizer_result=result
    )
    _check_polynomials(coefficients)
    logger.info("Fit complete: sigma2=%.6g, AIC=%.6g", model.sigma2, model.aic)
    return model


def arima_from_coefficients(
    series: SeriesLike,
    coefficients: ArimaCoefficients,
    strategy: Union[FittingStrategy, str] = FittingStrategy.CSSML,
    seasonal_cycle: Optional[TimePeriod] = None,
    config: Optional[FitConfig] = None,
) -> ArimaModel:
    """Wrap known coefficients in a model without estimation.

    The fit summary, residuals and fitted values are evaluated at the given
    coefficients with the objective of ``strategy``. Standard errors are
    zero.

    Raises:
        ArimaConfigurationError: If the strategy is unknown, the coefficients'
            seasonal frequency disagrees with the series, or the series is
            too short for the differencing.
    """
    if not isinstance(coefficients, ArimaCoefficients):
        raise ArimaConfigurationError(
            f"coefficients must be ArimaCoefficients, got {type(coefficients).__name__}"
        )
    strategy = _coerce_strategy(strategy)
    config = config or FitConfig()
    y = as_series(series)
    order = coefficients.to_order()
    s = y.period.seasonal_frequency(seasonal_cycle or TimePeriod.one_year())
    if coefficients.is_seasonal and coefficients.seasonal_frequency != s:
        raise ArimaConfigurationError(
            f"coefficients have seasonal frequency {coefficients.seasonal_frequency} "
            f"but the series has {s} observations per seasonal cycle"
        )
    span = order.d + order.D * s
    if len(y) < span + 1:
        raise ArimaConfigurationError(
            f"Series of length {len(y)} is too short for differencing of "
            f"span {span}; at least {span + 1} observations are needed"
        )
    if coefficients.seasonal_frequency != s:
        coefficients = ArimaCoefficients.create(
            ar=coefficients.ar,
            ma=coefficients.ma,
            d=coefficients.d,
            mean=coefficients.mean,
            drift=coefficients.drift,
            seasonal_frequency=s,
        )
    return _build_model(y, order, coefficients, strategy, s, np.zeros(order.npar), config)


__all__ = [
    "ArimaModel",
    "FitConfig",
    "FittingStrategy",
    "arima_from_coefficients",
    "fit_arima",
]
