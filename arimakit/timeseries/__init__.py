"""Seasonal ARIMA estimation and forecasting.

This module fits ARIMA(p, d, q)(P, D, Q)s models of a given order by
conditional sum of squares, unconditional sum of squares or exact maximum
likelihood (Kalman filter), and forecasts them with Gaussian prediction
intervals.

Example:
    >>> import numpy as np
    >>> from arimakit.timeseries import ArimaOrder, fit_arima
    >>>
    >>> np.random.seed(0)
    >>> n = 200
    >>> eps = np.random.normal(size=n)
    >>> x = np.zeros(n)
    >>> for t in range(1, n):
    ...     x[t] = 0.5 * x[t-1] + eps[t]
    >>>
    >>> model = fit_arima(x, ArimaOrder.create(1, 0, 0), strategy="cssml")
    >>> fc = model.forecast(steps=10, alpha=0.05)
    >>> print(f"Estimated phi: {model.coefficients.ar[0]:.3f}")
    >>> print(f"AIC: {model.aic:.2f}")

References:
    - Box & Jenkins (1976): Time Series Analysis: Forecasting and Control
    - Hamilton (1994): Time Series Analysis
    - Durbin & Koopman (2012): Time Series Analysis by State Space Methods
"""

from __future__ import annotations

from .batch import fit_arima_batch
from .coefficients import (
    ArimaCoefficients,
    expand_ar_coefficients,
    expand_ma_coefficients,
    intercept_to_mean,
    mean_to_intercept,
)
from .estimation import (
    POOR_OBJECTIVE,
    ArimaObjective,
    FittingStrategy,
    ModelInformation,
    ParameterScales,
    fit_css,
    fit_ml,
    fit_uss,
    pack_parameters,
    unpack_parameters,
)
from .forecast import ArimaForecast, forecast_arima, psi_weights
from .kalman import KalmanOutput, kalman_filter
from .models import ArimaModel, FitConfig, arima_from_coefficients, fit_arima
from .order import ArimaConfigurationError, ArimaOrder
from .polynomial import LagPolynomial, is_invertible, is_stationary, polynomial_roots
from .series import TimePeriod, TimeSeries, TimeUnit, as_series
from .simulation import ArimaProcess, simulate_arima
from .statespace import (
    ArimaStateSpace,
    arima_state_space,
    differencing_delta,
    initial_state_covariance,
    unpack_covariance,
)
from .utils import difference, ols, seasonal_difference

__all__ = [
    # Models
    "ArimaModel",
    "FitConfig",
    "FittingStrategy",
    "fit_arima",
    "arima_from_coefficients",
    "fit_arima_batch",
    # Order and coefficients
    "ArimaConfigurationError",
    "ArimaOrder",
    "ArimaCoefficients",
    "expand_ar_coefficients",
    "expand_ma_coefficients",
    "intercept_to_mean",
    "mean_to_intercept",
    # Estimation
    "POOR_OBJECTIVE",
    "ArimaObjective",
    "ModelInformation",
    "ParameterScales",
    "fit_css",
    "fit_uss",
    "fit_ml",
    "pack_parameters",
    "unpack_parameters",
    # State space and Kalman filtering
    "ArimaStateSpace",
    "arima_state_space",
    "differencing_delta",
    "initial_state_covariance",
    "unpack_covariance",
    "KalmanOutput",
    "kalman_filter",
    # Forecasting and simulation
    "ArimaForecast",
    "forecast_arima",
    "psi_weights",
    "ArimaProcess",
    "simulate_arima",
    # Series and utilities
    "TimePeriod",
    "TimeSeries",
    "TimeUnit",
    "as_series",
    "LagPolynomial",
    "is_invertible",
    "is_stationary",
    "polynomial_roots",
    "difference",
    "seasonal_difference",
    "ols",
]
