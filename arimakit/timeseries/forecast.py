"""Point forecasts and prediction intervals for fitted ARIMA models.

Forecasts run the ARMA difference equation forward on the differenced scale
and integrate through the differencing polynomial back to the scale of the
observations. Interval half-widths come from the psi-weight (MA infinity)
expansion of the combined AR and differencing operator.

References:
    - Box & Jenkins (1976): Time Series Analysis: Forecasting and Control,
      Chapter 5
    - Brockwell & Davis (2016): Introduction to Time Series and Forecasting
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
from scipy.stats import norm

from .coefficients import ArimaCoefficients
from .estimation import forecast_regression_matrix, regression_effects
from .polynomial import LagPolynomial
from .utils import seasonal_difference

if TYPE_CHECKING:
    from .models import ArimaModel


@dataclass(frozen=True)
class ArimaForecast:
    """Point forecasts with symmetric Gaussian prediction intervals.

    Attributes:
        point: Point forecasts, shape (steps,).
        lower: Lower interval bounds, shape (steps,).
        upper: Upper interval bounds, shape (steps,).
        alpha: Significance level; intervals cover 1 - alpha.
        half_widths: Interval half-widths, non-decreasing in the horizon.
    """

    point: np.ndarray
    lower: np.ndarray
    upper: np.ndarray
    alpha: float
    half_widths: np.ndarray

    def __len__(self) -> int:
        return int(self.point.size)


def _readonly(arr: np.ndarray) -> np.ndarray:
    arr = np.array(arr, dtype=float)
    arr.setflags(write=False)
    return arr


def integration_polynomial(coefficients: ArimaCoefficients) -> LagPolynomial:
    """``(1 - B)^d (1 - B^s)^D`` for the model's differencing degrees."""
    return LagPolynomial.differences(coefficients.d).times(
        LagPolynomial.seasonal_differences(
            coefficients.seasonal_frequency, coefficients.D
        )
    )


def psi_weights(coefficients: ArimaCoefficients, steps: int) -> np.ndarray:
    """First ``steps`` psi weights of the model, starting with psi_0 = 1.

    The AR side includes the differencing operator, so the weights of an
    integrated model do not decay.

    Example:
        >>> psi_weights(ArimaCoefficients.create(ar=[0.5]), 4)
        array([1.   , 0.5  , 0.25 , 0.125])
    """
    ar_poly = LagPolynomial.autoregressive(coefficients.expanded_ar)
    phi = integration_polynomial(coefficients).times(ar_poly).inverse_params()
    theta = coefficients.expanded_ma

    psi = np.zeros(steps)
    if steps == 0:
        return psi
    psi[0] = 1.0
    k = min(theta.size, steps - 1)
    psi[1 : k + 1] = theta[:k]
    for j in range(1, steps):
        for i in range(min(j, phi.size)):
            psi[j] += psi[j - i - 1] * phi[i]
    return psi


def point_forecasts(model: ArimaModel, steps: int) -> np.ndarray:
    """Point forecasts ``steps`` periods past the end of the observations."""
    coefficients = model.coefficients
    order = model.order
    observations = model.observations.values
    m = observations.size

    arma_series = observations - regression_effects(coefficients, order, m)
    differenced = seasonal_difference(
        arma_series, order.d, order.D, model.seasonal_frequency
    )
    n = differenced.size
    residuals = model.residuals
    ar = coefficients.expanded_ar
    ma = coefficients.expanded_ma
    integrate = integration_polynomial(coefficients)

    fcst = np.concatenate((arma_series, np.zeros(steps)))
    diff_fcst = np.concatenate((differenced, np.zeros(steps)))
    for t in range(steps):
        arma_part = 0.0
        for i, phi in enumerate(ar):
            if n + t - i - 1 < 0:
                break
            arma_part += phi * diff_fcst[n + t - i - 1]
        # Residuals are known only up to the end of the observations.
        for j in range(t + 1, ma.size + 1):
            if m + t - j < 0:
                break
            arma_part += ma[j - 1] * residuals[m + t - j]
        diff_fcst[n + t] = arma_part
        fcst[m + t] = integrate.solve(fcst, m + t) + arma_part

    future_effects = forecast_regression_matrix(m, steps, order) @ coefficients.regressors(order)
    return fcst[m:] + future_effects


def forecast_arima(model: ArimaModel, steps: int, alpha: float = 0.05) -> ArimaForecast:
    """Forecast a fitted model with 100 (1 - alpha)% prediction intervals.

    Args:
        model: Fitted ARIMA model.
        steps: Forecast horizon. Must be >= 1.
        alpha: Significance level in (0, 1).

    Returns:
        ArimaForecast with point forecasts and interval bounds.

    Raises:
        ValueError: If steps < 1 or alpha is not in (0, 1).
    """
    if steps < 1:
        raise ValueError(f"steps must be >= 1, got {steps}")
    if not 0.0 < alpha < 1.0:
        raise ValueError(f"alpha must be in (0, 1), got {alpha}")

    point = point_forecasts(model, steps)
    psi = psi_weights(model.coefficients, steps)
    z = norm.ppf(1.0 - alpha / 2.0)
    half_widths = z * np.sqrt(model.sigma2) * np.sqrt(np.cumsum(psi**2))
    return ArimaForecast(
        point=_readonly(point),
        lower=_readonly(point - half_widths),
        upper=_readonly(point + half_widths),
        alpha=float(alpha),
        half_widths=_readonly(half_widths),
    )


__all__ = [
    "ArimaForecast",
    "forecast_arima",
    "integration_polynomial",
    "point_forecasts",
    "psi_weights",
]
