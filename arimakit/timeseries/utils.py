"""Utility functions for time-series analysis.

Differencing at arbitrary lags and the small least-squares regression used to
warm-start the mean and drift of an ARIMA fit.

References:
    - Box & Jenkins (1976): Time Series Analysis: Forecasting and Control
    - Hamilton (1994): Time Series Analysis
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ..optimize.utils import safe_solve


def difference(x: np.ndarray, lag: int = 1, times: int = 1) -> np.ndarray:
    """Apply lag differencing to a time series.

    Applies ``times`` rounds of Δ_lag x_t = x_t - x_{t-lag}.

    Args:
        x: 1D array of time series values, shape (n,).
        lag: Differencing lag. Must be >= 1.
        times: Number of rounds. Must be >= 0.

    Returns:
        Differenced series of length ``n - lag * times`` (empty when the
        series is too short).

    Raises:
        ValueError: If lag < 1, times < 0, or input is not 1D.

    Example:
        >>> x = np.array([1.0, 2.0, 4.0, 7.0, 11.0])
        >>> difference(x)
        array([1., 2., 3., 4.])
        >>> difference(x, lag=1, times=2)
        array([1., 1., 1.])
    """
    x = np.asarray(x, dtype=float)
    if x.ndim != 1:
        raise ValueError(f"x must be 1D array, got shape {x.shape}")
    if lag < 1:
        raise ValueError(f"lag must be >= 1, got {lag}")
    if times < 0:
        raise ValueError(f"times must be >= 0, got {times}")

    result = x.copy()
    for _ in range(times):
        if len(result) <= lag:
            return np.array([])
        result = result[lag:] - result[:-lag]
    return result


def seasonal_difference(
    x: np.ndarray, d: int, D: int, seasonal_frequency: int
) -> np.ndarray:
    """Apply ``d`` lag-1 differences followed by ``D`` seasonal differences."""
    return difference(difference(x, lag=1, times=d), lag=seasonal_frequency, times=D)


def difference_columns(
    X: np.ndarray, d: int, D: int, seasonal_frequency: int
) -> np.ndarray:
    """Apply ``d`` lag-1 and ``D`` seasonal differences to every column of X."""
    X = np.asarray(X, dtype=float)
    if X.ndim != 2:
        raise ValueError(f"X must be 2D array, got shape {X.shape}")
    n_rows = max(X.shape[0] - d - D * seasonal_frequency, 0)
    out = np.zeros((n_rows, X.shape[1]))
    for j in range(X.shape[1]):
        out[:, j] = seasonal_difference(X[:, j], d, D, seasonal_frequency)
    return out


@dataclass(frozen=True)
class RegressionResult:
    """Ordinary least-squares fit of ``y`` on the columns of ``X``.

    Attributes:
        beta: Coefficients, shape (k,).
        stderr: Standard errors of the coefficients, shape (k,).
        residuals: y - X beta, shape (n,).
        sigma2: Residual variance with divisor max(n - k, 1).
    """

    beta: np.ndarray
    stderr: np.ndarray
    residuals: np.ndarray
    sigma2: float


def ols(y: np.ndarray, X: np.ndarray) -> RegressionResult:
    """Least-squares regression without an implicit intercept.

    Solves the normal equations (X'X) β = X'y with a tiny ridge for
    numerical stability, as in textbook OLS for AR models.

    Args:
        y: Response, shape (n,).
        X: Design matrix, shape (n, k). k may be 0.

    Returns:
        RegressionResult with coefficients and standard errors.

    Raises:
        ValueError: If shapes are inconsistent.

    Example:
        >>> t = np.arange(1.0, 11.0)
        >>> res = ols(2.0 + 0.5 * t, np.column_stack([np.ones(10), t]))
        >>> np.allclose(res.beta, [2.0, 0.5])
        True
    """
    y = np.asarray(y, dtype=float)
    X = np.asarray(X, dtype=float)
    if y.ndim != 1:
        raise ValueError(f"y must be 1D array, got shape {y.shape}")
    if X.ndim != 2 or X.shape[0] != y.size:
        raise ValueError(
            f"X must have shape ({y.size}, k), got {X.shape}"
        )

    n, k = X.shape
    if k == 0:
        return RegressionResult(
            beta=np.zeros(0),
            stderr=np.zeros(0),
            residuals=y.copy(),
            sigma2=float(np.sum(y**2) / max(n, 1)),
        )

    XtX = X.T @ X + 1e-12 * np.eye(k)
    beta = safe_solve(XtX, X.T @ y)
    residuals = y - X @ beta
    sigma2 = float(np.sum(residuals**2) / max(n - k, 1))

    try:
        cov_beta = sigma2 * np.linalg.inv(XtX)
        stderr = np.sqrt(np.clip(np.diag(cov_beta), 0.0, None))
    except np.linalg.LinAlgError:
        stderr = np.full(k, np.nan)

    return RegressionResult(beta=beta, stderr=stderr, residuals=residuals, sigma2=sigma2)


__all__ = [
    "RegressionResult",
    "difference",
    "difference_columns",
    "ols",
    "seasonal_difference",
]
