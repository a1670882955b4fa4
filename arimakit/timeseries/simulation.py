"""Simulation of seasonal ARIMA processes.

Example:
    >>> from arimakit.timeseries.coefficients import ArimaCoefficients
    >>> coeffs = ArimaCoefficients.create(ar=[0.5], mean=10.0)
    >>> y = simulate_arima(coeffs, 100, seed=1)
    >>> len(y)
    100
"""

from __future__ import annotations

from collections import deque
from typing import Optional

import numpy as np

from .coefficients import ArimaCoefficients
from .forecast import integration_polynomial
from .polynomial import LagPolynomial
from .series import TimePeriod, TimeSeries


class ArimaProcess:
    """Infinite iterator over draws from an ARIMA process.

    Each value is built on the differenced scale from a fresh Gaussian
    innovation, the AR recursion over past differenced values and the MA
    recursion over past innovations, and then integrated through the
    differencing polynomial. The process starts from zero history.

    Args:
        coefficients: Model coefficients.
        sigma: Innovation standard deviation. Must be >= 0.
        seed: Seed for ``np.random.RandomState``.

    Raises:
        ValueError: If sigma is negative or not finite.
    """

    def __init__(
        self,
        coefficients: ArimaCoefficients,
        sigma: float = 1.0,
        seed: Optional[int] = None,
    ) -> None:
        if not (np.isfinite(sigma) and sigma >= 0):
            raise ValueError(f"sigma must be >= 0 and finite, got {sigma}")
        self.coefficients = coefficients
        self.sigma = float(sigma)
        self._rng = np.random.RandomState(seed)
        self._ar_poly = LagPolynomial.autoregressive(coefficients.expanded_ar)
        self._ma = coefficients.expanded_ma
        self._integrate = integration_polynomial(coefficients)
        span = self._integrate.degree
        self._level = coefficients.intercept if span == 0 else coefficients.drift
        self._differenced = deque(maxlen=max(self._ar_poly.degree, 1))
        self._series = deque(maxlen=max(span, 1))
        self._errors = deque(maxlen=max(self._ma.size, 1))

    def __iter__(self) -> ArimaProcess:
        return self

    def __next__(self) -> float:
        error = self._rng.normal(scale=self.sigma)
        value = error + self._level

        history = np.array(self._differenced)
        value += self._ar_poly.solve(history, history.size)
        errors = np.array(self._errors)[::-1]
        k = min(errors.size, self._ma.size)
        value += float(np.dot(self._ma[:k], errors[:k]))
        self._differenced.append(value)

        if self._integrate.degree > 0:
            series = np.array(self._series)
            value += self._integrate.solve(series, series.size)
        self._series.append(value)
        self._errors.append(error)
        return float(value)

    def next_values(self, n: int) -> np.ndarray:
        """Draw the next ``n`` values."""
        if n < 0:
            raise ValueError(f"n must be >= 0, got {n}")
        return np.array([next(self) for _ in range(n)])


def simulate_arima(
    coefficients: ArimaCoefficients,
    n: int,
    burn: Optional[int] = None,
    sigma: float = 1.0,
    seed: Optional[int] = None,
    period: Optional[TimePeriod] = None,
) -> TimeSeries:
    """Simulate ``n`` observations of an ARIMA process.

    Args:
        coefficients: Model coefficients.
        n: Number of observations to return. Must be >= 1.
        burn: Number of initial draws to discard (default n // 2).
        sigma: Innovation standard deviation.
        seed: Random seed for reproducibility.
        period: Period of the returned series (default one year).

    Returns:
        TimeSeries of length n.

    Raises:
        ValueError: If n < 1 or burn < 0.
    """
    if n < 1:
        raise ValueError(f"n must be >= 1, got {n}")
    if burn is None:
        burn = n // 2
    if burn < 0:
        raise ValueError(f"burn must be >= 0, got {burn}")

    process = ArimaProcess(coefficients, sigma=sigma, seed=seed)
    values = process.next_values(n + burn)[burn:]
    return TimeSeries(values, period or TimePeriod.one_year())


__all__ = ["ArimaProcess", "simulate_arima"]
