"""ARIMA coefficients and seasonal coefficient expansion.

A seasonal ARIMA model multiplies its non-seasonal and seasonal AR (and MA)
polynomials. The expansion helpers flatten that product into a single
non-seasonal coefficient vector, which is what the Kalman filter, the CSS
recursion and the forecaster operate on.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .order import ArimaConfigurationError, ArimaOrder
from .polynomial import is_invertible, is_stationary

EPSILON = float(np.finfo(float).eps)


def _frozen(values: Sequence[float], name: str) -> np.ndarray:
    arr = np.array(values, dtype=float).ravel()
    if not np.all(np.isfinite(arr)):
        raise ArimaConfigurationError(f"{name} coefficients must be finite, got {arr}")
    arr.setflags(write=False)
    return arr


def expand_ar_coefficients(
    ar: Sequence[float], sar: Sequence[float], seasonal_frequency: int
) -> np.ndarray:
    """Flatten ``(1 - sum ar_j B^j)(1 - sum sar_i B^{s i})`` into AR form.

    The result has length ``p + P * s``. With no seasonal terms it equals
    ``ar``; the cross terms carry the sign ``-sar_i * ar_j``.

    Example:
        >>> expand_ar_coefficients([0.5], [0.3], 4)
        array([ 0.5 ,  0.  ,  0.  ,  0.3 , -0.15])
    """
    ar = np.asarray(ar, dtype=float)
    sar = np.asarray(sar, dtype=float)
    s = int(seasonal_frequency)
    expanded = np.zeros(ar.size + sar.size * s)
    expanded[: ar.size] = ar
    for i, seasonal in enumerate(sar):
        expanded[(i + 1) * s - 1] += seasonal
        for j, value in enumerate(ar):
            expanded[(i + 1) * s + j] += -seasonal * value
    return expanded


def expand_ma_coefficients(
    ma: Sequence[float], sma: Sequence[float], seasonal_frequency: int
) -> np.ndarray:
    """Flatten ``(1 + sum ma_j B^j)(1 + sum sma_i B^{s i})`` into MA form.

    Same layout as :func:`expand_ar_coefficients`, but the cross terms keep a
    positive sign.
    """
    ma = np.asarray(ma, dtype=float)
    sma = np.asarray(sma, dtype=float)
    s = int(seasonal_frequency)
    expanded = np.zeros(ma.size + sma.size * s)
    expanded[: ma.size] = ma
    for i, seasonal in enumerate(sma):
        expanded[(i + 1) * s - 1] += seasonal
        for j, value in enumerate(ma):
            expanded[(i + 1) * s + j] += seasonal * value
    return expanded


def mean_to_intercept(expanded_ar: Sequence[float], mean: float) -> float:
    return float(mean * (1.0 - np.sum(expanded_ar)))


def intercept_to_mean(expanded_ar: Sequence[float], intercept: float) -> float:
    return float(intercept / (1.0 - np.sum(expanded_ar)))


@dataclass(frozen=True)
class ArimaCoefficients:
    """Immutable coefficient set of a seasonal ARIMA model.

    Use :meth:`create` to build one; it validates the arrays and the
    mean/drift constraints under differencing.

    Attributes:
        ar: Non-seasonal AR coefficients, shape (p,).
        ma: Non-seasonal MA coefficients, shape (q,).
        sar: Seasonal AR coefficients, shape (P,).
        sma: Seasonal MA coefficients, shape (Q,).
        d: Non-seasonal differencing degree.
        D: Seasonal differencing degree.
        seasonal_frequency: Observations per seasonal cycle.
        mean: Process mean (zero unless d + D == 0).
        drift: Linear drift per period (zero unless d + D <= 1).
    """

    ar: np.ndarray
    ma: np.ndarray
    sar: np.ndarray
    sma: np.ndarray
    d: int = 0
    D: int = 0
    seasonal_frequency: int = 1
    mean: float = 0.0
    drift: float = 0.0

    def __post_init__(self) -> None:
        """Validate ArimaCoefficients invariants."""
        for name in ("ar", "ma", "sar", "sma"):
            object.__setattr__(self, name, _frozen(getattr(self, name), name))
        if self.d < 0 or self.D < 0:
            raise ArimaConfigurationError(
                f"differencing degrees must be >= 0, got d={self.d}, D={self.D}"
            )
        if self.seasonal_frequency < 1:
            raise ArimaConfigurationError(
                f"seasonal_frequency must be >= 1, got {self.seasonal_frequency}"
            )
        if not (np.isfinite(self.mean) and np.isfinite(self.drift)):
            raise ArimaConfigurationError("mean and drift must be finite")
        differencing = self.d + self.D
        if differencing > 0 and abs(self.mean) > EPSILON:
            raise ArimaConfigurationError(
                f"A non-zero mean ({self.mean}) is not allowed when the degree "
                f"of differencing d + D = {differencing} is greater than 0"
            )
        if differencing > 1 and abs(self.drift) > EPSILON:
            raise ArimaConfigurationError(
                f"A non-zero drift ({self.drift}) is not allowed when the degree "
                f"of differencing d + D = {differencing} is greater than 1"
            )

    @classmethod
    def create(
        cls,
        ar: Sequence[float] = (),
        ma: Sequence[float] = (),
        sar: Sequence[float] = (),
        sma: Sequence[float] = (),
        d: int = 0,
        D: int = 0,
        seasonal_frequency: int = 1,
        mean: float = 0.0,
        drift: float = 0.0,
    ) -> ArimaCoefficients:
        """Validated constructor with empty defaults for every array.

        Raises:
            ArimaConfigurationError: On non-finite values, negative degrees or
                a mean/drift that the differencing degree rules out.

        Example:
            >>> coeffs = ArimaCoefficients.create(ar=[0.5], mean=2.0)
            >>> coeffs.intercept
            1.0
        """
        return cls(
            ar=ar,
            ma=ma,
            sar=sar,
            sma=sma,
            d=int(d),
            D=int(D),
            seasonal_frequency=int(seasonal_frequency),
            mean=float(mean),
            drift=float(drift),
        )

    @property
    def expanded_ar(self) -> np.ndarray:
        return expand_ar_coefficients(self.ar, self.sar, self.seasonal_frequency)

    @property
    def expanded_ma(self) -> np.ndarray:
        return expand_ma_coefficients(self.ma, self.sma, self.seasonal_frequency)

    @property
    def intercept(self) -> float:
        return mean_to_intercept(self.expanded_ar, self.mean)

    @property
    def is_seasonal(self) -> bool:
        return self.D > 0 or self.sar.size > 0 or self.sma.size > 0

    def arma_coefficients(self) -> np.ndarray:
        """All ARMA coefficients ordered ar, ma, sar, sma."""
        return np.concatenate((self.ar, self.ma, self.sar, self.sma))

    def to_order(self) -> ArimaOrder:
        """Order implied by these coefficients.

        The constant (drift) is included when the mean (drift) is non-zero.
        """
        return ArimaOrder(
            p=self.ar.size,
            d=self.d,
            q=self.ma.size,
            P=self.sar.size,
            D=self.D,
            Q=self.sma.size,
            constant=abs(self.mean) > EPSILON,
            drift=abs(self.drift) > EPSILON,
        )

    def regressors(self, order: ArimaOrder) -> np.ndarray:
        """Regression parameters ``[mean?, drift?]`` as selected by ``order``."""
        values = []
        if order.constant:
            values.append(self.mean)
        if order.drift:
            values.append(self.drift)
        return np.array(values, dtype=float)

    def is_stationary(self) -> bool:
        return is_stationary(self.expanded_ar)

    def is_invertible(self) -> bool:
        return is_invertible(self.expanded_ma)


__all__ = [
    "ArimaCoefficients",
    "expand_ar_coefficients",
    "expand_ma_coefficients",
    "intercept_to_mean",
    "mean_to_intercept",
]
