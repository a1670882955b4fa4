"""Lag polynomials and polynomial roots.

A lag polynomial is ``1 + c_1 B + c_2 B^2 + ...`` in the backshift operator
``B``. Differencing, autoregressive and moving-average operators are all
represented this way, and their products give the combined operators used
by the forecaster and the simulator.

Example:
    >>> LagPolynomial.differences(2).parameters
    array([-2.,  1.])
    >>> LagPolynomial.seasonal_differences(4, 1).parameters
    array([ 0.,  0.,  0., -1.])
"""

from __future__ import annotations

from typing import Sequence

import numpy as np


class LagPolynomial:
    """Polynomial in the backshift operator with a unit leading coefficient.

    Args:
        parameters: Coefficients of ``B, B^2, ...``.
    """

    def __init__(self, parameters: Sequence[float] = ()) -> None:
        params = np.array(parameters, dtype=float).ravel()
        params.setflags(write=False)
        self._parameters = params

    @property
    def parameters(self) -> np.ndarray:
        return self._parameters

    @property
    def coefficients(self) -> np.ndarray:
        """Full coefficient vector ``[1, c_1, c_2, ...]``."""
        return np.concatenate(([1.0], self._parameters))

    @property
    def degree(self) -> int:
        return int(self._parameters.size)

    def inverse_params(self) -> np.ndarray:
        return -self._parameters

    def times(self, other: LagPolynomial) -> LagPolynomial:
        """Product of two lag polynomials."""
        product = np.convolve(self.coefficients, other.coefficients)
        return LagPolynomial(product[1:])

    def solve(self, x: np.ndarray, index: int) -> float:
        """Value implied for ``x[index]`` by setting the polynomial to zero.

        Computes ``-sum(c_i * x[index - i])`` for i >= 1. History before the
        start of ``x`` is treated as zero.
        """
        value = 0.0
        for i, c in enumerate(self._parameters):
            j = index - i - 1
            if j < 0:
                break
            value -= c * x[j]
        return value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LagPolynomial):
            return NotImplemented
        return np.array_equal(self._parameters, other._parameters)

    def __repr__(self) -> str:
        return f"LagPolynomial({self._parameters.tolist()})"

    @classmethod
    def differences(cls, d: int) -> LagPolynomial:
        """``(1 - B)^d``."""
        return cls.seasonal_differences(1, d)

    @classmethod
    def seasonal_differences(cls, lag: int, D: int) -> LagPolynomial:
        """``(1 - B^lag)^D``."""
        if D < 0:
            raise ValueError(f"degree of differencing must be >= 0, got {D}")
        if lag < 1:
            raise ValueError(f"lag must be >= 1, got {lag}")
        single = np.zeros(lag)
        single[-1] = -1.0
        poly = cls()
        for _ in range(D):
            poly = poly.times(cls(single))
        return poly

    @classmethod
    def autoregressive(cls, phi: Sequence[float]) -> LagPolynomial:
        """``1 - phi_1 B - ... - phi_p B^p``."""
        return cls(-np.asarray(phi, dtype=float))

    @classmethod
    def moving_average(cls, theta: Sequence[float]) -> LagPolynomial:
        """``1 + theta_1 B + ... + theta_q B^q``."""
        return cls(theta)


def polynomial_roots(coefficients: Sequence[float]) -> np.ndarray:
    """Complex roots of ``c_0 + c_1 z + ... + c_n z^n``.

    Trailing zero coefficients are dropped first, so the result has one root
    per non-vanishing power.
    """
    coeffs = np.trim_zeros(np.asarray(coefficients, dtype=float), trim="b")
    if coeffs.size <= 1:
        return np.zeros(0, dtype=complex)
    return np.roots(coeffs[::-1]).astype(complex)


def _roots_outside_unit_circle(coefficients: np.ndarray) -> bool:
    roots = polynomial_roots(coefficients)
    return bool(np.all(np.abs(roots) > 1.0))


def is_stationary(ar: Sequence[float]) -> bool:
    """True if all roots of ``1 - sum(ar_i z^i)`` lie outside the unit circle."""
    ar = np.asarray(ar, dtype=float)
    if ar.size == 0:
        return True
    return _roots_outside_unit_circle(np.concatenate(([1.0], -ar)))


def is_invertible(ma: Sequence[float]) -> bool:
    """True if all roots of ``1 + sum(ma_i z^i)`` lie outside the unit circle."""
    ma = np.asarray(ma, dtype=float)
    if ma.size == 0:
        return True
    return _roots_outside_unit_circle(np.concatenate(([1.0], ma)))


__all__ = ["LagPolynomial", "is_invertible", "is_stationary", "polynomial_roots"]
