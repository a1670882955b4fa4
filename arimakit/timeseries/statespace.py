"""State-space form of an ARIMA process.

The ARMA part is written in the Harvey form with state dimension
``r = max(p, q + 1)``. Differencing adds ``d`` further states that carry
past observations, so the filter can run on the undifferenced series.

The stationary covariance of the ARMA block follows Gardner, Harvey &
Phillips (1980), Algorithm AS 154, which solves ``P = T P T' + R R'`` in
packed form through a sequence of Givens rotations.

References:
    - Gardner, Harvey & Phillips (1980): Algorithm AS 154
    - Durbin & Koopman (2012): Time Series Analysis by State Space Methods
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from .polynomial import LagPolynomial


def _readonly(arr: np.ndarray) -> np.ndarray:
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True)
class ArimaStateSpace:
    """Transition, disturbance and observation arrays of an ARIMA model.

    State-space model:
        a_{t+1} = T a_t + R e_t
        y_t     = Z a_t

    Attributes:
        T: Transition matrix, shape (r + d, r + d).
        R: Disturbance vector, shape (r + d,).
        Z: Observation vector, shape (r + d,).
        r: Dimension of the ARMA block.
        d: Number of differencing states.
        phi: Expanded AR coefficients.
        theta: Expanded MA coefficients.
    """

    T: np.ndarray
    R: np.ndarray
    Z: np.ndarray
    r: int
    d: int
    phi: np.ndarray
    theta: np.ndarray

    @property
    def dim(self) -> int:
        return self.r + self.d


def differencing_delta(d: int, D: int, seasonal_frequency: int) -> np.ndarray:
    """Coefficients ``delta`` with ``y_t = sum(delta_i y_{t-i}) + w_t``.

    These are the negated non-leading coefficients of
    ``(1 - B)^d (1 - B^s)^D``.

    Example:
        >>> differencing_delta(1, 0, 1)
        array([1.])
        >>> differencing_delta(1, 1, 4)
        array([ 1.,  0.,  0.,  1., -1.])
    """
    poly = LagPolynomial.differences(d).times(
        LagPolynomial.seasonal_differences(seasonal_frequency, D)
    )
    return 0.0 - poly.parameters


def arima_state_space(
    phi: Sequence[float], theta: Sequence[float], delta: Sequence[float] = ()
) -> ArimaStateSpace:
    """Build the state-space arrays for expanded coefficients.

    Args:
        phi: Expanded AR coefficients, shape (p,).
        theta: Expanded MA coefficients, shape (q,).
        delta: Differencing coefficients from :func:`differencing_delta`.

    Returns:
        ArimaStateSpace with read-only arrays.

    Example:
        >>> ss = arima_state_space([0.5], [0.3])
        >>> ss.T
        array([[0.5, 1. ],
               [0. , 0. ]])
        >>> ss.R
        array([1. , 0.3])
    """
    phi = np.array(phi, dtype=float).ravel()
    theta = np.array(theta, dtype=float).ravel()
    delta = np.array(delta, dtype=float).ravel()
    p, q, d = phi.size, theta.size, delta.size
    r = max(p, q + 1)
    dim = r + d

    T = np.zeros((dim, dim))
    T[:p, 0] = phi
    for i in range(1, r):
        T[i - 1, i] = 1.0
    if d > 0:
        T[r, 0] = 1.0
        T[r, r:] = delta
        for i in range(d - 1):
            T[r + i + 1, r + i] = 1.0

    R = np.zeros(dim)
    R[0] = 1.0
    R[1 : q + 1] = theta

    Z = np.zeros(dim)
    Z[0] = 1.0
    Z[r:] = delta

    return ArimaStateSpace(
        T=_readonly(T),
        R=_readonly(R),
        Z=_readonly(Z),
        r=r,
        d=d,
        phi=_readonly(phi),
        theta=_readonly(theta),
    )


def initial_state_covariance(
    phi: Sequence[float], theta: Sequence[float]
) -> np.ndarray:
    """Stationary covariance of the ARMA state vector (AS 154).

    Args:
        phi: Expanded AR coefficients, shape (p,).
        theta: Expanded MA coefficients, shape (q,).

    Returns:
        Packed upper triangle (row-major) of the r x r covariance in units of
        the innovation variance, shape (r (r + 1) / 2,). Use
        :func:`unpack_covariance` for the full matrix.

    Example:
        >>> unpack_covariance(initial_state_covariance([], [0.5]))
        array([[1.25, 0.5 ],
               [0.5 , 0.25]])
    """
    phi = np.asarray(phi, dtype=float).ravel()
    theta = np.asarray(theta, dtype=float).ravel()
    p, q = phi.size, theta.size
    if p == 0 and q == 0:
        return np.array([1.0])

    r = max(p, q + 1)
    n_packed = r * (r + 1) // 2
    n_rbar = n_packed * (n_packed - 1) // 2

    # Packed R R'
    V = np.zeros(n_packed)
    V[0] = 1.0
    for i in range(1, r):
        V[i] = theta[i - 1] if i <= q else 0.0
    ind = r
    for j in range(1, r):
        vj = V[j]
        for i in range(j, r):
            V[ind] = V[i] * vj
            ind += 1

    P = np.zeros(n_packed)
    if p == 0:
        # Pure MA: P = sum_k T^k V T'^k, a running sum along the diagonals.
        indn = n_packed
        ind = n_packed
        for i in range(r):
            for j in range(i + 1):
                ind -= 1
                P[ind] = V[ind]
                if j != 0:
                    indn -= 1
                    P[ind] += P[indn]
        return P

    rbar = np.zeros(n_rbar)
    thetab = np.zeros(n_packed)
    xnext = np.zeros(n_packed)
    xrow = np.zeros(n_packed)

    ind = 0
    ind1 = -1
    npr = n_packed - r
    npr1 = npr + 1
    indj = npr
    ind2 = npr - 1
    for j in range(r):
        phij = phi[j] if j < p else 0.0
        xnext[indj] = 0.0
        indj += 1
        indi = npr1 + j
        for i in range(j, r):
            ynext = V[ind]
            ind += 1
            phii = phi[i] if i < p else 0.0
            if j != r - 1:
                xnext[indj] = -phii
                if i != r - 1:
                    xnext[indi] -= phij
                    ind1 += 1
                    xnext[ind1] = -1.0
            xnext[npr] = -phii * phij
            ind2 += 1
            if ind2 >= n_packed:
                ind2 = 0
            xnext[ind2] += 1.0
            _inclu2(n_packed, xnext, xrow, ynext, P, rbar, thetab)
            xnext[ind2] = 0.0
            if i != r - 1:
                xnext[indi] = 0.0
                indi += 1
                xnext[ind1] = 0.0

    _regres(n_packed, n_rbar, rbar, thetab, P)

    # Reorder: the solution comes back with the first row last.
    ind = npr
    for i in range(r):
        xnext[i] = P[ind]
        ind += 1
    ind = n_packed - 1
    ind1 = npr - 1
    for _ in range(npr):
        P[ind] = P[ind1]
        ind -= 1
        ind1 -= 1
    P[:r] = xnext[:r]
    return P


def _inclu2(
    n_packed: int,
    xnext: np.ndarray,
    xrow: np.ndarray,
    ynext: float,
    d: np.ndarray,
    rbar: np.ndarray,
    thetab: np.ndarray,
) -> None:
    """Givens update of the triangular system with one new row (in place)."""
    xrow[:] = xnext
    ithisr = 0
    y = ynext
    weight = 1.0
    for i in range(n_packed):
        if xrow[i] != 0.0:
            xi = xrow[i]
            di = d[i]
            dpi = di + weight * xi * xi
            d[i] = dpi
            cbar = di / dpi
            sbar = weight * xi / dpi
            weight = cbar * weight
            for k in range(i + 1, n_packed):
                xk = xrow[k]
                rbthis = rbar[ithisr]
                xrow[k] = xk - xi * rbthis
                rbar[ithisr] = cbar * rbthis + sbar * xk
                ithisr += 1
            xk = y
            y = xk - xi * thetab[i]
            thetab[i] = cbar * thetab[i] + sbar * xk
            if di == 0.0:
                return
        else:
            ithisr += n_packed - i - 1


def _regres(
    n_packed: int,
    n_rbar: int,
    rbar: np.ndarray,
    thetab: np.ndarray,
    beta: np.ndarray,
) -> None:
    """Back-substitution through the unit upper triangle ``rbar`` (in place)."""
    ithisr = n_rbar - 1
    im = n_packed - 1
    for i in range(n_packed):
        bi = thetab[im]
        if im != n_packed - 1:
            jm = n_packed - 1
            for _ in range(i):
                bi -= rbar[ithisr] * beta[jm]
                ithisr -= 1
                jm -= 1
        beta[im] = bi
        im -= 1


def unpack_covariance(packed: Sequence[float]) -> np.ndarray:
    """Expand a packed upper triangle into the full symmetric matrix.

    Raises:
        ValueError: If the length is not a triangular number.
    """
    packed = np.asarray(packed, dtype=float).ravel()
    r = int(round((np.sqrt(8 * packed.size + 1) - 1) / 2))
    if r * (r + 1) // 2 != packed.size:
        raise ValueError(
            f"packed length {packed.size} is not a triangular number"
        )
    out = np.zeros((r, r))
    ind = 0
    for i in range(r):
        out[i, i:] = packed[ind : ind + r - i]
        ind += r - i
    return out + np.triu(out, 1).T


__all__ = [
    "ArimaStateSpace",
    "arima_state_space",
    "differencing_delta",
    "initial_state_covariance",
    "unpack_covariance",
]
