"""Kalman filter for the exact Gaussian likelihood of an ARIMA model.

The filter runs the prediction-error decomposition over the undifferenced
series. The ARMA block starts at its stationary covariance (AS 154) and the
differencing states start with a large diffuse variance. Innovations whose
variance is still dominated by the diffuse prior are left out of the
likelihood sums, which amounts to conditioning on the first ``d``
observations.

References:
    - Durbin & Koopman (2012): Time Series Analysis by State Space Methods
    - Harvey (1989): Forecasting, Structural Time Series Models and the
      Kalman Filter
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .statespace import ArimaStateSpace, initial_state_covariance, unpack_covariance

#: Innovation variances at or above this are treated as diffuse.
STABILITY_THRESHOLD = 1e4

#: Prior variance of each differencing state.
DIFFUSE_VARIANCE = 1e6


@dataclass(frozen=True)
class KalmanOutput:
    """Result of one Kalman filter pass.

    Attributes:
        n: Number of innovations included in the likelihood.
        ssq: Sum of squared standardized innovations e_t^2 / f_t.
        sumlog: Sum of log innovation variances log f_t.
        sigma2: Concentrated innovation variance ssq / n.
        log_likelihood: Concentrated Gaussian log-likelihood.
        residuals: Standardized innovations e_t / sqrt(f_t), shape (N,). Steps
            with a non-positive variance f_t keep the raw innovation e_t and
            are left out of the sums.
    """

    n: int
    ssq: float
    sumlog: float
    sigma2: float
    log_likelihood: float
    residuals: np.ndarray


def initial_covariance(
    ss: ArimaStateSpace, diffuse_variance: float = DIFFUSE_VARIANCE
) -> np.ndarray:
    """Block-diagonal prior covariance of the full state vector."""
    P0 = np.zeros((ss.dim, ss.dim))
    P0[: ss.r, : ss.r] = unpack_covariance(initial_state_covariance(ss.phi, ss.theta))
    if ss.d > 0:
        P0[ss.r :, ss.r :] = diffuse_variance * np.eye(ss.d)
    return P0


def kalman_filter(
    ss: ArimaStateSpace,
    y: np.ndarray,
    stability_threshold: float = STABILITY_THRESHOLD,
    diffuse_variance: float = DIFFUSE_VARIANCE,
) -> KalmanOutput:
    """Run the Kalman filter and accumulate the likelihood terms.

    Args:
        ss: State-space form of the model.
        y: Observations with regression effects removed, shape (N,).
        stability_threshold: Innovation variances at or above this value are
            excluded from the likelihood sums.
        diffuse_variance: Prior variance of the differencing states.

    Returns:
        KalmanOutput with the sums, sigma2, log-likelihood and residuals.
        Never raises for non-convergence; a degenerate pass yields a
        non-finite sigma2 that callers map to a poor objective.

    Raises:
        ValueError: If y is not 1D.

    Example:
        >>> from arimakit.timeseries.statespace import arima_state_space
        >>> out = kalman_filter(arima_state_space([], []), np.array([1.0, -1.0]))
        >>> out.n, out.sigma2
        (2, 1.0)
    """
    y = np.asarray(y, dtype=float)
    if y.ndim != 1:
        raise ValueError(f"y must be 1D array, got shape {y.shape}")

    T, R, Z = ss.T, ss.R, ss.Z
    RR = np.outer(R, R)

    state = np.zeros(ss.dim)
    P = initial_covariance(ss, diffuse_variance)
    residuals = np.zeros(y.size)

    n = 0
    ssq = 0.0
    sumlog = 0.0
    for t in range(y.size):
        if t > 0:
            # Predict
            state = T @ state
            P = T @ P @ T.T + RR

        # Correct
        ZP = Z @ P
        f = ZP @ Z
        e = y[t] - Z @ state
        if not f > 0:
            # Non-positive variance: no usable innovation at this step.
            residuals[t] = e
            continue
        if f < stability_threshold:
            n += 1
            ssq += e * e / f
            sumlog += np.log(f)
        K = ZP / f
        state = state + K * e
        P = P - np.outer(K, ZP)
        P = 0.5 * (P + P.T)
        residuals[t] = e / np.sqrt(f)

    sigma2 = ssq / n if n > 0 else np.nan
    with np.errstate(divide="ignore", invalid="ignore"):
        log_likelihood = -0.5 * n * (np.log(2 * np.pi * sigma2) + 1) - 0.5 * sumlog
    residuals.setflags(write=False)
    return KalmanOutput(
        n=n,
        ssq=float(ssq),
        sumlog=float(sumlog),
        sigma2=float(sigma2),
        log_likelihood=float(log_likelihood),
        residuals=residuals,
    )


__all__ = [
    "DIFFUSE_VARIANCE",
    "STABILITY_THRESHOLD",
    "KalmanOutput",
    "initial_covariance",
    "kalman_filter",
]
