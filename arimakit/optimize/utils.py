"""Finite-difference and linear-algebra helpers in pure NumPy."""

from __future__ import annotations

from typing import Callable

import numpy as np

Array = np.ndarray
Objective = Callable[[Array], float]


def approx_grad(
    fun: Objective, x: Array, eps: float = 1e-6, return_evals: bool = False
) -> Array | tuple[Array, int]:
    """Compute a central-difference gradient approximation.

    Parameters
    ----------
    fun:
        Objective function returning a scalar given x.
    x:
        Point where the gradient is approximated.
    eps:
        Perturbation size for finite differences.
    """
    if eps <= 0:
        raise ValueError("eps must be positive")
    x = np.asarray(x, dtype=float).copy()
    grad = np.zeros_like(x, dtype=float)
    evals = 0
    for i in range(x.size):
        ei = np.zeros_like(x)
        ei[i] = eps
        fx_plus = fun(x + ei)
        fx_minus = fun(x - ei)
        evals += 2
        grad[i] = (fx_plus - fx_minus) / (2.0 * eps)
    if return_evals:
        return grad, evals
    return grad


def safe_solve(mat: Array, vec: Array, reg: float = 1e-12) -> Array:
    """Solve linear system with ridge fallback for singular matrices."""
    try:
        return np.linalg.solve(mat, vec)
    except np.linalg.LinAlgError:
        eye = np.eye(mat.shape[0], dtype=float)
        return np.linalg.lstsq(mat + reg * eye, vec, rcond=None)[0]


__all__ = ["Array", "Objective", "approx_grad", "safe_solve"]
