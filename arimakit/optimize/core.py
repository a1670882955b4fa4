"""Core interfaces shared by the optimizer and line searches."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional

import numpy as np

Array = np.ndarray
Objective = Callable[[Array], float]
Gradient = Callable[[Array], Array]

EPSILON = float(np.finfo(float).eps)
DEFAULT_TOL = float(np.sqrt(EPSILON))
ATOL = 1e-10


@dataclass(frozen=True)
class Problem:
    """Container describing an unconstrained minimization problem."""

    fun: Objective
    grad: Optional[Gradient] = None
    dim: Optional[int] = None


@dataclass
class OptimizeResult:
    """Result of a quasi-Newton run.

    ``inv_hessian`` is the final approximate inverse Hessian; callers derive
    parameter standard errors from its diagonal.
    """

    x: Array
    fun: float
    nit: int
    success: bool
    message: str
    grad_norm: float
    nfev: int
    njev: int
    inv_hessian: Array
    history: List[Array] = field(default_factory=list)


def check_convergence(grad_norm: float, tol: float) -> bool:
    """Return True if gradient norm satisfies tolerance."""
    return grad_norm <= max(tol, ATOL)


def relative_change(new: Array | float, old: Array | float) -> float:
    """Largest elementwise change of ``new`` relative to ``max(|old|, 1)``."""
    new = np.atleast_1d(np.asarray(new, dtype=float))
    old = np.atleast_1d(np.asarray(old, dtype=float))
    if new.size == 0:
        return 0.0
    scale = np.maximum(np.abs(old), 1.0)
    return float(np.max(np.abs(new - old) / scale))


__all__ = [
    "ATOL",
    "Array",
    "DEFAULT_TOL",
    "EPSILON",
    "Gradient",
    "Objective",
    "OptimizeResult",
    "Problem",
    "check_convergence",
    "relative_change",
]
