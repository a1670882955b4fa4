"""Full-memory BFGS quasi-Newton minimization."""

from __future__ import annotations

import inspect
from typing import Callable, Optional

import numpy as np

from ..logging import get_logger
from .core import (
    DEFAULT_TOL,
    OptimizeResult,
    Problem,
    check_convergence,
    relative_change,
)
from .line_search import backtracking_armijo, wolfe_line_search
from .utils import approx_grad

logger = get_logger(__name__)

# Curvature below this is too small to update the inverse Hessian reliably.
CURVATURE_TOL = 1e-12


def _compute_gradient(
    problem: Problem, x: np.ndarray, eps: float
) -> tuple[np.ndarray, int, int]:
    if problem.grad is not None:
        return np.asarray(problem.grad(x), dtype=float), 0, 1
    grad, evals = approx_grad(problem.fun, x, eps=eps, return_evals=True)
    return grad, int(evals), 0


def _line_search_requires_grad(func: Callable) -> bool:
    sig = inspect.signature(func)
    params = list(sig.parameters.values())
    return len(params) >= 2 and params[1].name == "grad"


def bfgs(
    problem: Problem,
    x0: np.ndarray,
    maxiter: int = 100,
    gtol: float = DEFAULT_TOL,
    xtol: float = DEFAULT_TOL,
    inv_hessian0: Optional[np.ndarray] = None,
    line_search: Callable = wolfe_line_search,
    grad_eps: float = 1e-6,
    history: bool = False,
) -> OptimizeResult:
    """Minimize ``problem.fun`` with BFGS.

    The inverse Hessian starts at ``inv_hessian0`` (identity by default) and
    is refreshed with the BFGS formula after every accepted step whose
    curvature ``yᵀs`` exceeds ``CURVATURE_TOL``. Smaller positive curvature
    leaves it unchanged. Non-positive curvature resets it to the identity,
    except on the step that ends the run. When the primary line search fails
    to produce sufficient decrease, Armijo backtracking is tried instead; if
    that fails too the current point is returned. Running out of iterations
    is reported with ``success=False`` but the best point found is still
    returned.

    Args:
        problem: Objective (and optional analytic gradient) to minimize.
        x0: Starting point.
        maxiter: Maximum number of iterations.
        gtol: Gradient-norm tolerance.
        xtol: Relative tolerance on both parameter and objective change.
        inv_hessian0: Optional symmetric positive-definite starting inverse
            Hessian, shape (n, n).
        line_search: Step-length routine, either Wolfe-style
            ``(f, grad, x, p)`` or Armijo-style ``(f, x, p, grad_fx)``.
        grad_eps: Finite-difference step when no analytic gradient is given.
        history: Record the iterates.

    Returns:
        OptimizeResult including the final inverse Hessian.

    Raises:
        ValueError: If ``x0`` is not 1D or ``inv_hessian0`` has the wrong
            shape.
    """
    x = np.asarray(x0, dtype=float).copy()
    if x.ndim != 1:
        raise ValueError(f"x0 must be 1D array, got shape {x.shape}")
    n = x.size
    identity = np.eye(n)
    if inv_hessian0 is None:
        inv_hessian = identity.copy()
    else:
        inv_hessian = np.asarray(inv_hessian0, dtype=float).copy()
        if inv_hessian.shape != (n, n):
            raise ValueError(
                f"inv_hessian0 must be shape ({n}, {n}), got {inv_hessian.shape}"
            )

    hist: list[np.ndarray] = []
    if history:
        hist.append(x.copy())
    nfev = 0
    njev = 0
    nit = 0

    def grad_at(point: np.ndarray) -> np.ndarray:
        nonlocal nfev, njev
        g, fe, je = _compute_gradient(problem, point, grad_eps)
        nfev += fe
        njev += je
        return g

    fx = float(problem.fun(x))
    nfev += 1
    grad = grad_at(x)
    requires_grad = _line_search_requires_grad(line_search)
    success = False
    message = "Maximum iterations reached."

    if n == 0:
        return OptimizeResult(
            x=x, fun=fx, nit=0, success=True, message="Nothing to optimize.",
            grad_norm=0.0, nfev=nfev, njev=njev, inv_hessian=inv_hessian,
            history=hist,
        )

    while nit < maxiter:
        if not np.all(np.isfinite(grad)):
            message = "Non-finite gradient encountered."
            break
        grad_norm = float(np.linalg.norm(grad))
        if check_convergence(grad_norm, gtol):
            success = True
            message = "Gradient tolerance satisfied."
            break

        direction = -inv_hessian @ grad
        slope = float(np.dot(grad, direction))
        if not slope < 0:
            inv_hessian = identity.copy()
            direction = -grad
            slope = float(np.dot(grad, direction))

        alpha = 0.0
        try:
            if requires_grad:
                gradient_callable = problem.grad or grad_at
                alpha, ls_evals = line_search(problem.fun, gradient_callable, x, direction)
            else:
                alpha, ls_evals = line_search(problem.fun, x, direction, grad)
            nfev += int(ls_evals)
        except ValueError as exc:
            logger.debug("Line search rejected direction: %s", exc)

        fx_new = float(problem.fun(x + alpha * direction)) if alpha > 0 else np.inf
        nfev += 1 if alpha > 0 else 0
        if not (np.isfinite(fx_new) and fx_new <= fx + 1e-4 * alpha * slope):
            logger.debug("Falling back to Armijo backtracking at iteration %d", nit)
            alpha, ls_evals = backtracking_armijo(
                problem.fun, x, direction, grad, rho=0.2, fx=fx
            )
            nfev += ls_evals
            if alpha == 0.0:
                message = "No acceptable step found."
                break
            fx_new = float(problem.fun(x + alpha * direction))
            nfev += 1

        s = alpha * direction
        x_new = x + s
        grad_new = grad_at(x_new)
        nit += 1

        x_converged = relative_change(x_new, x) <= xtol
        f_converged = relative_change(fx_new, fx) <= xtol
        stopping = (
            (x_converged and f_converged)
            or nit >= maxiter
            or check_convergence(float(np.linalg.norm(grad_new)), gtol)
        )

        y = grad_new - grad
        ys = float(np.dot(y, s))
        if ys <= 0.0:
            if not stopping:
                inv_hessian = identity.copy()
        elif ys > CURVATURE_TOL:
            rho = 1.0 / ys
            outer_sy = np.outer(s, y)
            inv_hessian = (
                (identity - rho * outer_sy)
                @ inv_hessian
                @ (identity - rho * outer_sy.T)
                + rho * np.outer(s, s)
            )
        x = x_new
        fx = fx_new
        grad = grad_new
        if history:
            hist.append(x.copy())

        if x_converged and f_converged:
            success = True
            message = "Relative change tolerance satisfied."
            break

    logger.debug("BFGS stopped after %d iterations: %s", nit, message)
    return OptimizeResult(
        x=x,
        fun=float(fx),
        nit=nit,
        success=success,
        message=message,
        grad_norm=float(np.linalg.norm(grad)),
        nfev=nfev,
        njev=njev,
        inv_hessian=inv_hessian,
        history=hist,
    )


__all__ = ["bfgs"]
