"""Deterministic quasi-Newton optimization used by the ARIMA estimators.

Example
-------
>>> import numpy as np
>>> from arimakit.optimize import Problem, bfgs
>>> def rosen(x):
...     return (1 - x[0])**2 + 100 * (x[1] - x[0]**2)**2
>>> def rosen_grad(x):
...     return np.array([
...         -2 * (1 - x[0]) - 400 * x[0] * (x[1] - x[0] ** 2),
...         200 * (x[1] - x[0] ** 2),
...     ])
>>> problem = Problem(fun=rosen, grad=rosen_grad, dim=2)
>>> res = bfgs(problem, np.array([-1.2, 1.0]), maxiter=200, xtol=0.0)
>>> round(res.fun, 6)
0.0
"""

from .core import (
    ATOL,
    DEFAULT_TOL,
    EPSILON,
    OptimizeResult,
    Problem,
    check_convergence,
    relative_change,
)
from .line_search import backtracking_armijo, wolfe_line_search
from .quasi_newton import bfgs
from .utils import approx_grad, safe_solve

__all__ = [
    "ATOL",
    "DEFAULT_TOL",
    "EPSILON",
    "OptimizeResult",
    "Problem",
    "approx_grad",
    "backtracking_armijo",
    "bfgs",
    "check_convergence",
    "relative_change",
    "safe_solve",
    "wolfe_line_search",
]
