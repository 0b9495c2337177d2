"""External full-batch minimizers.

A minimizer receives an objective ``f(theta) -> float`` and a gradient
``g(theta) -> array`` together with an evaluation budget.  For any parameter
vector the objective is always evaluated before the gradient, because the
gradient is a by-product of the objective's backward pass.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol

import numpy as np
from scipy.optimize import minimize

from ..core.types import Array

Objective = Callable[[Array], float]
Gradient = Callable[[Array], Array]


@dataclass(frozen=True)
class MinimizerResult:
    x: Array
    fun: float
    success: bool
    message: str = ""
    n_evaluations: int = 0


class Minimizer(Protocol):
    def __call__(
        self,
        objective: Objective,
        gradient: Gradient,
        x0: Array,
        max_evaluations: int,
    ) -> MinimizerResult: ...


@dataclass
class ScipyMinimizer:
    """Adapter around :func:`scipy.optimize.minimize`.

    Running out of the evaluation budget counts as success; only abnormal
    terminations are reported as failures.
    """

    method: str = "L-BFGS-B"
    tol: float | None = None

    def __call__(
        self,
        objective: Objective,
        gradient: Gradient,
        x0: Array,
        max_evaluations: int,
    ) -> MinimizerResult:
        def fun_and_grad(theta: Array) -> tuple[float, Array]:
            value = objective(theta)
            return value, gradient(theta)

        budget = max(1, int(max_evaluations))
        options = {"maxiter": budget}
        if self.method.upper() == "L-BFGS-B":
            options["maxfun"] = budget
        result = minimize(
            fun_and_grad,
            np.asarray(x0, dtype=np.float64),
            jac=True,
            method=self.method,
            tol=self.tol,
            options=options,
        )
        # status 1: iteration or evaluation budget exhausted
        success = bool(result.success) or int(result.status) == 1
        return MinimizerResult(
            x=np.asarray(result.x, dtype=np.float64),
            fun=float(result.fun),
            success=success,
            message=str(result.message),
            n_evaluations=int(getattr(result, "nfev", 0)),
        )


__all__ = ["Minimizer", "MinimizerResult", "ScipyMinimizer"]
