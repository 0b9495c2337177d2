"""Per-layer update rules.

Each optimizer turns a gradient matrix into a step that is *added* to the
weights (the sign for descent is already applied).  Accumulators are created
on first use with the gradient's shape and live as long as the optimizer, i.e.
until the layer is reallocated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Mapping, Protocol

import numpy as np

from .errors import ConfigurationError
from .types import Array


class Optimizer(Protocol):
    """Protocol implemented by per-layer optimizers."""

    def get_update(self, grad: Array, out: Array) -> Array:
        """Write the weight step for ``grad`` into ``out`` and return it."""


OptimizerFactory = Callable[[], Optimizer]


def _zeros_like(state: Array | None, grad: Array) -> Array:
    if state is None or state.shape != grad.shape:
        return np.zeros_like(grad)
    return state


@dataclass
class SGD:
    """Plain gradient step."""

    learning_rate: float = 0.01

    def get_update(self, grad: Array, out: Array) -> Array:
        np.multiply(grad, -self.learning_rate, out=out)
        return out


@dataclass
class Momentum:
    """Heavy-ball momentum; ``nesterov=True`` gives the accelerated variant."""

    learning_rate: float = 0.01
    momentum: float = 0.9
    nesterov: bool = False
    velocity: Array | None = field(default=None, repr=False)

    def get_update(self, grad: Array, out: Array) -> Array:
        self.velocity = _zeros_like(self.velocity, grad)
        self.velocity *= self.momentum
        self.velocity -= self.learning_rate * grad
        if self.nesterov:
            np.multiply(self.velocity, self.momentum, out=out)
            out -= self.learning_rate * grad
        else:
            np.copyto(out, self.velocity)
        return out


@dataclass
class Adagrad:
    learning_rate: float = 0.01
    epsilon: float = 1e-8
    sum_squares: Array | None = field(default=None, repr=False)

    def get_update(self, grad: Array, out: Array) -> Array:
        self.sum_squares = _zeros_like(self.sum_squares, grad)
        self.sum_squares += grad * grad
        np.divide(grad, np.sqrt(self.sum_squares) + self.epsilon, out=out)
        out *= -self.learning_rate
        return out


@dataclass
class RMSProp:
    learning_rate: float = 0.001
    rho: float = 0.9
    epsilon: float = 1e-8
    mean_square: Array | None = field(default=None, repr=False)

    def get_update(self, grad: Array, out: Array) -> Array:
        self.mean_square = _zeros_like(self.mean_square, grad)
        self.mean_square *= self.rho
        self.mean_square += (1.0 - self.rho) * grad * grad
        np.divide(grad, np.sqrt(self.mean_square) + self.epsilon, out=out)
        out *= -self.learning_rate
        return out


@dataclass
class Adadelta:
    """Adadelta; ``learning_rate`` scales the unit-corrected step (1.0 by default)."""

    learning_rate: float = 1.0
    rho: float = 0.95
    epsilon: float = 1e-6
    mean_square_grad: Array | None = field(default=None, repr=False)
    mean_square_step: Array | None = field(default=None, repr=False)

    def get_update(self, grad: Array, out: Array) -> Array:
        self.mean_square_grad = _zeros_like(self.mean_square_grad, grad)
        self.mean_square_step = _zeros_like(self.mean_square_step, grad)
        self.mean_square_grad *= self.rho
        self.mean_square_grad += (1.0 - self.rho) * grad * grad
        rms_step = np.sqrt(self.mean_square_step + self.epsilon)
        rms_grad = np.sqrt(self.mean_square_grad + self.epsilon)
        np.multiply(grad, rms_step / rms_grad, out=out)
        out *= -self.learning_rate
        self.mean_square_step *= self.rho
        self.mean_square_step += (1.0 - self.rho) * out * out
        return out


@dataclass
class Adam:
    learning_rate: float = 0.001
    beta1: float = 0.9
    beta2: float = 0.999
    epsilon: float = 1e-8
    t: int = 0
    m: Array | None = field(default=None, repr=False)
    v: Array | None = field(default=None, repr=False)

    def get_update(self, grad: Array, out: Array) -> Array:
        self.m = _zeros_like(self.m, grad)
        self.v = _zeros_like(self.v, grad)
        self.t += 1
        self.m *= self.beta1
        self.m += (1.0 - self.beta1) * grad
        self.v *= self.beta2
        self.v += (1.0 - self.beta2) * grad * grad
        m_hat = self.m / (1.0 - self.beta1**self.t)
        v_hat = self.v / (1.0 - self.beta2**self.t)
        np.divide(m_hat, np.sqrt(v_hat) + self.epsilon, out=out)
        out *= -self.learning_rate
        return out


SOLVERS: Dict[str, Callable[..., Optimizer]] = {
    "sgd": SGD,
    "momentum": Momentum,
    "agd": lambda **kwargs: Momentum(nesterov=True, **kwargs),
    "adagrad": Adagrad,
    "rmsprop": RMSProp,
    "adadelta": Adadelta,
    "adam": Adam,
}

# Full-batch solvers driven by an external minimizer; name -> scipy method.
EXTERNAL_SOLVERS: Mapping[str, str] = {
    "lbfgs": "L-BFGS-B",
    "bfgs": "BFGS",
    "cg": "CG",
}


def available_solvers() -> Iterable[str]:
    return sorted([*SOLVERS, *EXTERNAL_SOLVERS])


def is_external(solver: str) -> bool:
    return solver in EXTERNAL_SOLVERS


def optimizer_factory(solver: str, learning_rate: float | None = None) -> OptimizerFactory:
    """Return a zero-argument factory building fresh optimizers for ``solver``."""

    if solver not in SOLVERS:
        available = ", ".join(available_solvers())
        raise ConfigurationError(f"Unknown solver {solver!r}. Available solvers: {available}")
    creator = SOLVERS[solver]
    kwargs = {} if learning_rate is None else {"learning_rate": float(learning_rate)}
    return lambda: creator(**kwargs)


__all__ = [
    "Optimizer",
    "OptimizerFactory",
    "SGD",
    "Momentum",
    "Adagrad",
    "RMSProp",
    "Adadelta",
    "Adam",
    "SOLVERS",
    "EXTERNAL_SOLVERS",
    "available_solvers",
    "is_external",
    "optimizer_factory",
]
