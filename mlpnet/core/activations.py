"""Activation functions and their derivatives.

Every activation writes into a caller-provided ``out`` array so layers can
reuse their buffers across minibatches.  ``grad`` receives both the
pre-activation ``z`` and the activation output ``y`` and uses whichever one
gives the cheaper or more stable derivative.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Protocol, runtime_checkable

import numpy as np
from scipy.special import expit

from .errors import ConfigurationError
from .types import Array


@runtime_checkable
class ActivationFunctions(Protocol):
    """Protocol implemented by built-in and user supplied activations."""

    def func(self, z: Array, out: Array) -> Array:
        """Write ``activation(z)`` into ``out`` and return it."""

    def grad(self, z: Array, y: Array, out: Array) -> Array:
        """Write ``d activation / dz`` into ``out`` and return it."""


@dataclass(frozen=True)
class Identity:
    name: str = "identity"

    def func(self, z: Array, out: Array) -> Array:
        np.copyto(out, z)
        return out

    def grad(self, z: Array, y: Array, out: Array) -> Array:
        out.fill(1.0)
        return out


@dataclass(frozen=True)
class Logistic:
    name: str = "logistic"

    def func(self, z: Array, out: Array) -> Array:
        return expit(z, out=out)

    def grad(self, z: Array, y: Array, out: Array) -> Array:
        # y * (1 - y)
        np.subtract(1.0, y, out=out)
        np.multiply(out, y, out=out)
        return out


@dataclass(frozen=True)
class Tanh:
    name: str = "tanh"

    def func(self, z: Array, out: Array) -> Array:
        return np.tanh(z, out=out)

    def grad(self, z: Array, y: Array, out: Array) -> Array:
        np.multiply(y, y, out=out)
        np.subtract(1.0, out, out=out)
        return out


@dataclass(frozen=True)
class ReLU:
    name: str = "relu"

    def func(self, z: Array, out: Array) -> Array:
        return np.maximum(z, 0.0, out=out)

    def grad(self, z: Array, y: Array, out: Array) -> Array:
        np.copyto(out, z > 0.0)
        return out


@dataclass(frozen=True)
class ParamReLU:
    """Leaky ReLU with a fixed negative-side ``slope``."""

    slope: float = 0.01
    name: str = "paramrelu"

    def func(self, z: Array, out: Array) -> Array:
        np.copyto(out, np.where(z > 0.0, z, self.slope * z))
        return out

    def grad(self, z: Array, y: Array, out: Array) -> Array:
        np.copyto(out, np.where(z > 0.0, 1.0, self.slope))
        return out


@dataclass(frozen=True)
class ELU:
    """Exponential linear unit, ``alpha * (exp(z) - 1)`` for ``z <= 0``."""

    alpha: float = 1.0
    name: str = "elu"

    def func(self, z: Array, out: Array) -> Array:
        negative = self.alpha * np.expm1(np.minimum(z, 0.0))
        np.copyto(out, np.where(z > 0.0, z, negative))
        return out

    def grad(self, z: Array, y: Array, out: Array) -> Array:
        np.copyto(out, np.where(z > 0.0, 1.0, y + self.alpha))
        return out


@dataclass(frozen=True)
class Softmax:
    """Row-wise softmax.

    Only valid as the output activation of the multi-output log loss, where
    the engine uses ``Ypred - Ytrue`` directly and never calls ``grad``.
    """

    name: str = "softmax"

    def func(self, z: Array, out: Array) -> Array:
        np.subtract(z, z.max(axis=1, keepdims=True), out=out)
        np.exp(out, out=out)
        out /= out.sum(axis=1, keepdims=True)
        return out

    def grad(self, z: Array, y: Array, out: Array) -> Array:
        # diagonal of the Jacobian
        np.subtract(1.0, y, out=out)
        np.multiply(out, y, out=out)
        return out


_FACTORIES: Dict[str, Callable[[], ActivationFunctions]] = {
    "identity": Identity,
    "logistic": Logistic,
    "sigmoid": Logistic,
    "tanh": Tanh,
    "relu": ReLU,
    "paramrelu": ParamReLU,
    "parametric-relu": ParamReLU,
    "elu": ELU,
    "softmax": Softmax,
}


def available_activations() -> Iterable[str]:
    return sorted(_FACTORIES)


def get_activation(activation: str | ActivationFunctions) -> ActivationFunctions:
    """Resolve ``activation`` to an object implementing ``func`` and ``grad``."""

    if isinstance(activation, str):
        try:
            return _FACTORIES[activation]()
        except KeyError:
            available = ", ".join(available_activations())
            raise ConfigurationError(
                f"Unknown activation {activation!r}. Available activations: {available}"
            ) from None
    if callable(getattr(activation, "func", None)) and callable(
        getattr(activation, "grad", None)
    ):
        return activation
    raise ConfigurationError(
        f"Activation {activation!r} must be a name or implement func(z, out) and grad(z, y, out)"
    )


def activation_name(activation: ActivationFunctions) -> str:
    return str(getattr(activation, "name", type(activation).__name__))


__all__ = [
    "ActivationFunctions",
    "Identity",
    "Logistic",
    "Tanh",
    "ReLU",
    "ParamReLU",
    "ELU",
    "Softmax",
    "activation_name",
    "available_activations",
    "get_activation",
]
