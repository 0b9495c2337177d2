"""Loss registry used by the backpropagation engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional

import numpy as np

from ..core.errors import ConfigurationError
from ..core.types import Array

# (y_true, y_pred, grad_out, n_samples) -> J; grad_out may be None.
LossFn = Callable[[Array, Array, Optional[Array], int], float]

_EPS = 1e-15


@dataclass(frozen=True)
class Loss:
    """Loss wrapper returning the scalar loss and writing dJ into ``grad_out``.

    ``paired_activation`` names the output activation for which the written
    gradient is already expressed in pre-activation space (``Ypred - Ytrue``),
    so the engine must not multiply it by the activation derivative.
    """

    name: str
    fn: LossFn
    paired_activation: str | None = None

    def __call__(
        self,
        y_true: Array,
        y_pred: Array,
        grad_out: Array | None,
        n_samples: int,
    ) -> float:
        return self.fn(y_true, y_pred, grad_out, n_samples)


class LossRegistry:
    """Central registry for loss functions."""

    def __init__(self) -> None:
        self._registry: Dict[str, Loss] = {}

    def register(self, name: str, fn: LossFn, *, paired_activation: str | None = None) -> None:
        self._registry[name] = Loss(name, fn, paired_activation)

    def get(self, name: str) -> Loss:
        try:
            return self._registry[name]
        except KeyError:
            available = ", ".join(self.names())
            raise ConfigurationError(
                f"Unknown loss {name!r}. Available losses: {available}"
            ) from None

    def names(self) -> Iterable[str]:
        return sorted(self._registry)

    def resolve(self, name: str, *, n_outputs: int) -> Loss:
        """Return the loss used at the output layer.

        The log loss on a single output is the binary cross-entropy.
        """

        if name == "log" and n_outputs == 1:
            name = "cross-entropy"
        return self.get(name)

    def output_activation(self, name: str, *, n_outputs: int) -> str | None:
        """Activation forced on the output layer by loss ``name``, if any."""

        if name == "square":
            return None
        return self.resolve(name, n_outputs=n_outputs).paired_activation


REGISTRY = LossRegistry()


def _square(y_true: Array, y_pred: Array, grad_out: Array | None, n_samples: int) -> float:
    if grad_out is None:
        diff = y_pred - y_true
    else:
        diff = np.subtract(y_pred, y_true, out=grad_out)
    loss = 0.5 * float(np.vdot(diff, diff)) / n_samples
    if grad_out is not None:
        grad_out /= n_samples
    return loss


def _cross_entropy(
    y_true: Array, y_pred: Array, grad_out: Array | None, n_samples: int
) -> float:
    p = np.clip(y_pred, _EPS, 1.0 - _EPS)
    loss = -float(np.sum(y_true * np.log(p) + (1.0 - y_true) * np.log1p(-p))) / n_samples
    if grad_out is not None:
        np.subtract(y_pred, y_true, out=grad_out)
        grad_out /= n_samples
    return loss


def _log(y_true: Array, y_pred: Array, grad_out: Array | None, n_samples: int) -> float:
    p = np.clip(y_pred, _EPS, 1.0)
    loss = -float(np.sum(y_true * np.log(p))) / n_samples
    if grad_out is not None:
        np.subtract(y_pred, y_true, out=grad_out)
        grad_out /= n_samples
    return loss


REGISTRY.register("square", _square, paired_activation="identity")
REGISTRY.register("cross-entropy", _cross_entropy, paired_activation="logistic")
REGISTRY.register("log", _log, paired_activation="softmax")

__all__ = ["Loss", "LossRegistry", "REGISTRY"]
