"""Backpropagation over a :class:`~mlpnet.core.network.Network`.

The engine walks from the output layer down to the input layer, leaving in
each layer:

* ``ydiff``: the error signal in pre-activation space (``dJ/dz``),
* ``grad``: ``X1.T @ ydiff`` plus elastic-net regularization, clipped,
* ``ytrue``: the batch target (output layer) or the pseudo-target
  ``ypred - ydiff`` (hidden layers), with ``layer.loss`` the matching
  half squared error.  Hidden-layer losses are diagnostics only.

Optimizer updates are applied once every gradient has been computed, so
the error propagated into a layer always uses the weights of the forward pass.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import numpy as np

from .errors import ConfigurationError, NumericalInstabilityError
from .layers import Layer
from .network import Network
from .types import Array


class LossFunction(Protocol):
    paired_activation: str | None

    def __call__(
        self, y_true: Array, y_pred: Array, grad_out: Array | None, n_samples: int
    ) -> float: ...


@dataclass(frozen=True)
class BackpropConfig:
    alpha: float = 0.0
    l1_ratio: float = 0.0
    gradient_clipping: float = 0.0
    apply_updates: bool = True


def check_finite(what: str, values: Array | float) -> None:
    if not np.all(np.isfinite(values)):
        raise NumericalInstabilityError(f"Non-finite values in {what}")


def regularize(layer: Layer, alpha: float, l1_ratio: float, n_samples: int) -> float:
    """Add the elastic-net penalty gradient to ``layer.grad``; return the penalty.

    Row 0 holds the bias weights and is never regularized.
    """

    if alpha <= 0.0:
        return 0.0
    theta = layer.theta[1:]
    grad = layer.grad[1:]
    penalty = 0.0
    if l1_ratio > 0.0:
        scale = alpha * l1_ratio / n_samples
        penalty += scale * float(np.abs(theta).sum())
        grad += scale * np.sign(theta)
    if l1_ratio < 1.0:
        scale = alpha * (1.0 - l1_ratio) / n_samples
        penalty += 0.5 * scale * float(np.vdot(theta, theta))
        grad += scale * theta
    return penalty


def clip_gradient(grad: Array, threshold: float) -> float:
    """Rescale ``grad`` in place so its Frobenius norm is at most ``threshold``."""

    norm = float(np.linalg.norm(grad))
    if threshold > 0.0 and norm > threshold:
        grad *= threshold / norm
    return norm


def _output_error(layer: Layer, Y: Array, loss: LossFunction, n_samples: int) -> float:
    np.copyto(layer.ytrue, Y)
    J = loss(layer.ytrue, layer.ypred, layer.ydiff, n_samples)
    if loss.paired_activation == layer.activation_name:
        # Ypred - Ytrue is already dJ/dz for the paired activation.
        layer.hgrad.fill(1.0)
    else:
        layer.activation.grad(layer.z, layer.ypred, layer.hgrad)
        layer.ydiff *= layer.hgrad
    return J


def _hidden_error(layer: Layer, upper: Layer, n_samples: int) -> None:
    layer.activation.grad(layer.z, layer.ypred, layer.hgrad)
    np.matmul(upper.ydiff, upper.theta[1:].T, out=layer.ydiff)
    layer.ydiff *= layer.hgrad
    np.subtract(layer.ypred, layer.ydiff, out=layer.ytrue)
    layer.loss = 0.5 * float(np.vdot(layer.ydiff, layer.ydiff)) / n_samples


def backprop(
    network: Network,
    Y: Array,
    loss: LossFunction,
    n_samples: int,
    config: BackpropConfig = BackpropConfig(),
) -> float:
    """Compute gradients for the last forward pass and optionally step the weights.

    ``n_samples`` is the size of the full training set so that minibatch
    losses add up to the full-data objective.  Returns the output layer's
    loss plus every layer's regularization penalty.

    Every layer's gradient is computed against the pre-update weights before
    any optimizer step runs, so the error reaching a lower layer never sees
    an upper layer's new ``theta``.  Stepping each layer inside the backward
    loop would propagate through already-updated weights instead.
    """

    layers = network.layers
    J = 0.0
    for index in range(len(layers) - 1, -1, -1):
        layer = layers[index]
        if index == len(layers) - 1:
            layer.loss = _output_error(layer, Y, loss, n_samples)
            J += layer.loss
        else:
            _hidden_error(layer, layers[index + 1], n_samples)

        np.matmul(layer.x1.T, layer.ydiff, out=layer.grad)
        J += regularize(layer, config.alpha, config.l1_ratio, n_samples)
        if config.gradient_clipping > 0.0:
            clip_gradient(layer.grad, config.gradient_clipping)

    check_finite("loss", J)
    check_finite("gradients", network.grad)

    if config.apply_updates:
        for layer in layers:
            if layer.optimizer is None:
                raise ConfigurationError("Layer has no optimizer; use an external solver")
            layer.optimizer.get_update(layer.grad, layer.update)
            layer.theta += layer.update
        check_finite("weights", network.theta)
    return J


__all__ = ["BackpropConfig", "backprop", "check_finite", "clip_gradient", "regularize"]
