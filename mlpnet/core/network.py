"""Ordered stack of layers sharing one parameter arena."""

from __future__ import annotations

from typing import List, Sequence, Tuple

import numpy as np

from .activations import ActivationFunctions, get_activation
from .arena import ParameterArena
from .errors import ConfigurationError
from .layers import Layer
from .optimizers import OptimizerFactory
from .types import Array


def layer_shapes(
    n_features: int, hidden_layer_sizes: Sequence[int], n_outputs: int
) -> List[Tuple[int, int]]:
    """Return ``(1 + inputs, outputs)`` for every layer, input layer first."""

    dims = [int(n_features), *(int(h) for h in hidden_layer_sizes), int(n_outputs)]
    if any(d <= 0 for d in dims):
        raise ConfigurationError(f"Layer sizes must be positive, got {dims}")
    return [(1 + d_in, d_out) for d_in, d_out in zip(dims[:-1], dims[1:])]


class Network:
    """Feed-forward network whose weights alias one flat vector.

    The shapes are fixed for a given ``(n_features, hidden_layer_sizes,
    n_outputs)`` triple.  Hidden layers use ``activation``; the output layer
    uses ``output_activation`` when given.
    """

    def __init__(
        self,
        n_features: int,
        n_outputs: int,
        hidden_layer_sizes: Sequence[int] = (),
        activation: str | ActivationFunctions = "relu",
        output_activation: str | ActivationFunctions | None = None,
        optimizer_factory: OptimizerFactory | None = None,
    ) -> None:
        self.hidden_layer_sizes = tuple(int(h) for h in hidden_layer_sizes)
        shapes = layer_shapes(n_features, self.hidden_layer_sizes, n_outputs)
        self.arena = ParameterArena(shapes)

        hidden_activation = get_activation(activation)
        last_activation = get_activation(
            output_activation if output_activation is not None else activation
        )
        self.layers: List[Layer] = []
        for index in range(len(shapes)):
            theta, grad, update = self.arena.views(index)
            is_output = index == len(shapes) - 1
            self.layers.append(
                Layer(
                    theta,
                    grad,
                    update,
                    last_activation if is_output else hidden_activation,
                    optimizer_factory() if optimizer_factory is not None else None,
                )
            )
        self._check_chain()

    def _check_chain(self) -> None:
        for lower, upper in zip(self.layers[:-1], self.layers[1:]):
            if lower.outputs != upper.inputs - 1:
                raise ConfigurationError(
                    f"Layer with {lower.outputs} outputs cannot feed a layer "
                    f"with {upper.inputs} inputs"
                )

    @property
    def n_features(self) -> int:
        return self.layers[0].inputs - 1

    @property
    def n_outputs(self) -> int:
        return self.layers[-1].outputs

    @property
    def output_layer(self) -> Layer:
        return self.layers[-1]

    @property
    def theta(self) -> Array:
        """Flat parameter vector; writes are visible through every layer."""

        return self.arena.theta

    @property
    def grad(self) -> Array:
        return self.arena.grad

    def parameter_count(self) -> int:
        return len(self.arena)

    def initialize(self, rng: np.random.Generator) -> None:
        for layer in self.layers:
            layer.initialize(rng)

    def forward(self, X: Array, out: Array | None = None) -> Array:
        """Run the forward pass on ``X``; optionally copy the output into ``out``."""

        n_samples, n_features = X.shape
        if n_features != self.n_features:
            raise ConfigurationError(
                f"Network expects {self.n_features} features, got {n_features}"
            )
        previous: Layer | None = None
        for layer in self.layers:
            layer.alloc_outputs(n_samples)
            if previous is None:
                layer.set_input(X)
            else:
                layer.x1 = previous.next_x1
            layer.forward()
            previous = layer
        prediction = self.output_layer.ypred
        if out is not None:
            np.copyto(out, prediction)
        return prediction

    def __repr__(self) -> str:
        return f"Network(layers={self.layers!r})"


__all__ = ["Network", "layer_shapes"]
