"""Core numerical primitives for mlpnet."""

from . import activations, arena, backprop, errors, layers, network, optimizers, types

__all__ = [
    "activations",
    "arena",
    "backprop",
    "errors",
    "layers",
    "network",
    "optimizers",
    "types",
]
