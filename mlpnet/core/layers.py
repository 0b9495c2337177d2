"""Fully connected layer with a bias row folded into its weight matrix."""

from __future__ import annotations

from typing import Optional

import numpy as np

from .activations import ActivationFunctions, activation_name
from .arena import ReusableBuffer
from .optimizers import Optimizer
from .types import Array


def orthonormalize(theta: Array) -> Array:
    """Orthonormalize ``theta`` in place.

    Columns are made orthonormal when the matrix is tall, rows when it is
    wide.  Zero matrices are left untouched.
    """

    if not np.any(theta):
        return theta
    rows, cols = theta.shape
    if rows >= cols:
        q, r = np.linalg.qr(theta)
        q *= np.where(np.diag(r) < 0, -1.0, 1.0)
        theta[...] = q
    else:
        q, r = np.linalg.qr(theta.T)
        q *= np.where(np.diag(r) < 0, -1.0, 1.0)
        theta[...] = q.T
    return theta


class Layer:
    """One layer of the network.

    ``theta``, ``grad`` and ``update`` are views into the network's shared
    flat buffers and have shape ``(inputs, outputs)`` with ``inputs`` counting
    the bias row 0.  The per-batch buffers (``x1``, ``z``, ``ypred``, ``ytrue``,
    ``ydiff``, ``hgrad``, ``next_x1``) are rebuilt by :meth:`alloc_outputs`;
    ``ypred`` is the non-bias view of ``next_x1``.
    """

    def __init__(
        self,
        theta: Array,
        grad: Array,
        update: Array,
        activation: ActivationFunctions,
        optimizer: Optional[Optimizer] = None,
    ) -> None:
        self.theta = theta
        self.grad = grad
        self.update = update
        self.activation = activation
        self.optimizer = optimizer
        self.loss = 0.0

        self._x1 = ReusableBuffer()
        self._z = ReusableBuffer()
        self._ytrue = ReusableBuffer()
        self._ydiff = ReusableBuffer()
        self._hgrad = ReusableBuffer()
        self._next_x1 = ReusableBuffer()

        self.x1: Array | None = None
        self.z: Array | None = None
        self.ytrue: Array | None = None
        self.ydiff: Array | None = None
        self.hgrad: Array | None = None
        self.next_x1: Array | None = None
        self.ypred: Array | None = None

    @property
    def inputs(self) -> int:
        return int(self.theta.shape[0])

    @property
    def outputs(self) -> int:
        return int(self.theta.shape[1])

    @property
    def activation_name(self) -> str:
        return activation_name(self.activation)

    def initialize(self, rng: np.random.Generator) -> None:
        self.theta[...] = rng.uniform(-0.5, 0.5, size=self.theta.shape)
        orthonormalize(self.theta)

    def alloc_outputs(self, n_samples: int) -> None:
        outputs = self.outputs
        self.z = self._z.view(n_samples, outputs)
        self.ytrue = self._ytrue.view(n_samples, outputs)
        self.ydiff = self._ydiff.view(n_samples, outputs)
        self.hgrad = self._hgrad.view(n_samples, outputs)
        self.next_x1 = self._next_x1.view(n_samples, 1 + outputs)
        self.next_x1[:, 0] = 1.0
        self.ypred = self.next_x1[:, 1:]

    def set_input(self, X: Array) -> Array:
        """Copy ``X`` into this layer's own bias-augmented input buffer."""

        n_samples, n_features = X.shape
        self.x1 = self._x1.view(n_samples, 1 + n_features)
        self.x1[:, 0] = 1.0
        self.x1[:, 1:] = X
        return self.x1

    def forward(self) -> Array:
        np.matmul(self.x1, self.theta, out=self.z)
        self.activation.func(self.z, self.ypred)
        return self.ypred

    def __repr__(self) -> str:
        return (
            f"Layer(inputs={self.inputs}, outputs={self.outputs}, "
            f"activation={self.activation_name!r})"
        )


__all__ = ["Layer", "orthonormalize"]
