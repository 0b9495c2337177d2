"""Epoch scheduling for minibatch and externally driven training."""

from __future__ import annotations

import math
import warnings
from contextlib import nullcontext
from dataclasses import dataclass, field
from typing import List, Protocol, Sequence, Tuple

import numpy as np

from ..core.backprop import BackpropConfig, backprop
from ..core.errors import ExternalOptimizerError, TrainingStallWarning
from ..core.network import Network
from ..core.types import Array, FitResult
from .losses import Loss
from .minimizers import Minimizer
from .shuffle import shuffled

DEFAULT_BATCH_SIZE = 200


def resolve_batch_size(batch_size: int | None, n_samples: int) -> int:
    """Clamp ``batch_size`` to ``n_samples``; default ``min(n_samples, 200)``."""

    if batch_size is None or batch_size <= 0:
        return min(n_samples, DEFAULT_BATCH_SIZE)
    return min(int(batch_size), n_samples)


def minibatch_bounds(n_samples: int, batch_size: int) -> List[Tuple[int, int]]:
    """Contiguous ``[start, stop)`` ranges; the last one holds the remainder."""

    return [
        (start, min(start + batch_size, n_samples))
        for start in range(0, n_samples, batch_size)
    ]


def default_epochs(n_samples: int) -> int:
    return max(1, 10**6 // max(1, n_samples))


class EpochRunner(Protocol):
    network: Network

    def run_epoch(self, X: Array, Y: Array, epoch: int) -> float:
        """Run one pass over ``X``/``Y`` and return the epoch loss."""


@dataclass
class MinibatchRunner:
    """Shuffle, decay, then forward/backward every minibatch with weight updates."""

    network: Network
    loss: Loss
    config: BackpropConfig = BackpropConfig()
    batch_size: int | None = None
    shuffle: bool = True
    weight_decay: float = 0.0
    rng: np.random.Generator = field(default_factory=np.random.default_rng)

    def run_epoch(self, X: Array, Y: Array, epoch: int) -> float:
        n_samples = X.shape[0]
        batch_size = resolve_batch_size(self.batch_size, n_samples)
        scope = shuffled(X, Y, self.rng) if self.shuffle else nullcontext()
        with scope:
            if 0.0 < self.weight_decay < 1.0:
                self.network.theta *= 1.0 - self.weight_decay
            total = 0.0
            for start, stop in minibatch_bounds(n_samples, batch_size):
                total += self.run_minibatch(X[start:stop], Y[start:stop], n_samples)
        return total

    def run_minibatch(self, X: Array, Y: Array, n_samples: int) -> float:
        self.network.forward(X)
        return backprop(self.network, Y, self.loss, n_samples, self.config)


@dataclass
class FullBatchRunner:
    """Forward/backward over the whole set without touching the weights."""

    network: Network
    loss: Loss
    config: BackpropConfig = BackpropConfig(apply_updates=False)

    def run_epoch(self, X: Array, Y: Array, epoch: int) -> float:
        self.network.forward(X)
        return backprop(self.network, Y, self.loss, X.shape[0], self.config)


class Trainer:
    """Drive an :class:`EpochRunner` for a number of epochs.

    Without a ``minimizer`` the runner is called once per epoch with early
    stopping on stalls.  With a ``minimizer`` the runner becomes the
    objective of an external full-batch optimization over the network's flat
    parameter vector, and ``epochs`` is its evaluation budget.
    """

    def __init__(
        self,
        runner: EpochRunner,
        *,
        epochs: int,
        early_stopping: bool = False,
        max_epochs_without_progress: int = 10,
        callbacks: Sequence[object] | None = None,
        minimizer: Minimizer | None = None,
    ) -> None:
        self.runner = runner
        self.epochs = int(epochs)
        self.early_stopping = early_stopping
        patience = int(max_epochs_without_progress)
        self.max_epochs_without_progress = patience if patience > 0 else 10
        self.callbacks = list(callbacks or [])
        self.minimizer = minimizer

        self.loss = math.inf
        self.loss_first = math.inf
        self.loss_curve: List[float] = []
        self.stalled = False

    @property
    def network(self) -> Network:
        return self.runner.network

    def fit(self, X: Array, Y: Array) -> FitResult:
        self.loss = math.inf
        self.loss_first = math.inf
        self.loss_curve = []
        self.stalled = False
        if self.minimizer is None:
            self._fit_epochs(X, Y)
        else:
            self._fit_external(X, Y)
        return FitResult(
            loss=self.loss,
            loss_first=self.loss_first,
            n_epochs=len(self.loss_curve),
            stalled=self.stalled,
            loss_curve=list(self.loss_curve),
        )

    # ------------------------------------------------------------------
    # Internal helpers

    def _fit_epochs(self, X: Array, Y: Array) -> None:
        previous = math.inf
        without_progress = 0
        for epoch in range(self.epochs):
            loss = self.runner.run_epoch(X, Y, epoch)
            self._record_epoch(epoch, loss)
            if loss >= previous:
                without_progress += 1
                if without_progress == self.max_epochs_without_progress:
                    self.stalled = True
                    warnings.warn(
                        f"MLP fit: {without_progress} epochs without progress",
                        TrainingStallWarning,
                        stacklevel=3,
                    )
                    if self.early_stopping:
                        break
            else:
                without_progress = 0
            previous = loss

    def _fit_external(self, X: Array, Y: Array) -> None:
        arena = self.network.arena
        best_loss = math.inf
        best_theta = arena.theta.copy()
        epoch = 0

        def objective(theta: Array) -> float:
            nonlocal best_loss, best_theta, epoch
            arena.load(theta)
            loss = self.runner.run_epoch(X, Y, epoch)
            self._record_epoch(epoch, loss)
            epoch += 1
            if loss < best_loss:
                best_loss = loss
                best_theta = arena.theta.copy()
            return loss

        def gradient(theta: Array) -> Array:
            # filled by the objective call for the same theta
            return arena.grad.copy()

        try:
            result = self.minimizer(objective, gradient, arena.theta.copy(), self.epochs)
        except Exception:
            arena.load(best_theta)
            raise
        if not result.success:
            arena.load(best_theta)
            self.loss = best_loss
            raise ExternalOptimizerError(
                f"External minimizer failed: {result.message}", loss=best_loss
            )
        arena.load(result.x)
        self.loss = float(result.fun)

    def _record_epoch(self, epoch: int, loss: float) -> None:
        if not self.loss_curve:
            self.loss_first = loss
        self.loss = loss
        self.loss_curve.append(loss)
        self._emit_epoch(epoch + 1, {"loss": loss})

    def _emit_epoch(self, epoch: int, metrics: dict) -> None:
        for callback in self.callbacks:
            if hasattr(callback, "on_epoch"):
                callback.on_epoch(epoch, metrics)  # type: ignore[attr-defined]
            elif callable(callback):
                callback(epoch, metrics)


__all__ = [
    "EpochRunner",
    "FullBatchRunner",
    "MinibatchRunner",
    "Trainer",
    "default_epochs",
    "minibatch_bounds",
    "resolve_batch_size",
]
