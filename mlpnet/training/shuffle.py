"""Reversible in-place joint shuffling of sample rows."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import numpy as np

from ..core.types import Array


class Shuffler:
    """Permute the rows of ``X`` and ``Y`` jointly and undo it afterwards."""

    def __init__(self, rng: np.random.Generator | None = None) -> None:
        self.rng = rng if rng is not None else np.random.default_rng()
        self.permutation: Array | None = None

    def fit(self, X: Array, Y: Array) -> "Shuffler":
        if X.shape[0] != Y.shape[0]:
            raise ValueError(
                f"X and Y must have the same number of rows, got {X.shape[0]} and {Y.shape[0]}"
            )
        self.permutation = self.rng.permutation(X.shape[0])
        return self

    def transform(self, X: Array, Y: Array) -> tuple[Array, Array]:
        perm = self._require_fitted()
        X[...] = X[perm]
        Y[...] = Y[perm]
        return X, Y

    def fit_transform(self, X: Array, Y: Array) -> tuple[Array, Array]:
        return self.fit(X, Y).transform(X, Y)

    def inverse_transform(self, X: Array, Y: Array) -> tuple[Array, Array]:
        perm = self._require_fitted()
        X[perm] = X.copy()
        Y[perm] = Y.copy()
        return X, Y

    def _require_fitted(self) -> Array:
        if self.permutation is None:
            raise RuntimeError("Shuffler must be fitted before use")
        return self.permutation


@contextmanager
def shuffled(X: Array, Y: Array, rng: np.random.Generator) -> Iterator[Shuffler]:
    """Shuffle ``X`` and ``Y`` in place for the duration of the block.

    The original row order is restored on every exit path.
    """

    shuffler = Shuffler(rng).fit(X, Y)
    shuffler.transform(X, Y)
    try:
        yield shuffler
    finally:
        shuffler.inverse_transform(X, Y)


__all__ = ["Shuffler", "shuffled"]
