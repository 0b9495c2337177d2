"""Shared parameter storage and reusable scratch buffers.

All layer weights live in one flat ``theta`` vector (and likewise ``grad`` and
``update``).  Each layer only keeps reshaped views into its own range, so an
external optimizer can read or write the flat vector and every layer sees the
change without a copy.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

import numpy as np

from .types import Array


@dataclass(frozen=True)
class ParameterSlot:
    """Location of one layer's weight matrix inside the arena."""

    offset: int
    shape: Tuple[int, int]

    @property
    def size(self) -> int:
        return self.shape[0] * self.shape[1]

    @property
    def stop(self) -> int:
        return self.offset + self.size


@dataclass
class ParameterArena:
    """Three flat float64 buffers partitioned into per-layer matrices."""

    shapes: Sequence[Tuple[int, int]]
    slots: List[ParameterSlot] = field(init=False)
    theta: Array = field(init=False, repr=False)
    grad: Array = field(init=False, repr=False)
    update: Array = field(init=False, repr=False)

    def __post_init__(self) -> None:
        slots: List[ParameterSlot] = []
        offset = 0
        for rows, cols in self.shapes:
            slot = ParameterSlot(offset=offset, shape=(int(rows), int(cols)))
            slots.append(slot)
            offset = slot.stop
        self.slots = slots
        self.theta = np.zeros(offset, dtype=np.float64)
        self.grad = np.zeros(offset, dtype=np.float64)
        self.update = np.zeros(offset, dtype=np.float64)

    def __len__(self) -> int:
        return int(self.theta.size)

    def views(self, index: int) -> Tuple[Array, Array, Array]:
        """Return ``(theta, grad, update)`` matrix views for layer ``index``."""

        slot = self.slots[index]
        return (
            self.theta[slot.offset : slot.stop].reshape(slot.shape),
            self.grad[slot.offset : slot.stop].reshape(slot.shape),
            self.update[slot.offset : slot.stop].reshape(slot.shape),
        )

    def load(self, flat: Array) -> None:
        """Copy ``flat`` into the parameter vector in place."""

        flat = np.asarray(flat, dtype=np.float64).reshape(-1)
        if flat.size != self.theta.size:
            raise ValueError(
                f"Expected {self.theta.size} parameters, got {flat.size}"
            )
        np.copyto(self.theta, flat)


class ReusableBuffer:
    """Backing allocation with a logical 2-D shape.

    ``view`` only reallocates when the requested size exceeds the current
    capacity; smaller requests (e.g. a final partial minibatch) reuse the
    front of the existing allocation.
    """

    def __init__(self) -> None:
        self._data: Array = np.empty(0, dtype=np.float64)
        self.allocations = 0

    @property
    def capacity(self) -> int:
        return int(self._data.size)

    def view(self, rows: int, cols: int) -> Array:
        size = rows * cols
        if size > self._data.size:
            self._data = np.empty(size, dtype=np.float64)
            self.allocations += 1
        return self._data[:size].reshape(rows, cols)


__all__ = ["ParameterArena", "ParameterSlot", "ReusableBuffer"]
