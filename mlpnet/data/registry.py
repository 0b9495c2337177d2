"""Dataset registry and metadata contracts."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, MutableMapping

import numpy as np

from ..core.types import Array


@dataclass(frozen=True)
class DataSpec:
    """Structural information about a dataset.

    Attributes
    ----------
    d_in:
        Number of input features.
    d_out:
        Number of target columns as consumed by the network.
    task_type:
        One of ``{"regression", "multiclass", "binary", "multilabel"}``.
    num_classes:
        Number of classes when ``task_type`` is ``"multiclass"``.
    extra:
        Free-form metadata recorded with the run.
    """

    d_in: int
    d_out: int
    task_type: str
    num_classes: int | None = None
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DatasetSpec:
    """A fully materialized dataset.

    ``inputs`` and ``targets`` are float64 matrices with matching row counts
    that training may permute in place (and restores afterwards).
    """

    name: str
    inputs: Array
    targets: Array
    data_spec: DataSpec
    provenance: Dict[str, Any]

    @property
    def n_samples(self) -> int:
        return int(self.inputs.shape[0])


DatasetFactory = Callable[..., DatasetSpec]


_REGISTRY: MutableMapping[str, DatasetFactory] = {}


def register_dataset(
    name: str | None = None,
    factory: DatasetFactory | None = None,
) -> Callable[[DatasetFactory], DatasetFactory] | DatasetFactory:
    """Register a dataset factory.

    ``register_dataset`` can be used both as a decorator::

        @register_dataset("blobs")
        def make_blobs(**kwargs):
            ...

    or directly::

        register_dataset("blobs", make_blobs)
    """

    def _decorator(func: DatasetFactory) -> DatasetFactory:
        _REGISTRY[str(name or func.__name__)] = func
        return func

    if factory is not None:
        return _decorator(factory)
    if name is None:
        raise TypeError("register_dataset requires a name when used without a decorator")
    return _decorator


def get_dataset(dataset: str, /, **options: Any) -> DatasetSpec:
    """Build the :class:`DatasetSpec` registered as ``dataset``."""

    if dataset not in _REGISTRY:
        available = ", ".join(available_datasets())
        raise KeyError(f"Unknown dataset: {dataset}. Available datasets: {available}")
    spec = _REGISTRY[dataset](**options)
    _validate_spec(spec)
    return spec


def available_datasets() -> Iterable[str]:
    """Return the sorted list of available dataset identifiers."""

    return sorted(_REGISTRY)


def _validate_spec(spec: DatasetSpec) -> None:
    if spec.data_spec.task_type not in {"regression", "multiclass", "binary", "multilabel"}:
        raise ValueError(f"Invalid task type: {spec.data_spec.task_type}")
    if spec.data_spec.task_type == "multiclass" and spec.data_spec.num_classes is None:
        raise ValueError("Multiclass datasets must define num_classes")
    if spec.inputs.ndim != 2 or spec.targets.ndim != 2:
        raise ValueError("Dataset inputs and targets must be 2-D")
    if spec.inputs.shape[0] != spec.targets.shape[0]:
        raise ValueError(
            f"Dataset {spec.name!r} has {spec.inputs.shape[0]} inputs "
            f"but {spec.targets.shape[0]} targets"
        )
    if spec.inputs.dtype != np.float64 or spec.targets.dtype != np.float64:
        raise TypeError("Dataset arrays must be float64")


__all__ = [
    "DataSpec",
    "DatasetSpec",
    "available_datasets",
    "get_dataset",
    "register_dataset",
]
