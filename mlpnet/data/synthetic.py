"""Pure in-memory synthetic datasets."""

from __future__ import annotations

import numpy as np

from ..core.activations import get_activation
from .registry import DataSpec, DatasetSpec, register_dataset


def make_random_problem(
    n_samples: int,
    n_features: int,
    n_outputs: int,
    activation: str = "identity",
    loss: str = "square",
    seed: int = 0,
) -> tuple[np.ndarray, np.ndarray]:
    """``Y = activation(X @ true_theta)`` with uniform ``X`` and ``true_theta``.

    For the cross-entropy loss each row of ``Y`` is replaced by the one-hot
    encoding of its largest entry.
    """

    rng = np.random.default_rng(seed)
    X = rng.uniform(0.0, 1.0, size=(n_samples, n_features))
    true_theta = rng.uniform(0.0, 1.0, size=(n_features, n_outputs))
    Y = np.empty((n_samples, n_outputs), dtype=np.float64)
    get_activation(activation).func(X @ true_theta, Y)
    if loss == "cross-entropy":
        one_hot = np.zeros_like(Y)
        one_hot[np.arange(n_samples), np.argmax(Y, axis=1)] = 1.0
        Y = one_hot
    return X, Y


@register_dataset("random_problem")
def _random_problem(
    n_samples: int = 2000,
    n_features: int = 3,
    n_outputs: int = 2,
    activation: str = "identity",
    loss: str = "square",
    seed: int = 0,
) -> DatasetSpec:
    X, Y = make_random_problem(n_samples, n_features, n_outputs, activation, loss, seed)
    multiclass = loss == "cross-entropy"
    return DatasetSpec(
        name="random_problem",
        inputs=X,
        targets=Y,
        data_spec=DataSpec(
            d_in=n_features,
            d_out=n_outputs,
            task_type="multiclass" if multiclass else "regression",
            num_classes=n_outputs if multiclass else None,
        ),
        provenance={
            "type": "random_problem",
            "n_samples": n_samples,
            "activation": activation,
            "loss": loss,
            "seed": seed,
        },
    )


@register_dataset("sine")
def _sine(freq: int = 1, n_points: int = 256, noise: float = 0.05, seed: int = 0) -> DatasetSpec:
    rng = np.random.default_rng(seed)
    x = np.linspace(-1.0, 1.0, n_points).reshape(-1, 1)
    y = np.sin(freq * np.pi * x) + noise * rng.standard_normal(size=x.shape)
    return DatasetSpec(
        name="sine",
        inputs=x,
        targets=y,
        data_spec=DataSpec(d_in=1, d_out=1, task_type="regression"),
        provenance={"type": "sine", "freq": freq, "n_points": n_points, "seed": seed},
    )


@register_dataset("blobs")
def _blobs(
    samples_per_class: int = 60, spread: float = 0.4, seed: int = 0
) -> DatasetSpec:
    rng = np.random.default_rng(seed)
    centers = np.array([[2.0, 2.0], [-2.0, -2.0], [2.0, -2.0]])
    inputs = []
    labels = []
    for idx, center in enumerate(centers):
        inputs.append(center + spread * rng.standard_normal((samples_per_class, 2)))
        labels.append(np.full(samples_per_class, idx))
    X = np.vstack(inputs)
    Y = np.eye(len(centers))[np.concatenate(labels)]
    return DatasetSpec(
        name="blobs",
        inputs=X,
        targets=Y,
        data_spec=DataSpec(d_in=2, d_out=len(centers), task_type="multiclass", num_classes=len(centers)),
        provenance={"type": "blobs", "samples_per_class": samples_per_class, "seed": seed},
    )


__all__ = ["make_random_problem"]
