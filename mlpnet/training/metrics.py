"""Scoring helpers backed by scikit-learn metrics."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping

import numpy as np
from sklearn import metrics as skm

from ..core.types import Array


@dataclass(frozen=True)
class MetricResult:
    name: str
    value: float


def default_metrics(task_type: str) -> List[str]:
    if task_type == "regression":
        return ["mae", "rmse", "r2"]
    if task_type == "multiclass":
        return ["accuracy", "macro_f1"]
    if task_type in {"binary", "multilabel"}:
        return ["accuracy", "f1"]
    raise ValueError(f"Unknown task type: {task_type}")


def _labels(values: Array) -> Array:
    return np.argmax(values, axis=1) if values.ndim == 2 and values.shape[1] > 1 else values.reshape(-1)


def compute_metric(
    name: str,
    predictions: Array,
    targets: Array,
    *,
    task_type: str,
) -> MetricResult:
    key = name.lower()
    if key == "mae":
        value = skm.mean_absolute_error(targets, predictions)
    elif key == "rmse":
        value = np.sqrt(skm.mean_squared_error(targets, predictions))
    elif key == "r2":
        value = skm.r2_score(targets, predictions)
    elif key == "accuracy":
        if task_type == "multiclass":
            value = skm.accuracy_score(_labels(targets), _labels(predictions))
        else:
            value = skm.accuracy_score(targets.astype(int), predictions.astype(int))
    elif key == "macro_f1":
        value = skm.f1_score(_labels(targets), _labels(predictions), average="macro")
    elif key == "f1":
        average = "binary" if targets.ndim == 1 or targets.shape[1] == 1 else "micro"
        value = skm.f1_score(
            targets.astype(int).squeeze(), predictions.astype(int).squeeze(), average=average,
            zero_division=0,
        )
    else:
        raise KeyError(f"Unknown metric: {name}")
    return MetricResult(name=key, value=float(value))


def compute_metrics(
    names: Iterable[str],
    predictions: Array,
    targets: Array,
    *,
    task_type: str,
) -> Mapping[str, float]:
    results: Dict[str, float] = {}
    for name in names:
        metric = compute_metric(name, predictions, targets, task_type=task_type)
        results[metric.name] = metric.value
    return results


def predicted_labels(predictions: Array, *, one_hot: bool = False) -> Array:
    """Hard labels: argmax one-hot rows for softmax outputs, else a 0.5 threshold."""

    if one_hot:
        labels = np.zeros_like(predictions)
        labels[np.arange(predictions.shape[0]), np.argmax(predictions, axis=1)] = 1.0
        return labels
    return (predictions >= 0.5).astype(np.float64)


def score(
    loss: str, targets: Array, predictions: Array, *, output_activation: str | None = None
) -> float:
    """R² for the square loss, accuracy for the classification losses."""

    if loss == "square":
        return float(skm.r2_score(targets, predictions))
    labels = predicted_labels(predictions, one_hot=output_activation == "softmax")
    return float(skm.accuracy_score(targets.astype(int), labels.astype(int)))


__all__ = [
    "MetricResult",
    "compute_metric",
    "compute_metrics",
    "default_metrics",
    "predicted_labels",
    "score",
]
