"""Core typing contracts for mlpnet."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

import numpy as np

Array = np.ndarray


@dataclass(frozen=True)
class FitResult:
    """Outcome of a single ``fit`` call."""

    loss: float
    loss_first: float
    n_epochs: int
    stalled: bool = False
    loss_curve: List[float] = field(default_factory=list)


@dataclass(frozen=True)
class RunResult:
    """Summary returned by :func:`mlpnet.training.pipelines.run_pipeline`."""

    epochs: int
    loss: float
    score: float
    metrics_path: str
    summary_path: str = ""
