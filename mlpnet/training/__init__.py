"""Losses, schedulers and run pipelines."""

from .losses import REGISTRY as LOSS_REGISTRY
from .trainer import Trainer

__all__ = ["LOSS_REGISTRY", "Trainer"]
