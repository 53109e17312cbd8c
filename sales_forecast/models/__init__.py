"""Sequence regressor module."""

from .base import (
    BaseSequenceRegressor,
    CancellationToken,
    TrainingProgress,
)
from .deep_learning import (
    LSTMRegressor,
    LSTMRegressorNet,
)
from .training import (
    TrainingSession,
    train_regressor,
)

__all__ = [
    "BaseSequenceRegressor",
    "CancellationToken",
    "TrainingProgress",
    "LSTMRegressor",
    "LSTMRegressorNet",
    "TrainingSession",
    "train_regressor",
]
