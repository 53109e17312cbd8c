"""Configuration module."""

from .config import (
    DataConfig,
    LSTMConfig,
    ForecastConfig,
    ExperimentConfig,
    get_default_config,
    get_quick_config,
)

__all__ = [
    "DataConfig",
    "LSTMConfig",
    "ForecastConfig",
    "ExperimentConfig",
    "get_default_config",
    "get_quick_config",
]
