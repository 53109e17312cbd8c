"""
Configuration settings for the Sales Forecast project.

This module centralizes windowing, forecasting and model hyperparameters.
"""

from dataclasses import dataclass, field
from typing import Optional
import torch


# =============================================================================
# DATA CONFIGURATION
# =============================================================================

@dataclass
class DataConfig:
    """Data loading and preprocessing settings."""
    filepath: Optional[str] = None

    # Number of consecutive points per model input
    window_size: int = 6

    # 'global' slides over the whole series; 'per_product' never mixes products
    windowing: str = "global"


# =============================================================================
# MODEL CONFIGURATION
# =============================================================================

@dataclass
class LSTMConfig:
    """LSTM regressor settings."""
    hidden_size: int = 32
    dense_size: int = 16
    num_layers: int = 1
    dropout: float = 0.0
    learning_rate: float = 0.001
    epochs: int = 100
    batch_size: int = 32
    validation_split: float = 0.2
    shuffle: bool = True


# =============================================================================
# FORECAST CONFIGURATION
# =============================================================================

@dataclass
class ForecastConfig:
    """Autoregressive rollout settings."""
    horizon: int = 6        # months forecast per product
    clip: bool = False      # clip normalized predictions to [0, 1]
    parallel: bool = False  # forecast products on a thread pool
    n_jobs: int = -1


# =============================================================================
# EXPERIMENT CONFIGURATION
# =============================================================================

@dataclass
class ExperimentConfig:
    """Main configuration."""
    data: DataConfig = field(default_factory=DataConfig)
    lstm: LSTMConfig = field(default_factory=LSTMConfig)
    forecast: ForecastConfig = field(default_factory=ForecastConfig)

    random_seed: int = 42
    device: str = field(default_factory=lambda: "cuda" if torch.cuda.is_available() else "cpu")

    # Output settings
    output_path: str = "forecast.csv"
    verbose: bool = True


# =============================================================================
# DEFAULT CONFIGURATION INSTANCE
# =============================================================================

def get_default_config() -> ExperimentConfig:
    """Get default configuration."""
    return ExperimentConfig()


def get_quick_config() -> ExperimentConfig:
    """Get a configuration with short training, for smoke runs."""
    config = ExperimentConfig()
    config.lstm.epochs = 5
    config.device = "cpu"
    return config
