"""
Sales Forecast Package

Per-product monthly sales forecasting with a sequence model.

Modules:
- data: Loading, encoding, windowing and decoding of sales series
- models: Sequence regressor interface, LSTM implementation and training
- forecasting: Autoregressive multi-step forecast driver
- pipeline: End-to-end run from observations to a forecast report
"""

__version__ = "1.0.0"

from . import data
from . import models
from . import forecasting
from .pipeline import run_forecast, build_regressor
