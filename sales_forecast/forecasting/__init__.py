"""Autoregressive forecasting module."""

from .driver import (
    ForecastPoint,
    ForecastResult,
    ProductFailure,
    ForecastReport,
    RolloutState,
    forecast_step,
    seed_state,
    forecast,
    constant_forecast,
)

__all__ = [
    "ForecastPoint",
    "ForecastResult",
    "ProductFailure",
    "ForecastReport",
    "RolloutState",
    "forecast_step",
    "seed_state",
    "forecast",
    "constant_forecast",
]
