"""
Error kinds raised by the forecasting pipeline.

Corpus-wide errors (InvalidPeriod, InvalidQuantity, DegenerateRange,
InsufficientData, TrainingFailure, NoValidData) abort a run. Per-product
errors (InsufficientHistory, PredictionFailure) are recorded next to the
successful forecasts and never stop the other products.
"""

from typing import Any, Optional, Sequence


class ForecastError(Exception):
    """Base class for all sales forecasting errors."""


# =============================================================================
# PREPROCESSING ERRORS
# =============================================================================

class InvalidPeriod(ForecastError, ValueError):
    """An observation's period could not be parsed into year and month."""

    def __init__(self, value: Any, position: Optional[int] = None):
        self.value = value
        self.position = position
        where = f" at row {position}" if position is not None else ""
        super().__init__(f"Invalid period{where}: {value!r}")


class InvalidQuantity(ForecastError, ValueError):
    """An observation's quantity is negative or not a finite number."""

    def __init__(self, value: Any, position: Optional[int] = None):
        self.value = value
        self.position = position
        where = f" at row {position}" if position is not None else ""
        super().__init__(f"Invalid quantity{where}: {value!r}")


class DegenerateRange(ForecastError):
    """All quantities are identical, so min-max normalization is undefined."""

    def __init__(self, value: float):
        self.value = value
        super().__init__(
            f"All quantities equal {value}; normalization range is zero"
        )


class InsufficientData(ForecastError):
    """The corpus is too small to build a single training window."""


# =============================================================================
# MODEL ERRORS
# =============================================================================

class TrainingFailure(ForecastError):
    """The regressor failed during fit. No partial model state is usable."""


class TrainingCancelled(ForecastError):
    """Training was abandoned through a cancellation token."""


# =============================================================================
# PER-PRODUCT ERRORS
# =============================================================================

class InsufficientHistory(ForecastError):
    """A product has fewer observations than one input window."""

    def __init__(self, product: Any, available: int, required: int):
        self.product = product
        self.available = available
        self.required = required
        super().__init__(
            f"Product {product!r} has {available} observations, "
            f"{required} required"
        )


class PredictionFailure(ForecastError):
    """A single autoregressive step failed for one product."""

    def __init__(self, product: Any, step: int, reason: str):
        self.product = product
        self.step = step
        self.reason = reason
        super().__init__(
            f"Prediction failed for product {product!r} at step {step}: {reason}"
        )


# =============================================================================
# INPUT ERRORS
# =============================================================================

class MissingColumns(ForecastError):
    """The input table lacks one or more required columns."""

    def __init__(self, columns: Sequence[str]):
        self.columns = list(columns)
        super().__init__(f"Missing required columns: {', '.join(self.columns)}")


class NoValidData(ForecastError):
    """Every input row failed validation."""
