"""
Shared fixtures and stub regressors for the test suite.
"""

import os
import sys

import numpy as np
import pytest

# Add project to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sales_forecast.data import Observation
from sales_forecast.models import BaseSequenceRegressor, TrainingProgress


class ConstantRegressor(BaseSequenceRegressor):
    """Predicts the same normalized value for every window and records inputs."""

    def __init__(self, value: float = 0.5, window_size: int = 6, epochs: int = 3):
        super().__init__(window_size=window_size)
        self.value = value
        self.epochs = epochs
        self.seen_windows = []

    def fit(self, X_train, y_train, progress_callback=None, cancel_token=None):
        for epoch in range(self.epochs):
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            loss = 1.0 / (epoch + 1)
            self.training_losses.append(loss)
            if progress_callback is not None:
                progress_callback(TrainingProgress(epoch + 1, self.epochs, loss))
        self._is_fitted = True
        return self

    def predict(self, window):
        self._check_is_fitted()
        window = self._check_window(window)
        self.seen_windows.append(window.copy())
        return self.value


class LastValueRegressor(ConstantRegressor):
    """Predicts the last quantity in the window (a naive persistence model)."""

    def predict(self, window):
        window = self._check_window(window)
        return float(window[-1, 1])


class BrokenFitRegressor(ConstantRegressor):
    """Fails during training."""

    def fit(self, X_train, y_train, progress_callback=None, cancel_token=None):
        raise RuntimeError("out of memory")


@pytest.fixture
def linear_observations():
    """12 monthly rows of one product, quantities 10..21."""
    return [
        Observation(period=f"2024-{month:02d}-15", product="Widget", quantity=9 + month)
        for month in range(1, 13)
    ]


@pytest.fixture
def two_product_observations():
    """Product 'A' with 12 months of history, product 'B' with only 4."""
    rows = [
        Observation(period=f"2024-{month:02d}-01", product="A", quantity=10 * month)
        for month in range(1, 13)
    ]
    rows += [
        Observation(period=f"2024-{month:02d}-01", product="B", quantity=5 + month)
        for month in range(9, 13)
    ]
    return rows


@pytest.fixture
def constant_observations():
    """Three products, every quantity equal to 50."""
    return [
        Observation(period=f"2024-{month:02d}", product=product, quantity=50)
        for month in range(1, 9)
        for product in ("X", "Y", "Z")
    ]


@pytest.fixture
def rng():
    return np.random.RandomState(42)
