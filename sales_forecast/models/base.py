"""
Base classes for sequence regressors.

This module defines the capability interface the forecasting pipeline needs
from a trainable model: fit on windowed data, then predict one normalized
scalar from one input window.
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Optional

import numpy as np

from ..errors import TrainingCancelled


@dataclass(frozen=True)
class TrainingProgress:
    """Progress event emitted once per training epoch."""
    epoch: int  # 1-based
    total_epochs: int
    loss: float
    val_loss: Optional[float] = None

    @property
    def fraction_complete(self) -> float:
        return self.epoch / self.total_epochs if self.total_epochs else 1.0


ProgressCallback = Callable[[TrainingProgress], None]


class CancellationToken:
    """Thread-safe flag a caller sets to abandon a training run."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise TrainingCancelled("Training was cancelled")


class BaseSequenceRegressor(ABC):
    """
    Abstract base class for sequence regressors.

    All regressors must implement:
    - fit(): Train on windows of shape (n_samples, window_size, n_features)
    - predict(): Map a single (window_size, n_features) window to a scalar

    Optional methods:
    - predict_batch(): Vectorized prediction over many windows
    """

    def __init__(self, window_size: int = 6, n_features: int = 2, random_state: int = 42):
        """
        Initialize the regressor.

        Parameters
        ----------
        window_size : int
            Number of time steps per input window.
        n_features : int
            Number of features per time step.
        random_state : int
            Random seed for reproducibility.
        """
        self.window_size = window_size
        self.n_features = n_features
        self.random_state = random_state
        self.training_losses: List[float] = []
        self.validation_losses: List[float] = []
        self._is_fitted = False

    @abstractmethod
    def fit(
        self,
        X_train: np.ndarray,
        y_train: np.ndarray,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> "BaseSequenceRegressor":
        """
        Train the model.

        Parameters
        ----------
        X_train : np.ndarray
            Input windows, shape (n_samples, window_size, n_features).
        y_train : np.ndarray
            Normalized targets, shape (n_samples,).
        progress_callback : callable, optional
            Called with a TrainingProgress after every epoch.
        cancel_token : CancellationToken, optional
            Checked between batches; fit raises TrainingCancelled once set.

        Returns
        -------
        self
            The fitted model.
        """
        pass

    @abstractmethod
    def predict(self, window: np.ndarray) -> float:
        """
        Predict the next normalized quantity for one window.

        Parameters
        ----------
        window : np.ndarray
            Shape (window_size, n_features).

        Returns
        -------
        float
            Normalized prediction.
        """
        pass

    def predict_batch(self, X: np.ndarray) -> np.ndarray:
        """Predict for a stack of windows, shape (n_samples, window_size, n_features)."""
        return np.array([self.predict(window) for window in X], dtype=np.float32)

    @property
    def is_fitted(self) -> bool:
        """Check if the model has been fitted."""
        return self._is_fitted

    def _check_is_fitted(self):
        """Raise error if model is not fitted."""
        if not self._is_fitted:
            raise RuntimeError(
                f"{self.__class__.__name__} is not fitted. "
                "Call fit() before predict()."
            )

    def _check_window(self, window: np.ndarray) -> np.ndarray:
        """Validate and convert a single input window."""
        window = np.asarray(window, dtype=np.float32)
        expected = (self.window_size, self.n_features)
        if window.shape != expected:
            raise ValueError(f"Expected window of shape {expected}, got {window.shape}")
        return window
