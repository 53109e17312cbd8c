"""
Deep learning sequence regressor.

LSTMRegressor is the default model behind the forecasting pipeline: a single
LSTM layer followed by a small dense head producing one normalized quantity
per input window.
"""

import logging
import threading
from typing import Optional

import numpy as np
import torch
import torch.nn as nn
import torch.optim as optim
from torch.utils.data import DataLoader, TensorDataset

from .base import BaseSequenceRegressor, CancellationToken, ProgressCallback, TrainingProgress

logger = logging.getLogger(__name__)


# =============================================================================
# NEURAL NETWORK ARCHITECTURE
# =============================================================================

class LSTMRegressorNet(nn.Module):
    """LSTM encoder with a dense regression head."""

    def __init__(
        self,
        input_size: int = 2,
        hidden_size: int = 32,
        dense_size: int = 16,
        num_layers: int = 1,
        dropout: float = 0.0
    ):
        super().__init__()
        self.lstm = nn.LSTM(
            input_size=input_size,
            hidden_size=hidden_size,
            num_layers=num_layers,
            batch_first=True,
            dropout=dropout if num_layers > 1 else 0
        )
        self.head = nn.Sequential(
            nn.Linear(hidden_size, dense_size),
            nn.ReLU(),
            nn.Linear(dense_size, 1)
        )

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        lstm_out, _ = self.lstm(x)
        return self.head(lstm_out[:, -1, :]).squeeze(-1)


# =============================================================================
# LSTM REGRESSOR
# =============================================================================

class LSTMRegressor(BaseSequenceRegressor):
    """
    LSTM regressor trained with mean squared error.

    Inputs are standardized per feature with statistics fitted on the
    training windows; targets are used as given (already in [0, 1]).
    The last `validation_split` fraction of the samples is held out, before
    shuffling, to report a validation loss per epoch.
    """

    def __init__(
        self,
        window_size: int = 6,
        hidden_size: int = 32,
        dense_size: int = 16,
        num_layers: int = 1,
        dropout: float = 0.0,
        learning_rate: float = 0.001,
        epochs: int = 100,
        batch_size: int = 32,
        validation_split: float = 0.2,
        shuffle: bool = True,
        random_state: int = 42,
        device: str = "cpu"
    ):
        super().__init__(window_size=window_size, n_features=2, random_state=random_state)
        self.hidden_size = hidden_size
        self.dense_size = dense_size
        self.num_layers = num_layers
        self.dropout = dropout
        self.learning_rate = learning_rate
        self.epochs = epochs
        self.batch_size = batch_size
        self.validation_split = validation_split
        self.shuffle = shuffle
        self.device = device

        self.model: Optional[LSTMRegressorNet] = None
        self.scaler_mean: Optional[np.ndarray] = None
        self.scaler_std: Optional[np.ndarray] = None
        self._lock = threading.Lock()

    def _normalize(self, X: np.ndarray, fit: bool = False) -> np.ndarray:
        """Standardize features; with fit=True, compute statistics from X."""
        if fit:
            self.scaler_mean = X.mean(axis=(0, 1), keepdims=True)
            std = X.std(axis=(0, 1), keepdims=True)
            # Zero-variance features are only centered
            self.scaler_std = np.where(std < 1e-8, 1.0, std)
        return ((X - self.scaler_mean) / self.scaler_std).astype(np.float32)

    def _split_validation(self, X: np.ndarray, y: np.ndarray):
        n_val = int(len(X) * self.validation_split)
        if n_val < 1 or len(X) - n_val < 1:
            return X, y, None, None
        return X[:-n_val], y[:-n_val], X[-n_val:], y[-n_val:]

    def fit(
        self,
        X_train: np.ndarray,
        y_train: np.ndarray,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None
    ) -> "LSTMRegressor":
        """Train the LSTM on windowed data."""
        X_train = np.asarray(X_train, dtype=np.float32)
        y_train = np.asarray(y_train, dtype=np.float32).reshape(-1)
        if X_train.ndim != 3 or X_train.shape[1:] != (self.window_size, self.n_features):
            raise ValueError(
                f"Expected inputs of shape (n, {self.window_size}, {self.n_features}), "
                f"got {X_train.shape}"
            )
        if len(X_train) == 0 or len(X_train) != len(y_train):
            raise ValueError(
                f"Got {len(X_train)} windows and {len(y_train)} targets"
            )

        logger.info("Training LSTM regressor...")
        logger.info(
            f"Architecture: {self.num_layers} LSTM layer(s), hidden_size={self.hidden_size}, "
            f"dense_size={self.dense_size}"
        )

        # Set random seed
        torch.manual_seed(self.random_state)
        generator = torch.Generator().manual_seed(self.random_state)

        X_fit, y_fit, X_val, y_val = self._split_validation(X_train, y_train)

        # Normalize features
        X_fit_norm = self._normalize(X_fit, fit=True)

        X_tensor = torch.FloatTensor(X_fit_norm).to(self.device)
        y_tensor = torch.FloatTensor(y_fit).to(self.device)
        dataloader = DataLoader(
            TensorDataset(X_tensor, y_tensor),
            batch_size=self.batch_size,
            shuffle=self.shuffle,
            generator=generator
        )

        X_val_tensor = y_val_tensor = None
        if X_val is not None:
            X_val_tensor = torch.FloatTensor(self._normalize(X_val)).to(self.device)
            y_val_tensor = torch.FloatTensor(y_val).to(self.device)

        self.model = LSTMRegressorNet(
            input_size=self.n_features,
            hidden_size=self.hidden_size,
            dense_size=self.dense_size,
            num_layers=self.num_layers,
            dropout=self.dropout
        ).to(self.device)

        criterion = nn.MSELoss()
        optimizer = optim.Adam(self.model.parameters(), lr=self.learning_rate)

        self._is_fitted = False
        self.training_losses = []
        self.validation_losses = []

        for epoch in range(self.epochs):
            self.model.train()
            epoch_loss = 0.0
            for batch_X, batch_y in dataloader:
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled()
                optimizer.zero_grad()
                outputs = self.model(batch_X)
                loss = criterion(outputs, batch_y)
                loss.backward()
                optimizer.step()
                epoch_loss += loss.item()

            avg_loss = epoch_loss / len(dataloader)
            self.training_losses.append(avg_loss)

            val_loss = None
            if X_val_tensor is not None:
                self.model.eval()
                with torch.no_grad():
                    val_loss = criterion(self.model(X_val_tensor), y_val_tensor).item()
                self.validation_losses.append(val_loss)

            if progress_callback is not None:
                progress_callback(TrainingProgress(
                    epoch=epoch + 1,
                    total_epochs=self.epochs,
                    loss=avg_loss,
                    val_loss=val_loss
                ))

            if (epoch + 1) % 20 == 0:
                logger.info(f"Epoch {epoch + 1}/{self.epochs}, Loss: {avg_loss:.4f}")

        self._is_fitted = True
        return self

    def predict(self, window: np.ndarray) -> float:
        """Predict the next normalized quantity for one window."""
        self._check_is_fitted()
        window = self._check_window(window)
        return float(self.predict_batch(window[np.newaxis])[0])

    def predict_batch(self, X: np.ndarray) -> np.ndarray:
        """Predict for a stack of windows."""
        self._check_is_fitted()
        X_tensor = torch.FloatTensor(self._normalize(np.asarray(X, dtype=np.float32))).to(self.device)

        # One forward pass at a time; forecasting workers share this model
        with self._lock:
            self.model.eval()
            with torch.no_grad():
                return self.model(X_tensor).cpu().numpy()
