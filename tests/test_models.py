"""
Unit tests for sequence regressors and training orchestration.
"""

import time

import numpy as np
import pytest

from conftest import BrokenFitRegressor, ConstantRegressor
from sales_forecast.data import build_dataset, encode
from sales_forecast.errors import TrainingCancelled, TrainingFailure
from sales_forecast.models import (
    CancellationToken,
    LSTMRegressor,
    TrainingProgress,
    TrainingSession,
    train_regressor,
)


class SlowRegressor(ConstantRegressor):
    """Trains for a long time unless cancelled."""

    def fit(self, X_train, y_train, progress_callback=None, cancel_token=None):
        for epoch in range(10000):
            cancel_token.raise_if_cancelled()
            if progress_callback is not None:
                progress_callback(TrainingProgress(epoch + 1, 10000, 0.1))
            time.sleep(0.005)
        self._is_fitted = True
        return self


@pytest.fixture
def sample_data(rng):
    """Random windows shaped like encoded (month_index, product_code) input."""
    n_samples = 40
    months = np.tile(np.arange(1, 7), (n_samples, 1)) + rng.randint(0, 24, (n_samples, 1))
    codes = np.repeat(rng.randint(0, 3, (n_samples, 1)), 6, axis=1)
    X = np.stack([months, codes], axis=-1).astype(np.float32)
    y = rng.uniform(0, 1, n_samples).astype(np.float32)
    return X, y


class TestLSTMRegressor:
    """Tests for the LSTM regressor."""

    def test_fit(self, sample_data):
        X, y = sample_data

        model = LSTMRegressor(epochs=3, batch_size=8)
        model.fit(X, y)

        assert model.is_fitted
        assert len(model.training_losses) == 3
        assert len(model.validation_losses) == 3
        assert all(np.isfinite(model.training_losses))

    def test_predict_returns_scalar(self, sample_data):
        X, y = sample_data
        model = LSTMRegressor(epochs=2).fit(X, y)

        prediction = model.predict(X[0])

        assert isinstance(prediction, float)
        assert np.isfinite(prediction)

    def test_predict_batch_matches_predict(self, sample_data):
        X, y = sample_data
        model = LSTMRegressor(epochs=2).fit(X, y)

        batch = model.predict_batch(X[:5])

        assert batch.shape == (5,)
        np.testing.assert_allclose(batch, [model.predict(w) for w in X[:5]], rtol=1e-5)

    def test_reproducible_with_seed(self, sample_data):
        X, y = sample_data
        a = LSTMRegressor(epochs=2, random_state=7).fit(X, y)
        b = LSTMRegressor(epochs=2, random_state=7).fit(X, y)
        assert a.predict(X[0]) == pytest.approx(b.predict(X[0]), rel=1e-5)

    def test_progress_callback(self, sample_data):
        X, y = sample_data
        events = []

        LSTMRegressor(epochs=4).fit(X, y, progress_callback=events.append)

        assert [e.epoch for e in events] == [1, 2, 3, 4]
        assert all(e.total_epochs == 4 for e in events)
        assert events[-1].fraction_complete == 1.0
        assert all(e.val_loss is not None for e in events)

    def test_no_validation_split_for_tiny_data(self, sample_data):
        X, y = sample_data
        model = LSTMRegressor(epochs=1).fit(X[:3], y[:3])
        assert model.validation_losses == []

    def test_predict_before_fit(self):
        with pytest.raises(RuntimeError, match="not fitted"):
            LSTMRegressor().predict(np.zeros((6, 2)))

    def test_wrong_window_shape(self, sample_data):
        X, y = sample_data
        model = LSTMRegressor(epochs=1).fit(X, y)
        with pytest.raises(ValueError):
            model.predict(np.zeros((5, 2)))

    def test_wrong_input_shape(self):
        with pytest.raises(ValueError):
            LSTMRegressor().fit(np.zeros((10, 4, 2)), np.zeros(10))

    def test_cancelled_before_start(self, sample_data):
        X, y = sample_data
        token = CancellationToken()
        token.cancel()

        model = LSTMRegressor(epochs=5)
        with pytest.raises(TrainingCancelled):
            model.fit(X, y, cancel_token=token)
        assert not model.is_fitted

    def test_fits_encoded_dataset(self, linear_observations):
        series, _ = encode(linear_observations)
        dataset = build_dataset(series)

        model = LSTMRegressor(epochs=2).fit(dataset.inputs, dataset.targets)

        assert model.is_fitted
        assert np.isfinite(model.predict(dataset.inputs[-1]))

    def test_single_product_rollout_uses_quantity_feature(self, linear_observations):
        series, _ = encode(linear_observations)
        dataset = build_dataset(series)
        model = LSTMRegressor(epochs=30).fit(dataset.inputs, dataset.targets)

        # The product code is constant for one product
        assert model.scaler_std[0, 0, 1] == 1.0

        months = np.arange(7, 13, dtype=np.float32)
        low = np.stack([months, np.full(6, 0.3, dtype=np.float32)], axis=-1)
        high = np.stack([months, np.full(6, 0.9, dtype=np.float32)], axis=-1)

        assert np.all(np.abs(model._normalize(high)) < 10)
        assert abs(model.predict(low) - model.predict(high)) > 1e-6


class TestTrainRegressor:
    """Tests for the blocking training entry point."""

    def test_returns_fitted_model(self, linear_observations):
        series, _ = encode(linear_observations)
        model = train_regressor(ConstantRegressor(), build_dataset(series))
        assert model.is_fitted

    def test_wraps_failures(self, linear_observations):
        series, _ = encode(linear_observations)
        with pytest.raises(TrainingFailure, match="out of memory"):
            train_regressor(BrokenFitRegressor(), build_dataset(series))

    def test_cancellation_is_not_a_failure(self, linear_observations):
        series, _ = encode(linear_observations)
        token = CancellationToken()
        token.cancel()
        with pytest.raises(TrainingCancelled):
            train_regressor(ConstantRegressor(), build_dataset(series), cancel_token=token)


class TestTrainingSession:
    """Tests for background training with a progress stream."""

    def test_progress_stream(self, linear_observations):
        series, _ = encode(linear_observations)

        with TrainingSession(ConstantRegressor(epochs=5), build_dataset(series)) as session:
            events = list(session.progress(timeout=10))
            model = session.result(timeout=10)

        assert [e.epoch for e in events] == [1, 2, 3, 4, 5]
        assert model.is_fitted

    def test_bounded_queue_keeps_latest(self, linear_observations):
        series, _ = encode(linear_observations)
        session = TrainingSession(ConstantRegressor(epochs=50), build_dataset(series), max_pending=3)

        with session:
            session.result(timeout=10)
            events = list(session.progress(timeout=10))

        assert 0 < len(events) <= 3
        assert events[-1].epoch == 50

    def test_failure_surfaces_in_result(self, linear_observations):
        series, _ = encode(linear_observations)

        with TrainingSession(BrokenFitRegressor(), build_dataset(series)) as session:
            assert list(session.progress(timeout=10)) == []
            with pytest.raises(TrainingFailure):
                session.result(timeout=10)

    def test_cancel(self, linear_observations):
        series, _ = encode(linear_observations)

        with TrainingSession(SlowRegressor(), build_dataset(series)) as session:
            first = next(session.progress(timeout=10))
            session.cancel()
            with pytest.raises(TrainingCancelled):
                session.result(timeout=10)

        assert first.epoch >= 1
        assert session.done

    def test_requires_start(self, linear_observations):
        series, _ = encode(linear_observations)
        session = TrainingSession(ConstantRegressor(), build_dataset(series))
        with pytest.raises(RuntimeError):
            session.result()
