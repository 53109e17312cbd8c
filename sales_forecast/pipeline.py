"""
End-to-end forecasting pipeline.

observations -> encode -> build_dataset -> train -> forecast -> ForecastReport
"""

import logging
from typing import Optional, Sequence, Union

import pandas as pd

from configs import ExperimentConfig, get_default_config
from .data.encoding import (
    Observation,
    ScaleParameters,
    build_product_index,
    encode,
    period_bounds,
)
from .data.loader import load_observations
from .data.windowing import build_dataset
from .errors import DegenerateRange
from .forecasting.driver import ForecastReport, constant_forecast, forecast
from .models.base import BaseSequenceRegressor, CancellationToken, ProgressCallback
from .models.deep_learning import LSTMRegressor
from .models.training import train_regressor

logger = logging.getLogger(__name__)


def build_regressor(config: ExperimentConfig) -> LSTMRegressor:
    """Create the default LSTM regressor from a configuration."""
    lstm = config.lstm
    return LSTMRegressor(
        window_size=config.data.window_size,
        hidden_size=lstm.hidden_size,
        dense_size=lstm.dense_size,
        num_layers=lstm.num_layers,
        dropout=lstm.dropout,
        learning_rate=lstm.learning_rate,
        epochs=lstm.epochs,
        batch_size=lstm.batch_size,
        validation_split=lstm.validation_split,
        shuffle=lstm.shuffle,
        random_state=config.random_seed,
        device=config.device
    )


def run_forecast(
    observations: Union[Sequence[Observation], pd.DataFrame],
    config: Optional[ExperimentConfig] = None,
    regressor: Optional[BaseSequenceRegressor] = None,
    progress_callback: Optional[ProgressCallback] = None,
    cancel_token: Optional[CancellationToken] = None
) -> ForecastReport:
    """
    Run the full pipeline on a set of observations.

    Parameters
    ----------
    observations : Sequence[Observation] or pd.DataFrame
        Sales records. A dataframe is validated first (bad rows dropped).
    config : ExperimentConfig, optional
        Pipeline configuration. Defaults to get_default_config().
    regressor : BaseSequenceRegressor, optional
        Untrained regressor. Defaults to an LSTMRegressor built from config.
    progress_callback : callable, optional
        Receives a TrainingProgress per epoch.
    cancel_token : CancellationToken, optional
        Lets the caller abandon training.

    Returns
    -------
    ForecastReport
        Forecasts per product plus per-product failures.

    Raises
    ------
    InvalidPeriod, InvalidQuantity, InsufficientData
        Corpus-wide preprocessing errors.
    TrainingFailure, TrainingCancelled
        If training did not complete.
    """
    config = config or get_default_config()
    if isinstance(observations, pd.DataFrame):
        observations = load_observations(observations)

    window_size = config.data.window_size
    horizon = config.forecast.horizon

    logger.info("=" * 70)
    logger.info(f"SALES FORECAST: {len(observations)} observations, "
                f"window_size={window_size}, horizon={horizon}")
    logger.info("=" * 70)

    try:
        series, scale = encode(observations)
    except DegenerateRange as exc:
        logger.warning(f"{exc}; forecasting the constant value for every product")
        first_period, last_period = period_bounds(observations)
        product_index = build_product_index(obs.product for obs in observations)
        integral = float(exc.value).is_integer()
        scale = ScaleParameters(
            min_quantity=float(exc.value),
            max_quantity=float(exc.value),
            start_period=first_period,
            product_index=product_index,
            integral=integral
        )
        value = int(exc.value) if integral else exc.value
        return constant_forecast(list(product_index), value, last_period, horizon, scale=scale)

    dataset = build_dataset(series, window_size=window_size, strategy=config.data.windowing)

    if regressor is None:
        regressor = build_regressor(config)
    model = train_regressor(
        regressor,
        dataset,
        progress_callback=progress_callback,
        cancel_token=cancel_token
    )

    return forecast(
        model,
        series,
        scale,
        horizon=horizon,
        window_size=window_size,
        clip=config.forecast.clip,
        parallel=config.forecast.parallel,
        n_jobs=config.forecast.n_jobs
    )
