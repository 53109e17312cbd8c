"""
Autoregressive multi-step forecasting.

For each product the most recent window of encoded points seeds a rollout.
Every step asks the trained model for the next normalized quantity, records
its denormalized value, and feeds the raw normalized prediction back into
the window. Steps within a product are strictly sequential; products are
independent and may be forecast in parallel.

Failures are isolated per product: a product with too little history or a
failing prediction is reported in ForecastReport.failures while the others
complete.
"""

import logging
import math
import multiprocessing
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from ..data.decoding import denormalize, future_period_labels, label_for_month_index
from ..data.encoding import EncodedPoint, ProductKey, ScaleParameters
from ..data.windowing import group_by_product
from ..errors import InsufficientData, InsufficientHistory, PredictionFailure

logger = logging.getLogger(__name__)

_NUM_WORKERS = min(multiprocessing.cpu_count(), 8)


# =============================================================================
# RESULT CONTAINERS
# =============================================================================

@dataclass(frozen=True)
class ForecastPoint:
    """One forecast month."""
    period: str  # 'YYYY-MM'
    quantity: Union[int, float]


@dataclass(frozen=True)
class ForecastResult:
    """Forecast for one product."""
    product: ProductKey
    horizon: Tuple[ForecastPoint, ...]

    def __len__(self) -> int:
        return len(self.horizon)

    @property
    def quantities(self) -> List[Union[int, float]]:
        return [point.quantity for point in self.horizon]

    @property
    def periods(self) -> List[str]:
        return [point.period for point in self.horizon]


@dataclass(frozen=True)
class ProductFailure:
    """A product that could not be (fully) forecast."""
    product: ProductKey
    kind: str  # 'InsufficientHistory' or 'PredictionFailure'
    message: str
    completed_steps: int = 0


@dataclass
class ForecastReport:
    """Successful forecasts and per-product failures of one run."""
    results: List[ForecastResult] = field(default_factory=list)
    failures: List[ProductFailure] = field(default_factory=list)
    scale: Optional[ScaleParameters] = None

    @property
    def is_complete(self) -> bool:
        return not self.failures

    def get(self, product: ProductKey) -> Optional[ForecastResult]:
        for result in self.results:
            if result.product == product:
                return result
        return None

    def to_frame(self) -> pd.DataFrame:
        """Long-format table with columns product, period, quantity."""
        rows = [
            {"product": result.product, "period": point.period, "quantity": point.quantity}
            for result in self.results
            for point in result.horizon
        ]
        return pd.DataFrame(rows, columns=["product", "period", "quantity"])

    def summary(self) -> str:
        return f"{len(self.results)} products forecast, {len(self.failures)} failed"


# =============================================================================
# ROLLOUT STEP
# =============================================================================

@dataclass(frozen=True)
class RolloutState:
    """Immutable state threaded through the autoregressive loop."""
    window: Tuple[Tuple[float, float], ...]  # (month_index, normalized_quantity)
    last_month_index: int
    step: int = 0  # steps already taken

    def as_array(self) -> np.ndarray:
        return np.array(self.window, dtype=np.float32)


def forecast_step(
    state: RolloutState,
    model: Any,
    clip: bool = False
) -> Tuple[float, RolloutState]:
    """
    Take one autoregressive step.

    Parameters
    ----------
    state : RolloutState
        Current window and step counter.
    model : Any
        Object with predict(window) -> float.
    clip : bool
        Clip the prediction to [0, 1] before it is returned and fed back.

    Returns
    -------
    Tuple[float, RolloutState]
        Normalized prediction and the advanced state. The input state is
        left untouched.
    """
    prediction = float(model.predict(state.as_array()))
    if not math.isfinite(prediction):
        raise ValueError(f"model returned non-finite value {prediction}")
    if clip:
        prediction = min(max(prediction, 0.0), 1.0)

    step = state.step + 1
    window = state.window[1:] + ((float(state.last_month_index + step), prediction),)
    return prediction, RolloutState(window=window, last_month_index=state.last_month_index, step=step)


def seed_state(
    points: Sequence[EncodedPoint],
    window_size: int,
    last_month_index: int,
    product: ProductKey = None
) -> RolloutState:
    """
    Build the initial rollout state from a product's most recent points.

    Raises
    ------
    InsufficientHistory
        If fewer than `window_size` points are available.
    """
    if len(points) < window_size:
        raise InsufficientHistory(product, len(points), window_size)
    recent = points[len(points) - window_size:]
    return RolloutState(
        window=tuple((float(p.month_index), float(p.normalized_quantity)) for p in recent),
        last_month_index=last_month_index,
    )


# =============================================================================
# FORECAST DRIVER
# =============================================================================

def _forecast_product(
    model: Any,
    product: ProductKey,
    points: Sequence[EncodedPoint],
    scale: ScaleParameters,
    horizon: int,
    window_size: int,
    last_month_index: int,
    clip: bool
) -> Union[ForecastResult, ProductFailure]:
    try:
        state = seed_state(points, window_size, last_month_index, product)
    except InsufficientHistory as exc:
        logger.warning(str(exc))
        return ProductFailure(product, "InsufficientHistory", str(exc))

    labels = future_period_labels(scale, last_month_index, horizon)
    forecast_points = []
    for label in labels:
        try:
            prediction, state = forecast_step(state, model, clip=clip)
        except Exception as exc:
            failure = PredictionFailure(product, state.step + 1, str(exc))
            logger.warning(str(failure))
            return ProductFailure(product, "PredictionFailure", str(failure), completed_steps=state.step)
        forecast_points.append(ForecastPoint(period=label, quantity=denormalize(prediction, scale)))

    return ForecastResult(product=product, horizon=tuple(forecast_points))


def forecast(
    model: Any,
    series: Sequence[EncodedPoint],
    scale: ScaleParameters,
    horizon: int = 6,
    window_size: int = 6,
    clip: bool = False,
    parallel: bool = False,
    n_jobs: int = -1
) -> ForecastReport:
    """
    Forecast the next `horizon` months for every product in the series.

    Parameters
    ----------
    model : Any
        Trained model with predict(window) -> float, where window has shape
        (window_size, 2).
    series : Sequence[EncodedPoint]
        Encoded series from the same run as `scale`.
    scale : ScaleParameters
        Scale parameters of the run.
    horizon : int
        Number of future months per product.
    window_size : int
        Input window length the model was trained with.
    clip : bool
        Clip normalized predictions to [0, 1].
    parallel : bool
        Forecast products on a thread pool. Output order is unaffected.
    n_jobs : int
        Number of workers. -1 uses all available cores (capped at 8).

    Returns
    -------
    ForecastReport
        One ForecastResult per successful product, one ProductFailure per
        failed product, both in product first-seen order.

    Raises
    ------
    InsufficientData
        If the series is empty.
    """
    if not series:
        raise InsufficientData("Cannot forecast from an empty series")
    if horizon < 1:
        raise ValueError(f"horizon must be positive, got {horizon}")

    # Labels continue from the last month of the whole corpus
    last_month_index = max(p.month_index for p in series)
    groups = group_by_product(series)

    logger.info(
        f"Forecasting {horizon} months for {len(groups)} products "
        f"after {label_for_month_index(scale.start_period, last_month_index - 1)}"
    )

    def run(item):
        code, points = item
        return _forecast_product(
            model, scale.product_for_code(code), points, scale,
            horizon, window_size, last_month_index, clip
        )

    n_workers = _NUM_WORKERS if n_jobs == -1 else max(1, min(n_jobs, _NUM_WORKERS))
    if parallel and len(groups) > 1 and n_workers > 1:
        with ThreadPoolExecutor(max_workers=n_workers) as executor:
            outcomes = list(executor.map(run, groups.items()))
    else:
        outcomes = [run(item) for item in groups.items()]

    report = ForecastReport(scale=scale)
    for outcome in outcomes:
        if isinstance(outcome, ForecastResult):
            report.results.append(outcome)
        else:
            report.failures.append(outcome)

    logger.info(f"Forecast complete: {report.summary()}")
    return report


def constant_forecast(
    products: Sequence[ProductKey],
    value: Union[int, float],
    last_period: Any,
    horizon: int = 6,
    scale: Optional[ScaleParameters] = None
) -> ForecastReport:
    """
    Forecast a constant value for every product.

    Used when every historical quantity is identical, so there is nothing to
    normalize or learn.

    Parameters
    ----------
    products : Sequence[ProductKey]
        Products in the order they should be reported.
    value : int or float
        The constant quantity.
    last_period : Any
        Last observed calendar month; forecasts start the month after.
    horizon : int
        Number of future months per product.
    scale : ScaleParameters, optional
        Degenerate scale (min == max) of the run, carried on the report.
    """
    labels = [label_for_month_index(last_period, step) for step in range(1, horizon + 1)]
    report = ForecastReport(results=[
        ForecastResult(
            product=product,
            horizon=tuple(ForecastPoint(period=label, quantity=value) for label in labels)
        )
        for product in products
    ], scale=scale)
    logger.info(f"Constant forecast of {value} for {len(products)} products")
    return report
