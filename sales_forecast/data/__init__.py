"""Data loading, encoding, windowing and decoding module."""

from .encoding import (
    Observation,
    EncodedPoint,
    ScaleParameters,
    parse_period,
    month_index,
    period_bounds,
    build_product_index,
    normalize,
    encode,
)
from .windowing import (
    TrainingPair,
    TrainingDataset,
    WINDOWING_STRATEGIES,
    create_windows,
    group_by_product,
    build_dataset,
)
from .decoding import (
    denormalize,
    label_for_month_index,
    period_label,
    future_period_labels,
)
from .loader import (
    load_sales_csv,
    validate_sales_frame,
    observations_from_frame,
    load_observations,
)

__all__ = [
    # Data structures
    "Observation",
    "EncodedPoint",
    "ScaleParameters",
    "TrainingPair",
    "TrainingDataset",
    "WINDOWING_STRATEGIES",
    # Encoding
    "parse_period",
    "month_index",
    "period_bounds",
    "build_product_index",
    "normalize",
    "encode",
    # Windowing
    "create_windows",
    "group_by_product",
    "build_dataset",
    # Decoding
    "denormalize",
    "label_for_month_index",
    "period_label",
    "future_period_labels",
    # Loading
    "load_sales_csv",
    "validate_sales_frame",
    "observations_from_frame",
    "load_observations",
]
