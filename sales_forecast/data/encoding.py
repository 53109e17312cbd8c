"""
Encoding of raw sales observations into a numeric feature space.

This module handles:
- Parsing observation periods and converting them to relative month indices
- Assigning integer codes to product keys
- Min-max normalization of quantities over the full corpus

Product codes for string labels are assigned in first-seen order. The mapping
is therefore NOT stable across different orderings of the same input; it is
built once per run and carried in ScaleParameters so that training and
inference always agree.
"""

import logging
import math
import numbers
from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from ..errors import DegenerateRange, InsufficientData, InvalidPeriod, InvalidQuantity

logger = logging.getLogger(__name__)

ProductKey = Hashable


# =============================================================================
# DATA CLASSES FOR TYPE SAFETY
# =============================================================================

@dataclass(frozen=True)
class Observation:
    """A single dated, per-product sales record."""
    period: Any  # date-like or 'YYYY-MM[-DD[ HH:MM:SS]]'
    product: ProductKey
    quantity: float


@dataclass(frozen=True)
class EncodedPoint:
    """Numeric representation of one observation."""
    month_index: int  # 1 = calendar month of ScaleParameters.start_period
    product_code: int
    normalized_quantity: float


@dataclass(frozen=True)
class ScaleParameters:
    """
    Corpus-wide encoding state, computed once per run and never mutated.

    Every consumer (windowing, forecasting, decoding) must receive the
    instance produced by the same encode() call.
    """
    min_quantity: float
    max_quantity: float
    start_period: pd.Period
    product_index: Dict[ProductKey, int] = field(default_factory=dict, hash=False)
    integral: bool = True

    @property
    def quantity_range(self) -> float:
        return self.max_quantity - self.min_quantity

    @property
    def is_degenerate(self) -> bool:
        return self.max_quantity == self.min_quantity

    def product_for_code(self, code: int) -> ProductKey:
        """Return the product key that was assigned the given code."""
        for product, product_code in self.product_index.items():
            if product_code == code:
                return product
        raise KeyError(f"No product with code {code}")


# =============================================================================
# PERIODS
# =============================================================================

def parse_period(value: Any, position: Optional[int] = None) -> pd.Timestamp:
    """
    Parse an observation period into a timestamp.

    Parameters
    ----------
    value : Any
        A date-like object, a pandas Period, or a string such as
        '2024-03', '2024-03-15' or '2024-03-15 10:30:00'.
    position : int, optional
        Row position, used in the error message.

    Returns
    -------
    pd.Timestamp
        Parsed timestamp.

    Raises
    ------
    InvalidPeriod
        If the value cannot be interpreted as a calendar date.
    """
    if isinstance(value, pd.Period):
        return value.to_timestamp()
    # Bare numbers would be read as epoch offsets
    if value is None or isinstance(value, (bool, numbers.Number)):
        raise InvalidPeriod(value, position)
    try:
        if isinstance(value, str):
            # Strict, so '2024-13-01' is not read day-first
            timestamp = pd.to_datetime(value.strip(), format="ISO8601")
        else:
            timestamp = pd.Timestamp(value)
    except (ValueError, TypeError) as exc:
        raise InvalidPeriod(value, position) from exc
    if pd.isna(timestamp):
        raise InvalidPeriod(value, position)
    return timestamp


def month_index(timestamp: pd.Timestamp, start_period: pd.Period) -> int:
    """Whole-month offset of a timestamp from the start period, starting at 1."""
    return (
        12 * (timestamp.year - start_period.year)
        + (timestamp.month - start_period.month)
        + 1
    )


def period_bounds(observations: Sequence[Observation]) -> Tuple[pd.Period, pd.Period]:
    """Return the earliest and latest calendar month among the observations."""
    if not observations:
        raise InsufficientData("No observations to encode")
    timestamps = [parse_period(obs.period, i) for i, obs in enumerate(observations)]
    return min(timestamps).to_period("M"), max(timestamps).to_period("M")


# =============================================================================
# PRODUCTS
# =============================================================================

def _numeric_code(product: ProductKey) -> Optional[int]:
    """Return the product key itself if it is an integral number."""
    if isinstance(product, bool):
        return None
    if isinstance(product, numbers.Integral):
        return int(product)
    if isinstance(product, numbers.Real) and float(product).is_integer():
        return int(product)
    return None


def build_product_index(products: Iterable[ProductKey]) -> Dict[ProductKey, int]:
    """
    Map product keys to integer codes.

    Integral numeric keys keep their own value as code. Other keys are
    treated as categorical labels and numbered 0, 1, 2, ... in first-seen
    order. When a label code would collide with a numeric key, label codes
    start after the largest numeric key instead.

    Parameters
    ----------
    products : Iterable[ProductKey]
        Product keys in input order (duplicates allowed).

    Returns
    -------
    Dict[ProductKey, int]
        Mapping in first-seen order.
    """
    ordered: List[ProductKey] = []
    seen = set()
    for product in products:
        if product not in seen:
            seen.add(product)
            ordered.append(product)

    numeric = {p: _numeric_code(p) for p in ordered if _numeric_code(p) is not None}
    labels = [p for p in ordered if p not in numeric]

    offset = 0
    numeric_codes = set(numeric.values())
    if any(code in numeric_codes for code in range(len(labels))):
        offset = max(numeric_codes) + 1

    label_codes = {label: i + offset for i, label in enumerate(labels)}
    return {p: numeric[p] if p in numeric else label_codes[p] for p in ordered}


# =============================================================================
# QUANTITIES
# =============================================================================

def _check_quantity(value: Any, position: int) -> float:
    try:
        quantity = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidQuantity(value, position) from exc
    if not math.isfinite(quantity) or quantity < 0:
        raise InvalidQuantity(value, position)
    return quantity


def normalize(
    value: Union[float, np.ndarray, Sequence[float]],
    scale: ScaleParameters
) -> Union[float, np.ndarray]:
    """
    Rescale quantities to [0, 1] using the corpus min and max.

    Raises
    ------
    DegenerateRange
        If the scale's min and max are equal.
    """
    if scale.is_degenerate:
        raise DegenerateRange(scale.min_quantity)
    values = (np.asarray(value, dtype=float) - scale.min_quantity) / scale.quantity_range
    if values.ndim == 0:
        return float(values)
    return values


# =============================================================================
# ENCODER
# =============================================================================

def encode(
    observations: Sequence[Observation]
) -> Tuple[List[EncodedPoint], ScaleParameters]:
    """
    Encode observations into month indices, product codes and normalized
    quantities.

    Parameters
    ----------
    observations : Sequence[Observation]
        Raw observations. Their order is preserved in the encoded series.

    Returns
    -------
    Tuple[List[EncodedPoint], ScaleParameters]
        The encoded series and the scale parameters needed to invert it.

    Raises
    ------
    InsufficientData
        If there are no observations.
    InvalidPeriod
        If any period cannot be parsed.
    InvalidQuantity
        If any quantity is negative or not a finite number.
    DegenerateRange
        If every quantity is identical.
    """
    if not observations:
        raise InsufficientData("No observations to encode")

    timestamps = [parse_period(obs.period, i) for i, obs in enumerate(observations)]
    quantities = np.array(
        [_check_quantity(obs.quantity, i) for i, obs in enumerate(observations)]
    )

    start_period = min(timestamps).to_period("M")
    min_quantity = float(quantities.min())
    max_quantity = float(quantities.max())
    if max_quantity == min_quantity:
        raise DegenerateRange(min_quantity)

    scale = ScaleParameters(
        min_quantity=min_quantity,
        max_quantity=max_quantity,
        start_period=start_period,
        product_index=build_product_index(obs.product for obs in observations),
        integral=bool(np.all(np.mod(quantities, 1) == 0)),
    )

    normalized = normalize(quantities, scale)
    series = [
        EncodedPoint(
            month_index=month_index(ts, start_period),
            product_code=scale.product_index[obs.product],
            normalized_quantity=float(q),
        )
        for obs, ts, q in zip(observations, timestamps, normalized)
    ]

    logger.info(
        f"Encoded {len(series)} observations: {len(scale.product_index)} products, "
        f"start={start_period}, quantity range=[{min_quantity}, {max_quantity}]"
    )
    return series, scale
