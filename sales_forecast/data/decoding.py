"""
Decoding of model outputs back to original units and calendar labels.
"""

from typing import Any, List, Union

import numpy as np
import pandas as pd

from .encoding import ScaleParameters, parse_period


def denormalize(value: float, scale: ScaleParameters) -> Union[int, float]:
    """
    Map a normalized value back to the original quantity scale.

    Results are rounded to whole numbers when every input quantity was
    integral.

    Parameters
    ----------
    value : float
        Normalized quantity (usually, but not necessarily, in [0, 1]).
    scale : ScaleParameters
        Scale parameters of the run that produced the value.

    Returns
    -------
    int or float
        Quantity in original units.
    """
    quantity = float(value) * scale.quantity_range + scale.min_quantity
    if scale.integral:
        # Half-up, like whole-unit counts are usually rounded
        return int(np.floor(quantity + 0.5))
    return quantity


def _as_month(base: Any) -> pd.Period:
    if isinstance(base, pd.Period):
        return base.asfreq("M")
    return parse_period(base).to_period("M")


def label_for_month_index(base_calendar_month: Any, offset: int) -> str:
    """
    Advance a calendar month by a whole number of months.

    Parameters
    ----------
    base_calendar_month : Any
        'YYYY-MM' string, pandas Period or any date-like value.
    offset : int
        Number of months to move forward (negative moves backward).

    Returns
    -------
    str
        Label formatted as 'YYYY-MM'.

    Examples
    --------
    >>> label_for_month_index("2024-11", 2)
    '2025-01'
    """
    return (_as_month(base_calendar_month) + int(offset)).strftime("%Y-%m")


def period_label(scale: ScaleParameters, month_index: int) -> str:
    """Calendar label of an encoded month index (1 = scale.start_period)."""
    return label_for_month_index(scale.start_period, month_index - 1)


def future_period_labels(
    scale: ScaleParameters,
    last_month_index: int,
    horizon: int
) -> List[str]:
    """Labels of the `horizon` months following `last_month_index`."""
    return [period_label(scale, last_month_index + step) for step in range(1, horizon + 1)]
