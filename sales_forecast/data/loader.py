"""
Loading and validation of raw sales tables.

This module handles:
- Reading a CSV of sales records
- Normalizing column names and checking required columns
- Dropping rows with a malformed date or quantity (with a warning)
- Converting the cleaned table into Observation records
"""

import logging
import re
from typing import List, Union

import numpy as np
import pandas as pd

from ..errors import MissingColumns, NoValidData
from .encoding import Observation

logger = logging.getLogger(__name__)

DATE_COLUMN = "sales_date"
QUANTITY_COLUMN = "quantity_sold"
PRODUCT_COLUMN = "product_description"
REQUIRED_COLUMNS = [DATE_COLUMN, QUANTITY_COLUMN]

SALES_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}(-\d{2})?(\s\d{2}:\d{2}:\d{2})?$")


def load_sales_csv(filepath: str) -> pd.DataFrame:
    """
    Load and validate sales data from CSV.

    Parameters
    ----------
    filepath : str
        Path to the CSV file.

    Returns
    -------
    pd.DataFrame
        Validated dataframe (see validate_sales_frame).
    """
    logger.info(f"Loading data from {filepath}")
    df = pd.read_csv(filepath, skip_blank_lines=True)
    logger.info(f"Loaded {len(df)} records")
    return validate_sales_frame(df)


def validate_sales_frame(df: pd.DataFrame) -> pd.DataFrame:
    """
    Validate a raw sales table.

    Column names are trimmed and lower-cased. Rows whose sales_date does not
    match YYYY-MM[-DD[ HH:MM:SS]] or whose quantity_sold is not a
    non-negative number are dropped with a warning.

    Parameters
    ----------
    df : pd.DataFrame
        Raw table.

    Returns
    -------
    pd.DataFrame
        Table with columns sales_date (str), quantity_sold (float) and,
        when present, product_description. Input row order is preserved.

    Raises
    ------
    MissingColumns
        If a required column is absent.
    NoValidData
        If every row is dropped.
    """
    df = df.rename(columns=lambda c: str(c).strip().lower())
    missing = [col for col in REQUIRED_COLUMNS if col not in df.columns]
    if missing:
        raise MissingColumns(missing)

    columns = REQUIRED_COLUMNS + ([PRODUCT_COLUMN] if PRODUCT_COLUMN in df.columns else [])
    df = df[columns].copy()

    dates = df[DATE_COLUMN].astype(str).str.strip()
    valid_date = dates.str.match(SALES_DATE_PATTERN.pattern) & df[DATE_COLUMN].notna()
    quantities = pd.to_numeric(df[QUANTITY_COLUMN], errors="coerce")
    valid_quantity = quantities.notna() & np.isfinite(quantities) & (quantities >= 0)

    for position in np.flatnonzero(~valid_date.to_numpy()):
        logger.warning(f"Row {position}: invalid sales_date {df[DATE_COLUMN].iloc[position]!r}")
    for position in np.flatnonzero((valid_date & ~valid_quantity).to_numpy()):
        logger.warning(f"Row {position}: invalid quantity_sold {df[QUANTITY_COLUMN].iloc[position]!r}")

    keep = valid_date & valid_quantity
    df[DATE_COLUMN] = dates
    df[QUANTITY_COLUMN] = quantities
    df = df[keep].reset_index(drop=True)

    if df.empty:
        raise NoValidData("No valid data found in the input table")

    dropped = int((~keep).sum())
    if dropped:
        logger.warning(f"Dropped {dropped} invalid rows, {len(df)} remain")
    return df


def _product_key(value):
    if value is None or (isinstance(value, float) and np.isnan(value)):
        return None
    if isinstance(value, np.generic):
        value = value.item()
    # A numeric column with empty cells is read as float64
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def observations_from_frame(df: pd.DataFrame) -> List[Observation]:
    """
    Convert a validated sales table into observations.

    Rows without a product column (or with an empty product cell) belong to
    a single unnamed product, keyed None.
    """
    products = df[PRODUCT_COLUMN] if PRODUCT_COLUMN in df.columns else [None] * len(df)
    return [
        Observation(period=period, product=_product_key(product), quantity=float(quantity))
        for period, product, quantity in zip(df[DATE_COLUMN], products, df[QUANTITY_COLUMN])
    ]


def load_observations(source: Union[str, pd.DataFrame]) -> List[Observation]:
    """Load observations from a CSV path or an already-read dataframe."""
    if isinstance(source, pd.DataFrame):
        df = validate_sales_frame(source)
    else:
        df = load_sales_csv(source)
    return observations_from_frame(df)
