"""
Sliding-window dataset construction for sequence models.

Two strategies are available and must be chosen explicitly:
- 'global': slide across the whole encoded series in its given order. Windows
  may straddle two products' observations.
- 'per_product': slide inside each product's own subsequence, so every window
  and its target belong to a single product.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Sequence, Tuple

import numpy as np

from ..errors import InsufficientData
from .encoding import EncodedPoint

logger = logging.getLogger(__name__)

WINDOWING_STRATEGIES = ("global", "per_product")


@dataclass(frozen=True)
class TrainingPair:
    """One supervised example: W (month_index, product_code) rows and a target."""
    window: Tuple[Tuple[int, int], ...]
    target: float


@dataclass
class TrainingDataset:
    """Container for windowed training data."""
    inputs: np.ndarray   # shape (n_samples, window_size, 2)
    targets: np.ndarray  # shape (n_samples,)
    window_size: int
    strategy: str

    def __len__(self) -> int:
        return len(self.targets)

    def pairs(self) -> Iterator[TrainingPair]:
        for window, target in zip(self.inputs, self.targets):
            yield TrainingPair(
                window=tuple((int(month), int(code)) for month, code in window),
                target=float(target),
            )

    def summary(self) -> str:
        return (
            f"{len(self)} windows of size {self.window_size} "
            f"({self.strategy} strategy)"
        )


def create_windows(
    points: Sequence[EncodedPoint],
    window_size: int
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Slide a window over a sequence of encoded points.

    Parameters
    ----------
    points : Sequence[EncodedPoint]
        Encoded points in the order they should be windowed.
    window_size : int
        Number of points per input window.

    Returns
    -------
    Tuple[np.ndarray, np.ndarray]
        X: shape (max(0, len(points) - window_size), window_size, 2)
        y: shape (max(0, len(points) - window_size),)
    """
    features = np.array(
        [[p.month_index, p.product_code] for p in points], dtype=np.float32
    ).reshape(-1, 2)
    targets = np.array([p.normalized_quantity for p in points], dtype=np.float32)

    X, y = [], []
    for i in range(len(points) - window_size):
        X.append(features[i:i + window_size])
        y.append(targets[i + window_size])

    if not X:
        return np.empty((0, window_size, 2), dtype=np.float32), np.empty(0, dtype=np.float32)
    return np.stack(X), np.array(y, dtype=np.float32)


def group_by_product(series: Sequence[EncodedPoint]) -> Dict[int, List[EncodedPoint]]:
    """Split a series into per-product subsequences, keeping relative order."""
    groups: Dict[int, List[EncodedPoint]] = {}
    for point in series:
        groups.setdefault(point.product_code, []).append(point)
    return groups


def build_dataset(
    series: Sequence[EncodedPoint],
    window_size: int = 6,
    strategy: str = "global"
) -> TrainingDataset:
    """
    Build the supervised training dataset.

    Parameters
    ----------
    series : Sequence[EncodedPoint]
        Encoded series as returned by encode().
    window_size : int
        Input window length.
    strategy : str
        'global' or 'per_product'.

    Returns
    -------
    TrainingDataset
        Windows and targets.

    Raises
    ------
    InsufficientData
        If no complete window plus target can be formed.
    """
    if strategy not in WINDOWING_STRATEGIES:
        raise ValueError(
            f"Unknown windowing strategy {strategy!r}; "
            f"expected one of {WINDOWING_STRATEGIES}"
        )
    if window_size < 1:
        raise ValueError(f"window_size must be positive, got {window_size}")

    if strategy == "global":
        if len(series) <= window_size:
            raise InsufficientData(
                f"Series has {len(series)} points; more than {window_size} required"
            )
        X, y = create_windows(series, window_size)
    else:
        parts = [create_windows(points, window_size) for points in group_by_product(series).values()]
        if parts:
            X = np.concatenate([part[0] for part in parts])
            y = np.concatenate([part[1] for part in parts])
        else:
            X, y = create_windows(series, window_size)
        if len(y) == 0:
            raise InsufficientData(
                f"No product has more than {window_size} points"
            )

    dataset = TrainingDataset(inputs=X, targets=y, window_size=window_size, strategy=strategy)
    logger.info(f"Built training dataset: {dataset.summary()}")
    return dataset
