"""
Small numeric helpers shared by the extractors and the comparison engine.

Everything here is NaN-safe: degenerate input returns a documented
neutral value instead of propagating NaN into a score.
"""

from typing import Callable, List, Optional, Sequence, Tuple, TypeVar

import numpy as np

T = TypeVar('T')
U = TypeVar('U')


def correlation(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Pearson correlation of two equal-length sequences, in [-1, 1].

    Returns 0.0 for empty or mismatched input. When either side has zero
    variance, returns 1.0 if the sequences are identical, else 0.0.
    """
    x = np.asarray(a, dtype=np.float64)
    y = np.asarray(b, dtype=np.float64)

    if x.size == 0 or x.shape != y.shape:
        return 0.0
    if not (np.all(np.isfinite(x)) and np.all(np.isfinite(y))):
        return 0.0

    dx = x - x.mean()
    dy = y - y.mean()
    denominator = np.sqrt(np.sum(dx * dx) * np.sum(dy * dy))

    if denominator == 0:
        return 1.0 if np.array_equal(x, y) else 0.0

    r = float(np.sum(dx * dy) / denominator)
    return clamp(r, -1.0, 1.0)


def correlation_to_score(r: float) -> float:
    """Map a correlation in [-1, 1] to a score in [0, 100]."""
    return clamp((r + 1.0) * 50.0, 0.0, 100.0)


def zscore(values: Sequence[float]) -> np.ndarray:
    """Zero-mean unit-variance copy; all zeros when the input is flat."""
    x = np.asarray(values, dtype=np.float64)
    if x.size == 0:
        return x
    std = x.std()
    if std == 0 or not np.isfinite(std):
        return np.zeros_like(x)
    return (x - x.mean()) / std


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]; NaN clamps to low."""
    if value != value:  # NaN
        return low
    return max(low, min(high, value))


def find_nearest(
    target_time: float,
    items: Sequence[T],
    time_of: Callable[[T], float],
    tolerance: Optional[float] = None,
) -> Optional[T]:
    """
    Item whose time is closest to target_time.

    Linear scan; ties keep the earliest item. With a tolerance, items
    further than tolerance seconds away are ignored.
    """
    closest: Optional[T] = None
    min_distance = float('inf')

    for item in items:
        distance = abs(time_of(item) - target_time)
        if tolerance is not None and distance > tolerance:
            continue
        if distance < min_distance:
            min_distance = distance
            closest = item

    return closest


def match_by_time(
    reference: Sequence[T],
    candidates: Sequence[U],
    time_of_reference: Callable[[T], float],
    time_of_candidate: Callable[[U], float],
    tolerance: Optional[float] = None,
) -> List[Tuple[T, U]]:
    """Pair each reference item with its nearest candidate (unmatched are dropped)."""
    pairs: List[Tuple[T, U]] = []
    for item in reference:
        match = find_nearest(time_of_reference(item), candidates, time_of_candidate, tolerance)
        if match is not None:
            pairs.append((item, match))
    return pairs
