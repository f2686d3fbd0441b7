"""Seeded sampling primitives shared by all generators."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import numpy as np
from numpy.random import Generator


def cumulative_weighted_choice(
    rng: Generator,
    weights: Sequence[float] | np.ndarray,
    size: int = 1,
) -> np.ndarray:
    """Draw indices with probability proportional to ``weights``.

    Uses a prefix sum and one uniform draw per sample. Each draw ``u`` lies in
    ``(0, total]`` and selects the first index whose cumulative weight is
    ``>= u``, so zero-weight entries are never chosen and results are fully
    determined by the generator state. Draws are independent: the same index
    may be returned any number of times.

    Args:
        rng: Numpy Generator to draw from.
        weights: Non-negative weights, at least one positive.
        size: Number of indices to draw.

    Returns:
        Integer array of length ``size``.

    Raises:
        ValueError: If weights are empty, negative, non-finite or all zero.
    """
    w = np.asarray(weights, dtype=np.float64)
    if w.ndim != 1 or len(w) == 0:
        raise ValueError("weights must be a non-empty 1-D sequence")
    if not np.all(np.isfinite(w)):
        raise ValueError("weights must be finite")
    if np.any(w < 0):
        raise ValueError("weights must be non-negative")

    cumulative = np.cumsum(w)
    total = cumulative[-1]
    if total <= 0:
        raise ValueError("at least one weight must be positive")

    draws = total * (1.0 - rng.random(size))
    indices = np.searchsorted(cumulative, draws, side="left")
    return np.minimum(indices, len(w) - 1)


def sample_categorical(
    rng: Generator,
    categories: Sequence[Any],
    weights: Sequence[float] | None = None,
    size: int = 1,
) -> Any | list[Any]:
    """Sample from a categorical distribution with optional weights.

    Returns:
        Single value if size=1, otherwise list of values.
    """
    if len(categories) == 0:
        raise ValueError("categories must not be empty")
    if weights is None:
        indices = rng.integers(0, len(categories), size=size)
    else:
        indices = cumulative_weighted_choice(rng, weights, size=size)

    if size == 1:
        return categories[int(indices[0])]
    return [categories[int(i)] for i in indices]


def uniform(rng: Generator, low: float, high: float) -> float:
    """Single float drawn uniformly from ``[low, high)``."""
    return float(rng.uniform(low, high))


def randint(rng: Generator, low: int, high: int) -> int:
    """Single integer drawn uniformly from ``[low, high]`` (both inclusive)."""
    return int(rng.integers(low, high + 1))
