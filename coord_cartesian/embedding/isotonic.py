"""Monotone (isotonic) regression for nonmetric scaling.

Pool-adjacent-violators: fit the non-decreasing sequence closest in least
squares to the input. Disparities are the fitted values of the current
configuration distances, ordered by the input distances.
"""

from typing import Optional

import numpy as np


def monotone_regression(values: np.ndarray, weights: Optional[np.ndarray] = None) -> np.ndarray:
    """Least-squares non-decreasing fit of values (pool-adjacent-violators).

    Args:
        values: 1-D sequence, already in the order that must be monotone
        weights: Optional positive weights (default: all 1)

    Returns:
        Fitted non-decreasing array, same length as values.

    Example:
        monotone_regression([1, 3, 2, 4])  # -> [1.0, 2.5, 2.5, 4.0]
    """
    y = np.asarray(values, dtype=np.float64)
    if y.ndim != 1:
        raise ValueError(f"Expected a 1-D sequence, got shape {y.shape}")
    w = np.ones_like(y) if weights is None else np.asarray(weights, dtype=np.float64)
    if y.size == 0:
        return y.copy()

    # Each block: mean, total weight, number of members
    means: list[float] = []
    totals: list[float] = []
    counts: list[int] = []
    for value, weight in zip(y, w):
        means.append(float(value))
        totals.append(float(weight))
        counts.append(1)
        while len(means) > 1 and means[-2] > means[-1]:
            weight_sum = totals[-2] + totals[-1]
            merged = (means[-2] * totals[-2] + means[-1] * totals[-1]) / weight_sum
            count = counts[-2] + counts[-1]
            del means[-1], totals[-1], counts[-1]
            means[-1], totals[-1], counts[-1] = merged, weight_sum, count

    return np.repeat(np.asarray(means), counts)


def disparities(dissimilarities: np.ndarray, distances: np.ndarray) -> np.ndarray:
    """Disparities for a nonmetric fit.

    Distances are ordered by dissimilarity; tied dissimilarities are ordered by
    their current distance, so ties impose no constraint between each other.

    Args:
        dissimilarities: Condensed input dissimilarities
        distances: Condensed distances of the current configuration

    Returns:
        Condensed disparities, aligned with the inputs.
    """
    delta = np.asarray(dissimilarities, dtype=np.float64)
    dist = np.asarray(distances, dtype=np.float64)
    if delta.shape != dist.shape:
        raise ValueError(f"Shape mismatch: {delta.shape} vs {dist.shape}")

    order = np.lexsort((dist, delta))
    fitted = np.empty_like(dist)
    fitted[order] = monotone_regression(dist[order])
    return fitted
