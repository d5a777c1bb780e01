"""Small ranking helpers shared by the runtime and plan analyzers."""

import heapq
from typing import Callable, Iterable


def top_k(items: Iterable, key: Callable, k: int = 5) -> list:
    """Return the ``k`` items with the largest ``key``, descending.

    Ties keep their input order. The returned list holds the original
    objects, not copies.
    """
    if k <= 0:
        return []
    return heapq.nlargest(k, items, key=key)


def safe_div(numerator: float, denominator: float, default: float = 0.0) -> float:
    """Divide, returning ``default`` when the denominator is zero."""
    if not denominator:
        return default
    return numerator / denominator


def mean_of_positive(values: Iterable) -> float:
    """Mean over the strictly positive values, 0.0 when there are none."""
    positives = [v for v in values if v > 0]
    return safe_div(sum(positives), len(positives))
