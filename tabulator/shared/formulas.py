"""
Score arithmetic shared by the rank calculator and the breakdown.

All helpers are pure and order-independent: sums go through math.fsum so
the result does not depend on the iteration order of the input.
"""

import math
import statistics
from decimal import Decimal, ROUND_HALF_UP
from typing import Sequence

from .constants import DEFAULT_TRIM_PERCENTAGE, SCORE_DECIMALS

_QUANTUM = Decimal(1).scaleb(-SCORE_DECIMALS)


def round_score(value: float) -> float:
    """
    Round to 2 decimals, half away from zero.

    Goes through the shortest repr of the float so that 2.675 rounds to
    2.68 (as written) rather than 2.67 (its binary value).

    16.505 → 16.51
    -0.125 → -0.13
    """
    return float(Decimal(repr(float(value))).quantize(_QUANTUM, rounding=ROUND_HALF_UP))


def mean(values: Sequence[float]) -> float:
    """Arithmetic mean; 0.0 for an empty sequence."""
    if not values:
        return 0.0
    return math.fsum(values) / len(values)


def median(values: Sequence[float]) -> float:
    """Median; 0.0 for an empty sequence."""
    if not values:
        return 0.0
    return statistics.median(values)


def trimmed_mean(values: Sequence[float], trim_percentage: float = DEFAULT_TRIM_PERCENTAGE) -> float:
    """
    Mean after dropping the extremes.

    trim_percentage is the share of all values removed, split evenly between
    both ends. With 2 or fewer values, or when nothing would be trimmed,
    this is the plain mean.

    [1, 5, 6, 7, 20] at 40% → drops 1 and 20 → 6.0
    """
    if len(values) <= 2:
        return mean(values)

    trim_count = int(math.floor((trim_percentage / 100) * len(values) / 2))
    if trim_count == 0:
        return mean(values)

    ordered = sorted(values)
    return mean(ordered[trim_count:len(ordered) - trim_count])
