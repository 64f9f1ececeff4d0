"""
Regression Utilities

Small numeric helpers shared by every learner:
- Ordinary least-squares line fit over (x, y) samples
- Bucketed-average curve construction
- Mean / population standard deviation

All functions are deterministic for identical input order and have no
side effects.
"""

import math
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from services.response_curve import ResponseCurve, CurvePoint


@dataclass(frozen=True)
class RegressionResult:
    slope: float
    intercept: float

    @property
    def has_trend(self) -> bool:
        return not (self.slope == 0.0 and self.intercept == 0.0)


NO_TREND = RegressionResult(slope=0.0, intercept=0.0)


def linear_regression(points: Sequence[Tuple[float, float]]) -> RegressionResult:
    """
    Least-squares fit y = slope * x + intercept.

    Fewer than 2 points, or no spread in x, returns (0, 0), which callers
    treat as "no learnable trend".
    """
    n = len(points)
    if n < 2:
        return NO_TREND

    sum_x = sum(x for x, _ in points)
    sum_y = sum(y for _, y in points)
    sum_xy = sum(x * y for x, y in points)
    sum_xx = sum(x * x for x, _ in points)

    denominator = n * sum_xx - sum_x * sum_x
    if denominator == 0:
        return NO_TREND

    slope = (n * sum_xy - sum_x * sum_y) / denominator
    intercept = (sum_y - slope * sum_x) / n
    return RegressionResult(slope=slope, intercept=intercept)


def bucket_of(value: float, bucket_width: float) -> float:
    """Nearest multiple of bucket_width, halves rounding up."""
    return math.floor(value / bucket_width + 0.5) * bucket_width


def bucket_average(points: Sequence[Tuple[float, float]], bucket_width: float) -> ResponseCurve:
    """
    Average y per x-bucket.

    Buckets are centered on multiples of bucket_width. Buckets with no
    samples are omitted, so the resulting curve is sparse.
    """
    if bucket_width <= 0:
        raise ValueError(f"bucket_width must be positive, got {bucket_width}")

    groups: Dict[float, List[float]] = defaultdict(list)
    for x, y in points:
        groups[bucket_of(x, bucket_width)].append(y)

    return ResponseCurve(tuple(
        CurvePoint(bucket_value=bucket, adjustment_pct=sum(ys) / len(ys))
        for bucket, ys in sorted(groups.items())
    ))


def mean(values: Sequence[float]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def std_dev(values: Sequence[float]) -> float:
    """Population standard deviation."""
    if len(values) < 2:
        return 0.0
    avg = mean(values)
    return math.sqrt(sum((v - avg) ** 2 for v in values) / len(values))
