"""
Response Curves

A response curve maps a condition value (temperature, altitude, clock
hour) to the athlete's pace adjustment in percent, positive = slower.

Curves are sparse: only buckets that had samples carry a point. Queries
between points are linearly interpolated; queries outside the observed
range take the nearest endpoint's value; an empty curve defers to a
caller-supplied fallback rule.
"""

from dataclasses import dataclass, field
from typing import Callable, Iterable, Iterator, List, Dict, Optional, Tuple


@dataclass(frozen=True)
class CurvePoint:
    bucket_value: float
    adjustment_pct: float

    def to_dict(self) -> Dict:
        return {"bucket_value": self.bucket_value, "adjustment_pct": self.adjustment_pct}


@dataclass(frozen=True)
class ResponseCurve:
    """Immutable, ascending sequence of curve points with unique buckets."""
    points: Tuple[CurvePoint, ...] = field(default_factory=tuple)

    def __post_init__(self):
        points = tuple(self.points)
        for prev, nxt in zip(points, points[1:]):
            if not nxt.bucket_value > prev.bucket_value:
                raise ValueError(
                    f"Curve buckets must be strictly increasing: "
                    f"{prev.bucket_value} then {nxt.bucket_value}"
                )
        object.__setattr__(self, "points", points)

    def __iter__(self) -> Iterator[CurvePoint]:
        return iter(self.points)

    def __len__(self) -> int:
        return len(self.points)

    def __bool__(self) -> bool:
        return bool(self.points)

    def __getitem__(self, index: int) -> CurvePoint:
        return self.points[index]

    @property
    def buckets(self) -> List[float]:
        return [p.bucket_value for p in self.points]

    def to_list(self) -> List[Dict]:
        return [p.to_dict() for p in self.points]

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[float, float]]) -> "ResponseCurve":
        return cls(tuple(CurvePoint(float(b), float(a)) for b, a in pairs))

    @classmethod
    def from_list(cls, items: Iterable[Dict]) -> "ResponseCurve":
        return cls.from_pairs((i["bucket_value"], i["adjustment_pct"]) for i in items)


def interpolate_adjustment(
    curve: ResponseCurve,
    value: float,
    empty_fallback: Callable[[float], float],
) -> float:
    """
    Predict the pace adjustment at an arbitrary condition value.

    - Empty curve: empty_fallback(value)
    - Below the first / above the last bucket: that endpoint's adjustment
    - Otherwise: linear interpolation between the bracketing buckets
    """
    if not curve:
        return empty_fallback(value)

    first, last = curve[0], curve[-1]
    if value <= first.bucket_value:
        return first.adjustment_pct
    if value >= last.bucket_value:
        return last.adjustment_pct

    for lower, upper in zip(curve.points, curve.points[1:]):
        if lower.bucket_value <= value <= upper.bucket_value:
            span = upper.bucket_value - lower.bucket_value
            ratio = (value - lower.bucket_value) / span
            return lower.adjustment_pct + ratio * (upper.adjustment_pct - lower.adjustment_pct)

    # Unreachable for a validated curve
    return last.adjustment_pct


def find_optimal_bucket(curve: ResponseCurve) -> Optional[CurvePoint]:
    """Bucket with the lowest adjustment (fastest pace); first wins on ties."""
    best: Optional[CurvePoint] = None
    for point in curve:
        if best is None or point.adjustment_pct < best.adjustment_pct:
            best = point
    return best
