"""
Optimal Time-of-Day Learner

Finds the part of the day an athlete performs best in.

Each run is assigned to one of five fixed dayparts by its start hour.
Dayparts with enough runs are scored:

    score = 60% relative pace improvement + 40% completion rate

and ranked (ties keep daypart order). Every clock hour inherits its
daypart's pace adjustment, giving a per-hour response curve for
predictions and workout-time suggestions.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Dict, Optional, Sequence, Tuple
import logging

from core.forecast_config import forecast_config, ForecastConfig
from services.environmental_samples import PerformanceSample, filter_valid
from services.regression import mean
from services.response_curve import ResponseCurve, CurvePoint, interpolate_adjustment

logger = logging.getLogger(__name__)


class Daypart(str, Enum):
    EARLY_MORNING = "early_morning"
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NIGHT = "night"


# Fixed order matters: ties in score keep this order
DAYPART_HOURS: Dict[Daypart, Tuple[int, ...]] = {
    Daypart.EARLY_MORNING: (5, 6, 7),
    Daypart.MORNING: (8, 9, 10, 11),
    Daypart.AFTERNOON: (12, 13, 14, 15, 16),
    Daypart.EVENING: (17, 18, 19, 20),
    Daypart.NIGHT: (21, 22, 23, 0, 1, 2, 3, 4),
}

EARLY_BIRD_DAYPARTS = (Daypart.EARLY_MORNING, Daypart.MORNING)


def daypart_for_hour(hour: int) -> Daypart:
    for daypart, hours in DAYPART_HOURS.items():
        if hour in hours:
            return daypart
    raise ValueError(f"Hour out of range: {hour}")


@dataclass(frozen=True)
class DaypartScore:
    daypart: Daypart
    score: float
    sample_count: int

    def to_dict(self) -> Dict:
        return {"daypart": self.daypart.value, "score": self.score, "sample_count": self.sample_count}


@dataclass(frozen=True)
class OptimalTimeProfile:
    best_time_of_day: Daypart
    daypart_scores: Tuple[DaypartScore, ...] = ()
    curve: ResponseCurve = field(default_factory=ResponseCurve)  # hour -> pace adjustment %
    completion_rate_by_hour: Tuple[Tuple[int, float], ...] = ()  # (hour, completion %)
    is_early_bird: bool = True
    sample_count: int = 0
    confidence_score: float = 0.0

    @property
    def is_default(self) -> bool:
        return self.confidence_score == 0 and not self.curve

    def to_dict(self) -> Dict:
        return {
            "best_time_of_day": self.best_time_of_day.value,
            "daypart_scores": [s.to_dict() for s in self.daypart_scores],
            "curve": self.curve.to_list(),
            "completion_rate_by_hour": [
                {"hour": hour, "completion_pct": pct} for hour, pct in self.completion_rate_by_hour
            ],
            "is_early_bird": self.is_early_bird,
            "sample_count": self.sample_count,
            "confidence_score": self.confidence_score,
        }


@dataclass
class WorkoutTimeSuggestion:
    hour: int
    reason: str

    def to_dict(self) -> Dict:
        return {"hour": self.hour, "reason": self.reason}


def default_time_profile(sample_count: int = 0) -> OptimalTimeProfile:
    return OptimalTimeProfile(
        best_time_of_day=Daypart.MORNING,
        daypart_scores=(),
        curve=ResponseCurve(),
        completion_rate_by_hour=(),
        is_early_bird=True,
        sample_count=sample_count,
        confidence_score=0.0,
    )


def learn_optimal_time(
    samples: Sequence[PerformanceSample],
    config: ForecastConfig = forecast_config,
) -> OptimalTimeProfile:
    """Rank dayparts and build a per-hour curve; default below the sample minimum."""
    valid = filter_valid(samples, hourly=True)
    n = len(valid)

    if n < config.time_min_samples:
        logger.info(f"Optimal time: {n} samples < {config.time_min_samples}, using default profile")
        return default_time_profile(sample_count=n)

    by_daypart: Dict[Daypart, List[PerformanceSample]] = {d: [] for d in DAYPART_HOURS}
    for s in valid:
        by_daypart[daypart_for_hour(int(s.condition_value))].append(s)

    overall_pace = mean([s.pace_min_per_km for s in valid])

    scores: List[DaypartScore] = []
    hourly: Dict[int, Tuple[float, float]] = {}
    for daypart, group in by_daypart.items():
        if not group:
            continue
        avg_pace = mean([s.pace_min_per_km for s in group])
        avg_completion = mean([s.completion_rate for s in group])
        adjustment = (avg_pace - overall_pace) / overall_pace * 100

        for hour in DAYPART_HOURS[daypart]:
            hourly[hour] = (adjustment, avg_completion * 100)

        if len(group) < config.time_daypart_min_samples:
            continue
        pace_score = -adjustment
        combined = config.time_pace_weight * pace_score + config.time_completion_weight * avg_completion * 100
        scores.append(DaypartScore(daypart=daypart, score=round(combined, 2), sample_count=len(group)))

    # sorted() is stable: equal scores keep daypart order
    ranked = tuple(sorted(scores, key=lambda s: -s.score))
    best = ranked[0].daypart if ranked else Daypart.MORNING

    curve = ResponseCurve(tuple(
        CurvePoint(bucket_value=float(hour), adjustment_pct=round(hourly[hour][0], 2))
        for hour in sorted(hourly)
    ))
    completion = tuple((hour, round(hourly[hour][1], 1)) for hour in sorted(hourly))

    confidence = min(
        100.0,
        min(n / config.time_confidence_sample_target, 1.0) * config.time_confidence_sample_weight
        + len(ranked) / len(DAYPART_HOURS) * config.time_confidence_daypart_weight
    )

    profile = OptimalTimeProfile(
        best_time_of_day=best,
        daypart_scores=ranked,
        curve=curve,
        completion_rate_by_hour=completion,
        is_early_bird=best in EARLY_BIRD_DAYPARTS,
        sample_count=n,
        confidence_score=float(round(confidence)),
    )
    logger.info(
        f"Optimal time learned from {n} samples: best={best.value} "
        f"scored_dayparts={len(ranked)} confidence={profile.confidence_score}"
    )
    return profile


def predict_pace_adjustment_for_hour(profile: Optional[OptimalTimeProfile], hour: float) -> float:
    """Expected pace change (%) at a clock hour; 0 with no learned curve."""
    curve = profile.curve if profile is not None else ResponseCurve()
    return interpolate_adjustment(curve, hour, lambda _: 0.0)


def suggest_workout_time(
    workout_type: str,
    temperature_c: Optional[float],
    profile: Optional[OptimalTimeProfile],
    config: ForecastConfig = forecast_config,
) -> WorkoutTimeSuggestion:
    """
    Suggest a start hour for a workout.

    Candidates are the best-performing hours. Hot days restrict them to
    early morning / evening. Easy and long runs prefer the athlete's best
    daypart when it is among the candidates.
    """
    if profile is None or not profile.curve:
        return WorkoutTimeSuggestion(
            hour=config.time_default_workout_hour,
            reason="Default morning time suggested (no data available yet)",
        )

    # Efficiency is the negated adjustment: faster = higher
    ranked = sorted(
        (p for p in profile.curve if -p.adjustment_pct > config.time_candidate_min_efficiency),
        key=lambda p: p.adjustment_pct,
    )
    candidates = [int(p.bucket_value) for p in ranked[:config.time_candidate_limit]]

    if temperature_c is not None and temperature_c > config.time_hot_temperature_c:
        candidates = [
            h for h in candidates
            if h < config.time_hot_early_cutoff_hour or h > config.time_hot_late_cutoff_hour
        ]
        if not candidates:
            return WorkoutTimeSuggestion(
                hour=config.time_hot_default_hour,
                reason="Early morning recommended due to high temperatures",
            )

    kind = (workout_type or "").lower()
    if "long" in kind or "easy" in kind:
        preferred = DAYPART_HOURS[profile.best_time_of_day]
        overlap = [h for h in candidates if h in preferred]
        if overlap:
            return WorkoutTimeSuggestion(
                hour=overlap[0],
                reason=f"Your best time ({profile.best_time_of_day.value}) for easy/long runs",
            )

    if not candidates:
        return WorkoutTimeSuggestion(
            hour=config.time_default_workout_hour,
            reason="Default morning time suggested (no consistently strong hours yet)",
        )
    return WorkoutTimeSuggestion(hour=candidates[0], reason="Optimized for your peak performance time")
