"""
Altitude Response Learner

Learns how an athlete's pace degrades with altitude:
- Sea-level baseline pace (sessions below 200 m)
- 500 m bucketed response curve
- Degradation slope per 1000 m
- Acclimatization period from repeated high-altitude sessions

Also assesses whether a planned arrival date leaves enough time to
acclimatize before a race at altitude.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Optional, Sequence
import logging

from core.forecast_config import forecast_config, ForecastConfig
from services.environmental_samples import PerformanceSample, filter_valid
from services.regression import linear_regression, bucket_average, mean
from services.response_curve import ResponseCurve, interpolate_adjustment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AltitudeProfile:
    sea_level_base_pace: float
    curve: ResponseCurve = field(default_factory=ResponseCurve)
    acclimatization_days: int = 14
    max_training_altitude_m: float = 0.0
    degradation_pct_per_1000m: float = 0.0
    sample_count: int = 0
    confidence_score: float = 0.0

    @property
    def is_default(self) -> bool:
        return self.confidence_score == 0 and not self.curve

    def to_dict(self) -> Dict:
        return {
            "sea_level_base_pace": self.sea_level_base_pace,
            "curve": self.curve.to_list(),
            "acclimatization_days": self.acclimatization_days,
            "max_training_altitude_m": self.max_training_altitude_m,
            "degradation_pct_per_1000m": self.degradation_pct_per_1000m,
            "sample_count": self.sample_count,
            "confidence_score": self.confidence_score,
        }


@dataclass
class AcclimatizationAssessment:
    is_adequate: bool
    recommendation: str
    recommended_days: int

    def to_dict(self) -> Dict:
        return {
            "is_adequate": self.is_adequate,
            "recommendation": self.recommendation,
            "recommended_days": self.recommended_days,
        }


def default_altitude_profile(sample_count: int = 0, config: ForecastConfig = forecast_config) -> AltitudeProfile:
    return AltitudeProfile(
        sea_level_base_pace=config.altitude_default_sea_level_pace,
        curve=ResponseCurve(),
        acclimatization_days=config.altitude_default_acclimatization_days,
        max_training_altitude_m=0.0,
        degradation_pct_per_1000m=0.0,
        sample_count=sample_count,
        confidence_score=0.0,
    )


def _estimate_acclimatization_period(samples: Sequence[PerformanceSample], config: ForecastConfig) -> int:
    """
    Average day gap between consecutive high-altitude sessions where the
    later one was faster, clamped to [7, 21].
    """
    high = [
        s for s in samples
        if s.condition_value > config.altitude_high_threshold_m and s.date is not None
    ]
    if len(high) < config.altitude_acclimatization_min_sessions:
        return config.altitude_default_acclimatization_days

    high.sort(key=lambda s: s.date)
    gaps: List[float] = []
    for earlier, later in zip(high, high[1:]):
        days = (later.date - earlier.date).total_seconds() / 86400
        if 0 < days < config.altitude_acclimatization_max_gap_days and later.pace_min_per_km < earlier.pace_min_per_km:
            gaps.append(days)

    if not gaps:
        return config.altitude_default_acclimatization_days

    days = max(config.altitude_acclimatization_min_days, min(config.altitude_acclimatization_max_days, mean(gaps)))
    return int(round(days))


def learn_altitude_response(
    samples: Sequence[PerformanceSample],
    config: ForecastConfig = forecast_config,
) -> AltitudeProfile:
    """Build an altitude profile; default profile below the sample minimum."""
    valid = filter_valid(samples)
    n = len(valid)

    if n < config.altitude_min_samples:
        logger.info(f"Altitude response: {n} samples < {config.altitude_min_samples}, using default profile")
        return default_altitude_profile(sample_count=n, config=config)

    sea_level = [s.pace_min_per_km for s in valid if s.condition_value < config.altitude_sea_level_max_m]
    base_pace = mean(sea_level) if sea_level else mean([s.pace_min_per_km for s in valid])

    points = [
        (s.condition_value, (s.pace_min_per_km - base_pace) / base_pace * 100)
        for s in valid
    ]
    curve = bucket_average(points, config.altitude_bucket_width_m)

    altitudes = [s.condition_value for s in valid]
    max_altitude = max(altitudes)
    altitude_range = max_altitude - min(altitudes)

    sample_part = min(n / config.altitude_confidence_sample_target, 1.0) * 50
    range_part = min(altitude_range / config.altitude_confidence_range_target_m, 1.0) * 50
    confidence = float(round(min(100.0, sample_part + range_part)))

    profile = AltitudeProfile(
        sea_level_base_pace=base_pace,
        curve=curve,
        acclimatization_days=_estimate_acclimatization_period(valid, config),
        max_training_altitude_m=max_altitude,
        degradation_pct_per_1000m=linear_regression(points).slope * 1000,
        sample_count=n,
        confidence_score=confidence,
    )
    logger.info(
        f"Altitude response learned from {n} samples: base_pace={base_pace:.2f} "
        f"max_altitude={max_altitude}m confidence={confidence}"
    )
    return profile


def predict_pace_adjustment_for_altitude(
    profile: Optional[AltitudeProfile],
    altitude_m: float,
    config: ForecastConfig = forecast_config,
) -> float:
    """
    Expected pace slowdown (%) at an altitude.

    Outside the observed range the nearest endpoint is used; with no curve,
    +3% per 1000 m above 1000 m.
    """
    def empty_rule(altitude: float) -> float:
        if altitude < config.altitude_fallback_onset_m:
            return 0.0
        return (altitude - config.altitude_fallback_onset_m) / 1000 * config.altitude_fallback_pct_per_1000m

    curve = profile.curve if profile is not None else ResponseCurve()
    return interpolate_adjustment(curve, altitude_m, empty_rule)


def assess_acclimatization_schedule(
    current_altitude_m: float,
    target_altitude_m: float,
    arrival_days_before_race: int,
    profile: Optional[AltitudeProfile],
    config: ForecastConfig = forecast_config,
) -> AcclimatizationAssessment:
    """Judge whether arriving N days before a race at altitude is enough."""
    recommended = config.altitude_default_acclimatization_days
    if profile is not None and profile.acclimatization_days:
        recommended = profile.acclimatization_days

    gain = target_altitude_m - current_altitude_m
    days = arrival_days_before_race

    if gain < config.altitude_minor_gain_m:
        return AcclimatizationAssessment(
            is_adequate=True,
            recommendation="Minimal altitude gain - no special acclimatization needed.",
            recommended_days=0,
        )

    if days >= recommended:
        return AcclimatizationAssessment(
            is_adequate=True,
            recommendation=(
                f"{days} days allows full acclimatization "
                f"({recommended} days recommended for your profile)."
            ),
            recommended_days=recommended,
        )

    if days >= recommended * config.altitude_partial_acclimatization_ratio:
        return AcclimatizationAssessment(
            is_adequate=True,
            recommendation=(
                f"Adequate. {days} days should allow partial acclimatization. "
                f"Consider arriving {recommended - days} days earlier for optimal performance."
            ),
            recommended_days=recommended,
        )

    if days < config.altitude_min_arrival_days:
        return AcclimatizationAssessment(
            is_adequate=False,
            recommendation=(
                f"Only {days} days may not be enough. Consider arriving {recommended} days early, "
                f"or 1-2 days before (too short to trigger altitude sickness, too short to acclimatize)."
            ),
            recommended_days=recommended,
        )

    return AcclimatizationAssessment(
        is_adequate=False,
        recommendation=(
            f"Risky: {days} days falls in the window where altitude sickness is most likely. "
            f"Arrive {recommended}+ days early or less than 48 hours before the race."
        ),
        recommended_days=recommended,
    )
