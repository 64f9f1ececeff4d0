"""
Heat Tolerance Learner

Learns how an athlete's pace responds to temperature:
- Baseline pace from comfortable conditions (10-20 C)
- Per-sample slowdown relative to that baseline
- 5 C bucketed response curve
- Optimal temperature, heat threshold, heat slope
- Acclimatization speed from rolling windows

Fewer than the minimum number of samples yields a neutral default
profile with confidence 0. Callers must not act on confidence 0.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Optional, Sequence
import logging

from core.forecast_config import forecast_config, ForecastConfig
from services.environmental_samples import PerformanceSample, filter_valid
from services.regression import linear_regression, bucket_average, mean
from services.response_curve import ResponseCurve, interpolate_adjustment, find_optimal_bucket

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HeatToleranceProfile:
    optimal_temp_c: float
    heat_threshold_c: float
    curve: ResponseCurve = field(default_factory=ResponseCurve)
    acclimatization_days: int = 14
    heat_slope_pct_per_c: float = 0.0
    sample_count: int = 0
    confidence_score: float = 0.0

    @property
    def is_default(self) -> bool:
        return self.confidence_score == 0 and not self.curve

    def to_dict(self) -> Dict:
        return {
            "optimal_temp_c": self.optimal_temp_c,
            "heat_threshold_c": self.heat_threshold_c,
            "curve": self.curve.to_list(),
            "acclimatization_days": self.acclimatization_days,
            "heat_slope_pct_per_c": self.heat_slope_pct_per_c,
            "sample_count": self.sample_count,
            "confidence_score": self.confidence_score,
        }


def default_heat_profile(sample_count: int = 0, config: ForecastConfig = forecast_config) -> HeatToleranceProfile:
    return HeatToleranceProfile(
        optimal_temp_c=config.heat_default_optimal_temp_c,
        heat_threshold_c=config.heat_default_threshold_c,
        curve=ResponseCurve(),
        acclimatization_days=config.heat_default_acclimatization_days,
        heat_slope_pct_per_c=0.0,
        sample_count=sample_count,
        confidence_score=0.0,
    )


def _detect_acclimatization(samples: Sequence[PerformanceSample], config: ForecastConfig) -> int:
    """
    Estimate days to acclimatize from rolling sample windows.

    Wherever the recent window ran both hotter and faster than the one
    before it, the relative pace gain is recorded. Larger gains mean
    faster adaptation and fewer days.
    """
    window = config.heat_acclimatization_window
    min_samples = config.heat_acclimatization_min_window_samples
    improvements: List[float] = []

    for i in range(window, len(samples)):
        recent = samples[i - window:i]
        previous = samples[max(0, i - window * 2):i - window]
        if len(previous) < min_samples or len(recent) < min_samples:
            continue

        recent_pace = mean([s.pace_min_per_km for s in recent])
        previous_pace = mean([s.pace_min_per_km for s in previous])
        recent_temp = mean([s.condition_value for s in recent])
        previous_temp = mean([s.condition_value for s in previous])

        if recent_temp > previous_temp and recent_pace < previous_pace:
            improvements.append((previous_pace - recent_pace) / previous_pace)

    if not improvements:
        return config.heat_default_acclimatization_days

    avg_improvement = mean(improvements)
    days = config.heat_default_acclimatization_days * (1 - avg_improvement * 10)
    days = max(config.heat_acclimatization_min_days, min(config.heat_acclimatization_max_days, days))
    return int(round(days))


def _confidence(n: int, value_range: float, sample_target: int, range_target: float) -> float:
    """Half from sample count, half from condition spread; each capped."""
    sample_part = min(n / sample_target, 1.0) * 50
    range_part = min(value_range / range_target, 1.0) * 50
    return float(round(min(100.0, sample_part + range_part)))


def _chronological(samples: List[PerformanceSample]) -> List[PerformanceSample]:
    if all(s.date is not None for s in samples):
        return sorted(samples, key=lambda s: s.date)
    return samples


def learn_heat_tolerance(
    samples: Sequence[PerformanceSample],
    config: ForecastConfig = forecast_config,
) -> HeatToleranceProfile:
    """
    Build a heat tolerance profile from temperature samples.

    Returns the default profile (not an error) below the sample minimum.
    """
    valid = _chronological(filter_valid(samples))
    n = len(valid)

    if n < config.heat_min_samples:
        logger.info(f"Heat tolerance: {n} samples < {config.heat_min_samples}, using default profile")
        return default_heat_profile(sample_count=n, config=config)

    comfortable = [
        s.pace_min_per_km for s in valid
        if config.heat_comfortable_min_c <= s.condition_value <= config.heat_comfortable_max_c
    ]
    baseline_pace = mean(comfortable) if comfortable else mean([s.pace_min_per_km for s in valid])

    points = [
        (s.condition_value, (s.pace_min_per_km - baseline_pace) / baseline_pace * 100)
        for s in valid
    ]
    curve = bucket_average(points, config.heat_bucket_width_c)

    optimal = find_optimal_bucket(curve)
    optimal_temp = optimal.bucket_value if optimal else config.heat_default_optimal_temp_c

    # Unlike a first-match over the whole curve, buckets colder than the
    # optimum are skipped: a slow cold bucket is not a heat threshold
    heat_threshold = config.heat_default_threshold_c
    for point in curve:
        if point.bucket_value >= optimal_temp and point.adjustment_pct > config.heat_threshold_adjustment_pct:
            heat_threshold = point.bucket_value
            break

    slope = linear_regression(points).slope
    temps = [s.condition_value for s in valid]
    confidence = _confidence(
        n, max(temps) - min(temps),
        config.heat_confidence_sample_target, config.heat_confidence_range_target_c,
    )

    profile = HeatToleranceProfile(
        optimal_temp_c=optimal_temp,
        heat_threshold_c=heat_threshold,
        curve=curve,
        acclimatization_days=_detect_acclimatization(valid, config),
        heat_slope_pct_per_c=slope,
        sample_count=n,
        confidence_score=confidence,
    )
    logger.info(
        f"Heat tolerance learned from {n} samples: optimal={optimal_temp}C "
        f"threshold={heat_threshold}C confidence={confidence}"
    )
    return profile


def _empty_heat_curve_rule(config: ForecastConfig):
    def rule(temp_c: float) -> float:
        if temp_c > config.heat_fallback_onset_c:
            return (temp_c - config.heat_fallback_onset_c) / config.heat_fallback_step_c * config.heat_fallback_pct_per_step
        return 0.0
    return rule


def predict_pace_adjustment_for_temp(
    profile: Optional[HeatToleranceProfile],
    temperature_c: float,
    config: ForecastConfig = forecast_config,
) -> float:
    """Expected pace slowdown (%) at a temperature."""
    curve = profile.curve if profile is not None else ResponseCurve()
    return interpolate_adjustment(curve, temperature_c, _empty_heat_curve_rule(config))
