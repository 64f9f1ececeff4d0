"""
Race Performance Projector

Projects finishing times across race distances from one reference
("baseline") performance using power-law scaling:

    T2 = T1 x (D2 / D1) ^ 1.06

The exponent encodes the super-linear growth of time with distance and
is a fixed constant, not fit per athlete.

Also:
- Baseline selection from races and qualifying training runs
- Environmental adjustments from learned heat / altitude / timing profiles
- Display helpers for times, paces and distance names
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import List, Dict, Optional, Sequence
import logging

from core.forecast_config import forecast_config, ForecastConfig
from services.heat_tolerance import HeatToleranceProfile, predict_pace_adjustment_for_temp
from services.altitude_response import AltitudeProfile, predict_pace_adjustment_for_altitude
from services.optimal_time import OptimalTimeProfile, predict_pace_adjustment_for_hour

logger = logging.getLogger(__name__)


REFERENCE_DISTANCES: Dict[str, float] = {
    "10K": 10.0,
    "Half Marathon": 21.0975,
    "Marathon": 42.195,
    "50K": 50.0,
    "100K": 100.0,
}

STANDARD_DISTANCES = (5.0, 10.0, 15.0, 21.0975, 42.195)

_DISTANCE_NAMES = (
    (5.0, "5K"),
    (10.0, "10K"),
    (15.0, "15K"),
    (21.0975, "Half Marathon"),
    (42.195, "Marathon"),
    (50.0, "50K"),
    (100.0, "100K"),
)


@dataclass
class BaselineRace:
    distance_km: float
    time_min: float
    name: str = "Baseline"
    race_date: Optional[date] = None
    source: str = "manual"  # race | log | manual
    confidence: Optional[float] = None

    @property
    def pace_min_per_km(self) -> float:
        return self.time_min / self.distance_km

    def to_dict(self) -> Dict:
        return {
            "distance_km": self.distance_km,
            "time_min": round(self.time_min, 2),
            "name": self.name,
            "race_date": self.race_date.isoformat() if self.race_date else None,
            "source": self.source,
            "confidence": self.confidence,
            "pace": format_pace(self.pace_min_per_km),
        }


@dataclass
class EnvironmentalAdjustment:
    """Pace adjustments (%) applied on top of the raw projection; positive = slower."""
    heat_pct: float = 0.0
    altitude_pct: float = 0.0
    time_of_day_pct: float = 0.0

    @property
    def total_pct(self) -> float:
        return self.heat_pct + self.altitude_pct + self.time_of_day_pct

    def to_dict(self) -> Dict:
        return {
            "heat_pct": round(self.heat_pct, 2),
            "altitude_pct": round(self.altitude_pct, 2),
            "time_of_day_pct": round(self.time_of_day_pct, 2),
            "total_pct": round(self.total_pct, 2),
        }


@dataclass
class ProjectionEntry:
    distance_name: str
    distance_km: float
    predicted_time_min: float
    adjusted_time_min: float
    confidence: float
    formatted: str = field(init=False)
    pace_min_per_km: float = field(init=False)

    def __post_init__(self):
        self.formatted = format_time(self.adjusted_time_min)
        self.pace_min_per_km = self.adjusted_time_min / self.distance_km

    def to_dict(self) -> Dict:
        return {
            "distance_name": self.distance_name,
            "distance_km": self.distance_km,
            "predicted_time_min": round(self.predicted_time_min, 2),
            "adjusted_time_min": round(self.adjusted_time_min, 2),
            "formatted": self.formatted,
            "pace_min_per_km": round(self.pace_min_per_km, 3),
            "pace": format_pace(self.pace_min_per_km),
            "confidence": self.confidence,
        }


def project_time(
    baseline_distance_km: float,
    baseline_time_min: float,
    target_distance_km: float,
    config: ForecastConfig = forecast_config,
) -> float:
    """Predicted minutes at target distance from a baseline performance."""
    if baseline_distance_km <= 0 or baseline_time_min <= 0 or target_distance_km <= 0:
        raise ValueError(
            f"Distances and time must be positive: baseline={baseline_distance_km}km/"
            f"{baseline_time_min}min target={target_distance_km}km"
        )
    return baseline_time_min * (target_distance_km / baseline_distance_km) ** config.projection_exponent


def adjustment_from_profiles(
    heat: Optional[HeatToleranceProfile] = None,
    altitude: Optional[AltitudeProfile] = None,
    timing: Optional[OptimalTimeProfile] = None,
    temperature_c: Optional[float] = None,
    altitude_m: Optional[float] = None,
    start_hour: Optional[int] = None,
) -> EnvironmentalAdjustment:
    """
    Race-day pace adjustments from learned profiles.

    A condition not supplied contributes nothing. A missing profile falls
    back to the fixed empty-curve rules.
    """
    return EnvironmentalAdjustment(
        heat_pct=predict_pace_adjustment_for_temp(heat, temperature_c) if temperature_c is not None else 0.0,
        altitude_pct=predict_pace_adjustment_for_altitude(altitude, altitude_m) if altitude_m is not None else 0.0,
        time_of_day_pct=predict_pace_adjustment_for_hour(timing, start_hour) if start_hour is not None else 0.0,
    )


def build_projection_table(
    baseline: BaselineRace,
    adjustment: Optional[EnvironmentalAdjustment] = None,
    config: ForecastConfig = forecast_config,
) -> List[ProjectionEntry]:
    """
    Project every reference distance.

    Every entry carries the same fixed confidence; it is not derived from data.
    """
    factor = 1 + (adjustment.total_pct / 100 if adjustment else 0.0)
    entries = []
    for name, distance_km in REFERENCE_DISTANCES.items():
        predicted = project_time(baseline.distance_km, baseline.time_min, distance_km, config)
        entries.append(ProjectionEntry(
            distance_name=name,
            distance_km=distance_km,
            predicted_time_min=predicted,
            adjusted_time_min=predicted * factor,
            confidence=config.projection_confidence_pct,
        ))
    return entries


# =============================================================================
# BASELINE SELECTION
# =============================================================================

def baseline_confidence(days_ago: float) -> float:
    """Confidence in a baseline by its age."""
    if days_ago <= 30:
        return 1.0
    if days_ago <= 60:
        return 0.95
    if days_ago <= 90:
        return 0.85
    if days_ago <= 180:
        return 0.75
    return 0.6


def _as_date(value) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    return value


def _qualifies(activity, config: ForecastConfig) -> bool:
    km = activity.distance_m / 1000.0
    minutes = activity.duration_s / 60.0

    if activity.is_race:
        return config.baseline_race_min_km <= km <= config.baseline_race_max_km

    if not (config.baseline_run_min_km <= km <= config.baseline_run_max_km):
        return False
    pace = minutes / km
    if not (config.baseline_min_pace <= pace <= config.baseline_max_pace):
        return False

    is_long = km >= config.baseline_long_run_km
    is_standard = any(abs(km - d) < config.baseline_standard_tolerance_km for d in STANDARD_DISTANCES)
    is_significant = km >= config.baseline_significant_km and minutes >= config.baseline_significant_min
    return is_long or is_standard or is_significant


def find_best_baseline(
    activities: Sequence,
    today: Optional[date] = None,
    config: ForecastConfig = forecast_config,
) -> Optional[BaselineRace]:
    """
    Pick the best reference performance from races and qualifying runs.

    Score = 0.6 x recency + 0.4 x speed (1 / pace). Recency decays
    linearly to zero over a year.
    """
    today = today or date.today()
    best: Optional[BaselineRace] = None
    best_score = None

    for activity in activities:
        if not activity.distance_m or not activity.duration_s or activity.start_time is None:
            continue
        if not _qualifies(activity, config):
            continue

        km = activity.distance_m / 1000.0
        minutes = activity.duration_s / 60.0
        run_date = _as_date(activity.start_time)
        days_ago = max(0, (today - run_date).days)

        recency = max(0.0, 1 - days_ago / 365)
        score = config.baseline_recency_weight * recency + config.baseline_speed_weight * (km / minutes)

        if best_score is None or score > best_score:
            best_score = score
            best = BaselineRace(
                distance_km=km,
                time_min=minutes,
                name=activity.name or f"Run - {km:.1f}km",
                race_date=run_date,
                source="race" if activity.is_race else "log",
                confidence=baseline_confidence(days_ago),
            )

    if best is None:
        logger.info("No qualifying baseline performance found")
    else:
        logger.info(f"Baseline selected: {best.distance_km:.2f}km in {best.time_min:.1f}min ({best.source})")
    return best


# =============================================================================
# FORMATTING
# =============================================================================

def format_time(minutes: float) -> str:
    total_seconds = int(round(minutes * 60))
    hrs, rem = divmod(total_seconds, 3600)
    mins, secs = divmod(rem, 60)
    if hrs > 0:
        return f"{hrs}:{mins:02d}:{secs:02d}"
    return f"{mins}:{secs:02d}"


def format_pace(pace_min_per_km: float) -> str:
    total_seconds = int(round(pace_min_per_km * 60))
    mins, secs = divmod(total_seconds, 60)
    return f"{mins}:{secs:02d}/km"


def distance_name(distance_km: float) -> str:
    for km, name in _DISTANCE_NAMES:
        if abs(distance_km - km) < 0.1:
            return name
    return f"{distance_km:.1f}K"
