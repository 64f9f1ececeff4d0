"""
Workload Ratio Analyzer (ACWR)

Acute:Chronic Workload Ratio = this week's load / average of the previous
4 weeks. A proxy for injury risk from training-load spikes.

Provides:
- Weekly load aggregation (Monday-start weeks)
- Personalized safe-zone bounds from the athlete's ACWR history
- Zone classification and risk level
- Trend, sustainability and coaching text
- Timeframe analysis over stored weekly metrics

Zones:
- underload:  below the lower bound
- sweet-spot: within [lower, upper]
- caution:    above upper, up to 1.5
- high-risk:  above 1.5

The personalized zone always lies inside the safety-clamped range
[0.8, 1.5], and is only used once history quality is good enough.
"""

from datetime import date, datetime, timedelta, timezone
from typing import List, Dict, Optional, Sequence, Tuple
from uuid import UUID
from dataclasses import dataclass
from enum import Enum
import math
import logging

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from core.forecast_config import forecast_config, ForecastConfig
from models import Activity, WeeklyLoadMetric, AthleteLearningState
from services.regression import mean, std_dev

logger = logging.getLogger(__name__)


class TimeFrame(str, Enum):
    SEVEN_DAYS = "7d"
    FOURTEEN_DAYS = "14d"
    FOUR_WEEKS = "4w"
    THREE_MONTHS = "3m"
    TWELVE_MONTHS = "12m"


# (lookback days, weeks shown)
TIMEFRAME_WINDOWS: Dict[TimeFrame, Tuple[int, int]] = {
    TimeFrame.SEVEN_DAYS: (7, 1),
    TimeFrame.FOURTEEN_DAYS: (14, 2),
    TimeFrame.FOUR_WEEKS: (28, 4),
    TimeFrame.THREE_MONTHS: (90, 12),
    TimeFrame.TWELVE_MONTHS: (365, 52),
}


class ACWRZone(str, Enum):
    UNDERLOAD = "underload"
    SWEET_SPOT = "sweet-spot"
    CAUTION = "caution"
    HIGH_RISK = "high-risk"


class RiskLevel(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"


class ACWRTrend(str, Enum):
    RISING = "rising"
    STABLE = "stable"
    FALLING = "falling"


@dataclass
class WeeklyLoad:
    """One week of aggregated load."""
    week_start_date: date
    total_distance_km: float
    acute_load: float
    chronic_load: Optional[float] = None
    acwr: Optional[float] = None
    run_count: int = 0
    elevation_gain_m: float = 0.0

    def to_dict(self) -> Dict:
        return {
            "week_start_date": self.week_start_date.isoformat(),
            "total_distance_km": round(self.total_distance_km, 2),
            "acute_load": round(self.acute_load, 2),
            "chronic_load": round(self.chronic_load, 2) if self.chronic_load is not None else None,
            "acwr": round(self.acwr, 3) if self.acwr is not None else None,
            "run_count": self.run_count,
            "elevation_gain_m": round(self.elevation_gain_m, 1),
        }


@dataclass
class AthleteBaselines:
    """ACWR history statistics with derived personal bounds."""
    acwr_mean: float
    acwr_std_dev: float
    data_quality_score: float
    baseline_pace: Optional[float] = None
    baseline_hr: Optional[float] = None

    @property
    def acwr_lower_bound(self) -> float:
        return compute_personal_bounds(self.acwr_mean, self.acwr_std_dev)[0]

    @property
    def acwr_upper_bound(self) -> float:
        return compute_personal_bounds(self.acwr_mean, self.acwr_std_dev)[1]

    def to_dict(self) -> Dict:
        return {
            "acwr_mean": round(self.acwr_mean, 3),
            "acwr_std_dev": round(self.acwr_std_dev, 3),
            "acwr_lower_bound": round(self.acwr_lower_bound, 3),
            "acwr_upper_bound": round(self.acwr_upper_bound, 3),
            "data_quality_score": round(self.data_quality_score, 3),
            "baseline_pace": self.baseline_pace,
            "baseline_hr": self.baseline_hr,
        }


@dataclass
class ACWRZoneInfo:
    personal_min: float
    personal_max: float
    universal_min: float
    universal_max: float
    has_personal_zone: bool

    def to_dict(self) -> Dict:
        return {
            "personal_min": round(self.personal_min, 3),
            "personal_max": round(self.personal_max, 3),
            "universal_min": self.universal_min,
            "universal_max": self.universal_max,
            "has_personal_zone": self.has_personal_zone,
        }


@dataclass
class SustainabilityAssessment:
    is_sustainable: bool
    reason: str


@dataclass
class ACWRAnalysis:
    timeframe: TimeFrame
    series: List[WeeklyLoad]
    current_acwr: Optional[float]
    zone_info: ACWRZoneInfo
    current_zone: Optional[ACWRZone]
    risk_level: Optional[RiskLevel]
    needs_more_data: bool
    has_data: bool
    total_weeks: int
    trend: ACWRTrend
    sustainability: SustainabilityAssessment
    recommendation: Optional[str] = None
    feedback: Optional[str] = None

    def to_dict(self) -> Dict:
        return {
            "timeframe": self.timeframe.value,
            "series": [w.to_dict() for w in self.series],
            "current_acwr": round(self.current_acwr, 3) if self.current_acwr is not None else None,
            "zone_info": self.zone_info.to_dict(),
            "current_zone": self.current_zone.value if self.current_zone else None,
            "risk_level": self.risk_level.value if self.risk_level else None,
            "needs_more_data": self.needs_more_data,
            "has_data": self.has_data,
            "total_weeks": self.total_weeks,
            "trend": self.trend.value,
            "is_sustainable": self.sustainability.is_sustainable,
            "sustainability_reason": self.sustainability.reason,
            "recommendation": self.recommendation,
            "feedback": self.feedback,
        }


# =============================================================================
# ZONES
# =============================================================================

def compute_personal_bounds(
    acwr_mean: float,
    acwr_std_dev: float,
    config: ForecastConfig = forecast_config,
) -> Tuple[float, float]:
    """
    Personal (lower, upper) bounds from mean +/- one standard deviation.

    lower is clamped to [0.8, 1.2], upper to [0.9, 1.5], so the result is
    always ordered and inside [0.8, 1.5].
    """
    if not (math.isfinite(acwr_mean) and math.isfinite(acwr_std_dev)):
        acwr_mean, acwr_std_dev = config.acwr_default_mean, config.acwr_default_std_dev

    spread = abs(acwr_std_dev)
    lower = max(config.acwr_lower_clamp_min, min(acwr_mean - spread, config.acwr_lower_clamp_max))
    upper = min(config.acwr_upper_clamp_max, max(acwr_mean + spread, config.acwr_upper_clamp_min))
    return lower, upper


def resolve_zone(
    baselines: Optional[AthleteBaselines],
    config: ForecastConfig = forecast_config,
) -> ACWRZoneInfo:
    universal_min = config.acwr_universal_lower
    universal_max = config.acwr_universal_upper

    if baselines is None or baselines.data_quality_score < config.acwr_min_data_quality:
        return ACWRZoneInfo(
            personal_min=universal_min,
            personal_max=universal_max,
            universal_min=universal_min,
            universal_max=universal_max,
            has_personal_zone=False,
        )

    lower, upper = compute_personal_bounds(baselines.acwr_mean, baselines.acwr_std_dev, config)
    tolerance = config.acwr_personal_zone_tolerance
    has_personal = abs(lower - universal_min) > tolerance or abs(upper - universal_max) > tolerance

    return ACWRZoneInfo(
        personal_min=lower,
        personal_max=upper,
        universal_min=universal_min,
        universal_max=universal_max,
        has_personal_zone=has_personal,
    )


def classify_acwr(
    acwr: float,
    lower: float,
    upper: float,
    config: ForecastConfig = forecast_config,
) -> ACWRZone:
    """Map a finite ACWR to exactly one zone."""
    if acwr is None or not math.isfinite(acwr):
        raise ValueError(f"ACWR must be a finite number, got {acwr!r}")

    if acwr < lower:
        return ACWRZone.UNDERLOAD
    if acwr <= upper:
        return ACWRZone.SWEET_SPOT
    if acwr <= config.acwr_high_risk:
        return ACWRZone.CAUTION
    return ACWRZone.HIGH_RISK


def risk_level(zone: ACWRZone) -> RiskLevel:
    if zone == ACWRZone.SWEET_SPOT:
        return RiskLevel.LOW
    if zone == ACWRZone.HIGH_RISK:
        return RiskLevel.HIGH
    return RiskLevel.MODERATE


# =============================================================================
# TREND / SUSTAINABILITY / TEXT
# =============================================================================

def acwr_trend(values: Sequence[float], config: ForecastConfig = forecast_config) -> ACWRTrend:
    """Compare the two halves of the last 4 ratios."""
    window = config.acwr_trend_window
    if len(values) < window:
        return ACWRTrend.STABLE

    recent = list(values[-window:])
    half = window // 2
    difference = mean(recent[half:]) - mean(recent[:half])

    if difference > config.acwr_trend_delta:
        return ACWRTrend.RISING
    if difference < -config.acwr_trend_delta:
        return ACWRTrend.FALLING
    return ACWRTrend.STABLE


def assess_sustainability(values: Sequence[float], config: ForecastConfig = forecast_config) -> SustainabilityAssessment:
    if len(values) < 3:
        return SustainabilityAssessment(True, "Insufficient data to assess pattern.")

    recent = list(values[-3:])
    high_weeks = len([v for v in recent if v > config.acwr_high_risk])
    if high_weeks >= 2:
        return SustainabilityAssessment(
            False,
            "ACWR has stayed above 1.5 for multiple weeks. This pattern significantly "
            "increases injury risk and may lead to overtraining.",
        )

    if std_dev(recent) > config.acwr_volatility_limit:
        return SustainabilityAssessment(
            False,
            "Training load is fluctuating significantly week to week. "
            "More consistent progression reduces injury risk.",
        )

    return SustainabilityAssessment(True, "Load progression pattern appears sustainable.")


def zone_recommendation(zone: ACWRZone, trend: ACWRTrend) -> str:
    if zone == ACWRZone.UNDERLOAD:
        if trend == ACWRTrend.FALLING:
            return "Consider adding 1-2 runs or extending existing runs by 10-15% to maintain fitness."
        return "Gradual volume increases of 5-10% per week are safe for progression."

    if zone == ACWRZone.SWEET_SPOT:
        if trend == ACWRTrend.RISING:
            return "Progression is well managed. Maintain this approach while monitoring recovery."
        return "Continue current training load. Consider adding a quality session if feeling strong."

    if zone == ACWRZone.CAUTION:
        if trend == ACWRTrend.RISING:
            return "Load is increasing too quickly. Cap this week at current volume and add recovery time."
        return "Hold current volume steady for 1-2 weeks before further increases. Focus on recovery quality."

    return (
        "Reduce planned volume by 20-30%, add rest days, and prioritize sleep and nutrition. "
        "Resume progression only after 1-2 weeks of lower, stable load."
    )


def zone_feedback(acwr: float, zone: ACWRZone, weekly_km: float) -> str:
    if zone == ACWRZone.UNDERLOAD:
        return (
            f"ACWR is {acwr:.2f}, a recovery or deload week ({weekly_km:.1f} km). "
            f"Good for regeneration, but long stretches below the zone may lead to detraining."
        )
    if zone == ACWRZone.SWEET_SPOT:
        return (
            f"ACWR is {acwr:.2f}, within the optimal zone. Current load ({weekly_km:.1f} km) "
            f"promotes adaptation while keeping injury risk low."
        )
    if zone == ACWRZone.CAUTION:
        return (
            f"ACWR is {acwr:.2f}, slightly elevated at {weekly_km:.1f} km this week. "
            f"Monitor fatigue and avoid holding this level for consecutive weeks."
        )
    return (
        f"ACWR is {acwr:.2f}, a significant load spike ({weekly_km:.1f} km). "
        f"Consider cutting planned volume by 15-20% or adding a rest day this week."
    )


# =============================================================================
# ANALYSIS
# =============================================================================

def analyze_workload(
    metrics: Sequence,
    baselines: Optional[AthleteBaselines],
    timeframe: TimeFrame = TimeFrame.FOUR_WEEKS,
    config: ForecastConfig = forecast_config,
) -> ACWRAnalysis:
    """
    Analyze weekly metrics (oldest first) already restricted to the timeframe window.

    Works with WeeklyLoad values or WeeklyLoadMetric rows.
    """
    timeframe = TimeFrame(timeframe)
    _, weeks_shown = TIMEFRAME_WINDOWS[timeframe]
    metrics = list(metrics)

    series = [
        _as_weekly_load(m) for m in metrics[-weeks_shown:]
        if m.acwr is not None and math.isfinite(m.acwr)
    ]
    zone_info = resolve_zone(baselines, config)

    latest = metrics[-1] if metrics else None
    current = latest.acwr if latest is not None else None
    if current is not None and not math.isfinite(current):
        current = None

    history = [m.acwr for m in metrics if m.acwr is not None and math.isfinite(m.acwr)]
    trend = acwr_trend(history, config)
    sustainability = assess_sustainability(history, config)

    zone = level = recommendation = feedback = None
    if current is not None:
        zone = classify_acwr(current, zone_info.personal_min, zone_info.personal_max, config)
        level = risk_level(zone)
        recommendation = zone_recommendation(zone, trend)
        feedback = zone_feedback(current, zone, float(latest.total_distance_km or 0.0))

    return ACWRAnalysis(
        timeframe=timeframe,
        series=series,
        current_acwr=current,
        zone_info=zone_info,
        current_zone=zone,
        risk_level=level,
        needs_more_data=len(metrics) < config.acwr_min_weeks,
        has_data=len(series) > 0,
        total_weeks=len(metrics),
        trend=trend,
        sustainability=sustainability,
        recommendation=recommendation,
        feedback=feedback,
    )


def _as_weekly_load(metric) -> WeeklyLoad:
    if isinstance(metric, WeeklyLoad):
        return metric
    return WeeklyLoad(
        week_start_date=metric.week_start_date,
        total_distance_km=float(metric.total_distance_km or 0.0),
        acute_load=float(metric.acute_load or 0.0),
        chronic_load=metric.chronic_load,
        acwr=metric.acwr,
        run_count=metric.run_count or 0,
        elevation_gain_m=float(metric.elevation_gain_m or 0.0),
    )


# =============================================================================
# AGGREGATION AND BASELINES
# =============================================================================

def week_start(d) -> date:
    """Monday of the week containing d."""
    if isinstance(d, datetime):
        d = d.date()
    return d - timedelta(days=d.weekday())


def derive_weekly_metrics(
    activities: Sequence[Activity],
    config: ForecastConfig = forecast_config,
) -> List[WeeklyLoad]:
    """
    Aggregate activities into consecutive Monday-start weeks.

    Weeks without runs are kept with zero load so the chronic average
    covers calendar weeks. Chronic load and ACWR exist only once 4 prior
    weeks are available.
    """
    totals: Dict[date, Dict] = {}
    for activity in activities:
        if activity.start_time is None or not activity.distance_m:
            continue
        key = week_start(activity.start_time)
        bucket = totals.setdefault(key, {"km": 0.0, "runs": 0, "elev": 0.0})
        bucket["km"] += activity.distance_m / 1000.0
        bucket["runs"] += 1
        bucket["elev"] += float(activity.total_elevation_gain or 0.0)

    if not totals:
        return []

    weeks: List[WeeklyLoad] = []
    current = min(totals)
    last = max(totals)
    while current <= last:
        bucket = totals.get(current, {"km": 0.0, "runs": 0, "elev": 0.0})
        weeks.append(WeeklyLoad(
            week_start_date=current,
            total_distance_km=bucket["km"],
            acute_load=bucket["km"],
            run_count=bucket["runs"],
            elevation_gain_m=bucket["elev"],
        ))
        current += timedelta(days=7)

    chronic_weeks = config.acwr_chronic_weeks
    for i in range(chronic_weeks, len(weeks)):
        chronic = mean([w.acute_load for w in weeks[i - chronic_weeks:i]])
        weeks[i].chronic_load = chronic
        if chronic > 0:
            weeks[i].acwr = weeks[i].acute_load / chronic

    return weeks


def compute_athlete_baselines(
    weekly_metrics: Sequence,
    activities: Sequence[Activity],
    config: ForecastConfig = forecast_config,
) -> AthleteBaselines:
    """
    ACWR mean / std from history plus data quality.

    Fewer than 4 ratios falls back to mean 1.0, std 0.2. Data quality is
    the share of runs that recorded heart rate.
    """
    ratios = [m.acwr for m in weekly_metrics if m.acwr is not None and math.isfinite(m.acwr) and m.acwr > 0]
    if len(ratios) >= config.acwr_min_weeks:
        acwr_mean, acwr_std = mean(ratios), std_dev(ratios)
    else:
        acwr_mean, acwr_std = config.acwr_default_mean, config.acwr_default_std_dev

    runs = [a for a in activities if a.distance_m]
    with_hr = [a for a in runs if a.avg_hr]
    quality = len(with_hr) / len(runs) if runs else 0.0

    paces = [a.pace_min_per_km for a in runs if a.pace_min_per_km]
    heart_rates = [float(a.avg_hr) for a in with_hr]

    return AthleteBaselines(
        acwr_mean=acwr_mean,
        acwr_std_dev=acwr_std,
        data_quality_score=quality,
        baseline_pace=mean(paces) if paces else config.baseline_default_pace,
        baseline_hr=mean(heart_rates) if heart_rates else config.baseline_default_hr,
    )


# =============================================================================
# SERVICE
# =============================================================================

class WorkloadService:
    """Storage-backed ACWR operations for one database session."""

    def __init__(self, db: Session, config: ForecastConfig = forecast_config):
        self.db = db
        self.config = config

    def _activities(self, athlete_id: UUID) -> List[Activity]:
        return (
            self.db.query(Activity)
            .filter(Activity.athlete_id == athlete_id)
            .order_by(Activity.start_time.asc())
            .all()
        )

    def get_weekly_metrics(self, athlete_id: UUID, since: Optional[date] = None) -> List[WeeklyLoadMetric]:
        try:
            query = self.db.query(WeeklyLoadMetric).filter(WeeklyLoadMetric.athlete_id == athlete_id)
            if since is not None:
                query = query.filter(WeeklyLoadMetric.week_start_date >= since)
            return query.order_by(WeeklyLoadMetric.week_start_date.asc()).all()
        except SQLAlchemyError as e:
            logger.error(f"Failed to load weekly metrics for athlete {athlete_id}: {e}")
            self.db.rollback()
            return []

    def refresh_weekly_metrics(self, athlete_id: UUID) -> List[WeeklyLoad]:
        """Recompute every week from activities and upsert by (athlete, week)."""
        try:
            weeks = derive_weekly_metrics(self._activities(athlete_id), self.config)
            existing = {
                m.week_start_date: m
                for m in self.db.query(WeeklyLoadMetric).filter(WeeklyLoadMetric.athlete_id == athlete_id).all()
            }
            for week in weeks:
                row = existing.get(week.week_start_date)
                if row is None:
                    row = WeeklyLoadMetric(athlete_id=athlete_id, week_start_date=week.week_start_date)
                    self.db.add(row)
                row.total_distance_km = week.total_distance_km
                row.acute_load = week.acute_load
                row.chronic_load = week.chronic_load
                row.acwr = week.acwr
                row.run_count = week.run_count
                row.elevation_gain_m = week.elevation_gain_m
            self.db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to refresh weekly metrics for athlete {athlete_id}: {e}")
            self.db.rollback()
            return []

        logger.info(f"Refreshed {len(weeks)} weekly load metrics for athlete {athlete_id}")
        return weeks

    def refresh_baselines(self, athlete_id: UUID) -> Optional[AthleteBaselines]:
        try:
            metrics = self.get_weekly_metrics(athlete_id)
            baselines = compute_athlete_baselines(metrics, self._activities(athlete_id), self.config)

            state = self.db.query(AthleteLearningState).filter(
                AthleteLearningState.athlete_id == athlete_id
            ).first()
            if state is None:
                state = AthleteLearningState(athlete_id=athlete_id)
                self.db.add(state)

            state.acwr_mean = baselines.acwr_mean
            state.acwr_std_dev = baselines.acwr_std_dev
            state.data_quality_score = baselines.data_quality_score
            state.baseline_pace = baselines.baseline_pace
            state.baseline_hr = baselines.baseline_hr
            state.computation_metadata = {
                "weeks": len(metrics),
                "acwr_ratios": len([m for m in metrics if m.acwr is not None]),
            }
            state.last_computed_at = datetime.now(timezone.utc)
            self.db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to refresh baselines for athlete {athlete_id}: {e}")
            self.db.rollback()
            return None

        logger.info(
            f"Baselines for athlete {athlete_id}: mean={baselines.acwr_mean:.3f} "
            f"std={baselines.acwr_std_dev:.3f} quality={baselines.data_quality_score:.2f}"
        )
        return baselines

    def get_baselines(self, athlete_id: UUID) -> Optional[AthleteBaselines]:
        try:
            state = self.db.query(AthleteLearningState).filter(
                AthleteLearningState.athlete_id == athlete_id
            ).first()
        except SQLAlchemyError as e:
            logger.error(f"Failed to read baselines for athlete {athlete_id}: {e}")
            self.db.rollback()
            return None

        if state is None:
            return None
        return AthleteBaselines(
            acwr_mean=state.acwr_mean,
            acwr_std_dev=state.acwr_std_dev,
            data_quality_score=state.data_quality_score,
            baseline_pace=state.baseline_pace,
            baseline_hr=state.baseline_hr,
        )

    def analyze(
        self,
        athlete_id: UUID,
        timeframe: TimeFrame = TimeFrame.FOUR_WEEKS,
        today: Optional[date] = None,
    ) -> ACWRAnalysis:
        timeframe = TimeFrame(timeframe)
        lookback_days, _ = TIMEFRAME_WINDOWS[timeframe]
        today = today or date.today()
        metrics = self.get_weekly_metrics(athlete_id, since=today - timedelta(days=lookback_days))
        metrics = [m for m in metrics if m.week_start_date <= today]
        return analyze_workload(metrics, self.get_baselines(athlete_id), timeframe, self.config)
