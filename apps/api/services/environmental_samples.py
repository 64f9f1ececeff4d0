"""
Environmental Sample Retrieval

Converts an athlete's stored activities into (condition, performance)
observations for the environmental learners.

- Temperature samples: condition = temperature in C
- Altitude samples: condition = average altitude in m
- Time-of-day samples: condition = local start hour (0-23), plus completion rate

Rows missing a pace or condition value are dropped here, never raised.
Storage errors are logged and yield an empty list.
"""

import math
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Iterable
from uuid import UUID

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from models import Activity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PerformanceSample:
    """One immutable (condition, pace) observation."""
    condition_value: float
    pace_min_per_km: float
    heart_rate: Optional[float] = None
    date: Optional[datetime] = None
    completion_rate: float = 1.0


def _is_finite_number(value) -> bool:
    if value is None or isinstance(value, bool):
        return False
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def is_valid_sample(sample: PerformanceSample) -> bool:
    """A sample needs a finite condition and a finite, positive pace."""
    if not _is_finite_number(sample.condition_value):
        return False
    if not _is_finite_number(sample.pace_min_per_km):
        return False
    return sample.pace_min_per_km > 0


def is_valid_hour_sample(sample: PerformanceSample) -> bool:
    if not is_valid_sample(sample):
        return False
    hour = sample.condition_value
    return float(hour).is_integer() and 0 <= hour <= 23


def filter_valid(samples: Iterable[PerformanceSample], hourly: bool = False) -> List[PerformanceSample]:
    check = is_valid_hour_sample if hourly else is_valid_sample
    return [s for s in samples if check(s)]


def _to_sample(activity: Activity, condition_value) -> Optional[PerformanceSample]:
    pace = activity.pace_min_per_km
    if pace is None or condition_value is None:
        return None
    completion = activity.completion_rate
    if not _is_finite_number(completion):
        completion = 1.0
    return PerformanceSample(
        condition_value=float(condition_value),
        pace_min_per_km=pace,
        heart_rate=float(activity.avg_hr) if activity.avg_hr else None,
        date=activity.start_time,
        completion_rate=max(0.0, min(1.0, float(completion))),
    )


def _load_activities(db: Session, athlete_id: UUID, condition_column=None) -> List[Activity]:
    query = db.query(Activity).filter(Activity.athlete_id == athlete_id)
    if condition_column is not None:
        query = query.filter(condition_column.isnot(None))
    return query.order_by(Activity.start_time.asc()).all()


def _load(db: Session, athlete_id: UUID, kind: str, condition_column, condition_of, hourly: bool = False) -> List[PerformanceSample]:
    try:
        activities = _load_activities(db, athlete_id, condition_column)
    except SQLAlchemyError as e:
        logger.error(f"Failed to load {kind} samples for athlete {athlete_id}: {e}")
        db.rollback()
        return []

    samples = []
    for activity in activities:
        sample = _to_sample(activity, condition_of(activity))
        if sample is not None:
            samples.append(sample)

    valid = filter_valid(samples, hourly=hourly)
    dropped = len(activities) - len(valid)
    if dropped:
        logger.debug(f"Dropped {dropped} malformed {kind} samples for athlete {athlete_id}")
    return valid


def load_temperature_samples(db: Session, athlete_id: UUID) -> List[PerformanceSample]:
    return _load(db, athlete_id, "temperature", Activity.temperature_c, lambda a: a.temperature_c)


def load_altitude_samples(db: Session, athlete_id: UUID) -> List[PerformanceSample]:
    return _load(db, athlete_id, "altitude", Activity.altitude_m, lambda a: a.altitude_m)


def _local_hour(activity: Activity) -> Optional[int]:
    if activity.local_start_hour is not None:
        return activity.local_start_hour
    return activity.start_time.hour if activity.start_time else None


def load_time_of_day_samples(db: Session, athlete_id: UUID) -> List[PerformanceSample]:
    return _load(
        db, athlete_id, "time-of-day", None,
        _local_hour,
        hourly=True,
    )
