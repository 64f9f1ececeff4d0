"""
Environmental Profile Service

Persistence, caching and orchestration for the environmental learners.

Features:
- Upsert keyed by (athlete_id, adaptation_type), full overwrite, last write wins
- Read-through Redis cache with explicit invalidation on new activity data
- Stored coefficients validated as a tagged union on every read
- Learning passes that persist only real (non-default) profiles

Usage:
    learner = EnvironmentalLearner(db)
    heat = learner.learn_heat_tolerance(athlete_id)

    store = EnvironmentalProfileStore(db)
    heat = store.get(athlete_id, AdaptationType.HEAT_TOLERANCE)
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional, Union
from uuid import UUID
import logging

from pydantic import ValidationError
from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError

from core.cache import get_cache, set_cache, delete_cache, profile_cache_key, invalidate_profile_cache
from core.config import settings
from models import EnvironmentalAdaptation
from schemas import (
    coefficients_adapter,
    HeatCoefficients,
    AltitudeCoefficients,
    TimeCoefficients,
)
from services.environmental_samples import (
    load_temperature_samples,
    load_altitude_samples,
    load_time_of_day_samples,
)
from services.heat_tolerance import HeatToleranceProfile, learn_heat_tolerance
from services.altitude_response import AltitudeProfile, learn_altitude_response
from services.optimal_time import OptimalTimeProfile, DaypartScore, Daypart, learn_optimal_time
from services.response_curve import ResponseCurve

logger = logging.getLogger(__name__)


class AdaptationType(str, Enum):
    HEAT_TOLERANCE = "heat_tolerance"
    ALTITUDE_RESPONSE = "altitude_response"
    OPTIMAL_TIME = "optimal_time"


AdaptationProfile = Union[HeatToleranceProfile, AltitudeProfile, OptimalTimeProfile]


# =============================================================================
# PROFILE <-> COEFFICIENTS
# =============================================================================

def adaptation_type_of(profile: AdaptationProfile) -> AdaptationType:
    if isinstance(profile, HeatToleranceProfile):
        return AdaptationType.HEAT_TOLERANCE
    if isinstance(profile, AltitudeProfile):
        return AdaptationType.ALTITUDE_RESPONSE
    if isinstance(profile, OptimalTimeProfile):
        return AdaptationType.OPTIMAL_TIME
    raise TypeError(f"Not an adaptation profile: {type(profile).__name__}")


def profile_to_coefficients(profile: AdaptationProfile) -> Dict:
    """Coefficient blob stored for a profile (confidence and count live in their own columns)."""
    data = profile.to_dict()
    data.pop("confidence_score", None)
    data.pop("sample_count", None)
    data["adaptation_type"] = adaptation_type_of(profile).value
    # Round-trip through the model so the stored blob is always valid
    return coefficients_adapter.validate_python(data).model_dump()


def coefficients_to_profile(coefficients, confidence_score: float, sample_count: int) -> AdaptationProfile:
    curve = ResponseCurve.from_pairs((p.bucket_value, p.adjustment_pct) for p in coefficients.curve)

    if isinstance(coefficients, HeatCoefficients):
        return HeatToleranceProfile(
            optimal_temp_c=coefficients.optimal_temp_c,
            heat_threshold_c=coefficients.heat_threshold_c,
            curve=curve,
            acclimatization_days=coefficients.acclimatization_days,
            heat_slope_pct_per_c=coefficients.heat_slope_pct_per_c,
            sample_count=sample_count,
            confidence_score=confidence_score,
        )
    if isinstance(coefficients, AltitudeCoefficients):
        return AltitudeProfile(
            sea_level_base_pace=coefficients.sea_level_base_pace,
            curve=curve,
            acclimatization_days=coefficients.acclimatization_days,
            max_training_altitude_m=coefficients.max_training_altitude_m,
            degradation_pct_per_1000m=coefficients.degradation_pct_per_1000m,
            sample_count=sample_count,
            confidence_score=confidence_score,
        )
    if isinstance(coefficients, TimeCoefficients):
        best = Daypart(coefficients.best_time_of_day)
        return OptimalTimeProfile(
            best_time_of_day=best,
            daypart_scores=tuple(
                DaypartScore(Daypart(s.daypart), s.score, s.sample_count)
                for s in coefficients.daypart_scores
            ),
            curve=curve,
            completion_rate_by_hour=tuple(
                (c.hour, c.completion_pct) for c in coefficients.completion_rate_by_hour
            ),
            is_early_bird=coefficients.is_early_bird,
            sample_count=sample_count,
            confidence_score=confidence_score,
        )
    raise TypeError(f"Unknown coefficients: {type(coefficients).__name__}")


def _decode(adaptation_type: AdaptationType, payload: Dict) -> Optional[AdaptationProfile]:
    """Validate a {coefficients, confidence_score, data_points_count} payload."""
    try:
        coefficients = coefficients_adapter.validate_python(payload["coefficients"])
        if coefficients.adaptation_type != adaptation_type.value:
            raise ValueError(
                f"stored type {coefficients.adaptation_type} does not match {adaptation_type.value}"
            )
        return coefficients_to_profile(
            coefficients,
            confidence_score=float(payload["confidence_score"]),
            sample_count=int(payload["data_points_count"]),
        )
    except (ValidationError, ValueError, KeyError, TypeError) as e:
        logger.warning(f"Invalid stored {adaptation_type.value} coefficients: {e}")
        return None


# =============================================================================
# STORE
# =============================================================================

class EnvironmentalProfileStore:
    """
    Upsert / read-through access to learned profiles.

    Reads return None when no profile exists, the stored blob is invalid,
    or storage fails. Nothing here retries.
    """

    def __init__(self, db: Session):
        self.db = db

    def upsert(self, athlete_id: UUID, profile: AdaptationProfile) -> bool:
        """Overwrite the athlete's profile of this type. Returns False on storage failure."""
        adaptation_type = adaptation_type_of(profile)
        coefficients = profile_to_coefficients(profile)

        try:
            row = (
                self.db.query(EnvironmentalAdaptation)
                .filter(
                    EnvironmentalAdaptation.athlete_id == athlete_id,
                    EnvironmentalAdaptation.adaptation_type == adaptation_type.value,
                )
                .first()
            )
            if row is None:
                row = EnvironmentalAdaptation(
                    athlete_id=athlete_id,
                    adaptation_type=adaptation_type.value,
                )
                self.db.add(row)

            row.learned_coefficients = coefficients
            row.confidence_score = profile.confidence_score
            row.data_points_count = profile.sample_count
            row.last_updated = datetime.now(timezone.utc)
            self.db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to save {adaptation_type.value} profile for athlete {athlete_id}: {e}")
            self.db.rollback()
            return False

        delete_cache(profile_cache_key(athlete_id, adaptation_type.value))
        logger.info(
            f"Saved {adaptation_type.value} profile for athlete {athlete_id} "
            f"(confidence={profile.confidence_score}, samples={profile.sample_count})"
        )
        return True

    def get(self, athlete_id: UUID, adaptation_type: AdaptationType) -> Optional[AdaptationProfile]:
        adaptation_type = AdaptationType(adaptation_type)
        key = profile_cache_key(athlete_id, adaptation_type.value)

        cached = get_cache(key)
        if cached is not None:
            profile = _decode(adaptation_type, cached)
            if profile is not None:
                return profile
            delete_cache(key)

        try:
            row = (
                self.db.query(EnvironmentalAdaptation)
                .filter(
                    EnvironmentalAdaptation.athlete_id == athlete_id,
                    EnvironmentalAdaptation.adaptation_type == adaptation_type.value,
                )
                .first()
            )
        except SQLAlchemyError as e:
            logger.error(f"Failed to read {adaptation_type.value} profile for athlete {athlete_id}: {e}")
            self.db.rollback()
            return None

        if row is None:
            return None

        payload = {
            "coefficients": row.learned_coefficients,
            "confidence_score": row.confidence_score,
            "data_points_count": row.data_points_count,
        }
        profile = _decode(adaptation_type, payload)
        if profile is not None:
            set_cache(key, payload, ttl=settings.CACHE_TTL_PROFILE)
        return profile

    def invalidate(self, athlete_id: UUID, adaptation_type: Optional[AdaptationType] = None) -> int:
        types = None if adaptation_type is None else [AdaptationType(adaptation_type).value]
        return invalidate_profile_cache(athlete_id, types)


# =============================================================================
# LEARNING PASSES
# =============================================================================

class EnvironmentalLearner:
    """
    Load samples, learn, persist.

    Default profiles (insufficient data) are returned to the caller but
    never persisted, so a prior real profile is left untouched.
    """

    def __init__(self, db: Session, store: Optional[EnvironmentalProfileStore] = None):
        self.db = db
        self.store = store or EnvironmentalProfileStore(db)

    def _persist(self, athlete_id: UUID, profile: AdaptationProfile) -> AdaptationProfile:
        if profile.is_default:
            logger.info(
                f"Not persisting default {adaptation_type_of(profile).value} profile "
                f"for athlete {athlete_id} ({profile.sample_count} samples)"
            )
            return profile
        self.store.upsert(athlete_id, profile)
        return profile

    def learn_heat_tolerance(self, athlete_id: UUID) -> HeatToleranceProfile:
        samples = load_temperature_samples(self.db, athlete_id)
        return self._persist(athlete_id, learn_heat_tolerance(samples))

    def learn_altitude_response(self, athlete_id: UUID) -> AltitudeProfile:
        samples = load_altitude_samples(self.db, athlete_id)
        return self._persist(athlete_id, learn_altitude_response(samples))

    def learn_optimal_time(self, athlete_id: UUID) -> OptimalTimeProfile:
        samples = load_time_of_day_samples(self.db, athlete_id)
        return self._persist(athlete_id, learn_optimal_time(samples))

    def learn_all(self, athlete_id: UUID) -> Dict[AdaptationType, AdaptationProfile]:
        return {
            AdaptationType.HEAT_TOLERANCE: self.learn_heat_tolerance(athlete_id),
            AdaptationType.ALTITUDE_RESPONSE: self.learn_altitude_response(athlete_id),
            AdaptationType.OPTIMAL_TIME: self.learn_optimal_time(athlete_id),
        }


def on_activity_ingested(athlete_id: UUID) -> int:
    """Hook for activity ingestion: drop every cached profile for the athlete."""
    return invalidate_profile_cache(athlete_id)
