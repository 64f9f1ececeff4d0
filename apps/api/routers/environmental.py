"""
Environmental Adaptation Router

Exposes the learned environmental response profiles:
- Run a learning pass (heat, altitude, time-of-day)
- Read a stored profile by adaptation type
- Pace adjustment predictions for a temperature, altitude or clock hour
- Altitude arrival schedule check
- Workout start-time suggestion
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Dict, List, Optional, Any
from pydantic import BaseModel

from core.database import get_db
from core.dependencies import get_athlete
from core.exceptions import InsightUnavailableError
from models import Athlete
from services.environmental_profiles import (
    AdaptationType,
    EnvironmentalLearner,
    EnvironmentalProfileStore,
)
from services.heat_tolerance import predict_pace_adjustment_for_temp
from services.altitude_response import (
    predict_pace_adjustment_for_altitude,
    assess_acclimatization_schedule,
)
from services.optimal_time import predict_pace_adjustment_for_hour, suggest_workout_time

router = APIRouter(prefix="/v1/athletes/{athlete_id}/environment", tags=["Environmental Adaptation"])


# ============ Response Models ============

class LearnedProfileResponse(BaseModel):
    adaptation_type: str
    is_default: bool
    sample_count: int
    confidence_score: float
    profile: Dict[str, Any]


class LearnResponse(BaseModel):
    athlete_id: str
    profiles: List[LearnedProfileResponse]


class PaceAdjustmentResponse(BaseModel):
    condition: str
    value: float
    adjustment_pct: float
    has_profile: bool


class AltitudeScheduleResponse(BaseModel):
    is_adequate: bool
    recommendation: str
    recommended_days: int


class WorkoutTimeResponse(BaseModel):
    hour: int
    reason: str


def _profile_response(adaptation_type: AdaptationType, profile) -> LearnedProfileResponse:
    return LearnedProfileResponse(
        adaptation_type=adaptation_type.value,
        is_default=profile.is_default,
        sample_count=profile.sample_count,
        confidence_score=profile.confidence_score,
        profile=profile.to_dict(),
    )


# ============ Endpoints ============

@router.post("/learn", response_model=LearnResponse)
def learn_profiles(
    athlete: Athlete = Depends(get_athlete),
    db: Session = Depends(get_db),
):
    """
    Recompute every environmental profile from the athlete's history.

    Profiles backed by too few samples come back as defaults with zero
    confidence and are not stored.
    """
    profiles = EnvironmentalLearner(db).learn_all(athlete.id)
    return LearnResponse(
        athlete_id=str(athlete.id),
        profiles=[_profile_response(t, p) for t, p in profiles.items()],
    )


@router.get("/profiles/{adaptation_type}", response_model=LearnedProfileResponse)
def get_profile(
    adaptation_type: AdaptationType,
    athlete: Athlete = Depends(get_athlete),
    db: Session = Depends(get_db),
):
    profile = EnvironmentalProfileStore(db).get(athlete.id, adaptation_type)
    if profile is None:
        raise InsightUnavailableError(adaptation_type.value)
    return _profile_response(adaptation_type, profile)


@router.get("/heat-adjustment", response_model=PaceAdjustmentResponse)
def get_heat_adjustment(
    temperature_c: float = Query(..., ge=-40, le=60),
    athlete: Athlete = Depends(get_athlete),
    db: Session = Depends(get_db),
):
    """Expected pace change at a temperature; fixed rule when no profile is stored."""
    profile = EnvironmentalProfileStore(db).get(athlete.id, AdaptationType.HEAT_TOLERANCE)
    return PaceAdjustmentResponse(
        condition="temperature_c",
        value=temperature_c,
        adjustment_pct=round(predict_pace_adjustment_for_temp(profile, temperature_c), 2),
        has_profile=profile is not None,
    )


@router.get("/altitude-adjustment", response_model=PaceAdjustmentResponse)
def get_altitude_adjustment(
    altitude_m: float = Query(..., ge=-500, le=9000),
    athlete: Athlete = Depends(get_athlete),
    db: Session = Depends(get_db),
):
    profile = EnvironmentalProfileStore(db).get(athlete.id, AdaptationType.ALTITUDE_RESPONSE)
    return PaceAdjustmentResponse(
        condition="altitude_m",
        value=altitude_m,
        adjustment_pct=round(predict_pace_adjustment_for_altitude(profile, altitude_m), 2),
        has_profile=profile is not None,
    )


@router.get("/hour-adjustment", response_model=PaceAdjustmentResponse)
def get_hour_adjustment(
    hour: int = Query(..., ge=0, le=23),
    athlete: Athlete = Depends(get_athlete),
    db: Session = Depends(get_db),
):
    profile = EnvironmentalProfileStore(db).get(athlete.id, AdaptationType.OPTIMAL_TIME)
    return PaceAdjustmentResponse(
        condition="hour",
        value=hour,
        adjustment_pct=round(predict_pace_adjustment_for_hour(profile, hour), 2),
        has_profile=profile is not None,
    )


@router.get("/altitude-schedule", response_model=AltitudeScheduleResponse)
def get_altitude_schedule(
    current_altitude_m: float = Query(..., ge=-500, le=9000),
    target_altitude_m: float = Query(..., ge=-500, le=9000),
    arrival_days_before_race: int = Query(..., ge=0, le=365),
    athlete: Athlete = Depends(get_athlete),
    db: Session = Depends(get_db),
):
    """Is arriving N days before a race at altitude enough for this athlete?"""
    profile = EnvironmentalProfileStore(db).get(athlete.id, AdaptationType.ALTITUDE_RESPONSE)
    assessment = assess_acclimatization_schedule(
        current_altitude_m, target_altitude_m, arrival_days_before_race, profile
    )
    return AltitudeScheduleResponse(**assessment.to_dict())


@router.get("/workout-time", response_model=WorkoutTimeResponse)
def get_workout_time(
    workout_type: str = Query("easy"),
    temperature_c: Optional[float] = Query(None, ge=-40, le=60),
    athlete: Athlete = Depends(get_athlete),
    db: Session = Depends(get_db),
):
    profile = EnvironmentalProfileStore(db).get(athlete.id, AdaptationType.OPTIMAL_TIME)
    return WorkoutTimeResponse(**suggest_workout_time(workout_type, temperature_c, profile).to_dict())
