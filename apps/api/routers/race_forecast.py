"""
Race Forecast Router

Race-day forecasting endpoints:
- Projections across distances from the athlete's best recent performance
- Projections from an explicit baseline
- Physiological race simulation (energy, hydration, GI risk, pacing advice)
- Standalone GI risk check
- Heat acclimation protocol and per-session heat guidance
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Dict, List, Optional, Any
from pydantic import BaseModel

from core.database import get_db
from core.dependencies import get_athlete
from core.exceptions import InsightUnavailableError, ValidationError
from models import Activity, Athlete
from schemas import (
    BaselineProjectionRequest,
    GIRiskRequest,
    HeatProtocolRequest,
    HeatSessionRequest,
    SimulationRequest,
)
from services.environmental_profiles import AdaptationType, EnvironmentalProfileStore
from services.race_projection import (
    BaselineRace,
    adjustment_from_profiles,
    build_projection_table,
    find_best_baseline,
)
from services.energy_dynamics import (
    NutritionInputs,
    PacingStrategy,
    RaceConditions,
    calculate_gi_risk,
    run_physiological_simulation,
)
from services.heat_acclimation import (
    estimate_current_heat_tolerance,
    generate_heat_acclimation_protocol,
    get_heat_training_recommendation,
)


router = APIRouter(prefix="/v1/race-forecast", tags=["Race Forecast"])


# ============ Response Models ============

class ProjectionResponse(BaseModel):
    distance_name: str
    distance_km: float
    predicted_time_min: float
    adjusted_time_min: float
    formatted: str
    pace_min_per_km: float
    pace: str
    confidence: float


class ProjectionTableResponse(BaseModel):
    baseline: Dict[str, Any]
    adjustment: Dict[str, float]
    projections: List[ProjectionResponse]


class GIRiskResponse(BaseModel):
    risk_pct: float
    level: str
    message: str


class HeatSessionResponse(BaseModel):
    go_ahead: bool
    heat_stress: float
    adjustments: List[str]
    alternatives: List[str]


def _projection_table(baseline: BaselineRace, adjustment=None) -> ProjectionTableResponse:
    try:
        entries = build_projection_table(baseline, adjustment)
    except ValueError as e:
        raise ValidationError(str(e), field="baseline")
    return ProjectionTableResponse(
        baseline=baseline.to_dict(),
        adjustment=adjustment.to_dict() if adjustment else {},
        projections=[ProjectionResponse(**e.to_dict()) for e in entries],
    )


# ============ Projections ============

@router.get("/athletes/{athlete_id}/projections", response_model=ProjectionTableResponse)
def get_athlete_projections(
    temperature_c: Optional[float] = Query(None, ge=-40, le=60),
    altitude_m: Optional[float] = Query(None, ge=-500, le=9000),
    start_hour: Optional[int] = Query(None, ge=0, le=23),
    athlete: Athlete = Depends(get_athlete),
    db: Session = Depends(get_db),
):
    """
    Project race times from the athlete's best recent performance.

    Optional race-day conditions apply the athlete's learned heat, altitude
    and time-of-day adjustments on top of the raw projection.
    """
    activities = (
        db.query(Activity)
        .filter(Activity.athlete_id == athlete.id)
        .order_by(Activity.start_time.desc())
        .all()
    )
    baseline = find_best_baseline(activities)
    if baseline is None:
        raise InsightUnavailableError("baseline performance")

    adjustment = None
    if temperature_c is not None or altitude_m is not None or start_hour is not None:
        store = EnvironmentalProfileStore(db)
        adjustment = adjustment_from_profiles(
            heat=store.get(athlete.id, AdaptationType.HEAT_TOLERANCE) if temperature_c is not None else None,
            altitude=store.get(athlete.id, AdaptationType.ALTITUDE_RESPONSE) if altitude_m is not None else None,
            timing=store.get(athlete.id, AdaptationType.OPTIMAL_TIME) if start_hour is not None else None,
            temperature_c=temperature_c,
            altitude_m=altitude_m,
            start_hour=start_hour,
        )

    return _projection_table(baseline, adjustment)


@router.post("/projections", response_model=ProjectionTableResponse)
def post_projections(request: BaselineProjectionRequest):
    """Project race times from an explicit baseline performance."""
    baseline = BaselineRace(
        distance_km=request.distance_km,
        time_min=request.time_min,
        name=request.name or "Baseline",
        race_date=request.race_date,
        source="manual",
    )
    return _projection_table(baseline)


# ============ Simulation ============

@router.post("/simulate")
def simulate_race(request: SimulationRequest) -> Dict[str, Any]:
    """
    Simulate a race under the three pacing strategies.

    Returns per-km glycogen/fatigue sequences, time to exhaustion per
    strategy, hydration, GI risk, time penalty and pacing insights.
    """
    try:
        simulation = run_physiological_simulation(
            distance_km=request.distance_km,
            base_time_min=request.target_duration_min,
            nutrition=NutritionInputs(**request.nutrition.model_dump()),
            conditions=RaceConditions(**request.conditions.model_dump()),
            readiness=request.readiness,
            selected_strategy=PacingStrategy(request.pacing_strategy) if request.pacing_strategy else None,
            intensity_pct=request.intensity_pct,
        )
    except ValueError as e:
        raise ValidationError(str(e), field="simulation")
    return simulation.to_dict()


@router.post("/gi-risk", response_model=GIRiskResponse)
def post_gi_risk(request: GIRiskRequest):
    assessment = calculate_gi_risk(
        request.fueling_rate_g_per_hr,
        request.heat_index,
        request.intensity_pct,
        request.fluid_intake_ml_per_hr,
        sweat_rate=request.sweat_rate_ml_per_hr,
    )
    return GIRiskResponse(**assessment.to_dict())


# ============ Heat Acclimation ============

def _tolerance(athlete_id, explicit: Optional[float], db: Session) -> float:
    if explicit is not None:
        return explicit
    profile = EnvironmentalProfileStore(db).get(athlete_id, AdaptationType.HEAT_TOLERANCE)
    return estimate_current_heat_tolerance(profile)


@router.post("/athletes/{athlete_id}/heat-protocol")
def post_heat_protocol(
    request: HeatProtocolRequest,
    athlete: Athlete = Depends(get_athlete),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    """
    Week-by-week heat acclimation plan for a hot race.

    Current tolerance comes from the request, else from the athlete's
    learned heat profile, else the default.
    """
    tolerance = _tolerance(athlete.id, request.current_tolerance, db)
    protocol = generate_heat_acclimation_protocol(
        tolerance, request.target_heat_index, request.days_until_race
    )
    return protocol.to_dict()


@router.post("/athletes/{athlete_id}/heat-session", response_model=HeatSessionResponse)
def post_heat_session(
    request: HeatSessionRequest,
    athlete: Athlete = Depends(get_athlete),
    db: Session = Depends(get_db),
):
    tolerance = _tolerance(athlete.id, request.current_tolerance, db)
    recommendation = get_heat_training_recommendation(
        request.duration_min, request.intensity, request.forecast_heat_index, tolerance
    )
    return HeatSessionResponse(**recommendation.to_dict())
