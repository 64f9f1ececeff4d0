"""
Workload Router

Acute:chronic workload ratio (ACWR) endpoints:
- Analysis for a timeframe against personal or universal safe zones
- Refresh of weekly metrics and personal baselines
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from pydantic import BaseModel

from core.database import get_db
from core.dependencies import get_athlete
from models import Athlete
from services.workload_ratio import TimeFrame, WorkloadService

router = APIRouter(prefix="/v1/athletes/{athlete_id}/workload", tags=["Workload"])


# ============ Response Models ============

class WeeklyLoadResponse(BaseModel):
    week_start_date: str
    total_distance_km: float
    acute_load: float
    chronic_load: Optional[float] = None
    acwr: Optional[float] = None
    run_count: int
    elevation_gain_m: float


class ZoneInfoResponse(BaseModel):
    personal_min: float
    personal_max: float
    universal_min: float
    universal_max: float
    has_personal_zone: bool


class ACWRAnalysisResponse(BaseModel):
    timeframe: str
    series: List[WeeklyLoadResponse]
    current_acwr: Optional[float] = None
    zone_info: ZoneInfoResponse
    current_zone: Optional[str] = None
    risk_level: Optional[str] = None
    needs_more_data: bool
    has_data: bool
    total_weeks: int
    trend: str
    is_sustainable: bool
    sustainability_reason: str
    recommendation: Optional[str] = None
    feedback: Optional[str] = None


class RefreshResponse(BaseModel):
    weeks_computed: int
    acwr_mean: Optional[float] = None
    acwr_std_dev: Optional[float] = None
    acwr_lower_bound: Optional[float] = None
    acwr_upper_bound: Optional[float] = None
    data_quality_score: Optional[float] = None


# ============ Endpoints ============

@router.get("/acwr", response_model=ACWRAnalysisResponse)
def get_acwr(
    timeframe: TimeFrame = Query(TimeFrame.FOUR_WEEKS),
    athlete: Athlete = Depends(get_athlete),
    db: Session = Depends(get_db),
):
    """
    ACWR analysis for a timeframe.

    Personal zones are used once baselines exist with enough data quality;
    otherwise the universal 0.8-1.3 zone applies.
    """
    analysis = WorkloadService(db).analyze(athlete.id, timeframe)
    return ACWRAnalysisResponse(**analysis.to_dict())


@router.post("/refresh", response_model=RefreshResponse)
def refresh_workload(
    athlete: Athlete = Depends(get_athlete),
    db: Session = Depends(get_db),
):
    """Recompute weekly metrics from activities, then personal baselines."""
    service = WorkloadService(db)
    weeks = service.refresh_weekly_metrics(athlete.id)
    baselines = service.refresh_baselines(athlete.id)
    if baselines is None:
        return RefreshResponse(weeks_computed=len(weeks))
    return RefreshResponse(
        weeks_computed=len(weeks),
        acwr_mean=round(baselines.acwr_mean, 3),
        acwr_std_dev=round(baselines.acwr_std_dev, 3),
        acwr_lower_bound=round(baselines.acwr_lower_bound, 3),
        acwr_upper_bound=round(baselines.acwr_upper_bound, 3),
        data_quality_score=round(baselines.data_quality_score, 2),
    )
