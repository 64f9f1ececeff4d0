"""
Activities API Router

Athlete registration and activity ingestion. Activities are the
historical sample source for every learner; ingesting one drops the
athlete's cached profiles and queues a background recompute.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List
import logging

from core.database import get_db
from core.dependencies import get_athlete
from models import Activity, Athlete
from schemas import ActivityCreate, ActivityResponse, AthleteCreate, AthleteResponse
from services.environmental_profiles import on_activity_ingested
from tasks.learning_tasks import recompute_environmental_profiles

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/athletes", tags=["activities"])


@router.post("", response_model=AthleteResponse, status_code=status.HTTP_201_CREATED)
def create_athlete(payload: AthleteCreate, db: Session = Depends(get_db)):
    athlete = Athlete(email=payload.email, display_name=payload.display_name)
    db.add(athlete)
    db.commit()
    db.refresh(athlete)
    return athlete


@router.get("/{athlete_id}", response_model=AthleteResponse)
def read_athlete(athlete: Athlete = Depends(get_athlete)):
    return athlete


@router.post(
    "/{athlete_id}/activities",
    response_model=ActivityResponse,
    status_code=status.HTTP_201_CREATED,
)
def ingest_activity(
    payload: ActivityCreate,
    athlete: Athlete = Depends(get_athlete),
    db: Session = Depends(get_db),
):
    """
    Store one activity.

    Cached environmental profiles for the athlete are invalidated right
    away; the learning pass itself runs in the worker.
    """
    activity = Activity(
        athlete_id=athlete.id,
        local_start_hour=payload.start_time.hour,
        **payload.model_dump(),
    )
    db.add(activity)
    db.commit()
    db.refresh(activity)

    on_activity_ingested(athlete.id)
    try:
        recompute_environmental_profiles.delay(str(athlete.id))
    except Exception as e:
        # Profiles are recomputed by the nightly pass if the broker is down
        logger.warning(f"Could not enqueue profile recompute for athlete {athlete.id}: {e}")

    return activity


@router.get("/{athlete_id}/activities", response_model=List[ActivityResponse])
def list_activities(
    limit: int = Query(50, ge=1, le=500, description="Number of activities to return"),
    offset: int = Query(0, ge=0, description="Number of activities to skip"),
    athlete: Athlete = Depends(get_athlete),
    db: Session = Depends(get_db),
):
    return (
        db.query(Activity)
        .filter(Activity.athlete_id == athlete.id)
        .order_by(Activity.start_time.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
