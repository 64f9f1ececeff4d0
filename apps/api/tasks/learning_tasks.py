"""
Learning Tasks

Background learning passes:
- Environmental profiles (heat, altitude, time-of-day) for one athlete
- Weekly ACWR metrics and personal baselines for one athlete
- Nightly fan-out over every athlete

Each pass is a one-shot read-compute-write. A failure for one athlete is
logged and reported in the result; it never stops the others.
"""

from typing import Dict
from uuid import UUID
import logging

from celery import Task
from sqlalchemy.orm import Session

from core.database import get_db_sync
from models import Athlete
from services.environmental_profiles import EnvironmentalLearner
from services.workload_ratio import WorkloadService
from tasks import celery_app

logger = logging.getLogger(__name__)


def _recompute_profiles(db: Session, athlete_id: UUID) -> Dict:
    profiles = EnvironmentalLearner(db).learn_all(athlete_id)
    return {
        adaptation_type.value: {
            "persisted": not profile.is_default,
            "sample_count": profile.sample_count,
            "confidence_score": profile.confidence_score,
        }
        for adaptation_type, profile in profiles.items()
    }


def _refresh_workload(db: Session, athlete_id: UUID) -> Dict:
    service = WorkloadService(db)
    weeks = service.refresh_weekly_metrics(athlete_id)
    baselines = service.refresh_baselines(athlete_id)
    return {
        "weeks": len(weeks),
        "baselines": baselines.to_dict() if baselines else None,
    }


@celery_app.task(name="tasks.recompute_environmental_profiles", bind=True)
def recompute_environmental_profiles(self: Task, athlete_id: str) -> Dict:
    """Relearn every environmental profile for one athlete."""
    db = get_db_sync()
    try:
        result = _recompute_profiles(db, UUID(athlete_id))
        logger.info(f"Environmental profiles recomputed for athlete {athlete_id}: {result}")
        return {"status": "success", "athlete_id": athlete_id, "profiles": result}
    except Exception as e:
        logger.error(f"Environmental recompute failed for athlete {athlete_id}: {e}", exc_info=True)
        db.rollback()
        return {"status": "error", "athlete_id": athlete_id, "message": str(e)}
    finally:
        db.close()


@celery_app.task(name="tasks.refresh_workload_baselines", bind=True)
def refresh_workload_baselines(self: Task, athlete_id: str) -> Dict:
    """Rebuild weekly load metrics and ACWR baselines for one athlete."""
    db = get_db_sync()
    try:
        result = _refresh_workload(db, UUID(athlete_id))
        return {"status": "success", "athlete_id": athlete_id, **result}
    except Exception as e:
        logger.error(f"Workload refresh failed for athlete {athlete_id}: {e}", exc_info=True)
        db.rollback()
        return {"status": "error", "athlete_id": athlete_id, "message": str(e)}
    finally:
        db.close()


@celery_app.task(name="tasks.recompute_all_athletes")
def recompute_all_athletes() -> Dict:
    """
    Nightly pass over every athlete.

    Runs in-process, one athlete at a time, so a single failure is
    contained to that athlete's entry in the result.
    """
    db = get_db_sync()
    succeeded = 0
    failed = []
    try:
        athlete_ids = [row.id for row in db.query(Athlete.id).all()]
        logger.info(f"Recomputing learned state for {len(athlete_ids)} athletes")

        for athlete_id in athlete_ids:
            try:
                _recompute_profiles(db, athlete_id)
                _refresh_workload(db, athlete_id)
                succeeded += 1
            except Exception as e:
                logger.error(f"Recompute failed for athlete {athlete_id}: {e}", exc_info=True)
                db.rollback()
                failed.append(str(athlete_id))
    finally:
        db.close()

    logger.info(f"Nightly recompute done: {succeeded} succeeded, {len(failed)} failed")
    return {"status": "success", "succeeded": succeeded, "failed": failed}
