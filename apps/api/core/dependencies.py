"""
Shared FastAPI dependencies.

Athlete lookup from the path parameter; unknown athletes are a 404
before any computation runs.
"""
from uuid import UUID

from fastapi import Depends
from sqlalchemy.orm import Session

from core.database import get_db
from core.exceptions import NotFoundError
from models import Athlete


def get_athlete(athlete_id: UUID, db: Session = Depends(get_db)) -> Athlete:
    athlete = db.query(Athlete).filter(Athlete.id == athlete_id).first()
    if athlete is None:
        raise NotFoundError("Athlete", str(athlete_id))
    return athlete
