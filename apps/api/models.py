from sqlalchemy import Column, Integer, Boolean, CheckConstraint, Float, Date, DateTime, ForeignKey, Numeric, Text, Index, UniqueConstraint, JSON, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func
from core.database import Base
import uuid

# JSONB on Postgres, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class Athlete(Base):
    __tablename__ = "athlete"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    email = Column(Text, unique=True, nullable=True)
    display_name = Column(Text, nullable=True)

    activities = relationship("Activity", back_populates="athlete", cascade="all, delete-orphan")
    weekly_load_metrics = relationship("WeeklyLoadMetric", back_populates="athlete", cascade="all, delete-orphan")
    environmental_adaptations = relationship("EnvironmentalAdaptation", back_populates="athlete", cascade="all, delete-orphan")


class Activity(Base):
    """
    One recorded run. The historical sample source for every learner:
    pace comes from distance/duration, the condition value from the
    environmental columns or the start hour.
    """
    __tablename__ = "activity"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    athlete_id = Column(Uuid(as_uuid=True), ForeignKey("athlete.id"), nullable=False, index=True)
    name = Column(Text, nullable=True)
    start_time = Column(DateTime(timezone=True), nullable=False)
    # Wall-clock hour at the start location; start_time is normalized to UTC on read
    local_start_hour = Column(Integer, nullable=True)
    sport = Column(Text, default="run", nullable=False)
    duration_s = Column(Integer, nullable=True)
    distance_m = Column(Integer, nullable=True)
    avg_hr = Column(Integer, nullable=True)
    total_elevation_gain = Column(Numeric, nullable=True)

    # --- RACE FLAG ---
    is_race = Column(Boolean, default=False, nullable=False)

    # --- ENVIRONMENTAL CONTEXT ---
    temperature_c = Column(Float, nullable=True)
    humidity_pct = Column(Float, nullable=True)
    altitude_m = Column(Float, nullable=True)  # Average altitude of the session

    # Fraction of the planned session actually completed (0-1)
    completion_rate = Column(Float, nullable=True)

    athlete = relationship("Athlete", back_populates="activities")

    __table_args__ = (
        Index("ix_activity_athlete_start_time", "athlete_id", "start_time"),
    )

    @property
    def distance_km(self):
        if not self.distance_m:
            return None
        return self.distance_m / 1000.0

    @property
    def pace_min_per_km(self):
        """Pace in minutes per km, None when distance or duration is missing."""
        if not self.distance_m or not self.duration_s:
            return None
        return (self.duration_s / 60.0) / (self.distance_m / 1000.0)


class WeeklyLoadMetric(Base):
    """Aggregated load for one Monday-start week."""
    __tablename__ = "weekly_load_metric"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    athlete_id = Column(Uuid(as_uuid=True), ForeignKey("athlete.id"), nullable=False, index=True)
    week_start_date = Column(Date, nullable=False)
    total_distance_km = Column(Float, nullable=False, default=0.0)
    acute_load = Column(Float, nullable=False, default=0.0)
    chronic_load = Column(Float, nullable=True)
    acwr = Column(Float, nullable=True)  # Null until 4 prior weeks exist
    run_count = Column(Integer, nullable=False, default=0)
    elevation_gain_m = Column(Float, nullable=False, default=0.0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    athlete = relationship("Athlete", back_populates="weekly_load_metrics")

    __table_args__ = (
        UniqueConstraint("athlete_id", "week_start_date", name="uq_weekly_load_athlete_week"),
    )


class AthleteLearningState(Base):
    """Per-athlete ACWR baselines learned from load history."""
    __tablename__ = "athlete_learning_state"

    athlete_id = Column(Uuid(as_uuid=True), ForeignKey("athlete.id"), primary_key=True)
    acwr_mean = Column(Float, nullable=False, default=1.0)
    acwr_std_dev = Column(Float, nullable=False, default=0.2)
    data_quality_score = Column(Float, nullable=False, default=0.0)
    baseline_pace = Column(Float, nullable=True)
    baseline_hr = Column(Float, nullable=True)
    computation_metadata = Column(JSONType, nullable=True)
    last_computed_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("data_quality_score >= 0 AND data_quality_score <= 1", name="ck_learning_state_quality_range"),
    )


class EnvironmentalAdaptation(Base):
    """
    Learned environmental response profile.

    One row per (athlete, adaptation_type). A learning pass overwrites the
    row entirely; coefficients are never merged.
    """
    __tablename__ = "environmental_adaptation"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    athlete_id = Column(Uuid(as_uuid=True), ForeignKey("athlete.id"), nullable=False, index=True)
    adaptation_type = Column(Text, nullable=False)  # 'heat_tolerance' | 'altitude_response' | 'optimal_time'
    learned_coefficients = Column(JSONType, nullable=False)
    confidence_score = Column(Float, nullable=False, default=0.0)
    data_points_count = Column(Integer, nullable=False, default=0)
    last_updated = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    athlete = relationship("Athlete", back_populates="environmental_adaptations")

    __table_args__ = (
        UniqueConstraint("athlete_id", "adaptation_type", name="uq_env_adaptation_athlete_type"),
        CheckConstraint("confidence_score >= 0 AND confidence_score <= 100", name="ck_env_adaptation_confidence_range"),
    )
