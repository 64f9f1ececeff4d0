from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from datetime import datetime, date
from uuid import UUID
from typing import Optional, List, Literal, Union, Annotated

from core.forecast_config import forecast_config


class AthleteCreate(BaseModel):
    email: Optional[str] = None
    display_name: Optional[str] = None


class AthleteResponse(BaseModel):
    id: UUID
    created_at: datetime
    email: Optional[str]
    display_name: Optional[str]

    model_config = ConfigDict(from_attributes=True)


class ActivityCreate(BaseModel):
    start_time: datetime
    name: Optional[str] = None
    sport: str = "run"
    duration_s: int = Field(gt=0)
    distance_m: int = Field(gt=0)
    avg_hr: Optional[int] = None
    total_elevation_gain: Optional[float] = None
    is_race: bool = False
    temperature_c: Optional[float] = None
    humidity_pct: Optional[float] = Field(default=None, ge=0, le=100)
    altitude_m: Optional[float] = None
    completion_rate: Optional[float] = Field(default=None, ge=0, le=1)


class ActivityResponse(BaseModel):
    id: UUID
    athlete_id: UUID
    start_time: datetime
    local_start_hour: Optional[int] = None
    name: Optional[str]
    duration_s: Optional[int]
    distance_m: Optional[int]
    avg_hr: Optional[int]
    is_race: bool
    temperature_c: Optional[float]
    humidity_pct: Optional[float]
    altitude_m: Optional[float]
    completion_rate: Optional[float]

    model_config = ConfigDict(from_attributes=True)


# =============================================================================
# STORED ADAPTATION COEFFICIENTS (tagged union on adaptation_type)
# =============================================================================

class CurvePointModel(BaseModel):
    bucket_value: float
    adjustment_pct: float


class _CurveCoefficients(BaseModel):
    curve: List[CurvePointModel] = []

    @field_validator("curve")
    @classmethod
    def buckets_strictly_increasing(cls, v: List[CurvePointModel]) -> List[CurvePointModel]:
        for prev, nxt in zip(v, v[1:]):
            if nxt.bucket_value <= prev.bucket_value:
                raise ValueError("curve buckets must be strictly increasing")
        return v


class HeatCoefficients(_CurveCoefficients):
    adaptation_type: Literal["heat_tolerance"] = "heat_tolerance"
    optimal_temp_c: float
    heat_threshold_c: float
    acclimatization_days: int = Field(ge=0)
    heat_slope_pct_per_c: float = 0.0


class AltitudeCoefficients(_CurveCoefficients):
    adaptation_type: Literal["altitude_response"] = "altitude_response"
    sea_level_base_pace: float = Field(gt=0)
    acclimatization_days: int = Field(ge=0)
    max_training_altitude_m: float
    degradation_pct_per_1000m: float = 0.0


class DaypartScoreModel(BaseModel):
    daypart: Literal["early_morning", "morning", "afternoon", "evening", "night"]
    score: float
    sample_count: int


class HourCompletionModel(BaseModel):
    hour: int = Field(ge=0, le=23)
    completion_pct: float


class TimeCoefficients(_CurveCoefficients):
    adaptation_type: Literal["optimal_time"] = "optimal_time"
    best_time_of_day: Literal["early_morning", "morning", "afternoon", "evening", "night"]
    daypart_scores: List[DaypartScoreModel] = []
    completion_rate_by_hour: List[HourCompletionModel] = []
    is_early_bird: bool


LearnedCoefficients = Annotated[
    Union[HeatCoefficients, AltitudeCoefficients, TimeCoefficients],
    Field(discriminator="adaptation_type"),
]

coefficients_adapter = TypeAdapter(LearnedCoefficients)


# =============================================================================
# FORECAST REQUESTS
# =============================================================================

class NutritionInputsModel(BaseModel):
    fueling_rate_g_per_hr: float = Field(default=60.0, ge=0)
    fluid_intake_ml_per_hr: float = Field(default=500.0, ge=0)
    sodium_intake_mg_per_hr: float = Field(default=400.0, ge=0)


class RaceConditionsModel(BaseModel):
    temperature_c: float = 15.0
    humidity_pct: float = Field(default=50.0, ge=0, le=100)
    elevation_gain_m: float = Field(default=0.0, ge=0)


class SimulationRequest(BaseModel):
    distance_km: float = Field(gt=0, le=forecast_config.sim_max_distance_km)
    target_duration_min: float = Field(gt=0, le=forecast_config.sim_max_duration_min)
    nutrition: NutritionInputsModel = NutritionInputsModel()
    conditions: RaceConditionsModel = RaceConditionsModel()
    readiness: float = Field(default=70.0, ge=0, le=100)
    intensity_pct: Optional[float] = Field(default=None, ge=0, le=100)
    pacing_strategy: Optional[Literal["conservative", "target", "aggressive"]] = None


class GIRiskRequest(BaseModel):
    fueling_rate_g_per_hr: float = Field(ge=0)
    heat_index: float
    intensity_pct: float = Field(ge=0, le=100)
    fluid_intake_ml_per_hr: float = Field(ge=0)
    sweat_rate_ml_per_hr: Optional[float] = Field(default=None, gt=0)


class BaselineProjectionRequest(BaseModel):
    distance_km: float = Field(gt=0)
    time_min: float = Field(gt=0)
    name: Optional[str] = None
    race_date: Optional[date] = None


class HeatProtocolRequest(BaseModel):
    target_heat_index: float
    days_until_race: int = Field(ge=0)
    current_tolerance: Optional[float] = None


class HeatSessionRequest(BaseModel):
    duration_min: float = Field(gt=0)
    intensity: Literal["easy", "moderate", "hard"] = "easy"
    forecast_heat_index: float
    current_tolerance: Optional[float] = None
