"""
Heat Acclimation Protocol Generator

Builds a week-by-week heat exposure schedule from:
- Current heat tolerance (from the learned heat profile)
- Expected race heat index
- Time available before the race

Phases:
- none:        under 2 weeks, heat management tips only
- maintenance: race heat is within 10 of current tolerance
- adaptation:  4+ weeks, full 4-6 week protocol
- initial:     2-3 weeks, rapid protocol with near-daily exposure

Each week's target heat index is interpolated linearly from current
tolerance towards the race heat index (week / total weeks), so exposure
never regresses from one week to the next.

Heat index values here use the simplified Celsius scale shared with the
race simulator (temperature + humidity / 100 x 5).
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple
import logging

from core.forecast_config import forecast_config, ForecastConfig
from services.heat_tolerance import HeatToleranceProfile

logger = logging.getLogger(__name__)


class ProtocolPhase(str, Enum):
    NONE = "none"
    INITIAL = "initial"
    ADAPTATION = "adaptation"
    MAINTENANCE = "maintenance"


@dataclass
class AcclimationSession:
    day: str
    duration_min: int
    intensity: str  # easy | moderate
    target_heat_index: float
    notes: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "day": self.day,
            "duration_min": self.duration_min,
            "intensity": self.intensity,
            "target_heat_index": self.target_heat_index,
            "notes": self.notes,
        }


@dataclass
class AcclimationWeek:
    week_number: int
    target_heat_index: float
    sessions: List[AcclimationSession]
    progression_note: str

    def to_dict(self) -> Dict:
        return {
            "week_number": self.week_number,
            "target_heat_index": self.target_heat_index,
            "sessions": [s.to_dict() for s in self.sessions],
            "progression_note": self.progression_note,
        }


@dataclass
class HeatAcclimationProtocol:
    phase: ProtocolPhase
    duration_weeks: int
    weekly_plan: List[AcclimationWeek]
    recommendations: List[str]
    warnings: List[str]
    target_heat_index: float
    current_tolerance: float

    def to_dict(self) -> Dict:
        return {
            "phase": self.phase.value,
            "duration_weeks": self.duration_weeks,
            "weekly_plan": [w.to_dict() for w in self.weekly_plan],
            "recommendations": self.recommendations,
            "warnings": self.warnings,
            "target_heat_index": self.target_heat_index,
            "current_tolerance": self.current_tolerance,
        }


@dataclass
class HeatTrainingRecommendation:
    go_ahead: bool
    heat_stress: float
    adjustments: List[str]
    alternatives: List[str]

    def to_dict(self) -> Dict:
        return {
            "go_ahead": self.go_ahead,
            "heat_stress": self.heat_stress,
            "adjustments": self.adjustments,
            "alternatives": self.alternatives,
        }


# Session templates: (day, minutes, intensity, share of the week's progression, notes)
Template = List[Tuple[str, int, str, float, List[str]]]

INITIAL_EXPOSURE: Template = [
    ("Monday", 30, "easy", 0.7, ["Start conservatively", "Monitor HR carefully"]),
    ("Wednesday", 40, "easy", 0.8, ["Slightly longer duration", "Stay in Zone 2"]),
    ("Friday", 45, "easy", 0.85, ["Finish with 5 min at moderate pace"]),
    ("Sunday", 50, "easy", 0.9, ["Longer easy run in heat"]),
]

CORE_ADAPTATION: Template = [
    ("Tuesday", 45, "moderate", 1.0, ["Include 3x5 min at tempo", "Monitor for dizziness"]),
    ("Thursday", 60, "easy", 1.0, ["Steady long run in heat"]),
    ("Saturday", 40, "moderate", 1.0, ["Race-specific intervals"]),
]

RACE_SPECIFIC: Template = [
    ("Tuesday", 50, "moderate", 1.0, ["Race pace segments", "Practice nutrition"]),
    ("Friday", 40, "easy", 1.0, ["Maintain adaptations"]),
]

RAPID: Template = [
    ("Monday", 40, "easy", 0.8, ["Start conservative"]),
    ("Tuesday", 30, "easy", 0.85, ["Back-to-back heat stimulus"]),
    ("Wednesday", 45, "moderate", 0.9, ["Add race pace segments"]),
    ("Friday", 50, "easy", 1.0, ["Longer exposure"]),
    ("Sunday", 40, "moderate", 1.0, ["Race-specific effort"]),
]

HEAT_MANAGEMENT_TIPS = [
    "Insufficient time for full heat acclimation",
    "Focus on heat management strategies instead:",
    "Pre-cooling (ice vest, cold fluids)",
    "Aggressive early hydration",
    "Realistic pace expectations",
    "Early morning start if possible",
]

FULL_RECOMMENDATIONS = [
    "Heat acclimation is highly individual - monitor your response",
    "Hydrate aggressively: +500 ml/hour in heat",
    "Increase sodium intake: 500-700 mg/hour",
    "Expect 6-10 bpm higher HR initially",
    "Full adaptation takes 10-14 days",
    "Benefits decay after 2-3 weeks without heat exposure",
    "Consider passive heat: hot bath, sauna, overdressing",
]

FULL_WARNINGS = [
    "Stop immediately if experiencing nausea, dizziness, or confusion",
    "Never train alone in extreme heat",
    "HR above 90% max at easy pace = stop and cool down",
    "Weight loss >2% body weight = inadequate hydration",
]

RAPID_RECOMMENDATIONS = [
    "Rapid protocol - more frequent sessions required",
    "Daily heat exposure for the first 5-7 days is critical",
    "Consider 2x/day if time is very limited: morning run + hot bath",
    "Aggressive hydration essential",
    "Monitor recovery carefully - reduce volume if needed",
    "Passive heat options: sauna, hot bath (40 C), overdressing",
]

RAPID_WARNINGS = [
    "Rapid acclimation increases fatigue - reduce total training volume",
    "Higher risk of overtraining - prioritize recovery",
    "Daily sessions are demanding - listen to your body",
    "If the race is under 10 days away, focus on heat management instead",
]


def estimate_current_heat_tolerance(
    profile: Optional[HeatToleranceProfile],
    config: ForecastConfig = forecast_config,
) -> float:
    """Heat threshold of a confident learned profile, else the configured default."""
    if profile is None or profile.confidence_score < config.heat_protocol_min_profile_confidence:
        return config.heat_protocol_default_tolerance
    return profile.heat_threshold_c


def _week_target(tolerance: float, target: float, week: int, total_weeks: int) -> float:
    return tolerance + (target - tolerance) * week / total_weeks


def _sessions(template: Template, tolerance: float, week_target: float) -> List[AcclimationSession]:
    """Session heat index = tolerance + share x (week target - tolerance)."""
    return [
        AcclimationSession(
            day=day,
            duration_min=minutes,
            intensity=intensity,
            target_heat_index=round(tolerance + (week_target - tolerance) * share, 1),
            notes=list(notes),
        )
        for day, minutes, intensity, share, notes in template
    ]


def _full_protocol(tolerance: float, target: float, weeks_available: int) -> HeatAcclimationProtocol:
    # One week is left for taper; the protocol runs 4-6 weeks
    weeks = min(max(weeks_available - 1, 4), 6)
    plan = []
    for week in range(1, weeks + 1):
        week_target = _week_target(tolerance, target, week, weeks)
        if week <= 2:
            sessions = _sessions(INITIAL_EXPOSURE, tolerance, week_target)
            note = (
                "Initial exposure - expect elevated HR and perceived effort"
                if week == 1 else "Body begins adapting - plasma volume increases"
            )
        elif week <= 4:
            sessions = _sessions(CORE_ADAPTATION, tolerance, week_target)
            note = "Peak adaptation phase - sweat rate increases, HR normalizes"
        else:
            sessions = _sessions(RACE_SPECIFIC, tolerance, week_target)
            note = "Maintenance - adaptations fully established"
        plan.append(AcclimationWeek(week, round(week_target, 1), sessions, note))

    return HeatAcclimationProtocol(
        phase=ProtocolPhase.ADAPTATION,
        duration_weeks=weeks,
        weekly_plan=plan,
        recommendations=list(FULL_RECOMMENDATIONS),
        warnings=list(FULL_WARNINGS),
        target_heat_index=target,
        current_tolerance=tolerance,
    )


def _rapid_protocol(tolerance: float, target: float, weeks_available: int) -> HeatAcclimationProtocol:
    weeks = min(max(weeks_available - 1, 2), 3)
    plan = []
    for week in range(1, weeks + 1):
        week_target = _week_target(tolerance, target, week, weeks)
        sessions = _sessions(RAPID, tolerance, week_target)
        if week == 1:
            # Wednesday drops to easy in week one; Sunday stays moderate
            wednesday = sessions[2]
            wednesday.intensity = "easy"
            wednesday.notes = ["Slightly longer"]
            note = "Rapid initial adaptation - daily heat exposure"
        elif week == 2:
            note = "Core adaptation phase - add intensity"
        else:
            note = "Final adaptation week"
        plan.append(AcclimationWeek(week, round(week_target, 1), sessions, note))

    return HeatAcclimationProtocol(
        phase=ProtocolPhase.INITIAL,
        duration_weeks=weeks,
        weekly_plan=plan,
        recommendations=list(RAPID_RECOMMENDATIONS),
        warnings=list(RAPID_WARNINGS),
        target_heat_index=target,
        current_tolerance=tolerance,
    )


def _maintenance_protocol(tolerance: float, target: float, weeks_available: int) -> HeatAcclimationProtocol:
    week = AcclimationWeek(
        week_number=1,
        target_heat_index=round(target, 1),
        sessions=[
            AcclimationSession("Tuesday", 45, "moderate", round(target, 1), ["Maintain adaptations with intensity"]),
            AcclimationSession("Friday", 40, "easy", round(min(target, tolerance), 1), ["Easy heat exposure"]),
        ],
        progression_note="Maintain current heat tolerance - 2 sessions/week sufficient",
    )
    return HeatAcclimationProtocol(
        phase=ProtocolPhase.MAINTENANCE,
        duration_weeks=min(weeks_available, 4),
        weekly_plan=[week],
        recommendations=[
            "Current heat tolerance is adequate",
            "Maintain with 2-3 heat sessions per week",
            "Focus on race-specific training",
        ],
        warnings=[],
        target_heat_index=target,
        current_tolerance=tolerance,
    )


def generate_heat_acclimation_protocol(
    current_tolerance: float,
    target_heat_index: float,
    days_until_race: int,
    config: ForecastConfig = forecast_config,
) -> HeatAcclimationProtocol:
    weeks = max(0, days_until_race) // 7

    if weeks < config.heat_protocol_min_weeks:
        logger.info(f"Heat protocol: {days_until_race} days to race, tips only")
        return HeatAcclimationProtocol(
            phase=ProtocolPhase.NONE,
            duration_weeks=0,
            weekly_plan=[],
            recommendations=list(HEAT_MANAGEMENT_TIPS),
            warnings=[
                "Heat acclimation requires a minimum of 10-14 days",
                "Training hard in heat without adaptation increases injury risk",
            ],
            target_heat_index=target_heat_index,
            current_tolerance=current_tolerance,
        )

    gap = target_heat_index - current_tolerance
    if gap <= config.heat_protocol_maintenance_gap:
        protocol = _maintenance_protocol(current_tolerance, target_heat_index, weeks)
    elif weeks >= config.heat_protocol_full_min_weeks:
        protocol = _full_protocol(current_tolerance, target_heat_index, weeks)
    else:
        protocol = _rapid_protocol(current_tolerance, target_heat_index, weeks)

    logger.info(
        f"Heat protocol: phase={protocol.phase.value} weeks={protocol.duration_weeks} "
        f"tolerance={current_tolerance} target={target_heat_index}"
    )
    return protocol


def get_heat_training_recommendation(
    planned_duration_min: float,
    planned_intensity: str,
    forecast_heat_index: float,
    current_tolerance: float,
    config: ForecastConfig = forecast_config,
) -> HeatTrainingRecommendation:
    """Go / adjust / move guidance for one planned session in forecast heat."""
    stress = forecast_heat_index - current_tolerance

    if stress < config.heat_session_moderate_stress:
        return HeatTrainingRecommendation(
            go_ahead=True,
            heat_stress=stress,
            adjustments=["Conditions within tolerance", "Train as planned"],
            alternatives=[],
        )

    if stress < config.heat_session_high_stress:
        return HeatTrainingRecommendation(
            go_ahead=True,
            heat_stress=stress,
            adjustments=[
                "Moderate heat stress expected",
                "Add 500 ml extra hydration",
                f"Reduce intensity 5-10% or shorten to about {round(planned_duration_min * config.heat_session_moderate_duration_ratio)} min",
                "Start conservatively - HR will be elevated",
            ],
            alternatives=["Shift to early morning if possible"],
        )

    return HeatTrainingRecommendation(
        go_ahead=planned_intensity == "easy",
        heat_stress=stress,
        adjustments=[
            "High heat stress - significant modifications needed",
            f"Reduce duration by 25-30% (about {round(planned_duration_min * config.heat_session_high_duration_ratio)} min)",
            "Easy pace only - no quality work",
            "Hydrate 1 L before, 500 ml every 30 min during",
            "Consider stopping early if HR is uncontrolled",
        ],
        alternatives=[
            "Move to early morning (before 7am)",
            "Indoor training (treadmill with fan)",
            "Alternative training (pool running, cycling)",
            "Rest day if not race-critical",
        ],
    )
