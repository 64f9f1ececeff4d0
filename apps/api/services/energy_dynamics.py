"""
Energy & Fatigue Dynamics Simulator

Simplified within-race physiology model. Given nutrition, conditions,
readiness and a pacing strategy, it walks the race 1 km at a time and
tracks:
- Glycogen: starts at 100%, drained by effort, partly offset by fueling
- Fatigue: accumulates with effort, heat, humidity, climbing, dehydration,
  sodium imbalance, and sharply once glycogen drops below 25%

From the simulated sequences it derives time-to-exhaustion per strategy,
the overall performance penalty, GI distress risk and coaching insights.

Pacing strategies differ in their intensity profile over race progress
and in their glycogen and fatigue coefficients. Aggressive is never
cheaper than target, and target never cheaper than conservative, at any
point of the race, so time-to-exhaustion is ordered the same way.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple
import logging

from core.forecast_config import forecast_config, ForecastConfig

logger = logging.getLogger(__name__)


class PacingStrategy(str, Enum):
    CONSERVATIVE = "conservative"
    TARGET = "target"
    AGGRESSIVE = "aggressive"


class ImpactStatus(str, Enum):
    OPTIMAL = "optimal"
    ACCEPTABLE = "acceptable"
    WARNING = "warning"
    DANGER = "danger"


class GIRiskLevel(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    VERY_HIGH = "very-high"


@dataclass(frozen=True)
class NutritionInputs:
    fueling_rate_g_per_hr: float = 60.0
    fluid_intake_ml_per_hr: float = 500.0
    sodium_intake_mg_per_hr: float = 400.0


@dataclass(frozen=True)
class RaceConditions:
    temperature_c: float = 15.0
    humidity_pct: float = 50.0
    elevation_gain_m: float = 0.0

    def heat_index(self, config: ForecastConfig = forecast_config) -> float:
        return heat_index(self.temperature_c, self.humidity_pct, config)


@dataclass(frozen=True)
class EnergyState:
    distance_km: float
    glycogen_pct: float
    fatigue_pct: float

    def to_dict(self) -> Dict:
        return {
            "distance_km": round(self.distance_km, 3),
            "glycogen_pct": round(self.glycogen_pct, 1),
            "fatigue_pct": round(self.fatigue_pct, 1),
        }


@dataclass
class EnergyDynamics:
    sequences: Dict[PacingStrategy, List[EnergyState]]
    time_to_exhaustion: Dict[PacingStrategy, float]
    selected_strategy: Optional[PacingStrategy] = None

    def final_state(self, strategy: PacingStrategy) -> Optional[EnergyState]:
        states = self.sequences.get(strategy) or []
        return states[-1] if states else None

    def to_dict(self) -> Dict:
        return {
            "sequences": {s.value: [e.to_dict() for e in states] for s, states in self.sequences.items()},
            "time_to_exhaustion": {s.value: round(km, 2) for s, km in self.time_to_exhaustion.items()},
            "selected_strategy": self.selected_strategy.value if self.selected_strategy else None,
        }


@dataclass
class HydrationState:
    hydration_pct: float
    sodium_balance_mg: float
    sweat_rate_ml_per_hr: float

    def to_dict(self) -> Dict:
        return {
            "hydration_pct": round(self.hydration_pct, 1),
            "sodium_balance_mg": round(self.sodium_balance_mg),
            "sweat_rate_ml_per_hr": round(self.sweat_rate_ml_per_hr),
        }


@dataclass
class GIRiskAssessment:
    risk_pct: float
    level: GIRiskLevel
    message: str

    def to_dict(self) -> Dict:
        return {"risk_pct": self.risk_pct, "level": self.level.value, "message": self.message}


@dataclass
class PerformanceImpact:
    base_time_min: float
    total_penalty_pct: float
    adjusted_time_min: float
    time_delta_min: float
    factors: Dict[str, float]
    status: ImpactStatus

    def to_dict(self) -> Dict:
        return {
            "base_time_min": round(self.base_time_min, 1),
            "total_penalty_pct": self.total_penalty_pct,
            "adjusted_time_min": round(self.adjusted_time_min, 1),
            "time_delta_min": round(self.time_delta_min, 1),
            "factors": self.factors,
            "status": self.status.value,
        }


@dataclass
class PhysiologicalSimulation:
    distance_km: float
    base_time_min: float
    nutrition: NutritionInputs
    conditions: RaceConditions
    energy: EnergyDynamics
    hydration: HydrationState
    gi_risk: GIRiskAssessment
    performance_impact: PerformanceImpact
    insights: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "distance_km": self.distance_km,
            "base_time_min": self.base_time_min,
            "nutrition": {
                "fueling_rate_g_per_hr": self.nutrition.fueling_rate_g_per_hr,
                "fluid_intake_ml_per_hr": self.nutrition.fluid_intake_ml_per_hr,
                "sodium_intake_mg_per_hr": self.nutrition.sodium_intake_mg_per_hr,
            },
            "conditions": {
                "temperature_c": self.conditions.temperature_c,
                "humidity_pct": self.conditions.humidity_pct,
                "elevation_gain_m": self.conditions.elevation_gain_m,
                "heat_index": round(self.conditions.heat_index(), 1),
            },
            "energy": self.energy.to_dict(),
            "hydration": self.hydration.to_dict(),
            "gi_risk": self.gi_risk.to_dict(),
            "performance_impact": self.performance_impact.to_dict(),
            "insights": self.insights,
        }


# =============================================================================
# ENVIRONMENT HELPERS
# =============================================================================

def heat_index(temperature_c: float, humidity_pct: float, config: ForecastConfig = forecast_config) -> float:
    """Simplified heat index on the Celsius scale."""
    return temperature_c + humidity_pct / 100 * config.sim_heat_index_humidity_factor


def sweat_rate_ml_per_hr(heat_index_value: float, config: ForecastConfig = forecast_config) -> float:
    scale = 1 + (heat_index_value - config.sim_sweat_reference_heat_index) / config.sim_sweat_heat_index_scale
    return config.sim_base_sweat_rate_ml_per_hr * max(1.0, scale)


def _strategy_coefficients(strategy: PacingStrategy, config: ForecastConfig) -> Tuple[float, float, float, float]:
    return {
        PacingStrategy.CONSERVATIVE: config.strategy_conservative,
        PacingStrategy.TARGET: config.strategy_target,
        PacingStrategy.AGGRESSIVE: config.strategy_aggressive,
    }[strategy]


def strategy_intensity(strategy: PacingStrategy, progress: float, config: ForecastConfig = forecast_config) -> float:
    """Relative intensity (1.0 = even target pace) at race progress 0-1."""
    start, finish, _, _ = _strategy_coefficients(strategy, config)
    progress = max(0.0, min(1.0, progress))
    return start + (finish - start) * progress


def _hydration_pct(fluid_ml: float, sweat_ml: float, config: ForecastConfig) -> float:
    return max(0.0, min(100.0, 100 + (fluid_ml - sweat_ml) / config.sim_hydration_deficit_ml * 100))


# =============================================================================
# SIMULATION
# =============================================================================

def simulate_energy_states(
    distance_km: float,
    duration_min: float,
    nutrition: NutritionInputs,
    conditions: RaceConditions,
    readiness: float,
    strategy: PacingStrategy = PacingStrategy.TARGET,
    config: ForecastConfig = forecast_config,
) -> Iterator[EnergyState]:
    """
    Yield the energy state at the start and after every km.

    The last step is partial when the distance is not a whole number of
    km, so the final state sits exactly at the race distance. Glycogen
    never increases along the sequence.
    """
    if distance_km <= 0 or duration_min <= 0:
        raise ValueError(f"distance and duration must be positive: {distance_km}km / {duration_min}min")
    if distance_km > config.sim_max_distance_km or duration_min > config.sim_max_duration_min:
        raise ValueError(
            f"simulation limited to {config.sim_max_distance_km}km / {config.sim_max_duration_min}min: "
            f"{distance_km}km / {duration_min}min"
        )

    strategy = PacingStrategy(strategy)
    _, _, burn_coeff, fatigue_coeff = _strategy_coefficients(strategy, config)

    pace_min_per_km = duration_min / distance_km
    sweat_rate = sweat_rate_ml_per_hr(conditions.heat_index(config), config)

    heat_mult = 1 + max(0.0, (conditions.temperature_c - config.sim_heat_reference_temp_c) / 10) * config.sim_heat_cost_per_10c
    humid_bonus = config.sim_humid_cost if conditions.humidity_pct > config.sim_humid_threshold_pct else 0.0
    readiness_mult = 1 + max(0.0, (config.sim_readiness_reference - readiness) / config.sim_readiness_divisor)
    climb_per_km = max(0.0, conditions.elevation_gain_m) / distance_km
    elevation_mult = 1 + climb_per_km / 100 * config.sim_elevation_cost_per_100m_per_km

    glycogen = 100.0
    fatigue = 0.0
    covered = 0.0
    yield EnergyState(distance_km=0.0, glycogen_pct=glycogen, fatigue_pct=fatigue)

    while covered < distance_km:
        step = min(1.0, distance_km - covered)
        progress = covered / distance_km
        covered = min(distance_km, covered + step)

        intensity = strategy_intensity(strategy, progress, config)

        # Hydration and sodium follow nominal race time, same for every strategy
        elapsed_hr = covered / distance_km * duration_min / 60
        sweat_ml = sweat_rate * elapsed_hr
        hydration_pct = _hydration_pct(nutrition.fluid_intake_ml_per_hr * elapsed_hr, sweat_ml, config)
        hydration_mod = max(config.sim_min_hydration_modifier, (hydration_pct / 100) ** 1.2)
        sodium_balance = nutrition.sodium_intake_mg_per_hr * elapsed_hr - sweat_ml * config.sim_sodium_mg_per_ml_sweat
        sodium_mod = 1 - min(abs(sodium_balance) / config.sim_sodium_tolerance_mg, config.sim_sodium_max_penalty)

        burn = config.sim_base_burn_pct_per_km * burn_coeff * intensity * heat_mult * readiness_mult * step
        # Faster running means less time on course to take fuel on board
        minutes_on_step = pace_min_per_km / intensity * step
        fuel = nutrition.fueling_rate_g_per_hr / 60 * minutes_on_step / config.sim_fuel_divisor
        glycogen = max(0.0, glycogen - max(0.0, burn - fuel))

        fatigue += (
            config.sim_base_fatigue_pct_per_km
            * intensity
            * fatigue_coeff
            * heat_mult
            * (1 + humid_bonus)
            * readiness_mult
            * elevation_mult
            / hydration_mod
            / sodium_mod
            * step
        )
        if glycogen < config.sim_bonk_glycogen_pct:
            shortfall = (config.sim_bonk_glycogen_pct - glycogen) / config.sim_bonk_glycogen_pct
            fatigue += shortfall ** 2 * config.sim_bonk_penalty * step
        fatigue = min(100.0, fatigue)

        yield EnergyState(distance_km=covered, glycogen_pct=glycogen, fatigue_pct=fatigue)


def time_to_exhaustion(
    states: List[EnergyState],
    distance_km: float,
    config: ForecastConfig = forecast_config,
) -> float:
    """First distance where glycogen is spent or fatigue saturates; race distance if never."""
    for state in states:
        if state.glycogen_pct <= config.sim_exhaustion_glycogen_pct or state.fatigue_pct >= config.sim_fatigue_saturation_pct:
            return state.distance_km
    return distance_km


def calculate_energy_dynamics(
    distance_km: float,
    duration_min: float,
    nutrition: NutritionInputs,
    conditions: RaceConditions,
    readiness: float,
    selected_strategy: Optional[PacingStrategy] = None,
    config: ForecastConfig = forecast_config,
) -> EnergyDynamics:
    sequences: Dict[PacingStrategy, List[EnergyState]] = {}
    exhaustion: Dict[PacingStrategy, float] = {}

    for strategy in PacingStrategy:
        states = list(simulate_energy_states(
            distance_km, duration_min, nutrition, conditions, readiness, strategy, config
        ))
        sequences[strategy] = states
        exhaustion[strategy] = time_to_exhaustion(states, distance_km, config)

    return EnergyDynamics(
        sequences=sequences,
        time_to_exhaustion=exhaustion,
        selected_strategy=PacingStrategy(selected_strategy) if selected_strategy else None,
    )


def calculate_hydration_state(
    duration_min: float,
    nutrition: NutritionInputs,
    conditions: RaceConditions,
    config: ForecastConfig = forecast_config,
) -> HydrationState:
    """Whole-race fluid and sodium balance."""
    sweat_rate = sweat_rate_ml_per_hr(conditions.heat_index(config), config)
    duration_hr = duration_min / 60

    sweat_ml = sweat_rate * duration_hr
    fluid_ml = nutrition.fluid_intake_ml_per_hr * duration_hr

    return HydrationState(
        hydration_pct=_hydration_pct(fluid_ml, sweat_ml, config),
        sodium_balance_mg=nutrition.sodium_intake_mg_per_hr * duration_hr - sweat_ml * config.sim_sodium_mg_per_ml_sweat,
        sweat_rate_ml_per_hr=sweat_rate,
    )


def calculate_gi_risk(
    fueling_rate_g_per_hr: float,
    heat_index_value: float,
    intensity_pct: float,
    fluid_intake_ml_per_hr: float,
    sweat_rate: Optional[float] = None,
    config: ForecastConfig = forecast_config,
) -> GIRiskAssessment:
    """
    GI distress risk (0-100).

    Continuous in every input: rises with fueling rate and heat index
    (with an extra fueling x heat interaction), rises with intensity, and
    falls as fluid intake approaches adequacy relative to sweat rate.
    """
    fueling = max(0.0, fueling_rate_g_per_hr)
    hi = heat_index_value
    required = sweat_rate if sweat_rate else sweat_rate_ml_per_hr(hi, config)

    fueling_term = max(0.0, fueling - config.gi_fueling_onset_g_per_hr) / config.gi_fueling_span_g_per_hr * config.gi_fueling_weight
    heat_term = max(0.0, hi - config.gi_heat_onset) / config.gi_heat_span * config.gi_heat_weight
    interaction_term = (
        fueling / config.gi_interaction_reference_g_per_hr
        * max(0.0, hi - config.gi_interaction_onset) / 10
        * config.gi_interaction_weight
    )
    intensity_term = max(0.0, intensity_pct - config.gi_intensity_onset_pct) / config.gi_intensity_span_pct * config.gi_intensity_weight

    adequate = config.gi_fluid_adequacy_ratio * required
    shortfall = max(0.0, min(1.0, (adequate - fluid_intake_ml_per_hr) / adequate)) if adequate > 0 else 0.0
    dehydration_term = shortfall * config.gi_dehydration_weight

    risk = min(100.0, fueling_term + heat_term + interaction_term + intensity_term + dehydration_term)
    risk_pct = round(risk, 1)

    if risk_pct < config.gi_moderate_pct:
        level = GIRiskLevel.LOW
        message = "Low GI distress risk. Current nutrition strategy looks solid."
    elif risk_pct < config.gi_high_pct:
        level = GIRiskLevel.MODERATE
        message = "Moderate GI risk. Monitor fueling and adjust if discomfort occurs."
    elif risk_pct < config.gi_very_high_pct:
        level = GIRiskLevel.HIGH
        message = "High GI risk. Consider reducing fueling rate or testing it in training."
    else:
        level = GIRiskLevel.VERY_HIGH
        message = "Very high GI risk. Reduce fueling rate and rehearse race nutrition in similar heat."

    if fluid_intake_ml_per_hr > config.gi_overdrinking_ml_per_hr:
        message += " Fluid intake above 1 L/hr can cause bloating and sloshing; sip smaller amounts."

    return GIRiskAssessment(risk_pct=risk_pct, level=level, message=message)


def calculate_performance_impact(
    base_time_min: float,
    temperature_c: float,
    hydration_pct: float,
    fueling_rate_g_per_hr: float,
    fatigue_pct: float,
    humidity_pct: Optional[float] = None,
    config: ForecastConfig = forecast_config,
) -> PerformanceImpact:
    """Combine heat, hydration, fueling and fatigue penalties into one time penalty."""
    heat = 0.0
    if temperature_c > config.sim_heat_reference_temp_c:
        heat = (temperature_c - config.sim_heat_reference_temp_c) / 10 * config.sim_heat_cost_per_10c
        if humidity_pct is not None and humidity_pct > config.sim_humid_threshold_pct:
            heat += config.sim_humid_cost

    hydration = 0.0
    if hydration_pct < config.impact_hydration_ok_pct:
        hydration = (config.impact_hydration_ok_pct - hydration_pct) / 5 * config.impact_hydration_cost_per_5pct

    fueling = 0.0
    if fueling_rate_g_per_hr < config.impact_fueling_ok_g_per_hr:
        fueling = (config.impact_fueling_ok_g_per_hr - fueling_rate_g_per_hr) / config.impact_fueling_ok_g_per_hr * config.impact_fueling_max_cost

    fatigue = 0.0
    if fatigue_pct > config.impact_fatigue_ok_pct:
        fatigue = (fatigue_pct - config.impact_fatigue_ok_pct) / (100 - config.impact_fatigue_ok_pct) * config.impact_fatigue_max_cost

    total_pct = round((heat + hydration + fueling + fatigue) * 100)
    adjusted = base_time_min * (1 + total_pct / 100)

    if total_pct <= config.impact_optimal_pct:
        status = ImpactStatus.OPTIMAL
    elif total_pct <= config.impact_acceptable_pct:
        status = ImpactStatus.ACCEPTABLE
    elif total_pct <= config.impact_warning_pct:
        status = ImpactStatus.WARNING
    else:
        status = ImpactStatus.DANGER

    return PerformanceImpact(
        base_time_min=base_time_min,
        total_penalty_pct=total_pct,
        adjusted_time_min=adjusted,
        time_delta_min=adjusted - base_time_min,
        factors={
            "heat": round(heat * 100),
            "hydration": round(hydration * 100),
            "fueling": round(fueling * 100),
            "fatigue": round(fatigue * 100),
        },
        status=status,
    )


def generate_pacing_insights(
    energy: EnergyDynamics,
    hydration: HydrationState,
    gi_risk: GIRiskAssessment,
    impact: PerformanceImpact,
    nutrition: NutritionInputs,
    config: ForecastConfig = forecast_config,
) -> List[str]:
    insights: List[str] = []
    tte = energy.time_to_exhaustion

    spread = tte[PacingStrategy.CONSERVATIVE] - tte[PacingStrategy.AGGRESSIVE]
    if spread > config.insight_strategy_spread_km:
        insights.append(
            f"Conservative start extends time-to-exhaustion by +{round(spread)} km compared to aggressive."
        )

    selected = energy.selected_strategy
    if selected is not None:
        delta = tte[selected] - tte[PacingStrategy.TARGET]
        if selected == PacingStrategy.AGGRESSIVE and delta < -config.insight_strategy_spread_km:
            insights.append(
                f"Aggressive start shortens time-to-exhaustion by {abs(round(delta))} km. "
                f"High risk of bonking, so make sure fueling is adequate."
            )
        elif selected == PacingStrategy.CONSERVATIVE and delta > config.insight_strategy_spread_km:
            insights.append(
                f"Conservative pacing extends endurance by +{round(delta)} km. Well suited to hot conditions or ultras."
            )

    final = energy.final_state(selected or PacingStrategy.TARGET)
    final_glycogen = final.glycogen_pct if final else 0.0
    if final_glycogen > config.insight_glycogen_comfortable_pct:
        insights.append(
            f"Current fueling ({nutrition.fueling_rate_g_per_hr:g} g/h) keeps {round(final_glycogen)}% glycogen at the finish."
        )
    elif final_glycogen < config.insight_glycogen_critical_pct:
        rate = nutrition.fueling_rate_g_per_hr
        low, high = config.insight_fueling_increase_g_per_hr
        insights.append(
            f"Glycogen critically low at the finish. Increase fueling to {rate + low:g}-{rate + high:g} g/h."
        )

    if hydration.hydration_pct > config.insight_hydration_good_pct:
        insights.append(
            f"Hydration {round(hydration.hydration_pct)}% limits cardiac drift; GI risk remains {gi_risk.level.value}."
        )
    elif hydration.hydration_pct < config.insight_hydration_low_pct:
        shortfall = config.insight_hydration_good_pct - hydration.hydration_pct
        recommended = round(nutrition.fluid_intake_ml_per_hr + shortfall * config.insight_fluid_ml_per_hydration_pct)
        insights.append(
            f"Hydration {round(hydration.hydration_pct)}% may cause performance decline. Increase to {recommended} ml/hr."
        )

    if impact.total_penalty_pct <= config.insight_mild_penalty_pct:
        insights.append(
            f"Overall conditions add +{impact.total_penalty_pct}% time (~{round(impact.time_delta_min)} min)."
        )
    else:
        insights.append(
            f"Challenging conditions add +{impact.total_penalty_pct}% time. Focus on heat and hydration management."
        )

    if impact.factors.get("heat", 0) > config.insight_heat_penalty_pct:
        insights.append(
            f"Heat penalty is {impact.factors['heat']}%. Pour water on head and neck and ease off in exposed sections."
        )

    if gi_risk.level in (GIRiskLevel.HIGH, GIRiskLevel.VERY_HIGH):
        insights.append(gi_risk.message)

    if hydration.sodium_balance_mg < config.insight_sodium_deficit_mg:
        insights.append(
            f"Sodium deficit of {abs(round(hydration.sodium_balance_mg))} mg may cause cramping. Increase electrolyte intake."
        )

    return insights


def run_physiological_simulation(
    distance_km: float,
    base_time_min: float,
    nutrition: NutritionInputs,
    conditions: RaceConditions,
    readiness: float = 70.0,
    selected_strategy: Optional[PacingStrategy] = None,
    intensity_pct: Optional[float] = None,
    config: ForecastConfig = forecast_config,
) -> PhysiologicalSimulation:
    """Full race-day forecast: energy, hydration, GI risk, penalty and insights."""
    energy = calculate_energy_dynamics(
        distance_km, base_time_min, nutrition, conditions, readiness, selected_strategy, config
    )
    hydration = calculate_hydration_state(base_time_min, nutrition, conditions, config)

    hi = conditions.heat_index(config)
    gi_risk = calculate_gi_risk(
        nutrition.fueling_rate_g_per_hr,
        hi,
        intensity_pct if intensity_pct is not None else config.sim_default_intensity_pct,
        nutrition.fluid_intake_ml_per_hr,
        sweat_rate=hydration.sweat_rate_ml_per_hr,
        config=config,
    )

    target_states = energy.sequences[PacingStrategy.TARGET]
    avg_fatigue = sum(s.fatigue_pct for s in target_states) / len(target_states)
    impact = calculate_performance_impact(
        base_time_min,
        conditions.temperature_c,
        hydration.hydration_pct,
        nutrition.fueling_rate_g_per_hr,
        avg_fatigue,
        conditions.humidity_pct,
        config,
    )

    insights = generate_pacing_insights(energy, hydration, gi_risk, impact, nutrition, config)
    tte = ", ".join(f"{s.value}={km:.1f}" for s, km in energy.time_to_exhaustion.items())
    logger.info(
        f"Simulated {distance_km}km in {base_time_min}min: tte({tte}) "
        f"penalty={impact.total_penalty_pct}% gi={gi_risk.level.value}"
    )

    return PhysiologicalSimulation(
        distance_km=distance_km,
        base_time_min=base_time_min,
        nutrition=nutrition,
        conditions=conditions,
        energy=energy,
        hydration=hydration,
        gi_risk=gi_risk,
        performance_impact=impact,
        insights=insights,
    )
