"""
Tests for the race-day energy and fatigue simulator.
"""
import pytest

from core.forecast_config import ForecastConfig
from services.energy_dynamics import (
    GIRiskLevel,
    ImpactStatus,
    NutritionInputs,
    PacingStrategy,
    RaceConditions,
    calculate_energy_dynamics,
    calculate_gi_risk,
    calculate_hydration_state,
    calculate_performance_impact,
    heat_index,
    run_physiological_simulation,
    simulate_energy_states,
    strategy_intensity,
    sweat_rate_ml_per_hr,
)

SCENARIOS = [
    # (distance, minutes, nutrition, conditions, readiness)
    (42.195, 210.0, NutritionInputs(), RaceConditions(), 70.0),
    (42.195, 180.0, NutritionInputs(fueling_rate_g_per_hr=20.0), RaceConditions(temperature_c=30, humidity_pct=80), 50.0),
    (21.0975, 95.0, NutritionInputs(fueling_rate_g_per_hr=90.0), RaceConditions(elevation_gain_m=600), 90.0),
    (100.0, 720.0, NutritionInputs(fueling_rate_g_per_hr=40.0, fluid_intake_ml_per_hr=300.0), RaceConditions(temperature_c=28), 60.0),
    (5.0, 20.0, NutritionInputs(fueling_rate_g_per_hr=0.0), RaceConditions(), 70.0),
]


class TestEnvironmentHelpers:
    def test_heat_index(self):
        assert heat_index(30, 50) == pytest.approx(32.5)
        assert RaceConditions(temperature_c=15, humidity_pct=50).heat_index() == pytest.approx(17.5)

    def test_sweat_rate_never_below_base(self):
        assert sweat_rate_ml_per_hr(10) == pytest.approx(600.0)
        assert sweat_rate_ml_per_hr(20) == pytest.approx(600.0)
        assert sweat_rate_ml_per_hr(35) == pytest.approx(900.0)

    def test_strategy_intensity_profiles(self):
        assert strategy_intensity(PacingStrategy.TARGET, 0.5) == 1.0
        assert strategy_intensity(PacingStrategy.AGGRESSIVE, 0.0) > 1.0
        assert strategy_intensity(PacingStrategy.CONSERVATIVE, 0.0) < 1.0
        assert strategy_intensity(PacingStrategy.CONSERVATIVE, 1.0) == pytest.approx(1.0)


class TestEnergySequence:
    def test_states_per_km_ending_at_distance(self):
        states = list(simulate_energy_states(42.195, 210, NutritionInputs(), RaceConditions(), 70))
        assert len(states) == 44
        assert states[0].distance_km == 0.0
        assert states[0].glycogen_pct == 100.0
        assert states[-1].distance_km == pytest.approx(42.195)

    @pytest.mark.parametrize("scenario", SCENARIOS)
    @pytest.mark.parametrize("strategy", list(PacingStrategy))
    def test_glycogen_never_increases(self, scenario, strategy):
        distance, minutes, nutrition, conditions, readiness = scenario
        states = list(simulate_energy_states(distance, minutes, nutrition, conditions, readiness, strategy))
        glycogen = [s.glycogen_pct for s in states]
        assert all(b <= a for a, b in zip(glycogen, glycogen[1:]))
        assert all(0.0 <= s.fatigue_pct <= 100.0 for s in states)

    def test_heavy_fueling_keeps_glycogen_flat(self):
        states = list(simulate_energy_states(
            10, 60, NutritionInputs(fueling_rate_g_per_hr=1000.0), RaceConditions(), 70
        ))
        assert all(s.glycogen_pct == 100.0 for s in states)

    @pytest.mark.parametrize("distance,minutes", [(0, 100), (10, 0), (-5, 30)])
    def test_rejects_non_positive_inputs(self, distance, minutes):
        with pytest.raises(ValueError):
            list(simulate_energy_states(distance, minutes, NutritionInputs(), RaceConditions(), 70))

    @pytest.mark.parametrize("distance,minutes", [(1e9, 600), (50, 1e7)])
    def test_rejects_oversized_races(self, distance, minutes):
        with pytest.raises(ValueError, match="simulation limited"):
            next(simulate_energy_states(distance, minutes, NutritionInputs(), RaceConditions(), 70))


class TestTimeToExhaustion:
    @pytest.mark.parametrize("scenario", SCENARIOS)
    def test_strategies_ordered(self, scenario):
        energy = calculate_energy_dynamics(*scenario)
        tte = energy.time_to_exhaustion
        assert tte[PacingStrategy.AGGRESSIVE] <= tte[PacingStrategy.TARGET] <= tte[PacingStrategy.CONSERVATIVE]

    @pytest.mark.parametrize("scenario", SCENARIOS)
    def test_within_race_distance(self, scenario):
        energy = calculate_energy_dynamics(*scenario)
        assert all(0.0 <= km <= scenario[0] for km in energy.time_to_exhaustion.values())

    def test_unfueled_ultra_exhausts_early(self):
        energy = calculate_energy_dynamics(
            100.0, 720.0, NutritionInputs(fueling_rate_g_per_hr=0.0), RaceConditions(), 70.0
        )
        assert energy.time_to_exhaustion[PacingStrategy.TARGET] < 100.0

    def test_selected_strategy_recorded(self):
        energy = calculate_energy_dynamics(
            10, 50, NutritionInputs(), RaceConditions(), 70, selected_strategy="aggressive"
        )
        assert energy.selected_strategy == PacingStrategy.AGGRESSIVE
        assert energy.final_state(PacingStrategy.AGGRESSIVE).distance_km == pytest.approx(10)


class TestHydration:
    def test_balanced_intake(self):
        state = calculate_hydration_state(60, NutritionInputs(fluid_intake_ml_per_hr=600.0), RaceConditions())
        assert state.hydration_pct == pytest.approx(100.0)
        assert state.sodium_balance_mg == pytest.approx(400 - 600 * 0.9)

    def test_deficit_is_bounded(self):
        state = calculate_hydration_state(
            600, NutritionInputs(fluid_intake_ml_per_hr=0.0), RaceConditions(temperature_c=35, humidity_pct=90)
        )
        assert state.hydration_pct == 0.0


class TestGIRisk:
    def test_comfortable_plan_is_low(self):
        result = calculate_gi_risk(40, 17.5, 70, 500, sweat_rate=600)
        assert result.risk_pct == 0.0
        assert result.level == GIRiskLevel.LOW

    def test_extreme_plan_is_capped(self):
        result = calculate_gi_risk(100, 35, 90, 0, sweat_rate=900)
        assert result.risk_pct == 100.0
        assert result.level == GIRiskLevel.VERY_HIGH

    def test_monotone_in_fueling_and_heat(self):
        by_fueling = [calculate_gi_risk(f, 30, 75, 400).risk_pct for f in range(0, 130, 10)]
        by_heat = [calculate_gi_risk(80, hi, 75, 400).risk_pct for hi in range(10, 45, 2)]
        assert by_fueling == sorted(by_fueling)
        assert by_heat == sorted(by_heat)

    def test_more_fluid_never_raises_risk(self):
        by_fluid = [calculate_gi_risk(70, 28, 75, ml, sweat_rate=800).risk_pct for ml in range(0, 1000, 50)]
        assert by_fluid == sorted(by_fluid, reverse=True)

    def test_overdrinking_warning(self):
        assert "1 L/hr" in calculate_gi_risk(60, 20, 70, 1200).message
        assert "1 L/hr" not in calculate_gi_risk(60, 20, 70, 800).message


class TestPerformanceImpact:
    def test_ideal_conditions(self):
        impact = calculate_performance_impact(200, 15, 100, 60, 30)
        assert impact.total_penalty_pct == 0
        assert impact.adjusted_time_min == 200
        assert impact.status == ImpactStatus.OPTIMAL

    def test_every_factor_contributes(self):
        impact = calculate_performance_impact(200, 40, 70, 0, 100, humidity_pct=80)
        assert impact.factors == {"heat": 8, "hydration": 8, "fueling": 6, "fatigue": 5}
        assert impact.total_penalty_pct == 27
        assert impact.adjusted_time_min == pytest.approx(254.0)
        assert impact.status == ImpactStatus.DANGER

    def test_status_tiers(self):
        assert calculate_performance_impact(100, 30, 100, 60, 0).status == ImpactStatus.ACCEPTABLE
        assert calculate_performance_impact(100, 40, 85, 60, 0).status == ImpactStatus.WARNING


class TestSimulation:
    def test_full_simulation(self):
        simulation = run_physiological_simulation(
            42.195, 210.0, NutritionInputs(), RaceConditions(temperature_c=24, humidity_pct=60),
            selected_strategy=PacingStrategy.CONSERVATIVE,
        )
        data = simulation.to_dict()

        assert set(data["energy"]["time_to_exhaustion"]) == {"conservative", "target", "aggressive"}
        assert data["energy"]["selected_strategy"] == "conservative"
        assert data["conditions"]["heat_index"] == pytest.approx(27.0)
        assert simulation.insights
        assert any("time" in insight for insight in simulation.insights)

    def test_sodium_deficit_insight(self):
        simulation = run_physiological_simulation(
            42.195, 240.0,
            NutritionInputs(sodium_intake_mg_per_hr=0.0),
            RaceConditions(temperature_c=30, humidity_pct=70),
        )
        assert any("Sodium deficit" in insight for insight in simulation.insights)

    def test_insight_thresholds_follow_config(self):
        args = (42.195, 240.0, NutritionInputs(sodium_intake_mg_per_hr=0.0), RaceConditions(temperature_c=30, humidity_pct=70))
        lenient = ForecastConfig(insight_sodium_deficit_mg=-1e9)

        simulation = run_physiological_simulation(*args, config=lenient)

        assert not any("Sodium deficit" in insight for insight in simulation.insights)
