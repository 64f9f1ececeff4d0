"""
Forecast Configuration

Backend-configurable constants for the forecasting engine: sample
minimums, neutral default profiles, bucket widths, confidence weights,
ACWR zones, projection and simulation coefficients.

Every fallback number used by the learners, analyzers and simulators is
read from here so they can be tuned via environment variables without
code changes.
"""
from typing import Tuple

from pydantic_settings import BaseSettings, SettingsConfigDict


class ForecastConfig(BaseSettings):
    """
    Configurable forecasting constants.

    Override any field with a FORECAST_ prefixed environment variable,
    e.g. FORECAST_PROJECTION_EXPONENT=1.07.
    """

    model_config = SettingsConfigDict(
        env_prefix="FORECAST_",
        case_sensitive=False,
        extra="ignore"
    )

    # ------------------------------------------------------------------
    # Heat tolerance learner
    # ------------------------------------------------------------------
    heat_min_samples: int = 10
    heat_default_optimal_temp_c: float = 15.0
    heat_default_threshold_c: float = 25.0
    heat_default_acclimatization_days: int = 14
    heat_comfortable_min_c: float = 10.0
    heat_comfortable_max_c: float = 20.0
    heat_bucket_width_c: float = 5.0
    # Adjustment above which a bucket counts as the heat threshold
    heat_threshold_adjustment_pct: float = 5.0
    heat_acclimatization_window: int = 14
    heat_acclimatization_min_window_samples: int = 5
    heat_acclimatization_min_days: int = 7
    heat_acclimatization_max_days: int = 21
    heat_confidence_sample_target: int = 50
    heat_confidence_range_target_c: float = 30.0
    # Empty-curve rule: +2% per 5 C above 25 C
    heat_fallback_onset_c: float = 25.0
    heat_fallback_pct_per_step: float = 2.0
    heat_fallback_step_c: float = 5.0

    # ------------------------------------------------------------------
    # Altitude response learner
    # ------------------------------------------------------------------
    altitude_min_samples: int = 10
    altitude_default_sea_level_pace: float = 6.0
    altitude_default_acclimatization_days: int = 14
    altitude_sea_level_max_m: float = 200.0
    altitude_bucket_width_m: float = 500.0
    altitude_high_threshold_m: float = 1500.0
    altitude_acclimatization_min_sessions: int = 3
    altitude_acclimatization_max_gap_days: int = 30
    altitude_acclimatization_min_days: int = 7
    altitude_acclimatization_max_days: int = 21
    altitude_confidence_sample_target: int = 30
    altitude_confidence_range_target_m: float = 2000.0
    # Empty-curve rule: +3% per 1000 m above 1000 m
    altitude_fallback_onset_m: float = 1000.0
    altitude_fallback_pct_per_1000m: float = 3.0
    altitude_minor_gain_m: float = 1000.0
    altitude_partial_acclimatization_ratio: float = 0.7
    altitude_min_arrival_days: int = 3

    # ------------------------------------------------------------------
    # Optimal time-of-day learner
    # ------------------------------------------------------------------
    time_min_samples: int = 20
    time_daypart_min_samples: int = 3
    time_pace_weight: float = 0.6
    time_completion_weight: float = 0.4
    time_confidence_sample_target: int = 50
    time_confidence_sample_weight: float = 60.0
    time_confidence_daypart_weight: float = 40.0
    time_default_workout_hour: int = 7
    time_hot_temperature_c: float = 25.0
    time_hot_early_cutoff_hour: int = 9
    time_hot_late_cutoff_hour: int = 18
    time_hot_default_hour: int = 6
    time_candidate_min_efficiency: float = -5.0
    time_candidate_limit: int = 5

    # ------------------------------------------------------------------
    # ACWR workload analyzer
    # ------------------------------------------------------------------
    acwr_universal_lower: float = 0.8
    acwr_universal_upper: float = 1.3
    acwr_lower_clamp_min: float = 0.8
    acwr_lower_clamp_max: float = 1.2
    acwr_upper_clamp_min: float = 0.9
    acwr_upper_clamp_max: float = 1.5
    acwr_high_risk: float = 1.5
    acwr_min_data_quality: float = 0.6
    acwr_personal_zone_tolerance: float = 0.05
    acwr_min_weeks: int = 4
    acwr_chronic_weeks: int = 4
    acwr_default_mean: float = 1.0
    acwr_default_std_dev: float = 0.2
    acwr_trend_window: int = 4
    acwr_trend_delta: float = 0.15
    acwr_volatility_limit: float = 0.35
    baseline_default_pace: float = 6.0
    baseline_default_hr: float = 140.0

    # ------------------------------------------------------------------
    # Race projection
    # ------------------------------------------------------------------
    projection_exponent: float = 1.06
    projection_confidence_pct: float = 75.0
    baseline_race_min_km: float = 3.0
    baseline_race_max_km: float = 200.0
    baseline_run_min_km: float = 5.0
    baseline_run_max_km: float = 200.0
    baseline_min_pace: float = 3.0
    baseline_max_pace: float = 10.0
    baseline_long_run_km: float = 20.0
    baseline_standard_tolerance_km: float = 0.5
    baseline_significant_km: float = 10.0
    baseline_significant_min: float = 45.0
    baseline_recency_weight: float = 0.6
    baseline_speed_weight: float = 0.4

    # ------------------------------------------------------------------
    # Energy and fatigue simulation
    # ------------------------------------------------------------------
    sim_heat_index_humidity_factor: float = 5.0
    sim_base_sweat_rate_ml_per_hr: float = 600.0
    sim_sweat_reference_heat_index: float = 20.0
    sim_sweat_heat_index_scale: float = 30.0
    sim_sodium_mg_per_ml_sweat: float = 0.9
    sim_heat_reference_temp_c: float = 20.0
    sim_heat_cost_per_10c: float = 0.03
    sim_humid_threshold_pct: float = 70.0
    sim_humid_cost: float = 0.02
    sim_readiness_reference: float = 70.0
    sim_readiness_divisor: float = 500.0
    sim_base_burn_pct_per_km: float = 2.5
    sim_fuel_divisor: float = 4.0
    sim_base_fatigue_pct_per_km: float = 1.2
    sim_elevation_cost_per_100m_per_km: float = 0.05
    sim_bonk_glycogen_pct: float = 25.0
    sim_bonk_penalty: float = 5.0
    sim_exhaustion_glycogen_pct: float = 5.0
    sim_fatigue_saturation_pct: float = 95.0
    sim_hydration_deficit_ml: float = 2000.0
    sim_sodium_tolerance_mg: float = 5000.0
    sim_sodium_max_penalty: float = 0.15
    sim_min_hydration_modifier: float = 0.05
    sim_default_intensity_pct: float = 70.0
    # Request limits; the simulator steps 1 km at a time
    sim_max_distance_km: float = 500.0
    sim_max_duration_min: float = 10000.0

    # Pacing strategies: intensity at start, intensity at finish,
    # glycogen burn coefficient, fatigue coefficient
    strategy_conservative: Tuple[float, float, float, float] = (0.96, 1.00, 0.92, 0.90)
    strategy_target: Tuple[float, float, float, float] = (1.00, 1.00, 1.00, 1.00)
    strategy_aggressive: Tuple[float, float, float, float] = (1.06, 1.00, 1.10, 1.15)

    # Performance impact thresholds
    impact_hydration_ok_pct: float = 90.0
    impact_fueling_ok_g_per_hr: float = 40.0
    impact_fatigue_ok_pct: float = 80.0
    impact_hydration_cost_per_5pct: float = 0.02
    impact_fueling_max_cost: float = 0.06
    impact_fatigue_max_cost: float = 0.05
    impact_optimal_pct: float = 2.0
    impact_acceptable_pct: float = 5.0
    impact_warning_pct: float = 10.0

    # Pacing insight thresholds
    insight_strategy_spread_km: float = 5.0
    insight_glycogen_comfortable_pct: float = 20.0
    insight_glycogen_critical_pct: float = 10.0
    insight_fueling_increase_g_per_hr: Tuple[float, float] = (15.0, 25.0)
    insight_hydration_good_pct: float = 90.0
    insight_hydration_low_pct: float = 85.0
    insight_fluid_ml_per_hydration_pct: float = 10.0
    insight_mild_penalty_pct: float = 3.0
    insight_heat_penalty_pct: float = 4.0
    insight_sodium_deficit_mg: float = -500.0

    # GI risk levels
    gi_moderate_pct: float = 20.0
    gi_high_pct: float = 40.0
    gi_very_high_pct: float = 70.0
    gi_overdrinking_ml_per_hr: float = 1000.0
    gi_fueling_onset_g_per_hr: float = 60.0
    gi_fueling_span_g_per_hr: float = 40.0
    gi_fueling_weight: float = 30.0
    gi_heat_onset: float = 20.0
    gi_heat_span: float = 15.0
    gi_heat_weight: float = 25.0
    # Fueling x heat interaction, scaled by fueling relative to 90 g/hr
    gi_interaction_onset: float = 25.0
    gi_interaction_reference_g_per_hr: float = 90.0
    gi_interaction_weight: float = 10.0
    gi_intensity_onset_pct: float = 70.0
    gi_intensity_span_pct: float = 20.0
    gi_intensity_weight: float = 20.0
    # Fluid below this share of sweat rate counts as inadequate
    gi_fluid_adequacy_ratio: float = 0.6
    gi_dehydration_weight: float = 20.0

    # ------------------------------------------------------------------
    # Heat acclimation protocol
    # ------------------------------------------------------------------
    heat_protocol_min_weeks: int = 2
    heat_protocol_maintenance_gap: float = 10.0
    heat_protocol_full_min_weeks: int = 4
    heat_protocol_default_tolerance: float = 25.0
    heat_protocol_min_profile_confidence: float = 20.0

    # Heat training session guidance: stress = forecast heat index - tolerance
    heat_session_moderate_stress: float = 10.0
    heat_session_high_stress: float = 20.0
    heat_session_moderate_duration_ratio: float = 0.875
    heat_session_high_duration_ratio: float = 0.725


# Global config instance
forecast_config = ForecastConfig()
