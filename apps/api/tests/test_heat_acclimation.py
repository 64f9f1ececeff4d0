"""
Tests for heat acclimation protocols and heat training guidance.
"""
import pytest

from core.forecast_config import ForecastConfig
from services.heat_acclimation import (
    ProtocolPhase,
    estimate_current_heat_tolerance,
    generate_heat_acclimation_protocol,
    get_heat_training_recommendation,
)
from services.heat_tolerance import HeatToleranceProfile


class TestCurrentTolerance:
    def test_no_profile(self):
        assert estimate_current_heat_tolerance(None) == 25.0

    def test_low_confidence_profile_ignored(self):
        profile = HeatToleranceProfile(optimal_temp_c=12, heat_threshold_c=31, confidence_score=10)
        assert estimate_current_heat_tolerance(profile) == 25.0

    def test_confident_profile_threshold(self):
        profile = HeatToleranceProfile(optimal_temp_c=12, heat_threshold_c=28, confidence_score=40)
        assert estimate_current_heat_tolerance(profile) == 28


class TestProtocolPhases:
    def test_too_close_to_race(self):
        protocol = generate_heat_acclimation_protocol(25, 38, days_until_race=10)
        assert protocol.phase == ProtocolPhase.NONE
        assert protocol.duration_weeks == 0
        assert protocol.weekly_plan == []
        assert "Pre-cooling (ice vest, cold fluids)" in protocol.recommendations

    def test_negative_days_treated_as_none(self):
        assert generate_heat_acclimation_protocol(25, 38, days_until_race=-3).phase == ProtocolPhase.NONE

    def test_small_gap_is_maintenance(self):
        protocol = generate_heat_acclimation_protocol(25, 33, days_until_race=42)
        assert protocol.phase == ProtocolPhase.MAINTENANCE
        assert protocol.duration_weeks == 4
        sessions = protocol.weekly_plan[0].sessions
        assert [s.day for s in sessions] == ["Tuesday", "Friday"]
        assert sessions[0].target_heat_index == 33
        assert sessions[1].target_heat_index == 25

    def test_race_cooler_than_tolerance(self):
        protocol = generate_heat_acclimation_protocol(30, 22, days_until_race=21)
        assert protocol.phase == ProtocolPhase.MAINTENANCE
        assert all(s.target_heat_index == 22 for s in protocol.weekly_plan[0].sessions)

    def test_full_protocol_capped_at_six_weeks(self):
        protocol = generate_heat_acclimation_protocol(25, 40, days_until_race=70)
        assert protocol.phase == ProtocolPhase.ADAPTATION
        assert protocol.duration_weeks == 6
        assert [len(w.sessions) for w in protocol.weekly_plan] == [4, 4, 3, 3, 2, 2]

    def test_full_protocol_minimum_four_weeks(self):
        protocol = generate_heat_acclimation_protocol(25, 40, days_until_race=28)
        assert protocol.phase == ProtocolPhase.ADAPTATION
        assert protocol.duration_weeks == 4

    @pytest.mark.parametrize("days", [14, 20, 21, 27])
    def test_rapid_protocol(self, days):
        protocol = generate_heat_acclimation_protocol(25, 40, days_until_race=days)
        assert protocol.phase == ProtocolPhase.INITIAL
        assert protocol.duration_weeks == 2
        first_week = protocol.weekly_plan[0]
        assert len(first_week.sessions) == 5
        assert [s.intensity for s in first_week.sessions] == ["easy", "easy", "easy", "easy", "moderate"]
        assert first_week.sessions[2].notes == ["Slightly longer"]
        assert first_week.sessions[4].day == "Sunday"
        assert protocol.weekly_plan[1].sessions[2].intensity == "moderate"


class TestProgression:
    @pytest.mark.parametrize("days", [21, 35, 56, 90])
    def test_weekly_targets_reach_race_heat(self, days):
        protocol = generate_heat_acclimation_protocol(24, 39, days_until_race=days)
        targets = [w.target_heat_index for w in protocol.weekly_plan]

        assert targets == sorted(targets)
        assert targets[-1] == pytest.approx(39)
        assert targets[0] > 24

    @pytest.mark.parametrize("days", [21, 56])
    def test_sessions_between_tolerance_and_week_target(self, days):
        protocol = generate_heat_acclimation_protocol(24, 39, days_until_race=days)
        for week in protocol.weekly_plan:
            for session in week.sessions:
                assert 24 <= session.target_heat_index <= week.target_heat_index + 0.05

    def test_linear_week_targets(self):
        protocol = generate_heat_acclimation_protocol(25, 37, days_until_race=35)
        assert [w.target_heat_index for w in protocol.weekly_plan] == [28.0, 31.0, 34.0, 37.0]

    def test_to_dict(self):
        data = generate_heat_acclimation_protocol(25, 37, days_until_race=35).to_dict()
        assert data["phase"] == "adaptation"
        assert data["weekly_plan"][0]["sessions"][0]["day"] == "Monday"


class TestTrainingRecommendation:
    def test_within_tolerance(self):
        result = get_heat_training_recommendation(60, "tempo", 30, 25)
        assert result.go_ahead
        assert result.alternatives == []

    def test_moderate_stress(self):
        result = get_heat_training_recommendation(60, "tempo", 40, 25)
        assert result.go_ahead
        assert result.heat_stress == 15
        assert "Shift to early morning if possible" in result.alternatives

    def test_high_stress_quality_session_moved(self):
        result = get_heat_training_recommendation(60, "intervals", 48, 25)
        assert not result.go_ahead
        assert len(result.alternatives) == 4
        assert "Easy pace only - no quality work" in result.adjustments

    def test_high_stress_easy_run_allowed(self):
        assert get_heat_training_recommendation(40, "easy", 48, 25).go_ahead

    def test_stress_bands_follow_config(self):
        strict = ForecastConfig(heat_session_moderate_stress=3.0, heat_session_moderate_duration_ratio=0.5)
        result = get_heat_training_recommendation(60, "tempo", 30, 25, config=strict)
        assert result.alternatives == ["Shift to early morning if possible"]
        assert "Reduce intensity 5-10% or shorten to about 30 min" in result.adjustments
