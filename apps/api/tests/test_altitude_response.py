"""
Tests for the altitude response learner and acclimatization checks.
"""
from datetime import datetime, timedelta

import pytest

from services.environmental_samples import PerformanceSample
from services.altitude_response import (
    AltitudeProfile,
    assess_acclimatization_schedule,
    default_altitude_profile,
    learn_altitude_response,
    predict_pace_adjustment_for_altitude,
)

START = datetime(2026, 4, 1, 8, 0)


def _samples(pairs):
    return [
        PerformanceSample(condition_value=alt, pace_min_per_km=pace, date=START + timedelta(days=i))
        for i, (alt, pace) in enumerate(pairs)
    ]


def _mixed_altitude_history():
    return _samples([
        (0, 5.0), (50, 5.0), (100, 5.0), (150, 5.0), (0, 5.0), (50, 5.0),
        (1000, 5.15), (1500, 5.25), (2000, 5.4), (2500, 5.5), (1000, 5.15), (2000, 5.4),
    ])


class TestLearning:
    def test_insufficient_samples_returns_default(self):
        profile = learn_altitude_response(_samples([(0, 5.0)] * 9))
        assert profile.is_default
        assert profile.confidence_score == 0
        assert profile.sea_level_base_pace == 6.0
        assert profile.sample_count == 9

    def test_curve_relative_to_sea_level_pace(self):
        profile = learn_altitude_response(_mixed_altitude_history())

        assert profile.sea_level_base_pace == pytest.approx(5.0)
        assert profile.curve.buckets == [0, 1000, 1500, 2000, 2500]
        assert profile.curve[0].adjustment_pct == pytest.approx(0.0)
        assert profile.curve[-1].adjustment_pct == pytest.approx(10.0)
        assert profile.max_training_altitude_m == 2500
        assert profile.degradation_pct_per_1000m > 0

    def test_confidence(self):
        """12/30 samples -> 20 points; 2500 m spread caps at 50."""
        profile = learn_altitude_response(_mixed_altitude_history())
        assert profile.confidence_score == 70

    def test_acclimatization_from_improving_high_sessions(self):
        """Faster repeat sessions above 1500 m, 10 days apart."""
        history = _samples([(0, 5.0)] * 10)
        high = [
            PerformanceSample(2200, 5.6, date=START + timedelta(days=20)),
            PerformanceSample(2200, 5.5, date=START + timedelta(days=30)),
            PerformanceSample(2200, 5.4, date=START + timedelta(days=40)),
        ]
        profile = learn_altitude_response(history + high)
        assert profile.acclimatization_days == 10

    def test_acclimatization_clamped(self):
        history = _samples([(0, 5.0)] * 10)
        high = [
            PerformanceSample(2200, 5.6, date=START + timedelta(days=20)),
            PerformanceSample(2200, 5.5, date=START + timedelta(days=22)),
            PerformanceSample(2200, 5.4, date=START + timedelta(days=24)),
        ]
        assert learn_altitude_response(history + high).acclimatization_days == 7

    def test_acclimatization_default_without_high_sessions(self):
        assert learn_altitude_response(_samples([(100, 5.0)] * 12)).acclimatization_days == 14


class TestPrediction:
    def test_empty_curve_rule(self):
        """+3% per 1000 m above 1000 m."""
        assert predict_pace_adjustment_for_altitude(None, 500) == 0.0
        assert predict_pace_adjustment_for_altitude(None, 2000) == pytest.approx(3.0)
        assert predict_pace_adjustment_for_altitude(default_altitude_profile(), 3000) == pytest.approx(6.0)

    def test_interpolates_and_clamps(self):
        profile = learn_altitude_response(_mixed_altitude_history())
        assert predict_pace_adjustment_for_altitude(profile, 1250) == pytest.approx(4.0)
        assert predict_pace_adjustment_for_altitude(profile, 4000) == pytest.approx(10.0)
        assert predict_pace_adjustment_for_altitude(profile, -100) == pytest.approx(0.0)


class TestAcclimatizationSchedule:
    profile = AltitudeProfile(sea_level_base_pace=5.0, acclimatization_days=14)

    def test_minor_gain_needs_nothing(self):
        result = assess_acclimatization_schedule(0, 800, 1, self.profile)
        assert result.is_adequate
        assert result.recommended_days == 0

    def test_full_acclimatization(self):
        result = assess_acclimatization_schedule(0, 2500, 14, self.profile)
        assert result.is_adequate
        assert result.recommended_days == 14

    def test_partial_acclimatization(self):
        result = assess_acclimatization_schedule(0, 2500, 10, self.profile)
        assert result.is_adequate
        assert "4 days earlier" in result.recommendation

    def test_arriving_just_before_race(self):
        result = assess_acclimatization_schedule(0, 2500, 2, self.profile)
        assert not result.is_adequate

    def test_risky_window(self):
        result = assess_acclimatization_schedule(0, 2500, 5, self.profile)
        assert not result.is_adequate
        assert result.recommendation.startswith("Risky")

    def test_no_profile_uses_default_days(self):
        result = assess_acclimatization_schedule(0, 3000, 20, None)
        assert result.recommended_days == 14
