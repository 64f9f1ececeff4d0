"""
Tests for the heat tolerance learner.
"""
from datetime import datetime, timedelta

import pytest

from core.forecast_config import ForecastConfig
from services.environmental_samples import PerformanceSample
from services.heat_tolerance import (
    default_heat_profile,
    learn_heat_tolerance,
    predict_pace_adjustment_for_temp,
)

START = datetime(2026, 3, 1, 7, 0)


def _samples(pairs, start=START):
    return [
        PerformanceSample(condition_value=temp, pace_min_per_km=pace, date=start + timedelta(days=i))
        for i, (temp, pace) in enumerate(pairs)
    ]


def _cool_runs_then_one_hot_run():
    cool = [10, 11, 12, 13, 14, 15, 16, 17, 18, 19, 20, 12, 14, 16, 18]
    return _samples([(t, 5.0) for t in cool] + [(30, 5.5)])


class TestInsufficientData:
    def test_fewer_than_ten_samples_returns_exact_default(self):
        """Below the sample minimum the neutral default comes back, confidence 0."""
        profile = learn_heat_tolerance(_samples([(t, 5.0) for t in range(10, 19)]))
        assert profile.optimal_temp_c == 15
        assert profile.heat_threshold_c == 25
        assert profile.confidence_score == 0
        assert profile.sample_count == 9
        assert profile.is_default

    def test_malformed_samples_do_not_count(self):
        """Missing or non-finite values are filtered before the minimum check."""
        good = _samples([(t, 5.0) for t in range(10, 18)])
        bad = [
            PerformanceSample(condition_value=None, pace_min_per_km=5.0),
            PerformanceSample(condition_value=20, pace_min_per_km=float("nan")),
            PerformanceSample(condition_value=20, pace_min_per_km=-1.0),
            PerformanceSample(condition_value=float("inf"), pace_min_per_km=5.0),
        ]
        profile = learn_heat_tolerance(good + bad)
        assert profile.is_default
        assert profile.sample_count == 8

    def test_default_matches_config(self):
        config = ForecastConfig(heat_default_optimal_temp_c=12, heat_default_threshold_c=22)
        profile = default_heat_profile(config=config)
        assert profile.optimal_temp_c == 12
        assert profile.heat_threshold_c == 22


class TestLearning:
    def test_hot_outlier_shows_on_curve_with_low_confidence(self):
        """15 cool runs at even pace plus one slow hot run."""
        profile = learn_heat_tolerance(_cool_runs_then_one_hot_run())

        assert profile.sample_count == 16
        assert 0 < profile.confidence_score < 50
        assert profile.curve.buckets == [10, 15, 20, 30]
        assert profile.curve[-1].adjustment_pct == pytest.approx(10.0)
        assert predict_pace_adjustment_for_temp(profile, 30) == pytest.approx(10.0)
        assert predict_pace_adjustment_for_temp(profile, 28) > 0

    def test_optimal_and_threshold(self):
        profile = learn_heat_tolerance(_cool_runs_then_one_hot_run())
        assert profile.optimal_temp_c == 10
        assert profile.heat_threshold_c == 30
        assert profile.heat_slope_pct_per_c > 0

    def test_slow_cold_bucket_is_not_the_heat_threshold(self):
        cold = [(-5, 5.5), (-5, 5.5)]
        samples = _cool_runs_then_one_hot_run() + _samples(cold, start=START + timedelta(days=30))

        profile = learn_heat_tolerance(samples)

        assert profile.curve[0].bucket_value == -5
        assert profile.curve[0].adjustment_pct == pytest.approx(10.0)
        assert profile.optimal_temp_c == 10
        assert profile.heat_threshold_c == 30

    def test_threshold_defaults_when_never_exceeded(self):
        profile = learn_heat_tolerance(_samples([(10 + i % 20, 5.0) for i in range(20)]))
        assert profile.heat_threshold_c == 25
        assert not profile.is_default

    def test_curve_buckets_strictly_increasing(self):
        temps = [3, 28, 7, 33, 15, 12, 22, 18, 26, 9, 31, 14]
        profile = learn_heat_tolerance(_samples([(t, 5.0 + max(0, t - 20) * 0.05) for t in temps]))
        buckets = profile.curve.buckets
        assert all(b2 > b1 for b1, b2 in zip(buckets, buckets[1:]))

    def test_confidence_capped_at_100(self):
        pairs = [(5 + (i % 31), 5.0 + (i % 31) * 0.01) for i in range(120)]
        profile = learn_heat_tolerance(_samples(pairs))
        assert profile.confidence_score == 100

    def test_acclimatization_days_within_bounds(self):
        # Temperatures rise while pace improves: an adapting athlete
        pairs = [(10 + i * 0.5, 5.5 - i * 0.01) for i in range(40)]
        profile = learn_heat_tolerance(_samples(pairs))
        assert 7 <= profile.acclimatization_days <= 21


class TestPrediction:
    def test_no_profile_uses_fixed_rule(self):
        """+2% per 5 C above 25 C."""
        assert predict_pace_adjustment_for_temp(None, 20) == 0.0
        assert predict_pace_adjustment_for_temp(None, 25) == 0.0
        assert predict_pace_adjustment_for_temp(None, 35) == pytest.approx(4.0)

    def test_default_profile_uses_fixed_rule(self):
        assert predict_pace_adjustment_for_temp(default_heat_profile(), 30) == pytest.approx(2.0)

    def test_clamps_outside_observed_range(self):
        profile = learn_heat_tolerance(_cool_runs_then_one_hot_run())
        assert predict_pace_adjustment_for_temp(profile, 45) == pytest.approx(10.0)
        assert predict_pace_adjustment_for_temp(profile, -5) == pytest.approx(0.0)
