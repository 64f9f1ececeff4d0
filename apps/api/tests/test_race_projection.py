"""
Tests for race time projection and baseline selection.
"""
from datetime import date, datetime, timedelta
from types import SimpleNamespace

import pytest

from services.race_projection import (
    BaselineRace,
    EnvironmentalAdjustment,
    adjustment_from_profiles,
    baseline_confidence,
    build_projection_table,
    distance_name,
    find_best_baseline,
    format_pace,
    format_time,
    project_time,
)

TODAY = date(2026, 9, 1)


def _activity(km, minutes, days_ago, is_race=False, name=None):
    return SimpleNamespace(
        distance_m=int(km * 1000),
        duration_s=int(minutes * 60),
        start_time=datetime.combine(TODAY - timedelta(days=days_ago), datetime.min.time()),
        is_race=is_race,
        name=name,
    )


class TestProjection:
    def test_ten_k_to_marathon(self):
        predicted = project_time(10.0, 45.0, 42.195)
        assert predicted == pytest.approx(45.0 * 4.2195 ** 1.06)
        assert 206 < predicted < 208

    def test_same_distance_is_identity(self):
        assert project_time(21.0975, 95.0, 21.0975) == pytest.approx(95.0)

    def test_monotonic_in_distance(self):
        times = [project_time(10.0, 45.0, d) for d in (5, 10, 21.0975, 42.195, 100)]
        assert times == sorted(times)

    @pytest.mark.parametrize("args", [(0, 45, 10), (10, 0, 21), (10, 45, -1)])
    def test_non_positive_inputs_rejected(self, args):
        with pytest.raises(ValueError):
            project_time(*args)

    def test_table_covers_reference_distances(self):
        table = build_projection_table(BaselineRace(distance_km=10.0, time_min=45.0))
        assert [e.distance_name for e in table] == ["10K", "Half Marathon", "Marathon", "50K", "100K"]
        assert all(e.confidence == 75.0 for e in table)
        assert table[0].formatted == "45:00"

    def test_table_applies_adjustment(self):
        adjustment = EnvironmentalAdjustment(heat_pct=4.0, altitude_pct=3.0)
        table = build_projection_table(BaselineRace(distance_km=10.0, time_min=45.0), adjustment)
        assert table[0].adjusted_time_min == pytest.approx(45.0 * 1.07)
        assert table[0].predicted_time_min == pytest.approx(45.0)


class TestEnvironmentalAdjustment:
    def test_nothing_supplied(self):
        assert adjustment_from_profiles().total_pct == 0.0

    def test_fixed_rules_without_profiles(self):
        adjustment = adjustment_from_profiles(temperature_c=35, altitude_m=2000, start_hour=7)
        assert adjustment.heat_pct == pytest.approx(4.0)
        assert adjustment.altitude_pct == pytest.approx(3.0)
        assert adjustment.time_of_day_pct == 0.0
        assert adjustment.total_pct == pytest.approx(7.0)


class TestBaselineSelection:
    def test_recent_training_run_beats_older_race(self):
        activities = [
            _activity(10.0, 45.0, days_ago=60, is_race=True, name="City 10K"),
            _activity(12.0, 66.0, days_ago=5),
        ]
        baseline = find_best_baseline(activities, today=TODAY)

        assert baseline.source == "log"
        assert baseline.distance_km == pytest.approx(12.0)
        assert baseline.name == "Run - 12.0km"
        assert baseline.confidence == 1.0

    def test_race_selected_when_runs_do_not_qualify(self):
        activities = [
            _activity(7.0, 42.0, days_ago=2),            # short easy run
            _activity(10.0, 120.0, days_ago=2),          # 12 min/km, too slow
            _activity(10.0, 44.0, days_ago=100, is_race=True, name="Spring 10K"),
        ]
        baseline = find_best_baseline(activities, today=TODAY)

        assert baseline.name == "Spring 10K"
        assert baseline.source == "race"
        assert baseline.confidence == 0.75

    def test_old_activities_get_no_recency_credit(self):
        activities = [
            _activity(21.0975, 90.0, days_ago=400, is_race=True),
            _activity(21.0975, 100.0, days_ago=300, is_race=True),
        ]
        baseline = find_best_baseline(activities, today=TODAY)
        assert baseline.time_min == pytest.approx(100.0)

    def test_no_qualifying_activity(self):
        assert find_best_baseline([_activity(2.0, 8.0, days_ago=1, is_race=True)], today=TODAY) is None
        assert find_best_baseline([], today=TODAY) is None

    @pytest.mark.parametrize("days,expected", [(0, 1.0), (45, 0.95), (90, 0.85), (120, 0.75), (200, 0.6)])
    def test_confidence_by_age(self, days, expected):
        assert baseline_confidence(days) == expected


class TestFormatting:
    def test_format_time(self):
        assert format_time(45.5) == "45:30"
        assert format_time(207.0) == "3:27:00"
        assert format_time(59.999) == "1:00:00"

    def test_format_pace(self):
        assert format_pace(5.0) == "5:00/km"
        assert format_pace(4.999) == "5:00/km"
        assert format_pace(4.25) == "4:15/km"

    def test_distance_name(self):
        assert distance_name(21.1) == "Half Marathon"
        assert distance_name(5.02) == "5K"
        assert distance_name(8.0) == "8.0K"
