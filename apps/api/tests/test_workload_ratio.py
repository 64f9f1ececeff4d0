"""
Tests for the ACWR workload analyzer.
"""
from datetime import date, datetime, timedelta
from types import SimpleNamespace

import pytest

from models import AthleteLearningState, WeeklyLoadMetric
from services.workload_ratio import (
    ACWRTrend,
    ACWRZone,
    AthleteBaselines,
    RiskLevel,
    TimeFrame,
    WeeklyLoad,
    WorkloadService,
    acwr_trend,
    analyze_workload,
    assess_sustainability,
    classify_acwr,
    compute_athlete_baselines,
    compute_personal_bounds,
    derive_weekly_metrics,
    resolve_zone,
    week_start,
)

MONDAY = date(2026, 6, 1)


def _run(day: date, km=10.0, hr=None, elevation=0.0):
    return SimpleNamespace(
        start_time=datetime.combine(day, datetime.min.time()).replace(hour=7),
        distance_m=int(km * 1000),
        duration_s=int(km * 300),
        avg_hr=hr,
        total_elevation_gain=elevation,
        pace_min_per_km=5.0,
    )


def _weeks(ratios):
    return [
        WeeklyLoad(week_start_date=MONDAY + timedelta(weeks=i), total_distance_km=40.0, acute_load=40.0, acwr=r)
        for i, r in enumerate(ratios)
    ]


class TestPersonalBounds:
    @pytest.mark.parametrize("acwr_mean,acwr_std", [
        (1.0, 0.0), (1.0, 10.0), (0.2, 0.1), (3.0, 0.1), (1.1, 0.3), (0.0, 0.0),
        (float("nan"), 0.2), (1.0, float("inf")),
    ])
    def test_always_ordered_and_within_safety_range(self, acwr_mean, acwr_std):
        lower, upper = compute_personal_bounds(acwr_mean, acwr_std)
        assert 0.8 <= lower <= 1.2
        assert 0.9 <= upper <= 1.5
        assert lower <= upper

    def test_tight_history(self):
        lower, upper = compute_personal_bounds(1.0, 0.05)
        assert lower == pytest.approx(0.95)
        assert upper == pytest.approx(1.05)

    def test_personal_zone_needs_data_quality(self):
        poor = AthleteBaselines(acwr_mean=1.0, acwr_std_dev=0.05, data_quality_score=0.3)
        good = AthleteBaselines(acwr_mean=1.0, acwr_std_dev=0.05, data_quality_score=0.8)

        assert not resolve_zone(poor).has_personal_zone
        assert resolve_zone(poor).personal_max == 1.3

        zone = resolve_zone(good)
        assert zone.has_personal_zone
        assert zone.personal_min == pytest.approx(0.95)
        assert zone.personal_max == pytest.approx(1.05)

    def test_personal_zone_close_to_universal_not_flagged(self):
        baselines = AthleteBaselines(acwr_mean=1.05, acwr_std_dev=0.25, data_quality_score=1.0)
        assert not resolve_zone(baselines).has_personal_zone

    def test_no_baselines_uses_universal_zone(self):
        zone = resolve_zone(None)
        assert (zone.personal_min, zone.personal_max) == (0.8, 1.3)


class TestClassification:
    @pytest.mark.parametrize("acwr,expected", [
        (0.5, ACWRZone.UNDERLOAD),
        (0.8, ACWRZone.SWEET_SPOT),
        (1.3, ACWRZone.SWEET_SPOT),
        (1.31, ACWRZone.CAUTION),
        (1.5, ACWRZone.CAUTION),
        (1.51, ACWRZone.HIGH_RISK),
    ])
    def test_universal_zones(self, acwr, expected):
        assert classify_acwr(acwr, 0.8, 1.3) == expected

    def test_every_finite_value_gets_a_zone(self):
        for i in range(0, 400):
            assert classify_acwr(i / 100, 0.95, 1.05) in ACWRZone

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), None])
    def test_non_finite_rejected(self, value):
        with pytest.raises(ValueError):
            classify_acwr(value, 0.8, 1.3)

    def test_no_extreme_zone(self):
        assert classify_acwr(5.0, 0.8, 1.3) == ACWRZone.HIGH_RISK


class TestTrendAndSustainability:
    def test_rising_and_falling(self):
        assert acwr_trend([1.0, 1.0, 1.3, 1.3]) == ACWRTrend.RISING
        assert acwr_trend([1.3, 1.3, 1.0, 1.0]) == ACWRTrend.FALLING
        assert acwr_trend([1.0, 1.1, 1.0, 1.1]) == ACWRTrend.STABLE

    def test_short_history_is_stable(self):
        assert acwr_trend([0.5, 1.5, 2.0]) == ACWRTrend.STABLE

    def test_repeated_spikes_unsustainable(self):
        assert not assess_sustainability([1.6, 1.7, 1.0]).is_sustainable

    def test_volatility_unsustainable(self):
        result = assess_sustainability([0.5, 1.4, 0.5])
        assert not result.is_sustainable
        assert "fluctuating" in result.reason

    def test_steady_progression(self):
        assert assess_sustainability([1.0, 1.05, 1.1]).is_sustainable


class TestWeeklyAggregation:
    def test_week_start_is_monday(self):
        assert week_start(date(2026, 6, 7)) == MONDAY
        assert week_start(datetime(2026, 6, 1, 23, 0)) == MONDAY

    def test_missing_weeks_zero_filled(self):
        activities = [_run(MONDAY), _run(MONDAY + timedelta(weeks=2, days=3), km=8.0)]
        weeks = derive_weekly_metrics(activities)

        assert [w.week_start_date for w in weeks] == [MONDAY + timedelta(weeks=i) for i in range(3)]
        assert weeks[1].acute_load == 0.0
        assert weeks[1].run_count == 0
        assert weeks[2].total_distance_km == pytest.approx(8.0)

    def test_acwr_needs_four_prior_weeks(self):
        activities = [_run(MONDAY + timedelta(weeks=i)) for i in range(4)]
        activities.append(_run(MONDAY + timedelta(weeks=4), km=15.0))
        weeks = derive_weekly_metrics(activities)

        assert all(w.acwr is None for w in weeks[:4])
        assert weeks[4].chronic_load == pytest.approx(10.0)
        assert weeks[4].acwr == pytest.approx(1.5)

    def test_zero_chronic_leaves_ratio_undefined(self):
        activities = [_run(MONDAY), _run(MONDAY + timedelta(weeks=5))]
        weeks = derive_weekly_metrics(activities)
        assert weeks[4].chronic_load == pytest.approx(2.5)
        assert weeks[4].acwr == 0.0
        assert weeks[5].chronic_load == 0.0
        assert weeks[5].acwr is None

    def test_no_activities(self):
        assert derive_weekly_metrics([]) == []


class TestBaselines:
    def test_short_history_uses_defaults(self):
        baselines = compute_athlete_baselines(_weeks([1.2, 1.1]), [_run(MONDAY)])
        assert baselines.acwr_mean == 1.0
        assert baselines.acwr_std_dev == 0.2

    def test_statistics_and_quality(self):
        runs = [_run(MONDAY, hr=150), _run(MONDAY, hr=146), _run(MONDAY), _run(MONDAY, hr=148)]
        baselines = compute_athlete_baselines(_weeks([0.9, 1.1, 0.9, 1.1]), runs)

        assert baselines.acwr_mean == pytest.approx(1.0)
        assert baselines.acwr_std_dev == pytest.approx(0.1)
        assert baselines.data_quality_score == pytest.approx(0.75)
        assert baselines.baseline_hr == pytest.approx(148.0)


class TestAnalysis:
    def test_empty_history(self):
        analysis = analyze_workload([], None)
        assert analysis.current_acwr is None
        assert analysis.current_zone is None
        assert not analysis.has_data
        assert analysis.needs_more_data
        assert analysis.trend == ACWRTrend.STABLE

    def test_spike_is_high_risk(self):
        analysis = analyze_workload(_weeks([1.0, 1.0, 1.1, 1.7]), None)
        assert analysis.current_zone == ACWRZone.HIGH_RISK
        assert analysis.risk_level == RiskLevel.HIGH
        assert "1.70" in analysis.feedback
        assert analysis.recommendation.startswith("Reduce planned volume")

    def test_personal_zone_applies(self):
        baselines = AthleteBaselines(acwr_mean=1.0, acwr_std_dev=0.05, data_quality_score=0.9)
        analysis = analyze_workload(_weeks([1.0, 1.0, 1.0, 1.2]), baselines)
        assert analysis.current_zone == ACWRZone.CAUTION
        assert analysis.risk_level == RiskLevel.MODERATE

    def test_series_limited_to_timeframe(self):
        analysis = analyze_workload(_weeks([1.0] * 10), None, TimeFrame.FOURTEEN_DAYS)
        assert len(analysis.series) == 2
        assert analysis.total_weeks == 10

    def test_to_dict(self):
        data = analyze_workload(_weeks([1.0, 1.0, 1.0, 1.0]), None).to_dict()
        assert data["current_zone"] == "sweet-spot"
        assert data["zone_info"]["universal_max"] == 1.3


class TestWorkloadService:
    def _history(self, add_activity):
        for week in range(4):
            for day in (1, 4):
                add_activity(datetime.combine(MONDAY + timedelta(weeks=week, days=day), datetime.min.time()))
        add_activity(datetime.combine(MONDAY + timedelta(weeks=5, days=1), datetime.min.time()), km=30.0)

    def test_refresh_upserts_weeks(self, db_session, test_athlete, add_activity):
        self._history(add_activity)
        service = WorkloadService(db_session)

        weeks = service.refresh_weekly_metrics(test_athlete.id)
        service.refresh_weekly_metrics(test_athlete.id)

        assert len(weeks) == 6
        rows = db_session.query(WeeklyLoadMetric).filter_by(athlete_id=test_athlete.id).all()
        assert len(rows) == 6
        assert weeks[4].acwr == 0.0
        assert weeks[5].acwr == pytest.approx(2.0)

    def test_refresh_baselines_persists_state(self, db_session, test_athlete, add_activity):
        self._history(add_activity)
        service = WorkloadService(db_session)
        service.refresh_weekly_metrics(test_athlete.id)

        baselines = service.refresh_baselines(test_athlete.id)
        state = db_session.get(AthleteLearningState, test_athlete.id)

        assert baselines.acwr_mean == 1.0
        assert state.data_quality_score == 0.0
        assert state.computation_metadata["weeks"] == 6
        assert service.get_baselines(test_athlete.id).acwr_std_dev == 0.2

    def test_analyze_window(self, db_session, test_athlete, add_activity):
        self._history(add_activity)
        service = WorkloadService(db_session)
        service.refresh_weekly_metrics(test_athlete.id)
        service.refresh_baselines(test_athlete.id)

        analysis = service.analyze(test_athlete.id, TimeFrame.FOUR_WEEKS, today=MONDAY + timedelta(weeks=5, days=2))

        assert analysis.total_weeks == 4
        assert analysis.current_acwr == pytest.approx(2.0)
        assert analysis.current_zone == ACWRZone.HIGH_RISK
        assert not analysis.zone_info.has_personal_zone

    def test_unknown_athlete_has_no_baselines(self, db_session, test_athlete):
        assert WorkloadService(db_session).get_baselines(test_athlete.id) is None
