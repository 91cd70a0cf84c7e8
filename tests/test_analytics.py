"""Tests for compute_metrics and its component series."""
from datetime import datetime, timezone

import pytest

from apptrack.analytics import (
    FunnelStage,
    TimingBucket,
    VelocityPoint,
    average_time_in_status,
    compute_metrics,
    drop_off,
    funnel,
    percent,
    timing_analysis,
    visa_impact,
    weekly_velocity,
)
from apptrack.models import FUNNEL_STAGES, STATUSES
from tests.factories import make_app


def _three():
    return [
        make_app(id="1", status="Applied"),
        make_app(id="2", status="Applied"),
        make_app(id="3", status="Offer"),
    ]


@pytest.mark.parametrize("part, whole, expected", [
    (1, 3, 33.3),
    (2, 3, 66.7),
    (1, 8, 12.5),
    (1, 16, 6.3),
    (0, 5, 0.0),
    (3, 0, 0.0),
])
def test_percent_rounds_half_up_to_one_decimal(part, whole, expected):
    assert percent(part, whole) == expected


def test_two_applied_one_offer():
    m = compute_metrics(_three())
    assert m.total_applications == 3
    assert m.success_rate == 33.3
    assert m.response_rate == 33.3
    assert m.status_distribution == {
        "Applied": 2, "Phone Screen": 0, "Technical Interview": 0,
        "Final Round": 0, "Offer": 1, "Rejected": 0,
    }
    assert [(s.stage, s.count) for s in m.funnel] == [
        ("Applied", 3), ("Phone Screen", 0), ("Technical Interview", 0),
        ("Final Round", 0), ("Offer", 1),
    ]
    assert m.funnel[0].conversion_rate == 100.0
    assert m.funnel[-1].conversion_rate == 0.0
    assert m.drop_off[0].drop_off_rate == 100.0
    assert m.drop_off[0].count == 3
    assert m.drop_off[-1].drop_off_rate == 0.0
    assert not m.is_empty


def test_empty_input_is_all_zero():
    m = compute_metrics([])
    assert m.is_empty
    assert m.success_rate == 0.0
    assert m.response_rate == 0.0
    assert m.status_distribution == {s: 0 for s in STATUSES}
    assert m.average_time_in_status == {s: 0 for s in STATUSES}
    assert [s.stage for s in m.funnel] == list(FUNNEL_STAGES)
    assert all(s.count == 0 and s.conversion_rate == 0.0 for s in m.funnel)
    assert len(m.drop_off) == 4
    assert m.weekly_velocity == []
    assert m.timing.by_day_of_week == {}
    assert m.visa_impact.with_visa.total == 0


def test_compute_metrics_is_deterministic():
    assert compute_metrics(_three()) == compute_metrics(_three())


def test_rates_stay_within_bounds():
    apps = [make_app(id=str(i), status=s) for i, s in enumerate(
        ["Applied", "Offer", "Offer", "Offer", "Final Round", "Rejected", "Phone Screen", "Ghosted"]
    )]
    m = compute_metrics(apps)
    rates = [m.success_rate, m.response_rate]
    rates += [s.conversion_rate for s in m.funnel]
    rates += [d.drop_off_rate for d in m.drop_off]
    assert all(0 <= r <= 100 for r in rates)
    assert all(d.count >= 0 for d in m.drop_off)


def test_funnel_conversion_is_capped():
    apps = [make_app(id="1", status="Phone Screen"), make_app(id="2", status="Technical Interview"),
            make_app(id="3", status="Technical Interview")]
    stages = funnel(apps)
    assert stages[1].count == 1
    assert stages[2].count == 2
    assert stages[2].conversion_rate == 100.0


def test_drop_off_from_empty_stage_is_zero():
    stages = [FunnelStage("Final Round", 0, 0.0), FunnelStage("Offer", 2, 0.0)]
    [d] = drop_off(stages)
    assert d.drop_off_rate == 0.0
    assert d.count == 0


def test_average_time_in_status_uses_last_update():
    apps = [
        make_app(id="1", status="Phone Screen", date_applied="2024-05-01",
                 updated_at=datetime(2024, 6, 10, 12, tzinfo=timezone.utc)),
        make_app(id="2", status="Phone Screen", date_applied="2024-05-01",
                 created_at=datetime(2024, 5, 20, 8, tzinfo=timezone.utc)),
        make_app(id="3", status="Applied", date_applied="garbage"),
    ]
    result = average_time_in_status(apps)
    # 40 and 19 whole days
    assert result["Phone Screen"] == 30
    assert result["Applied"] == 0


def test_weekly_velocity_buckets_by_monday():
    apps = [
        make_app(id="1", date_applied="2024-06-01"),
        make_app(id="2", date_applied="2024-05-27"),
        make_app(id="3", date_applied="2024-06-03"),
        make_app(id="4", date_applied="bad"),
    ]
    assert weekly_velocity(apps) == [VelocityPoint("2024-05-27", 2), VelocityPoint("2024-06-03", 1)]


def test_weekly_velocity_keeps_most_recent_weeks():
    apps = [make_app(id=str(i), date_applied=f"2024-01-{1 + 7 * i:02d}") for i in range(5)]
    points = weekly_velocity(apps, weeks=2)
    assert [p.week for p in points] == ["2024-01-22", "2024-01-29"]


def test_timing_analysis():
    apps = [
        make_app(id="1", date_applied="2024-06-03", status="Offer"),
        make_app(id="2", date_applied="2024-06-10"),
        make_app(id="3", date_applied="2024-06-29", status="Offer"),
    ]
    timing = timing_analysis(apps)
    assert timing.by_day_of_week == {
        "Monday": TimingBucket(2, 1, 50.0),
        "Saturday": TimingBucket(1, 1, 100.0),
    }
    assert list(timing.by_week_of_month) == ["Week 1", "Week 2", "Week 5"]


def test_visa_impact():
    apps = [
        make_app(id="1", visa_sponsorship=True, status="Offer"),
        make_app(id="2", visa_sponsorship=True, status="Rejected"),
        make_app(id="3", visa_sponsorship=False, status="Applied"),
    ]
    impact = visa_impact(apps)
    assert impact.with_visa.total == 2
    assert impact.with_visa.success_rate == 50.0
    assert impact.with_visa.response_rate == 100.0
    assert impact.without_visa.offers == 0
    assert impact.without_visa.response_rate == 0.0


def test_naive_timestamps_count_as_utc():
    apps = [
        make_app(id="1", status="Final Round", date_applied="2024-05-01",
                 created_at=datetime(2024, 5, 1, 9), updated_at=datetime(2024, 5, 11, 9)),
        make_app(id="2", status="Final Round", date_applied="2024-05-01",
                 created_at=datetime(2024, 5, 21, 9)),
    ]
    assert average_time_in_status(apps)["Final Round"] == 15
    assert compute_metrics(apps).total_applications == 2
