"""Derive pipeline metrics from a set of applications.

Everything here is a pure function of the records passed in: nothing is
persisted and the same input always yields the same ``Metrics``. Inputs that
cannot be evaluated (unparseable dates, unknown statuses) are skipped by the
series that need them instead of raising, and an empty input produces an
all-zero result.

Time in status is an approximation. There is no status history, so the
value for a record is the number of whole days between the date it was
applied and its last update (or creation when never updated), attributed to
the status the record holds now. Intermediate statuses a record passed
through are not represented.
"""
from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Iterable

from apptrack.log import get_logger
from apptrack.models import FUNNEL_STAGES, STATUSES, Application, applied_at, parse_date

log = get_logger(__name__)

VELOCITY_WEEKS = 12
DAY_NAMES: tuple[str, ...] = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


@dataclass(frozen=True)
class VelocityPoint:
    week: str
    count: int


@dataclass(frozen=True)
class FunnelStage:
    stage: str
    count: int
    conversion_rate: float


@dataclass(frozen=True)
class DropOff:
    from_stage: str
    to_stage: str
    drop_off_rate: float
    count: int


@dataclass(frozen=True)
class TimingBucket:
    count: int
    offers: int
    success_rate: float


@dataclass
class TimingAnalysis:
    by_day_of_week: dict[str, TimingBucket] = field(default_factory=dict)
    by_week_of_month: dict[str, TimingBucket] = field(default_factory=dict)


@dataclass(frozen=True)
class GroupStats:
    total: int = 0
    offers: int = 0
    success_rate: float = 0.0
    response_rate: float = 0.0


@dataclass
class VisaImpact:
    with_visa: GroupStats = field(default_factory=GroupStats)
    without_visa: GroupStats = field(default_factory=GroupStats)


def _zero_by_status() -> dict[str, int]:
    return {s: 0 for s in STATUSES}


@dataclass
class Metrics:
    total_applications: int = 0
    success_rate: float = 0.0
    response_rate: float = 0.0
    status_distribution: dict[str, int] = field(default_factory=_zero_by_status)
    average_time_in_status: dict[str, int] = field(default_factory=_zero_by_status)
    weekly_velocity: list[VelocityPoint] = field(default_factory=list)
    funnel: list[FunnelStage] = field(default_factory=list)
    drop_off: list[DropOff] = field(default_factory=list)
    timing: TimingAnalysis = field(default_factory=TimingAnalysis)
    visa_impact: VisaImpact = field(default_factory=VisaImpact)

    @property
    def is_empty(self) -> bool:
        return self.total_applications == 0


def percent(part: float, whole: float) -> float:
    """part/whole as a percentage rounded half-up to one decimal; 0 when whole is 0."""
    if whole <= 0:
        return 0.0
    return math.floor(part / whole * 1000 + 0.5) / 10


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def success_rate(applications: list[Application]) -> float:
    offers = sum(1 for a in applications if a.status == "Offer")
    return percent(offers, len(applications))


def response_rate(applications: list[Application]) -> float:
    responded = sum(1 for a in applications if a.status != "Applied")
    return percent(responded, len(applications))


def status_distribution(applications: list[Application]) -> dict[str, int]:
    dist = _zero_by_status()
    for app in applications:
        if app.status in dist:
            dist[app.status] += 1
    return dist


def average_time_in_status(applications: list[Application]) -> dict[str, int]:
    totals = _zero_by_status()
    counts = _zero_by_status()
    for app in applications:
        if app.status not in counts:
            continue
        applied = applied_at(app.date_applied)
        if applied is None:
            continue
        days = math.floor((app.last_touched - applied).total_seconds() / 86400)
        totals[app.status] += days
        counts[app.status] += 1
    return {
        s: _round_half_up(totals[s] / counts[s]) if counts[s] else 0
        for s in STATUSES
    }


def weekly_velocity(applications: list[Application], weeks: int = VELOCITY_WEEKS) -> list[VelocityPoint]:
    """Applications per Monday-start week, oldest first, most recent *weeks* only."""
    buckets: Counter[str] = Counter()
    for app in applications:
        d = parse_date(app.date_applied)
        if d is None:
            continue
        buckets[(d - timedelta(days=d.weekday())).isoformat()] += 1
    points = [VelocityPoint(week, count) for week, count in sorted(buckets.items())]
    return points[-weeks:] if weeks > 0 else []


def funnel(applications: list[Application]) -> list[FunnelStage]:
    """Five-stage funnel with stage-over-stage conversion.

    Every record entered the pipeline, so the first stage counts them all;
    later stages count the records currently holding that status.
    Conversion is capped at 100 because current-status counts of adjacent
    stages are not nested.
    """
    dist = status_distribution(applications)
    stages: list[FunnelStage] = []
    previous = len(applications)
    for i, stage in enumerate(FUNNEL_STAGES):
        count = len(applications) if i == 0 else dist[stage]
        stages.append(FunnelStage(stage, count, min(100.0, percent(count, previous))))
        previous = count
    return stages


def drop_off(stages: list[FunnelStage]) -> list[DropOff]:
    out: list[DropOff] = []
    for prev, cur in zip(stages, stages[1:]):
        lost = max(0, prev.count - cur.count)
        out.append(DropOff(prev.stage, cur.stage, percent(lost, prev.count), lost))
    return out


def _bucket(apps: list[Application]) -> TimingBucket:
    offers = sum(1 for a in apps if a.status == "Offer")
    return TimingBucket(len(apps), offers, percent(offers, len(apps)))


def timing_analysis(applications: list[Application]) -> TimingAnalysis:
    """Success rate by weekday and by week of month of the applied date."""
    by_day: dict[str, list[Application]] = {}
    by_week: dict[int, list[Application]] = {}
    for app in applications:
        d = parse_date(app.date_applied)
        if d is None:
            continue
        by_day.setdefault(DAY_NAMES[d.weekday()], []).append(app)
        by_week.setdefault((d.day - 1) // 7 + 1, []).append(app)
    return TimingAnalysis(
        by_day_of_week={day: _bucket(by_day[day]) for day in DAY_NAMES if day in by_day},
        by_week_of_month={f"Week {n}": _bucket(by_week[n]) for n in sorted(by_week)},
    )


def _group_stats(apps: list[Application]) -> GroupStats:
    offers = sum(1 for a in apps if a.status == "Offer")
    return GroupStats(
        total=len(apps),
        offers=offers,
        success_rate=percent(offers, len(apps)),
        response_rate=response_rate(apps),
    )


def visa_impact(applications: list[Application]) -> VisaImpact:
    return VisaImpact(
        with_visa=_group_stats([a for a in applications if a.visa_sponsorship]),
        without_visa=_group_stats([a for a in applications if not a.visa_sponsorship]),
    )


def empty_metrics() -> Metrics:
    stages = [FunnelStage(stage, 0, 0.0) for stage in FUNNEL_STAGES]
    return Metrics(funnel=stages, drop_off=drop_off(stages))


def compute_metrics(applications: Iterable[Application]) -> Metrics:
    apps = list(applications)
    if not apps:
        return empty_metrics()

    stages = funnel(apps)
    metrics = Metrics(
        total_applications=len(apps),
        success_rate=success_rate(apps),
        response_rate=response_rate(apps),
        status_distribution=status_distribution(apps),
        average_time_in_status=average_time_in_status(apps),
        weekly_velocity=weekly_velocity(apps),
        funnel=stages,
        drop_off=drop_off(stages),
        timing=timing_analysis(apps),
        visa_impact=visa_impact(apps),
    )
    log.debug(
        "Metrics for %d applications: success %.1f%%, response %.1f%%",
        metrics.total_applications, metrics.success_rate, metrics.response_rate,
    )
    return metrics
