"""Turn computed metrics into human-readable observations and actions.

Insights come from an ordered table of rules. Each rule looks at ``Metrics``
and returns zero or more ``Insight`` values; rules never see each other's
output. ``generate_insights`` runs the table in order and lists every
observation before every action, so the ordering of the text is fully
determined by the table.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence

from apptrack.analytics import Metrics, TimingBucket
from apptrack.models import TERMINAL_STATUSES

OBSERVATION = "observation"
ACTION = "action"

EMPTY_MESSAGE = "Start adding applications to see insights!"

DROP_OFF_ALERT_RATE = 70.0
DROP_OFF_MIN_BASELINE = 3
SLOW_STATUS_DAYS = 30
TIMING_MIN_SAMPLES = 3
VISA_DELTA_POINTS = 5.0

_STAGE_ACTIONS: dict[str, str] = {
    "Phone Screen": "Action: Practice phone interview skills. Prepare answers to common questions "
                    "and have questions ready for the interviewer.",
    "Technical Interview": "Action: Focus on technical interview preparation. Practice coding problems "
                           "and system design questions relevant to your field.",
    "Final Round": "Action: Prepare for final round interviews by researching the company culture, "
                   "preparing behavioral questions, and demonstrating enthusiasm.",
}


@dataclass(frozen=True)
class Insight:
    text: str
    kind: str = OBSERVATION


@dataclass(frozen=True)
class InsightRule:
    name: str
    evaluate: Callable[[Metrics], list[Insight]]


def _num(value: float) -> str:
    return f"{value:g}"


def success_rate_rule(m: Metrics) -> list[Insight]:
    rate = _num(m.success_rate)
    if m.success_rate > 20:
        return [Insight(f"Excellent success rate of {rate}%! Keep up the great work.")]
    if m.success_rate > 10:
        return [
            Insight(f"Your success rate is {rate}%. Consider refining your application strategy."),
            Insight("Action: Review successful applications to identify patterns in company size, "
                    "role type, or application timing.", ACTION),
        ]
    if m.success_rate > 0:
        return [
            Insight(f"Your success rate is {rate}%. Keep applying and improving!"),
            Insight("Action: Focus on quality over quantity. Tailor each application to the "
                    "specific role and company.", ACTION),
        ]
    return [
        Insight("Action: Consider getting feedback on your resume and cover letter. "
                "Practice common interview questions.", ACTION),
    ]


def response_rate_rule(m: Metrics) -> list[Insight]:
    rate = _num(m.response_rate)
    if m.response_rate < 30:
        return [
            Insight(f"Response rate is {rate}%. Consider tailoring your applications more."),
            Insight("Action: Customize your resume and cover letter for each application. Highlight "
                    "relevant experience and keywords from the job description.", ACTION),
        ]
    if m.response_rate > 70:
        return [Insight(f"Strong response rate of {rate}%! Your applications are getting noticed.")]
    return []


def velocity_rule(m: Metrics) -> list[Insight]:
    recent = m.weekly_velocity[-4:]
    if not recent:
        return []
    avg = sum(p.count for p in recent) / len(recent)
    if avg < 2:
        return [
            Insight("Consider increasing your application velocity for better results."),
            Insight("Action: Aim for 5-10 quality applications per week. Set aside dedicated time "
                    "each day for job searching.", ACTION),
        ]
    if avg > 10:
        return [Insight(f"High application velocity ({avg:.1f} per week)! "
                        "Maintain quality while keeping momentum.")]
    return []


def funnel_drop_off_rule(m: Metrics) -> list[Insight]:
    out: list[Insight] = []
    for stage, drop in zip(m.funnel, m.drop_off):
        if stage.count <= DROP_OFF_MIN_BASELINE:
            continue
        # threshold applies to the unrounded rate
        if drop.count / stage.count * 100 > DROP_OFF_ALERT_RATE:
            out.append(Insight(
                f"High drop-off at {drop.from_stage} → {drop.to_stage} "
                f"({drop.drop_off_rate:.0f}% drop-off)."
            ))
            action = _STAGE_ACTIONS.get(drop.to_stage)
            if action:
                out.append(Insight(action, ACTION))
    return out


def offer_conversion_rule(m: Metrics) -> list[Insight]:
    if not m.funnel:
        return []
    applied, offers = m.funnel[0].count, m.funnel[-1].count
    if applied > 0 and offers == 0:
        return [Insight("Focus on improving interview performance to convert applications to offers.")]
    if applied > 0 and offers / applied * 100 > 10:
        return [Insight(f"Strong conversion rate: {offers / applied * 100:.1f}% of applications "
                        "resulted in offers!")]
    return []


def slowest_status_rule(m: Metrics) -> list[Insight]:
    timed = [(status, days) for status, days in m.average_time_in_status.items() if days > 0]
    if not timed:
        return []
    status, days = max(timed, key=lambda item: item[1])
    if days <= SLOW_STATUS_DAYS or status in TERMINAL_STATUSES:
        return []
    return [
        Insight(f'Applications spend an average of {days} days in "{status}". '
                "Consider following up if appropriate."),
        Insight("Action: Set reminders to follow up on applications after 2 weeks of no response.", ACTION),
    ]


def highest_drop_off_rule(m: Metrics) -> list[Insight]:
    candidates = [d for d in m.drop_off if d.drop_off_rate > 0]
    if not candidates:
        return []
    worst = max(candidates, key=lambda d: d.drop_off_rate)
    return [Insight(
        f"Biggest drop-off is {worst.from_stage} → {worst.to_stage}: "
        f"{_num(worst.drop_off_rate)}% ({worst.count} applications)."
    )]


def _best_bucket(buckets: dict[str, TimingBucket]) -> tuple[str, TimingBucket] | None:
    eligible = [(label, b) for label, b in buckets.items()
                if b.count >= TIMING_MIN_SAMPLES and b.success_rate > 0]
    if not eligible:
        return None
    return max(eligible, key=lambda item: item[1].success_rate)


def best_day_rule(m: Metrics) -> list[Insight]:
    best = _best_bucket(m.timing.by_day_of_week)
    if best is None:
        return []
    day, bucket = best
    return [Insight(f"Applications sent on {day} have the best success rate "
                    f"({_num(bucket.success_rate)}% across {bucket.count} applications).")]


def best_week_rule(m: Metrics) -> list[Insight]:
    best = _best_bucket(m.timing.by_week_of_month)
    if best is None:
        return []
    week, bucket = best
    return [Insight(f"Applications sent in {week} of the month have the best success rate "
                    f"({_num(bucket.success_rate)}% across {bucket.count} applications).")]


def visa_comparison_rule(m: Metrics) -> list[Insight]:
    with_visa, without_visa = m.visa_impact.with_visa, m.visa_impact.without_visa
    if not with_visa.total or not without_visa.total:
        return []
    delta = with_visa.success_rate - without_visa.success_rate
    if abs(delta) <= VISA_DELTA_POINTS:
        return []
    if delta > 0:
        return [Insight(f"Applications requiring visa sponsorship convert better "
                        f"({_num(with_visa.success_rate)}% vs {_num(without_visa.success_rate)}%).")]
    return [Insight(f"Applications without visa sponsorship convert better "
                    f"({_num(without_visa.success_rate)}% vs {_num(with_visa.success_rate)}%).")]


DEFAULT_RULES: tuple[InsightRule, ...] = (
    InsightRule("success_rate", success_rate_rule),
    InsightRule("response_rate", response_rate_rule),
    InsightRule("velocity", velocity_rule),
    InsightRule("funnel_drop_off", funnel_drop_off_rule),
    InsightRule("offer_conversion", offer_conversion_rule),
    InsightRule("slowest_status", slowest_status_rule),
    InsightRule("highest_drop_off", highest_drop_off_rule),
    InsightRule("best_day", best_day_rule),
    InsightRule("best_week", best_week_rule),
    InsightRule("visa_comparison", visa_comparison_rule),
)


def evaluate_rules(metrics: Metrics, rules: Sequence[InsightRule] = DEFAULT_RULES) -> list[Insight]:
    out: list[Insight] = []
    for rule in rules:
        out.extend(rule.evaluate(metrics))
    return out


def generate_insights(metrics: Metrics, rules: Sequence[InsightRule] = DEFAULT_RULES) -> list[str]:
    if metrics.total_applications == 0:
        return [EMPTY_MESSAGE]
    found = evaluate_rules(metrics, rules)
    observations = [i.text for i in found if i.kind == OBSERVATION]
    actions = [i.text for i in found if i.kind == ACTION]
    return observations + actions
