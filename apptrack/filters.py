"""Filter applications by search text, status, date range, visa flag and tags."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable

from apptrack.models import DATE_RANGES, Application, FilterCriteria, applied_at, as_utc

Predicate = Callable[[Application], bool]


def search_predicate(search: str) -> Predicate | None:
    if not search:
        return None
    term = search.lower()
    return lambda app: term in (app.company or "").lower() or term in (app.role or "").lower()


def status_predicate(status: str) -> Predicate | None:
    if not status or status == "all":
        return None
    return lambda app: app.status == status


def visa_predicate(flag: str) -> Predicate | None:
    if flag not in ("true", "false"):
        return None
    wanted = flag == "true"
    return lambda app: app.visa_sponsorship is wanted


def date_range_predicate(date_range: str, now: datetime | None = None) -> Predicate | None:
    days = DATE_RANGES.get(date_range)
    if days is None:
        return None
    now = as_utc(now) if now is not None else datetime.now(timezone.utc)
    window = timedelta(days=days)

    def matches(app: Application) -> bool:
        applied = applied_at(app.date_applied)
        if applied is None:
            return False
        return now - applied <= window

    return matches


def tags_predicate(tag_ids: Iterable[str]) -> Predicate | None:
    selected = frozenset(tag_ids or ())
    if not selected:
        return None
    return lambda app: any(tag.id in selected for tag in app.tags or ())


def build_predicates(criteria: FilterCriteria, now: datetime | None = None) -> list[Predicate]:
    """Active constraints for *criteria*; disabled ones are left out."""
    candidates = [
        search_predicate(criteria.search),
        status_predicate(criteria.status),
        visa_predicate(criteria.visa_sponsorship),
        date_range_predicate(criteria.date_range, now),
        tags_predicate(criteria.tags),
    ]
    return [p for p in candidates if p is not None]


def apply_filters(
    applications: Iterable[Application],
    criteria: FilterCriteria,
    now: datetime | None = None,
) -> list[Application]:
    """Records matching every active constraint, in input order."""
    predicates = build_predicates(criteria, now)
    return [app for app in applications if all(p(app) for p in predicates)]
