"""Sort applications by date, company or pipeline status."""
from __future__ import annotations

import unicodedata
from datetime import datetime
from typing import Iterable

from apptrack.log import get_logger
from apptrack.models import STATUSES, Application, SortMode, as_utc

log = get_logger(__name__)

_STATUS_RANK: dict[str, int] = {s: i for i, s in enumerate(STATUSES)}
UNKNOWN_STATUS_RANK = len(STATUSES)


def status_rank(status: str) -> int:
    """Position in the pipeline; unknown statuses sort after every known one."""
    return _STATUS_RANK.get(status, UNKNOWN_STATUS_RANK)


def _company_key(app: Application) -> tuple[str, str]:
    """Accent- and case-insensitive name first, exact folded name as tie-break."""
    folded = unicodedata.normalize("NFKD", (app.company or "").casefold())
    base = "".join(ch for ch in folded if not unicodedata.combining(ch))
    return base, folded


def _created_key(app: Application) -> datetime:
    return as_utc(app.created_at)


def sort_applications(applications: Iterable[Application], mode: SortMode | str) -> list[Application]:
    """Return a new, stably sorted list; the input is left untouched."""
    items = list(applications)
    try:
        mode = SortMode(mode)
    except ValueError:
        log.warning("Unknown sort mode %r, keeping input order", mode)
        return items

    if mode is SortMode.DATE_DESC:
        return sorted(items, key=_created_key, reverse=True)
    if mode is SortMode.DATE_ASC:
        return sorted(items, key=_created_key)
    if mode is SortMode.COMPANY_ASC:
        return sorted(items, key=_company_key)
    if mode is SortMode.COMPANY_DESC:
        return sorted(items, key=_company_key, reverse=True)
    return sorted(items, key=lambda a: status_rank(a.status))
