"""Data models for tracked applications, tags and view criteria."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

STATUSES: tuple[str, ...] = (
    "Applied",
    "Phone Screen",
    "Technical Interview",
    "Final Round",
    "Offer",
    "Rejected",
)
TERMINAL_STATUSES: frozenset[str] = frozenset({"Offer", "Rejected"})
FUNNEL_STAGES: tuple[str, ...] = STATUSES[:5]

TAG_CATEGORIES: tuple[str, ...] = (
    "industry",
    "role-type",
    "company-size",
    "location",
    "seniority",
    "remote-work",
)

DATE_RANGES: dict[str, int] = {"week": 7, "month": 30, "quarter": 90}


class SortMode(str, Enum):
    DATE_DESC = "date-desc"
    DATE_ASC = "date-asc"
    COMPANY_ASC = "company-asc"
    COMPANY_DESC = "company-desc"
    STATUS = "status"


@dataclass(frozen=True)
class Tag:
    id: str
    name: str
    category: str
    color: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"id": self.id, "name": self.name, "category": self.category}
        if self.color:
            d["color"] = self.color
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Tag:
        return cls(
            id=str(data.get("id", "")),
            name=str(data.get("name", data.get("id", ""))),
            category=str(data.get("category", "")),
            color=data.get("color"),
        )


@dataclass
class Application:
    id: str
    company: str
    role: str
    date_applied: str
    status: str
    visa_sponsorship: bool
    created_at: datetime
    updated_at: datetime | None = None
    tags: list[Tag] = field(default_factory=list)

    @property
    def last_touched(self) -> datetime:
        """Timestamp used for time-in-status: last update, else creation."""
        return as_utc(self.updated_at or self.created_at)

    def to_dict(self) -> dict[str, Any]:
        """Store wire form: camelCase keys, epoch-millisecond timestamps."""
        d: dict[str, Any] = {
            "id": self.id,
            "company": self.company,
            "role": self.role,
            "dateApplied": self.date_applied,
            "status": self.status,
            "visaSponsorship": self.visa_sponsorship,
            "timestamp": to_millis(self.created_at),
        }
        if self.updated_at is not None:
            d["updatedAt"] = to_millis(self.updated_at)
        if self.tags:
            d["tags"] = [t.to_dict() for t in self.tags]
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any], id: str | None = None) -> Application:
        created = parse_timestamp(data.get("timestamp", data.get("createdAt")))
        return cls(
            id=str(id if id is not None else data.get("id", "")),
            company=str(data.get("company") or ""),
            role=str(data.get("role") or ""),
            date_applied=str(data.get("dateApplied") or ""),
            status=str(data.get("status") or ""),
            visa_sponsorship=as_bool(data.get("visaSponsorship", False)),
            created_at=created or datetime.fromtimestamp(0, tz=timezone.utc),
            updated_at=parse_timestamp(data.get("updatedAt")),
            tags=[Tag.from_dict(t) for t in data.get("tags") or [] if isinstance(t, dict)],
        )


@dataclass(frozen=True)
class FilterCriteria:
    search: str = ""
    status: str = "all"
    date_range: str = "all"
    visa_sponsorship: str = "all"
    tags: frozenset[str] = frozenset()


def as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)


def as_utc(dt: datetime) -> datetime:
    """Aware UTC datetime; naive values are taken to be UTC already."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_millis(dt: datetime) -> int:
    return int(as_utc(dt).timestamp() * 1000)


def parse_timestamp(value: Any) -> datetime | None:
    """Epoch milliseconds, ISO string or datetime -> aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    try:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return as_utc(dt)


def parse_date(value: str | None) -> date | None:
    """Parse the leading YYYY-MM-DD of an applied date; None when unparseable."""
    if not value:
        return None
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


def applied_at(value: str | None) -> datetime | None:
    """Applied date as midnight UTC."""
    d = parse_date(value)
    if d is None:
        return None
    return datetime(d.year, d.month, d.day, tzinfo=timezone.utc)
