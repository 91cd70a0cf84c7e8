"""Field-level validation for application input."""
from __future__ import annotations

import re
from datetime import date

from apptrack.errors import FieldError
from apptrack.models import STATUSES, parse_date
from apptrack.security import SecurityLog, contains_suspicious_pattern

MIN_TEXT_LENGTH = 2
MAX_TEXT_LENGTH = 100
MAX_AGE_YEARS = 10

_COMPANY_RE = re.compile(r"[A-Za-z0-9\s\-&]+")
_ROLE_RE = re.compile(r"[A-Za-z0-9\s\-/]+")
_DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}")


def _check_text(value: str, label: str, pattern: re.Pattern[str], allowed: str,
                security_log: SecurityLog | None) -> str | None:
    if not isinstance(value, str) or not value.strip():
        return f"{label} is required"
    text = value.strip()
    if len(text) < MIN_TEXT_LENGTH:
        return f"{label} must be at least {MIN_TEXT_LENGTH} characters"
    if len(text) > MAX_TEXT_LENGTH:
        return f"{label} must be no more than {MAX_TEXT_LENGTH} characters"
    if contains_suspicious_pattern(text, security_log):
        return f"{label} contains invalid characters"
    if not pattern.fullmatch(text):
        return f"{label} can only contain {allowed}"
    return None


def check_company(value: str, security_log: SecurityLog | None = None) -> str | None:
    return _check_text(value, "Company name", _COMPANY_RE,
                       "letters, numbers, spaces, hyphens, and ampersands", security_log)


def check_role(value: str, security_log: SecurityLog | None = None) -> str | None:
    return _check_text(value, "Role", _ROLE_RE,
                       "letters, numbers, spaces, hyphens, and forward slashes", security_log)


def check_date(value: str, today: date | None = None) -> str | None:
    if not isinstance(value, str) or not value:
        return "Date is required"
    if not _DATE_RE.fullmatch(value):
        return "Invalid date format"
    parsed = parse_date(value)
    if parsed is None:
        return "Invalid date"
    today = today or date.today()
    if parsed > today:
        return "Date cannot be in the future"
    try:
        oldest = today.replace(year=today.year - MAX_AGE_YEARS)
    except ValueError:  # Feb 29
        oldest = today.replace(year=today.year - MAX_AGE_YEARS, day=28)
    if parsed < oldest:
        return "Date is too far in the past"
    return None


def check_status(value: str) -> str | None:
    if not isinstance(value, str) or not value:
        return "Status is required"
    if value not in STATUSES:
        return "Invalid status selected"
    return None


def validate_application(
    company: str,
    role: str,
    date_applied: str,
    status: str,
    today: date | None = None,
    security_log: SecurityLog | None = None,
) -> list[FieldError]:
    """Return every field problem; an empty list means the input is valid."""
    checks = [
        ("company", check_company(company, security_log)),
        ("role", check_role(role, security_log)),
        ("date", check_date(date_applied, today)),
        ("status", check_status(status)),
    ]
    return [FieldError(name, msg) for name, msg in checks if msg]
