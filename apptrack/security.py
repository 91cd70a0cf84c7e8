"""Identifier guard, text sanitising and security event log."""
from __future__ import annotations

import re
import time
from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Any

from apptrack.errors import InvalidIdentifier, InvalidPath
from apptrack.log import get_logger

log = get_logger(__name__)

MAX_ID_LENGTH = 768
MAX_USER_ID_LENGTH = 128
ALLOWED_ROOTS: frozenset[str] = frozenset({"applications"})

_ID_RE = re.compile(r"[A-Za-z0-9_-]{1,%d}" % MAX_ID_LENGTH)
_USER_ID_RE = re.compile(r"[A-Za-z0-9_-]{1,%d}" % MAX_USER_ID_LENGTH)
_CONTROL_RE = re.compile(r"[\x00-\x1f\x7f]")

SUSPICIOUS_PATTERNS: list[re.Pattern[str]] = [
    re.compile(r"<script", re.I),
    re.compile(r"javascript:", re.I),
    re.compile(r"on\w+\s*=", re.I),
    re.compile(r"data:text/html", re.I),
    re.compile(r"vbscript:", re.I),
    re.compile(r"expression\(", re.I),
    re.compile(r"url\(", re.I),
    re.compile(r"eval\(", re.I),
    re.compile(r"Function\("),
    re.compile(r"\.\./"),
    re.compile(r"\.\.\\"),
    re.compile(r"\x00"),
]

EVENT_TYPES: frozenset[str] = frozenset({
    "invalid_id",
    "validation_failed",
    "rate_limited",
    "suspicious_input",
    "injection_attempt",
    "unauthorized_access",
})


@dataclass(frozen=True)
class SecurityEvent:
    type: str
    message: str
    details: dict[str, Any] = field(default_factory=dict)
    timestamp: float = 0.0


class SecurityLog:
    """Bounded in-memory record of security events, mirrored to the logger."""

    def __init__(self, max_events: int = 100) -> None:
        self._events: deque[SecurityEvent] = deque(maxlen=max_events)

    def record(self, event_type: str, message: str, **details: Any) -> SecurityEvent:
        if event_type not in EVENT_TYPES:
            log.debug("Unknown security event type %r", event_type)
        event = SecurityEvent(event_type, message, details, time.time())
        self._events.append(event)
        log.warning("Security event [%s]: %s %s", event_type, message, details or "")
        return event

    def recent(self, limit: int = 10) -> list[SecurityEvent]:
        if limit <= 0:
            return []
        return list(self._events)[-limit:]

    def counts(self) -> dict[str, int]:
        return dict(Counter(e.type for e in self._events))

    def clear(self) -> None:
        self._events.clear()

    def __len__(self) -> int:
        return len(self._events)


def is_valid_id(value: Any) -> bool:
    return isinstance(value, str) and bool(_ID_RE.fullmatch(value))


def validate_id(value: Any, security_log: SecurityLog | None = None) -> str:
    """Return *value* unchanged, or raise InvalidIdentifier."""
    if not isinstance(value, str) or not value:
        if security_log is not None:
            security_log.record("invalid_id", "Missing or non-string application ID",
                                reason="missing_or_invalid_type")
        raise InvalidIdentifier("Invalid application ID: ID is required")
    if not _ID_RE.fullmatch(value):
        if security_log is not None:
            security_log.record("invalid_id", "Malformed application ID",
                                reason="invalid_format", length=len(value))
        raise InvalidIdentifier("Invalid application ID: ID format is invalid")
    return value


def sanitize_text(value: Any, max_length: int = 100) -> str:
    """Trim, truncate and strip control characters. Never raises."""
    if not isinstance(value, str) or not value:
        return ""
    cleaned = value.strip()[:max(0, max_length)]
    return _CONTROL_RE.sub("", cleaned)


def contains_suspicious_pattern(text: str, security_log: SecurityLog | None = None) -> bool:
    hit = any(p.search(text) for p in SUSPICIOUS_PATTERNS)
    if hit and security_log is not None:
        security_log.record("suspicious_input", "Suspicious input pattern detected", sample=text[:50])
    return hit


def build_store_path(
    root: str,
    user_id: str | None = None,
    record_id: str | None = None,
    security_log: SecurityLog | None = None,
) -> str:
    """Join an allow-listed root, an optional user id and an optional record id.

    The root may already carry the user segment (``applications/<uid>``).
    """
    parts = [p for p in str(root or "").split("/") if p]
    if not parts or parts[0] not in ALLOWED_ROOTS:
        if security_log is not None:
            security_log.record("injection_attempt", "Store path outside the allow-list",
                                root=parts[0] if parts else "")
        raise InvalidPath("Invalid storage path")
    if user_id is not None:
        parts.append(user_id)
    if len(parts) > 2:
        raise InvalidPath("Invalid storage path")
    if len(parts) == 2 and not _USER_ID_RE.fullmatch(parts[1]):
        if security_log is not None:
            security_log.record("injection_attempt", "Invalid user ID in store path")
        raise InvalidPath("Invalid storage path")
    if record_id is not None:
        try:
            validate_id(record_id, security_log)
        except InvalidIdentifier:
            if security_log is not None:
                security_log.record("injection_attempt", "Invalid record ID in store path")
            raise
        parts.append(record_id)
    return "/".join(parts)
