"""Tests for identifier validation, path building and the security log."""
import pytest

from apptrack.errors import InvalidIdentifier, InvalidPath
from apptrack.security import (
    MAX_ID_LENGTH,
    SecurityLog,
    build_store_path,
    contains_suspicious_pattern,
    is_valid_id,
    sanitize_text,
    validate_id,
)


def test_validate_id_accepts_safe_ids():
    assert validate_id("abc-123_X") == "abc-123_X"
    assert validate_id("a" * MAX_ID_LENGTH) == "a" * MAX_ID_LENGTH


@pytest.mark.parametrize("bad", [
    "../etc",
    "a" * 1000,
    "",
    None,
    42,
    "abc\n",
    "has space",
    "slash/inside",
    "semi;colon",
])
def test_validate_id_rejects(bad):
    with pytest.raises(InvalidIdentifier):
        validate_id(bad)
    assert not is_valid_id(bad)


def test_rejected_id_is_recorded():
    security_log = SecurityLog()
    with pytest.raises(InvalidIdentifier):
        validate_id("../etc", security_log)
    [event] = security_log.recent()
    assert event.type == "invalid_id"
    assert event.details["reason"] == "invalid_format"


def test_sanitize_text():
    assert sanitize_text("  Acme\x00 Corp\x1f ") == "Acme Corp"
    assert sanitize_text("x" * 150) == "x" * 100
    assert sanitize_text("abcdef", max_length=3) == "abc"
    assert sanitize_text(None) == ""
    assert sanitize_text(12) == ""
    assert sanitize_text("") == ""


@pytest.mark.parametrize("text", [
    "<script>alert(1)</script>",
    "javascript:void(0)",
    "img onerror=x",
    "../../secret",
    "eval(code)",
])
def test_suspicious_patterns(text):
    security_log = SecurityLog()
    assert contains_suspicious_pattern(text, security_log)
    assert security_log.counts() == {"suspicious_input": 1}


def test_plain_text_is_not_suspicious():
    assert not contains_suspicious_pattern("Acme & Sons - Data/ML Engineer")


def test_build_store_path():
    assert build_store_path("applications", "user_1") == "applications/user_1"
    assert build_store_path("applications", "user_1", "rec-9") == "applications/user_1/rec-9"
    assert build_store_path("applications/user_1", record_id="rec-9") == "applications/user_1/rec-9"


@pytest.mark.parametrize("root, user", [
    ("users", "u1"),
    ("", "u1"),
    ("applications", "../admin"),
    ("applications", "a/b"),
    ("applications/u1/extra", None),
])
def test_build_store_path_rejects(root, user):
    security_log = SecurityLog()
    with pytest.raises(InvalidPath):
        build_store_path(root, user, security_log=security_log)


def test_build_store_path_rejects_bad_record_id():
    security_log = SecurityLog()
    with pytest.raises(InvalidIdentifier):
        build_store_path("applications", "u1", "../x", security_log)
    assert security_log.counts() == {"invalid_id": 1, "injection_attempt": 1}


def test_security_log_is_bounded():
    security_log = SecurityLog(max_events=3)
    for i in range(5):
        security_log.record("rate_limited", f"event {i}")
    assert len(security_log) == 3
    assert [e.message for e in security_log.recent(2)] == ["event 3", "event 4"]
    assert security_log.recent(0) == []
    security_log.clear()
    assert len(security_log) == 0
