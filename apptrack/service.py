"""Guarded create/update/delete/import of applications.

Every mutation runs input checks and rate limiting before the store is
touched, so a rejected request never leaves a partial write. A successful
write invalidates the local cache before the call returns. Reads that
precede a write (read-before-delete, duplicate detection on import) are not
transactional: a concurrent writer can change the record in between.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Iterable

from apptrack.cache import ApplicationCache
from apptrack.errors import (
    FieldError,
    NotFound,
    RateLimited,
    StoreUnavailable,
    TrackerError,
    ValidationFailed,
)
from apptrack.log import get_logger
from apptrack.models import Application, Tag, as_bool, to_millis
from apptrack.rate_limit import RateLimiter
from apptrack.retry import retry
from apptrack.security import SecurityLog, build_store_path, sanitize_text, validate_id
from apptrack.stores.base import ApplicationStore, Subscription
from apptrack.validation import check_company, check_date, check_role, check_status, validate_application

log = get_logger(__name__)

STORE_ROOT = "applications"
MAX_TEXT_LENGTH = 100
_TEXT_FIELDS = ("company", "role")
_UPDATABLE_FIELDS = {"company", "role", "dateApplied", "status", "visaSponsorship", "tags"}


@dataclass(frozen=True)
class ImportResult:
    added: int
    skipped: int
    errors: int


def _dedupe_key(company: str, role: str, date_applied: str) -> tuple[str, str, str]:
    return ((company or "").lower().strip(), (role or "").lower().strip(), date_applied or "")


class ApplicationService:
    def __init__(
        self,
        store: ApplicationStore,
        user_id: str,
        *,
        cache: ApplicationCache | None = None,
        limiter: RateLimiter | None = None,
        security_log: SecurityLog | None = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        root: str = STORE_ROOT,
    ) -> None:
        self.store = store
        self.cache = cache if cache is not None else ApplicationCache()
        self.limiter = limiter if limiter is not None else RateLimiter()
        self.security_log = security_log if security_log is not None else SecurityLog()
        self._clock = clock
        self.user_id = user_id
        self.path = build_store_path(root, user_id, security_log=self.security_log)

    # -- guards ---------------------------------------------------------

    def _admit(self, operation: str) -> None:
        if not self.limiter.is_allowed(operation):
            self.security_log.record("rate_limited", f"Rate limit exceeded for {operation}",
                                     operation=operation)
            raise RateLimited(operation)

    def _check_fields(self, company: str, role: str, date_applied: str, status: str) -> None:
        errors = validate_application(company, role, date_applied, status,
                                      today=self._clock().date(), security_log=self.security_log)
        if errors:
            self.security_log.record("validation_failed", "Application input rejected",
                                     fields=[e.field for e in errors])
            raise ValidationFailed(errors)

    def _prepare_changes(self, changes: dict[str, Any]) -> dict[str, Any]:
        """Sanitise and check only the fields present in a partial update."""
        errors = [
            FieldError(name, f"{name} cannot be changed")
            for name in sorted(set(changes) - _UPDATABLE_FIELDS)
        ]
        data = {k: v for k, v in changes.items() if k in _UPDATABLE_FIELDS}
        for name in _TEXT_FIELDS:
            if name in data:
                data[name] = sanitize_text(data[name], MAX_TEXT_LENGTH)
        checks = {
            "company": lambda v: check_company(v, self.security_log),
            "role": lambda v: check_role(v, self.security_log),
            "dateApplied": lambda v: check_date(v, self._clock().date()),
            "status": check_status,
        }
        for name, check in checks.items():
            if name in data:
                message = check(data[name])
                if message:
                    errors.append(FieldError(name, message))
        if errors:
            self.security_log.record("validation_failed", "Application update rejected",
                                     fields=[e.field for e in errors])
            raise ValidationFailed(errors)
        if "visaSponsorship" in data:
            data["visaSponsorship"] = as_bool(data["visaSponsorship"])
        if "tags" in data:
            data["tags"] = [t.to_dict() if isinstance(t, Tag) else t for t in data["tags"] or []]
        return data

    async def _call(self, operation: str, coro):
        """Await a store call, hiding collaborator failures behind StoreUnavailable."""
        try:
            return await coro
        except TrackerError:
            raise
        except Exception as exc:
            log.error("Store %s failed: %s", operation, exc)
            raise StoreUnavailable() from exc

    @retry(max_attempts=3, base_delay=0.05)
    async def _read_one(self, record_id: str) -> dict[str, Any] | None:
        return await self._call("read", self.store.read_one(self.path, record_id))

    @retry(max_attempts=3, base_delay=0.05)
    async def _read_all(self) -> dict[str, dict[str, Any]]:
        return await self._call("read", self.store.read_all(self.path))

    # -- operations -----------------------------------------------------

    async def add_application(
        self,
        company: str,
        role: str,
        date_applied: str,
        status: str,
        visa_sponsorship: bool | str,
        tags: Iterable[Tag] | None = None,
    ) -> Application:
        company = sanitize_text(company, MAX_TEXT_LENGTH)
        role = sanitize_text(role, MAX_TEXT_LENGTH)
        self._check_fields(company, role, date_applied, status)
        self._admit("add-application")

        app = Application(
            id="",
            company=company,
            role=role,
            date_applied=date_applied,
            status=status,
            visa_sponsorship=as_bool(visa_sponsorship),
            created_at=self._clock(),
            tags=list(tags or []),
        )
        record = app.to_dict()
        record.pop("id")
        app.id = await self._call("create", self.store.create(self.path, record))
        self.cache.invalidate()
        log.info("Added application %s (%s)", app.id, status)
        return app

    async def update_application(
        self,
        record_id: str,
        changes: dict[str, Any],
        original_status: str | None = None,
    ) -> None:
        """Apply camelCase *changes* to a record and stamp ``updatedAt``."""
        validate_id(record_id, self.security_log)
        data = self._prepare_changes(changes)
        self._admit(f"update-application:{self.user_id}")
        data["updatedAt"] = to_millis(self._clock())

        await self._call("update", self.store.update(self.path, record_id, data))
        self.cache.invalidate()
        new_status = data.get("status")
        if original_status and new_status and original_status != new_status:
            log.info("Status of %s changed: %s -> %s", record_id, original_status, new_status)
        else:
            log.info("Updated application %s", record_id)

    async def delete_application(self, record_id: str) -> Application:
        validate_id(record_id, self.security_log)
        self._admit(f"delete-application:{self.user_id}")

        existing = await self._read_one(record_id)
        if existing is None:
            raise NotFound()
        await self._call("delete", self.store.delete(self.path, record_id))
        self.cache.invalidate()
        log.info("Deleted application %s", record_id)
        return Application.from_dict(existing, id=record_id)

    async def get_application(self, record_id: str) -> Application | None:
        validate_id(record_id, self.security_log)
        data = await self._read_one(record_id)
        return Application.from_dict(data, id=record_id) if data is not None else None

    async def import_applications(self, applications: Iterable[Application]) -> ImportResult:
        """Bulk-add records, skipping ones that match an existing (company, role, date)."""
        incoming = list(applications)
        self._admit(f"import-applications:{self.user_id}")

        existing = await self._read_all()
        seen = {
            _dedupe_key(r.get("company", ""), r.get("role", ""), r.get("dateApplied", ""))
            for r in existing.values()
        }

        now = self._clock()
        to_write: list[dict[str, Any]] = []
        skipped = errors = 0
        for app in incoming:
            company = sanitize_text(app.company, MAX_TEXT_LENGTH)
            role = sanitize_text(app.role, MAX_TEXT_LENGTH)
            key = _dedupe_key(company, role, app.date_applied)
            if key in seen:
                skipped += 1
                continue
            if validate_application(company, role, app.date_applied, app.status, today=now.date()):
                errors += 1
                continue
            seen.add(key)
            record = Application(
                id="",
                company=company,
                role=role,
                date_applied=app.date_applied,
                status=app.status,
                visa_sponsorship=as_bool(app.visa_sponsorship),
                created_at=now,
                tags=list(app.tags),
            ).to_dict()
            record.pop("id")
            to_write.append(record)

        if to_write:
            await self._call("import", self.store.bulk_create(self.path, to_write))
            self.cache.invalidate()
        log.info("Import: %d added, %d skipped, %d invalid", len(to_write), skipped, errors)
        return ImportResult(added=len(to_write), skipped=skipped, errors=errors)

    async def subscribe(self) -> Subscription:
        return await self._call("subscribe", self.store.subscribe(self.path))
