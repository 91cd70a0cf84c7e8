"""In-process store for tests and local runs; no network, no durability."""
from __future__ import annotations

import asyncio
import copy
from typing import Any
from uuid import uuid4

from apptrack.errors import NotFound, StoreUnavailable
from apptrack.log import get_logger
from apptrack.models import Application
from apptrack.stores.base import ApplicationStore, Subscription

log = get_logger(__name__)

_CLOSED = object()


class _QueueSubscription(Subscription):
    def __init__(self, store: InMemoryStore, path: str) -> None:
        self._store = store
        self.path = path
        self._queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    def push(self, snapshot: list[Application]) -> None:
        if not self.closed:
            self._queue.put_nowait(snapshot)

    async def __anext__(self) -> list[Application]:
        if self.closed and self._queue.empty():
            raise StopAsyncIteration
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._store._detach(self)
        self._queue.put_nowait(_CLOSED)


class InMemoryStore(ApplicationStore):
    """Dict-backed store that emits a full snapshot to subscribers on every write.

    ``fail_next`` makes the next N operations raise, to exercise error paths.
    ``calls`` records every operation as ``(name, path)`` in call order.
    """

    def __init__(self, initial: dict[str, dict[str, dict[str, Any]]] | None = None) -> None:
        self._data: dict[str, dict[str, dict[str, Any]]] = copy.deepcopy(initial or {})
        self._subscribers: list[_QueueSubscription] = []
        self._failures: list[BaseException] = []
        self.calls: list[tuple[str, str]] = []

    def fail_next(self, exc: BaseException | None = None, times: int = 1) -> None:
        for _ in range(times):
            self._failures.append(exc or StoreUnavailable())

    def _enter(self, name: str, path: str) -> dict[str, dict[str, Any]]:
        self.calls.append((name, path))
        if self._failures:
            exc = self._failures.pop(0)
            log.debug("Injected failure on %s %s: %r", name, path, exc)
            raise exc
        return self._data.setdefault(path, {})

    def snapshot(self, path: str) -> list[Application]:
        return [Application.from_dict(rec, id=rid) for rid, rec in self._data.get(path, {}).items()]

    def _publish(self, path: str) -> None:
        subs = [s for s in self._subscribers if s.path == path]
        if not subs:
            return
        snap = self.snapshot(path)
        for sub in subs:
            sub.push(list(snap))

    def _detach(self, sub: _QueueSubscription) -> None:
        if sub in self._subscribers:
            self._subscribers.remove(sub)

    async def subscribe(self, path: str) -> Subscription:
        self._enter("subscribe", path)
        sub = _QueueSubscription(self, path)
        self._subscribers.append(sub)
        sub.push(self.snapshot(path))
        log.debug("Subscribed to %s (%d subscribers)", path, len(self._subscribers))
        return sub

    async def read_one(self, path: str, record_id: str) -> dict[str, Any] | None:
        records = self._enter("read_one", path)
        rec = records.get(record_id)
        return copy.deepcopy(rec) if rec is not None else None

    async def read_all(self, path: str) -> dict[str, dict[str, Any]]:
        return copy.deepcopy(self._enter("read_all", path))

    async def create(self, path: str, record: dict[str, Any]) -> str:
        records = self._enter("create", path)
        record_id = uuid4().hex
        records[record_id] = {**copy.deepcopy(record), "id": record_id}
        self._publish(path)
        return record_id

    async def bulk_create(self, path: str, records: list[dict[str, Any]]) -> list[str]:
        existing = self._enter("bulk_create", path)
        ids: list[str] = []
        for record in records:
            record_id = uuid4().hex
            existing[record_id] = {**copy.deepcopy(record), "id": record_id}
            ids.append(record_id)
        self._publish(path)
        return ids

    async def update(self, path: str, record_id: str, changes: dict[str, Any]) -> None:
        records = self._enter("update", path)
        if record_id not in records:
            raise NotFound()
        records[record_id].update(copy.deepcopy(changes))
        self._publish(path)

    async def delete(self, path: str, record_id: str) -> None:
        records = self._enter("delete", path)
        records.pop(record_id, None)
        self._publish(path)
