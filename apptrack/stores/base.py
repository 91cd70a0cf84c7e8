from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from apptrack.models import Application


class Subscription(ABC):
    """Async stream of full application snapshots; ``close()`` unsubscribes."""

    def __aiter__(self) -> Subscription:
        return self

    @abstractmethod
    async def __anext__(self) -> list[Application]:
        ...

    @abstractmethod
    def close(self) -> None:
        ...


class ApplicationStore(ABC):
    """Remote record store. Paths are built by ``security.build_store_path``."""

    @abstractmethod
    async def subscribe(self, path: str) -> Subscription:
        ...

    @abstractmethod
    async def read_one(self, path: str, record_id: str) -> dict[str, Any] | None:
        ...

    @abstractmethod
    async def read_all(self, path: str) -> dict[str, dict[str, Any]]:
        ...

    @abstractmethod
    async def create(self, path: str, record: dict[str, Any]) -> str:
        ...

    @abstractmethod
    async def bulk_create(self, path: str, records: list[dict[str, Any]]) -> list[str]:
        ...

    @abstractmethod
    async def update(self, path: str, record_id: str, changes: dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def delete(self, path: str, record_id: str) -> None:
        ...
