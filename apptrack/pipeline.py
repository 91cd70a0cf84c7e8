"""Reduce record snapshots into list and analytics views."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import AsyncIterator, Callable, Generic, Iterable, TypeVar

from apptrack.analytics import Metrics, compute_metrics
from apptrack.cache import ApplicationCache
from apptrack.filters import apply_filters
from apptrack.insights import generate_insights
from apptrack.log import get_logger
from apptrack.models import Application, FilterCriteria, SortMode
from apptrack.pagination import DEFAULT_PAGE_SIZE, PaginationState, page_items, paginate
from apptrack.sorting import sort_applications
from apptrack.stores.base import ApplicationStore, Subscription

log = get_logger(__name__)

V = TypeVar("V")


@dataclass
class ListView:
    items: list[Application]
    pagination: PaginationState


@dataclass
class AnalyticsView:
    metrics: Metrics
    insights: list[str] = field(default_factory=list)


def build_list_view(
    applications: Iterable[Application],
    criteria: FilterCriteria | None = None,
    sort_mode: SortMode | str = SortMode.DATE_DESC,
    page: int = 1,
    per_page: int = DEFAULT_PAGE_SIZE,
    now: datetime | None = None,
) -> ListView:
    filtered = apply_filters(applications, criteria or FilterCriteria(), now)
    ordered = sort_applications(filtered, sort_mode)
    state = paginate(len(ordered), per_page, page)
    return ListView(items=page_items(ordered, state), pagination=state)


def build_analytics_view(
    applications: Iterable[Application],
    criteria: FilterCriteria | None = None,
    now: datetime | None = None,
) -> AnalyticsView:
    filtered = apply_filters(applications, criteria or FilterCriteria(), now)
    metrics = compute_metrics(filtered)
    return AnalyticsView(metrics=metrics, insights=generate_insights(metrics))


class ApplicationFeed(Generic[V]):
    """Subscribe once to a store path and reduce every snapshot into a view.

    A fresh cached snapshot, when there is one, is emitted before the store
    delivers its first snapshot. Every store snapshot is written back to the
    cache. ``close()`` (or leaving an ``async with`` block) unsubscribes.
    """

    def __init__(
        self,
        store: ApplicationStore,
        path: str,
        reducer: Callable[[list[Application]], V],
        cache: ApplicationCache | None = None,
    ) -> None:
        self.store = store
        self.path = path
        self.reducer = reducer
        self.cache = cache
        self._subscription: Subscription | None = None

    async def __aenter__(self) -> ApplicationFeed[V]:
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

    async def views(self) -> AsyncIterator[V]:
        if self.cache is not None:
            cached = self.cache.load()
            if cached is not None:
                log.debug("Emitting cached snapshot (%d records)", len(cached))
                yield self.reducer(cached)

        self._subscription = await self.store.subscribe(self.path)
        try:
            async for snapshot in self._subscription:
                if self.cache is not None:
                    self.cache.save(snapshot)
                yield self.reducer(snapshot)
        finally:
            self.close()
