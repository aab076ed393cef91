"""Catalog store: the working set behind a portfolio view.

The store loads every item of one category through an injected
``CatalogRepository``, keeps the derived tag index and the tag filter in
sync with it, and tells subscribers whenever any of that changes.

Rules:
- One category at a time. Switching category throws away the previous
  items *and* the tag selection; there is no cross-category cache.
- Loads are tagged with a generation number. A load that finishes after a
  newer one started (or after ``cancel``) is discarded, so a slow response
  can never overwrite a fresher view.
- Failures become ``LoadStatus.ERROR`` with an empty item list; the caller
  offers a retry. Nothing here retries on its own.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from pydantic import ValidationError

from core.config import AppSettings
from core.domain.category import Category
from core.domain.errors import CatalogError, FetchError
from core.domain.models import CatalogDetail, CatalogItem, TimelineEntry
from core.domain.tags import compute_tag_index
from core.interfaces.repository import CatalogRepository, Record
from core.services.tag_filter import TagFilter

logger = logging.getLogger(__name__)

LOAD_ERROR_MESSAGE = "Failed to load portfolio items"


class LoadStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


@dataclass(frozen=True)
class CatalogState:
    """Immutable snapshot handed to subscribers and returned by ``load``."""

    category: Category | None
    status: LoadStatus
    items: tuple[CatalogItem, ...] = ()
    tag_index: tuple[str, ...] = ()
    selected: frozenset[str] = field(default_factory=frozenset)
    visible: tuple[CatalogItem, ...] = ()
    error: str | None = None

    @property
    def gallery(self) -> tuple[CatalogItem, ...]:
        """Visible items that can be shown in an image grid."""

        return tuple(item for item in self.visible if item.has_image)

    @property
    def is_empty(self) -> bool:
        return self.status is LoadStatus.READY and not self.items


Listener = Callable[[CatalogState], None]


def records_to_items(records: list[Record]) -> list[CatalogItem]:
    try:
        return [CatalogItem.model_validate(record) for record in records]
    except ValidationError as exc:
        raise FetchError(f"Malformed portfolio record: {exc.error_count()} validation error(s)") from exc


class CatalogStore:
    """Read-through cache for a single category view."""

    def __init__(
        self,
        repository: CatalogRepository,
        *,
        settings: AppSettings | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        settings = settings or AppSettings()
        self._repository = repository
        self._timeout = timeout_seconds or settings.http_timeout_seconds

        self._category: Category | None = None
        self._status = LoadStatus.IDLE
        self._items: list[CatalogItem] = []
        self._tag_index: list[str] = []
        self._error: str | None = None

        self._generation = 0
        self._task: asyncio.Task[CatalogState] | None = None
        self._listeners: list[Listener] = []

        self._filter = TagFilter()
        self._filter.subscribe(lambda _filter: self._publish())

    # -- observation -----------------------------------------------------

    @property
    def state(self) -> CatalogState:
        return CatalogState(
            category=self._category,
            status=self._status,
            items=tuple(self._items),
            tag_index=tuple(self._tag_index),
            selected=self._filter.selected,
            visible=tuple(self._filter.apply(self._items)),
            error=self._error,
        )

    @property
    def filter(self) -> TagFilter:
        return self._filter

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unregisters it."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self) -> None:
        if not self._listeners:
            return
        snapshot = self.state
        for listener in list(self._listeners):
            listener(snapshot)

    # -- loading ---------------------------------------------------------

    async def load(self, category: Category | str) -> CatalogState:
        """Fetch ``category`` and make it the working set."""

        category = Category(category)
        if category != self._category:
            self._items = []
            self._tag_index = []
            self._filter.reset()

        self._generation += 1
        generation = self._generation
        self._category = category
        self._status = LoadStatus.LOADING
        self._error = None
        self._publish()

        try:
            records = await asyncio.wait_for(
                self._repository.fetch_items(category.value),
                timeout=self._timeout,
            )
            items = records_to_items(records or [])
        except (CatalogError, asyncio.TimeoutError) as exc:
            if generation != self._generation:
                logger.debug("Discarding failed load of %s (superseded)", category.value)
                return self.state
            logger.error("Error fetching portfolio items: %s", str(exc) or type(exc).__name__)
            self._items = []
            self._tag_index = []
            self._status = LoadStatus.ERROR
            self._error = LOAD_ERROR_MESSAGE
            self._publish()
            return self.state

        if generation != self._generation:
            logger.debug("Discarding stale load of %s", category.value)
            return self.state

        self._items = items
        self._tag_index = compute_tag_index(items)
        self._status = LoadStatus.READY
        self._publish()
        return self.state

    def switch_category(self, category: Category | str) -> asyncio.Task[CatalogState]:
        """Start loading ``category`` in the background, abandoning any load in flight.

        Must be called from a running event loop.
        """

        self._cancel_task()
        self._task = asyncio.get_running_loop().create_task(self.load(category))
        return self._task

    async def refresh(self) -> CatalogState:
        """Reload the active category, keeping the tag selection."""

        if self._category is None:
            return self.state
        return await self.load(self._category)

    async def retry(self) -> CatalogState:
        return await self.refresh()

    def cancel(self) -> None:
        """Ignore whatever is in flight (the view went away)."""

        self._generation += 1
        self._cancel_task()
        if self._status is LoadStatus.LOADING:
            self._status = LoadStatus.IDLE
            self._publish()

    def _cancel_task(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    # -- filtering -------------------------------------------------------

    def toggle_tag(self, tag: str) -> CatalogState:
        self._filter.toggle_tag(tag)
        return self.state

    def clear_filters(self) -> CatalogState:
        self._filter.clear_filters()
        return self.state

    # -- detail ----------------------------------------------------------

    async def load_detail(self, item_id: str) -> CatalogDetail:
        """Fetch one item and its timeline. Errors propagate to the caller."""

        record, timeline = await asyncio.wait_for(
            asyncio.gather(
                self._repository.fetch_item(item_id),
                self._repository.fetch_timeline(item_id),
            ),
            timeout=self._timeout,
        )
        try:
            item = CatalogItem.model_validate(record)
            entries = [TimelineEntry.model_validate(entry) for entry in timeline or []]
        except ValidationError as exc:
            raise FetchError(f"Malformed portfolio record {item_id}") from exc
        entries.sort(key=lambda entry: entry.order)
        return CatalogDetail(item=item, timeline=entries)
