"""Tour listing: the tours page and the admin tour table.

Same shape as the catalog store, minus categories and tags: one list,
newest first, with a load status and a retryable error message. The public
listing only shows published tours; the admin listing shows all of them.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable

from pydantic import ValidationError

from core.config import AppSettings
from core.domain.errors import CatalogError, FetchError
from core.domain.models import Tour
from core.interfaces.repository import Record, TourRepository
from core.services.catalog_store import LoadStatus

logger = logging.getLogger(__name__)

TOURS_ERROR_MESSAGE = "Failed to load tours. Please try again later."


@dataclass(frozen=True)
class TourState:
    status: LoadStatus
    tours: tuple[Tour, ...] = ()
    error: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.status is LoadStatus.READY and not self.tours


TourListener = Callable[[TourState], None]


def records_to_tours(records: list[Record]) -> list[Tour]:
    try:
        return [Tour.model_validate(record) for record in records]
    except ValidationError as exc:
        raise FetchError(f"Malformed tour record: {exc.error_count()} validation error(s)") from exc


class TourListing:
    def __init__(
        self,
        repository: TourRepository,
        *,
        published_only: bool = True,
        settings: AppSettings | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        settings = settings or AppSettings()
        self._repository = repository
        self._published_only = published_only
        self._timeout = timeout_seconds or settings.http_timeout_seconds

        self._status = LoadStatus.IDLE
        self._tours: list[Tour] = []
        self._error: str | None = None
        self._generation = 0
        self._listeners: list[TourListener] = []

    @property
    def published_only(self) -> bool:
        return self._published_only

    @property
    def state(self) -> TourState:
        return TourState(status=self._status, tours=tuple(self._tours), error=self._error)

    def subscribe(self, listener: TourListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self) -> None:
        snapshot = self.state
        for listener in list(self._listeners):
            listener(snapshot)

    async def load(self) -> TourState:
        """Fetch the tours. Failures become ``LoadStatus.ERROR`` with no tours."""

        self._generation += 1
        generation = self._generation
        self._status = LoadStatus.LOADING
        self._error = None
        self._publish()

        try:
            records = await asyncio.wait_for(
                self._repository.fetch_tours(self._published_only),
                timeout=self._timeout,
            )
            tours = records_to_tours(records or [])
        except (CatalogError, asyncio.TimeoutError) as exc:
            if generation != self._generation:
                return self.state
            logger.error("Error fetching tours: %s", str(exc) or type(exc).__name__)
            self._tours = []
            self._status = LoadStatus.ERROR
            self._error = TOURS_ERROR_MESSAGE
            self._publish()
            return self.state

        if generation != self._generation:
            logger.debug("Discarding stale tour load")
            return self.state

        # Newest first, whatever order the adapter returned.
        tours.sort(key=lambda tour: tour.created_at.timestamp() if tour.created_at else float("-inf"), reverse=True)
        self._tours = tours
        self._status = LoadStatus.READY
        self._publish()
        return self.state

    async def refresh(self) -> TourState:
        return await self.load()

    def cancel(self) -> None:
        self._generation += 1
        if self._status is LoadStatus.LOADING:
            self._status = LoadStatus.IDLE
            self._publish()
