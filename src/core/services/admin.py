"""Admin console operations.

The admin layer writes through the repository and then asks the catalog
store (or the tour listing) to refetch. There is no optimistic local update:
if a write fails the error goes back to the caller and what was loaded is
left as it was.

Every operation requires an open ``AdminGate``.
"""

from __future__ import annotations

import hmac
import logging
import secrets
from pathlib import PurePath
from typing import Literal

from pydantic import ValidationError

from core.config import AppSettings
from core.domain.errors import AdminAuthError, FetchError, MutationError, UploadError
from core.domain.models import (
    CatalogItem,
    CatalogItemDraft,
    CatalogItemPatch,
    TimelineEntry,
    TimelineEntryDraft,
    Tour,
    TourDraft,
    TourPatch,
)
from core.interfaces.repository import AssetStorage, CatalogRepository, Record, TourRepository
from core.services.catalog_store import CatalogStore
from core.services.tours import TourListing

logger = logging.getLogger(__name__)

UploadKind = Literal["portfolio", "timeline", "tour"]
UPLOAD_KINDS = ("portfolio", "timeline", "tour")
Direction = Literal["up", "down"]


class AdminGate:
    """Password check in front of the admin console.

    The only thing the rest of the admin layer looks at is ``authenticated``.
    """

    def __init__(self, settings: AppSettings | None = None) -> None:
        settings = settings or AppSettings()
        self._password = settings.admin_password
        self.authenticated = False

    @property
    def configured(self) -> bool:
        return bool(self._password and self._password.get_secret_value())

    def check(self, password: str) -> bool:
        if not self.configured:
            logger.warning("Admin password is not configured; refusing login")
            self.authenticated = False
            return False
        expected = self._password.get_secret_value().encode("utf-8")
        self.authenticated = hmac.compare_digest(password.encode("utf-8"), expected)
        if not self.authenticated:
            logger.info("Incorrect admin password")
        return self.authenticated

    def logout(self) -> None:
        self.authenticated = False


def build_upload_path(filename: str, kind: UploadKind = "portfolio") -> str:
    """``<kind>/<random>.<ext>`` so uploads never collide or expose the uploaded file name."""

    if kind not in UPLOAD_KINDS:
        raise ValueError(f"Unknown upload kind: {kind!r}")
    ext = PurePath(filename).suffix.lstrip(".").lower() or "bin"
    return f"{kind}/{secrets.token_hex(8)}.{ext}"


def _validate_item(record: Record) -> CatalogItem:
    try:
        return CatalogItem.model_validate(record)
    except ValidationError as exc:
        raise MutationError("Backend returned a malformed portfolio record") from exc


def _validate_entry(record: Record) -> TimelineEntry:
    try:
        return TimelineEntry.model_validate(record)
    except ValidationError as exc:
        raise MutationError("Backend returned a malformed timeline record") from exc


def _validate_tour(record: Record) -> Tour:
    try:
        return Tour.model_validate(record)
    except ValidationError as exc:
        raise MutationError("Backend returned a malformed tour record") from exc


class CatalogAdmin:
    def __init__(
        self,
        *,
        repository: CatalogRepository,
        storage: AssetStorage,
        gate: AdminGate,
        store: CatalogStore | None = None,
        tours: TourListing | None = None,
        tour_repository: TourRepository | None = None,
    ) -> None:
        self._repository = repository
        self._tour_repository = tour_repository or repository
        self._storage = storage
        self._gate = gate
        self._store = store
        self._tours = tours

    def _require_auth(self) -> None:
        if not self._gate.authenticated:
            raise AdminAuthError("Admin access required")

    async def _after_mutation(self) -> None:
        if self._store is not None:
            await self._store.refresh()

    # -- portfolio items -------------------------------------------------

    async def create_item(self, draft: CatalogItemDraft) -> CatalogItem:
        self._require_auth()
        try:
            record = await self._repository.create_item(draft.model_dump(mode="json"))
        except MutationError:
            logger.error("Error adding portfolio item %r", draft.title)
            raise
        item = _validate_item(record)
        await self._after_mutation()
        return item

    async def update_item(self, item_id: str, patch: CatalogItemPatch) -> CatalogItem:
        self._require_auth()
        try:
            record = await self._repository.update_item(item_id, patch.changes())
        except MutationError:
            logger.error("Error updating portfolio item %s", item_id)
            raise
        item = _validate_item(record)
        await self._after_mutation()
        return item

    async def delete_item(self, item_id: str) -> None:
        self._require_auth()
        try:
            await self._repository.delete_item(item_id)
        except MutationError:
            logger.error("Error deleting portfolio item %s", item_id)
            raise
        await self._after_mutation()

    async def upload_image(
        self,
        data: bytes,
        filename: str,
        kind: UploadKind = "portfolio",
        content_type: str | None = None,
    ) -> str:
        """Upload an image and return its public URL."""

        self._require_auth()
        if not data:
            raise UploadError("Refusing to upload an empty file")
        path = build_upload_path(filename, kind)
        try:
            return await self._storage.upload_asset(data, path, content_type)
        except UploadError:
            logger.error("Error uploading image %s", filename)
            raise

    # -- timeline --------------------------------------------------------

    async def list_timeline(self, item_id: str) -> list[TimelineEntry]:
        records = await self._repository.fetch_timeline(item_id)
        try:
            entries = [TimelineEntry.model_validate(record) for record in records or []]
        except ValidationError as exc:
            raise FetchError(f"Malformed timeline record for {item_id}") from exc
        entries.sort(key=lambda entry: entry.order)
        return entries

    async def add_timeline_entry(self, item_id: str, draft: TimelineEntryDraft) -> TimelineEntry:
        self._require_auth()
        existing = await self.list_timeline(item_id)
        next_order = max((entry.order for entry in existing), default=-1) + 1
        record = {**draft.model_dump(mode="json"), "portfolio_id": item_id, "order": next_order}
        try:
            created = await self._repository.create_timeline_entry(record)
        except MutationError:
            logger.error("Error adding timeline item to %s", item_id)
            raise
        return _validate_entry(created)

    async def delete_timeline_entry(self, entry_id: str) -> None:
        self._require_auth()
        try:
            await self._repository.delete_timeline_entry(entry_id)
        except MutationError:
            logger.error("Error deleting timeline item %s", entry_id)
            raise

    async def move_timeline_entry(
        self,
        item_id: str,
        entry_id: str,
        direction: Direction,
    ) -> list[TimelineEntry]:
        """Swap an entry with its neighbour. Moving past either end is a no-op.

        After the swap every entry is renumbered by position, so gaps or
        duplicate ``order`` values left by earlier edits are repaired.
        """

        self._require_auth()
        entries = await self.list_timeline(item_id)
        index = next((i for i, entry in enumerate(entries) if entry.id == entry_id), None)
        if index is None:
            raise MutationError(f"Timeline entry {entry_id} does not belong to {item_id}")

        other = index - 1 if direction == "up" else index + 1
        if other < 0 or other >= len(entries):
            return entries

        entries[index], entries[other] = entries[other], entries[index]
        try:
            for position, entry in enumerate(entries):
                if entry.order != position:
                    await self._repository.update_timeline_entry(entry.id, {"order": position})
        except MutationError:
            logger.error("Error reordering timeline item %s", entry_id)
            raise
        return await self.list_timeline(item_id)

    # -- tours -----------------------------------------------------------

    async def _after_tour_mutation(self) -> None:
        if self._tours is not None:
            await self._tours.refresh()

    async def create_tour(self, draft: TourDraft) -> Tour:
        self._require_auth()
        try:
            record = await self._tour_repository.create_tour(draft.model_dump(mode="json"))
        except MutationError:
            logger.error("Error adding tour %r", draft.title)
            raise
        tour = _validate_tour(record)
        await self._after_tour_mutation()
        return tour

    async def update_tour(self, tour_id: str, patch: TourPatch) -> Tour:
        self._require_auth()
        try:
            record = await self._tour_repository.update_tour(tour_id, patch.changes())
        except MutationError:
            logger.error("Error updating tour %s", tour_id)
            raise
        tour = _validate_tour(record)
        await self._after_tour_mutation()
        return tour

    async def delete_tour(self, tour_id: str) -> None:
        self._require_auth()
        try:
            await self._tour_repository.delete_tour(tour_id)
        except MutationError:
            logger.error("Error deleting tour %s", tour_id)
            raise
        await self._after_tour_mutation()
