"""Shared fixtures: an in-memory repository and isolated settings."""

from __future__ import annotations

import asyncio
import logging
import uuid
from pathlib import Path

import pytest

from core.config import AppSettings
from core.domain.errors import FetchError, ItemNotFoundError, MutationError, UploadError


class FakeRepository:
    """In-memory ``CatalogRepository`` + ``TourRepository`` + ``AssetStorage`` with failure switches.

    ``gates`` maps a category to an ``asyncio.Event``; ``fetch_items`` for that
    category (or ``"tours"`` for ``fetch_tours``) waits on it, which lets tests
    control completion order.
    """

    def __init__(self, records=None, timeline=None, tours=None) -> None:
        self.records: list[dict] = [dict(r) for r in records or []]
        self.timeline: list[dict] = [dict(r) for r in timeline or []]
        self.tours: list[dict] = [dict(r) for r in tours or []]
        self.assets: dict[str, bytes] = {}
        self.calls: list[tuple] = []
        self.gates: dict[str, asyncio.Event] = {}
        self.fail_fetch = False
        self.fail_mutation = False
        self.fail_upload = False

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)

    async def fetch_items(self, category):
        self.calls.append(("fetch_items", category))
        gate = self.gates.get(category)
        if gate is not None:
            await gate.wait()
        if self.fail_fetch:
            raise FetchError("backend unavailable")
        rows = [dict(r) for r in self.records if r.get("category") == category]
        rows.sort(key=lambda r: str(r.get("created_at") or ""), reverse=True)
        return rows

    async def fetch_item(self, item_id):
        self.calls.append(("fetch_item", item_id))
        if self.fail_fetch:
            raise FetchError("backend unavailable")
        for row in self.records:
            if row["id"] == item_id:
                return dict(row)
        raise ItemNotFoundError(item_id)

    def _mutate(self):
        if self.fail_mutation:
            raise MutationError("write rejected")

    async def create_item(self, record):
        self.calls.append(("create_item", record))
        self._mutate()
        row = {**record, "id": f"new-{len(self.records) + 1}", "created_at": "2099-01-01T00:00:00+00:00"}
        self.records.append(row)
        return dict(row)

    async def update_item(self, item_id, changes):
        self.calls.append(("update_item", item_id, changes))
        self._mutate()
        for row in self.records:
            if row["id"] == item_id:
                row.update(changes)
                return dict(row)
        raise MutationError(f"no row {item_id}")

    async def delete_item(self, item_id):
        self.calls.append(("delete_item", item_id))
        self._mutate()
        self.records = [r for r in self.records if r["id"] != item_id]

    async def fetch_timeline(self, item_id):
        self.calls.append(("fetch_timeline", item_id))
        rows = [dict(r) for r in self.timeline if r["portfolio_id"] == item_id]
        rows.sort(key=lambda r: r["order"])
        return rows

    async def create_timeline_entry(self, record):
        self.calls.append(("create_timeline_entry", record))
        self._mutate()
        row = {**record, "id": str(uuid.uuid4())}
        self.timeline.append(row)
        return dict(row)

    async def update_timeline_entry(self, entry_id, changes):
        self.calls.append(("update_timeline_entry", entry_id, changes))
        self._mutate()
        for row in self.timeline:
            if row["id"] == entry_id:
                row.update(changes)
                return dict(row)
        raise MutationError(f"no entry {entry_id}")

    async def delete_timeline_entry(self, entry_id):
        self.calls.append(("delete_timeline_entry", entry_id))
        self._mutate()
        self.timeline = [r for r in self.timeline if r["id"] != entry_id]

    async def fetch_tours(self, published_only=True):
        self.calls.append(("fetch_tours", published_only))
        gate = self.gates.get("tours")
        if gate is not None:
            await gate.wait()
        if self.fail_fetch:
            raise FetchError("backend unavailable")
        rows = [dict(r) for r in self.tours if r.get("publish") is True or not published_only]
        rows.sort(key=lambda r: str(r.get("created_at") or ""), reverse=True)
        return rows

    async def create_tour(self, record):
        self.calls.append(("create_tour", record))
        self._mutate()
        row = {**record, "id": f"tour-new-{len(self.tours) + 1}", "created_at": "2099-01-01T00:00:00+00:00"}
        self.tours.append(row)
        return dict(row)

    async def update_tour(self, tour_id, changes):
        self.calls.append(("update_tour", tour_id, changes))
        self._mutate()
        for row in self.tours:
            if row["id"] == tour_id:
                row.update(changes)
                return dict(row)
        raise MutationError(f"no tour {tour_id}")

    async def delete_tour(self, tour_id):
        self.calls.append(("delete_tour", tour_id))
        self._mutate()
        self.tours = [r for r in self.tours if r["id"] != tour_id]

    async def upload_asset(self, data, path, content_type=None):
        self.calls.append(("upload_asset", path, content_type))
        if self.fail_upload:
            raise UploadError("bucket full")
        self.assets[path] = data
        return f"https://demo.supabase.co/storage/v1/object/public/mark_images/{path}"


INVENTORY_RECORDS = [
    {
        "id": "inv-1",
        "title": "Harbor at Dusk",
        "category": "inventory",
        "tags": ["Landscape"],
        "image": "https://demo.supabase.co/storage/v1/object/public/mark_images/portfolio/harbor.png",
        "description": "Oil on linen.",
        "year": "2021",
        "created_at": "2024-03-03T10:00:00+00:00",
    },
    {
        "id": "inv-2",
        "title": "Subway Lights",
        "category": "inventory",
        "tags": '["Landscape", "Urban"]',
        "image": "https://demo.supabase.co/storage/v1/object/public/mark_images/portfolio/subway.png",
        "description": "",
        "year": 2022,
        "created_at": "2024-03-02T10:00:00+00:00",
    },
    {
        "id": "inv-3",
        "title": "Untitled Study",
        "category": "inventory",
        "tags": None,
        "image": "",
        "description": None,
        "year": None,
        "created_at": "2024-03-01T10:00:00+00:00",
    },
]

COMMISSION_RECORDS = [
    {
        "id": "com-1",
        "title": "Lobby Mural",
        "category": "commission",
        "tags": ["Mural", "Urban"],
        "image": "https://example.com/mural.jpg",
        "created_at": "2024-01-01T00:00:00+00:00",
    },
    {
        "id": "com-2",
        "title": "Family Portrait",
        "category": "commission",
        "tags": "not json",
        "image": "https://example.com/portrait.jpg",
        "created_at": "2024-02-01T00:00:00+00:00",
    },
]

TIMELINE_RECORDS = [
    {"id": "t-2", "portfolio_id": "com-1", "title": "Paint", "date": "May", "description": "", "image": "", "order": 1},
    {"id": "t-1", "portfolio_id": "com-1", "title": "Sketch", "date": "April", "description": "", "image": "", "order": 0},
    {"id": "t-3", "portfolio_id": "com-1", "title": "Install", "date": "June", "description": "", "image": "", "order": 2},
]

TOUR_RECORDS = [
    {
        "id": "tour-1",
        "title": "Old Town Walk",
        "duration": "2 hours",
        "image": "https://example.com/old-town.jpg",
        "publish": True,
        "address": "Main Square",
        "description": "Murals and side streets.",
        "price": 25,
        "slug": "old-town-walk",
        "url": "https://tickets.example.com/old-town",
        "created_at": "2024-04-01T09:00:00+00:00",
    },
    {
        "id": "tour-2",
        "title": "Studio Visit",
        "duration": "1 hour",
        "image": "",
        "publish": False,
        "address": None,
        "price": None,
        "created_at": "2024-05-01T09:00:00+00:00",
    },
    {
        "id": "tour-3",
        "title": "Harbor Night Tour",
        "duration": "90 minutes",
        "publish": True,
        "created_at": "2024-06-01T09:00:00+00:00",
    },
]


@pytest.fixture
def settings(tmp_path: Path) -> AppSettings:
    return AppSettings(
        _env_file=None,
        backend="json",
        json_store_path=tmp_path / "catalog.json",
        http_timeout_seconds=5.0,
        admin_password="letmein",
    )


@pytest.fixture
def repository() -> FakeRepository:
    return FakeRepository(INVENTORY_RECORDS + COMMISSION_RECORDS, TIMELINE_RECORDS, TOUR_RECORDS)


@pytest.fixture(autouse=True)
def _restore_root_logger():
    """CLI tests call configure_logging, which mutates the root logger; undo it per test."""
    root = logging.getLogger()
    level, handlers = root.level, list(root.handlers)
    yield
    root.setLevel(level)
    root.handlers[:] = handlers
