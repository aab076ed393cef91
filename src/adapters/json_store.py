"""Backend local sobre un archivo JSON.

Mismo contrato que el backend hosteado, persistido en un único archivo UTF-8:

    {"portfolio": [...], "portfolio_timeline": [...], "tours": [...]}

Los recursos subidos se guardan al lado, bajo ``assets/``, y se exponen como
URLs ``file://``. Pensado para trabajo offline, demos y tests: sin locks, un
proceso a la vez.
"""

from __future__ import annotations

import asyncio
import json
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from core.config import AppSettings
from core.domain.errors import FetchError, ItemNotFoundError, MutationError, UploadError
from core.interfaces.repository import Record

PORTFOLIO = "portfolio"
TIMELINE = "portfolio_timeline"
TOURS = "tours"
TABLES = (PORTFOLIO, TIMELINE, TOURS)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _newest_first(rows: list[Record]) -> list[Record]:
    rows.sort(key=lambda r: str(r.get("created_at") or ""), reverse=True)
    return rows


class JsonCatalogRepository:
    """``CatalogRepository`` + ``TourRepository`` + ``AssetStorage`` sobre un archivo JSON."""

    def __init__(self, path: Path | None = None, *, settings: AppSettings | None = None) -> None:
        settings = settings or AppSettings()
        self.path = Path(path or settings.json_store_path)
        self.assets_dir = self.path.parent / "assets"

    # -- I/O de archivo --------------------------------------------------

    def _read(self) -> dict[str, list[Record]]:
        if not self.path.exists():
            return {table: [] for table in TABLES}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise FetchError(f"Cannot read {self.path}: {exc}") from exc
        if not isinstance(data, dict):
            raise FetchError(f"{self.path} does not contain a JSON object")
        return {table: [r for r in data.get(table) or [] if isinstance(r, dict)] for table in TABLES}

    def _write(self, data: dict[str, list[Record]]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(
                json.dumps(data, ensure_ascii=False, indent=2, sort_keys=True) + "\n",
                encoding="utf-8",
            )
        except OSError as exc:
            raise MutationError(f"Cannot write {self.path}: {exc}") from exc

    def _read_for_write(self) -> dict[str, list[Record]]:
        try:
            return self._read()
        except FetchError as exc:
            raise MutationError(str(exc)) from exc

    # -- implementaciones sync -------------------------------------------

    def _fetch_items(self, category: str) -> list[Record]:
        return _newest_first([r for r in self._read()[PORTFOLIO] if r.get("category") == category])

    def _fetch_item(self, item_id: str) -> Record:
        for row in self._read()[PORTFOLIO]:
            if str(row.get("id")) == item_id:
                return row
        raise ItemNotFoundError(item_id)

    def _fetch_tours(self, published_only: bool) -> list[Record]:
        rows = self._read()[TOURS]
        if published_only:
            rows = [r for r in rows if r.get("publish") is True]
        return _newest_first(rows)

    def _insert(self, table: str, record: Record) -> Record:
        data = self._read_for_write()
        row = {**record, "id": str(uuid.uuid4()), "created_at": _now()}
        data[table].append(row)
        self._write(data)
        return row

    def _update(self, table: str, row_id: str, changes: Record) -> Record:
        data = self._read_for_write()
        for index, row in enumerate(data[table]):
            if str(row.get("id")) == row_id:
                updated = {**row, **changes, "id": row["id"]}
                data[table][index] = updated
                self._write(data)
                return updated
        raise MutationError(f"No row in {table} matched id {row_id}")

    def _delete(self, table: str, row_id: str) -> None:
        data = self._read_for_write()
        data[table] = [row for row in data[table] if str(row.get("id")) != row_id]
        if table == PORTFOLIO:
            data[TIMELINE] = [row for row in data[TIMELINE] if str(row.get("portfolio_id")) != row_id]
        self._write(data)

    def _fetch_timeline(self, item_id: str) -> list[Record]:
        rows = [r for r in self._read()[TIMELINE] if str(r.get("portfolio_id")) == item_id]
        rows.sort(key=lambda r: int(r.get("order") or 0))
        return rows

    def _upload(self, data: bytes, path: str) -> str:
        target = (self.assets_dir / path).resolve()
        if self.assets_dir.resolve() not in target.parents:
            raise UploadError(f"Refusing to write outside {self.assets_dir}: {path}")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            raise UploadError(f"Cannot store {path}: {exc}") from exc
        return target.as_uri()

    # -- CatalogRepository -----------------------------------------------

    async def fetch_items(self, category: str) -> list[Record]:
        return await asyncio.to_thread(self._fetch_items, category)

    async def fetch_item(self, item_id: str) -> Record:
        return await asyncio.to_thread(self._fetch_item, item_id)

    async def create_item(self, record: Record) -> Record:
        return await asyncio.to_thread(self._insert, PORTFOLIO, record)

    async def update_item(self, item_id: str, changes: Record) -> Record:
        return await asyncio.to_thread(self._update, PORTFOLIO, item_id, changes)

    async def delete_item(self, item_id: str) -> None:
        await asyncio.to_thread(self._delete, PORTFOLIO, item_id)

    async def fetch_timeline(self, item_id: str) -> list[Record]:
        return await asyncio.to_thread(self._fetch_timeline, item_id)

    async def create_timeline_entry(self, record: Record) -> Record:
        return await asyncio.to_thread(self._insert, TIMELINE, record)

    async def update_timeline_entry(self, entry_id: str, changes: Record) -> Record:
        return await asyncio.to_thread(self._update, TIMELINE, entry_id, changes)

    async def delete_timeline_entry(self, entry_id: str) -> None:
        await asyncio.to_thread(self._delete, TIMELINE, entry_id)

    # -- TourRepository --------------------------------------------------

    async def fetch_tours(self, published_only: bool = True) -> list[Record]:
        return await asyncio.to_thread(self._fetch_tours, published_only)

    async def create_tour(self, record: Record) -> Record:
        return await asyncio.to_thread(self._insert, TOURS, record)

    async def update_tour(self, tour_id: str, changes: Record) -> Record:
        return await asyncio.to_thread(self._update, TOURS, tour_id, changes)

    async def delete_tour(self, tour_id: str) -> None:
        await asyncio.to_thread(self._delete, TOURS, tour_id)

    # -- AssetStorage ----------------------------------------------------

    async def upload_asset(self, data: bytes, path: str, content_type: str | None = None) -> str:
        return await asyncio.to_thread(self._upload, data, path)


def seed_store(path: Path, records: list[dict[str, Any]], tours: list[dict[str, Any]] | None = None) -> Path:
    """Escribe ``records`` (y opcionalmente ``tours``) como un store nuevo (demos/tests)."""

    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {PORTFOLIO: records, TIMELINE: [], TOURS: list(tours or [])}
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
    return path
