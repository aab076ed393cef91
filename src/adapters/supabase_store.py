"""Adaptador del backend hosteado (Supabase: tablas PostgREST + bucket de Storage).

Implementa ``CatalogRepository``, ``TourRepository`` y ``AssetStorage`` sobre el
``AsyncClient`` oficial de ``supabase``. El cliente se crea una sola vez, de
forma perezosa, con ``create_async_client``; los tests inyectan uno propio.

Tablas:
- ``portfolio``: una fila por obra (tags como text[] o como texto JSON).
- ``portfolio_timeline``: etapas de una obra, ligadas por ``portfolio_id``.
- ``tours``: tours guiados; ``publish`` decide si son públicos.

Errores: ``postgrest.APIError`` y los fallos de red de httpx se traducen a la
taxonomía del catálogo (``FetchError`` en lecturas, ``MutationError`` en
escrituras, ``UploadError`` en Storage).
"""

from __future__ import annotations

import inspect
import logging
from typing import Any

import httpx
from postgrest import APIError
from supabase import AsyncClient, create_async_client

from adapters.http_client import describe_http_error
from core.config import AppSettings
from core.domain.errors import CatalogError, FetchError, ItemNotFoundError, MutationError, UploadError
from core.interfaces.repository import Record

logger = logging.getLogger(__name__)


def _describe(exc: Exception) -> str:
    if isinstance(exc, APIError):
        # APIError trae message/code/details del cuerpo de PostgREST.
        return exc.message or str(exc)
    if isinstance(exc, httpx.HTTPError):
        return describe_http_error(exc)
    return str(exc) or type(exc).__name__


def _rows(data: Any, error: type[CatalogError], table: str) -> list[Record]:
    if data is None:
        return []
    if isinstance(data, dict):
        return [data]
    if not isinstance(data, list):
        raise error(f"Unexpected payload from {table}: {type(data).__name__}")
    return [row for row in data if isinstance(row, dict)]


def _single(data: Any, error: type[CatalogError], table: str, row_id: str) -> Record:
    rows = _rows(data, error, table)
    if not rows:
        raise error(f"No row in {table} matched id {row_id}")
    return rows[0]


class SupabaseCatalogRepository:
    """Repositorio del catálogo respaldado por un proyecto Supabase."""

    def __init__(self, settings: AppSettings | None = None, *, client: AsyncClient | None = None) -> None:
        self._settings = settings or AppSettings()
        if not self._settings.supabase_url:
            raise ValueError("FOLIO_SUPABASE_URL is not configured")
        if client is None and self._settings.supabase_key is None:
            raise ValueError("FOLIO_SUPABASE_KEY is not configured")
        self._client = client

    async def _get_client(self) -> AsyncClient:
        if self._client is None:
            key = self._settings.supabase_key.get_secret_value()
            try:
                self._client = await create_async_client(self._settings.supabase_url, key)
            except Exception as exc:
                raise FetchError(f"Cannot initialize Supabase client: {exc}") from exc
            logger.debug("Supabase async client initialized for %s", self._settings.supabase_url)
        return self._client

    async def _execute(self, build, *, error: type[CatalogError]) -> Any:
        """Arma la query con ``build(client)``, la ejecuta y devuelve ``response.data``."""

        client = await self._get_client()
        try:
            response = await build(client).execute()
        except (APIError, httpx.HTTPError) as exc:
            raise error(_describe(exc)) from exc
        return getattr(response, "data", None)

    # -- portfolio -------------------------------------------------------

    async def fetch_items(self, category: str) -> list[Record]:
        table = self._settings.portfolio_table
        data = await self._execute(
            lambda c: c.table(table).select("*").eq("category", category).order("created_at", desc=True),
            error=FetchError,
        )
        return _rows(data, FetchError, table)

    async def fetch_item(self, item_id: str) -> Record:
        table = self._settings.portfolio_table
        data = await self._execute(
            lambda c: c.table(table).select("*").eq("id", item_id).limit(1),
            error=FetchError,
        )
        rows = _rows(data, FetchError, table)
        if not rows:
            raise ItemNotFoundError(item_id)
        return rows[0]

    async def create_item(self, record: Record) -> Record:
        return await self._insert(self._settings.portfolio_table, record)

    async def update_item(self, item_id: str, changes: Record) -> Record:
        return await self._update(self._settings.portfolio_table, item_id, changes)

    async def delete_item(self, item_id: str) -> None:
        await self._delete(self._settings.portfolio_table, item_id)

    # -- timeline --------------------------------------------------------

    async def fetch_timeline(self, item_id: str) -> list[Record]:
        table = self._settings.timeline_table
        data = await self._execute(
            lambda c: c.table(table).select("*").eq("portfolio_id", item_id).order("order"),
            error=FetchError,
        )
        return _rows(data, FetchError, table)

    async def create_timeline_entry(self, record: Record) -> Record:
        return await self._insert(self._settings.timeline_table, record)

    async def update_timeline_entry(self, entry_id: str, changes: Record) -> Record:
        return await self._update(self._settings.timeline_table, entry_id, changes)

    async def delete_timeline_entry(self, entry_id: str) -> None:
        await self._delete(self._settings.timeline_table, entry_id)

    # -- tours -----------------------------------------------------------

    async def fetch_tours(self, published_only: bool = True) -> list[Record]:
        table = self._settings.tours_table

        def build(c: AsyncClient):
            query = c.table(table).select("*")
            if published_only:
                query = query.eq("publish", True)
            return query.order("created_at", desc=True)

        data = await self._execute(build, error=FetchError)
        return _rows(data, FetchError, table)

    async def create_tour(self, record: Record) -> Record:
        return await self._insert(self._settings.tours_table, record)

    async def update_tour(self, tour_id: str, changes: Record) -> Record:
        return await self._update(self._settings.tours_table, tour_id, changes)

    async def delete_tour(self, tour_id: str) -> None:
        await self._delete(self._settings.tours_table, tour_id)

    # -- escrituras genéricas ----------------------------------------------

    async def _insert(self, table: str, record: Record) -> Record:
        data = await self._execute(lambda c: c.table(table).insert(record), error=MutationError)
        return _single(data, MutationError, table, "<new>")

    async def _update(self, table: str, row_id: str, changes: Record) -> Record:
        data = await self._execute(
            lambda c: c.table(table).update(changes).eq("id", row_id),
            error=MutationError,
        )
        return _single(data, MutationError, table, row_id)

    async def _delete(self, table: str, row_id: str) -> None:
        await self._execute(lambda c: c.table(table).delete().eq("id", row_id), error=MutationError)

    # -- storage ---------------------------------------------------------

    async def upload_asset(self, data: bytes, path: str, content_type: str | None = None) -> str:
        client = await self._get_client()
        bucket = client.storage.from_(self._settings.storage_bucket)
        try:
            await bucket.upload(path, data, {"content-type": content_type or "application/octet-stream"})
            url = bucket.get_public_url(path)
            if inspect.isawaitable(url):
                url = await url
        except Exception as exc:
            # storage3 lanza sus propios errores además de los de httpx.
            raise UploadError(_describe(exc)) from exc
        return str(url)

    async def ping(self) -> int:
        """Cantidad de filas en una lectura mínima de la tabla portfolio (doctor)."""

        table = self._settings.portfolio_table
        data = await self._execute(lambda c: c.table(table).select("id").limit(1), error=FetchError)
        return len(_rows(data, FetchError, table))
