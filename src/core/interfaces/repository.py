"""Contratos de acceso a datos del catálogo.

Por qué Protocol:
- Contrato estructural (duck typing) sin herencia rígida.
- El backend hosteado, el archivo JSON local y los fakes en memoria de los
  tests son intercambiables sin que los servicios sepan cuál es cuál.

Los registros cruzan este borde como dicts planos, tal como los devuelve el
store; convertirlos en modelos (y normalizar etiquetas) es trabajo de los
servicios.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

Record = dict[str, Any]


@runtime_checkable
class CatalogRepository(Protocol):
    """Contrato mínimo que el catálogo espera de su entorno.

    Reglas:
    - Todos los métodos son async porque las implementaciones hacen I/O.
    - Las lecturas lanzan ``FetchError``, las escrituras ``MutationError``.
    - ``fetch_item`` lanza ``ItemNotFoundError`` si el id no existe.
    """

    async def fetch_items(self, category: str) -> list[Record]:
        """Todos los registros de ``category``, ``created_at`` más reciente primero."""

        ...

    async def fetch_item(self, item_id: str) -> Record:
        ...

    async def create_item(self, record: Record) -> Record:
        ...

    async def update_item(self, item_id: str, changes: Record) -> Record:
        ...

    async def delete_item(self, item_id: str) -> None:
        ...

    async def fetch_timeline(self, item_id: str) -> list[Record]:
        """Etapas del timeline de un item, ordenadas por ``order`` ascendente."""

        ...

    async def create_timeline_entry(self, record: Record) -> Record:
        ...

    async def update_timeline_entry(self, entry_id: str, changes: Record) -> Record:
        ...

    async def delete_timeline_entry(self, entry_id: str) -> None:
        ...


@runtime_checkable
class TourRepository(Protocol):
    """Tours: mismo estilo de contrato y mismos errores que el catálogo."""

    async def fetch_tours(self, published_only: bool = True) -> list[Record]:
        """Tours, ``created_at`` más reciente primero; opcionalmente solo los publicados."""

        ...

    async def create_tour(self, record: Record) -> Record:
        ...

    async def update_tour(self, tour_id: str, changes: Record) -> Record:
        ...

    async def delete_tour(self, tour_id: str) -> None:
        ...


@runtime_checkable
class AssetStorage(Protocol):
    async def upload_asset(self, data: bytes, path: str, content_type: str | None = None) -> str:
        """Guarda ``data`` en ``path`` y devuelve su URL pública (``UploadError`` si falla)."""

        ...
