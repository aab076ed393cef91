"""Contrato para descargar los bytes de una imagen."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ImageFetcher(Protocol):
    async def fetch(self, url: str) -> bytes:
        """Descarga ``url``; cualquier excepción cuenta como carga fallida."""

        ...
