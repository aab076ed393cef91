"""Implementación httpx de ``ImageFetcher``.

Las URLs locales ``file://`` (recursos del backend JSON) se leen de disco; el
resto va por HTTP. Una respuesta solo cuenta como imagen si el servidor lo
dice en ``Content-Type``.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from urllib.parse import unquote, urlparse

import httpx

from adapters.http_client import build_async_client
from core.config import AppSettings


class ImageFetchError(Exception):
    pass


class HttpImageFetcher:
    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._transport = transport

    async def fetch(self, url: str) -> bytes:
        if url.startswith("file://"):
            path = Path(unquote(urlparse(url).path))
            return await asyncio.to_thread(path.read_bytes)

        async with build_async_client(
            self._settings,
            extra_headers={"Accept": "image/avif,image/webp,image/*,*/*;q=0.8"},
            transport=self._transport,
        ) as client:
            response = await client.get(url)
            response.raise_for_status()
            content_type = response.headers.get("content-type", "")
            if not content_type.startswith("image/"):
                raise ImageFetchError(f"Not an image ({content_type or 'no content-type'}): {url}")
            return response.content
