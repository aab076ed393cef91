"""Wrapper de httpx.

Por qué un wrapper:
- Estandariza timeouts, headers y redirects para cada descarga.
- Facilita testeo: se pasa un ``httpx.MockTransport`` y nada toca la red.
"""

from __future__ import annotations

import httpx

from core.config import AppSettings


def build_async_client(
    settings: AppSettings | None = None,
    *,
    base_url: str = "",
    extra_headers: dict[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Crea un ``httpx.AsyncClient`` con defaults seguros.

    Por qué un builder:
    - Centraliza timeouts/headers para que todos los adaptadores se comporten igual.
    - Un único lugar para políticas futuras (retries, proxies).
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "application/json",
    }
    if extra_headers:
        headers.update(extra_headers)
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=httpx.Timeout(settings.http_timeout_seconds),
        follow_redirects=True,
        headers=headers,
        transport=transport,
    )


def describe_http_error(exc: httpx.HTTPError) -> str:
    """Descripción corta (apta para logs) de un fallo de httpx."""

    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        detail = ""
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict):
            detail = str(payload.get("message") or payload.get("error") or "")
        suffix = f": {detail}" if detail else ""
        return f"HTTP {response.status_code} from {exc.request.url.path}{suffix}"
    return f"{type(exc).__name__}: {exc}"
