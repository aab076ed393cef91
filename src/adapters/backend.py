"""Selección de backend.

El proceso arma su acceso a datos una sola vez, a partir de los settings, y lo
inyecta en los servicios. Nadie más lee ``settings.backend``.
"""

from __future__ import annotations

from adapters.json_store import JsonCatalogRepository
from adapters.supabase_store import SupabaseCatalogRepository
from core.config import AppSettings


def build_repository(settings: AppSettings | None = None) -> JsonCatalogRepository | SupabaseCatalogRepository:
    settings = settings or AppSettings()
    if settings.backend == "supabase":
        return SupabaseCatalogRepository(settings)
    return JsonCatalogRepository(settings=settings)
