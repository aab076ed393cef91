"""Taxonomía de errores del catálogo.

Los adaptadores lanzan estos errores; los servicios deciden en su propio
borde si el error se convierte en un estado degradado (cargas, imágenes) o
se propaga al llamador (mutaciones del admin).
"""

from __future__ import annotations


class CatalogError(Exception):
    """Base de todos los fallos del catálogo."""


class FetchError(CatalogError):
    """Falló una lectura contra el backend (red, status HTTP, payload inválido)."""


class ItemNotFoundError(CatalogError):
    def __init__(self, item_id: str) -> None:
        super().__init__(f"Portfolio item not found: {item_id}")
        self.item_id = item_id


class MutationError(CatalogError):
    """Un create/update/delete fue rechazado o no se pudo enviar."""


class UploadError(CatalogError):
    """Falló la subida de un recurso."""


class AdminAuthError(CatalogError):
    """Se intentó una operación de admin sin sesión autenticada."""
