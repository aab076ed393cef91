"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Validación en el borde del sistema: lo que entrega el backend se revisa y
  normaliza una sola vez, cuando un registro pasa a ser modelo.
- ``model_dump`` da a los adaptadores un payload estable para escrituras.

Estos modelos describen *qué* es una entrada del catálogo, no *cómo* se
guarda.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic.config import ConfigDict

from core.domain.category import Category
from core.domain.tags import normalize_tags


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class CatalogItem(BaseModel):
    """Una obra mostrable.

    ``tags`` acepta cualquiera de las formas crudas que produce el backend y
    siempre es ``list[str]`` una vez que el modelo existe.
    """

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str = Field(..., min_length=1, description="Identificador opaco asignado por el store.")
    title: str = Field(..., min_length=1)
    category: Category
    tags: list[str] = Field(default_factory=list)
    image: str | None = Field(default=None, description="URL del recurso raster, si existe.")
    description: str = ""
    year: str | None = None
    created_at: datetime | None = Field(
        default=None,
        description="Fecha de creación; solo se usa para el orden por defecto.",
    )

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value: Any) -> list[str]:
        return normalize_tags(value)

    @field_validator("image", "year", mode="before")
    @classmethod
    def _blank(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("description", mode="before")
    @classmethod
    def _description(cls, value: Any) -> str:
        return "" if value is None else value

    @property
    def has_image(self) -> bool:
        return bool(self.image)


class CatalogItemDraft(BaseModel):
    """Payload para crear un item (el store asigna id/created_at)."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    title: str = Field(..., min_length=1)
    category: Category = Category.INVENTORY
    tags: list[str] = Field(default_factory=list)
    image: str | None = None
    description: str = ""
    year: str | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value: Any) -> list[str]:
        return normalize_tags(value)


class CatalogItemPatch(BaseModel):
    """Actualización parcial. Solo se envían los campos asignados explícitamente."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    title: str | None = Field(default=None, min_length=1)
    category: Category | None = None
    tags: list[str] | None = None
    image: str | None = None
    description: str | None = None
    year: str | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value: Any) -> list[str] | None:
        if value is None:
            return None
        return normalize_tags(value)

    def changes(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_unset=True)


class TimelineEntry(BaseModel):
    """Una etapa en la creación de una obra (boceto, borrador, final...)."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str = Field(..., min_length=1)
    portfolio_id: str = Field(..., min_length=1)
    title: str = ""
    date: str = ""
    description: str = ""
    image: str | None = None
    order: int = Field(default=0, ge=0)

    @field_validator("image", mode="before")
    @classmethod
    def _blank(cls, value: Any) -> Any:
        return _blank_to_none(value)


class TimelineEntryDraft(BaseModel):
    title: str = Field(..., min_length=1)
    date: str = ""
    description: str = ""
    image: str | None = None


class CatalogDetail(BaseModel):
    """Un item junto con su timeline ordenado."""

    item: CatalogItem
    timeline: list[TimelineEntry] = Field(default_factory=list)


class Tour(BaseModel):
    """Un tour guiado ofrecido en el sitio.

    ``publish`` decide si aparece en el listado público; el admin ve todos.
    ``url`` es el enlace de reserva, si lo hay.
    """

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    duration: str = ""
    image: str | None = None
    publish: bool = False
    address: str = ""
    description: str = ""
    price: str | None = None
    event_id: str | None = None
    slug: str | None = None
    url: str | None = None
    created_at: datetime | None = None

    @field_validator("image", "price", "event_id", "slug", "url", mode="before")
    @classmethod
    def _blank(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("duration", "address", "description", mode="before")
    @classmethod
    def _text(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("publish", mode="before")
    @classmethod
    def _publish(cls, value: Any) -> Any:
        return False if value is None else value


class TourDraft(BaseModel):
    """Payload para crear un tour. Nace sin publicar."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    title: str = Field(..., min_length=1)
    duration: str = ""
    image: str | None = None
    publish: bool = False
    address: str = ""
    description: str = ""
    price: str | None = None
    event_id: str | None = None
    slug: str | None = None
    url: str | None = None


class TourPatch(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    title: str | None = Field(default=None, min_length=1)
    duration: str | None = None
    image: str | None = None
    publish: bool | None = None
    address: str | None = None
    description: str | None = None
    price: str | None = None
    event_id: str | None = None
    slug: str | None = None
    url: str | None = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_unset=True)
