"""Normalización de etiquetas e índice de etiquetas.

Las etiquetas llegan del backend en tres formas: una lista real de strings,
una lista serializada como JSON dentro de un texto, o nada. ``classify_tags``
resuelve la forma una sola vez y ``normalize_tags`` convierte cualquiera de
ellas en un ``list[str]`` plano. Aguas abajo nadie vuelve a mirar el valor
crudo.

Una entrada malformada no es un error: se degrada a ``[]``.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence
from enum import Enum
from typing import Any, Protocol


class TagShape(str, Enum):
    """Representaciones posibles de un campo ``tags`` crudo."""

    SEQUENCE = "sequence"
    SERIALIZED = "serialized"
    ABSENT = "absent"


class Tagged(Protocol):
    tags: Any


def classify_tags(raw: Any) -> TagShape:
    if raw is None:
        return TagShape.ABSENT
    if isinstance(raw, (str, bytes, bytearray)):
        return TagShape.SERIALIZED
    if isinstance(raw, (list, tuple)):
        return TagShape.SEQUENCE
    # Números, dicts y similares no traen etiquetas utilizables.
    return TagShape.ABSENT


def _members(values: Iterable[Any]) -> list[str]:
    # null no es una etiqueta: se descarta en lugar de convertirse en "None".
    return [item if isinstance(item, str) else str(item) for item in values if item is not None]


def _decode(raw: str | bytes | bytearray) -> list[str]:
    try:
        decoded = json.loads(raw)
    except (TypeError, ValueError):
        return []
    if not isinstance(decoded, list):
        return []
    return _members(decoded)


def normalize_tags(raw: Any) -> list[str]:
    """Devuelve las etiquetas de ``raw`` como lista de strings.

    Una lista se devuelve tal cual (orden y duplicados incluidos); una lista
    serializada se decodifica; cualquier otra cosa produce una lista vacía.
    """

    shape = classify_tags(raw)
    if shape is TagShape.SEQUENCE:
        return _members(raw)
    if shape is TagShape.SERIALIZED:
        return _decode(raw)
    return []


def compute_tag_index(items: Iterable[Tagged]) -> list[str]:
    """Unión ordenada y sin duplicados de las etiquetas de todos los items.

    El orden es el de ``str``, así que las variantes de mayúsculas ("Art",
    "art") quedan como entradas distintas.
    """

    seen: set[str] = set()
    for item in items:
        seen.update(normalize_tags(item.tags))
    return sorted(seen)


def add_tag(tags: Sequence[str], raw: str) -> list[str]:
    """Agrega la etiqueta recortada salvo que esté vacía o ya exista."""

    current = list(tags)
    tag = (raw or "").strip()
    if not tag or tag in current:
        return current
    current.append(tag)
    return current


def remove_tag(tags: Sequence[str], index: int) -> list[str]:
    current = list(tags)
    if 0 <= index < len(current):
        del current[index]
    return current


def suggest_tags(index: Sequence[str], current: Sequence[str]) -> list[str]:
    """Etiquetas del índice que el item todavía no tiene, en el orden del índice."""

    taken = set(current)
    return [tag for tag in index if tag not in taken]
