"""Categorías del catálogo.

El catálogo se divide en un conjunto pequeño y cerrado de categorías; cada
una se pide como una vista independiente. Tener el enum en el dominio deja a
servicios, adaptadores y CLI con una única fuente de verdad.
"""

from __future__ import annotations

import re
from enum import Enum

_WORD_RE = re.compile(r"\w\S*")


def to_title_case(value: str) -> str:
    """Primera letra de cada palabra en mayúscula, el resto en minúscula."""

    return _WORD_RE.sub(lambda m: m.group(0)[:1].upper() + m.group(0)[1:].lower(), value)


class Category(str, Enum):
    """Particiones soportadas del catálogo."""

    COMMISSION = "commission"
    INVENTORY = "inventory"

    @classmethod
    def default(cls) -> "Category":
        """Categoría que se muestra al abrir el portfolio."""

        return cls.COMMISSION

    def label(self) -> str:
        return to_title_case(self.value)
