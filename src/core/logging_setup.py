"""Configuración de logging.

Los módulos de librería solo hacen ``logging.getLogger(__name__)``; la CLI
llama a ``configure_logging`` una vez al arrancar y los registros salen por
stderr vía Rich, junto a las tablas que imprime.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_CONFIGURED = False


def configure_logging(level: str | int = "WARNING", *, console: Console | None = None) -> None:
    global _CONFIGURED

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING

    root = logging.getLogger()
    root.setLevel(level)
    if _CONFIGURED:
        return

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root.addHandler(handler)
    # httpx loguea cada request en INFO.
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
    _CONFIGURED = True
