"""Exportación JSON de una vista del catálogo.

Por qué JSON:
- Otras herramientas (builds de sitios estáticos, planillas) consumen
  exactamente lo que mostraría la página del portfolio, selección de tags incluida.
"""

from __future__ import annotations

import json
from pathlib import Path

from core.services.catalog_store import CatalogState


def export_catalog_json(*, state: CatalogState, output_path: Path) -> Path:
    """Exporta los items visibles de ``state`` como JSON UTF-8 con formato estable."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        "category": state.category.value if state.category else None,
        "selected_tags": sorted(state.selected),
        "tag_index": list(state.tag_index),
        "items": [item.model_dump(mode="json") for item in state.visible],
    }
    output_path.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )
    return output_path
