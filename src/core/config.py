"""Configuración central.

Centraliza las variables de entorno (pydantic-settings) para que la CLI y los
adaptadores (backend hosteado, store JSON, descarga de imágenes) lean un único
contrato en lugar de tocar ``os.environ`` por su cuenta.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias extra)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "folio-catalog"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "folio-catalog"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "folio-catalog"
    return Path.home() / ".config" / "folio-catalog"


def get_user_env_file() -> Path:
    return get_user_config_dir() / ".env"


def _parse_env_lines(text: str) -> dict[str, str]:
    data: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        value = value.strip().strip('"').strip("'")
        if key:
            data[key] = value
    return data


def write_user_env_vars(values: dict[str, str | None], env_path: Path | None = None) -> Path:
    """Escribe/actualiza variables en el .env global del usuario."""

    env_path = env_path or get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# folio-catalog user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


def default_json_store_path() -> Path:
    override = (os.environ.get("FOLIO_DATA_DIR") or "").strip()
    if override:
        return Path(override) / "catalog.json"
    return get_user_config_dir() / "data" / "catalog.json"


class AppSettings(BaseSettings):
    """Settings de la aplicación.

    Los valores salen de variables ``FOLIO_*``, del ``.env`` del proyecto y por
    último del ``.env`` por usuario que escribe ``doctor setup-backend``.
    """

    model_config = SettingsConfigDict(
        env_prefix="FOLIO_",
        extra="ignore",
        case_sensitive=False,
        # Primero el proyecto (dev), luego la config global del usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    backend: Literal["supabase", "json"] = Field(
        default="json",
        description="Adaptador de datos que respalda el catálogo.",
    )

    supabase_url: str | None = Field(
        default=None,
        description="URL base del backend hosteado (https://<project>.supabase.co).",
    )
    supabase_key: SecretStr | None = Field(
        default=None,
        description="API key del proyecto Supabase (anon o service role).",
    )
    portfolio_table: str = Field(default="portfolio", min_length=1)
    timeline_table: str = Field(default="portfolio_timeline", min_length=1)
    tours_table: str = Field(default="tours", min_length=1)
    storage_bucket: str = Field(default="mark_images", min_length=1)

    json_store_path: Path = Field(
        default_factory=default_json_store_path,
        description="Archivo JSON local que usa el backend `json`.",
    )

    http_timeout_seconds: float = Field(
        default=20.0,
        gt=0,
        description="Timeout por request y por carga del catálogo (segundos).",
    )
    user_agent: str = Field(
        default="folio-catalog/0.1 (+https://local)",
        min_length=1,
    )

    image_quality: int = Field(default=75, ge=1, le=100)
    image_format: str = Field(default="webp", min_length=1)
    resizable_image_hosts: list[str] = Field(
        default_factory=lambda: ["supabase.co"],
        description="Hosts que aceptan parámetros width/height/quality/format en la query.",
    )

    admin_password: SecretStr | None = Field(
        default=None,
        description="Password de la consola admin. Sin definir, el gate nunca se abre.",
    )

    log_level: str = Field(default="WARNING")
