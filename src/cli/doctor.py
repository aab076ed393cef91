"""Doctor command for environment diagnostics."""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from adapters.json_store import JsonCatalogRepository
from adapters.supabase_store import SupabaseCatalogRepository
from core.config import AppSettings, get_user_env_file, write_user_env_vars
from core.domain.category import Category
from core.domain.errors import CatalogError

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


async def _check_supabase(settings: AppSettings) -> tuple[bool, str]:
    try:
        rows = await SupabaseCatalogRepository(settings).ping()
    except (CatalogError, ValueError) as exc:
        return False, str(exc)
    return True, f"{settings.portfolio_table} reachable ({rows} row sampled)"


async def _check_json(settings: AppSettings) -> tuple[bool, str]:
    repository = JsonCatalogRepository(settings=settings)
    try:
        total = 0
        for category in Category:
            total += len(await repository.fetch_items(category.value))
    except CatalogError as exc:
        return False, str(exc)
    if not repository.path.exists():
        return True, f"{repository.path} (not created yet)"
    return True, f"{repository.path} ({total} items)"


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="folio-catalog Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    table.add_row("Backend", "OK", settings.backend)
    if settings.backend == "supabase":
        if not settings.supabase_url:
            table.add_row("Supabase URL", "FAIL", "Set FOLIO_SUPABASE_URL or run `doctor setup-backend`")
            ok_backend, detail_backend = False, "not configured"
        else:
            table.add_row("Supabase URL", "OK", settings.supabase_url)
            if settings.supabase_key:
                table.add_row("Supabase key", "OK", "set")
                ok_backend, detail_backend = asyncio.run(_check_supabase(settings))
            else:
                table.add_row("Supabase key", "FAIL", "Set FOLIO_SUPABASE_KEY or run `doctor setup-backend`")
                ok_backend, detail_backend = False, "not configured"
    else:
        ok_backend, detail_backend = asyncio.run(_check_json(settings))
    table.add_row("Catalog read", "OK" if ok_backend else "FAIL", detail_backend)

    if settings.admin_password:
        table.add_row("Admin password", "OK", "configured")
    else:
        table.add_row("Admin password", "OPTIONAL", "No password set -> admin commands are locked")

    table.add_row("Image hosts", "OK", ", ".join(settings.resizable_image_hosts) or "(none)")
    table.add_row("User config", "OK", str(get_user_env_file()))

    _console.print(table)

    if not ok_backend:
        raise typer.Exit(code=1)


@app.command(name="setup-backend")
def setup_backend() -> None:
    """Interactive backend setup (stores config in the user config .env)."""

    backend = typer.prompt("Backend (supabase/json)", default="supabase", show_default=True).strip().lower()
    if backend not in ("supabase", "json"):
        raise typer.BadParameter("backend must be 'supabase' or 'json'")

    values: dict[str, str | None] = {"FOLIO_BACKEND": backend}
    if backend == "supabase":
        url = typer.prompt("Supabase URL (https://<project>.supabase.co)").strip()
        key = typer.prompt("Supabase API key", hide_input=True).strip()
        if not url or not key:
            raise typer.BadParameter("Supabase URL and API key are required")
        values["FOLIO_SUPABASE_URL"] = url
        values["FOLIO_SUPABASE_KEY"] = key
    else:
        path = typer.prompt("JSON store path", default=str(AppSettings().json_store_path)).strip()
        values["FOLIO_JSON_STORE_PATH"] = path

    password = typer.prompt("Admin password (empty to skip)", hide_input=True, default="", show_default=False)
    values["FOLIO_ADMIN_PASSWORD"] = password.strip() or None

    env_path = write_user_env_vars(values)
    _console.print(f"[green]Saved backend config to:[/green] {env_path}")
