"""Entry point de la CLI.

La CLI es la capa de render: conecta settings, backend y servicios, se
suscribe al catalog store y dibuja con Rich el estado que resulte. Acá no
vive lógica del catálogo.
"""

from __future__ import annotations

import asyncio
import logging
import mimetypes
from pathlib import Path
from typing import List, NoReturn, Optional

import typer
from rich.console import Console

from adapters.backend import build_repository
from adapters.image_fetcher import HttpImageFetcher
from adapters.json_exporter import export_catalog_json
from cli import doctor
from cli.ui_components import (
    build_image_panel,
    build_item_panel,
    build_items_table,
    build_status_message,
    build_tag_index_table,
    build_timeline_table,
    build_tours_message,
    build_tours_table,
    print_banner,
)
from core.config import AppSettings
from core.domain.category import Category
from core.domain.errors import CatalogError, ItemNotFoundError
from core.domain.models import CatalogItemDraft, CatalogItemPatch, TimelineEntryDraft, TourDraft, TourPatch
from core.domain.tags import add_tag, compute_tag_index, remove_tag, suggest_tags
from core.interfaces.repository import CatalogRepository
from core.logging_setup import configure_logging
from core.services.admin import AdminGate, CatalogAdmin
from core.services.catalog_store import CatalogState, CatalogStore, LoadStatus
from core.services.image_loader import ImageLoader, ImageRequest, build_image_url
from core.services.tours import TourListing, TourState

logger = logging.getLogger(__name__)

app = typer.Typer(no_args_is_help=True, help="Browse and manage the portfolio catalog.")
admin_app = typer.Typer(no_args_is_help=True, help="Password-gated catalog administration.")
app.add_typer(doctor.app, name="doctor")
app.add_typer(admin_app, name="admin")

_console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output to stderr."),
    banner: bool = typer.Option(False, "--banner", help="Print the banner first."),
) -> None:
    settings = AppSettings()
    configure_logging("DEBUG" if verbose else settings.log_level)
    if banner:
        print_banner(_console)


def _log_transition(state: CatalogState) -> None:
    category = state.category.value if state.category else "-"
    logger.debug("catalog %s -> %s (%d items)", category, state.status.value, len(state.items))


def _render_view(state: CatalogState, *, gallery: bool = False) -> None:
    message = build_status_message(state)
    if message is not None:
        _console.print(message)
    if state.status is LoadStatus.READY and state.visible:
        _console.print(build_items_table(state, gallery=gallery))


async def _load_view(settings: AppSettings, category: Category, tags: list[str]) -> CatalogState:
    store = CatalogStore(build_repository(settings), settings=settings)
    store.subscribe(_log_transition)
    state = await store.load(category)
    if state.status is LoadStatus.READY:
        for tag in dict.fromkeys(tags):
            state = store.toggle_tag(tag)
    return state


@app.command()
def items(
    category: Category = typer.Option(Category.default(), "--category", "-c", help="Catalog partition."),
    tag: Optional[List[str]] = typer.Option(None, "--tag", "-t", help="Show items carrying any of these tags."),
    gallery: bool = typer.Option(False, "--gallery", help="Only items that have an image."),
    export: Optional[Path] = typer.Option(None, "--export", help="Also write the visible items to a JSON file."),
) -> None:
    """List the items of one category, optionally filtered by tags."""

    settings = AppSettings()
    state = asyncio.run(_load_view(settings, category, tag or []))
    _render_view(state, gallery=gallery)

    if state.status is LoadStatus.ERROR:
        raise typer.Exit(code=1)
    if export is not None:
        path = export_catalog_json(state=state, output_path=export)
        _console.print(f"[green]Exported to:[/green] {path}")


@app.command()
def tags(
    category: Category = typer.Option(Category.default(), "--category", "-c", help="Catalog partition."),
    tag: Optional[List[str]] = typer.Option(None, "--tag", "-t", help="Mark these tags as selected."),
) -> None:
    """Show every tag in use in a category."""

    settings = AppSettings()
    state = asyncio.run(_load_view(settings, category, tag or []))
    if state.status is LoadStatus.ERROR:
        _console.print(build_status_message(state))
        raise typer.Exit(code=1)
    if not state.tag_index:
        _console.print("[dim]No tags in use.[/dim]")
        return
    _console.print(build_tag_index_table(state))


@app.command()
def show(item_id: str = typer.Argument(..., help="Portfolio item id.")) -> None:
    """Show one item with its timeline."""

    settings = AppSettings()
    store = CatalogStore(build_repository(settings), settings=settings)
    try:
        detail = asyncio.run(store.load_detail(item_id))
    except ItemNotFoundError:
        _console.print(f"[red]Portfolio item not found:[/red] {item_id}")
        raise typer.Exit(code=1)
    except (CatalogError, asyncio.TimeoutError) as exc:
        logger.error("Error fetching portfolio data: %s", exc)
        _console.print("[red]Failed to load portfolio details[/red]")
        raise typer.Exit(code=1)

    _console.print(build_item_panel(detail.item))
    if detail.timeline:
        _console.print(build_timeline_table(detail))


@app.command()
def image(
    src: str = typer.Argument(..., help="Image URL."),
    alt: str = typer.Option("", "--alt", help="Alternative text."),
    width: Optional[int] = typer.Option(None, "--width", min=1),
    height: Optional[int] = typer.Option(None, "--height", min=1),
    quality: Optional[int] = typer.Option(None, "--quality", min=1, max=100),
    resolve_only: bool = typer.Option(False, "--resolve-only", help="Print the request URL without fetching."),
) -> None:
    """Resolve (and load) an image the way the gallery does."""

    settings = AppSettings()
    request = ImageRequest(
        src=src,
        alt=alt,
        width=width,
        height=height,
        quality=quality or settings.image_quality,
    )
    if resolve_only:
        _console.print(
            build_image_url(
                src,
                width=width,
                height=height,
                quality=request.quality,
                image_format=settings.image_format,
                hosts=settings.resizable_image_hosts,
            )
        )
        return

    async def _load():
        loader = ImageLoader(request, HttpImageFetcher(settings), settings=settings)
        return await loader.load()

    state = asyncio.run(_load())
    _console.print(build_image_panel(state))
    if state.show_error:
        raise typer.Exit(code=1)


@app.command()
def tours() -> None:
    """List the published tours, newest first."""

    settings = AppSettings()
    listing = TourListing(build_repository(settings), settings=settings)
    state = asyncio.run(listing.load())
    _render_tours(state)
    if state.status is LoadStatus.ERROR:
        raise typer.Exit(code=1)


def _render_tours(state: TourState, *, show_status: bool = False) -> None:
    message = build_tours_message(state)
    if message is not None:
        _console.print(message)
    if state.status is LoadStatus.READY and state.tours:
        _console.print(build_tours_table(state, show_status=show_status))


# -- admin ---------------------------------------------------------------


def _open_admin(
    settings: AppSettings,
    password: str | None,
    repository: CatalogRepository | None = None,
    store: CatalogStore | None = None,
    tours: TourListing | None = None,
) -> CatalogAdmin:
    gate = AdminGate(settings)
    if not gate.configured:
        _console.print("[red]Admin password is not configured.[/red] Run `doctor setup-backend`.")
        raise typer.Exit(code=1)
    if password is None:
        password = typer.prompt("Admin password", hide_input=True)
    if not gate.check(password):
        _console.print("[red]Incorrect password[/red]")
        raise typer.Exit(code=1)
    repository = repository or build_repository(settings)
    return CatalogAdmin(repository=repository, storage=repository, gate=gate, store=store, tours=tours)


def _fail(message: str, exc: Exception) -> NoReturn:
    detail = str(exc) or type(exc).__name__
    _console.print(f"[red]{message}[/red] [dim]{detail}[/dim]")
    raise typer.Exit(code=1)


async def _upload(admin: CatalogAdmin, path: Path, kind: str) -> str:
    content_type, _ = mimetypes.guess_type(path.name)
    data = await asyncio.to_thread(path.read_bytes)
    return await admin.upload_image(data, path.name, kind, content_type)  # type: ignore[arg-type]


_PASSWORD_OPTION = typer.Option(None, "--password", help="Admin password (prompted when omitted).")


@admin_app.command("add")
def admin_add(
    title: str = typer.Option(..., "--title"),
    category: Category = typer.Option(Category.INVENTORY, "--category", "-c"),
    year: Optional[str] = typer.Option(None, "--year"),
    description: str = typer.Option("", "--description"),
    tag: Optional[List[str]] = typer.Option(None, "--tag", "-t"),
    image_url: Optional[str] = typer.Option(None, "--image"),
    image_file: Optional[Path] = typer.Option(None, "--image-file", exists=True, dir_okay=False),
    password: Optional[str] = _PASSWORD_OPTION,
) -> None:
    """Add a portfolio item."""

    settings = AppSettings()
    repository = build_repository(settings)
    store = CatalogStore(repository, settings=settings)
    admin = _open_admin(settings, password, repository, store)

    tags_list: list[str] = []
    for raw in tag or []:
        tags_list = add_tag(tags_list, raw)

    async def _run() -> CatalogState:
        await store.load(category)
        image = image_url
        if image_file is not None:
            image = await _upload(admin, image_file, "portfolio")
        draft = CatalogItemDraft(
            title=title,
            category=category,
            year=year,
            description=description,
            tags=tags_list,
            image=image,
        )
        created = await admin.create_item(draft)
        _console.print(f"[green]Portfolio item added successfully[/green] ({created.id})")
        return store.state

    try:
        state = asyncio.run(_run())
    except (CatalogError, asyncio.TimeoutError, ValueError) as exc:
        _fail("Failed to add portfolio item", exc)
    _render_view(state)


@admin_app.command("edit")
def admin_edit(
    item_id: str = typer.Argument(...),
    title: Optional[str] = typer.Option(None, "--title"),
    category: Optional[Category] = typer.Option(None, "--category", "-c"),
    year: Optional[str] = typer.Option(None, "--year"),
    description: Optional[str] = typer.Option(None, "--description"),
    add_tags: Optional[List[str]] = typer.Option(None, "--add-tag"),
    remove_tags: Optional[List[str]] = typer.Option(None, "--remove-tag"),
    image_url: Optional[str] = typer.Option(None, "--image"),
    image_file: Optional[Path] = typer.Option(None, "--image-file", exists=True, dir_okay=False),
    password: Optional[str] = _PASSWORD_OPTION,
) -> None:
    """Update fields of a portfolio item."""

    settings = AppSettings()
    repository = build_repository(settings)
    store = CatalogStore(repository, settings=settings)
    admin = _open_admin(settings, password, repository, store)

    async def _run() -> CatalogState:
        detail = await store.load_detail(item_id)
        await store.load(detail.item.category)

        changes: dict[str, object] = {}
        if title is not None:
            changes["title"] = title
        if category is not None:
            changes["category"] = category
        if year is not None:
            changes["year"] = year
        if description is not None:
            changes["description"] = description
        if add_tags or remove_tags:
            current = list(detail.item.tags)
            for raw in remove_tags or []:
                if raw in current:
                    current = remove_tag(current, current.index(raw))
            for raw in add_tags or []:
                current = add_tag(current, raw)
            changes["tags"] = current
        if image_file is not None:
            changes["image"] = await _upload(admin, image_file, "portfolio")
        elif image_url is not None:
            changes["image"] = image_url

        if not changes:
            _console.print("[yellow]Nothing to update.[/yellow]")
            return store.state
        await admin.update_item(item_id, CatalogItemPatch(**changes))
        _console.print("[green]Portfolio item updated successfully[/green]")
        return store.state

    try:
        state = asyncio.run(_run())
    except ItemNotFoundError as exc:
        _fail("Portfolio item not found", exc)
    except (CatalogError, asyncio.TimeoutError, ValueError) as exc:
        _fail("Failed to update portfolio item", exc)
    _render_view(state)


@admin_app.command("delete")
def admin_delete(
    item_id: str = typer.Argument(...),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
    password: Optional[str] = _PASSWORD_OPTION,
) -> None:
    """Delete a portfolio item and its timeline."""

    settings = AppSettings()
    repository = build_repository(settings)
    store = CatalogStore(repository, settings=settings)
    admin = _open_admin(settings, password, repository, store)

    try:
        detail = asyncio.run(store.load_detail(item_id))
    except ItemNotFoundError as exc:
        _fail("Portfolio item not found", exc)
    except (CatalogError, asyncio.TimeoutError) as exc:
        _fail("Failed to load portfolio details", exc)

    if not yes:
        typer.confirm(
            f"Delete '{detail.item.title}'? This will also delete all timeline entries.",
            abort=True,
        )

    async def _run() -> CatalogState:
        await store.load(detail.item.category)
        await admin.delete_item(item_id)
        return store.state

    try:
        state = asyncio.run(_run())
    except (CatalogError, asyncio.TimeoutError) as exc:
        _fail("Failed to delete portfolio item", exc)
    _console.print("[green]Portfolio item deleted successfully[/green]")
    _render_view(state)


@admin_app.command("suggest-tags")
def admin_suggest_tags(item_id: str = typer.Argument(...)) -> None:
    """Tags used elsewhere in the item's category that it does not carry yet."""

    settings = AppSettings()
    store = CatalogStore(build_repository(settings), settings=settings)

    async def _run() -> list[str]:
        detail = await store.load_detail(item_id)
        state = await store.load(detail.item.category)
        if state.status is LoadStatus.ERROR:
            raise CatalogError(state.error or "Failed to load portfolio items")
        return suggest_tags(compute_tag_index(state.items), detail.item.tags)

    try:
        suggestions = asyncio.run(_run())
    except (CatalogError, asyncio.TimeoutError) as exc:
        _fail("Failed to load tags", exc)
    if not suggestions:
        _console.print("[dim]No other tags in use.[/dim]")
        return
    for tag_name in suggestions:
        _console.print(f"- {tag_name}")


@admin_app.command("upload")
def admin_upload(
    path: Path = typer.Argument(..., exists=True, dir_okay=False),
    kind: str = typer.Option("portfolio", "--kind", help="portfolio, timeline or tour"),
    password: Optional[str] = _PASSWORD_OPTION,
) -> None:
    """Upload an image and print its public URL."""

    settings = AppSettings()
    admin = _open_admin(settings, password)
    try:
        url = asyncio.run(_upload(admin, path, kind))
    except (CatalogError, asyncio.TimeoutError, ValueError) as exc:
        _fail("Failed to upload image", exc)
    _console.print(url)


@admin_app.command("timeline-add")
def admin_timeline_add(
    item_id: str = typer.Argument(...),
    title: str = typer.Option(..., "--title"),
    date: str = typer.Option("", "--date"),
    description: str = typer.Option("", "--description"),
    image_file: Optional[Path] = typer.Option(None, "--image-file", exists=True, dir_okay=False),
    password: Optional[str] = _PASSWORD_OPTION,
) -> None:
    """Append a stage to an item's timeline."""

    settings = AppSettings()
    repository = build_repository(settings)
    store = CatalogStore(repository, settings=settings)
    admin = _open_admin(settings, password, repository, store)

    async def _run():
        image = None
        if image_file is not None:
            image = await _upload(admin, image_file, "timeline")
        draft = TimelineEntryDraft(title=title, date=date, description=description, image=image)
        await admin.add_timeline_entry(item_id, draft)
        return await store.load_detail(item_id)

    try:
        detail = asyncio.run(_run())
    except (CatalogError, asyncio.TimeoutError, ValueError) as exc:
        _fail("Failed to add timeline item", exc)
    _console.print("[green]Timeline item added successfully[/green]")
    _console.print(build_timeline_table(detail))


@admin_app.command("timeline-move")
def admin_timeline_move(
    item_id: str = typer.Argument(...),
    entry_id: str = typer.Argument(...),
    direction: str = typer.Argument(..., help="up or down"),
    password: Optional[str] = _PASSWORD_OPTION,
) -> None:
    """Move a timeline stage one position up or down."""

    if direction not in ("up", "down"):
        raise typer.BadParameter("direction must be 'up' or 'down'")
    settings = AppSettings()
    repository = build_repository(settings)
    store = CatalogStore(repository, settings=settings)
    admin = _open_admin(settings, password, repository, store)

    async def _run():
        await admin.move_timeline_entry(item_id, entry_id, direction)  # type: ignore[arg-type]
        return await store.load_detail(item_id)

    try:
        detail = asyncio.run(_run())
    except (CatalogError, asyncio.TimeoutError) as exc:
        _fail("Failed to reorder timeline", exc)
    _console.print(build_timeline_table(detail))


@admin_app.command("timeline-delete")
def admin_timeline_delete(
    entry_id: str = typer.Argument(...),
    password: Optional[str] = _PASSWORD_OPTION,
) -> None:
    """Delete a timeline stage."""

    settings = AppSettings()
    admin = _open_admin(settings, password)
    try:
        asyncio.run(admin.delete_timeline_entry(entry_id))
    except (CatalogError, asyncio.TimeoutError) as exc:
        _fail("Failed to delete timeline item", exc)
    _console.print("[green]Timeline item deleted successfully[/green]")


def _open_tour_admin(settings: AppSettings, password: str | None) -> tuple[CatalogAdmin, TourListing]:
    repository = build_repository(settings)
    listing = TourListing(repository, published_only=False, settings=settings)
    return _open_admin(settings, password, repository, tours=listing), listing


@admin_app.command("tours")
def admin_tours(password: Optional[str] = _PASSWORD_OPTION) -> None:
    """List every tour, published or not."""

    settings = AppSettings()
    _, listing = _open_tour_admin(settings, password)
    state = asyncio.run(listing.load())
    _render_tours(state, show_status=True)
    if state.status is LoadStatus.ERROR:
        raise typer.Exit(code=1)


@admin_app.command("tour-add")
def admin_tour_add(
    title: str = typer.Option(..., "--title"),
    duration: str = typer.Option("", "--duration"),
    address: str = typer.Option("", "--address"),
    description: str = typer.Option("", "--description"),
    price: Optional[str] = typer.Option(None, "--price"),
    url: Optional[str] = typer.Option(None, "--url", help="Booking link."),
    slug: Optional[str] = typer.Option(None, "--slug"),
    event_id: Optional[str] = typer.Option(None, "--event-id"),
    publish: bool = typer.Option(False, "--publish/--draft"),
    image_url: Optional[str] = typer.Option(None, "--image"),
    image_file: Optional[Path] = typer.Option(None, "--image-file", exists=True, dir_okay=False),
    password: Optional[str] = _PASSWORD_OPTION,
) -> None:
    """Add a tour (unpublished unless --publish)."""

    settings = AppSettings()
    admin, listing = _open_tour_admin(settings, password)

    async def _run() -> TourState:
        image = image_url
        if image_file is not None:
            image = await _upload(admin, image_file, "tour")
        draft = TourDraft(
            title=title,
            duration=duration,
            address=address,
            description=description,
            price=price,
            url=url,
            slug=slug,
            event_id=event_id,
            publish=publish,
            image=image,
        )
        created = await admin.create_tour(draft)
        _console.print(f"[green]Tour added successfully[/green] ({created.id})")
        return listing.state

    try:
        state = asyncio.run(_run())
    except (CatalogError, asyncio.TimeoutError, ValueError) as exc:
        _fail("Failed to add tour", exc)
    _render_tours(state, show_status=True)


@admin_app.command("tour-edit")
def admin_tour_edit(
    tour_id: str = typer.Argument(...),
    title: Optional[str] = typer.Option(None, "--title"),
    duration: Optional[str] = typer.Option(None, "--duration"),
    address: Optional[str] = typer.Option(None, "--address"),
    description: Optional[str] = typer.Option(None, "--description"),
    price: Optional[str] = typer.Option(None, "--price"),
    url: Optional[str] = typer.Option(None, "--url"),
    slug: Optional[str] = typer.Option(None, "--slug"),
    event_id: Optional[str] = typer.Option(None, "--event-id"),
    publish: Optional[bool] = typer.Option(None, "--publish/--unpublish"),
    image_url: Optional[str] = typer.Option(None, "--image"),
    image_file: Optional[Path] = typer.Option(None, "--image-file", exists=True, dir_okay=False),
    password: Optional[str] = _PASSWORD_OPTION,
) -> None:
    """Update fields of a tour."""

    settings = AppSettings()
    admin, listing = _open_tour_admin(settings, password)

    fields = {
        "title": title,
        "duration": duration,
        "address": address,
        "description": description,
        "price": price,
        "url": url,
        "slug": slug,
        "event_id": event_id,
        "publish": publish,
        "image": image_url,
    }
    changes = {key: value for key, value in fields.items() if value is not None}

    async def _run() -> TourState | None:
        if image_file is not None:
            changes["image"] = await _upload(admin, image_file, "tour")
        if not changes:
            return None
        await admin.update_tour(tour_id, TourPatch(**changes))
        return listing.state

    try:
        state = asyncio.run(_run())
    except (CatalogError, asyncio.TimeoutError, ValueError) as exc:
        _fail("Failed to update tour", exc)
    if state is None:
        _console.print("[yellow]Nothing to update.[/yellow]")
        return
    _console.print("[green]Tour updated successfully[/green]")
    _render_tours(state, show_status=True)


@admin_app.command("tour-delete")
def admin_tour_delete(
    tour_id: str = typer.Argument(...),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
    password: Optional[str] = _PASSWORD_OPTION,
) -> None:
    """Delete a tour."""

    settings = AppSettings()
    admin, listing = _open_tour_admin(settings, password)
    if not yes:
        typer.confirm(f"Delete tour {tour_id}?", abort=True)
    try:
        asyncio.run(admin.delete_tour(tour_id))
    except (CatalogError, asyncio.TimeoutError) as exc:
        _fail("Failed to delete tour", exc)
    _console.print("[green]Tour deleted successfully[/green]")
    _render_tours(listing.state, show_status=True)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
