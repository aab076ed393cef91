"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en múltiples comandos.
"""

from __future__ import annotations

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import CatalogDetail, CatalogItem
from core.services.catalog_store import CatalogState, LoadStatus
from core.services.image_loader import ImagePhase, ImageState
from core.services.tours import TOURS_ERROR_MESSAGE, TourState


def print_banner(console: Console) -> None:
    title = Text("folio-catalog", style="bold cyan")
    subtitle = Text("Portfolio • Tags • Images", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_items_table(state: CatalogState, *, gallery: bool = False) -> Table:
    category = state.category.label() if state.category else "Catalog"
    items = state.gallery if gallery else state.visible
    title = f"{category} ({len(items)} of {len(state.items)})"
    if state.selected:
        title += " • tags: " + ", ".join(sorted(state.selected))

    table = Table(title=title)
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Title", style="bold white")
    table.add_column("Year", style="cyan")
    table.add_column("Tags", style="magenta")
    table.add_column("Image", style="green")
    for item in items:
        table.add_row(
            item.id,
            item.title,
            item.year or "",
            ", ".join(item.tags),
            "yes" if item.has_image else "",
        )
    return table


def build_tag_index_table(state: CatalogState) -> Table:
    table = Table(title="Tags")
    table.add_column("Tag", style="magenta")
    table.add_column("Items", justify="right")
    table.add_column("Selected", style="green")
    for tag in state.tag_index:
        count = sum(1 for item in state.items if tag in item.tags)
        table.add_row(tag, str(count), "✓" if tag in state.selected else "")
    return table


def build_status_message(state: CatalogState) -> Text | None:
    """Mensaje a mostrar en lugar de (o antes de) la tabla, si corresponde."""

    if state.status is LoadStatus.ERROR:
        return Text.assemble(
            (state.error or "Failed to load portfolio items", "bold red"),
            ("\nRun the command again to retry.", "dim"),
        )
    if state.is_empty:
        category = state.category.value if state.category else "catalog"
        return Text(f"No {category} items available.", style="dim")
    if state.status is LoadStatus.READY and not state.visible:
        return Text("No items match the selected tags.", style="yellow")
    return None


def build_item_panel(item: CatalogItem) -> Panel:
    body = Text()
    body.append(f"{item.category.label()}")
    if item.year:
        body.append(f" • {item.year}")
    body.append("\n\n")
    if item.description:
        body.append(item.description.strip() + "\n\n")
    if item.tags:
        body.append("Tags: ", style="bold")
        body.append(", ".join(item.tags) + "\n", style="magenta")
    if item.image:
        body.append(f"Image: {item.image}", style="dim")
    return Panel(body, title=Text(item.title, style="bold yellow"), border_style="yellow")


def build_timeline_table(detail: CatalogDetail) -> Table:
    table = Table(title="Timeline")
    table.add_column("#", justify="right", style="dim")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Date", style="cyan")
    table.add_column("Title", style="white")
    table.add_column("Description")
    for entry in detail.timeline:
        table.add_row(str(entry.order), entry.id, entry.date, entry.title, entry.description)
    return table


_PHASE_STYLE = {
    ImagePhase.LOADING: "yellow",
    ImagePhase.LOADED: "green",
    ImagePhase.ERROR: "red",
}


def build_image_panel(state: ImageState) -> Panel:
    body = Text()
    body.append("Source: ", style="bold")
    body.append(state.request.src + "\n")
    body.append("Request: ", style="bold")
    body.append(state.url + "\n")
    body.append("Alt: ", style="bold")
    body.append(state.request.alt + "\n")
    body.append("Phase: ", style="bold")
    body.append(state.phase.value, style=_PHASE_STYLE[state.phase])
    if state.show_image:
        body.append(f" ({state.size} bytes)", style="dim")
    if state.show_error:
        body.append("\nImage failed to load", style="red")
        if state.error:
            body.append(f": {state.error}", style="dim")
    return Panel(body, title="Image", border_style=_PHASE_STYLE[state.phase])


def build_tours_table(state: TourState, *, show_status: bool = False) -> Table:
    table = Table(title=f"Tours ({len(state.tours)})")
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Title", style="bold white")
    table.add_column("Duration", style="cyan")
    table.add_column("Price", style="green")
    table.add_column("Address")
    if show_status:
        table.add_column("Status", style="magenta")
    for tour in state.tours:
        row = [tour.id, tour.title, tour.duration, tour.price or "", tour.address]
        if show_status:
            row.append("published" if tour.publish else "draft")
        table.add_row(*row)
    return table


def build_tours_message(state: TourState) -> Text | None:
    if state.status is LoadStatus.ERROR:
        return Text(state.error or TOURS_ERROR_MESSAGE, style="bold red")
    if state.is_empty:
        return Text("No tours available at the moment.", style="dim")
    return None
