"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en múltiples comandos.
"""

from __future__ import annotations

from typing import Iterable

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import ReviewEntry, ValidationResult
from core.services.ingestion_pipeline import BatchSummary


def print_banner(console: Console) -> None:
    """Imprime el banner de bienvenida.

    Por qué aquí:
    - Evita dependencias circulares (main <-> doctor).
    - Permite desactivar banner en modos no interactivos (JSON/pipelines).
    """

    title = Text("POI-INGEST", style="bold cyan")
    subtitle = Text("Sugerencias IA • Validación geográfica • Cola de revisión", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_summary_table(summary: BatchSummary) -> Table:
    table = Table(title=f"Batch summary ({summary.label})")
    table.add_column("Outcome", style="cyan", no_wrap=True)
    table.add_column("Count", style="white", justify="right")
    table.add_row("Created", str(summary.promoted))
    table.add_row("Already existing", str(summary.existing))
    table.add_row("Queued for review", str(summary.queued), style="yellow" if summary.queued else None)
    table.add_row("Dropped", str(summary.dropped))
    table.add_row("Failed", str(summary.failed), style="red" if summary.failed else None)
    return table


def build_created_table(summary: BatchSummary) -> Table:
    table = Table(title="Created places")
    table.add_column("Name", style="white")
    table.add_column("City", style="green")
    table.add_column("Coordinates", style="dim")
    table.add_column("Tags", style="magenta")
    for place in summary.created:
        table.add_row(place.name, place.city or "-", f"{place.lat:.6f}, {place.lng:.6f}", ", ".join(place.tags))
    return table


def build_review_table(entries: Iterable[ReviewEntry], *, title: str = "Review queue") -> Table:
    table = Table(title=title)
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Name", style="white")
    table.add_column("Claimed city", style="cyan")
    table.add_column("Coordinates", style="dim")
    table.add_column("Reason", style="yellow")
    table.add_column("Status", style="green")
    for entry in entries:
        table.add_row(
            entry.id,
            entry.name or "-",
            entry.claimed_city or "-",
            f"{entry.lat}, {entry.lng}",
            entry.failure_reason.value,
            entry.status.value,
        )
    return table


def build_validation_panel(result: ValidationResult, *, lat: float, lng: float) -> Panel:
    body = Text()
    body.append(f"Coordinates: {lat}, {lng}\n")
    if result.valid:
        body.append("Valid: yes\n", style="green")
        body.append(f"Verified city: {result.verified_city}\n")
        if result.claimed_city:
            match = "yes" if result.city_match else "no (geocoded value wins)"
            body.append(f"Claimed city: {result.claimed_city} | match: {match}\n")
    else:
        body.append("Valid: no\n", style="red")
        body.append(f"Reason: {result.reason.value if result.reason else '-'}\n")

    style = "green" if result.valid else "red"
    return Panel(body, title=Text("Geo validation", style=f"bold {style}"), border_style=style)
