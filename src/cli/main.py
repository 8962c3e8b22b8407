"""CLI principal (Typer).

Por qué Typer:
- Tipado de parámetros (Enum, Path, float) y ayuda generada sin boilerplate.
- Sub-apps (`generate`, `review`, `doctor`) con el mismo patrón.

La CLI solo cablea adaptadores y pinta resultados; la lógica vive en
`core.services`.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.markup import escape

from adapters.ai_requests import build_request_executor
from adapters.geocoding import GeoapifyGeocoder, NominatimGeocoder
from adapters.json_exporter import export_summary_json
from adapters.place_repository import JsonPlaceRepository
from adapters.review_store import JsonlReviewStore
from cli import doctor
from cli.ui_components import (
    build_created_table,
    build_review_table,
    build_summary_table,
    build_validation_panel,
    print_banner,
)
from core.config import AppSettings
from core.domain.models import ReasonCode, ReviewStatus
from core.errors import ConfigurationError, GenerationError
from core.logging_config import configure_logging
from core.services.geo_validator import GeoValidator
from core.services.ingestion_pipeline import REGIONS, BatchSummary, IngestionOrchestrator, PipelineOptions
from core.services.json_repair import JsonRepairer
from core.services.review_queue import ReviewQueue

app = typer.Typer(no_args_is_help=True, help="AI place suggestions: validate, promote or queue for review.")
generate_app = typer.Typer(no_args_is_help=True, help="Ask the model for suggestions and ingest them.")
review_app = typer.Typer(no_args_is_help=True, help="Inspect and resolve the review queue.")

app.add_typer(generate_app, name="generate")
app.add_typer(review_app, name="review")
app.add_typer(doctor.app, name="doctor")

console = Console()


@app.callback()
def main_callback(
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ERROR."),
) -> None:
    settings = AppSettings()
    configure_logging(log_level or settings.log_level)


def _fail(message: str, code: int = 2) -> None:
    console.print(f"[red]{message}[/red]")
    raise typer.Exit(code=code)


def _build_geocoders(settings: AppSettings) -> tuple[GeoapifyGeocoder | None, NominatimGeocoder]:
    primary = GeoapifyGeocoder(settings) if settings.geoapify_api_key else None
    return primary, NominatimGeocoder(settings)


def _build_orchestrator(settings: AppSettings, *, strict: bool, with_model: bool) -> IngestionOrchestrator:
    primary, fallback = _build_geocoders(settings)
    return IngestionOrchestrator(
        validator=GeoValidator(primary=primary, fallback=fallback),
        review_queue=ReviewQueue(JsonlReviewStore(settings.review_queue_path)),
        repository=JsonPlaceRepository(settings.places_path),
        executor=build_request_executor(settings) if with_model else None,
        place_search=primary,
        options=PipelineOptions(
            strict_mode=strict,
            dedupe_tolerance=settings.dedupe_tolerance_degrees,
        ),
    )


def _strict_flag(lenient: bool, settings: AppSettings) -> bool:
    return False if lenient else settings.strict_mode


def _render(summary: BatchSummary, export: Path | None) -> None:
    console.print(build_summary_table(summary))
    if summary.created:
        console.print(build_created_table(summary))
    if summary.review_queue:
        console.print(
            f"[yellow]{len(summary.review_queue)} suggestion(s) queued for review:[/yellow] "
            + ", ".join(f"{k}={v}" for k, v in sorted(summary.review_queue_by_reason.items()))
        )
    for line in summary.outcomes:
        console.print(f"[dim]{escape(line)}[/dim]")
    for error in summary.errors:
        console.print(f"[red]Request error:[/red] {error}")
    if export is not None:
        path = export_summary_json(summary=summary, output_path=export)
        console.print(f"[green]Summary written to:[/green] {path}")


def _read_suggestions(path: Path) -> list[dict[str, Any]]:
    text = path.read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        data = JsonRepairer().repair(text)
    if isinstance(data, dict):
        data = data.get("locations", [])
    if not isinstance(data, list):
        return []
    return [item for item in data if isinstance(item, dict)]


@app.command()
def ingest(
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="JSON list or {\"locations\": [...]}."),
    region: Optional[str] = typer.Option(None, "--region", help="Source region used for tags."),
    lenient: bool = typer.Option(False, "--lenient", help="Non-strict mode: promote unverified cities."),
    export: Optional[Path] = typer.Option(None, "--export", help="Write the batch summary as JSON."),
    no_banner: bool = typer.Option(False, "--no-banner"),
) -> None:
    """Validate and ingest suggestions from a file."""

    if not no_banner:
        print_banner(console)
    settings = AppSettings()
    suggestions = _read_suggestions(file)
    if not suggestions:
        _fail(f"No suggestions found in {file}")

    try:
        orchestrator = _build_orchestrator(settings, strict=_strict_flag(lenient, settings), with_model=False)
    except ConfigurationError as exc:
        _fail(str(exc))
    summary = orchestrator.process_batch(suggestions, source_region=region, label=f"file:{file.name}")
    _render(summary, export)


def _generate(action: str, value: Any, *, lenient: bool, export: Path | None) -> None:
    settings = AppSettings()
    try:
        orchestrator = _build_orchestrator(settings, strict=_strict_flag(lenient, settings), with_model=True)
        if action == "region":
            summary = orchestrator.generate_for_region(value)
        elif action == "category":
            summary = orchestrator.generate_by_category(value)
        else:
            summary = orchestrator.discover_hidden_gems(value)
    except (ConfigurationError, GenerationError) as exc:
        _fail(str(exc))
    _render(summary, export)


@generate_app.command("region")
def generate_region(
    name: str = typer.Argument(..., help=f"One of: {', '.join(REGIONS)}"),
    lenient: bool = typer.Option(False, "--lenient"),
    export: Optional[Path] = typer.Option(None, "--export"),
) -> None:
    """Suggestions for one region of the country."""

    _generate("region", name, lenient=lenient, export=export)


@generate_app.command("category")
def generate_category(
    name: str = typer.Argument(..., help="historical, natural, religious, culinary, cultural, adventure"),
    lenient: bool = typer.Option(False, "--lenient"),
    export: Optional[Path] = typer.Option(None, "--export"),
) -> None:
    """Country-wide suggestions for one category."""

    _generate("category", name, lenient=lenient, export=export)


@generate_app.command("hidden-gems")
def generate_hidden_gems(
    count: int = typer.Option(15, "--count", min=1, max=50),
    lenient: bool = typer.Option(False, "--lenient"),
    export: Optional[Path] = typer.Option(None, "--export"),
) -> None:
    """Lesser-known places across the country."""

    _generate("hidden-gems", count, lenient=lenient, export=export)


@app.command()
def validate(
    lat: float = typer.Argument(...),
    lng: float = typer.Argument(...),
    city: Optional[str] = typer.Option(None, "--city", help="Claimed city to reconcile."),
) -> None:
    """Check one coordinate: inside the country, and which city."""

    settings = AppSettings()
    try:
        primary, fallback = _build_geocoders(settings)
    except ConfigurationError as exc:
        _fail(str(exc))
    result = GeoValidator(primary=primary, fallback=fallback).validate(lat, lng, city)
    console.print(build_validation_panel(result, lat=lat, lng=lng))
    if not result.valid:
        raise typer.Exit(code=1)


@review_app.command("list")
def review_list(
    reason: Optional[ReasonCode] = typer.Option(None, "--reason", case_sensitive=False),
    status: Optional[ReviewStatus] = typer.Option(ReviewStatus.PENDING, "--status", case_sensitive=False),
) -> None:
    """List queued suggestions (pending by default)."""

    store = JsonlReviewStore(AppSettings().review_queue_path)
    entries = store.list(reason=reason, status=status)
    if not entries:
        console.print("[dim]Review queue is empty.[/dim]")
        return
    console.print(build_review_table(entries, title=f"Review queue ({len(entries)})"))


@review_app.command("resolve")
def review_resolve(entry_id: str = typer.Argument(..., help="Entry id from `review list`.")) -> None:
    """Mark a queued suggestion as resolved."""

    store = JsonlReviewStore(AppSettings().review_queue_path)
    try:
        entry = store.mark_resolved(entry_id)
    except KeyError:
        _fail(f"Unknown review entry: {entry_id}", code=1)
    console.print(f"[green]Resolved:[/green] {entry.name} ({entry.id})")


def run() -> None:
    """Entrypoint para `poi-ingest` y `python main.py`."""

    app()


if __name__ == "__main__":
    run()
