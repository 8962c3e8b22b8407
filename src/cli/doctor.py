"""Doctor command for environment diagnostics."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from adapters.http_client import build_client
from core.config import AppSettings, get_user_env_file, write_user_env_vars

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


def _check_http(url: str, settings: AppSettings) -> tuple[bool, str]:
    try:
        with build_client(settings) as client:
            response = client.get(url)
        return True, f"HTTP {response.status_code}"
    except Exception as exc:
        return False, str(exc)


def _check_writable(settings: AppSettings) -> tuple[bool, str]:
    path = settings.review_queue_path
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("a", encoding="utf-8"):
            pass
        return True, str(path)
    except OSError as exc:
        return False, str(exc)


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = AppSettings()

    table = Table(title="POI-Ingest Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    # Config
    if settings.ai_api_key:
        table.add_row("AI key", "OK", "Generation enabled")
    else:
        table.add_row("AI key", "MISSING", "`generate` needs POI_INGEST_AI_API_KEY (run `doctor setup-ai`)")
    table.add_row("AI base_url", "OK", settings.ai_base_url)
    table.add_row("AI model", "OK", settings.ai_model)

    if settings.geoapify_api_key:
        table.add_row("Geoapify key", "OK", "Primary geocoder enabled")
    else:
        table.add_row("Geoapify key", "OPTIONAL", "No key set -> Nominatim only (1 req/s)")
    table.add_row("Strict mode", "ON" if settings.strict_mode else "OFF", "Unverified cities go to review")
    table.add_row("User .env", "OK" if get_user_env_file().exists() else "-", str(get_user_env_file()))

    # Connectivity (best-effort)
    ok_http, detail_http = _check_http(settings.nominatim_url, settings)
    table.add_row("Nominatim", "OK" if ok_http else "FAIL", detail_http)

    ok_store, detail_store = _check_writable(settings)
    table.add_row("Review queue", "OK" if ok_store else "FAIL", detail_store)

    _console.print(table)


@app.command(name="setup-ai")
def setup_ai() -> None:
    """Interactive AI setup (stores config in the user config .env)."""

    provider = typer.prompt(
        "AI provider",
        default="openai",
        show_default=True,
    ).strip().lower()

    presets: dict[str, dict[str, str]] = {
        "openai": {"POI_INGEST_AI_BASE_URL": "https://api.openai.com/v1", "POI_INGEST_AI_MODEL": "gpt-4o-mini"},
        "openrouter": {"POI_INGEST_AI_BASE_URL": "https://openrouter.ai/api/v1", "POI_INGEST_AI_MODEL": "openai/gpt-4o-mini"},
        "groq": {"POI_INGEST_AI_BASE_URL": "https://api.groq.com/openai/v1", "POI_INGEST_AI_MODEL": "llama-3.1-70b-versatile"},
        "ollama": {"POI_INGEST_AI_BASE_URL": "http://localhost:11434/v1", "POI_INGEST_AI_MODEL": "llama3"},
    }

    values = presets.get(provider, {}).copy()
    if not values:
        _console.print("[yellow]Unknown provider preset. You can still enter custom values.[/yellow]")

    base_url = typer.prompt("AI base URL", default=values.get("POI_INGEST_AI_BASE_URL", ""), show_default=True).strip()
    model = typer.prompt("AI model", default=values.get("POI_INGEST_AI_MODEL", ""), show_default=True).strip()
    api_key = typer.prompt("AI API key", hide_input=True, confirmation_prompt=False).strip()
    geoapify_key = typer.prompt("Geoapify API key (optional)", default="", show_default=False).strip()

    if not base_url or not model:
        raise typer.BadParameter("base_url and model are required")

    values = {
        "POI_INGEST_AI_BASE_URL": base_url,
        "POI_INGEST_AI_MODEL": model,
        "POI_INGEST_AI_API_KEY": api_key,
    }
    if geoapify_key:
        values["POI_INGEST_GEOAPIFY_API_KEY"] = geoapify_key

    env_path = write_user_env_vars(values)
    _console.print(f"[green]Saved config to:[/green] {env_path}")
