"""Configuración del Core.

Por qué aquí:
- Centraliza variables de entorno (pydantic-settings) sin contaminar la CLI.
- Permite que adaptadores (modelo IA, geocoding, stores) lean config de forma
  consistente.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_user_config_dir() -> Path:
    """Directorio de configuración por usuario (cross-platform, sin dependencias)."""

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / "poi-ingest"
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / "poi-ingest"

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "poi-ingest"
    return Path.home() / ".config" / "poi-ingest"


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


def write_user_env_vars(values: dict[str, str]) -> Path:
    """Escribe/actualiza variables en el .env global del usuario."""

    env_path = get_user_env_file()
    env_path.parent.mkdir(parents=True, exist_ok=True)

    existing: dict[str, str] = {}
    if env_path.exists():
        existing = _parse_env_lines(env_path.read_text(encoding="utf-8"))

    existing.update({k: v for k, v in values.items() if v is not None})

    lines = ["# poi-ingest user config (.env)"]
    for key in sorted(existing.keys()):
        lines.append(f"{key}={existing[key]}")
    env_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return env_path


class AppSettings(BaseSettings):
    """Configuración central del pipeline de ingesta.

    Por qué pydantic-settings:
    - Tipado + validación en el borde (env vars) sin ensuciar el Core con lógica.
    - Un único contrato de configuración para CLI/adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix="POI_INGEST_",
        extra="ignore",
        case_sensitive=False,
        # Orden: proyecto primero (dev), luego config global de usuario.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    http_timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        description="Timeout por request de geocoding (segundos).",
    )
    user_agent: str = Field(
        default="poi-ingest/0.1 (+https://local)",
        min_length=1,
        description="User-Agent para Nominatim y demás proveedores HTTP.",
    )

    ai_api_key: str | None = Field(
        default=None,
        description="API key para el servicio de modelo (compatible OpenAI).",
    )
    ai_base_url: str = Field(
        default="https://api.openai.com/v1",
        min_length=8,
        description="Base URL compatible OpenAI.",
    )
    ai_model: str = Field(
        default="gpt-4o-mini",
        min_length=1,
        description="Modelo por defecto para sugerencias de lugares.",
    )
    ai_timeout_seconds: float = Field(
        default=300.0,
        gt=0,
        description="Timeout para llamadas al modelo (respuestas estructuradas largas).",
    )
    ai_max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Reintentos del propio SDK (429/5xx) antes de clasificar el fallo.",
    )

    geoapify_api_key: str | None = Field(
        default=None,
        description="API key de Geoapify (proveedor primario de reverse geocoding).",
    )
    geoapify_base_url: str = Field(
        default="https://api.geoapify.com/v1/geocode",
        min_length=8,
    )
    geoapify_language: str = Field(default="bs", min_length=2, max_length=8)
    nominatim_url: str = Field(
        default="https://nominatim.openstreetmap.org",
        min_length=8,
        description="Base URL de Nominatim (proveedor fallback).",
    )
    fallback_min_interval_seconds: float = Field(
        default=1.1,
        ge=0,
        description="Espera mínima antes de cada llamada a Nominatim (límite 1 req/s).",
    )

    strict_mode: bool = Field(
        default=True,
        description="No persistir sugerencias sin ciudad verificada.",
    )
    dedupe_tolerance_degrees: float = Field(
        default=0.0001,
        gt=0,
        description="Tolerancia (grados) para considerar dos coordenadas iguales (~11 m).",
    )

    review_queue_path: Path = Field(
        default=Path("data") / "review_queue.jsonl",
        description="Archivo JSONL append-only de la cola de revisión.",
    )
    places_path: Path = Field(
        default=Path("data") / "places.json",
        description="Archivo JSON usado por el repositorio de lugares local.",
    )

    log_level: str = Field(default="INFO", min_length=1)
