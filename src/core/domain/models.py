"""Modelos del dominio (Pydantic v2).

Por qué Pydantic en el dominio:
- Nos da validación estricta y documentación autocontenida (Field) sin acoplar
  el Core a librerías de I/O.
- La salida del modelo de lenguaje es heterogénea (coordenadas como string,
  claves con alias); normalizarla aquí evita repetir limpieza en cada servicio.

Nota:
- Estos modelos describen *qué* es la información, no *cómo* se obtiene.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic.config import ConfigDict


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReasonCode(str, Enum):
    """Motivo por el que una sugerencia no pudo verificarse."""

    MISSING_COORDINATES = "missing_coordinates"
    MISSING_NAME = "missing_name"
    COORDINATES_OUTSIDE_COUNTRY = "coordinates_outside_country"
    GEOCODING_FAILED = "geocoding_failed"
    NO_VERIFIED_CITY_IN_STRICT_MODE = "no_verified_city_in_strict_mode"


class ErrorClass(str, Enum):
    """Clasificación de fallos del servicio de modelo."""

    GATEWAY = "gateway"
    TIMEOUT = "timeout"
    SSL = "ssl"
    RATE_LIMIT = "rate_limit"
    GENERIC = "generic"
    CONFIGURATION = "configuration"


class ReviewStatus(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"


def _blank_to_none(value: object) -> object:
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    return value


class Suggestion(BaseModel):
    """Candidato a lugar (POI) producido por el modelo. Nunca se muta.

    `from_payload` acepta el dict crudo del modelo, donde la ciudad llega como
    `city_name` y las coordenadas a veces como string.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str | None = Field(default=None, max_length=512)
    lat: float | None = None
    lng: float | None = Field(default=None, validation_alias=AliasChoices("lng", "lon", "longitude"))
    claimed_city: str | None = Field(
        default=None,
        validation_alias=AliasChoices("claimed_city", "city_name", "city"),
        description="Ciudad que afirma el modelo (sin verificar).",
    )
    category: str | None = None
    location_type: str | None = None
    experience_types: list[str] = Field(default_factory=list)

    name_local: str | None = None
    why_notable: str | None = None
    insider_tip: str | None = None
    region: str | None = None

    @field_validator(
        "name", "claimed_city", "category", "location_type", "name_local", "why_notable", "insider_tip", "region",
        mode="before",
    )
    @classmethod
    def _strip_text(cls, value: object) -> object:
        value = _blank_to_none(value)
        if isinstance(value, str):
            return value.strip()
        return value

    @field_validator("lat", "lng", mode="before")
    @classmethod
    def _coerce_coordinate(cls, value: object) -> float | None:
        value = _blank_to_none(value)
        if value is None or isinstance(value, bool):
            return None
        try:
            return float(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return None

    @field_validator("experience_types", mode="before")
    @classmethod
    def _coerce_tags(cls, value: object) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [value] if value.strip() else []
        if isinstance(value, (list, tuple)):
            return [str(v).strip() for v in value if v is not None and str(v).strip()]
        return []

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "Suggestion":
        return cls.model_validate(payload)

    @property
    def has_coordinates(self) -> bool:
        return self.lat is not None and self.lng is not None


class ValidationResult(BaseModel):
    """Resultado de `GeoValidator.validate`. Se consume inmediatamente."""

    model_config = ConfigDict(frozen=True)

    valid: bool
    verified_city: str | None = None
    reason: ReasonCode | None = None
    city_match: bool = False
    claimed_city: str | None = None

    @classmethod
    def failure(cls, reason: ReasonCode, *, claimed_city: str | None = None) -> "ValidationResult":
        return cls(valid=False, reason=reason, claimed_city=claimed_city)

    @classmethod
    def success(cls, verified_city: str, *, city_match: bool, claimed_city: str | None) -> "ValidationResult":
        return cls(valid=True, verified_city=verified_city, city_match=city_match, claimed_city=claimed_city)

    def as_details(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class ReviewEntry(BaseModel):
    """Sugerencia en cuarentena a la espera de una decisión humana."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    name: str | None = None
    lat: float | None = None
    lng: float | None = None
    claimed_city: str | None = None
    failure_reason: ReasonCode
    details: dict[str, Any] = Field(default_factory=dict)
    queued_at: datetime = Field(default_factory=_utcnow)
    status: ReviewStatus = ReviewStatus.PENDING
    resolved_at: datetime | None = None


class PlaceRecord(BaseModel):
    """Lugar persistido por el colaborador de persistencia."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    name: str = Field(..., min_length=1)
    lat: float
    lng: float
    city: str | None = None
    address: str | None = None
    location_type: str = "place"
    category: str | None = None
    experience_types: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)


@dataclass
class RetryState:
    """Estado de reintentos de una única llamada al modelo."""

    attempt: int = 0
    error_class: ErrorClass | None = None
    delay_seconds: float = 0.0
    delays: list[float] = field(default_factory=list)

    def record_delay(self, delay: float) -> None:
        self.delay_seconds = delay
        self.delays.append(delay)
