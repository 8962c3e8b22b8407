"""Errores tipados del pipeline.

Regla:
- Errores de calidad de datos (JSON roto, geo-validación fallida) NO viven aquí:
  nunca cruzan el borde de su componente.
- Aquí solo hay fallos que el caller debe ver: configuración y upstream.
"""

from __future__ import annotations

from core.domain.models import ErrorClass


class ConfigurationError(Exception):
    """Credencial o parámetro obligatorio ausente. Nunca se reintenta."""


class GenerationError(Exception):
    """Petición de generación inválida (p.ej. región desconocida)."""


class InvalidTransitionError(Exception):
    """Transición ilegal en la máquina de estados de una sugerencia."""


class RequestError(Exception):
    """Fallo de una llamada al servicio de modelo tras agotar su política."""

    error_class: ErrorClass = ErrorClass.GENERIC

    def __init__(self, message: str, *, attempts: int = 1, context_label: str | None = None) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.context_label = context_label


class GatewayError(RequestError):
    error_class = ErrorClass.GATEWAY


class RequestTimeoutError(RequestError):
    error_class = ErrorClass.TIMEOUT


class SslError(RequestError):
    error_class = ErrorClass.SSL


class RateLimitError(RequestError):
    error_class = ErrorClass.RATE_LIMIT
