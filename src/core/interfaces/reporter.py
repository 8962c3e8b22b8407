"""Reporter inyectado en cada componente (logs + alertas)."""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Reporter(Protocol):
    def debug(self, message: str, **context: Any) -> None: ...

    def info(self, message: str, **context: Any) -> None: ...

    def warning(self, message: str, **context: Any) -> None: ...

    def error(self, message: str, **context: Any) -> None: ...


def _format(component: str, message: str, context: dict[str, Any]) -> str:
    line = f"[{component}] {message}"
    if context:
        pairs = " ".join(f"{key}={value!r}" for key, value in context.items())
        line = f"{line} | {pairs}"
    return line


class LoggingReporter:
    """Implementación por defecto sobre `logging`.

    Cada línea lleva el componente como prefijo y el contexto como pares
    `key=value`, de modo que un sink externo pueda parsearla.
    """

    def __init__(self, component: str, logger: logging.Logger | None = None) -> None:
        self.component = component
        self._logger = logger or logging.getLogger(f"poi_ingest.{component}")

    def debug(self, message: str, **context: Any) -> None:
        self._logger.debug(_format(self.component, message, context))

    def info(self, message: str, **context: Any) -> None:
        self._logger.info(_format(self.component, message, context))

    def warning(self, message: str, **context: Any) -> None:
        self._logger.warning(_format(self.component, message, context))

    def error(self, message: str, **context: Any) -> None:
        self._logger.error(_format(self.component, message, context))
