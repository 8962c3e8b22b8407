"""Configuración de logging para ejecuciones de CLI.

Los componentes solo usan `logging.getLogger(...)` (vía `LoggingReporter`);
quién decide el formato y el destino es el entrypoint.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler


def configure_logging(level: str = "INFO", *, console: Console | None = None) -> None:
    """Instala un `RichHandler` en el logger raíz (idempotente)."""

    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # httpx loguea cada request a INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)
