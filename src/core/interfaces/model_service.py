"""Contrato del servicio de modelo de lenguaje."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ModelClient(Protocol):
    """Cliente mínimo para el servicio de modelo.

    Reglas de diseño:
    - Con `schema` el servicio devuelve datos estructurados (dict).
    - Sin `schema` devuelve texto libre; el caller lo repara/parsea.
    - Los errores de transporte se propagan tal cual: la clasificación y los
      reintentos viven en `RequestExecutor`.
    """

    def complete(self, prompt: str, schema: dict[str, Any] | None = None) -> str | dict[str, Any]:
        ...


@runtime_checkable
class StructuredRequester(Protocol):
    """Lo que el orquestador necesita del executor: prompt -> datos parseados.

    Puede lanzar `core.errors.RequestError` tras agotar reintentos.
    """

    def execute(
        self,
        prompt: str,
        schema: dict[str, Any] | None = None,
        context_label: str = "RequestExecutor",
    ) -> dict[str, Any] | list[Any]:
        ...
