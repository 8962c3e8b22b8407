"""Exportación JSON del resumen de un lote.

Por qué JSON:
- Interoperabilidad con otras herramientas y pipelines (jq, CI).
- Permite conservar el resultado de una corrida sin depender de la consola.
"""

from __future__ import annotations

import json
from pathlib import Path

from core.services.ingestion_pipeline import BatchSummary


def export_summary_json(*, summary: BatchSummary, output_path: Path) -> Path:
    """Exporta `BatchSummary` a JSON UTF-8 con formato estable."""

    output_path.parent.mkdir(parents=True, exist_ok=True)
    payload = summary.model_dump(mode="json")
    output_path.write_text(
        json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )
    return output_path
