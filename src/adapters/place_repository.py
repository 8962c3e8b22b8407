"""Repositorios de lugares (colaborador de persistencia).

El modelo de contenido real vive en otro sistema; aquí solo hay lo necesario
para el find-or-create del pipeline y para correr la CLI en local.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from core.domain.models import PlaceRecord


def _near(record: PlaceRecord, lat: float, lng: float, tolerance: float) -> bool:
    return abs(record.lat - lat) <= tolerance and abs(record.lng - lng) <= tolerance


class InMemoryPlaceRepository:
    def __init__(self, records: list[PlaceRecord] | None = None) -> None:
        self._records: list[PlaceRecord] = list(records or [])

    @property
    def records(self) -> list[PlaceRecord]:
        return list(self._records)

    def find_by_coordinates(self, lat: float, lng: float, tolerance: float) -> PlaceRecord | None:
        return next((r for r in self._records if _near(r, lat, lng, tolerance)), None)

    def find_by_name(self, name: str) -> PlaceRecord | None:
        wanted = name.strip().casefold()
        return next((r for r in self._records if r.name.casefold() == wanted), None)

    def create(self, attributes: dict[str, Any]) -> PlaceRecord:
        record = PlaceRecord.model_validate(attributes)
        self._records.append(record)
        return record


class JsonPlaceRepository(InMemoryPlaceRepository):
    """Lugares en un único archivo JSON (lista), reescrito en cada `create`."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        records: list[PlaceRecord] = []
        if self.path.exists():
            raw = json.loads(self.path.read_text(encoding="utf-8") or "[]")
            records = [PlaceRecord.model_validate(item) for item in raw]
        super().__init__(records)

    def create(self, attributes: dict[str, Any]) -> PlaceRecord:
        record = super().create(attributes)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = [r.model_dump(mode="json") for r in self._records]
        self.path.write_text(
            json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        return record
