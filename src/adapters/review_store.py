"""Almacenes de la cola de revisión.

`JsonlReviewStore` nunca reescribe el archivo: cada línea es un registro
(`entry` o `resolution`) y la lectura los pliega por id. Un crash a mitad de
escritura pierde como mucho la última línea.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path

from core.domain.models import ReasonCode, ReviewEntry, ReviewStatus


def _filter(
    entries: list[ReviewEntry],
    reason: ReasonCode | None,
    status: ReviewStatus | None,
) -> list[ReviewEntry]:
    return [
        e
        for e in entries
        if (reason is None or e.failure_reason == reason) and (status is None or e.status == status)
    ]


def _resolved(entry: ReviewEntry, resolved_at: datetime) -> ReviewEntry:
    return entry.model_copy(update={"status": ReviewStatus.RESOLVED, "resolved_at": resolved_at})


class InMemoryReviewStore:
    def __init__(self) -> None:
        self._entries: dict[str, ReviewEntry] = {}

    def append(self, entry: ReviewEntry) -> None:
        self._entries[entry.id] = entry

    def list(
        self,
        reason: ReasonCode | None = None,
        status: ReviewStatus | None = None,
    ) -> list[ReviewEntry]:
        return _filter(list(self._entries.values()), reason, status)

    def mark_resolved(self, entry_id: str) -> ReviewEntry:
        entry = self._entries[entry_id]
        updated = _resolved(entry, datetime.now(timezone.utc))
        self._entries[entry_id] = updated
        return updated


class JsonlReviewStore:
    """Append-only JSON lines en `path` (UTF-8)."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _write(self, record: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(record, ensure_ascii=False, sort_keys=True) + "\n")

    def _load(self) -> dict[str, ReviewEntry]:
        entries: dict[str, ReviewEntry] = {}
        if not self.path.exists():
            return entries

        for line in self.path.read_text(encoding="utf-8").splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError:
                # Última línea truncada por un crash.
                continue
            kind = record.get("record")
            if kind == "entry":
                entry = ReviewEntry.model_validate(record["entry"])
                entries[entry.id] = entry
            elif kind == "resolution" and record.get("id") in entries:
                resolved_at = datetime.fromisoformat(record["resolved_at"])
                entries[record["id"]] = _resolved(entries[record["id"]], resolved_at)
        return entries

    def append(self, entry: ReviewEntry) -> None:
        self._write({"record": "entry", "entry": entry.model_dump(mode="json")})

    def list(
        self,
        reason: ReasonCode | None = None,
        status: ReviewStatus | None = None,
    ) -> list[ReviewEntry]:
        return _filter(list(self._load().values()), reason, status)

    def mark_resolved(self, entry_id: str) -> ReviewEntry:
        entries = self._load()
        if entry_id not in entries:
            raise KeyError(entry_id)
        resolved_at = datetime.now(timezone.utc)
        self._write({"record": "resolution", "id": entry_id, "resolved_at": resolved_at.isoformat()})
        return _resolved(entries[entry_id], resolved_at)
