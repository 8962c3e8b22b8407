"""Contrato del almacén durable de la cola de revisión."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.models import ReasonCode, ReviewEntry, ReviewStatus


@runtime_checkable
class ReviewStore(Protocol):
    """Append-only; la resolución la hace un humano fuera de este pipeline."""

    def append(self, entry: ReviewEntry) -> None:
        ...

    def list(
        self,
        reason: ReasonCode | None = None,
        status: ReviewStatus | None = None,
    ) -> list[ReviewEntry]:
        ...

    def mark_resolved(self, entry_id: str) -> ReviewEntry:
        """Raises `KeyError` if the id is unknown."""

        ...
