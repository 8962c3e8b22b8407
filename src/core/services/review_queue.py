"""Quarantine for suggestions that could not be verified.

The queue only appends. Resolution is a human decision made elsewhere; this
module keeps the entries queued during the current run so batch callers can
summarise them.
"""

from __future__ import annotations

from collections import Counter
from typing import Any

from core.domain.models import ReasonCode, ReviewEntry, Suggestion
from core.interfaces.reporter import LoggingReporter, Reporter
from core.interfaces.review_store import ReviewStore


class ReviewQueue:
    def __init__(self, store: ReviewStore, reporter: Reporter | None = None) -> None:
        self._store = store
        self._reporter = reporter or LoggingReporter("ReviewQueue")
        self._session: list[ReviewEntry] = []

    @property
    def store(self) -> ReviewStore:
        return self._store

    @property
    def queued(self) -> list[ReviewEntry]:
        return list(self._session)

    def enqueue(
        self,
        suggestion: Suggestion,
        reason: ReasonCode,
        details: dict[str, Any] | None = None,
    ) -> ReviewEntry:
        entry = ReviewEntry(
            name=suggestion.name,
            lat=suggestion.lat,
            lng=suggestion.lng,
            claimed_city=suggestion.claimed_city,
            failure_reason=reason,
            details=dict(details or {}),
        )
        self._store.append(entry)
        self._session.append(entry)
        self._reporter.warning(
            "Queued for review",
            name=entry.name,
            reason=reason.value,
            claimed_city=entry.claimed_city,
            coordinates=f"{entry.lat}, {entry.lng}",
            id=entry.id,
        )
        return entry

    def summary_by_reason(self) -> dict[str, int]:
        return dict(Counter(entry.failure_reason.value for entry in self._session))

    def summary_rows(self) -> list[dict[str, Any]]:
        return [
            {
                "id": entry.id,
                "name": entry.name,
                "claimed_city": entry.claimed_city,
                "coordinates": f"{entry.lat}, {entry.lng}",
                "reason": entry.failure_reason.value,
            }
            for entry in self._session
        ]

    def reset_session(self) -> None:
        self._session.clear()
