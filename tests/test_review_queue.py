from __future__ import annotations

import logging

import pytest

from adapters.review_store import InMemoryReviewStore, JsonlReviewStore
from core.domain.models import ReasonCode, ReviewEntry, ReviewStatus, Suggestion
from core.services.review_queue import ReviewQueue


def _suggestion(name: str = "Tvrđava Kastel") -> Suggestion:
    return Suggestion(name=name, lat=44.77, lng=17.18, claimed_city="Banja Luka")


def test_enqueue_appends_to_store_and_logs_once(caplog):
    caplog.set_level(logging.WARNING)
    store = InMemoryReviewStore()
    queue = ReviewQueue(store)

    entry = queue.enqueue(_suggestion(), ReasonCode.GEOCODING_FAILED, {"valid": False})

    assert store.list() == [entry]
    assert entry.status is ReviewStatus.PENDING
    assert entry.claimed_city == "Banja Luka"
    assert entry.details == {"valid": False}
    assert len([r for r in caplog.records if r.levelno == logging.WARNING]) == 1


def test_summary_by_reason_covers_current_session():
    queue = ReviewQueue(InMemoryReviewStore())
    queue.enqueue(_suggestion("A"), ReasonCode.GEOCODING_FAILED)
    queue.enqueue(_suggestion("B"), ReasonCode.GEOCODING_FAILED)
    queue.enqueue(_suggestion("C"), ReasonCode.COORDINATES_OUTSIDE_COUNTRY)

    assert queue.summary_by_reason() == {"geocoding_failed": 2, "coordinates_outside_country": 1}
    assert [row["name"] for row in queue.summary_rows()] == ["A", "B", "C"]

    queue.reset_session()
    assert queue.summary_by_reason() == {}
    assert len(queue.store.list()) == 3


def test_in_memory_mark_resolved():
    store = InMemoryReviewStore()
    entry = ReviewEntry(name="X", failure_reason=ReasonCode.MISSING_NAME)
    store.append(entry)

    resolved = store.mark_resolved(entry.id)

    assert resolved.status is ReviewStatus.RESOLVED
    assert resolved.resolved_at is not None
    with pytest.raises(KeyError):
        store.mark_resolved("nope")


def test_jsonl_store_folds_resolutions(tmp_path):
    path = tmp_path / "queue" / "review.jsonl"
    store = JsonlReviewStore(path)
    first = ReviewEntry(name="Č", lat=43.1, lng=17.2, failure_reason=ReasonCode.GEOCODING_FAILED)
    second = ReviewEntry(name="D", failure_reason=ReasonCode.COORDINATES_OUTSIDE_COUNTRY)
    store.append(first)
    store.append(second)

    store.mark_resolved(first.id)

    reloaded = JsonlReviewStore(path)
    pending = reloaded.list(status=ReviewStatus.PENDING)
    resolved = reloaded.list(status=ReviewStatus.RESOLVED)
    assert [e.id for e in pending] == [second.id]
    assert [e.name for e in resolved] == ["Č"]
    assert reloaded.list(reason=ReasonCode.COORDINATES_OUTSIDE_COUNTRY)[0].id == second.id
    # Append-only: two entries plus one resolution record.
    assert len(path.read_text(encoding="utf-8").splitlines()) == 3


def test_jsonl_store_unknown_id(tmp_path):
    with pytest.raises(KeyError):
        JsonlReviewStore(tmp_path / "q.jsonl").mark_resolved("missing")


def test_jsonl_store_ignores_truncated_last_line(tmp_path):
    path = tmp_path / "q.jsonl"
    store = JsonlReviewStore(path)
    store.append(ReviewEntry(name="ok", failure_reason=ReasonCode.GEOCODING_FAILED))
    with path.open("a", encoding="utf-8") as fh:
        fh.write('{"record": "entry", "entry": {"na')

    assert [e.name for e in store.list()] == ["ok"]
