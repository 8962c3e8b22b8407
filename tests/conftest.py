from __future__ import annotations

from typing import Any, Callable

import pytest

from adapters.place_repository import InMemoryPlaceRepository
from adapters.review_store import InMemoryReviewStore
from core.services.geo_validator import GeoValidator
from core.services.ingestion_pipeline import IngestionOrchestrator, PipelineOptions
from core.services.review_queue import ReviewQueue

SARAJEVO = (43.8563, 18.4131)
MOSTAR = (43.3438, 17.8078)
BELGRADE = (44.8200, 20.4500)


class FakeGeocoder:
    """Reverse geocoder returning a fixed address (or raising)."""

    def __init__(self, name: str = "fake", address: dict[str, Any] | None = None, error: Exception | None = None):
        self.name = name
        self.address = address or {}
        self.error = error
        self.calls: list[tuple[float, float]] = []

    def reverse_geocode(self, lat: float, lng: float) -> dict[str, Any]:
        self.calls.append((lat, lng))
        if self.error is not None:
            raise self.error
        return dict(self.address)


class ScriptedModelClient:
    """Returns (or raises) the scripted items in order; repeats the last one."""

    def __init__(self, *script: Any):
        self.script = list(script)
        self.prompts: list[str] = []

    def complete(self, prompt: str, schema: dict[str, Any] | None = None) -> Any:
        self.prompts.append(prompt)
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, BaseException):
            raise item
        return item


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakePlaceSearch:
    def __init__(self, results: list[dict[str, Any]] | None = None):
        self.results = results or []
        self.queries: list[str] = []

    def text_search(self, query: str, bias_lat: float, bias_lng: float, radius: int, *, limit: int = 20):
        self.queries.append(query)
        return self.results


class FakeExecutor:
    def __init__(self, result: Any = None, error: Exception | None = None):
        self.result = result if result is not None else {"locations": []}
        self.error = error
        self.calls: list[tuple[str, str]] = []

    def execute(self, prompt: str, schema: dict[str, Any] | None = None, context_label: str = "x") -> Any:
        self.calls.append((prompt, context_label))
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def review_store() -> InMemoryReviewStore:
    return InMemoryReviewStore()


@pytest.fixture
def repository() -> InMemoryPlaceRepository:
    return InMemoryPlaceRepository()


@pytest.fixture
def make_orchestrator(review_store, repository) -> Callable[..., IngestionOrchestrator]:
    def _make(
        *,
        primary: FakeGeocoder | None = None,
        fallback: FakeGeocoder | None = None,
        strict: bool = True,
        executor: Any = None,
        place_search: Any = None,
    ) -> IngestionOrchestrator:
        validator = GeoValidator(primary=primary, fallback=fallback)
        return IngestionOrchestrator(
            validator=validator,
            review_queue=ReviewQueue(review_store),
            repository=repository,
            executor=executor,
            place_search=place_search,
            options=PipelineOptions(strict_mode=strict),
        )

    return _make
