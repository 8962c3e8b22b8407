"""Ingestion orchestration: model suggestions -> verified places or review.

The orchestrator owns the per-suggestion decision and the batch loop:

1. batches are sorted so landmarks come before restaurants and hotels;
2. an existing place (coordinates within tolerance, or same name) short-cuts
   validation;
3. `GeoValidator` decides whether the point is in the country and which city
   it is in;
4. the result is promoted, queued for review, or dropped.

Nothing here prints or sleeps. Collaborators are injected, which keeps the
CLI, tests and future batch jobs on the same code path.
"""

from __future__ import annotations

import re
import unicodedata
from collections import Counter
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Sequence

from pydantic import BaseModel, Field

from core.domain.models import PlaceRecord, ReasonCode, Suggestion, ValidationResult
from core.domain.outcomes import (
    BatchOutcome,
    Dropped,
    Failed,
    Outcome,
    Promoted,
    Queued,
    SuggestionLifecycle,
    SuggestionState,
    describe_outcome,
    outcome_kind,
)
from core.errors import ConfigurationError, GenerationError, RequestError
from core.interfaces.geocoding import PlaceSearch
from core.interfaces.model_service import StructuredRequester
from core.interfaces.persistence import PlaceRepository
from core.interfaces.reporter import LoggingReporter, Reporter
from core.prompts import (
    DEFAULT_EXPERIENCE_TYPES,
    build_category_prompt,
    build_hidden_gems_prompt,
    build_region_prompt,
    location_suggestions_schema,
)
from core.services.boundary import haversine_km
from core.services.geo_validator import GeoValidator
from core.services.review_queue import ReviewQueue


@dataclass(frozen=True)
class Region:
    name: str
    lat: float
    lng: float
    radius_m: int


REGIONS: dict[str, Region] = {
    r.name: r
    for r in (
        Region("Sarajevo", 43.8563, 18.4131, 30_000),
        Region("Herzegovina", 43.3438, 17.8078, 50_000),
        Region("Bosanska Krajina", 44.7758, 17.1858, 60_000),
        Region("Centralna Bosna", 44.2267, 17.6639, 50_000),
        Region("Istočna Bosna", 44.5384, 18.6732, 50_000),
        Region("Posavina", 45.0328, 18.0158, 40_000),
        Region("Podrinje", 44.1000, 19.2000, 40_000),
    )
}

# Lower goes first.
LOCATION_TYPE_PRIORITY: dict[str, int] = {
    "place": 1,
    "restaurant": 3,
    "artisan": 4,
    "guide": 5,
    "business": 6,
    "accommodation": 7,
}
CATEGORY_PRIORITY: dict[str, int] = {
    "historical": 1,
    "cultural": 2,
    "religious": 3,
    "natural": 4,
    "adventure": 5,
    "culinary": 6,
    "accommodation": 7,
}
DEFAULT_PRIORITY = 5

# Search matches farther than this from the suggestion are another place.
SEARCH_MATCH_RADIUS_KM = 2.0
SEARCH_RADIUS_M = 5_000


def suggestion_priority(suggestion: Suggestion) -> int:
    type_priority = LOCATION_TYPE_PRIORITY.get((suggestion.location_type or "").lower(), DEFAULT_PRIORITY)
    category_priority = CATEGORY_PRIORITY.get((suggestion.category or "").lower(), DEFAULT_PRIORITY)
    return category_priority * 2 + type_priority


def sort_by_priority(suggestions: Iterable[Suggestion]) -> list[Suggestion]:
    # sorted() is stable: equal scores keep the model's order.
    return sorted(suggestions, key=suggestion_priority)


def parameterize(text: str) -> str:
    """"Istočna Bosna" -> "istocna-bosna"."""

    value = unicodedata.normalize("NFKD", text.replace("đ", "dj").replace("Đ", "Dj"))
    value = "".join(ch for ch in value if not unicodedata.combining(ch)).lower()
    return re.sub(r"[^a-z0-9]+", "-", value).strip("-")


class LookupCache:
    """Memoized lookups used while building prompts.

    Owned by one orchestrator; `invalidate` drops one key or everything.
    """

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}

    def get_or_load(self, key: str, loader: Callable[[], Any]) -> Any:
        if key not in self._values:
            self._values[key] = loader()
        return self._values[key]

    def invalidate(self, key: str | None = None) -> None:
        if key is None:
            self._values.clear()
        else:
            self._values.pop(key, None)


@dataclass
class PipelineOptions:
    strict_mode: bool = True
    dedupe_tolerance: float = 0.0001
    max_locations_per_region: int = 20


class BatchSummary(BaseModel):
    """What happened to one batch of suggestions."""

    label: str = "batch"
    total: int = 0
    promoted: int = 0
    existing: int = 0
    queued: int = 0
    dropped: int = 0
    failed: int = 0
    created: list[PlaceRecord] = Field(default_factory=list)
    review_queue: list[dict[str, Any]] = Field(default_factory=list)
    review_queue_by_reason: dict[str, int] = Field(default_factory=dict)
    errors: list[str] = Field(default_factory=list)
    outcomes: list[str] = Field(default_factory=list, description="One line per processed suggestion.")


def summarize(
    outcomes: Sequence[BatchOutcome],
    *,
    label: str = "batch",
    review_queue: ReviewQueue | None = None,
    errors: Sequence[str] = (),
) -> BatchSummary:
    counts = Counter(outcome_kind(o) for o in outcomes)
    created = [o.entity for o in outcomes if isinstance(o, Promoted) and not o.existing]
    return BatchSummary(
        label=label,
        total=len(outcomes),
        promoted=counts["promoted"],
        existing=counts["existing"],
        queued=counts["queued"],
        dropped=counts["dropped"],
        failed=counts["failed"],
        created=created,
        review_queue=review_queue.summary_rows() if review_queue else [],
        review_queue_by_reason=review_queue.summary_by_reason() if review_queue else {},
        errors=list(errors),
        outcomes=[describe_outcome(o) for o in outcomes],
    )


class IngestionOrchestrator:
    def __init__(
        self,
        *,
        validator: GeoValidator,
        review_queue: ReviewQueue,
        repository: PlaceRepository,
        executor: StructuredRequester | None = None,
        place_search: PlaceSearch | None = None,
        options: PipelineOptions | None = None,
        experience_types_loader: Callable[[], Sequence[str]] | None = None,
        reporter: Reporter | None = None,
    ) -> None:
        self._validator = validator
        self._queue = review_queue
        self._repository = repository
        self._executor = executor
        self._place_search = place_search
        self.options = options or PipelineOptions()
        self.cache = LookupCache()
        self._experience_types_loader = experience_types_loader or (lambda: list(DEFAULT_EXPERIENCE_TYPES))
        self._reporter = reporter or LoggingReporter("IngestionOrchestrator")

    @property
    def review_queue(self) -> ReviewQueue:
        return self._queue

    # -- single suggestion -------------------------------------------------

    def process(self, suggestion: Suggestion, *, source_region: str | None = None) -> Outcome:
        lifecycle = SuggestionLifecycle()

        if not suggestion.name or not suggestion.has_coordinates:
            reason = ReasonCode.MISSING_NAME if not suggestion.name else ReasonCode.MISSING_COORDINATES
            lifecycle.advance(SuggestionState.DROPPED)
            self._reporter.info("Dropped incomplete suggestion", name=suggestion.name, reason=reason.value)
            return Dropped(suggestion, reason)

        existing = self._find_existing(suggestion)
        if existing is not None:
            lifecycle.advance(SuggestionState.PROMOTED)
            self._reporter.info("Skipping existing place", name=suggestion.name, id=existing.id)
            return Promoted(suggestion, existing, existing=True)

        lifecycle.advance(SuggestionState.VALIDATING)
        result = self._validator.validate_suggestion(suggestion)

        if result.valid and (not self.options.strict_mode or result.verified_city):
            lifecycle.advance(SuggestionState.PROMOTED)
            return Promoted(suggestion, self._create(suggestion, result.verified_city, source_region))

        if self.options.strict_mode:
            reason = result.reason or ReasonCode.NO_VERIFIED_CITY_IN_STRICT_MODE
            entry = self._queue.enqueue(suggestion, reason, details=result.as_details())
            lifecycle.advance(SuggestionState.QUEUED)
            return Queued(suggestion, entry)

        return self._process_lenient(suggestion, result, lifecycle, source_region)

    def _process_lenient(
        self,
        suggestion: Suggestion,
        result: ValidationResult,
        lifecycle: SuggestionLifecycle,
        source_region: str | None,
    ) -> Outcome:
        reason = result.reason or ReasonCode.GEOCODING_FAILED
        if reason is ReasonCode.COORDINATES_OUTSIDE_COUNTRY:
            lifecycle.advance(SuggestionState.DROPPED)
            self._reporter.warning(
                "Dropped suggestion outside the country",
                name=suggestion.name,
                coordinates=f"{suggestion.lat}, {suggestion.lng}",
            )
            return Dropped(suggestion, reason)

        city = result.verified_city or suggestion.claimed_city
        self._reporter.warning(
            "Validation failed, promoting with unverified city",
            name=suggestion.name,
            reason=reason.value,
            city=city,
        )
        lifecycle.advance(SuggestionState.PROMOTED)
        return Promoted(suggestion, self._create(suggestion, city, source_region))

    def _find_existing(self, suggestion: Suggestion) -> PlaceRecord | None:
        assert suggestion.lat is not None and suggestion.lng is not None and suggestion.name
        found = self._repository.find_by_coordinates(
            suggestion.lat, suggestion.lng, self.options.dedupe_tolerance
        )
        return found or self._repository.find_by_name(suggestion.name)

    def _create(self, suggestion: Suggestion, city: str | None, source_region: str | None) -> PlaceRecord:
        attributes: dict[str, Any] = {
            "name": suggestion.name,
            "lat": suggestion.lat,
            "lng": suggestion.lng,
            "city": city,
            "address": self._search_address(suggestion),
            "location_type": suggestion.location_type or "place",
            "category": suggestion.category,
            "experience_types": list(suggestion.experience_types),
            "tags": build_tags(suggestion, source_region),
        }
        record = self._repository.create(attributes)
        self._reporter.info("Created place", name=record.name, city=record.city, id=record.id)
        return record

    def _search_address(self, suggestion: Suggestion) -> str | None:
        if self._place_search is None:
            return None
        query = " ".join(p for p in (suggestion.name, suggestion.claimed_city, "Bosnia") if p)
        try:
            results = self._place_search.text_search(
                query, bias_lat=suggestion.lat, bias_lng=suggestion.lng, radius=SEARCH_RADIUS_M
            )
        except Exception as exc:
            self._reporter.warning("Place search failed", name=suggestion.name, error=str(exc))
            return None

        for item in results:
            try:
                lat, lng = float(item["lat"]), float(item["lng"])
            except (KeyError, TypeError, ValueError):
                continue
            if haversine_km(lat, lng, suggestion.lat, suggestion.lng) < SEARCH_MATCH_RADIUS_KM:
                return item.get("address")
        return None

    # -- batches -----------------------------------------------------------

    def process_batch(
        self,
        suggestions: Iterable[Suggestion | dict[str, Any]],
        *,
        source_region: str | None = None,
        label: str = "batch",
        errors: Sequence[str] = (),
    ) -> BatchSummary:
        """Process every item; a failing item never aborts the batch."""

        self._queue.reset_session()
        outcomes: list[BatchOutcome] = []
        parsed: list[Suggestion] = []
        for item in suggestions:
            if isinstance(item, Suggestion):
                parsed.append(item)
                continue
            try:
                parsed.append(Suggestion.from_payload(item))
            except Exception as exc:
                self._reporter.error("Unreadable suggestion", error=str(exc))
                outcomes.append(Failed(Suggestion(), str(exc)))

        for suggestion in sort_by_priority(parsed):
            try:
                outcomes.append(self.process(suggestion, source_region=source_region))
            except Exception as exc:
                self._reporter.error("Error processing suggestion", name=suggestion.name, error=str(exc))
                outcomes.append(Failed(suggestion, str(exc)))

        summary = summarize(outcomes, label=label, review_queue=self._queue, errors=errors)
        self._reporter.info(
            "Batch finished",
            label=label,
            promoted=summary.promoted,
            existing=summary.existing,
            queued=summary.queued,
            dropped=summary.dropped,
            failed=summary.failed,
        )
        return summary

    def generate_for_region(self, region: str) -> BatchSummary:
        data = REGIONS.get(region)
        if data is None:
            raise GenerationError(f"Unknown region: {region!r}. Known regions: {', '.join(REGIONS)}")

        prompt = build_region_prompt(
            data.name,
            lat=data.lat,
            lng=data.lng,
            radius_m=data.radius_m,
            max_locations=self.options.max_locations_per_region,
            experience_types=self.experience_types(),
        )
        payloads, errors = self._request_locations(prompt, f"IngestionOrchestrator:suggestions:{data.name}")
        return self.process_batch(payloads, source_region=data.name, label=f"region:{data.name}", errors=errors)

    def generate_by_category(self, category: str) -> BatchSummary:
        category = (category or "").strip().lower()
        if not category:
            raise GenerationError("Category is required")
        prompt = build_category_prompt(category, experience_types=self.experience_types())
        payloads, errors = self._request_locations(prompt, f"IngestionOrchestrator:category:{category}")
        return self.process_batch(payloads, label=f"category:{category}", errors=errors)

    def discover_hidden_gems(self, count: int = 15) -> BatchSummary:
        if count < 1:
            raise GenerationError("count must be at least 1")
        prompt = build_hidden_gems_prompt(count, experience_types=self.experience_types())
        payloads, errors = self._request_locations(prompt, "IngestionOrchestrator:hidden_gems")
        return self.process_batch(payloads, label="hidden-gems", errors=errors)

    def experience_types(self) -> list[str]:
        return list(self.cache.get_or_load("experience_types", self._experience_types_loader))

    def _request_locations(self, prompt: str, context_label: str) -> tuple[list[dict[str, Any]], list[str]]:
        if self._executor is None:
            raise ConfigurationError("No model service configured for generation.")
        try:
            data = self._executor.execute(prompt, location_suggestions_schema(), context_label=context_label)
        except RequestError as exc:
            self._reporter.error(
                "Suggestion request failed",
                context=context_label,
                error_class=exc.error_class.value,
                error=str(exc),
            )
            return [], [str(exc)]

        locations = data.get("locations") if isinstance(data, dict) else data
        if not isinstance(locations, list):
            return [], []
        return [item for item in locations if isinstance(item, dict)], []


def build_tags(suggestion: Suggestion, source_region: str | None) -> list[str]:
    region = source_region or suggestion.region
    tags: list[str] = []
    if suggestion.category:
        tags.append(suggestion.category)
    if region:
        tags.append(parameterize(region))
    if suggestion.insider_tip:
        tags.append("hidden-gem")
    tags.append("ai-discovered")
    return list(dict.fromkeys(tags))
