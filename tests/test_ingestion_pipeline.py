from __future__ import annotations

import pytest

from adapters.json_exporter import export_summary_json
from conftest import BELGRADE, MOSTAR, SARAJEVO, FakeExecutor, FakeGeocoder, FakePlaceSearch
from core.domain.models import PlaceRecord, ReasonCode, Suggestion
from core.domain.outcomes import (
    Dropped,
    Promoted,
    Queued,
    SuggestionLifecycle,
    SuggestionState,
    describe_outcome,
    outcome_kind,
)
from core.errors import ConfigurationError, GatewayError, GenerationError, InvalidTransitionError
from core.services.ingestion_pipeline import (
    LookupCache,
    build_tags,
    parameterize,
    sort_by_priority,
    suggestion_priority,
)


def _suggestion(name="Baščaršija", coords=SARAJEVO, city="Sarajevo", **extra) -> Suggestion:
    return Suggestion(name=name, lat=coords[0], lng=coords[1], claimed_city=city, **extra)


def test_strict_geocoding_failure_is_queued_not_persisted(make_orchestrator, repository, review_store):
    orchestrator = make_orchestrator(primary=FakeGeocoder(), fallback=FakeGeocoder())

    outcome = orchestrator.process(_suggestion())

    assert isinstance(outcome, Queued)
    assert repository.records == []
    entries = review_store.list()
    assert len(entries) == 1
    assert entries[0].failure_reason is ReasonCode.GEOCODING_FAILED
    assert entries[0].details["valid"] is False


def test_strict_valid_suggestion_is_promoted_with_verified_city(make_orchestrator, repository):
    orchestrator = make_orchestrator(primary=FakeGeocoder(address={"city": "Grad Mostar"}))

    outcome = orchestrator.process(_suggestion("Stari Most", MOSTAR, "Mostar", category="historical"))

    assert isinstance(outcome, Promoted)
    assert outcome.existing is False
    assert outcome.entity.city == "Mostar"
    assert "historical" in outcome.entity.tags
    assert "ai-discovered" in outcome.entity.tags
    assert repository.records == [outcome.entity]


def test_outside_country_is_queued_in_strict_mode(make_orchestrator, repository, review_store):
    outcome = make_orchestrator().process(_suggestion("Kalemegdan", BELGRADE, "Beograd"))

    assert isinstance(outcome, Queued)
    assert outcome.entry.failure_reason is ReasonCode.COORDINATES_OUTSIDE_COUNTRY
    assert repository.records == []


def test_outside_country_is_dropped_in_lenient_mode(make_orchestrator, repository, review_store):
    outcome = make_orchestrator(strict=False).process(_suggestion("Kalemegdan", BELGRADE, "Beograd"))

    assert isinstance(outcome, Dropped)
    assert outcome.reason is ReasonCode.COORDINATES_OUTSIDE_COUNTRY
    assert repository.records == []
    assert review_store.list() == []


def test_lenient_mode_promotes_with_claimed_city(make_orchestrator, review_store):
    orchestrator = make_orchestrator(primary=FakeGeocoder(), strict=False)

    outcome = orchestrator.process(_suggestion())

    assert isinstance(outcome, Promoted)
    assert outcome.entity.city == "Sarajevo"
    assert review_store.list() == []


def test_incomplete_suggestions_are_dropped(make_orchestrator, review_store):
    orchestrator = make_orchestrator()

    no_name = orchestrator.process(Suggestion(name=None, lat=43.8, lng=18.4))
    no_coords = orchestrator.process(Suggestion(name="Vrelo Bosne", lat=None, lng=18.4))

    assert isinstance(no_name, Dropped) and no_name.reason is ReasonCode.MISSING_NAME
    assert isinstance(no_coords, Dropped) and no_coords.reason is ReasonCode.MISSING_COORDINATES
    assert review_store.list() == []


def test_existing_place_by_coordinates_skips_validation(make_orchestrator, repository):
    existing = repository.create({"name": "Sebilj", "lat": SARAJEVO[0], "lng": SARAJEVO[1], "city": "Sarajevo"})
    primary = FakeGeocoder(address={"city": "Sarajevo"})
    orchestrator = make_orchestrator(primary=primary)

    outcome = orchestrator.process(_suggestion("Sebilj fountain", (SARAJEVO[0] + 0.00005, SARAJEVO[1])))

    assert isinstance(outcome, Promoted)
    assert outcome.existing is True
    assert outcome.entity.id == existing.id
    assert primary.calls == []
    assert len(repository.records) == 1


def test_existing_place_by_name_is_case_insensitive(make_orchestrator, repository):
    repository.create({"name": "Stari Most", "lat": MOSTAR[0], "lng": MOSTAR[1]})

    outcome = make_orchestrator().process(_suggestion("STARI MOST", (43.30, 17.80)))

    assert isinstance(outcome, Promoted) and outcome.existing is True


def test_priority_ordering_is_stable():
    hotel = _suggestion("Hotel", location_type="accommodation", category="accommodation")
    bridge = _suggestion("Bridge", location_type="place", category="historical")
    grill = _suggestion("Ćevabdžinica", location_type="restaurant", category="culinary")
    unknown = _suggestion("Mystery")

    assert suggestion_priority(bridge) == 3
    assert suggestion_priority(grill) == 15
    assert suggestion_priority(unknown) == 15
    assert suggestion_priority(hotel) == 21
    ordered = sort_by_priority([hotel, grill, unknown, bridge])
    assert [s.name for s in ordered] == ["Bridge", "Ćevabdžinica", "Mystery", "Hotel"]


def test_process_batch_counts_and_survives_item_errors(make_orchestrator, repository):
    class ExplodingRepository(type(repository)):
        def create(self, attributes):
            if attributes["name"] == "Boom":
                raise RuntimeError("database unavailable")
            return super().create(attributes)

    orchestrator = make_orchestrator(primary=FakeGeocoder(address={"city": "Sarajevo"}))
    orchestrator._repository = ExplodingRepository()

    summary = orchestrator.process_batch(
        [
            {"name": "Boom", "lat": 43.85, "lng": 18.40, "city_name": "Sarajevo"},
            {"name": "Vijećnica", "lat": "43.8590", "lng": "18.4340", "city_name": "Sarajevo"},
            {"name": "Kalemegdan", "lat": BELGRADE[0], "lng": BELGRADE[1]},
            {"lat": 43.9, "lng": 18.3},
        ]
    )

    assert summary.total == 4
    assert summary.failed == 1
    assert summary.promoted == 1
    assert summary.queued == 1
    assert summary.dropped == 1
    assert summary.review_queue_by_reason == {"coordinates_outside_country": 1}
    assert summary.created[0].name == "Vijećnica"


def test_generate_for_region_runs_the_batch(make_orchestrator):
    executor = FakeExecutor(
        {"locations": [{"name": "Sebilj", "lat": 43.8597, "lng": 18.4313, "city_name": "Sarajevo"}]}
    )
    orchestrator = make_orchestrator(primary=FakeGeocoder(address={"city": "Sarajevo"}), executor=executor)

    summary = orchestrator.generate_for_region("Sarajevo")

    assert summary.promoted == 1
    assert summary.label == "region:Sarajevo"
    assert summary.created[0].tags == ["sarajevo", "ai-discovered"]
    prompt, label = executor.calls[0]
    assert "Sarajevo region" in prompt
    assert label.endswith(":Sarajevo")


def test_generate_for_unknown_region(make_orchestrator):
    with pytest.raises(GenerationError):
        make_orchestrator(executor=FakeExecutor()).generate_for_region("Atlantis")


def test_generation_without_model_is_a_configuration_error(make_orchestrator):
    with pytest.raises(ConfigurationError):
        make_orchestrator().discover_hidden_gems(5)


def test_request_error_yields_empty_batch_with_error(make_orchestrator):
    executor = FakeExecutor(error=GatewayError("502 Bad Gateway", attempts=3))

    summary = make_orchestrator(executor=executor).generate_by_category("natural")

    assert summary.total == 0
    assert summary.errors == ["502 Bad Gateway"]


def test_hidden_gems_are_tagged(make_orchestrator):
    executor = FakeExecutor(
        [{"name": "Lukomir", "lat": 43.6333, "lng": 18.2, "city_name": "Konjic", "insider_tip": "Go in June"}]
    )
    orchestrator = make_orchestrator(primary=FakeGeocoder(address={"village": "Lukomir"}), executor=executor)

    summary = orchestrator.discover_hidden_gems(3)

    assert summary.created[0].city == "Lukomir"
    assert "hidden-gem" in summary.created[0].tags
    assert "Discover 3 HIDDEN GEMS" in executor.calls[0][0]


def test_lookup_cache_loads_once_and_invalidates():
    calls = []
    cache = LookupCache()

    def loader():
        calls.append(1)
        return ["culture"]

    assert cache.get_or_load("types", loader) == ["culture"]
    assert cache.get_or_load("types", loader) == ["culture"]
    assert len(calls) == 1
    cache.invalidate("types")
    cache.get_or_load("types", loader)
    assert len(calls) == 2
    cache.invalidate()
    cache.get_or_load("types", loader)
    assert len(calls) == 3


def test_lifecycle_rejects_illegal_transitions():
    lifecycle = SuggestionLifecycle()
    with pytest.raises(InvalidTransitionError):
        lifecycle.advance(SuggestionState.QUEUED)

    lifecycle.advance(SuggestionState.VALIDATING)
    lifecycle.advance(SuggestionState.QUEUED)
    assert lifecycle.is_terminal
    with pytest.raises(InvalidTransitionError):
        lifecycle.advance(SuggestionState.PROMOTED)


def test_outcome_kind_rejects_unknown_variants():
    with pytest.raises(TypeError):
        outcome_kind("promoted")


def test_describe_outcome():
    record = PlaceRecord(name="Stari Most", lat=MOSTAR[0], lng=MOSTAR[1], city="Mostar")
    outcome = Promoted(_suggestion("Stari Most"), record, existing=True)
    assert describe_outcome(outcome) == "existing: Stari Most (Mostar)"


def test_build_tags_and_parameterize():
    suggestion = _suggestion(category="natural", region="Istočna Bosna")
    assert build_tags(suggestion, None) == ["natural", "istocna-bosna", "ai-discovered"]
    assert parameterize("Bosanska Krajina") == "bosanska-krajina"


def test_export_summary_json(make_orchestrator, tmp_path):
    summary = make_orchestrator().process_batch([{"name": "X", "lat": BELGRADE[0], "lng": BELGRADE[1]}])

    path = export_summary_json(summary=summary, output_path=tmp_path / "out" / "summary.json")

    text = path.read_text(encoding="utf-8")
    assert '"queued": 1' in text
    assert '"coordinates_outside_country": 1' in text


def test_address_comes_from_nearby_search_hit(make_orchestrator):
    search = FakePlaceSearch(
        [
            {"name": "Stari Most", "lat": 44.5, "lng": 18.0, "address": "Too far"},
            {"name": "Stari Most", "lat": 43.3372, "lng": 17.8150, "address": "Stari Most, Mostar 88000"},
        ]
    )
    orchestrator = make_orchestrator(primary=FakeGeocoder(address={"city": "Mostar"}), place_search=search)

    outcome = orchestrator.process(_suggestion("Stari Most", MOSTAR, "Mostar"))

    assert isinstance(outcome, Promoted)
    assert outcome.entity.address == "Stari Most, Mostar 88000"
    assert search.queries == ["Stari Most Mostar Bosnia"]


def test_malformed_search_hit_never_blocks_creation(make_orchestrator, repository):
    search = FakePlaceSearch([{"name": "Stari Most", "lat": "n/a", "lng": 17.8}, {"lat": None, "lng": None}])
    orchestrator = make_orchestrator(primary=FakeGeocoder(address={"city": "Mostar"}), place_search=search)

    outcome = orchestrator.process(_suggestion("Stari Most", MOSTAR, "Mostar"))

    assert isinstance(outcome, Promoted)
    assert outcome.entity.address is None
    assert len(repository.records) == 1
