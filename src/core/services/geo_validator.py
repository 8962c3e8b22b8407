"""Geographic validation of model suggestions.

`GeoValidator.validate` answers two questions about a suggested place:

- Is the point inside the country? (`CountryBoundary`, no network involved.)
- Which city is it really in? The model's claimed city is only a hint. The
  city comes from, in order: manual overrides for zones where geocoders are
  known to be wrong, the primary provider, the rate-limited fallback
  provider, and finally the fallback's free-text address.

A geocoded city that disagrees with the claim is not an error: the geocoded
value wins and `city_match` is False.
"""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from core.domain.models import ReasonCode, Suggestion, ValidationResult
from core.interfaces.geocoding import ReverseGeocoder
from core.interfaces.reporter import LoggingReporter, Reporter
from core.services.boundary import CountryBoundary


@dataclass(frozen=True)
class CoordinateOverride:
    """Manually verified city for a lat/lng rectangle."""

    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float
    city: str

    def covers(self, lat: float, lng: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lng <= lng <= self.max_lng


DEFAULT_OVERRIDES: tuple[CoordinateOverride, ...] = (
    # Some providers map Zvornik to Srebrenica.
    CoordinateOverride(min_lat=44.38, max_lat=44.42, min_lng=19.08, max_lng=19.14, city="Zvornik"),
)

PRIMARY_CITY_FIELDS: tuple[str, ...] = ("city", "town", "village", "suburb", "municipality", "county")

# Locality fields first; municipality/county are administrative regions.
FALLBACK_CITY_FIELDS: tuple[str, ...] = (
    "city",
    "town",
    "village",
    "suburb",
    "neighbourhood",
    "hamlet",
    "locality",
    "municipality",
    "county",
    "state_district",
)

_PREFIX_RE = re.compile(
    r"^(grad|općina|opcina|opština|opstina|miasto|city of|municipality of)\s+",
    re.IGNORECASE,
)
_NORMALIZED_PREFIX_RE = re.compile(r"^(grad|opcina|opstina|miasto|city of|municipality of)\s+")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")
_POSTAL_CODE_RE = re.compile(r"\d{5}")
_NOT_A_CITY_RE = re.compile(
    r"^(Bosnia|Herzegovina|Bosna|Srbija|Serbia|Croatia|Hrvatska|Republika Srpska|Federacija|Federation)",
    re.IGNORECASE,
)


def clean_city_name(name: str) -> str:
    """Strip administrative prefixes ("Grad Mostar" -> "Mostar"), keeping case."""

    return _PREFIX_RE.sub("", name.strip()).strip()


def normalize_city_name(name: str) -> str:
    value = name.strip().casefold().replace("đ", "dj")
    value = unicodedata.normalize("NFKD", value)
    value = "".join(ch for ch in value if not unicodedata.combining(ch))
    value = _NORMALIZED_PREFIX_RE.sub("", value)
    return _NON_ALNUM_RE.sub("", value)


def cities_match(first: str | None, second: str | None) -> bool:
    """Same city modulo administrative prefixes, diacritics and case."""

    first = (first or "").strip()
    second = (second or "").strip()
    if not first and not second:
        return True
    if not first or not second:
        return False
    return normalize_city_name(first) == normalize_city_name(second)


def city_from_address(address: dict[str, Any], fields: Iterable[str]) -> str | None:
    for key in fields:
        value = address.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def city_from_formatted(formatted: str | None) -> str | None:
    """Pick the most likely city from a comma-separated display address."""

    if not formatted:
        return None
    parts = [part.strip() for part in formatted.split(",")]
    if len(parts) < 2:
        return None
    for part in parts[1:5]:
        if not part:
            continue
        if _POSTAL_CODE_RE.search(part):
            continue
        if _NOT_A_CITY_RE.match(part):
            continue
        return part
    return None


def _to_float(value: object) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str) and not value.strip():
        return None
    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


class GeoValidator:
    """Boundary containment plus city reconciliation."""

    def __init__(
        self,
        *,
        primary: ReverseGeocoder | None = None,
        fallback: ReverseGeocoder | None = None,
        boundary: CountryBoundary | None = None,
        overrides: Sequence[CoordinateOverride] = DEFAULT_OVERRIDES,
        reporter: Reporter | None = None,
    ) -> None:
        self._primary = primary
        self._fallback = fallback
        self.boundary = boundary or CountryBoundary()
        self._overrides = tuple(overrides)
        self._reporter = reporter or LoggingReporter("GeoValidator")

    def validate(
        self,
        lat: object,
        lng: object,
        claimed_city: str | None = None,
        *,
        name: str | None = None,
        require_name: bool = False,
    ) -> ValidationResult:
        lat_f = _to_float(lat)
        lng_f = _to_float(lng)
        if lat_f is None or lng_f is None:
            return ValidationResult.failure(ReasonCode.MISSING_COORDINATES, claimed_city=claimed_city)
        if require_name and not (name or "").strip():
            return ValidationResult.failure(ReasonCode.MISSING_NAME, claimed_city=claimed_city)

        if not self.boundary.contains(lat_f, lng_f):
            return ValidationResult.failure(ReasonCode.COORDINATES_OUTSIDE_COUNTRY, claimed_city=claimed_city)

        verified_city = self.resolve_city(lat_f, lng_f)
        if not verified_city:
            return ValidationResult.failure(ReasonCode.GEOCODING_FAILED, claimed_city=claimed_city)

        match = cities_match(verified_city, claimed_city)
        if not match:
            self._reporter.info(
                "City corrected during validation",
                claimed=claimed_city,
                geocoded=verified_city,
            )
        return ValidationResult.success(verified_city, city_match=match, claimed_city=claimed_city)

    def validate_suggestion(self, suggestion: Suggestion) -> ValidationResult:
        return self.validate(
            suggestion.lat,
            suggestion.lng,
            suggestion.claimed_city,
            name=suggestion.name,
            require_name=True,
        )

    def override_for(self, lat: float, lng: float) -> str | None:
        for override in self._overrides:
            if override.covers(lat, lng):
                return override.city
        return None

    def resolve_city(self, lat: float, lng: float) -> str | None:
        """First non-empty result of the resolution chain, cleaned of prefixes."""

        override = self.override_for(lat, lng)
        if override:
            self._reporter.info("Using coordinate override", lat=lat, lng=lng, city=override)
            return override

        if self._primary is not None:
            address = self._lookup(self._primary, lat, lng)
            city = city_from_address(address, PRIMARY_CITY_FIELDS)
            if city:
                self._reporter.info(
                    "Primary geocoder returned city",
                    provider=self._primary.name,
                    lat=lat,
                    lng=lng,
                    city=city,
                )
                return clean_city_name(city)
            self._reporter.debug("Primary geocoder returned no city", lat=lat, lng=lng)

        if self._fallback is not None:
            address = self._lookup(self._fallback, lat, lng)
            city = city_from_address(address, FALLBACK_CITY_FIELDS)
            if not city:
                city = city_from_formatted(address.get("formatted"))
                if city:
                    self._reporter.debug("Extracted city from formatted address", city=city)
            if city:
                self._reporter.info(
                    "Fallback geocoder returned city",
                    provider=self._fallback.name,
                    lat=lat,
                    lng=lng,
                    city=city,
                )
                return clean_city_name(city)
            self._reporter.debug("Fallback geocoder could not determine city", lat=lat, lng=lng)

        return None

    def _lookup(self, provider: ReverseGeocoder, lat: float, lng: float) -> dict[str, Any]:
        try:
            address = provider.reverse_geocode(lat, lng)
        except Exception as exc:
            self._reporter.warning(
                "Reverse geocoding failed",
                provider=getattr(provider, "name", type(provider).__name__),
                lat=lat,
                lng=lng,
                error=str(exc),
            )
            return {}
        return address if isinstance(address, dict) else {}
