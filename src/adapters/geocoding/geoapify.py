"""Geoapify (proveedor primario de geocoding).

Endpoints usados (`/v1/geocode`):
- `reverse`: lat/lon -> dirección estructurada (features[0].properties).
- `search`: texto libre con sesgo de proximidad opcional.

Los errores HTTP se propagan; `GeoValidator` los registra y los trata como
"sin resultado".
"""

from __future__ import annotations

from typing import Any

import httpx

from adapters.http_client import build_client
from core.config import AppSettings
from core.errors import ConfigurationError

_ADDRESS_FIELDS = (
    "city",
    "town",
    "village",
    "suburb",
    "neighbourhood",
    "municipality",
    "county",
    "state",
    "country",
    "country_code",
    "postcode",
)


def parse_reverse_feature(feature: dict[str, Any]) -> dict[str, Any]:
    properties = feature.get("properties") or {}
    address: dict[str, Any] = {"formatted": properties.get("formatted")}
    for key in _ADDRESS_FIELDS:
        address[key] = properties.get(key)
    address["lat"] = properties.get("lat")
    address["lng"] = properties.get("lon")
    return address


def parse_search_feature(feature: dict[str, Any]) -> dict[str, Any]:
    properties = feature.get("properties") or {}
    return {
        "name": properties.get("name") or properties.get("address_line1"),
        "lat": properties.get("lat"),
        "lng": properties.get("lon"),
        "address": properties.get("formatted"),
        "category": properties.get("category"),
    }


class GeoapifyGeocoder:
    name = "geoapify"

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        client: httpx.Client | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        api_key = (self._settings.geoapify_api_key or "").strip()
        if not api_key:
            raise ConfigurationError("Geoapify API key not configured (POI_INGEST_GEOAPIFY_API_KEY).")
        self._api_key = api_key
        self._base_url = self._settings.geoapify_base_url.rstrip("/")
        self._client = client or build_client(self._settings)

    def close(self) -> None:
        self._client.close()

    def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        response = self._client.get(f"{self._base_url}/{path}", params={**params, "apiKey": self._api_key})
        response.raise_for_status()
        data = response.json()
        return data if isinstance(data, dict) else {}

    def reverse_geocode(self, lat: float, lng: float) -> dict[str, Any]:
        data = self._get("reverse", {"lat": lat, "lon": lng, "lang": self._settings.geoapify_language})
        features = data.get("features") or []
        if not features:
            return {}
        return parse_reverse_feature(features[0])

    def text_search(
        self,
        query: str,
        bias_lat: float | None = None,
        bias_lng: float | None = None,
        radius: int | None = None,
        *,
        limit: int = 20,
    ) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"text": query, "limit": limit, "lang": self._settings.geoapify_language}
        if bias_lat is not None and bias_lng is not None:
            # Geoapify espera lon,lat.
            params["bias"] = f"proximity:{bias_lng},{bias_lat}"
        data = self._get("search", params)
        results = [parse_search_feature(f) for f in data.get("features") or []]
        return [r for r in results if r.get("name")]
