"""Nominatim (OpenStreetMap) como proveedor fallback.

La política de uso exige como máximo 1 request/s y un User-Agent
identificable; por eso se duerme `fallback_min_interval_seconds` antes de
cada llamada, sin excepción.
"""

from __future__ import annotations

import time
from typing import Any, Callable

import httpx

from adapters.http_client import build_client
from core.config import AppSettings


class NominatimGeocoder:
    name = "nominatim"

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._settings = settings or AppSettings()
        self._base_url = self._settings.nominatim_url.rstrip("/")
        self._client = client or build_client(self._settings)
        self._sleep = sleep
        self.min_interval = self._settings.fallback_min_interval_seconds

    def close(self) -> None:
        self._client.close()

    def reverse_geocode(self, lat: float, lng: float) -> dict[str, Any]:
        self._sleep(self.min_interval)
        response = self._client.get(
            f"{self._base_url}/reverse",
            params={"lat": lat, "lon": lng, "format": "jsonv2", "addressdetails": 1},
        )
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict) or data.get("error"):
            return {}

        address = dict(data.get("address") or {})
        address["formatted"] = data.get("display_name")
        return address
