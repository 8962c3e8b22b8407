"""Proveedores de geocoding.

- `GeoapifyGeocoder`: primario (reverse + búsqueda textual).
- `NominatimGeocoder`: fallback gratuito, limitado a 1 req/s.
"""

from __future__ import annotations

from adapters.geocoding.geoapify import GeoapifyGeocoder
from adapters.geocoding.nominatim import NominatimGeocoder

__all__ = ["GeoapifyGeocoder", "NominatimGeocoder"]
