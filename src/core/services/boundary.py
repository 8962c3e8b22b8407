"""Bosnia and Herzegovina boundary test.

Two stages:
1. a bounding box slightly larger than the country rejects most points cheaply;
2. ray casting against an ordered polygon of the real border decides the rest.

A box alone accepts points in Serbia east of the Drina (the border there is a
river, not a meridian), so the polygon is denser along that section.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

# (lat, lng) traced clockwise from the north-west corner near Bihać.
BIH_BORDER_POLYGON: tuple[tuple[float, float], ...] = (
    # Northwest, Croatian border near Bihać
    (44.95, 15.73),
    (45.05, 15.78),
    (45.15, 15.95),
    (45.20, 16.10),
    # Northern border with Croatia (Sava)
    (45.25, 16.35),
    (45.27, 16.60),
    (45.26, 16.85),
    (45.22, 17.15),
    (45.20, 17.45),
    (45.15, 17.75),
    (45.08, 18.05),
    (45.05, 18.35),
    (45.02, 18.55),
    # Brčko district and Posavina
    (44.95, 18.75),
    (44.88, 18.85),
    (44.87, 18.95),
    # Eastern border, Drina
    (44.80, 19.03),
    (44.70, 19.08),
    (44.60, 19.10),
    (44.50, 19.12),  # Zvornik
    (44.40, 19.10),
    (44.30, 19.08),
    (44.20, 19.15),
    (44.10, 19.22),
    (44.00, 19.28),
    (43.90, 19.32),
    (43.80, 19.35),  # Višegrad
    (43.70, 19.38),
    (43.60, 19.35),
    (43.50, 19.28),
    (43.40, 19.20),
    (43.30, 19.08),  # Foča
    # Southeast, Montenegro
    (43.20, 18.95),
    (43.10, 18.85),
    (43.00, 18.70),
    (42.90, 18.55),
    (42.80, 18.45),
    (42.70, 18.35),  # Trebinje
    (42.60, 18.20),
    (42.55, 18.05),
    # South, Montenegro/Croatia
    (42.58, 17.85),
    (42.65, 17.65),
    (42.75, 17.50),
    (42.85, 17.40),
    # Neum
    (42.92, 17.55),
    (42.95, 17.45),
    (43.00, 17.35),
    (43.08, 17.28),
    (43.18, 17.25),
    # Western border with Croatia, northbound
    (43.30, 17.15),
    (43.45, 17.00),
    (43.60, 16.85),
    (43.75, 16.75),
    (43.90, 16.60),
    (44.05, 16.45),
    (44.20, 16.30),
    (44.35, 16.15),
    (44.50, 16.00),
    (44.65, 15.88),
    (44.80, 15.78),
    (44.95, 15.73),
)

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    max_lat: float
    min_lng: float
    max_lng: float

    def contains(self, lat: float, lng: float) -> bool:
        return self.min_lat <= lat <= self.max_lat and self.min_lng <= lng <= self.max_lng


BIH_BOUNDING_BOX = BoundingBox(min_lat=42.50, max_lat=45.30, min_lng=15.70, max_lng=19.45)


def point_in_polygon(lat: float, lng: float, polygon: Sequence[tuple[float, float]]) -> bool:
    """Ray casting: count crossings of a ray going east from the point."""

    inside = False
    j = len(polygon) - 1
    for i in range(len(polygon)):
        yi, xi = polygon[i]
        yj, xj = polygon[j]
        if (yi > lat) != (yj > lat) and lng < (xj - xi) * (lat - yi) / (yj - yi) + xi:
            inside = not inside
        j = i
    return inside


def haversine_km(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    dlat = math.radians(lat2 - lat1)
    dlng = math.radians(lng2 - lng1)
    a = (
        math.sin(dlat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(dlng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


class CountryBoundary:
    """Boundary of one country: box pre-filter plus polygon."""

    def __init__(
        self,
        polygon: Sequence[tuple[float, float]] = BIH_BORDER_POLYGON,
        bounding_box: BoundingBox = BIH_BOUNDING_BOX,
        name: str = "Bosnia and Herzegovina",
    ) -> None:
        self.polygon = tuple(polygon)
        self.bounding_box = bounding_box
        self.name = name

    def in_bounding_box(self, lat: float, lng: float) -> bool:
        return self.bounding_box.contains(lat, lng)

    def contains(self, lat: float, lng: float) -> bool:
        if not self.in_bounding_box(lat, lng):
            return False
        return point_in_polygon(lat, lng, self.polygon)

    def distance_to_border_km(self, lat: float, lng: float) -> float:
        """Approximate: distance to the nearest polygon vertex."""

        return min(haversine_km(lat, lng, vlat, vlng) for vlat, vlng in self.polygon)
