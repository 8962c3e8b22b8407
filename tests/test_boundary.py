from __future__ import annotations

from core.services.boundary import (
    BIH_BORDER_POLYGON,
    BIH_BOUNDING_BOX,
    CountryBoundary,
    haversine_km,
    point_in_polygon,
)


def test_cities_inside_the_country():
    boundary = CountryBoundary()
    assert boundary.contains(43.8563, 18.4131)  # Sarajevo
    assert boundary.contains(43.3438, 17.8078)  # Mostar
    assert boundary.contains(44.395, 19.095)  # Zvornik


def test_points_outside_the_bounding_box():
    boundary = CountryBoundary()
    assert not boundary.contains(44.82, 20.45)  # Belgrade
    assert not boundary.contains(45.81, 15.98)  # Zagreb


def test_points_inside_the_box_but_outside_the_polygon():
    boundary = CountryBoundary()
    # Serbia, east of the Drina.
    assert boundary.in_bounding_box(44.0, 19.40)
    assert not boundary.contains(44.0, 19.40)
    # Split, Croatia.
    assert boundary.in_bounding_box(43.51, 16.44)
    assert not boundary.contains(43.51, 16.44)


def test_polygon_is_closed():
    assert BIH_BORDER_POLYGON[0] == BIH_BORDER_POLYGON[-1]


def test_ray_casting_on_a_square():
    square = [(0.0, 0.0), (0.0, 1.0), (1.0, 1.0), (1.0, 0.0)]
    assert point_in_polygon(0.5, 0.5, square)
    assert not point_in_polygon(1.5, 0.5, square)


def test_bounding_box_limits():
    assert BIH_BOUNDING_BOX.contains(42.50, 15.70)
    assert not BIH_BOUNDING_BOX.contains(42.49, 17.0)


def test_haversine_sarajevo_mostar():
    d = haversine_km(43.8563, 18.4131, 43.3438, 17.8078)
    assert 60 < d < 90


def test_distance_to_border_is_positive():
    assert CountryBoundary().distance_to_border_km(43.8563, 18.4131) > 10
