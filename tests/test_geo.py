"""Tests for great-circle distance calculation."""

from __future__ import annotations

import math

import pytest

from src.models.emergency import Coordinate
from src.services.geo import EARTH_RADIUS_KM, distance_km, haversine_km


class TestHaversine:
    def test_identical_points_are_zero(self) -> None:
        assert haversine_km(28.6139, 77.2090, 28.6139, 77.2090) == 0.0

    def test_symmetric(self) -> None:
        forward = haversine_km(28.6139, 77.2090, 19.0760, 72.8777)
        backward = haversine_km(19.0760, 72.8777, 28.6139, 77.2090)
        assert forward == backward, "distance must not depend on argument order"

    def test_delhi_to_mumbai(self) -> None:
        assert haversine_km(28.6139, 77.2090, 19.0760, 72.8777) == pytest.approx(1148, abs=5)

    def test_one_degree_of_latitude(self) -> None:
        expected = EARTH_RADIUS_KM * math.pi / 180
        assert haversine_km(0.0, 0.0, 1.0, 0.0) == pytest.approx(expected)
        assert expected == pytest.approx(111.19, abs=0.01)

    def test_antipodal_points(self) -> None:
        assert haversine_km(0.0, 0.0, 0.0, 180.0) == pytest.approx(math.pi * EARTH_RADIUS_KM)

    def test_not_rounded(self) -> None:
        value = haversine_km(28.6139, 77.2090, 28.6304, 77.2177)
        assert value != round(value, 1), "rounding belongs to the responder normalization step"


class TestDistanceKm:
    def test_uses_coordinates(self) -> None:
        a = Coordinate(lat=28.6139, lng=77.2090)
        b = Coordinate(lat=28.6304, lng=77.2177)
        assert distance_km(a, b) == haversine_km(28.6139, 77.2090, 28.6304, 77.2177)

    def test_short_distance_in_delhi(self) -> None:
        a = Coordinate(lat=28.6139, lng=77.2090)
        b = Coordinate(lat=28.6304, lng=77.2177)
        assert distance_km(a, b) == pytest.approx(2.02, abs=0.02)
