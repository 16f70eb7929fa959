from __future__ import annotations

import pytest

from trip_companion.models import Coordinates
from trip_companion.utils.geometry import (
    calculate_bearing,
    create_point,
    get_distance,
    get_distance_from_line,
)

ORIGIN = Coordinates(33.95, -83.98)


def test_distance_along_meridian():
    # One thousandth of a degree of latitude is about 111 m.
    assert get_distance(ORIGIN, Coordinates(33.951, -83.98)) == pytest.approx(111.2, abs=0.5)


def test_distance_is_symmetric():
    other = Coordinates(33.96, -83.97)
    assert get_distance(ORIGIN, other) == pytest.approx(get_distance(other, ORIGIN))


def test_point_beside_segment():
    start = Coordinates(33.95, -83.98)
    end = Coordinates(33.951, -83.98)
    beside = create_point(Coordinates(33.9505, -83.98), 15, 90)
    assert get_distance_from_line(start, end, beside) == pytest.approx(15, abs=0.2)


def test_point_beyond_segment_end_measures_to_endpoint():
    start = Coordinates(33.95, -83.98)
    end = Coordinates(33.951, -83.98)
    beyond = Coordinates(33.952, -83.98)
    assert get_distance_from_line(start, end, beyond) == pytest.approx(get_distance(end, beyond), rel=1e-3)


def test_degenerate_segment():
    point = Coordinates(33.9501, -83.98)
    assert get_distance_from_line(ORIGIN, ORIGIN, point) == pytest.approx(get_distance(ORIGIN, point))


@pytest.mark.parametrize("bearing", [45, 90, 180, 270])
def test_create_point_round_trips_bearing_and_distance(bearing):
    target = create_point(ORIGIN, 100, bearing)
    assert get_distance(ORIGIN, target) == pytest.approx(100, abs=0.1)
    assert calculate_bearing(ORIGIN, target) == pytest.approx(bearing, abs=0.1)
