from __future__ import annotations

import math
from dataclasses import dataclass

from shapely.geometry import LineString, Point

from trip_companion.models import Coordinates

EARTH_RADIUS_M = 6_371_000.0


@dataclass(frozen=True)
class InstructionThresholds:
    """Radii, in meters, that decide whether and how urgently to instruct."""

    immediate_radius: float = 2.0
    upcoming_radius: float = 10.0

    @classmethod
    def from_settings(cls, settings) -> InstructionThresholds:
        return cls(
            immediate_radius=settings.trip_instruction_immediate_radius,
            upcoming_radius=settings.trip_instruction_upcoming_radius,
        )


def get_distance(a: Coordinates, b: Coordinates) -> float:
    """Great-circle distance in meters."""
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    dphi = math.radians(b.lat - a.lat)
    dlambda = math.radians(b.lon - a.lon)
    hav = (
        math.sin(dphi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * (math.sin(dlambda / 2) ** 2)
    )
    return 2 * EARTH_RADIUS_M * math.atan2(math.sqrt(hav), math.sqrt(1 - hav))


def _project(origin: Coordinates, c: Coordinates) -> tuple[float, float]:
    # Equirectangular projection around origin, good enough over a few km.
    x = math.radians(c.lon - origin.lon) * math.cos(math.radians(origin.lat)) * EARTH_RADIUS_M
    y = math.radians(c.lat - origin.lat) * EARTH_RADIUS_M
    return x, y


def get_distance_from_line(start: Coordinates, end: Coordinates, point: Coordinates) -> float:
    """Meters from *point* to the segment start-end."""
    if start == end:
        return get_distance(start, point)
    line = LineString([_project(start, start), _project(start, end)])
    return line.distance(Point(_project(start, point)))


def calculate_bearing(a: Coordinates, b: Coordinates) -> float:
    """Initial bearing from a to b, degrees clockwise from north in [0, 360)."""
    phi1 = math.radians(a.lat)
    phi2 = math.radians(b.lat)
    dlambda = math.radians(b.lon - a.lon)
    y = math.sin(dlambda) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(dlambda)
    return (math.degrees(math.atan2(y, x)) + 360) % 360


def create_point(start: Coordinates, distance: float, bearing: float) -> Coordinates:
    """Point reached travelling *distance* meters from *start* on *bearing*."""
    delta = distance / EARTH_RADIUS_M
    theta = math.radians(bearing)
    phi1 = math.radians(start.lat)
    lambda1 = math.radians(start.lon)
    phi2 = math.asin(
        math.sin(phi1) * math.cos(delta) + math.cos(phi1) * math.sin(delta) * math.cos(theta)
    )
    lambda2 = lambda1 + math.atan2(
        math.sin(theta) * math.sin(delta) * math.cos(phi1),
        math.cos(delta) - math.sin(phi1) * math.sin(phi2),
    )
    return Coordinates(math.degrees(phi2), (math.degrees(lambda2) + 540) % 360 - 180)
