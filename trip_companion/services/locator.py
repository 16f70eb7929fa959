from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo

from trip_companion.models import Coordinates, Itinerary, Leg, Step, TrackingStatus
from trip_companion.services.instructions import (
    DEFAULT_TZ,
    DeviatedInstruction,
    GetOffHereTransitInstruction,
    GetOffNextStopTransitInstruction,
    GetOffSoonTransitInstruction,
    OnTrackInstruction,
    TransitLegSummaryInstruction,
    TripInstruction,
    WaitForTransitInstruction,
)
from trip_companion.utils.geometry import InstructionThresholds, get_distance, get_distance_from_line

logger = logging.getLogger(__name__)

BUS_WINDOW = timedelta(minutes=15)
SUMMARY_MIN_SPEED = 5.0   # m/s
GET_OFF_SOON_STOPS = 3


@dataclass
class LocatorResult:
    status: TrackingStatus
    instruction: TripInstruction | None = None
    leg: Leg | None = None
    step: Step | None = None
    bus_leg_to_notify: Leg | None = None


def leg_points(leg: Leg) -> list[Coordinates]:
    middle = leg.intermediate_stops if leg.transit_leg else leg.steps
    return [leg.from_place.to_coordinates(), *(p.to_coordinates() for p in middle), leg.to_place.to_coordinates()]


def distance_to_leg(position: Coordinates, leg: Leg) -> float:
    points = leg_points(leg)
    return min(
        get_distance_from_line(a, b, position) for a, b in zip(points, points[1:])
    )


def expected_leg(position: Coordinates, itinerary: Itinerary) -> tuple[int | None, float]:
    """Index of the leg nearest to *position*, and the distance to it."""
    best: int | None = None
    best_distance = float("inf")
    for i, leg in enumerate(itinerary.legs):
        distance = distance_to_leg(position, leg)
        if distance < best_distance:
            best, best_distance = i, distance
    return best, best_distance


def _nearest_index(position: Coordinates, points: list[Coordinates]) -> int:
    return min(range(len(points)), key=lambda i: get_distance(position, points[i]))


def _is_past(position: Coordinates, point: Coordinates, following: Coordinates) -> bool:
    return get_distance(position, following) < get_distance(point, following)


def next_step(position: Coordinates, leg: Leg) -> Step | None:
    """The step the traveler is heading toward on a walk leg."""
    if not leg.steps:
        return None
    coords = [s.to_coordinates() for s in leg.steps]
    i = _nearest_index(position, coords)
    following = coords[i + 1] if i + 1 < len(coords) else leg.to_place.to_coordinates()
    if _is_past(position, coords[i], following):
        return leg.steps[i + 1] if i + 1 < len(leg.steps) else None
    return leg.steps[i]


def stops_remaining(position: Coordinates, leg: Leg) -> int:
    """Intermediate stops not yet passed on a transit leg."""
    stops = [s.to_coordinates() for s in leg.intermediate_stops]
    if not stops:
        return 0
    i = _nearest_index(position, stops)
    following = stops[i + 1] if i + 1 < len(stops) else leg.to_place.to_coordinates()
    passed = i + 1 if _is_past(position, stops[i], following) else i
    return len(stops) - passed


def in_operational_window(leg: Leg, now: datetime) -> bool:
    return now <= leg.start_time and leg.start_time - now <= BUS_WINDOW


class TravelerLocator:
    """Works out where a traveler is on an itinerary and what to tell them."""

    def __init__(
        self,
        thresholds: InstructionThresholds = InstructionThresholds(),
        deviation_tolerance: float = 20.0,
        tz: tzinfo = DEFAULT_TZ,
    ) -> None:
        self.thresholds = thresholds
        self.deviation_tolerance = deviation_tolerance
        self.tz = tz

    def locate(
        self, position: Coordinates, itinerary: Itinerary, now: datetime, speed: float = 0.0
    ) -> LocatorResult:
        if not itinerary.legs:
            return LocatorResult(TrackingStatus.NO_STATUS)

        last_leg = itinerary.legs[-1]
        to_destination = get_distance(position, last_leg.to_place.to_coordinates())
        if to_destination <= self.thresholds.immediate_radius:
            return LocatorResult(
                TrackingStatus.ENDED,
                OnTrackInstruction(to_destination, destination=last_leg.to_place),
                leg=last_leg,
            )

        index, off_route = expected_leg(position, itinerary)
        leg = itinerary.legs[index]
        if off_route > self.deviation_tolerance:
            return self._deviated(position, leg)

        if leg.transit_leg:
            instruction = self._transit_instruction(position, leg, speed)
            return LocatorResult(TrackingStatus.ON_TRACK, instruction, leg=leg)
        return self._walk(position, index, itinerary, now)

    def _walk(self, position: Coordinates, index: int, itinerary: Itinerary, now: datetime) -> LocatorResult:
        leg = itinerary.legs[index]
        to_end = get_distance(position, leg.to_place.to_coordinates())
        if to_end <= self.thresholds.upcoming_radius:
            following = leg_after(itinerary, index)
            if following is not None and following.is_bus and in_operational_window(following, now):
                return LocatorResult(
                    TrackingStatus.ON_TRACK,
                    WaitForTransitInstruction(following, now, self.tz),
                    leg=leg,
                    bus_leg_to_notify=following,
                )
            return LocatorResult(
                TrackingStatus.ON_TRACK, OnTrackInstruction(to_end, destination=leg.to_place), leg=leg,
            )
        step = next_step(position, leg)
        if step is None:
            return LocatorResult(
                TrackingStatus.ON_TRACK, OnTrackInstruction(to_end, destination=leg.to_place), leg=leg,
            )
        distance = get_distance(position, step.to_coordinates())
        return LocatorResult(TrackingStatus.ON_TRACK, OnTrackInstruction(distance, step=step), leg=leg, step=step)

    def _deviated(self, position: Coordinates, leg: Leg) -> LocatorResult:
        if leg.steps:
            coords = [s.to_coordinates() for s in leg.steps]
            step = leg.steps[_nearest_index(position, coords)]
            distance = get_distance(position, step.to_coordinates())
            if distance <= self.thresholds.upcoming_radius:
                instruction: TripInstruction = OnTrackInstruction(distance, step=step)
            else:
                instruction = DeviatedInstruction(step.street_name)
            return LocatorResult(TrackingStatus.DEVIATED, instruction, leg=leg, step=step)
        return LocatorResult(TrackingStatus.DEVIATED, DeviatedInstruction(leg.to_place.name), leg=leg)

    def _transit_instruction(self, position: Coordinates, leg: Leg, speed: float) -> TripInstruction | None:
        stop_name = leg.to_place.name
        to_end = get_distance(position, leg.to_place.to_coordinates())
        if to_end <= self.thresholds.upcoming_radius:
            return GetOffHereTransitInstruction(stop_name)

        remaining = stops_remaining(position, leg)
        if remaining == 1:
            last_stop = leg.intermediate_stops[-1].to_coordinates()
            if get_distance(position, last_stop) <= self.thresholds.upcoming_radius:
                return GetOffNextStopTransitInstruction(stop_name)
        if remaining == 0:
            return GetOffNextStopTransitInstruction(stop_name)
        if remaining <= GET_OFF_SOON_STOPS:
            return GetOffSoonTransitInstruction(stop_name)
        if remaining == len(leg.intermediate_stops) and speed >= SUMMARY_MIN_SPEED:
            return TransitLegSummaryInstruction(leg)
        return None


def leg_after(itinerary: Itinerary, index: int) -> Leg | None:
    following = index + 1
    return itinerary.legs[following] if following < len(itinerary.legs) else None
