"""
Shared fixtures for the trip companion test suite.

Provides:
- Place / step / leg / itinerary factories
- A weekday commuter trip and its user
- A fake planner that returns canned responses
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

import pytest
import pytz

from trip_companion.models import (
    Itinerary,
    Leg,
    LocalizedAlert,
    MobilityProfile,
    MonitoredTrip,
    OtpUser,
    Place,
    Step,
)
from trip_companion.services.base import PlannerError
from trip_companion.services.planner import PlanResponse

NY = pytz.timezone("America/New_York")


def local(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    return NY.localize(datetime(year, month, day, hour, minute))


# ---------------------------------------------------------------------------
# Itinerary factories
# ---------------------------------------------------------------------------


def make_place(name: str = "Place", lat: float = 33.95, lon: float = -83.98, **overrides: Any) -> Place:
    return Place(name=name, lat=lat, lon=lon, **overrides)


def make_leg(
    start: datetime,
    minutes: int = 20,
    mode: str = "BUS",
    **overrides: Any,
) -> Leg:
    base: dict[str, Any] = {
        "mode": mode,
        "start_time": start,
        "end_time": start + timedelta(minutes=minutes),
        "from_place": make_place("Origin stop", 33.950, -83.980, stop_id="S1"),
        "to_place": make_place("Destination stop", 33.960, -83.970, stop_id="S2"),
        "transit_leg": mode != "WALK",
        "duration": minutes * 60,
        "route_short_name": "10A" if mode != "WALK" else None,
        "route_id": "R10" if mode != "WALK" else None,
        "agency_id": "GCT" if mode != "WALK" else None,
        "trip_id": "T100" if mode != "WALK" else None,
    }
    base.update(overrides)
    return Leg(**base)


def make_itinerary(start: datetime, legs: list[Leg] | None = None, minutes: int = 40) -> Itinerary:
    legs = legs if legs is not None else [make_leg(start, minutes)]
    return Itinerary(
        start_time=legs[0].start_time if legs else start,
        end_time=legs[-1].end_time if legs else start + timedelta(minutes=minutes),
        legs=tuple(legs),
        duration=minutes * 60,
    )


def make_alert(text: str) -> LocalizedAlert:
    return LocalizedAlert(header_text=text, description_text=text, url=None)


def make_step(street: str, lat: float, lon: float, relative: str = "LEFT", absolute: str = "NORTH") -> Step:
    return Step(relative, absolute, street, lat, lon)


# ---------------------------------------------------------------------------
# Users and trips
# ---------------------------------------------------------------------------


def make_user(**overrides: Any) -> OtpUser:
    base: dict[str, Any] = {
        "id": "user-1",
        "email": "rider@example.com",
        "phone_number": "+15555550100",
        "notification_channel": "email",
        "mobility_profile": MobilityProfile("None"),
    }
    base.update(overrides)
    return OtpUser(**base)


def make_trip(**overrides: Any) -> MonitoredTrip:
    base: dict[str, Any] = {
        "id": "trip-1",
        "user_id": "user-1",
        "trip_name": "Morning commute",
        "trip_time": "08:00",
        "from_place": make_place("Home"),
        "to_place": make_place("Work"),
        "monday": True,
        "tuesday": True,
        "wednesday": True,
        "thursday": True,
        "friday": True,
        "query_params": {"fromPlace": "33.95,-83.98", "toPlace": "33.96,-83.97", "time": "08:00"},
    }
    base.update(overrides)
    return MonitoredTrip(**base)


@pytest.fixture
def user() -> OtpUser:
    return make_user()


@pytest.fixture
def trip() -> MonitoredTrip:
    return make_trip()


# ---------------------------------------------------------------------------
# Planner double
# ---------------------------------------------------------------------------


class FakePlanner:
    """Returns queued responses in order, repeating the last one."""

    def __init__(self, *responses: PlanResponse | Exception) -> None:
        self.responses = list(responses)
        self.calls: list[tuple[dict, Any]] = []

    async def plan(self, query_params, target_date) -> PlanResponse:
        self.calls.append((query_params, target_date))
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        return response


def ok(*itineraries: Itinerary) -> PlanResponse:
    return PlanResponse(status_code=200, itineraries=list(itineraries))


def unreachable() -> PlannerError:
    return PlannerError("connection refused")
