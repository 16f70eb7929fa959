from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from types import MappingProxyType
from typing import Any

import aiohttp

from trip_companion.models import Itinerary, Leg, LocalizedAlert, Place, Step
from trip_companion.services.base import PlannerError
from trip_companion.utils.http import get_json_once

logger = logging.getLogger(__name__)

# Planner error ids and the text shown to riders.
PLANNER_ERROR_MESSAGES = MappingProxyType({
    400: "The trip planner could not understand the request.",
    404: "No trip found. There may be no transit service within the maximum specified distance or at the specified time.",
    406: "No transit times are available. The date may be past or too far in the future.",
    408: "The trip planner is taking too long to process your request.",
    409: "Origin is within a trivial distance of the destination.",
    413: "The request has errors that the server is not willing or able to process.",
    440: "The trip planner does not know the origin location.",
    450: "The trip planner does not know the destination location.",
    460: "The trip planner does not know the origin or destination location.",
    470: "Some of the locations are not accessible by wheelchair.",
    500: "The trip planner encountered an unexpected error.",
    503: "The trip planner is temporarily unavailable.",
})


def planner_error_message(error_id: int) -> str:
    return PLANNER_ERROR_MESSAGES.get(error_id, PLANNER_ERROR_MESSAGES[500])


@dataclass
class PlanResponse:
    status_code: int
    itineraries: list[Itinerary] = field(default_factory=list)
    error_id: int | None = None

    @property
    def ok(self) -> bool:
        return self.status_code < 400 and self.error_id is None

    @property
    def error_message(self) -> str | None:
        return planner_error_message(self.error_id) if self.error_id is not None else None


class PlannerClient:
    """Single-attempt client for the trip-planning service."""

    def __init__(self, url: str, timeout: float = 15.0) -> None:
        self.url = url
        self.timeout = timeout

    async def plan(self, query_params: dict[str, str], target_date: date) -> PlanResponse:
        params = dict(query_params)
        params["date"] = target_date.isoformat()
        try:
            status, body = await get_json_once(self.url, params=params, timeout=self.timeout)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise PlannerError(f"planner request failed: {exc!r}") from exc
        except ValueError as exc:
            raise PlannerError(f"planner returned an unreadable body: {exc!r}") from exc
        if status >= 400:
            return PlanResponse(status_code=status)
        return parse_plan_response(status, body or {})


def parse_plan_response(status: int, body: dict[str, Any]) -> PlanResponse:
    error = body.get("error")
    if error:
        return PlanResponse(status_code=status, error_id=int(error.get("id", 500)))
    plan = body.get("plan") or {}
    itineraries = [_parse_itinerary(raw) for raw in plan.get("itineraries") or []]
    return PlanResponse(status_code=status, itineraries=itineraries)


def _ts(millis: int | None) -> datetime | None:
    if millis is None:
        return None
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)


def _parse_place(raw: dict[str, Any]) -> Place:
    return Place(
        name=raw.get("name", ""),
        lat=float(raw.get("lat", 0.0)),
        lon=float(raw.get("lon", 0.0)),
        stop_id=raw.get("stopId"),
        stop_code=raw.get("stopCode"),
    )


def _parse_step(raw: dict[str, Any]) -> Step:
    return Step(
        relative_direction=raw.get("relativeDirection", ""),
        absolute_direction=raw.get("absoluteDirection", ""),
        street_name=raw.get("streetName", ""),
        lat=float(raw.get("lat", 0.0)),
        lon=float(raw.get("lon", 0.0)),
    )


def _parse_alert(raw: dict[str, Any]) -> LocalizedAlert:
    return LocalizedAlert(
        header_text=raw.get("alertHeaderText"),
        description_text=raw.get("alertDescriptionText"),
        url=raw.get("alertUrl"),
        effective_start=_ts(raw.get("effectiveStartDate")),
        effective_end=_ts(raw.get("effectiveEndDate")),
        id=raw.get("id"),
    )


def _parse_leg(raw: dict[str, Any]) -> Leg:
    return Leg(
        mode=raw.get("mode", "WALK"),
        start_time=_ts(raw["startTime"]),
        end_time=_ts(raw["endTime"]),
        from_place=_parse_place(raw.get("from") or {}),
        to_place=_parse_place(raw.get("to") or {}),
        transit_leg=bool(raw.get("transitLeg", False)),
        departure_delay=int(raw.get("departureDelay", 0)),
        arrival_delay=int(raw.get("arrivalDelay", 0)),
        duration=float(raw.get("duration", 0.0)),
        intermediate_stops=tuple(_parse_place(s) for s in raw.get("intermediateStops") or []),
        steps=tuple(_parse_step(s) for s in raw.get("steps") or []),
        alerts=tuple(_parse_alert(a) for a in raw.get("alerts") or []),
        route_short_name=raw.get("routeShortName"),
        route_id=raw.get("routeId"),
        agency_id=raw.get("agencyId"),
        trip_id=raw.get("tripId"),
    )


def _parse_itinerary(raw: dict[str, Any]) -> Itinerary:
    return Itinerary(
        start_time=_ts(raw["startTime"]),
        end_time=_ts(raw["endTime"]),
        legs=tuple(_parse_leg(leg) for leg in raw.get("legs") or []),
        duration=float(raw.get("duration", 0.0)),
    )
