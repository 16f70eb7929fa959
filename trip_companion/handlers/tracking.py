from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from trip_companion.models import Itinerary, OtpUser, TrackedJourney, TrackingLocation
from trip_companion.services.tracking import TripTracker

logger = logging.getLogger(__name__)


def parse_location(payload: dict[str, Any]) -> TrackingLocation:
    """Build a location from ``{"lat", "lon", "timestamp", "speed"}``.

    ``timestamp`` is epoch seconds; missing means now. Raises ``ValueError``
    on missing or non-numeric coordinates.
    """
    try:
        lat = float(payload["lat"])
        lon = float(payload["lon"])
    except (KeyError, TypeError) as exc:
        raise ValueError(f"invalid location payload: {payload!r}") from exc
    raw_ts = payload.get("timestamp")
    timestamp = (
        datetime.fromtimestamp(float(raw_ts), tz=timezone.utc)
        if raw_ts is not None
        else datetime.now(tz=timezone.utc)
    )
    return TrackingLocation(lat, lon, timestamp, float(payload.get("speed") or 0.0))


def handle_location_update(
    tracker: TripTracker,
    journey: TrackedJourney,
    itinerary: Itinerary,
    user: OtpUser,
    payload: dict[str, Any],
) -> dict[str, str]:
    location = parse_location(payload)
    update = tracker.update(journey, location, itinerary, user)
    logger.debug("Journey %s: %s (%s)", journey.id, update.instruction, update.trip_status.value)
    return {"instruction": update.instruction, "tripStatus": update.trip_status.value}
