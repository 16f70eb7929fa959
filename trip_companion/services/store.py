from __future__ import annotations

import copy
import dataclasses
import logging
from pathlib import Path
from typing import Any

import yaml

from trip_companion.models import JourneyState, MobilityProfile, MonitoredTrip, OtpUser, Place
from trip_companion.services.base import ConfigError

logger = logging.getLogger(__name__)


class TripStore:
    """In-memory keyed store of users, monitored trips and journey states.

    Records go in and come out as copies, so a caller can only change stored
    state by calling one of the ``save_*`` methods.
    """

    def __init__(self) -> None:
        self._users: dict[str, OtpUser] = {}
        self._trips: dict[str, MonitoredTrip] = {}
        self._states: dict[str, JourneyState] = {}

    def get_user(self, user_id: str) -> OtpUser | None:
        user = self._users.get(user_id)
        return copy.deepcopy(user) if user else None

    def save_user(self, user: OtpUser) -> None:
        self._users[user.id] = copy.deepcopy(user)

    def get_trip(self, trip_id: str) -> MonitoredTrip | None:
        trip = self._trips.get(trip_id)
        return _copy_trip(trip) if trip else None

    def save_trip(self, trip: MonitoredTrip) -> None:
        self._trips[trip.id] = _copy_trip(trip)

    def active_trip_ids(self) -> list[str]:
        return [t.id for t in self._trips.values() if t.is_active]

    def get_journey_state(self, trip_id: str) -> JourneyState | None:
        state = self._states.get(trip_id)
        return state.snapshot() if state else None

    def save_journey_state(self, state: JourneyState) -> None:
        self._states[state.monitored_trip_id] = state.snapshot()


def _copy_trip(trip: MonitoredTrip) -> MonitoredTrip:
    # Itineraries and places are frozen; query_params is the only mutable field.
    return dataclasses.replace(trip, query_params=dict(trip.query_params))

def load_store(path: Path | None) -> TripStore:
    """Build a store, seeded from a YAML file of ``users`` and ``trips`` when given."""
    store = TripStore()
    if path is None:
        return store
    try:
        with open(path, encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"cannot read store seed {path}: {exc}") from exc

    for raw in data.get("users") or []:
        store.save_user(_user_from_dict(raw))
    for raw in data.get("trips") or []:
        store.save_trip(_trip_from_dict(raw))
    logger.info("Store seeded from %s: %d trips", path, len(store.active_trip_ids()))
    return store


def _place_from_dict(raw: dict[str, Any]) -> Place:
    return Place(
        name=raw.get("name", ""),
        lat=float(raw["lat"]),
        lon=float(raw["lon"]),
        stop_id=raw.get("stop_id"),
        stop_code=raw.get("stop_code"),
    )


def _user_from_dict(raw: dict[str, Any]) -> OtpUser:
    mobility = raw.get("mobility_mode")
    return OtpUser(
        id=str(raw["id"]),
        email=raw["email"],
        phone_number=raw.get("phone_number"),
        notification_channel=raw.get("notification_channel", "email"),
        mobility_profile=MobilityProfile(mobility) if mobility else None,
    )


def _trip_from_dict(raw: dict[str, Any]) -> MonitoredTrip:
    fields = dict(raw)
    fields["id"] = str(fields["id"])
    fields["user_id"] = str(fields["user_id"])
    fields["trip_time"] = str(fields["trip_time"])
    fields["from_place"] = _place_from_dict(fields["from_place"])
    fields["to_place"] = _place_from_dict(fields["to_place"])
    fields["query_params"] = {k: str(v) for k, v in (fields.get("query_params") or {}).items()}
    return MonitoredTrip(**fields)
