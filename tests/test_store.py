from __future__ import annotations

import pytest

from conftest import make_trip, make_user
from trip_companion.models import JourneyState
from trip_companion.services.base import ConfigError
from trip_companion.services.store import TripStore, load_store

SEED = """
users:
  - id: u1
    email: rider@example.com
    phone_number: "+15555550100"
    notification_channel: sms
    mobility_mode: WChairE
trips:
  - id: t1
    user_id: u1
    trip_name: Commute
    trip_time: "08:15"
    monday: true
    from_place: {name: Home, lat: 33.95, lon: -83.98}
    to_place: {name: Work, lat: 33.96, lon: -83.97}
    query_params: {fromPlace: "33.95,-83.98", toPlace: "33.96,-83.97"}
"""


def test_records_are_copied_on_read_and_write():
    store = TripStore()
    user = make_user()
    store.save_user(user)
    user.email = "changed@example.com"

    fetched = store.get_user("user-1")
    fetched.phone_number = None

    assert store.get_user("user-1").email == "rider@example.com"
    assert store.get_user("user-1").phone_number == "+15555550100"


def test_trip_query_params_are_not_shared():
    store = TripStore()
    trip = make_trip(query_params={"fromPlace": "33.95,-83.98"})
    store.save_trip(trip)
    trip.query_params["fromPlace"] = "changed"

    fetched = store.get_trip(trip.id)
    fetched.query_params["toPlace"] = "33.96,-83.97"

    assert store.get_trip(trip.id).query_params == {"fromPlace": "33.95,-83.98"}


def test_journey_state_round_trip():
    store = TripStore()
    state = JourneyState("trip-1", "user-1")
    store.save_journey_state(state)
    state.unplannable_weekdays.add(3)

    assert store.get_journey_state("trip-1").unplannable_weekdays == set()


def test_active_trip_ids():
    store = TripStore()
    store.save_trip(make_trip(id="a"))
    store.save_trip(make_trip(id="b", is_active=False))
    assert store.active_trip_ids() == ["a"]


def test_seed_file(tmp_path):
    path = tmp_path / "seed.yml"
    path.write_text(SEED)

    store = load_store(path)
    trip = store.get_trip("t1")
    user = store.get_user("u1")

    assert trip.trip_time == "08:15"
    assert trip.active_weekdays() == [0]
    assert trip.from_place.name == "Home"
    assert user.notification_channel == "sms"
    assert user.mobility_profile.mobility_mode == "WChairE"


def test_no_seed_gives_empty_store():
    assert load_store(None).active_trip_ids() == []


def test_unreadable_seed_raises(tmp_path):
    with pytest.raises(ConfigError):
        load_store(tmp_path / "missing.yml")
