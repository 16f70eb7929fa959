from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum


class TripStatus(str, Enum):
    """Overall state of a monitored trip, recomputed on every check."""

    NO_LONGER_POSSIBLE = "NO_LONGER_POSSIBLE"
    NEXT_TRIP_NOT_POSSIBLE = "NEXT_TRIP_NOT_POSSIBLE"
    TRIP_UPCOMING = "TRIP_UPCOMING"
    TRIP_ACTIVE = "TRIP_ACTIVE"


class NotificationType(str, Enum):
    DEPARTURE_DELAY = "DEPARTURE_DELAY"
    ARRIVAL_DELAY = "ARRIVAL_DELAY"
    ITINERARY_CHANGED = "ITINERARY_CHANGED"
    ALERT_FOUND = "ALERT_FOUND"
    ITINERARY_NOT_FOUND = "ITINERARY_NOT_FOUND"


class TrackingStatus(str, Enum):
    ON_TRACK = "ON_TRACK"
    DEVIATED = "DEVIATED"
    ENDED = "ENDED"
    NO_STATUS = "NO_STATUS"


WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


# ------------------------------------------------------------------
# Geography
# ------------------------------------------------------------------

@dataclass(frozen=True)
class Coordinates:
    lat: float
    lon: float


@dataclass(frozen=True)
class Segment:
    start: Coordinates
    end: Coordinates


@dataclass(frozen=True)
class Place:
    name: str
    lat: float
    lon: float
    stop_id: str | None = None
    stop_code: str | None = None

    def to_coordinates(self) -> Coordinates:
        return Coordinates(self.lat, self.lon)


@dataclass(frozen=True)
class Step:
    relative_direction: str     # e.g. "DEPART", "LEFT", "CONTINUE"
    absolute_direction: str     # e.g. "NORTH"
    street_name: str
    lat: float
    lon: float

    def to_coordinates(self) -> Coordinates:
        return Coordinates(self.lat, self.lon)


# ------------------------------------------------------------------
# Planner snapshots
# ------------------------------------------------------------------

@dataclass(frozen=True)
class LocalizedAlert:
    """Service alert attached to a leg.

    Two alerts are the same alert when their header, description and url
    match; the effective dates and id are informational only.
    """

    header_text: str | None = None
    description_text: str | None = None
    url: str | None = None
    effective_start: datetime | None = field(default=None, compare=False)
    effective_end: datetime | None = field(default=None, compare=False)
    id: str | None = field(default=None, compare=False)


@dataclass(frozen=True)
class Leg:
    mode: str
    start_time: datetime          # realtime estimate, tz-aware
    end_time: datetime
    from_place: Place
    to_place: Place
    transit_leg: bool = False
    departure_delay: int = 0      # seconds
    arrival_delay: int = 0        # seconds
    duration: float = 0.0         # seconds
    intermediate_stops: tuple[Place, ...] = ()
    steps: tuple[Step, ...] = ()
    alerts: tuple[LocalizedAlert, ...] = ()
    route_short_name: str | None = None
    route_id: str | None = None
    agency_id: str | None = None
    trip_id: str | None = None

    @property
    def scheduled_start_time(self) -> datetime:
        return self.start_time - timedelta(seconds=self.departure_delay)

    @property
    def scheduled_end_time(self) -> datetime:
        return self.end_time - timedelta(seconds=self.arrival_delay)

    @property
    def is_bus(self) -> bool:
        return self.transit_leg and self.mode.upper() == "BUS"

    def signature(self) -> tuple:
        """What makes two legs the 'same' leg for itinerary-change purposes."""
        return (
            self.mode.upper(),
            self.route_id or self.route_short_name,
            self.from_place.stop_id or self.from_place.name,
            self.to_place.stop_id or self.to_place.name,
        )


@dataclass(frozen=True)
class Itinerary:
    start_time: datetime
    end_time: datetime
    legs: tuple[Leg, ...]
    duration: float = 0.0

    @property
    def alerts(self) -> list[LocalizedAlert]:
        return [alert for leg in self.legs for alert in leg.alerts]

    @property
    def scheduled_start_time(self) -> datetime:
        """Departure with the first transit leg's realtime offset removed."""
        for leg in self.legs:
            if leg.transit_leg:
                return self.start_time - timedelta(seconds=leg.departure_delay)
        return self.start_time

    @property
    def scheduled_end_time(self) -> datetime:
        """Arrival with the last transit leg's realtime offset removed."""
        for leg in reversed(self.legs):
            if leg.transit_leg:
                return self.end_time - timedelta(seconds=leg.arrival_delay)
        return self.end_time

    def is_active_at(self, now: datetime) -> bool:
        return self.start_time <= now <= self.end_time

    def signature(self) -> tuple:
        return tuple(leg.signature() for leg in self.legs)


# ------------------------------------------------------------------
# Users and monitored trips
# ------------------------------------------------------------------

@dataclass
class MobilityProfile:
    mobility_mode: str | None = None   # "None", "Device", "WChairE", ...


@dataclass
class OtpUser:
    id: str
    email: str
    phone_number: str | None = None
    notification_channel: str = "email"   # "sms" | "email" | "all"
    mobility_profile: MobilityProfile | None = None


@dataclass
class MonitoredTrip:
    id: str
    user_id: str
    trip_time: str                 # "HH:MM", local to the configured timezone
    from_place: Place
    to_place: Place
    trip_name: str | None = None
    arrive_by: bool = False
    lead_time_in_minutes: int = 30
    monday: bool = False
    tuesday: bool = False
    wednesday: bool = False
    thursday: bool = False
    friday: bool = False
    saturday: bool = False
    sunday: bool = False
    is_active: bool = True
    query_params: dict[str, str] = field(default_factory=dict)
    notify_on_alert: bool = True
    notify_on_itinerary_change: bool = True
    departure_variance_minutes_threshold: int = 15
    arrival_variance_minutes_threshold: int = 15
    itinerary: Itinerary | None = None

    def trip_time_of_day(self) -> time:
        """Parse ``trip_time``. Raises ``ValueError`` when malformed."""
        hour, _, minute = self.trip_time.partition(":")
        return time(int(hour), int(minute))

    def active_weekdays(self) -> list[int]:
        return [i for i, name in enumerate(WEEKDAYS) if getattr(self, name)]

    def is_active_on_date(self, day: date) -> bool:
        return self.is_active and day.weekday() in self.active_weekdays()

    def next_active_date(self, start: date) -> date | None:
        """First date on or after *start* the trip runs, within one week."""
        for offset in range(7):
            candidate = start + timedelta(days=offset)
            if self.is_active_on_date(candidate):
                return candidate
        return None


@dataclass(frozen=True)
class TripMonitorNotification:
    type: NotificationType
    body: str


@dataclass
class JourneyState:
    """What has been checked and communicated for one monitored trip.

    Times are epoch milliseconds. ``matching_itinerary`` is None only until
    the first successful check, and is replaced wholesale after that.
    """

    monitored_trip_id: str
    user_id: str
    baseline_departure_time: int | None = None
    baseline_arrival_time: int | None = None
    scheduled_departure_time: int | None = None
    scheduled_arrival_time: int | None = None
    last_checked_time: int | None = None
    last_notification_time: int | None = None
    matching_itinerary: Itinerary | None = None
    target_date: date | None = None
    trip_status: TripStatus | None = None
    unplannable_weekdays: set[int] = field(default_factory=set)

    def snapshot(self) -> JourneyState:
        # Itineraries are immutable, so they are shared rather than copied.
        return dataclasses.replace(self, unplannable_weekdays=set(self.unplannable_weekdays))


# ------------------------------------------------------------------
# Live tracking
# ------------------------------------------------------------------

@dataclass(frozen=True)
class TrackingLocation:
    lat: float
    lon: float
    timestamp: datetime
    speed: float = 0.0           # meters per second

    def to_coordinates(self) -> Coordinates:
        return Coordinates(self.lat, self.lon)


@dataclass
class TrackedJourney:
    id: str
    trip_id: str
    user_id: str
    locations: list[TrackingLocation] = field(default_factory=list)

    @property
    def last_location(self) -> TrackingLocation | None:
        return self.locations[-1] if self.locations else None


@dataclass(frozen=True)
class SegmentAction:
    """A geofenced trigger: a short segment and the interaction it fires."""

    id: str
    start: Coordinates
    end: Coordinates
    trigger: str

    @property
    def segment(self) -> Segment:
        return Segment(self.start, self.end)


@dataclass(frozen=True)
class AgencyAction:
    agency_id: str
    trigger: str
