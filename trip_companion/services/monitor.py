from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Callable

import pytz

from trip_companion.models import (
    Itinerary,
    JourneyState,
    LocalizedAlert,
    MonitoredTrip,
    NotificationType,
    TripMonitorNotification,
    TripStatus,
)
from trip_companion.services.base import PlannerError
from trip_companion.services.formatter import (
    ITINERARY_CHANGED,
    format_alert_body,
    format_delay_body,
    format_not_found_body,
)
from trip_companion.services.planner import PlannerClient

logger = logging.getLogger(__name__)


@dataclass
class CheckResult:
    journey_state: JourneyState
    notifications: list[TripMonitorNotification] = field(default_factory=list)
    skipped: bool = False
    aborted: bool = False

    @property
    def persisted(self) -> bool:
        return not (self.skipped or self.aborted)


def to_millis(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def _trip_time_or_none(trip: MonitoredTrip) -> time | None:
    try:
        return trip.trip_time_of_day()
    except ValueError:
        logger.warning("Trip %s: could not parse trip time %r", trip.id, trip.trip_time)
        return None


def should_skip_check(trip: MonitoredTrip, now: datetime) -> bool:
    """True when there is nothing left to evaluate today.

    That is, the trip does not run today and its time of day has passed.
    An unparseable trip time never causes a skip.
    """
    trip_time = _trip_time_or_none(trip)
    if trip_time is None:
        return False
    if trip.is_active_on_date(now.date()):
        return False
    return now.time() > trip_time


def target_date_for(trip: MonitoredTrip, now: datetime) -> date | None:
    """The occurrence to plan: today if it runs and is still ahead, else the next active day."""
    today = now.date()
    trip_time = _trip_time_or_none(trip)
    upcoming_today = trip_time is None or now.time() <= trip_time
    if upcoming_today and trip.is_active_on_date(today):
        return today
    return trip.next_active_date(today + timedelta(days=1))


def diff_alerts(
    previous: list[LocalizedAlert], current: list[LocalizedAlert]
) -> tuple[list[LocalizedAlert], list[LocalizedAlert]]:
    """Return ``(unseen, resolved)`` by value equality, preserving order."""
    previous_set = set(previous)
    current_set = set(current)
    unseen = list(dict.fromkeys(a for a in current if a not in previous_set))
    resolved = list(dict.fromkeys(a for a in previous if a not in current_set))
    return unseen, resolved


class CheckMonitoredTrip:
    """Re-plans one monitored trip and works out what the rider should hear."""

    def __init__(
        self,
        planner: PlannerClient,
        timezone: str = "America/New_York",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.planner = planner
        self.tz = pytz.timezone(timezone)
        self._clock = clock or (lambda: datetime.now(tz=self.tz))

    async def check(self, trip: MonitoredTrip, journey_state: JourneyState) -> CheckResult:
        if journey_state.trip_status is TripStatus.NO_LONGER_POSSIBLE:
            logger.info("Trip %s: no longer possible, skipping", trip.id)
            return CheckResult(journey_state, skipped=True)
        now = self._clock().astimezone(self.tz)
        if should_skip_check(trip, now):
            logger.info("Trip %s: not active today and time has passed, skipping", trip.id)
            return CheckResult(journey_state, skipped=True)

        target = self._current_target(trip, journey_state, now)
        if target is None:
            logger.info("Trip %s: no active weekday, skipping", trip.id)
            return CheckResult(journey_state, skipped=True)

        try:
            response = await self.planner.plan(trip.query_params, target)
        except PlannerError as exc:
            logger.error("Trip %s: %s", trip.id, exc)
            return CheckResult(journey_state, aborted=True)
        if not response.ok:
            logger.error(
                "Trip %s: planner returned status %d (%s)",
                trip.id, response.status_code, response.error_message or "no detail",
            )
            return CheckResult(journey_state, aborted=True)

        state = journey_state.snapshot()
        state.last_checked_time = to_millis(now)
        if not response.itineraries:
            notifications = self._itinerary_not_found(trip, state, target)
            return CheckResult(state, notifications)

        itinerary = response.itineraries[0]
        rolled_over = state.target_date != target or state.baseline_departure_time is None
        if rolled_over:
            logger.info("Trip %s: evaluating occurrence on %s", trip.id, target)
            state.target_date = target
            state.baseline_departure_time = to_millis(itinerary.scheduled_start_time)
            state.baseline_arrival_time = to_millis(itinerary.scheduled_end_time)
        state.scheduled_departure_time = to_millis(itinerary.scheduled_start_time)
        state.scheduled_arrival_time = to_millis(itinerary.scheduled_end_time)

        notifications: list[TripMonitorNotification] = []
        notifications += self._check_alerts(trip, state.matching_itinerary, itinerary)
        notifications += self._check_delays(trip, state, itinerary)
        if not rolled_over:
            notifications += self._check_shape(trip, state.matching_itinerary, itinerary)

        state.trip_status = (
            TripStatus.TRIP_ACTIVE if itinerary.is_active_at(now) else TripStatus.TRIP_UPCOMING
        )
        state.unplannable_weekdays.discard(target.weekday())
        state.matching_itinerary = itinerary
        logger.info(
            "Trip %s: status=%s, notifications=%d",
            trip.id, state.trip_status.value, len(notifications),
        )
        return CheckResult(state, notifications)

    def _current_target(self, trip: MonitoredTrip, state: JourneyState, now: datetime) -> date | None:
        # An occurrence already under way stays the target until its itinerary ends.
        itinerary = state.matching_itinerary
        if state.target_date == now.date() and itinerary is not None and now <= itinerary.end_time:
            return state.target_date
        return target_date_for(trip, now)

    def _check_alerts(
        self, trip: MonitoredTrip, previous: Itinerary | None, current: Itinerary
    ) -> list[TripMonitorNotification]:
        if not trip.notify_on_alert:
            return []
        previous_alerts = previous.alerts if previous else []
        unseen, resolved = diff_alerts(previous_alerts, current.alerts)
        if not unseen:
            return []
        return [TripMonitorNotification(NotificationType.ALERT_FOUND, format_alert_body(unseen, resolved))]

    def _check_delays(
        self, trip: MonitoredTrip, state: JourneyState, itinerary: Itinerary
    ) -> list[TripMonitorNotification]:
        notifications = []
        departure = self._delay_notification(
            estimate=itinerary.start_time,
            baseline=state.baseline_departure_time,
            scheduled=state.scheduled_departure_time,
            threshold=trip.departure_variance_minutes_threshold,
            arrival=False,
        )
        if departure:
            notifications.append(departure)
            state.baseline_departure_time = to_millis(itinerary.start_time)
        arrival = self._delay_notification(
            estimate=itinerary.end_time,
            baseline=state.baseline_arrival_time,
            scheduled=state.scheduled_arrival_time,
            threshold=trip.arrival_variance_minutes_threshold,
            arrival=True,
        )
        if arrival:
            notifications.append(arrival)
            state.baseline_arrival_time = to_millis(itinerary.end_time)
        return notifications

    def _delay_notification(
        self,
        estimate: datetime,
        baseline: int | None,
        scheduled: int | None,
        threshold: int,
        arrival: bool,
    ) -> TripMonitorNotification | None:
        if baseline is None or scheduled is None:
            return None
        estimate_ms = to_millis(estimate)
        deviation = abs(estimate_ms - baseline) // 60_000
        if deviation < threshold:
            return None
        delay = round((estimate_ms - scheduled) / 60_000)
        kind = NotificationType.ARRIVAL_DELAY if arrival else NotificationType.DEPARTURE_DELAY
        return TripMonitorNotification(kind, format_delay_body(delay, arrival, estimate, self.tz))

    def _check_shape(
        self, trip: MonitoredTrip, previous: Itinerary | None, current: Itinerary
    ) -> list[TripMonitorNotification]:
        if not trip.notify_on_itinerary_change or previous is None:
            return []
        if previous.signature() == current.signature():
            return []
        return [TripMonitorNotification(NotificationType.ITINERARY_CHANGED, ITINERARY_CHANGED)]

    def _itinerary_not_found(
        self, trip: MonitoredTrip, state: JourneyState, target: date
    ) -> list[TripMonitorNotification]:
        state.target_date = target
        state.unplannable_weekdays.add(target.weekday())
        still_possible = any(d not in state.unplannable_weekdays for d in trip.active_weekdays())
        status = TripStatus.NEXT_TRIP_NOT_POSSIBLE if still_possible else TripStatus.NO_LONGER_POSSIBLE
        previous_status = state.trip_status
        state.trip_status = status
        logger.warning("Trip %s: no itinerary for %s, status=%s", trip.id, target, status.value)
        if previous_status == status:
            return []
        return [
            TripMonitorNotification(
                NotificationType.ITINERARY_NOT_FOUND, format_not_found_body(still_possible)
            )
        ]
