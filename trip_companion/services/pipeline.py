from __future__ import annotations

import asyncio
import dataclasses
import logging
from datetime import datetime, timezone

from trip_companion.models import JourneyState
from trip_companion.services.monitor import CheckMonitoredTrip, CheckResult, to_millis
from trip_companion.services.notifications import NotificationGateway, send_notifications
from trip_companion.services.store import TripStore

logger = logging.getLogger(__name__)


class TripLocks:
    """Trip ids with a check in flight."""

    def __init__(self) -> None:
        self._in_flight: set[str] = set()

    def acquire(self, trip_id: str) -> bool:
        if trip_id in self._in_flight:
            return False
        self._in_flight.add(trip_id)
        return True

    def release(self, trip_id: str) -> None:
        self._in_flight.discard(trip_id)

    def is_locked(self, trip_id: str) -> bool:
        return trip_id in self._in_flight


class MonitorPipeline:
    def __init__(
        self,
        store: TripStore,
        checker: CheckMonitoredTrip,
        gateway: NotificationGateway,
        max_concurrent: int = 8,
    ) -> None:
        self.store = store
        self.checker = checker
        self.gateway = gateway
        self.locks = TripLocks()
        self._semaphore = asyncio.Semaphore(max_concurrent)

    async def check_trip(self, trip_id: str) -> CheckResult | None:
        """Run one check cycle for a trip; None when it could not start."""
        if not self.locks.acquire(trip_id):
            logger.warning("Trip %s: check already in flight, skipping", trip_id)
            return None
        try:
            return await self._check_trip(trip_id)
        finally:
            self.locks.release(trip_id)

    async def _check_trip(self, trip_id: str) -> CheckResult | None:
        trip = self.store.get_trip(trip_id)
        if trip is None:
            logger.error("Trip %s: not found", trip_id)
            return None
        user = self.store.get_user(trip.user_id)
        if user is None:
            logger.error("Trip %s: user %s not found, aborting check", trip_id, trip.user_id)
            return None
        state = self.store.get_journey_state(trip_id) or JourneyState(
            monitored_trip_id=trip_id, user_id=user.id,
        )

        result = await self.checker.check(trip, state)
        if not result.persisted:
            return result

        if result.journey_state.matching_itinerary is not None:
            self.store.save_trip(
                dataclasses.replace(trip, itinerary=result.journey_state.matching_itinerary)
            )
        self.store.save_journey_state(result.journey_state)

        if result.notifications:
            delivered = await send_notifications(self.gateway, trip, user, result.notifications)
            if delivered:
                result.journey_state.last_notification_time = to_millis(datetime.now(tz=timezone.utc))
                self.store.save_journey_state(result.journey_state)
        return result

    async def _bounded(self, trip_id: str) -> CheckResult | None:
        async with self._semaphore:
            return await self.check_trip(trip_id)

    async def check_all(self) -> dict[str, CheckResult | None]:
        trip_ids = self.store.active_trip_ids()
        results = await asyncio.gather(
            *(self._bounded(trip_id) for trip_id in trip_ids),
            return_exceptions=True,
        )
        outcome: dict[str, CheckResult | None] = {}
        for trip_id, result in zip(trip_ids, results):
            outcome[trip_id] = _unpack(result, trip_id)
        logger.info("Checked %d trips", len(trip_ids))
        return outcome


def _unpack(result: CheckResult | None | BaseException, trip_id: str) -> CheckResult | None:
    if isinstance(result, BaseException):
        logger.error("Trip %s: check failed: %r", trip_id, result)
        return None
    return result
