from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Coroutine, Sequence

from trip_companion.models import (
    AgencyAction,
    Itinerary,
    OtpUser,
    TrackedJourney,
    TrackingLocation,
    TrackingStatus,
)
from trip_companion.services.base import Interaction
from trip_companion.services.instructions import build_instruction
from trip_companion.services.interactions import BusNotification
from trip_companion.services.locator import LocatorResult, TravelerLocator
from trip_companion.services.trip_actions import TripActions, segment_from_step
from trip_companion.utils.cache import mark_notified

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrackingUpdate:
    instruction: str
    trip_status: TrackingStatus


class TripTracker:
    """Turns position updates into one instruction plus background side effects."""

    def __init__(
        self,
        locator: TravelerLocator,
        trip_actions: TripActions,
        agency_actions: Sequence[AgencyAction] = (),
        interactions: dict[str, Interaction] | None = None,
    ) -> None:
        self.locator = locator
        self.trip_actions = trip_actions
        self.agency_actions = {a.agency_id: a for a in agency_actions}
        self.interactions = interactions or {}
        self._tasks: set[asyncio.Task] = set()

    def update(
        self,
        journey: TrackedJourney,
        location: TrackingLocation,
        itinerary: Itinerary,
        user: OtpUser,
        now: datetime | None = None,
    ) -> TrackingUpdate:
        journey.locations.append(location)
        result = self.locator.locate(
            location.to_coordinates(), itinerary, now or location.timestamp, location.speed,
        )
        text = build_instruction(result.instruction, self.locator.thresholds)
        self._schedule_side_effects(journey, result, user)
        return TrackingUpdate(text, result.status)

    def _schedule_side_effects(self, journey: TrackedJourney, result: LocatorResult, user: OtpUser) -> None:
        if result.step is None and result.bus_leg_to_notify is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Nothing is marked as notified, so a later update inside a loop still fires.
            logger.warning("Journey %s: no running event loop, side effects skipped", journey.id)
            return

        if result.step is not None and result.leg is not None:
            segment = segment_from_step(result.step, result.leg.steps)
            action = self.trip_actions.get_segment_action(segment) if segment else None
            if action is not None and mark_notified(journey.id, f"segment:{action.id}"):
                self._spawn(loop, self.trip_actions.handle_segment_action(segment, user))

        leg = result.bus_leg_to_notify
        if leg is None or leg.agency_id not in self.agency_actions:
            return
        interaction = self.interactions.get(self.agency_actions[leg.agency_id].trigger)
        if interaction is None:
            logger.error("No interaction for agency %s", leg.agency_id)
            return
        if mark_notified(journey.id, f"bus:{leg.trip_id}"):
            self._spawn(loop, interaction.run(BusNotification(leg), user))

    def _spawn(self, loop: asyncio.AbstractEventLoop, coro: Coroutine) -> None:
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Tracking side effect failed: %r", task.exception())

    async def drain(self) -> None:
        """Wait for in-flight side effects; used on shutdown and in tests."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
