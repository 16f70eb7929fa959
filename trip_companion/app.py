from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import pytz
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from trip_companion.config import Settings, get_settings, setup_logging
from trip_companion.handlers.scheduler import create_scheduler
from trip_companion.services.interactions import build_interactions
from trip_companion.services.locator import TravelerLocator
from trip_companion.services.monitor import CheckMonitoredTrip
from trip_companion.services.notifications import NotificationGateway
from trip_companion.services.pipeline import MonitorPipeline
from trip_companion.services.planner import PlannerClient
from trip_companion.services.store import load_store
from trip_companion.services.tracking import TripTracker
from trip_companion.services.trip_actions import TripActions, load_agency_actions, load_segment_actions
from trip_companion.utils.cache import configure_cache
from trip_companion.utils.geometry import InstructionThresholds
from trip_companion.utils.http import close_session

logger = logging.getLogger(__name__)


@dataclass
class Application:
    pipeline: MonitorPipeline
    tracker: TripTracker
    scheduler: AsyncIOScheduler


def create_application(settings: Settings) -> Application:
    configure_cache(settings.notified_segment_ttl_seconds)

    store = load_store(settings.store_file)
    checker = CheckMonitoredTrip(
        PlannerClient(settings.planner_url, settings.planner_timeout_seconds),
        timezone=settings.timezone,
    )
    pipeline = MonitorPipeline(
        store, checker, NotificationGateway.from_settings(settings), settings.max_concurrent_checks,
    )

    interactions = build_interactions(settings)
    trip_actions = TripActions(
        load_segment_actions(settings.trip_actions_file),
        radius=settings.segment_match_radius,
        interactions=interactions,
    )
    tracker = TripTracker(
        TravelerLocator(
            InstructionThresholds.from_settings(settings),
            settings.deviation_tolerance,
            pytz.timezone(settings.timezone),
        ),
        trip_actions,
        load_agency_actions(settings.bus_notifier_actions_file),
        interactions,
    )

    scheduler = create_scheduler(pipeline, settings.check_interval_seconds)
    logger.info("Trip companion ready, planner=%s", settings.planner_url)
    return Application(pipeline, tracker, scheduler)


async def run(settings: Settings) -> None:
    app = create_application(settings)
    app.scheduler.start()
    try:
        await asyncio.Event().wait()
    finally:
        app.scheduler.shutdown(wait=False)
        await app.tracker.drain()
        await close_session()


def main() -> None:
    settings = get_settings()
    setup_logging(settings.log_level)
    logging.getLogger("trip_companion").info("Starting trip companion…")
    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        logger.info("Stopped")
