from __future__ import annotations

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from trip_companion.services.pipeline import MonitorPipeline

logger = logging.getLogger(__name__)


async def scheduled_check(pipeline: MonitorPipeline) -> None:
    """Check every active monitored trip once."""
    try:
        await pipeline.check_all()
    except Exception:
        logger.exception("Scheduled check failed")


def create_scheduler(pipeline: MonitorPipeline, interval_seconds: int) -> AsyncIOScheduler:
    scheduler = AsyncIOScheduler()
    if interval_seconds > 0:
        scheduler.add_job(
            scheduled_check,
            "interval",
            seconds=interval_seconds,
            args=[pipeline],
            id="check_monitored_trips",
            max_instances=1,
            coalesce=True,
        )
        logger.info("Monitored trips checked every %ds", interval_seconds)
    else:
        logger.info("Trip monitor scheduler disabled")
    return scheduler
