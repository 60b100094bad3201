"""
Scheduler module for feed relay.

This module sets up one APScheduler interval job per enabled channel.
"""
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, List

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from feedrelay.config import ChannelConfig
from feedrelay.tasks import process_channel

if TYPE_CHECKING:
    from feedrelay.context import AppContext

# Set up structured logger
logger = structlog.get_logger()


def get_channel_job_id(channel_name: str) -> str:
    """Job id used for a channel's polling job."""
    return f"channel_{channel_name}"


def schedule_channel_jobs(
    scheduler: AsyncIOScheduler,
    channels: List[ChannelConfig],
    app_context: "AppContext",
) -> None:
    """
    Schedule polling jobs for all enabled channels.

    Args:
        scheduler: The APScheduler instance to use
        channels: Channel configurations to schedule
        app_context: Context passed to each job run
    """
    if not channels:
        logger.warning("No channels configured, no jobs will be scheduled")
        return

    for channel in channels:
        if not channel.enabled:
            logger.info("Channel disabled, skipping job scheduling", channel=channel.name)
            continue

        job_id = get_channel_job_id(channel.name)
        interval_minutes = max(1, channel.check_interval_minutes)

        scheduler.add_job(
            process_channel,
            trigger=IntervalTrigger(minutes=interval_minutes),
            args=[app_context, channel.name],
            id=job_id,
            name=f"Poll {channel.name}",
            replace_existing=True,
            # Start soon but not immediately
            next_run_time=datetime.now(scheduler.timezone) + timedelta(seconds=10),
            max_instances=1,
            coalesce=True,
        )

        logger.info(
            "Scheduled channel polling job",
            channel=channel.name,
            interval_minutes=interval_minutes,
            job_id=job_id,
        )
