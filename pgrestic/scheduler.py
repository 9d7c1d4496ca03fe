# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
pgrestic Scheduler - Recurring backups from a crontab expression.

Each firing is an independent run_backup(); a failed run is reported like
any other and the schedule keeps going.
"""

import asyncio
from datetime import UTC

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from pgrestic.backup.manager import run_backup
from pgrestic.config import PgResticConfig
from pgrestic.errors import explain_invalid_schedule
from pgrestic.exceptions import ConfigurationError, PgResticError

logger = structlog.get_logger()

JOB_ID = "pgrestic_backup"


def parse_schedule(expression: str) -> CronTrigger:
    """
    Build a trigger from a five-field crontab expression (UTC).

    Raises:
        ConfigurationError: If the expression is not valid
    """
    try:
        return CronTrigger.from_crontab(expression, timezone=UTC)
    except ValueError as e:
        raise ConfigurationError(explain_invalid_schedule(expression, str(e))) from e


async def scheduled_backup(config: PgResticConfig) -> None:
    """Run one scheduled backup without letting errors escape the scheduler."""
    logger.info("scheduled_backup_starting")
    try:
        result = await run_backup(config)
    except PgResticError as e:
        logger.error("scheduled_backup_failed", error=str(e))
        return
    logger.info("scheduled_backup_finished", outcome=result.outcome.value)


def create_scheduler(config: PgResticConfig, trigger: CronTrigger) -> AsyncIOScheduler:
    """Create a scheduler with the backup job registered (not started)."""
    scheduler = AsyncIOScheduler(timezone=UTC)
    scheduler.add_job(
        scheduled_backup,
        trigger=trigger,
        args=[config],
        id=JOB_ID,
        replace_existing=True,
        coalesce=True,
        max_instances=1,
    )
    return scheduler


async def run_schedule(config: PgResticConfig, expression: str) -> None:
    """
    Run backups on a cron schedule until cancelled.

    Raises:
        ConfigurationError: If the expression is not valid
    """
    trigger = parse_schedule(expression)
    scheduler = create_scheduler(config, trigger)
    scheduler.start()

    job = scheduler.get_job(JOB_ID)
    logger.info(
        "scheduler_started",
        schedule=expression,
        next_run=job.next_run_time.isoformat() if job and job.next_run_time else None,
    )

    try:
        await asyncio.Event().wait()
    finally:
        scheduler.shutdown(wait=False)
        logger.info("scheduler_stopped")
