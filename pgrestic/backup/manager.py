# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
pgrestic Backup Manager - Dump the database, then snapshot the directory.

A backup is either complete (fresh dump inside the snapshot) or failed.
The snapshot is never taken when the dump step fails, and nothing is
retried or rolled back.
"""

from datetime import datetime, UTC
from pathlib import Path

import aiofiles.os
import structlog

from pgrestic.config import PgResticConfig, DUMP_PREFIX
from pgrestic.core import Notifier, RunResult, RunTracker, report_result
from pgrestic.exceptions import StepFailure
from pgrestic.notify import create_notifier
from pgrestic.stores.postgres import PostgresClient
from pgrestic.stores.restic import ResticClient

logger = structlog.get_logger()


def dump_path_for(config: PgResticConfig, now: datetime | None = None) -> Path:
    """
    Path of the dump written by a backup started at `now`.

    A fixed dump_file is overwritten every run; otherwise every run writes
    a new pgdump-<database>-<timestamp> file, which accumulates in the
    directory until pruned by hand.
    """
    if config.dump_file:
        return config.target_directory / config.dump_file

    if config.postgres is None:
        raise StepFailure("dump_database", "PostgreSQL is not configured; no dump to write")
    stamp = (now or datetime.now(UTC)).strftime("%Y%m%dT%H%M%SZ")
    name = f"{DUMP_PREFIX}-{config.postgres.database}-{stamp}{config.dump_extension}"
    return config.target_directory / name


async def _ensure_directory(path: Path) -> None:
    try:
        await aiofiles.os.makedirs(path, exist_ok=True)
    except OSError as e:
        raise StepFailure(
            "prepare_directory",
            f"Cannot create {path}: {e}",
        ) from e


async def run_backup(
    config: PgResticConfig,
    *,
    restic: ResticClient | None = None,
    postgres: PostgresClient | None = None,
    notifier: Notifier | None = None,
) -> RunResult:
    """
    Run one backup.

    Steps:
    1. Create the target directory if missing
    2. Initialize the restic repository if missing
    3. Dump the database into the target directory (if configured)
    4. Snapshot the target directory

    Args:
        config: pgrestic configuration
        restic: Snapshot store client (default: built from config)
        postgres: Database client (default: built from config)
        notifier: Notification sink (default: built from config)

    Returns:
        RunResult with outcome SUCCESS or FAILED
    """
    restic = restic or ResticClient(config)
    if postgres is None and config.postgres is not None:
        postgres = PostgresClient(config.postgres)
    notifier = notifier or create_notifier(config)

    tracker = RunTracker("backup")
    log = tracker.log
    log.info("backup_started", target=str(config.target_directory))

    dump_path: Path | None = None
    try:
        await _ensure_directory(config.target_directory)
        await restic.ensure_repository()

        if postgres is not None:
            dump_path = dump_path_for(config)
            log.info("database_dump_started", path=str(dump_path))
            await postgres.dump(dump_path, config.dump_format, config.pgdump_extra_args)
        else:
            log.debug("database_not_configured")

        log.info("snapshot_started", target=str(config.target_directory))
        snapshot_id = await restic.backup(config.target_directory)

    except StepFailure as e:
        result = tracker.failed(e, dump_path=str(dump_path) if dump_path else None)
        await report_result(config, result, notifier)
        return result

    result = tracker.succeeded(
        f"Backup of {config.target_directory} completed"
        + (f" (snapshot {snapshot_id})" if snapshot_id else ""),
        snapshot_id=snapshot_id,
        dump_path=str(dump_path) if dump_path else None,
    )
    await report_result(config, result, notifier)
    return result
