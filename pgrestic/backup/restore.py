# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
pgrestic Restore Manager - Point-in-time restore into empty targets.

A restore only ever writes into targets that are empty: the directory
(checked with is_dir_empty) and the database (checked with
is_database_empty). With the independent gate policy each target is
restored on its own check; with the combined policy a single non-empty
target skips the whole run.
"""

from datetime import datetime
from pathlib import Path

import structlog

from pgrestic.config import GatePolicy, PgResticConfig
from pgrestic.core import Notifier, RunResult, RunTracker, report_result
from pgrestic.emptiness import is_database_empty, is_dir_empty, list_top_level_files
from pgrestic.exceptions import StepFailure
from pgrestic.notify import create_notifier
from pgrestic.selector import format_timestamp, select_newest_dump, select_snapshot
from pgrestic.stores.postgres import PostgresClient
from pgrestic.stores.restic import ResticClient

logger = structlog.get_logger()


async def locate_dump(config: PgResticConfig) -> Path | None:
    """
    Find the dump to load, looking only at the top level of the target.

    A fixed dump_file is used as-is; otherwise the most recently modified
    file matching the timestamped naming pattern wins.
    """
    entries = await list_top_level_files(config.target_directory)
    name = select_newest_dump(entries, config.dump_pattern)
    return config.target_directory / name if name else None


async def run_restore(
    config: PgResticConfig,
    cutoff: datetime | None = None,
    *,
    restic: ResticClient | None = None,
    postgres: PostgresClient | None = None,
    notifier: Notifier | None = None,
) -> RunResult:
    """
    Run one restore.

    Args:
        config: pgrestic configuration
        cutoff: Restore the newest snapshot at or before this UTC time
            (default: newest snapshot)
        restic: Snapshot store client (default: built from config)
        postgres: Database client (default: built from config)
        notifier: Notification sink (default: built from config)

    Returns:
        RunResult with outcome SUCCESS, SKIPPED or FAILED
    """
    restic = restic or ResticClient(config)
    if postgres is None and config.postgres is not None:
        postgres = PostgresClient(config.postgres)
    notifier = notifier or create_notifier(config)

    tracker = RunTracker("restore")
    log = tracker.log
    log.info(
        "restore_started",
        target=str(config.target_directory),
        before=format_timestamp(cutoff) if cutoff else None,
        gate=config.gate_policy.value,
    )

    try:
        result = await _restore(config, cutoff, restic, postgres, tracker)
    except StepFailure as e:
        result = tracker.failed(e)

    await report_result(config, result, notifier)
    return result


async def _restore(
    config: PgResticConfig,
    cutoff: datetime | None,
    restic: ResticClient,
    postgres: PostgresClient | None,
    tracker: RunTracker,
) -> RunResult:
    log = tracker.log
    target = config.target_directory

    # CHECK_DIR / CHECK_DB
    restore_files = await is_dir_empty(target)
    if not restore_files:
        log.info("target_directory_not_empty", path=str(target))

    restore_db = False
    if postgres is not None:
        restore_db = await is_database_empty(postgres)
        if not restore_db:
            log.info("database_not_empty", database=postgres.settings.database)

    if config.gate_policy == GatePolicy.COMBINED:
        if not restore_files:
            return tracker.skipped(f"{target} is not empty; restore skipped")
        if postgres is not None and not restore_db:
            return tracker.skipped("Database is not empty; restore skipped")
    elif not restore_files and not restore_db:
        return tracker.skipped("Directory and database are not empty; nothing to restore")

    snapshot_id = None
    if restore_files:
        # SELECT_SNAPSHOT
        await restic.ensure_repository()
        snapshots = await restic.list_snapshots()
        snapshot = select_snapshot(snapshots, cutoff)
        if snapshot is None:
            suffix = f" before {format_timestamp(cutoff)}" if cutoff else ""
            return tracker.skipped(f"No matching snapshot{suffix}; nothing to restore")

        # RESTORE_FILES
        snapshot_id = snapshot.id
        log.info(
            "snapshot_restore_started",
            snapshot_id=snapshot.id,
            snapshot_time=format_timestamp(snapshot.time),
        )
        await restic.restore(snapshot.id)
        log.info("snapshot_restored", snapshot_id=snapshot.id)

    if not restore_db or postgres is None:
        return tracker.succeeded(
            f"Restored snapshot {snapshot_id} to {target}",
            snapshot_id=snapshot_id,
            files_restored=True,
        )

    # LOCATE_DUMP
    dump_path = await locate_dump(config)
    if dump_path is None:
        log.info("dump_not_found", path=str(target), pattern=config.dump_pattern)
        if snapshot_id is None:
            return tracker.skipped(f"No database dump found in {target}; nothing to restore")
        return tracker.succeeded(
            f"Restored snapshot {snapshot_id} to {target} (no database dump found)",
            snapshot_id=snapshot_id,
            files_restored=True,
        )

    # RESTORE_DB
    log.info("database_restore_started", path=str(dump_path))
    await postgres.restore(dump_path, config.dump_format)

    if snapshot_id is None:
        message = f"Restored database from {dump_path.name}"
    else:
        message = f"Restored snapshot {snapshot_id} and database from {dump_path.name}"
    return tracker.succeeded(
        message,
        snapshot_id=snapshot_id,
        dump_path=str(dump_path),
        files_restored=snapshot_id is not None,
        database_restored=True,
    )
