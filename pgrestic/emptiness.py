# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Emptiness checks that decide whether a restore target may be written.

Both checks are read-only probes.
"""

import asyncio
from pathlib import Path
from typing import List, Tuple

import aiofiles.os
import asyncpg
import structlog

from pgrestic.exceptions import StepFailure
from pgrestic.stores.postgres import PostgresClient

logger = structlog.get_logger()


async def is_dir_empty(path: Path) -> bool:
    """
    Return True if path does not exist or has no entries.

    Hidden entries count. A path that exists but is not a directory is
    treated as non-empty.

    Raises:
        StepFailure: If the directory cannot be read
    """
    if not await aiofiles.os.path.exists(path):
        logger.info("target_directory_missing", path=str(path))
        return True
    if not await aiofiles.os.path.isdir(path):
        return False
    try:
        entries = await aiofiles.os.listdir(path)
    except OSError as e:
        raise StepFailure("check_directory", f"Cannot read {path}: {e}") from e
    return len(entries) == 0


async def is_database_empty(client: PostgresClient) -> bool:
    """
    Return True if the database has no tables in its public schema.

    An unreachable database also counts as empty, so that a database which
    has not been created yet never blocks a restore. A transient outage is
    indistinguishable from that case.
    """
    try:
        count = await client.count_public_tables()
    except (OSError, asyncio.TimeoutError, asyncpg.PostgresError, asyncpg.InterfaceError) as e:
        logger.info(
            "database_unreachable_treated_as_empty",
            host=client.settings.host,
            database=client.settings.database,
            error=str(e),
        )
        return True

    logger.debug("database_table_count", database=client.settings.database, count=count)
    return count == 0


async def list_top_level_files(path: Path) -> List[Tuple[str, float]]:
    """
    List regular files directly inside path with their modification times.
    """
    if not await aiofiles.os.path.isdir(path):
        return []
    files: List[Tuple[str, float]] = []
    try:
        for name in await aiofiles.os.listdir(path):
            entry = path / name
            if await aiofiles.os.path.isfile(entry):
                files.append((name, await aiofiles.os.path.getmtime(entry)))
    except OSError as e:
        raise StepFailure("locate_dump", f"Cannot read {path}: {e}") from e
    return files
