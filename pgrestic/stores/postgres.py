# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
PostgreSQL Relational Store Client.

Dumps are produced with pg_dump and loaded with pg_restore (custom format)
or psql (plain SQL). Credentials reach the tools through the libpq
environment; the emptiness probe connects with asyncpg.
"""

from pathlib import Path
from typing import Any, Awaitable, Callable, List, Sequence

import asyncpg
import structlog

from pgrestic.config import DumpFormat, PostgresSettings
from pgrestic.runner import CommandResult, run_command

logger = structlog.get_logger()

CommandRunner = Callable[..., Awaitable[CommandResult]]

PUBLIC_TABLE_COUNT_QUERY = (
    "SELECT COUNT(*) FROM information_schema.tables WHERE table_schema = 'public'"
)

CONNECT_TIMEOUT_SECONDS = 10


class PostgresClient:
    """Dump, restore and probe one PostgreSQL database."""

    def __init__(
        self,
        settings: PostgresSettings,
        run: CommandRunner = run_command,
        connect: Callable[..., Awaitable[Any]] | None = None,
    ):
        self.settings = settings
        self._run = run
        self._connect = connect

    async def dump(
        self,
        path: Path,
        dump_format: DumpFormat = DumpFormat.CUSTOM,
        extra_args: Sequence[str] = (),
    ) -> Path:
        """
        Write a logical dump of the database to path.

        Returns:
            The path written
        """
        fmt = "-Fc" if dump_format == DumpFormat.CUSTOM else "-Fp"
        argv: List[str] = ["pg_dump", fmt, *extra_args, "-f", str(path)]
        await self._run(argv, step="dump_database", env=self.settings.libpq_env())
        logger.info("database_dumped", path=str(path), format=dump_format.value)
        return path

    async def restore(self, path: Path, dump_format: DumpFormat = DumpFormat.CUSTOM) -> None:
        """
        Load a dump into the database.

        Custom-format dumps drop and recreate conflicting objects first.
        Plain SQL is replayed statement by statement and stops at the first
        error, which can leave the database partially loaded.
        """
        if dump_format == DumpFormat.CUSTOM:
            argv = [
                "pg_restore",
                "--clean",
                "--if-exists",
                "-d",
                self.settings.database,
                str(path),
            ]
        else:
            argv = ["psql", "-v", "ON_ERROR_STOP=1", "-f", str(path)]
        await self._run(argv, step="restore_database", env=self.settings.libpq_env())
        logger.info("database_restored", path=str(path), format=dump_format.value)

    async def count_public_tables(self) -> int:
        """
        Count relations in the public schema.

        Connection errors propagate to the caller.
        """
        connect = self._connect or asyncpg.connect
        conn = await connect(
            host=self.settings.host,
            port=self.settings.port,
            user=self.settings.user,
            password=self.settings.password,
            database=self.settings.database,
            timeout=CONNECT_TIMEOUT_SECONDS,
        )
        try:
            count = await conn.fetchval(PUBLIC_TABLE_COUNT_QUERY)
        finally:
            await conn.close()
        return int(count or 0)
