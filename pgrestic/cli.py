# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
pgrestic command-line entry point.

Usage:
    pgrestic backup [--schedule "<cron expression>"]
    pgrestic restore [--before YYYY-MM-DD | YYYY-MM-DDTHH:MM:SSZ]

Exit codes:
    0    success, or restore skipped
    1    backup or restore failed
    2    invalid arguments or configuration
    127  required external tool missing
"""

import argparse
import asyncio
import sys
from typing import List, Sequence

import structlog

from pgrestic.backup.manager import run_backup
from pgrestic.backup.restore import run_restore
from pgrestic.config import PgResticConfig
from pgrestic.env import create_config_from_env
from pgrestic.exceptions import ConfigurationError, PgResticError
from pgrestic.logs import configure_logging
from pgrestic.runner import require_tools
from pgrestic.scheduler import parse_schedule, run_schedule
from pgrestic.selector import parse_cutoff

logger = structlog.get_logger()

EPILOG = """\
Configuration (environment variables):
  DATA_DIR                  Directory to back up and restore (absolute path)
  RESTIC_REPOSITORY         restic repository
  RESTIC_PASSWORD           restic password (or RESTIC_PASSWORD_FILE)
  RESTIC_TAGS               Comma-separated snapshot tags
  RESTIC_HOST               Host label for new snapshots
  RESTIC_EXTRA_BACKUP_ARGS  Extra flags for "restic backup"
  POSTGRES_HOST, POSTGRES_PORT, POSTGRES_DB, POSTGRES_USER, POSTGRES_PASSWORD
                            Database to dump and restore (or PGHOST, PGPORT, ...)
  POSTGRES_DUMP_FILE        Fixed dump filename (default: timestamped dumps)
  PGDUMP_FORMAT             custom | plain (default: custom)
  PGDUMP_EXTRA_ARGS         Extra flags for pg_dump
  RESTORE_GATE              independent | combined (default: independent)
  TELEGRAM_BOT_TOKEN, TELEGRAM_GROUP_ID
                            Telegram notifications
  TELEGRAM_NOTIFY_ALWAYS    Also notify on success (default: false)
  LOG_LEVEL                 info | debug (default: info)
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pgrestic",
        description="Back up and restore a directory and a PostgreSQL database with restic",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="command", metavar="{backup,restore,help}")

    backup = subparsers.add_parser("backup", help="Dump the database and snapshot DATA_DIR")
    backup.add_argument(
        "--schedule",
        metavar="CRON",
        help="Run backups on this five-field cron schedule (UTC) instead of once",
    )

    restore = subparsers.add_parser(
        "restore", help="Restore the latest snapshot into an empty DATA_DIR and database"
    )
    restore.add_argument(
        "--before",
        metavar="DATE",
        help="Restore the newest snapshot at or before YYYY-MM-DD or YYYY-MM-DDTHH:MM:SSZ",
    )

    subparsers.add_parser("help", help="Show this help")
    return parser


def required_tools(config: PgResticConfig) -> List[str]:
    """External programs the configuration needs."""
    tools = ["restic"]
    if config.postgres is not None:
        tools.extend(["pg_dump", "pg_restore", "psql"])
    return tools


def main(argv: Sequence[str] | None = None) -> int:
    """
    Run the command line and return the process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command in (None, "help"):
        parser.print_help()
        return 0 if args.command == "help" else 2

    configure_logging()

    try:
        if args.command == "backup" and args.schedule is not None:
            if not args.schedule.strip():
                raise ConfigurationError("--schedule requires a cron expression")
            parse_schedule(args.schedule)

        cutoff = None
        if args.command == "restore" and args.before is not None:
            if not args.before.strip():
                raise ConfigurationError("--before requires a date value")
            cutoff = parse_cutoff(args.before)

        config = create_config_from_env()
        configure_logging(config.log_level)
        require_tools(required_tools(config))

        if args.command == "backup":
            if args.schedule is not None:
                asyncio.run(run_schedule(config, args.schedule))
                return 0
            result = asyncio.run(run_backup(config))
        else:
            result = asyncio.run(run_restore(config, cutoff))
        return result.exit_code

    except PgResticError as e:
        logger.error(
            "command_aborted",
            command=args.command,
            error=e.message,
            **({"details": e.details} if e.details else {}),
        )
        return e.exit_code
    except KeyboardInterrupt:
        logger.info("command_interrupted", command=args.command)
        return 130


def run() -> None:
    """Console script entry point."""
    sys.exit(main())
