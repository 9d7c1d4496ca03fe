# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
pgrestic Configuration - Immutable configuration data structures.

All configuration is frozen (immutable) after creation and validated once,
so every orchestrator sees the same settings for the whole run.
"""

import glob
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Tuple


class DumpFormat(str, Enum):
    """pg_dump output format."""

    CUSTOM = "custom"  # pg_dump -Fc, restored with pg_restore --clean
    PLAIN = "plain"  # SQL script, replayed with psql


class GatePolicy(str, Enum):
    """How the directory and database emptiness checks gate a restore."""

    INDEPENDENT = "independent"  # each target restored on its own check
    COMBINED = "combined"  # any non-empty target skips the whole restore


class LogLevel(str, Enum):
    """Log verbosity."""

    INFO = "info"
    DEBUG = "debug"


DEFAULT_TELEGRAM_API_URL = "https://api.telegram.org"
DUMP_PREFIX = "pgdump"


@dataclass(frozen=True)
class PostgresSettings:
    """Connection settings for the database that is dumped and restored."""

    host: str
    database: str
    user: str
    password: str = field(repr=False)
    port: int = 5432

    def libpq_env(self) -> Dict[str, str]:
        """Environment understood by pg_dump, pg_restore and psql."""
        return {
            "PGHOST": self.host,
            "PGPORT": str(self.port),
            "PGDATABASE": self.database,
            "PGUSER": self.user,
            "PGPASSWORD": self.password,
        }


@dataclass(frozen=True)
class TelegramSettings:
    """Telegram Bot API notification target."""

    bot_token: str = field(repr=False)
    chat_id: str
    api_url: str = DEFAULT_TELEGRAM_API_URL
    notify_always: bool = False


@dataclass(frozen=True)
class PgResticConfig:
    """
    Immutable configuration for backup and restore runs.

    Restores write files back to the absolute paths recorded in the snapshot,
    so target_directory must be the same absolute path on every run.
    """

    # Required: directory that is snapshotted and restored
    target_directory: Path

    # Required: restic repository location
    restic_repository: str

    # One of these is required
    restic_password: str | None = field(default=None, repr=False)
    restic_password_file: Path | None = None

    # Tags and host label attached to new snapshots
    restic_tags: Tuple[str, ...] = ()
    restic_host: str | None = None

    # Extra flags appended to "restic backup"
    restic_extra_backup_args: Tuple[str, ...] = ()

    # Optional database; None disables dump and database restore
    postgres: PostgresSettings | None = None

    # Fixed dump filename; None selects timestamped dump names
    dump_file: str | None = None

    dump_format: DumpFormat = DumpFormat.CUSTOM

    # Extra flags appended to pg_dump
    pgdump_extra_args: Tuple[str, ...] = ()

    gate_policy: GatePolicy = GatePolicy.INDEPENDENT

    # Optional failure/success notifications
    telegram: TelegramSettings | None = None

    log_level: LogLevel = LogLevel.INFO

    def __post_init__(self) -> None:
        """Validate configuration after creation."""
        errors: List[str] = []

        if not str(self.target_directory) or str(self.target_directory) == ".":
            errors.append("target_directory is required")
        elif not self.target_directory.is_absolute():
            errors.append(
                f"target_directory must be an absolute path, got {self.target_directory}"
            )

        if not self.restic_repository:
            errors.append("restic_repository is required")

        if not self.restic_password and not self.restic_password_file:
            errors.append("restic_password or restic_password_file is required")

        if self.dump_file is not None:
            if not self.dump_file or "/" in self.dump_file or self.dump_file in (".", ".."):
                errors.append(f"dump_file must be a plain filename, got {self.dump_file!r}")

        if self.postgres is not None:
            for name in ("host", "database", "user", "password"):
                if not getattr(self.postgres, name):
                    errors.append(f"postgres.{name} is required when postgres is configured")
            if not 0 < self.postgres.port < 65536:
                errors.append(f"postgres.port must be 1-65535, got {self.postgres.port}")

        if self.telegram is not None:
            if not self.telegram.bot_token or not self.telegram.chat_id:
                errors.append("telegram bot_token and chat_id are both required")

        # Raise all errors at once
        if errors:
            from pgrestic.exceptions import ConfigurationError

            raise ConfigurationError(
                "Configuration validation failed",
                details={"errors": errors},
            )

    @property
    def dump_extension(self) -> str:
        return ".dump" if self.dump_format == DumpFormat.CUSTOM else ".sql"

    @property
    def dump_pattern(self) -> str:
        """Glob matched against top-level filenames when locating a dump."""
        if self.dump_file:
            # fixed names match literally
            return glob.escape(self.dump_file)
        return f"{DUMP_PREFIX}-*{self.dump_extension}"

    def restic_env(self) -> Dict[str, str]:
        """Environment understood by restic."""
        env = {"RESTIC_REPOSITORY": self.restic_repository}
        if self.restic_password:
            env["RESTIC_PASSWORD"] = self.restic_password
        elif self.restic_password_file:
            env["RESTIC_PASSWORD_FILE"] = str(self.restic_password_file)
        return env

    def with_updates(self, **kwargs) -> "PgResticConfig":
        """
        Create a new config with updated values.

        Since the config is frozen, this creates a new instance.
        """
        from dataclasses import replace

        return replace(self, **kwargs)
