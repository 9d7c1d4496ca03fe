# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
pgrestic Builder - Functional builder pattern for configuration.

This module provides pure functions for building PgResticConfig objects.
Each function takes a config dict and returns a new dict with the
modification applied (immutable updates).
"""

from pathlib import Path
from typing import Any, Callable, Dict, Iterable

from pgrestic.config import (
    DEFAULT_TELEGRAM_API_URL,
    DumpFormat,
    GatePolicy,
    LogLevel,
    PgResticConfig,
    PostgresSettings,
    TelegramSettings,
)


# Type alias for builder functions
ConfigDict = Dict[str, Any]
BuilderFunc = Callable[[ConfigDict], ConfigDict]


def create_empty_config() -> ConfigDict:
    """
    Create an initial empty configuration dictionary.

    Returns:
        Dict with default values for all configuration fields
    """
    return {
        "target_directory": Path(""),
        "restic_repository": "",
        "restic_password": None,
        "restic_password_file": None,
        "restic_tags": (),
        "restic_host": None,
        "restic_extra_backup_args": (),
        "postgres": None,
        "dump_file": None,
        "dump_format": DumpFormat.CUSTOM,
        "pgdump_extra_args": (),
        "gate_policy": GatePolicy.INDEPENDENT,
        "telegram": None,
        "log_level": LogLevel.INFO,
    }


def with_target_directory(config: ConfigDict, path: Path | str) -> ConfigDict:
    """
    Set the directory that is snapshotted and restored.

    Args:
        config: Current configuration dictionary
        path: Absolute path of the data directory

    Returns:
        New configuration dictionary with target directory set
    """
    return {**config, "target_directory": Path(path)}


def with_repository(
    config: ConfigDict,
    repository: str,
    password: str | None = None,
    password_file: Path | str | None = None,
) -> ConfigDict:
    """
    Set the restic repository and its credential.

    Args:
        config: Current configuration dictionary
        repository: restic repository location (path, s3:..., rest:...)
        password: Repository password
        password_file: File holding the repository password

    Returns:
        New configuration dictionary with repository set
    """
    return {
        **config,
        "restic_repository": repository,
        "restic_password": password,
        "restic_password_file": Path(password_file) if password_file else None,
    }


def tag_snapshots(config: ConfigDict, tags: Iterable[str], host: str | None = None) -> ConfigDict:
    """
    Attach tags (and optionally a host label) to new snapshots.
    """
    new_tags = tuple(config["restic_tags"]) + tuple(t for t in tags if t)
    updated = {**config, "restic_tags": new_tags}
    if host:
        updated["restic_host"] = host
    return updated


def enable_postgres(
    config: ConfigDict,
    host: str,
    database: str,
    user: str,
    password: str,
    port: int = 5432,
) -> ConfigDict:
    """
    Enable dump-and-restore of a PostgreSQL database.

    Args:
        config: Current configuration dictionary
        host: Database host
        database: Database name
        user: Database user
        password: Database password
        port: Database port

    Returns:
        New configuration dictionary with PostgreSQL enabled
    """
    settings = PostgresSettings(
        host=host, database=database, user=user, password=password, port=port
    )
    return {**config, "postgres": settings}


def use_fixed_dump_file(config: ConfigDict, filename: str) -> ConfigDict:
    """
    Overwrite a single, fixed dump file on every backup.

    The default writes a new timestamped dump per backup instead.
    """
    return {**config, "dump_file": filename}


def use_dump_format(config: ConfigDict, dump_format: DumpFormat | str) -> ConfigDict:
    """
    Select the pg_dump output format ('custom' or 'plain').
    """
    if isinstance(dump_format, str):
        dump_format = DumpFormat(dump_format.lower())
    return {**config, "dump_format": dump_format}


def use_gate_policy(config: ConfigDict, policy: GatePolicy | str) -> ConfigDict:
    """
    Select the restore gate policy ('independent' or 'combined').
    """
    if isinstance(policy, str):
        policy = GatePolicy(policy.lower())
    return {**config, "gate_policy": policy}


def enable_telegram(
    config: ConfigDict,
    bot_token: str,
    chat_id: str,
    notify_always: bool = False,
    api_url: str = DEFAULT_TELEGRAM_API_URL,
) -> ConfigDict:
    """
    Enable Telegram notifications.

    Failures are always notified; successes only when notify_always is set.
    """
    settings = TelegramSettings(
        bot_token=bot_token,
        chat_id=chat_id,
        api_url=api_url.rstrip("/"),
        notify_always=notify_always,
    )
    return {**config, "telegram": settings}


def debug_logging(config: ConfigDict) -> ConfigDict:
    """
    Enable debug-level logging.
    """
    return {**config, "log_level": LogLevel.DEBUG}


def build_config(config_dict: ConfigDict) -> PgResticConfig:
    """
    Validate and build an immutable PgResticConfig from a configuration dictionary.

    Args:
        config_dict: Configuration dictionary built using builder functions

    Returns:
        Validated, immutable PgResticConfig instance

    Raises:
        ConfigurationError: If validation fails
    """
    return PgResticConfig(**config_dict)


def pipe(*funcs: BuilderFunc) -> BuilderFunc:
    """
    Compose multiple builder functions into a single function.

        config = pipe(
            lambda c: with_target_directory(c, "/data"),
            lambda c: with_repository(c, "/srv/restic", password="secret"),
            debug_logging,
        )(create_empty_config())

    Args:
        *funcs: Builder functions to compose

    Returns:
        A single function that applies all functions in sequence
    """

    def composed(config: ConfigDict) -> ConfigDict:
        result = config
        for func in funcs:
            result = func(result)
        return result

    return composed


def create_config(
    target_directory: Path | str,
    restic_repository: str,
    *,
    restic_password: str | None = None,
    restic_password_file: Path | str | None = None,
    restic_tags: Iterable[str] = (),
    restic_host: str | None = None,
    postgres: Dict[str, Any] | None = None,
    dump_file: str | None = None,
    dump_format: DumpFormat | str = DumpFormat.CUSTOM,
    gate_policy: GatePolicy | str = GatePolicy.INDEPENDENT,
    telegram: Dict[str, Any] | None = None,
    log_level: LogLevel | str = LogLevel.INFO,
    **kwargs: Any,
) -> PgResticConfig:
    """
    Create pgrestic configuration from simple parameters.

    This is the recommended programmatic API for creating configurations.

    Args:
        target_directory: Absolute path of the data directory (required)
        restic_repository: restic repository location (required)
        restic_password: Repository password
        restic_password_file: File holding the repository password
        restic_tags: Tags attached to new snapshots
        restic_host: Host label attached to new snapshots
        postgres: Keyword arguments for enable_postgres(), or None
        dump_file: Fixed dump filename (default: timestamped names)
        dump_format: 'custom' or 'plain'
        gate_policy: 'independent' or 'combined'
        telegram: Keyword arguments for enable_telegram(), or None
        log_level: 'info' or 'debug'
        **kwargs: Additional configuration options

    Returns:
        Validated, immutable PgResticConfig instance

    Example:
        config = create_config(
            "/data/vaultwarden",
            "s3:https://s3.eu-central-1.amazonaws.com/bucket/restic",
            restic_password="secret",
            restic_tags=["vaultwarden", "prod"],
            postgres={
                "host": "db",
                "database": "vaultwarden",
                "user": "vaultwarden",
                "password": "secret",
            },
        )
    """
    config_dict = create_empty_config()
    config_dict = with_target_directory(config_dict, target_directory)
    config_dict = with_repository(
        config_dict, restic_repository, restic_password, restic_password_file
    )
    config_dict = tag_snapshots(config_dict, restic_tags, restic_host)

    if postgres:
        config_dict = enable_postgres(config_dict, **postgres)

    if dump_file:
        config_dict = use_fixed_dump_file(config_dict, dump_file)

    config_dict = use_dump_format(config_dict, dump_format)
    config_dict = use_gate_policy(config_dict, gate_policy)

    if telegram:
        config_dict = enable_telegram(config_dict, **telegram)

    if isinstance(log_level, str):
        log_level = LogLevel(log_level.lower())
    config_dict["log_level"] = log_level

    # Apply any additional kwargs
    for key, value in kwargs.items():
        if key in config_dict:
            config_dict[key] = value

    return build_config(config_dict)
