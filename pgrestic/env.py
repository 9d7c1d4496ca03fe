# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Environment-based configuration.

The container entrypoint is configured entirely through environment
variables. This module reads them once, reports every problem in a single
ConfigurationError, and hands the values to create_config().
"""

from __future__ import annotations

import os
import shlex
from typing import Any, Dict, List, Mapping, Tuple

from pgrestic.builder import create_config
from pgrestic.config import (
    DEFAULT_TELEGRAM_API_URL,
    DumpFormat,
    GatePolicy,
    LogLevel,
    PgResticConfig,
)
from pgrestic.errors import (
    explain_invalid_choice_env,
    explain_invalid_port_env,
    explain_missing_env,
    explain_missing_restic_password,
    explain_partial_postgres,
    explain_partial_telegram,
)
from pgrestic.exceptions import ConfigurationError

# (POSTGRES_* name, libpq fallback name, config key)
_POSTGRES_VARS: Tuple[Tuple[str, str, str], ...] = (
    ("POSTGRES_HOST", "PGHOST", "host"),
    ("POSTGRES_DB", "PGDATABASE", "database"),
    ("POSTGRES_USER", "PGUSER", "user"),
    ("POSTGRES_PASSWORD", "PGPASSWORD", "password"),
)

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _get(environ: Mapping[str, str], name: str) -> str | None:
    value = environ.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def _parse_bool(value: str | None) -> bool:
    return bool(value) and value.lower() in _TRUE_VALUES


def _parse_list(value: str | None) -> List[str]:
    if not value:
        return []
    return [p.strip() for p in value.split(",") if p.strip()]


def _parse_args(value: str | None) -> Tuple[str, ...]:
    if not value:
        return ()
    return tuple(shlex.split(value))


def _parse_choice(environ: Mapping[str, str], name: str, enum_cls, default, errors: List[str]):
    value = _get(environ, name)
    if not value:
        return default
    try:
        return enum_cls(value.lower())
    except ValueError:
        errors.append(
            explain_invalid_choice_env(name, value, [member.value for member in enum_cls])
        )
        return default


def _parse_postgres(environ: Mapping[str, str], errors: List[str]) -> Dict[str, Any] | None:
    values: Dict[str, Any] = {}
    missing: List[str] = []
    for primary, fallback, key in _POSTGRES_VARS:
        value = _get(environ, primary) or _get(environ, fallback)
        if value:
            values[key] = value
        else:
            missing.append(primary)

    if not values:
        return None
    if missing:
        errors.append(explain_partial_postgres(missing))
        return None

    port_value = _get(environ, "POSTGRES_PORT") or _get(environ, "PGPORT")
    if port_value:
        try:
            port = int(port_value)
        except ValueError:
            errors.append(explain_invalid_port_env(port_value))
            return None
        if not 0 < port < 65536:
            errors.append(explain_invalid_port_env(port_value))
            return None
        values["port"] = port
    return values


def create_config_from_env(environ: Mapping[str, str] | None = None) -> PgResticConfig:
    """
    Create a PgResticConfig from environment variables.

    Required:
        - DATA_DIR: Absolute path of the directory to back up and restore
        - RESTIC_REPOSITORY: restic repository location
        - RESTIC_PASSWORD or RESTIC_PASSWORD_FILE

    Optional:
        - RESTIC_TAGS: Comma-separated snapshot tags, e.g. "vaultwarden,prod"
        - RESTIC_HOST: Host label for new snapshots
        - RESTIC_EXTRA_BACKUP_ARGS: Extra flags for "restic backup"
        - POSTGRES_HOST / POSTGRES_DB / POSTGRES_USER / POSTGRES_PASSWORD
          (or the libpq PGHOST / PGDATABASE / PGUSER / PGPASSWORD); all or none
        - POSTGRES_PORT / PGPORT: Database port (default: 5432)
        - POSTGRES_DUMP_FILE: Fixed dump filename (default: timestamped dumps)
        - PGDUMP_FORMAT: 'custom' | 'plain' (default: custom)
        - PGDUMP_EXTRA_ARGS: Extra flags for pg_dump
        - RESTORE_GATE: 'independent' | 'combined' (default: independent)
        - TELEGRAM_BOT_TOKEN, TELEGRAM_GROUP_ID: Enable notifications; both or neither
        - TELEGRAM_API_URL: Bot API base URL
        - TELEGRAM_NOTIFY_ALWAYS: Also notify on success (default: false)
        - LOG_LEVEL: 'info' | 'debug' (default: info)

    Raises:
        ConfigurationError: listing every problem found
    """
    if environ is None:
        environ = os.environ

    errors: List[str] = []

    data_dir = _get(environ, "DATA_DIR")
    if not data_dir:
        errors.append(explain_missing_env("DATA_DIR"))

    repository = _get(environ, "RESTIC_REPOSITORY")
    if not repository:
        errors.append(explain_missing_env("RESTIC_REPOSITORY"))

    password = _get(environ, "RESTIC_PASSWORD")
    password_file = _get(environ, "RESTIC_PASSWORD_FILE")
    if not password and not password_file:
        errors.append(explain_missing_restic_password())

    postgres = _parse_postgres(environ, errors)
    dump_format = _parse_choice(environ, "PGDUMP_FORMAT", DumpFormat, DumpFormat.CUSTOM, errors)
    gate_policy = _parse_choice(
        environ, "RESTORE_GATE", GatePolicy, GatePolicy.INDEPENDENT, errors
    )
    log_level = _parse_choice(environ, "LOG_LEVEL", LogLevel, LogLevel.INFO, errors)

    telegram = None
    bot_token = _get(environ, "TELEGRAM_BOT_TOKEN")
    chat_id = _get(environ, "TELEGRAM_GROUP_ID")
    if bool(bot_token) != bool(chat_id):
        errors.append(
            explain_partial_telegram("TELEGRAM_GROUP_ID" if bot_token else "TELEGRAM_BOT_TOKEN")
        )
    elif bot_token and chat_id:
        telegram = {
            "bot_token": bot_token,
            "chat_id": chat_id,
            "api_url": _get(environ, "TELEGRAM_API_URL") or DEFAULT_TELEGRAM_API_URL,
            "notify_always": _parse_bool(_get(environ, "TELEGRAM_NOTIFY_ALWAYS")),
        }

    if errors:
        raise ConfigurationError(
            "Configuration validation failed",
            details={"errors": errors},
        )

    return create_config(
        target_directory=data_dir,
        restic_repository=repository,
        restic_password=password,
        restic_password_file=password_file,
        restic_tags=_parse_list(_get(environ, "RESTIC_TAGS")),
        restic_host=_get(environ, "RESTIC_HOST"),
        restic_extra_backup_args=_parse_args(_get(environ, "RESTIC_EXTRA_BACKUP_ARGS")),
        postgres=postgres,
        dump_file=_get(environ, "POSTGRES_DUMP_FILE"),
        dump_format=dump_format,
        pgdump_extra_args=_parse_args(_get(environ, "PGDUMP_EXTRA_ARGS")),
        gate_policy=gate_policy,
        telegram=telegram,
        log_level=log_level,
    )
