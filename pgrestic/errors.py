# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Human-friendly error message helpers for pgrestic.

These helpers centralize wording for common configuration errors so that
all modules present consistent, actionable messages.
"""

from typing import Iterable


def explain_missing_env(name: str) -> str:
    """
    Explain that a required environment variable is missing.
    """

    return f"{name} is not configured. Set the {name} environment variable."


def explain_missing_restic_password() -> str:
    """
    Explain that no restic credential was provided.
    """

    return (
        "restic repository credential is not configured. "
        "Set RESTIC_PASSWORD or RESTIC_PASSWORD_FILE."
    )


def explain_partial_postgres(missing: Iterable[str]) -> str:
    """
    Explain that PostgreSQL settings are only partially provided.
    """

    return (
        "PostgreSQL is partially configured; missing: "
        f"{', '.join(missing)}. "
        "Set all of host, database, user and password, or none of them."
    )


def explain_partial_telegram(missing: str) -> str:
    """
    Explain that only one of the two Telegram settings is provided.
    """

    return (
        f"Telegram notifications are partially configured; missing: {missing}. "
        "Set both TELEGRAM_BOT_TOKEN and TELEGRAM_GROUP_ID, or neither."
    )


def explain_invalid_choice_env(name: str, value: str | None, choices: Iterable[str]) -> str:
    """
    Explain that an enumerated environment variable has an unknown value.
    """

    expected = ", ".join(repr(c) for c in choices)
    return f"Invalid {name} value: {value!r}. Expected one of: {expected}."


def explain_invalid_port_env(value: str | None) -> str:
    """
    Explain that the PostgreSQL port is not a valid port number.
    """

    return (
        f"Invalid PostgreSQL port: {value!r}. "
        "It must be an integer between 1 and 65535."
    )


def explain_invalid_cutoff(value: str) -> str:
    """
    Explain that a --before value is not a supported date format.
    """

    return (
        f"Invalid --before value: {value!r}. "
        "Use YYYY-MM-DD or YYYY-MM-DDTHH:MM:SSZ (UTC)."
    )


def explain_invalid_schedule(value: str, reason: str) -> str:
    """
    Explain that a --schedule value is not a valid crontab expression.
    """

    return (
        f"Invalid --schedule value: {value!r} ({reason}). "
        "Expected a five-field cron expression such as '0 3 * * *'."
    )


def explain_missing_tool(name: str) -> str:
    """
    Explain that a required external tool is not installed.
    """

    return f"{name} not found on PATH. Install it or use the pgrestic container image."
