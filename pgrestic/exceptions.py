# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
pgrestic Exceptions - Custom exceptions for the pgrestic package.
"""

from typing import Sequence


class PgResticError(Exception):
    """Base exception for all pgrestic errors."""

    exit_code = 1

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(PgResticError):
    """Raised when configuration or command-line arguments are invalid."""

    exit_code = 2


class ToolUnavailableError(PgResticError):
    """Raised when a required external binary is not on PATH."""

    exit_code = 127


class StepFailure(PgResticError):
    """Raised when one step of a backup or restore run fails."""

    def __init__(self, step: str, message: str, details: dict | None = None):
        self.step = step
        super().__init__(message, details)


class CommandError(StepFailure):
    """Raised when an external command exits non-zero."""

    def __init__(
        self,
        step: str,
        argv: Sequence[str],
        returncode: int,
        stderr: str = "",
    ):
        self.argv = list(argv)
        self.returncode = returncode
        self.stderr = stderr
        tail = stderr.strip().splitlines()[-1] if stderr.strip() else ""
        message = f"{self.argv[0]} exited with status {returncode}"
        if tail:
            message = f"{message}: {tail}"
        super().__init__(step, message, details={"returncode": returncode})


class SnapshotFormatError(StepFailure):
    """Raised when snapshot metadata from the store cannot be parsed."""

    pass
