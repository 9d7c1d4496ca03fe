# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
pgrestic Core - Run outcomes and terminal reporting.

Backup and restore runs both end in a RunResult. report_result() logs the
terminal line and hands it to the notifier according to the configured
policy.
"""

from dataclasses import dataclass
from datetime import datetime, UTC
from enum import Enum
from typing import Protocol

import structlog
from ulid import ULID

from pgrestic.config import PgResticConfig
from pgrestic.exceptions import StepFailure

logger = structlog.get_logger()


class Outcome(str, Enum):
    """Terminal state of a run."""

    SUCCESS = "success"
    SKIPPED = "skipped"  # not an error: nothing safe or nothing to restore
    FAILED = "failed"


class Notifier(Protocol):
    """Best-effort sink for terminal run messages."""

    async def send(self, message: str) -> bool:
        ...


@dataclass
class RunResult:
    """Result of a backup or restore run."""

    run_id: str  # ULID
    command: str
    outcome: Outcome
    message: str
    started_at: datetime
    duration_seconds: float = 0.0
    failed_step: str | None = None
    snapshot_id: str | None = None
    dump_path: str | None = None
    files_restored: bool = False
    database_restored: bool = False

    @property
    def exit_code(self) -> int:
        return 1 if self.outcome == Outcome.FAILED else 0


class RunTracker:
    """Collects the facts of one run and builds its RunResult."""

    def __init__(self, command: str):
        self.run_id = str(ULID())
        self.command = command
        self.started_at = datetime.now(UTC)
        self.log = logger.bind(run_id=self.run_id, command=command)

    def _finish(self, outcome: Outcome, message: str, **fields) -> RunResult:
        duration = (datetime.now(UTC) - self.started_at).total_seconds()
        return RunResult(
            run_id=self.run_id,
            command=self.command,
            outcome=outcome,
            message=message,
            started_at=self.started_at,
            duration_seconds=duration,
            **fields,
        )

    def succeeded(self, message: str, **fields) -> RunResult:
        return self._finish(Outcome.SUCCESS, message, **fields)

    def skipped(self, message: str, **fields) -> RunResult:
        return self._finish(Outcome.SKIPPED, message, **fields)

    def failed(self, error: StepFailure, **fields) -> RunResult:
        message = f"{self.command} failed at {error.step}: {error.message}"
        return self._finish(Outcome.FAILED, message, failed_step=error.step, **fields)


async def report_result(config: PgResticConfig, result: RunResult, notifier: Notifier) -> None:
    """
    Log the terminal line of a run and notify if the policy asks for it.

    Failures are always notified; successes only with notify_always;
    skips never. Notification problems never alter the result.
    """
    log = logger.bind(run_id=result.run_id, command=result.command)

    if result.outcome == Outcome.FAILED:
        log.error("run_failed", step=result.failed_step, message=result.message)
    elif result.outcome == Outcome.SKIPPED:
        log.info("run_skipped", message=result.message)
    else:
        log.info(
            "run_completed",
            message=result.message,
            snapshot_id=result.snapshot_id,
            duration=round(result.duration_seconds, 3),
        )

    notify_always = config.telegram is not None and config.telegram.notify_always
    if result.outcome == Outcome.FAILED or (
        result.outcome == Outcome.SUCCESS and notify_always
    ):
        await notifier.send(result.message)
