# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
pgrestic Runner - Execute external tools with argument vectors.

Every external binary (restic, pg_dump, pg_restore, psql) is invoked through
run_command(). Arguments are always passed as a vector, never through a
shell, and secrets travel in the child environment rather than argv.
"""

import asyncio
import os
import shutil
import time
from dataclasses import dataclass
from typing import Iterable, List, Mapping, Sequence

import structlog

from pgrestic.errors import explain_missing_tool
from pgrestic.exceptions import CommandError, ToolUnavailableError

logger = structlog.get_logger()


@dataclass(frozen=True)
class CommandResult:
    """Captured result of one external command."""

    argv: List[str]
    returncode: int
    stdout: str
    stderr: str
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.returncode == 0


async def run_command(
    argv: Sequence[str],
    *,
    step: str,
    env: Mapping[str, str] | None = None,
    check: bool = True,
) -> CommandResult:
    """
    Run an external command and capture its output.

    Args:
        argv: Program and arguments
        step: Orchestration step name, used in errors and logs
        env: Variables added to the inherited environment
        check: Raise CommandError on a non-zero exit status

    Returns:
        CommandResult with exit status and decoded output

    Raises:
        ToolUnavailableError: If the program is not installed
        CommandError: If check is set and the command fails
    """
    argv = [str(a) for a in argv]
    child_env = {**os.environ, **(env or {})}
    start = time.monotonic()

    logger.debug("command_started", step=step, argv=argv)

    try:
        process = await asyncio.create_subprocess_exec(
            *argv,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=child_env,
        )
    except FileNotFoundError as e:
        raise ToolUnavailableError(
            explain_missing_tool(argv[0]),
            details={"step": step},
        ) from e

    stdout, stderr = await process.communicate()

    result = CommandResult(
        argv=argv,
        returncode=process.returncode,
        stdout=stdout.decode("utf-8", errors="replace"),
        stderr=stderr.decode("utf-8", errors="replace"),
        duration_seconds=time.monotonic() - start,
    )

    logger.debug(
        "command_finished",
        step=step,
        program=argv[0],
        returncode=result.returncode,
        duration=round(result.duration_seconds, 3),
    )

    if check and not result.ok:
        raise CommandError(step, argv, result.returncode, result.stderr)

    return result


def require_tools(names: Iterable[str]) -> None:
    """
    Check that every named program is on PATH.

    Raises:
        ToolUnavailableError: For the first missing program
    """
    for name in names:
        if shutil.which(name) is None:
            raise ToolUnavailableError(explain_missing_tool(name), details={"tool": name})
