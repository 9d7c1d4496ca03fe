# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
restic Snapshot Store Client.

Lists, creates and restores snapshots by invoking the restic binary. The
repository location and credential are passed through RESTIC_* environment
variables built from the configuration.
"""

import json
from pathlib import Path
from typing import Any, Awaitable, Callable, List

import structlog

from pgrestic.config import PgResticConfig
from pgrestic.exceptions import SnapshotFormatError
from pgrestic.runner import CommandResult, run_command
from pgrestic.selector import Snapshot

logger = structlog.get_logger()

CommandRunner = Callable[..., Awaitable[CommandResult]]

RESTIC = "restic"


class ResticClient:
    """Thin wrapper around the restic command line."""

    def __init__(self, config: PgResticConfig, run: CommandRunner = run_command):
        self.config = config
        self._run = run

    async def _restic(self, *args: Any, step: str, check: bool = True) -> CommandResult:
        return await self._run(
            [RESTIC, *args],
            step=step,
            env=self.config.restic_env(),
            check=check,
        )

    async def repository_exists(self) -> bool:
        """Probe the repository without taking a lock."""
        result = await self._restic("cat", "config", "--no-lock", step="check_repository", check=False)
        return result.ok

    async def ensure_repository(self) -> bool:
        """
        Initialize the repository if it does not exist yet.

        Returns:
            True if a new repository was created
        """
        if await self.repository_exists():
            return False
        logger.info("repository_initializing")
        await self._restic("init", step="init_repository")
        logger.info("repository_initialized")
        return True

    async def list_snapshots(self) -> List[Snapshot]:
        """
        List every snapshot in the repository.

        Raises:
            SnapshotFormatError: If restic's JSON cannot be interpreted
        """
        result = await self._restic("snapshots", "--no-lock", "--json", step="list_snapshots")
        payload = result.stdout.strip()
        if not payload:
            return []
        try:
            entries = json.loads(payload)
        except json.JSONDecodeError as e:
            raise SnapshotFormatError(
                "list_snapshots",
                f"restic snapshots returned invalid JSON: {e}",
            ) from e
        if entries is None:
            return []
        if not isinstance(entries, list):
            raise SnapshotFormatError(
                "list_snapshots",
                "restic snapshots returned JSON that is not a list",
            )
        snapshots = [Snapshot.from_restic(entry) for entry in entries]
        logger.debug("snapshots_listed", count=len(snapshots))
        return snapshots

    async def backup(self, path: Path) -> str | None:
        """
        Snapshot a directory tree.

        Returns:
            The new snapshot id reported by restic, if any
        """
        args: List[str] = ["backup", "--json"]
        for tag in self.config.restic_tags:
            args.extend(["--tag", tag])
        if self.config.restic_host:
            args.extend(["--host", self.config.restic_host])
        args.extend(self.config.restic_extra_backup_args)
        args.append(str(path))

        result = await self._restic(*args, step="create_snapshot")
        return _summary_snapshot_id(result.stdout)

    async def restore(self, snapshot_id: str, target: Path = Path("/")) -> None:
        """
        Restore a snapshot.

        The default target "/" puts files back at the absolute paths they
        were captured from.
        """
        await self._restic("restore", snapshot_id, "--target", str(target), step="restore_files")


def _summary_snapshot_id(output: str) -> str | None:
    """Find the snapshot id in the JSON lines printed by `restic backup --json`."""
    for line in reversed(output.splitlines()):
        line = line.strip()
        if not line.startswith("{"):
            continue
        try:
            message = json.loads(line)
        except json.JSONDecodeError:
            continue
        if message.get("message_type") == "summary":
            snapshot_id = message.get("snapshot_id")
            return snapshot_id[:8] if snapshot_id else None
    return None
