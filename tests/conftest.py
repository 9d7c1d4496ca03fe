# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Test fixtures for pgrestic tests.

Provides temporary directories, configuration helpers and in-memory
stand-ins for the restic and PostgreSQL clients.
"""

import tempfile
from datetime import datetime, UTC
from pathlib import Path
from typing import Dict, Generator, List

import pytest

from pgrestic.builder import create_config
from pgrestic.config import PostgresSettings
from pgrestic.exceptions import CommandError
from pgrestic.runner import CommandResult
from pgrestic.selector import Snapshot


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def data_dir(temp_dir: Path) -> Path:
    """Target directory path (not created)."""
    return temp_dir / "data"


POSTGRES = {
    "host": "db",
    "database": "vaultwarden",
    "user": "vaultwarden",
    "password": "db-secret",
}


@pytest.fixture
def make_config(data_dir: Path):
    """Factory for test configurations; PostgreSQL enabled by default."""

    def factory(**overrides):
        options = {
            "restic_password": "restic-secret",
            "postgres": dict(POSTGRES),
        }
        options.update(overrides)
        return create_config(data_dir, "/srv/restic-repo", **options)

    return factory


def snapshot(snapshot_id: str, timestamp: str, *tags: str) -> Snapshot:
    """Build a Snapshot from a Z-suffixed timestamp."""
    return Snapshot(
        id=snapshot_id,
        time=datetime.fromisoformat(timestamp.replace("Z", "+00:00")).astimezone(UTC),
        tags=frozenset(tags),
    )


class FakeRestic:
    """In-memory snapshot store.

    restore() writes the files registered for a snapshot into place, the
    way `restic restore --target /` recreates absolute paths.
    """

    def __init__(self, snapshots: List[Snapshot] | None = None, fail_step: str | None = None):
        self.snapshots = list(snapshots or [])
        self.contents: Dict[str, Dict[Path, bytes]] = {}
        self.fail_step = fail_step
        self.calls: List[tuple] = []
        self.repository_initialized = False

    def _maybe_fail(self, step: str) -> None:
        if self.fail_step == step:
            raise CommandError(step, ["restic", step], 1, "Fatal: simulated failure\n")

    async def ensure_repository(self) -> bool:
        self.calls.append(("ensure_repository",))
        self._maybe_fail("init_repository")
        self.repository_initialized = True
        return False

    async def list_snapshots(self) -> List[Snapshot]:
        self.calls.append(("list_snapshots",))
        self._maybe_fail("list_snapshots")
        return list(self.snapshots)

    async def backup(self, path: Path) -> str:
        self.calls.append(("backup", path))
        self._maybe_fail("create_snapshot")
        snapshot_id = f"{len(self.snapshots) + 1:08x}"
        self.snapshots.append(
            Snapshot(id=snapshot_id, time=datetime.now(UTC))
        )
        self.contents[snapshot_id] = {
            p: p.read_bytes() for p in path.iterdir() if p.is_file()
        }
        return snapshot_id

    async def restore(self, snapshot_id: str, target: Path = Path("/")) -> None:
        self.calls.append(("restore", snapshot_id))
        self._maybe_fail("restore_files")
        for file_path, body in self.contents.get(snapshot_id, {}).items():
            file_path.parent.mkdir(parents=True, exist_ok=True)
            file_path.write_bytes(body)


class FakePostgres:
    """In-memory database client."""

    def __init__(
        self,
        table_count: int = 0,
        unreachable: bool = False,
        fail_step: str | None = None,
    ):
        self.settings = PostgresSettings(**POSTGRES)
        self.table_count = table_count
        self.unreachable = unreachable
        self.fail_step = fail_step
        self.calls: List[tuple] = []

    async def count_public_tables(self) -> int:
        self.calls.append(("count_public_tables",))
        if self.unreachable:
            raise ConnectionRefusedError("connection refused")
        return self.table_count

    async def dump(self, path: Path, dump_format=None, extra_args=()) -> Path:
        self.calls.append(("dump", path))
        if self.fail_step == "dump_database":
            raise CommandError(
                "dump_database",
                ["pg_dump"],
                1,
                'pg_dump: error: password authentication failed for user "vaultwarden"\n',
            )
        path.write_text("-- dump of vaultwarden\n")
        return path

    async def restore(self, path: Path, dump_format=None) -> None:
        self.calls.append(("restore", path))
        if self.fail_step == "restore_database":
            raise CommandError("restore_database", ["pg_restore"], 1, "pg_restore: error\n")
        self.table_count = 3


class RecordingNotifier:
    """Notifier that remembers every message."""

    def __init__(self):
        self.messages: List[str] = []

    async def send(self, message: str) -> bool:
        self.messages.append(message)
        return True


class FakeRunner:
    """Stand-in for run_command() that records argv and returns canned output."""

    def __init__(self, responses: Dict[str, CommandResult] | None = None):
        self.responses = responses or {}
        self.calls: List[dict] = []

    async def __call__(self, argv, *, step, env=None, check=True) -> CommandResult:
        argv = [str(a) for a in argv]
        self.calls.append({"argv": argv, "step": step, "env": dict(env or {}), "check": check})
        result = self.responses.get(step) or CommandResult(argv=argv, returncode=0, stdout="", stderr="")
        if check and result.returncode != 0:
            raise CommandError(step, argv, result.returncode, result.stderr)
        return result


def command_result(stdout: str = "", returncode: int = 0, stderr: str = "") -> CommandResult:
    return CommandResult(argv=["stub"], returncode=returncode, stdout=stdout, stderr=stderr)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
