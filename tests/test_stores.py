# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Store client and command runner tests.

External tools are replaced by a recording runner; run_command itself is
exercised against the Python interpreter.
"""

import json
import sys
from pathlib import Path

import pytest

from pgrestic.config import DumpFormat
from pgrestic.exceptions import CommandError, SnapshotFormatError, ToolUnavailableError
from pgrestic.runner import require_tools, run_command
from pgrestic.stores.postgres import PostgresClient
from pgrestic.stores.restic import ResticClient

from conftest import FakeRunner, command_result


# ============================================================================
# Command runner
# ============================================================================

@pytest.mark.asyncio
async def test_run_command_captures_output_and_env():
    result = await run_command(
        [sys.executable, "-c", "import os, sys; print(os.environ['PGR_TEST']); print('warn', file=sys.stderr)"],
        step="probe",
        env={"PGR_TEST": "hello"},
    )

    assert result.ok
    assert result.stdout.strip() == "hello"
    assert result.stderr.strip() == "warn"


@pytest.mark.asyncio
async def test_run_command_raises_on_failure():
    with pytest.raises(CommandError) as exc_info:
        await run_command(
            [sys.executable, "-c", "import sys; print('Fatal: wrong password', file=sys.stderr); sys.exit(3)"],
            step="create_snapshot",
        )

    error = exc_info.value
    assert error.step == "create_snapshot"
    assert error.returncode == 3
    assert "Fatal: wrong password" in error.message


@pytest.mark.asyncio
async def test_run_command_without_check_returns_status():
    result = await run_command(
        [sys.executable, "-c", "import sys; sys.exit(10)"],
        step="check_repository",
        check=False,
    )

    assert result.returncode == 10
    assert not result.ok


@pytest.mark.asyncio
async def test_arguments_are_not_shell_interpreted():
    result = await run_command(
        [sys.executable, "-c", "import sys; print(sys.argv[1])", "$(echo pwned); rm -rf /"],
        step="probe",
    )

    assert result.stdout.strip() == "$(echo pwned); rm -rf /"


@pytest.mark.asyncio
async def test_missing_program_is_tool_unavailable():
    with pytest.raises(ToolUnavailableError) as exc_info:
        await run_command(["pgrestic-no-such-binary"], step="probe")

    assert exc_info.value.exit_code == 127


def test_require_tools(monkeypatch):
    monkeypatch.setattr(
        "pgrestic.runner.shutil.which",
        lambda name: f"/usr/bin/{name}" if name == "restic" else None,
    )

    require_tools(["restic"])

    with pytest.raises(ToolUnavailableError) as exc_info:
        require_tools(["restic", "pg_dump"])

    assert "pg_dump" in exc_info.value.message
    assert exc_info.value.details == {"tool": "pg_dump"}


# ============================================================================
# restic
# ============================================================================

RESTIC_SNAPSHOTS = [
    {
        "time": "2024-01-01T00:00:00.123456789Z",
        "paths": ["/data"],
        "hostname": "h1",
        "id": "aaaaaaaa11111111",
        "short_id": "aaaaaaaa",
    },
    {
        "time": "2024-01-02T00:00:00+01:00",
        "paths": ["/data"],
        "hostname": "h1",
        "tags": ["prod"],
        "id": "bbbbbbbb22222222",
        "short_id": "bbbbbbbb",
    },
]


@pytest.mark.asyncio
async def test_list_snapshots_parses_json(make_config):
    runner = FakeRunner({"list_snapshots": command_result(json.dumps(RESTIC_SNAPSHOTS))})
    client = ResticClient(make_config(), run=runner)

    snapshots = await client.list_snapshots()

    assert [s.id for s in snapshots] == ["aaaaaaaa", "bbbbbbbb"]
    assert snapshots[1].tags == frozenset({"prod"})
    call = runner.calls[0]
    assert call["argv"] == ["restic", "snapshots", "--no-lock", "--json"]
    assert call["env"]["RESTIC_REPOSITORY"] == "/srv/restic-repo"
    assert call["env"]["RESTIC_PASSWORD"] == "restic-secret"


@pytest.mark.asyncio
@pytest.mark.parametrize("stdout", ["", "null", "[]"])
async def test_empty_snapshot_listing(make_config, stdout):
    runner = FakeRunner({"list_snapshots": command_result(stdout)})

    assert await ResticClient(make_config(), run=runner).list_snapshots() == []


@pytest.mark.asyncio
@pytest.mark.parametrize("stdout", ["not json", '{"id": "x"}'])
async def test_unexpected_snapshot_listing(make_config, stdout):
    runner = FakeRunner({"list_snapshots": command_result(stdout)})

    with pytest.raises(SnapshotFormatError):
        await ResticClient(make_config(), run=runner).list_snapshots()


@pytest.mark.asyncio
async def test_password_file_is_passed_through_env(make_config):
    runner = FakeRunner()
    config = make_config(restic_password=None, restic_password_file="/run/secrets/restic")

    await ResticClient(config, run=runner).list_snapshots()

    env = runner.calls[0]["env"]
    assert env["RESTIC_PASSWORD_FILE"] == "/run/secrets/restic"
    assert "RESTIC_PASSWORD" not in env


@pytest.mark.asyncio
async def test_backup_arguments_and_snapshot_id(make_config, data_dir: Path):
    summary = "\n".join(
        [
            json.dumps({"message_type": "status", "percent_done": 0.5}),
            json.dumps({"message_type": "summary", "snapshot_id": "cafebabe12345678", "files_new": 3}),
        ]
    )
    runner = FakeRunner({"create_snapshot": command_result(summary)})
    config = make_config(
        restic_tags=["vaultwarden", "prod"],
        restic_host="vw-host",
        restic_extra_backup_args=("--exclude-caches",),
    )

    snapshot_id = await ResticClient(config, run=runner).backup(data_dir)

    assert snapshot_id == "cafebabe"
    assert runner.calls[0]["argv"] == [
        "restic",
        "backup",
        "--json",
        "--tag",
        "vaultwarden",
        "--tag",
        "prod",
        "--host",
        "vw-host",
        "--exclude-caches",
        str(data_dir),
    ]


@pytest.mark.asyncio
async def test_backup_without_summary_returns_none(make_config, data_dir: Path):
    runner = FakeRunner({"create_snapshot": command_result("no json here\n")})

    assert await ResticClient(make_config(), run=runner).backup(data_dir) is None


@pytest.mark.asyncio
async def test_restore_targets_filesystem_root(make_config):
    runner = FakeRunner()

    await ResticClient(make_config(), run=runner).restore("aaaaaaaa")

    assert runner.calls[0]["argv"] == ["restic", "restore", "aaaaaaaa", "--target", "/"]
    assert runner.calls[0]["step"] == "restore_files"


@pytest.mark.asyncio
async def test_existing_repository_is_not_initialized(make_config):
    runner = FakeRunner()

    created = await ResticClient(make_config(), run=runner).ensure_repository()

    assert created is False
    assert [c["argv"][1] for c in runner.calls] == ["cat"]


@pytest.mark.asyncio
async def test_missing_repository_is_initialized(make_config):
    runner = FakeRunner({"check_repository": command_result(returncode=10, stderr="Fatal: repository does not exist")})

    created = await ResticClient(make_config(), run=runner).ensure_repository()

    assert created is True
    assert [c["argv"][1] for c in runner.calls] == ["cat", "init"]


@pytest.mark.asyncio
async def test_failed_initialization_raises(make_config):
    runner = FakeRunner(
        {
            "check_repository": command_result(returncode=1),
            "init_repository": command_result(returncode=1, stderr="Fatal: create repository failed"),
        }
    )

    with pytest.raises(CommandError) as exc_info:
        await ResticClient(make_config(), run=runner).ensure_repository()

    assert exc_info.value.step == "init_repository"


# ============================================================================
# PostgreSQL
# ============================================================================

@pytest.mark.asyncio
async def test_custom_format_dump(make_config, data_dir: Path):
    runner = FakeRunner()
    config = make_config(pgdump_extra_args=("--no-owner",))
    client = PostgresClient(config.postgres, run=runner)

    await client.dump(data_dir / "pgdump.dump", DumpFormat.CUSTOM, config.pgdump_extra_args)

    call = runner.calls[0]
    assert call["argv"] == ["pg_dump", "-Fc", "--no-owner", "-f", str(data_dir / "pgdump.dump")]
    assert call["env"] == {
        "PGHOST": "db",
        "PGPORT": "5432",
        "PGDATABASE": "vaultwarden",
        "PGUSER": "vaultwarden",
        "PGPASSWORD": "db-secret",
    }
    assert "db-secret" not in call["argv"]


@pytest.mark.asyncio
async def test_plain_format_dump(make_config, data_dir: Path):
    runner = FakeRunner()

    await PostgresClient(make_config().postgres, run=runner).dump(data_dir / "db.sql", DumpFormat.PLAIN)

    assert runner.calls[0]["argv"][:2] == ["pg_dump", "-Fp"]


@pytest.mark.asyncio
async def test_custom_format_restore_cleans_first(make_config, data_dir: Path):
    runner = FakeRunner()

    await PostgresClient(make_config().postgres, run=runner).restore(data_dir / "x.dump")

    assert runner.calls[0]["argv"] == [
        "pg_restore",
        "--clean",
        "--if-exists",
        "-d",
        "vaultwarden",
        str(data_dir / "x.dump"),
    ]


@pytest.mark.asyncio
async def test_plain_format_restore_stops_on_error(make_config, data_dir: Path):
    runner = FakeRunner()

    await PostgresClient(make_config().postgres, run=runner).restore(data_dir / "x.sql", DumpFormat.PLAIN)

    assert runner.calls[0]["argv"] == ["psql", "-v", "ON_ERROR_STOP=1", "-f", str(data_dir / "x.sql")]
    assert runner.calls[0]["step"] == "restore_database"
