# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
pgrestic - Backup and restore a directory plus a PostgreSQL database with restic.

Backups dump the database into the directory and snapshot it; restores
pick a snapshot (optionally as of a cutoff) and only ever write into an
empty directory and an empty database.
"""

__version__ = "0.1.0"

# Configuration creation (user-facing API)
from pgrestic.builder import create_config
from pgrestic.env import create_config_from_env

# Core orchestration functions
from pgrestic.backup import run_backup, run_restore
from pgrestic.core import Outcome, RunResult
from pgrestic.selector import Snapshot, parse_cutoff, select_snapshot

__all__ = [
    # Version
    "__version__",
    # Configuration creation
    "create_config",
    "create_config_from_env",
    # Core orchestration functions
    "run_backup",
    "run_restore",
    # Types
    "Outcome",
    "RunResult",
    "Snapshot",
    # Selection
    "parse_cutoff",
    "select_snapshot",
]
