# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Backup Engine - Backup and restore orchestration.
"""

from pgrestic.backup.manager import (
    dump_path_for,
    run_backup,
)

from pgrestic.backup.restore import (
    locate_dump,
    run_restore,
)

__all__ = [
    # Manager
    "dump_path_for",
    "run_backup",
    # Restore
    "locate_dump",
    "run_restore",
]
