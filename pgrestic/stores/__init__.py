# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Store clients - restic snapshots and PostgreSQL dumps.
"""

from pgrestic.stores.postgres import PostgresClient
from pgrestic.stores.restic import ResticClient

__all__ = [
    "PostgresClient",
    "ResticClient",
]
