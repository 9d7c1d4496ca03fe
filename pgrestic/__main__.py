# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

from pgrestic.cli import run

if __name__ == "__main__":
    run()
