# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
pgrestic Selector - Snapshot and dump selection.

Snapshot timestamps from the store and the caller's cutoff are normalized to
timezone-aware UTC datetimes at the boundary, so ordering never depends on
how the strings happen to be formatted.
"""

import fnmatch
import re
from dataclasses import dataclass, field
from datetime import datetime, time as clock_time, UTC
from typing import Any, FrozenSet, Iterable, List, Mapping, Sequence, Tuple

from pgrestic.errors import explain_invalid_cutoff
from pgrestic.exceptions import ConfigurationError, SnapshotFormatError

_SNAPSHOT_TIME_RE = re.compile(
    r"^(?P<base>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<frac>\d+))?"
    r"(?P<tz>Z|[+-]\d{2}:\d{2})$"
)
_CUTOFF_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_CUTOFF_TIMESTAMP_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?Z$")

END_OF_DAY = clock_time(23, 59, 59)


@dataclass(frozen=True)
class Snapshot:
    """A point-in-time snapshot listed by the snapshot store."""

    id: str
    time: datetime  # timezone-aware, UTC
    tags: FrozenSet[str] = field(default_factory=frozenset)
    hostname: str | None = None
    paths: Tuple[str, ...] = ()

    @classmethod
    def from_restic(cls, entry: Mapping[str, Any]) -> "Snapshot":
        """Build a Snapshot from one element of `restic snapshots --json`."""
        snapshot_id = entry.get("short_id") or (entry.get("id") or "")[:8]
        if not snapshot_id or "time" not in entry:
            raise SnapshotFormatError(
                "list_snapshots",
                "Snapshot entry is missing id or time",
                details={"entry": dict(entry)},
            )
        return cls(
            id=snapshot_id,
            time=parse_snapshot_time(entry["time"]),
            tags=frozenset(entry.get("tags") or ()),
            hostname=entry.get("hostname"),
            paths=tuple(entry.get("paths") or ()),
        )


def parse_snapshot_time(value: str) -> datetime:
    """
    Parse an RFC 3339 timestamp as emitted by the snapshot store.

    restic prints local time with a numeric offset and nanosecond
    precision; the fraction is truncated to microseconds and the result
    converted to UTC.

    Raises:
        SnapshotFormatError: If the value is not RFC 3339
    """
    match = _SNAPSHOT_TIME_RE.match(value or "")
    if not match:
        raise SnapshotFormatError(
            "list_snapshots",
            f"Unrecognized snapshot timestamp: {value!r}",
        )

    frac = (match.group("frac") or "")[:6].ljust(6, "0")
    tz = match.group("tz")
    if tz == "Z":
        tz = "+00:00"

    try:
        parsed = datetime.fromisoformat(f"{match.group('base')}.{frac}{tz}")
    except ValueError as e:
        raise SnapshotFormatError(
            "list_snapshots",
            f"Invalid snapshot timestamp: {value!r}",
        ) from e
    return parsed.astimezone(UTC)


def parse_cutoff(value: str | None) -> datetime | None:
    """
    Parse a restore cutoff.

    Accepts YYYY-MM-DD, which means the end of that UTC day (23:59:59),
    or a full UTC timestamp YYYY-MM-DDTHH:MM:SS[.ffffff]Z.

    Returns:
        UTC datetime, or None when no cutoff was given

    Raises:
        ConfigurationError: If the value has any other format
    """
    if value is None or not value.strip():
        return None
    value = value.strip()

    try:
        if _CUTOFF_DATE_RE.match(value):
            day = datetime.strptime(value, "%Y-%m-%d").date()
            return datetime.combine(day, END_OF_DAY, tzinfo=UTC)
        if _CUTOFF_TIMESTAMP_RE.match(value):
            return parse_snapshot_time(value)
    except (ValueError, SnapshotFormatError) as e:
        raise ConfigurationError(explain_invalid_cutoff(value)) from e

    raise ConfigurationError(explain_invalid_cutoff(value))


def format_timestamp(value: datetime) -> str:
    """Render a datetime as an RFC 3339 UTC timestamp with a Z suffix."""
    return value.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def _order_key(snapshot: Snapshot) -> Tuple[datetime, str]:
    # Equal times are ordered by id so the choice never depends on list order
    return (snapshot.time, snapshot.id)


def select_snapshot(
    snapshots: Sequence[Snapshot],
    cutoff: datetime | None = None,
) -> Snapshot | None:
    """
    Pick the snapshot to restore.

    Without a cutoff, the newest snapshot wins; with a cutoff, the newest
    snapshot taken at or before it. Ties on time are broken by the
    greatest id.

    Args:
        snapshots: Snapshots listed by the store
        cutoff: Optional UTC upper bound (inclusive)

    Returns:
        The selected snapshot, or None if nothing qualifies
    """
    candidates: List[Snapshot] = list(snapshots)
    if cutoff is not None:
        candidates = [s for s in candidates if s.time <= cutoff]
    if not candidates:
        return None
    return max(candidates, key=_order_key)


def select_newest_dump(
    entries: Iterable[Tuple[str, float]],
    pattern: str,
) -> str | None:
    """
    Pick the newest dump file among directory entries.

    Args:
        entries: (filename, modification time) pairs
        pattern: Glob the filename must match

    Returns:
        The filename with the latest modification time (ties broken by
        name), or None if nothing matches
    """
    matches = [(mtime, name) for name, mtime in entries if fnmatch.fnmatchcase(name, pattern)]
    if not matches:
        return None
    return max(matches)[1]
