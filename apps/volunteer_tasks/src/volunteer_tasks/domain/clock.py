"""Timezone helpers for persisted timestamps."""

from __future__ import annotations

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Return the current instant as an aware UTC datetime."""

    return datetime.now(tz=UTC)


def as_utc(value: datetime) -> datetime:
    """Normalize a datetime to aware UTC.

    SQLite drops tzinfo on round-trip, so naive values read back from the
    store are interpreted as UTC.
    """

    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)
