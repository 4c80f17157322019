"""Datetime helpers."""

from datetime import UTC, datetime


def utc_now() -> datetime:
    """Current UTC time as a naive datetime.

    Stored timestamps are naive UTC so MySQL and SQLite compare them the
    same way.
    """
    return datetime.now(UTC).replace(tzinfo=None)
