"""Timezone-aware clock utilities.

All timestamps in quakeviz are UTC-aware.  This module is the single
source of "now" so tests can patch it at each call site.
"""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def from_epoch_millis(millis: int | float) -> datetime:
    """Convert a feed timestamp (milliseconds since the epoch) to UTC."""
    return datetime.fromtimestamp(millis / 1000.0, tz=timezone.utc)
