"""Recency period resolution and the cache freshness table.

A requested duration string (``"45m"``, ``"1h30m"``, ``"10d"``) is mapped to
the smallest feed period that covers it.  Resolution is total: anything that
does not parse falls back to ``DEFAULT_PERIOD``.
"""

from __future__ import annotations

import re
from datetime import timedelta

from quakeviz.domain.enums import Period

DEFAULT_PERIOD = Period.PAST_7_DAYS

# Longer windows change more slowly, so they tolerate longer cache lifetimes.
CACHE_TTLS: dict[Period, timedelta] = {
    Period.PAST_30_DAYS: timedelta(days=1),
    Period.PAST_7_DAYS: timedelta(days=1),
    Period.PAST_DAY: timedelta(hours=6),
    Period.PAST_HOUR: timedelta(hours=1),
}

_NS_PER_SECOND = 1_000_000_000
_NS_PER_HOUR = 3600 * _NS_PER_SECOND

# Upper bound of each period in nanoseconds, smallest first.
_PERIOD_BOUNDS: tuple[tuple[int, Period], ...] = (
    (_NS_PER_HOUR, Period.PAST_HOUR),
    (24 * _NS_PER_HOUR, Period.PAST_DAY),
    (7 * 24 * _NS_PER_HOUR, Period.PAST_7_DAYS),
)

_UNIT_NANOSECONDS: dict[str, int] = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": _NS_PER_SECOND,
    "m": 60 * _NS_PER_SECOND,
    "h": _NS_PER_HOUR,
    "d": 24 * _NS_PER_HOUR,
    "w": 7 * 24 * _NS_PER_HOUR,
}

# Durations are signed 64-bit nanosecond counts.
MAX_DURATION_NS = 2**63 - 1

_COMPONENT = re.compile(r"(\d*)(?:\.(\d*))?(ns|us|µs|μs|ms|s|m|h|d|w)", re.ASCII)

# Digits beyond these cannot change an in-range result.
_MAX_WHOLE_DIGITS = 19
_MAX_FRACTION_DIGITS = 30


class InvalidDurationError(ValueError):
    """Raised when a duration string cannot be parsed or is out of range."""


def parse_duration_ns(text: str) -> int:
    """Parse a Go-style duration string into integer nanoseconds.

    Accepts an optional sign followed by one or more number+unit pairs,
    e.g. ``"2h"``, ``"1h30m"``, ``"-15m"``, ``"2.5d"``.  The bare string
    ``"0"`` is zero.  Fractions below one nanosecond are truncated.

    Raises:
        InvalidDurationError: If *text* is empty, malformed, or its
            magnitude exceeds ``MAX_DURATION_NS`` (about 292 years).
    """
    raw = text.strip()
    if not raw:
        raise InvalidDurationError("empty duration")

    negative = raw[0] == "-"
    if raw[0] in "+-":
        raw = raw[1:]

    if raw == "0":
        return 0

    total = 0
    pos = 0
    while pos < len(raw):
        match = _COMPONENT.match(raw, pos)
        whole, fraction, unit = match.groups() if match else ("", None, "")
        if match is None or not (whole or fraction):
            raise InvalidDurationError(f"invalid duration {text!r}")
        whole = whole.lstrip("0")
        if len(whole) > _MAX_WHOLE_DIGITS:
            raise InvalidDurationError(f"duration {text!r} out of range")
        fraction = (fraction or "")[:_MAX_FRACTION_DIGITS]
        scale = _UNIT_NANOSECONDS[unit]
        total += int(whole or "0") * scale
        if fraction:
            total += int(fraction) * scale // 10 ** len(fraction)
        if total > MAX_DURATION_NS:
            raise InvalidDurationError(f"duration {text!r} out of range")
        pos = match.end()

    if pos == 0:
        raise InvalidDurationError(f"invalid duration {text!r}")
    return -total if negative else total


def parse_duration(text: str) -> timedelta:
    """Parse a Go-style duration string into a timedelta.

    Same grammar and limits as :func:`parse_duration_ns`; precision below
    one microsecond is truncated toward zero.
    """
    ns = parse_duration_ns(text)
    micros = abs(ns) // 1000
    return timedelta(microseconds=-micros if ns < 0 else micros)


def period_for_ns(duration_ns: int) -> Period:
    """Return the smallest period whose upper bound covers *duration_ns*."""
    for bound, period in _PERIOD_BOUNDS:
        if duration_ns <= bound:
            return period
    return Period.PAST_30_DAYS


def period_for(duration: timedelta) -> Period:
    """Return the smallest period whose upper bound covers *duration*."""
    return period_for_ns(
        (duration.days * 86_400 + duration.seconds) * _NS_PER_SECOND
        + duration.microseconds * 1000
    )


def resolve_period(text: str | None, default: Period = DEFAULT_PERIOD) -> Period:
    """Resolve a requested duration string to a feed period.

    Never raises: missing or unparseable input yields *default*.
    """
    if not text:
        return default
    try:
        return period_for_ns(parse_duration_ns(text))
    except InvalidDurationError:
        return default


def cache_ttl(period: Period) -> timedelta:
    return CACHE_TTLS[period]
