"""
POS Core Time — Clocks and Business-Local Time
================================================
Sales are stamped in UTC from an injected Clock; nothing in the
engines calls datetime.now(). Receipts show the moment in the
business's own timezone, converted at composition time.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


class Clock(Protocol):
    def now_utc(self) -> datetime:
        ...  # pragma: no cover


class SystemClock:
    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """
    Pinned clock for tests and replays of recorded sessions.

        clock = FixedClock(datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc))
        clock.advance(5)   # one poll interval later
    """

    def __init__(self, fixed_dt: datetime) -> None:
        _require_aware(fixed_dt, "FixedClock")
        self._fixed_dt = fixed_dt

    def now_utc(self) -> datetime:
        return self._fixed_dt

    def advance(self, seconds: float) -> None:
        self._fixed_dt = self._fixed_dt + timedelta(seconds=seconds)


# ══════════════════════════════════════════════════════════════
# BUSINESS-LOCAL TIME
# ══════════════════════════════════════════════════════════════

def _require_aware(moment: datetime, what: str) -> None:
    if moment.tzinfo is None:
        raise ValueError(f"{what} requires timezone-aware datetime.")


def business_zone(tz_name: str) -> ZoneInfo:
    """IANA zone for a business profile; unknown names are rejected."""
    try:
        return ZoneInfo(tz_name or "UTC")
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"Unknown timezone {tz_name!r}.") from exc


def local_time(moment: datetime, tz_name: str) -> datetime:
    _require_aware(moment, "local_time")
    return moment.astimezone(business_zone(tz_name))
