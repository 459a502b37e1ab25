"""
Tests for core.time: clocks and business-local conversion.
"""

import pytest
from datetime import datetime, timezone, timedelta

from core.time import FixedClock, SystemClock, business_zone, local_time

SALE_TIME = datetime(2026, 3, 14, 21, 45, tzinfo=timezone.utc)


class TestClocks:
    def test_system_clock_is_utc(self):
        assert SystemClock().now_utc().tzinfo == timezone.utc

    def test_fixed_clock_holds_until_advanced(self):
        clock = FixedClock(SALE_TIME)
        assert clock.now_utc() == SALE_TIME
        clock.advance(5)
        clock.advance(5)
        assert clock.now_utc() == SALE_TIME + timedelta(seconds=10)

    def test_fixed_clock_rejects_naive_datetime(self):
        with pytest.raises(ValueError, match="timezone-aware"):
            FixedClock(datetime(2026, 1, 1))


class TestLocalTime:
    def test_late_evening_sale_rolls_into_next_local_day(self):
        local = local_time(SALE_TIME, "Africa/Nairobi")
        assert (local.day, local.hour, local.minute) == (15, 0, 45)
        assert local == SALE_TIME

    def test_blank_zone_means_utc(self):
        assert local_time(SALE_TIME, "").utcoffset() == timedelta(0)

    def test_unknown_zone_rejected(self):
        with pytest.raises(ValueError, match="Unknown timezone"):
            business_zone("Mars/Olympus_Mons")

    def test_naive_datetime_rejected(self):
        with pytest.raises(ValueError):
            local_time(datetime(2026, 3, 14, 9, 30), "UTC")
