"""
POS Core Time — Public API
============================
Injected clocks; UTC in storage, business-local on receipts.
"""

from core.time.clock import (
    Clock,
    FixedClock,
    SystemClock,
    business_zone,
    local_time,
)

__all__ = [
    "Clock",
    "FixedClock",
    "SystemClock",
    "business_zone",
    "local_time",
]
