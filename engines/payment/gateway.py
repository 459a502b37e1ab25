"""
POS Payment Engine — Mobile-Money Gateway Contract
====================================================
The gateway is an external HTTP service: untrusted, possibly
slow, possibly flaky. Both calls are blocking; the orchestrator
runs them off the event loop.

initiate(phone, amount, reference)      → InitiationResult | GatewayError
query_status(request_id, expected)      → StatusResult     | GatewayError
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional, Protocol


class GatewayStatus(Enum):
    PENDING = "pending"
    SUCCESS = "success"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @classmethod
    def parse(cls, value) -> "GatewayStatus":
        """Unknown or missing statuses are read as still pending."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.PENDING


@dataclass(frozen=True)
class InitiationResult:
    request_id: str
    message: Optional[str] = None

    def __post_init__(self):
        if not self.request_id:
            raise ValueError("request_id must be non-empty.")


@dataclass(frozen=True)
class StatusResult:
    status: GatewayStatus
    settled_amount: Optional[Decimal] = None
    receipt_ref: Optional[str] = None
    message: Optional[str] = None


class MobileMoneyGateway(Protocol):
    def initiate(self, phone: str, amount: Decimal, reference: str) -> InitiationResult:
        ...

    def query_status(self, request_id: str, expected_amount: Decimal) -> StatusResult:
        ...
