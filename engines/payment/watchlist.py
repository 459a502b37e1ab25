"""
POS Payment Engine — Out-of-Band Watchlist
=============================================
Mobile-money charges can settle after the till has stopped
looking: the operator closed the dialog, or the poll budget ran
out. Those request ids are kept on a watchlist so that a late
gateway report is matched and surfaced for manual
reconciliation instead of being dropped.

Report dispositions:
    IN_FLIGHT     — attempt still being polled; polling will see it
    ALREADY_FINAL — attempt settled or closed through polling
    LATE_SUCCESS  — abandoned/timed-out attempt actually paid
    CLOSED        — abandoned/timed-out attempt did not pay
    UNMATCHED     — success for a request id we never tracked
    IGNORED       — non-success for an unknown request id
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Protocol

from engines.payment.gateway import GatewayStatus

logger = logging.getLogger("pos.payment")


class WatchStatus(Enum):
    OPEN = "OPEN"
    SETTLED = "SETTLED"
    CLOSED = "CLOSED"
    NEEDS_VERIFICATION = "NEEDS_VERIFICATION"
    LATE_SUCCESS = "LATE_SUCCESS"


class ReportDisposition(Enum):
    IN_FLIGHT = "IN_FLIGHT"
    ALREADY_FINAL = "ALREADY_FINAL"
    LATE_SUCCESS = "LATE_SUCCESS"
    CLOSED = "CLOSED"
    UNMATCHED = "UNMATCHED"
    IGNORED = "IGNORED"


@dataclass(frozen=True)
class WatchEntry:
    request_id: str
    attempt_id: str
    amount_due: Decimal
    phone: Optional[str] = None
    status: WatchStatus = WatchStatus.OPEN
    note: Optional[str] = None
    receipt_ref: Optional[str] = None
    settled_amount: Optional[Decimal] = None


@dataclass(frozen=True)
class GatewayReport:
    """A payment outcome pushed by the gateway (callback)."""
    request_id: str
    status: GatewayStatus
    settled_amount: Optional[Decimal] = None
    receipt_ref: Optional[str] = None
    phone: Optional[str] = None
    message: Optional[str] = None


class PaymentWatchlist(Protocol):
    def get(self, request_id: str) -> Optional[WatchEntry]:
        ...

    def save(self, entry: WatchEntry) -> None:
        ...

    def record_unmatched(self, report: GatewayReport) -> None:
        ...


class InMemoryPaymentWatchlist:
    def __init__(self):
        self._entries: Dict[str, WatchEntry] = {}
        self.unmatched: List[GatewayReport] = []

    def get(self, request_id: str) -> Optional[WatchEntry]:
        return self._entries.get(request_id)

    def save(self, entry: WatchEntry) -> None:
        self._entries[entry.request_id] = entry

    def record_unmatched(self, report: GatewayReport) -> None:
        self.unmatched.append(report)

    def needing_attention(self) -> List[WatchEntry]:
        return [
            e for e in self._entries.values()
            if e.status in (WatchStatus.NEEDS_VERIFICATION, WatchStatus.LATE_SUCCESS)
        ]


# ══════════════════════════════════════════════════════════════
# WATCHLIST OPERATIONS
# ══════════════════════════════════════════════════════════════

def track(
    watchlist: PaymentWatchlist,
    *,
    request_id: str,
    attempt_id: str,
    amount_due: Decimal,
    phone: Optional[str] = None,
) -> WatchEntry:
    entry = WatchEntry(
        request_id=request_id,
        attempt_id=attempt_id,
        amount_due=amount_due,
        phone=phone,
    )
    watchlist.save(entry)
    return entry


def mark(
    watchlist: PaymentWatchlist,
    request_id: str,
    status: WatchStatus,
    *,
    note: Optional[str] = None,
) -> Optional[WatchEntry]:
    entry = watchlist.get(request_id)
    if entry is None:
        return None
    updated = replace(entry, status=status, note=note or entry.note)
    watchlist.save(updated)
    return updated


def reconcile_report(
    watchlist: PaymentWatchlist,
    report: GatewayReport,
) -> ReportDisposition:
    """Match a gateway report against the watchlist."""
    entry = watchlist.get(report.request_id)
    succeeded = report.status is GatewayStatus.SUCCESS

    if entry is None:
        if succeeded:
            watchlist.record_unmatched(report)
            logger.warning(
                f"Unmatched mobile-money payment {report.request_id} "
                f"(receipt {report.receipt_ref}, amount {report.settled_amount}); "
                "reconcile manually"
            )
            return ReportDisposition.UNMATCHED
        return ReportDisposition.IGNORED

    if entry.status is WatchStatus.OPEN:
        return ReportDisposition.IN_FLIGHT

    if entry.status in (WatchStatus.SETTLED, WatchStatus.CLOSED, WatchStatus.LATE_SUCCESS):
        return ReportDisposition.ALREADY_FINAL

    if succeeded:
        watchlist.save(replace(
            entry,
            status=WatchStatus.LATE_SUCCESS,
            receipt_ref=report.receipt_ref,
            settled_amount=report.settled_amount,
            note="Gateway reported success after the till stopped polling.",
        ))
        logger.warning(
            f"Late mobile-money success for attempt {entry.attempt_id} "
            f"(request {entry.request_id}, receipt {report.receipt_ref}); "
            "reconcile manually"
        )
        return ReportDisposition.LATE_SUCCESS

    if report.status is GatewayStatus.PENDING:
        return ReportDisposition.IN_FLIGHT

    watchlist.save(replace(
        entry,
        status=WatchStatus.CLOSED,
        note=report.message or entry.note,
    ))
    return ReportDisposition.CLOSED
