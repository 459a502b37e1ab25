"""
POS Settlement Engine — Errors
=================================
"""

from __future__ import annotations

from core.commands.rejection import CheckoutRejected, ReasonCode


class SettlementNotAllowed(CheckoutRejected):
    """Only a successful payment attempt may be settled."""
    default_code = ReasonCode.SETTLEMENT_NOT_ALLOWED


class SalePersistenceFailed(Exception):
    """
    The sale record could not be written. No side effect was
    attempted; calling settle() again with the same request is safe.
    """

    def __init__(self, attempt_id: str, cause: Exception):
        super().__init__(f"Could not persist sale for attempt {attempt_id}: {cause}")
        self.attempt_id = attempt_id
        self.cause = cause
