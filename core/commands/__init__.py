"""
POS Core Commands — Rejections
================================
Structured, auditable refusals for checkout operations.
"""

from core.commands.rejection import (
    CheckoutRejected,
    ReasonCode,
    RejectionReason,
)

__all__ = [
    "CheckoutRejected",
    "ReasonCode",
    "RejectionReason",
]
