"""
POS Core — Rejection Model
============================
Structured reasons for refused checkout operations.

A rejection is an explanation, not a failure of the system:
the operator asked for something the current state does not
allow (adding an out-of-stock product, paying with too little
cash, redeeming more points than the account holds).

Every rejection must be:
- Deterministic (same input → same rejection)
- Auditable (code + message + policy)
- Machine-readable (code)
- Human-readable (message)

Rejections are raised synchronously and leave the cart,
session and payment attempt exactly as they were.
"""

from __future__ import annotations

from dataclasses import dataclass


# ══════════════════════════════════════════════════════════════
# REJECTION REASON (frozen explanation structure)
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RejectionReason:
    """
    Structured reason for a refused operation.

    Fields:
        code:        Machine-readable rejection code (e.g. 'OUT_OF_STOCK').
        message:     Human-readable explanation for the operator.
        policy_name: Name of the policy that caused rejection.
    """

    code: str
    message: str
    policy_name: str

    def __post_init__(self):
        if not self.code or not isinstance(self.code, str):
            raise ValueError("code must be a non-empty string.")

        if not self.message or not isinstance(self.message, str):
            raise ValueError("message must be a non-empty string.")

        if not self.policy_name or not isinstance(self.policy_name, str):
            raise ValueError("policy_name must be a non-empty string.")

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "policy_name": self.policy_name,
        }


# ══════════════════════════════════════════════════════════════
# STANDARD REJECTION CODES
# ══════════════════════════════════════════════════════════════

class ReasonCode:
    """
    Known rejection codes.

    Convention: SCREAMING_SNAKE_CASE.
    """

    # ── Cart ──────────────────────────────────────────────────
    OUT_OF_STOCK = "OUT_OF_STOCK"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    LINE_NOT_FOUND = "LINE_NOT_FOUND"
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    EMPTY_CART = "EMPTY_CART"

    # ── Loyalty ───────────────────────────────────────────────
    INVALID_PHONE = "INVALID_PHONE"
    REDEMPTION_EXCEEDS_LIMIT = "REDEMPTION_EXCEEDS_LIMIT"
    INVALID_REDEMPTION = "INVALID_REDEMPTION"
    NO_LOYALTY_ACCOUNT = "NO_LOYALTY_ACCOUNT"

    # ── Payment ───────────────────────────────────────────────
    INSUFFICIENT_CASH = "INSUFFICIENT_CASH"
    CHECKOUT_IN_PROGRESS = "CHECKOUT_IN_PROGRESS"

    # ── Settlement ────────────────────────────────────────────
    SETTLEMENT_NOT_ALLOWED = "SETTLEMENT_NOT_ALLOWED"


# ══════════════════════════════════════════════════════════════
# REJECTION EXCEPTION
# ══════════════════════════════════════════════════════════════

class CheckoutRejected(Exception):
    """
    Raised when a precondition refuses an operation.

    Carries the RejectionReason so adapters can surface the
    code and message to the operator unchanged.
    """

    default_code = "POLICY_VIOLATION"

    def __init__(self, reason: RejectionReason):
        super().__init__(reason.message)
        self.reason = reason

    @property
    def code(self) -> str:
        return self.reason.code

    @classmethod
    def because(cls, message: str, *, policy_name: str, code: str | None = None):
        return cls(
            RejectionReason(
                code=code or cls.default_code,
                message=message,
                policy_name=policy_name,
            )
        )
