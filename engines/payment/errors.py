"""
POS Payment Engine — Errors
==============================
InsufficientCash and CheckoutInProgress are operator-facing
rejections. InvalidPaymentTransition is a programming error:
something tried to move an attempt out of a terminal state.
"""

from __future__ import annotations

from core.commands.rejection import CheckoutRejected, ReasonCode


class InsufficientCash(CheckoutRejected):
    default_code = ReasonCode.INSUFFICIENT_CASH


class CheckoutInProgress(CheckoutRejected):
    default_code = ReasonCode.CHECKOUT_IN_PROGRESS


class InvalidPaymentTransition(ValueError):
    pass


class GatewayError(Exception):
    """The mobile-money gateway refused or could not be reached."""

    def __init__(self, message: str, *, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
