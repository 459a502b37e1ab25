"""
POS Core Config — Public API
===============================
Checkout rules: tax, loyalty ratios, payment polling.
"""

from core.config.rules import (
    CheckoutRules,
    PaymentPollingRules,
    PricingRules,
    TaxRule,
    load_checkout_rules,
    to_decimal,
)

__all__ = [
    "CheckoutRules",
    "PaymentPollingRules",
    "PricingRules",
    "TaxRule",
    "load_checkout_rules",
    "to_decimal",
]
