"""
POS Django HTTP adapter.
Thin framework glue over the checkout engines.
"""

from adapters.django_api.wiring import (
    build_business_profile,
    build_checkout_rules,
    build_checkout_session,
    build_gateway,
    build_reconciler,
)

__all__ = [
    "build_business_profile",
    "build_checkout_rules",
    "build_checkout_session",
    "build_gateway",
    "build_reconciler",
]
