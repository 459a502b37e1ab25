"""
POS Django Adapter Wiring
=========================
Builds checkout collaborators from Django settings.

This module is adapter-only glue:
- engine rules come from settings.POS_CHECKOUT
- the gateway client comes from settings.MOBILE_MONEY_GATEWAY
- stores are the pos_store ORM implementations
"""

from __future__ import annotations

import threading
from typing import Any, Optional

from django.conf import settings

from adapters.django_store.stores import (
    DjangoLoyaltyStore,
    DjangoPaymentWatchlist,
    DjangoSaleStore,
    DjangoSettlementOutbox,
    DjangoStockStore,
)
from adapters.mobile_money.client import HttpMobileMoneyGateway
from core.config.rules import CheckoutRules, load_checkout_rules
from core.time.clock import SystemClock
from engines.cart.services import ProductCatalog
from engines.checkout.services import CheckoutSession
from engines.payment.notifications import NotificationSink
from engines.receipt.models import BusinessProfile
from engines.receipt.renderer import ReceiptPrinter
from engines.settlement.services import SettlementReconciler

_GATEWAY_LOCK = threading.Lock()
_GATEWAY: HttpMobileMoneyGateway | None = None


def _setting(name: str) -> dict[str, Any]:
    return dict(getattr(settings, name, None) or {})


def build_checkout_rules(*, tax_registered: Optional[bool] = None) -> CheckoutRules:
    return load_checkout_rules(_setting("POS_CHECKOUT"), tax_registered=tax_registered)


def build_business_profile() -> BusinessProfile:
    profile = _setting("POS_BUSINESS_PROFILE")
    return BusinessProfile(
        business_name=profile.get("BUSINESS_NAME", ""),
        tax_pin=profile.get("TAX_PIN") or None,
        is_tax_registered=bool(profile.get("TAX_REGISTERED", True)),
        phone=profile.get("PHONE") or None,
        email=profile.get("EMAIL") or None,
        address=profile.get("ADDRESS") or None,
        logo_url=profile.get("LOGO_URL") or None,
        currency=_setting("POS_CHECKOUT").get("CURRENCY", "KES"),
        timezone=profile.get("TIMEZONE") or settings.TIME_ZONE,
    )


def build_gateway() -> HttpMobileMoneyGateway:
    """
    Lazy singleton gateway client.
    """
    global _GATEWAY
    with _GATEWAY_LOCK:
        if _GATEWAY is None:
            config = _setting("MOBILE_MONEY_GATEWAY")
            _GATEWAY = HttpMobileMoneyGateway(
                base_url=config.get("BASE_URL", ""),
                api_key=config.get("API_KEY") or None,
                timeout=float(config.get("TIMEOUT_SECONDS", 15)),
            )
        return _GATEWAY


def build_reconciler(profile: Optional[BusinessProfile] = None) -> SettlementReconciler:
    loyalty_store = DjangoLoyaltyStore()
    return SettlementReconciler(
        sale_store=DjangoSaleStore(),
        stock_store=DjangoStockStore(),
        loyalty_store=loyalty_store,
        outbox=DjangoSettlementOutbox(),
        clock=SystemClock(),
        business_profile=profile or build_business_profile(),
    )


def build_checkout_session(
    *,
    catalog: Optional[ProductCatalog] = None,
    notifier: Optional[NotificationSink] = None,
    printer: Optional[ReceiptPrinter] = None,
) -> CheckoutSession:
    """One session per till. Never share a session between tills."""
    profile = build_business_profile()
    return CheckoutSession(
        reconciler=build_reconciler(profile),
        loyalty_store=DjangoLoyaltyStore(),
        rules=build_checkout_rules(tax_registered=profile.is_tax_registered),
        catalog=catalog,
        gateway=build_gateway(),
        notifier=notifier,
        watchlist=DjangoPaymentWatchlist(),
        printer=printer,
    )
