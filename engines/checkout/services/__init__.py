"""
POS Checkout Engine — Checkout Session
=========================================
One till, one customer, one logical thread of control.

The session owns the cart, the loyalty selection and the payment
orchestrator, and hands a successful payment to the settlement
reconciler. It is not re-entrant: while a mobile-money payment is
being collected the cart is frozen and a second payment is refused.

Success clears the cart and the loyalty selection. Failure or
cancellation leaves both untouched so the operator can retry.
"""

from __future__ import annotations

import asyncio
import logging
from functools import partial
from typing import Optional

from core.config.rules import CheckoutRules
from engines.cart.models import CartLine, CartTotals, Product
from engines.cart.services import Cart, ProductCatalog, ScanIntake
from engines.checkout.errors import EmptyCart, NoLoyaltyAccount
from engines.checkout.models import CheckoutResult
from engines.loyalty.models import LoyaltyAccount
from engines.loyalty.services import LoyaltyPreview, LoyaltyResolver
from engines.loyalty.stores import LoyaltyStore
from engines.payment.errors import CheckoutInProgress
from engines.payment.gateway import MobileMoneyGateway
from engines.payment.models import PaymentAttempt, PaymentMethod, PaymentState
from engines.payment.notifications import NotificationSink
from engines.payment.polling import Sleep
from engines.payment.services import PaymentOrchestrator, RunBlocking
from engines.payment.watchlist import PaymentWatchlist
from engines.receipt.renderer import ReceiptPrinter
from engines.settlement.models import SettlementRequest
from engines.settlement.services import SettlementReconciler

logger = logging.getLogger("pos.checkout")


class CheckoutSession:

    def __init__(
        self,
        *,
        reconciler: SettlementReconciler,
        loyalty_store: LoyaltyStore,
        rules: Optional[CheckoutRules] = None,
        catalog: Optional[ProductCatalog] = None,
        gateway: Optional[MobileMoneyGateway] = None,
        notifier: Optional[NotificationSink] = None,
        watchlist: Optional[PaymentWatchlist] = None,
        printer: Optional[ReceiptPrinter] = None,
        sleep: Sleep = asyncio.sleep,
        run_blocking: RunBlocking = asyncio.to_thread,
    ):
        self._rules = rules or CheckoutRules()
        self._cart = Cart(self._rules.pricing)
        self._scanner = ScanIntake(cart=self._cart, catalog=catalog) if catalog else None
        self._loyalty = LoyaltyResolver(store=loyalty_store, rules=self._rules.pricing)
        self._payments = PaymentOrchestrator(
            gateway=gateway,
            rules=self._rules.polling,
            notifier=notifier,
            watchlist=watchlist,
            sleep=sleep,
            run_blocking=run_blocking,
        )
        self._reconciler = reconciler
        self._printer = printer
        self._run_blocking = run_blocking
        self._account: Optional[LoyaltyAccount] = None
        self._points_to_redeem = 0
        self._unsettled: Optional[SettlementRequest] = None

    # ── Read side ─────────────────────────────────────────────

    @property
    def cart(self) -> Cart:
        return self._cart

    @property
    def loyalty_account(self) -> Optional[LoyaltyAccount]:
        return self._account

    @property
    def points_to_redeem(self) -> int:
        return self._points_to_redeem

    @property
    def payments(self) -> PaymentOrchestrator:
        return self._payments

    def totals(self) -> CartTotals:
        return self._cart.totals(self._points_to_redeem)

    def loyalty_preview(self) -> Optional[LoyaltyPreview]:
        if self._account is None:
            return None
        return self._loyalty.preview_earn_and_redeem(self.totals(), self._account)

    # ── Cart ──────────────────────────────────────────────────

    def scan(self, code: str) -> CartLine:
        self._ensure_idle("scan")
        if self._scanner is None:
            raise RuntimeError("No product catalog configured for scanning.")
        line = self._scanner.on_scan(code)
        self._reclamp_redemption()
        return line

    def add_product(self, product: Product, quantity: int = 1) -> CartLine:
        self._ensure_idle("add_product")
        line = self._cart.add_line(product, quantity)
        self._reclamp_redemption()
        return line

    def adjust_quantity(self, product_id: str, delta: int) -> CartLine:
        self._ensure_idle("adjust_quantity")
        line = self._cart.adjust_quantity(product_id, delta)
        self._reclamp_redemption()
        return line

    def remove_line(self, product_id: str) -> bool:
        self._ensure_idle("remove_line")
        removed = self._cart.remove_line(product_id)
        self._reclamp_redemption()
        return removed

    def clear(self) -> None:
        self._ensure_idle("clear")
        self._cart.clear()
        self.detach_loyalty()

    # ── Loyalty ───────────────────────────────────────────────

    def lookup_loyalty(self, phone: str) -> Optional[LoyaltyAccount]:
        """Find and attach an account. None means: offer enrollment."""
        account = self._loyalty.find_by_phone(phone)
        if account is not None:
            self.attach_loyalty(account)
        return account

    def enroll_loyalty(self, phone: str, name: Optional[str] = None) -> LoyaltyAccount:
        account = self._loyalty.create(phone, name)
        self.attach_loyalty(account)
        return account

    def attach_loyalty(self, account: LoyaltyAccount) -> None:
        self._ensure_idle("attach_loyalty")
        self._account = account
        self._points_to_redeem = 0

    def detach_loyalty(self) -> None:
        self._ensure_idle("detach_loyalty")
        self._account = None
        self._points_to_redeem = 0

    def redeem_points(self, points: int) -> CartTotals:
        self._ensure_idle("redeem_points")
        if self._account is None:
            raise NoLoyaltyAccount.because(
                "Attach a loyalty account before redeeming points.",
                policy_name="CheckoutSession.redeem_points",
            )
        self._points_to_redeem = self._loyalty.validate_redemption(
            points, self._cart.totals().subtotal, self._account,
        )
        return self.totals()

    def _reclamp_redemption(self) -> None:
        if self._account is None or not self._points_to_redeem:
            return
        cap = self._loyalty.max_redeemable(self._cart.totals().subtotal, self._account)
        if self._points_to_redeem > cap:
            logger.info(f"Redemption reduced from {self._points_to_redeem} to {cap} points")
            self._points_to_redeem = cap

    # ── Payment ───────────────────────────────────────────────

    def pay_cash(self, cash_received) -> CheckoutResult:
        totals = self._begin(PaymentMethod.CASH)
        attempt = self._payments.pay_cash(cash_received)
        return self._finish(attempt, totals)

    async def pay_mobile_money(self, phone: Optional[str] = None) -> CheckoutResult:
        phone = phone or (self._account.phone if self._account else None)
        if not phone:
            raise ValueError("A phone number is required for mobile-money payment.")
        totals = self._begin(PaymentMethod.MOBILE_MONEY)
        attempt = await self._payments.collect_mobile_money(phone)
        # settlement writes are blocking I/O, same as gateway calls
        return await self._run_blocking(
            partial(self._finish, attempt, totals, customer_phone=attempt.customer_phone)
        )

    def retry_settlement(self) -> CheckoutResult:
        """Settle a paid attempt whose sale record could not be written."""
        if self._unsettled is None:
            raise RuntimeError("Nothing awaiting settlement.")
        return self._settle(self._unsettled)

    def close(self) -> None:
        """Close the dialog. A pending charge is flagged, not cancelled."""
        self._payments.close()

    # ── Internals ─────────────────────────────────────────────

    def _ensure_idle(self, operation: str) -> None:
        if self._payments.is_busy:
            raise CheckoutInProgress.because(
                "A payment is being collected; wait for it to finish.",
                policy_name=f"CheckoutSession.{operation}",
            )
        if self._unsettled is not None:
            raise CheckoutInProgress.because(
                "A paid sale has not been recorded yet; retry settlement first.",
                policy_name=f"CheckoutSession.{operation}",
            )

    def _begin(self, method: PaymentMethod) -> CartTotals:
        self._ensure_idle(f"pay_{method.value}")
        if self._cart.is_empty:
            raise EmptyCart.because(
                "Add at least one item before checking out.",
                policy_name="CheckoutSession.checkout",
            )
        totals = self.totals()
        self._payments.begin(method, totals.total)
        logger.info(
            f"Checkout started: {len(self._cart)} line(s), total {totals.total}, "
            f"{method.value}"
        )
        return totals

    def _finish(
        self,
        attempt: PaymentAttempt,
        totals: CartTotals,
        *,
        customer_phone: Optional[str] = None,
    ) -> CheckoutResult:
        if attempt.state is not PaymentState.SUCCESS:
            logger.info(
                f"Checkout not completed: attempt {attempt.attempt_id} "
                f"{attempt.state.value}; cart kept"
            )
            return CheckoutResult(attempt=attempt.snapshot())

        pricing = self._rules.pricing
        request = SettlementRequest(
            payment=attempt.snapshot(),
            lines=self._cart.lines,
            totals=totals,
            loyalty_account=self._account,
            customer_phone=customer_phone or (self._account.phone if self._account else None),
            tax_label=pricing.tax.percent_label if pricing.tax_registered else None,
            cash_received=attempt.cash_received,
            change_due=attempt.change_due,
        )
        self._unsettled = request
        return self._settle(request)

    def _settle(self, request: SettlementRequest) -> CheckoutResult:
        settlement = self._reconciler.settle(request)
        self._unsettled = None
        self._cart.clear()
        self._account = None
        self._points_to_redeem = 0
        logger.info(
            f"Checkout complete: sale {settlement.sale.sale_id}, "
            f"total {settlement.sale.total}"
        )
        if self._printer is not None:
            self._print(settlement.receipt)
        return CheckoutResult(
            attempt=request.payment,
            settlement=settlement,
            receipt=settlement.receipt,
        )

    def _print(self, receipt) -> None:
        try:
            self._printer.print_receipt(receipt)
        except Exception as exc:
            logger.error(f"Receipt printing failed: {exc}", exc_info=True)
