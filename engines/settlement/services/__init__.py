"""
POS Settlement Engine — Settlement Reconciler
================================================
Turns a successful payment into durable state.

Order of writes:
  1. Sale record (source of truth). If this fails nothing else
     happens and settle() may simply be called again.
  2. One stock decrement per line.
  3. Loyalty: balance write, earn entry, redeem entry (if any).

Steps 2 and 3 go through the settlement outbox. Each effect is
applied independently; a failed effect is logged, left in the
outbox as FAILED and picked up by retry_failed_effects(). The
sale is never rolled back.

Keyed by payment attempt id: settling the same attempt twice
returns the recorded sale and applies nothing again.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal
from typing import List, Optional

from core.time.clock import Clock, SystemClock
from engines.loyalty.models import LedgerKind, LoyaltyLedgerEntry
from engines.loyalty.stores import LoyaltyStore
from engines.payment.models import PaymentState
from engines.receipt.composer import compose_receipt, receipt_number
from engines.receipt.models import BusinessProfile
from engines.settlement.errors import SalePersistenceFailed, SettlementNotAllowed
from engines.settlement.models import (
    EffectKind,
    EffectStatus,
    SaleLineSnapshot,
    SaleRecord,
    SettlementEffect,
    SettlementRequest,
    SettlementResult,
    sale_id_for,
)
from engines.settlement.stores import SaleStore, SettlementOutbox, StockStore

logger = logging.getLogger("pos.settlement")


def plan_effects(sale: SaleRecord, request: SettlementRequest) -> List[SettlementEffect]:
    """Deterministic outbox rows for a sale."""
    effects = [
        SettlementEffect(
            effect_id=f"{sale.sale_id}:stock:{line.product_id}",
            sale_id=sale.sale_id,
            kind=EffectKind.STOCK_DECREMENT,
            payload={"product_id": line.product_id, "quantity": line.quantity},
        )
        for line in sale.lines
    ]

    account = request.loyalty_account
    if account is None:
        return effects

    earned = sale.points_earned
    redeemed = sale.points_redeemed
    effects.append(SettlementEffect(
        effect_id=f"{sale.sale_id}:loyalty:balance",
        sale_id=sale.sale_id,
        kind=EffectKind.LOYALTY_BALANCE,
        payload={
            "account_id": account.id,
            "points_balance": max(0, account.points_balance - redeemed + earned),
            "lifetime_earned": account.lifetime_earned + earned,
            "lifetime_redeemed": account.lifetime_redeemed + redeemed,
        },
    ))

    number = receipt_number(sale)
    entries = [(LedgerKind.EARN, earned, f"Earned {earned} points on sale {number}")]
    if redeemed > 0:
        entries.append(
            (LedgerKind.REDEEM, redeemed, f"Redeemed {redeemed} points on sale {number}")
        )
    for kind, points, description in entries:
        entry_id = f"{sale.sale_id}:loyalty:{kind.value}"
        effects.append(SettlementEffect(
            effect_id=entry_id,
            sale_id=sale.sale_id,
            kind=EffectKind.LOYALTY_LEDGER,
            payload={
                "entry_id": entry_id,
                "account_id": account.id,
                "kind": kind.value,
                "points": points,
                "sale_id": sale.sale_id,
                "sale_amount": str(sale.total),
                "description": description,
            },
        ))
    return effects


class SettlementReconciler:

    def __init__(
        self,
        *,
        sale_store: SaleStore,
        stock_store: StockStore,
        loyalty_store: LoyaltyStore,
        outbox: SettlementOutbox,
        clock: Optional[Clock] = None,
        business_profile: Optional[BusinessProfile] = None,
    ):
        self._sales = sale_store
        self._stock = stock_store
        self._loyalty = loyalty_store
        self._outbox = outbox
        self._clock = clock or SystemClock()
        self._profile = business_profile

    # ── Settle ────────────────────────────────────────────────

    def settle(self, request: SettlementRequest) -> SettlementResult:
        payment = request.payment
        if payment.state is not PaymentState.SUCCESS:
            raise SettlementNotAllowed.because(
                f"Payment attempt {payment.attempt_id} is {payment.state.value}; "
                f"only successful payments are settled.",
                policy_name="SettlementReconciler.settle",
            )

        existing = self._sales.get_by_attempt(payment.attempt_id)
        if existing is not None:
            logger.info(
                f"Attempt {payment.attempt_id} already settled as sale "
                f"{existing.sale_id}; replaying"
            )
            # the insert may have committed before its caller saw an error;
            # finish whatever effects that run never applied
            applied = [
                self._apply(self._outbox.add(effect))
                for effect in plan_effects(existing, request)
            ]
            return SettlementResult(
                sale=existing,
                receipt=compose_receipt(existing, self._profile),
                effects=tuple(applied),
                replayed=True,
            )

        sale = self._build_sale(request)
        try:
            saved_id = self._sales.insert(sale)
        except Exception as exc:
            logger.error(
                f"Sale persistence failed for attempt {payment.attempt_id}: {exc}",
                exc_info=True,
            )
            raise SalePersistenceFailed(payment.attempt_id, exc) from exc
        logger.info(
            f"Sale {saved_id} recorded for attempt {payment.attempt_id} "
            f"({sale.payment_method.value}, total {sale.total})"
        )
        if saved_id != sale.sale_id:
            sale = replace(sale, sale_id=saved_id)

        applied = [
            self._apply(self._outbox.add(effect))
            for effect in plan_effects(sale, request)
        ]
        failed = [e for e in applied if not e.is_applied]
        if failed:
            logger.error(
                f"Sale {sale.sale_id}: {len(failed)} of {len(applied)} "
                f"effects failed and await retry"
            )

        return SettlementResult(
            sale=sale,
            receipt=compose_receipt(sale, self._profile),
            effects=tuple(applied),
        )

    # ── Retry ─────────────────────────────────────────────────

    def retry_failed_effects(self) -> List[SettlementEffect]:
        """Apply every effect not yet applied. Safe to call repeatedly."""
        pending = self._outbox.unapplied()
        if not pending:
            return []
        results = [self._apply(effect) for effect in pending]
        still_failed = sum(1 for e in results if not e.is_applied)
        logger.info(
            f"Retried {len(results)} settlement effects, {still_failed} still failing"
        )
        return results

    # ── Internals ─────────────────────────────────────────────

    def _build_sale(self, request: SettlementRequest) -> SaleRecord:
        payment = request.payment
        totals = request.totals
        return SaleRecord(
            sale_id=sale_id_for(payment.attempt_id),
            payment_attempt_id=payment.attempt_id,
            lines=tuple(SaleLineSnapshot.from_cart_line(line) for line in request.lines),
            subtotal=totals.subtotal,
            loyalty_discount=totals.loyalty_discount,
            tax=totals.tax,
            total=totals.total,
            payment_method=payment.method,
            completed_at=self._clock.now_utc(),
            tax_label=request.tax_label,
            customer_phone=request.customer_phone,
            loyalty_account_id=(
                request.loyalty_account.id if request.loyalty_account else None
            ),
            points_earned=totals.points_to_earn if request.loyalty_account else 0,
            points_redeemed=totals.points_redeemed if request.loyalty_account else 0,
            external_receipt_ref=payment.external_receipt_ref,
            cash_received=request.cash_received,
            change_due=request.change_due,
            amount_mismatch=payment.amount_mismatch,
        )

    def _apply(self, effect: SettlementEffect) -> SettlementEffect:
        if effect.is_applied:
            return effect
        try:
            self._dispatch(effect)
        except Exception as exc:
            logger.error(
                f"Settlement effect {effect.effect_id} failed "
                f"(attempt {effect.attempts + 1}): {exc}",
                exc_info=True,
            )
            updated = replace(
                effect,
                status=EffectStatus.FAILED,
                attempts=effect.attempts + 1,
                last_error=str(exc),
            )
        else:
            updated = replace(
                effect,
                status=EffectStatus.APPLIED,
                attempts=effect.attempts + 1,
                last_error=None,
            )
        self._outbox.save(updated)
        return updated

    def _dispatch(self, effect: SettlementEffect) -> None:
        p = effect.payload
        if effect.kind is EffectKind.STOCK_DECREMENT:
            level = self._stock.decrement(p["product_id"], int(p["quantity"]))
            logger.info(f"Stock for {p['product_id']} now {level}")
        elif effect.kind is EffectKind.LOYALTY_BALANCE:
            self._loyalty.update_balance(
                p["account_id"],
                points_balance=int(p["points_balance"]),
                lifetime_earned=int(p["lifetime_earned"]),
                lifetime_redeemed=int(p["lifetime_redeemed"]),
            )
        elif effect.kind is EffectKind.LOYALTY_LEDGER:
            self._loyalty.append_ledger_entry(ledger_entry_from_payload(p))
        else:
            raise ValueError(f"Unknown effect kind {effect.kind!r}.")


def ledger_entry_from_payload(payload: dict) -> LoyaltyLedgerEntry:
    amount = payload.get("sale_amount")
    return LoyaltyLedgerEntry(
        entry_id=payload["entry_id"],
        account_id=payload["account_id"],
        kind=LedgerKind(payload["kind"]),
        points=int(payload["points"]),
        sale_id=payload["sale_id"],
        description=payload["description"],
        sale_amount=Decimal(amount) if amount is not None else None,
    )
