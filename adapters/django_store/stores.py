"""
POS Django Store — ORM-backed Stores
=======================================
Implementations of the engine store protocols over the pos_store
models. Each method is its own short transaction; no call spans
two resources.

Duplicate writes are resolved at two levels, as everywhere else:
  A) look up the existing row first
  B) catch IntegrityError for the concurrent-insert race
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, List, Optional

from django.db import IntegrityError, transaction
from django.db.models import F, Value
from django.db.models.functions import Greatest

from adapters.django_store.models import (
    GatewayCallbackRecord,
    LoyaltyAccountRecord,
    LoyaltyLedgerRecord,
    PaymentWatchRecord,
    Sale,
    SaleLine,
    SettlementEffectRecord,
    StockLevel,
)
from engines.loyalty.models import LoyaltyAccount, LoyaltyLedgerEntry
from engines.payment.models import PaymentMethod
from engines.payment.watchlist import GatewayReport, ReportDisposition, WatchEntry, WatchStatus
from engines.settlement.models import (
    EffectKind,
    EffectStatus,
    SaleLineSnapshot,
    SaleRecord,
    SettlementEffect,
)

logger = logging.getLogger("pos.settlement")


# ══════════════════════════════════════════════════════════════
# SALES
# ══════════════════════════════════════════════════════════════

def _sale_to_domain(row: Sale) -> SaleRecord:
    return SaleRecord(
        sale_id=str(row.sale_id),
        payment_attempt_id=row.payment_attempt_id,
        lines=tuple(
            SaleLineSnapshot(
                product_id=line.product_id,
                description=line.description,
                quantity=line.quantity,
                unit_price=line.unit_price,
                sku=line.sku,
            )
            for line in row.lines.order_by("position")
        ),
        subtotal=row.subtotal,
        loyalty_discount=row.loyalty_discount,
        tax=row.tax,
        total=row.total,
        payment_method=PaymentMethod(row.payment_method),
        completed_at=row.completed_at,
        tax_label=row.tax_label,
        customer_phone=row.customer_phone,
        loyalty_account_id=str(row.loyalty_account_id) if row.loyalty_account_id else None,
        points_earned=row.points_earned,
        points_redeemed=row.points_redeemed,
        external_receipt_ref=row.external_receipt_ref,
        cash_received=row.cash_received,
        change_due=row.change_due,
        amount_mismatch=row.amount_mismatch,
    )


class DjangoSaleStore:

    def get_by_attempt(self, attempt_id: str) -> Optional[SaleRecord]:
        row = Sale.objects.filter(payment_attempt_id=attempt_id).first()
        return _sale_to_domain(row) if row else None

    def insert(self, sale: SaleRecord) -> str:
        existing = (
            Sale.objects.filter(payment_attempt_id=sale.payment_attempt_id)
            .values_list("sale_id", flat=True)
            .first()
        )
        if existing is not None:
            return str(existing)
        try:
            with transaction.atomic():
                row = Sale.objects.create(
                    sale_id=uuid.UUID(sale.sale_id),
                    payment_attempt_id=sale.payment_attempt_id,
                    subtotal=sale.subtotal,
                    loyalty_discount=sale.loyalty_discount,
                    tax=sale.tax,
                    tax_label=sale.tax_label,
                    total=sale.total,
                    payment_method=sale.payment_method.value,
                    customer_phone=sale.customer_phone,
                    loyalty_account_id=(
                        uuid.UUID(sale.loyalty_account_id) if sale.loyalty_account_id else None
                    ),
                    points_earned=sale.points_earned,
                    points_redeemed=sale.points_redeemed,
                    external_receipt_ref=sale.external_receipt_ref,
                    cash_received=sale.cash_received,
                    change_due=sale.change_due,
                    amount_mismatch=sale.amount_mismatch,
                    completed_at=sale.completed_at,
                )
                SaleLine.objects.bulk_create([
                    SaleLine(
                        sale=row,
                        position=position,
                        product_id=line.product_id,
                        description=line.description,
                        sku=line.sku,
                        quantity=line.quantity,
                        unit_price=line.unit_price,
                    )
                    for position, line in enumerate(sale.lines)
                ])
        except IntegrityError:
            # Concurrent insert for the same attempt won the race.
            winner = (
                Sale.objects.filter(payment_attempt_id=sale.payment_attempt_id)
                .values_list("sale_id", flat=True)
                .first()
            )
            if winner is None:
                raise
            logger.info(
                f"Sale for attempt {sale.payment_attempt_id} already recorded "
                f"(detected at database level)"
            )
            return str(winner)
        return str(row.sale_id)


# ══════════════════════════════════════════════════════════════
# STOCK
# ══════════════════════════════════════════════════════════════

class DjangoStockStore:

    def level(self, product_id: str) -> int:
        return StockLevel.objects.get(product_id=product_id).quantity

    def set_level(self, product_id: str, quantity: int) -> None:
        StockLevel.objects.update_or_create(
            product_id=product_id, defaults={"quantity": quantity},
        )

    def decrement(self, product_id: str, quantity: int) -> int:
        updated = StockLevel.objects.filter(product_id=product_id).update(
            quantity=Greatest(F("quantity") - quantity, Value(0)),
        )
        if not updated:
            raise KeyError(f"Unknown product '{product_id}'.")
        return self.level(product_id)


# ══════════════════════════════════════════════════════════════
# LOYALTY
# ══════════════════════════════════════════════════════════════

def _account_to_domain(row: LoyaltyAccountRecord) -> LoyaltyAccount:
    return LoyaltyAccount(
        id=str(row.id),
        phone=row.phone,
        display_name=row.display_name,
        points_balance=row.points_balance,
        lifetime_earned=row.lifetime_earned,
        lifetime_redeemed=row.lifetime_redeemed,
    )


class DjangoLoyaltyStore:

    def find_by_phone(self, phone: str) -> Optional[LoyaltyAccount]:
        row = LoyaltyAccountRecord.objects.filter(phone=phone).first()
        return _account_to_domain(row) if row else None

    def get(self, account_id: str) -> Optional[LoyaltyAccount]:
        row = LoyaltyAccountRecord.objects.filter(id=account_id).first()
        return _account_to_domain(row) if row else None

    def create(self, phone: str, display_name: Optional[str] = None) -> LoyaltyAccount:
        try:
            with transaction.atomic():
                row = LoyaltyAccountRecord.objects.create(
                    phone=phone, display_name=display_name or None,
                )
        except IntegrityError as exc:
            raise ValueError(f"Loyalty account for {phone} already exists.") from exc
        return _account_to_domain(row)

    def update_balance(
        self,
        account_id: str,
        *,
        points_balance: int,
        lifetime_earned: int,
        lifetime_redeemed: int,
    ) -> None:
        updated = LoyaltyAccountRecord.objects.filter(id=account_id).update(
            points_balance=points_balance,
            lifetime_earned=lifetime_earned,
            lifetime_redeemed=lifetime_redeemed,
        )
        if not updated:
            raise KeyError(f"Unknown loyalty account '{account_id}'.")

    def append_ledger_entry(self, entry: LoyaltyLedgerEntry) -> None:
        if LoyaltyLedgerRecord.objects.filter(entry_id=entry.entry_id).exists():
            return
        try:
            with transaction.atomic():
                LoyaltyLedgerRecord.objects.create(
                    entry_id=entry.entry_id,
                    account_id=entry.account_id,
                    kind=entry.kind.value,
                    points=entry.points,
                    sale_id=entry.sale_id,
                    sale_amount=entry.sale_amount,
                    description=entry.description,
                )
        except IntegrityError:
            if not LoyaltyLedgerRecord.objects.filter(entry_id=entry.entry_id).exists():
                raise


# ══════════════════════════════════════════════════════════════
# SETTLEMENT OUTBOX
# ══════════════════════════════════════════════════════════════

def _effect_to_domain(row: SettlementEffectRecord) -> SettlementEffect:
    return SettlementEffect(
        effect_id=row.effect_id,
        sale_id=row.sale_id,
        kind=EffectKind(row.kind),
        payload=dict(row.payload),
        status=EffectStatus(row.status),
        attempts=row.attempts,
        last_error=row.last_error,
    )


class DjangoSettlementOutbox:

    def add(self, effect: SettlementEffect) -> SettlementEffect:
        row, _ = SettlementEffectRecord.objects.get_or_create(
            effect_id=effect.effect_id,
            defaults={
                "sale_id": effect.sale_id,
                "kind": effect.kind.value,
                "payload": effect.payload,
                "status": effect.status.value,
                "attempts": effect.attempts,
                "last_error": effect.last_error,
            },
        )
        return _effect_to_domain(row)

    def save(self, effect: SettlementEffect) -> None:
        SettlementEffectRecord.objects.update_or_create(
            effect_id=effect.effect_id,
            defaults={
                "sale_id": effect.sale_id,
                "kind": effect.kind.value,
                "payload": effect.payload,
                "status": effect.status.value,
                "attempts": effect.attempts,
                "last_error": effect.last_error,
            },
        )

    def for_sale(self, sale_id: str) -> List[SettlementEffect]:
        return [
            _effect_to_domain(row)
            for row in SettlementEffectRecord.objects.filter(sale_id=sale_id)
        ]

    def unapplied(self) -> List[SettlementEffect]:
        return [
            _effect_to_domain(row)
            for row in SettlementEffectRecord.objects.exclude(status=EffectStatus.APPLIED.value)
        ]


# ══════════════════════════════════════════════════════════════
# MOBILE-MONEY WATCHLIST
# ══════════════════════════════════════════════════════════════

def _watch_to_domain(row: PaymentWatchRecord) -> WatchEntry:
    return WatchEntry(
        request_id=row.request_id,
        attempt_id=row.attempt_id,
        amount_due=row.amount_due,
        phone=row.phone,
        status=WatchStatus(row.status),
        note=row.note,
        receipt_ref=row.receipt_ref,
        settled_amount=row.settled_amount,
    )


class DjangoPaymentWatchlist:
    """
    raw_payload, when given, is stored alongside any callback this
    instance records. The callback view builds one per request.
    """

    def __init__(self, raw_payload: Optional[Dict[str, Any]] = None):
        self._raw_payload = raw_payload or {}

    def get(self, request_id: str) -> Optional[WatchEntry]:
        row = PaymentWatchRecord.objects.filter(request_id=request_id).first()
        return _watch_to_domain(row) if row else None

    def save(self, entry: WatchEntry) -> None:
        PaymentWatchRecord.objects.update_or_create(
            request_id=entry.request_id,
            defaults={
                "attempt_id": entry.attempt_id,
                "amount_due": entry.amount_due,
                "phone": entry.phone,
                "status": entry.status.value,
                "note": entry.note,
                "receipt_ref": entry.receipt_ref,
                "settled_amount": entry.settled_amount,
            },
        )

    def needing_attention(self) -> List[WatchEntry]:
        rows = PaymentWatchRecord.objects.filter(
            status__in=[
                WatchStatus.NEEDS_VERIFICATION.value,
                WatchStatus.LATE_SUCCESS.value,
            ]
        )
        return [_watch_to_domain(row) for row in rows]

    def record_unmatched(self, report: GatewayReport) -> None:
        self.record_callback(report, ReportDisposition.UNMATCHED)

    def record_callback(self, report: GatewayReport, disposition: ReportDisposition) -> None:
        GatewayCallbackRecord.objects.create(
            request_id=report.request_id,
            status=report.status.value,
            disposition=disposition.value,
            receipt_ref=report.receipt_ref,
            settled_amount=report.settled_amount,
            phone=report.phone,
            message=report.message,
            payload=self._raw_payload,
        )
