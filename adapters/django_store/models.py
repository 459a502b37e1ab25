"""
POS Django Store — Relational Checkout State
===============================================
One table per independent resource. Nothing here spans
resources in a transaction: the sale row is written first and
every other write is an outbox effect.
"""

from __future__ import annotations

import uuid

from django.db import models


# ══════════════════════════════════════════════════════════════
# ENUMS
# ══════════════════════════════════════════════════════════════

class PaymentMethodChoice(models.TextChoices):
    CASH = "cash", "Cash"
    MOBILE_MONEY = "mobile_money", "Mobile money"


class LedgerKindChoice(models.TextChoices):
    EARN = "earn", "Earn"
    REDEEM = "redeem", "Redeem"


class EffectKindChoice(models.TextChoices):
    STOCK_DECREMENT = "stock_decrement", "Stock decrement"
    LOYALTY_BALANCE = "loyalty_balance", "Loyalty balance"
    LOYALTY_LEDGER = "loyalty_ledger", "Loyalty ledger"


class EffectStatusChoice(models.TextChoices):
    PENDING = "pending", "Pending"
    APPLIED = "applied", "Applied"
    FAILED = "failed", "Failed"


class WatchStatusChoice(models.TextChoices):
    OPEN = "OPEN", "Open"
    SETTLED = "SETTLED", "Settled"
    CLOSED = "CLOSED", "Closed"
    NEEDS_VERIFICATION = "NEEDS_VERIFICATION", "Needs verification"
    LATE_SUCCESS = "LATE_SUCCESS", "Late success"


# ══════════════════════════════════════════════════════════════
# STOCK
# ══════════════════════════════════════════════════════════════

class StockLevel(models.Model):
    product_id = models.CharField(primary_key=True, max_length=64)
    quantity = models.IntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "pos_stock_levels"
        ordering = ["product_id"]

    def __str__(self) -> str:
        return f"{self.product_id}: {self.quantity}"


# ══════════════════════════════════════════════════════════════
# LOYALTY
# ══════════════════════════════════════════════════════════════

class LoyaltyAccountRecord(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    phone = models.CharField(max_length=20, unique=True)
    display_name = models.CharField(max_length=255, null=True, blank=True)
    points_balance = models.IntegerField(default=0)
    lifetime_earned = models.IntegerField(default=0)
    lifetime_redeemed = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "pos_loyalty_accounts"
        ordering = ["phone"]

    def __str__(self) -> str:
        return f"{self.phone} ({self.points_balance} pts)"


class LoyaltyLedgerRecord(models.Model):
    entry_id = models.CharField(primary_key=True, max_length=128)
    account = models.ForeignKey(
        LoyaltyAccountRecord,
        on_delete=models.PROTECT,
        related_name="ledger",
        db_column="account_id",
    )
    kind = models.CharField(max_length=10, choices=LedgerKindChoice.choices)
    points = models.IntegerField()
    sale_id = models.CharField(max_length=64)
    sale_amount = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    description = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "pos_loyalty_ledger"
        ordering = ["created_at", "entry_id"]
        indexes = [
            models.Index(fields=["account", "created_at"], name="idx_ledger_account_created"),
        ]


# ══════════════════════════════════════════════════════════════
# SALES
# ══════════════════════════════════════════════════════════════

class Sale(models.Model):
    sale_id = models.UUIDField(primary_key=True, editable=False)
    payment_attempt_id = models.CharField(
        max_length=64,
        unique=True,
        help_text="One sale per payment attempt. Enforces settlement idempotency.",
    )
    subtotal = models.DecimalField(max_digits=14, decimal_places=2)
    loyalty_discount = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    tax = models.DecimalField(max_digits=14, decimal_places=2, default=0)
    tax_label = models.CharField(max_length=64, null=True, blank=True)
    total = models.DecimalField(max_digits=14, decimal_places=2)
    payment_method = models.CharField(max_length=20, choices=PaymentMethodChoice.choices)
    customer_phone = models.CharField(max_length=20, null=True, blank=True)
    loyalty_account_id = models.UUIDField(null=True, blank=True)
    points_earned = models.IntegerField(default=0)
    points_redeemed = models.IntegerField(default=0)
    external_receipt_ref = models.CharField(max_length=64, null=True, blank=True)
    cash_received = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    change_due = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    amount_mismatch = models.BooleanField(default=False)
    completed_at = models.DateTimeField()

    class Meta:
        db_table = "pos_sales"
        ordering = ["-completed_at"]

    def __str__(self) -> str:
        return f"{self.sale_id} ({self.total})"


class SaleLine(models.Model):
    sale = models.ForeignKey(
        Sale,
        on_delete=models.CASCADE,
        related_name="lines",
        db_column="sale_id",
    )
    position = models.PositiveIntegerField()
    product_id = models.CharField(max_length=64)
    description = models.CharField(max_length=255)
    sku = models.CharField(max_length=64, null=True, blank=True)
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=14, decimal_places=2)

    class Meta:
        db_table = "pos_sale_lines"
        ordering = ["sale", "position"]
        constraints = [
            models.UniqueConstraint(fields=("sale", "position"), name="uq_sale_line_position"),
        ]


# ══════════════════════════════════════════════════════════════
# SETTLEMENT OUTBOX
# ══════════════════════════════════════════════════════════════

class SettlementEffectRecord(models.Model):
    effect_id = models.CharField(primary_key=True, max_length=128)
    sale_id = models.CharField(max_length=64, db_index=True)
    kind = models.CharField(max_length=20, choices=EffectKindChoice.choices)
    payload = models.JSONField(default=dict)
    status = models.CharField(
        max_length=10,
        choices=EffectStatusChoice.choices,
        default=EffectStatusChoice.PENDING,
    )
    attempts = models.PositiveIntegerField(default=0)
    last_error = models.TextField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "pos_settlement_effects"
        ordering = ["created_at", "effect_id"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="idx_effect_status_created"),
        ]


# ══════════════════════════════════════════════════════════════
# MOBILE MONEY
# ══════════════════════════════════════════════════════════════

class PaymentWatchRecord(models.Model):
    request_id = models.CharField(primary_key=True, max_length=128)
    attempt_id = models.CharField(max_length=64)
    amount_due = models.DecimalField(max_digits=14, decimal_places=2)
    phone = models.CharField(max_length=20, null=True, blank=True)
    status = models.CharField(
        max_length=20,
        choices=WatchStatusChoice.choices,
        default=WatchStatusChoice.OPEN,
    )
    note = models.TextField(null=True, blank=True)
    receipt_ref = models.CharField(max_length=64, null=True, blank=True)
    settled_amount = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "pos_payment_watchlist"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="idx_watch_status_created"),
        ]


class GatewayCallbackRecord(models.Model):
    """Every callback the gateway sends, kept verbatim for reconciliation."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    request_id = models.CharField(max_length=128, db_index=True)
    status = models.CharField(max_length=20)
    disposition = models.CharField(max_length=20)
    receipt_ref = models.CharField(max_length=64, null=True, blank=True)
    settled_amount = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)
    phone = models.CharField(max_length=20, null=True, blank=True)
    message = models.TextField(null=True, blank=True)
    payload = models.JSONField(default=dict)
    received_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "pos_gateway_callbacks"
        ordering = ["-received_at"]
