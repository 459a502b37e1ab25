import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="StockLevel",
            fields=[
                ("product_id", models.CharField(max_length=64, primary_key=True, serialize=False)),
                ("quantity", models.IntegerField(default=0)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "pos_stock_levels",
                "ordering": ["product_id"],
            },
        ),
        migrations.CreateModel(
            name="LoyaltyAccountRecord",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("phone", models.CharField(max_length=20, unique=True)),
                ("display_name", models.CharField(blank=True, max_length=255, null=True)),
                ("points_balance", models.IntegerField(default=0)),
                ("lifetime_earned", models.IntegerField(default=0)),
                ("lifetime_redeemed", models.IntegerField(default=0)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "pos_loyalty_accounts",
                "ordering": ["phone"],
            },
        ),
        migrations.CreateModel(
            name="LoyaltyLedgerRecord",
            fields=[
                ("entry_id", models.CharField(max_length=128, primary_key=True, serialize=False)),
                (
                    "kind",
                    models.CharField(
                        choices=[("earn", "Earn"), ("redeem", "Redeem")],
                        max_length=10,
                    ),
                ),
                ("points", models.IntegerField()),
                ("sale_id", models.CharField(max_length=64)),
                ("sale_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ("description", models.CharField(max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "account",
                    models.ForeignKey(
                        db_column="account_id",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger",
                        to="pos_store.loyaltyaccountrecord",
                    ),
                ),
            ],
            options={
                "db_table": "pos_loyalty_ledger",
                "ordering": ["created_at", "entry_id"],
                "indexes": [
                    models.Index(fields=["account", "created_at"], name="idx_ledger_account_created"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Sale",
            fields=[
                ("sale_id", models.UUIDField(editable=False, primary_key=True, serialize=False)),
                (
                    "payment_attempt_id",
                    models.CharField(
                        help_text="One sale per payment attempt. Enforces settlement idempotency.",
                        max_length=64,
                        unique=True,
                    ),
                ),
                ("subtotal", models.DecimalField(decimal_places=2, max_digits=14)),
                ("loyalty_discount", models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ("tax", models.DecimalField(decimal_places=2, default=0, max_digits=14)),
                ("tax_label", models.CharField(blank=True, max_length=64, null=True)),
                ("total", models.DecimalField(decimal_places=2, max_digits=14)),
                (
                    "payment_method",
                    models.CharField(
                        choices=[("cash", "Cash"), ("mobile_money", "Mobile money")],
                        max_length=20,
                    ),
                ),
                ("customer_phone", models.CharField(blank=True, max_length=20, null=True)),
                ("loyalty_account_id", models.UUIDField(blank=True, null=True)),
                ("points_earned", models.IntegerField(default=0)),
                ("points_redeemed", models.IntegerField(default=0)),
                ("external_receipt_ref", models.CharField(blank=True, max_length=64, null=True)),
                ("cash_received", models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ("change_due", models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ("amount_mismatch", models.BooleanField(default=False)),
                ("completed_at", models.DateTimeField()),
            ],
            options={
                "db_table": "pos_sales",
                "ordering": ["-completed_at"],
            },
        ),
        migrations.CreateModel(
            name="SaleLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("position", models.PositiveIntegerField()),
                ("product_id", models.CharField(max_length=64)),
                ("description", models.CharField(max_length=255)),
                ("sku", models.CharField(blank=True, max_length=64, null=True)),
                ("quantity", models.PositiveIntegerField()),
                ("unit_price", models.DecimalField(decimal_places=2, max_digits=14)),
                (
                    "sale",
                    models.ForeignKey(
                        db_column="sale_id",
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lines",
                        to="pos_store.sale",
                    ),
                ),
            ],
            options={
                "db_table": "pos_sale_lines",
                "ordering": ["sale", "position"],
                "constraints": [
                    models.UniqueConstraint(fields=("sale", "position"), name="uq_sale_line_position"),
                ],
            },
        ),
        migrations.CreateModel(
            name="SettlementEffectRecord",
            fields=[
                ("effect_id", models.CharField(max_length=128, primary_key=True, serialize=False)),
                ("sale_id", models.CharField(db_index=True, max_length=64)),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("stock_decrement", "Stock decrement"),
                            ("loyalty_balance", "Loyalty balance"),
                            ("loyalty_ledger", "Loyalty ledger"),
                        ],
                        max_length=20,
                    ),
                ),
                ("payload", models.JSONField(default=dict)),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("applied", "Applied"), ("failed", "Failed")],
                        default="pending",
                        max_length=10,
                    ),
                ),
                ("attempts", models.PositiveIntegerField(default=0)),
                ("last_error", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "pos_settlement_effects",
                "ordering": ["created_at", "effect_id"],
                "indexes": [
                    models.Index(fields=["status", "created_at"], name="idx_effect_status_created"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PaymentWatchRecord",
            fields=[
                ("request_id", models.CharField(max_length=128, primary_key=True, serialize=False)),
                ("attempt_id", models.CharField(max_length=64)),
                ("amount_due", models.DecimalField(decimal_places=2, max_digits=14)),
                ("phone", models.CharField(blank=True, max_length=20, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("OPEN", "Open"),
                            ("SETTLED", "Settled"),
                            ("CLOSED", "Closed"),
                            ("NEEDS_VERIFICATION", "Needs verification"),
                            ("LATE_SUCCESS", "Late success"),
                        ],
                        default="OPEN",
                        max_length=20,
                    ),
                ),
                ("note", models.TextField(blank=True, null=True)),
                ("receipt_ref", models.CharField(blank=True, max_length=64, null=True)),
                ("settled_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "db_table": "pos_payment_watchlist",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["status", "created_at"], name="idx_watch_status_created"),
                ],
            },
        ),
        migrations.CreateModel(
            name="GatewayCallbackRecord",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("request_id", models.CharField(db_index=True, max_length=128)),
                ("status", models.CharField(max_length=20)),
                ("disposition", models.CharField(max_length=20)),
                ("receipt_ref", models.CharField(blank=True, max_length=64, null=True)),
                ("settled_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ("phone", models.CharField(blank=True, max_length=20, null=True)),
                ("message", models.TextField(blank=True, null=True)),
                ("payload", models.JSONField(default=dict)),
                ("received_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "db_table": "pos_gateway_callbacks",
                "ordering": ["-received_at"],
            },
        ),
    ]
