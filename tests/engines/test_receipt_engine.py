"""POS Receipt Engine tests: composition, till-roll text, HTML safety."""

from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal

from engines.payment import PaymentMethod
from engines.receipt import (
    BusinessProfile,
    RecordingReceiptPrinter,
    compose_receipt,
    format_money,
    receipt_number,
    render_html,
    render_text,
)
from engines.settlement import SaleLineSnapshot, SaleRecord

COMPLETED = datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc)

PROFILE = BusinessProfile(
    business_name="Mama Mboga Stores",
    tax_pin="P051234567X",
    phone="0722000111",
    email="sales@mamamboga.co.ke",
    address="Moi Avenue, Nairobi",
)

CASH_SALE = SaleRecord(
    sale_id="3f2a9c1e-7b4d-5e6f-8a9b-0c1d2e3f4a5b",
    payment_attempt_id="attempt-1",
    lines=(
        SaleLineSnapshot("p-sugar", "Sugar 2kg", 2, Decimal("250"), sku="SUG-2"),
        SaleLineSnapshot("p-rice", "Rice 1kg", 1, Decimal("500")),
    ),
    subtotal=Decimal("1000"),
    loyalty_discount=Decimal(0),
    tax=Decimal("160.00"),
    total=Decimal("1160.00"),
    payment_method=PaymentMethod.CASH,
    completed_at=COMPLETED,
    tax_label="VAT (16%)",
    cash_received=Decimal("1500"),
    change_due=Decimal("340.00"),
)

MOBILE_SALE = replace(
    CASH_SALE,
    payment_method=PaymentMethod.MOBILE_MONEY,
    loyalty_discount=Decimal(200),
    tax=Decimal("128.00"),
    total=Decimal("928.00"),
    customer_phone="0712345678",
    loyalty_account_id="acct-1",
    points_redeemed=200,
    points_earned=8,
    external_receipt_ref="QK12ABC",
    cash_received=None,
    change_due=None,
)


class TestCompose:
    def test_receipt_number_is_short_sale_id(self):
        assert receipt_number(CASH_SALE) == "3F2A9C1E7B"

    def test_cash_receipt_fields(self):
        doc = compose_receipt(CASH_SALE, PROFILE)
        assert doc.business_name == "Mama Mboga Stores"
        assert doc.header_lines == (
            "Moi Avenue, Nairobi",
            "Tel: 0722000111",
            "sales@mamamboga.co.ke",
            "PIN: P051234567X",
        )
        assert doc.payment_label == "Cash"
        assert doc.issued_at == COMPLETED
        assert doc.tax_label == "VAT (16%)"
        assert doc.cash_received == Decimal("1500")
        assert doc.change_due == Decimal("340.00")
        assert [line.total for line in doc.lines] == [Decimal(500), Decimal(500)]

    def test_mobile_receipt_has_reference_and_no_change(self):
        doc = compose_receipt(MOBILE_SALE, PROFILE)
        assert doc.payment_label == "M-Pesa"
        assert doc.external_receipt_ref == "QK12ABC"
        assert doc.cash_received is None
        assert doc.change_due is None
        assert doc.points_redeemed == 200
        assert doc.points_earned == 8

    def test_unregistered_business_has_no_tax_line(self):
        sale = replace(CASH_SALE, tax=Decimal(0), total=Decimal(1000), tax_label=None)
        doc = compose_receipt(sale, replace(PROFILE, is_tax_registered=False))
        assert doc.tax_label is None

    def test_issued_at_in_business_timezone(self):
        doc = compose_receipt(CASH_SALE, replace(PROFILE, timezone="Africa/Nairobi"))
        assert doc.issued_at == COMPLETED
        assert doc.issued_at.hour == 12
        assert "Date: 14/03/2026 12:30" in render_text(doc)

    def test_missing_profile_still_produces_receipt(self):
        doc = compose_receipt(CASH_SALE, None)
        assert doc.business_name == ""
        assert doc.header_lines == ()
        assert doc.currency == "KES"


class TestRenderText:
    def test_cash_roll(self):
        text = render_text(compose_receipt(CASH_SALE, PROFILE))
        lines = text.splitlines()

        assert lines[0].strip() == "MAMA MBOGA STORES"
        assert "Receipt: 3F2A9C1E7B" in lines
        assert "Date: 14/03/2026 09:30" in lines
        assert "Payment: Cash" in lines
        assert any(l.startswith("TOTAL:") and l.endswith("KES 1,160.00") for l in lines)
        assert any(l.startswith("VAT (16%):") and l.endswith("KES 160.00") for l in lines)
        assert any(l.startswith("Change:") and l.endswith("KES 340.00") for l in lines)
        assert all(len(l) <= 42 for l in lines)
        assert lines[-1].strip() == "Please keep this receipt for your records"

    def test_mobile_roll_shows_points(self):
        text = render_text(compose_receipt(MOBILE_SALE, PROFILE))
        assert "Ref: QK12ABC" in text
        assert "Customer: 0712345678" in text
        assert "-KES 200.00" in text
        assert "Loyalty points earned: 8" in text
        assert "Change:" not in text

    def test_printer_records_text(self):
        printer = RecordingReceiptPrinter()
        doc = compose_receipt(CASH_SALE, PROFILE)
        printer.print_receipt(doc)
        assert printer.printed == [render_text(doc)]


class TestRenderHtml:
    def test_escapes_content(self):
        profile = replace(PROFILE, business_name="<script>alert(1)</script>")
        page = render_html(compose_receipt(CASH_SALE, profile))
        assert "<script>alert(1)</script>" not in page
        assert "&lt;script&gt;alert(1)&lt;/script&gt;" in page

    def test_is_deterministic(self):
        doc = compose_receipt(MOBILE_SALE, PROFILE)
        assert render_html(doc) == render_html(doc)

    def test_contains_totals(self):
        page = render_html(compose_receipt(MOBILE_SALE, PROFILE))
        assert page.startswith("<!DOCTYPE html>")
        assert "KES 928.00" in page
        assert "Loyalty points earned: 8" in page


def test_format_money_groups_thousands():
    assert format_money("KES", Decimal("1160")) == "KES 1,160.00"
    assert format_money("KES", None) == "KES 0.00"
