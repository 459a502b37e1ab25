"""
POS Receipt Engine — Receipt Compositor
==========================================
Pure mapping from a completed sale and the business profile to a
ReceiptDocument. Missing profile fields are simply left off; a
receipt is always produced.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from core.time.clock import local_time
from engines.payment.models import PaymentMethod
from engines.receipt.models import BusinessProfile, ReceiptDocument, ReceiptLine

if TYPE_CHECKING:
    from engines.settlement.models import SaleRecord

PAYMENT_LABELS = {
    PaymentMethod.CASH: "Cash",
    PaymentMethod.MOBILE_MONEY: "M-Pesa",
}

FOOTER_LINES = (
    "Thank you for your business!",
    "Please keep this receipt for your records",
)


def receipt_number(sale: SaleRecord) -> str:
    return sale.sale_id.replace("-", "")[:10].upper()


def _header_lines(profile: BusinessProfile) -> List[str]:
    lines = []
    if profile.address:
        lines.append(profile.address)
    if profile.phone:
        lines.append(f"Tel: {profile.phone}")
    if profile.email:
        lines.append(profile.email)
    if profile.tax_pin:
        lines.append(f"PIN: {profile.tax_pin}")
    return lines


def compose_receipt(
    sale: SaleRecord,
    profile: Optional[BusinessProfile],
    issued_at: Optional[datetime] = None,
) -> ReceiptDocument:
    profile = profile or BusinessProfile(business_name="")
    show_tax = sale.tax > 0
    return ReceiptDocument(
        business_name=profile.business_name or "",
        header_lines=tuple(_header_lines(profile)),
        logo_url=profile.logo_url,
        receipt_no=receipt_number(sale),
        issued_at=local_time(issued_at or sale.completed_at, profile.timezone),
        payment_label=PAYMENT_LABELS.get(sale.payment_method, sale.payment_method.value),
        external_receipt_ref=sale.external_receipt_ref,
        customer_phone=sale.customer_phone,
        currency=profile.currency,
        lines=tuple(
            ReceiptLine(
                description=line.description,
                quantity=line.quantity,
                unit_price=line.unit_price,
                total=line.line_total,
            )
            for line in sale.lines
        ),
        subtotal=sale.subtotal,
        loyalty_discount=sale.loyalty_discount,
        points_redeemed=sale.points_redeemed,
        tax_label=(sale.tax_label or "Tax") if show_tax else None,
        tax=sale.tax,
        total=sale.total,
        cash_received=sale.cash_received if sale.payment_method is PaymentMethod.CASH else None,
        change_due=sale.change_due if sale.payment_method is PaymentMethod.CASH else None,
        points_earned=sale.points_earned,
        footer_lines=FOOTER_LINES,
    )
