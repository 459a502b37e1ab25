"""
POS Receipt Engine — Renderers
=================================
Text for the 80mm till roll, HTML for preview and browser print.

Doctrine:
- All document content is HTML-escaped (no XSS).
- Same ReceiptDocument → same output (deterministic).
- No external dependencies (stdlib html.escape only).
"""

from __future__ import annotations

import html
from decimal import Decimal
from typing import Any, List, Optional, Protocol

from engines.receipt.models import ReceiptDocument

ROLL_WIDTH = 42
DATE_FORMAT = "%d/%m/%Y %H:%M"


def format_money(currency: str, amount: Optional[Decimal]) -> str:
    value = Decimal(0) if amount is None else amount
    return f"{currency} {value:,.2f}"


# ---------------------------------------------------------------------------
# Text (till roll)
# ---------------------------------------------------------------------------

def _center(text: str, width: int) -> str:
    return text[:width].center(width).rstrip()


def _pair(left: str, right: str, width: int) -> str:
    room = width - len(right) - 1
    if room < 1:
        return f"{left}\n{right.rjust(width)}"
    return f"{left[:room]:<{room}} {right}"


def _text_rows(doc: ReceiptDocument) -> List[tuple[str, str]]:
    money = lambda amount: format_money(doc.currency, amount)  # noqa: E731
    rows = [("Subtotal:", money(doc.subtotal))]
    if doc.loyalty_discount > 0:
        rows.append((f"Points ({doc.points_redeemed}):", f"-{money(doc.loyalty_discount)}"))
    if doc.tax_label:
        rows.append((f"{doc.tax_label}:", money(doc.tax)))
    rows.append(("TOTAL:", money(doc.total)))
    if doc.cash_received is not None:
        rows.append(("Cash Received:", money(doc.cash_received)))
        rows.append(("Change:", money(doc.change_due)))
    return rows


def render_text(doc: ReceiptDocument, *, width: int = ROLL_WIDTH) -> str:
    rule = "-" * width
    out: List[str] = []

    if doc.business_name:
        out.append(_center(doc.business_name.upper(), width))
    out.extend(_center(line, width) for line in doc.header_lines)
    out.append(rule)

    out.append(f"Receipt: {doc.receipt_no}")
    out.append(f"Date: {doc.issued_at.strftime(DATE_FORMAT)}")
    out.append(f"Payment: {doc.payment_label}")
    if doc.external_receipt_ref:
        out.append(f"Ref: {doc.external_receipt_ref}")
    if doc.customer_phone:
        out.append(f"Customer: {doc.customer_phone}")
    out.append(rule)

    for line in doc.lines:
        out.append(line.description[:width])
        out.append(_pair(
            f"  {line.quantity} x {line.unit_price:,.2f}",
            format_money(doc.currency, line.total),
            width,
        ))
    out.append(rule)

    for label, value in _text_rows(doc):
        out.append(_pair(label, value, width))

    if doc.points_earned > 0:
        out.append(rule)
        out.append(_center(f"Loyalty points earned: {doc.points_earned}", width))

    out.append(rule)
    out.extend(_center(line, width) for line in doc.footer_lines)
    return "\n".join(out) + "\n"


# ---------------------------------------------------------------------------
# HTML
# ---------------------------------------------------------------------------

def _e(value: Any) -> str:
    """HTML-escape any value to a safe string."""
    return html.escape(str(value) if value is not None else "", quote=True)


def _row(label: str, value: str, *, css_class: str = "total-row") -> str:
    return (
        f'<div class="{css_class}">'
        f"<span>{_e(label)}</span>"
        f"<span>{_e(value)}</span>"
        f"</div>"
    )


_RECEIPT_CSS = """\
* { margin: 0; padding: 0; box-sizing: border-box; }
body { font-family: 'Courier New', monospace; font-size: 12px; width: 80mm; padding: 10px; }
.receipt { max-width: 300px; margin: 0 auto; }
.header { text-align: center; margin-bottom: 15px; }
.header img { max-height: 60px; margin-bottom: 6px; }
.business-name { font-size: 16px; font-weight: bold; }
.divider { border-top: 1px dashed #000; margin: 10px 0; }
.item-row, .total-row { display: flex; justify-content: space-between; margin: 3px 0; }
.grand-total { font-weight: bold; font-size: 14px; margin-top: 5px; }
.footer { text-align: center; margin-top: 15px; font-size: 10px; }
@media print { body { width: 80mm; } }
"""


def render_html(doc: ReceiptDocument) -> str:
    """Render a complete, safe HTML document for a receipt."""
    money = lambda amount: format_money(doc.currency, amount)  # noqa: E731
    divider = '<div class="divider"></div>'

    header: List[str] = []
    if doc.logo_url:
        header.append(f'<img src="{_e(doc.logo_url)}" alt="{_e(doc.business_name)}">')
    if doc.business_name:
        header.append(f'<p class="business-name">{_e(doc.business_name)}</p>')
    header.extend(f"<p>{_e(line)}</p>" for line in doc.header_lines)

    info = [
        f"<p>Receipt: {_e(doc.receipt_no)}</p>",
        f"<p>Date: {_e(doc.issued_at.strftime(DATE_FORMAT))}</p>",
        f"<p>Payment: {_e(doc.payment_label)}</p>",
    ]
    if doc.external_receipt_ref:
        info.append(f"<p>Ref: {_e(doc.external_receipt_ref)}</p>")
    if doc.customer_phone:
        info.append(f"<p>Customer: {_e(doc.customer_phone)}</p>")

    items = []
    for line in doc.lines:
        items.append(
            f'<div class="item-row">'
            f'<span class="item-name">{_e(line.description)}<br>'
            f"{_e(line.quantity)} x {_e(f'{line.unit_price:,.2f}')}</span>"
            f'<span class="item-total">{_e(money(line.total))}</span>'
            f"</div>"
        )
    if not items:
        items.append("<p>No items.</p>")

    totals = [_row("Subtotal:", money(doc.subtotal))]
    if doc.loyalty_discount > 0:
        totals.append(_row(
            f"Points ({doc.points_redeemed}):", f"-{money(doc.loyalty_discount)}",
        ))
    if doc.tax_label:
        totals.append(_row(f"{doc.tax_label}:", money(doc.tax)))
    totals.append(_row("TOTAL:", money(doc.total), css_class="total-row grand-total"))
    if doc.cash_received is not None:
        totals.append(_row("Cash Received:", money(doc.cash_received)))
        totals.append(_row("Change:", money(doc.change_due)))

    body = [
        '<div class="receipt">',
        f'<div class="header">{"".join(header)}</div>',
        divider,
        f'<div class="info">{"".join(info)}</div>',
        divider,
        f'<div class="items">{"".join(items)}</div>',
        divider,
        f'<div class="totals">{"".join(totals)}</div>',
    ]
    if doc.points_earned > 0:
        body.append(divider)
        body.append(f'<p class="loyalty">Loyalty points earned: {_e(doc.points_earned)}</p>')
    body.append(
        '<div class="footer">'
        + "".join(f"<p>{_e(line)}</p>" for line in doc.footer_lines)
        + "</div>"
    )
    body.append("</div>")

    title = f"Receipt - {doc.business_name}" if doc.business_name else "Receipt"
    return (
        "<!DOCTYPE html>\n"
        "<html>\n<head>\n"
        '<meta charset="utf-8">\n'
        f"<title>{_e(title)}</title>\n"
        f"<style>\n{_RECEIPT_CSS}</style>\n"
        "</head>\n<body>\n"
        + "\n".join(body)
        + "\n</body>\n</html>\n"
    )


# ---------------------------------------------------------------------------
# Printing
# ---------------------------------------------------------------------------

class ReceiptPrinter(Protocol):
    def print_receipt(self, doc: ReceiptDocument) -> None:
        ...


class RecordingReceiptPrinter:
    """Keeps rendered text in memory. Test and headless use."""

    def __init__(self):
        self.printed: List[str] = []

    def print_receipt(self, doc: ReceiptDocument) -> None:
        self.printed.append(render_text(doc))
