"""
POS Receipt Engine — Public API
==================================
Pure receipt composition plus text and HTML renderers.
"""

from engines.receipt.models import BusinessProfile, ReceiptDocument, ReceiptLine
from engines.receipt.composer import compose_receipt, receipt_number
from engines.receipt.renderer import (
    ReceiptPrinter,
    RecordingReceiptPrinter,
    format_money,
    render_html,
    render_text,
)

__all__ = [
    "BusinessProfile",
    "ReceiptDocument",
    "ReceiptLine",
    "ReceiptPrinter",
    "RecordingReceiptPrinter",
    "compose_receipt",
    "format_money",
    "receipt_number",
    "render_html",
    "render_text",
]
