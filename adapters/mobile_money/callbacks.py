"""
POS Mobile Money — STK Callback Parsing
==========================================
The gateway posts the final outcome of every push request:

    {"Body": {"stkCallback": {
        "MerchantRequestID": "...",
        "CheckoutRequestID": "...",
        "ResultCode": 0,
        "ResultDesc": "...",
        "CallbackMetadata": {"Item": [{"Name": "Amount", "Value": 1160}, ...]}
    }}}

ResultCode 0 is success, 1032 is a customer cancellation,
anything else is a failure.
"""

from __future__ import annotations

from typing import Any, Dict

from adapters.mobile_money.client import parse_amount
from engines.payment.gateway import GatewayStatus
from engines.payment.watchlist import GatewayReport

RESULT_SUCCESS = 0
RESULT_CANCELLED_BY_USER = 1032


class MalformedCallback(ValueError):
    pass


def _metadata(stk: Dict[str, Any]) -> Dict[str, Any]:
    metadata = stk.get("CallbackMetadata") or {}
    if not isinstance(metadata, dict):
        raise MalformedCallback("CallbackMetadata must be an object.")
    items = metadata.get("Item") or []
    if not isinstance(items, list):
        raise MalformedCallback("CallbackMetadata.Item must be a list.")
    return {
        item["Name"]: item.get("Value")
        for item in items
        if isinstance(item, dict) and isinstance(item.get("Name"), str)
    }


def parse_stk_callback(body: Any) -> GatewayReport:
    if not isinstance(body, dict):
        raise MalformedCallback("Callback body must be a JSON object.")
    envelope = body.get("Body")
    stk = envelope.get("stkCallback") if isinstance(envelope, dict) else None
    if not isinstance(stk, dict):
        raise MalformedCallback("Invalid callback format.")
    request_id = stk.get("CheckoutRequestID")
    if not request_id:
        raise MalformedCallback("CheckoutRequestID is missing.")
    try:
        code = int(stk.get("ResultCode"))
    except (TypeError, ValueError) as exc:
        raise MalformedCallback("ResultCode must be an integer.") from exc

    if code == RESULT_SUCCESS:
        status = GatewayStatus.SUCCESS
    elif code == RESULT_CANCELLED_BY_USER:
        status = GatewayStatus.CANCELLED
    else:
        status = GatewayStatus.FAILED

    meta = _metadata(stk)
    phone = meta.get("PhoneNumber")
    receipt = meta.get("MpesaReceiptNumber")
    return GatewayReport(
        request_id=str(request_id),
        status=status,
        settled_amount=parse_amount(meta.get("Amount")),
        receipt_ref=str(receipt) if receipt is not None else None,
        phone=str(phone) if phone is not None else None,
        message=stk.get("ResultDesc"),
    )
