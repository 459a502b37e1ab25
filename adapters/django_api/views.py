"""
POS Django Adapter Views
========================
Gateway-facing and back-office HTTP views.

The callback view always acknowledges with ResultCode 0 once the
body parses, whatever the payment outcome: the gateway retries
anything else, and the outcome is already recorded.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from django.http import HttpRequest, JsonResponse
from django.views.decorators.csrf import csrf_exempt

from adapters.django_store.stores import DjangoPaymentWatchlist
from adapters.mobile_money.callbacks import MalformedCallback, parse_stk_callback
from engines.payment.watchlist import ReportDisposition, WatchEntry, reconcile_report

logger = logging.getLogger("pos.gateway")


def _json_error(code: str, message: str, status: int = 400) -> JsonResponse:
    return JsonResponse(
        {"error": {"code": code, "message": message}},
        status=status,
    )


def _method_not_allowed() -> JsonResponse:
    return _json_error(
        "METHOD_NOT_ALLOWED",
        "Method not allowed for this endpoint.",
        status=405,
    )


def _parse_json_body(request: HttpRequest) -> Any:
    try:
        return json.loads(request.body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as exc:
        raise MalformedCallback("Request body must be valid JSON.") from exc


def _watch_entry_dict(entry: WatchEntry) -> dict[str, Any]:
    return {
        "request_id": entry.request_id,
        "attempt_id": entry.attempt_id,
        "amount_due": str(entry.amount_due),
        "phone": entry.phone,
        "status": entry.status.value,
        "note": entry.note,
        "receipt_ref": entry.receipt_ref,
        "settled_amount": (
            str(entry.settled_amount) if entry.settled_amount is not None else None
        ),
    }


@csrf_exempt
def mobile_money_callback_view(request: HttpRequest) -> JsonResponse:
    if request.method != "POST":
        return _method_not_allowed()
    try:
        body = _parse_json_body(request)
        report = parse_stk_callback(body)
    except MalformedCallback as exc:
        logger.warning(f"Rejected mobile-money callback: {exc}")
        return JsonResponse({"ResultCode": 1, "ResultDesc": str(exc)})

    watchlist = DjangoPaymentWatchlist(raw_payload=body)
    disposition = reconcile_report(watchlist, report)
    if disposition is not ReportDisposition.UNMATCHED:
        watchlist.record_callback(report, disposition)
    logger.info(
        f"Mobile-money callback {report.request_id}: "
        f"{report.status.value} → {disposition.value}"
    )
    return JsonResponse({"ResultCode": 0, "ResultDesc": "Success"})


@csrf_exempt
def payments_needing_attention_view(request: HttpRequest) -> JsonResponse:
    if request.method != "GET":
        return _method_not_allowed()
    entries = DjangoPaymentWatchlist().needing_attention()
    return JsonResponse({"items": [_watch_entry_dict(e) for e in entries]})
