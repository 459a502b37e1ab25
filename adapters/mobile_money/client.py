"""
POS Mobile Money — HTTP Gateway Client
=========================================
Blocking JSON-over-HTTP client for the push-payment edge
functions. The payment orchestrator runs these calls in a worker
thread, one at a time.

Endpoints (relative to base_url):
    POST /mpesa-stk-push       {phoneNumber, amount, accountReference, transactionDesc}
                               → {success, checkoutRequestId, message | error}
    POST /mpesa-query-status   {checkoutRequestId, expectedAmount}
                               → {status, message, mpesaReceiptNumber, transactionAmount}
"""

from __future__ import annotations

import json
import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional
from urllib import error, request

from engines.payment.errors import GatewayError
from engines.payment.gateway import GatewayStatus, InitiationResult, StatusResult

logger = logging.getLogger("pos.gateway")

STK_PUSH_PATH = "/mpesa-stk-push"
QUERY_STATUS_PATH = "/mpesa-query-status"


def format_msisdn(phone: str) -> str:
    """07XX… / +2547XX… / 7XX… → 2547XX… (digits only)."""
    raw = (phone or "").strip()
    digits = re.sub(r"[^0-9]", "", raw)
    if digits.startswith("0"):
        return "254" + digits[1:]
    if digits.startswith("254"):
        return digits
    return "254" + digits


def parse_amount(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        logger.warning(f"Ignoring unparseable gateway amount {value!r}")
        return None


class HttpMobileMoneyGateway:

    def __init__(
        self,
        *,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 15.0,
    ):
        if not base_url:
            raise ValueError("base_url is required.")
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout

    def initiate(self, phone: str, amount: Decimal, reference: str) -> InitiationResult:
        status, data = self._post(STK_PUSH_PATH, {
            "phoneNumber": format_msisdn(phone),
            "amount": int(amount),
            "accountReference": reference,
            "transactionDesc": f"POS sale {reference}",
        })
        request_id = data.get("checkoutRequestId")
        if status >= 400 or not data.get("success") or not request_id:
            message = (
                data.get("error")
                or data.get("message")
                or f"Push request refused (HTTP {status})."
            )
            raise GatewayError(str(message), status_code=status)
        return InitiationResult(request_id=str(request_id), message=data.get("message"))

    def query_status(self, request_id: str, expected_amount: Decimal) -> StatusResult:
        status, data = self._post(QUERY_STATUS_PATH, {
            "checkoutRequestId": request_id,
            "expectedAmount": int(expected_amount),
        })
        if status >= 400:
            raise GatewayError(
                str(data.get("error") or f"Status query failed (HTTP {status})."),
                status_code=status,
            )
        return StatusResult(
            status=GatewayStatus.parse(data.get("status")),
            settled_amount=parse_amount(data.get("transactionAmount")),
            receipt_ref=data.get("mpesaReceiptNumber"),
            message=data.get("message"),
        )

    # ── Transport ─────────────────────────────────────────────

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
            headers["apikey"] = self._api_key
        return headers

    def _post(self, path: str, body: dict) -> tuple[int, dict]:
        req = request.Request(
            url=self._base_url + path,
            method="POST",
            headers=self._headers(),
            data=json.dumps(body).encode("utf-8"),
        )
        try:
            with request.urlopen(req, timeout=self._timeout) as response:
                return response.status, _decode(response.read())
        except error.HTTPError as exc:
            logger.warning(f"Gateway {path} answered HTTP {exc.code}")
            return exc.code, _decode(exc.read(), strict=False)
        except (error.URLError, OSError) as exc:
            reason = getattr(exc, "reason", exc)
            raise GatewayError(f"Gateway unreachable: {reason}") from exc


def _decode(raw: bytes, *, strict: bool = True) -> dict:
    try:
        parsed = json.loads(raw.decode("utf-8")) if raw else {}
    except ValueError as exc:
        if not strict:
            return {}
        raise GatewayError("Gateway returned invalid JSON.") from exc
    if not isinstance(parsed, dict):
        if not strict:
            return {}
        raise GatewayError("Gateway returned a non-object JSON body.")
    return parsed
