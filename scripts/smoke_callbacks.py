"""
Manual smoke runner for the mobile-money callback endpoints.

Posts a late success, an unmatched success, a cancellation and a
malformed body, then prints the attention list.

Usage:
    python scripts/smoke_callbacks.py
    python scripts/smoke_callbacks.py --base-url http://127.0.0.1:8000
"""

from __future__ import annotations

import argparse
import json
from urllib import error, request


def _call(*, method: str, url: str, body: dict | str | None = None) -> tuple[int, dict]:
    encoded = None
    headers = {}
    if body is not None:
        raw = body if isinstance(body, str) else json.dumps(body)
        encoded = raw.encode("utf-8")
        headers["Content-Type"] = "application/json"

    req = request.Request(url=url, method=method, headers=headers, data=encoded)
    try:
        with request.urlopen(req) as response:
            return response.status, json.loads(response.read().decode("utf-8"))
    except error.HTTPError as exc:
        return exc.code, json.loads(exc.read().decode("utf-8"))


def _stk(request_id: str, code: int, desc: str, *, amount: int | None = None) -> dict:
    stk = {
        "MerchantRequestID": "smoke-merchant",
        "CheckoutRequestID": request_id,
        "ResultCode": code,
        "ResultDesc": desc,
    }
    if amount is not None:
        stk["CallbackMetadata"] = {"Item": [
            {"Name": "Amount", "Value": amount},
            {"Name": "MpesaReceiptNumber", "Value": "SMOKE0001"},
            {"Name": "PhoneNumber", "Value": 254700000000},
        ]}
    return {"Body": {"stkCallback": stk}}


def _print_case(label: str, status: int, payload: dict) -> None:
    print(f"\n[{label}] status={status}")
    print(json.dumps(payload, indent=2, sort_keys=True))


def run(base_url: str, request_id: str) -> None:
    api = base_url.rstrip("/") + "/v1/payments/mobile-money"

    status, payload = _call(
        method="POST",
        url=f"{api}/callback",
        body=_stk(request_id, 0, "The service request is processed successfully.", amount=1160),
    )
    _print_case("success", status, payload)

    status, payload = _call(
        method="POST",
        url=f"{api}/callback",
        body=_stk("ws_CO_smoke_unknown", 0, "Processed", amount=50),
    )
    _print_case("unmatched-success", status, payload)

    status, payload = _call(
        method="POST",
        url=f"{api}/callback",
        body=_stk("ws_CO_smoke_cancel", 1032, "Request cancelled by user"),
    )
    _print_case("cancelled", status, payload)

    status, payload = _call(method="POST", url=f"{api}/callback", body="not json")
    _print_case("malformed", status, payload)

    status, payload = _call(method="GET", url=f"{api}/attention")
    _print_case("attention", status, payload)


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--base-url",
        default="http://127.0.0.1:8000",
        help="Server base URL.",
    )
    parser.add_argument(
        "--request-id",
        default="ws_CO_smoke_0001",
        help="CheckoutRequestID of a timed-out attempt to settle late.",
    )
    args = parser.parse_args()
    run(args.base_url, args.request_id)


if __name__ == "__main__":
    main()
