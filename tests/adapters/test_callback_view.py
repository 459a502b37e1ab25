"""Gateway callback and attention-list HTTP views."""

from __future__ import annotations

import json
from decimal import Decimal

import pytest
from django.test import Client

from adapters.django_store.models import GatewayCallbackRecord
from adapters.django_store.stores import DjangoPaymentWatchlist
from engines.payment import WatchEntry, WatchStatus

pytestmark = pytest.mark.django_db(transaction=True)

CALLBACK_URL = "/v1/payments/mobile-money/callback"
ATTENTION_URL = "/v1/payments/mobile-money/attention"


def _callback(request_id="ws_CO_1", code=0):
    stk = {
        "MerchantRequestID": "29115-34620561-1",
        "CheckoutRequestID": request_id,
        "ResultCode": code,
        "ResultDesc": "The service request is processed successfully.",
    }
    if code == 0:
        stk["CallbackMetadata"] = {"Item": [
            {"Name": "Amount", "Value": 1160},
            {"Name": "MpesaReceiptNumber", "Value": "QK99LATE"},
            {"Name": "PhoneNumber", "Value": 254712345678},
        ]}
    return {"Body": {"stkCallback": stk}}


def _post(client, body):
    return client.post(
        CALLBACK_URL,
        data=json.dumps(body) if not isinstance(body, str) else body,
        content_type="application/json",
    )


def _timed_out_entry(request_id="ws_CO_1"):
    DjangoPaymentWatchlist().save(WatchEntry(
        request_id=request_id,
        attempt_id="attempt-1",
        amount_due=Decimal("1160.00"),
        phone="0712345678",
        status=WatchStatus.NEEDS_VERIFICATION,
    ))


def test_late_success_is_surfaced():
    _timed_out_entry()
    client = Client()

    response = _post(client, _callback())

    assert response.status_code == 200
    assert response.json() == {"ResultCode": 0, "ResultDesc": "Success"}
    stored = GatewayCallbackRecord.objects.get(request_id="ws_CO_1")
    assert stored.disposition == "LATE_SUCCESS"
    assert stored.payload["Body"]["stkCallback"]["CheckoutRequestID"] == "ws_CO_1"

    items = client.get(ATTENTION_URL).json()["items"]
    assert len(items) == 1
    assert items[0]["status"] == "LATE_SUCCESS"
    assert items[0]["receipt_ref"] == "QK99LATE"
    assert items[0]["settled_amount"] == "1160.00"


def test_late_failure_closes_entry():
    _timed_out_entry()
    client = Client()

    response = _post(client, _callback(code=2001))

    assert response.json()["ResultCode"] == 0
    assert DjangoPaymentWatchlist().get("ws_CO_1").status is WatchStatus.CLOSED
    assert client.get(ATTENTION_URL).json() == {"items": []}


def test_unknown_success_recorded_once():
    response = _post(Client(), _callback(request_id="ws_CO_stranger"))

    assert response.json()["ResultCode"] == 0
    rows = GatewayCallbackRecord.objects.filter(request_id="ws_CO_stranger")
    assert [row.disposition for row in rows] == ["UNMATCHED"]


def test_malformed_body_acknowledged_with_error_code():
    response = _post(Client(), "not json")
    assert response.status_code == 200
    assert response.json()["ResultCode"] == 1
    assert GatewayCallbackRecord.objects.count() == 0


def test_missing_request_id():
    response = _post(Client(), {"Body": {"stkCallback": {"ResultCode": 0}}})
    assert response.json() == {"ResultCode": 1, "ResultDesc": "CheckoutRequestID is missing."}


@pytest.mark.parametrize("body", [
    {"Body": "x"},
    {"Body": {"stkCallback": {"CheckoutRequestID": "ws_CO_1", "ResultCode": 0,
                              "CallbackMetadata": "x"}}},
])
def test_wrongly_shaped_body_acknowledged_with_error_code(body):
    response = _post(Client(), body)
    assert response.status_code == 200
    assert response.json()["ResultCode"] == 1
    assert GatewayCallbackRecord.objects.count() == 0


def test_wrong_methods():
    client = Client()
    assert client.get(CALLBACK_URL).status_code == 405
    response = client.post(ATTENTION_URL)
    assert response.status_code == 405
    assert response.json()["error"]["code"] == "METHOD_NOT_ALLOWED"
