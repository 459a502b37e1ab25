"""
Tests for core.commands — rejection reasons and CheckoutRejected.
"""

import pytest

from core.commands import CheckoutRejected, ReasonCode, RejectionReason


class TestRejectionReason:
    def test_to_dict(self):
        reason = RejectionReason(
            code=ReasonCode.OUT_OF_STOCK,
            message="Milk is out of stock.",
            policy_name="product_in_stock_policy",
        )
        assert reason.to_dict() == {
            "code": "OUT_OF_STOCK",
            "message": "Milk is out of stock.",
            "policy_name": "product_in_stock_policy",
        }

    @pytest.mark.parametrize("field", ["code", "message", "policy_name"])
    def test_fields_required(self, field):
        kwargs = {"code": "X", "message": "m", "policy_name": "p"}
        kwargs[field] = ""
        with pytest.raises(ValueError, match=field):
            RejectionReason(**kwargs)


class TestCheckoutRejected:
    def test_carries_reason(self):
        reason = RejectionReason(code="EMPTY_CART", message="Nothing to sell.", policy_name="p")
        exc = CheckoutRejected(reason)
        assert exc.reason is reason
        assert exc.code == "EMPTY_CART"
        assert str(exc) == "Nothing to sell."

    def test_because_uses_subclass_default_code(self):
        class Sample(CheckoutRejected):
            default_code = ReasonCode.INSUFFICIENT_CASH

        exc = Sample.because("Short by 40.", policy_name="tender_cash")
        assert exc.code == "INSUFFICIENT_CASH"
        assert exc.reason.policy_name == "tender_cash"

    def test_because_accepts_explicit_code(self):
        exc = CheckoutRejected.because("x", policy_name="p", code="CUSTOM")
        assert exc.code == "CUSTOM"
