"""Settings-driven wiring of checkout collaborators."""

from decimal import Decimal

from adapters.django_api import wiring
from engines.checkout import CheckoutSession


def test_rules_from_settings(settings):
    settings.POS_CHECKOUT = {"TAX_RATE": "0.08", "POLL_MAX_ATTEMPTS": 4, "CURRENCY": "UGX"}

    rules = wiring.build_checkout_rules()

    assert rules.pricing.tax.rate == Decimal("0.08")
    assert rules.polling.max_poll_attempts == 4
    assert rules.currency == "UGX"


def test_profile_registration_overrides_tax(settings):
    settings.POS_CHECKOUT = {}
    settings.POS_BUSINESS_PROFILE = {
        "BUSINESS_NAME": "Duka Letu",
        "TAX_REGISTERED": False,
        "PHONE": "0722000111",
    }

    profile = wiring.build_business_profile()
    rules = wiring.build_checkout_rules(tax_registered=profile.is_tax_registered)

    assert profile.business_name == "Duka Letu"
    assert profile.timezone == settings.TIME_ZONE
    assert profile.tax_pin is None
    assert rules.pricing.tax_registered is False


def test_session_is_wired_to_orm_stores(settings, monkeypatch):
    settings.MOBILE_MONEY_GATEWAY = {"BASE_URL": "https://payments.example.test", "API_KEY": "k"}
    monkeypatch.setattr(wiring, "_GATEWAY", None)

    session = wiring.build_checkout_session()

    assert isinstance(session, CheckoutSession)
    assert session.cart.is_empty
    assert wiring.build_gateway() is wiring.build_gateway()
