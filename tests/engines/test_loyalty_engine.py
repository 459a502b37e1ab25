"""POS Loyalty Engine tests: phone lookup, enrollment, redemption limits."""

from decimal import Decimal

import pytest

from engines.cart import Cart, Product
from engines.loyalty import (
    InMemoryLoyaltyStore,
    InvalidPhone,
    LoyaltyAccount,
    LoyaltyResolver,
    RedemptionExceedsLimit,
    validate_phone,
)

PHONE = "0712345678"


def _resolver_with(balance=0):
    store = InMemoryLoyaltyStore()
    resolver = LoyaltyResolver(store=store)
    account = resolver.create(PHONE, "Wanjiru")
    if balance:
        store.put(LoyaltyAccount(
            id=account.id, phone=account.phone, display_name=account.display_name,
            points_balance=balance,
        ))
        account = store.get(account.id)
    return resolver, store, account


class TestPhoneValidation:
    def test_strips_spaces(self):
        assert validate_phone("0712 345 678") == "0712345678"

    def test_accepts_international_prefix(self):
        assert validate_phone("+254712345678") == "+254712345678"

    @pytest.mark.parametrize("bad", ["", "07123", "0712-345-678", "abc1234567"])
    def test_rejects_bad_numbers(self, bad):
        with pytest.raises(InvalidPhone):
            validate_phone(bad)


class TestLookupAndEnroll:
    def test_unknown_phone_returns_none(self):
        resolver = LoyaltyResolver(store=InMemoryLoyaltyStore())
        assert resolver.find_by_phone(PHONE) is None

    def test_create_then_find(self):
        resolver, _, account = _resolver_with()
        found = resolver.find_by_phone("0712 345 678")
        assert found == account
        assert found.points_balance == 0
        assert found.label() == "Wanjiru"

    def test_blank_name_stored_as_none(self):
        resolver = LoyaltyResolver(store=InMemoryLoyaltyStore())
        account = resolver.create(PHONE, "   ")
        assert account.display_name is None
        assert account.label() == PHONE

    def test_duplicate_phone_refused(self):
        resolver, _, _ = _resolver_with()
        with pytest.raises(ValueError, match="already exists"):
            resolver.create(PHONE)


class TestRedemption:
    def test_capped_by_balance(self):
        resolver, _, account = _resolver_with(balance=150)
        assert resolver.max_redeemable(Decimal("1000"), account) == 150

    def test_capped_by_whole_units_of_subtotal(self):
        resolver, _, account = _resolver_with(balance=5000)
        assert resolver.max_redeemable(Decimal("250"), account) == 200

    def test_validate_within_limit(self):
        resolver, _, account = _resolver_with(balance=300)
        assert resolver.validate_redemption(200, Decimal("1000"), account) == 200

    def test_validate_over_limit(self):
        resolver, _, account = _resolver_with(balance=100)
        with pytest.raises(RedemptionExceedsLimit) as info:
            resolver.validate_redemption(200, Decimal("1000"), account)
        assert info.value.code == "REDEMPTION_EXCEEDS_LIMIT"

    def test_negative_redemption(self):
        resolver, _, account = _resolver_with(balance=100)
        with pytest.raises(RedemptionExceedsLimit) as info:
            resolver.validate_redemption(-100, Decimal("1000"), account)
        assert info.value.code == "INVALID_REDEMPTION"


class TestPreview:
    def test_preview_projects_balance(self):
        resolver, _, account = _resolver_with(balance=300)
        cart = Cart()
        cart.add_line(Product(product_id="p1", name="Soda", unit_price=500, quantity_available=9), 2)
        preview = resolver.preview_earn_and_redeem(cart.totals(200), account)
        assert preview.max_redeemable == 300
        assert preview.points_to_redeem == 200
        assert preview.loyalty_discount == Decimal(200)
        assert preview.points_to_earn == 8
        assert preview.projected_balance == 300 - 200 + 8


class TestInMemoryStore:
    def test_ledger_append_is_idempotent(self):
        from engines.loyalty import LedgerKind, LoyaltyLedgerEntry

        _, store, account = _resolver_with()
        entry = LoyaltyLedgerEntry(
            entry_id="sale-1:loyalty:earn", account_id=account.id,
            kind=LedgerKind.EARN, points=8, sale_id="sale-1", description="Earned 8",
        )
        store.append_ledger_entry(entry)
        store.append_ledger_entry(entry)
        assert store.ledger_for(account.id) == [entry]

    def test_update_unknown_account(self):
        store = InMemoryLoyaltyStore()
        with pytest.raises(KeyError):
            store.update_balance("missing", points_balance=1, lifetime_earned=1, lifetime_redeemed=0)
