"""
POS Settlement Engine — Store Contracts
==========================================
Sale store, stock store and settlement outbox, each behind its own
independent call. In-memory implementations back the tests and
offline use; adapters.django_store backs production.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Protocol

from engines.settlement.models import EffectStatus, SaleRecord, SettlementEffect


# ══════════════════════════════════════════════════════════════
# CONTRACTS
# ══════════════════════════════════════════════════════════════

class SaleStore(Protocol):
    def insert(self, sale: SaleRecord) -> str:
        """
        Persist the sale and return its id. Inserting a second sale
        for the same payment attempt returns the existing id.
        """
        ...

    def get_by_attempt(self, attempt_id: str) -> Optional[SaleRecord]:
        ...


class StockStore(Protocol):
    def decrement(self, product_id: str, quantity: int) -> int:
        """Subtract quantity, floored at zero. Returns the new level."""
        ...


class SettlementOutbox(Protocol):
    def add(self, effect: SettlementEffect) -> SettlementEffect:
        """Insert if absent; return the stored row either way."""
        ...

    def save(self, effect: SettlementEffect) -> None:
        ...

    def for_sale(self, sale_id: str) -> List[SettlementEffect]:
        ...

    def unapplied(self) -> List[SettlementEffect]:
        ...


# ══════════════════════════════════════════════════════════════
# IN-MEMORY IMPLEMENTATIONS
# ══════════════════════════════════════════════════════════════

class InMemorySaleStore:
    def __init__(self):
        self._by_attempt: Dict[str, SaleRecord] = {}

    def insert(self, sale: SaleRecord) -> str:
        existing = self._by_attempt.get(sale.payment_attempt_id)
        if existing is not None:
            return existing.sale_id
        self._by_attempt[sale.payment_attempt_id] = sale
        return sale.sale_id

    def get_by_attempt(self, attempt_id: str) -> Optional[SaleRecord]:
        return self._by_attempt.get(attempt_id)

    @property
    def sales(self) -> List[SaleRecord]:
        return list(self._by_attempt.values())


class InMemoryStockStore:
    """Unlocked counters: concurrent tills may both sell the last unit."""

    def __init__(self, levels: Optional[Dict[str, int]] = None):
        self._levels: Dict[str, int] = dict(levels or {})

    def level(self, product_id: str) -> int:
        return self._levels[product_id]

    def decrement(self, product_id: str, quantity: int) -> int:
        if product_id not in self._levels:
            raise KeyError(f"Unknown product '{product_id}'.")
        self._levels[product_id] = max(0, self._levels[product_id] - quantity)
        return self._levels[product_id]


class InMemorySettlementOutbox:
    def __init__(self):
        self._effects: Dict[str, SettlementEffect] = {}

    def add(self, effect: SettlementEffect) -> SettlementEffect:
        return self._effects.setdefault(effect.effect_id, effect)

    def get(self, effect_id: str) -> Optional[SettlementEffect]:
        return self._effects.get(effect_id)

    def save(self, effect: SettlementEffect) -> None:
        self._effects[effect.effect_id] = effect

    def for_sale(self, sale_id: str) -> List[SettlementEffect]:
        return [e for e in self._effects.values() if e.sale_id == sale_id]

    def unapplied(self) -> List[SettlementEffect]:
        return [
            e for e in self._effects.values()
            if e.status is not EffectStatus.APPLIED
        ]
