"""
POS Settlement Engine — Public API
=====================================
Sale record first, then stock and loyalty effects through an
outbox that can be retried.
"""

from engines.settlement.errors import SalePersistenceFailed, SettlementNotAllowed
from engines.settlement.models import (
    EffectKind,
    EffectStatus,
    SaleLineSnapshot,
    SaleRecord,
    SettlementEffect,
    SettlementRequest,
    SettlementResult,
    sale_id_for,
)
from engines.settlement.services import SettlementReconciler, plan_effects
from engines.settlement.stores import (
    InMemorySaleStore,
    InMemorySettlementOutbox,
    InMemoryStockStore,
    SaleStore,
    SettlementOutbox,
    StockStore,
)

__all__ = [
    "EffectKind",
    "EffectStatus",
    "InMemorySaleStore",
    "InMemorySettlementOutbox",
    "InMemoryStockStore",
    "SalePersistenceFailed",
    "SaleLineSnapshot",
    "SaleRecord",
    "SaleStore",
    "SettlementEffect",
    "SettlementNotAllowed",
    "SettlementOutbox",
    "SettlementReconciler",
    "SettlementRequest",
    "SettlementResult",
    "StockStore",
    "plan_effects",
    "sale_id_for",
]
