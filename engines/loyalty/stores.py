"""
POS Loyalty Engine — Loyalty Store
=====================================
Contract for the external loyalty record store plus an
in-memory implementation for tests and offline use.

Balance writes are absolute values computed from the account
snapshot taken at checkout: last write wins, nothing is locked.
"""

from __future__ import annotations

import uuid
from dataclasses import replace
from typing import Dict, List, Optional, Protocol

from engines.loyalty.models import LoyaltyAccount, LoyaltyLedgerEntry


class LoyaltyStore(Protocol):
    def find_by_phone(self, phone: str) -> Optional[LoyaltyAccount]:
        ...

    def create(self, phone: str, display_name: Optional[str] = None) -> LoyaltyAccount:
        ...

    def update_balance(
        self,
        account_id: str,
        *,
        points_balance: int,
        lifetime_earned: int,
        lifetime_redeemed: int,
    ) -> None:
        ...

    def append_ledger_entry(self, entry: LoyaltyLedgerEntry) -> None:
        ...


class InMemoryLoyaltyStore:
    def __init__(self):
        self._accounts: Dict[str, LoyaltyAccount] = {}
        self._ledger: List[LoyaltyLedgerEntry] = []

    def find_by_phone(self, phone: str) -> Optional[LoyaltyAccount]:
        for account in self._accounts.values():
            if account.phone == phone:
                return account
        return None

    def get(self, account_id: str) -> Optional[LoyaltyAccount]:
        return self._accounts.get(account_id)

    def create(self, phone: str, display_name: Optional[str] = None) -> LoyaltyAccount:
        if self.find_by_phone(phone) is not None:
            raise ValueError(f"Loyalty account for {phone} already exists.")
        account = LoyaltyAccount(
            id=str(uuid.uuid4()), phone=phone, display_name=display_name or None,
        )
        self._accounts[account.id] = account
        return account

    def put(self, account: LoyaltyAccount) -> None:
        self._accounts[account.id] = account

    def update_balance(
        self,
        account_id: str,
        *,
        points_balance: int,
        lifetime_earned: int,
        lifetime_redeemed: int,
    ) -> None:
        account = self._accounts.get(account_id)
        if account is None:
            raise KeyError(f"Unknown loyalty account '{account_id}'.")
        self._accounts[account_id] = replace(
            account,
            points_balance=points_balance,
            lifetime_earned=lifetime_earned,
            lifetime_redeemed=lifetime_redeemed,
        )

    def append_ledger_entry(self, entry: LoyaltyLedgerEntry) -> None:
        if any(e.entry_id == entry.entry_id for e in self._ledger):
            return
        self._ledger.append(entry)

    def ledger_for(self, account_id: str) -> List[LoyaltyLedgerEntry]:
        return [e for e in self._ledger if e.account_id == account_id]
