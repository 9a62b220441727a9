"""Scripted data provider for loader and session tests.

Calls can be held open until the test releases them (to control the
order in which responses settle) and can be queued to fail. Every call
is appended to ``calls`` as ``(method, key)``.
"""

import asyncio
from typing import Any, Optional

from ledger_sync.models.entities import (
    Account,
    Category,
    Delegation,
    Transaction,
    TransactionPage,
    TransactionQuery,
)
from ledger_sync.services.provider.interface import DataProvider, NotFoundError


class ScriptedProvider(DataProvider):
    """DataProvider whose responses are scripted per (method, key)."""

    def __init__(
        self,
        accounts: Optional[dict[str, list[Account]]] = None,
        categories: Optional[dict[str, list[Category]]] = None,
        delegations: Optional[list[Delegation]] = None,
        transactions: Optional[dict[str, list[Transaction]]] = None,
    ):
        self.accounts = accounts or {}
        self.categories = categories or {}
        self.delegations = delegations or []
        self.transactions = transactions or {}
        self.calls: list[tuple[str, Any]] = []
        self._gates: dict[tuple[str, Any], asyncio.Event] = {}
        self._failures: dict[tuple[str, Any], list[BaseException]] = {}

    def hold(self, method: str, key: Any) -> asyncio.Event:
        """Keep calls for (method, key) pending until the event is set."""
        gate = asyncio.Event()
        self._gates[(method, key)] = gate
        return gate

    def fail(self, method: str, key: Any, *errors: BaseException) -> None:
        """Make the next calls for (method, key) raise, one error per call."""
        self._failures.setdefault((method, key), []).extend(errors)

    def count(self, method: str, key: Any = None) -> int:
        return sum(
            1 for m, k in self.calls
            if m == method and (key is None or k == key)
        )

    async def _respond(self, method: str, key: Any, value: Any) -> Any:
        self.calls.append((method, key))
        gate = self._gates.get((method, key))
        if gate is not None:
            await gate.wait()
        queued = self._failures.get((method, key))
        if queued:
            raise queued.pop(0)
        return value

    async def list_delegations(self) -> list[Delegation]:
        return await self._respond("list_delegations", None, list(self.delegations))

    async def list_accounts(self, delegation_id: str) -> list[Account]:
        return await self._respond(
            "list_accounts", delegation_id, list(self.accounts.get(delegation_id, []))
        )

    async def list_categories(self, organization_id: str) -> list[Category]:
        return await self._respond(
            "list_categories", organization_id, list(self.categories.get(organization_id, []))
        )

    async def list_transactions(self, query: TransactionQuery) -> TransactionPage:
        page = query.apply(self.transactions.get(query.delegation_id, []))
        return await self._respond("list_transactions", query.delegation_id, page)

    async def update_transaction(self, transaction_id: str, patch: dict) -> Transaction:
        for delegation_id, items in self.transactions.items():
            for idx, existing in enumerate(items):
                if existing.id == transaction_id:
                    updated = existing.model_copy(update=patch)
                    items[idx] = updated
                    return await self._respond("update_transaction", transaction_id, updated)
        self.calls.append(("update_transaction", transaction_id))
        raise NotFoundError(f"Transaction not found: {transaction_id}")
