"""
In-Memory Data Provider

Serves seeded ledger data from process memory, with optional simulated
latency. Used for demos, local development and tests; it behaves like a
remote backend (async, filtered, paginated) without any network.
"""

import asyncio
from typing import Any, Iterable, Optional, Union

from pydantic import ValidationError

from ledger_sync.models.entities import (
    Account,
    Category,
    Delegation,
    Transaction,
    TransactionPage,
    TransactionQuery,
)
from ledger_sync.services.provider.interface import (
    DataProvider,
    NotFoundError,
    ProviderFailure,
)


def _coerce(model, records: Iterable[Union[dict, Any]]) -> list:
    return [
        record if isinstance(record, model) else model.model_validate(record)
        for record in records
    ]


class InMemoryDataProvider(DataProvider):
    """
    DataProvider backed by plain lists.

    Records may be given as models or as dicts; dicts are validated
    on construction.
    """

    def __init__(
        self,
        delegations: Iterable = (),
        accounts: Iterable = (),
        categories: Iterable = (),
        transactions: Iterable = (),
        latency_ms: float = 0,
    ):
        self._delegations: list[Delegation] = _coerce(Delegation, delegations)
        self._accounts: list[Account] = _coerce(Account, accounts)
        self._categories: list[Category] = _coerce(Category, categories)
        self._transactions: list[Transaction] = _coerce(Transaction, transactions)
        self._latency_ms = latency_ms

    async def _simulate_latency(self) -> None:
        if self._latency_ms > 0:
            await asyncio.sleep(self._latency_ms / 1000)

    async def list_delegations(self) -> list[Delegation]:
        await self._simulate_latency()
        return list(self._delegations)

    async def list_accounts(self, delegation_id: str) -> list[Account]:
        await self._simulate_latency()
        return [a for a in self._accounts if a.delegation_id == delegation_id]

    async def list_categories(self, organization_id: str) -> list[Category]:
        await self._simulate_latency()
        return [c for c in self._categories if c.organization_id == organization_id]

    async def list_transactions(self, query: TransactionQuery) -> TransactionPage:
        await self._simulate_latency()

        account_ids = {
            a.id for a in self._accounts if a.delegation_id == query.delegation_id
        }
        return query.apply(
            t for t in self._transactions if t.account_id in account_ids
        )

    async def update_transaction(
        self,
        transaction_id: str,
        patch: dict[str, Any],
    ) -> Transaction:
        await self._simulate_latency()

        for idx, existing in enumerate(self._transactions):
            if existing.id != transaction_id:
                continue
            data = existing.model_dump()
            data.update(patch)
            data["id"] = existing.id
            try:
                updated = Transaction.model_validate(data)
            except ValidationError as e:
                raise ProviderFailure(f"Invalid transaction update: {e}")
            self._transactions[idx] = updated
            return updated

        raise NotFoundError(f"Transaction not found: {transaction_id}")

    def find_transaction(self, transaction_id: str) -> Optional[Transaction]:
        """Synchronous lookup, handy for assertions and seeding."""
        for transaction in self._transactions:
            if transaction.id == transaction_id:
                return transaction
        return None
