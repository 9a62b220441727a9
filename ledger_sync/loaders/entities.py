"""
Concrete loaders, one per entity type.

Each one fixes the provider call, the scope key and any
post-processing of the result before it is stored.
"""

from typing import Any

from ledger_sync.loaders.base import EntityLoader, LoaderSnapshot
from ledger_sync.models.entities import (
    Account,
    Category,
    Delegation,
    Transaction,
    TransactionPage,
    TransactionQuery,
)


class AccountsLoader(EntityLoader[str, Account]):
    """Accounts of a delegation, keyed by delegation id."""

    entity_name = "account"
    fallback_error = "Error loading accounts"

    async def fetch(self, key: str) -> list[Account]:
        return await self._provider.list_accounts(key)


class CategoriesLoader(EntityLoader[str, Category]):
    """Categories of an organization, keyed by organization id."""

    entity_name = "category"
    fallback_error = "Error loading categories"

    async def fetch(self, key: str) -> list[Category]:
        return await self._provider.list_categories(key)

    def postprocess(self, result: list[Category]) -> list[Category]:
        # sorted() is stable: equal orders keep provider order
        return sorted(result, key=lambda category: category.order)


class TransactionsLoader(EntityLoader[TransactionQuery, Transaction]):
    """
    One page of a delegation's transactions, keyed by the full query.

    Changing any filter or the page is a key change and reloads.
    """

    entity_name = "transaction"
    fallback_error = "Error loading transactions"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._total = 0

    @property
    def total(self) -> int:
        """Number of matches across all pages, as of the last load."""
        return self._total

    async def fetch(self, key: TransactionQuery) -> TransactionPage:
        return await self._provider.list_transactions(key)

    def postprocess(self, result: TransactionPage) -> list[Transaction]:
        self._total = result.total
        return list(result.items)

    def reset(self) -> None:
        self._total = 0
        super().reset()

    async def update_transaction(
        self,
        transaction_id: str,
        patch: dict[str, Any],
    ) -> Transaction:
        """
        Update one transaction at the provider and in the held page.

        Failures propagate to the caller; the held page is untouched.
        """
        updated = await self._provider.update_transaction(transaction_id, patch)
        self._data = [
            updated if transaction.id == transaction_id else transaction
            for transaction in self._data
        ]
        self._notify()
        return updated


class DelegationsLoader(EntityLoader[str, Delegation]):
    """
    Delegations visible to the current user.

    Not scoped by anything, so it uses a fixed key; load_all() is the
    usual entry point.
    """

    ALL = "all"

    entity_name = "delegation"
    fallback_error = "Error loading delegations"

    async def fetch(self, key: str) -> list[Delegation]:
        return await self._provider.list_delegations()

    async def load_all(self) -> LoaderSnapshot:
        return await self.load(self.ALL)
