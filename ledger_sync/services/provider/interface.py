"""
Abstract Data Provider Interface

DESIGN DECISION: We define an abstract interface for the remote source
that answers ledger queries. This allows us to:
1. Swap the backend (Google Sheets, a hosted database, ...) freely
2. Use in-memory data for testing and demos
3. Add instrumentation transparently by wrapping any provider
4. Keep loaders decoupled from the backend

The interface is intentionally small - we're not building an ORM.
Just the reads (and the one write) a bookkeeping dashboard needs.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from ledger_sync.models.entities import (
    Account,
    Category,
    Delegation,
    Transaction,
    TransactionPage,
    TransactionQuery,
)


class DataProvider(ABC):
    """
    Abstract interface for fetching ledger entities from a remote source.

    Any backend must implement these methods. Implementations raise
    DataProviderError subclasses on failure; they never retry.
    """

    @abstractmethod
    async def list_delegations(self) -> list[Delegation]:
        """
        List the delegations visible to the current user.

        Returns:
            Delegations in provider order
        """
        pass

    @abstractmethod
    async def list_accounts(self, delegation_id: str) -> list[Account]:
        """
        List the accounts of a delegation.

        Args:
            delegation_id: Owning delegation

        Returns:
            Accounts in provider order

        Raises:
            ProviderFailure: If the backend call fails
        """
        pass

    @abstractmethod
    async def list_categories(self, organization_id: str) -> list[Category]:
        """
        List the categories of an organization.

        Args:
            organization_id: Owning organization

        Returns:
            Categories in provider order (sorting is the caller's job)

        Raises:
            ProviderFailure: If the backend call fails
        """
        pass

    @abstractmethod
    async def list_transactions(self, query: TransactionQuery) -> TransactionPage:
        """
        List one page of a delegation's transactions, newest first.

        Args:
            query: Delegation scope, filters and page selection

        Returns:
            The requested page and the total number of matches
        """
        pass

    @abstractmethod
    async def update_transaction(
        self,
        transaction_id: str,
        patch: dict[str, Any],
    ) -> Transaction:
        """
        Apply a partial update to a transaction.

        Args:
            transaction_id: Transaction to update
            patch: Field values to overwrite

        Returns:
            The updated transaction

        Raises:
            NotFoundError: If the transaction doesn't exist
            ProviderFailure: If the patch is invalid or cannot be stored
        """
        pass


class DataProviderError(Exception):
    """Base exception for data provider operations."""
    pass


class ProviderFailure(DataProviderError):
    """The remote call was rejected or raised."""
    pass


class NotFoundError(ProviderFailure):
    """Entity not found at the provider."""
    pass


class ProviderTimeoutError(DataProviderError):
    """The remote call did not settle before its deadline."""

    def __init__(self, label: str, timeout_ms: Optional[float] = None):
        self.label = label
        self.timeout_ms = timeout_ms
        if timeout_ms is None:
            super().__init__(f"{label} timed out")
        else:
            super().__init__(f"{label} timed out after {timeout_ms:g} ms")


class ProviderAbortedError(DataProviderError):
    """The remote call was cancelled before it settled."""
    pass
