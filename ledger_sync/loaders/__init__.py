"""Entity loaders package."""

from ledger_sync.loaders.base import EntityLoader, LoaderSnapshot, LoadState
from ledger_sync.loaders.entities import (
    AccountsLoader,
    CategoriesLoader,
    DelegationsLoader,
    TransactionsLoader,
)

__all__ = [
    "AccountsLoader",
    "CategoriesLoader",
    "DelegationsLoader",
    "EntityLoader",
    "LoadState",
    "LoaderSnapshot",
    "TransactionsLoader",
]
