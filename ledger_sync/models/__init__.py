"""
Data Models Package

This package contains all Pydantic models used in ledger_sync.
All data handed back by a provider must conform to these schemas.
"""

from ledger_sync.models.entities import (
    Account,
    AccountKind,
    AccountOrigin,
    Category,
    CategoryKind,
    Delegation,
    EnrichedTransaction,
    Transaction,
    TransactionPage,
    TransactionQuery,
)
from ledger_sync.models.telemetry import (
    TelemetryEvent,
    TelemetryStatus,
)

__all__ = [
    # Ledger models
    "Account",
    "AccountKind",
    "AccountOrigin",
    "Category",
    "CategoryKind",
    "Delegation",
    "EnrichedTransaction",
    "Transaction",
    "TransactionPage",
    "TransactionQuery",
    # Telemetry models
    "TelemetryEvent",
    "TelemetryStatus",
]
