"""
Data Provider Package

Provides the abstract provider interface, the instrumentation wrapper,
and concrete backends (in-memory and Google Sheets).
"""

from ledger_sync.services.provider.interface import (
    DataProvider,
    DataProviderError,
    NotFoundError,
    ProviderAbortedError,
    ProviderFailure,
    ProviderTimeoutError,
)
from ledger_sync.services.provider.instrumented import (
    InstrumentedDataProvider,
    run_query,
)
from ledger_sync.services.provider.memory import InMemoryDataProvider

__all__ = [
    # Interface
    "DataProvider",
    # Exceptions
    "DataProviderError",
    "NotFoundError",
    "ProviderAbortedError",
    "ProviderFailure",
    "ProviderTimeoutError",
    # Instrumentation
    "InstrumentedDataProvider",
    "run_query",
    # Backends (GoogleSheetsDataProvider is imported from its module,
    # so gspread is only needed when that backend is used)
    "InMemoryDataProvider",
]
