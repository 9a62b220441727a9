"""Services package."""

from ledger_sync.services.provider import (
    DataProvider,
    DataProviderError,
    InMemoryDataProvider,
    InstrumentedDataProvider,
    NotFoundError,
    ProviderAbortedError,
    ProviderFailure,
    ProviderTimeoutError,
    run_query,
)

__all__ = [
    "DataProvider",
    "DataProviderError",
    "InMemoryDataProvider",
    "InstrumentedDataProvider",
    "NotFoundError",
    "ProviderAbortedError",
    "ProviderFailure",
    "ProviderTimeoutError",
    "run_query",
]
