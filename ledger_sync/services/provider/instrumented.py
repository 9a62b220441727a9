"""
Provider Call Instrumentation

Every call that reaches a remote source goes through run_query(), which
measures it and records exactly one telemetry event per attempt:

    ok       the call returned
    timeout  the call exceeded its deadline
    aborted  the call was cancelled before it settled
    error    anything else

The event is recorded before the outcome reaches the caller, and a
failure to record it never replaces that outcome. Nothing here retries;
retry policy belongs to the caller.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar

from ledger_sync.models.entities import (
    Account,
    Category,
    Delegation,
    Transaction,
    TransactionPage,
    TransactionQuery,
)
from ledger_sync.models.telemetry import TelemetryEvent, TelemetryStatus
from ledger_sync.services.provider.interface import (
    DataProvider,
    DataProviderError,
    ProviderAbortedError,
    ProviderFailure,
    ProviderTimeoutError,
)
from ledger_sync.telemetry.logger import get_logger
from ledger_sync.telemetry.recorder import TelemetryRecorder, get_recorder

T = TypeVar("T")

logger = get_logger(__name__)


def _error_message(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


def _record(
    recorder: TelemetryRecorder,
    label: str,
    table: Optional[str],
    started: float,
    status: TelemetryStatus,
    error: Optional[str] = None,
) -> None:
    """Record one event; never raises."""
    ms = (time.perf_counter() - started) * 1000
    try:
        recorder.record(TelemetryEvent(
            label=label,
            table=table,
            ms=ms,
            status=status,
            error=error,
        ))
    except Exception as e:
        logger.error(
            "telemetry_record_failed",
            label=label,
            status=status.value,
            error=str(e),
        )


async def run_query(
    label: str,
    call: Callable[[], Awaitable[T]],
    *,
    table: Optional[str] = None,
    timeout_ms: Optional[float] = None,
    recorder: Optional[TelemetryRecorder] = None,
) -> T:
    """
    Await a provider call under a deadline and record its outcome.

    Args:
        label: Logical operation name
        call: Zero-argument factory for the awaitable to run
        table: Entity the call touches
        timeout_ms: Deadline in milliseconds (None = no deadline)
        recorder: Where to record; defaults to the process recorder

    Returns:
        Whatever the call returned

    Raises:
        ProviderTimeoutError: The deadline passed first
        ProviderFailure: The call raised (original exception as __cause__)
        ProviderAbortedError: The backend reported an abort
        asyncio.CancelledError: The awaiting task was cancelled
    """
    if recorder is None:
        recorder = get_recorder()

    started = time.perf_counter()
    try:
        if timeout_ms is None:
            result = await call()
        else:
            result = await asyncio.wait_for(call(), timeout=timeout_ms / 1000)
    except ProviderTimeoutError as e:
        _record(recorder, label, table, started, TelemetryStatus.TIMEOUT, str(e))
        raise
    except asyncio.TimeoutError as e:
        timeout_error = ProviderTimeoutError(label, timeout_ms)
        _record(recorder, label, table, started, TelemetryStatus.TIMEOUT, str(timeout_error))
        raise timeout_error from e
    except asyncio.CancelledError:
        _record(recorder, label, table, started, TelemetryStatus.ABORTED, "cancelled")
        raise
    except ProviderAbortedError as e:
        _record(recorder, label, table, started, TelemetryStatus.ABORTED, _error_message(e))
        raise
    except DataProviderError as e:
        _record(recorder, label, table, started, TelemetryStatus.ERROR, _error_message(e))
        raise
    except Exception as e:
        message = _error_message(e)
        _record(recorder, label, table, started, TelemetryStatus.ERROR, message)
        raise ProviderFailure(message) from e

    _record(recorder, label, table, started, TelemetryStatus.OK)
    return result


class InstrumentedDataProvider(DataProvider):
    """
    Wraps any DataProvider so that every call is timed and recorded.

    Labels are the method names; tables are the entity names.
    """

    def __init__(
        self,
        inner: DataProvider,
        recorder: Optional[TelemetryRecorder] = None,
        timeout_ms: Optional[float] = None,
    ):
        """
        Args:
            inner: The provider actually talking to the backend
            recorder: Telemetry sink (default: the process recorder,
                      resolved per call so reset_recorder() is honored)
            timeout_ms: Per-call deadline
        """
        self._inner = inner
        self._recorder = recorder
        self._timeout_ms = timeout_ms

    @property
    def inner(self) -> DataProvider:
        return self._inner

    async def _run(
        self,
        label: str,
        table: str,
        call: Callable[[], Awaitable[T]],
    ) -> T:
        return await run_query(
            label,
            call,
            table=table,
            timeout_ms=self._timeout_ms,
            recorder=self._recorder,
        )

    async def list_delegations(self) -> list[Delegation]:
        return await self._run(
            "list_delegations", "delegation",
            lambda: self._inner.list_delegations(),
        )

    async def list_accounts(self, delegation_id: str) -> list[Account]:
        return await self._run(
            "list_accounts", "account",
            lambda: self._inner.list_accounts(delegation_id),
        )

    async def list_categories(self, organization_id: str) -> list[Category]:
        return await self._run(
            "list_categories", "category",
            lambda: self._inner.list_categories(organization_id),
        )

    async def list_transactions(self, query: TransactionQuery) -> TransactionPage:
        return await self._run(
            "list_transactions", "transaction",
            lambda: self._inner.list_transactions(query),
        )

    async def update_transaction(
        self,
        transaction_id: str,
        patch: dict[str, Any],
    ) -> Transaction:
        return await self._run(
            "update_transaction", "transaction",
            lambda: self._inner.update_transaction(transaction_id, patch),
        )
