"""
Entity Loader

A loader holds one entity collection for one scope key (a delegation id,
an organization id, a transaction query) and keeps it in sync with the
provider as the key changes.

State machine:

    idle --bind(key)--> loading --ok--> ready
                           |
                           +--error--> failed

Rebinding to a new key from any state goes back to loading. Each load
captures a generation number; a response whose generation is no longer
current is a stale response and is dropped without touching state.

Cancelling the current load rolls back to the key the held data was
loaded for (ready), or to no key at all (idle).

DESIGN DECISION: Errors are state, not exceptions. Presentation code
reads {data, loading, error} and may keep showing the last known data
next to an error banner, so a failed load never clears the collection.
"""

import asyncio
import itertools
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Callable, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ledger_sync.config import get_settings
from ledger_sync.services.provider.interface import (
    DataProvider,
    ProviderFailure,
    ProviderTimeoutError,
)
from ledger_sync.telemetry.logger import get_logger

K = TypeVar("K")
T = TypeVar("T")

Listener = Callable[[], None]


class LoadState(str, Enum):
    """Lifecycle of a loader."""
    IDLE = "idle"          # No key bound yet
    LOADING = "loading"    # Request in flight for the current key
    READY = "ready"        # Data is from the current key
    FAILED = "failed"      # Last request for the current key failed


class LoaderSnapshot(BaseModel):
    """What presentation code reads from a loader."""
    model_config = ConfigDict(frozen=True)

    key: Any = None
    state: LoadState = LoadState.IDLE
    data: list[Any]
    loading: bool = False
    error: Optional[str] = None


class EntityLoader(ABC, Generic[K, T]):
    """
    Base class for per-entity loaders.

    Subclasses implement fetch() and, where needed, postprocess().
    """

    entity_name: str = "entities"
    fallback_error: str = "Error loading data"

    def __init__(
        self,
        provider: DataProvider,
        *,
        attempts: Optional[int] = None,
        retry_wait_min_s: Optional[float] = None,
        retry_wait_max_s: Optional[float] = None,
    ):
        """
        Args:
            provider: Where to fetch from (normally instrumented)
            attempts: Tries per load; defaults to the loader settings.
                      Every attempt is a separate provider call.
            retry_wait_min_s: Minimum backoff between attempts
            retry_wait_max_s: Maximum backoff between attempts
        """
        settings = get_settings().loader
        self._provider = provider
        self._attempts = attempts if attempts is not None else settings.retry_attempts
        self._wait_min = (
            retry_wait_min_s if retry_wait_min_s is not None
            else settings.retry_wait_min_s
        )
        self._wait_max = (
            retry_wait_max_s if retry_wait_max_s is not None
            else settings.retry_wait_max_s
        )

        self._key: Optional[K] = None
        # Key the held data was loaded for; differs from _key while loading
        self._data_key: Optional[K] = None
        self._state = LoadState.IDLE
        self._data: list[T] = []
        self._loading = False
        self._error: Optional[str] = None
        self._generation = 0
        self._task: Optional[asyncio.Task] = None

        self._listeners: dict[int, Listener] = {}
        self._tokens = itertools.count()
        self._logger = get_logger(__name__).bind(loader=type(self).__name__)

    # ------------------------------------------------------------------
    # Subclass hooks
    # ------------------------------------------------------------------

    @abstractmethod
    async def fetch(self, key: K) -> Any:
        """Call the provider for one key."""
        pass

    def postprocess(self, result: Any) -> list[T]:
        """
        Turn a provider result into the stored collection.

        Only called for results that belong to the current key.
        """
        return list(result)

    # ------------------------------------------------------------------
    # Public read surface
    # ------------------------------------------------------------------

    @property
    def key(self) -> Optional[K]:
        return self._key

    @property
    def state(self) -> LoadState:
        return self._state

    @property
    def data(self) -> list[T]:
        return list(self._data)

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def task(self) -> Optional[asyncio.Task]:
        """The task scheduled by the last bind(), if any."""
        return self._task

    def snapshot(self) -> LoaderSnapshot:
        return LoaderSnapshot(
            key=self._key,
            state=self._state,
            data=list(self._data),
            loading=self._loading,
            error=self._error,
        )

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register a callback invoked after every state change.

        Returns a function removing this registration.
        """
        token = next(self._tokens)
        self._listeners[token] = listener

        def unsubscribe() -> None:
            self._listeners.pop(token, None)

        return unsubscribe

    # ------------------------------------------------------------------
    # Key binding
    # ------------------------------------------------------------------

    def bind(self, key: Optional[K]) -> Optional[asyncio.Task]:
        """
        Point the loader at a key and start loading it in the background.

        An empty key is ignored: no request, and state, loading flag and
        data all stay as they are. Rebinding the current key is ignored
        too (use refetch() to reload).

        Must be called from a running event loop.

        Returns:
            The load task, or None when nothing was started
        """
        if not key or key == self._key:
            return None
        generation = self._begin(key)
        self._task = asyncio.create_task(self._settle(key, generation))
        return self._task

    async def load(self, key: Optional[K]) -> LoaderSnapshot:
        """
        Point the loader at a key and wait for the load to settle.

        Unlike bind(), this always issues a request for a non-empty key.
        """
        if key:
            generation = self._begin(key)
            await self._settle(key, generation)
        return self.snapshot()

    async def refetch(self) -> LoaderSnapshot:
        """Reload the current key; no-op when nothing is bound."""
        return await self.load(self._key)

    def reset(self) -> None:
        """
        Forget the key and the data (e.g. when the consuming view goes away).

        A load still in flight will settle as a stale response.
        """
        self._generation += 1
        self._key = None
        self._data_key = None
        self._state = LoadState.IDLE
        self._data = []
        self._loading = False
        self._error = None
        self._task = None
        self._notify()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _begin(self, key: K) -> int:
        self._generation += 1
        self._key = key
        self._state = LoadState.LOADING
        self._loading = True
        self._error = None
        self._notify()
        return self._generation

    def _rollback(self) -> None:
        """
        Undo a cancelled load: go back to the key the held data belongs
        to, so that binding the cancelled key again issues a request.
        """
        self._key = self._data_key
        self._state = LoadState.IDLE if self._data_key is None else LoadState.READY
        self._loading = False
        self._error = None
        self._notify()

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    async def _fetch_with_retry(self, key: K, generation: int) -> Any:
        if self._attempts <= 1:
            return await self.fetch(key)

        result = None
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._attempts),
            wait=wait_exponential(multiplier=1, min=self._wait_min, max=self._wait_max),
            retry=retry_if_exception_type((ProviderFailure, ProviderTimeoutError)),
            reraise=True,
        ):
            with attempt:
                # Superseded while backing off: stop spending calls on it
                if not self._is_current(generation):
                    return None
                result = await self.fetch(key)
        return result

    async def _settle(self, key: K, generation: int) -> None:
        try:
            result = await self._fetch_with_retry(key, generation)
        except asyncio.CancelledError:
            if self._is_current(generation):
                self._rollback()
            raise
        except Exception as e:
            if not self._is_current(generation):
                self._discard_stale(key, outcome="error")
                return
            self._error = str(e) or self.fallback_error
            self._state = LoadState.FAILED
            self._loading = False
            self._logger.warning(
                "load_failed",
                entity=self.entity_name,
                key=str(key),
                error=self._error,
            )
            self._notify()
            return

        if not self._is_current(generation):
            self._discard_stale(key, outcome="ok")
            return

        self._data = self.postprocess(result)
        self._data_key = key
        self._state = LoadState.READY
        self._loading = False
        self._notify()

    def _discard_stale(self, key: K, outcome: str) -> None:
        self._logger.debug(
            "stale_response_discarded",
            entity=self.entity_name,
            key=str(key),
            current_key=str(self._key),
            outcome=outcome,
        )

    def _notify(self) -> None:
        for listener in list(self._listeners.values()):
            try:
                listener()
            except Exception as e:
                self._logger.error("listener_failed", error=str(e))
