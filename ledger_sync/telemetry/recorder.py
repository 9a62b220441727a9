"""
Telemetry Recorder

An in-process, fixed-capacity log of provider call observations with
publish/subscribe notification, used by diagnostics views to watch
data-access latency and failures as they happen.

The recorder:
- Keeps the most recent `capacity` events, evicting the oldest first
- Notifies subscribers synchronously after each append
- Never lets a failing subscriber break the call being recorded

DESIGN DECISION: There is no hidden module-level log. The default
recorder is an explicit instance created on first use by get_recorder()
and discarded by reset_recorder(), so tests start from a clean window.
"""

import itertools
import threading
from collections import deque
from functools import lru_cache
from typing import Callable

from ledger_sync.config import get_settings
from ledger_sync.models.telemetry import TelemetryEvent
from ledger_sync.telemetry.logger import get_logger

Subscriber = Callable[[], None]
Unsubscribe = Callable[[], None]

DEFAULT_CAPACITY = 200


class TelemetryRecorder:
    """
    Bounded FIFO event log with subscriber notification.

    Eviction is unconditional and independent of reads: once the log
    holds `capacity` events, every append drops the oldest one.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY, log_events: bool = True):
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        self._events: deque[TelemetryEvent] = deque(maxlen=capacity)
        # Keyed by registration token, so one callback can be registered
        # several times and each registration removed on its own
        self._subscribers: dict[int, Subscriber] = {}
        self._tokens = itertools.count()
        self._lock = threading.Lock()
        self._log_events = log_events
        self._logger = get_logger(__name__)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def __len__(self) -> int:
        return len(self._events)

    def record(self, event: TelemetryEvent) -> None:
        """
        Append an event and notify subscribers.

        The append (and eviction, if the log is full) is visible in
        snapshot() before the first subscriber runs. Subscribers are
        called with no arguments, in subscription order.
        """
        with self._lock:
            self._events.append(event)
            subscribers = list(self._subscribers.values())

        if self._log_events:
            if event.failed:
                self._logger.warning("telemetry_event", **event.to_log_dict())
            else:
                self._logger.debug("telemetry_event", **event.to_log_dict())

        for callback in subscribers:
            try:
                callback()
            except Exception as e:
                self._logger.error(
                    "subscriber_failed",
                    error=str(e),
                    label=event.label,
                )

    def snapshot(self) -> list[TelemetryEvent]:
        """Return a copy of the log, oldest event first."""
        with self._lock:
            return list(self._events)

    def get_metrics(self) -> list[TelemetryEvent]:
        """Alias of snapshot() for diagnostics views."""
        return self.snapshot()

    def subscribe(self, callback: Subscriber) -> Unsubscribe:
        """
        Register a callback invoked after every recorded event.

        Every call is an independent registration, even for a callback
        that is already registered.

        Returns:
            A function removing exactly this registration. Calling it
            more than once has no further effect.
        """
        token = next(self._tokens)
        with self._lock:
            self._subscribers[token] = callback

        def unsubscribe() -> None:
            with self._lock:
                self._subscribers.pop(token, None)

        return unsubscribe

    def clear(self) -> None:
        """Drop all recorded events. Subscriptions are kept."""
        with self._lock:
            self._events.clear()


@lru_cache()
def get_recorder() -> TelemetryRecorder:
    """
    Get the process-wide default recorder (created on first use).

    Sized from the telemetry settings.
    """
    settings = get_settings().telemetry
    return TelemetryRecorder(
        capacity=settings.capacity,
        log_events=settings.log_events,
    )


def reset_recorder() -> None:
    """Discard the default recorder; the next get_recorder() builds a new one."""
    get_recorder.cache_clear()


def get_metrics() -> list[TelemetryEvent]:
    """Snapshot of the default recorder."""
    return get_recorder().snapshot()


def subscribe(callback: Subscriber) -> Unsubscribe:
    """Subscribe to the default recorder."""
    return get_recorder().subscribe(callback)
