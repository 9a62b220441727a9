"""Telemetry package."""

from ledger_sync.telemetry.logger import configure_logging, get_logger
from ledger_sync.telemetry.recorder import (
    TelemetryRecorder,
    get_metrics,
    get_recorder,
    reset_recorder,
    subscribe,
)

__all__ = [
    "TelemetryRecorder",
    "configure_logging",
    "get_logger",
    "get_metrics",
    "get_recorder",
    "reset_recorder",
    "subscribe",
]
