"""
Telemetry Models for ledger_sync

Every call to a data provider produces exactly one telemetry event.
Events are kept in a bounded in-memory window for diagnostics views.

DESIGN DECISION: Events are immutable once recorded. Readers get
copies of the log, and the events inside cannot be modified.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TelemetryStatus(str, Enum):
    """How a provider call settled."""
    OK = "ok"
    ERROR = "error"
    TIMEOUT = "timeout"
    ABORTED = "aborted"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TelemetryEvent(BaseModel):
    """
    A single provider call observation.
    """
    model_config = ConfigDict(frozen=True)

    at: datetime = Field(
        default_factory=_utcnow,
        description="When the call settled (UTC)"
    )
    label: str = Field(
        ...,
        min_length=1,
        description="Logical operation name, e.g. 'list_accounts'"
    )
    table: Optional[str] = Field(
        default=None,
        description="Entity the call touched, e.g. 'account'"
    )
    ms: float = Field(
        ...,
        ge=0,
        description="Duration from call start to settlement, in milliseconds"
    )
    status: TelemetryStatus
    error: Optional[str] = Field(
        default=None,
        description="Error message when status is not ok"
    )

    @property
    def failed(self) -> bool:
        return self.status != TelemetryStatus.OK

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "at": self.at.isoformat(),
            "label": self.label,
            "table": self.table,
            "ms": round(self.ms, 3),
            "status": self.status.value,
            "error": self.error,
        }
