"""
ledger_sync - Source Package

Client-side data synchronization and observability for a delegation
bookkeeping dashboard.

DESIGN PRINCIPLES:
1. Every provider call is observed (exactly one telemetry event per attempt)
2. Fail visibly, but keep showing the last known data
3. A superseded response never overwrites newer state
4. Telemetry is best-effort and never changes an outcome
5. The backend is swappable
"""

__version__ = "1.0.0"
