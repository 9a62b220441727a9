"""Shared fixtures.

The settings cache and the default telemetry recorder are process-wide,
so every test starts and ends with fresh instances of both.
"""

from datetime import date
from decimal import Decimal

import pytest

from ledger_sync.config import get_settings
from ledger_sync.models.entities import Account, Category, Delegation, Transaction
from ledger_sync.telemetry import TelemetryRecorder, reset_recorder


@pytest.fixture(autouse=True)
def _isolate_process_state():
    get_settings.cache_clear()
    reset_recorder()
    yield
    reset_recorder()
    get_settings.cache_clear()


@pytest.fixture
def recorder() -> TelemetryRecorder:
    return TelemetryRecorder(capacity=200, log_events=False)


@pytest.fixture
def delegations() -> list[Delegation]:
    return [
        Delegation(id="del-1", organization_id="org-1", name="Madrid"),
        Delegation(id="del-2", organization_id="org-1", name="Sevilla"),
        Delegation(id="del-3", organization_id="org-2", name="Lisboa"),
    ]


@pytest.fixture
def accounts() -> list[Account]:
    return [
        Account(id="acc-1", delegation_id="del-1", name="Main", kind="bank", bank_name="Acme"),
        Account(id="acc-2", delegation_id="del-1", name="Petty Cash", kind="cash_box"),
        Account(id="acc-3", delegation_id="del-2", name="Operations", kind="bank", bank_name="Globex"),
        Account(id="acc-4", delegation_id="del-3", name="Caixa", kind="cash_box"),
    ]


@pytest.fixture
def categories() -> list[Category]:
    return [
        Category(id="cat-rent", organization_id="org-1", name="Rent", order=3, kind="expense"),
        Category(id="cat-fees", organization_id="org-1", name="Fees", order=1, kind="income"),
        Category(id="cat-misc", organization_id="org-1", name="Misc", order=2),
        Category(id="cat-other", organization_id="org-2", name="Other", order=1),
    ]


@pytest.fixture
def transactions() -> list[Transaction]:
    return [
        Transaction(
            id="tx-1", account_id="acc-1", category_id="cat-fees",
            amount=Decimal("1200.00"), posted_on=date(2024, 3, 1), concept="Member fees",
        ),
        Transaction(
            id="tx-2", account_id="acc-1", category_id="cat-rent",
            amount=Decimal("-800.00"), posted_on=date(2024, 3, 5), concept="March rent",
        ),
        Transaction(
            id="tx-3", account_id="acc-2", category_id=None,
            amount=Decimal("-15.50"), posted_on=date(2024, 3, 3), concept="Stamps",
        ),
        Transaction(
            id="tx-4", account_id="acc-2", category_id="cat-misc",
            amount=Decimal("-4.00"), posted_on=date(2024, 2, 28), concept="Coffee",
            ignored=True,
        ),
        Transaction(
            id="tx-5", account_id="acc-3", category_id="cat-fees",
            amount=Decimal("300.00"), posted_on=date(2024, 3, 2), concept="Fees Sevilla",
        ),
    ]
