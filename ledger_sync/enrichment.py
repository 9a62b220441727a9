"""
Enrichment Join

Pure functions that turn loaded collections into display-ready records.
No I/O, and the inputs are never modified.
"""

from decimal import Decimal
from typing import Iterable, Sequence

from ledger_sync.models.entities import (
    Account,
    AccountKind,
    Category,
    EnrichedTransaction,
    Transaction,
)

BANK_ICON = "🏦"
CASH_BOX_ICON = "💵"


def _index_by_id(records: Iterable) -> dict:
    """Map id -> record; on duplicate ids the first record wins."""
    index = {}
    for record in records:
        index.setdefault(record.id, record)
    return index


def enrich_transactions(
    transactions: Sequence[Transaction],
    accounts: Iterable[Account],
    categories: Iterable[Category],
) -> list[EnrichedTransaction]:
    """
    Attach each transaction's account and category.

    Output order is input order. A reference with no matching record
    (or no reference at all) leaves that association as None.

    Accounts and categories are indexed by id up front, so the join is
    linear in the total number of records.
    """
    accounts_by_id = _index_by_id(accounts)
    categories_by_id = _index_by_id(categories)

    return [
        EnrichedTransaction(
            transaction=transaction,
            account=accounts_by_id.get(transaction.account_id),
            category=(
                categories_by_id.get(transaction.category_id)
                if transaction.category_id is not None
                else None
            ),
        )
        for transaction in transactions
    ]


def account_display_name(account: Account) -> str:
    """
    Name to show for an account.

    Bank accounts read "{bank} - {name}" when the bank is known;
    cash boxes always show just their name.
    """
    if account.kind == AccountKind.CASH_BOX:
        return account.name
    if account.bank_name:
        return f"{account.bank_name} - {account.name}"
    return account.name


def account_icon(account: Account) -> str:
    return BANK_ICON if account.kind == AccountKind.BANK else CASH_BOX_ICON


def account_balance(transactions: Iterable[Transaction], account_id: str) -> Decimal:
    """Sum of an account's movements, leaving out ignored ones."""
    return sum(
        (
            transaction.amount
            for transaction in transactions
            if transaction.account_id == account_id and not transaction.ignored
        ),
        Decimal("0"),
    )
