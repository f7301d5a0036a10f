"""Per-account totals plus the search, filter and sort helpers behind the transaction table."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Optional

from statement_doctor.materializer import Transaction

SORT_FIELDS = ("date", "amount", "description", "account", "source_file")
ALL_ACCOUNTS = "all"


@dataclass(frozen=True)
class AccountSummary:
    account: str
    total_income: Decimal
    total_expenses: Decimal
    transaction_count: int

    @property
    def net(self) -> Decimal:
        return self.total_income - self.total_expenses

    def as_dict(self) -> dict[str, Any]:
        return {
            "account": self.account,
            "total_income": str(self.total_income),
            "total_expenses": str(self.total_expenses),
            "net": str(self.net),
            "transaction_count": self.transaction_count,
        }


def summarize_accounts(transactions: Iterable[Transaction]) -> list[AccountSummary]:
    """Income is the sum of positive amounts, expenses the absolute sum of negatives.

    Accounts are listed in the order they first appear.
    """
    totals: dict[str, list] = {}
    for txn in transactions:
        bucket = totals.setdefault(txn.account, [Decimal("0"), Decimal("0"), 0])
        if txn.amount > 0:
            bucket[0] += txn.amount
        elif txn.amount < 0:
            bucket[1] += -txn.amount
        bucket[2] += 1
    return [
        AccountSummary(account, income, expenses, count)
        for account, (income, expenses, count) in totals.items()
    ]


def accounts(transactions: Iterable[Transaction]) -> list[str]:
    seen: dict[str, None] = {}
    for txn in transactions:
        seen.setdefault(txn.account, None)
    return list(seen)


def filter_transactions(
    transactions: Iterable[Transaction],
    search: str = "",
    account: Optional[str] = None,
) -> list[Transaction]:
    """Case-insensitive substring search over description, account and amount text."""
    needle = search.strip().lower()
    selected = []
    for txn in transactions:
        if account and account != ALL_ACCOUNTS and txn.account != account:
            continue
        if needle and not (
            needle in txn.description.lower()
            or needle in txn.account.lower()
            or needle in str(txn.amount)
        ):
            continue
        selected.append(txn)
    return selected


def sort_transactions(
    transactions: Iterable[Transaction],
    field: str = "date",
    direction: str = "desc",
) -> list[Transaction]:
    if field not in SORT_FIELDS:
        raise ValueError(f"Cannot sort by {field!r}; expected one of {SORT_FIELDS}")
    if direction not in ("asc", "desc"):
        raise ValueError(f"Sort direction must be 'asc' or 'desc', got {direction!r}")

    def key(txn: Transaction):
        value = getattr(txn, field)
        return value.lower() if isinstance(value, str) else value

    return sorted(transactions, key=key, reverse=direction == "desc")
