"""
Row materialization: decoded data rows + column roles -> Transaction records.

A row that raises while being built is recorded as a RowFailure and the
batch carries on. Completely empty rows are skipped silently. Row numbers
are 1-based positions in the data body (the header row is not counted).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from pathlib import PurePath
from typing import Any, Callable, Optional, Sequence

from statement_doctor.amounts import parse_amount_detailed
from statement_doctor.cells import cell_at, cell_text, is_empty_row, to_cell
from statement_doctor.column_detector import ColumnRoleMap
from statement_doctor.dates import DEFAULT_DATE_ORDER, parse_date_detailed
from statement_doctor.settings import IngestSettings

PLACEHOLDER_DESCRIPTION = "Unknown Transaction (row {row_number})"


@dataclass(frozen=True)
class Transaction:
    id: str
    date: date
    amount: Decimal
    description: str
    account: str
    source_file: str
    category: Optional[str] = None

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "amount": str(self.amount),
            "description": self.description,
            "account": self.account,
            "source_file": self.source_file,
            "category": self.category,
        }


@dataclass(frozen=True)
class RowFailure:
    row_number: int
    raw_values: dict[str, str]
    reason: str

    def as_dict(self) -> dict[str, Any]:
        return {"row_number": self.row_number, "raw_values": self.raw_values, "reason": self.reason}


@dataclass
class MaterializeResult:
    transactions: list[Transaction] = field(default_factory=list)
    failures: list[RowFailure] = field(default_factory=list)
    date_fallback_rows: list[int] = field(default_factory=list)
    amount_fallback_rows: list[int] = field(default_factory=list)
    skipped_empty_rows: int = 0


def new_transaction_id() -> str:
    return uuid.uuid4().hex


def default_account_label(source_name: str) -> str:
    """Filename with its extension stripped."""
    return PurePath(source_name or "").stem


def _raw_row(headers: Sequence[Any], row: Sequence[Any]) -> dict[str, str]:
    raw: dict[str, str] = {}
    for index in range(max(len(headers), len(row))):
        key = str(headers[index]) if index < len(headers) and str(headers[index]).strip() else f"[col {index + 1}]"
        raw[key] = cell_text(to_cell(row[index])) if index < len(row) else ""
    return raw


def materialize_row(
    role_map: ColumnRoleMap,
    row: Sequence[Any],
    row_number: int,
    source_name: str,
    *,
    order: str = DEFAULT_DATE_ORDER,
    today: date | None = None,
    id_factory: Callable[[], str] = new_transaction_id,
) -> tuple[Transaction, bool, bool]:
    """Build one Transaction; returns (transaction, date_fell_back, amount_fell_back)."""
    today = today or date.today()

    date_fell_back = False
    if role_map.date is not None:
        parsed_date = parse_date_detailed(cell_at(row, role_map.date), order=order, today=today)
        txn_date, date_fell_back = parsed_date.value, parsed_date.fell_back
    else:
        txn_date = today

    amount_fell_back = False
    if role_map.amount is not None:
        parsed_amount = parse_amount_detailed(cell_at(row, role_map.amount))
        amount, amount_fell_back = parsed_amount.value, parsed_amount.fell_back
    else:
        amount = Decimal("0")

    description = cell_text(cell_at(row, role_map.description))
    if not description:
        description = PLACEHOLDER_DESCRIPTION.format(row_number=row_number)

    account = cell_text(cell_at(row, role_map.account)) or default_account_label(source_name)

    transaction = Transaction(
        id=id_factory(),
        date=txn_date,
        amount=amount,
        description=description,
        account=account,
        source_file=source_name,
    )
    return transaction, date_fell_back, amount_fell_back


def materialize(
    role_map: ColumnRoleMap,
    headers: Sequence[Any],
    rows: Sequence[Sequence[Any]],
    source_name: str,
    *,
    settings: IngestSettings | None = None,
    today: date | None = None,
) -> MaterializeResult:
    order = (settings or IngestSettings()).date_order
    result = MaterializeResult()
    for row_number, row in enumerate(rows, start=1):
        if is_empty_row(row):
            result.skipped_empty_rows += 1
            continue
        try:
            transaction, date_fell_back, amount_fell_back = materialize_row(
                role_map, row, row_number, source_name, order=order, today=today
            )
        except Exception as exc:
            result.failures.append(RowFailure(row_number, _raw_row(headers, row), f"{type(exc).__name__}: {exc}"))
            continue
        result.transactions.append(transaction)
        if date_fell_back:
            result.date_fallback_rows.append(row_number)
        if amount_fell_back:
            result.amount_fallback_rows.append(row_number)
    return result
