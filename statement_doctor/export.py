"""
Workbook export and re-import of normalized transactions.

One sheet, "Transactions", with a fixed column order. Re-imported rows get
fresh ids; everything else round-trips.
"""

from __future__ import annotations

import io
from datetime import date, datetime
from pathlib import Path
from typing import IO, Iterable, Union

import openpyxl
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from statement_doctor.amounts import parse_amount
from statement_doctor.dates import parse_date
from statement_doctor.materializer import Transaction, new_transaction_id

SHEET_NAME = "Transactions"
EXPORT_COLUMNS = ["Date", "Amount", "Description", "Account", "Source File", "Category"]
COLUMN_WIDTHS = [12, 14, 48, 24, 28, 18]
HEADER_COLOR = "1565C0"
AMOUNT_FORMAT = "#,##0.00;[Red]-#,##0.00"


def _style_sheet(ws) -> None:
    """Bold header, frozen first row, fixed widths."""
    font = Font(bold=True, color="FFFFFF")
    fill = PatternFill("solid", fgColor=HEADER_COLOR)
    for cell in ws[1]:
        cell.font = font
        cell.fill = fill
        cell.alignment = Alignment(horizontal="center", vertical="center")
    ws.freeze_panes = "A2"
    for i, width in enumerate(COLUMN_WIDTHS, start=1):
        ws.column_dimensions[get_column_letter(i)].width = width


def build_workbook(transactions: Iterable[Transaction]) -> openpyxl.Workbook:
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = SHEET_NAME
    ws.append(EXPORT_COLUMNS)
    for txn in transactions:
        ws.append([txn.date, txn.amount, txn.description, txn.account, txn.source_file, txn.category])
        ws.cell(ws.max_row, 1).number_format = "yyyy-mm-dd"
        ws.cell(ws.max_row, 2).number_format = AMOUNT_FORMAT
    _style_sheet(ws)
    return wb


def export_transactions(
    transactions: Iterable[Transaction],
    output_path: Union[str, Path, None] = None,
) -> bytes:
    """Write the workbook to ``output_path`` when given; always return its bytes."""
    buffer = io.BytesIO()
    build_workbook(transactions).save(buffer)
    data = buffer.getvalue()
    if output_path is not None:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_bytes(data)
    return data


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return parse_date(value)


def _text(value) -> str:
    return "" if value is None else str(value).strip()


def import_transactions(source: Union[str, Path, bytes, IO[bytes]]) -> list[Transaction]:
    """
    Read transactions back from an exported workbook.

    Columns are matched by header name, so reordered sheets still load.
    Raises ValueError when the workbook has no "Transactions" sheet.
    """
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(source)
    wb = openpyxl.load_workbook(source, data_only=True)
    try:
        if SHEET_NAME not in wb.sheetnames:
            raise ValueError("No Transactions sheet found")
        rows = list(wb[SHEET_NAME].iter_rows(values_only=True))
    finally:
        wb.close()

    if not rows:
        return []
    header_index = {_text(name): idx for idx, name in enumerate(rows[0])}
    missing = [name for name in EXPORT_COLUMNS[:4] if name not in header_index]
    if missing:
        raise ValueError(f"Transactions sheet is missing columns: {missing}")

    def value(row, name):
        idx = header_index.get(name)
        return row[idx] if idx is not None and idx < len(row) else None

    transactions: list[Transaction] = []
    for row in rows[1:]:
        if all(cell is None or _text(cell) == "" for cell in row):
            continue
        transactions.append(
            Transaction(
                id=new_transaction_id(),
                date=_as_date(value(row, "Date")),
                amount=parse_amount(value(row, "Amount")),
                description=_text(value(row, "Description")),
                account=_text(value(row, "Account")),
                source_file=_text(value(row, "Source File")),
                category=_text(value(row, "Category")) or None,
            )
        )
    return transactions
