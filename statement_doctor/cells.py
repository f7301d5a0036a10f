"""
Typed raw cell values.

Decoders hand back whatever the container produced (str, int, float,
datetime, NaN, None). Everything downstream works on one of four cell
types instead, so the value parsers never have to guess at runtime types.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Sequence, Union

import pandas as pd


@dataclass(frozen=True)
class EmptyCell:
    pass


@dataclass(frozen=True)
class TextCell:
    text: str


@dataclass(frozen=True)
class NumberCell:
    value: Decimal


@dataclass(frozen=True)
class DateCell:
    value: date


Cell = Union[EmptyCell, TextCell, NumberCell, DateCell]
CELL_TYPES = (EmptyCell, TextCell, NumberCell, DateCell)
EMPTY = EmptyCell()


def _number_cell(value: Any) -> Cell:
    if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
        return EMPTY
    try:
        # str() first so 12.1 stays Decimal("12.1") rather than its binary expansion
        return NumberCell(Decimal(str(value)))
    except InvalidOperation:
        return EMPTY


def to_cell(value: Any) -> Cell:
    """Convert a raw decoder value into a typed cell."""
    if isinstance(value, CELL_TYPES):
        return value
    if value is None or value is pd.NaT:
        return EMPTY
    if isinstance(value, bool):
        return TextCell(str(value))
    if isinstance(value, pd.Timestamp):
        if pd.isna(value):
            return EMPTY
        return DateCell(value.to_pydatetime().date())
    if isinstance(value, datetime):
        return DateCell(value.date())
    if isinstance(value, date):
        return DateCell(value)
    if isinstance(value, (int, float, Decimal)):
        return _number_cell(value)
    try:
        if pd.isna(value):
            return EMPTY
    except (TypeError, ValueError):
        pass
    text = str(value).replace("\x00", "")
    if not text.strip():
        return EMPTY
    return TextCell(text)


def cell_at(row: Sequence[Any], index: int | None) -> Cell:
    """Return the typed cell at ``index``; positions past the row end are empty."""
    if index is None or index < 0 or index >= len(row):
        return EMPTY
    return to_cell(row[index])


def is_empty_row(row: Sequence[Any]) -> bool:
    return all(isinstance(to_cell(value), EmptyCell) for value in row)


def cell_text(cell: Cell) -> str:
    """Display text for a cell, trimmed; empty cells give ''."""
    if isinstance(cell, TextCell):
        return cell.text.strip()
    if isinstance(cell, NumberCell):
        return str(cell.value)
    if isinstance(cell, DateCell):
        return cell.value.isoformat()
    return ""


def column_values(rows: Sequence[Sequence[Any]], index: int) -> list[Cell]:
    return [cell_at(row, index) for row in rows]
