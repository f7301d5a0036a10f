"""
Amount cell parsing and the value-shape checks used for column detection.

parse_amount never raises: anything that cannot be read as a number is
Decimal("0"). Accounting notation "(75.00)" is always negative, whatever sign sits
inside the brackets. Otherwise the sign is taken from a leading "+" or "-" on either side of the currency
symbol.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Sequence

from statement_doctor.cells import EmptyCell, NumberCell, TextCell, to_cell
from statement_doctor.dates import DEFAULT_DATE_ORDER, looks_like_date

CURRENCY_SYMBOLS = ("$", "£", "€", "¥", "₹")
ZERO = Decimal("0")

_SYM = "[$£€¥₹]"
_DIGITS = r"(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d+)?"
CURRENCY_AMOUNT_RE = re.compile(rf"^[-+]?\s*{_SYM}?\s*[-+]?{_DIGITS}\s*{_SYM}?$")
PLAIN_NUMBER_RE = re.compile(r"^[-+]?\d+(?:\.\d+)?$")
ACCOUNTING_RE = re.compile(rf"^\(\s*{_SYM}?\s*{_DIGITS}\s*\)$")
NUMERIC_BODY_RE = re.compile(r"^(?:\d+(?:\.\d*)?|\.\d+)$")
LETTER_RE = re.compile(r"[A-Za-z]")


@dataclass(frozen=True)
class ParsedAmount:
    value: Decimal
    fell_back: bool = False


def _strip_symbols(text: str) -> str:
    for symbol in CURRENCY_SYMBOLS:
        text = text.replace(symbol, "")
    return text


def parse_amount_detailed(value: Any) -> ParsedAmount:
    cell = to_cell(value)
    if isinstance(cell, NumberCell):
        return ParsedAmount(cell.value)
    if isinstance(cell, EmptyCell):
        return ParsedAmount(ZERO)
    if not isinstance(cell, TextCell):
        return ParsedAmount(ZERO, fell_back=True)

    text = cell.text.strip()
    bracketed = text.startswith("(") and text.endswith(")")
    if bracketed:
        text = text[1:-1].strip()

    text = _strip_symbols(text).replace(" ", "")
    # "1.234,56": decimal comma, not a thousands separator.
    if "." in text and text.rfind(",") > text.rfind("."):
        return ParsedAmount(ZERO, fell_back=True)
    text = text.replace(",", "")
    negative = False
    if text.startswith("-"):
        negative = True
        text = text[1:]
    elif text.startswith("+"):
        text = text[1:]

    if not NUMERIC_BODY_RE.fullmatch(text):
        return ParsedAmount(ZERO, fell_back=True)
    try:
        number = Decimal(text)
    except InvalidOperation:
        return ParsedAmount(ZERO, fell_back=True)
    if bracketed:
        return ParsedAmount(-abs(number))
    return ParsedAmount(-number if negative else number)


def parse_amount(value: Any) -> Decimal:
    return parse_amount_detailed(value).value


def looks_like_amount(value: Any) -> bool:
    cell = to_cell(value)
    if isinstance(cell, NumberCell):
        return True
    if not isinstance(cell, TextCell):
        return False
    text = cell.text.strip()
    return bool(
        CURRENCY_AMOUNT_RE.fullmatch(text)
        or PLAIN_NUMBER_RE.fullmatch(text)
        or ACCOUNTING_RE.fullmatch(text)
    )


def _sample(values: Sequence[Any], sample_size: int) -> list[Any]:
    cells = [to_cell(value) for value in values]
    return [cell for cell in cells if not isinstance(cell, EmptyCell)][:sample_size]


def is_likely_amount_column(
    values: Sequence[Any],
    sample_size: int = 10,
    threshold: float = 0.8,
) -> bool:
    sample = _sample(values, sample_size)
    if not sample:
        return False
    hits = sum(1 for cell in sample if looks_like_amount(cell))
    return hits / len(sample) >= threshold


def looks_like_description(value: Any, order: str = DEFAULT_DATE_ORDER) -> bool:
    cell = to_cell(value)
    if not isinstance(cell, TextCell):
        return False
    text = cell.text.strip()
    if len(text) <= 5 or not LETTER_RE.search(text):
        return False
    if looks_like_amount(cell):
        return False
    return not looks_like_date(cell, order)


def is_likely_description_column(
    values: Sequence[Any],
    sample_size: int = 10,
    threshold: float = 0.6,
    order: str = DEFAULT_DATE_ORDER,
) -> bool:
    """Free text check, so a merchant column is never taken for numbers or dates."""
    sample = _sample(values, sample_size)
    if not sample:
        return False
    hits = sum(1 for cell in sample if looks_like_description(cell, order))
    return hits / len(sample) >= threshold
