"""
Date cell parsing for bank statement exports.

Public API:
    parse_date(value)                 -> datetime.date (never raises)
    parse_date_detailed(value)        -> ParsedDate(value, label, fell_back)
    is_likely_date_column(values)     -> bool
    parse_combined_date(d, m, y)      -> datetime.date

Resolution order for a single cell, first success wins:
    1. native date cells
    2. ISO-8601 direct parse (year must be > 1900)
    3. DATE_SIGNATURES table, top to bottom
    4. separator split with year/month/day plausibility bounds
    5. Excel serial day counts for numeric cells
    6. today's date, flagged as a fallback

Numeric dates such as 03/04/2024 are ambiguous. The table does not guess a
locale from the data; ``order`` decides whether the month-first or the
day-first reading is tried first. A reading that produces an impossible
date (month 15, 30 February) is skipped and the next one is tried.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Callable, Optional, Sequence

import pandas as pd

from statement_doctor.cells import DateCell, EmptyCell, NumberCell, TextCell, to_cell

MONTH_FIRST = "month_first"
DAY_FIRST = "day_first"
DATE_ORDERS = (MONTH_FIRST, DAY_FIRST)
DEFAULT_DATE_ORDER = MONTH_FIRST

MIN_YEAR = 1900
MAX_YEAR = 2100
EXCEL_EPOCH = date(1899, 12, 30)
EXCEL_SERIAL_LIKELY_RANGE = (25_000, 60_000)
# Two-digit years below the pivot are 20xx, the rest 19xx (same as strptime %y).
TWO_DIGIT_YEAR_PIVOT = 69

MONTH_NAMES = {
    "january": 1, "february": 2, "march": 3, "april": 4, "may": 5, "june": 6,
    "july": 7, "august": 8, "september": 9, "october": 10, "november": 11, "december": 12,
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "jun": 6, "jul": 7, "aug": 8,
    "sep": 9, "sept": 9, "oct": 10, "nov": 11, "dec": 12,
}

ALPHA_ONLY_RE = re.compile(r"^[A-Za-z\s-]+$")
LEADING_INT_RE = re.compile(r"^\d+")
SPLIT_SEPARATORS = ("/", "-", ".", " ")


@dataclass(frozen=True)
class ParsedDate:
    value: date
    label: str
    fell_back: bool = False


Extractor = Callable[["re.Match[str]", date], Optional[date]]


@dataclass(frozen=True)
class DateSignature:
    label: str
    pattern: "re.Pattern[str]"
    extract: Extractor
    fragment: bool = False


def _safe_date(year: int, month: int, day: int) -> date | None:
    if not (MIN_YEAR <= year <= MAX_YEAR):
        return None
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _month_number(name: str) -> int | None:
    return MONTH_NAMES.get(name.strip().rstrip(".").lower())


def excel_serial_to_date(serial: int) -> date | None:
    """Decode an Excel day count; 1899-12-30 absorbs the 1900 leap-year bug."""
    try:
        value = EXCEL_EPOCH + timedelta(days=int(serial))
    except OverflowError:
        return None
    if not (MIN_YEAR <= value.year <= MAX_YEAR):
        return None
    return value


def _ymd(y: int, m: int, d: int) -> Extractor:
    return lambda match, _today: _safe_date(
        int(match.group(y)), int(match.group(m)), int(match.group(d))
    )


def _day_month_name(match: "re.Match[str]", _today: date) -> date | None:
    month = _month_number(match.group(2))
    if month is None:
        return None
    return _safe_date(int(match.group(3)), month, int(match.group(1)))


def _month_name_day(match: "re.Match[str]", _today: date) -> date | None:
    month = _month_number(match.group(1))
    if month is None:
        return None
    return _safe_date(int(match.group(3)), month, int(match.group(2)))


def _excel_serial(match: "re.Match[str]", _today: date) -> date | None:
    return excel_serial_to_date(int(match.group(0)))


def _day_only(match: "re.Match[str]", today: date) -> date | None:
    return _safe_date(today.year, today.month, int(match.group(1)))


def _month_only(match: "re.Match[str]", today: date) -> date | None:
    month = _month_number(match.group(1))
    if month is None:
        return None
    return _safe_date(today.year, month, 1)


def _year_only(match: "re.Match[str]", _today: date) -> date | None:
    return _safe_date(int(match.group(1)), 1, 1)


def expand_two_digit_year(year: int) -> int:
    return 2000 + year if year < TWO_DIGIT_YEAR_PIVOT else 1900 + year


def _short_ymd(y: int, m: int, d: int) -> Extractor:
    return lambda match, _today: _safe_date(
        expand_two_digit_year(int(match.group(y))), int(match.group(m)), int(match.group(d))
    )


def _day_month_name_short(match: "re.Match[str]", _today: date) -> date | None:
    month = _month_number(match.group(2))
    if month is None:
        return None
    return _safe_date(expand_two_digit_year(int(match.group(3))), month, int(match.group(1)))


_SLASH_OR_DASH = r"^(\d{1,2})([/-])(\d{1,2})\2(\d{4})"
_SLASH_OR_DASH_SHORT = r"^(\d{1,2})([/-])(\d{1,2})\2(\d{2})(?!\d)"
_MONTH_WORD = r"([A-Za-z]{3,9}\.?)"

_ISO_DATETIME = DateSignature("iso-8601", re.compile(r"^(\d{4})-(\d{2})-(\d{2})T\d{2}:\d{2}"), _ymd(1, 2, 3))
_YYYY_MM_DD = DateSignature("yyyy-mm-dd", re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})"), _ymd(1, 2, 3))
_MM_DD_YYYY = DateSignature("mm/dd/yyyy", re.compile(_SLASH_OR_DASH), _ymd(4, 1, 3))
_DD_MM_YYYY = DateSignature("dd/mm/yyyy", re.compile(_SLASH_OR_DASH), _ymd(4, 3, 1))
_MM_DD_YY = DateSignature("mm/dd/yy", re.compile(_SLASH_OR_DASH_SHORT), _short_ymd(4, 1, 3))
_DD_MM_YY = DateSignature("dd/mm/yy", re.compile(_SLASH_OR_DASH_SHORT), _short_ymd(4, 3, 1))

_TRAILING_SIGNATURES = (
    DateSignature("dd.mm.yyyy", re.compile(r"^(\d{1,2})\.(\d{1,2})\.(\d{4})"), _ymd(3, 2, 1)),
    DateSignature("yyyy.mm.dd", re.compile(r"^(\d{4})\.(\d{1,2})\.(\d{1,2})"), _ymd(1, 2, 3)),
    DateSignature("yyyy/mm/dd", re.compile(r"^(\d{4})/(\d{1,2})/(\d{1,2})"), _ymd(1, 2, 3)),
    DateSignature(
        "dd mon yyyy",
        re.compile(r"^(\d{1,2})[\s-]+" + _MONTH_WORD + r"[\s-]+(\d{4})"),
        _day_month_name,
    ),
    DateSignature(
        "dd mon yy",
        re.compile(r"^(\d{1,2})[\s-]+" + _MONTH_WORD + r"[\s-]+(\d{2})(?!\d)"),
        _day_month_name_short,
    ),
    DateSignature(
        "mon dd, yyyy",
        re.compile(r"^" + _MONTH_WORD + r"\s+(\d{1,2}),?\s+(\d{4})"),
        _month_name_day,
    ),
    DateSignature("excel-serial", re.compile(r"^\d{5}$"), _excel_serial),
    DateSignature("day-only", re.compile(r"^(\d{1,2})$"), _day_only, fragment=True),
    DateSignature("month-only", re.compile(r"^" + _MONTH_WORD + r"$"), _month_only, fragment=True),
    DateSignature("year-only", re.compile(r"^(\d{4})$"), _year_only, fragment=True),
)


def date_signatures(order: str = DEFAULT_DATE_ORDER) -> tuple[DateSignature, ...]:
    """The signature table for ``order``; only the ambiguous pairs move."""
    if order not in DATE_ORDERS:
        raise ValueError(f"Unknown date order {order!r}; expected one of {DATE_ORDERS}")
    if order == MONTH_FIRST:
        pairs = (_MM_DD_YYYY, _DD_MM_YYYY, _MM_DD_YY, _DD_MM_YY)
    else:
        pairs = (_DD_MM_YYYY, _MM_DD_YYYY, _DD_MM_YY, _MM_DD_YY)
    return (_ISO_DATETIME, _YYYY_MM_DD, *pairs, *_TRAILING_SIGNATURES)


DATE_SIGNATURES = date_signatures(DEFAULT_DATE_ORDER)


def _iso_parse(text: str) -> date | None:
    parsed = pd.to_datetime(text, format="ISO8601", errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.date()


def _split_guess(text: str, order: str) -> date | None:
    for separator in SPLIT_SEPARATORS:
        if separator not in text:
            continue
        parts = [part.strip() for part in text.split(separator)]
        if len(parts) < 3:
            continue
        nums: list[int] = []
        for part in parts:
            match = LEADING_INT_RE.match(part)
            if match:
                nums.append(int(match.group(0)))
        if len(nums) < 3:
            continue

        day_first = (nums[2], nums[1], nums[0])
        month_first = (nums[2], nums[0], nums[1])
        year_first = (nums[0], nums[1], nums[2])
        arrangements = (
            (month_first, day_first, year_first)
            if order == MONTH_FIRST
            else (day_first, month_first, year_first)
        )
        for year, month, day in arrangements:
            if MIN_YEAR <= year <= MAX_YEAR and 1 <= month <= 12 and 1 <= day <= 31:
                parsed = _safe_date(year, month, day)
                if parsed is not None:
                    return parsed
    return None


def _match_signature(
    text: str, order: str, today: date
) -> tuple[date, DateSignature] | None:
    for signature in date_signatures(order):
        match = signature.pattern.match(text)
        if not match:
            continue
        parsed = signature.extract(match, today)
        if parsed is not None:
            return parsed, signature
    return None


def parse_date_detailed(
    value: Any,
    order: str = DEFAULT_DATE_ORDER,
    today: date | None = None,
) -> ParsedDate:
    today = today or date.today()
    cell = to_cell(value)

    if isinstance(cell, DateCell):
        return ParsedDate(cell.value, "native date")

    if isinstance(cell, NumberCell):
        if cell.value == cell.value.to_integral_value():
            serial = excel_serial_to_date(int(cell.value))
            if serial is not None:
                return ParsedDate(serial, "excel-serial")
        return ParsedDate(today, "fallback", fell_back=True)

    if isinstance(cell, EmptyCell):
        return ParsedDate(today, "fallback", fell_back=True)

    text = cell.text.strip()

    direct = _iso_parse(text)
    if direct is not None and MIN_YEAR < direct.year <= MAX_YEAR:
        return ParsedDate(direct, "iso-8601")

    matched = _match_signature(text, order, today)
    if matched is not None:
        parsed, signature = matched
        return ParsedDate(parsed, signature.label)

    guessed = _split_guess(text, order)
    if guessed is not None:
        return ParsedDate(guessed, "separator guess")

    return ParsedDate(today, "fallback", fell_back=True)


def parse_date(
    value: Any,
    order: str = DEFAULT_DATE_ORDER,
    today: date | None = None,
) -> date:
    return parse_date_detailed(value, order=order, today=today).value


def looks_like_date(value: Any, order: str = DEFAULT_DATE_ORDER, today: date | None = None) -> bool:
    """One-cell version of the column check; fragments never count."""
    today = today or date.today()
    cell = to_cell(value)
    if isinstance(cell, DateCell):
        return True
    if isinstance(cell, NumberCell):
        low, high = EXCEL_SERIAL_LIKELY_RANGE
        return cell.value == cell.value.to_integral_value() and low <= cell.value <= high
    if not isinstance(cell, TextCell):
        return False

    text = cell.text.strip()
    if len(text) > 50 or ALPHA_ONLY_RE.fullmatch(text):
        return False

    matched = _match_signature(text, order, today)
    if matched is not None:
        _, signature = matched
        if signature.label == "excel-serial":
            low, high = EXCEL_SERIAL_LIKELY_RANGE
            return low <= int(text) <= high
        return not signature.fragment

    direct = _iso_parse(text)
    return direct is not None and MIN_YEAR <= direct.year <= MAX_YEAR


def is_likely_date_column(
    values: Sequence[Any],
    order: str = DEFAULT_DATE_ORDER,
    sample_size: int = 10,
    threshold: float = 0.7,
) -> bool:
    """True when at least ``threshold`` of the first non-empty values read as dates.

    Single-field fragments (a bare day, month or year) match the signature
    table but do not count here: a column of small integers is far more
    often a quantity than a date.
    """
    cells = [to_cell(value) for value in values]
    sample = [cell for cell in cells if not isinstance(cell, EmptyCell)][:sample_size]
    if not sample:
        return False
    today = date.today()
    hits = sum(1 for cell in sample if looks_like_date(cell, order, today))
    return hits / len(sample) >= threshold


def _combined_month(value: Any) -> int | None:
    cell = to_cell(value)
    if isinstance(cell, NumberCell):
        number = int(cell.value)
        return number if 1 <= number <= 12 else None
    if not isinstance(cell, TextCell):
        return None
    text = cell.text.strip().lower()
    match = LEADING_INT_RE.match(text)
    if match:
        number = int(match.group(0))
        return number if 1 <= number <= 12 else None
    for name, number in MONTH_NAMES.items():
        if len(name) == 3 and text.startswith(name):
            return number
    return None


def _combined_int(value: Any) -> int | None:
    cell = to_cell(value)
    if isinstance(cell, NumberCell):
        return int(cell.value)
    if isinstance(cell, TextCell):
        match = LEADING_INT_RE.match(cell.text.strip())
        if match:
            return int(match.group(0))
    return None


def parse_combined_date_detailed(
    day: Any,
    month: Any,
    year: Any = None,
    today: date | None = None,
) -> ParsedDate:
    """Build a date from separate day / month / year cells (year defaults to this year)."""
    today = today or date.today()
    day_num = _combined_int(day)
    month_num = _combined_month(month)
    year_num = today.year if isinstance(to_cell(year), EmptyCell) else _combined_int(year)
    if day_num is not None and month_num is not None and year_num is not None:
        parsed = _safe_date(year_num, month_num, day_num)
        if parsed is not None:
            return ParsedDate(parsed, "combined columns")
    return ParsedDate(today, "fallback", fell_back=True)


def parse_combined_date(
    day: Any,
    month: Any,
    year: Any = None,
    today: date | None = None,
) -> date:
    return parse_combined_date_detailed(day, month, year, today=today).value
