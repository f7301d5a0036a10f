"""
loader.py - byte-level table decoding for statement-doctor

Supports: .csv .tsv .txt (delimited text) and .xlsx .xlsm .xls (first sheet)

Public API:
    table   = decode(content, "csv")
    headers = table.headers
    rows    = table.rows

Text files keep every cell as a string. Spreadsheet cells keep their native
types (numbers, datetimes) so the parsers can tell a serial date from a
formatted one. Empty input decodes to an empty table; the caller decides
whether that is an error.
"""

from __future__ import annotations

import csv
import io
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Optional

import chardet
import pandas as pd

KIND_CSV = "csv"
KIND_EXCEL = "excel"
KINDS = (KIND_CSV, KIND_EXCEL)

DELIMITER_CANDIDATES = (",", ";", "\t", "|")


@dataclass
class DecodedTable:
    headers: list[Any]
    rows: list[list[Any]]
    warnings: list[str] = field(default_factory=list)
    detected_encoding: Optional[str] = None
    encoding_confidence: Optional[float] = None
    delimiter: Optional[str] = None
    sheet_name: Optional[str] = None
    sheet_names: Optional[list[str]] = None

    @property
    def is_empty(self) -> bool:
        return not self.headers and not self.rows


# ══════════════════════════════════════════════════════════════════════════════
# ENCODING DETECTION
# ══════════════════════════════════════════════════════════════════════════════

def _detect_encoding(raw: bytes) -> tuple[str, float]:
    """Best-guess encoding and chardet confidence; utf-8 when chardet has no opinion."""
    result = chardet.detect(raw)
    detected = result.get("encoding") or "utf-8"
    confidence = round(result.get("confidence") or 0.0, 2)
    return detected, confidence


def _read_text_safely(raw: bytes, preferred_encoding: str) -> str:
    """
    Decode raw bytes line by line.

    Each line tries UTF-8, then the detected encoding, then latin-1, and
    finally CP1252 with replacement, so one stray byte never sinks the file.
    Embedded null bytes are dropped.
    """
    if raw.startswith(b"\xef\xbb\xbf"):
        raw = raw[3:]
    decoded_lines: list[str] = []
    for raw_line in raw.split(b"\n"):
        decoded: str | None = None
        for enc in ("utf-8", preferred_encoding, "latin-1"):
            if not enc:
                continue
            try:
                decoded = raw_line.decode(enc)
                break
            except (LookupError, UnicodeDecodeError):
                continue
        if decoded is None:
            decoded = raw_line.decode("cp1252", errors="replace")
        decoded_lines.append(decoded.rstrip("\r").replace("\x00", ""))
    return "\n".join(decoded_lines)


# ══════════════════════════════════════════════════════════════════════════════
# DELIMITER DETECTION
# ══════════════════════════════════════════════════════════════════════════════

def _detect_delimiter(text: str) -> str:
    """
    Infer the delimiter from the first non-empty lines.

    csv.Sniffer gets the first try; when it gives up, each candidate is
    scored by how consistently it splits lines into the same width.
    """
    sample_lines = [line for line in text.splitlines() if line.strip()][:50]
    sample = "\n".join(sample_lines[:25])

    if sample:
        try:
            return csv.Sniffer().sniff(sample, delimiters="".join(DELIMITER_CANDIDATES)).delimiter
        except csv.Error:
            pass

    best_delim = ","
    best_score = float("-inf")
    for delim in DELIMITER_CANDIDATES:
        rows = [
            row
            for row in csv.reader(io.StringIO("\n".join(sample_lines)), delimiter=delim)
            if any(cell.strip() for cell in row)
        ]
        if not rows:
            continue
        widths = Counter(len(row) for row in rows)
        mode_width, mode_count = widths.most_common(1)[0]
        score = mode_width * 2.0 + (mode_count / len(rows)) * mode_width
        if len(rows[0]) == mode_width:
            score += 1.0
        if mode_width == 1:
            score -= 10.0
        if score > best_score:
            best_score = score
            best_delim = delim
    return best_delim


# ══════════════════════════════════════════════════════════════════════════════
# FORMAT DECODERS
# ══════════════════════════════════════════════════════════════════════════════

def _split_frame(df: pd.DataFrame) -> tuple[list[Any], list[list[Any]]]:
    if df.empty:
        return [], []
    values = df.astype(object).where(df.notna(), None).values.tolist()
    return values[0], values[1:]


def _header_width(text: str, delimiter: str) -> int:
    for record in csv.reader(io.StringIO(text), delimiter=delimiter):
        if record:
            return len(record)
    return 0


def _overflow_merger(width: int, delimiter: str, merged: list[list[str]]):
    """on_bad_lines hook: fold extra fields back into the last column.

    An unquoted delimiter inside the last field ("Smith, John payment") is
    the usual cause, so the row is kept instead of dropped.
    """

    def merge(bad_line: list[str]) -> list[str]:
        if width < 1:
            return bad_line
        row = bad_line[: width - 1] + [delimiter.join(bad_line[width - 1 :])]
        merged.append(row)
        return row

    return merge


def _merged_row_warnings(rows: list[list[Any]], merged: list[list[str]], width: int) -> list[str]:
    warnings = []
    start = 0
    for row in merged:
        position = next((i for i in range(start, len(rows)) if rows[i] == row), None)
        if position is None:
            continue
        start = position + 1
        warnings.append(
            f"Row {position + 1} had more than {width} fields; "
            f"extra fields were merged into the last column: {row[-1]!r}"
        )
    return warnings


def _decode_text(content: bytes, suffix: Optional[str]) -> DecodedTable:
    encoding, confidence = _detect_encoding(content)
    text = _read_text_safely(content, encoding)

    delimiter = "\t" if suffix == ".tsv" else _detect_delimiter(text)
    if not text.strip():
        return DecodedTable([], [], detected_encoding=encoding, encoding_confidence=confidence, delimiter=delimiter)

    sep = r"\|" if delimiter == "|" else delimiter
    width = _header_width(text, delimiter)
    merged: list[list[str]] = []
    try:
        df = pd.read_csv(
            io.StringIO(text),
            header=None,
            dtype=str,
            keep_default_na=False,
            on_bad_lines=_overflow_merger(width, delimiter, merged),
            sep=sep,
            engine="python",
        )
    except pd.errors.EmptyDataError:
        df = pd.DataFrame()
    except Exception as exc:
        raise ValueError(f"Could not parse delimited text: {exc}") from exc

    headers, rows = _split_frame(df)
    warnings: list[str] = []
    if confidence and confidence < 0.5:
        warnings.append(f"Low confidence encoding detection ({encoding}, {confidence}); decoded line by line.")
    warnings.extend(_merged_row_warnings(rows, merged, width))
    return DecodedTable(
        headers,
        rows,
        warnings=warnings,
        detected_encoding=encoding,
        encoding_confidence=confidence,
        delimiter=delimiter,
    )


def _decode_excel(content: bytes, suffix: Optional[str]) -> DecodedTable:
    """First sheet only; any other sheets are named in a warning."""
    # .xls requires xlrd; give a clear error if missing.
    if suffix == ".xls":
        try:
            import xlrd  # noqa: F401
        except ImportError:
            raise ImportError(".xls files require xlrd. Run: pip install xlrd")

    try:
        with pd.ExcelFile(io.BytesIO(content)) as xf:
            sheet_names = list(xf.sheet_names)
            if not sheet_names:
                return DecodedTable([], [], sheet_names=[])
            df = xf.parse(sheet_name=0, header=None, dtype=object)
    except ImportError:
        raise
    except Exception as exc:
        raise ValueError(f"Could not open workbook: {exc}") from exc

    warnings: list[str] = []
    if len(sheet_names) > 1:
        warnings.append(
            f"Multiple sheets found ({len(sheet_names)} total); "
            f"used '{sheet_names[0]}'. Ignored: {sheet_names[1:]}"
        )
    headers, rows = _split_frame(df)
    return DecodedTable(headers, rows, warnings=warnings, sheet_name=sheet_names[0], sheet_names=sheet_names)


def decode(content: bytes, kind: str, *, suffix: Optional[str] = None) -> DecodedTable:
    """
    Decode file bytes into a header row plus data rows.

    Raises ValueError when the bytes cannot be read as the given kind and
    ImportError when an optional spreadsheet engine is missing.
    """
    suffix = suffix.lower() if suffix else None
    if kind == KIND_CSV:
        return _decode_text(content, suffix)
    if kind == KIND_EXCEL:
        return _decode_excel(content, suffix)
    raise ValueError(f"Unknown table kind {kind!r}; expected one of {KINDS}")
