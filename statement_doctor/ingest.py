"""
Ingestion orchestrator: one uploaded statement file in, one outcome out.

    route by extension, then MIME type
    decode the first table (loader.decode)
    validate the header row
    detect column roles (column_detector.detect_columns)
    materialize transactions row by row (materializer.materialize)

File-level problems come back as IngestFailure values; ingest() itself only
raises for programming errors. ingest_batch() runs files one after another
and keeps going when one of them fails.
"""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path, PurePath
from typing import Any, Iterable, Optional, Union

from statement_doctor.cells import cell_text, to_cell
from statement_doctor.column_detector import ColumnRoleMap, detect_columns
from statement_doctor.diagnostics import Diagnostics, LoggingDiagnostics
from statement_doctor.errors import (
    IngestError,
    NoDetectableColumns,
    NoHeaders,
    UnreadableFile,
    UnsupportedFormat,
)
from statement_doctor.loader import KIND_CSV, KIND_EXCEL, decode
from statement_doctor.materializer import RowFailure, Transaction, materialize
from statement_doctor.settings import IngestSettings

EXTENSION_KINDS = {
    ".csv": KIND_CSV,
    ".tsv": KIND_CSV,
    ".txt": KIND_CSV,
    ".xlsx": KIND_EXCEL,
    ".xlsm": KIND_EXCEL,
    ".xls": KIND_EXCEL,
}

MIME_KINDS = {
    "text/csv": KIND_CSV,
    "text/plain": KIND_CSV,
    "text/tab-separated-values": KIND_CSV,
    "application/csv": KIND_CSV,
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": KIND_EXCEL,
    "application/vnd.ms-excel.sheet.macroenabled.12": KIND_EXCEL,
    "application/vnd.ms-excel": KIND_EXCEL,
}

SUPPORTED_EXTENSIONS = tuple(EXTENSION_KINDS)


@dataclass(frozen=True)
class SourceFile:
    name: str
    content: bytes
    type: Optional[str] = None

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "SourceFile":
        path = Path(path)
        mime, _ = mimetypes.guess_type(path.name)
        return cls(name=path.name, content=path.read_bytes(), type=mime)

    @property
    def suffix(self) -> str:
        return PurePath(self.name).suffix.lower()


@dataclass
class IngestSuccess:
    source_name: str
    transactions: list[Transaction]
    detected_columns: list[str]
    column_map: ColumnRoleMap
    failures: list[RowFailure] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    ok = True

    def as_dict(self) -> dict[str, Any]:
        return {
            "source_file": self.source_name,
            "status": "ok",
            "transaction_count": len(self.transactions),
            "detected_columns": self.detected_columns,
            "column_map": self.column_map.as_dict(),
            "column_sources": dict(self.column_map.sources),
            "failed_rows": [failure.as_dict() for failure in self.failures],
            "warnings": list(self.warnings),
        }


@dataclass
class IngestFailure:
    source_name: str
    kind: str
    message: str

    ok = False

    @classmethod
    def from_error(cls, source_name: str, exc: IngestError) -> "IngestFailure":
        return cls(source_name=source_name, kind=exc.kind, message=exc.message)

    def as_dict(self) -> dict[str, Any]:
        return {
            "source_file": self.source_name,
            "status": "failed",
            "kind": self.kind,
            "message": self.message,
        }


IngestOutcome = Union[IngestSuccess, IngestFailure]


def resolve_kind(name: str, mime_type: Optional[str] = None) -> Optional[str]:
    """Table kind for a file, or None when neither extension nor MIME type is known."""
    kind = EXTENSION_KINDS.get(PurePath(name or "").suffix.lower())
    if kind is not None:
        return kind
    if mime_type:
        return MIME_KINDS.get(mime_type.split(";")[0].strip().lower())
    return None


def _normalize_headers(raw_headers: list[Any]) -> list[str]:
    return [cell_text(to_cell(header)) for header in raw_headers]


def _run(
    source: SourceFile,
    diagnostics: Diagnostics,
    settings: IngestSettings,
    today: Optional[date],
) -> IngestSuccess:
    kind = resolve_kind(source.name, source.type)
    if kind is None:
        raise UnsupportedFormat(
            f"Unsupported file format: {source.name} "
            f"(expected one of {', '.join(SUPPORTED_EXTENSIONS)})",
            source.name,
        )

    try:
        table = decode(source.content, kind, suffix=source.suffix)
    except (ValueError, ImportError) as exc:
        raise UnreadableFile(f"Could not read {source.name}: {exc}", source.name) from exc
    for warning in table.warnings:
        diagnostics.report("warning", warning, file=source.name)

    headers = _normalize_headers(table.headers)
    if not any(headers):
        raise NoHeaders(f"No header row found in {source.name}", source.name)

    column_map = detect_columns(
        headers,
        table.rows[: settings.sample_size],
        order=settings.date_order,
        sample_size=settings.sample_size,
        thresholds=settings.thresholds,
        diagnostics=diagnostics,
    )
    if column_map.date is None and column_map.amount is None:
        raise NoDetectableColumns(
            f"Could not detect a date or amount column in {source.name} (headers: {headers})",
            source.name,
        )
    diagnostics.report(
        "info",
        "Column roles detected",
        file=source.name,
        columns=column_map.describe(headers),
        sources=dict(column_map.sources),
    )
    if column_map.date is None:
        diagnostics.report("warning", "No date column detected; every row uses today's date", file=source.name)
    if column_map.amount is None:
        diagnostics.report("warning", "No amount column detected; every row has amount 0", file=source.name)

    result = materialize(column_map, headers, table.rows, source.name, settings=settings, today=today)
    for row_number in result.date_fallback_rows:
        diagnostics.report("warning", "Unreadable date; used today's date", file=source.name, row=row_number)
    for row_number in result.amount_fallback_rows:
        diagnostics.report("warning", "Unreadable amount; used 0", file=source.name, row=row_number)
    for failure in result.failures:
        diagnostics.report(
            "warning",
            f"Row {failure.row_number} skipped: {failure.reason}",
            file=source.name,
            row=failure.row_number,
            raw=failure.raw_values,
        )

    return IngestSuccess(
        source_name=source.name,
        transactions=result.transactions,
        detected_columns=headers,
        column_map=column_map,
        failures=result.failures,
        warnings=list(table.warnings),
    )


def ingest(
    source: SourceFile,
    *,
    diagnostics: Diagnostics | None = None,
    settings: IngestSettings | None = None,
    today: Optional[date] = None,
) -> IngestOutcome:
    if diagnostics is None:
        diagnostics = LoggingDiagnostics()
    settings = settings or IngestSettings()

    diagnostics.report("info", f"Processing file: {source.name}", file=source.name, size=len(source.content))
    try:
        success = _run(source, diagnostics, settings, today)
    except IngestError as exc:
        diagnostics.report("error", exc.message, file=source.name, kind=exc.kind)
        return IngestFailure.from_error(source.name, exc)

    diagnostics.report(
        "success",
        f"Imported {len(success.transactions)} transactions from {source.name}",
        file=source.name,
        transactions=len(success.transactions),
        failed_rows=len(success.failures),
    )
    return success


def ingest_batch(
    sources: Iterable[SourceFile],
    *,
    diagnostics: Diagnostics | None = None,
    settings: IngestSettings | None = None,
    today: Optional[date] = None,
) -> list[IngestOutcome]:
    """Outcomes in submission order; one failed file never stops the rest."""
    if diagnostics is None:
        diagnostics = LoggingDiagnostics()
    settings = settings or IngestSettings()
    return [ingest(source, diagnostics=diagnostics, settings=settings, today=today) for source in sources]


def collect_transactions(outcomes: Iterable[IngestOutcome]) -> list[Transaction]:
    """Every transaction from the successful outcomes, in order."""
    transactions: list[Transaction] = []
    for outcome in outcomes:
        if isinstance(outcome, IngestSuccess):
            transactions.extend(outcome.transactions)
    return transactions
