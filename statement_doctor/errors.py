"""File-level ingestion failures. Row and cell problems never raise these."""

from __future__ import annotations


class IngestError(Exception):
    kind = "ingest_error"

    def __init__(self, message: str, source_name: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.source_name = source_name


class UnsupportedFormat(IngestError):
    kind = "unsupported_format"


class UnreadableFile(IngestError):
    kind = "unreadable_file"


class NoHeaders(IngestError):
    kind = "no_headers"


class NoDetectableColumns(IngestError):
    kind = "no_detectable_columns"
