"""Versioned payload contracts for statement-doctor JSON output."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable

CONTRACT_VERSIONS = {
    "statement_doctor.ingest": "1.0.0",
    "statement_doctor.summary": "1.0.0",
    "statement_doctor.export": "1.0.0",
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def build_contract(name: str) -> dict[str, str]:
    version = CONTRACT_VERSIONS[name]
    return {"name": name, "version": version}


def build_run_summary(
    *,
    command: str,
    inputs: Iterable[str],
    status: str = "ok",
    output_path: str | None = None,
    metrics: dict[str, Any] | None = None,
    warnings: list[str] | None = None,
) -> dict[str, Any]:
    return {
        "tool": "statement-doctor",
        "command": command,
        "status": status,
        "generated_at": utc_now_iso(),
        "input_files": list(inputs),
        "output_file": output_path,
        "warnings_count": len(warnings or []),
        "warnings": list(warnings or []),
        "metrics": metrics or {},
    }


def run_status(ok_count: int, failed_count: int) -> str:
    """"ok" when nothing failed, "failed" when nothing succeeded, else "partial"."""
    if failed_count == 0:
        return "ok"
    if ok_count == 0:
        return "failed"
    return "partial"
