from __future__ import annotations

import argparse
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any

from statement_doctor import __version__ as TOOL_VERSION
from statement_doctor.contracts import build_contract, build_run_summary, run_status
from statement_doctor.diagnostics import LoggingDiagnostics
from statement_doctor.export import export_transactions
from statement_doctor.ingest import (
    IngestFailure,
    IngestOutcome,
    IngestSuccess,
    SourceFile,
    collect_transactions,
    ingest_batch,
)
from statement_doctor.logging_setup import configure_logging
from statement_doctor.settings import DEFAULT_CONFIG_NAME, IngestSettings, load_settings, write_default_config
from statement_doctor.summary import summarize_accounts

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_PARSE_FAILED = 2
EXIT_PARTIAL = 6


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class StatementDoctorArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True)


def maybe_emit_json_stdout(payload: Any, enabled: bool) -> None:
    if enabled:
        print(json_dumps(payload))


def add_ingest_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("inputs", nargs="+", help="Statement files (.csv .tsv .txt .xlsx .xlsm .xls)")
    parser.add_argument("--config", help=f"Settings file (default: ./{DEFAULT_CONFIG_NAME} when present)")
    parser.add_argument("--date-order", choices=["month_first", "day_first"], help="How to read ambiguous numeric dates")
    parser.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    parser.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    parser.add_argument("-v", "--verbose", action="store_true", help="More human logs")


def build_parser() -> argparse.ArgumentParser:
    parser = StatementDoctorArgumentParser(
        prog="statement-doctor",
        description="Normalize bank statement exports into one transaction list.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    ingest = subparsers.add_parser("ingest", help="Detect columns and extract transactions.")
    add_ingest_arguments(ingest)
    ingest.add_argument("--transactions", action="store_true", help="Include every transaction in the JSON payload")
    ingest.add_argument("--export", dest="export_path", help="Also write the transactions workbook here")

    summary = subparsers.add_parser("summary", help="Per-account income, expenses and net.")
    add_ingest_arguments(summary)

    export = subparsers.add_parser("export", help="Write the normalized transactions workbook.")
    add_ingest_arguments(export)
    export.add_argument("-o", "--output", required=True, help="Workbook output path (.xlsx)")
    export.add_argument("--force", action="store_true", help="Overwrite an existing output file")

    config = subparsers.add_parser("config", help="Generate or inspect configuration.")
    config_subparsers = config.add_subparsers(dest="config_command", required=True)
    config_init = config_subparsers.add_parser("init", help="Write a starter config file.")
    config_init.add_argument("--path", default=DEFAULT_CONFIG_NAME, help="Config output path")

    subparsers.add_parser("version", help="Print version")
    return parser


def resolve_settings(args: argparse.Namespace) -> IngestSettings:
    try:
        settings = load_settings(args.config)
        if args.date_order:
            settings = replace(settings, date_order=args.date_order)
    except ValueError as exc:
        raise CliError(str(exc), EXIT_COMMAND_ERROR) from exc
    return settings


def read_sources(inputs: list[str]) -> list[SourceFile]:
    sources = []
    for raw in inputs:
        path = Path(raw)
        if not path.is_file():
            raise CliError(f"File not found: {path}", EXIT_COMMAND_ERROR)
        sources.append(SourceFile.from_path(path))
    return sources


def run_ingestion(args: argparse.Namespace) -> tuple[list[IngestOutcome], IngestSettings]:
    if args.verbose:
        configure_logging("DEBUG")
    elif args.quiet:
        configure_logging("ERROR")
    else:
        configure_logging()
    settings = resolve_settings(args)
    sources = read_sources(args.inputs)
    return ingest_batch(sources, diagnostics=LoggingDiagnostics(), settings=settings), settings


def exit_code_for_outcomes(outcomes: list[IngestOutcome]) -> int:
    failed = sum(1 for outcome in outcomes if not outcome.ok)
    if failed == 0:
        return EXIT_SUCCESS
    if failed == len(outcomes):
        return EXIT_PARSE_FAILED
    return EXIT_PARTIAL


def outcome_metrics(outcomes: list[IngestOutcome]) -> dict[str, int]:
    successes = [outcome for outcome in outcomes if isinstance(outcome, IngestSuccess)]
    return {
        "files": len(outcomes),
        "files_ok": len(successes),
        "files_failed": len(outcomes) - len(successes),
        "transactions": sum(len(outcome.transactions) for outcome in successes),
        "failed_rows": sum(len(outcome.failures) for outcome in successes),
    }


def outcome_warnings(outcomes: list[IngestOutcome]) -> list[str]:
    warnings = []
    for outcome in outcomes:
        if isinstance(outcome, IngestSuccess):
            warnings.extend(f"{outcome.source_name}: {warning}" for warning in outcome.warnings)
    return warnings


def render_outcome_text(outcome: IngestOutcome) -> str:
    if isinstance(outcome, IngestFailure):
        return f"{outcome.source_name}: FAILED [{outcome.kind}] {outcome.message}"
    columns = outcome.column_map.describe(outcome.detected_columns)
    mapped = ", ".join(f"{role}={header!r}" for role, header in columns.items() if header is not None)
    lines = [f"{outcome.source_name}: {len(outcome.transactions)} transactions ({mapped})"]
    for failure in outcome.failures:
        lines.append(f"  row {failure.row_number} skipped: {failure.reason}")
    for warning in outcome.warnings:
        lines.append(f"  warning: {warning}")
    return "\n".join(lines)


def build_ingest_payload(
    outcomes: list[IngestOutcome],
    settings: IngestSettings,
    *,
    include_transactions: bool = False,
    output_path: str | None = None,
) -> dict[str, Any]:
    metrics = outcome_metrics(outcomes)
    payload = {
        "contract": build_contract("statement_doctor.ingest"),
        "run_summary": build_run_summary(
            command="ingest",
            inputs=[outcome.source_name for outcome in outcomes],
            status=run_status(metrics["files_ok"], metrics["files_failed"]),
            output_path=output_path,
            metrics=metrics,
            warnings=outcome_warnings(outcomes),
        ),
        "settings": settings.as_dict(),
        "files": [outcome.as_dict() for outcome in outcomes],
    }
    if include_transactions:
        payload["transactions"] = [txn.as_dict() for txn in collect_transactions(outcomes)]
    return payload


def run_ingest(args: argparse.Namespace) -> int:
    outcomes, settings = run_ingestion(args)
    output_path = None
    if args.export_path:
        export_transactions(collect_transactions(outcomes), args.export_path)
        output_path = args.export_path
    if args.json:
        maybe_emit_json_stdout(
            build_ingest_payload(outcomes, settings, include_transactions=args.transactions, output_path=output_path),
            True,
        )
    else:
        for outcome in outcomes:
            emit_human(render_outcome_text(outcome), quiet=args.quiet)
        if output_path:
            emit_human(f"Workbook written: {output_path}", quiet=args.quiet)
    return exit_code_for_outcomes(outcomes)


def run_summary(args: argparse.Namespace) -> int:
    outcomes, _settings = run_ingestion(args)
    summaries = summarize_accounts(collect_transactions(outcomes))
    metrics = outcome_metrics(outcomes)
    if args.json:
        maybe_emit_json_stdout(
            {
                "contract": build_contract("statement_doctor.summary"),
                "run_summary": build_run_summary(
                    command="summary",
                    inputs=[outcome.source_name for outcome in outcomes],
                    status=run_status(metrics["files_ok"], metrics["files_failed"]),
                    metrics=metrics,
                    warnings=outcome_warnings(outcomes),
                ),
                "accounts": [summary.as_dict() for summary in summaries],
            },
            True,
        )
    else:
        for outcome in outcomes:
            if isinstance(outcome, IngestFailure):
                emit_human(render_outcome_text(outcome), quiet=args.quiet)
        if not summaries:
            print("No transactions.")
        for summary in summaries:
            print(
                f"{summary.account}: income {summary.total_income:.2f}, "
                f"expenses {summary.total_expenses:.2f}, net {summary.net:.2f} "
                f"({summary.transaction_count} transactions)"
            )
    return exit_code_for_outcomes(outcomes)


def run_export(args: argparse.Namespace) -> int:
    output_path = Path(args.output)
    if output_path.exists() and not args.force:
        raise CliError(f"Refusing to overwrite existing output: {output_path}", EXIT_COMMAND_ERROR)
    outcomes, _settings = run_ingestion(args)
    transactions = collect_transactions(outcomes)
    export_transactions(transactions, output_path)
    metrics = outcome_metrics(outcomes)
    if args.json:
        maybe_emit_json_stdout(
            {
                "contract": build_contract("statement_doctor.export"),
                "run_summary": build_run_summary(
                    command="export",
                    inputs=[outcome.source_name for outcome in outcomes],
                    status=run_status(metrics["files_ok"], metrics["files_failed"]),
                    output_path=str(output_path),
                    metrics=metrics,
                    warnings=outcome_warnings(outcomes),
                ),
                "files": [outcome.as_dict() for outcome in outcomes],
            },
            True,
        )
    else:
        for outcome in outcomes:
            emit_human(render_outcome_text(outcome), quiet=args.quiet)
        emit_human(f"Workbook written: {output_path} ({len(transactions)} transactions)", quiet=args.quiet)
    return exit_code_for_outcomes(outcomes)


def run_config_init(args: argparse.Namespace) -> int:
    try:
        config_path = write_default_config(args.path)
    except FileExistsError as exc:
        eprint(str(exc))
        return EXIT_COMMAND_ERROR
    emit_human(f"Config written: {config_path}")
    return EXIT_SUCCESS


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        if args.command == "ingest":
            return run_ingest(args)
        if args.command == "summary":
            return run_summary(args)
        if args.command == "export":
            return run_export(args)
        if args.command == "config":
            if args.config_command == "init":
                return run_config_init(args)
        if args.command == "version":
            return run_version()
        raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
    except CliError as exc:
        eprint(str(exc))
        return exc.code


if __name__ == "__main__":
    raise SystemExit(main())
