#!/usr/bin/env python3
from __future__ import annotations

import sys
from dataclasses import replace
from pathlib import Path

import pandas as pd
import streamlit as st

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from statement_doctor.diagnostics import LEVELS, CapturingDiagnostics, LoggingDiagnostics  # noqa: E402
from statement_doctor.export import export_transactions, import_transactions  # noqa: E402
from statement_doctor.ingest import (  # noqa: E402
    SUPPORTED_EXTENSIONS,
    IngestFailure,
    SourceFile,
    collect_transactions,
    ingest_batch,
)
from statement_doctor.logging_setup import configure_logging  # noqa: E402
from statement_doctor.settings import load_settings  # noqa: E402
from statement_doctor.summary import (  # noqa: E402
    ALL_ACCOUNTS,
    SORT_FIELDS,
    accounts,
    filter_transactions,
    sort_transactions,
    summarize_accounts,
)

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def ensure_state() -> None:
    st.session_state.setdefault("transactions", [])
    st.session_state.setdefault("outcomes", [])
    st.session_state.setdefault("diagnostics", CapturingDiagnostics(capacity=100, forward=LoggingDiagnostics()))


def diagnostics() -> CapturingDiagnostics:
    return st.session_state["diagnostics"]


def transactions_frame(transactions) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "id": txn.id,
                "Date": txn.date,
                "Amount": float(txn.amount),
                "Description": txn.description,
                "Account": txn.account,
                "Source File": txn.source_file,
            }
            for txn in transactions
        ],
        columns=["id", "Date", "Amount", "Description", "Account", "Source File"],
    )


def run_ingest(uploads, date_order: str) -> None:
    settings = replace(load_settings(), date_order=date_order)
    sources = [SourceFile(name=upload.name, content=upload.getvalue(), type=upload.type) for upload in uploads]
    outcomes = ingest_batch(sources, diagnostics=diagnostics(), settings=settings)
    st.session_state["outcomes"] = outcomes
    st.session_state["transactions"] = st.session_state["transactions"] + collect_transactions(outcomes)


def render_upload() -> None:
    st.subheader("Upload statements")
    uploads = st.file_uploader(
        "Statement files",
        type=[ext.lstrip(".") for ext in SUPPORTED_EXTENSIONS],
        accept_multiple_files=True,
        key="uploads_input",
    )
    date_order = st.radio(
        "Ambiguous dates like 03/04/2024 are",
        options=["month_first", "day_first"],
        format_func=lambda value: "month first (US)" if value == "month_first" else "day first",
        horizontal=True,
    )
    if st.button("Process files", type="primary", disabled=not uploads):
        run_ingest(uploads, date_order)

    for outcome in st.session_state["outcomes"]:
        if isinstance(outcome, IngestFailure):
            st.error(f"{outcome.source_name}: {outcome.message}")
            continue
        st.success(f"{outcome.source_name}: {len(outcome.transactions)} transactions")
        if outcome.failures:
            with st.expander(f"{len(outcome.failures)} rows skipped"):
                st.json([failure.as_dict() for failure in outcome.failures])
        for warning in outcome.warnings:
            st.warning(warning)


def render_import() -> None:
    workbook = st.file_uploader("Restore an exported workbook", type=["xlsx"], key="import_input")
    if workbook is not None and st.button("Import workbook"):
        try:
            restored = import_transactions(workbook.getvalue())
        except ValueError as exc:
            diagnostics().report("error", f"Import failed: {exc}", file=workbook.name)
            st.error(str(exc))
            return
        st.session_state["transactions"] = st.session_state["transactions"] + restored
        diagnostics().report("success", f"Imported {len(restored)} transactions from {workbook.name}")


def render_summaries(transactions) -> None:
    summaries = summarize_accounts(transactions)
    if not summaries:
        return
    st.subheader("Accounts")
    columns = st.columns(min(len(summaries), 4))
    for idx, summary in enumerate(summaries):
        with columns[idx % len(columns)]:
            st.metric(summary.account, f"{summary.net:,.2f}")
            st.caption(
                f"Income {summary.total_income:,.2f} · Expenses {summary.total_expenses:,.2f} · "
                f"{summary.transaction_count} transactions"
            )


def render_table(transactions) -> None:
    st.subheader("Transactions")
    left, middle, right = st.columns([3, 2, 2])
    search = left.text_input("Search", placeholder="description, account or amount")
    account = middle.selectbox("Account", options=[ALL_ACCOUNTS, *accounts(transactions)])
    sort_field = right.selectbox("Sort by", options=list(SORT_FIELDS))
    direction = right.radio("Direction", options=["desc", "asc"], horizontal=True, label_visibility="collapsed")

    visible = sort_transactions(filter_transactions(transactions, search, account), sort_field, direction)
    st.caption(f"{len(visible)} of {len(transactions)} transactions")
    st.dataframe(transactions_frame(visible).drop(columns=["id"]), hide_index=True, width="stretch")

    by_label = {f"{txn.date} {txn.description} {txn.amount} [{txn.id[:8]}]": txn.id for txn in visible}
    doomed = st.multiselect("Delete transactions", options=list(by_label))
    if doomed and st.button("Delete selected"):
        doomed_ids = {by_label[label] for label in doomed}
        st.session_state["transactions"] = [txn for txn in transactions if txn.id not in doomed_ids]
        diagnostics().report("info", f"Deleted {len(doomed_ids)} transactions")
        st.rerun()

    st.download_button(
        "Export workbook",
        data=export_transactions(transactions),
        file_name="transactions.xlsx",
        mime=XLSX_MIME,
    )


def render_log_panel() -> None:
    with st.expander(f"Processing log ({len(diagnostics())})"):
        level = st.selectbox("Level", options=["all", *LEVELS], key="log_level")
        entries = diagnostics().filter(level)
        for entry in reversed(entries):
            st.text(f"[{entry.timestamp:%H:%M:%S}] [{entry.level.upper()}] {entry.message}")
        left, right = st.columns(2)
        if left.button("Clear log"):
            diagnostics().clear()
            st.rerun()
        right.download_button(
            "Export log",
            data=diagnostics().export_text(entries),
            file_name="statement-doctor-log.txt",
            mime="text/plain",
        )


def main() -> None:
    configure_logging()
    st.set_page_config(page_title="statement-doctor", layout="wide")
    ensure_state()
    st.title("statement-doctor")

    render_upload()
    render_import()

    transactions = st.session_state["transactions"]
    if not transactions:
        st.info("Supported here: " + " ".join(SUPPORTED_EXTENSIONS))
    else:
        render_summaries(transactions)
        render_table(transactions)
        if st.button("Clear all transactions"):
            st.session_state["transactions"] = []
            st.session_state["outcomes"] = []
            st.rerun()
    render_log_panel()


if __name__ == "__main__":
    main()
