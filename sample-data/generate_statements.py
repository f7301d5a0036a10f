#!/usr/bin/env python3
"""
Generates a small set of bank statement exports for trying statement-doctor.

Run from the repo root:
    python sample-data/generate_statements.py

Files written next to this script:
  everyday_account.csv
    - ISO dates, signed amounts, an "Account" column
    - one row with an unreadable date ("pending"), one with "n/a" as amount
    - an entirely empty row
  credit_card.csv
    - semicolon delimited, latin-1 encoded
    - headers that match no keyword ("Booked", "Value", "Who")
    - accounting-style negatives "(19.99)" and currency symbols
  savings.xlsx
    - native Excel dates, Excel serials and text dates in one column
    - a second sheet that gets ignored with a warning
  notes.csv
    - free text only; fails with no_detectable_columns
"""

from datetime import datetime
from pathlib import Path

import openpyxl

HERE = Path(__file__).parent

# ── everyday_account.csv ─────────────────────────────────────────────────────
everyday = [
    "Date,Amount,Description,Account",
    "2024-01-15,-42.50,Woolworths Metro,Everyday",
    '2024-01-16,"1,250.00",Salary ACME Pty Ltd,Everyday',
    "pending,-8.40,Coffee Shop Sydney,Everyday",
    ",,,",
    "2024-01-18,n/a,Card verification,Everyday",
    "2024-01-19,-120.00,Electricity bill,Everyday",
]
(HERE / "everyday_account.csv").write_text("\n".join(everyday) + "\n", encoding="utf-8")

# ── credit_card.csv ──────────────────────────────────────────────────────────
card = [
    "Booked;Value;Who",
    "15/01/2024;(19.99);Netflix Subscription",
    "17/01/2024;£45.00;Café Crème Paris",
    "20/01/2024;-$64.10;Shell Petrol 42",
    "22/01/2024;$15.00;Refund Amazon Marketplace",
]
(HERE / "credit_card.csv").write_bytes(("\n".join(card) + "\n").encode("latin-1"))

# ── savings.xlsx ─────────────────────────────────────────────────────────────
wb = openpyxl.Workbook()
ws = wb.active
ws.title = "Savings"
ws.append(["Transaction Date", "Amount", "Details"])
ws.append([datetime(2024, 1, 31), 3.21, "Interest"])
ws.append([45337, 500, "Transfer from Everyday"])
ws.append(["Mar 15, 2024", "-200.00", "Transfer to Everyday"])
ws.column_dimensions["A"].width = 18
ws.column_dimensions["C"].width = 28

notes_ws = wb.create_sheet("Notes")
notes_ws.append(["Exported from online banking"])
wb.save(HERE / "savings.xlsx")

# ── notes.csv ────────────────────────────────────────────────────────────────
(HERE / "notes.csv").write_text(
    "Notes\nCalled the bank about the card\nRemember to pay rent\n",
    encoding="utf-8",
)

print(f"Written: {', '.join(p.name for p in sorted(HERE.glob('*.*')) if p.suffix != '.py')}")
