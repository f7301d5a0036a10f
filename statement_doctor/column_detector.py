"""
Column role detection for bank statement exports.

Works out which column holds the transaction date, amount, description and
account without a user-supplied mapping. Three tiers run in order, each one
only filling roles the previous tier left open:

    content   sample up to ``sample_size`` rows per column, check the value
              shapes, rank candidates with score_column()
    header    anchored header patterns (HEADER_PATTERNS), left to right
    guess     loose header substrings (GUESS_PATTERNS); only runs when fewer
              than two roles are assigned

Date and amount never land on the same column.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

from statement_doctor.amounts import (
    is_likely_amount_column,
    is_likely_description_column,
    looks_like_amount,
    looks_like_description,
)
from statement_doctor.cells import column_values
from statement_doctor.dates import DEFAULT_DATE_ORDER, is_likely_date_column, looks_like_date
from statement_doctor.diagnostics import Diagnostics

ROLES = ("date", "amount", "description", "account")
CONTENT_ROLES = ("date", "amount", "description")

TIER_CONTENT = "content"
TIER_HEADER = "header"
TIER_GUESS = "guess"

SCORING_WEIGHTS = {
    "header_keyword": 3.0,
    "sample_match": 1.0,
    "sample_cap": 10.0,
}

ROLE_KEYWORDS = {
    "date": ("date", "posted", "time"),
    "amount": ("amount", "debit", "credit", "value", "total", "sum"),
    "description": (
        "description", "merchant", "payee", "memo", "details", "narrative",
        "particulars", "reference", "vendor",
    ),
    "account": ("account", "acc", "bank", "card", "source"),
}


def _patterns(*sources: str) -> tuple["re.Pattern[str]", ...]:
    return tuple(re.compile(source, re.IGNORECASE) for source in sources)


HEADER_PATTERNS = {
    "date": _patterns(
        r"^(transaction\s*)?date$",
        r"^(posting\s*|posted\s*)?date$",
        r"^effective\s*date$",
        r"^value\s*date$",
        r"^settlement\s*date$",
        r"^process\s*date$",
        r"^date$",
        r"^time$",
        r"^timestamp$",
        r"^when$",
        r"^dated$",
    ),
    "amount": _patterns(
        r"^amount$",
        r"^value$",
        r"^sum$",
        r"^total$",
        r"^credit$",
        r"^debit$",
        r"^transaction\s*amount$",
        r"^net\s*amount$",
        r"^gross\s*amount$",
        r"^balance$",
        r"^money$",
        r"^\$$",
        r"^aud$",
        r"^usd$",
        r"^gbp$",
        r"^eur$",
    ),
    "description": _patterns(
        r"^description$",
        r"^memo$",
        r"^details$",
        r"^transaction\s*details$",
        r"^reference$",
        r"^particulars$",
        r"^narrative$",
        r"^merchant$",
        r"^payee$",
        r"^vendor$",
        r"^supplier$",
        r"^comment$",
        r"^note$",
        r"^remarks$",
    ),
    "account": _patterns(
        r"^account$",
        r"^acc\s*no$",
        r"^account\s*number$",
        r"^account\s*name$",
        r"^bank$",
        r"^institution$",
        r"^source$",
        r"^from$",
        r"^to$",
    ),
}

GUESS_PATTERNS = {
    "date": re.compile(r"date|time|when|posted", re.IGNORECASE),
    "amount": re.compile(r"amount|total|value|sum|\$|money|credit|debit", re.IGNORECASE),
    "description": re.compile(r"desc|memo|detail|merchant|payee|reference|particular", re.IGNORECASE),
    "account": re.compile(r"account|acc|bank|source|from", re.IGNORECASE),
}


@dataclass(frozen=True)
class ColumnRoleMap:
    date: Optional[int] = None
    amount: Optional[int] = None
    description: Optional[int] = None
    account: Optional[int] = None
    sources: dict[str, str] = field(default_factory=dict, compare=False, hash=False)

    def get(self, role: str) -> Optional[int]:
        return getattr(self, role)

    def assigned_roles(self) -> list[str]:
        return [role for role in ROLES if self.get(role) is not None]

    def as_dict(self) -> dict[str, Optional[int]]:
        return {role: self.get(role) for role in ROLES}

    def describe(self, headers: Sequence[str]) -> dict[str, Optional[str]]:
        """Role -> header text, for reports."""
        described: dict[str, Optional[str]] = {}
        for role in ROLES:
            index = self.get(role)
            described[role] = headers[index] if index is not None and index < len(headers) else None
        return described


def _header_text(header: Any) -> str:
    return " ".join(str(header or "").strip().lower().split())


def header_keyword_hit(role: str, header: Any) -> bool:
    lowered = _header_text(header)
    return any(keyword in lowered for keyword in ROLE_KEYWORDS.get(role, ()))


def _sample_hit(role: str, value: Any, order: str) -> bool:
    if role == "date":
        return looks_like_date(value, order)
    if role == "amount":
        return looks_like_amount(value)
    if role == "description":
        return looks_like_description(value, order)
    return False


def score_column(
    role: str,
    header: Any,
    values: Sequence[Any],
    order: str = DEFAULT_DATE_ORDER,
    weights: dict[str, float] | None = None,
) -> float:
    """Confidence that a column plays ``role``: header bonus plus capped sample matches."""
    weights = weights or SCORING_WEIGHTS
    score = 0.0
    if header_keyword_hit(role, header):
        score += weights["header_keyword"]
    matches = sum(1 for value in values if _sample_hit(role, value, order))
    score += min(matches * weights["sample_match"], weights["sample_cap"])
    return score


def _content_flags(
    values: Sequence[Any],
    order: str,
    sample_size: int,
    thresholds: dict[str, float],
) -> dict[str, bool]:
    return {
        "date": is_likely_date_column(values, order=order, sample_size=sample_size, threshold=thresholds["date"]),
        "amount": is_likely_amount_column(values, sample_size=sample_size, threshold=thresholds["amount"]),
        "description": is_likely_description_column(
            values, sample_size=sample_size, threshold=thresholds["description"], order=order
        ),
    }


DEFAULT_THRESHOLDS = {"date": 0.7, "amount": 0.8, "description": 0.6}


def detect_columns(
    headers: Sequence[Any],
    sample_rows: Sequence[Sequence[Any]] = (),
    *,
    order: str = DEFAULT_DATE_ORDER,
    sample_size: int = 10,
    thresholds: dict[str, float] | None = None,
    diagnostics: Diagnostics | None = None,
) -> ColumnRoleMap:
    thresholds = {**DEFAULT_THRESHOLDS, **(thresholds or {})}
    headers = list(headers)
    rows = list(sample_rows)[:sample_size]

    assignments: dict[str, int] = {}
    sources: dict[str, str] = {}

    def claim(role: str, index: int, tier: str, **context: Any) -> None:
        assignments[role] = index
        sources[role] = tier
        if diagnostics is not None:
            diagnostics.report(
                "info",
                f"Detected {role} column by {tier}",
                header=headers[index] if index < len(headers) else None,
                index=index,
                **context,
            )

    # Tier 1: content
    if rows:
        columns = {index: column_values(rows, index) for index in range(len(headers))}
        flags = {
            index: _content_flags(values, order, sample_size, thresholds)
            for index, values in columns.items()
        }
        taken: set[int] = set()
        for role in CONTENT_ROLES:
            best_idx = None
            best_score = float("-inf")
            for index in range(len(headers)):
                if index in taken or not flags[index][role]:
                    continue
                score = score_column(role, headers[index], columns[index], order=order)
                # strict comparison keeps the leftmost column on ties
                if score > best_score:
                    best_idx = index
                    best_score = score
            if best_idx is not None:
                claim(role, best_idx, TIER_CONTENT, confidence=best_score)
                taken.add(best_idx)

    # Tier 2: header patterns
    for index, header in enumerate(headers):
        if index in assignments.values():
            continue
        cleaned = _header_text(header)
        for role in ROLES:
            if role in assignments:
                continue
            pattern = next((p for p in HEADER_PATTERNS[role] if p.search(cleaned)), None)
            if pattern is not None:
                claim(role, index, TIER_HEADER, pattern=pattern.pattern)
                break

    # Tier 3: loose guesses
    if len(assignments) < 2:
        guessed: dict[str, int] = {}
        for role in ROLES:
            if role in assignments:
                continue
            for index, header in enumerate(headers):
                if not GUESS_PATTERNS[role].search(str(header or "")):
                    continue
                exclusive = {"date": "amount", "amount": "date"}.get(role)
                if exclusive is not None and assignments.get(exclusive, guessed.get(exclusive)) == index:
                    continue
                guessed[role] = index
                break
        for role, index in guessed.items():
            claim(role, index, TIER_GUESS)

    return ColumnRoleMap(
        date=assignments.get("date"),
        amount=assignments.get("amount"),
        description=assignments.get("description"),
        account=assignments.get("account"),
        sources=sources,
    )
