from __future__ import annotations

import unittest
from unittest import mock

from statement_doctor import column_detector
from statement_doctor.column_detector import (
    SCORING_WEIGHTS,
    TIER_CONTENT,
    TIER_GUESS,
    TIER_HEADER,
    ColumnRoleMap,
    detect_columns,
    score_column,
)
from statement_doctor.diagnostics import CapturingDiagnostics

CARD_HEADERS = ["Posting Date", "Transaction Amount", "Merchant", "Card"]
CARD_ROWS = [
    ["2024-01-15", "-42.50", "Woolworths Metro", "****1234"],
    ["2024-01-16", "1,250.00", "Salary ACME Pty Ltd", "****1234"],
    ["2024-01-18", "(19.99)", "Netflix Subscription", "****1234"],
    ["2024-01-20", "-8.40", "Coffee Shop Sydney", "****1234"],
]


class ContentTierTests(unittest.TestCase):
    def test_card_statement_roles_come_from_content(self):
        role_map = detect_columns(CARD_HEADERS, CARD_ROWS)

        self.assertEqual((role_map.date, role_map.amount, role_map.description), (0, 1, 2))
        self.assertEqual(role_map.sources["date"], TIER_CONTENT)
        self.assertEqual(role_map.sources["amount"], TIER_CONTENT)
        self.assertEqual(role_map.sources["description"], TIER_CONTENT)
        self.assertIsNone(role_map.account)

    def test_card_statement_without_any_header_patterns(self):
        empty_patterns = {role: () for role in column_detector.HEADER_PATTERNS}
        with mock.patch.dict(column_detector.HEADER_PATTERNS, empty_patterns):
            role_map = detect_columns(CARD_HEADERS, CARD_ROWS)

        self.assertEqual((role_map.date, role_map.amount, role_map.description), (0, 1, 2))

    def test_content_ignores_misleading_headers(self):
        headers = ["Amount", "Date", "Notes"]
        rows = [
            ["Woolworths Metro", "2024-01-15", "-42.50"],
            ["Coffee Shop Sydney", "2024-01-16", "-8.40"],
            ["Salary ACME Pty Ltd", "2024-01-17", "2,500.00"],
        ]
        role_map = detect_columns(headers, rows)

        self.assertEqual(role_map.as_dict(), {"date": 1, "amount": 2, "description": 0, "account": None})

    def test_two_digit_year_dates_are_detected_from_content(self):
        headers = ["Dt", "Amt", "Narr"]
        rows = [
            ["15/01/24", "-42.50", "Woolworths Metro"],
            ["16/01/24", "-8.40", "Coffee Shop Sydney"],
            ["18/01/24", "1,250.00", "Salary ACME Pty Ltd"],
        ]
        role_map = detect_columns(headers, rows)

        self.assertEqual((role_map.date, role_map.amount, role_map.description), (0, 1, 2))
        self.assertEqual(role_map.sources["date"], TIER_CONTENT)

    def test_header_keyword_breaks_ties_between_date_columns(self):
        headers = ["Booked", "Value Date", "Amount", "Details"]
        rows = [
            ["2024-01-15", "2024-01-16", "10.00", "Transfer from savings"],
            ["2024-01-17", "2024-01-18", "-5.00", "Coffee Shop Sydney"],
            ["2024-01-19", "2024-01-20", "-7.25", "Bakery on Main St"],
        ]
        self.assertEqual(detect_columns(headers, rows).date, 1)

    def test_leftmost_column_wins_an_exact_tie(self):
        headers = ["Opened", "Booked", "Amount"]
        rows = [["2024-01-15", "2024-01-16", "1.00"], ["2024-01-17", "2024-01-18", "2.00"]]
        self.assertEqual(detect_columns(headers, rows).date, 0)

    def test_thresholds_are_configurable(self):
        headers = ["When", "Amount"]
        rows = [["2024-01-15", "1"], ["soon", "2"], ["later", "3"]]
        self.assertEqual(detect_columns(headers, rows).sources["date"], TIER_HEADER)
        role_map = detect_columns(headers, rows, thresholds={"date": 0.3})
        self.assertEqual(role_map.date, 0)
        self.assertEqual(role_map.sources["date"], TIER_CONTENT)


class HeaderAndGuessTierTests(unittest.TestCase):
    def test_header_tier_fills_every_role_without_samples(self):
        role_map = detect_columns(["Date", "Amount", "Description", "Account"])

        self.assertEqual(role_map.as_dict(), {"date": 0, "amount": 1, "description": 2, "account": 3})
        self.assertTrue(all(source == TIER_HEADER for source in role_map.sources.values()))

    def test_header_tier_adds_account_after_content(self):
        headers = ["Date", "Amount", "Description", "Bank"]
        rows = [
            ["2024-01-15", "-42.50", "Woolworths Metro", "ANZ"],
            ["2024-01-16", "-8.40", "Coffee Shop Sydney", "ANZ"],
        ]
        role_map = detect_columns(headers, rows)

        self.assertEqual(role_map.account, 3)
        self.assertEqual(role_map.sources["account"], TIER_HEADER)

    def test_header_matching_is_anchored_and_case_insensitive(self):
        role_map = detect_columns(["  POSTING   DATE ", "Balance", "Payee"])
        self.assertEqual((role_map.date, role_map.amount, role_map.description), (0, 1, 2))
        self.assertEqual(detect_columns(["Date of birth"]).sources["date"], TIER_GUESS)

    def test_claimed_header_is_not_reused_by_header_tier(self):
        headers = ["When", "Date"]
        rows = [["2024-01-15", "n/a"], ["2024-01-16", "n/a"], ["2024-01-17", "n/a"]]
        role_map = detect_columns(headers, rows)

        self.assertEqual(role_map.date, 0)
        self.assertEqual(role_map.sources["date"], TIER_CONTENT)
        self.assertNotIn(1, [index for index in role_map.as_dict().values() if index is not None])

    def test_guess_tier_uses_loose_substrings(self):
        role_map = detect_columns(["Txn Posted On", "Money Out", "Merchant Name"])

        self.assertEqual(role_map.date, 0)
        self.assertEqual(role_map.amount, 1)
        self.assertEqual(role_map.description, 2)
        self.assertEqual(role_map.sources["date"], TIER_GUESS)

    def test_guess_never_puts_date_and_amount_on_one_column(self):
        role_map = detect_columns(["Posted Amount", "Notes"])

        self.assertEqual(role_map.date, 0)
        self.assertIsNone(role_map.amount)

    def test_guess_tier_skipped_once_two_roles_are_assigned(self):
        role_map = detect_columns(["Date", "Amount", "Memo Line"])

        self.assertIsNone(role_map.description)

    def test_free_text_only_yields_no_date_or_amount(self):
        role_map = detect_columns(["Notes"], [["hello there"], ["general remarks"]])

        self.assertIsNone(role_map.date)
        self.assertIsNone(role_map.amount)


class ScoringAndDeterminismTests(unittest.TestCase):
    def test_score_column_adds_header_bonus_and_caps_samples(self):
        values = ["2024-01-15"] * 20
        self.assertEqual(score_column("date", "Posting Date", values), 3.0 + 10.0)
        self.assertEqual(score_column("date", "Booked", values[:4]), 4.0)

    def test_score_column_accepts_custom_weights(self):
        weights = {**SCORING_WEIGHTS, "header_keyword": 0.0, "sample_match": 2.0}
        self.assertEqual(score_column("amount", "Amount", ["1", "2", "x"], weights=weights), 4.0)

    def test_detection_is_idempotent(self):
        first = detect_columns(CARD_HEADERS, CARD_ROWS)
        second = detect_columns(CARD_HEADERS, CARD_ROWS)

        self.assertEqual(first, second)
        self.assertEqual(first.sources, second.sources)

    def test_each_assignment_is_reported(self):
        sink = CapturingDiagnostics()
        role_map = detect_columns(CARD_HEADERS, CARD_ROWS, diagnostics=sink)

        self.assertEqual(len(sink), len(role_map.assigned_roles()))
        self.assertTrue(all(entry.level == "info" for entry in sink.entries))
        self.assertEqual(sink.entries[0].context["header"], "Posting Date")

    def test_describe_maps_roles_to_header_text(self):
        role_map = ColumnRoleMap(date=0, amount=1)
        self.assertEqual(
            role_map.describe(["Date", "Amount"]),
            {"date": "Date", "amount": "Amount", "description": None, "account": None},
        )


if __name__ == "__main__":
    unittest.main()
