from __future__ import annotations

import unittest
from datetime import date, datetime
from decimal import Decimal

import pandas as pd

from statement_doctor.cells import NumberCell, TextCell
from statement_doctor.dates import (
    DAY_FIRST,
    MONTH_FIRST,
    date_signatures,
    excel_serial_to_date,
    expand_two_digit_year,
    is_likely_date_column,
    looks_like_date,
    parse_combined_date,
    parse_combined_date_detailed,
    parse_date,
    parse_date_detailed,
)

TODAY = date(2024, 6, 1)


class ParseDateTests(unittest.TestCase):
    def test_same_calendar_day_across_encodings(self):
        encodings = [
            "2024-01-15",
            "15/01/2024",
            "01/15/2024",
            "2024.01.15",
            "15 Jan 2024",
            "Jan 15, 2024",
            "15.01.2024",
            "2024/01/15",
            "15-Jan-2024",
            "January 15 2024",
        ]
        for order in (MONTH_FIRST, DAY_FIRST):
            for text in encodings:
                with self.subTest(order=order, text=text):
                    self.assertEqual(parse_date(text, order=order, today=TODAY), date(2024, 1, 15))

    def test_ambiguous_numeric_date_follows_configured_order(self):
        self.assertEqual(parse_date("03/04/2024", order=MONTH_FIRST, today=TODAY), date(2024, 3, 4))
        self.assertEqual(parse_date("03/04/2024", order=DAY_FIRST, today=TODAY), date(2024, 4, 3))

    def test_dash_separated_numeric_dates_use_the_same_pair(self):
        self.assertEqual(parse_date("03-04-2024", order=DAY_FIRST, today=TODAY), date(2024, 4, 3))

    def test_iso_datetime_with_time_of_day(self):
        self.assertEqual(parse_date("2024-01-15T13:45:00", today=TODAY), date(2024, 1, 15))
        self.assertEqual(parse_date("2024-01-15 13:45", today=TODAY), date(2024, 1, 15))

    def test_native_dates_pass_through(self):
        self.assertEqual(parse_date(date(2023, 12, 31), today=TODAY), date(2023, 12, 31))
        self.assertEqual(parse_date(datetime(2023, 12, 31, 8, 30), today=TODAY), date(2023, 12, 31))
        self.assertEqual(parse_date(pd.Timestamp("2023-12-31"), today=TODAY), date(2023, 12, 31))

    def test_excel_serial_numbers(self):
        self.assertEqual(parse_date(45306, today=TODAY), date(2024, 1, 15))
        self.assertEqual(parse_date(45306.0, today=TODAY), date(2024, 1, 15))
        self.assertEqual(parse_date("45306", today=TODAY), date(2024, 1, 15))
        self.assertEqual(excel_serial_to_date(2), date(1900, 1, 1))

    def test_fragments_resolve_against_today(self):
        self.assertEqual(parse_date("15", today=TODAY), date(2024, 6, 15))
        self.assertEqual(parse_date("Mar", today=TODAY), date(2024, 3, 1))
        self.assertEqual(parse_date("2023", today=TODAY), date(2023, 1, 1))

    def test_unreadable_values_fall_back_to_today(self):
        for value in ["not a date", "", None, "99/99/9999", 12.5]:
            with self.subTest(value=value):
                parsed = parse_date_detailed(value, today=TODAY)
                self.assertEqual(parsed.value, TODAY)
                self.assertTrue(parsed.fell_back)

    def test_detailed_result_names_the_matching_signature(self):
        self.assertEqual(parse_date_detailed("15 Jan 2024", today=TODAY).label, "dd mon yyyy")
        self.assertFalse(parse_date_detailed("15 Jan 2024", today=TODAY).fell_back)

    def test_separator_guess_handles_unusual_shapes(self):
        parsed = parse_date_detailed("15 01 2024", order=DAY_FIRST, today=TODAY)
        self.assertEqual(parsed.value, date(2024, 1, 15))
        self.assertEqual(parsed.label, "separator guess")

    def test_signature_table_moves_only_the_ambiguous_pairs(self):
        month_first = [signature.label for signature in date_signatures(MONTH_FIRST)]
        day_first = [signature.label for signature in date_signatures(DAY_FIRST)]
        self.assertLess(month_first.index("mm/dd/yyyy"), month_first.index("dd/mm/yyyy"))
        self.assertLess(day_first.index("dd/mm/yyyy"), day_first.index("mm/dd/yyyy"))
        self.assertEqual(month_first[:2], day_first[:2])
        self.assertLess(month_first.index("mm/dd/yy"), month_first.index("dd/mm/yy"))
        self.assertLess(day_first.index("dd/mm/yy"), day_first.index("mm/dd/yy"))
        self.assertEqual(month_first[6:], day_first[6:])

    def test_two_digit_years(self):
        self.assertEqual(parse_date("1/2/24", order=MONTH_FIRST, today=TODAY), date(2024, 1, 2))
        self.assertEqual(parse_date("1/2/24", order=DAY_FIRST, today=TODAY), date(2024, 2, 1))
        self.assertEqual(parse_date("15/01/24", order=MONTH_FIRST, today=TODAY), date(2024, 1, 15))
        self.assertEqual(parse_date("15-01-24", order=DAY_FIRST, today=TODAY), date(2024, 1, 15))
        self.assertEqual(parse_date("15-Jan-24", today=TODAY), date(2024, 1, 15))
        self.assertEqual(parse_date("15 Jan 99", today=TODAY), date(1999, 1, 15))
        self.assertEqual(parse_date_detailed("15/01/24", today=TODAY).label, "dd/mm/yy")
        self.assertFalse(parse_date_detailed("15-Jan-24", today=TODAY).fell_back)

    def test_two_digit_year_window(self):
        self.assertEqual(expand_two_digit_year(0), 2000)
        self.assertEqual(expand_two_digit_year(68), 2068)
        self.assertEqual(expand_two_digit_year(69), 1969)
        self.assertEqual(expand_two_digit_year(99), 1999)

    def test_unknown_order_is_rejected(self):
        with self.assertRaises(ValueError):
            date_signatures("year_first")


class DateColumnLikelihoodTests(unittest.TestCase):
    def test_iso_column_is_likely(self):
        values = [f"2024-01-{day:02d}" for day in range(1, 8)] + ["pending", "n/a", "see memo"]
        self.assertTrue(is_likely_date_column(values))

    def test_merchant_names_are_not_dates(self):
        values = [
            "Woolworths", "Coffee Shop", "Rent", "Netflix", "Shell Petrol",
            "Amazon", "Uber Eats", "Salary", "Transfer to savings", "ATM withdrawal",
        ]
        self.assertFalse(is_likely_date_column(values))

    def test_two_digit_year_column_is_likely(self):
        self.assertTrue(is_likely_date_column(["15/01/24", "16/01/24", "18/01/24", "20/01/24"]))
        self.assertTrue(is_likely_date_column(["15-Jan-24", "16-Jan-24", "02-Feb-24"]))

    def test_small_integers_are_not_dates(self):
        self.assertFalse(is_likely_date_column(["12", "7", "30", "1", "25"]))

    def test_excel_serials_within_range(self):
        self.assertTrue(is_likely_date_column([45306, 45307, 45310]))
        self.assertFalse(is_likely_date_column([12, 400, 99]))

    def test_empty_values_are_ignored_and_empty_sample_is_false(self):
        self.assertTrue(is_likely_date_column(["", None, "2024-01-01", "2024-01-02"]))
        self.assertFalse(is_likely_date_column(["", None, "   "]))

    def test_sample_is_bounded(self):
        values = ["2024-01-01"] * 10 + ["nope"] * 50
        self.assertTrue(is_likely_date_column(values, sample_size=10))
        self.assertFalse(is_likely_date_column(values, sample_size=60))

    def test_single_cell_check(self):
        self.assertTrue(looks_like_date(TextCell("15/01/2024")))
        self.assertTrue(looks_like_date(NumberCell(Decimal(45306))))
        self.assertFalse(looks_like_date(TextCell("Coffee")))
        self.assertFalse(looks_like_date(TextCell("x" * 60)))


class CombinedDateTests(unittest.TestCase):
    def test_separate_columns(self):
        self.assertEqual(parse_combined_date("15", "Jan", "2024", today=TODAY), date(2024, 1, 15))
        self.assertEqual(parse_combined_date(15, 1, 2024, today=TODAY), date(2024, 1, 15))
        self.assertEqual(parse_combined_date("3", "September", "2023", today=TODAY), date(2023, 9, 3))

    def test_missing_year_uses_current_year(self):
        self.assertEqual(parse_combined_date("15", "Jan", today=TODAY), date(2024, 1, 15))

    def test_invalid_parts_fall_back(self):
        parsed = parse_combined_date_detailed("31", "Feb", "2024", today=TODAY)
        self.assertEqual(parsed.value, TODAY)
        self.assertTrue(parsed.fell_back)


if __name__ == "__main__":
    unittest.main()
