from __future__ import annotations

import unittest
from datetime import date
from decimal import Decimal

from statement_doctor.amounts import (
    is_likely_amount_column,
    is_likely_description_column,
    looks_like_amount,
    parse_amount,
    parse_amount_detailed,
)


class ParseAmountTests(unittest.TestCase):
    def test_documented_examples(self):
        self.assertEqual(parse_amount("(75.00)"), Decimal("-75.00"))
        self.assertEqual(parse_amount("$1,234.56"), Decimal("1234.56"))
        self.assertEqual(parse_amount("-50"), Decimal("-50"))
        self.assertEqual(parse_amount(""), Decimal("0"))

    def test_currency_symbols_and_sign_placement(self):
        cases = {
            "-$50.00": Decimal("-50.00"),
            "$-50.00": Decimal("-50.00"),
            "+£12.10": Decimal("12.10"),
            "€ 1 000.50": Decimal("1000.50"),
            "¥300": Decimal("300"),
            "₹2,50,000": Decimal("250000"),
            "($1,200.00)": Decimal("-1200.00"),
            "  42.5  ": Decimal("42.5"),
        }
        for text, expected in cases.items():
            with self.subTest(text=text):
                self.assertEqual(parse_amount(text), expected)

    def test_brackets_always_negate_the_magnitude(self):
        for text in ["(-5)", "(5)", "(+5)", "($-5.00)", "(-$5.00)"]:
            with self.subTest(text=text):
                parsed = parse_amount_detailed(text)
                self.assertEqual(parsed.value, Decimal("-5"))
                self.assertFalse(parsed.fell_back)

    def test_decimal_comma_is_flagged_not_misread(self):
        for text in ["1.234,56", "-1.234,56", "€1.000,00"]:
            with self.subTest(text=text):
                parsed = parse_amount_detailed(text)
                self.assertEqual(parsed.value, Decimal("0"))
                self.assertTrue(parsed.fell_back)
        self.assertEqual(parse_amount("1,234.56"), Decimal("1234.56"))
        self.assertEqual(parse_amount("1,000,000"), Decimal("1000000"))

    def test_numbers_pass_through(self):
        self.assertEqual(parse_amount(12.1), Decimal("12.1"))
        self.assertEqual(parse_amount(-3), Decimal("-3"))
        self.assertEqual(parse_amount(Decimal("9.99")), Decimal("9.99"))

    def test_non_numeric_remainder_is_zero_and_flagged(self):
        for value in ["abc", "12abc", "1.2.3", "--5", date(2024, 1, 1)]:
            with self.subTest(value=value):
                parsed = parse_amount_detailed(value)
                self.assertEqual(parsed.value, Decimal("0"))
                self.assertTrue(parsed.fell_back)

    def test_empty_cells_are_zero_without_fallback(self):
        for value in ["", None, "   ", float("nan")]:
            with self.subTest(value=value):
                parsed = parse_amount_detailed(value)
                self.assertEqual(parsed.value, Decimal("0"))
                self.assertFalse(parsed.fell_back)


class AmountColumnTests(unittest.TestCase):
    def test_currency_values_are_likely(self):
        self.assertTrue(is_likely_amount_column(["$1,234.56", "-$50.00", "(75.00)"]))

    def test_words_are_not_likely(self):
        self.assertFalse(is_likely_amount_column(["Coffee Shop", "Woolworths", "Rent"]))

    def test_threshold_is_eighty_percent(self):
        self.assertTrue(is_likely_amount_column(["1", "2", "3", "4", "x"]))
        self.assertFalse(is_likely_amount_column(["1", "2", "3", "x", "y"]))

    def test_numbers_and_blanks(self):
        self.assertTrue(is_likely_amount_column([1.5, None, -20, ""]))
        self.assertFalse(is_likely_amount_column([None, ""]))

    def test_single_cell_shapes(self):
        self.assertTrue(looks_like_amount("1,234.56"))
        self.assertTrue(looks_like_amount("(£5)"))
        self.assertFalse(looks_like_amount("2024-01-15"))
        self.assertFalse(looks_like_amount("****1234"))


class DescriptionColumnTests(unittest.TestCase):
    def test_merchant_text_is_likely(self):
        values = ["Woolworths Metro", "Coffee Shop Sydney", "Rent payment", "Netflix.com", "Shell Petrol 42"]
        self.assertTrue(is_likely_description_column(values))

    def test_dates_amounts_and_codes_are_not_descriptions(self):
        self.assertFalse(is_likely_description_column(["2024-01-15", "15 Jan 2024", "2024-02-01"]))
        self.assertFalse(is_likely_description_column(["$1,234.56", "-50.00", "(75.00)"]))
        self.assertFalse(is_likely_description_column(["****1234", "****5678"]))


if __name__ == "__main__":
    unittest.main()
