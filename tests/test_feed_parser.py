"""Tests for CSV feed parsing: delimiter detection, quantity sanitizing, column lookup."""

import unittest
from pathlib import Path

import sys

# Allow importing stock_sync when running from project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from stock_sync.errors import ColumnNotFoundError, EmptyFeedError
from stock_sync.feed.parser import FeedParser, detect_delimiter, parse, parse_quantity, preview


class TestDetectDelimiter(unittest.TestCase):
    """The candidate producing the most header fields wins; ties go to the earlier candidate."""

    def test_picks_delimiter_with_most_fields(self):
        self.assertEqual(detect_delimiter("sku;quantity;name"), ";")
        self.assertEqual(detect_delimiter("sku\tquantity"), "\t")
        self.assertEqual(detect_delimiter("sku|quantity|price|name"), "|")
        self.assertEqual(detect_delimiter("sku,quantity"), ",")

    def test_tie_goes_to_comma(self):
        # one comma and one semicolon: both give two fields
        self.assertEqual(detect_delimiter("a,b;c"), ",")

    def test_tie_between_later_candidates_follows_candidate_order(self):
        # no comma: semicolon and pipe both give three fields
        self.assertEqual(detect_delimiter("a;b|c;d|e"), ";")
        self.assertEqual(detect_delimiter("a|b\tc|d\te"), "\t")

    def test_single_column_header_defaults_to_comma(self):
        self.assertEqual(detect_delimiter("sku"), ",")

    def test_is_deterministic(self):
        header = "sku;qty,name|x\ty"
        self.assertEqual({detect_delimiter(header) for _ in range(20)}, {detect_delimiter(header)})


class TestParseQuantity(unittest.TestCase):
    def test_negative_clamped_to_zero(self):
        self.assertEqual(parse_quantity("-5"), 0)

    def test_integer_prefix_of_noisy_value(self):
        self.assertEqual(parse_quantity("12.9abc"), 12)
        self.assertEqual(parse_quantity(" 1,234 "), 1234)

    def test_empty_and_garbage_are_zero(self):
        self.assertEqual(parse_quantity(""), 0)
        self.assertEqual(parse_quantity("n/a"), 0)

    def test_plain_value(self):
        self.assertEqual(parse_quantity("7"), 7)


class TestParse(unittest.TestCase):
    def test_basic_feed(self):
        snapshot = parse(b"sku,quantity\nA100,7\nB200,0\n", "sku", "quantity")
        self.assertEqual(snapshot.quantities, {"A100": 7, "B200": 0})
        self.assertEqual(snapshot.delimiter, ",")
        self.assertEqual(len(snapshot), 2)
        self.assertIn("A100", snapshot)

    def test_bom_crlf_and_header_case(self):
        raw = "\ufeffSKU;Stock Qty\r\nA1;3\r\n\r\nB2;4\r".encode("utf-8")
        snapshot = parse(raw, "sku", "stock qty")
        self.assertEqual(snapshot.quantities, {"A1": 3, "B2": 4})
        self.assertEqual(snapshot.headers, ["sku", "stock qty"])

    def test_configured_column_names_are_case_insensitive(self):
        snapshot = parse("Code,Qty\nX,2\n", "CODE", "qty")
        self.assertEqual(snapshot.quantities, {"X": 2})

    def test_quoted_fields(self):
        snapshot = parse('sku,name,quantity\n"A,1","Widget, large",5\n', "sku", "quantity")
        self.assertEqual(snapshot.quantities, {"A,1": 5})

    def test_short_rows_and_blank_skus_skipped(self):
        snapshot = parse("sku,quantity\nA,1\nB\n ,4\nC,2\n", "sku", "quantity")
        self.assertEqual(snapshot.quantities, {"A": 1, "C": 2})

    def test_last_duplicate_wins(self):
        snapshot = parse("sku,quantity\nA,1\nA,9\n", "sku", "quantity")
        self.assertEqual(snapshot.quantities, {"A": 9})

    def test_empty_feed(self):
        with self.assertRaises(EmptyFeedError) as ctx:
            parse(b"", "sku", "quantity")
        self.assertEqual(ctx.exception.message, "CSV file is empty.")

    def test_header_only_feed(self):
        with self.assertRaises(EmptyFeedError) as ctx:
            parse(b"sku,quantity\n", "sku", "quantity")
        self.assertIn("at least one data row", ctx.exception.message)

    def test_missing_column_lists_available_headers(self):
        with self.assertRaises(ColumnNotFoundError) as ctx:
            parse("Code,Stock\nA,1\n", "sku", "stock")
        err = ctx.exception
        self.assertEqual(err.code, "column_not_found")
        self.assertEqual(err.which, "sku")
        self.assertEqual(err.available, ["code", "stock"])
        self.assertEqual(err.message, 'SKU column "sku" not found in CSV. Available columns: code, stock')

    def test_missing_quantity_column(self):
        with self.assertRaises(ColumnNotFoundError) as ctx:
            parse("sku,stock\nA,1\n", "sku", "quantity")
        self.assertTrue(ctx.exception.message.startswith('Quantity column "quantity"'))


class TestPreview(unittest.TestCase):
    def test_preview_keeps_header_case_and_limits_rows(self):
        raw = "SKU\tQty\n" + "".join(f"S{i}\t{i}\n" for i in range(10))
        result = preview(raw)
        self.assertEqual(result.columns, ["SKU", "Qty"])
        self.assertEqual(result.delimiter, "tab")
        self.assertEqual(len(result.sample), 5)
        self.assertEqual(result.sample[0], ["S0", "0"])

    def test_preview_of_empty_feed(self):
        with self.assertRaises(EmptyFeedError):
            FeedParser().preview(b"\n\n")


if __name__ == "__main__":
    unittest.main()
