"""Tests for the HTTP feed fetcher (httpx MockTransport)."""

import unittest
from pathlib import Path

import sys

# Allow importing stock_sync when running from project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import httpx

from stock_sync.errors import EmptyFeedError, FetchError
from stock_sync.feed.fetcher import FeedFetcher


def _fetcher(handler) -> FeedFetcher:
    return FeedFetcher(timeout=5, transport=httpx.MockTransport(handler))


class TestFeedFetcher(unittest.TestCase):
    def test_returns_body_on_200(self):
        fetcher = _fetcher(lambda request: httpx.Response(200, content=b"sku,quantity\nA,1\n"))
        self.assertEqual(fetcher.fetch("https://feeds.example.com/stock.csv"), b"sku,quantity\nA,1\n")

    def test_non_200_is_fetch_error(self):
        fetcher = _fetcher(lambda request: httpx.Response(404, content=b"nope"))
        with self.assertRaises(FetchError) as ctx:
            fetcher.fetch("https://feeds.example.com/stock.csv")
        self.assertEqual(ctx.exception.status_code, 404)
        self.assertEqual(ctx.exception.message, "Failed to fetch CSV. HTTP status: 404")

    def test_other_2xx_is_still_a_failure(self):
        fetcher = _fetcher(lambda request: httpx.Response(202, content=b"sku,quantity\n"))
        with self.assertRaises(FetchError):
            fetcher.fetch("https://feeds.example.com/stock.csv")

    def test_transport_error_is_fetch_error(self):
        def handler(request):
            raise httpx.ConnectError("Name or service not known")

        with self.assertRaises(FetchError) as ctx:
            _fetcher(handler).fetch("https://missing.example.com/stock.csv")
        self.assertTrue(ctx.exception.message.startswith("Failed to fetch CSV:"))
        self.assertIn("Name or service not known", ctx.exception.reason)

    def test_empty_body_is_empty_feed(self):
        fetcher = _fetcher(lambda request: httpx.Response(200, content=b""))
        with self.assertRaises(EmptyFeedError):
            fetcher.fetch("https://feeds.example.com/stock.csv")

    def test_follows_redirects(self):
        def handler(request):
            if request.url.path == "/old.csv":
                return httpx.Response(302, headers={"Location": "https://feeds.example.com/new.csv"})
            return httpx.Response(200, content=b"sku,quantity\nA,1\n")

        self.assertTrue(_fetcher(handler).fetch("https://feeds.example.com/old.csv"))


if __name__ == "__main__":
    unittest.main()
