"""Feed transport and parsing."""

from stock_sync.feed.fetcher import FeedFetcher
from stock_sync.feed.parser import FeedParser, detect_delimiter, parse, parse_quantity, preview

__all__ = ["FeedFetcher", "FeedParser", "detect_delimiter", "parse", "parse_quantity", "preview"]
