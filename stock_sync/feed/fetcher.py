"""HTTP feed transport (httpx)."""

from typing import Optional

import httpx

from stock_sync.config import FEED_TIMEOUT_SECONDS
from stock_sync.errors import EmptyFeedError, FetchError
from stock_sync.utils.logger import get_logger

logger = get_logger("stock_sync.feed.fetcher")


class FeedFetcher:
    """GET the feed body; anything but a non-empty 200 response is a failure."""

    def __init__(
        self,
        timeout: float = FEED_TIMEOUT_SECONDS,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.timeout = timeout
        self._transport = transport

    def fetch(self, url: str, verify_ssl: bool = True, timeout: Optional[float] = None) -> bytes:
        effective_timeout = timeout if timeout is not None else self.timeout
        try:
            with httpx.Client(
                timeout=effective_timeout,
                verify=verify_ssl,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = client.get(url)
        except httpx.HTTPError as e:
            logger.warning("feed.fetch.transport_error", url=url, error=str(e))
            raise FetchError(f"Failed to fetch CSV: {e}", reason=str(e)) from e

        if response.status_code != 200:
            logger.warning("feed.fetch.bad_status", url=url, status_code=response.status_code)
            raise FetchError(
                f"Failed to fetch CSV. HTTP status: {response.status_code}",
                status_code=response.status_code,
            )

        body = response.content
        if not body:
            raise EmptyFeedError("CSV file is empty.")
        logger.debug("feed.fetch.ok", url=url, bytes=len(body))
        return body
