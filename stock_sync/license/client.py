"""License API client (JSON over HTTPS, httpx)."""

from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import urlparse

import httpx

from stock_sync.config import (
    LICENSE_API_URL,
    LICENSE_PRODUCT_SLUG,
    LICENSE_TIMEOUT_SECONDS,
    SITE_URL,
)
from stock_sync.utils.logger import get_logger

logger = get_logger("stock_sync.license.client")


def normalize_domain(site_url: str) -> str:
    """Host of the site URL without a leading ``www.`` and without a port."""
    parsed = urlparse(site_url if "://" in site_url else f"//{site_url}")
    host = parsed.hostname or ""
    if host.startswith("www."):
        host = host[4:]
    return host


@dataclass
class ApiResponse:
    """Normalized license API response.

    ``network_error`` is True only when the server was never reached; a
    response with an error status is a definitive answer.
    """

    success: bool
    data: Optional[dict[str, Any]] = None
    message: str = ""
    errors: dict[str, Any] | list[Any] = field(default_factory=list)
    network_error: bool = False
    status_code: Optional[int] = None


class LicenseApiClient:
    """POST ``{license_key, product_slug, domain}`` to the license endpoints."""

    def __init__(
        self,
        base_url: str = LICENSE_API_URL,
        product_slug: str = LICENSE_PRODUCT_SLUG,
        site_url: str = SITE_URL,
        timeout: float = LICENSE_TIMEOUT_SECONDS,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.product_slug = product_slug
        self.domain = normalize_domain(site_url)
        self.timeout = timeout
        self._transport = transport

    def validate(self, license_key: str) -> ApiResponse:
        return self._request("/licenses/validate", license_key)

    def activate(self, license_key: str) -> ApiResponse:
        return self._request("/licenses/activate", license_key)

    def deactivate(self, license_key: str) -> ApiResponse:
        return self._request("/licenses/deactivate", license_key)

    def _request(self, endpoint: str, license_key: str) -> ApiResponse:
        body = {
            "license_key": license_key,
            "product_slug": self.product_slug,
            "domain": self.domain,
        }
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                response = client.post(
                    f"{self.base_url}{endpoint}",
                    json=body,
                    headers={"Accept": "application/json"},
                )
        except httpx.HTTPError as e:
            logger.warning("license.api.network_error", endpoint=endpoint, error=str(e))
            return ApiResponse(success=False, message=str(e) or type(e).__name__, network_error=True)

        code = response.status_code
        if code == 204:
            return ApiResponse(success=True, message="Operation successful.", status_code=code)

        try:
            payload = response.json()
        except ValueError:
            payload = None
        if not isinstance(payload, dict):
            payload = {}

        if 200 <= code < 300:
            data = payload.get("data", payload)
            return ApiResponse(
                success=True,
                data=data if isinstance(data, dict) else {},
                status_code=code,
            )

        logger.info("license.api.rejected", endpoint=endpoint, status_code=code)
        return ApiResponse(
            success=False,
            message=payload.get("message") or "Unknown error occurred.",
            errors=payload.get("errors") or [],
            status_code=code,
        )
