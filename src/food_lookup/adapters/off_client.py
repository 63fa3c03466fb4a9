"""Open Food Facts search API client."""

import math
from dataclasses import dataclass
from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import Protocol

import httpx

from food_lookup.domain.errors import (
    InvalidResponseError,
    NetworkError,
    RateLimitedError,
    ServerError,
)

SEARCH_PATH = "/cgi/search.pl"
SEARCH_FIELDS = (
    "product_name",
    "generic_name",
    "brands",
    "nutriments.energy-kcal_100g",
    "nutriments.energy-kcal_serving",
)
MAX_PAGE_SIZE = 100

_HTTP_TOO_MANY_REQUESTS = 429


@dataclass(frozen=True)
class RawResponse:
    """Status, body and throttling hint of one HTTP exchange."""

    status_code: int
    body: bytes
    retry_after: float | None = None


class OffClient(Protocol):
    """Interface for Open Food Facts search requests."""

    async def fetch(self, query: str, page_size: int) -> RawResponse:
        """Run one search request and return the raw exchange.

        Raises NetworkError when no HTTP response was received.
        """


@dataclass
class HttpxOffClient(OffClient):
    """HTTPX-backed Open Food Facts client."""

    base_url: str
    user_agent: str
    http_client: httpx.AsyncClient
    timeout_seconds: float = 30.0

    @classmethod
    def create(
        cls, base_url: str, user_agent: str, timeout_seconds: float = 30.0
    ) -> "HttpxOffClient":
        """Create a client with a managed httpx session."""
        return cls(
            base_url=base_url,
            user_agent=user_agent,
            http_client=httpx.AsyncClient(timeout=httpx.Timeout(timeout_seconds)),
            timeout_seconds=timeout_seconds,
        )

    def build_params(self, query: str, page_size: int) -> dict[str, str]:
        """Build the fixed query string for a simple search."""
        return {
            "search_simple": "1",
            "action": "process",
            "json": "1",
            "page_size": str(max(1, min(page_size, MAX_PAGE_SIZE))),
            "fields": ",".join(SEARCH_FIELDS),
            "search_terms": query.strip(),
        }

    async def fetch(self, query: str, page_size: int) -> RawResponse:
        """Search products by free text."""
        url = f"{self.base_url.rstrip('/')}{SEARCH_PATH}"
        try:
            response = await self.http_client.get(
                url,
                params=self.build_params(query, page_size),
                headers={
                    "User-Agent": self.user_agent,
                    "Accept": "application/json",
                    "Cache-Control": "no-cache",
                },
                timeout=httpx.Timeout(self.timeout_seconds),
            )
        except httpx.TransportError as exc:
            raise NetworkError(exc) from exc
        return RawResponse(
            status_code=response.status_code,
            body=response.content,
            retry_after=parse_retry_after(response.headers.get("Retry-After")),
        )

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def classify_response(raw: RawResponse) -> bytes:
    """Return the body of a successful exchange or raise the matching error."""
    status_code = raw.status_code
    if 200 <= status_code < 300:  # noqa: PLR2004
        return raw.body
    if status_code == _HTTP_TOO_MANY_REQUESTS:
        raise RateLimitedError(raw.retry_after)
    if 400 <= status_code < 600:  # noqa: PLR2004
        raise ServerError(status_code)
    raise InvalidResponseError(f"Unexpected HTTP status {status_code}")


def parse_retry_after(value: str | None) -> float | None:
    """Parse a Retry-After header given as delta-seconds or an HTTP date."""
    if value is None:
        return None
    cleaned = value.strip()
    if not cleaned:
        return None
    try:
        seconds = float(cleaned)
    except ValueError:
        try:
            retry_at = parsedate_to_datetime(cleaned)
        except (TypeError, ValueError):
            return None
        if retry_at.tzinfo is None:
            retry_at = retry_at.replace(tzinfo=UTC)
        seconds = (retry_at - datetime.now(tz=UTC)).total_seconds()
        return max(seconds, 0.0)
    if seconds < 0 or not math.isfinite(seconds):
        return None
    return seconds
