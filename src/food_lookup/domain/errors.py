"""Error taxonomy for food lookups.

Every error is raised at the transport or mapping boundary and classified by
the retry policy. None of them reach callers of the search service.
"""

_SERVER_ERROR_MIN = 500
_SERVER_ERROR_MAX = 599


class FoodLookupError(Exception):
    """Base class for food lookup failures."""

    retryable: bool = False


class InvalidResponseError(FoodLookupError):
    """The HTTP exchange did not produce a usable response."""


class RateLimitedError(FoodLookupError):
    """The server asked us to slow down (HTTP 429)."""

    retryable = True

    def __init__(self, retry_after: float | None = None, *, from_guard: bool = False):
        self.retry_after = retry_after
        self.from_guard = from_guard
        super().__init__(f"Rate limited (retry_after={retry_after})")


class ServerError(FoodLookupError):
    """Non-success HTTP status other than 429."""

    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}")

    @property
    def retryable(self) -> bool:  # type: ignore[override]
        return _SERVER_ERROR_MIN <= self.status_code <= _SERVER_ERROR_MAX


class NetworkError(FoodLookupError):
    """Connection, DNS or timeout failure."""

    retryable = True

    def __init__(self, cause: Exception):
        self.cause = cause
        super().__init__(f"Network error: {cause!r}")


class DecodingError(FoodLookupError):
    """The response body is structurally unusable."""

    def __init__(self, cause: Exception | str):
        self.cause = cause
        super().__init__(f"Could not decode search response: {cause}")

