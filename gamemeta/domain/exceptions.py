"""Error taxonomy for metadata queries and asset downloads.

"No source configured" is deliberately absent: it is a quiescent state that
yields an empty result, not a failure.
"""

from typing import Optional


class GameMetaError(Exception):
    """Base class for all gamemeta errors."""


class ConfigurationError(GameMetaError):
    """Missing or invalid settings (e.g. IGDB selected without credentials)."""


class BackendError(GameMetaError):
    """A metadata query failed for a reason other than rate limiting. Not retried."""

    def __init__(self, endpoint: str, message: str, status_code: Optional[int] = None):
        self.endpoint = endpoint
        self.status_code = status_code
        status = f" (HTTP {status_code})" if status_code is not None else ""
        super().__init__(f"Query to '{endpoint}' failed{status}: {message}")


class RateLimitRejected(GameMetaError):
    """The backend rejected a call with a hard rate limit (HTTP 429).

    Raised by backends and consumed by the query client's retry loop.
    """

    def __init__(self, endpoint: str, retry_after: Optional[float] = None):
        self.endpoint = endpoint
        self.retry_after = retry_after
        super().__init__(f"Rate limit hit on endpoint '{endpoint}'")


class RateLimitExhausted(GameMetaError):
    """Raised when hard rate limit rejections outlast the attempt budget."""

    def __init__(self, endpoint: str, attempts: int, original_exception: Optional[Exception] = None):
        self.endpoint = endpoint
        self.attempts = attempts
        self.original_exception = original_exception
        super().__init__(f"Rate limit retries ({attempts}) exhausted for endpoint '{endpoint}'")


class DownloadError(GameMetaError):
    """An asset fetch failed (transport error, bad status or empty body)."""

    def __init__(self, uri: str, message: str, status_code: Optional[int] = None):
        self.uri = uri
        self.status_code = status_code
        super().__init__(f"Download from {uri} failed: {message}")


class ImageNotFound(DownloadError):
    """The image host has no asset at the requested size (HTTP 404)."""

    def __init__(self, uri: str):
        super().__init__(uri, "not found", status_code=404)
