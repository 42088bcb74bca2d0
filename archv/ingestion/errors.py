"""
Error taxonomy for the ingestion pipeline.

- ConfigurationError: missing or invalid credentials. Raised before any
  network call; the adapter is unusable until reconfigured.
- UpstreamError: non-success HTTP status, transport failure, timeout or a
  malformed payload. Transient; retried on the next cycle.
- ValidationError: a raw record rejected during transform. Counted by the
  adapter, never surfaced per item.
- StoreError: persistence layer failure. Degrades to an empty result at the
  query service boundary.

An empty result is not an error.
"""


class ArchvError(Exception):
    """Base exception for all archv errors."""


class ConfigurationError(ArchvError):
    """Raised when an adapter lacks the credentials it needs."""

    def __init__(self, source: str, message: str | None = None):
        super().__init__(message or f"{source} API key not configured")
        self.source = source


class UpstreamError(ArchvError):
    """Raised when an upstream API fails or returns an unusable payload."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class RateLimitError(UpstreamError):
    """Raised when an upstream keeps rate limiting after all retries."""


class ValidationError(ArchvError):
    """Raised when a raw upstream record cannot become an Article."""


class StoreError(ArchvError):
    """Raised when the persisted store cannot serve a request."""

    def __init__(self, operation: str, cause: Exception | None = None):
        detail = f": {cause}" if cause else ""
        super().__init__(f"Store operation '{operation}' failed{detail}")
        self.operation = operation
        self.cause = cause
