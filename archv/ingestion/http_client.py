"""
HTTP infrastructure layer with retry logic and API key rotation.

Provides:
- APIKeyRotator: Round-robin rotation for comma-separated API keys
- RetryConfig: Exponential backoff configuration
- HTTPClient: Async GET client with automatic retry and key injection

Adapters only see parsed JSON or an UpstreamError; retries, backoff and
authentication stay in this layer.
"""

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Any

import httpx

from archv.ingestion.errors import RateLimitError, UpstreamError

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})


@dataclass
class APIKeyRotator:
    """
    Round-robin API key rotation from a comma-separated setting.

    Example:
        rotator = APIKeyRotator.from_env_var("key1,key2")
        key = await rotator.get_key()
    """

    keys: list[str]
    _current_index: int = field(default=0, repr=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @classmethod
    def from_env_var(cls, value: str | None) -> "APIKeyRotator | None":
        """
        Create rotator from a comma-separated value.

        Returns:
            APIKeyRotator instance or None if no usable keys were given
        """
        if not value:
            return None

        keys = [k.strip() for k in value.split(",") if k.strip()]
        if not keys:
            return None

        return cls(keys=keys)

    async def get_key(self) -> str:
        """Get the next API key in round-robin rotation."""
        async with self._lock:
            key = self.keys[self._current_index]
            self._current_index = (self._current_index + 1) % len(self.keys)
            return key

    @property
    def key_count(self) -> int:
        return len(self.keys)


@dataclass
class RetryConfig:
    """
    Exponential backoff configuration for HTTP retries.

    Formula: min(max_backoff, base_delay * 2^attempt) * (1 + random(0, jitter_factor))
    """

    max_retries: int = 2
    max_backoff_seconds: float = 30.0
    base_delay: float = 0.5
    jitter_factor: float = 0.1

    def calculate_backoff(self, attempt: int) -> float:
        """Backoff in seconds for a 0-indexed retry attempt."""
        delay = min(self.base_delay * (2**attempt), self.max_backoff_seconds)
        return delay + delay * self.jitter_factor * random.random()

    def is_retryable_status(self, status_code: int) -> bool:
        return status_code in RETRYABLE_STATUS_CODES


class HTTPClient:
    """
    Async JSON client with retry logic and API key injection.

    - Retries 429/5xx responses and timeout/connect/read errors with backoff
    - Injects an API key as a query parameter or header on every attempt
    - Raises UpstreamError (RateLimitError for exhausted 429s) on failure
    - Raises UpstreamError when the body is not valid JSON

    Example:
        async with HTTPClient(RetryConfig(max_retries=2)) as client:
            data = await client.get_json(
                "https://newsapi.org/v2/top-headlines",
                params={"category": "business"},
                api_key_rotator=rotator,
                api_key_param="apiKey",
            )
    """

    def __init__(
        self,
        retry_config: RetryConfig | None = None,
        timeout: float = 10.0,
        headers: dict[str, str] | None = None,
    ):
        self.retry_config = retry_config or RetryConfig()
        self.timeout = timeout
        self._headers = headers or {"User-Agent": "archv/0.1 (news aggregator)"}
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "HTTPClient":
        self._client = httpx.AsyncClient(timeout=self.timeout, headers=self._headers)
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get_json(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        api_key_rotator: APIKeyRotator | None = None,
        api_key_param: str | None = None,
        api_key_header: str | None = None,
    ) -> Any:
        """
        Perform a GET and decode the JSON body.

        Raises:
            UpstreamError: On non-success status, transport failure or bad JSON
            RateLimitError: When still rate limited after all retries
        """
        response = await self.get(
            url,
            params=params,
            api_key_rotator=api_key_rotator,
            api_key_param=api_key_param,
            api_key_header=api_key_header,
        )
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(
                f"Malformed JSON from {url}: {e}",
                status_code=response.status_code,
                response_body=response.text[:500],
            ) from e

    async def get_text(self, url: str, params: dict[str, Any] | None = None) -> str:
        """Perform a GET and return the body as text (RSS/XML)."""
        response = await self.get(url, params=params)
        return response.text

    async def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        api_key_rotator: APIKeyRotator | None = None,
        api_key_param: str | None = None,
        api_key_header: str | None = None,
    ) -> httpx.Response:
        """Perform a GET with retry logic."""
        if not self._client:
            raise RuntimeError("HTTPClient must be used as async context manager")

        attempts = self.retry_config.max_retries + 1
        last_status: int | None = None

        for attempt in range(attempts):
            request_params = dict(params) if params else {}
            request_headers: dict[str, str] = {}

            if api_key_rotator:
                api_key = await api_key_rotator.get_key()
                if api_key_header:
                    request_headers[api_key_header] = api_key
                else:
                    request_params[api_key_param or "apiKey"] = api_key

            try:
                response = await self._client.get(
                    url,
                    params=request_params or None,
                    headers=request_headers or None,
                )
            except httpx.TransportError as e:
                if attempt < attempts - 1:
                    await self._backoff(attempt, url, type(e).__name__)
                    continue
                raise UpstreamError(
                    f"Request to {url} failed after {attempt + 1} attempts: {e}",
                    status_code=last_status,
                ) from e

            if self.retry_config.is_retryable_status(response.status_code):
                last_status = response.status_code
                if attempt < attempts - 1:
                    await self._backoff(attempt, url, f"status {response.status_code}")
                    continue

                error_cls = RateLimitError if response.status_code == 429 else UpstreamError
                raise error_cls(
                    f"Request to {url} failed with status {response.status_code} "
                    f"after {attempt + 1} attempts",
                    status_code=response.status_code,
                    response_body=response.text[:500],
                )

            if response.status_code >= 400:
                raise UpstreamError(
                    f"Request to {url} failed with status {response.status_code}",
                    status_code=response.status_code,
                    response_body=response.text[:500],
                )

            return response

        raise UpstreamError(f"Request to {url} failed after {attempts} attempts")

    async def _backoff(self, attempt: int, url: str, reason: str) -> None:
        backoff = self.retry_config.calculate_backoff(attempt)
        logger.warning(
            f"Retryable {reason} for {url}, "
            f"attempt {attempt + 1}/{self.retry_config.max_retries + 1}, "
            f"backing off {backoff:.2f}s"
        )
        await asyncio.sleep(backoff)
