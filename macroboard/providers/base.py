"""Base provider class with common HTTP retry and error handling logic."""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Optional

import httpx

from ..exceptions import DataNotAvailableError, ProviderRateLimitError, ProviderTimeoutError
from ..utils.logging_security import SecureLogger, redact_text, redact_url

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER = 60


def parse_retry_after(value: Optional[str], default: int = DEFAULT_RETRY_AFTER) -> int:
    """Seconds to wait from a Retry-After header (delta-seconds or HTTP-date)."""
    if value is None:
        return default
    value = value.strip()
    if value.isdigit():
        return int(value)
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        logger.debug(f"Unparseable Retry-After header: {value!r}")
        return default
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0, int((when - datetime.now(timezone.utc)).total_seconds()))


class BaseProvider(ABC):
    """Base class for all data providers.

    Provides common functionality:
    - Retry logic for transient failures (429, 5xx, connection errors)
    - Conversion of transport failures into ``DataProviderError`` subclasses
    - Safe JSON parsing
    - Standardized provider identification for logs and error maps

    All providers should inherit from this class and implement:
    - provider_name property (required)
    - _fetch_data method (abstract), returning the raw decoded JSON body
    """

    # Default timeout (seconds)
    DEFAULT_TIMEOUT = 30.0

    # Retry configuration
    MAX_RETRIES = 3
    RETRY_BACKOFF_FACTOR = 0.5

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        """Initialize base provider.

        Args:
            timeout: Request timeout in seconds
        """
        self.timeout = timeout
        self.rate_limit_reset: Optional[datetime] = None

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the canonical provider name (e.g., 'ECB', 'FRED', 'WorldBank').

        This is used for logging and for the per-source error maps.
        """
        pass

    @abstractmethod
    async def _fetch_data(self, **params) -> Any:
        """Fetch one raw body from the provider API. Must be implemented by subclasses.

        Args:
            **params: Provider-specific parameters

        Returns:
            Parsed JSON body, undecoded
        """
        pass

    async def _backoff(self, attempt: int) -> None:
        delay = self.RETRY_BACKOFF_FACTOR * (2 ** attempt)
        if delay > 0:
            await asyncio.sleep(delay)

    async def _get_with_retry(
        self,
        client: httpx.AsyncClient,
        url: str,
        **kwargs
    ) -> httpx.Response:
        """Get request with automatic retry on transient failures.

        Args:
            client: httpx AsyncClient
            url: Request URL
            **kwargs: Additional httpx parameters

        Returns:
            HTTP response

        Raises:
            DataNotAvailableError: If the upstream answers non-2xx or all retries fail
            ProviderRateLimitError: If the upstream keeps answering 429
            ProviderTimeoutError: If every attempt timed out
        """
        last_error: Optional[Exception] = None
        safe_url = redact_url(url)

        for attempt in range(self.MAX_RETRIES):
            try:
                logger.debug(
                    f"{self.provider_name} GET {safe_url} "
                    f"params={SecureLogger.sanitize_params(kwargs.get('params'))} (attempt {attempt + 1})"
                )
                response = await client.get(url, **kwargs, timeout=self.timeout)

                # Check for rate limiting
                if response.status_code == 429:
                    retry_after = parse_retry_after(response.headers.get("Retry-After"))
                    self.rate_limit_reset = datetime.now() + timedelta(seconds=retry_after)
                    logger.warning(f"{self.provider_name} rate limited. Retry after {retry_after}s")

                response.raise_for_status()
                return response

            except httpx.HTTPStatusError as e:
                last_error = e
                status = e.response.status_code

                if status == 429:
                    if attempt < self.MAX_RETRIES - 1:
                        await self._backoff(attempt)
                        continue
                    raise ProviderRateLimitError(
                        f"{self.provider_name} rate limit exceeded",
                        provider=self.provider_name,
                        retry_after=parse_retry_after(e.response.headers.get("Retry-After")),
                    )
                elif status >= 500:
                    # Server error - retry
                    if attempt < self.MAX_RETRIES - 1:
                        logger.warning(f"{self.provider_name} server error {status}, retrying...")
                        await self._backoff(attempt)
                        continue
                    raise DataNotAvailableError(
                        f"Server error {status} after {self.MAX_RETRIES} retries",
                        provider=self.provider_name,
                    )
                else:
                    # 4xx other than 429 - don't retry
                    raise DataNotAvailableError(
                        f"HTTP {status}",
                        provider=self.provider_name,
                        details={"body": redact_text(e.response.text[:200])},
                    )

            except httpx.TimeoutException as e:
                last_error = e
                if attempt < self.MAX_RETRIES - 1:
                    logger.warning(f"{self.provider_name} timeout, retrying... (attempt {attempt + 1})")
                    await self._backoff(attempt)
                    continue
                raise ProviderTimeoutError(
                    f"Timed out after {self.MAX_RETRIES} attempts",
                    provider=self.provider_name,
                )

            except httpx.TransportError as e:
                last_error = e
                if attempt < self.MAX_RETRIES - 1:
                    logger.warning(f"{self.provider_name} connection error, retrying... (attempt {attempt + 1})")
                    await self._backoff(attempt)
                    continue
                raise DataNotAvailableError(
                    f"Connection failed after {self.MAX_RETRIES} retries: {redact_text(str(e))}",
                    provider=self.provider_name,
                )

            except httpx.RequestError as e:
                # Redirect loops and undecodable bodies; not transient
                raise DataNotAvailableError(
                    f"Request failed: {redact_text(str(e))}",
                    provider=self.provider_name,
                )

        # All retries exhausted
        raise DataNotAvailableError(
            f"Failed after {self.MAX_RETRIES} retries: {redact_text(str(last_error))}",
            provider=self.provider_name,
        )

    def _parse_json_safe(self, response: httpx.Response) -> Any:
        """Safely parse JSON response with error handling.

        Args:
            response: HTTP response

        Returns:
            Parsed JSON body

        Raises:
            DataNotAvailableError: If JSON parsing fails
        """
        try:
            return response.json()
        except ValueError as e:
            raise DataNotAvailableError(
                f"Failed to parse response: {e}",
                provider=self.provider_name,
            )
