"""HTTP habit source backed by a remote habits API.

This module provides the HttpHabitSource class which fetches the habit
collection with httpx, retries transient failures with exponential backoff and
maps HTTP errors onto the ``HabitLoadError`` hierarchy.
"""

import asyncio
import logging
import types
from dataclasses import dataclass
from typing import Any, NoReturn

import httpx
from pydantic import ValidationError

from habit_tracker_mcp.config import ServerConfig
from habit_tracker_mcp.core.exceptions import HabitLoadError
from habit_tracker_mcp.core.models import Habit
from habit_tracker_mcp.sources.exceptions import (
    HabitSourceAuthenticationError,
    HabitSourceNetworkError,
    HabitSourceNotFoundError,
    HabitSourceRateLimitError,
    HabitSourceServerError,
    HabitSourceTimeoutError,
)

# HTTP status code constants
_HTTP_UNAUTHORIZED = 401
_HTTP_FORBIDDEN = 403
_HTTP_NOT_FOUND = 404
_HTTP_TOO_MANY_REQUESTS = 429
_HTTP_INTERNAL_SERVER_ERROR = 500
_HTTP_BAD_GATEWAY = 502
_HTTP_SERVICE_UNAVAILABLE = 503
_HTTP_TIMEOUT = 524
_HTTP_MAX_SERVER_ERROR = 600

_RETRYABLE_STATUS_CODES = {
    _HTTP_INTERNAL_SERVER_ERROR,
    _HTTP_BAD_GATEWAY,
    _HTTP_SERVICE_UNAVAILABLE,
    _HTTP_TIMEOUT,
}

_HABITS_ENDPOINT = "habits"

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _RetryContext:
    """Internal container storing retry metadata for a single attempt."""

    attempt: int
    max_attempts: int
    backoff: float
    url: str


class HttpHabitSource:
    """Habit source that reads the collection from ``GET {base_url}/habits``.

    The endpoint may answer with ``{"habits": [...]}`` or a bare list; each
    entry is validated as a Habit (snake_case or camelCase keys).
    """

    def __init__(self, config: ServerConfig) -> None:
        """Initialize the HTTP habit source.

        Args:
            config: Server configuration containing base URL, token and HTTP settings
        """
        self._config = config
        self._base_url = str(config.source_base_url).rstrip("/")
        self._bearer_token = config.source_bearer_token
        self._http_client: httpx.AsyncClient | None = None

    def __repr__(self) -> str:
        """Return repr without exposing bearer token."""
        return f"HttpHabitSource(base_url='{self._base_url}', token='***redacted***')"

    async def __aenter__(self) -> "HttpHabitSource":
        """Async context manager entry."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        """Async context manager exit with cleanup."""
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if one was created."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client with proper configuration.

        Returns:
            httpx.AsyncClient: Configured async HTTP client
        """
        if self._http_client is None:
            timeout = httpx.Timeout(
                connect=self._config.timeout_connect,
                read=self._config.timeout_read,
                write=10.0,
                pool=10.0,
            )
            self._http_client = httpx.AsyncClient(
                timeout=timeout,
                follow_redirects=True,
                headers={"User-Agent": self._config.http_user_agent},
            )
        return self._http_client

    def _get_headers(self) -> dict[str, str]:
        """Get request headers, including the bearer token when configured."""
        headers = {"Accept": "application/json"}
        if self._bearer_token:
            headers["Authorization"] = f"Bearer {self._bearer_token}"
        return headers

    def _get_redacted_headers(self) -> dict[str, str]:
        """Get headers with redacted bearer token for logging."""
        headers = self._get_headers()
        if "Authorization" in headers:
            headers["Authorization"] = "Bearer ***redacted***"
        return headers

    @staticmethod
    def _has_remaining_attempts(context: _RetryContext) -> bool:
        """Determine whether another retry attempt is allowed."""
        return context.attempt < context.max_attempts - 1

    def _handle_http_error(self, error: httpx.HTTPStatusError) -> NoReturn:
        """Raise the HabitLoadError matching an HTTP status error.

        Raises:
            HabitSourceAuthenticationError: For 401 and 403
            HabitSourceNotFoundError: For 404
            HabitSourceRateLimitError: For 429
            HabitSourceTimeoutError: For 524
            HabitSourceServerError: For other 5xx errors
            HabitLoadError: For any other HTTP error
        """
        status_code = error.response.status_code

        if status_code in {_HTTP_UNAUTHORIZED, _HTTP_FORBIDDEN}:
            logger.error("Authentication failed with habit source")
            raise HabitSourceAuthenticationError(status_code=status_code) from error
        if status_code == _HTTP_NOT_FOUND:
            logger.error("Habit source endpoint not found: %s", error.request.url)
            raise HabitSourceNotFoundError from error
        if status_code == _HTTP_TOO_MANY_REQUESTS:
            logger.error("Rate limit exceeded for habit source")
            raise HabitSourceRateLimitError from error
        if status_code == _HTTP_TIMEOUT:
            logger.error("Habit source request timed out")
            raise HabitSourceTimeoutError(status_code=status_code) from error
        if _HTTP_INTERNAL_SERVER_ERROR <= status_code < _HTTP_MAX_SERVER_ERROR:
            logger.error("Habit source server error: %s", status_code)
            raise HabitSourceServerError(status_code=status_code) from error
        logger.error("Habit source error: %s", status_code)
        msg = f"Failed to fetch habits (status {status_code})"
        raise HabitLoadError(msg, status_code) from error

    def _should_retry_status(self, error: httpx.HTTPStatusError, context: _RetryContext) -> bool:
        """Return True for a retryable status with attempts left, raise otherwise."""
        status_code = error.response.status_code
        if status_code not in _RETRYABLE_STATUS_CODES or not self._has_remaining_attempts(context):
            self._handle_http_error(error)

        logger.warning(
            "Retryable HTTP status %s for GET %s; retrying in %.2fs (attempt %d of %d)",
            status_code,
            context.url,
            context.backoff,
            context.attempt + 1,
            context.max_attempts,
        )
        return True

    def _should_retry_transient(
        self,
        error: httpx.TimeoutException | httpx.NetworkError,
        context: _RetryContext,
    ) -> bool:
        """Return True for a transient failure with attempts left, raise otherwise."""
        if not self._has_remaining_attempts(context):
            if isinstance(error, httpx.TimeoutException):
                logger.error("Request timeout fetching habits")
                raise HabitSourceTimeoutError from error
            logger.error("Network error fetching habits")
            raise HabitSourceNetworkError from error

        logger.warning(
            "%s during GET %s; retrying in %.2fs (attempt %d of %d)",
            "Timeout" if isinstance(error, httpx.TimeoutException) else "Network error",
            context.url,
            context.backoff,
            context.attempt + 1,
            context.max_attempts,
        )
        return True

    async def _get_json(self, endpoint: str) -> Any:
        """GET ``endpoint`` and return the decoded JSON body, retrying transient errors."""
        url = f"{self._base_url}/{endpoint.lstrip('/')}"
        max_attempts = self._config.http_retries + 1
        backoff = self._config.http_backoff_start_seconds

        for attempt in range(max_attempts):
            context = _RetryContext(
                attempt=attempt, max_attempts=max_attempts, backoff=backoff, url=url
            )
            try:
                http_client = self._get_http_client()
                logger.debug(
                    "Making GET request to %s with headers: %s", url, self._get_redacted_headers()
                )
                response = await http_client.get(url, headers=self._get_headers())
                response.raise_for_status()
            except httpx.HTTPStatusError as error:
                if self._should_retry_status(error, context):
                    await asyncio.sleep(backoff)
                    backoff *= 2.0
                    continue
            except (httpx.TimeoutException, httpx.NetworkError) as error:
                if self._should_retry_transient(error, context):
                    await asyncio.sleep(backoff)
                    backoff *= 2.0
                    continue
            else:
                logger.debug("Successful habit source response: %s", response.status_code)
                try:
                    return response.json()
                except ValueError as error:
                    raise HabitLoadError.create_parse_error(
                        endpoint, status=response.status_code
                    ) from error

        msg = f"Exhausted retry attempts for GET {url}"
        logger.error(msg)
        raise HabitLoadError(msg)

    async def fetch_habits(self) -> list[Habit]:
        """Fetch the habit collection from the remote API.

        Returns:
            list[Habit]: Habits in the order the API returned them

        Raises:
            HabitLoadError: On HTTP, network, timeout or payload errors
        """
        payload = await self._get_json(_HABITS_ENDPOINT)
        items = payload.get("habits") if isinstance(payload, dict) else payload
        if not isinstance(items, list):
            raise HabitLoadError.create_parse_error(_HABITS_ENDPOINT, reason="missing_habits")

        try:
            habits = [Habit.model_validate(item) for item in items]
        except ValidationError as error:
            logger.warning("Habit source returned invalid habit data: %s", error)
            raise HabitLoadError.create_parse_error(
                _HABITS_ENDPOINT, reason="invalid_habit"
            ) from error

        habit_ids = [habit.id for habit in habits]
        if len(set(habit_ids)) != len(habit_ids):
            logger.warning("Habit source returned duplicate habit ids")
            raise HabitLoadError.create_parse_error(_HABITS_ENDPOINT, reason="duplicate_id")

        logger.debug("Fetched %d habits from %s", len(habits), self._base_url)
        return habits
