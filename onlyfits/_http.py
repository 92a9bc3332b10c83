"""Internal HTTP handling utilities for the OnlyFits client.

This module provides the low-level HTTP communication layer used by all
sub-clients. It handles:
- Bearer token injection from a caller-supplied token getter
- Making HTTP requests (sync and async), JSON or multipart
- Response parsing and error handling
- Retry logic with exponential backoff

This is an internal module and should not be imported directly by users.
"""

import asyncio
import inspect
import logging
import time
from typing import Any, Awaitable, Callable, Literal

import httpx

from onlyfits.exceptions import (
    APIError,
    AuthenticationError,
    ConflictError,
    ConnectionError,
    NotFoundError,
    ServerError,
    TimeoutError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# HTTP methods supported by the client
HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]

# Token getters return the current bearer token, or None when signed out
TokenGetter = Callable[[], str | None]
AsyncTokenGetter = Callable[[], Awaitable[str | None] | str | None]

DEFAULT_BASE_URL = "https://api.egress.live"

# Status codes that trigger automatic retry (when retry is enabled)
RETRYABLE_STATUS_CODES = {502, 503, 504}

# Default backoff settings for retry logic
DEFAULT_RETRY_BACKOFF_BASE = 0.5  # seconds
DEFAULT_RETRY_BACKOFF_MAX = 30.0  # seconds


def _parse_error_response(response: httpx.Response) -> tuple[str, str | None, dict | None]:
    """Parse an error response to extract message, type, and details.

    Attempts to parse the response body as JSON and extract structured
    error information. Falls back to the raw response text if parsing fails.

    Args:
        response: The HTTP response to parse.

    Returns:
        A tuple of (message, error_type, details).
    """
    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        if text:
            return text, None, None
        return f"HTTP {response.status_code} error", None, None

    if isinstance(body, dict):
        detail = body.get("detail")
        if isinstance(detail, str):
            return detail, body.get("type"), body.get("details")
        elif isinstance(detail, list):
            # Validation errors come as a list
            messages = [
                f"{err.get('loc', ['unknown'])[-1]}: {err.get('msg', 'invalid')}"
                for err in detail
            ]
            return "; ".join(messages), "validation_error", {"errors": detail}
        elif isinstance(detail, dict):
            return detail.get("message", str(detail)), detail.get("type"), detail

        if "message" in body:
            return body["message"], body.get("type"), body.get("details")
        if "error" in body:
            return body["error"], body.get("type"), body.get("details")

    return str(body), None, None


def _describe_request(response: httpx.Response) -> str:
    try:
        request = response.request
    except RuntimeError:
        return "<detached response>"
    return f"{request.method} {request.url}"


def _raise_for_status(response: httpx.Response) -> None:
    """Raise an appropriate exception for error status codes.

    Args:
        response: The HTTP response to check.

    Raises:
        ValidationError: For HTTP 422 responses.
        NotFoundError: For HTTP 404 responses.
        ConflictError: For HTTP 409 responses.
        ServerError: For HTTP 5xx responses.
        APIError: For other HTTP 4xx responses.
    """
    if response.is_success:
        return

    message, error_type, details = _parse_error_response(response)
    status_code = response.status_code

    try:
        response_body = response.json()
    except ValueError:
        response_body = response.text

    logger.error(
        "API request failed: %s -> %s %s",
        _describe_request(response),
        status_code,
        message,
    )

    if status_code == 422:
        raise ValidationError(message=message, details=details, response_body=response_body)
    elif status_code == 404:
        raise NotFoundError(message=message, details=details, response_body=response_body)
    elif status_code == 409:
        raise ConflictError(message=message, details=details, response_body=response_body)
    elif status_code >= 500:
        raise ServerError(
            message=message,
            status_code=status_code,
            details=details,
            response_body=response_body,
        )
    else:
        raise APIError(
            message=message,
            status_code=status_code,
            error_type=error_type,
            details=details,
            response_body=response_body,
        )


def _calculate_backoff(attempt: int, base: float = DEFAULT_RETRY_BACKOFF_BASE) -> float:
    """Calculate exponential backoff delay for retry attempts.

    Uses base * 2^attempt, capped at DEFAULT_RETRY_BACKOFF_MAX seconds.

    Args:
        attempt: The retry attempt number (0-indexed).
        base: Base delay in seconds.

    Returns:
        The delay in seconds before the next retry.
    """
    delay = base * (2 ** attempt)
    return min(delay, DEFAULT_RETRY_BACKOFF_MAX)


def _auth_headers(token: str | None, path: str) -> dict[str, str]:
    if not token:
        raise AuthenticationError("No authentication token available", path=path)
    return {"Authorization": f"Bearer {token}"}


def _clean_params(params: dict[str, Any] | None) -> dict[str, Any] | None:
    if not params:
        return params
    return {k: v for k, v in params.items() if v is not None}


def _parse_body(response: httpx.Response) -> Any:
    if response.content:
        return response.json()
    return None


class HTTPClient:
    """Synchronous HTTP client for making authenticated API requests.

    Wraps httpx.Client with bearer-token injection, error handling and
    retry logic.

    Attributes:
        base_url: The base URL for all API requests.
        timeout: Request timeout in seconds.
        retry_enabled: Whether to retry on transient failures.
        max_retries: Maximum number of retry attempts.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token_getter: TokenGetter | None = None,
        timeout: float = 30.0,
        retry_enabled: bool = False,
        max_retries: int = 3,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the HTTP client.

        Args:
            base_url: The base URL for all API requests.
            token_getter: Callable returning the current bearer token.
            timeout: Request timeout in seconds.
            retry_enabled: Whether to retry on transient failures.
            max_retries: Maximum number of retry attempts.
            transport: Custom transport (e.g., MockTransport for testing).
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_enabled = retry_enabled
        self.max_retries = max_retries
        self._token_getter = token_getter

        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        """Close the HTTP client and release resources."""
        self._client.close()

    def __enter__(self) -> "HTTPClient":
        """Enter context manager."""
        return self

    def __exit__(self, *args: Any) -> None:
        """Exit context manager and close client."""
        self.close()

    def _token(self, path: str) -> str | None:
        if self._token_getter is None:
            raise AuthenticationError(
                "API client not initialized with a token getter", path=path
            )
        return self._token_getter()

    def request(
        self,
        method: HttpMethod,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        files: list[tuple[str, Any]] | None = None,
    ) -> Any:
        """Make an authenticated HTTP request and return the parsed JSON body.

        The token is resolved before anything is sent; a missing token
        raises AuthenticationError without touching the network.

        Args:
            method: The HTTP method (GET, POST, etc.).
            path: The URL path (will be appended to base_url).
            params: Query parameters to include in the URL.
            json: JSON body to send with the request.
            data: Form fields for multipart requests.
            files: Multipart file parts as (field, file) tuples.

        Returns:
            The parsed JSON response body, or None for empty responses.

        Raises:
            AuthenticationError: If no bearer token is available.
            ConnectionError: If the connection fails.
            TimeoutError: If the request times out.
            APIError: If the server returns an error response.
        """
        headers = _auth_headers(self._token(path), path)
        url = f"{self.base_url}{path}"
        params = _clean_params(params)

        last_exception: Exception | None = None
        attempts = self.max_retries + 1 if self.retry_enabled else 1

        for attempt in range(attempts):
            try:
                response = self._client.request(
                    method=method,
                    url=path,
                    params=params,
                    json=json,
                    data=data,
                    files=files,
                    headers=headers,
                )

                if (
                    self.retry_enabled
                    and response.status_code in RETRYABLE_STATUS_CODES
                    and attempt < attempts - 1
                ):
                    time.sleep(_calculate_backoff(attempt))
                    continue

                _raise_for_status(response)
                return _parse_body(response)

            except httpx.ConnectError as e:
                last_exception = ConnectionError(
                    message=f"Failed to connect to {url}",
                    url=url,
                    cause=e,
                )
                if not self.retry_enabled or attempt >= attempts - 1:
                    raise last_exception from e
                time.sleep(_calculate_backoff(attempt))

            except httpx.TimeoutException as e:
                last_exception = TimeoutError(
                    message=f"Request to {url} timed out",
                    timeout=self.timeout,
                    url=url,
                )
                if not self.retry_enabled or attempt >= attempts - 1:
                    raise last_exception from e
                time.sleep(_calculate_backoff(attempt))

        if last_exception:
            raise last_exception
        raise RuntimeError("Unexpected error in request retry loop")

    def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """Make a GET request."""
        return self.request("GET", path, params=params)

    def post(
        self,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        files: list[tuple[str, Any]] | None = None,
    ) -> Any:
        """Make a POST request (JSON or multipart)."""
        return self.request("POST", path, params=params, json=json, data=data, files=files)

    def put(
        self,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Make a PUT request."""
        return self.request("PUT", path, params=params, json=json)

    def delete(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """Make a DELETE request."""
        return self.request("DELETE", path, params=params)


class AsyncHTTPClient:
    """Asynchronous HTTP client for making authenticated API requests.

    Wraps httpx.AsyncClient with bearer-token injection, error handling
    and retry logic. The token getter may be a plain function or a
    coroutine function.

    Attributes:
        base_url: The base URL for all API requests.
        timeout: Request timeout in seconds.
        retry_enabled: Whether to retry on transient failures.
        max_retries: Maximum number of retry attempts.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token_getter: AsyncTokenGetter | None = None,
        timeout: float = 30.0,
        retry_enabled: bool = False,
        max_retries: int = 3,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the async HTTP client.

        Args:
            base_url: The base URL for all API requests.
            token_getter: Callable (sync or async) returning the bearer token.
            timeout: Request timeout in seconds.
            retry_enabled: Whether to retry on transient failures.
            max_retries: Maximum number of retry attempts.
            transport: Custom transport (e.g., ASGITransport for testing).
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_enabled = retry_enabled
        self.max_retries = max_retries
        self._token_getter = token_getter

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
        )

    async def close(self) -> None:
        """Close the HTTP client and release resources."""
        await self._client.aclose()

    async def __aenter__(self) -> "AsyncHTTPClient":
        """Enter async context manager."""
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Exit async context manager and close client."""
        await self.close()

    async def _token(self, path: str) -> str | None:
        if self._token_getter is None:
            raise AuthenticationError(
                "API client not initialized with a token getter", path=path
            )
        token = self._token_getter()
        if inspect.isawaitable(token):
            token = await token
        return token

    async def request(
        self,
        method: HttpMethod,
        path: str,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        files: list[tuple[str, Any]] | None = None,
    ) -> Any:
        """Make an authenticated async HTTP request.

        Args:
            method: The HTTP method (GET, POST, etc.).
            path: The URL path (will be appended to base_url).
            params: Query parameters to include in the URL.
            json: JSON body to send with the request.
            data: Form fields for multipart requests.
            files: Multipart file parts as (field, file) tuples.

        Returns:
            The parsed JSON response body, or None for empty responses.

        Raises:
            AuthenticationError: If no bearer token is available.
            ConnectionError: If the connection fails.
            TimeoutError: If the request times out.
            APIError: If the server returns an error response.
        """
        headers = _auth_headers(await self._token(path), path)
        url = f"{self.base_url}{path}"
        params = _clean_params(params)

        last_exception: Exception | None = None
        attempts = self.max_retries + 1 if self.retry_enabled else 1

        for attempt in range(attempts):
            try:
                response = await self._client.request(
                    method=method,
                    url=path,
                    params=params,
                    json=json,
                    data=data,
                    files=files,
                    headers=headers,
                )

                if (
                    self.retry_enabled
                    and response.status_code in RETRYABLE_STATUS_CODES
                    and attempt < attempts - 1
                ):
                    await asyncio.sleep(_calculate_backoff(attempt))
                    continue

                _raise_for_status(response)
                return _parse_body(response)

            except httpx.ConnectError as e:
                last_exception = ConnectionError(
                    message=f"Failed to connect to {url}",
                    url=url,
                    cause=e,
                )
                if not self.retry_enabled or attempt >= attempts - 1:
                    raise last_exception from e
                await asyncio.sleep(_calculate_backoff(attempt))

            except httpx.TimeoutException as e:
                last_exception = TimeoutError(
                    message=f"Request to {url} timed out",
                    timeout=self.timeout,
                    url=url,
                )
                if not self.retry_enabled or attempt >= attempts - 1:
                    raise last_exception from e
                await asyncio.sleep(_calculate_backoff(attempt))

        if last_exception:
            raise last_exception
        raise RuntimeError("Unexpected error in request retry loop")

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """Make an async GET request."""
        return await self.request("GET", path, params=params)

    async def post(
        self,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        files: list[tuple[str, Any]] | None = None,
    ) -> Any:
        """Make an async POST request (JSON or multipart)."""
        return await self.request(
            "POST", path, params=params, json=json, data=data, files=files
        )

    async def put(
        self,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Make an async PUT request."""
        return await self.request("PUT", path, params=params, json=json)

    async def delete(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """Make an async DELETE request."""
        return await self.request("DELETE", path, params=params)
