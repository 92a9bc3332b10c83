"""Exception hierarchy for the OnlyFits API client.

This module defines all exceptions that can be raised by the OnlyFits client
library. The hierarchy allows catching specific error types or broader
categories as needed.

Exception Hierarchy:
    OnlyFitsClientError (base)
    ├── AuthenticationError - No bearer token available (nothing was sent)
    ├── ConnectionError - Network/connection failures
    ├── TimeoutError - Request timeout
    └── APIError - Server returned an error response
        ├── ValidationError (HTTP 422)
        ├── NotFoundError (HTTP 404)
        ├── ConflictError (HTTP 409)
        └── ServerError (HTTP 5xx)

Example:
    Catching specific errors::

        try:
            client.posts.like("post-1")
        except NotFoundError:
            # Post was deleted
            pass

    Catching all client errors::

        try:
            client.feed.get_feed()
        except OnlyFitsClientError as e:
            print(f"Client error: {e}")
"""

from typing import Any


class OnlyFitsClientError(Exception):
    """Base exception for all OnlyFits client errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
        """
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation of the error."""
        return self.message


class AuthenticationError(OnlyFitsClientError):
    """No bearer token is available for the request.

    Raised before any request is sent when the client has no token getter
    or the getter returns an empty token. The request never reaches the
    network.

    Attributes:
        message: Human-readable error description.
        path: The API path that was about to be requested.
    """

    def __init__(self, message: str, path: str | None = None) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            path: The API path that was about to be requested.
        """
        self.path = path
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation including the path if available."""
        if self.path:
            return f"{self.message} (path: {self.path})"
        return self.message


class ConnectionError(OnlyFitsClientError):
    """Failed to connect to the OnlyFits API.

    Attributes:
        message: Human-readable error description.
        url: The URL that failed to connect.
        cause: The underlying exception that caused the connection failure.
    """

    def __init__(
        self,
        message: str,
        url: str | None = None,
        cause: Exception | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            url: The URL that failed to connect.
            cause: The underlying exception that caused the failure.
        """
        self.url = url
        self.cause = cause
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation including URL if available."""
        if self.url:
            return f"{self.message} (url: {self.url})"
        return self.message


class TimeoutError(OnlyFitsClientError):
    """Request timed out.

    Attributes:
        message: Human-readable error description.
        timeout: The timeout value in seconds.
        url: The URL that timed out.
    """

    def __init__(
        self,
        message: str,
        timeout: float | None = None,
        url: str | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            timeout: The timeout value in seconds.
            url: The URL that timed out.
        """
        self.timeout = timeout
        self.url = url
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation including timeout if available."""
        extras = []
        if self.timeout is not None:
            extras.append(f"timeout: {self.timeout}s")
        if self.url:
            extras.append(f"url: {self.url}")
        if not extras:
            return self.message
        return f"{self.message} ({', '.join(extras)})"


class APIError(OnlyFitsClientError):
    """Server returned an error response.

    Base class for all API-level errors. Raised when the server returns
    an HTTP error status code (4xx or 5xx).

    Attributes:
        message: Human-readable error message.
        status_code: HTTP status code from the server.
        error_type: Error type/code from the response body (if available).
        details: Additional error details from the response (if available).
        response_body: Raw response body for debugging.
    """

    def __init__(
        self,
        message: str,
        status_code: int,
        error_type: str | None = None,
        details: dict[str, Any] | None = None,
        response_body: Any = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code from the server.
            error_type: Error type/code from the response body.
            details: Additional error details from the response.
            response_body: Raw response body for debugging.
        """
        self.status_code = status_code
        self.error_type = error_type
        self.details = details
        self.response_body = response_body
        super().__init__(message)

    def __str__(self) -> str:
        """Return string representation including status code."""
        if self.error_type:
            return f"[HTTP {self.status_code}] [{self.error_type}] {self.message}"
        return f"[HTTP {self.status_code}] {self.message}"


class ValidationError(APIError):
    """Request validation failed (HTTP 422).

    The details attribute typically contains field-level validation errors.
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        response_body: Any = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=422,
            error_type="validation_error",
            details=details,
            response_body=response_body,
        )


class NotFoundError(APIError):
    """Resource not found (HTTP 404).

    Raised for unknown post ids, user ids or profiles.
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        response_body: Any = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=404,
            error_type="not_found",
            details=details,
            response_body=response_body,
        )


class ConflictError(APIError):
    """State conflict (HTTP 409).

    Raised, for example, when a profile update asks for a username that is
    already taken.
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        response_body: Any = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=409,
            error_type="conflict",
            details=details,
            response_body=response_body,
        )


class ServerError(APIError):
    """Server-side error (HTTP 5xx).

    If retry is enabled, 502/503/504 responses are retried automatically
    before this is raised.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
        response_body: Any = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=status_code,
            error_type="server_error",
            details=details,
            response_body=response_body,
        )
