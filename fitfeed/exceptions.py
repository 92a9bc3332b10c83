"""Exception hierarchy for the feed core.

Exception Hierarchy:
    FeedError (base)
    ├── NetworkError - A feed/page/like/profile call failed (wraps client errors)
    ├── DownloadError - An image could not be fetched into the disk cache
    └── ValidationError - A composer or cart action is missing required input

NetworkError and DownloadError are recoverable and reported at the smallest
scope possible (a store notice, a skipped prefetch). ValidationError blocks
the action locally and never reaches the network.
"""


class FeedError(Exception):
    """Base exception for all feed core errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


class NetworkError(FeedError):
    """A call to the OnlyFits API failed.

    Attributes:
        message: Human-readable error description.
        cause: The underlying client exception.
    """

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        self.cause = cause
        super().__init__(message)

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message


class DownloadError(FeedError):
    """A remote image could not be downloaded into the cache.

    Attributes:
        url: The image URL.
        status_code: HTTP status of the response, None for transport failures.
    """

    def __init__(self, message: str, url: str, status_code: int | None = None) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(message)

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.message} (url: {self.url}, status: {self.status_code})"
        return f"{self.message} (url: {self.url})"


class ValidationError(FeedError):
    """Local input validation failed.

    Attributes:
        field: The offending field (e.g. "title", "sizes"), if known.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)
