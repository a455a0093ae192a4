"""
Domain specific exception hierarchy for the rtm_client package.
"""


class RtmClientError(Exception):
    """Base exception for all library errors."""


class ConfigurationError(RtmClientError):
    """Raised when required configuration or credentials are missing."""


class AuthenticationError(RtmClientError):
    """Raised when the frob/token handshake fails or returns unusable data."""


class InvalidPriorityError(RtmClientError, ValueError):
    """Raised when a task priority is outside N, 1, 2, 3."""

    def __init__(self, priority: str) -> None:
        super().__init__(f"Priority must be one of N, 1, 2, 3 (got '{priority}').")
        self.priority = priority


class ApiResponseError(RtmClientError):
    """Raised when a call to the RTM API does not produce a usable result."""

    def __init__(self, message: str, *, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


class ApiError(ApiResponseError):
    """Raised when the response envelope reports ``stat="fail"``."""

    def __init__(self, message: str, *, code: int | None = None) -> None:
        super().__init__(message, code=code)
        self.message = message

    def __str__(self) -> str:
        if self.code is None:
            return self.message
        return f"RTM API error {self.code}: {self.message}"


class HttpError(ApiResponseError):
    """Raised when the API answers with a non-2xx HTTP status."""

    def __init__(self, message: str, *, status: int) -> None:
        super().__init__(message, code=status)
        self.status = status


class RateLimitedError(HttpError):
    """Raised when the API answers 503 and the retry budget is exhausted."""

    def __init__(self, message: str = "RTM API rate limit exceeded (HTTP 503).") -> None:
        super().__init__(message, status=503)


class RequestTimeoutError(ApiResponseError, TimeoutError):
    """Raised when a request does not complete within its timeout."""

    def __init__(self, timeout: float) -> None:
        super().__init__(
            f"Request timed out after {timeout:g} seconds. This may indicate "
            "server overload, a network failure, rate limiting, or a proxy or "
            "firewall interfering with the connection."
        )
        self.timeout = timeout


class TransportError(ApiResponseError):
    """Raised when the HTTP request fails before a response is received."""


class TimelineCreationError(ApiResponseError):
    """Raised when a timeline cannot be created within its retry budget."""
