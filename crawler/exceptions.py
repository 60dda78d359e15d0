# crawler/exceptions.py
from typing import Optional


class CrawlerError(Exception):
    """Base class for all crawler errors"""


class FetchError(CrawlerError):
    """Transport-level failure while fetching a URL"""

    error_kind = "network"
    retryable = True

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class NetworkError(FetchError):
    """Connection refused, DNS failure, reset"""


class FetchTimeoutError(NetworkError):
    """Request did not complete within its timeout"""


class ServerError(FetchError):
    """5xx response"""

    error_kind = "server"


class RateLimitError(FetchError):
    """429 response"""

    error_kind = "rate_limit"


class HttpClientError(FetchError):
    """4xx response other than 429; retrying will not help"""

    error_kind = "client"
    retryable = False


class CircuitOpenError(FetchError):
    """Domain circuit is open, request was never sent"""

    error_kind = "circuit_open"
    retryable = False


class ParseError(CrawlerError):
    """Payload could not be decoded or a record could not be extracted"""

    error_kind = "parse"

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class ValidationError(CrawlerError):
    """Record failed schema validation"""

    error_kind = "validation"


def is_retryable(exc: BaseException) -> bool:
    return isinstance(exc, FetchError) and exc.retryable
