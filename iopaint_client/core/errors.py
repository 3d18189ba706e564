from typing import Optional

TRANSPORT_ERROR_PREFIX = "Something went wrong: "


class IOPaintClientError(Exception):
    """Base class for every error raised by the IOPaint client."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BackendError(IOPaintClientError):
    """
    The backend answered with a non-success status.
    The message is the response body, verbatim.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransportError(IOPaintClientError):
    """The request never completed (connection refused, timeout, ...)."""

    def __init__(self, cause: Exception):
        super().__init__(f"{TRANSPORT_ERROR_PREFIX}{describe_exception(cause)}")


class ResponseFormatError(IOPaintClientError):
    """A success response whose body is not what the endpoint returns."""


def describe_exception(exc: Exception) -> str:
    # httpx exceptions raised by the connection pool often carry no message
    text = str(exc)
    if not text:
        return type(exc).__name__
    return f"{type(exc).__name__}: {text}"
