"""
HTTP-facing error types.

Every failure of the read or write path is raised as one of these and rendered
by FastAPI's default ``HTTPException`` handler, so no request ever crashes the
process.
"""

from typing import Optional

from fastapi import HTTPException


class URLNotConfiguredError(HTTPException):
    """The stored URL is empty at read time."""

    def __init__(self):
        super().__init__(status_code=404, detail="No URL has been set")


class UnauthorizedError(HTTPException):
    """A write was attempted without the configured password."""

    def __init__(self):
        super().__init__(
            status_code=401,
            detail="Unauthorized: Valid password required to update URL",
            headers={"WWW-Authenticate": "Bearer"},
        )


class InvalidURLBodyError(HTTPException):
    def __init__(self, detail: str = "Request body is not valid UTF-8"):
        super().__init__(status_code=400, detail=detail)


class UpstreamFailureError(HTTPException):
    """The proxied fetch of the stored URL failed."""

    def __init__(self, reason: str, status_code: int = 502):
        super().__init__(
            status_code=status_code, detail=f"Error proxying request: {reason}"
        )


class UpstreamTimeoutError(UpstreamFailureError):
    def __init__(self, reason: Optional[str] = None):
        super().__init__(reason or "upstream timed out", status_code=504)


class RelayAbortedError(Exception):
    """Raised mid-relay, after headers are on the wire; the response is aborted."""


class UpstreamBodyTooLargeError(RelayAbortedError):
    pass


class UpstreamRelayTimeoutError(RelayAbortedError):
    pass
