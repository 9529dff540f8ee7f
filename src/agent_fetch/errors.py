"""Exception hierarchy for the fetch pipeline."""

from __future__ import annotations


class FetchError(Exception):
    """Base exception for fetch errors."""

    pass


class UnsupportedModeError(FetchError):
    """Raised when the configured fetch mode is unknown."""

    def __init__(self, mode: str) -> None:
        self.mode = mode
        super().__init__(f"unsupported mode: {mode}")


class InvalidURLError(FetchError):
    """Raised when a URL fails validation before any network access."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        super().__init__(f"invalid URL: {url!r}: {reason}")


class HTTPStatusError(FetchError):
    """Raised when the server answers with a status code >= 400.

    In ``auto`` mode this is the one error that triggers a fallback to the
    browser renderer.
    """

    def __init__(self, status_code: int, reason: str, final_url: str) -> None:
        self.status_code = status_code
        self.reason = reason
        self.final_url = final_url
        status = f"{status_code} {reason}" if reason else str(status_code)
        super().__init__(f"unexpected HTTP status code: {status} ({final_url})")


class NoContentError(FetchError):
    """Raised when every attempted strategy produced empty output."""

    def __init__(self, message: str = "no content could be extracted") -> None:
        super().__init__(message)


class TransportError(FetchError):
    """Raised for network level failures (DNS, connect, read, timeout)."""

    pass


class RenderError(FetchError):
    """Raised when the headless browser fails to produce a document."""

    pass


class BrowserNotFoundError(FetchError):
    """Raised when no usable Chrome/Chromium executable can be located."""

    pass
