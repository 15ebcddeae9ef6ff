"""Exception types raised by the live notifier.

Fatal errors (bad configuration, a token endpoint that does not hand out a
usable credential) abort the run. Platform query errors are split into
transport and parse failures; the HTTP status on ``TransportError`` decides
whether a re-authentication is attempted.
"""

from typing import Optional


class LiveNotifierError(Exception):
    """Base class for all live notifier errors."""


class ConfigError(LiveNotifierError):
    """Configuration file is missing required values or cannot be parsed."""


class AuthenticationError(LiveNotifierError):
    """The token endpoint did not return a valid credential."""


class PlatformAPIError(LiveNotifierError):
    """A Helix API call failed."""


class TransportError(PlatformAPIError):
    """Request failed in transit or returned a non-success status.

    Attributes:
        status: HTTP status code, or None if no response was received
    """

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status

    @property
    def is_unauthorized(self) -> bool:
        """True if the platform rejected the bearer token."""
        return self.status == 401


class ParseError(PlatformAPIError):
    """Response body could not be parsed into the expected shape."""

    def __init__(self, detail: str):
        super().__init__(f"Failed to parse response: {detail}")
        self.detail = detail
