"""
Defines custom exceptions for the library to allow for more specific error handling.
"""


class IpsdlError(Exception):
    """Base exception for all library-specific errors."""


class InvalidArgumentError(IpsdlError):
    """Raised for malformed category references, unparseable IDs or bad options."""


class ExtractionError(IpsdlError):
    """
    Raised when expected markup is missing from a page.

    This signals a markup adapter mismatch with the board's version, not a
    transient fault, so it is never retried.
    """


class AuthenticationError(IpsdlError):
    """Raised when login fails due to bad credentials or missing session artifacts."""


class QuotaExceededError(IpsdlError):
    """Raised when the board reports that the daily download quota is used up."""


class ConcurrencyLimitError(IpsdlError):
    """Raised when the board refuses a download until other downloads complete."""


class ThrottledError(IpsdlError):
    """Raised when the board still asks to wait after the single allowed retry."""


class UnknownResponseError(IpsdlError):
    """Raised when a textual download response cannot be classified."""

    def __init__(self, message: str, dump_path: str | None = None):
        super().__init__(message)
        self.dump_path = dump_path


class StreamError(IpsdlError):
    """Raised when reading the download stream or writing the file fails."""


class StatusError(IpsdlError):
    """Raised when the server answers with an unexpected HTTP status."""

    def __init__(self, status: int, url: str, message: str | None = None):
        super().__init__(
            message or f"Unexpected status {status} when fetching {url}."
        )
        self.status = status
        self.url = url


class FileNotAvailableError(IpsdlError):
    """Raised when a requested file name is not among the files of a record."""


class ConfigurationError(IpsdlError):
    """Raised for issues related to configuration loading or validation."""
