"""
Board Communication Layer.

This package handles all HTTP communication with the board: page fetches,
download requests, login/logout and request pacing.
"""

from .auth import (
    Authenticator,
    IPS3Authenticator,
    IPS4Authenticator,
    get_authenticator,
)
from .rate_limiter import RateLimiter
from .session import (
    BinaryDownload,
    BoardSession,
    DownloadResponse,
    FormResponse,
    TextDownload,
)

__all__ = [
    "Authenticator",
    "BinaryDownload",
    "BoardSession",
    "DownloadResponse",
    "FormResponse",
    "IPS3Authenticator",
    "IPS4Authenticator",
    "RateLimiter",
    "TextDownload",
    "get_authenticator",
]
