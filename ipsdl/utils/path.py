"""
Utilities for handling URLs, IDs and file names received from the board.
"""

import logging
import re
from pathlib import Path
from typing import Optional
from urllib.parse import parse_qs, urlsplit

from pathvalidate import sanitize_filename

from ipsdl.exceptions import InvalidArgumentError

log = logging.getLogger(__name__)

_SESSION_PARAM_REGEX = re.compile(r"(?<=[?&])s=[0-9a-f]+&?", re.IGNORECASE)
_LEADING_DIGITS_REGEX = re.compile(r"^\d+")
_QUOTED_FILENAME_REGEX = re.compile(r'filename="([^"]+)"', re.IGNORECASE)


def strip_session_param(url: str) -> str:
    """Removes the `s=<hex>` session ID the board appends to links for guests."""
    return _SESSION_PARAM_REGEX.sub("", url).rstrip("?&")


def parse_id_from_url(url: str, param: Optional[str] = None) -> int:
    """
    Parses a numeric ID from a board URL.

    Supports both URL styles: query parameters (`index.php?showcat=12`) when
    `param` is given, and friendly URLs whose last path segment starts with the
    ID (`/files/file/123-some-title/`).

    Raises:
        InvalidArgumentError: If no ID can be found.
    """
    parts = urlsplit(url)
    if param:
        values = parse_qs(parts.query).get(param)
        if values and values[0].isdigit():
            return int(values[0])

    segments = [s for s in parts.path.split("/") if s]
    if segments:
        match = _LEADING_DIGITS_REGEX.match(segments[-1])
        if match:
            return int(match.group(0))

    raise InvalidArgumentError(f'Cannot parse ID from "{url}".')


def filename_from_disposition(header: str) -> str:
    """
    Extracts the file name from a Content-Disposition header.

    Malformed headers fall back to everything after "filename", with
    whitespace replaced by dots and all other non-word characters dropped.
    """
    match = _QUOTED_FILENAME_REGEX.search(header)
    if match:
        filename = match.group(1)
    else:
        index = header.lower().find("filename")
        filename = header[index + len("filename") :] if index >= 0 else header
        filename = re.sub(r"\s", ".", filename.strip())
        filename = re.sub(r"[^\w.\-]", "", filename)
        log.warning(
            f'Messed up Content-Disposition "{header}", taking whole string "{filename}".'
        )
    return sanitize_filename(filename, platform="universal") or "download"


def create_dir(directory_path: Path) -> None:
    """Creates a directory if it does not already exist."""
    directory_path.mkdir(parents=True, exist_ok=True)
