"""
HTTP session for a board, with anonymous and authenticated page fetches and
classification of download responses into binary streams or text pages.
"""

import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

import aiohttp
from bs4 import BeautifulSoup

from ipsdl.exceptions import StatusError
from ipsdl.utils.path import filename_from_disposition

log = logging.getLogger(__name__)

_DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Accept-Encoding": "gzip, deflate",
}


@dataclass
class FormResponse:
    """The outcome of a form post. Redirects are not followed."""

    status: int
    body: str
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class TextDownload:
    """A download URL answered with a page instead of a file."""

    status: int
    body: str
    url: str


class BinaryDownload:
    """
    A download URL answered with a file. The body is left unread until
    `iter_chunks()` is consumed, so it can still be aborted with `close()`.
    """

    def __init__(self, response: aiohttp.ClientResponse, filename: str):
        self._response = response
        self.filename = filename

    async def iter_chunks(self, chunk_size: int) -> AsyncIterator[bytes]:
        async for chunk in self._response.content.iter_chunked(chunk_size):
            yield chunk

    def close(self) -> None:
        self._response.close()


DownloadResponse = Union[BinaryDownload, TextDownload]


class BoardSession:
    """
    Async HTTP client for one board.

    Anonymous requests go through a session without cookies. Authenticated
    requests share a cookie jar that is persisted to disk, so a login
    survives restarts until `logout` is called.
    """

    def __init__(
        self,
        base_url: str,
        cookie_path: Optional[Path] = None,
        timeout_seconds: float = 60,
    ):
        """
        Initializes the session.

        Args:
            base_url: Board URL without `/index.php` and without trailing slash.
            cookie_path: Where to persist the authenticated cookie jar.
            timeout_seconds: Timeout for page requests. Downloads have no total timeout.
        """
        self.base_url = base_url.rstrip("/")
        self.cookie_path = cookie_path
        self._timeout_seconds = timeout_seconds
        self._session: Optional[aiohttp.ClientSession] = None
        self._anonymous_session: Optional[aiohttp.ClientSession] = None

    async def _initialize_session(self) -> None:
        """Ensures active aiohttp sessions are available."""
        if self._session is None or self._session.closed:
            cookie_jar = aiohttp.CookieJar()
            if self.cookie_path and self.cookie_path.is_file():
                try:
                    cookie_jar.load(self.cookie_path)
                    log.debug(f"Loaded cookies from {self.cookie_path}")
                except (OSError, EOFError, ValueError) as e:
                    log.warning(f"[yellow]Could not load cookies, starting fresh:[/] {e}")
            self._session = aiohttp.ClientSession(
                cookie_jar=cookie_jar,
                headers=_DEFAULT_HEADERS,
                timeout=aiohttp.ClientTimeout(total=None, sock_connect=15, sock_read=90),
            )
        if self._anonymous_session is None or self._anonymous_session.closed:
            self._anonymous_session = aiohttp.ClientSession(
                cookie_jar=aiohttp.DummyCookieJar(),
                headers=_DEFAULT_HEADERS,
                timeout=aiohttp.ClientTimeout(total=self._timeout_seconds, connect=15),
            )

    def absolute_url(self, url: str) -> str:
        """Prefixes board-relative paths with the board URL."""
        if url.startswith("/"):
            return self.base_url + url
        if url.startswith(("http://", "https://")):
            return url
        return f"{self.base_url}/{url}"

    async def fetch_text(self, url: str, authenticated: bool = False) -> str:
        """
        Performs a GET request and returns the body.

        Raises:
            StatusError: If the response is not successful.
        """
        await self._initialize_session()
        uri = self.absolute_url(url)
        session = self._session if authenticated else self._anonymous_session
        log.info(f"--> GET {uri}{' (authenticated)' if authenticated else ''}")
        async with session.get(uri) as r:
            if not 200 <= r.status < 300:
                raise StatusError(r.status, uri)
            return await r.text(errors="replace")

    async def fetch_page(self, url: str) -> BeautifulSoup:
        """Fetches and parses a page as anonymous."""
        return BeautifulSoup(await self.fetch_text(url), "html.parser")

    async def fetch_page_authenticated(self, url: str) -> BeautifulSoup:
        """Fetches and parses a page with the current session, if logged."""
        return BeautifulSoup(
            await self.fetch_text(url, authenticated=True), "html.parser"
        )

    async def _request_raw(
        self, method: str, url: str, data: Optional[dict[str, str]] = None
    ) -> FormResponse:
        await self._initialize_session()
        uri = self.absolute_url(url)
        log.info(f"--> {method} {uri}")
        async with self._session.request(
            method, uri, data=data, allow_redirects=False
        ) as r:
            body = await r.text(errors="replace")
            return FormResponse(status=r.status, body=body, headers=dict(r.headers))

    async def post_form(self, url: str, data: dict[str, str]) -> FormResponse:
        """Posts a form with the current session and does not follow redirects."""
        return await self._request_raw("POST", url, data)

    async def get_raw(self, url: str) -> FormResponse:
        """GETs a URL with the current session and does not follow redirects."""
        return await self._request_raw("GET", url)

    async def open_download(self, url: str) -> DownloadResponse:
        """
        Requests a download URL with the current session.

        Download URLs may randomly return a confirmation page instead of the
        binary stream. A 200 with a Content-Disposition header is returned as
        an unread `BinaryDownload`; anything else is buffered into a
        `TextDownload`.
        """
        await self._initialize_session()
        uri = self.absolute_url(url)
        log.info(f"--> GET {uri}")
        response = await self._session.get(uri, allow_redirects=True)
        disposition = response.headers.get("Content-Disposition")
        if response.status == 200 and disposition:
            return BinaryDownload(response, filename_from_disposition(disposition))

        try:
            body = await response.text(errors="replace")
        finally:
            response.release()
        return TextDownload(status=response.status, body=body, url=str(response.url))

    def save_cookies(self) -> None:
        """Persists the authenticated cookie jar, if a path was configured."""
        if not self.cookie_path or self._session is None:
            return
        try:
            self.cookie_path.parent.mkdir(parents=True, exist_ok=True)
            self._session.cookie_jar.save(self.cookie_path)
        except OSError as e:
            log.warning(f"[yellow]Could not save cookies:[/] {e}")

    async def close(self) -> None:
        """Saves cookies and gracefully closes the aiohttp sessions."""
        if self._session and not self._session.closed:
            self.save_cookies()
            await self._session.close()
        if self._anonymous_session and not self._anonymous_session.closed:
            await self._anonymous_session.close()

    async def __aenter__(self) -> "BoardSession":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
