"""
Resolves a catalog record into downloaded files.

A download runs through a small state machine: the record's overview page
yields the download link, which answers either with the file itself or with
a confirmation page listing the files of the record. Each file request may be
answered with a quota, concurrency or wait notice instead of a file.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

from bs4 import BeautifulSoup
from rich.markup import escape

from ipsdl.adapters.base import MarkupAdapter
from ipsdl.api.auth import Authenticator
from ipsdl.api.rate_limiter import RateLimiter
from ipsdl.api.session import BinaryDownload, BoardSession, DownloadResponse, TextDownload
from ipsdl.exceptions import (
    AuthenticationError,
    ConcurrencyLimitError,
    ExtractionError,
    FileNotAvailableError,
    QuotaExceededError,
    StatusError,
    ThrottledError,
    UnknownResponseError,
)
from ipsdl.media.streamer import FileStreamer
from ipsdl.models.catalog import CatalogRecord, FileEntry
from ipsdl.storage.cache import RecordCache

log = logging.getLogger(__name__)

QUOTA_PATTERN = re.compile(
    r"You have exceeded the maximum number of downloads allotted to you for the day"
)
CONCURRENCY_PATTERN = re.compile(
    r"You may not download any more files until your other downloads are complete"
)
WAIT_PATTERN = re.compile(r"You must wait (\d+) seconds before you can download this file")


class ResolutionState(Enum):
    OVERVIEW = "overview"
    NEEDS_LOGIN = "needs_login"
    CONFIRMATION = "confirmation"
    BINARY = "binary"
    DONE = "done"
    FAILED = "failed"


@dataclass
class DownloadOptions:
    """
    Options for downloading records. Without `filename` or `all_files`, the
    first file of a multi-file record is picked. Delays are in milliseconds.
    """

    filename: Optional[str] = None
    all_files: bool = False
    min_delay: Optional[int] = None
    max_delay: Optional[int] = None


class DownloadResolver:
    """Drives a single record from its overview page to files on disk."""

    def __init__(
        self,
        session: BoardSession,
        adapter: MarkupAdapter,
        authenticator: Authenticator,
        cache: RecordCache,
        streamer: FileStreamer,
        rate_limiter: RateLimiter,
        debug_dir: Optional[Path] = None,
    ):
        self.session = session
        self.adapter = adapter
        self.authenticator = authenticator
        self.cache = cache
        self.streamer = streamer
        self.rate_limiter = rate_limiter
        self.debug_dir = debug_dir
        self.state = ResolutionState.OVERVIEW

    def _transition(self, state: ResolutionState) -> None:
        log.debug(f"Resolver state: {self.state.value} -> {state.value}")
        self.state = state

    async def resolve(
        self,
        record: CatalogRecord,
        dest_folder: Path,
        options: Optional[DownloadOptions] = None,
    ) -> list[Path]:
        """
        Downloads the file(s) of `record` into `dest_folder`.

        The record is enriched in place with its description, info, file
        listing and last downloaded filename, and the cache is saved at the
        checkpoints where enrichment happens.

        Returns:
            The paths of the downloaded files, or an empty list when the
            board no longer offers the record.

        Raises:
            AuthenticationError: If the overview still needs a login after logging in.
            QuotaExceededError: If the daily quota is exhausted.
            ConcurrencyLimitError: If other downloads must finish first.
            ThrottledError: If the board still asks to wait after one retry.
            FileNotAvailableError: If the requested filename is not listed.
            UnknownResponseError: If a file request answers with an unknown page.
        """
        options = options or DownloadOptions()
        try:
            return await self._resolve(record, Path(dest_folder), options)
        except Exception:
            self._transition(ResolutionState.FAILED)
            raise

    async def _resolve(
        self, record: CatalogRecord, dest_folder: Path, options: DownloadOptions
    ) -> list[Path]:
        download_url = await self.resolve_download_url(record)
        self.cache.save()

        self._transition(ResolutionState.CONFIRMATION)
        response = await self._request(download_url)
        if isinstance(response, BinaryDownload):
            return [await self._stream(record, response, dest_folder)]

        if response.status == 404:
            log.warning(
                f"[yellow]'{escape(record.title)}' is not available anymore, skipping.[/]"
            )
            record.broken = True
            self._transition(ResolutionState.DONE)
            return []
        if response.status != 200:
            raise StatusError(
                response.status,
                response.url,
                f"Status code is {response.status} when downloading the"
                f" confirmation page of '{record.title}'.",
            )

        listing = self.adapter.extract_file_listing(
            BeautifulSoup(response.body, "html.parser")
        )
        if not listing:
            raise ExtractionError("Could not parse file names from download page.")
        record.listing = listing
        self.cache.save()

        paths = []
        for entry in self.select_files(listing, options):
            paths.append(await self._download_entry(record, entry, dest_folder))
        self._transition(ResolutionState.DONE)
        return paths

    async def resolve_download_url(self, record: CatalogRecord) -> str:
        """
        Fetches the overview page of `record`, logging in once if the board
        asks for it, and returns the download link. The description and info
        block found on the page are written to the record.
        """
        self._transition(ResolutionState.OVERVIEW)
        doc = await self.session.fetch_page_authenticated(record.url)
        if self.adapter.needs_login(doc):
            self._transition(ResolutionState.NEEDS_LOGIN)
            await self.authenticator.login()
            doc = await self.session.fetch_page_authenticated(record.url)
            if self.adapter.needs_login(doc):
                raise AuthenticationError(
                    "The board still asks for a login after logging in."
                )
            self._transition(ResolutionState.OVERVIEW)

        download_url = self.adapter.extract_download_link(doc)
        details = self.adapter.extract_record_details(doc)
        if details.description:
            record.description = details.description
        if details.info:
            record.info = details.info
        return download_url

    @staticmethod
    def select_files(listing: list[FileEntry], options: DownloadOptions) -> list[FileEntry]:
        if options.all_files:
            return list(listing)
        if options.filename:
            match = next((f for f in listing if f.filename == options.filename), None)
            if match is None:
                available = ", ".join(f.filename for f in listing)
                raise FileNotAvailableError(
                    f'File "{options.filename}" is not available.'
                    f" Available files: [ {available} ]."
                )
            return [match]
        return listing[:1]

    async def _request(self, url: str) -> DownloadResponse:
        """
        Requests a download URL. Quota and concurrency notices fail at once;
        a wait notice is honored exactly once before retrying.
        """
        waited = False
        while True:
            response = await self.session.open_download(url)
            if isinstance(response, BinaryDownload):
                return response

            if QUOTA_PATTERN.search(response.body):
                raise QuotaExceededError("Number of daily downloads exceeded.")
            if CONCURRENCY_PATTERN.search(response.body):
                raise ConcurrencyLimitError(
                    "Too many simultaneous downloads, wait for the others to complete."
                )
            match = WAIT_PATTERN.search(response.body)
            if not match:
                return response
            if waited:
                raise ThrottledError(f"Still asked to wait after retrying {url}.")

            delay_ms = int(match.group(1)) * 1000
            log.info(f"[yellow]Board asks to wait, retrying in {delay_ms}ms...[/]")
            await self.rate_limiter.wait(delay_ms)
            waited = True

    async def _download_entry(
        self, record: CatalogRecord, entry: FileEntry, dest_folder: Path
    ) -> Path:
        log.info(f"Downloading '{escape(entry.filename)}' of '{escape(record.title)}'.")
        response = await self._request(entry.url)
        if isinstance(response, BinaryDownload):
            return await self._stream(record, response, dest_folder)

        dump_path = self._dump(record, response)
        if response.status != 200:
            raise StatusError(response.status, response.url)
        raise UnknownResponseError(
            f"Unknown response when downloading '{record.title}'"
            + (f", see {dump_path}." if dump_path else "."),
            dump_path,
        )

    async def _stream(
        self, record: CatalogRecord, response: BinaryDownload, dest_folder: Path
    ) -> Path:
        self._transition(ResolutionState.BINARY)
        record.filename = response.filename
        path = await self.streamer.save(response, response.filename, dest_folder)
        self._transition(ResolutionState.DONE)
        return path

    def _dump(self, record: CatalogRecord, response: TextDownload) -> Optional[str]:
        debug_dir = self.debug_dir or Path.cwd()
        path = debug_dir / f"download-debug-{record.id}.html"
        try:
            debug_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(response.body, encoding="utf-8")
        except OSError as e:
            log.warning(f"[yellow]Could not write {path}:[/] {e}")
            return None
        log.warning(f"[yellow]Dumped unknown download response to {path}.[/]")
        return str(path)
