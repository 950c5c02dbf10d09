"""
Persists download streams to disk.
"""

import asyncio
import logging
import os
import time
from pathlib import Path
from typing import Optional

import aiofiles
import aiohttp

from ipsdl.api.session import BinaryDownload
from ipsdl.exceptions import StreamError
from ipsdl.models.stats import DownloadStats
from ipsdl.utils.formatting import format_size
from ipsdl.utils.path import create_dir

log = logging.getLogger(__name__)


class FileStreamer:
    """Writes a binary download to a destination folder, chunk by chunk."""

    CHUNK_SIZE = 131072  # 128 KB

    def __init__(self, stats: Optional[DownloadStats] = None):
        self.stats = stats

    async def save(
        self, stream: BinaryDownload, filename: str, dest_folder: Path
    ) -> Path:
        """
        Streams to `dest_folder/filename` and returns the path.

        An existing file of that name is never rewritten: the incoming stream
        is aborted and the existing path returned. Data goes to a `.part` file
        first and is renamed once complete.

        Raises:
            StreamError: If reading the stream or writing the file fails.
        """
        dest = Path(dest_folder) / filename
        if dest.exists():
            stream.close()
            log.info(f"[yellow]○ Skipping:[/] [dim]{dest.name}[/dim] (already exists)")
            if self.stats:
                self.stats.record_skip()
            return dest

        temp_path = dest.with_name(f"{dest.name}.part")
        started = time.monotonic()
        size = 0
        log.info(f"Streaming to {dest}...")
        try:
            create_dir(dest.parent)
            async with aiofiles.open(temp_path, "wb") as f:
                async for chunk in stream.iter_chunks(self.CHUNK_SIZE):
                    await f.write(chunk)
                    size += len(chunk)
            os.replace(temp_path, dest)
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            raise StreamError(f"Failed to save '{filename}': {e}") from e
        finally:
            stream.close()
            if temp_path.exists():
                try:
                    os.remove(temp_path)
                except OSError:
                    pass

        elapsed = time.monotonic() - started
        log.info(
            f"[green]✓ Downloaded[/] {format_size(size)} to {dest} in {elapsed:.1f} seconds."
        )
        if self.stats:
            self.stats.record_download(size)
        return dest
