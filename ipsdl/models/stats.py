"""
Dataclass for tracking download session statistics.
"""

import time
from dataclasses import dataclass, field


@dataclass
class DownloadStats:
    """Tracks statistics for a download session."""

    files_downloaded: int = 0
    files_skipped_exists: int = 0
    records_failed: int = 0
    records_broken: int = 0
    total_size_downloaded: int = 0
    started_at: float = field(default_factory=time.monotonic, repr=False)

    def record_download(self, size: int) -> None:
        self.files_downloaded += 1
        self.total_size_downloaded += size

    def record_skip(self) -> None:
        self.files_skipped_exists += 1

    @property
    def elapsed_seconds(self) -> float:
        return time.monotonic() - self.started_at
