"""
ipsdl: browse and download the file catalog of Invision Power boards.
"""

__version__ = "1.0.0"

from ipsdl.core import DownloadOptions, Downloads, FetchOptions  # noqa: E402
from ipsdl.models import BoardConfig, BoardVersion, CatalogRecord, Category  # noqa: E402

__all__ = [
    "BoardConfig",
    "BoardVersion",
    "CatalogRecord",
    "Category",
    "DownloadOptions",
    "Downloads",
    "FetchOptions",
    "__version__",
]
