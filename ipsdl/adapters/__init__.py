"""
Markup Adapters.

One adapter per supported board version, each translating rendered pages
into catalog models.
"""

from ipsdl.models.config import BoardVersion

from .base import Document, MarkupAdapter, html_to_markdown
from .ips3 import IPS3Adapter
from .ips4 import IPS4Adapter, parse_page_count


def get_adapter(version: BoardVersion) -> MarkupAdapter:
    """Returns the markup adapter matching the board version."""
    adapters: dict[BoardVersion, type[MarkupAdapter]] = {
        BoardVersion.IPS3: IPS3Adapter,
        BoardVersion.IPS4: IPS4Adapter,
    }
    return adapters[BoardVersion(version)]()


__all__ = [
    "Document",
    "IPS3Adapter",
    "IPS4Adapter",
    "MarkupAdapter",
    "get_adapter",
    "html_to_markdown",
    "parse_page_count",
]
