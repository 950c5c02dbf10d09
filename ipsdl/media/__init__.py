"""
File Layer.

This package is responsible for writing downloaded streams to disk.
"""

from .streamer import FileStreamer

__all__ = ["FileStreamer"]
