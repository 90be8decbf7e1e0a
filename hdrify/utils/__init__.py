"""
Utilities module - Shared helper functions.

This module provides:
- Source clip probing and preview frames (OpenCV)
"""

from hdrify.utils.probe import (
    VideoProperties,
    get_video_properties,
    read_preview_frame,
    preview_from_bytes,
)

__all__ = [
    "VideoProperties",
    "get_video_properties",
    "read_preview_frame",
    "preview_from_bytes",
]
