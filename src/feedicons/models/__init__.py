"""
Data models module for feedicons.

Defines Pydantic models for feeds, decoded favicons, notification payloads
and store statistics.
"""

from __future__ import annotations

from .enums import FaviconState
from .favicon import FaviconAvailable, FaviconImage, StoreStats
from .feed import Feed

__all__ = [
    "Feed",
    "FaviconAvailable",
    "FaviconImage",
    "FaviconState",
    "StoreStats",
]
