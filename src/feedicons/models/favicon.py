"""
Favicon image and notification models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class FaviconImage(BaseModel):
    """
    A favicon whose bytes decoded successfully at least once.

    Attributes
    ----------
    data : bytes
        The original, undecoded image bytes (as stored on disk).
    format : str
        Pillow format name, e.g. ``"PNG"`` or ``"ICO"``.
    width : int
        Width in pixels.
    height : int
        Height in pixels.
    """

    model_config = ConfigDict(frozen=True)

    data: bytes = Field(..., repr=False)
    format: str
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)

    @property
    def size(self) -> tuple[int, int]:
        """Image dimensions as ``(width, height)``."""
        return self.width, self.height


class FaviconAvailable(BaseModel):
    """Payload of the ``FaviconDidBecomeAvailable`` notification."""

    model_config = ConfigDict(frozen=True)

    favicon_url: str
    image: FaviconImage
    home_page_url: Optional[str] = None


class StoreStats(BaseModel):
    """Statistics about the on-disk favicon store.

    Attributes
    ----------
    entry_count : int
        Number of stored blobs.
    total_size_bytes : int
        Total disk usage of all blobs.
    oldest_entry : datetime | None
        Modification time of the oldest blob.
    newest_entry : datetime | None
        Modification time of the newest blob.
    """

    entry_count: int
    total_size_bytes: int
    oldest_entry: datetime | None
    newest_entry: datetime | None
