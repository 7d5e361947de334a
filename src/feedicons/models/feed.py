"""
Feed model.

Feeds are owned by the surrounding application; the favicon pipeline only
reads the two URLs that lead to a favicon.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Feed(BaseModel):
    """Read-only view of a feed as seen by the favicon pipeline."""

    model_config = ConfigDict(frozen=True)

    feed_id: str = Field(..., min_length=1, description="Stable feed identifier")
    favicon_url: Optional[str] = Field(
        default=None, description="Favicon URL supplied by the feed itself"
    )
    home_page_url: Optional[str] = Field(
        default=None, description="Home page of the site publishing the feed"
    )

    @field_validator("favicon_url", "home_page_url")
    @classmethod
    def blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        """Treat blank URLs as missing."""
        if v is None:
            return None
        v = v.strip()
        return v or None
