"""
Enums for feedicons models.
"""

from __future__ import annotations

from enum import Enum


class FaviconState(str, Enum):
    """Resolution state of a single favicon URL."""

    UNRESOLVED = "unresolved"
    CHECKING_DISK = "checking_disk"
    CHECKING_NETWORK = "checking_network"
    RESOLVED = "resolved"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Whether no further work will happen for this URL."""
        return self in (FaviconState.RESOLVED, FaviconState.FAILED)
