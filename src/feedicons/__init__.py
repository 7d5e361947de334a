"""
feedicons - Favicon resolution and caching for feed readers.

Resolves the favicon for a feed from memory, an on-disk content-addressed
store, or the network, and announces newly available images to subscribers
on the event loop that owns the downloader.
"""

from __future__ import annotations

__version__ = "0.3.0"
__license__ = "AGPL-3.0-or-later"

__all__ = ["__version__", "__license__"]
