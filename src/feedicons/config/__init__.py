"""
Configuration management module for feedicons.

Handles application settings loaded from environment variables and
``.env`` files.
"""

from __future__ import annotations

__all__: list[str] = []
