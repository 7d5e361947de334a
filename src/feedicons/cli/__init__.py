"""
CLI interface module for feedicons.

Provides a Typer-based command-line interface for resolving favicons and
inspecting the on-disk favicon store.
"""

from __future__ import annotations

__all__: list[str] = []
