"""
Pytest configuration and fixtures for feedicons tests.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock

import httpx
import pytest

from feedicons.config.settings import Settings
from tests.fakes import FakeWeb, make_image_bytes


@pytest.fixture
def png_bytes() -> bytes:
    """A valid 16x16 PNG."""
    return make_image_bytes()


@pytest.fixture
def fake_web() -> FakeWeb:
    return FakeWeb()


@pytest.fixture
def mock_client(fake_web: FakeWeb) -> AsyncMock:
    """httpx client whose GETs are served by ``fake_web``."""
    client = AsyncMock(spec=httpx.AsyncClient)
    client.get.side_effect = fake_web.get
    return client


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Settings pointing at a temporary store."""
    return Settings(
        cache_dir=tmp_path / "favicons",
        request_timeout=2.0,
        max_workers=2,
        max_favicon_bytes=64 * 1024,
        log_level="DEBUG",
    )
