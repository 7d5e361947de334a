"""
Unit tests for the resolve CLI command.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import typer
from typer.testing import CliRunner

from feedicons.cli.commands import resolve as resolve_module
from feedicons.config.settings import Settings
from feedicons.services.binary_store import key_for_url
from feedicons.services.downloader import FaviconDownloader
from tests.fakes import FakeWeb

test_resolve_app = typer.Typer()
test_resolve_app.command(name="resolve")(resolve_module.resolve)

runner = CliRunner()


def _patched_builder(settings: Settings, client: AsyncMock):
    def build(cache_dir: Path | None) -> FaviconDownloader:
        return FaviconDownloader(
            cache_dir or settings.cache_dir, settings=settings, client=client
        )

    return patch.object(resolve_module, "_build_downloader", side_effect=build)


class TestResolveCommand:
    """Unit tests for `feedicons resolve`."""

    def test_requires_a_source(self) -> None:
        result = runner.invoke(test_resolve_app, [])

        assert result.exit_code == 2
        assert "--favicon-url" in result.stdout

    def test_resolves_favicon_url(
        self,
        test_settings: Settings,
        mock_client: AsyncMock,
        fake_web: FakeWeb,
        png_bytes: bytes,
    ) -> None:
        fake_web.add("https://x.test/f.ico", 200, png_bytes)

        with _patched_builder(test_settings, mock_client):
            result = runner.invoke(
                test_resolve_app, ["--favicon-url", "https://x.test/f.ico"]
            )

        assert result.exit_code == 0
        assert "Resolved 1/1" in result.stdout
        assert "1 notification(s) posted" in result.stdout
        assert (
            test_settings.cache_dir / key_for_url("https://x.test/f.ico")[:2]
        ).is_dir()

    def test_resolves_home_page(
        self,
        test_settings: Settings,
        mock_client: AsyncMock,
        fake_web: FakeWeb,
        png_bytes: bytes,
    ) -> None:
        fake_web.add("https://y.test/", 200, "<html></html>")
        fake_web.add("https://y.test/favicon.ico", 200, png_bytes)

        with _patched_builder(test_settings, mock_client):
            result = runner.invoke(test_resolve_app, ["-p", "https://y.test/"])

        assert result.exit_code == 0
        assert "Resolved 1/1" in result.stdout

    def test_nothing_resolved_exits_1(
        self,
        test_settings: Settings,
        mock_client: AsyncMock,
        fake_web: FakeWeb,
    ) -> None:
        with _patched_builder(test_settings, mock_client):
            result = runner.invoke(
                test_resolve_app,
                ["-f", "https://x.test/f.ico", "-p", "https://y.test/"],
            )

        assert result.exit_code == 1
        assert "Resolved 0/2" in result.stdout
        assert "0 notification(s) posted" in result.stdout
        assert "Unreachable: https://x.test/f.ico" in result.stdout
        assert "Unreachable: https://y.test/favicon.ico" in result.stdout

    def test_shared_favicon_announced_once(
        self,
        test_settings: Settings,
        mock_client: AsyncMock,
        fake_web: FakeWeb,
        png_bytes: bytes,
    ) -> None:
        fake_web.add("https://x.test/f.ico", 200, png_bytes)

        with _patched_builder(test_settings, mock_client):
            result = runner.invoke(
                test_resolve_app,
                ["-f", "https://x.test/f.ico", "-f", "https://x.test/f.ico"],
            )

        assert result.exit_code == 0
        assert "Resolved 2/2; 1 notification(s) posted" in result.stdout
        assert fake_web.count("https://x.test/f.ico") == 1

    def test_reports_undecodable_favicon(
        self,
        test_settings: Settings,
        mock_client: AsyncMock,
        fake_web: FakeWeb,
    ) -> None:
        fake_web.add("https://x.test/f.ico", 200, b"<html>not an icon</html>")

        with _patched_builder(test_settings, mock_client):
            result = runner.invoke(test_resolve_app, ["-f", "https://x.test/f.ico"])

        assert result.exit_code == 1
        assert "Undecodable: https://x.test/f.ico" in result.stdout
        assert "Unreachable" not in result.stdout
