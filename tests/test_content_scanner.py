"""
Tests for content drift scanner module.

Tests snapshot history, navigation page discovery, and failure isolation.
"""

import asyncio
import time
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from site_monitor.checkers.content import ContentScanner
from site_monitor.models import BrokenAsset, ScanResults, Website
from site_monitor.snapshots import SnapshotStore


FIRST_RUN = datetime(2026, 10, 16, 12, 0, 0, tzinfo=timezone.utc)
SECOND_RUN = datetime(2026, 10, 17, 12, 0, 0, tzinfo=timezone.utc)

HOME_PAGE = """
<html><body>
<nav><a href="/about">About</a><a href="/contact">Contact</a></nav>
<h1>Welcome</h1>
<p>We sell handmade furniture and restore antique pieces for customers across the region.</p>
</body></html>
"""


@pytest.fixture
def snapshot_store(tmp_path):
    return SnapshotStore(base_dir=str(tmp_path))


@pytest.fixture
def asset_checker():
    checker = MagicMock()
    checker.check = AsyncMock(return_value=[])
    return checker


@pytest.fixture
def scanner(snapshot_store, asset_checker):
    """Create a ContentScanner with navigation fetches disabled."""
    content_scanner = ContentScanner(snapshot_store, asset_checker=asset_checker)
    content_scanner._fetch_page = AsyncMock(return_value=None)
    return content_scanner


@pytest.fixture
def website():
    return Website(url="https://example.com/")


class TestContentScanner:
    """Tests for ContentScanner class."""

    @pytest.mark.asyncio
    async def test_first_scan_has_no_baseline(self, scanner, website, snapshot_store):
        results = await scanner.scan(website, HOME_PAGE, now=FIRST_RUN)

        assert isinstance(results, ScanResults)
        home = results.pages[0]
        assert home.slug == "home"
        assert home.url == "https://example.com/"
        assert home.change_percent == 0.0
        assert home.significant is False
        assert home.previous_file_found is False
        assert results.any_significant_change is False

        snapshot = snapshot_store.latest("https-example-com", "home")
        assert snapshot is not None
        assert "Welcome" in snapshot_store.read(snapshot)
        assert "<h1>" not in snapshot_store.read(snapshot)

    @pytest.mark.asyncio
    async def test_unchanged_page(self, scanner, website):
        await scanner.scan(website, HOME_PAGE, now=FIRST_RUN)
        results = await scanner.scan(website, HOME_PAGE, now=SECOND_RUN)

        home = results.pages[0]
        assert home.previous_file_found is True
        assert home.change_percent == 0.0
        assert results.any_significant_change is False

    @pytest.mark.asyncio
    async def test_markup_only_change_is_ignored(self, scanner, website):
        await scanner.scan(website, HOME_PAGE, now=FIRST_RUN)
        restyled = HOME_PAGE.replace("<h1>Welcome</h1>", "<h1 class='hero'>  Welcome </h1><script>x=1</script>")
        results = await scanner.scan(website, restyled, now=SECOND_RUN)

        assert results.pages[0].change_percent == 0.0

    @pytest.mark.asyncio
    async def test_rewritten_page_is_significant(self, scanner, website):
        await scanner.scan(website, HOME_PAGE, now=FIRST_RUN)
        rewritten = "<html><body><h1>Closed</h1><p>This shop has shut down permanently.</p></body></html>"
        results = await scanner.scan(website, rewritten, now=SECOND_RUN)

        home = results.pages[0]
        assert home.change_percent > 10.0
        assert home.significant is True
        assert results.any_significant_change is True

    @pytest.mark.asyncio
    async def test_navigation_pages_are_scanned(self, scanner, website):
        pages = {
            "https://example.com/about": "<p>About our workshop</p>",
            "https://example.com/contact": "<p>Call us</p>",
        }
        scanner._fetch_page = AsyncMock(side_effect=lambda url, headers: pages.get(url))

        results = await scanner.scan(website, HOME_PAGE, now=FIRST_RUN)

        assert [page.slug for page in results.pages] == ["home", "about", "contact"]
        assert results.pages[1].url == "https://example.com/about"

    @pytest.mark.asyncio
    async def test_navigation_fetch_uses_website_headers(self, scanner):
        website = Website(url="https://example.com/", headers={"Authorization": "Bearer token"})

        await scanner.scan(website, HOME_PAGE, now=FIRST_RUN)

        scanner._fetch_page.assert_any_call("https://example.com/about", {"Authorization": "Bearer token"})

    @pytest.mark.asyncio
    @pytest.mark.parametrize("failure", [
        asyncio.TimeoutError(),
        aiohttp.ClientError("reset"),
        RuntimeError("unexpected"),
    ])
    async def test_failed_navigation_page_is_omitted(self, scanner, website, failure):
        def fetch(url, headers):
            if url.endswith("/about"):
                raise failure
            return "<p>Call us</p>"

        scanner._fetch_page = AsyncMock(side_effect=fetch)

        results = await scanner.scan(website, HOME_PAGE, now=FIRST_RUN)

        assert [page.slug for page in results.pages] == ["home", "contact"]

    @pytest.mark.asyncio
    async def test_non_2xx_navigation_page_is_omitted(self, scanner, website):
        results = await scanner.scan(website, HOME_PAGE, now=FIRST_RUN)

        assert [page.slug for page in results.pages] == ["home"]

    @pytest.mark.asyncio
    async def test_relative_links_use_final_url(self, scanner):
        website = Website(url="http://example.com/")

        await scanner.scan(website, HOME_PAGE, final_url="https://example.com/", now=FIRST_RUN)

        scanner._fetch_page.assert_any_call("https://example.com/about", {})

    @pytest.mark.asyncio
    async def test_broken_assets_are_collected(self, scanner, website, asset_checker):
        asset_checker.check.return_value = [
            BrokenAsset(url="https://example.com/js/app.js", type="js"),
        ]

        results = await scanner.scan(website, HOME_PAGE, now=FIRST_RUN)

        assert results.has_broken_assets is True
        assert results.broken_assets[0].url == "https://example.com/js/app.js"
        asset_checker.check.assert_called_once_with("https://example.com/", html=HOME_PAGE, headers={})

    @pytest.mark.asyncio
    async def test_asset_failure_does_not_abort_scan(self, scanner, website, asset_checker):
        asset_checker.check.side_effect = RuntimeError("asset boom")

        results = await scanner.scan(website, HOME_PAGE, now=FIRST_RUN)

        assert results.broken_assets == []
        assert len(results.pages) == 1

    @pytest.mark.asyncio
    async def test_snapshot_failure_omits_page(self, scanner, website, snapshot_store):
        with patch.object(snapshot_store, 'save', side_effect=OSError("disk full")):
            results = await scanner.scan(website, HOME_PAGE, now=FIRST_RUN)

        assert results is not None
        assert results.pages == []

    @pytest.mark.asyncio
    async def test_total_failure_returns_none(self, scanner, website):
        with patch('site_monitor.checkers.content.extract_nav_links', side_effect=RuntimeError("parser crashed")):
            results = await scanner.scan(website, HOME_PAGE, now=FIRST_RUN)

        assert results is None

    @pytest.mark.asyncio
    async def test_check_wraps_scan(self, scanner):
        results = await scanner.check("https://example.com/", html=HOME_PAGE)

        assert results.pages[0].slug == "home"

    @pytest.mark.asyncio
    async def test_page_diff_does_not_block_event_loop(self, scanner, website):
        """Other websites keep running while a page is diffed."""
        original_scan_page = scanner.scan_page

        def slow_scan_page(*args):
            time.sleep(0.5)
            return original_scan_page(*args)

        ticks = 0

        async def heartbeat():
            nonlocal ticks
            while True:
                await asyncio.sleep(0.01)
                ticks += 1

        beat = asyncio.create_task(heartbeat())
        try:
            with patch.object(scanner, 'scan_page', side_effect=slow_scan_page):
                results = await scanner.scan(website, HOME_PAGE, now=FIRST_RUN)
        finally:
            beat.cancel()

        assert results.pages[0].slug == "home"
        assert ticks >= 10


class TestPageSlug:
    """Tests for page storage keys."""

    @pytest.mark.parametrize("url,expected", [
        ("https://example.com/about", "about"),
        ("https://example.com/about/team/", "about-team"),
        ("https://example.com/", "home"),
        ("https://example.com/search?q=chairs", "search-q-chairs"),
    ])
    def test_page_slug(self, url, expected):
        assert ContentScanner._page_slug(url) == expected
