"""Tests for screenshot capture with the browser backend patched out."""

import re
from unittest.mock import patch

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from site_monitor.screenshot import BrowserScreenshotter, NullScreenshotter, find_chrome_path


@pytest.fixture
def screenshotter(tmp_path):
    return BrowserScreenshotter(storage_dir=str(tmp_path), executable_path="/usr/bin/chromium")


async def write_image(url, path):
    path.write_bytes(b"\xff\xd8\xff\xe0 fake jpeg")


class TestBrowserScreenshotter:
    """Tests for BrowserScreenshotter."""

    @pytest.mark.asyncio
    async def test_capture_stores_jpeg(self, screenshotter, tmp_path):
        with patch.object(screenshotter, '_render', side_effect=write_image):
            path = await screenshotter.capture("https://example.com/", name="example-com")

        assert path is not None
        assert path.startswith(str(tmp_path / "screenshots"))
        assert re.search(r"example-com_\d{4}-\d{2}-\d{2}_\d{2}-\d{2}-\d{2}\.jpg$", path)

    @pytest.mark.asyncio
    async def test_name_defaults_to_url(self, screenshotter):
        with patch.object(screenshotter, '_render', side_effect=write_image):
            path = await screenshotter.capture("https://example.com/about")

        assert "https-example-com-about_" in path

    @pytest.mark.asyncio
    async def test_missing_browser_returns_none(self, screenshotter):
        error = PlaywrightError("Executable doesn't exist at /usr/bin/chromium\nRun playwright install")

        with patch.object(screenshotter, '_render', side_effect=error):
            assert await screenshotter.capture("https://example.com/") is None

    @pytest.mark.asyncio
    async def test_timeout_returns_none(self, screenshotter):
        with patch.object(screenshotter, '_render', side_effect=PlaywrightTimeoutError("Timeout 20000ms exceeded")):
            assert await screenshotter.capture("https://example.com/") is None

    @pytest.mark.asyncio
    async def test_no_output_returns_none(self, screenshotter):
        with patch.object(screenshotter, '_render', return_value=None):
            assert await screenshotter.capture("https://example.com/") is None


@pytest.mark.asyncio
async def test_null_screenshotter():
    assert await NullScreenshotter().capture("https://example.com/") is None


def test_find_chrome_path(tmp_path):
    browser = tmp_path / "chrome"
    browser.write_text("#!/bin/sh\n")

    assert find_chrome_path([str(tmp_path / "missing"), str(browser)]) == str(browser)
    assert find_chrome_path([str(tmp_path / "missing")]) is None
