"""
Screenshot capture for monitored websites.

BrowserScreenshotter drives headless Chromium through Playwright. A missing
browser or backend is not an error: capture() returns None and logs why.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from .models import slugify

logger = logging.getLogger(__name__)

VIEWPORT = {"width": 1280, "height": 720}
JPEG_QUALITY = 70
FILENAME_TIME_FORMAT = '%Y-%m-%d_%H-%M-%S'

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-gpu",
    "--disable-dev-shm-usage",
]

# System browsers preferred over the Playwright-managed download
CHROME_PATHS = [
    '/usr/bin/google-chrome',
    '/usr/bin/google-chrome-stable',
    '/usr/bin/chromium',
    '/usr/bin/chromium-browser',
    '/snap/bin/chromium',
    '/Applications/Google Chrome.app/Contents/MacOS/Google Chrome',
]


class Screenshotter(ABC):
    """Pluggable screenshot capability."""

    @abstractmethod
    async def capture(self, url: str, name: Optional[str] = None) -> Optional[str]:
        """
        Capture a screenshot of a URL.

        Args:
            url: Page to capture
            name: File name prefix (default: derived from the URL)

        Returns:
            Path of the stored image, or None if no image was produced
        """


class NullScreenshotter(Screenshotter):
    """Screenshotter used when screenshots are disabled."""

    async def capture(self, url: str, name: Optional[str] = None) -> Optional[str]:
        return None


def find_chrome_path(candidates: Optional[List[str]] = None) -> Optional[str]:
    """First existing browser executable from the candidate list."""
    for candidate in candidates if candidates is not None else CHROME_PATHS:
        if Path(candidate).is_file():
            return candidate
    return None


class BrowserScreenshotter(Screenshotter):
    """
    Headless Chromium screenshots.

    Images are written to <storage_dir>/screenshots/<name>_<timestamp>.jpg.
    """

    def __init__(
        self,
        storage_dir: str = 'storage',
        timeout: float = 20,
        executable_path: Optional[str] = None
    ):
        self.output_dir = Path(storage_dir) / 'screenshots'
        self.timeout = timeout
        self.executable_path = executable_path or find_chrome_path()

    def _target_path(self, url: str, name: Optional[str], now: datetime) -> Path:
        prefix = slugify(name or url, default='site')
        return self.output_dir / f"{prefix}_{now.strftime(FILENAME_TIME_FORMAT)}.jpg"

    async def capture(self, url: str, name: Optional[str] = None) -> Optional[str]:
        path = self._target_path(url, name, datetime.now(timezone.utc))

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            await self._render(url, path)
        except PlaywrightTimeoutError:
            logger.warning(f"Screenshot of {url} timed out after {self.timeout}s")
            return None
        except PlaywrightError as e:
            reason = str(e).splitlines()[0] if str(e) else type(e).__name__
            logger.warning(f"Screenshot backend unavailable for {url}: {reason}")
            return None
        except OSError as e:
            logger.warning(f"Screenshot of {url} could not be stored: {str(e)}")
            return None

        if not path.exists() or path.stat().st_size == 0:
            logger.warning(f"Screenshot of {url} produced no output")
            return None

        logger.debug(f"Saved screenshot {path}")
        return str(path)

    async def _render(self, url: str, path: Path) -> None:
        """
        Load the page in headless Chromium and write a JPEG.

        Raises:
            playwright.async_api.Error: If the browser cannot be launched or the page fails
        """
        timeout_ms = self.timeout * 1000

        async with async_playwright() as playwright:
            browser = await playwright.chromium.launch(
                headless=True,
                args=LAUNCH_ARGS,
                executable_path=self.executable_path,
                timeout=timeout_ms,
            )
            try:
                context = await browser.new_context(viewport=VIEWPORT, ignore_https_errors=True)
                page = await context.new_page()
                await page.goto(url, wait_until="load", timeout=timeout_ms)
                await page.screenshot(
                    path=str(path),
                    type="jpeg",
                    quality=JPEG_QUALITY,
                    timeout=timeout_ms,
                )
            finally:
                await browser.close()
