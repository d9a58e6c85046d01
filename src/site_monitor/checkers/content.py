"""
Content drift scanner for website monitoring.

Snapshots the visible text of the main page and of up to three navigation
pages, diffs each against its previous snapshot, and collects broken
assets. Every sub-step is isolated: a failing page or asset is omitted and
never aborts the scan.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional
from urllib.parse import urlparse

import aiohttp

from ..htmlparse import MAX_NAV_PAGES, extract_nav_links, html_to_text
from ..models import BrokenAsset, PageScan, ScanResults, Website, slugify
from ..similarity import change_percent, is_significant
from ..snapshots import SnapshotStore
from .assets import AssetChecker
from .base_checker import BaseChecker

logger = logging.getLogger(__name__)

MAIN_PAGE_SLUG = 'home'


class ContentScanner(BaseChecker):
    """
    Scanner for page-level content changes and broken assets.

    Navigation pages are fetched sequentially with the website's custom
    headers; only 2xx responses are scanned.
    """

    def __init__(
        self,
        snapshot_store: SnapshotStore,
        asset_checker: Optional[AssetChecker] = None,
        timeout: float = 15,
        max_nav_pages: int = MAX_NAV_PAGES
    ):
        """
        Initialize the scanner.

        Args:
            snapshot_store: Where page snapshots are kept
            asset_checker: Broken asset checker (default: AssetChecker())
            timeout: Timeout in seconds for each navigation page fetch
            max_nav_pages: Maximum number of navigation pages to scan
        """
        super().__init__(timeout=timeout)
        self.snapshot_store = snapshot_store
        self.asset_checker = asset_checker or AssetChecker()
        self.max_nav_pages = max_nav_pages

    async def check(self, url: str, html: str = '', **kwargs) -> Optional[ScanResults]:
        """Scan a page by URL; see scan()."""
        website = kwargs.get('website') or Website(url=url)
        return await self.scan(website, html, final_url=kwargs.get('final_url'))

    async def scan(
        self,
        website: Website,
        html: str,
        final_url: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> Optional[ScanResults]:
        """
        Scan the website's main page and navigation pages.

        Args:
            website: The monitored website
            html: Body of the primary response
            final_url: URL after redirects, used to resolve relative links
            now: Scan time (default: current UTC time)

        Returns:
            ScanResults, or None if the scan failed as a whole
        """
        now = now or datetime.now(timezone.utc)
        base_url = final_url or website.url
        site_slug = website.slug

        try:
            pages: List[PageScan] = []
            used_slugs = set()

            main_page = await self._try_scan_page(site_slug, MAIN_PAGE_SLUG, base_url, html, now)
            used_slugs.add(MAIN_PAGE_SLUG)
            if main_page:
                pages.append(main_page)

            nav_links = extract_nav_links(html, base_url, limit=self.max_nav_pages)
            logger.debug(f"Found {len(nav_links)} navigation page(s) for {website.url}")

            for link in nav_links:
                page_slug = self._page_slug(link)
                if page_slug in used_slugs:
                    continue
                used_slugs.add(page_slug)

                try:
                    body = await self._fetch_page(link, website.headers)
                except asyncio.TimeoutError:
                    logger.debug(f"Navigation page {link} timed out after {self.timeout}s")
                    continue
                except aiohttp.ClientError as e:
                    logger.debug(f"Navigation page {link} failed: {str(e) or type(e).__name__}")
                    continue
                except Exception as e:
                    logger.warning(f"Unexpected error fetching {link}: {str(e)}")
                    continue

                if body is None:
                    continue

                page = await self._try_scan_page(site_slug, page_slug, link, body, now)
                if page:
                    pages.append(page)

            broken_assets: List[BrokenAsset] = []
            try:
                broken_assets = await self.asset_checker.check(base_url, html=html, headers=website.headers)
            except Exception as e:
                logger.warning(f"Asset check failed for {website.url}: {str(e)}")

            results = ScanResults.build(pages, broken_assets, scanned_at=now)
            logger.debug(
                f"Content scan for {website.url}: {len(pages)} page(s), "
                f"significant={results.any_significant_change}, broken_assets={len(broken_assets)}"
            )
            return results

        except Exception as e:
            logger.warning(f"Content scan failed for {website.url}: {str(e)}", exc_info=True)
            return None

    async def _try_scan_page(
        self,
        site_slug: str,
        page_slug: str,
        url: str,
        html: str,
        now: datetime
    ) -> Optional[PageScan]:
        """Run scan_page in the default thread pool; a failing page yields None."""
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self.scan_page, site_slug, page_slug, url, html, now)
        except OSError as e:
            logger.warning(f"Snapshot storage failed for {url}: {str(e)}")
        except Exception as e:
            logger.warning(f"Page scan failed for {url}: {str(e)}")
        return None

    def scan_page(
        self,
        site_slug: str,
        page_slug: str,
        url: str,
        html: str,
        now: Optional[datetime] = None
    ) -> PageScan:
        """
        Snapshot one page and diff it against its previous snapshot.

        Args:
            site_slug: Storage key of the website
            page_slug: Storage key of the page
            url: Page URL
            html: Page markup
            now: Snapshot time

        Returns:
            PageScan; change_percent is 0.0 when there was no previous snapshot

        Raises:
            OSError: If the snapshot store cannot be read or written
        """
        text = html_to_text(html)

        previous_path = self.snapshot_store.latest(site_slug, page_slug)
        previous_text = self.snapshot_store.read(previous_path) if previous_path else None

        snapshot = self.snapshot_store.save(site_slug, page_slug, text, at=now)

        if previous_text is None:
            percent = 0.0
            significant = False
        else:
            percent = change_percent(previous_text, text)
            significant = is_significant(percent)

        return PageScan(
            url=url,
            slug=page_slug,
            change_percent=percent,
            significant=significant,
            previous_file_found=previous_text is not None,
            snapshot=str(snapshot),
        )

    @staticmethod
    def _page_slug(url: str) -> str:
        parsed = urlparse(url)
        path = parsed.path
        if parsed.query:
            path = f"{path}-{parsed.query}"
        return slugify(path, default=MAIN_PAGE_SLUG)

    async def _fetch_page(self, url: str, headers: Dict[str, str]) -> Optional[str]:
        """
        Fetch a navigation page.

        Returns:
            Body text for 2xx responses, None otherwise

        Raises:
            aiohttp.ClientError: If the request fails
            asyncio.TimeoutError: If the request times out
        """
        client_timeout = aiohttp.ClientTimeout(total=self.timeout)

        async with aiohttp.ClientSession(timeout=client_timeout) as session:
            async with session.get(url, headers=headers or {}, allow_redirects=True) as response:
                if not 200 <= response.status < 300:
                    logger.debug(f"Skipping navigation page {url}: HTTP {response.status}")
                    return None
                return await response.text(errors='replace')
