"""
Broken asset detection for website monitoring.

HEAD-checks same-host stylesheets and scripts referenced by a page and
reports the ones answering exactly HTTP 404.
"""

import asyncio
import logging
from typing import Dict, List, Optional, Tuple

import aiohttp

from ..htmlparse import MAX_ASSET_CHECKS, extract_assets
from ..models import BrokenAsset
from .base_checker import BaseChecker

logger = logging.getLogger(__name__)


class AssetChecker(BaseChecker):
    """
    Checker for missing CSS/JS assets.

    Assets are checked one at a time. Certificate verification is disabled
    for these requests only; any failure other than a 404 response skips
    the asset.
    """

    def __init__(self, timeout: float = 5, max_checks: int = MAX_ASSET_CHECKS):
        super().__init__(timeout=timeout)
        self.max_checks = max_checks

    async def check(
        self,
        url: str,
        html: str = '',
        headers: Optional[Dict[str, str]] = None,
        **kwargs
    ) -> List[BrokenAsset]:
        """
        Find broken assets referenced by a page.

        Args:
            url: URL the page was served from
            html: Page markup
            headers: Custom request headers of the website

        Returns:
            List of BrokenAsset, empty when nothing is broken
        """
        assets = extract_assets(html, url, limit=self.max_checks)
        logger.debug(f"Found {len(assets)} same-host asset(s) on {url}")
        return await self.check_assets(assets, headers)

    async def check_assets(
        self,
        assets: List[Tuple[str, str]],
        headers: Optional[Dict[str, str]] = None
    ) -> List[BrokenAsset]:
        """
        HEAD-check a list of (url, type) assets.

        Args:
            assets: Asset URLs with their type ('css' or 'js')
            headers: Custom request headers of the website

        Returns:
            List of BrokenAsset for assets that answered 404
        """
        broken: List[BrokenAsset] = []

        for asset_url, asset_type in assets[:self.max_checks]:
            try:
                status = await self._head_status(asset_url, headers or {})
            except asyncio.TimeoutError:
                logger.debug(f"Asset check timed out for {asset_url}")
                continue
            except aiohttp.ClientError as e:
                logger.debug(f"Asset check failed for {asset_url}: {str(e) or type(e).__name__}")
                continue
            except Exception as e:
                logger.warning(f"Unexpected error checking asset {asset_url}: {str(e)}")
                continue

            if status == 404:
                logger.info(f"Broken {asset_type} asset: {asset_url}")
                broken.append(BrokenAsset(url=asset_url, type=asset_type, status=status))

        return broken

    async def _head_status(self, url: str, headers: Dict[str, str]) -> int:
        """
        Send a HEAD request and return the status code.

        Raises:
            aiohttp.ClientError: If the request fails
            asyncio.TimeoutError: If the request times out
        """
        client_timeout = aiohttp.ClientTimeout(total=self.timeout)

        async with aiohttp.ClientSession(timeout=client_timeout) as session:
            async with session.head(url, headers=headers, ssl=False, allow_redirects=True) as response:
                return response.status
