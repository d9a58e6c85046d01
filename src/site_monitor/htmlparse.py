"""
HTML extraction helpers for the content scanner.

Uses BeautifulSoup with the stdlib 'html.parser' backend. Malformed markup
never raises out of these helpers; extraction degrades to empty results.
"""

import logging
import re
from typing import List, Tuple
from urllib.parse import urldefrag, urljoin, urlparse

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

# Elements whose contents are never visible text
INVISIBLE_TAGS = ('script', 'style', 'noscript')

MAX_NAV_PAGES = 3
MAX_ASSET_CHECKS = 20


def _soup(html: str) -> BeautifulSoup:
    return BeautifulSoup(html or '', 'html.parser')


def _same_host(url: str, host: str) -> bool:
    return (urlparse(url).hostname or '').lower() == host


def _normalize(url: str) -> str:
    """Absolute URL without fragment, used for deduplication."""
    return urldefrag(url)[0]


def html_to_text(html: str) -> str:
    """
    Reduce an HTML document to its canonical visible text.

    Script, style and noscript blocks are dropped, remaining tags are
    stripped and whitespace runs are collapsed to a single space.

    Args:
        html: Raw HTML document

    Returns:
        Visible text, empty string on unparseable input
    """
    try:
        soup = _soup(html)
        for tag in soup(INVISIBLE_TAGS):
            tag.decompose()
        text = soup.get_text(separator=' ')
    except Exception as e:
        logger.debug(f"Failed to extract text from HTML: {str(e)}")
        return ''

    return re.sub(r'\s+', ' ', text).strip()


def extract_nav_links(html: str, base_url: str, limit: int = MAX_NAV_PAGES) -> List[str]:
    """
    Find same-host pages linked from <nav> elements.

    Links are resolved against base_url, stripped of fragments and
    deduplicated in document order. Non-http(s) schemes, other hosts and
    the page itself are skipped.

    Args:
        html: Raw HTML document
        base_url: URL the document was served from
        limit: Maximum number of links to return

    Returns:
        List of absolute URLs
    """
    host = (urlparse(base_url).hostname or '').lower()
    self_url = _normalize(base_url).rstrip('/')
    links: List[str] = []

    try:
        for nav in _soup(html).find_all('nav'):
            for anchor in nav.find_all('a', href=True):
                href = anchor['href'].strip()
                if not href:
                    continue

                url = _normalize(urljoin(base_url, href))
                if urlparse(url).scheme not in ('http', 'https'):
                    continue
                if not _same_host(url, host):
                    continue
                if url.rstrip('/') == self_url or url in links:
                    continue

                links.append(url)
                if len(links) >= limit:
                    return links
    except Exception as e:
        logger.debug(f"Failed to extract navigation links from {base_url}: {str(e)}")

    return links


def extract_assets(html: str, base_url: str, limit: int = MAX_ASSET_CHECKS) -> List[Tuple[str, str]]:
    """
    Find same-host stylesheets and scripts referenced by a document.

    Args:
        html: Raw HTML document
        base_url: URL the document was served from
        limit: Maximum number of assets to return

    Returns:
        List of (url, type) tuples where type is 'css' or 'js'
    """
    host = (urlparse(base_url).hostname or '').lower()
    assets: List[Tuple[str, str]] = []
    seen = set()

    def add(ref: str, asset_type: str) -> bool:
        url = _normalize(urljoin(base_url, ref.strip()))
        if urlparse(url).scheme not in ('http', 'https') or not _same_host(url, host):
            return False
        if url in seen:
            return False
        seen.add(url)
        assets.append((url, asset_type))
        return len(assets) >= limit

    try:
        soup = _soup(html)

        for link in soup.find_all('link', href=True):
            rel = link.get('rel') or []
            if isinstance(rel, str):
                rel = rel.split()
            if 'stylesheet' not in [r.lower() for r in rel]:
                continue
            if add(link['href'], 'css'):
                return assets

        for script in soup.find_all('script', src=True):
            if add(script['src'], 'js'):
                return assets
    except Exception as e:
        logger.debug(f"Failed to extract assets from {base_url}: {str(e)}")

    return assets
