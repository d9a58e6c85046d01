"""
Filesystem store for page text snapshots.

Layout: <base_dir>/scans/<website-slug>/<page-slug>/<timestamp>.txt

File names sort chronologically, so the most recent snapshot is the last
one in name order.
"""

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = '%Y-%m-%d_%H-%M-%S_%f'


class SnapshotStore:
    """Append-only snapshot history partitioned by (website, page)."""

    def __init__(self, base_dir: str = 'storage'):
        self.base_dir = Path(base_dir)

    def page_dir(self, website_slug: str, page_slug: str) -> Path:
        return self.base_dir / 'scans' / website_slug / page_slug

    def latest(self, website_slug: str, page_slug: str) -> Optional[Path]:
        """
        Most recent snapshot for a page.

        Args:
            website_slug: Storage key of the website
            page_slug: Storage key of the page

        Returns:
            Path to the newest snapshot, or None if the page was never scanned
        """
        directory = self.page_dir(website_slug, page_slug)
        if not directory.is_dir():
            return None

        snapshots = sorted(directory.glob('*.txt'))
        return snapshots[-1] if snapshots else None

    def read(self, path: Path) -> str:
        return Path(path).read_text(encoding='utf-8')

    def save(
        self,
        website_slug: str,
        page_slug: str,
        text: str,
        at: Optional[datetime] = None
    ) -> Path:
        """
        Write a new snapshot.

        Args:
            website_slug: Storage key of the website
            page_slug: Storage key of the page
            text: Canonical page text
            at: Capture time used for the file name (default: now, UTC)

        Returns:
            Path of the written snapshot

        Raises:
            OSError: If the snapshot cannot be written
        """
        at = at or datetime.now(timezone.utc)
        directory = self.page_dir(website_slug, page_slug)
        directory.mkdir(parents=True, exist_ok=True)

        stem = at.strftime(TIMESTAMP_FORMAT)
        path = directory / f"{stem}.txt"
        counter = 1
        while path.exists():
            path = directory / f"{stem}_{counter}.txt"
            counter += 1

        path.write_text(text, encoding='utf-8')
        logger.debug(f"Saved snapshot {path}")
        return path
