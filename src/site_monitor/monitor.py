"""
Monitoring orchestration.

WebsiteMonitor runs the per-website pipeline:

    HTTP probe -> [response: SSL -> domain expiry -> content scan -> screenshot]
               |  [transport failure: error]
    -> persist result -> dispatch events

Enrichment stages are isolated; only the HTTP probe decides the status.
BatchExecutor monitors many websites concurrently with a bounded semaphore.
"""

import asyncio
import logging
import time
from typing import Awaitable, List, Optional, TYPE_CHECKING, TypeVar

from .checkers.content import ContentScanner
from .checkers.http import HTTPChecker
from .checkers.ssl import SSLChecker
from .checkers.whois import WhoisChecker
from .events import NotificationDispatcher, derive_events
from .models import MonitoringResult, MonitoringStatus, Website
from .screenshot import NullScreenshotter, Screenshotter
from .snapshots import SnapshotStore
from .storage import ResultStore

if TYPE_CHECKING:
    from .console.output import ConsoleManager


logger = logging.getLogger(__name__)

T = TypeVar('T')


class WebsiteMonitor:
    """
    Runs the monitoring pipeline for one website at a time.

    Collaborators are injected; omitted ones get defaults (no persistence,
    no notifications, no screenshots).
    """

    def __init__(
        self,
        http_checker: Optional[HTTPChecker] = None,
        ssl_checker: Optional[SSLChecker] = None,
        whois_checker: Optional[WhoisChecker] = None,
        content_scanner: Optional[ContentScanner] = None,
        screenshotter: Optional[Screenshotter] = None,
        result_store: Optional[ResultStore] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        subscribers: Optional[List[str]] = None,
        storage_dir: str = 'storage'
    ):
        self.http_checker = http_checker or HTTPChecker()
        self.ssl_checker = ssl_checker or SSLChecker()
        self.whois_checker = whois_checker or WhoisChecker()
        self.content_scanner = content_scanner or ContentScanner(SnapshotStore(storage_dir))
        self.screenshotter = screenshotter or NullScreenshotter()
        self.result_store = result_store
        self.dispatcher = dispatcher
        self.subscribers = subscribers or []

    async def monitor(
        self,
        website: Website,
        timeout: float = 30,
        take_screenshot: bool = False
    ) -> MonitoringResult:
        """
        Monitor a website once.

        Never raises: unexpected failures become an 'error' result.

        Args:
            website: The website to monitor
            timeout: Timeout in seconds for the primary HTTP request
            take_screenshot: Capture a screenshot when the website is up

        Returns:
            MonitoringResult, persisted when a result store is configured
        """
        start_time = time.time()
        result = MonitoringResult(website_url=website.url)
        previous = await self._previous_result(website)

        logger.debug(f"Monitoring {website.url}")

        try:
            probe = await self.http_checker.check(website.url, headers=website.headers, timeout=timeout)

            result.status = probe.status
            result.status_code = probe.status_code
            result.response_time_ms = probe.response_time_ms
            result.error_message = probe.error_message
            result.headers = probe.headers
            result.content_hash = probe.content_hash

            if probe.responded:
                result.content_changed = (
                    previous is not None and previous.content_hash != probe.content_hash
                )

                if website.url.lower().startswith('https://'):
                    result.ssl_info = await self._enrich('SSL inspection', website, self.ssl_checker.check(website.url))

                expiry = await self._enrich('Domain expiry lookup', website, self.whois_checker.check(website.url))
                if expiry is not None:
                    result.domain_expires_at = expiry.expires_at
                    result.domain_days_until_expiry = expiry.days_until_expiry

                result.scan_results = await self._enrich(
                    'Content scan',
                    website,
                    self.content_scanner.scan(website, probe.body or '', final_url=probe.final_url)
                )

                if take_screenshot and result.is_up():
                    result.screenshot_path = await self._enrich(
                        'Screenshot', website, self.screenshotter.capture(website.url, name=website.slug)
                    )

        except Exception as e:
            logger.error(f"Monitoring failed for {website.url}: {str(e)}", exc_info=True)
            result.status = MonitoringStatus.ERROR
            result.error_message = f"Monitoring failed: {str(e) or type(e).__name__}"

        if result.response_time_ms is None:
            result.response_time_ms = int((time.time() - start_time) * 1000)

        await self._persist(result)
        await self._notify(result, previous)

        logger.info(
            f"{website.url}: {result.status}"
            + (f" ({result.status_code})" if result.status_code else "")
            + f" in {result.response_time_ms}ms"
        )
        return result

    async def _enrich(self, stage: str, website: Website, step: Awaitable[Optional[T]]) -> Optional[T]:
        """Await an enrichment step, turning any failure into None."""
        try:
            return await step
        except Exception as e:
            logger.warning(f"{stage} failed for {website.url}: {str(e)}", exc_info=True)
            return None

    async def _previous_result(self, website: Website) -> Optional[MonitoringResult]:
        if self.result_store is None:
            return None
        try:
            return await self.result_store.latest_for(website.url)
        except Exception as e:
            logger.warning(f"Could not load previous result for {website.url}: {str(e)}")
            return None

    async def _persist(self, result: MonitoringResult) -> None:
        if self.result_store is None:
            return
        try:
            await self.result_store.add(result)
        except Exception as e:
            logger.error(f"Failed to store result for {result.website_url}: {str(e)}", exc_info=True)

    async def _notify(self, result: MonitoringResult, previous: Optional[MonitoringResult]) -> None:
        if self.dispatcher is None:
            return
        for event in derive_events(result, previous):
            try:
                await self.dispatcher.dispatch(event, result, self.subscribers)
            except Exception as e:
                logger.error(f"Failed to dispatch {event.name} for {result.website_url}: {str(e)}")


class BatchExecutor:
    """
    Monitors many websites concurrently.

    Concurrency is bounded by a semaphore; one website's failure never
    affects another.
    """

    # Maximum number of websites monitored concurrently
    MAX_CONCURRENT_SITES = 10

    def __init__(
        self,
        monitor: WebsiteMonitor,
        max_concurrent: int = MAX_CONCURRENT_SITES,
        timeout: float = 30,
        take_screenshot: bool = False,
        console_manager: Optional['ConsoleManager'] = None
    ):
        self.monitor = monitor
        self.max_concurrent = max_concurrent
        self.timeout = timeout
        self.take_screenshot = take_screenshot
        self.console_manager = console_manager

    async def run(self, websites: List[Website]) -> List[MonitoringResult]:
        """
        Monitor all active websites.

        Args:
            websites: Websites to monitor; inactive ones are skipped

        Returns:
            One MonitoringResult per active website, in input order
        """
        active = [website for website in websites if website.active]
        logger.info(f"Starting monitoring for {len(active)} website(s)")
        start_time = time.time()

        progress_tracker = None
        if self.console_manager:
            from .console.progress import ProgressTracker
            progress_tracker = ProgressTracker(self.console_manager.console, len(active))
            progress_tracker.start()

        semaphore = asyncio.Semaphore(self.max_concurrent)

        async def bounded_monitor(website: Website) -> MonitoringResult:
            async with semaphore:
                if progress_tracker:
                    progress_tracker.update_site(website.name)

                result = await safe_monitor(self.monitor, website, self.timeout, self.take_screenshot)

                if progress_tracker:
                    progress_tracker.complete_site(website.name, result.status)
                return result

        try:
            results = await asyncio.gather(*(bounded_monitor(website) for website in active))
        finally:
            if progress_tracker:
                progress_tracker.finish(time.time() - start_time)

        failures = [
            {
                'website': result.website_url,
                'message': result.error_message or '',
                'error_type': 'Transport error' if result.status == MonitoringStatus.ERROR else 'HTTP error',
            }
            for result in results
            if result.is_failing()
        ]
        if failures and self.console_manager:
            self.console_manager.print_error_group(failures)

        logger.info(f"Completed monitoring in {time.time() - start_time:.2f}s")
        return list(results)


async def safe_monitor(
    monitor: WebsiteMonitor,
    website: Website,
    timeout: float = 30,
    take_screenshot: bool = False
) -> MonitoringResult:
    """
    Run monitor() and convert anything it lets escape into an error result.

    Args:
        monitor: The website monitor
        website: Website to monitor
        timeout: Primary request timeout in seconds
        take_screenshot: Capture a screenshot when up

    Returns:
        MonitoringResult, with status 'error' on failure
    """
    try:
        return await monitor.monitor(website, timeout=timeout, take_screenshot=take_screenshot)
    except Exception as e:
        error_msg = str(e) or f"{type(e).__name__} occurred"
        logger.error(f"Monitoring failed for {website.url}: {error_msg}", exc_info=True)
        return MonitoringResult(
            website_url=website.url,
            status=MonitoringStatus.ERROR,
            error_message=f"Monitoring failed: {error_msg}",
            response_time_ms=0,
        )
