"""
Notification events emitted after each monitoring run.

The monitor derives typed events from a result and the website's previous
result and hands each one to a NotificationDispatcher together with the
configured subscribers.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import List, Optional

from .models import BrokenAsset, MonitoringResult, MonitoringStatus

logger = logging.getLogger(__name__)

# Domains expiring within this many days are reported
DOMAIN_EXPIRY_WARNING_DAYS = 7


@dataclass
class MonitoringEvent:
    website_url: str

    @property
    def name(self) -> str:
        return self.__class__.__name__

    def describe(self) -> str:
        return self.website_url


@dataclass
class StatusChanged(MonitoringEvent):
    previous_status: str = MonitoringStatus.UNKNOWN
    status: str = MonitoringStatus.UNKNOWN

    def describe(self) -> str:
        return f"{self.website_url} changed from {self.previous_status} to {self.status}"


@dataclass
class ErrorOccurred(MonitoringEvent):
    error_message: str = ""

    def describe(self) -> str:
        return f"{self.website_url} failed: {self.error_message}"


@dataclass
class ContentChanged(MonitoringEvent):
    pages: List[str] = field(default_factory=list)

    def describe(self) -> str:
        where = f" ({', '.join(self.pages)})" if self.pages else ""
        return f"Content changed on {self.website_url}{where}"


@dataclass
class DomainExpiring(MonitoringEvent):
    days_until_expiry: int = 0

    def describe(self) -> str:
        if self.days_until_expiry < 0:
            return f"Domain of {self.website_url} expired {-self.days_until_expiry} day(s) ago"
        return f"Domain of {self.website_url} expires in {self.days_until_expiry} day(s)"


@dataclass
class BrokenAssetsFound(MonitoringEvent):
    assets: List[BrokenAsset] = field(default_factory=list)

    def describe(self) -> str:
        return f"{len(self.assets)} broken asset(s) on {self.website_url}"


def derive_events(
    result: MonitoringResult,
    previous: Optional[MonitoringResult] = None
) -> List[MonitoringEvent]:
    """
    Events raised by a monitoring result.

    Args:
        result: The new result
        previous: The website's previous result, if any

    Returns:
        List of events in a stable order
    """
    events: List[MonitoringEvent] = []
    url = result.website_url
    scan = result.scan_results

    if previous is not None and previous.status != result.status:
        events.append(StatusChanged(url, previous_status=previous.status, status=result.status))

    if result.status == MonitoringStatus.ERROR:
        events.append(ErrorOccurred(url, error_message=result.error_message or ""))

    if result.content_changed or (scan and scan.any_significant_change):
        pages = [page.slug for page in scan.pages if page.significant] if scan else []
        events.append(ContentChanged(url, pages=pages))

    if (result.domain_days_until_expiry is not None
            and result.domain_days_until_expiry <= DOMAIN_EXPIRY_WARNING_DAYS):
        events.append(DomainExpiring(url, days_until_expiry=result.domain_days_until_expiry))

    if scan and scan.broken_assets:
        events.append(BrokenAssetsFound(url, assets=list(scan.broken_assets)))

    return events


class NotificationDispatcher(ABC):
    """Delivers monitoring events to subscribers."""

    @abstractmethod
    async def dispatch(
        self,
        event: MonitoringEvent,
        result: MonitoringResult,
        subscribers: List[str]
    ) -> None:
        """Deliver one event to every subscriber."""


class LoggingDispatcher(NotificationDispatcher):
    """Writes each event to the log, once per subscriber."""

    async def dispatch(
        self,
        event: MonitoringEvent,
        result: MonitoringResult,
        subscribers: List[str]
    ) -> None:
        level = logging.WARNING if isinstance(event, (ErrorOccurred, DomainExpiring)) else logging.INFO
        for subscriber in subscribers:
            logger.log(level, f"[{event.name}] -> {subscriber}: {event.describe()}")
