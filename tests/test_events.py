"""Tests for notification event derivation and the logging dispatcher."""

import logging
from datetime import date

import pytest

from site_monitor.events import (
    BrokenAssetsFound,
    ContentChanged,
    DomainExpiring,
    ErrorOccurred,
    LoggingDispatcher,
    StatusChanged,
    derive_events,
)
from site_monitor.models import BrokenAsset, MonitoringResult, MonitoringStatus, PageScan, ScanResults


URL = "https://example.com/"


def page(slug, percent, significant):
    return PageScan(
        url=f"{URL}{slug}",
        slug=slug,
        change_percent=percent,
        significant=significant,
        previous_file_found=True,
        snapshot="",
    )


def test_healthy_result_has_no_events():
    result = MonitoringResult(website_url=URL, status=MonitoringStatus.UP)

    assert derive_events(result) == []


def test_status_change_needs_previous_result():
    result = MonitoringResult(website_url=URL, status=MonitoringStatus.DOWN)

    assert derive_events(result) == []
    assert derive_events(result, MonitoringResult(website_url=URL, status=MonitoringStatus.UP)) == [
        StatusChanged(URL, previous_status=MonitoringStatus.UP, status=MonitoringStatus.DOWN)
    ]


def test_unchanged_status_is_quiet():
    result = MonitoringResult(website_url=URL, status=MonitoringStatus.UP)
    previous = MonitoringResult(website_url=URL, status=MonitoringStatus.UP)

    assert derive_events(result, previous) == []


def test_error_event():
    result = MonitoringResult(website_url=URL, status=MonitoringStatus.ERROR, error_message="refused")

    assert derive_events(result) == [ErrorOccurred(URL, error_message="refused")]


def test_content_change_lists_significant_pages():
    scan = ScanResults.build([page("home", 2.0, False), page("about", 40.0, True)], [])
    result = MonitoringResult(website_url=URL, status=MonitoringStatus.UP, scan_results=scan)

    assert derive_events(result) == [ContentChanged(URL, pages=["about"])]


def test_hash_change_without_scan():
    result = MonitoringResult(website_url=URL, status=MonitoringStatus.UP, content_changed=True)

    assert derive_events(result) == [ContentChanged(URL, pages=[])]


@pytest.mark.parametrize("days,expected", [(8, False), (7, True), (0, True), (-3, True)])
def test_domain_expiry_window(days, expected):
    result = MonitoringResult(
        website_url=URL,
        status=MonitoringStatus.UP,
        domain_expires_at=date(2026, 10, 20),
        domain_days_until_expiry=days,
    )

    events = derive_events(result)

    assert (DomainExpiring(URL, days_until_expiry=days) in events) is expected


def test_broken_assets_event():
    asset = BrokenAsset(url=f"{URL}app.js", type="js")
    result = MonitoringResult(
        website_url=URL,
        status=MonitoringStatus.UP,
        scan_results=ScanResults.build([], [asset]),
    )

    assert derive_events(result) == [BrokenAssetsFound(URL, assets=[asset])]


def test_event_order_is_stable():
    scan = ScanResults.build([page("home", 50.0, True)], [BrokenAsset(url=f"{URL}a.css", type="css")])
    result = MonitoringResult(
        website_url=URL,
        status=MonitoringStatus.ERROR,
        error_message="boom",
        domain_days_until_expiry=1,
        scan_results=scan,
    )
    previous = MonitoringResult(website_url=URL, status=MonitoringStatus.UP)

    names = [event.name for event in derive_events(result, previous)]

    assert names == ["StatusChanged", "ErrorOccurred", "ContentChanged", "DomainExpiring", "BrokenAssetsFound"]


@pytest.mark.parametrize("event,text", [
    (StatusChanged(URL, previous_status="up", status="down"), f"{URL} changed from up to down"),
    (DomainExpiring(URL, days_until_expiry=-2), f"Domain of {URL} expired 2 day(s) ago"),
    (DomainExpiring(URL, days_until_expiry=5), f"Domain of {URL} expires in 5 day(s)"),
    (ContentChanged(URL, pages=["home", "about"]), f"Content changed on {URL} (home, about)"),
])
def test_describe(event, text):
    assert event.describe() == text


@pytest.mark.asyncio
async def test_logging_dispatcher_logs_per_subscriber(caplog):
    result = MonitoringResult(website_url=URL, status=MonitoringStatus.ERROR, error_message="refused")
    event = ErrorOccurred(URL, error_message="refused")

    with caplog.at_level(logging.INFO, logger="site_monitor.events"):
        await LoggingDispatcher().dispatch(event, result, ["ops@example.com", "dev@example.com"])

    records = [record for record in caplog.records if record.name == "site_monitor.events"]
    assert len(records) == 2
    assert all(record.levelno == logging.WARNING for record in records)
    assert "ops@example.com" in records[0].getMessage()
    assert "refused" in records[1].getMessage()


@pytest.mark.asyncio
async def test_logging_dispatcher_without_subscribers(caplog):
    result = MonitoringResult(website_url=URL, status=MonitoringStatus.UP)

    with caplog.at_level(logging.INFO, logger="site_monitor.events"):
        await LoggingDispatcher().dispatch(ContentChanged(URL), result, [])

    assert not [record for record in caplog.records if record.name == "site_monitor.events"]
