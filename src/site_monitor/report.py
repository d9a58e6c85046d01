"""
Report aggregation and delivery.

Classifies a batch of monitoring results into issue buckets, renders an
HTML report, persists it and delivers it to the configured recipient.
"""

import io
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .console.themes import get_theme
from .events import DOMAIN_EXPIRY_WARNING_DAYS
from .mailer import Mailer
from .models import MonitoringReport, MonitoringResult, MonitoringStatus, ReportStatus
from .storage import ReportStore

logger = logging.getLogger(__name__)

BUCKETS = ('down', 'expiring', 'content_changed', 'broken_assets')

SUBJECT_TIME_FORMAT = '%Y-%m-%d %H:%M'

# Stands in for asset details lost while the broken flag survived
PLACEHOLDER_ASSET = {"url": "(details unavailable)", "type": "unknown", "status": 404}


def build_summary(results: Iterable[MonitoringResult]) -> Dict[str, List[Dict[str, Any]]]:
    """
    Classify results into issue buckets.

    Buckets are independent; one result can appear in several.

    Args:
        results: Monitoring results, typically one batch

    Returns:
        Dict with 'down', 'expiring', 'content_changed' and 'broken_assets' lists
    """
    summary: Dict[str, List[Dict[str, Any]]] = {bucket: [] for bucket in BUCKETS}

    for result in results:
        scan = result.scan_results

        if result.status in MonitoringStatus.FAILING:
            summary['down'].append({
                'url': result.website_url,
                'status_code': result.status_code,
                'error': result.error_message,
            })

        if (result.domain_days_until_expiry is not None
                and result.domain_days_until_expiry <= DOMAIN_EXPIRY_WARNING_DAYS):
            summary['expiring'].append({
                'url': result.website_url,
                'expires_at': result.domain_expires_at.isoformat() if result.domain_expires_at else None,
                'days': result.domain_days_until_expiry,
            })

        changed = scan.any_significant_change if scan is not None else result.content_changed
        if changed:
            pages = []
            if scan is not None:
                pages = [
                    {'slug': page.slug, 'change_percent': page.change_percent}
                    for page in scan.pages if page.significant
                ]
                if not pages and scan.pages:
                    top = max(scan.pages, key=lambda page: page.change_percent)
                    pages = [{'slug': top.slug, 'change_percent': top.change_percent}]
            summary['content_changed'].append({'url': result.website_url, 'pages': pages})

        if scan is not None and (scan.broken_assets or scan.has_broken_assets):
            assets = [asset.to_dict() for asset in scan.broken_assets] or [dict(PLACEHOLDER_ASSET)]
            summary['broken_assets'].append({'url': result.website_url, 'assets': assets})

    return summary


def build_subject(summary: Dict[str, List[Dict[str, Any]]], now: Optional[datetime] = None) -> str:
    """
    Subject line for a report, e.g. 'Monitoring Report [2 down, 1 changed] – 2026-10-17 12:00'.

    Zero-count terms are omitted; '[All Clear]' when every bucket is empty.
    """
    now = now or datetime.now(timezone.utc)
    labels = (
        ('down', 'down'),
        ('expiring', 'expiring'),
        ('content_changed', 'changed'),
        ('broken_assets', 'broken assets'),
    )
    terms = [
        f"{len(summary.get(bucket) or [])} {label}"
        for bucket, label in labels
        if summary.get(bucket)
    ]
    tag = ', '.join(terms) if terms else 'All Clear'
    return f"Monitoring Report [{tag}] – {now.strftime(SUBJECT_TIME_FORMAT)}"


def render_body(report: MonitoringReport) -> str:
    """
    Render a report as a standalone HTML document.

    The report is printed to a recording Rich console and exported as HTML
    with inline styles, which mail clients display reliably.
    """
    console = Console(
        record=True,
        width=100,
        file=io.StringIO(),
        theme=get_theme(),
        force_terminal=True,
        highlight=False,
    )
    summary = report.summary or {}

    console.print(f"[bold]{escape(report.subject)}[/bold]")
    console.print(f"[timestamp]Generated {report.created_at.strftime('%Y-%m-%d %H:%M:%S %Z')}[/timestamp]")
    console.print()

    if report.flagged_count() == 0:
        console.print("[success]All monitored websites are healthy.[/success]")
        return console.export_html(inline_styles=True)

    if summary.get('down'):
        table = Table(title="Down", title_style="bold red", header_style="bold")
        table.add_column("Website", style="cyan")
        table.add_column("Status code")
        table.add_column("Error", style="red")
        for item in summary['down']:
            table.add_row(escape(item['url']), str(item.get('status_code') or '-'), escape(item.get('error') or ''))
        console.print(table)

    if summary.get('expiring'):
        table = Table(title="Domain expiring", title_style="bold yellow", header_style="bold")
        table.add_column("Website", style="cyan")
        table.add_column("Expires")
        table.add_column("Days", justify="right")
        for item in summary['expiring']:
            days = item.get('days')
            style = "bold red" if days is not None and days < 0 else "yellow"
            table.add_row(escape(item['url']), item.get('expires_at') or '-', f"[{style}]{days}[/{style}]")
        console.print(table)

    if summary.get('content_changed'):
        table = Table(title="Content changed", title_style="bold magenta", header_style="bold")
        table.add_column("Website", style="cyan")
        table.add_column("Pages")
        for item in summary['content_changed']:
            pages = ', '.join(f"{page['slug']} ({page['change_percent']}%)" for page in item.get('pages') or [])
            table.add_row(escape(item['url']), escape(pages) or '-')
        console.print(table)

    if summary.get('broken_assets'):
        table = Table(title="Broken assets", title_style="bold red", header_style="bold")
        table.add_column("Website", style="cyan")
        table.add_column("Asset")
        table.add_column("Type")
        table.add_column("Status", justify="right")
        for item in summary['broken_assets']:
            for asset in item.get('assets') or []:
                table.add_row(escape(item['url']), escape(asset.get('url', '')), asset.get('type', ''), str(asset.get('status', '')))
        console.print(table)

    return console.export_html(inline_styles=True)


class ReportService:
    """
    Builds, stores and delivers monitoring reports.

    Without a recipient, generate_and_send() does nothing and returns None.
    """

    def __init__(self, report_store: ReportStore, mailer: Mailer, recipient: Optional[str] = None):
        self.report_store = report_store
        self.mailer = mailer
        self.recipient = recipient

    async def generate_and_send(
        self,
        results: Iterable[MonitoringResult],
        triggered_by: str = "command"
    ) -> Optional[MonitoringReport]:
        """
        Summarize results, persist a pending report and send it.

        Args:
            results: Monitoring results to summarize
            triggered_by: What started the report ('command', 'manual', ...)

        Returns:
            The stored report, or None when no recipient is configured
        """
        if not self.recipient:
            logger.warning("No report recipient configured, skipping monitoring report")
            return None

        summary = build_summary(results)
        report = MonitoringReport(
            recipient=self.recipient,
            subject=build_subject(summary),
            summary=summary,
            status=ReportStatus.PENDING,
            triggered_by=triggered_by,
        )
        report = await self.report_store.add(report)

        report.body_html = render_body(report)
        await self.report_store.update(report)

        return await self.send(report)

    async def send(self, report: MonitoringReport) -> MonitoringReport:
        """
        Deliver a stored report and record the outcome on the same record.

        Args:
            report: A persisted report

        Returns:
            The report with status 'sent' or 'failed'
        """
        try:
            await self.mailer.deliver(report.recipient, report.subject, report.body_html)
            report.status = ReportStatus.SENT
            report.sent_at = datetime.now(timezone.utc)
            report.error_message = None
            logger.info(f"Monitoring report {report.id} sent to {report.recipient}")
        except Exception as e:
            report.status = ReportStatus.FAILED
            report.error_message = str(e) or type(e).__name__
            logger.error(f"Failed to send monitoring report {report.id}: {report.error_message}")

        await self.report_store.update(report)
        return report

    async def resend(self, report_id: int) -> MonitoringReport:
        """
        Send a stored report again.

        Raises:
            ValueError: If no report has that id
        """
        report = await self.report_store.get(report_id)
        if report is None:
            raise ValueError(f"Report {report_id} not found")

        logger.info(f"Resending monitoring report {report_id} (previous status: {report.status})")
        return await self.send(report)
