"""
CLI entry point for the website monitor.

Commands:
    check    monitor the websites of a manifest, optionally sending a report
    report   build and send a report from stored results
    resend   send a stored report again
    reports  list recent reports
"""

import asyncio
import logging
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import List, Optional, Tuple

import click
from rich.markup import escape
from rich.table import Table

from . import __version__
from .checkers.content import ContentScanner
from .checkers.http import HTTPChecker
from .config import ManifestConfig, MonitoringSettings, apply_env_overrides, get_default_manifest_path, load_manifest
from .console.output import ConsoleManager
from .console.themes import ICONS
from .database import Database
from .events import LoggingDispatcher
from .mailer import SMTPMailer
from .models import MonitoringReport, MonitoringResult, ReportStatus, Website
from .monitor import BatchExecutor, WebsiteMonitor
from .report import ReportService
from .reporter import Reporter
from .screenshot import BrowserScreenshotter, NullScreenshotter
from .snapshots import SnapshotStore
from .storage import ReportStore, ResultStore


logger = logging.getLogger(__name__)

LOG_FILE = 'site-monitor.log'


def setup_logging(log_level: str, debug_mode: bool = False) -> None:
    """
    Configure logging with specified level and debug mode.

    Everything goes to the log file. The console only shows log records in
    debug mode; otherwise the rich console output is the only feedback.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        debug_mode: If True, also display log records on the console
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    formatter = logging.Formatter(
        '%(asctime)s [%(levelname)s] %(name)s: %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    file_handler = logging.FileHandler(LOG_FILE, encoding='utf-8')
    file_handler.setLevel(numeric_level)
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    if debug_mode:
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(formatter)
    else:
        console_handler.setLevel(logging.CRITICAL + 1)  # Suppress all logs

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    logger.info(f"Logging initialized at {log_level} level (debug_mode={debug_mode})")


def resolve_manifest_file(file_path: Optional[str]) -> str:
    """
    Resolve manifest file path.

    Raises:
        click.ClickException: If no manifest file found
    """
    if file_path:
        return file_path

    default_path = get_default_manifest_path()
    if default_path is None:
        raise click.ClickException(
            "No manifest file found. Please either:\n"
            "  1. Create a 'websites.yaml' or 'websites.json' file in the current directory, or\n"
            "  2. Specify a manifest file using the -f/--file option\n\n"
            "Example: site-monitor check -f /path/to/websites.yaml"
        )
    return default_path


def load_config(file_path: Optional[str], url: Optional[str] = None) -> Tuple[ManifestConfig, str]:
    """
    Load the manifest, or build an ad-hoc one for a single URL.

    With a URL and no manifest file, default settings plus environment
    overrides are used.

    Returns:
        Tuple of (manifest, description of its source)
    """
    if url:
        if file_path:
            manifest = load_manifest(file_path)
            manifest.websites = [Website(url=url)]
            return manifest, f"{file_path} (ad-hoc: {url})"

        default_path = get_default_manifest_path()
        settings = load_manifest(default_path).settings if default_path else apply_env_overrides(MonitoringSettings())
        return ManifestConfig(settings=settings, websites=[Website(url=url)]), f"ad-hoc: {url}"

    manifest_path = resolve_manifest_file(file_path)
    logger.info(f"Loading manifest from: {manifest_path}")
    return load_manifest(manifest_path), manifest_path


def build_report_service(settings: MonitoringSettings, database: Database) -> ReportService:
    return ReportService(
        report_store=ReportStore(database),
        mailer=SMTPMailer(settings.smtp),
        recipient=settings.report_recipient,
    )


def build_monitor(settings: MonitoringSettings, database: Database, screenshots: bool) -> WebsiteMonitor:
    screenshotter = BrowserScreenshotter(settings.storage_dir) if screenshots else NullScreenshotter()
    return WebsiteMonitor(
        http_checker=HTTPChecker(timeout=settings.timeout),
        content_scanner=ContentScanner(SnapshotStore(settings.storage_dir)),
        screenshotter=screenshotter,
        result_store=ResultStore(database),
        dispatcher=LoggingDispatcher(),
        subscribers=settings.subscribers,
    )


async def run_check(
    manifest: ManifestConfig,
    console_manager: ConsoleManager,
    send_report: bool,
    screenshots: bool
) -> Tuple[List[MonitoringResult], Optional[MonitoringReport]]:
    """Monitor all active websites and optionally send the batch report."""
    settings = manifest.settings
    database = Database(settings.database_url)
    await database.init()

    try:
        executor = BatchExecutor(
            build_monitor(settings, database, screenshots),
            max_concurrent=settings.max_concurrent,
            timeout=settings.timeout,
            take_screenshot=screenshots,
            console_manager=console_manager,
        )
        results = await executor.run(manifest.websites)

        report = None
        if send_report:
            report = await build_report_service(settings, database).generate_and_send(results, triggered_by="command")
        return results, report
    finally:
        await database.close()


async def run_report(settings: MonitoringSettings, since: datetime) -> Tuple[int, Optional[MonitoringReport]]:
    """Report on the latest stored result of each website checked since a point in time."""
    database = Database(settings.database_url)
    await database.init()

    try:
        latest = {}
        for result in await ResultStore(database).since(since):
            latest[result.website_url] = result

        report = await build_report_service(settings, database).generate_and_send(
            list(latest.values()), triggered_by="manual"
        )
        return len(latest), report
    finally:
        await database.close()


async def run_resend(settings: MonitoringSettings, report_id: int) -> MonitoringReport:
    database = Database(settings.database_url)
    await database.init()
    try:
        return await build_report_service(settings, database).resend(report_id)
    finally:
        await database.close()


async def run_list_reports(settings: MonitoringSettings, limit: int) -> List[MonitoringReport]:
    database = Database(settings.database_url)
    await database.init()
    try:
        return await ReportStore(database).list_recent(limit)
    finally:
        await database.close()


def print_report_outcome(console_manager: ConsoleManager, report: Optional[MonitoringReport]) -> None:
    if report is None:
        console_manager.print_warning("No report recipient configured, report skipped")
    elif report.is_sent():
        console_manager.print_success(
            f"Report {report.id} sent to {escape(report.recipient)}: {escape(report.subject)}"
        )
    else:
        console_manager.print_error(
            f"Report {report.id} could not be sent",
            details={'recipient': report.recipient, 'error': report.error_message},
        )


def handle_error(console_manager: ConsoleManager, e: Exception) -> None:
    """Show a configuration or unexpected error and exit with status 1."""
    if isinstance(e, FileNotFoundError):
        message = f"File not found: {str(e)}"
    elif isinstance(e, ValueError):
        message = f"Configuration error: {str(e)}"
    else:
        message = f"Unexpected error: {str(e) or type(e).__name__}"

    logger.error(message, exc_info=True)
    console_manager.print_error(message, details={'error_type': type(e).__name__}, exception=e)
    sys.exit(1)


log_level_option = click.option(
    '--log-level',
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False),
    default='INFO',
    help='Logging level (default: INFO)'
)
debug_option = click.option(
    '--debug',
    is_flag=True,
    default=False,
    help='Enable debug mode with verbose console output'
)
file_option = click.option(
    '-f', '--file',
    type=click.Path(exists=True),
    help='Path to manifest file (YAML/JSON)'
)


@click.group()
@click.version_option(__version__, prog_name='site-monitor')
def cli() -> None:
    """
    Website Monitor

    Monitor websites for availability, certificate and domain expiry,
    content changes and broken assets, and email a summary report.
    """
    pass


@cli.command(name='check')
@file_option
@click.option('-u', '--url', type=str, help='Single website URL to monitor (ad-hoc mode)')
@click.option('-o', '--output', type=click.Path(), help='Output file path (.json or .csv)')
@click.option('--report/--no-report', default=False, help='Send a monitoring report after the run')
@click.option('--screenshots/--no-screenshots', default=None, help='Capture screenshots of websites that are up')
@log_level_option
@debug_option
def check_command(
    file: Optional[str],
    url: Optional[str],
    output: Optional[str],
    report: bool,
    screenshots: Optional[bool],
    log_level: str,
    debug: bool
) -> None:
    """
    Monitor websites and display results.

    Examples:

        # Use default manifest file (websites.yaml or websites.json)
        site-monitor check

        # Monitor a single website
        site-monitor check -u https://example.com

        # Send the report and export results
        site-monitor check --report -o results.json
    """
    setup_logging(log_level, debug_mode=debug)
    console_manager = ConsoleManager(debug_mode=debug)

    if output and Path(output).suffix.lower() not in ('.json', '.csv'):
        raise click.ClickException(
            f"Unsupported output format: {Path(output).suffix}. Please use .json or .csv extension."
        )

    try:
        manifest, manifest_path = load_config(file, url)
        settings = manifest.settings
        take_screenshots = settings.screenshots if screenshots is None else screenshots

        console_manager.print_banner(
            version=__version__,
            manifest_path=manifest_path,
            site_count=len(manifest.active_websites),
            options={
                'Database': settings.database_url,
                'Screenshots': 'on' if take_screenshots else 'off',
                'Report': (settings.report_recipient or 'not configured') if report else 'off',
            }
        )

        if not manifest.active_websites:
            console_manager.print_warning("No active websites to monitor")
            return

        results, sent_report = asyncio.run(run_check(manifest, console_manager, report, take_screenshots))

        reporter = Reporter(results, console_manager=console_manager)
        reporter.display_table()

        if output:
            if Path(output).suffix.lower() == '.json':
                reporter.export_json(output)
            else:
                reporter.export_csv(output)

        if report:
            print_report_outcome(console_manager, sent_report)
            if sent_report is not None and sent_report.has_failed():
                sys.exit(1)

        logger.info("Monitoring completed successfully")

    except click.ClickException:
        raise
    except Exception as e:
        handle_error(console_manager, e)


@cli.command(name='report')
@file_option
@click.option('--hours', type=click.IntRange(min=1), default=24, show_default=True,
              help='Use results checked within this many hours')
@log_level_option
@debug_option
def report_command(file: Optional[str], hours: int, log_level: str, debug: bool) -> None:
    """Build and send a report from the latest stored result of each website."""
    setup_logging(log_level, debug_mode=debug)
    console_manager = ConsoleManager(debug_mode=debug)

    try:
        manifest, _ = load_config(file)
        since = datetime.now(timezone.utc) - timedelta(hours=hours)
        count, sent_report = asyncio.run(run_report(manifest.settings, since))

        console_manager.print_info(f"Summarized {count} website(s) checked since {since:%Y-%m-%d %H:%M}")
        if count == 0:
            console_manager.print_warning(f"No results stored in the last {hours} hour(s)")

        print_report_outcome(console_manager, sent_report)
        if sent_report is not None and sent_report.has_failed():
            sys.exit(1)

    except click.ClickException:
        raise
    except Exception as e:
        handle_error(console_manager, e)


@cli.command(name='resend')
@click.argument('report_id', type=int)
@file_option
@log_level_option
@debug_option
def resend_command(report_id: int, file: Optional[str], log_level: str, debug: bool) -> None:
    """Send a stored report again."""
    setup_logging(log_level, debug_mode=debug)
    console_manager = ConsoleManager(debug_mode=debug)

    try:
        manifest, _ = load_config(file)
        report = asyncio.run(run_resend(manifest.settings, report_id))

        print_report_outcome(console_manager, report)
        if report.has_failed():
            sys.exit(1)

    except click.ClickException:
        raise
    except Exception as e:
        handle_error(console_manager, e)


@cli.command(name='reports')
@file_option
@click.option('-n', '--limit', type=click.IntRange(min=1), default=10, show_default=True,
              help='Number of reports to list')
def reports_command(file: Optional[str], limit: int) -> None:
    """List recent monitoring reports."""
    console_manager = ConsoleManager()

    try:
        manifest, _ = load_config(file)
        reports = asyncio.run(run_list_reports(manifest.settings, limit))
    except click.ClickException:
        raise
    except Exception as e:
        handle_error(console_manager, e)
        return

    if not reports:
        console_manager.print_warning("No reports stored yet")
        return

    table = Table(title="[bold magenta]Monitoring Reports[/bold magenta]", header_style="bold cyan")
    table.add_column("ID", justify="right")
    table.add_column("Created")
    table.add_column("Recipient", style="cyan")
    table.add_column("Status")
    table.add_column("Issues", justify="right")
    table.add_column("Subject")

    styles = {ReportStatus.SENT: "green", ReportStatus.FAILED: "red", ReportStatus.PENDING: "yellow"}
    for report in reports:
        style = styles.get(report.status, "white")
        status = f"[{style}]{report.status}[/{style}]"
        if report.has_failed():
            status = f"[{style}]{ICONS['error']} failed[/{style}]"
        table.add_row(
            str(report.id),
            report.created_at.strftime('%Y-%m-%d %H:%M'),
            escape(report.recipient),
            status,
            str(report.flagged_count()),
            escape(report.subject),
        )

    console_manager.console.print(table)


def main() -> None:
    """Entry point for CLI."""
    cli()


if __name__ == '__main__':
    main()
