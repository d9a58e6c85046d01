"""
Reporter layer for website monitoring.

Displays a monitoring batch as a rich table and exports it to JSON or CSV.
"""

import csv
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.markup import escape
from rich.table import Table

from .console.output import ConsoleManager
from .console.themes import ICONS, status_style
from .models import MonitoringResult, MonitoringStatus


logger = logging.getLogger(__name__)

STATUS_ORDER = {
    MonitoringStatus.ERROR: 0,
    MonitoringStatus.DOWN: 1,
    MonitoringStatus.WARNING: 2,
    MonitoringStatus.UNKNOWN: 3,
    MonitoringStatus.UP: 4,
}


class Reporter:
    """
    Formats and outputs monitoring results.

    Worst statuses are listed first.
    """

    def __init__(self, results: List[MonitoringResult], console_manager: Optional[ConsoleManager] = None):
        self.results = results
        self.console_manager = console_manager or ConsoleManager()
        self.console = self.console_manager.console

    def _sorted_results(self) -> List[MonitoringResult]:
        return sorted(self.results, key=lambda r: STATUS_ORDER.get(r.status, 5))

    def display_table(self) -> None:
        """Display one row per website with status and enrichment columns."""
        table = Table(
            title="[bold magenta]Website Monitoring Results[/bold magenta]",
            show_header=True,
            header_style="bold cyan",
        )
        table.add_column("Website", style="cyan", no_wrap=True)
        table.add_column("Status")
        table.add_column("Code", justify="right")
        table.add_column("Time", justify="right")
        table.add_column("SSL")
        table.add_column("Domain")
        table.add_column("Content")
        table.add_column("Assets")

        for result in self._sorted_results():
            table.add_row(*self._format_row(result))

        self.console.print()
        self.console.print(table)
        self._display_summary()

    def _format_row(self, result: MonitoringResult) -> List[str]:
        style = status_style(result.status)
        status = f"[{style}]{result.status.upper()}[/{style}]"
        if result.error_message:
            status += f"\n[dim]{escape(result.error_message)}[/dim]"

        ssl = "-"
        if result.ssl_info:
            days = result.ssl_info.expires_in_days
            ssl_style = "red" if days < 0 else "yellow" if days <= 14 else "green"
            ssl = f"[{ssl_style}]{days}d[/{ssl_style}]"

        domain = "-"
        if result.domain_days_until_expiry is not None:
            days = result.domain_days_until_expiry
            domain_style = "red" if days <= 7 else "green"
            domain = f"[{domain_style}]{days}d[/{domain_style}]"

        content = "-"
        scan = result.scan_results
        if scan:
            top = max((page.change_percent for page in scan.pages), default=0.0)
            content_style = "magenta" if scan.any_significant_change else "green"
            content = f"[{content_style}]{top:.2f}%[/{content_style}]"
        elif result.content_changed:
            content = "[magenta]changed[/magenta]"

        assets = "-"
        if scan:
            assets = (
                f"[red]{ICONS['error']} {len(scan.broken_assets)} broken[/red]"
                if scan.has_broken_assets else f"[green]{ICONS['success']}[/green]"
            )

        return [
            escape(result.website_url),
            status,
            str(result.status_code) if result.status_code is not None else "-",
            f"{result.response_time_ms}ms" if result.response_time_ms is not None else "-",
            ssl,
            domain,
            content,
            assets,
        ]

    def _display_summary(self) -> None:
        total = len(self.results)
        up_count = sum(1 for r in self.results if r.status == MonitoringStatus.UP)
        warning_count = sum(1 for r in self.results if r.status == MonitoringStatus.WARNING)
        failing_count = sum(1 for r in self.results if r.is_failing())

        self.console.print()
        self.console.print(f"[bold]Summary:[/bold] {total} website(s) monitored")
        self.console.print(f"  [green]{ICONS['success']} Up:[/green] {up_count}")
        self.console.print(f"  [yellow]{ICONS['warning']} Warning:[/yellow] {warning_count}")
        self.console.print(f"  [red]{ICONS['error']} Down/Error:[/red] {failing_count}")

    def export_json(self, file_path: str) -> None:
        """
        Export results to a JSON file.

        Raises:
            OSError: If the file cannot be written
        """
        try:
            self.console.print(f"[cyan]Exporting to JSON:[/cyan] {file_path}")

            output_path = Path(file_path)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with open(output_path, 'w', encoding='utf-8') as f:
                json.dump(self._results_to_dict(), f, indent=2, default=str)

            logger.info(f"Results exported to JSON: {file_path}")
            self.console_manager.print_success(f"Results exported to: {file_path}")

        except Exception as e:
            error_msg = f"Failed to export JSON: {str(e)}"
            logger.error(error_msg, exc_info=True)
            self.console_manager.print_error(error_msg, details={'file_path': file_path})
            raise

    def export_csv(self, file_path: str) -> None:
        """
        Export results to a CSV file, one row per website.

        Raises:
            OSError: If the file cannot be written
        """
        rows = self._results_to_csv_rows()
        if not rows:
            logger.warning("No results to export")
            self.console_manager.print_warning("No results to export")
            return

        try:
            self.console.print(f"[cyan]Exporting to CSV:[/cyan] {file_path}")

            output_path = Path(file_path)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with open(output_path, 'w', newline='', encoding='utf-8') as f:
                writer = csv.DictWriter(f, fieldnames=rows[0].keys())
                writer.writeheader()
                writer.writerows(rows)

            logger.info(f"Results exported to CSV: {file_path}")
            self.console_manager.print_success(
                f"Results exported to: {file_path} ({len(rows)} row{'s' if len(rows) != 1 else ''})"
            )

        except Exception as e:
            error_msg = f"Failed to export CSV: {str(e)}"
            logger.error(error_msg, exc_info=True)
            self.console_manager.print_error(error_msg, details={'file_path': file_path})
            raise

    def _results_to_dict(self) -> Dict[str, Any]:
        return {
            "exported_at": datetime.now(timezone.utc).isoformat(),
            "total_websites": len(self.results),
            "results": [result.to_dict() for result in self.results],
        }

    def _results_to_csv_rows(self) -> List[Dict[str, Any]]:
        rows = []
        for result in self.results:
            scan = result.scan_results
            rows.append({
                "website_url": result.website_url,
                "checked_at": result.checked_at.isoformat(),
                "status": result.status,
                "status_code": result.status_code if result.status_code is not None else "",
                "response_time_ms": result.response_time_ms if result.response_time_ms is not None else "",
                "error_message": result.error_message or "",
                "ssl_expires_in_days": result.ssl_info.expires_in_days if result.ssl_info else "",
                "domain_days_until_expiry": (
                    result.domain_days_until_expiry if result.domain_days_until_expiry is not None else ""
                ),
                "content_changed": bool(result.content_changed or (scan and scan.any_significant_change)),
                "broken_assets": len(scan.broken_assets) if scan else 0,
                "screenshot_path": result.screenshot_path or "",
            })
        return rows
