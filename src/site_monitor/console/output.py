"""Central console output manager for Rich-formatted output.

ConsoleManager coordinates all console output of the CLI so that banners,
errors and debug information are formatted consistently.
"""

from typing import Optional, Dict, List, Any
import traceback
from collections import defaultdict
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.text import Text
from rich.table import Table
from .themes import get_theme, ICONS

# Message fragment -> actionable suggestion, first match wins
ERROR_SUGGESTIONS = [
    (('file not found', 'no such file'),
     "Check that the file path is correct and the file exists. Use absolute paths if needed."),
    (('timeout', 'timed out'),
     "Check your network connection and firewall settings. The website may be unreachable or slow to respond."),
    (('cannot connect', 'name or service not known', 'failed to resolve'),
     "Verify the host name is correct and reachable from this machine."),
    (('connection refused',),
     "The server is not accepting connections on this port. Verify the service is running and the port is correct."),
    (('smtp', 'recipient refused'),
     "Check the 'smtp' block of the manifest and the report recipient address."),
    (('ssl', 'certificate'),
     "Check the SSL certificate configuration. The certificate may be invalid, expired, or self-signed."),
    (('permission denied', 'access denied'),
     "Check file/directory permissions for the storage directory and database file."),
    (('url scheme', 'must include a host'),
     "Website URLs must be absolute http:// or https:// URLs."),
]


class ConsoleManager:
    """Central console output manager.

    Attributes:
        console: Rich Console instance
        debug_mode: Whether debug mode is enabled
        theme: Rich Theme for consistent styling
    """

    def __init__(self, debug_mode: bool = False, console: Optional[Console] = None):
        """Initialize the ConsoleManager.

        Args:
            debug_mode: If True, display info and debug messages to console
            console: Console to write to (default: a new themed Console)
        """
        self.debug_mode = debug_mode
        self.theme = get_theme()
        self.console = console or Console(theme=self.theme)

    def print_banner(
        self,
        version: str,
        manifest_path: str,
        site_count: int,
        options: Optional[Dict[str, Any]] = None
    ) -> None:
        """Display the startup banner.

        Args:
            version: Application version string
            manifest_path: Path to the manifest file being used
            site_count: Number of active websites to monitor
            options: Run options shown as key/value lines
        """
        banner_text = Text()
        banner_text.append("Website Monitor\n", style="bold cyan")
        banner_text.append(f"Version: {version}\n\n", style="dim")

        banner_text.append(f"{ICONS['info']} Manifest: ", style="info")
        banner_text.append(f"{manifest_path}\n", style="white")

        banner_text.append(f"{ICONS['site']} Websites: ", style="info")
        banner_text.append(f"{site_count}", style="white")

        for key, value in (options or {}).items():
            banner_text.append(f"\n{ICONS['info']} {key}: ", style="info")
            banner_text.append(str(value), style="white")

        if self.debug_mode:
            banner_text.append("\n\n", style="white")
            banner_text.append(f"{ICONS['warning']} Debug Mode: ", style="warning")
            banner_text.append("ENABLED", style="bold yellow")

        self.console.print(Panel(
            banner_text,
            title="[bold]Application Startup[/bold]",
            border_style="cyan",
            padding=(1, 2)
        ))
        self.console.print()

    def print_error(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        exception: Optional[Exception] = None,
        show_traceback: bool = False
    ) -> None:
        """Display an error message in a Rich panel.

        In debug mode the stack trace of the exception is shown as well.

        Args:
            message: Error message to display
            details: Optional context shown below the message
            exception: Optional exception object for extracting traceback
            show_traceback: Force showing traceback even in non-debug mode
        """
        error_text = Text()
        error_text.append(f"{ICONS['error']} ", style="error")
        error_text.append(message, style="error")

        if details:
            error_text.append("\n\n", style="white")
            error_text.append("Context:\n", style="bold dim")
            for key, value in details.items():
                error_text.append(f"  {key.replace('_', ' ').title()}: ", style="dim")
                error_text.append(f"{value}\n", style="white")

        suggestion = self._get_error_suggestion(message)
        if suggestion:
            error_text.append("\n", style="white")
            error_text.append(f"{ICONS['info']} Suggestion: ", style="info")
            error_text.append(suggestion, style="cyan")

        self.console.print(Panel(
            error_text,
            title="[bold red]Error[/bold red]",
            border_style="red",
            padding=(1, 2)
        ))

        if (self.debug_mode or show_traceback) and exception:
            self._print_traceback(exception)

    @staticmethod
    def _get_error_suggestion(message: str) -> Optional[str]:
        """Actionable suggestion for a common error message, if any."""
        message_lower = (message or '').lower()
        for fragments, suggestion in ERROR_SUGGESTIONS:
            if any(fragment in message_lower for fragment in fragments):
                return suggestion
        return None

    def _print_traceback(self, exception: Exception) -> None:
        if not hasattr(exception, '__traceback__'):
            return

        tb_text = ''.join(traceback.format_exception(
            type(exception),
            exception,
            exception.__traceback__
        ))

        syntax = Syntax(
            tb_text,
            "python",
            theme="monokai",
            line_numbers=True,
            word_wrap=True
        )

        self.console.print()
        self.console.print(Panel(
            syntax,
            title="[bold red]Stack Trace[/bold red]",
            border_style="red",
            padding=(1, 2)
        ))

    def print_error_group(self, errors: List[Dict[str, Any]]) -> None:
        """Display failed websites grouped by error type.

        Args:
            errors: List of error dictionaries with keys:
                - message: Error message
                - error_type: Type of error (e.g., 'TimeoutError')
                - website: Website URL
        """
        if not errors:
            return

        grouped = defaultdict(list)
        for error in errors:
            grouped[error.get('error_type', 'Unknown')].append(error)

        self.console.print()
        self.console.print(Panel(
            f"[bold red]{ICONS['error']} {len(errors)} website(s) failed[/bold red]",
            border_style="red"
        ))
        self.console.print()

        for error_type, error_list in grouped.items():
            table = Table(
                title=f"[bold red]{error_type}[/bold red] ({len(error_list)} occurrence(s))",
                show_header=True,
                header_style="bold cyan",
                border_style="red"
            )
            table.add_column("Website", style="cyan", no_wrap=True)
            table.add_column("Message", style="white")

            for error in error_list:
                message = error.get('message', 'Unknown error')
                if len(message) > 80:
                    message = message[:77] + "..."
                table.add_row(error.get('website', 'N/A'), message)

            self.console.print(table)
            self.console.print()

            suggestion = self._get_error_suggestion(error_list[0].get('message', ''))
            if suggestion:
                self.console.print(f"  {ICONS['info']} [cyan]Suggestion: {suggestion}[/cyan]")
                self.console.print()

    def print_success(self, message: str) -> None:
        self.console.print(f"{ICONS['success']} {message}", style="success")

    def print_warning(self, message: str) -> None:
        self.console.print(f"{ICONS['warning']} {message}", style="warning")

    def print_info(self, message: str) -> None:
        """Display info message (only in debug mode)."""
        if self.debug_mode:
            self.console.print(f"{ICONS['info']} {message}", style="info")
