"""Progress tracking for a monitoring batch."""

import time
from typing import Optional

from rich.console import Console
from rich.progress import (
    Progress,
    SpinnerColumn,
    BarColumn,
    TaskProgressColumn,
    TimeElapsedColumn,
    TextColumn,
)


class ProgressTracker:
    """Shows which website is being monitored and how many are done."""

    def __init__(self, console: Console, total_sites: int):
        self.console = console
        self.total_sites = total_sites
        self.start_time: Optional[float] = None
        self.task_id: Optional[int] = None

        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TimeElapsedColumn(),
            console=console,
        )

    def start(self) -> None:
        self.start_time = time.time()
        self.progress.start()
        self.task_id = self.progress.add_task(
            "[cyan]Monitoring websites...",
            total=self.total_sites
        )

    def update_site(self, name: str) -> None:
        """Show the website currently being monitored."""
        if self.task_id is not None:
            self.progress.update(
                self.task_id,
                description=f"[cyan]Monitoring {name}..."
            )

    def complete_site(self, name: str, status: str) -> None:
        if self.task_id is not None:
            self.progress.advance(self.task_id, 1)

    def finish(self, total_time: Optional[float] = None) -> None:
        """
        Stop the progress display and print the total run time.

        Args:
            total_time: Total run time in seconds, measured from start() when None
        """
        if total_time is None and self.start_time is not None:
            total_time = time.time() - self.start_time

        self.progress.stop()

        if total_time is not None:
            self.console.print(
                f"\n[bold green]✓[/bold green] Monitored {self.total_sites} website(s) in "
                f"[bold cyan]{total_time:.2f}[/bold cyan] seconds"
            )
