from __future__ import annotations

"""Centralized output handling for descriptor runs."""

from enum import Enum
from typing import TYPE_CHECKING, Any

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
)
from rich.table import Table

if TYPE_CHECKING:
    from reprise.descriptors.pipeline import FileFailure


class OutputLevel(Enum):
    """Output verbosity level."""

    QUIET = 0  # Only errors and the final summary
    NORMAL = 1  # Standard with progress bar
    VERBOSE = 2  # All details


class RunOutputter:
    """Centralized output handler for descriptor runs.

    Handles output formatting for quiet/normal/verbose modes with progress bars.
    The triage summary is printed at every level.
    """

    def __init__(self, level: OutputLevel = OutputLevel.NORMAL, console: Console | None = None):
        """Initialize run outputter.

        Args:
            level: Output verbosity level
            console: Console to print to (stdout if None)
        """
        self.level = level
        self.console = console or Console()
        self.err_console = Console(stderr=True)
        self.progress: Progress | None = None
        self.task: TaskID | None = None

    def header(self, title: str, **kwargs: Any) -> None:
        """Show run header.

        Args:
            title: Header title
            **kwargs: Additional key-value pairs to display
        """
        if self.level == OutputLevel.QUIET:
            return

        self.console.print(title, style="bold")
        for key, value in kwargs.items():
            display_key = key.replace("_", " ").title()
            self.console.print(f"{display_key}: {value}")
        self.console.print()

    def phase(self, name: str, number: int | None = None) -> None:
        """Show phase marker.

        Args:
            name: Phase name
            number: Optional phase number
        """
        if self.level == OutputLevel.QUIET:
            return

        if number is not None:
            self.console.print(f"\n=== Phase {number}: {name} ===", style="bold cyan")
        else:
            self.console.print(f"\n=== {name} ===", style="bold cyan")

    def start_progress(self, total: int, description: str = "Processing", unit: str = "files") -> None:
        """Start progress bar.

        Args:
            total: Total number of items
            description: Progress description
            unit: Unit name for items
        """
        if self.level != OutputLevel.NORMAL or total == 0:
            return

        self.progress = Progress(
            TextColumn("[bold blue]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TextColumn("({task.completed}/{task.total} {task.fields[unit]})"),
            TimeRemainingColumn(),
            console=self.console,
        )
        self.progress.start()
        self.task = self.progress.add_task(description, total=total, unit=unit)

    def update_progress(self, advance: int = 1) -> None:
        """Update progress bar.

        Args:
            advance: Number of items to advance
        """
        if self.progress and self.task is not None:
            self.progress.update(self.task, advance=advance)

    def finish_progress(self) -> None:
        """Finish and cleanup progress bar."""
        if self.progress:
            self.progress.stop()
            self.progress = None
            self.task = None

    def info(self, message: str) -> None:
        """Show info message."""
        if self.level == OutputLevel.QUIET:
            return

        self.console.print(message)

    def verbose(self, message: str) -> None:
        """Show verbose message."""
        if self.level != OutputLevel.VERBOSE:
            return

        self.console.print(message)

    def success(self, message: str) -> None:
        """Show success message."""
        if self.level == OutputLevel.QUIET:
            return

        self.console.print(f"✓ {message}", style="green")

    def warning(self, message: str) -> None:
        """Show warning message."""
        if self.level == OutputLevel.QUIET:
            return

        self.console.print(f"⚠️  {message}", style="yellow")

    def error(self, message: str) -> None:
        """Show error message (always shown, even in quiet mode)."""
        self.err_console.print(f"✗ {message}", style="red")

    def reused(self, filename: str) -> None:
        """Show that a descriptor was taken from the cache."""
        if self.level != OutputLevel.VERBOSE:
            return

        self.console.print(f"  → {filename}: using cached descriptor (skip download)")

    def computed(self, filename: str, size: int, sha512: str) -> None:
        """Show a newly computed descriptor."""
        if self.level != OutputLevel.VERBOSE:
            return

        size_mb = size / 1024 / 1024
        self.console.print(f"  → {filename}: {size_mb:.1f} MB, SHA512 {sha512[:16]}... PASSED")

    def summary(self, **stats: Any) -> None:
        """Show summary statistics (always shown).

        Args:
            **stats: Statistics as key-value pairs
        """
        self.console.print("\n=== Summary ===", style="bold")
        for key, value in stats.items():
            display_key = key.replace("_", " ").title()
            self.console.print(f"  {display_key}: {value}")

    def failures(self, failures: list[FileFailure]) -> None:
        """Show failed files (always shown).

        Args:
            failures: Per-file failures collected during the run
        """
        if not failures:
            return

        table = Table(title="Failed files", title_style="bold red", show_lines=False)
        table.add_column("Filename")
        table.add_column("Kind")
        table.add_column("URL", overflow="fold")
        table.add_column("Error", overflow="fold")
        for failure in failures:
            table.add_row(failure.filename, failure.kind, failure.url, failure.error)
        self.err_console.print(table)

        for failure in failures:
            if failure.expected_sha512 or failure.computed_sha512:
                self.err_console.print(f"{failure.filename}:", style="red")
                self.err_console.print(f"  Expected:   {failure.expected_sha512}")
                self.err_console.print(f"  Calculated: {failure.computed_sha512}")
