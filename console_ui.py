#!/usr/bin/env python3
"""
Status Console Module using Rich

Colored status messages, configuration tables, progress bars and the run
summary. Everything is written to stderr so that stdout carries only the
blob records, which may be piped into other tools.
"""

from typing import Any, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)
from rich.table import Table
from rich.text import Text


class ConsoleUI:
    """Status output handler; quiet mode silences everything except errors"""

    def __init__(self, force_terminal: Optional[bool] = None, quiet: bool = False):
        """Initialize stderr consoles with optional terminal forcing"""
        self.quiet = quiet
        self.console = Console(stderr=True, force_terminal=force_terminal, highlight=False, quiet=quiet)
        self.error_console = Console(stderr=True, force_terminal=force_terminal, highlight=False)

    # Basic styled output methods
    def print_success(self, message: str):
        """Print success message in green"""
        self.console.print(message, style="green", markup=False)

    def print_error(self, message: str):
        """Print error message in red, even in quiet mode"""
        self.error_console.print(message, style="red bold", markup=False)

    def print_warning(self, message: str):
        """Print warning message in yellow"""
        self.console.print(message, style="yellow", markup=False)

    def print_info(self, message: str):
        """Print info message in cyan"""
        self.console.print(message, style="cyan", markup=False)

    def print_header(self, title: str, subtitle: Optional[str] = None):
        """Print a header with optional subtitle"""
        if subtitle:
            header_text = f"[bold]{escape(title)}[/bold]\n[dim]{escape(subtitle)}[/dim]"
        else:
            header_text = f"[bold]{escape(title)}[/bold]"

        self.console.print(Panel(header_text, box=box.ROUNDED, padding=(0, 1)))

    # Configuration display
    def show_configuration(self, config: dict[str, Any]):
        """Display configuration in a formatted table"""
        table = Table(show_header=False, box=box.SIMPLE)
        table.add_column("Setting", style="cyan dim", min_width=20, justify="right")
        table.add_column("Value", style="cyan", min_width=30)

        for key, value in config.items():
            if isinstance(value, (list, tuple, set)):
                value = ", ".join(str(v) for v in value)
            # repr keeps tabs and NULs in templates visible
            display = value if isinstance(value, str) and value.isprintable() else repr(value)
            table.add_row(key, Text(display))

        self.console.print(table)

    def show_summary(self, rows: list[tuple[str, int, str]], title: str = "Summary"):
        """Show per-kind record counts and sizes"""
        table = Table(title=title, box=box.ROUNDED, show_lines=False)
        table.add_column("Kind", style="cyan", min_width=12)
        table.add_column("Files", justify="right", min_width=6)
        table.add_column("Size", justify="right", style="yellow", min_width=10)

        for kind, count, size in rows:
            table.add_row(kind, f"{count:,}", size)

        self.console.print(table)

    # Progress bar management
    def create_progress(self):
        """Create a Rich progress context manager for counted work"""
        return Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            TextColumn("({task.completed}/{task.total})"),
            TimeElapsedColumn(),
            TimeRemainingColumn(),
            console=self.console,
        )

    def create_activity_progress(self):
        """Create a Rich progress context manager for activity-only display (no counts)"""
        return Progress(
            SpinnerColumn(),
            TextColumn("{task.description}"),
            TimeElapsedColumn(),
            console=self.console,
        )
