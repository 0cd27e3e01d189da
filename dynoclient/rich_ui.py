from __future__ import annotations

from typing import Optional
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text
from rich.table import Table

from .batch import BatchResult, HostOutcome
from .invoker import InvocationOutcome


class RichUI:
    """Operator-facing output for single-host and batch runs."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def show_banner(self, subtitle: str = "") -> None:
        title = Text("dyno (client)", style="bold blue")
        if subtitle:
            title.append(f"\n{subtitle}", style="dim")
        self.console.print(Panel(title, border_style="blue"))

    def show_status(self, message: str, style: str = "blue") -> None:
        self.console.print(f"[{style}]• {escape(message)}[/{style}]")

    def show_success(self, message: str) -> None:
        self.console.print(f"[green]✓ {escape(message)}[/green]")

    def show_warning(self, message: str) -> None:
        self.console.print(f"[yellow]! {escape(message)}[/yellow]")

    def show_error(self, message: str) -> None:
        self.console.print(f"[red]✗ {escape(message)}[/red]")

    def show_outcome(self, outcome: InvocationOutcome, prefix: str = "") -> None:
        report = outcome.report
        for line in report.lines:
            self.console.print(f"{prefix}{line}", markup=False, highlight=False)
        if report.empty:
            self.show_warning(f"{prefix}{report.message}")
        else:
            self.show_success(f"{prefix}{report.message}")

    def kv_table(self, title: str, data: dict[str, str]) -> None:
        table = Table(title=title, show_header=False, expand=True)
        table.add_column("Key", style="cyan", no_wrap=True)
        table.add_column("Value")
        for k, v in data.items():
            table.add_row(str(k), str(v))
        self.console.print(table)

    def show_host_outcome(self, host: HostOutcome) -> None:
        prefix = f"[{host.endpoint}] "
        if host.error is not None:
            self.show_error(f"{prefix}{host.error.message}")
        elif host.outcome is not None:
            self.show_outcome(host.outcome, prefix=prefix)

    def batch_table(self, result: BatchResult) -> None:
        table = Table(title="Batch", expand=True)
        table.add_column("Host", style="cyan", no_wrap=True)
        table.add_column("Result")
        table.add_column("Matched", justify="right")
        table.add_column("Time", justify="right")
        for h in result:
            if h.error is not None:
                table.add_row(str(h.endpoint), f"[red]{escape(type(h.error).__name__)}[/red]", "-", "-")
                continue
            report = h.outcome.report
            matched = "-" if report.matched is None else str(len(report.matched))
            style = "yellow" if report.empty else "green"
            table.add_row(
                str(h.endpoint),
                f"[{style}]{escape(report.message)}[/{style}]",
                matched,
                f"{h.outcome.elapsed:.2f}s",
            )
        self.console.print(table)
