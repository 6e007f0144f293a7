"""Console output using Rich."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping, Sequence

from rich.columns import Columns
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from bitcoin_monitor.scheduler.aggregator import RefreshReport
from bitcoin_monitor.view.cards import MetricCard


class DashboardConsole:
    _LEVEL_STYLES = {
        "info": "cyan",
        "success": "green",
        "error": "red",
    }

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console()

    def log_event(
        self,
        message: str,
        *,
        level: str = "info",
        details: Mapping[str, Any] | None = None,
    ) -> None:
        """Render a short status message (optionally with structured details)."""
        style = self._LEVEL_STYLES.get(level, "white")
        if details:
            table = Table.grid(expand=True)
            table.add_column(justify="right", style="bold")
            table.add_column(ratio=1)
            for key, value in details.items():
                table.add_row(str(key), str(value))
            panel = Panel(table, title=f"[bold]{message}", border_style=style)
            self._console.print(panel)
            return
        self._console.print(f"[bold {style}]{message}[/bold {style}]")

    def info(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        self.log_event(message, level="info", details=details)

    def success(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        self.log_event(message, level="success", details=details)

    def error(self, message: str, *, details: Mapping[str, Any] | None = None) -> None:
        self.log_event(message, level="error", details=details)

    def notify_failures(self, report: RefreshReport) -> None:
        """One notification per refresh batch, listing every failed source."""
        self.error(
            "Failed to fetch Bitcoin data",
            details={outcome.source: outcome.error for outcome in report.failures},
        )

    def render_cards(
        self,
        cards: Sequence[MetricCard],
        last_updated: datetime | None = None,
        metadata: Mapping[str, str] | None = None,
    ) -> None:
        title = "Bitcoin Network Monitor"
        if metadata:
            title += " · " + " · ".join(f"{key}: {value}" for key, value in metadata.items())
        if last_updated is not None:
            title += f" · Last updated: {last_updated.astimezone().strftime('%H:%M:%S')}"
        self._console.rule(f"[bold]{title}")
        for group in ("network", "mempool"):
            panels = [
                Panel(
                    f"[{card.tone}]{escape(card.value)}[/{card.tone}]\n[dim]{escape(card.caption)}[/dim]",
                    title=card.title,
                    border_style="bright_black",
                )
                for card in cards
                if card.group == group
            ]
            if panels:
                self._console.print(Columns(panels, equal=True, expand=True))
