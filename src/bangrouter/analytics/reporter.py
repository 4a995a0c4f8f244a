"""
Report Generator for usage analytics.

Renders DayStats for the terminal (rich panels and tables) or as JSON.
Truncation of the top-commands list to a user-chosen length happens here.
"""

import json
from enum import Enum
from typing import Dict, List, Optional

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..utils.logging import get_logger
from .aggregator import CommandCount, DayStats

logger = get_logger(__name__)

MS_PER_HOUR = 1000 * 60 * 60

RANK_STYLES = ["bold green", "bold yellow", "bold red"]


class ReportFormat(str, Enum):
    """Available report formats."""
    TEXT = "text"
    JSON = "json"


def format_duration(avg_ms: Optional[float]) -> str:
    """Milliseconds below one second, seconds with one decimal above."""
    if not avg_ms or avg_ms <= 0:
        return "-"
    if avg_ms < 1000:
        return f"{avg_ms:.0f}ms"
    return f"{avg_ms / 1000:.1f}s"


class ReportGenerator:
    """Generates usage reports from DayStats."""

    def __init__(self, console: Optional[Console] = None):
        """
        Initialize report generator.

        Args:
            console: Console to print to (defaults to stdout)
        """
        self.console = console or Console()

    def overview(self, stats: DayStats) -> Panel:
        """Overview panel: totals, unique users, total time and the top command."""
        total_hours = stats.total_time_ms / MS_PER_HOUR

        grid = Table.grid(padding=(0, 2))
        grid.add_column(style="bold")
        grid.add_column()
        grid.add_row("Total Usage", f"{stats.total_usage:,}")
        grid.add_row("Unique Users", f"{stats.unique_users:,}")
        grid.add_row("Total Time", f"{total_hours:.1f}h")
        if stats.top_commands:
            top = stats.top_commands[0]
            grid.add_row("Top Command", f"{top.command} ({top.count} uses)")

        return Panel.fit(grid, title="Overview", border_style="dim")

    def top_commands_table(
        self,
        commands: List[CommandCount],
        avg_duration: Dict[str, float],
        limit: int
    ) -> Optional[Table]:
        """Top commands with count, share of the listed total and average duration."""
        commands = commands[:max(limit, 0)]
        if not commands:
            return None

        total = sum(c.count for c in commands)
        table = Table(title="Top Commands", title_style="bold blue", border_style="dim")
        table.add_column("Command")
        table.add_column("Count", justify="right")
        table.add_column("Percentage", justify="right")
        table.add_column("Avg Duration", justify="right")

        for rank, entry in enumerate(commands):
            style = RANK_STYLES[rank] if rank < len(RANK_STYLES) else None
            table.add_row(
                Text(entry.command, style=style or ""),
                str(entry.count),
                f"{entry.count / total * 100:.1f}%",
                format_duration(avg_duration.get(entry.command)),
            )
        return table

    def render(
        self,
        stats: DayStats,
        title: str,
        limit: int = 10,
        format: ReportFormat = ReportFormat.TEXT
    ) -> None:
        """Print ``stats`` in the requested format."""
        if format == ReportFormat.JSON:
            data = stats.to_dict()
            data["top_commands"] = data["top_commands"][:max(limit, 0)]
            self.console.print(json.dumps(data, indent=2), soft_wrap=True, markup=False, highlight=False, emoji=False)
            return
        if format != ReportFormat.TEXT:
            raise ValueError(f"Unsupported format: {format}")

        self.console.print(Text(title, style="bold blue"))
        if stats.total_usage == 0:
            self.console.print(Text("No command usage data for this period", style="yellow"))
            return

        parts = [self.overview(stats)]
        table = self.top_commands_table(stats.top_commands, stats.avg_duration, limit)
        if table is not None:
            parts.append(table)
        self.console.print(Group(*parts))

    def no_data(self, log_path: str) -> None:
        """Notice printed when the usage log does not exist."""
        self.console.print(Text("No analytics data found", style="bold red"))
        self.console.print(f"   Log file '{log_path}' does not exist.")
        self.console.print("   Start using bangrouter to generate analytics data!")


__all__ = ['ReportFormat', 'ReportGenerator', 'format_duration']
