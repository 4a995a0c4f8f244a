"""
Usage Aggregator for analytics.

Computes per-day, per-range and all-time statistics from the usage log:
usage counts, unique clients, total and average durations and a ranked
list of the most used commands. Results are derived on every call and
never cached.
"""

from datetime import date, datetime, timedelta
from typing import Dict, List, Any, Iterable, Union
from dataclasses import dataclass, field

from ..utils.logging import get_logger
from ..utils.errors import DateParseError
from .parser import UsageLogParser
from .writer import UsageEvent, UsageLog

logger = get_logger(__name__)

DATE_FORMAT = "%Y-%m-%d"
DEFAULT_TOP_N = 10
ALL_TIME_LABEL = "all-time"

DateLike = Union[str, date]


@dataclass(frozen=True)
class CommandCount:
    """A command and how often it was used."""
    command: str
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"command": self.command, "count": self.count}


@dataclass
class DayStats:
    """Statistics for a single day, a date range or all time."""
    date: str
    total_usage: int = 0
    commands: Dict[str, int] = field(default_factory=dict)
    avg_duration: Dict[str, float] = field(default_factory=dict)
    total_time_ms: int = 0
    unique_users: int = 0
    top_commands: List[CommandCount] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "date": self.date,
            "total_usage": self.total_usage,
            "commands": dict(self.commands),
            "avg_duration": dict(self.avg_duration),
            "total_time_ms": self.total_time_ms,
            "unique_users": self.unique_users,
            "top_commands": [c.to_dict() for c in self.top_commands],
        }


def parse_date(value: DateLike, field_name: str = "date") -> date:
    """
    Parse a ``YYYY-MM-DD`` string.

    Raises:
        DateParseError: The value is not a valid calendar date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except (TypeError, ValueError) as e:
        raise DateParseError(field_name, value) from e


def rank_commands(counts: Dict[str, int], limit: int = DEFAULT_TOP_N) -> List[CommandCount]:
    """Order commands by count descending, then by name; keep the first ``limit``."""
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [CommandCount(command=name, count=count) for name, count in ranked[:limit]]


def compute_stats(label: str, events: Iterable[UsageEvent], top_n: int = DEFAULT_TOP_N) -> DayStats:
    """Aggregate ``events`` into a DayStats labelled ``label``."""
    stats = DayStats(date=label)
    clients = set()
    duration_sums: Dict[str, int] = {}
    duration_counts: Dict[str, int] = {}

    for event in events:
        stats.total_usage += 1
        stats.commands[event.command] = stats.commands.get(event.command, 0) + 1
        clients.add(event.client_key)

        if event.duration_ms > 0:
            stats.total_time_ms += event.duration_ms
            duration_sums[event.command] = duration_sums.get(event.command, 0) + event.duration_ms
            duration_counts[event.command] = duration_counts.get(event.command, 0) + 1

    stats.unique_users = len(clients)
    stats.avg_duration = {
        command: duration_sums[command] / duration_counts[command]
        for command in duration_sums
    }
    stats.top_commands = rank_commands(stats.commands, top_n)
    return stats


class UsageAggregator:
    """Aggregates the usage log for reporting."""

    def __init__(self, log: UsageLog, top_n: int = DEFAULT_TOP_N):
        """
        Initialize aggregator.

        Args:
            log: Usage log to read
            top_n: Length of the ranked command list
        """
        self.log = log
        self.parser = UsageLogParser(log)
        self.top_n = top_n

    async def day_stats(self, day: DateLike) -> DayStats:
        """Statistics for one calendar day."""
        target = parse_date(day)
        events = await self.parser.read_events()
        return compute_stats(
            target.strftime(DATE_FORMAT),
            (e for e in events if e.timestamp.date() == target),
            self.top_n
        )

    async def date_range(self, start: DateLike, end: DateLike) -> List[DayStats]:
        """
        Per-day statistics for every day from ``start`` to ``end`` inclusive.

        Returns an empty list when ``start`` is after ``end``.

        Raises:
            DateParseError: Either bound is malformed
        """
        first = parse_date(start, "start")
        last = parse_date(end, "end")
        if first > last:
            return []

        events = await self.parser.read_events()
        by_day: Dict[date, List[UsageEvent]] = {}
        for event in events:
            day = event.timestamp.date()
            if first <= day <= last:
                by_day.setdefault(day, []).append(event)

        results = []
        current = first
        while current <= last:
            results.append(compute_stats(current.strftime(DATE_FORMAT), by_day.get(current, ()), self.top_n))
            current += timedelta(days=1)

        logger.debug("usage_range_aggregated", start=str(first), end=str(last), days=len(results))
        return results

    async def summarize_range(self, start: DateLike, end: DateLike) -> DayStats:
        """Single DayStats over every event from ``start`` to ``end`` inclusive."""
        first = parse_date(start, "start")
        last = parse_date(end, "end")
        label = f"{first.strftime(DATE_FORMAT)} to {last.strftime(DATE_FORMAT)}"

        events = await self.parser.read_events()
        return compute_stats(
            label,
            (e for e in events if first <= e.timestamp.date() <= last),
            self.top_n
        )

    async def overall_stats(self) -> DayStats:
        """Statistics over every persisted event."""
        events = await self.parser.read_events()
        return compute_stats(ALL_TIME_LABEL, events, self.top_n)


__all__ = [
    'CommandCount',
    'DayStats',
    'UsageAggregator',
    'compute_stats',
    'rank_commands',
    'parse_date',
    'DATE_FORMAT',
    'DEFAULT_TOP_N',
    'ALL_TIME_LABEL',
]
