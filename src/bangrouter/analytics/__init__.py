"""
Usage analytics for bangrouter.

Appends one JSON record per redirect to an append-only usage log and
aggregates that log into per-day, per-range and all-time statistics.
"""

from .writer import UsageEvent, UsageLog, UsageLogger, SESSION_GAP, client_key
from .parser import UsageLogParser, parse_line, parse_lines
from .aggregator import (
    CommandCount,
    DayStats,
    UsageAggregator,
    compute_stats,
    rank_commands,
    parse_date,
)
from .reporter import ReportFormat, ReportGenerator, format_duration

__all__ = [
    'UsageEvent',
    'UsageLog',
    'UsageLogger',
    'SESSION_GAP',
    'client_key',
    'UsageLogParser',
    'parse_line',
    'parse_lines',
    'CommandCount',
    'DayStats',
    'UsageAggregator',
    'compute_stats',
    'rank_commands',
    'parse_date',
    'ReportFormat',
    'ReportGenerator',
    'format_duration',
]
