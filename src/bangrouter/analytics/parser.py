"""
Usage Log Parser for analytics.

Parses the JSONL usage log into UsageEvent records. Lines that fail to
decode (including a truncated trailing write) are skipped.
"""

import json
from typing import List, Optional, Iterable

from ..utils.logging import get_logger
from .writer import UsageEvent, UsageLog

logger = get_logger(__name__)


def parse_line(line: str) -> Optional[UsageEvent]:
    """
    Parse a single log line.

    Returns:
        The event, or None for blank or malformed lines
    """
    line = line.strip()
    if not line:
        return None

    try:
        data = json.loads(line)
        if not isinstance(data, dict):
            return None
        return UsageEvent.from_dict(data)
    except (ValueError, KeyError, TypeError, OverflowError):
        return None


def parse_lines(lines: Iterable[str]) -> List[UsageEvent]:
    """Parse every decodable line, in file order."""
    events = []
    skipped = 0

    for line in lines:
        event = parse_line(line)
        if event is None:
            if line.strip():
                skipped += 1
            continue
        events.append(event)

    if skipped:
        logger.debug("usage_lines_skipped", skipped=skipped, parsed=len(events))
    return events


class UsageLogParser:
    """Reads usage events from a UsageLog."""

    def __init__(self, log: UsageLog):
        self.log = log

    async def read_events(self) -> List[UsageEvent]:
        """
        Snapshot the log and parse it.

        Raises:
            StorageError: The log exists but cannot be read
        """
        lines = await self.log.read_lines()
        events = parse_lines(lines)
        logger.debug("usage_log_parsed", path=str(self.log.path), events=len(events))
        return events


__all__ = ['UsageLogParser', 'parse_line', 'parse_lines']
