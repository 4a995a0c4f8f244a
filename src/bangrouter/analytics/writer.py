"""
JSONL writer for usage analytics.

Handles appending usage events to the usage log with:
- One self-contained JSON object per line
- Serialized writes through a shared asyncio lock
- Per-client durations between consecutive requests
- Fire-and-forget recording that never fails the caller
"""

import json
import math
import asyncio
import aiofiles
from pathlib import Path
from datetime import datetime, timedelta
from typing import Dict, Any, Optional, List, Callable, Set, Union
from dataclasses import dataclass

from ..utils.logging import get_logger
from ..utils.errors import StorageError

logger = get_logger(__name__)

# Gaps of this length or longer start a new session and record no duration.
SESSION_GAP = timedelta(hours=1)


def client_key(remote_addr: Optional[str], user_agent: Optional[str]) -> str:
    """Coarse client identity used for durations and unique-user counts."""
    return f"{remote_addr or ''}|{user_agent or ''}"


def local_now() -> datetime:
    """Current local time with its UTC offset."""
    return datetime.now().astimezone()


@dataclass(frozen=True)
class UsageEvent:
    """A single redirect request."""
    command: str
    timestamp: datetime
    query: str = ""
    user_agent: str = ""
    remote_addr: str = ""
    duration_ms: int = 0
    is_default: bool = False
    is_subcommand: bool = False
    subcommand: str = ""

    @property
    def client_key(self) -> str:
        return client_key(self.remote_addr, self.user_agent)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization; empty optionals are omitted."""
        data: Dict[str, Any] = {"command": self.command}
        if self.query:
            data["query"] = self.query
        data["timestamp"] = self.timestamp.isoformat()
        if self.user_agent:
            data["user_agent"] = self.user_agent
        if self.remote_addr:
            data["remote_addr"] = self.remote_addr
        if self.duration_ms:
            data["duration_ms"] = self.duration_ms
        data["is_default"] = self.is_default
        data["is_subcommand"] = self.is_subcommand
        if self.subcommand:
            data["subcommand"] = self.subcommand
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(',', ':'), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UsageEvent":
        """
        Create from dictionary.

        Raises:
            KeyError, TypeError, ValueError: The record is incomplete, mistyped or malformed
        """
        command = data["command"]
        if not isinstance(command, str):
            raise TypeError(f"command must be a string, got {type(command).__name__}")

        duration = data.get("duration_ms")
        if duration is None:
            duration = 0
        if isinstance(duration, bool) or not isinstance(duration, (int, float)):
            raise TypeError("duration_ms must be a number")
        if not math.isfinite(duration):
            raise ValueError("duration_ms must be finite")

        return cls(
            command=command,
            timestamp=parse_timestamp(data["timestamp"]),
            query=_optional(data, "query", str, ""),
            user_agent=_optional(data, "user_agent", str, ""),
            remote_addr=_optional(data, "remote_addr", str, ""),
            duration_ms=int(duration),
            is_default=_optional(data, "is_default", bool, False),
            is_subcommand=_optional(data, "is_subcommand", bool, False),
            subcommand=_optional(data, "subcommand", str, ""),
        )


def _optional(data: Dict[str, Any], key: str, kind: type, default: Any) -> Any:
    """Value of an optional field; absent or null gives ``default``, a wrong type raises TypeError."""
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, kind):
        raise TypeError(f"{key} must be {kind.__name__}, got {type(value).__name__}")
    return value


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp; sub-microsecond digits are dropped."""
    if not isinstance(value, str):
        raise TypeError("timestamp must be a string")
    head, dot, tail = value.partition(".")
    if dot:
        digits = len(tail) - len(tail.lstrip("0123456789"))
        if digits > 6:
            value = f"{head}.{tail[:6]}{tail[digits:]}"
    return datetime.fromisoformat(value)


class UsageLog:
    """The append-only usage log file.

    ``lock`` serializes appends against each other and against snapshot
    reads, so readers never see a half-written record from this process.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.lock = asyncio.Lock()

    async def append_line(self, line: str) -> None:
        """Append one record. The caller must hold ``lock``."""
        if not self.lock.locked():
            raise RuntimeError("UsageLog.append_line requires the log lock")

        self.path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(self.path, 'a', encoding='utf-8') as f:
            await f.write(line + '\n')

    async def read_lines(self) -> List[str]:
        """
        Snapshot every line of the log.

        A missing file reads as empty; any other failure raises StorageError.
        """
        async with self.lock:
            try:
                async with aiofiles.open(self.path, 'r', encoding='utf-8', errors='replace') as f:
                    return await f.readlines()
            except FileNotFoundError:
                return []
            except OSError as e:
                raise StorageError(f"Failed to read usage log {self.path}: {e}", cause=e) from e

    def exists(self) -> bool:
        return self.path.is_file()


class UsageLogger:
    """Records usage events and computes per-client durations."""

    def __init__(
        self,
        log: UsageLog,
        clock: Optional[Callable[[], datetime]] = None,
        session_gap: timedelta = SESSION_GAP
    ):
        """
        Initialize usage logger.

        Args:
            log: Usage log to append to
            clock: Returns the current time (defaults to local aware time)
            session_gap: Gaps at or above this are not recorded as durations
        """
        self.log = log
        self.session_gap = session_gap
        self._clock = clock or local_now
        self._last_seen: Dict[str, datetime] = {}
        self._pending: Set[asyncio.Task] = set()

    async def log_usage(
        self,
        command: str,
        query: str = "",
        user_agent: str = "",
        remote_addr: str = "",
        is_default: bool = False,
        is_subcommand: bool = False,
        subcommand: str = ""
    ) -> Optional[UsageEvent]:
        """
        Build, time and persist one usage event.

        Reading the client's last-seen time, computing the duration, updating
        last-seen and appending the record happen under the log lock as one
        unit. Write failures are logged and yield ``None``.
        """
        async with self.log.lock:
            now = self._clock()
            key = client_key(remote_addr, user_agent)

            duration_ms = 0
            last = self._last_seen.get(key)
            if last is not None:
                elapsed = now - last
                if timedelta(0) <= elapsed < self.session_gap:
                    duration_ms = elapsed // timedelta(milliseconds=1)
            self._last_seen[key] = now

            event = UsageEvent(
                command=command,
                timestamp=now,
                query=query,
                user_agent=user_agent,
                remote_addr=remote_addr,
                duration_ms=duration_ms,
                is_default=is_default,
                is_subcommand=is_subcommand,
                subcommand=subcommand,
            )

            try:
                await self.log.append_line(event.to_json())
            except OSError as e:
                logger.error(
                    "usage_write_failed",
                    path=str(self.log.path),
                    command=command,
                    error=str(e)
                )
                return None

        logger.debug("usage_recorded", command=command, duration_ms=duration_ms)
        return event

    def record(
        self,
        command: str,
        query: str = "",
        user_agent: str = "",
        remote_addr: str = "",
        is_default: bool = False,
        is_subcommand: bool = False,
        subcommand: str = ""
    ) -> asyncio.Task:
        """Schedule ``log_usage`` without waiting for it. Requires a running loop."""
        task = asyncio.get_running_loop().create_task(
            self.log_usage(
                command,
                query=query,
                user_agent=user_agent,
                remote_addr=remote_addr,
                is_default=is_default,
                is_subcommand=is_subcommand,
                subcommand=subcommand,
            )
        )
        self._pending.add(task)
        task.add_done_callback(self._on_recorded)
        return task

    def _on_recorded(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error("usage_record_failed", error=str(error), error_type=type(error).__name__)

    @property
    def pending(self) -> int:
        """Number of scheduled records not yet written."""
        return len(self._pending)

    async def drain(self) -> None:
        """Wait until every scheduled record has been written."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


__all__ = [
    'UsageEvent',
    'UsageLog',
    'UsageLogger',
    'SESSION_GAP',
    'client_key',
    'local_now',
    'parse_timestamp',
]
