"""
Pytest configuration and shared fixtures for bangrouter tests.
"""

import pytest
import tempfile
import shutil
import json
from pathlib import Path
from datetime import datetime, timedelta, timezone
from typing import Generator, Dict, Any, List, Callable

# Add src to path
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bangrouter.commands.models import CommandsDocument
from bangrouter.commands.registry import CommandRegistry
from bangrouter.analytics.writer import UsageLog, UsageLogger
from bangrouter.analytics.aggregator import UsageAggregator


# Commands used across the suite
SAMPLE_COMMANDS: Dict[str, Any] = {
    "commands": [
        {
            "name": "google",
            "aliases": ["g"],
            "description": "Search Google",
            "url": "https://www.google.com/?q={{query}}",
            "requiresQuery": True,
            "default": True,
        },
        {
            "name": "stackoverflow",
            "aliases": ["so", "stack"],
            "description": "Search Stack Overflow",
            "url": "https://stackoverflow.com/search?q={{query}}",
            "requiresQuery": True,
        },
        {
            "name": "author",
            "aliases": [],
            "description": "Open the author's homepage",
            "url": "https://www.markusdosch.com",
            "requiresQuery": False,
        },
        {
            "name": "github",
            "aliases": ["gh"],
            "description": "Search GitHub",
            "url": "https://github.com/search?q={{query}}",
            "requiresQuery": False,
            "subcommands": [
                {
                    "name": "pr",
                    "aliases": ["pull"],
                    "description": "Search pull requests",
                    "url": "https://github.com/pulls?q={{query}}",
                },
            ],
        },
    ]
}

START_TIME = datetime(2024, 1, 15, 10, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Manually advanced clock for duration tests."""

    def __init__(self, start: datetime = START_TIME):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path)


@pytest.fixture
def sample_commands() -> Dict[str, Any]:
    """Raw commands document."""
    return json.loads(json.dumps(SAMPLE_COMMANDS))


@pytest.fixture
def commands_file(temp_dir: Path, sample_commands: Dict[str, Any]) -> Path:
    """Commands document written to disk."""
    path = temp_dir / "commands.json"
    path.write_text(json.dumps(sample_commands))
    return path


@pytest.fixture
def registry(sample_commands: Dict[str, Any]) -> CommandRegistry:
    """Registry built from the sample commands."""
    return CommandRegistry.from_document(CommandsDocument.model_validate(sample_commands))


@pytest.fixture
def usage_log(temp_dir: Path) -> UsageLog:
    """Usage log in a fresh directory."""
    return UsageLog(temp_dir / "usage.log")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def usage_logger(usage_log: UsageLog, clock: FakeClock) -> UsageLogger:
    """Usage logger driven by the fake clock."""
    return UsageLogger(usage_log, clock=clock)


@pytest.fixture
def aggregator(usage_log: UsageLog) -> UsageAggregator:
    return UsageAggregator(usage_log)


@pytest.fixture
def write_log(usage_log: UsageLog) -> Callable[[List[Any]], Path]:
    """Write raw records (dicts are JSON-encoded, strings written as-is)."""
    def _write(records: List[Any]) -> Path:
        usage_log.path.parent.mkdir(parents=True, exist_ok=True)
        with open(usage_log.path, "a", encoding="utf-8") as f:
            for record in records:
                line = json.dumps(record) if isinstance(record, dict) else record
                f.write(line + "\n")
        return usage_log.path
    return _write


@pytest.fixture
def make_event() -> Callable[..., Dict[str, Any]]:
    """Build a raw usage record."""
    def _make(command: str, timestamp: str, **fields: Any) -> Dict[str, Any]:
        record = {"command": command, "timestamp": timestamp, "is_default": False, "is_subcommand": False}
        record.update(fields)
        return record
    return _make
