"""
Command line interface for bangrouter.

    bangrouter serve   run the redirect server
    bangrouter stats   print usage statistics from the usage log
"""

import asyncio
import sys
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional

import click

from . import __version__
from .analytics.aggregator import UsageAggregator
from .analytics.reporter import ReportFormat, ReportGenerator
from .analytics.writer import UsageLog, UsageLogger
from .commands.registry import CommandRegistry
from .server import create_app, serve as serve_app
from .utils.config import BangConfig, load_commands, load_config
from .utils.errors import BangError
from .utils.logging import get_logger, setup_logging

logger = get_logger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _fail(error: BangError) -> None:
    click.secho(f"Error: {error.message}", fg="red", err=True)
    for suggestion in error.get_suggestions():
        click.echo(f"  - {suggestion}", err=True)
    sys.exit(1)


def _load(config_path: Optional[Path]) -> BangConfig:
    try:
        return load_config([config_path] if config_path else None)
    except BangError as e:
        _fail(e)


def _with_overrides(config: BangConfig, overrides: Dict[str, Any]) -> BangConfig:
    """Apply command line flags on top of every other configuration source."""
    data = config.model_dump()
    for section, values in overrides.items():
        if isinstance(values, dict):
            data[section].update(values)
        else:
            data[section] = values
    return BangConfig.model_validate(data)


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version')
@click.pass_context
def main(ctx: click.Context, version: bool):
    """bangrouter - keyword redirector with usage analytics."""
    if version:
        click.echo(f"bangrouter v{__version__}")
        return
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@main.command()
@click.option('--config', 'config_path', type=click.Path(dir_okay=False, path_type=Path),
              help='Settings file (.yaml, .json or .env)')
@click.option('--commands', 'commands_path', type=click.Path(dir_okay=False, path_type=Path),
              help='Commands file (default: commands.json)')
@click.option('--host', help='Host to bind to')
@click.option('--port', type=click.IntRange(1, 65535), help='Port to bind to')
@click.option('--log-level', type=click.Choice(LOG_LEVELS, case_sensitive=False), help='Logging level')
def serve(
    config_path: Optional[Path],
    commands_path: Optional[Path],
    host: Optional[str],
    port: Optional[int],
    log_level: Optional[str]
):
    """Run the redirect server."""
    config = _load(config_path)

    overrides: Dict[str, Any] = {}
    if commands_path:
        overrides['commands_path'] = commands_path
    server = {k: v for k, v in (('host', host), ('port', port)) if v is not None}
    if server:
        overrides['server'] = server
    if log_level:
        overrides['logging'] = {'level': log_level}
    config = _with_overrides(config, overrides)

    setup_logging(
        app_name=config.app_name,
        log_level=config.logging.level,
        log_dir=config.logging.directory,
        enable_json=config.logging.enable_json,
        enable_sentry=config.logging.enable_sentry,
        sentry_dsn=config.logging.sentry_dsn,
    )

    try:
        document = load_commands(config.commands_path)
    except BangError as e:
        logger.error("commands_load_failed", path=str(config.commands_path), error=e.message)
        _fail(e)

    registry = CommandRegistry.from_document(document)
    usage_log = UsageLog(config.analytics.log_path)
    app = create_app(
        registry,
        UsageLogger(usage_log),
        UsageAggregator(usage_log, top_n=config.analytics.top_n),
    )
    logger.info(
        "commands_loaded",
        count=len(document.commands),
        path=str(config.commands_path),
        usage_log=str(usage_log.path)
    )

    try:
        asyncio.run(serve_app(app, config.server.host, config.server.port))
    except KeyboardInterrupt:
        logger.info("shutdown_requested")


@main.command()
@click.option('--date', 'day', help='Show stats for a specific date (YYYY-MM-DD, default: today)')
@click.option('--start', help='Start date for range analysis (YYYY-MM-DD)')
@click.option('--end', help='End date for range analysis (YYYY-MM-DD)')
@click.option('--overall', is_flag=True, help='Show all-time statistics')
@click.option('--log', 'log_path', type=click.Path(dir_okay=False, path_type=Path),
              help='Path to the usage log (default: usage.log)')
@click.option('--top', type=click.IntRange(min=0), help='Number of top commands to show')
@click.option('--format', 'output_format', type=click.Choice([f.value for f in ReportFormat]),
              default=ReportFormat.TEXT.value, show_default=True, help='Output format')
@click.option('--config', 'config_path', type=click.Path(dir_okay=False, path_type=Path),
              help='Settings file (.yaml, .json or .env)')
def stats(
    day: Optional[str],
    start: Optional[str],
    end: Optional[str],
    overall: bool,
    log_path: Optional[Path],
    top: Optional[int],
    output_format: str,
    config_path: Optional[Path]
):
    """Print usage statistics.

    \b
    Examples:
      bangrouter stats                                   # today
      bangrouter stats --date 2024-01-15                 # specific date
      bangrouter stats --overall                         # all time
      bangrouter stats --start 2024-01-01 --end 2024-01-31
      bangrouter stats --top 5
    """
    if bool(start) != bool(end):
        raise click.UsageError("--start and --end must be given together")

    config = _load(config_path)
    setup_logging(app_name=config.app_name, log_level="WARNING", log_to_files=False)

    usage_log = UsageLog(log_path or config.analytics.log_path)
    limit = top if top is not None else config.analytics.top_n
    reporter = ReportGenerator()

    if not usage_log.exists():
        reporter.no_data(str(usage_log.path))
        return

    aggregator = UsageAggregator(usage_log, top_n=max(limit, config.analytics.top_n))

    try:
        if overall:
            title = "Overall Statistics (All Time)"
            result = asyncio.run(aggregator.overall_stats())
        elif start and end:
            result = asyncio.run(aggregator.summarize_range(start, end))
            title = f"Statistics for {result.date}"
        else:
            target = day or date.today().isoformat()
            result = asyncio.run(aggregator.day_stats(target))
            title = f"Statistics for {result.date}"
    except BangError as e:
        _fail(e)

    reporter.render(result, title, limit=limit, format=ReportFormat(output_format))


__all__ = ['main']
