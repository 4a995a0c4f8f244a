"""
Request resolution for the redirect endpoint.

Turns a raw query into a redirect decision: a help listing, a command or
subcommand target, the default command, or the hardcoded search fallback.
Every decision records one usage event.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .analytics.writer import UsageLogger
from .commands.parser import encode_query, split_query
from .commands.registry import CommandRegistry
from .commands.templates import render_url
from .utils.errors import TemplateError
from .utils.logging import get_logger

logger = get_logger(__name__)

FALLBACK_SEARCH_URL = "https://www.google.com/?q="
FALLBACK_COMMAND = "google-fallback"
HELP_COMMAND = "help"
HELP_TOKENS = frozenset({"help", "list"})
REDIRECT_STATUS = 303


class ResolutionAction(str, Enum):
    """What the transport should do with a resolved query."""
    REDIRECT = "redirect"
    HELP = "help"


@dataclass(frozen=True)
class Resolution:
    """Outcome of resolving one query."""
    action: ResolutionAction
    command: str
    location: Optional[str] = None
    status: int = REDIRECT_STATUS
    is_default: bool = False
    is_subcommand: bool = False
    subcommand: str = ""

    @property
    def is_redirect(self) -> bool:
        return self.action == ResolutionAction.REDIRECT


def fallback_url(query: str) -> str:
    """Hardcoded search fallback; independent of any configured command."""
    return FALLBACK_SEARCH_URL + encode_query(query)


class Resolver:
    """Resolves raw queries against a command registry."""

    def __init__(self, registry: CommandRegistry, usage_logger: UsageLogger):
        """
        Initialize resolver.

        Args:
            registry: Commands to resolve against
            usage_logger: Receives one usage record per resolved query
        """
        self.registry = registry
        self.usage_logger = usage_logger

    def resolve(self, query: str, user_agent: str = "", remote_addr: str = "") -> Resolution:
        """
        Resolve ``query`` into a redirect or a help listing.

        Must be called from a running event loop; usage recording is
        scheduled without waiting for it.

        Args:
            query: Raw, already URL-decoded query text
            user_agent: Client user agent
            remote_addr: Client address

        Returns:
            The resolution

        Raises:
            TemplateError: The selected command's URL template is malformed
        """
        parsed = split_query(query)
        token = parsed.command

        def record(command: str, is_default: bool = False, is_subcommand: bool = False, subcommand: str = "") -> None:
            self.usage_logger.record(
                command,
                query=query,
                user_agent=user_agent,
                remote_addr=remote_addr,
                is_default=is_default,
                is_subcommand=is_subcommand,
                subcommand=subcommand,
            )

        if token.lower() in HELP_TOKENS:
            record(HELP_COMMAND)
            return Resolution(action=ResolutionAction.HELP, command=HELP_COMMAND, status=200)

        command = self.registry.find_command(token) if token else None

        if command is None:
            default = self.registry.default_command()
            if default is not None:
                record(default.name, is_default=True)
                location = self._render(default.url, encode_query(query), default.name)
                return Resolution(
                    action=ResolutionAction.REDIRECT,
                    command=default.name,
                    location=location,
                    is_default=True,
                )

            record(FALLBACK_COMMAND, is_default=True)
            return Resolution(
                action=ResolutionAction.REDIRECT,
                command=FALLBACK_COMMAND,
                location=fallback_url(query),
                is_default=True,
            )

        if parsed.argument is not None:
            sub = self.registry.find_subcommand(token, parsed.argument)
            if sub is not None:
                record(command.name, is_subcommand=True, subcommand=sub.name)
                location = self._render(sub.url, encode_query(parsed.rest or ""), f"{command.name} {sub.name}")
                return Resolution(
                    action=ResolutionAction.REDIRECT,
                    command=command.name,
                    location=location,
                    is_subcommand=True,
                    subcommand=sub.name,
                )

            record(command.name)
            location = self._render(command.url, encode_query(parsed.arguments), command.name)
            return Resolution(action=ResolutionAction.REDIRECT, command=command.name, location=location)

        if command.requires_query:
            record(FALLBACK_COMMAND, is_default=True)
            return Resolution(
                action=ResolutionAction.REDIRECT,
                command=FALLBACK_COMMAND,
                location=fallback_url(query),
                is_default=True,
            )

        record(command.name)
        location = self._render(command.url, "", command.name)
        return Resolution(action=ResolutionAction.REDIRECT, command=command.name, location=location)

    def _render(self, template: str, encoded_query: str, label: str) -> str:
        try:
            return render_url(template, encoded_query)
        except TemplateError as e:
            logger.error("template_render_failed", command=label, template=template, error=e.message)
            raise


__all__ = [
    'Resolver',
    'Resolution',
    'ResolutionAction',
    'fallback_url',
    'FALLBACK_SEARCH_URL',
    'FALLBACK_COMMAND',
    'HELP_COMMAND',
    'REDIRECT_STATUS',
]
