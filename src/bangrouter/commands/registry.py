"""
Command registry for bang commands.

The registry is built once from a commands document and is read-only
afterwards. Lookups are case-insensitive; primary names take precedence over
aliases, and subcommands are reachable through the owning command's name or
any of its aliases.
"""

from typing import Dict, Any, List, Optional, Iterable, Tuple
from dataclasses import dataclass

from ..utils.logging import get_logger
from .models import CommandDefinition, CommandsDocument, SubcommandDefinition

logger = get_logger(__name__)


@dataclass(frozen=True)
class NameCollision:
    """A name or alias registered more than once; the later entry wins."""
    scope: str
    key: str
    previous: str
    replacement: str


class CommandRegistry:
    """Registry for looking up redirect commands."""

    def __init__(self, commands: Iterable[CommandDefinition] = ()):
        """
        Build the registry.

        Duplicate names and aliases are resolved last-write-wins; each
        collision is logged as a warning and kept in ``collisions``.

        Args:
            commands: Command definitions in configuration order
        """
        self._commands: Dict[str, CommandDefinition] = {}
        self._aliases: Dict[str, CommandDefinition] = {}
        self._subcommands: Dict[str, Dict[str, SubcommandDefinition]] = {}
        self._default: Optional[CommandDefinition] = None
        self._owners: Dict[Tuple[str, str], str] = {}
        self.collisions: List[NameCollision] = []

        for command in commands:
            self._register(command)

        logger.info(
            "command_registry_built",
            commands=len(self._commands),
            aliases=len(self._aliases),
            default=self._default.name if self._default else None,
            collisions=len(self.collisions)
        )

    @classmethod
    def from_document(cls, document: CommandsDocument) -> "CommandRegistry":
        """Create a registry from a parsed commands document."""
        return cls(document.commands)

    def _register(self, command: CommandDefinition) -> None:
        name = command.name.lower()
        self._store(self._commands, "command", name, command, command.name)

        for alias in command.aliases:
            self._store(self._aliases, "alias", alias.lower(), command, command.name)

        if command.is_default:
            if self._default is not None and self._default.name != command.name:
                logger.warning(
                    "default_command_replaced",
                    previous=self._default.name,
                    replacement=command.name
                )
            self._default = command

        if command.subcommands:
            sub_map: Dict[str, SubcommandDefinition] = {}
            for sub in command.subcommands:
                scope = f"subcommand:{command.name}"
                self._store(sub_map, scope, sub.name.lower(), sub, sub.name)
                for alias in sub.aliases:
                    self._store(sub_map, scope, alias.lower(), sub, sub.name)

            self._store(self._subcommands, "subcommands", name, sub_map, command.name)
            for alias in command.aliases:
                self._store(self._subcommands, "subcommands", alias.lower(), sub_map, command.name)

        logger.debug(
            "command_registered",
            name=command.name,
            aliases=list(command.aliases),
            subcommands=len(command.subcommands)
        )

    def _store(self, table: Dict[str, Any], scope: str, key: str, value: Any, label: str) -> None:
        previous = self._owners.get((scope, key))
        if previous is not None and previous != label:
            self.collisions.append(NameCollision(scope=scope, key=key, previous=previous, replacement=label))
            logger.warning(
                "command_name_collision",
                scope=scope,
                key=key,
                previous=previous,
                replacement=label
            )
        self._owners[(scope, key)] = label
        table[key] = value

    def find_command(self, name: str) -> Optional[CommandDefinition]:
        """Look up a command by primary name, then by alias."""
        key = name.lower()
        command = self._commands.get(key)
        if command is not None:
            return command
        return self._aliases.get(key)

    def find_subcommand(self, command_name: str, sub_name: str) -> Optional[SubcommandDefinition]:
        """Look up a subcommand under a command name or alias."""
        sub_map = self._subcommands.get(command_name.lower())
        if sub_map is None:
            return None
        return sub_map.get(sub_name.lower())

    def default_command(self) -> Optional[CommandDefinition]:
        """Return the command flagged as default, if any."""
        return self._default

    def list_commands(self) -> List[CommandDefinition]:
        """List registered commands, one entry per primary name."""
        seen = set()
        commands = []
        for command in self._commands.values():
            if command.name not in seen:
                seen.add(command.name)
                commands.append(command)
        return sorted(commands, key=lambda c: c.name.lower())

    def get_stats(self) -> Dict[str, Any]:
        """Get registry statistics."""
        return {
            "total_commands": len(self._commands),
            "total_aliases": len(self._aliases),
            "with_subcommands": sum(1 for c in self.list_commands() if c.subcommands),
            "default_command": self._default.name if self._default else None,
            "collisions": [
                {"scope": c.scope, "key": c.key, "previous": c.previous, "replacement": c.replacement}
                for c in self.collisions
            ],
        }


__all__ = [
    'CommandRegistry',
    'NameCollision',
]
