"""
Command configuration document.

Pydantic models for the commands file: a list of commands, each with a URL
template, aliases and optional subcommands. Field aliases keep the on-disk
camelCase names (``requiresQuery``) while Python code uses snake_case.
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field


class SubcommandDefinition(BaseModel):
    """A subcommand scoped under exactly one owning command."""
    name: str
    aliases: List[str] = Field(default_factory=list)
    description: str = ""
    url: str

    model_config = ConfigDict(frozen=True, extra="ignore")


class CommandDefinition(BaseModel):
    """A named redirect target."""
    name: str
    aliases: List[str] = Field(default_factory=list)
    description: str = ""
    url: str
    requires_query: bool = Field(default=False, alias="requiresQuery")
    is_default: bool = Field(default=False, alias="default")
    subcommands: List[SubcommandDefinition] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)


class CommandsDocument(BaseModel):
    """Top-level commands file."""
    commands: List[CommandDefinition] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


__all__ = [
    'SubcommandDefinition',
    'CommandDefinition',
    'CommandsDocument',
]
