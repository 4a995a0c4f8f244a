"""
Bang commands: configuration models, registry, URL templates and query parsing.
"""

from .models import CommandDefinition, SubcommandDefinition, CommandsDocument
from .registry import CommandRegistry, NameCollision
from .templates import render_url
from .parser import ParsedQuery, split_query, encode_query

__all__ = [
    'CommandDefinition',
    'SubcommandDefinition',
    'CommandsDocument',
    'CommandRegistry',
    'NameCollision',
    'render_url',
    'ParsedQuery',
    'split_query',
    'encode_query',
]
