"""
Query tokenizing for the redirect endpoint.

A raw query such as ``gh pull fix login`` is split into the command token,
the first argument (a possible subcommand) and the remaining text.
"""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote_plus


@dataclass(frozen=True)
class ParsedQuery:
    """A query split into at most three whitespace-separated tokens."""
    raw: str
    command: str
    argument: Optional[str] = None
    rest: Optional[str] = None

    @property
    def token_count(self) -> int:
        """Number of tokens present (0 for an empty query)."""
        if not self.command:
            return 0
        return 1 + (self.argument is not None) + (self.rest is not None)

    @property
    def arguments(self) -> str:
        """Everything after the command token, joined by a single space."""
        return " ".join(part for part in (self.argument, self.rest) if part is not None)


def split_query(query: str) -> ParsedQuery:
    """
    Split ``query`` on whitespace into at most three tokens.

    The third token keeps its internal whitespace.
    """
    parts = query.split(None, 2)
    return ParsedQuery(
        raw=query,
        command=parts[0] if parts else "",
        argument=parts[1] if len(parts) > 1 else None,
        rest=parts[2] if len(parts) > 2 else None,
    )


def encode_query(text: str) -> str:
    """Form-encode query text (spaces become ``+``, reserved characters are escaped)."""
    return quote_plus(text)


__all__ = ['ParsedQuery', 'split_query', 'encode_query']
