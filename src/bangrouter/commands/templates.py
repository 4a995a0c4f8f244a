"""URL template rendering for command targets."""

from string import Template

from ..utils.errors import TemplateError

QUERY_PLACEHOLDER = "query"


class URLTemplate(Template):
    """``string.Template`` using ``{{name}}`` placeholders.

    An unterminated or malformed ``{{`` is reported as invalid rather than
    passed through, and unknown names raise ``KeyError`` on substitution.
    """

    pattern = r"""
    \{\{(?:
        \s*(?P<named>[_a-z][_a-z0-9]*)\s*\}\}   |
        (?P<escaped>(?!))                       |
        (?P<braced>(?!))                        |
        (?P<invalid>)
    )
    """


def render_url(template: str, query: str) -> str:
    """
    Substitute ``query`` into a URL template.

    The query is inserted as-is; callers percent-encode it first.

    Args:
        template: URL template, e.g. ``https://example.com/?q={{query}}``
        query: Already-encoded query text

    Returns:
        Rendered URL

    Raises:
        TemplateError: The template has an unknown or malformed placeholder
    """
    try:
        return URLTemplate(template).substitute({QUERY_PLACEHOLDER: query})
    except KeyError as e:
        raise TemplateError(template, f"unknown placeholder {e.args[0]!r}") from e
    except ValueError as e:
        raise TemplateError(template, str(e)) from e


__all__ = ['URLTemplate', 'render_url', 'QUERY_PLACEHOLDER']
