"""HTML entity escaping for literal text."""

from __future__ import annotations

import html


def escape_entities(text: str) -> str:
    """Escape characters that need entity protection in HTML.

    Replaces ``&``, ``<``, ``>``, ``"`` and ``'``; every other character is
    passed through unchanged. Applying it twice double-encodes, so each literal
    segment must be escaped exactly once.

    Args:
        text: Literal text.

    Returns:
        str: Text safe to embed in element content or a quoted attribute.

    Examples:
        escape_entities("a < b")  # "a &lt; b"
        escape_entities("&amp;")  # "&amp;amp;"
    """
    return html.escape(text, quote=True)
