"""Block-level formatting of multi-line JIRA markup."""

from __future__ import annotations

import re
from dataclasses import replace

from .config import PublisherConfig
from .constants import FENCE_WRAPPERS, LINE_BREAK
from .escape import escape_entities
from .models import FenceKind, FenceState, ParserState
from .parser import parse_line

LINE_SPLIT_PATTERN = re.compile(r"\r?\n")


def match_fence(line: str, keywords: tuple[str, ...]) -> FenceKind:
    """Return the fence kind a line starts with.

    Args:
        line: Line to inspect.
        keywords: Fence keywords that are recognised.

    Returns:
        FenceKind: Matching kind, or ``FenceKind.NONE``.

    Examples:
        match_fence("{code:java}", ("code",))  # FenceKind.CODE
        match_fence("{{code}}", ("code",))  # FenceKind.NONE
    """
    for keyword in keywords:
        if line.startswith("{" + keyword):
            return FenceKind(keyword)
    return FenceKind.NONE


def _toggle_fence(fence: FenceState, kind: FenceKind) -> tuple[str, FenceState]:
    if fence.fenced:
        return FENCE_WRAPPERS[fence.kind][1], FenceState()
    return FENCE_WRAPPERS[kind][0], FenceState(kind)


def format_markup(document: str, config: PublisherConfig | None = None) -> str:
    """Render a markup document (description or comment body) as HTML.

    Lines between ``{noformat}`` or ``{code}`` fences are only escaped. Lines
    inside ``{panel}`` and ``{quote}`` fences and outside any fence go through
    `parse_line`. Fences do not nest: while a fence is open only its own
    keyword closes it. Lines outside fences end with ``<br>`` except headings
    and the line right after a heading.

    Lines are split on LF and CRLF only; a lone CR stays part of its line.

    Args:
        document: Markup text with LF or CRLF line separators.
        config: Configuration for fence keywords, rewrite rules, and whether
            a list or fence still open at the end is closed.

    Returns:
        str: HTML fragment.

    Examples:
        format_markup("h2. Title\\nbody")  # "<h2>Title</h2>body"
        format_markup("{code}\\n*x*\\n{code}")
    """
    config = config or PublisherConfig()

    out: list[str] = []
    state = ParserState()
    fence = FenceState()
    last_was_heading = False

    for line in LINE_SPLIT_PATTERN.split(document):
        kind = match_fence(line, config.fence_keywords)
        if kind is not FenceKind.NONE and (not fence.fenced or kind is fence.kind):
            if state.in_list:
                out.append("</ul>\n")
                state = replace(state, in_list=False)
            wrapper, fence = _toggle_fence(fence, kind)
            out.append(wrapper)
            last_was_heading = False
            continue

        heading_tag = None
        if fence.raw_region:
            out.append(escape_entities(line))
        else:
            html, state = parse_line(line, state, config)
            heading_tag = state.heading_tag
            out.append(html)
            if heading_tag is not None:
                out.append(f"</{heading_tag}>")

        if fence.fenced:
            out.append(LINE_BREAK if fence.kind is FenceKind.QUOTE else "\n")
        elif heading_tag is None and not last_was_heading:
            out.append(LINE_BREAK)

        last_was_heading = heading_tag is not None

    if config.autoclose_at_end:
        if state.in_list:
            out.append("</ul>\n")
        if fence.fenced:
            out.append(FENCE_WRAPPERS[fence.kind][1])

    return "".join(out)
