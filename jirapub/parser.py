"""Line-level parser for JIRA wiki markup.

Each line is scanned left to right by a small state machine. Every
`ScanMode` has a transition function taking the scan, the current character
and the one after it; it may emit HTML, switch modes, and returns the number of
characters consumed. Only list and heading bookkeeping crosses line
boundaries, carried in an immutable `ParserState`.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from .config import PublisherConfig
from .constants import HEADING_LEVELS, INTERNAL_REWRITE_RULES, LIST_BULLETS
from .escape import escape_entities
from .links import rewrite_url
from .models import FormatStack, InlineFormat, LinkTarget, ParserState, RewriteRule, ScanMode

EMPHASIS_MARKERS = {"*": InlineFormat.BOLD, "_": InlineFormat.ITALIC}


def can_toggle_emphasis(preceding: str | None) -> bool:
    """Decide whether a ``*`` or ``_`` may open or close a span.

    Formatting characters inside a word (``foo_bar_baz``) are literal; after
    whitespace, punctuation, digits, or at the start of a line they toggle.

    Args:
        preceding: Character before the marker, or None at line start.

    Returns:
        bool: True unless the preceding character is an ASCII letter.

    Examples:
        can_toggle_emphasis(None)  # True
        can_toggle_emphasis(" ")  # True
        can_toggle_emphasis("o")  # False
    """
    if preceding is None:
        return True
    return not ("A" <= preceding <= "Z" or "a" <= preceding <= "z")


@dataclass
class _LineScan:
    line: str
    rules: Mapping[str, tuple[RewriteRule, ...]]
    in_list: bool = False
    heading_tag: str | None = None
    pos: int = 0
    mode: ScanMode = ScanMode.LEADING_SPACES
    leading_spaces: int = 0
    text: list[str] = field(default_factory=list)
    out: list[str] = field(default_factory=list)
    formats: FormatStack = field(default_factory=FormatStack)
    link: LinkTarget = field(default_factory=LinkTarget)

    def peek(self, offset: int) -> str | None:
        index = self.pos + offset
        return self.line[index] if index < len(self.line) else None

    def preceding(self) -> str | None:
        return self.line[self.pos - 1] if self.pos > 0 else None

    def commit_text(self) -> None:
        """Flush pending literal text, escaped, to the output."""
        if self.text:
            self.out.append(escape_entities("".join(self.text)))
            self.text.clear()

    def emit(self, fragment: str) -> None:
        self.commit_text()
        self.out.append(fragment)

    def emit_anchor(self, target: str) -> None:
        self.emit(
            f'<a href="{rewrite_url(target, self.rules)}" target="_new">'
            f"{escape_entities(self.link.title)}</a>"
        )
        self.mode = ScanMode.TEXT


def _scan_leading_spaces(scan: _LineScan, char: str, lookahead: str | None) -> int:
    if char == " ":
        scan.leading_spaces += 1
        return 1

    if char in LIST_BULLETS and lookahead == " ":
        if not scan.in_list:
            scan.emit("<ul>")
            scan.in_list = True
        scan.leading_spaces = 0
        scan.emit("<li>")
        return 1

    # Not a bullet: keep the indentation and rescan this character as text.
    scan.text.append(" " * scan.leading_spaces)
    scan.leading_spaces = 0
    scan.mode = ScanMode.TEXT
    return 0


def _scan_text(scan: _LineScan, char: str, lookahead: str | None) -> int:
    if scan.pos == 0 and scan.in_list:
        scan.emit("</ul>")
        scan.in_list = False

    if (
        scan.pos == 0
        and char == "h"
        and lookahead in HEADING_LEVELS
        and scan.peek(2) == "."
    ):
        scan.heading_tag = f"h{lookahead}"
        scan.emit(f"<{scan.heading_tag}>")
        return 4 if scan.peek(3) == " " else 3

    if char == "[" and not scan.formats.in_code():
        scan.commit_text()
        scan.link = LinkTarget()
        if lookahead == "~":
            scan.mode = ScanMode.LINK_USER
            return 2
        if lookahead == "^":
            scan.mode = ScanMode.LINK_ATTACHMENT
            return 2
        scan.mode = ScanMode.LINK_TITLE
        return 1

    return _scan_inline_format(scan, char, lookahead)


def _scan_inline_format(scan: _LineScan, char: str, lookahead: str | None) -> int:
    formats = scan.formats

    if char in EMPHASIS_MARKERS and not formats.in_code():
        fmt = EMPHASIS_MARKERS[char]
        if formats.top is fmt:
            formats.pop()
            scan.emit(f"</{fmt.value}>")
            return 1
        if can_toggle_emphasis(scan.preceding()):
            formats.push(fmt)
            scan.emit(f"<{fmt.value}>")
            return 1
        if formats:
            # Closing position: spans close LIFO whichever marker is used.
            scan.emit(f"</{formats.pop().value}>")
            return 1

    if char == "{" and lookahead == "{":
        formats.push(InlineFormat.CODE)
        scan.emit("<code>")
        return 2

    if formats.in_code():
        if char == "\\":
            if lookahead is not None:
                scan.text.append(lookahead)
            return 2
        if char == "}" and lookahead == "}":
            formats.pop()
            scan.emit("</code>")
            return 2

    scan.text.append(char)
    return 1


def _scan_link_title(scan: _LineScan, char: str, lookahead: str | None) -> int:
    if char == "|":
        scan.link.url = ""
        scan.mode = ScanMode.LINK_URL
    elif char == "]":
        # Without an explicit URL the title is the target.
        scan.emit_anchor(scan.link.title)
    else:
        scan.link.title += char
    return 1


def _scan_link_url(scan: _LineScan, char: str, lookahead: str | None) -> int:
    if char == "]":
        scan.emit_anchor(scan.link.url or "")
    else:
        scan.link.url = (scan.link.url or "") + char
    return 1


def _scan_link_user(scan: _LineScan, char: str, lookahead: str | None) -> int:
    if char == "]":
        scan.emit(f"<b>@{escape_entities(scan.link.title)}</b>")
        scan.mode = ScanMode.TEXT
    else:
        scan.link.title += char
    return 1


def _scan_link_attachment(scan: _LineScan, char: str, lookahead: str | None) -> int:
    if char == "]":
        scan.emit(f"<b>[attachment {escape_entities(scan.link.title)}]</b>")
        scan.mode = ScanMode.TEXT
    else:
        scan.link.title += char
    return 1


_TRANSITIONS: dict[ScanMode, Callable[[_LineScan, str, str | None], int]] = {
    ScanMode.LEADING_SPACES: _scan_leading_spaces,
    ScanMode.TEXT: _scan_text,
    ScanMode.LINK_TITLE: _scan_link_title,
    ScanMode.LINK_URL: _scan_link_url,
    ScanMode.LINK_USER: _scan_link_user,
    ScanMode.LINK_ATTACHMENT: _scan_link_attachment,
}


def parse_line(
    line: str, state: ParserState | None = None, config: PublisherConfig | None = None
) -> tuple[str, ParserState]:
    """Render one line of markup as an HTML fragment.

    Recognises list bullets and ``hN.`` headings at the start of the line,
    ``[links]``, ``[~user]`` mentions, ``[^attachment]`` references, ``*bold*``,
    ``_italic_`` and ``{{code}}`` spans. Literal text is entity-escaped. The
    heading closing tag is left to the caller, which learns about it from the
    returned state. Malformed markup never raises: an unterminated link drops
    the rest of the line and spans still open at line end are closed.

    Args:
        line: One line of markup without line terminators.
        state: State left by the previous line; a fresh state when omitted.
        config: Configuration providing the link rewrite rules.

    Returns:
        tuple[str, ParserState]: HTML fragment and the state for the next line.

    Examples:
        parse_line("*bold* text")  # ("<b>bold</b> text", ParserState())
        html, state = parse_line("* item", ParserState())  # state.in_list is True
    """
    state = state or ParserState()
    rules = config.rewrite_rules if config is not None else INTERNAL_REWRITE_RULES

    if not line.strip(" "):
        if state.in_list:
            return "</ul>", ParserState()
        return "", ParserState()

    scan = _LineScan(line=line, rules=rules, in_list=state.in_list)
    while scan.pos < len(line):
        transition = _TRANSITIONS[scan.mode]
        scan.pos += transition(scan, line[scan.pos], scan.peek(1))

    scan.commit_text()
    while scan.formats:
        scan.emit(f"</{scan.formats.pop().value}>")

    return "".join(scan.out), ParserState(in_list=scan.in_list, heading_tag=scan.heading_tag)
