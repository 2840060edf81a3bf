"""Data models for jirapub."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto


class ScanMode(Enum):
    """Modes of the line scanner.

    Attributes:
        LEADING_SPACES: Counting spaces at the start of a line.
        TEXT: Ordinary inline text.
        LINK_TITLE: Inside ``[``, collecting the link title.
        LINK_URL: After ``|`` inside a link, collecting the URL.
        LINK_USER: Inside ``[~``, collecting a user name.
        LINK_ATTACHMENT: Inside ``[^``, collecting an attachment name.
    """

    LEADING_SPACES = auto()
    TEXT = auto()
    LINK_TITLE = auto()
    LINK_URL = auto()
    LINK_USER = auto()
    LINK_ATTACHMENT = auto()


class InlineFormat(Enum):
    """Inline spans that can be open within a line."""

    BOLD = "b"
    ITALIC = "i"
    CODE = "code"


class FenceKind(Enum):
    """Kinds of fenced block, keyed by their opening keyword."""

    NONE = ""
    NOFORMAT = "noformat"
    CODE = "code"
    PANEL = "panel"
    QUOTE = "quote"

    @property
    def is_raw(self) -> bool:
        """Whether the contents bypass the inline parser."""
        return self in (FenceKind.NOFORMAT, FenceKind.CODE)


@dataclass(frozen=True)
class ParserState:
    """State carried from one line to the next within a document.

    Attributes:
        in_list: An unclosed ``<ul>`` has been emitted.
        heading_tag: Heading tag opened on the most recent line, if any.
    """

    in_list: bool = False
    heading_tag: str | None = None


@dataclass(frozen=True)
class FenceState:
    """Fenced block state for one document.

    Attributes:
        kind: Kind of the open fence, ``FenceKind.NONE`` outside any fence.
    """

    kind: FenceKind = FenceKind.NONE

    @property
    def fenced(self) -> bool:
        return self.kind is not FenceKind.NONE

    @property
    def raw_region(self) -> bool:
        return self.kind.is_raw


class FormatStack:
    """LIFO stack of open inline spans."""

    def __init__(self):
        self._items: list[InlineFormat] = []

    def __len__(self) -> int:
        return len(self._items)

    @property
    def top(self) -> InlineFormat | None:
        return self._items[-1] if self._items else None

    def push(self, fmt: InlineFormat) -> None:
        self._items.append(fmt)

    def pop(self) -> InlineFormat:
        return self._items.pop()

    def in_code(self) -> bool:
        return self.top is InlineFormat.CODE


@dataclass
class LinkTarget:
    """Link being collected while the scanner is inside brackets.

    Attributes:
        title: Text before ``|`` (or the user/attachment name).
        url: Text after ``|``, or None when no explicit URL was given.
    """

    title: str = ""
    url: str | None = None


@dataclass(frozen=True)
class RewriteRule:
    """Rewrite of one internal path prefix to a public mirror.

    Attributes:
        path_prefix: Path prefix matched on the internal host.
        new_host: Public hostname replacing the internal one.
        new_path_prefix: Replacement for the matched prefix.
        new_scheme: Scheme of the rewritten URL, or None to keep the original.
    """

    path_prefix: str
    new_host: str
    new_path_prefix: str
    new_scheme: str | None = "https"


@dataclass
class IssuePage:
    """One page of issues from an issue store.

    Attributes:
        total: Number of matching issues across all pages.
        issues: Issues on this page.
    """

    total: int
    issues: list[dict] = field(default_factory=list)
