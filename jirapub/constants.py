"""Constants used across the jirapub package."""

from __future__ import annotations

import re
from collections.abc import Mapping
from types import MappingProxyType

from .models import FenceKind, RewriteRule

HEADING_LEVELS = ("1", "2", "3", "4", "5", "6")
LIST_BULLETS = ("*", "-")

FENCE_KEYWORDS = ("noformat", "code", "panel", "quote")

# Wrapper markup for fenced blocks
PRE_OPEN = (
    '<pre style="border: 2px solid black;'
    "font-family: Menlo, Courier, Lucida Console, Monospace;"
    'background-color: #eeeeee;">\n'
)
PRE_CLOSE = "</pre>\n"
QUOTE_OPEN = '<div style="border-left: 2px solid #888888; margin-left: 1em; padding-left: 1em">\n'
QUOTE_CLOSE = "</div>\n"
LINE_BREAK = "<br>\n"

FENCE_WRAPPERS = {
    FenceKind.NOFORMAT: (PRE_OPEN, PRE_CLOSE),
    FenceKind.CODE: (PRE_OPEN, PRE_CLOSE),
    FenceKind.PANEL: (PRE_OPEN, PRE_CLOSE),
    FenceKind.QUOTE: (QUOTE_OPEN, QUOTE_CLOSE),
}

INTERNAL_REWRITE_RULES: Mapping[str, tuple[RewriteRule, ...]] = MappingProxyType(
    {
        "mo.joyent.com": (
            RewriteRule("/illumos-joyent", "github.com", "/joyent/illumos-joyent"),
            RewriteRule("/smartos-live", "github.com", "/joyent/smartos-live"),
            RewriteRule("/illumos-extra", "github.com", "/joyent/illumos-extra"),
            RewriteRule("/sdc-napi", "github.com", "/joyent/sdc-napi"),
        ),
    }
)

ISSUE_KEY_PATTERN = re.compile(r"^([A-Z]+)-([0-9]+)")
FULL_ISSUE_KEY_PATTERN = re.compile(r"^[A-Z]+-[0-9]+$")

ISSUES_PER_PAGE = 50
DEFAULT_MAX_FILE_SIZE = 10 * 1024 * 1024
