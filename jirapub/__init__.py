"""
jirapub: sanitized public HTML views of issue tracker tickets.

This package can be used both as a CLI tool and as a library.

CLI Usage:
    jirapub render description.txt
    jirapub issue OS-1234.json

Library Usage:
    from jirapub import PublisherConfig, format_markup

    config = PublisherConfig(link_whitelist=("OS",))
    html = format_markup("h2. Summary\\n*bold* and {{code}}", config)
"""

from .config import ConfigError, PublisherConfig, build_config, load_config
from .escape import escape_entities
from .exceptions import (
    IssueFormatError,
    IssueNotFoundError,
    IssueNotPublicError,
    IssueStoreError,
    PublishError,
)
from .formatter import format_markup
from .issue import ensure_public, format_issue, format_issue_json, format_issue_title
from .links import allow_issue, rewrite_url
from .models import ParserState, RewriteRule
from .parser import can_toggle_emphasis, parse_line

__version__ = "0.1.0"

__all__ = [
    # Core functionality
    "format_markup",
    "parse_line",
    "rewrite_url",
    "escape_entities",
    "can_toggle_emphasis",
    # Issue pages
    "format_issue",
    "format_issue_json",
    "format_issue_title",
    "ensure_public",
    "allow_issue",
    # Configuration and data models
    "PublisherConfig",
    "RewriteRule",
    "ParserState",
    "build_config",
    "load_config",
    # Exceptions
    "ConfigError",
    "PublishError",
    "IssueFormatError",
    "IssueNotFoundError",
    "IssueNotPublicError",
    "IssueStoreError",
    # Version
    "__version__",
]
