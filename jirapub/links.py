"""Link rewriting for internal hosts and issue link filtering."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from urllib.parse import urlsplit, urlunsplit

from .constants import INTERNAL_REWRITE_RULES, ISSUE_KEY_PATTERN
from .escape import escape_entities
from .models import RewriteRule

logger = logging.getLogger(__name__)


def rewrite_url(
    raw_url: str, rules: Mapping[str, tuple[RewriteRule, ...]] | None = None
) -> str:
    """Point links at internal hosts to their public mirrors.

    The URL is trimmed and parsed. When its hostname has rewrite rules, the
    rules are tried in order and the first whose path prefix matches replaces
    the host and that prefix. Anything else is returned unchanged. The result is
    always entity-escaped, ready for an ``href`` attribute. Unparseable input is
    logged and returned escaped; this function never raises.

    Args:
        raw_url: URL text as written in the markup.
        rules: Internal hostname mapped to its ordered rewrite rules. Defaults to
            the built-in table.

    Returns:
        str: Escaped URL.

    Examples:
        rewrite_url("http://mo.joyent.com/smartos-live/x")
        # "https://github.com/joyent/smartos-live/x"
    """
    if rules is None:
        rules = INTERNAL_REWRITE_RULES

    url = raw_url.strip()
    try:
        parts = urlsplit(url)
        hostname = parts.hostname
    except ValueError as error:
        logger.error("url parse error for %r: %s", url, error)
        return escape_entities(url)

    if hostname is None or hostname not in rules:
        return escape_entities(url)

    for rule in rules[hostname]:
        if parts.path.startswith(rule.path_prefix):
            path = rule.new_path_prefix + parts.path[len(rule.path_prefix) :]
            scheme = rule.new_scheme or parts.scheme
            rewritten = urlunsplit(
                parts._replace(scheme=scheme, netloc=rule.new_host, path=path)
            )
            return escape_entities(rewritten)

    return escape_entities(url)


def allow_issue(key: str, whitelist: Iterable[str]) -> bool:
    """Decide whether a linked issue may be shown.

    Labels of a linked issue are not known, so only issues from whitelisted
    projects are displayed.

    Args:
        key: Issue key such as ``OS-1234``.
        whitelist: Project prefixes allowed in related-issue links.

    Returns:
        bool: True when the key is well formed and its project is whitelisted.

    Examples:
        allow_issue("OS-12", ["OS"])  # True
        allow_issue("SECRET-3", ["OS"])  # False
    """
    match = ISSUE_KEY_PATTERN.match(key)
    if not match:
        return False
    return match.group(1) in set(whitelist)
