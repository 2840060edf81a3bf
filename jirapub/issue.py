"""Rendering of a whole public issue page fragment."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone

import humanize
from dateutil.parser import isoparse

from .config import PublisherConfig
from .constants import FULL_ISSUE_KEY_PATTERN
from .escape import escape_entities
from .exceptions import IssueFormatError, IssueNotPublicError
from .formatter import format_markup
from .links import allow_issue

logger = logging.getLogger(__name__)

COMMENT_BACKGROUNDS = ("#EEEEEE", "#DDDDDD")


def check_issue(issue: object) -> None:
    """Verify that an issue document has the fields rendering relies on.

    Args:
        issue: Decoded issue JSON.

    Raises:
        IssueFormatError: If the key is missing or not of the form
            ``PROJECT-123``, or the fields or labels are missing.
    """
    if not isinstance(issue, dict):
        raise IssueFormatError(None, "not a JSON object")
    key = issue.get("key")
    if not isinstance(key, str) or not key:
        raise IssueFormatError(None, "missing key")
    if not FULL_ISSUE_KEY_PATTERN.fullmatch(key):
        raise IssueFormatError(None, f"invalid key {key!r}")
    fields = issue.get("fields")
    if not isinstance(fields, dict):
        raise IssueFormatError(key, "missing fields")
    if not isinstance(fields.get("labels"), list):
        raise IssueFormatError(key, "missing labels")


def ensure_public(issue: dict, label: str) -> None:
    """Raise unless the issue carries the public label.

    Raises:
        IssueFormatError: If the issue is malformed.
        IssueNotPublicError: If `label` is not among the issue labels.
    """
    check_issue(issue)
    if label not in issue["fields"]["labels"]:
        raise IssueNotPublicError(issue["key"], label)


def format_issue_title(issue: dict) -> str:
    """Return ``KEY: summary``, or just the key when there is no summary."""
    summary = issue["fields"].get("summary")
    if summary:
        return f"{issue['key']}: {summary}"
    return issue["key"]


def format_issue_json(issue: dict, config: PublisherConfig | None = None) -> str:
    """Serialise the public summary of an issue.

    Examples:
        format_issue_json({"key": "OS-1", "fields": {"summary": "x", "labels": []}})
        # '{"id": "OS-1", "summary": "x", "web_url": "https://smartos.org/bugview/OS-1"}'
    """
    config = config or PublisherConfig()
    return json.dumps(
        {
            "id": issue["key"],
            "summary": issue["fields"].get("summary"),
            "web_url": f"{config.public_url.rstrip('/')}/{issue['key']}",
        }
    )


def format_timestamp(
    value: str,
    relative: bool = True,
    now: datetime | None = None,
    bracketed: bool = False,
) -> str:
    """Render an issue timestamp as ISO-8601 UTC, optionally with a relative form.

    Timestamps without an offset are taken as UTC. Values that cannot be
    parsed are returned escaped as written.

    Args:
        value: Timestamp as found in the issue, e.g. ``2014-06-11T19:38:12.000+0000``.
        relative: Append the relative form ("3 days ago").
        now: Reference time for the relative form; the current time by default.
        bracketed: Put the relative form in parentheses instead of after " - ".

    Returns:
        str: Escaped, human-readable timestamp.

    Examples:
        format_timestamp("2014-06-11T19:38:12.000+0000", relative=False)
        # "2014-06-11T19:38:12.000Z"
    """
    try:
        moment = isoparse(value)
    except (ValueError, OverflowError, TypeError) as error:
        logger.warning("unparseable timestamp %r: %s", value, error)
        return escape_entities(str(value))

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)

    iso = moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")
    if not relative:
        return iso

    now = now or datetime.now(timezone.utc)
    ago = humanize.naturaltime(now - moment)
    if bracketed:
        return f"{iso} ({ago})"
    return f"{iso} - {ago}"


def _format_resolution(fields: dict, relative: bool, now: datetime | None) -> str:
    resolution = fields["resolution"]
    out = "<h2>Resolution</h2>\n"
    out += (
        f"<p><b>{escape_entities(resolution.get('name') or '')}:</b> "
        f"{escape_entities(resolution.get('description') or '')}<br>\n"
    )
    if fields.get("resolutiondate"):
        date = format_timestamp(fields["resolutiondate"], relative, now)
        out += f"(Resolution Date: {date})"
    out += "</p>\n"
    return out


def _format_fix_versions(versions: list[dict], relative: bool, now: datetime | None) -> str:
    out = "<h2>Fix Versions</h2>\n"
    for version in versions:
        out += f"<p><b>{escape_entities(version.get('name') or '')}</b>"
        if version.get("releaseDate"):
            date = format_timestamp(version["releaseDate"], relative, now)
            out += f" (Release Date: {date})"
        out += "</p>\n"
    return out


def _format_issue_links(issue_links: list[dict], whitelist: tuple[str, ...]) -> str:
    links = []
    for issue_link in issue_links:
        link_type = issue_link.get("type") or {}
        for direction, label in (("outwardIssue", "outward"), ("inwardIssue", "inward")):
            linked = issue_link.get(direction)
            if not linked or not allow_issue(linked.get("key", ""), whitelist):
                continue
            key = escape_entities(linked["key"])
            links.append(
                f"<li>{escape_entities(link_type.get(label) or '')} "
                f'<a href="{key}">{key}</a></li>'
            )

    if not links:
        return ""
    return "<h2>Related Issues</h2>\n<p><ul>" + "\n".join(links) + "</ul></p>\n"


def _format_comments(
    key: str, comment_field: dict, config: PublisherConfig, now: datetime | None
) -> str:
    if comment_field.get("maxResults") != comment_field.get("total"):
        logger.error(
            "comment maxResults and total not equal for issue %s (total=%s, maxResults=%s)",
            key,
            comment_field.get("total"),
            comment_field.get("maxResults"),
        )

    out = "<h2>Comments</h2>\n"
    shown = 0
    for comment in comment_field.get("comments") or []:
        # Comments with any visibility restriction are never published.
        if comment.get("visibility"):
            continue

        author = (comment.get("author") or {}).get("displayName") or "Unknown"
        background = COMMENT_BACKGROUNDS[shown % 2]
        out += f'<div style="background-color: {background};">\n'
        out += f"<b>Comment by {escape_entities(author)}<br>\n"
        if comment.get("created"):
            created = format_timestamp(
                comment["created"], config.relative_dates, now, bracketed=True
            )
            out += f"Created at {created}<br>\n"
        if comment.get("updated") and comment.get("updated") != comment.get("created"):
            updated = format_timestamp(
                comment["updated"], config.relative_dates, now, bracketed=True
            )
            out += f"Updated at {updated}<br>\n"
        out += "</b>"
        out += format_markup(comment.get("body") or "", config)
        out += "</div><br>\n"
        shown += 1
    return out


def format_issue(
    issue: dict, config: PublisherConfig | None = None, now: datetime | None = None
) -> str:
    """Render the public view of an issue as an HTML fragment.

    The fragment holds the title, resolution, fix versions, related issues
    from whitelisted projects, the description, and unrestricted comments.
    The caller wraps it in page chrome.

    Args:
        issue: Issue JSON as returned by the issue tracker.
        config: Publishing configuration; defaults to `PublisherConfig()`.
        now: Reference time for relative dates.

    Returns:
        str: HTML fragment.

    Raises:
        IssueFormatError: If the issue lacks its key, fields, or labels.
    """
    config = config or PublisherConfig()
    check_issue(issue)
    fields = issue["fields"]
    key = issue["key"]

    out = f"<h1>{escape_entities(format_issue_title(issue))}</h1>\n"

    if fields.get("resolution"):
        out += _format_resolution(fields, config.relative_dates, now)

    if fields.get("fixVersions"):
        out += _format_fix_versions(fields["fixVersions"], config.relative_dates, now)

    if fields.get("issuelinks"):
        out += _format_issue_links(fields["issuelinks"], config.link_whitelist)

    if fields.get("description"):
        out += "<h2>Description</h2>\n<div>"
        out += format_markup(fields["description"], config)
        out += "</div>\n"

    if fields.get("comment"):
        out += _format_comments(key, fields["comment"], config, now)

    return out
