"""Filesystem helpers and the local issue store."""

from __future__ import annotations

import json
import logging
import os
import stat
from collections.abc import Iterable
from pathlib import Path
from typing import TextIO

from .constants import (
    DEFAULT_MAX_FILE_SIZE,
    FULL_ISSUE_KEY_PATTERN,
    ISSUE_KEY_PATTERN,
    ISSUES_PER_PAGE,
)
from .exceptions import IssueFormatError, IssueNotFoundError, IssueStoreError
from .models import IssuePage

logger = logging.getLogger(__name__)

MAX_FILE_SIZE_ENV_VAR = "JIRAPUB_MAX_FILE_SIZE"


def get_max_file_size(default: int = DEFAULT_MAX_FILE_SIZE) -> int:
    """Resolve the maximum allowed input file size.

    Args:
        default: Fallback value in bytes when the environment variable is unset.

    Returns:
        int: Maximum allowed file size in bytes.

    Raises:
        ValueError: If the environment value is not a positive integer.

    Examples:
        os.environ["JIRAPUB_MAX_FILE_SIZE"] = "204800"
        limit = get_max_file_size(default=102400)
    """
    env_value = os.environ.get(MAX_FILE_SIZE_ENV_VAR)
    if env_value is None:
        return default

    try:
        max_size = int(env_value)
    except ValueError as error:
        error_message = (
            f"Invalid value for {MAX_FILE_SIZE_ENV_VAR}: {env_value} (expected positive integer)"
        )
        raise ValueError(error_message) from error

    if max_size <= 0:
        error_message = f"{MAX_FILE_SIZE_ENV_VAR} must be a positive integer, got {max_size}."
        raise ValueError(error_message)

    return max_size


def collect_file_stat(filepath: Path) -> os.stat_result:
    """Return stat information for a file while disallowing symlinks.

    Raises:
        IOError: If the path is inaccessible, a symlink, or not a regular file.
    """
    try:
        stat_result = os.stat(filepath, follow_symlinks=False)
    except OSError as error:
        error_message = f"Error accessing {filepath}: {error}"
        raise IOError(error_message) from error

    if stat.S_ISLNK(stat_result.st_mode):
        error_message = f"Symlinks are not supported: {filepath}."
        raise IOError(error_message)

    if not stat.S_ISREG(stat_result.st_mode):
        error_message = f"{filepath} is not a regular file."
        raise IOError(error_message)

    return stat_result


def enforce_file_size(stat_result: os.stat_result, max_size: int, filepath: Path):
    """Guard against files that exceed the configured maximum size.

    Raises:
        IOError: If `stat_result.st_size` exceeds `max_size`.
    """
    if stat_result.st_size > max_size:
        error_message = f"{filepath} exceeds the maximum allowed size of {max_size} bytes."
        raise IOError(error_message)


def safe_read(filepath: Path) -> TextIO:
    """Open a file for reading with consistent error handling.

    Args:
        filepath: Path to the file.

    Returns:
        TextIO: File handle opened for reading in UTF-8.

    Raises:
        IOError: If the path is missing, inaccessible, or not a file.

    Examples:
        with safe_read(Path("description.txt")) as handle:
            markup = handle.read()
    """
    try:
        return open(filepath, "r", encoding="UTF-8")
    except (
        FileNotFoundError,
        PermissionError,
        IsADirectoryError,
        NotADirectoryError,
    ) as error:
        error_message = f"Error accessing {filepath}: {error}"
        raise IOError(error_message) from error


def read_text_file(filepath: Path, max_size: int = DEFAULT_MAX_FILE_SIZE) -> str:
    """Read a UTF-8 text file after checking its type and size.

    Raises:
        IOError: If the file is not a regular file, too large, or unreadable.
        UnicodeDecodeError: If the file is not valid UTF-8.
    """
    enforce_file_size(collect_file_stat(filepath), max_size, filepath)
    with safe_read(filepath) as file:
        return file.read()


def read_issue_file(filepath: Path, max_size: int = DEFAULT_MAX_FILE_SIZE) -> object:
    """Read and decode one JSON document.

    Args:
        filepath: Path to the JSON file.
        max_size: Maximum allowed size in bytes.

    Returns:
        object: Decoded JSON value.

    Raises:
        IssueStoreError: If the file cannot be read or is not valid UTF-8 JSON.
    """
    try:
        content = read_text_file(filepath, max_size)
    except UnicodeDecodeError as error:
        raise IssueStoreError(f"Invalid UTF-8 sequence in {filepath}: {error}") from error
    except IOError as error:
        raise IssueStoreError(str(error)) from error

    try:
        return json.loads(content)
    except json.JSONDecodeError as error:
        raise IssueStoreError(f"could not parse {filepath}: {error}") from error


def issue_sort_key(key: str) -> tuple[str, int]:
    """Sort key ordering issues by project, then numerically by number."""
    match = ISSUE_KEY_PATTERN.match(key)
    if not match:
        return (key, 0)
    return (match.group(1), int(match.group(2)))


class IssueStore:
    """Read-only cache of issues stored as JSON files.

    The directory holds ``issue/<id>.json`` with full issue documents and,
    optionally, ``remotelink/<id>.json`` with each issue's remote links. The
    index of keys, labels, summaries, and resolutions is loaded once.

    Args:
        directory: Root of the store.
        max_size: Maximum size in bytes of a single JSON file.

    Raises:
        IssueStoreError: If the ``issue`` directory is missing or a file is
            unreadable.
        IssueFormatError: If an issue file lacks its key or fields.
    """

    def __init__(self, directory: Path, max_size: int = DEFAULT_MAX_FILE_SIZE):
        self.directory = Path(directory)
        self.max_size = max_size
        self._index: dict[str, dict] = {}

        logger.info("loading issue cache from %s", self.directory)
        for issue_id in self._list_ids("issue"):
            issue = self._read("issue", issue_id)
            if not isinstance(issue, dict) or not isinstance(issue.get("fields"), dict):
                raise IssueFormatError(None, f"issue file {issue_id}.json has no fields")
            key = issue.get("key")
            if not isinstance(key, str):
                raise IssueFormatError(None, f"issue file {issue_id}.json has no key")
            fields = issue["fields"]
            self._index[key] = {
                "key": key,
                "id": issue_id,
                "fields": {
                    "labels": fields.get("labels") or [],
                    "summary": fields.get("summary"),
                    "resolution": fields.get("resolution"),
                },
            }
        logger.info(
            "loading issue cache from %s complete: %d issues", self.directory, len(self._index)
        )

    def _list_ids(self, kind: str) -> list[str]:
        path = self.directory / kind
        try:
            names = os.listdir(path)
        except OSError as error:
            raise IssueStoreError(f"Error listing {path}: {error}") from error
        return sorted(name[: -len(".json")] for name in names if name.endswith(".json"))

    def _read(self, kind: str, issue_id: str) -> object | None:
        path = self.directory / kind / f"{issue_id}.json"
        if not path.exists():
            return None
        return read_issue_file(path, self.max_size)

    def __len__(self) -> int:
        return len(self._index)

    def keys(self) -> list[str]:
        """Issue keys, newest first within each project."""
        return sorted(self._index, key=issue_sort_key, reverse=True)

    def list(self, labels: Iterable[str], offset: int = 0) -> IssuePage:
        """Return one page of index entries carrying every label.

        Args:
            labels: Labels each listed issue must have.
            offset: Zero-based index of the first issue on the page.

        Returns:
            IssuePage: Matching total and at most `ISSUES_PER_PAGE` entries.

        Raises:
            ValueError: If `offset` is negative.
        """
        if offset < 0:
            raise ValueError(f"offset must be >= 0, got {offset}")
        labels = list(labels)
        keys = [
            key
            for key in self.keys()
            if all(label in self._index[key]["fields"]["labels"] for label in labels)
        ]
        page = keys[offset : offset + ISSUES_PER_PAGE]
        return IssuePage(total=len(keys), issues=[self._index[key] for key in page])

    def get(self, key: str) -> dict:
        """Return the full issue document for `key`.

        Raises:
            IssueNotFoundError: If the key is malformed, unknown, or its file
                disappeared.
            IssueFormatError: If the issue lacks fields or labels.
        """
        if not FULL_ISSUE_KEY_PATTERN.fullmatch(key):
            logger.error("invalid issue key %r", key)
            raise IssueNotFoundError(key)
        entry = self._index.get(key)
        if entry is None:
            raise IssueNotFoundError(key)
        issue = self._read("issue", entry["id"])
        if issue is None:
            raise IssueNotFoundError(key)
        if (
            not isinstance(issue, dict)
            or not isinstance(issue.get("fields"), dict)
            or not isinstance(issue["fields"].get("labels"), list)
        ):
            raise IssueFormatError(key, "missing fields or labels")
        return issue

    def remote_links(self, issue_id: str) -> list:
        """Return the remote links of an issue, or an empty list when none are stored.

        Raises:
            IssueStoreError: If the stored value is not a list.
        """
        links = self._read("remotelink", issue_id)
        if links is None:
            return []
        if not isinstance(links, list):
            raise IssueStoreError(f"issue {issue_id} remotelink did not have expected format")
        return links
