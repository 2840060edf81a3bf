"""
Renders JIRA issues and wiki markup as sanitized public HTML.
Reads markup or issue JSON from local files and writes HTML to stdout.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import click
from .config import ConfigError, PublisherConfig, build_config
from .exceptions import IssueFormatError, IssueNotPublicError, IssueStoreError, PublishError
from .filesystem import IssueStore, get_max_file_size, read_issue_file, read_text_file
from .formatter import format_markup
from .issue import ensure_public, format_issue, format_issue_json

__all__ = ["cli"]

LOG_LEVEL_ENV_VAR = "JIRAPUB_LOG_LEVEL"
LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _load_config(search_path: Path, **overrides: object) -> PublisherConfig:
    try:
        return build_config(search_path, **overrides)
    except ConfigError as error:
        raise click.BadParameter(str(error)) from error


def _max_file_size(config: PublisherConfig) -> int:
    try:
        return get_max_file_size(default=config.max_file_size)
    except ValueError as error:
        raise click.ClickException(str(error)) from error


@click.group()
@click.version_option(package_name="jirapub")
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    envvar=LOG_LEVEL_ENV_VAR,
    default="WARNING",
    show_default=True,
    help="Logging level",
)
def cli(log_level: str):
    """Publish a read-only, sanitized view of issue tracker tickets."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


@cli.command()
@click.option("--no-autoclose", is_flag=True, help="Leave lists and fences open at the end")
@click.argument("filepath", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def render(filepath: Path, no_autoclose: bool):
    """
    Render a markup document as an HTML fragment.

    Args:
        filepath: File holding a description or comment body.
        no_autoclose: Do not close a list or fence still open at the end.

    Raises:
        click.BadParameter: If the configuration is invalid.
        click.ClickException: If the file is too large or cannot be read.

    Examples:
        jirapub render description.txt
    """
    config = _load_config(
        filepath.parent.resolve(), autoclose_at_end=False if no_autoclose else None
    )
    try:
        markup = read_text_file(filepath, _max_file_size(config))
    except UnicodeDecodeError as error:
        raise click.ClickException(f"Invalid UTF-8 sequence in {filepath}: {error}") from error
    except IOError as error:
        raise click.ClickException(str(error)) from error

    click.echo(format_markup(markup, config), nl=False)


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Print the JSON summary instead of HTML")
@click.option("--label", help="Label that marks an issue as public")
@click.option(
    "--relative-dates/--no-relative-dates",
    default=None,
    help="Append relative dates to timestamps",
)
@click.argument("filepath", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def issue(filepath: Path, as_json: bool, label: str | None, relative_dates: bool | None):
    """
    Render one issue JSON document.

    Args:
        filepath: File holding the issue as returned by the issue tracker.
        as_json: Print the JSON summary instead of the HTML fragment.
        label: Override for the public label.
        relative_dates: Override for appending relative dates.

    Raises:
        click.BadParameter: If the configuration is invalid.
        click.ClickException: If the file cannot be read, the issue is
            malformed, or the issue is not public.

    Examples:
        jirapub issue OS-1234.json --no-relative-dates
    """
    config = _load_config(
        filepath.parent.resolve(), label=label, relative_dates=relative_dates
    )
    try:
        document = read_issue_file(filepath, _max_file_size(config))
        ensure_public(document, config.label)
    except IssueNotPublicError as error:
        raise click.ClickException(f"Sorry, this issue is not public. ({error})") from error
    except (IssueStoreError, IssueFormatError) as error:
        raise click.ClickException(str(error)) from error

    if as_json:
        click.echo(format_issue_json(document, config))
    else:
        click.echo(format_issue(document, config), nl=False)


@cli.command(name="list")
@click.option("--offset", type=click.IntRange(min=0), default=0, show_default=True)
@click.option("--label", help="Label that marks an issue as public")
@click.argument(
    "store", type=click.Path(exists=True, file_okay=False, path_type=Path)
)
def list_issues(store: Path, offset: int, label: str | None):
    """
    List one page of public issues from a local issue store.

    Args:
        store: Directory holding ``issue/<id>.json`` files.
        offset: Index of the first issue to show.
        label: Override for the public label.

    Raises:
        click.BadParameter: If the configuration is invalid.
        click.ClickException: If the store cannot be loaded.

    Examples:
        jirapub list ./cache --offset 50
    """
    config = _load_config(store.resolve(), label=label)
    try:
        issue_store = IssueStore(store, _max_file_size(config))
    except PublishError as error:
        raise click.ClickException(str(error)) from error

    page = issue_store.list([config.label], offset)
    for entry in page.issues:
        resolution = (entry["fields"].get("resolution") or {}).get("name") or "-"
        summary = entry["fields"].get("summary") or ""
        click.echo(f"{entry['key']}\t{resolution}\t{summary}")

    shown = len(page.issues)
    if shown:
        click.echo(f"Displaying from {offset} to {offset + shown} of {page.total}", err=True)
    else:
        click.echo(f"No issues at offset {offset} (total {page.total})", err=True)


if __name__ == "__main__":
    cli()
