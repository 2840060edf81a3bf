"""Configuration loading and management."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
import tomllib

from .constants import DEFAULT_MAX_FILE_SIZE, FENCE_KEYWORDS, INTERNAL_REWRITE_RULES
from .models import RewriteRule


@dataclass(frozen=True)
class PublisherConfig:
    """Configuration for publishing issues.

    Instances are immutable; build one before rendering and share it.

    Attributes:
        label: Label that marks an issue as public.
        link_whitelist: Projects whose issues may be shown as related links.
        public_url: Base URL of the public issue pages.
        rewrite_rules: Internal hostname mapped to its ordered rewrite rules.
        fence_keywords: Fence keywords recognised by the block formatter.
        autoclose_at_end: Close a list or fence still open at document end.
        relative_dates: Append a relative form ("3 days ago") to timestamps.
        max_file_size: Maximum size in bytes of an input file.

    Examples:
        PublisherConfig(label="public", link_whitelist=("OS", "TRITON"))
    """

    label: str = "public"
    link_whitelist: tuple[str, ...] = ()
    public_url: str = "https://smartos.org/bugview"
    rewrite_rules: Mapping[str, tuple[RewriteRule, ...]] = field(
        default_factory=lambda: INTERNAL_REWRITE_RULES
    )
    fence_keywords: tuple[str, ...] = FENCE_KEYWORDS
    autoclose_at_end: bool = True
    relative_dates: bool = True
    max_file_size: int = DEFAULT_MAX_FILE_SIZE

    def __post_init__(self):
        # Rendering may share one instance, so the rewrite table is read-only.
        rules = self.rewrite_rules
        if not isinstance(rules, MappingProxyType):
            object.__setattr__(self, "rewrite_rules", MappingProxyType(dict(rules)))


class ConfigError(ValueError):
    """Exception raised when configuration values are invalid.

    Examples:
        raise ConfigError("`label` must not be empty")
    """


def load_config(search_path: Path) -> PublisherConfig:
    """Load configuration from the nearest config file.

    Walks parent directories from `search_path` to the filesystem root, reading
    the ``[tool.jirapub]`` table from `pyproject.toml` and the ``[jirapub]`` or
    ``[tool.jirapub]`` table from `.jirapub.toml` when present. Returns default
    values when no configuration is found. TOML files that cannot be read or
    decoded are skipped.

    Args:
        search_path: Directory used as the starting point for configuration lookup.

    Returns:
        PublisherConfig: Loaded configuration with defaults applied when necessary.

    Raises:
        ConfigError: If the table is present but is not a mapping, contains
            unsupported keys, or has malformed rewrite rules.

    Examples:
        load_config(Path("site"))
    """
    current = search_path.resolve()

    while True:
        pyproject_config = _load_from_file(
            current / "pyproject.toml", table_paths=[("tool", "jirapub")]
        )
        if pyproject_config is not None:
            return pyproject_config

        dotfile_config = _load_from_file(
            current / ".jirapub.toml",
            table_paths=[("jirapub",), ("tool", "jirapub")],
        )
        if dotfile_config is not None:
            return dotfile_config

        parent = current.parent
        if parent == current:
            break
        current = parent

    return PublisherConfig()


_MISSING = object()


def _load_from_file(
    config_file: Path, table_paths: list[tuple[str, ...]]
) -> PublisherConfig | None:
    if not config_file.exists():
        return None

    try:
        with open(config_file, "rb") as stream:
            data = tomllib.load(stream)
    except (OSError, tomllib.TOMLDecodeError):
        return None

    for table_path in table_paths:
        raw_config = _extract_table(data, table_path)
        if raw_config is _MISSING:
            continue
        return _build_config_from_raw(raw_config, config_file, table_path)

    return None


def _extract_table(data: object, table_path: tuple[str, ...]) -> object:
    current = data
    for key in table_path:
        if not isinstance(current, dict) or key not in current:
            return _MISSING
        current = current[key]
    return current


def _build_config_from_raw(
    raw_config: object, config_file: Path, table_path: tuple[str, ...]
) -> PublisherConfig:
    table_display = ".".join(table_path)

    if raw_config is None:
        return PublisherConfig()

    if not isinstance(raw_config, dict):
        raise ConfigError(f"Invalid `[{table_display}]` settings in {config_file}")

    if not raw_config:
        return PublisherConfig()

    values = dict(raw_config)
    for key in ("link_whitelist", "fence_keywords"):
        if isinstance(values.get(key), list):
            values[key] = tuple(values[key])

    if "rewrite_rules" in values:
        values["rewrite_rules"] = _parse_rewrite_rules(
            values["rewrite_rules"], f"{config_file} [{table_display}.rewrite_rules]"
        )

    try:
        return PublisherConfig(**values)
    except TypeError as error:
        raise ConfigError(f"Invalid `[{table_display}]` settings in {config_file}") from error


def _parse_rewrite_rules(raw_rules: object, where: str) -> dict[str, tuple[RewriteRule, ...]]:
    """Convert the TOML rewrite table into `RewriteRule` tuples.

    The TOML layout is one array of tables per internal host::

        [[tool.jirapub.rewrite_rules."mo.example.com"]]
        path_prefix = "/repo"
        new_host = "github.com"
        new_path_prefix = "/org/repo"
    """
    if not isinstance(raw_rules, dict):
        raise ConfigError(f"Invalid rewrite rules in {where}: expected a table of hosts")

    rules: dict[str, tuple[RewriteRule, ...]] = {}
    for host, entries in raw_rules.items():
        if not isinstance(entries, list):
            raise ConfigError(f"Invalid rewrite rules for {host!r} in {where}")
        try:
            rules[host.lower()] = tuple(RewriteRule(**entry) for entry in entries)
        except TypeError as error:
            raise ConfigError(f"Invalid rewrite rule for {host!r} in {where}") from error
    return rules


def validate_config(config: PublisherConfig) -> None:
    """Validate a `PublisherConfig` instance.

    Args:
        config: Configuration to validate.

    Raises:
        ConfigError: If the label or public URL is empty, fence keywords are
            unknown, rewrite rules are malformed, or the size limit is not a
            positive integer.

    Examples:
        validate_config(PublisherConfig(label="public"))
    """
    if not isinstance(config.label, str) or not config.label:
        raise ConfigError("`label` must not be empty")
    if not config.public_url:
        raise ConfigError("`public_url` must not be empty")

    for project in config.link_whitelist:
        if not isinstance(project, str) or not project:
            raise ConfigError("`link_whitelist` entries must be non-empty strings")

    unknown = [keyword for keyword in config.fence_keywords if keyword not in FENCE_KEYWORDS]
    if unknown:
        raise ConfigError(
            f"`fence_keywords` contains unsupported keywords: {', '.join(unknown)} "
            f"(supported: {', '.join(FENCE_KEYWORDS)})"
        )

    for host, rules in config.rewrite_rules.items():
        if not host:
            raise ConfigError("rewrite rule hosts must not be empty")
        for rule in rules:
            if not rule.path_prefix.startswith("/") or not rule.new_host:
                raise ConfigError(f"Invalid rewrite rule for {host!r}: {rule}")

    for key in ("autoclose_at_end", "relative_dates"):
        if not isinstance(getattr(config, key), bool):
            raise ConfigError(f"`{key}` must be a boolean")

    _ensure_positive_integers({"max_file_size": config.max_file_size})


def apply_overrides(config: PublisherConfig, **overrides: object) -> PublisherConfig:
    """Apply override values to a `PublisherConfig`.

    Args:
        config: Base configuration to update.
        overrides: Override values keyed by configuration field name; values set to
            None are ignored.

    Returns:
        PublisherConfig: New configuration with the overrides applied, or the
        original configuration when no changes are supplied.

    Raises:
        TypeError: If an override name is not defined on `PublisherConfig`.
    """
    changes = {key: value for key, value in overrides.items() if value is not None}
    if not changes:
        return config
    return replace(config, **changes)


def build_config(search_path: Path, **overrides: object) -> PublisherConfig:
    """Load, override, and validate configuration.

    Args:
        search_path: Directory where configuration files are resolved.
        overrides: Override values keyed by configuration attributes; None values
            are ignored.

    Returns:
        PublisherConfig: Validated configuration ready for rendering.

    Raises:
        ConfigError: If configuration loading or validation fails.

    Examples:
        config = build_config(Path.cwd(), label="public", relative_dates=False)
    """
    config = load_config(search_path)
    config = apply_overrides(config, **overrides)
    validate_config(config)
    return config


def _ensure_positive_integers(values: dict[str, object]) -> None:
    for key, value in values.items():
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"`{key}` must be an integer")
        if value <= 0:
            raise ConfigError(f"`{key}` must be a positive integer")
