"""Configuration loading and management."""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
import tomllib

CODE_FORMAT_MODES = ("auto", "indent-only", "off")
MARKUP_FORMATTERS = ("soup", "none")

_CODE_FORMAT_MODE_ALIASES = {
    "indentOnly": "indent-only",
    "indent_only": "indent-only",
}


@dataclass
class FormatConfig:
    """Options controlling how a JSP document is reformatted.

    Attributes:
        indent_width: Number of spaces per indentation level.
        use_tab_indent: Indent with tab characters instead of spaces.
        code_format_mode: ``"auto"`` tries the external code formatter and
            falls back to the built-in reformatter, ``"indent-only"`` uses the
            built-in reformatter only, ``"off"`` leaves code untouched apart
            from trimming. ``"indentOnly"`` and ``"indent_only"`` are accepted
            as aliases.
        block_interior_indent: Extra columns applied to the interior lines of
            multi-line blocks, relative to their delimiters.
        markup_formatter: ``"soup"`` reflows the markup with BeautifulSoup,
            ``"none"`` keeps the markup layout as written.
        normalize_directives: Sort and re-quote directive attributes.
        code_formatter_command: Command line of the external Java formatter.
            ``{indent_width}`` and ``{use_tabs}`` are substituted.
        code_formatter_timeout: Seconds allowed for one external formatter run.
        max_file_size: Maximum file size in bytes that will be processed.

    Examples:
        FormatConfig(indent_width=4, code_format_mode="indent-only")
    """

    # Indentation
    indent_width: int = 2
    use_tab_indent: bool = False
    block_interior_indent: int = 2

    # Strategies
    code_format_mode: str = "auto"
    markup_formatter: str = "soup"
    normalize_directives: bool = True

    # External code formatter
    code_formatter_command: str = (
        "prettier --plugin=prettier-plugin-java --parser=java "
        "--tab-width={indent_width} --use-tabs={use_tabs}"
    )
    code_formatter_timeout: float = 10.0

    # Limits
    max_file_size: int = 10 * 1024 * 1024

    @property
    def indent_unit(self) -> str:
        """Text of a single indentation level."""
        return "\t" if self.use_tab_indent else " " * self.indent_width


class ConfigError(ValueError):
    """Exception raised when configuration values are invalid.

    Examples:
        raise ConfigError("`indent_width` must be a positive integer")
    """


def load_config(search_path: Path) -> FormatConfig:
    """Load configuration from the nearest config file.

    Walks parent directories from `search_path` to the filesystem root, reading
    the ``[tool.jspfmt]`` table from `pyproject.toml` and the ``[jspfmt]`` or
    ``[tool.jspfmt]`` table from `.jspfmt.toml` when present. Returns default
    values when no configuration is found. TOML files that cannot be read or
    decoded are skipped.

    Args:
        search_path: Directory used as the starting point for configuration lookup.

    Returns:
        FormatConfig: Loaded configuration with defaults applied when necessary.

    Raises:
        ConfigError: If a matching table is present but is not a mapping or
            contains unsupported keys.

    Examples:
        load_config(Path("src/main/webapp"))
    """
    current = search_path.resolve()

    while True:
        pyproject_config = _load_from_file(
            current / "pyproject.toml", table_paths=[("tool", "jspfmt")]
        )
        if pyproject_config is not None:
            return normalize_config(pyproject_config)

        dotfile_config = _load_from_file(
            current / ".jspfmt.toml",
            table_paths=[("jspfmt",), ("tool", "jspfmt")],
        )
        if dotfile_config is not None:
            return normalize_config(dotfile_config)

        parent = current.parent
        if parent == current:
            break
        current = parent

    return FormatConfig()


_MISSING = object()


def _load_from_file(
    config_file: Path, table_paths: list[tuple[str, ...]]
) -> FormatConfig | None:
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
) -> FormatConfig:
    table_display = ".".join(table_path)

    if raw_config is None or raw_config == {}:
        return FormatConfig()

    if not isinstance(raw_config, dict):
        raise ConfigError(f"Invalid `[{table_display}]` settings in {config_file}")

    # TOML keys may be written with dashes.
    options = {key.replace("-", "_"): value for key, value in raw_config.items()}
    try:
        return FormatConfig(**options)
    except TypeError as error:
        raise ConfigError(f"Invalid `[{table_display}]` settings in {config_file}") from error


def normalize_config(config: FormatConfig) -> FormatConfig:
    mode = _CODE_FORMAT_MODE_ALIASES.get(config.code_format_mode, config.code_format_mode)
    if mode == config.code_format_mode:
        return config
    return replace(config, code_format_mode=mode)


def validate_config(config: FormatConfig) -> None:
    """Validate a `FormatConfig` instance.

    Args:
        config: Configuration to validate.

    Returns:
        None.

    Raises:
        ConfigError: If indentation widths are not integers in range, a mode
            or formatter name is unknown, a flag is not a boolean, or a limit
            is not positive.

    Examples:
        validate_config(FormatConfig(indent_width=4))
    """
    config = normalize_config(config)

    _ensure_integers(
        {
            "indent_width": config.indent_width,
            "block_interior_indent": config.block_interior_indent,
            "max_file_size": config.max_file_size,
        }
    )

    if config.indent_width <= 0:
        raise ConfigError("`indent_width` must be a positive integer")
    if config.block_interior_indent < 0:
        raise ConfigError("`block_interior_indent` must be a non-negative integer")
    if config.max_file_size <= 0:
        raise ConfigError("`max_file_size` must be a positive integer")

    for key in ("use_tab_indent", "normalize_directives"):
        if not isinstance(getattr(config, key), bool):
            raise ConfigError(f"`{key}` must be a boolean")

    if config.code_format_mode not in CODE_FORMAT_MODES:
        raise ConfigError(
            "`code_format_mode` must be one of: auto, indent-only, off, indentOnly"
        )
    if config.markup_formatter not in MARKUP_FORMATTERS:
        raise ConfigError("`markup_formatter` must be one of: soup, none")

    if not isinstance(config.code_formatter_command, str) or not config.code_formatter_command:
        raise ConfigError("`code_formatter_command` must be a non-empty string")

    timeout = config.code_formatter_timeout
    if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
        raise ConfigError("`code_formatter_timeout` must be a positive number")


def apply_overrides(config: FormatConfig, **overrides: object) -> FormatConfig:
    """Apply override values to a `FormatConfig`.

    Args:
        config: Base configuration to update.
        overrides: Override values keyed by configuration field name; values set to
            None are ignored.

    Returns:
        FormatConfig: New configuration with the provided overrides applied. The
        original configuration is returned when no changes are supplied.

    Raises:
        TypeError: If an override name is not defined on `FormatConfig`.

    Examples:
        updated = apply_overrides(config, indent_width=4, use_tab_indent=None)
    """
    changes = {key: value for key, value in overrides.items() if value is not None}
    if not changes:
        return config
    return replace(config, **changes)


def build_config(search_path: Path, **overrides: object) -> FormatConfig:
    """Load, override, and validate configuration.

    Args:
        search_path: Directory where configuration files are resolved.
        overrides: Override values keyed by configuration attributes; None values
            are ignored.

    Returns:
        FormatConfig: Validated configuration ready for formatting.

    Raises:
        ConfigError: If configuration loading or validation fails.

    Examples:
        config = build_config(Path.cwd(), code_format_mode="off")
    """
    config = load_config(search_path)
    config = apply_overrides(config, **overrides)
    config = normalize_config(config)
    validate_config(config)
    return config


def _ensure_integers(values: dict[str, object]) -> None:
    for key, value in values.items():
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"`{key}` must be an integer")
