"""
Formats JSP files.
By default the formatted document is written to stdout; with `--in-place` the
files are rewritten, and with `--check` nothing is written at all.
"""

from __future__ import annotations

import logging
from pathlib import Path

import click
from .config import CODE_FORMAT_MODES, MARKUP_FORMATTERS, ConfigError, build_config
from .exceptions import FormatFileError
from .filesystem import resolve_jsp_path, write_source
from .pipeline import format_file

__all__ = ["cli"]

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False, debug: bool = False) -> None:
    """Configure root logging on stderr for a CLI run."""
    level = logging.DEBUG if debug else logging.INFO if verbose else logging.WARNING
    logging.basicConfig(format="%(levelname)s: %(message)s", level=level, force=True)


@click.command()
@click.version_option()
@click.option("--indent-width", type=int, help="Spaces per indentation level")
@click.option("--use-tabs/--use-spaces", "use_tab_indent", default=None, help="Indent with tabs")
@click.option(
    "--code-format-mode",
    type=click.Choice(CODE_FORMAT_MODES),
    help="How scriptlets and declarations are formatted",
)
@click.option("--block-interior-indent", type=int, help="Extra indentation inside multi-line blocks")
@click.option("--markup-formatter", type=click.Choice(MARKUP_FORMATTERS), help="Markup formatter")
@click.option(
    "--no-normalize-directives",
    "no_normalize_directives",
    is_flag=True,
    help="Keep directive attributes as written",
)
@click.option("--in-place", is_flag=True, help="Rewrite files instead of printing them")
@click.option("--check", is_flag=True, help="Exit with status 1 if any file would change")
@click.option("-v", "--verbose", is_flag=True, help="Report progress")
@click.option("--debug", is_flag=True, help="Report formatting decisions")
@click.argument("filepaths", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
def cli(
    filepaths: tuple[str, ...],
    indent_width: int | None = None,
    use_tab_indent: bool | None = None,
    code_format_mode: str | None = None,
    block_interior_indent: int | None = None,
    markup_formatter: str | None = None,
    no_normalize_directives: bool = False,
    in_place: bool = False,
    check: bool = False,
    verbose: bool = False,
    debug: bool = False,
):
    """
    Format one or more JSP files.

    Args:
        filepaths: Paths to the JSP files to format.
        indent_width: Override for the indentation width.
        use_tab_indent: Override for tab indentation.
        code_format_mode: Override for the code formatting mode.
        block_interior_indent: Override for the interior indentation of blocks.
        markup_formatter: Override for the markup formatter.
        no_normalize_directives: Disable directive normalization.
        in_place: Rewrite the files atomically.
        check: Only report files that would change.
        verbose: Log progress messages.
        debug: Log formatting decisions.

    Returns:
        None.

    Raises:
        click.BadParameter: If a path is not an acceptable JSP file or the
            configuration is invalid.
        click.ClickException: If a file is too large, cannot be read, or
            changes while being formatted.

    Examples:
        jspfmt src/main/webapp/index.jsp --code-format-mode indent-only --in-place
    """
    setup_logging(verbose, debug)
    if in_place and check:
        raise click.UsageError("--in-place and --check cannot be used together.")

    base_dir = Path.cwd().resolve()
    try:
        paths = [resolve_jsp_path(filepath, base_dir) for filepath in filepaths]
    except ValueError as error:
        raise click.BadParameter(str(error)) from error

    changed: list[Path] = []
    for path in paths:
        try:
            config = build_config(
                path.parent,
                indent_width=indent_width,
                use_tab_indent=use_tab_indent,
                code_format_mode=code_format_mode,
                block_interior_indent=block_interior_indent,
                markup_formatter=markup_formatter,
                normalize_directives=False if no_normalize_directives else None,
            )
        except ConfigError as error:
            raise click.BadParameter(str(error)) from error

        try:
            source, formatted = format_file(path, config)
        except FormatFileError as error:
            raise click.ClickException(str(error)) from error

        if formatted != source.text:
            changed.append(path)

        if check:
            if formatted != source.text:
                click.echo(f"would reformat {path}")
        elif in_place:
            if formatted == source.text:
                logger.info("%s already formatted", path)
                continue
            try:
                write_source(source, formatted)
            except IOError as error:
                raise click.ClickException(str(error)) from error
            logger.info("Reformatted %s", path)
        else:
            click.echo(formatted, nl=False)

    if check and changed:
        raise SystemExit(1)


if __name__ == "__main__":
    cli()
