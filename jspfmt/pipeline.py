"""Formatting of complete JSP documents."""

from __future__ import annotations

from functools import partial
import logging
from pathlib import Path

from .bridge import bridge
from .collaborators import (
    CodeFormatter,
    MarkupFormatter,
    build_code_formatter,
    build_markup_formatter,
    unwrap_fragment,
    wrap_fragment,
)
from .config import FormatConfig, normalize_config, validate_config
from .directives import normalize_directive
from .exceptions import CodeFormatterError, FormatFileError
from .filesystem import max_file_size, read_source
from .models import CodeBlock, FormatSession, JspSource, SegmentKind
from .reformatter import reformat
from .segmenter import segment

logger = logging.getLogger(__name__)

_OPENERS = {
    SegmentKind.SCRIPTLET: "<%",
    SegmentKind.DECLARATION: "<%!",
}


def _format_with_collaborator(
    block: CodeBlock, session: FormatSession, code_formatter: CodeFormatter
) -> str | None:
    try:
        formatted = code_formatter.format(wrap_fragment(block.inner, block.kind), session.config)
    except CodeFormatterError as error:
        logger.warning(
            "Code formatter failed, using the built-in reformatter for the rest of the document: %s",
            error,
        )
        session.code_formatter_available = False
        return None

    code = unwrap_fragment(formatted, block.kind)
    if code is None:
        logger.debug("Could not unwrap formatted %s at offset %d", block.kind.value, block.offset)
    return code


def format_code_block(
    block: CodeBlock, session: FormatSession, code_formatter: CodeFormatter | None = None
) -> str:
    """Produce the finished text of one scriptlet or declaration.

    Args:
        block: A ``SCRIPTLET`` or ``DECLARATION`` block.
        session: State of the current formatting pass.
        code_formatter: External formatter tried in ``auto`` mode.

    Returns:
        str: The block with its delimiters.
    """
    config = session.config
    opener = _OPENERS[block.kind]
    if not block.inner.strip():
        return f"{opener} %>"
    if config.code_format_mode == "off":
        return f"{opener} {block.inner} %>"

    if (
        config.code_format_mode == "auto"
        and code_formatter is not None
        and session.code_formatter_available
    ):
        code = _format_with_collaborator(block, session, code_formatter)
        if code is not None:
            session.formatter_count += 1
            return f"{opener}\n{code}\n%>"

    session.fallback_count += 1
    code = reformat(block.inner, config.indent_width, config.use_tab_indent)
    return f"{opener}\n{code}\n%>"


def format_segment(
    block: CodeBlock, session: FormatSession, code_formatter: CodeFormatter | None = None
) -> str:
    """Produce the finished text of any code block.

    Directives are canonicalized, expressions trimmed, JSP comments kept as
    written, and scriptlets and declarations handed to `format_code_block`.

    Examples:
        format_segment(classify_block("<%=  user.name  %>"), FormatSession(FormatConfig()))
        # '<%= user.name %>'
    """
    if block.kind is SegmentKind.DIRECTIVE:
        body = normalize_directive(block.inner) if session.config.normalize_directives else block.inner
        return f"<%@ {body} %>"
    if block.kind is SegmentKind.EXPRESSION:
        return f"<%= {block.inner.strip()} %>"
    if block.kind is SegmentKind.COMMENT:
        return block.raw
    return format_code_block(block, session, code_formatter)


def format_document(
    text: str,
    config: FormatConfig | None = None,
    *,
    markup_formatter: MarkupFormatter | None = None,
    code_formatter: CodeFormatter | None = None,
) -> str:
    """Format a JSP document.

    Args:
        text: The document.
        config: Formatting options; defaults to a new `FormatConfig`.
        markup_formatter: Overrides the markup formatter selected by `config`.
        code_formatter: Overrides the code formatter built from `config`.

    Returns:
        str: The formatted document. Collaborator failures never propagate;
            the affected part is formatted with a local strategy instead.

    Raises:
        ConfigError: If `config` is invalid.

    Examples:
        format_document('<%@ page import="java.util.*" language="java" %>')
    """
    config = normalize_config(config or FormatConfig())
    validate_config(config)

    if markup_formatter is None:
        markup_formatter = build_markup_formatter(config)
    if code_formatter is None and config.code_format_mode == "auto":
        code_formatter = build_code_formatter(config)

    session = FormatSession(config)
    segments = segment(text)
    result = bridge(
        segments,
        partial(markup_formatter.format, config=config),
        partial(format_segment, session=session, code_formatter=code_formatter),
        config,
    )
    logger.debug(
        "Formatted %d segments (%d by code formatter, %d by fallback)",
        len(segments),
        session.formatter_count,
        session.fallback_count,
    )
    return result


def format_file(path: Path, config: FormatConfig | None = None) -> tuple[JspSource, str]:
    """Read and format a JSP file.

    The size limit is ``config.max_file_size`` unless ``JSPFMT_MAX_FILE_SIZE``
    is set. The returned source carries the snapshot `write_source` needs to
    rewrite the file safely.

    Args:
        path: Path to the file.
        config: Formatting options; defaults to a new `FormatConfig`.

    Returns:
        tuple[JspSource, str]: The file as read and its formatted content.

    Raises:
        FormatFileError: If the configuration or size limit is invalid, or the
            file is too large, unreadable or not UTF-8.

    Examples:
        source, formatted = format_file(Path("index.jsp"), config)
        if formatted != source.text:
            write_source(source, formatted)
    """
    try:
        config = normalize_config(config or FormatConfig())
        validate_config(config)
        source = read_source(path, max_file_size(config.max_file_size))
    except UnicodeDecodeError as error:
        raise FormatFileError(f"Invalid UTF-8 sequence in {path}: {error}") from error
    except (IOError, ValueError) as error:
        raise FormatFileError(str(error)) from error

    return source, format_document(source.text, config)
