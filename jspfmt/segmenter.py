"""Partitioning of JSP documents into markup and code segments."""

from __future__ import annotations

import re

from .constants import (
    COMMENT_BLOCK_PATTERN,
    DECLARATION_ROLE_PATTERN,
    DIRECTIVE_ROLE_PATTERN,
    EXPRESSION_ROLE_PATTERN,
    JSP_BLOCK_PATTERN,
)
from .models import CodeBlock, Markup, Segment, SegmentKind

_LEADING_WHITESPACE = re.compile(r"^[ \t]*")


def strip_common_indent(text: str) -> str:
    """Remove the indentation margin shared by all non-blank lines.

    A blank first or last line is ignored when measuring the margin and left
    untouched. Blank interior lines become empty.

    Args:
        text: Text to de-indent.

    Returns:
        str: The de-indented text, or `text` itself when there is no margin.

    Examples:
        strip_common_indent("    a\\n      b")  # "a\\n  b"
    """
    lines = text.split("\n")
    first = 1 if not lines[0].strip() else 0
    last = len(lines) - 1 - (1 if len(lines) > 1 and not lines[-1].strip() else 0)

    margin: int | None = None
    for line in lines[first : last + 1]:
        if not line.strip():
            continue
        width = len(_LEADING_WHITESPACE.match(line).group(0))
        if margin is None or width < margin:
            margin = width
    if not margin:
        return text

    dedented = []
    for index, line in enumerate(lines):
        if index < first or index > last:
            dedented.append(line)
        elif not line.strip():
            dedented.append("")
        else:
            dedented.append(line[margin:])
    return "\n".join(dedented)


def trim_blank_lines(text: str) -> str:
    """Drop whitespace-only lines from both ends of `text`."""
    lines = text.split("\n")
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    return "\n".join(lines)


def _dedent_body(body: str) -> str:
    # Text on the delimiter line never carries host indentation, so it does
    # not take part in the margin.
    first, newline, rest = body.partition("\n")
    if not newline:
        return body.strip()
    rest = strip_common_indent(rest)
    if first.strip():
        rest = f"{first.strip()}\n{rest}"
    return trim_blank_lines(rest).rstrip()


def classify_block(raw: str, offset: int = 0) -> CodeBlock:
    """Build a `CodeBlock` from delimiter-inclusive block text.

    The role is decided on `raw` before any stripping, so role characters
    that appear again inside the body are never taken for a marker.

    Args:
        raw: Block text starting with ``<%`` and ending with ``%>``.
        offset: Offset of the block in the document.

    Returns:
        CodeBlock: The typed block with its stripped body.

    Examples:
        classify_block('<%@ page import="java.util.*" %>').kind  # SegmentKind.DIRECTIVE
    """
    comment = COMMENT_BLOCK_PATTERN.match(raw)
    if comment:
        return CodeBlock(SegmentKind.COMMENT, raw, _dedent_body(comment.group(1)), offset)

    body = raw[2:-2]
    if DIRECTIVE_ROLE_PATTERN.match(raw):
        inner = body.strip().lstrip("@").strip()
        return CodeBlock(SegmentKind.DIRECTIVE, raw, inner, offset)
    if EXPRESSION_ROLE_PATTERN.match(raw):
        inner = re.sub(r"^[\s=]+", "", body).rstrip()
        return CodeBlock(SegmentKind.EXPRESSION, raw, inner, offset)
    if DECLARATION_ROLE_PATTERN.match(raw):
        inner = _dedent_body(re.sub(r"^\s*(?:![ \t]*)+", "", body))
        return CodeBlock(SegmentKind.DECLARATION, raw, inner, offset)
    return CodeBlock(SegmentKind.SCRIPTLET, raw, _dedent_body(body), offset)


def segment(text: str) -> list[Segment]:
    """Split a JSP document into ordered markup and code segments.

    Blocks are matched non-greedily across lines. Markup between blocks is
    kept verbatim; an unterminated ``<%`` simply remains part of the markup.
    Concatenating the `source` of every returned segment yields `text`.

    Args:
        text: The full document.

    Returns:
        list[Segment]: Segments in document order. Empty markup runs are omitted.

    Examples:
        segment("<p><%= user %></p>")
    """
    segments: list[Segment] = []
    position = 0
    for match in JSP_BLOCK_PATTERN.finditer(text):
        if match.start() > position:
            segments.append(Markup(text[position : match.start()], position))
        segments.append(classify_block(match.group(0), match.start()))
        position = match.end()
    if position < len(text):
        segments.append(Markup(text[position:], position))
    return segments


def reconstruct(segments: list[Segment]) -> str:
    """Join the original spans of `segments` back into a document."""
    return "".join(item.source for item in segments)
