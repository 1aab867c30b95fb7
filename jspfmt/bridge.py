"""Round-tripping code blocks through a markup formatter.

Code blocks are swapped for inert marker elements so that a markup-only
formatter can reflow the document around them. Once the markup has been
formatted, every marker is located again, its line tells us the structural
indentation the formatter chose, and the formatted block is spliced back in
at that indentation.

Blocks that sit inside a start tag, typically in an attribute value, are
swapped for a bare token instead and put back in place without re-indenting.
A markup formatter may only change whitespace; any other difference, such as
a renamed tag or a decoded entity, discards its output.
"""

from __future__ import annotations

from collections.abc import Callable
import logging
import re
import textwrap

from .config import FormatConfig
from .constants import BLOCK_CLOSE, IN_TAG_MARKER_TEMPLATE, MARKER_TAG, MARKER_TEMPLATE
from .exceptions import FormatterError, MarkupFormatError
from .models import CodeBlock, Markup, PlaceholderEntry, Segment

logger = logging.getLogger(__name__)

_LEADING_WHITESPACE = re.compile(r"^[ \t]*")
_WHITESPACE = re.compile(r"\s+")


def choose_marker_tag(text: str) -> str:
    """Pick a marker tag name that does not occur anywhere in `text`.

    Examples:
        choose_marker_tag("<p>hi</p>")  # 'jspfmt'
        choose_marker_tag("<jspfmt/>")  # 'jspfmt-1'
    """
    if MARKER_TAG not in text:
        return MARKER_TAG
    suffix = 1
    while f"{MARKER_TAG}-{suffix}" in text:
        suffix += 1
    return f"{MARKER_TAG}-{suffix}"


def render_marker(tag: str, index: int, in_tag: bool = False) -> str:
    template = IN_TAG_MARKER_TEMPLATE if in_tag else MARKER_TEMPLATE
    return template.format(tag=tag, index=index)


def marker_pattern(tag: str, index: int, in_tag: bool = False) -> re.Pattern[str]:
    """Compile a pattern that finds one marker after markup reformatting.

    Whitespace and line breaks between the opening and closing tag are
    tolerated, as is a self-closed form. Markers inside a start tag are
    matched verbatim.
    """
    if in_tag:
        return re.compile(re.escape(render_marker(tag, index, in_tag=True)))
    name = re.escape(tag)
    return re.compile(
        rf'<{name}\s+data-i\s*=\s*"{index}"\s*(?:/>|>\s*</{name}\s*>)'
    )


def inside_tag(text: str) -> bool:
    """Tell whether the end of `text` is inside an unfinished ``<...`` tag."""
    return text.rfind("<") > text.rfind(">")


def build_marker_buffer(
    segments: list[Segment], tag: str
) -> tuple[str, list[PlaceholderEntry]]:
    """Concatenate markup verbatim and replace every code block by a marker.

    Args:
        segments: Segments of the document, in order.
        tag: Marker tag name, see `choose_marker_tag`.

    Returns:
        tuple[str, list[PlaceholderEntry]]: The marker buffer and one entry
            per code block, in order of appearance.

    Examples:
        build_marker_buffer(segment("<p><%= a %></p>"), "jspfmt")[0]
        # '<p><jspfmt data-i="0"></jspfmt></p>'
        build_marker_buffer(segment('<a href="<%= u %>">'), "jspfmt")[0]
        # '<a href="_jspfmt_0_">'
    """
    parts: list[str] = []
    entries: list[PlaceholderEntry] = []
    in_tag = False
    for position, item in enumerate(segments):
        if isinstance(item, Markup):
            parts.append(item.text)
            if "<" in item.text or ">" in item.text:
                in_tag = inside_tag(item.text)
            continue
        index = len(entries)
        entries.append(PlaceholderEntry(index, position, item, in_tag))
        parts.append(render_marker(tag, index, in_tag))
    return "".join(parts), entries


def missing_markers(buffer: str, tag: str, entries: list[PlaceholderEntry]) -> list[int]:
    """Return the indices of markers that cannot be found in `buffer`."""
    return [
        entry.index
        for entry in entries
        if not marker_pattern(tag, entry.index, entry.in_tag).search(buffer)
    ]


def markup_content_changed(before: str, after: str) -> bool:
    """Tell whether two markup texts differ in anything but whitespace."""
    return _WHITESPACE.sub("", before) != _WHITESPACE.sub("", after)


def indent_block(replacement: str, base: str, interior_pad: str, first_indent: str) -> str:
    """Re-indent a formatted block for its position in the document.

    The first line gets `first_indent` and the last line gets `base`.
    Interior lines lose their common margin and get ``base + interior_pad``,
    so nesting inside the block is kept.

    Args:
        replacement: Formatted block, delimiters included.
        base: Indentation of the line the block is placed on.
        interior_pad: Extra indentation for interior lines.
        first_indent: Indentation of the first line, empty for inline placement.

    Returns:
        str: The re-indented block.

    Examples:
        indent_block("<%\\nfoo();\\n%>", "    ", "  ", "    ")
        # '    <%\\n      foo();\\n    %>'
    """
    lines = replacement.split("\n")
    if len(lines) == 1:
        return f"{first_indent}{lines[0].strip()}"

    interior = textwrap.dedent("\n".join(lines[1:-1])).split("\n") if len(lines) > 2 else []
    indented = [f"{first_indent}{lines[0].strip()}"]
    indented.extend(f"{base}{interior_pad}{line.rstrip()}" if line.strip() else "" for line in interior)
    indented.append(f"{base}{lines[-1].strip()}")
    return "\n".join(indented)


def splice_block(buffer: str, match: re.Match[str], replacement: str, interior_pad: str) -> str:
    """Replace the marker matched by `match` with `replacement`.

    The marker's whole line span is rewritten; other content on the first and
    last line of that span is kept around the replacement. A block that would
    directly follow another block's ``%>`` starts on a new line.
    """
    line_start = buffer.rfind("\n", 0, match.start()) + 1
    line_end = buffer.find("\n", match.end())
    if line_end == -1:
        line_end = len(buffer)
    prefix = buffer[line_start : match.start()]
    suffix = buffer[match.end() : line_end]
    base = _LEADING_WHITESPACE.match(prefix).group(0)

    if prefix.rstrip().endswith(BLOCK_CLOSE):
        lead = f"{prefix.rstrip()}\n"
        first_indent = base
    elif prefix.strip():
        lead = prefix
        first_indent = ""
    else:
        lead = ""
        first_indent = base

    placed = indent_block(replacement, base, interior_pad, first_indent)
    return f"{buffer[:line_start]}{lead}{placed}{suffix}{buffer[line_end:]}"


def splice_in_tag(buffer: str, match: re.Match[str], block: CodeBlock, replacement: str) -> str:
    """Put a block back inside a start tag, keeping the tag on one line.

    A replacement spanning several lines would change the attribute value, so
    the block is kept as written in that case.
    """
    text = replacement.strip() if "\n" not in replacement.strip() else block.raw
    return f"{buffer[: match.start()]}{text}{buffer[match.end() :]}"


def bridge(
    segments: list[Segment],
    format_markup: Callable[[str], str],
    format_segment: Callable[[CodeBlock], str],
    config: FormatConfig,
) -> str:
    """Format the markup around code blocks and splice the blocks back in.

    Args:
        segments: Segments of the document, in order.
        format_markup: Markup formatter applied once to the marker buffer.
            A `FormatterError`, a dropped marker or a change other than
            whitespace leaves the buffer as written.
        format_segment: Produces the finished text of one code block,
            delimiters included.
        config: Options supplying the interior indentation.

    Returns:
        str: The reassembled document.
    """
    source = "".join(item.source for item in segments)
    tag = choose_marker_tag(source)
    buffer, entries = build_marker_buffer(segments, tag)

    try:
        formatted = format_markup(buffer)
        missing = missing_markers(formatted, tag, entries)
        if missing:
            raise MarkupFormatError(f"Markup formatter dropped markers {missing}")
        if markup_content_changed(buffer, formatted):
            raise MarkupFormatError("Markup formatter changed more than whitespace")
    except FormatterError as error:
        logger.warning("Markup formatting failed, keeping markup layout: %s", error)
        formatted = buffer

    interior_pad = " " * config.block_interior_indent
    for entry in entries:
        match = marker_pattern(tag, entry.index, entry.in_tag).search(formatted)
        if match is None:
            logger.debug("Marker %d not found, leaving it in place", entry.index)
            continue
        replacement = format_segment(entry.segment)
        if entry.in_tag:
            formatted = splice_in_tag(formatted, match, entry.segment, replacement)
        else:
            formatted = splice_block(formatted, match, replacement, interior_pad)

    return formatted
