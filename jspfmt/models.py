"""Data models for jspfmt."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    import os
    from pathlib import Path

    from .config import FormatConfig


class SegmentKind(Enum):
    """Roles of the embedded code blocks found in a JSP document.

    Attributes:
        DIRECTIVE: ``<%@ ... %>`` page, include and taglib directives.
        EXPRESSION: ``<%= ... %>`` output expressions.
        DECLARATION: ``<%! ... %>`` field and method declarations.
        SCRIPTLET: ``<% ... %>`` statement blocks.
        COMMENT: ``<%-- ... --%>`` JSP comments, never reformatted.
    """

    DIRECTIVE = "directive"
    EXPRESSION = "expression"
    DECLARATION = "declaration"
    SCRIPTLET = "scriptlet"
    COMMENT = "comment"


@dataclass(frozen=True)
class Markup:
    """Literal markup text between code blocks.

    Attributes:
        text: The markup exactly as it appears in the input.
        offset: Zero-based character offset of the text in the input.
    """

    text: str
    offset: int = 0

    @property
    def source(self) -> str:
        return self.text


@dataclass(frozen=True)
class CodeBlock:
    """A delimited code block.

    Attributes:
        kind: Role of the block.
        raw: Original delimiter-inclusive text.
        inner: Delimiter- and role-stripped body used for reformatting.
        offset: Zero-based character offset of ``raw`` in the input.
    """

    kind: SegmentKind
    raw: str
    inner: str
    offset: int = 0

    @property
    def source(self) -> str:
        return self.raw


Segment = Union[Markup, CodeBlock]


@dataclass(frozen=True)
class PlaceholderEntry:
    """Maps a marker index to the code block it stands in for.

    Attributes:
        index: Marker index embedded in the marker token.
        segment_index: Position of the block in the segment list.
        segment: The block itself.
        in_tag: Whether the block sits inside a start tag, for instance in an
            attribute value, and is marked with a bare token.
    """

    index: int
    segment_index: int
    segment: CodeBlock
    in_tag: bool = False


@dataclass
class ReformatterState:
    """Mutable bookkeeping for a single fallback reformat call.

    Attributes:
        level: Current brace nesting depth, never negative.
        switch_levels: Body levels of the open ``switch`` blocks, innermost last.
        pending_body: Brace-less control headers still waiting for their body.
        body_offsets: ``(level, offset)`` pairs for braced blocks that are the
            body of a brace-less header; the offset applies while the
            nesting depth stays above ``level``.
        in_comment: Whether a ``/* ... */`` comment is open across lines.
    """

    level: int = 0
    switch_levels: list[int] = field(default_factory=list)
    pending_body: int = 0
    body_offsets: list[tuple[int, int]] = field(default_factory=list)
    in_comment: bool = False


@dataclass
class FormatSession:
    """State carried through one formatting pass over one document.

    Attributes:
        config: Options used for this pass.
        code_formatter_available: Cleared after the external code formatter
            fails once; later segments of the same pass skip it.
        formatter_count: Segments formatted by the external code formatter.
        fallback_count: Segments formatted by the fallback reformatter.
    """

    config: FormatConfig
    code_formatter_available: bool = True
    formatter_count: int = 0
    fallback_count: int = 0


@dataclass(frozen=True)
class JspSource:
    """A JSP file as it was read from disk.

    Attributes:
        path: Resolved path of the file.
        text: Decoded content.
        snapshot: ``lstat`` result taken just before reading; the file is only
            rewritten while it still matches.
    """

    path: Path
    text: str
    snapshot: os.stat_result
