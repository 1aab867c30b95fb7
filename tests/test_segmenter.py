from __future__ import annotations

import textwrap

from jspfmt.models import CodeBlock, Markup, SegmentKind
from jspfmt.segmenter import (
    classify_block,
    reconstruct,
    segment,
    strip_common_indent,
    trim_blank_lines,
)


def test_segment_splits_markup_and_expression():
    segments = segment("<p><%= user %></p>")

    assert segments == [
        Markup("<p>", 0),
        CodeBlock(SegmentKind.EXPRESSION, "<%= user %>", "user", 3),
        Markup("</p>", 14),
    ]


def test_segment_classifies_every_block_kind():
    text = (
        '<%@ page import="java.util.*" %>'
        "<%! int count; %>"
        "<% count++; %>"
        "<%= count %>"
        "<%-- hidden --%>"
    )

    kinds = [item.kind for item in segment(text)]

    assert kinds == [
        SegmentKind.DIRECTIVE,
        SegmentKind.DECLARATION,
        SegmentKind.SCRIPTLET,
        SegmentKind.EXPRESSION,
        SegmentKind.COMMENT,
    ]


def test_segment_strips_role_markers():
    directive, declaration, scriptlet = segment(
        '<%@ page import="java.util.*" %><%! int x = 1; %><% x++; %>'
    )

    assert directive.inner == 'page import="java.util.*"'
    assert declaration.inner == "int x = 1;"
    assert scriptlet.inner == "x++;"


def test_role_is_decided_before_stripping():
    block = classify_block('<% String s = "="; %>')

    assert block.kind is SegmentKind.SCRIPTLET
    assert block.inner == 'String s = "=";'


def test_declaration_strips_repeated_role_markers():
    block = classify_block("<%!! int x; %>")

    assert block.kind is SegmentKind.DECLARATION
    assert block.inner == "int x;"


def test_role_marker_may_follow_whitespace():
    block = classify_block("<%\n   = total %>")

    assert block.kind is SegmentKind.EXPRESSION
    assert block.inner == "total"


def test_comment_is_not_cut_at_inner_delimiter():
    segments = segment("<%-- note %> --%><p>")

    assert segments[0].kind is SegmentKind.COMMENT
    assert segments[0].raw == "<%-- note %> --%>"
    assert segments[1] == Markup("<p>", 17)


def test_unterminated_block_stays_markup():
    assert segment("<p><% foo") == [Markup("<p><% foo", 0)]


def test_empty_document_has_no_segments():
    assert segment("") == []


def test_multiline_declaration_is_dedented():
    raw = "<%!\n        int a;\n        void f() {\n          a++;\n        }\n%>"

    block = classify_block(raw)

    assert block.inner == "int a;\nvoid f() {\n  a++;\n}"


def test_scriptlet_text_on_delimiter_line_is_kept():
    raw = "<% first();\n      second();\n      third();\n%>"

    assert classify_block(raw).inner == "first();\nsecond();\nthird();"


def test_reconstruct_returns_original_text():
    text = textwrap.dedent(
        """
        <%@ page contentType="text/html" %>
        <ul>
          <% for (String item : items) { %>
            <li><%= item %></li>
          <% } %>
        </ul>
        """
    )

    assert reconstruct(segment(text)) == text


def test_strip_common_indent_removes_shared_margin():
    assert strip_common_indent("    a\n      b") == "a\n  b"


def test_strip_common_indent_ignores_blank_first_and_last_lines():
    assert strip_common_indent("\n    a\n    b\n") == "\na\nb\n"


def test_strip_common_indent_empties_blank_interior_lines():
    assert strip_common_indent("  a\n   \n  b") == "a\n\nb"


def test_strip_common_indent_without_margin_returns_input():
    assert strip_common_indent("a\n  b") == "a\n  b"


def test_trim_blank_lines():
    assert trim_blank_lines("\n  \nx\n\ny\n \n") == "x\n\ny"
