"""Constants used across the jspfmt package."""

from __future__ import annotations

import re

from .config import FormatConfig

DEFAULT_CONFIG = FormatConfig()

# JSP block delimiters; comments first so `--%>` is not cut at an inner `%>`.
JSP_BLOCK_PATTERN = re.compile(r"(<%--.*?--%>|<%.*?%>)", re.DOTALL)
COMMENT_BLOCK_PATTERN = re.compile(r"^<%--(.*)--%>$", re.DOTALL)
DIRECTIVE_ROLE_PATTERN = re.compile(r"^<%\s*@")
EXPRESSION_ROLE_PATTERN = re.compile(r"^<%\s*=")
DECLARATION_ROLE_PATTERN = re.compile(r"^<%\s*!")
BLOCK_CLOSE = "%>"

# Directive attributes: key="value", key='value' or key=value
DIRECTIVE_NAME_PATTERN = re.compile(r"^(\w+)\s*")
DIRECTIVE_ATTRIBUTE_PATTERN = re.compile(
    r"""(\w+)\s*=\s*(?:"([^"]*)"|'([^']*)'|([^\s"'>]+))"""
)

# Placeholder markers
MARKER_TAG = "jspfmt"
MARKER_TEMPLATE = '<{tag} data-i="{index}"></{tag}>'
# Markers for blocks inside a start tag must survive as attribute text.
IN_TAG_MARKER_TEMPLATE = "_{tag}_{index}_"

# Java structure
CONTROL_HEADER_PATTERN = re.compile(
    r"^(?P<keyword>else\s+if|if|for|while|do|try|catch|finally|else|switch|synchronized)\b"
)
PAREN_KEYWORDS = frozenset({"else if", "if", "for", "while", "catch", "switch", "synchronized"})
CONTINUATION_KEYWORD_PATTERN = re.compile(r"^(else\s+if|else|catch|finally)\b")
LEADING_CLOSE_CONTINUATION_PATTERN = re.compile(r"^\}\s*(else|catch|finally|while)\b")
# Text that stays on the same fragment after a block-closing brace.
CLOSE_GLUE_PATTERN = re.compile(r"^(?:[;,)]|(?:else|catch|finally|while)\b)")
SWITCH_PATTERN = re.compile(r"\bswitch\s*\(")
CASE_LABEL_PATTERN = re.compile(r"^(?:case\b|default\s*:)")
# Characters that make a following `{` an initializer rather than a block.
INLINE_BRACE_PRECEDERS = frozenset("=,]")

# Code formatter wrappers
DECLARATION_WRAPPER = "class __J {{ {code} }}"
SCRIPTLET_WRAPPER = "class __J {{ void __m() {{ {code} }} }}"
SCRIPTLET_SIGNATURE = "void __m()"

# Files
JSP_EXTENSIONS = (".jsp", ".jspf", ".jspx", ".tag", ".tagf")
DEFAULT_MAX_FILE_SIZE = DEFAULT_CONFIG.max_file_size
