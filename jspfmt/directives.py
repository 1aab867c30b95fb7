"""Canonical rendering of JSP directives."""

from __future__ import annotations

from .constants import DIRECTIVE_ATTRIBUTE_PATTERN, DIRECTIVE_NAME_PATTERN


def _attribute_sort_key(pair: tuple[str, str]) -> tuple[str, str]:
    key = pair[0]
    return key.casefold(), key


def _render_attribute(key: str, value: str) -> str:
    if '"' in value:
        return f"{key}='{value}'"
    return f'{key}="{value}"'


def normalize_directive(inner: str) -> str:
    """Canonicalize the body of a directive.

    Parses the directive name and its ``key="value"``, ``key='value'`` or
    ``key=value`` attributes, sorts the attributes by key and renders each
    one double-quoted. Input that cannot be parsed completely is returned
    unchanged rather than repaired.

    Args:
        inner: Directive body without the ``<%@`` and ``%>`` delimiters.

    Returns:
        str: ``name key="value" ...`` or the stripped input when parsing fails.

    Examples:
        normalize_directive('page pageEncoding="UTF-8" contentType=text/html')
        # 'page contentType="text/html" pageEncoding="UTF-8"'
    """
    text = inner.strip().lstrip("@").strip()
    name_match = DIRECTIVE_NAME_PATTERN.match(text)
    if not name_match:
        return text
    name = name_match.group(1)
    rest = text[name_match.end() :]

    pairs: list[tuple[str, str]] = []
    for match in DIRECTIVE_ATTRIBUTE_PATTERN.finditer(rest):
        double_quoted, single_quoted, bare = match.group(2, 3, 4)
        value = next((v for v in (double_quoted, single_quoted, bare) if v is not None), "")
        pairs.append((match.group(1), value))

    residue = DIRECTIVE_ATTRIBUTE_PATTERN.sub("", rest).strip()
    if residue or (not pairs and ('"' in rest or "'" in rest)):
        return text

    pairs.sort(key=_attribute_sort_key)
    attributes = " ".join(_render_attribute(key, value) for key, value in pairs)
    return f"{name} {attributes}" if attributes else name
