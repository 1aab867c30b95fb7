"""Dependency-free reformatting of Java fragments.

This is a line-oriented pretty-printer, not a parser. Each physical line is
cut into fragments (statements, block openers, block closers) with a small
state machine that knows about string and character literals, comments and
parenthesis depth. Every fragment is then rendered at the current brace
depth, adjusted for ``switch`` bodies and brace-less control headers.
"""

from __future__ import annotations

from .constants import (
    CASE_LABEL_PATTERN,
    CLOSE_GLUE_PATTERN,
    CONTINUATION_KEYWORD_PATTERN,
    CONTROL_HEADER_PATTERN,
    INLINE_BRACE_PRECEDERS,
    LEADING_CLOSE_CONTINUATION_PATTERN,
    PAREN_KEYWORDS,
    SWITCH_PATTERN,
)
from .models import ReformatterState


_CODE = "code"
_LITERAL = "literal"
_COMMENT = "comment"


def _char_kinds(text: str) -> list[str]:
    kinds: list[str] = []
    quote: str | None = None
    escaping = False
    index = 0
    length = len(text)
    while index < length:
        char = text[index]
        if quote is not None:
            kinds.append(_LITERAL)
            if escaping:
                escaping = False
            elif char == "\\":
                escaping = True
            elif char == quote or char == "\n":
                quote = None
            index += 1
            continue
        if char in "\"'":
            quote = char
            kinds.append(_LITERAL)
            index += 1
            continue
        if text.startswith("//", index):
            end = text.find("\n", index)
            stop = length if end == -1 else end
            kinds.extend([_COMMENT] * (stop - index))
            index = stop
            continue
        if text.startswith("/*", index):
            end = text.find("*/", index + 2)
            stop = length if end == -1 else end + 2
            kinds.extend([_COMMENT] * (stop - index))
            index = stop
            continue
        kinds.append(_CODE)
        index += 1
    return kinds


def code_positions(text: str) -> list[int]:
    """Return the indices of characters outside literals and comments.

    Quote characters that open or close a literal are not included, and an
    unterminated ``/*`` comment runs to the end of `text`.

    Args:
        text: Java source text, usually a single line.

    Returns:
        list[int]: Index of each code character, in ascending order.

    Examples:
        line = 'a("}"); // {'
        "".join(line[i] for i in code_positions(line))  # 'a(); '
    """
    return [index for index, kind in enumerate(_char_kinds(text)) if kind == _CODE]


def split_trailing_comment(fragment: str) -> tuple[str, str]:
    """Separate a trailing comment from the code before it.

    Examples:
        split_trailing_comment("x = 1; // one")  # ('x = 1;', '// one')
    """
    kinds = _char_kinds(fragment)
    start = len(fragment)
    while start > 0 and (
        kinds[start - 1] == _COMMENT or (kinds[start - 1] == _CODE and fragment[start - 1].isspace())
    ):
        start -= 1
    return fragment[:start].rstrip(), fragment[start:].strip()


def count_braces(text: str) -> tuple[int, int]:
    """Count the opening and closing braces of `text` that are real code."""
    opens = closes = 0
    for index in code_positions(text):
        if text[index] == "{":
            opens += 1
        elif text[index] == "}":
            closes += 1
    return opens, closes


def _opens_initializer(buffer: list[str]) -> bool:
    preceding = "".join(buffer).rstrip()
    return bool(preceding) and preceding[-1] in INLINE_BRACE_PRECEDERS


def _scan(line: str, split_braces: bool) -> tuple[list[str], bool]:
    fragments: list[str] = []
    buffer: list[str] = []

    def flush() -> None:
        piece = "".join(buffer).strip()
        if piece:
            fragments.append(piece)
        buffer.clear()

    def attach_comment(comment: str) -> None:
        # A comment after the last statement on a line stays on that line.
        if fragments and not "".join(buffer).strip():
            fragments[-1] = f"{fragments[-1]} {comment}"
            buffer.clear()
        else:
            buffer.append(comment)

    quote: str | None = None
    escaping = False
    paren_depth = 0
    inline_depth = 0
    index = 0
    length = len(line)
    while index < length:
        char = line[index]
        if quote is not None:
            buffer.append(char)
            if escaping:
                escaping = False
            elif char == "\\":
                escaping = True
            elif char == quote:
                quote = None
            index += 1
            continue

        if char in "\"'":
            quote = char
        elif line.startswith("//", index):
            attach_comment(line[index:])
            break
        elif line.startswith("/*", index):
            end = line.find("*/", index + 2)
            if end == -1:
                attach_comment(line[index:])
                flush()
                return fragments, True
            buffer.append(line[index : end + 2])
            index = end + 2
            continue
        elif char == "(":
            paren_depth += 1
        elif char == ")":
            paren_depth = max(0, paren_depth - 1)
        elif split_braces and paren_depth == 0 and char == "{":
            if inline_depth or _opens_initializer(buffer):
                inline_depth += 1
            else:
                buffer.append(char)
                flush()
                index += 1
                continue
        elif split_braces and paren_depth == 0 and char == "}":
            if inline_depth:
                inline_depth -= 1
            else:
                flush()
                buffer.append(char)
                index += 1
                if not CLOSE_GLUE_PATTERN.match(line[index:].lstrip()):
                    flush()
                continue

        buffer.append(char)
        if char == ";" and paren_depth == 0 and inline_depth == 0:
            flush()
        index += 1

    flush()
    return fragments, False


def split_statements(line: str) -> list[str]:
    """Split a line on statement-terminating semicolons.

    Semicolons inside string or character literals, comments, or
    parentheses (the three clauses of a ``for`` header) do not terminate a
    statement.

    Args:
        line: A single line of Java code.

    Returns:
        list[str]: Trimmed statements; the terminating ``;`` stays attached.

    Examples:
        split_statements('out.println(";"); x=1;')  # ['out.println(";");', 'x=1;']
    """
    return _scan(line, split_braces=False)[0]


def split_fragments(line: str) -> list[str]:
    """Split a line into statements, block openers and block closers.

    Like `split_statements`, and additionally breaks after a block-opening
    ``{`` and around a block-closing ``}``. Braces of array initializers stay
    inline, and ``};``, ``});``, ``} else`` and similar stay together.

    Examples:
        split_fragments("for(i=0;i<10;i++){x++;}")  # ['for(i=0;i<10;i++){', 'x++;', '}']
    """
    return _scan(line, split_braces=True)[0]


def _ends_with_code_brace(line: str) -> bool:
    stripped = line.rstrip()
    if not stripped.endswith("}"):
        return False
    positions = code_positions(stripped)
    return bool(positions) and positions[-1] == len(stripped) - 1


def join_continuations(code: str) -> str:
    """Pull ``else``/``catch``/``finally`` lines up onto a preceding ``}`` line.

    Examples:
        join_continuations("}\\nelse {")  # "} else {"
    """
    joined: list[str] = []
    for line in code.split("\n"):
        stripped = line.strip()
        if CONTINUATION_KEYWORD_PATTERN.match(stripped):
            target = len(joined) - 1
            while target >= 0 and not joined[target].strip():
                target -= 1
            if target >= 0 and _ends_with_code_brace(joined[target]):
                joined[target] = f"{joined[target].rstrip()} {stripped}"
                del joined[target + 1 :]
                continue
        joined.append(line)
    return "\n".join(joined)


def _matching_paren(text: str, start: int) -> int | None:
    depth = 0
    for index in code_positions(text):
        if index < start:
            continue
        if text[index] == "(":
            depth += 1
        elif text[index] == ")":
            depth -= 1
            if depth == 0:
                return index
    return None


def split_control_header(fragment: str) -> tuple[str, str] | None:
    """Separate a control header from a statement that follows it.

    Args:
        fragment: A fragment produced by `split_fragments`, optionally
            starting with a closing brace.

    Returns:
        tuple[str, str] | None: The header (including any leading ``}``) and
            the text after it, or None when `fragment` is not a control
            header.

    Examples:
        split_control_header("if (a) foo(b);")  # ('if (a)', 'foo(b);')
        split_control_header("} else")  # ('} else', '')
    """
    body = fragment[1:].lstrip() if fragment.startswith("}") else fragment
    match = CONTROL_HEADER_PATTERN.match(body)
    if not match:
        return None
    keyword = " ".join(match.group("keyword").split())
    offset = len(fragment) - len(body)
    end = offset + match.end()

    rest = fragment[end:].lstrip()
    if rest.startswith("("):
        close = _matching_paren(fragment, len(fragment) - len(rest))
        if close is None:
            return None
        end = close + 1
    elif keyword in PAREN_KEYWORDS:
        return None

    return fragment[:end].rstrip(), fragment[end:].strip()


def split_case_label(fragment: str) -> tuple[str, str] | None:
    """Separate a ``case``/``default`` label from the statement after it.

    Examples:
        split_case_label('case "a:b": y = 1;')  # ('case "a:b":', 'y = 1;')
        split_case_label("y = 1;")  # None
    """
    if not CASE_LABEL_PATTERN.match(fragment):
        return None
    for index in code_positions(fragment):
        if fragment[index] != ":":
            continue
        if fragment[index + 1 : index + 2] == ":" or (index and fragment[index - 1] == ":"):
            continue
        return fragment[: index + 1].strip(), fragment[index + 1 :].strip()
    return None


def _close_block(state: ReformatterState) -> None:
    state.level = max(state.level - 1, 0)
    while state.switch_levels and state.switch_levels[-1] > state.level:
        state.switch_levels.pop()


def _switch_offset(state: ReformatterState) -> int:
    if state.switch_levels and state.level >= state.switch_levels[-1]:
        return 1
    return 0


def _apply_brace_delta(state: ReformatterState, fragment: str, leading_close: bool) -> None:
    opens, closes = count_braces(fragment)
    if leading_close:
        closes -= 1
    state.level = max(state.level + opens - closes, 0)
    if opens > closes and fragment.endswith("{"):
        code = "".join(fragment[index] for index in code_positions(fragment))
        if SWITCH_PATTERN.search(code):
            state.switch_levels.append(state.level)
    while state.switch_levels and state.switch_levels[-1] > state.level:
        state.switch_levels.pop()


def _carried_offset(state: ReformatterState) -> int:
    return sum(offset for level, offset in state.body_offsets if state.level > level)


def _render_fragment(fragment: str, state: ReformatterState, unit: str) -> list[str]:
    def render(level: int, text: str) -> str:
        return f"{unit * max(level, 0)}{text}"

    carried = _carried_offset(state)
    code, comment = split_trailing_comment(fragment)
    if not code:
        return [render(state.level + _switch_offset(state) + state.pending_body + carried, comment)]

    leading_close = code.startswith("}")
    if leading_close:
        code = LEADING_CLOSE_CONTINUATION_PATTERN.sub(r"} \1", code, count=1)
        _close_block(state)
        state.pending_body = 0

    lines: list[str] = []
    label = split_case_label(code)
    if label is not None:
        head, tail = label
        lines.append(render(state.level + carried, head))
        if tail:
            lines.append(render(state.level + carried + 1, tail))
        state.pending_body = 0
    else:
        # A lone `{` belongs to the innermost pending header.
        if code.startswith("{"):
            body_offset = max(state.pending_body - 1, 0)
        else:
            body_offset = state.pending_body
        indent = state.level + _switch_offset(state) + carried + body_offset

        header = None if code.endswith("{") else split_control_header(code)
        if header is not None and header[1] not in ("", ";"):
            head, tail = header
            lines.append(render(indent, head))
            lines.append(render(indent + 1, tail))
            state.pending_body = 0
        elif header is not None and header[1] == "":
            lines.append(render(indent, code))
            state.pending_body += 1
        else:
            lines.append(render(indent, code))
            if body_offset and code.endswith("{"):
                state.body_offsets.append((state.level, body_offset))
            state.pending_body = 0

    if comment:
        lines[-1] = f"{lines[-1]} {comment}"
    _apply_brace_delta(state, code, leading_close)
    state.body_offsets = [entry for entry in state.body_offsets if entry[0] < state.level]
    return lines


def reformat(code: str, indent_width: int = 2, use_tabs: bool = False) -> str:
    """Re-indent a Java fragment without an external formatter.

    Lines are split into statements and block boundaries, ``} else`` style
    continuations are joined, and every fragment is indented by its brace
    depth. ``case``/``default`` labels sit at the ``switch`` body level with
    their statements one level deeper, and a brace-less control header puts
    its single statement one level deeper. Blank lines are kept. The function
    never raises; unrecognized shapes are indented at the current depth.

    Args:
        code: Java statements or declarations.
        indent_width: Spaces per nesting level.
        use_tabs: Indent with one tab per level instead of spaces.

    Returns:
        str: The reformatted code, lines joined with ``\\n``.

    Examples:
        reformat("if(a){b();c();}")  # 'if(a){\\n  b();\\n  c();\\n}'
    """
    unit = "\t" if use_tabs else " " * indent_width
    state = ReformatterState()
    output: list[str] = []

    for raw_line in join_continuations(code).split("\n"):
        line = raw_line.strip()
        if not line:
            output.append("")
            continue

        if state.in_comment:
            indent = unit * (state.level + _switch_offset(state) + _carried_offset(state))
            output.append(f"{indent} {line}" if line.startswith("*") else f"{indent}{line}")
            if "*/" in line:
                state.in_comment = False
            continue

        fragments, opens_comment = _scan(line, split_braces=True)
        for fragment in fragments:
            output.extend(_render_fragment(fragment, state, unit))
        state.in_comment = opens_comment

    return "\n".join(output)
