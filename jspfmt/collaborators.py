"""External formatters used by the pipeline.

Two collaborators are involved in formatting a document: a markup formatter
that reflows the HTML around the code blocks, and a Java code formatter for
scriptlets and declarations. Both sit behind small protocols so tests and
library users can substitute their own implementations.
"""

from __future__ import annotations

import logging
import re
import shlex
import subprocess
from typing import Protocol

from bs4 import BeautifulSoup, NavigableString
from bs4.builder import ParserRejectedMarkup
from bs4.formatter import HTMLFormatter

from .config import FormatConfig
from .constants import DECLARATION_WRAPPER, SCRIPTLET_SIGNATURE, SCRIPTLET_WRAPPER
from .exceptions import CodeFormatterError, MarkupFormatError
from .models import SegmentKind
from .reformatter import code_positions
from .segmenter import strip_common_indent, trim_blank_lines

logger = logging.getLogger(__name__)

_START_TAG = re.compile(r"<([A-Za-z][^\s/>]*)((?:\"[^\"]*\"|'[^']*'|[^'\">])*)>")
_QUOTED_VALUE = re.compile(r"\"[^\"]*\"|'[^']*'")
_ATTRIBUTE_NAME = re.compile(r"[^\s\"'=/>]+")
_SELF_CLOSING = re.compile(r"/\s*>")
_RAW_TEXT_ELEMENTS = frozenset({"script", "style"})


class MarkupFormatter(Protocol):
    """Reflows markup that contains marker elements in place of code blocks."""

    def format(self, text: str, config: FormatConfig) -> str:
        """Return the reformatted markup.

        Raises:
            MarkupFormatError: If the markup cannot be formatted.
        """
        ...


class CodeFormatter(Protocol):
    """Formats a complete Java compilation unit."""

    def format(self, text: str, config: FormatConfig) -> str:
        """Return the formatted source.

        Raises:
            CodeFormatterError: If the formatter is unavailable or rejects the input.
        """
        ...


class PassthroughMarkupFormatter:
    """Markup formatter that keeps the markup exactly as written."""

    def format(self, text: str, config: FormatConfig) -> str:
        return text


def _source_names(text: str) -> tuple[dict[str, str], set[str]]:
    """Collect the spelling of tag and attribute names as written in `text`.

    Returns:
        tuple[dict[str, str], set[str]]: Lowercased name to first spelling
            seen, and the lowercased names of tags written self-closed.
    """
    names: dict[str, str] = {}
    self_closed: set[str] = set()
    for match in _START_TAG.finditer(text):
        name, rest = match.groups()
        names.setdefault(name.lower(), name)
        if rest.rstrip().endswith("/"):
            self_closed.add(name.lower())
        for attribute in _ATTRIBUTE_NAME.findall(_QUOTED_VALUE.sub(" ", rest)):
            names.setdefault(attribute.lower(), attribute)
    return names, self_closed


def _restore_source_spelling(soup: BeautifulSoup, names: dict[str, str], self_closed: set[str]):
    for tag in soup.find_all(True):
        lowered = tag.name
        tag.name = names.get(lowered, lowered)
        tag.attrs = {names.get(key, key): value for key, value in tag.attrs.items()}
        if lowered in self_closed and not tag.contents:
            tag.can_be_empty_element = True

    # Comments, doctypes and script bodies are not entity-decoded by the parser.
    for string in soup.find_all(string=True):
        if type(string) is not NavigableString or string.parent.name in _RAW_TEXT_ELEMENTS:
            string.replace_with(type(string)(string.replace("&amp;", "&")))


class _SourceOrderFormatter(HTMLFormatter):
    """Output formatter that keeps attributes in document order."""

    def attributes(self, tag):
        return list(tag.attrs.items())


class SoupMarkupFormatter:
    """Markup formatter built on BeautifulSoup's ``prettify``.

    Markup is parsed with the standard library HTML parser, so no ``<html>``
    or ``<body>`` elements are added to fragments. That parser lowercases
    names and decodes entities, which JSP custom tags and pages do not
    tolerate, so the output is brought back to the source's spelling:

    - tag and attribute names get their original case (``c:forEach``,
      ``varStatus``);
    - ``&`` is escaped before parsing and nothing is escaped on output, so
      entity references such as ``&nbsp;`` come out as written;
    - attributes keep their order, and tags written self-closed stay so.

    Anything this cannot restore is caught by the bridge, which discards
    output that differs from its input in more than whitespace.
    """

    parser = "html.parser"

    def format(self, text: str, config: FormatConfig) -> str:
        names, self_closed = _source_names(text)
        formatter = _SourceOrderFormatter(
            entity_substitution=None,
            void_element_close_prefix="/" if _SELF_CLOSING.search(text) else "",
            indent=config.indent_unit,
        )
        try:
            soup = BeautifulSoup(
                text.replace("&", "&amp;"), self.parser, multi_valued_attributes=None
            )
            _restore_source_spelling(soup, names, self_closed)
            return soup.prettify(formatter=formatter)
        except (ParserRejectedMarkup, RecursionError) as error:
            raise MarkupFormatError(f"Markup could not be parsed: {error}") from error


class CommandCodeFormatter:
    """Code formatter that pipes source through an external command.

    The command template may contain ``{indent_width}`` and ``{use_tabs}``
    placeholders; ``{use_tabs}`` renders as ``true`` or ``false``. The source
    is written to the command's standard input and the formatted source is
    read from its standard output.

    Args:
        command: Command line template, split with shell-like rules.
        timeout: Seconds to wait for the command before giving up.

    Examples:
        CommandCodeFormatter("google-java-format -", timeout=5)
    """

    def __init__(self, command: str, timeout: float = 10.0):
        self.command = command
        self.timeout = timeout

    def build_command(self, config: FormatConfig) -> list[str]:
        """Substitute the indentation options into the command template.

        Raises:
            CodeFormatterError: If the template is empty or malformed.
        """
        try:
            rendered = self.command.format(
                indent_width=config.indent_width,
                use_tabs=str(config.use_tab_indent).lower(),
            )
            args = shlex.split(rendered)
        except (KeyError, IndexError, ValueError) as error:
            raise CodeFormatterError(f"Invalid code formatter command: {self.command!r}") from error
        if not args:
            raise CodeFormatterError("No code formatter command configured")
        return args

    def format(self, text: str, config: FormatConfig) -> str:
        args = self.build_command(config)
        logger.debug("Running code formatter: %s", shlex.join(args))
        try:
            proc = subprocess.run(
                args,
                input=text,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except FileNotFoundError as error:
            raise CodeFormatterError(f"Code formatter not found: {args[0]}", args) from error
        except subprocess.TimeoutExpired as error:
            raise CodeFormatterError(
                f"Code formatter timed out after {self.timeout} seconds", args
            ) from error
        except OSError as error:
            raise CodeFormatterError(f"Code formatter could not be started: {error}", args) from error

        if proc.returncode != 0:
            raise CodeFormatterError(
                f"Code formatter exited with status {proc.returncode}: {proc.stderr.strip()}",
                args,
            )
        return proc.stdout


def build_markup_formatter(config: FormatConfig) -> MarkupFormatter:
    """Return the markup formatter selected by ``config.markup_formatter``."""
    if config.markup_formatter == "none":
        return PassthroughMarkupFormatter()
    return SoupMarkupFormatter()


def build_code_formatter(config: FormatConfig) -> CodeFormatter:
    """Return the external code formatter described by `config`."""
    return CommandCodeFormatter(config.code_formatter_command, config.code_formatter_timeout)


def wrap_fragment(code: str, kind: SegmentKind) -> str:
    """Wrap a fragment in a synthetic class so it parses as a compilation unit.

    Declarations become class members; scriptlet statements become the body
    of a method inside the class.

    Examples:
        wrap_fragment("int x = 1;", SegmentKind.DECLARATION)
        # 'class __J { int x = 1; }'
    """
    if kind is SegmentKind.DECLARATION:
        return DECLARATION_WRAPPER.format(code=code)
    return SCRIPTLET_WRAPPER.format(code=code)


def _dedent_unwrapped(body: str) -> str:
    return strip_common_indent(trim_blank_lines(body)).rstrip()


def _method_body_span(formatted: str) -> tuple[int, int] | None:
    signature = formatted.find(SCRIPTLET_SIGNATURE)
    if signature == -1:
        return None
    depth = 0
    start = None
    for index in code_positions(formatted):
        if index < signature:
            continue
        char = formatted[index]
        if char == "{":
            depth += 1
            if start is None:
                start = index
        elif char == "}" and start is not None:
            depth -= 1
            if depth == 0:
                return start, index
    return None


def unwrap_fragment(formatted: str, kind: SegmentKind) -> str | None:
    """Recover the original fragment from formatted wrapper output.

    Declarations are taken from between the first ``{`` and the last ``}``.
    Scriptlets are taken from the body of the synthetic method, found by a
    brace scan that ignores braces in literals and comments. The result is
    de-indented.

    Args:
        formatted: Output of the code formatter for a wrapped fragment.
        kind: ``SegmentKind.DECLARATION`` or ``SegmentKind.SCRIPTLET``.

    Returns:
        str | None: The formatted fragment, or None when the wrapper cannot
            be found in `formatted`.
    """
    if kind is SegmentKind.DECLARATION:
        start = formatted.find("{")
        end = formatted.rfind("}")
        if start == -1 or end <= start:
            return None
        return _dedent_unwrapped(formatted[start + 1 : end])

    span = _method_body_span(formatted)
    if span is None:
        return None
    start, end = span
    return _dedent_unwrapped(formatted[start + 1 : end])
