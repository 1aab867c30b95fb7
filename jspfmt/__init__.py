"""
jspfmt: formatter for JSP documents.

This package can be used both as a CLI tool and as a library.

CLI Usage:
    jspfmt src/main/webapp/index.jsp

Library Usage:
    from jspfmt import FormatConfig, format_document

    config = FormatConfig(indent_width=4, code_format_mode="indent-only")
    formatted = format_document(text, config)
"""

from .config import ConfigError, FormatConfig
from .directives import normalize_directive
from .exceptions import CodeFormatterError, FormatFileError, FormatterError, MarkupFormatError
from .models import CodeBlock, JspSource, Markup, SegmentKind
from .pipeline import format_document, format_file
from .reformatter import reformat
from .segmenter import reconstruct, segment

__version__ = "0.1.0"

__all__ = [
    # Core functionality
    "format_document",
    "format_file",
    "segment",
    "reconstruct",
    "reformat",
    "normalize_directive",
    # Data models
    "FormatConfig",
    "SegmentKind",
    "Markup",
    "CodeBlock",
    "JspSource",
    # Exceptions
    "ConfigError",
    "FormatterError",
    "MarkupFormatError",
    "CodeFormatterError",
    "FormatFileError",
    # Version
    "__version__",
]
