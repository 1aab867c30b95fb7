"""Package-specific exception types."""

from __future__ import annotations


class FormatterError(Exception):
    """Base class for failures of an external formatter collaborator.

    The pipeline treats these as recoverable: it falls back to a less
    structured local strategy instead of surfacing the error.
    """


class MarkupFormatError(FormatterError):
    """Raised when the markup formatter cannot reflow the marker buffer."""


class CodeFormatterError(FormatterError):
    """Raised when the external code formatter is unavailable or fails.

    Args:
        message: Human readable description of the failure.
        command: Command line that was attempted, if any.
    """

    def __init__(self, message: str, command: list[str] | None = None):
        self.command = command
        super().__init__(message)


class FormatFileError(Exception):
    """Raised when a file cannot be read for formatting."""
