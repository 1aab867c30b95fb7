import pytest
from click.testing import CliRunner

from jspfmt.config import FormatConfig


@pytest.fixture()
def cli_runner() -> CliRunner:
    """Provides a reusable Click CLI runner."""
    return CliRunner()


@pytest.fixture()
def plain_config() -> FormatConfig:
    """Configuration that needs no external formatter and keeps markup as written."""
    return FormatConfig(markup_formatter="none", code_format_mode="indent-only")
