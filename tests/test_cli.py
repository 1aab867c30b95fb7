from __future__ import annotations

import os
import textwrap
import uuid
from pathlib import Path

import pytest

import jspfmt.cli as cli_module
from jspfmt.cli import cli

PLAIN = ["--markup-formatter", "none", "--code-format-mode", "indent-only"]


def _write(tmp_path: Path, filename: str, content: str) -> Path:
    path = tmp_path / filename
    path.write_text(textwrap.dedent(content).lstrip(), encoding="utf-8")
    return path


def _write_pyproject(base: Path, body: str) -> Path:
    path = base / "pyproject.toml"
    path.write_text(textwrap.dedent(body).lstrip(), encoding="utf-8")
    return path


def _error_text(result) -> str:
    """Return combined stdout and exception text for assertions."""
    return f"{result.output}{result.exception}"


def test_cli_prints_formatted_document(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    target = _write(
        tmp_path,
        "page.jsp",
        """
        <%@ page pageEncoding='UTF-8' contentType=text/html %>
        <p><%=  user.name  %></p>
        """,
    )

    result = cli_runner.invoke(cli, [*PLAIN, str(target)])

    assert result.exit_code == 0
    assert result.output == (
        '<%@ page contentType="text/html" pageEncoding="UTF-8" %>\n'
        "<p><%= user.name %></p>\n"
    )
    assert "contentType=text/html" in target.read_text(encoding="utf-8")


def test_cli_formats_scriptlets(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    target = _write(
        tmp_path,
        "loop.jsp",
        """
        <ul>
          <% for(int i=0;i<3;i++){out.print(i);} %>
        </ul>
        """,
    )

    result = cli_runner.invoke(cli, [*PLAIN, str(target)])

    assert result.exit_code == 0
    assert result.output == (
        "<ul>\n"
        "  <%\n"
        "    for(int i=0;i<3;i++){\n"
        "      out.print(i);\n"
        "    }\n"
        "  %>\n"
        "</ul>\n"
    )


def test_cli_in_place_rewrites_file(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    target = _write(tmp_path, "page.jsp", "<p><%=x%></p>\n")

    result = cli_runner.invoke(cli, [*PLAIN, "--in-place", str(target)])

    assert result.exit_code == 0
    assert result.output == ""
    assert target.read_text(encoding="utf-8") == "<p><%= x %></p>\n"


def test_cli_check_reports_files_that_would_change(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    clean = _write(tmp_path, "clean.jsp", "<p><%= x %></p>\n")
    dirty = _write(tmp_path, "dirty.jsp", "<p><%=x%></p>\n")

    result = cli_runner.invoke(cli, [*PLAIN, "--check", str(clean), str(dirty)])

    assert result.exit_code == 1
    assert f"would reformat {dirty}" in result.output
    assert str(clean) not in result.output
    assert dirty.read_text(encoding="utf-8") == "<p><%=x%></p>\n"


def test_cli_check_succeeds_when_formatted(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    clean = _write(tmp_path, "clean.jsp", "<p><%= x %></p>\n")

    result = cli_runner.invoke(cli, [*PLAIN, "--check", str(clean)])

    assert result.exit_code == 0
    assert result.output == ""


def test_cli_rejects_in_place_with_check(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    target = _write(tmp_path, "page.jsp", "<p></p>\n")

    result = cli_runner.invoke(cli, ["--in-place", "--check", str(target)])

    assert result.exit_code == 2
    assert "cannot be used together" in result.output


def test_cli_rejects_non_jsp_files(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    target = _write(tmp_path, "notes.txt", "hello\n")

    result = cli_runner.invoke(cli, [str(target)])

    assert result.exit_code != 0
    assert "is not a JSP file" in result.output


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="Symlink support is required")
def test_cli_rejects_symlink(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    source = _write(tmp_path, "source.jsp", "<p></p>\n")
    link = tmp_path / "alias.jsp"
    try:
        os.symlink(source, link, target_is_directory=False)
    except OSError as error:  # pragma: no cover - platform dependent
        pytest.skip(f"Unable to create symlink: {error}")

    result = cli_runner.invoke(cli_module.cli, [str(link)])

    assert result.exit_code != 0
    assert "Symlinks" in result.output


def test_cli_rejects_path_outside_working_directory(cli_runner, tmp_path, monkeypatch):
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    outside = tmp_path / f"outside-{uuid.uuid4().hex}.jsp"
    outside.write_text("<p></p>\n", encoding="utf-8")

    result = cli_runner.invoke(cli_module.cli, [str(outside)])

    assert result.exit_code != 0
    assert "outside of the working directory" in result.output


def test_cli_enforces_file_size_limit(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("JSPFMT_MAX_FILE_SIZE", "10")
    target = _write(tmp_path, "large.jsp", "X" * 20)

    result = cli_runner.invoke(cli, [*PLAIN, str(target)])

    assert result.exit_code != 0
    assert "maximum allowed size" in _error_text(result)


def test_cli_rejects_invalid_size_environment(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("JSPFMT_MAX_FILE_SIZE", "lots")
    target = _write(tmp_path, "page.jsp", "<p></p>\n")

    result = cli_runner.invoke(cli, [*PLAIN, str(target)])

    assert result.exit_code != 0
    assert "JSPFMT_MAX_FILE_SIZE" in result.output


def test_cli_reads_config_from_pyproject(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    _write_pyproject(
        tmp_path,
        """
        [tool.jspfmt]
        indent_width = 4
        markup_formatter = "none"
        code_format_mode = "indent-only"
        """,
    )
    target = _write(tmp_path, "page.jsp", "<% if(a){b();} %>\n")

    result = cli_runner.invoke(cli, [str(target)])

    assert result.exit_code == 0
    assert result.output == "<%\n  if(a){\n      b();\n  }\n%>\n"


def test_cli_flags_override_config(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    _write_pyproject(
        tmp_path,
        """
        [tool.jspfmt]
        indent_width = 4
        markup_formatter = "none"
        code_format_mode = "indent-only"
        """,
    )
    target = _write(tmp_path, "page.jsp", "<% if(a){b();} %>\n")

    result = cli_runner.invoke(
        cli, ["--indent-width", "2", "--block-interior-indent", "0", str(target)]
    )

    assert result.exit_code == 0
    assert result.output == "<%\nif(a){\n  b();\n}\n%>\n"


def test_cli_use_tabs(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    target = _write(tmp_path, "page.jsp", "<% if(a){b();} %>\n")

    result = cli_runner.invoke(
        cli, [*PLAIN, "--use-tabs", "--block-interior-indent", "0", str(target)]
    )

    assert result.exit_code == 0
    assert result.output == "<%\nif(a){\n\tb();\n}\n%>\n"


def test_cli_no_normalize_directives(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    target = _write(tmp_path, "page.jsp", "<%@ page b='1' a='2' %>\n")

    result = cli_runner.invoke(cli, [*PLAIN, "--no-normalize-directives", str(target)])

    assert result.exit_code == 0
    assert result.output == "<%@ page b='1' a='2' %>\n"


def test_cli_rejects_invalid_config_values(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    target = _write(tmp_path, "page.jsp", "<p></p>\n")

    result = cli_runner.invoke(cli, ["--indent-width", "0", str(target)])

    assert result.exit_code == 2
    assert "indent_width" in result.output


def test_cli_falls_back_when_code_formatter_is_missing(cli_runner, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    _write_pyproject(
        tmp_path,
        """
        [tool.jspfmt]
        code_formatter_command = "jspfmt-no-such-formatter-binary"
        """,
    )
    target = _write(tmp_path, "page.jsp", "<% a(); %>\n<% b(); %>\n")

    result = cli_runner.invoke(cli, ["--markup-formatter", "none", str(target)])

    assert result.exit_code == 0
    assert "<%\n  a();\n%>\n<%\n  b();\n%>\n" in result.output


def test_cli_requires_a_path(cli_runner):
    result = cli_runner.invoke(cli, [])

    assert result.exit_code == 2


def test_cli_public_api():
    assert cli_module.__all__ == ["cli"]
