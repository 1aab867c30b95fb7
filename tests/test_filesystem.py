from __future__ import annotations

import os
import stat
from pathlib import Path

import pytest

from jspfmt.filesystem import max_file_size, read_source, resolve_jsp_path, write_source


def _write(tmp_path: Path, name: str, content: str = "<p></p>\n") -> Path:
    target = tmp_path / name
    target.write_text(content, encoding="utf-8")
    return target


def test_max_file_size_uses_default(monkeypatch):
    monkeypatch.delenv("JSPFMT_MAX_FILE_SIZE", raising=False)
    assert max_file_size(default=123) == 123


def test_max_file_size_reads_environment(monkeypatch):
    monkeypatch.setenv("JSPFMT_MAX_FILE_SIZE", "2048")
    assert max_file_size(default=123) == 2048


@pytest.mark.parametrize("value", ["invalid", "0", "-5"])
def test_max_file_size_rejects_bad_environment(monkeypatch, value: str):
    monkeypatch.setenv("JSPFMT_MAX_FILE_SIZE", value)
    with pytest.raises(ValueError, match="must be a positive integer"):
        max_file_size()


@pytest.mark.parametrize("name", ["index.jsp", "header.jspf", "page.jspx", "nav.tag", "frag.tagf", "UP.JSP"])
def test_resolve_jsp_path_accepts_jsp_extensions(tmp_path: Path, name: str):
    target = _write(tmp_path, name)

    assert resolve_jsp_path(str(target), tmp_path.resolve()) == target.resolve()


def test_resolve_jsp_path_rejects_other_extensions(tmp_path: Path):
    target = _write(tmp_path, "notes.html")

    with pytest.raises(ValueError, match="is not a JSP file"):
        resolve_jsp_path(str(target), tmp_path.resolve())


def test_resolve_jsp_path_missing_file(tmp_path: Path):
    with pytest.raises(ValueError, match="does not exist"):
        resolve_jsp_path(str(tmp_path / "missing.jsp"), tmp_path)


def test_resolve_jsp_path_rejects_directory(tmp_path: Path):
    folder = tmp_path / "folder.jsp"
    folder.mkdir()
    with pytest.raises(ValueError, match="not a regular file"):
        resolve_jsp_path(str(folder), tmp_path.resolve())


def test_resolve_jsp_path_rejects_paths_outside_base(tmp_path: Path):
    base = tmp_path / "base"
    base.mkdir()
    target = _write(tmp_path, "outside.jsp")

    with pytest.raises(ValueError, match="outside of the working directory"):
        resolve_jsp_path(str(target), base.resolve())


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="Symlink support is required")
def test_resolve_jsp_path_rejects_symlinked_directory(tmp_path: Path):
    real = tmp_path / "real"
    real.mkdir()
    _write(real, "page.jsp")
    alias = tmp_path / "alias"
    os.symlink(real, alias, target_is_directory=True)

    with pytest.raises(ValueError, match="Symlinks"):
        resolve_jsp_path(str(alias / "page.jsp"), tmp_path.resolve())


def test_read_source_keeps_snapshot(tmp_path: Path):
    target = _write(tmp_path, "page.jsp", "<p><%= x %></p>\n")

    source = read_source(target, 1024)

    assert source.path == target
    assert source.text == "<p><%= x %></p>\n"
    assert source.snapshot.st_size == len("<p><%= x %></p>\n")


def test_read_source_enforces_size_limit(tmp_path: Path):
    target = _write(tmp_path, "big.jsp", "X" * 20)

    assert read_source(target, 20).text == "X" * 20
    with pytest.raises(IOError, match="maximum allowed size of 19 bytes"):
        read_source(target, 19)


def test_read_source_rejects_missing_file_and_directory(tmp_path: Path):
    with pytest.raises(IOError, match="Cannot access"):
        read_source(tmp_path / "missing.jsp", 1024)
    with pytest.raises(IOError, match="not a regular file"):
        read_source(tmp_path, 1024)


def test_read_source_propagates_decode_errors(tmp_path: Path):
    target = tmp_path / "binary.jsp"
    target.write_bytes(b"\xff\xfe<%")

    with pytest.raises(UnicodeDecodeError):
        read_source(target, 1024)


def test_write_source_replaces_content_and_keeps_permissions(tmp_path: Path):
    target = _write(tmp_path, "page.jsp")
    os.chmod(target, 0o640)
    source = read_source(target, 1024)

    write_source(source, "<p>\n</p>\n")

    assert target.read_text(encoding="utf-8") == "<p>\n</p>\n"
    assert stat.S_IMODE(os.stat(target).st_mode) == 0o640
    assert sorted(path.name for path in tmp_path.iterdir()) == ["page.jsp"]


def test_write_source_refuses_changed_file(tmp_path: Path):
    target = _write(tmp_path, "page.jsp")
    source = read_source(target, 1024)
    target.write_text("<p>edited elsewhere, much longer</p>\n", encoding="utf-8")

    with pytest.raises(IOError, match="changed during formatting"):
        write_source(source, "<p></p>\n")

    assert target.read_text(encoding="utf-8") == "<p>edited elsewhere, much longer</p>\n"
    assert sorted(path.name for path in tmp_path.iterdir()) == ["page.jsp"]


def test_write_source_removes_temporary_file_on_failure(tmp_path: Path, monkeypatch):
    target = _write(tmp_path, "page.jsp")
    source = read_source(target, 1024)

    def failing_replace(src, dst):
        raise OSError("disk full")

    monkeypatch.setattr(os, "replace", failing_replace)

    with pytest.raises(OSError, match="disk full"):
        write_source(source, "<p>\n</p>\n")

    assert sorted(path.name for path in tmp_path.iterdir()) == ["page.jsp"]
    assert target.read_text(encoding="utf-8") == "<p></p>\n"
