"""Reading and rewriting JSP files on disk.

Files are only accepted below the working directory, never through a
symlink, and only with a JSP extension. A file is read once together with
an ``lstat`` snapshot; rewriting it compares the snapshot with the file on
disk and swaps in the new content through a temporary sibling file.
"""

from __future__ import annotations

import logging
import os
import stat
import tempfile
from pathlib import Path

from .constants import DEFAULT_MAX_FILE_SIZE, JSP_EXTENSIONS
from .models import JspSource

logger = logging.getLogger(__name__)

MAX_FILE_SIZE_ENV_VAR = "JSPFMT_MAX_FILE_SIZE"


def max_file_size(default: int = DEFAULT_MAX_FILE_SIZE) -> int:
    """Return the size limit in bytes; ``JSPFMT_MAX_FILE_SIZE`` overrides `default`.

    Raises:
        ValueError: If the environment variable is not a positive integer.
    """
    raw = os.environ.get(MAX_FILE_SIZE_ENV_VAR)
    if raw is None:
        return default
    try:
        limit = int(raw)
    except ValueError:
        limit = 0
    if limit <= 0:
        raise ValueError(f"{MAX_FILE_SIZE_ENV_VAR} must be a positive integer, got {raw!r}.")
    return limit


def _is_symlink(path: Path) -> bool:
    try:
        return path.is_symlink()
    except OSError:
        return False


def resolve_jsp_path(raw_path: str, base_dir: Path) -> Path:
    """Turn a command line argument into the absolute path of a JSP file.

    Args:
        raw_path: Path as given by the user.
        base_dir: Resolved working directory; the file must live below it.

    Returns:
        Path: The resolved path.

    Raises:
        ValueError: If the path goes through a symlink, does not name a
            regular file below `base_dir`, or lacks a JSP extension.

    Examples:
        resolve_jsp_path("src/main/webapp/index.jsp", Path.cwd().resolve())
    """
    path = Path(raw_path).expanduser()
    linked = next((part for part in (path, *path.parents) if _is_symlink(part)), None)
    if linked is not None:
        raise ValueError(f"Symlinks are not followed: {linked}")

    try:
        resolved = path.resolve(strict=True)
    except FileNotFoundError as error:
        raise ValueError(f"{path} does not exist.") from error
    except OSError as error:
        raise ValueError(f"Cannot resolve {path}: {error}") from error

    if not resolved.is_file():
        raise ValueError(f"{resolved} is not a regular file.")
    if not resolved.is_relative_to(base_dir):
        raise ValueError(f"{resolved} is outside of the working directory {base_dir}.")
    if resolved.suffix.lower() not in JSP_EXTENSIONS:
        raise ValueError(f"{resolved} is not a JSP file (expected {', '.join(JSP_EXTENSIONS)}).")
    return resolved


def _snapshot(path: Path) -> os.stat_result:
    try:
        snapshot = os.lstat(path)
    except OSError as error:
        raise IOError(f"Cannot access {path}: {error}") from error
    if not stat.S_ISREG(snapshot.st_mode):
        raise IOError(f"{path} is not a regular file.")
    return snapshot


def read_source(path: Path, max_size: int) -> JspSource:
    """Read a JSP file that is at most `max_size` bytes long.

    Raises:
        IOError: If the file is missing, not a regular file, too large or
            unreadable.
        UnicodeDecodeError: If the content is not valid UTF-8.
    """
    snapshot = _snapshot(path)
    if snapshot.st_size > max_size:
        raise IOError(
            f"{path} is {snapshot.st_size} bytes, over the maximum allowed size of {max_size} bytes."
        )
    try:
        text = path.read_text(encoding="UTF-8")
    except OSError as error:
        raise IOError(f"Cannot read {path}: {error}") from error
    return JspSource(path, text, snapshot)


def _unchanged(before: os.stat_result, after: os.stat_result) -> bool:
    def identity(snapshot: os.stat_result) -> tuple[int, int, int, int]:
        return snapshot.st_ino, snapshot.st_dev, snapshot.st_size, snapshot.st_mtime_ns

    return identity(before) == identity(after)


def write_source(source: JspSource, content: str):
    """Replace the file behind `source` with `content` in one rename.

    The new content goes to a temporary file next to the original, which
    receives the original's permission bits and, where allowed, its owner.

    Raises:
        IOError: If the file changed since `source` was read, or cannot be
            replaced.
    """
    if not _unchanged(source.snapshot, _snapshot(source.path)):
        raise IOError(f"{source.path} changed during formatting; refusing to overwrite.")

    descriptor, temp_name = tempfile.mkstemp(
        prefix=f".{source.path.name}.", suffix=".tmp", dir=source.path.parent
    )
    temp_path = Path(temp_name)
    try:
        with os.fdopen(descriptor, "w", encoding="UTF-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        os.chmod(temp_path, stat.S_IMODE(source.snapshot.st_mode))
        if hasattr(os, "chown"):
            try:
                os.chown(temp_path, source.snapshot.st_uid, source.snapshot.st_gid)
            except PermissionError:
                logger.warning("Could not keep the owner of %s", source.path)
        os.replace(temp_path, source.path)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise
