# SPDX-License-Identifier: BSD-3-Clause
# Part of the pyxdmf project – https://github.com/pyxdmf/pyxdmf
"""
File-system helpers shared by the storage backends and the writer.
"""

from __future__ import annotations

import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Callable, IO

from ..errors import InvalidName, IoError

logger = logging.getLogger(__name__)

INVALID_FILE_NAME_CHARS = ("?", "\0", ":", "*", '"', "<", ">", "|")


def validate_file_name(name: os.PathLike | str) -> None:
    """
    Reject empty names and names containing characters that are not portable
    across file systems.

    Raises
    ------
    InvalidName
    """
    name = os.fspath(name)
    if not name:
        raise InvalidName("File name must not be empty")
    if any(c in name for c in INVALID_FILE_NAME_CHARS):
        raise InvalidName(
            f"File name '{name}' cannot contain the following characters: "
            f"{list(INVALID_FILE_NAME_CHARS)}"
        )


def create_dir_all(path: Path | str, wait: float = 0.05) -> Path:
    """
    Create `path` and its parents.

    Several processes may create the same directory at the same time (one
    writer per rank), so an existing directory is not an error. If the
    directory is still not visible afterwards (network file systems), wait
    `wait` seconds once and check again.

    Raises
    ------
    IoError
        If the directory cannot be created or does not appear after the wait.
    """
    path = Path(path)
    if not path.exists():
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as err:
            raise IoError(f"Failed to create directory '{path}': {err}") from err
    if not path.is_dir():
        time.sleep(wait)
        if not path.is_dir():
            raise IoError(f"Directory '{path}' is not available after creating it")
    return path


def replace_atomic(final_path: Path, tmp_path: Path) -> None:
    """
    Atomically replace `final_path` with `tmp_path`.

    On failure the temporary file is removed and the exception re-raised.
    """
    try:
        os.replace(os.fspath(tmp_path), os.fspath(final_path))
    except Exception:
        try:
            os.remove(tmp_path)
        except FileNotFoundError:
            pass
        raise


def publish_atomic(final_path: Path, write: Callable[[IO[bytes]], None]) -> None:
    """
    Write a file through a temporary file in the destination directory and move
    it into place, so readers never observe a half-written file.

    Parameters
    ----------
    final_path : Path
        Destination file.
    write : Callable
        Called with the open binary temporary file.

    Raises
    ------
    IoError
        If writing or replacing fails.
    """
    final_path = Path(final_path)
    try:
        fd, tmp_path = tempfile.mkstemp(
            prefix=f"temp_{final_path.name}", suffix=".tmp", dir=os.fspath(final_path.parent)
        )
    except OSError as err:
        raise IoError(f"Cannot create a temporary file next to '{final_path}': {err}") from err

    try:
        with os.fdopen(fd, "wb") as fh:
            write(fh)
        replace_atomic(final_path, Path(tmp_path))
    except Exception as err:
        try:
            os.remove(tmp_path)
        except FileNotFoundError:
            pass
        if isinstance(err, OSError) and not isinstance(err, IoError):
            raise IoError(f"Failed to write '{final_path}': {err}") from err
        raise
    logger.debug("published %s", final_path)


__all__ = [
    "INVALID_FILE_NAME_CHARS",
    "validate_file_name",
    "create_dir_all",
    "replace_atomic",
    "publish_atomic",
]
