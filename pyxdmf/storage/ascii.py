# SPDX-License-Identifier: BSD-3-Clause
# Part of the pyxdmf project – https://github.com/pyxdmf/pyxdmf
"""Text backends: values inline in the document, or one text file per array."""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar, Iterator, List

import numpy as np

from ..errors import IoError, StorageInitError
from ..utils.fs import create_dir_all
from ..values import text_format, to_text
from . import DataReference, DataStorage, MeshScope, Scope, StorageKind

logger = logging.getLogger(__name__)


@DataStorage.register(StorageKind.ASCII_INLINE.value)
@dataclass
class AsciiInlineStorage(DataStorage):
    """
    Embed the values as text in the light-data document. Writes no files, so
    it is only recommended for small meshes.
    """

    kind: ClassVar[StorageKind] = StorageKind.ASCII_INLINE
    format: ClassVar[str] = "XML"

    def _persist(self, name: str, scope: Scope, arr: np.ndarray) -> DataReference:
        return DataReference.for_array(self.format, arr, to_text(arr))


@DataStorage.register(StorageKind.ASCII.value)
@dataclass
class AsciiStorage(DataStorage):
    """
    Write every array to its own text file in ``<base_name>.txt/``, one entity
    per line. The document pulls the files in with ``xi:include``.

    Files are ``points.txt`` and ``cells.txt`` for the mesh and
    ``step_<index>_<point|cell>_data_<name>.txt`` for the attributes.
    """

    kind: ClassVar[StorageKind] = StorageKind.ASCII
    format: ClassVar[str] = "XML"

    directory: Path = field(init=False)
    """Directory holding the text files."""

    _scope_files: List[Path] = field(default_factory=list, init=False, repr=False)
    """Files written inside the currently open :meth:`container`."""

    def __post_init__(self):
        super().__post_init__()
        self.directory = self._sibling(".txt")
        try:
            create_dir_all(self.directory)
        except IoError as err:
            raise StorageInitError(f"Cannot create the text data directory: {err}") from err

    def file_name(self, name: str, scope: Scope) -> str:
        flat = name.replace("/", "_")
        if isinstance(scope, MeshScope):
            return f"{flat}.txt"
        return f"{scope.path}_{flat}.txt"

    def _persist(self, name: str, scope: Scope, arr: np.ndarray) -> DataReference:
        fname = self.file_name(name, scope)
        path = self.directory / fname
        try:
            np.savetxt(path, arr, fmt=text_format(arr.dtype))
        except OSError as err:
            raise IoError(f"Failed to write '{path}': {err}") from err
        self._scope_files.append(path)
        href = f"{self.directory.name}/{fname}"
        return DataReference.for_array(self.format, arr, href, include=True)

    @contextmanager
    def container(self, scope: Scope) -> Iterator[None]:
        """
        Files of a scope that fails half way are removed, so a failed step
        leaves nothing behind.
        """
        self._ensure_open()
        self._scope_files = []
        try:
            yield
        except BaseException:
            for path in self._scope_files:
                try:
                    os.remove(path)
                except FileNotFoundError:
                    pass
            logger.warning(
                "removed %d partial file(s) of %s", len(self._scope_files), scope.path
            )
            raise
        finally:
            self._scope_files = []


__all__ = ["AsciiInlineStorage", "AsciiStorage"]
