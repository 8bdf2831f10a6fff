# SPDX-License-Identifier: BSD-3-Clause
# Part of the pyxdmf project – https://github.com/pyxdmf/pyxdmf
"""
HDF5 backends.

``hdf5_single`` keeps one container open for the whole series and appends
every step as a new slab of an extensible dataset. ``hdf5_multiple`` writes
one self-contained container per step, which lets independent processes
produce different steps.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, Dict, Iterator, Optional

import h5py
import numpy as np

from ..errors import IoError, StorageInitError, StorageStateError
from ..utils.fs import create_dir_all
from ..values import as_array
from . import DataReference, DataStorage, MeshScope, Scope, Slab, StepScope, StorageKind

logger = logging.getLogger(__name__)


def _filters(level: Optional[int]) -> Dict[str, Any]:
    if level is None:
        return {}
    return {"compression": "gzip", "compression_opts": level}


def _dataset_path(name: str, scope: Scope) -> str:
    if isinstance(scope, MeshScope):
        return f"/mesh/{name}"
    return f"/{name}"


@DataStorage.register(StorageKind.HDF5_SINGLE.value)
@dataclass
class Hdf5SingleStorage(DataStorage):
    """
    All arrays in ``<base_name>.h5``.

    The mesh is stored as fixed datasets ``/mesh/points`` and ``/mesh/cells``.
    Attributes go to ``/point_data/<name>`` and ``/cell_data/<name>`` with shape
    ``(steps, entities[, components])``; the first axis is unlimited and grows
    by one slab per step. A failed step shrinks every dataset it extended back
    to its previous extent.

    Only one writer may use a container at a time.
    """

    kind: ClassVar[StorageKind] = StorageKind.HDF5_SINGLE
    format: ClassVar[str] = "HDF"

    path: Path = field(init=False)
    """The container file."""

    _file: Optional[h5py.File] = field(default=None, init=False, repr=False)

    _extents: Dict[str, int] = field(default_factory=dict, init=False, repr=False)
    """Number of slabs written to each extensible dataset."""

    _rollback: Optional[Dict[str, Optional[int]]] = field(default=None, init=False, repr=False)
    """
    Extent of every dataset touched inside the open container before it was
    touched; ``None`` for datasets created inside it.
    """

    def __post_init__(self):
        super().__post_init__()
        self.path = self._sibling(".h5")
        try:
            create_dir_all(self.path.parent)
            self._file = h5py.File(self.path, "w")
        except OSError as err:
            raise StorageInitError(f"Cannot create HDF5 container '{self.path}': {err}") from err
        logger.info("opened %s", self.path)

    def _ref(self, ds_path: str) -> str:
        return f"{self.path.name}:{ds_path}"

    def _ensure_open(self) -> None:
        super()._ensure_open()
        if self._file is None:
            raise StorageStateError(f"HDF5 container '{self.path}' is not open")

    def check(self, name: str, scope: Scope, values: Any) -> None:
        """
        Datasets are created by the first step; later steps must match their
        element type and per-step shape.

        Raises
        ------
        StorageStateError
        """
        self._ensure_open()
        if isinstance(scope, MeshScope):
            return
        ds_path = _dataset_path(name, scope)
        ds = self._file.get(ds_path)
        if ds is None:
            return
        arr = as_array(values)
        if ds.dtype != arr.dtype or ds.shape[1:] != arr.shape:
            raise StorageStateError(
                f"Dataset '{ds_path}' holds {ds.dtype} slabs of shape {ds.shape[1:]}, "
                f"cannot append {arr.dtype} values of shape {arr.shape}"
            )

    def _persist(self, name: str, scope: Scope, arr: np.ndarray) -> DataReference:
        ds_path = _dataset_path(name, scope)
        if isinstance(scope, MeshScope):
            return self._write_fixed(ds_path, arr)
        self.check(name, scope, arr)
        return self._append_slab(ds_path, arr)

    def _write_fixed(self, ds_path: str, arr: np.ndarray) -> DataReference:
        if ds_path in self._file:
            raise StorageStateError(f"Dataset '{ds_path}' already exists in '{self.path}'")
        try:
            self._file.create_dataset(ds_path, data=arr, **_filters(self.compression))
        except (OSError, ValueError, TypeError) as err:
            raise IoError(f"Failed to write '{self.path}:{ds_path}': {err}") from err
        if self._rollback is not None:
            self._rollback[ds_path] = None
        return DataReference.for_array(self.format, arr, self._ref(ds_path))

    def _append_slab(self, ds_path: str, arr: np.ndarray) -> DataReference:
        ds = self._file.get(ds_path)
        try:
            if ds is None:
                ds = self._file.create_dataset(
                    ds_path,
                    shape=(0, *arr.shape),
                    maxshape=(None, *arr.shape),
                    chunks=(1, *arr.shape),
                    dtype=arr.dtype,
                    **_filters(self.compression),
                )
                self._extents[ds_path] = 0
                if self._rollback is not None:
                    self._rollback[ds_path] = None
        except (OSError, ValueError, TypeError) as err:
            raise IoError(f"Failed to create '{self.path}:{ds_path}': {err}") from err

        offset = self._extents.setdefault(ds_path, ds.shape[0])
        if self._rollback is not None:
            self._rollback.setdefault(ds_path, offset)

        try:
            ds.resize(offset + 1, axis=0)
        except (OSError, ValueError, TypeError) as err:
            raise IoError(f"Failed to extend '{self.path}:{ds_path}' to {offset + 1} slab(s): {err}") from err
        try:
            ds[offset] = arr
        except Exception as err:
            ds.resize(offset, axis=0)
            raise IoError(f"Failed to write slab {offset} of '{self.path}:{ds_path}': {err}") from err
        self._extents[ds_path] = offset + 1

        return DataReference.for_array(
            self.format, arr, self._ref(ds_path), slab=Slab(offset, tuple(ds.shape))
        )

    def _roll_back(self, changes: Dict[str, Optional[int]]) -> None:
        for ds_path, extent in changes.items():
            if ds_path not in self._file:
                continue
            if extent is None:
                del self._file[ds_path]
                self._extents.pop(ds_path, None)
            else:
                self._file[ds_path].resize(extent, axis=0)
                self._extents[ds_path] = extent

    @contextmanager
    def container(self, scope: Scope) -> Iterator[None]:
        self._ensure_open()
        self._rollback = {}
        try:
            yield
        except BaseException:
            changes, self._rollback = self._rollback, None
            try:
                self._roll_back(changes)
            except Exception:
                logger.exception("rolling back %s in '%s' failed", scope.path, self.path)
            else:
                logger.warning("rolled back %d dataset(s) of %s", len(changes), scope.path)
            raise
        finally:
            self._rollback = None

    def flush(self) -> None:
        if self._file is not None:
            try:
                self._file.flush()
            except OSError as err:
                raise IoError(f"Failed to flush '{self.path}': {err}") from err

    def close(self) -> None:
        f, self._file = self._file, None
        self._closed = True
        if f is None:
            return
        try:
            f.close()
        except OSError as err:
            raise IoError(f"Failed to close '{self.path}': {err}") from err
        logger.info("closed %s", self.path)


@DataStorage.register(StorageKind.HDF5_MULTIPLE.value)
@dataclass
class Hdf5MultipleStorage(DataStorage):
    """
    One container per scope in ``<base_name>.h5/``: ``mesh.h5`` for the mesh
    and ``step_<index>.h5`` for every step. Dataset paths are the same as for
    :class:`Hdf5SingleStorage`, without the step axis.

    A container is open only inside :meth:`container`. If the scope fails the
    container is removed.
    """

    kind: ClassVar[StorageKind] = StorageKind.HDF5_MULTIPLE
    format: ClassVar[str] = "HDF"

    directory: Path = field(init=False)

    _file: Optional[h5py.File] = field(default=None, init=False, repr=False)
    _file_scope: Optional[str] = field(default=None, init=False, repr=False)

    def __post_init__(self):
        super().__post_init__()
        self.directory = self._sibling(".h5")
        try:
            create_dir_all(self.directory)
        except IoError as err:
            raise StorageInitError(f"Cannot create the HDF5 data directory: {err}") from err

    @staticmethod
    def file_name(scope: Scope) -> str:
        return f"{scope.path}.h5"

    @contextmanager
    def container(self, scope: Scope) -> Iterator[None]:
        self._ensure_open()
        if self._file is not None:
            raise StorageStateError(f"Container of {self._file_scope} is still open")

        path = self.directory / self.file_name(scope)
        try:
            f = h5py.File(path, "w")
        except OSError as err:
            raise IoError(f"Cannot create HDF5 container '{path}': {err}") from err
        self._file, self._file_scope = f, scope.path
        logger.info("opened %s", path)

        try:
            yield
        except BaseException:
            f.close()
            path.unlink(missing_ok=True)
            logger.warning("removed partial container %s", path)
            raise
        finally:
            self._file = self._file_scope = None

        try:
            f.close()
        except OSError as err:
            raise IoError(f"Failed to close '{path}': {err}") from err
        logger.info("closed %s", path)

    def _persist(self, name: str, scope: Scope, arr: np.ndarray) -> DataReference:
        if self._file is None or self._file_scope != scope.path:
            raise StorageStateError(
                f"No open container for {scope.path}, persist inside container()"
            )
        ds_path = _dataset_path(name, scope)
        try:
            self._file.create_dataset(ds_path, data=arr, **_filters(self.compression))
        except (OSError, ValueError, TypeError) as err:
            raise IoError(f"Failed to write '{self._file.filename}:{ds_path}': {err}") from err
        content = f"{self.directory.name}/{self.file_name(scope)}:{ds_path}"
        return DataReference.for_array(self.format, arr, content)

    def flush(self) -> None:
        """Flush the open container, if any."""
        if self._file is not None:
            try:
                self._file.flush()
            except OSError as err:
                raise IoError(f"Failed to flush '{self._file.filename}': {err}") from err

    def close(self) -> None:
        f, self._file = self._file, None
        self._closed = True
        if f is not None:
            f.close()


__all__ = ["Hdf5SingleStorage", "Hdf5MultipleStorage"]
