# SPDX-License-Identifier: BSD-3-Clause
# Part of the pyxdmf project – https://github.com/pyxdmf/pyxdmf
"""
Implementation of the high-level TimeSeriesWriter frontend.
"""

from __future__ import annotations

import enum
import logging
import warnings
from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import Any, Mapping, Optional, Sequence, Set, Tuple

import jax
import numpy as np

from . import __version__
from .attributes import Center, attributes_from_mapping, validate_attribute
from .cells import CellKind
from .document import LightDataDocument
from .errors import (
    InvalidName,
    IoError,
    MeshAlreadyWritten,
    MeshNotYetWritten,
    MissingData,
    StorageInitError,
    WriterClosed,
)
from .mesh import Mesh
from .storage import DataStorage, MeshScope, StepScope, StorageKind
from .utils.fs import create_dir_all, validate_file_name

logger = logging.getLogger(__name__)

DataMap = Mapping[str, Any]


class WriterState(enum.Enum):
    CREATED = "created"
    MESH_WRITTEN = "mesh_written"
    CLOSED = "closed"


def step_label(step_id: Any) -> str:
    """
    Normalize a step identifier to the label written as the step's time.

    Strings are used as given; Python and numpy numbers are converted with
    :func:`str`.

    Raises
    ------
    InvalidName
        For empty labels and labels with control characters, which XML cannot
        hold.
    """
    if isinstance(step_id, np.generic):
        step_id = step_id.item()
    if isinstance(step_id, bool) or not isinstance(step_id, (str, int, float)):
        raise InvalidName(f"Step label must be a string or a number, got {type(step_id).__name__}")
    label = step_id if isinstance(step_id, str) else str(step_id)
    if not label.strip():
        raise InvalidName("Step label must not be empty")
    if any(ord(c) < 32 and c not in "\t\n\r" for c in label):
        raise InvalidName(f"Step label {label!r} contains control characters")
    return label


@dataclass(slots=True)
class TimeSeriesWriter:
    """
    Write a mesh once and a series of time steps of point and cell data to an
    XDMF file ``<base_name>.xdmf`` plus its heavy data.

    The writer moves through three states: created, mesh written, closed.
    :meth:`write_mesh` is valid once, :meth:`write_data` only after it, and
    nothing after :meth:`close`. Inputs are validated before anything is
    written, and a step only stays in the document once all of its arrays were
    stored and the document was published, so a failed call leaves the
    document and the heavy data as they were.

    Step labels are kept in call order. Duplicate labels and labels that are
    not numbers are accepted with a :class:`RuntimeWarning`; visualization
    tools expect increasing numeric times.

    Example
    -------
    >>> with TimeSeriesWriter("out/run", storage="hdf5_single") as writer:
    >>>     writer.write_mesh(points, (connectivity, [CellKind.TRIANGLE] * n_cells))
    >>>     for t, T in enumerate(temperatures):
    >>>         writer.write_data(t, point_data={"T": ("scalar", T)})

    Not safe for concurrent use from several threads. Independent writers on
    different base names do not share state.
    """

    base_name: Path | str
    """
    Path of the series without extension. Parent directories are created.
    """

    storage: StorageKind | str = StorageKind.HDF5_SINGLE
    """
    Heavy-data backend, a :class:`StorageKind` or any name accepted by
    :meth:`StorageKind.parse`. Defaults to a single HDF5 file.
    """

    flush_every_step: bool = True
    """
    If :obj:`True`, heavy data is flushed and the document is rewritten after
    every step, so an interrupted run leaves a readable series. If
    :obj:`False`, the document is written after the mesh and on :meth:`close`.
    """

    compression: Optional[int] = None
    """
    gzip level (0-9) for HDF5 datasets. :obj:`None` disables compression.
    """

    document_path: Path = field(init=False)
    """Path of the XDMF document, ``<base_name>.xdmf``."""

    _storage: Optional[DataStorage] = field(default=None, init=False, repr=False)
    _document: Optional[LightDataDocument] = field(default=None, init=False, repr=False)
    _mesh: Optional[Mesh] = field(default=None, init=False, repr=False)
    _state: WriterState = field(default=WriterState.CREATED, init=False)

    _labels: Set[str] = field(default_factory=set, init=False, repr=False)
    """Labels of the steps in the document."""

    def __post_init__(self):
        """
        Validate the configuration, create the output directory and set up
        the storage backend.
        """
        validate_file_name(self.base_name)
        self.base_name = Path(self.base_name)
        self.storage = StorageKind.parse(self.storage)
        self.flush_every_step = bool(self.flush_every_step)
        self.document_path = self.base_name.with_name(self.base_name.name + ".xdmf")

        try:
            create_dir_all(self.document_path.parent)
        except IoError as err:
            raise StorageInitError(str(err)) from err

        self._storage = DataStorage.create(
            self.storage.value, base_name=self.base_name, compression=self.compression
        )
        self._document = LightDataDocument(
            storage_name=self.storage.display_name, version=__version__
        )
        logger.info(
            "writing %s with %s storage", self.document_path, self.storage.display_name
        )

    @property
    def state(self) -> WriterState:
        return self._state

    @property
    def mesh(self) -> Optional[Mesh]:
        return self._mesh

    @property
    def document(self) -> LightDataDocument:
        return self._document

    @property
    def data_storage(self) -> DataStorage:
        return self._storage

    @property
    def step_count(self) -> int:
        return self._document.step_count

    def _ensure_open(self) -> None:
        if self._state is WriterState.CLOSED:
            raise WriterClosed(f"TimeSeriesWriter for '{self.document_path}' is closed")

    @partial(jax.named_call, name="TimeSeriesWriter.write_mesh")
    def write_mesh(
        self,
        points: Any,
        cells: Optional[Tuple[Any, Sequence[CellKind | str | int]]] = None,
        polygon_sizes: Sequence[int] = (),
    ) -> "TimeSeriesWriter":
        """
        Validate and store the mesh, and publish the first document.

        Parameters
        ----------
        points : array_like or Mesh
            Point coordinates, flat ``(3N,)`` or ``(N, 3)``. A :class:`Mesh`
            can be passed instead of the three arguments.
        cells : tuple
            ``(connectivity, cell_kinds)``: concatenated point indices of all
            cells, and the kind of every cell.
        polygon_sizes : Sequence[int], optional
            Node count of every ``POLYGON`` cell.

        Returns
        -------
        TimeSeriesWriter
            `self`, ready for :meth:`write_data`.

        Raises
        ------
        MeshAlreadyWritten
            If called a second time.
        ValidationError
            ``EmptyMesh``, ``ShapeMismatch`` or ``IndexOutOfBounds``. Nothing
            is written.
        StorageError
            If the backend fails.
        """
        self._ensure_open()
        if self._state is not WriterState.CREATED:
            raise MeshAlreadyWritten(f"The mesh of '{self.document_path}' has already been written")

        if isinstance(points, Mesh):
            mesh = points
        else:
            if cells is None:
                raise TypeError("write_mesh() needs cells=(connectivity, cell_kinds)")
            connectivity, cell_kinds = cells
            mesh = Mesh.create(points, connectivity, cell_kinds, polygon_sizes)

        scope = MeshScope()
        with self._storage.container(scope):
            geometry_ref = self._storage.persist("points", scope, mesh.points)
            topology_ref = self._storage.persist("cells", scope, mesh.mixed_topology())

        self._document.emit_static_blocks(mesh, geometry_ref, topology_ref)
        self._mesh = mesh
        self._state = WriterState.MESH_WRITTEN
        self._publish()
        logger.info(
            "mesh with %d points and %d cells written to %s",
            mesh.num_points,
            mesh.num_cells,
            self.document_path,
        )
        return self

    @partial(jax.named_call, name="TimeSeriesWriter.write_data")
    def write_data(
        self,
        step_id: Any,
        point_data: Optional[DataMap] = None,
        cell_data: Optional[DataMap] = None,
    ) -> None:
        """
        Store the point and cell data of one time step and append the step to
        the document.

        Parameters
        ----------
        step_id : str or number
            Label of the step, written as its time value.
        point_data, cell_data : Mapping[str, tuple], optional
            ``{name: (shape, values)}`` where `shape` is an
            :class:`AttributeShape`, a name such as ``"vector"``, or a component
            count, and `values` holds ``components * entities`` numbers.
            :class:`Attribute` objects are accepted as mapping values too.

        Raises
        ------
        MeshNotYetWritten
            If :meth:`write_mesh` was not called.
        MissingData
            If neither point nor cell data is given.
        InvalidName, AttributeShapeMismatch
            Nothing is written and the document is unchanged.
        StorageError
            The backend failed or the document could not be published. The
            step is removed from the document and from the heavy data.
        """
        self._ensure_open()
        if self._state is not WriterState.MESH_WRITTEN:
            raise MeshNotYetWritten("The mesh must be written before any time step")

        label = step_label(step_id)
        attributes = attributes_from_mapping(point_data, Center.POINT) + attributes_from_mapping(
            cell_data, Center.CELL
        )
        if not attributes:
            raise MissingData("At least one of point_data or cell_data must be provided")
        for attribute in attributes:
            validate_attribute(attribute, self._mesh)

        self._warn_label(label)

        scope = StepScope(index=self._document.step_count, label=label)
        arrays = [(f"{a.center.tag}/{a.name}", a, a.reshaped()) for a in attributes]
        for name, _, arr in arrays:
            self._storage.check(name, scope, arr)

        step_count = self._document.step_count
        refs = {Center.POINT: {}, Center.CELL: {}}
        try:
            with self._storage.container(scope):
                for name, attribute, arr in arrays:
                    ref = self._storage.persist(name, scope, arr)
                    refs[attribute.center][attribute.name] = (attribute.shape, ref)

                self._document.append_time_step(label, refs[Center.POINT], refs[Center.CELL])
                if self.flush_every_step:
                    self._storage.flush()
                    self._publish()
        except BaseException:
            # the backend discards the step's data on the way out
            self._document.truncate(step_count)
            raise
        self._labels.add(label)

    def _warn_label(self, label: str) -> None:
        if label in self._labels:
            warnings.warn(
                f"Time step '{label}' has already been written; steps are kept in call order",
                RuntimeWarning,
                stacklevel=4,
            )
        try:
            float(label)
        except ValueError:
            warnings.warn(
                f"Step label '{label}' is not a number; readers expect numeric times",
                RuntimeWarning,
                stacklevel=4,
            )

    def _publish(self) -> None:
        self._document.write(self.document_path)

    @partial(jax.named_call, name="TimeSeriesWriter.close")
    def close(self) -> None:
        """
        Write the final document and release the backend. Safe to call
        multiple times. The backend is released even if writing the document
        fails.
        """
        if self._state is WriterState.CLOSED:
            return
        try:
            if self._state is WriterState.MESH_WRITTEN:
                self._storage.flush()
                self._publish()
        finally:
            self._state = WriterState.CLOSED
            self._storage.close()
            logger.info(
                "closed %s after %d step(s)", self.document_path, self._document.step_count
            )

    def __enter__(self) -> "TimeSeriesWriter":
        return self

    def __exit__(self, *exc) -> bool:
        self.close()
        return False

    def __del__(self):
        """
        Close the writer if it is garbage-collected while still open.
        """
        state = getattr(self, "_state", None)
        if state is None or state is WriterState.CLOSED or getattr(self, "_storage", None) is None:
            return
        try:
            self.close()
        except Exception as err:
            warnings.warn(
                f"TimeSeriesWriter for '{self.document_path}' failed to close: {err}",
                RuntimeWarning,
            )


__all__ = ["TimeSeriesWriter", "WriterState", "step_label"]
