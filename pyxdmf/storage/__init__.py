# SPDX-License-Identifier: BSD-3-Clause
# Part of the pyxdmf project – https://github.com/pyxdmf/pyxdmf
"""
Heavy-data storage backends.

A backend persists one named array at a time and returns a
:class:`DataReference` that the light-data document uses to point at the
stored values. Backends are selected by key through the :class:`DataStorage`
registry:

>>> storage = DataStorage.create("hdf5_single", base_name="out/run")
"""

from __future__ import annotations

import enum
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, Dict, Iterator, Optional, Tuple, Union

import numpy as np

from ..errors import StorageStateError
from ..factory import Factory
from ..values import as_array, number_type

logger = logging.getLogger(__name__)


class StorageKind(enum.Enum):
    """The four heavy-data layouts. Values are the registry keys."""

    ASCII = "ascii"
    ASCII_INLINE = "ascii_inline"
    HDF5_SINGLE = "hdf5_single"
    HDF5_MULTIPLE = "hdf5_multiple"

    @property
    def display_name(self) -> str:
        """Name written to the document's ``data_storage`` information."""
        return _DISPLAY_NAMES[self]

    @classmethod
    def parse(cls, text: "StorageKind | str") -> "StorageKind":
        """
        Parse a storage kind from its key, display name or one of the usual
        spellings (case insensitive), e.g. ``"ascii-inline"``, ``"Hdf5SingleFile"``
        or ``"hdf5_multiple_files"``.

        Raises
        ------
        ValueError
            If `text` names no storage kind.
        """
        if isinstance(text, cls):
            return text
        key = str(text).strip().lower()
        kind = _ALIASES.get(key)
        if kind is None:
            raise ValueError(
                f"Invalid data storage '{text}'. Valid options are: "
                + ", ".join(f"'{k.display_name}'" for k in cls)
            )
        return kind


_DISPLAY_NAMES = {
    StorageKind.ASCII: "Ascii",
    StorageKind.ASCII_INLINE: "AsciiInline",
    StorageKind.HDF5_SINGLE: "Hdf5SingleFile",
    StorageKind.HDF5_MULTIPLE: "Hdf5MultipleFiles",
}


def _aliases() -> Dict[str, StorageKind]:
    out = {}
    for kind in StorageKind:
        words = {
            StorageKind.ASCII: [["ascii"]],
            StorageKind.ASCII_INLINE: [["ascii", "inline"]],
            StorageKind.HDF5_SINGLE: [["hdf5", "single", "file"], ["hdf5", "single"]],
            StorageKind.HDF5_MULTIPLE: [["hdf5", "multiple", "files"], ["hdf5", "multiple"]],
        }[kind]
        for w in words:
            for sep in ("", "_", "-"):
                out[sep.join(w)] = kind
    return out


_ALIASES: Dict[str, StorageKind] = _aliases()


@dataclass(frozen=True, slots=True)
class Slab:
    """Position of one step's values inside an extensible dataset."""

    offset: int
    """Index along the step axis."""

    dataset_dimensions: Tuple[int, ...]
    """Full dataset extent right after the slab was written."""

    @property
    def count(self) -> Tuple[int, ...]:
        return (1, *self.dataset_dimensions[1:])

    @property
    def start(self) -> Tuple[int, ...]:
        return (self.offset,) + (0,) * (len(self.dataset_dimensions) - 1)

    @property
    def stride(self) -> Tuple[int, ...]:
        return (1,) * len(self.dataset_dimensions)


@dataclass(frozen=True, slots=True)
class DataReference:
    """
    Everything the document needs to point at one persisted array.
    """

    format: str
    """``XML`` (text, inline or included) or ``HDF``."""

    number_type: str
    precision: int
    dimensions: Tuple[int, ...]
    """Shape of the referenced values."""

    content: str
    """Inline text, relative include href, or ``file.h5:/dataset``."""

    include: bool = False
    """Whether `content` is an href to pull in with ``xi:include``."""

    slab: Optional[Slab] = None

    @classmethod
    def for_array(
        cls, fmt: str, arr: np.ndarray, content: str, *, include: bool = False, slab: Optional[Slab] = None
    ) -> "DataReference":
        nt, prec = number_type(arr.dtype)
        return cls(
            format=fmt,
            number_type=nt,
            precision=prec,
            dimensions=tuple(int(d) for d in arr.shape),
            content=content,
            include=include,
            slab=slab,
        )


@dataclass(frozen=True, slots=True)
class MeshScope:
    """Scope of the mesh arrays (``points`` and ``cells``), written once."""

    @property
    def path(self) -> str:
        return "mesh"


@dataclass(frozen=True, slots=True)
class StepScope:
    """Scope of the arrays of one time step."""

    index: int
    """Zero based position of the step in the series. Unique, used for naming."""

    label: str
    """Caller supplied step label, written as the step's time value."""

    @property
    def path(self) -> str:
        return f"step_{self.index:06d}"


Scope = Union[MeshScope, StepScope]


@dataclass
class DataStorage(Factory, ABC):
    """
    Abstract base class of the heavy-data backends.

    A writer holds one backend for its whole lifetime. All arrays of one scope
    (the mesh, or one time step) are persisted inside :meth:`container`, and
    :meth:`check` is called for every array of a step before the first one is
    persisted.

    Example
    -------
    To define a custom backend, inherit from `DataStorage` and implement `_persist`:

    >>> @DataStorage.register("my_storage")
    >>> @dataclass
    >>> class MyStorage(DataStorage):
            ...
    """

    base_name: Path
    """Path of the series without extension; backends derive their file names from it."""

    compression: Optional[int] = None
    """gzip level for HDF5 datasets. Ignored by the text backends."""

    _closed: bool = field(default=False, init=False, repr=False)

    kind: ClassVar[StorageKind]
    format: ClassVar[str]

    def __post_init__(self):
        self.base_name = Path(self.base_name)
        if self.compression is not None:
            self.compression = int(self.compression)
            if not 0 <= self.compression <= 9:
                raise ValueError(f"gzip compression level must be in [0, 9], got {self.compression}")

    @property
    def closed(self) -> bool:
        return self._closed

    def _sibling(self, suffix: str) -> Path:
        # append instead of with_suffix so names containing dots are kept
        return self.base_name.with_name(self.base_name.name + suffix)

    def _ensure_open(self) -> None:
        if self._closed:
            raise StorageStateError(f"{type(self).__name__} is closed")

    def persist(self, name: str, scope: Scope, values: Any) -> DataReference:
        """
        Store `values` under `name` within `scope`.

        Parameters
        ----------
        name : str
            ``points``/``cells`` for the mesh, ``point_data/<name>`` or
            ``cell_data/<name>`` for attributes.
        scope : MeshScope or StepScope
        values : array_like
            Values shaped ``(entities,)`` or ``(entities, components)``.

        Returns
        -------
        DataReference

        Raises
        ------
        IoError
            The file or container could not be written.
        StorageStateError
            The backend is closed or cannot take the array.
        """
        self._ensure_open()
        arr = as_array(values)
        ref = self._persist(name, scope, arr)
        logger.debug("persisted %s/%s -> %s", scope.path, name, ref.content[:80])
        return ref

    @abstractmethod
    def _persist(self, name: str, scope: Scope, arr: np.ndarray) -> DataReference:
        raise NotImplementedError

    def check(self, name: str, scope: Scope, values: Any) -> None:
        """
        Verify that `values` can be persisted without writing anything.
        Backends without cross-step state accept everything.
        """
        self._ensure_open()

    @contextmanager
    def container(self, scope: Scope) -> Iterator[None]:
        """Bracket the arrays of one scope."""
        self._ensure_open()
        yield

    def flush(self) -> None:
        pass

    def close(self) -> None:
        """Release all resources. Safe to call multiple times."""
        self._closed = True

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
        return False


from .ascii import AsciiInlineStorage, AsciiStorage
from .hdf5 import Hdf5MultipleStorage, Hdf5SingleStorage

__all__ = [
    "StorageKind",
    "Slab",
    "DataReference",
    "MeshScope",
    "StepScope",
    "Scope",
    "DataStorage",
    "AsciiInlineStorage",
    "AsciiStorage",
    "Hdf5SingleStorage",
    "Hdf5MultipleStorage",
]
