# SPDX-License-Identifier: BSD-3-Clause
# Part of the pyxdmf project – https://github.com/pyxdmf/pyxdmf
"""
Exceptions raised by pyxdmf.

Three families are distinguished:

- :class:`ValidationError` - inputs are inconsistent. Always raised before
  anything is written for the offending call.
- :class:`StateError` - operations called out of sequence.
- :class:`StorageError` - the file system or the HDF5 library failed.

Each family also derives from the matching built-in exception
(``ValueError``, ``RuntimeError``, ``OSError``).
"""

from __future__ import annotations


class XdmfError(Exception):
    """Base class of all pyxdmf errors."""


class ValidationError(XdmfError, ValueError):
    """Inputs do not describe a consistent mesh or time step."""


class ShapeMismatch(ValidationError):
    """Array length does not match what the cell kinds or dimensions require."""


class IndexOutOfBounds(ValidationError):
    """A connectivity entry does not address an existing point."""


class EmptyMesh(ValidationError):
    """The mesh has no points or no cells."""


class AttributeShapeMismatch(ValidationError):
    """An attribute's length does not match ``components * entities``."""


class InvalidName(ValidationError):
    """A data name, file name or step label contains forbidden characters."""


class MissingData(ValidationError):
    """A time step was written without any point or cell data."""


class StateError(XdmfError, RuntimeError):
    """An operation was called in a state that does not allow it."""


class MeshAlreadyWritten(StateError):
    pass


class MeshNotYetWritten(StateError):
    pass


class WriterClosed(StateError):
    pass


class StorageError(XdmfError, OSError):
    """Failure of the heavy-data storage."""


class IoError(StorageError):
    """A file or container could not be created or written."""


class StorageInitError(StorageError):
    """A storage backend could not acquire its resources."""


class StorageStateError(StorageError):
    """The backend is closed, or in a state that cannot take the operation."""


__all__ = [
    "XdmfError",
    "ValidationError",
    "ShapeMismatch",
    "IndexOutOfBounds",
    "EmptyMesh",
    "AttributeShapeMismatch",
    "InvalidName",
    "MissingData",
    "StateError",
    "MeshAlreadyWritten",
    "MeshNotYetWritten",
    "WriterClosed",
    "StorageError",
    "IoError",
    "StorageInitError",
    "StorageStateError",
]
