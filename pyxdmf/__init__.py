# SPDX-License-Identifier: BSD-3-Clause
# Part of the pyxdmf project – https://github.com/pyxdmf/pyxdmf
"""
pyxdmf module
"""

from __future__ import annotations

__version__ = "0.1.0"

from .cells import CellKind
from .mesh import Mesh, validate_mesh
from .attributes import Attribute, AttributeShape, Center, validate_attribute
from .storage import DataReference, DataStorage, StorageKind
from .document import LightDataDocument
from .writer import TimeSeriesWriter, WriterState
from .vtk_export import mesh_to_vtk, write_vtu
from .factory import Factory
from .errors import (
    XdmfError,
    ValidationError,
    ShapeMismatch,
    IndexOutOfBounds,
    EmptyMesh,
    AttributeShapeMismatch,
    InvalidName,
    MissingData,
    StateError,
    MeshAlreadyWritten,
    MeshNotYetWritten,
    WriterClosed,
    StorageError,
    IoError,
    StorageInitError,
    StorageStateError,
)

__all__ = [
    "__version__",
    "CellKind",
    "Mesh",
    "validate_mesh",
    "Attribute",
    "AttributeShape",
    "Center",
    "validate_attribute",
    "DataReference",
    "DataStorage",
    "StorageKind",
    "LightDataDocument",
    "TimeSeriesWriter",
    "WriterState",
    "mesh_to_vtk",
    "write_vtu",
    "Factory",
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
