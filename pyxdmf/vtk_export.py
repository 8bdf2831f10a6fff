# SPDX-License-Identifier: BSD-3-Clause
# Part of the pyxdmf project – https://github.com/pyxdmf/pyxdmf
"""VTK interop: convert a mesh to ``vtkUnstructuredGrid`` and write ``.vtu`` snapshots."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any, Mapping, Optional

import numpy as np
import vtk
import vtk.util.numpy_support as vtk_np

from .attributes import Center, attributes_from_mapping, validate_attribute
from .cells import vtk_cell_type
from .errors import IoError
from .mesh import Mesh
from .utils.fs import replace_atomic


def _add_arrays(target, data: Optional[Mapping[str, Any]], center: Center, mesh: Mesh) -> None:
    for attribute in attributes_from_mapping(data, center):
        validate_attribute(attribute, mesh)
        vtk_arr = vtk_np.numpy_to_vtk(np.array(attribute.reshaped()), deep=True)
        vtk_arr.SetName(attribute.name)
        target.AddArray(vtk_arr)


def mesh_to_vtk(
    mesh: Mesh,
    point_data: Optional[Mapping[str, Any]] = None,
    cell_data: Optional[Mapping[str, Any]] = None,
) -> vtk.vtkUnstructuredGrid:
    """
    Build a ``vtkUnstructuredGrid`` with the same points, cells and node
    ordering as `mesh`.

    Parameters
    ----------
    mesh : Mesh
    point_data, cell_data : Mapping[str, tuple], optional
        ``{name: (shape, values)}``, validated like the data of a time step.

    Returns
    -------
    vtk.vtkUnstructuredGrid
    """
    grid = vtk.vtkUnstructuredGrid()

    points = vtk.vtkPoints()
    points.SetData(vtk_np.numpy_to_vtk(np.array(mesh.points), deep=True))
    grid.SetPoints(points)

    sizes = mesh.cell_sizes()
    offsets = np.zeros(sizes.size + 1, dtype=np.int64)
    np.cumsum(sizes, out=offsets[1:])
    cells = vtk.vtkCellArray()
    cells.SetData(
        vtk_np.numpy_to_vtkIdTypeArray(offsets, deep=True),
        vtk_np.numpy_to_vtkIdTypeArray(mesh.connectivity.astype(np.int64), deep=True),
    )
    types = np.array([vtk_cell_type(k) for k in mesh.cell_kinds], dtype=np.uint8)
    grid.SetCells(
        vtk_np.numpy_to_vtk(types, deep=True, array_type=vtk.VTK_UNSIGNED_CHAR), cells
    )

    _add_arrays(grid.GetPointData(), point_data, Center.POINT, mesh)
    _add_arrays(grid.GetCellData(), cell_data, Center.CELL, mesh)
    return grid


def write_vtu(
    mesh: Mesh,
    filename: Path | str,
    binary: bool = True,
    point_data: Optional[Mapping[str, Any]] = None,
    cell_data: Optional[Mapping[str, Any]] = None,
) -> Path:
    """
    Write `mesh` and optional data to a ``.vtu`` file.

    Binary files use zlib-compressed appended data, otherwise the data is
    written as ASCII. The file is written to a temporary name and moved into
    place.

    Raises
    ------
    IoError
        If the file cannot be created, written by VTK or moved into place.
    """
    grid = mesh_to_vtk(mesh, point_data, cell_data)
    final_path = Path(filename)
    try:
        fd, tmp_path = tempfile.mkstemp(
            prefix=f"temp_{final_path.name}", suffix=".tmp", dir=os.fspath(final_path.parent)
        )
    except OSError as err:
        raise IoError(f"Cannot create a temporary file next to '{final_path}': {err}") from err
    os.close(fd)  # let VTK open the file by path

    writer = vtk.vtkXMLUnstructuredGridWriter()
    writer.SetFileName(tmp_path)
    writer.SetInputData(grid)
    if binary:
        writer.SetDataModeToAppended()
        writer.SetCompressor(vtk.vtkZLibDataCompressor())
    else:
        writer.SetDataModeToAscii()
    ok = writer.Write()
    if ok != 1:
        try:
            os.remove(tmp_path)
        except FileNotFoundError:
            pass
        raise IoError(f"VTK unstructured grid writer failed for '{final_path}'")
    try:
        replace_atomic(final_path, Path(tmp_path))
    except OSError as err:
        raise IoError(f"Failed to move '{tmp_path}' to '{final_path}': {err}") from err
    return final_path


__all__ = ["mesh_to_vtk", "write_vtu"]
