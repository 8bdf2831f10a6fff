# SPDX-License-Identifier: BSD-3-Clause
# Part of the pyxdmf project – https://github.com/pyxdmf/pyxdmf
"""
Unstructured mesh model and its validation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence, Tuple

import numpy as np

from .cells import CellKind, cell_sizes, is_variable_length, mixed_topology
from .errors import EmptyMesh, IndexOutOfBounds, ShapeMismatch
from .values import as_array


def _points_array(points: Any) -> np.ndarray:
    pts = as_array(points)
    if pts.size == 0:
        raise EmptyMesh("At least one point is required")
    if pts.ndim == 1:
        if pts.size % 3 != 0:
            raise ShapeMismatch("Points must have 3 dimensions")
        pts = pts.reshape(-1, 3)
    elif pts.ndim != 2 or pts.shape[1] != 3:
        raise ShapeMismatch(
            f"Points must have 3 dimensions, got an array of shape {pts.shape}"
        )
    if pts.dtype.kind != "f":
        pts = pts.astype(np.float64)
    return pts


def _connectivity_array(connectivity: Any) -> np.ndarray:
    conn = as_array(connectivity).ravel()
    if conn.size == 0:
        return conn.astype(np.int64)
    if conn.dtype.kind not in "iu":
        raise TypeError(f"Connectivity must hold integers, got dtype {conn.dtype}")
    return conn


def validate_mesh(
    points: Any,
    cell_kinds: Sequence[CellKind | str | int],
    connectivity: Any,
    polygon_sizes: Sequence[int] = (),
) -> Tuple[np.ndarray, Tuple[CellKind, ...], np.ndarray, Tuple[int, ...]]:
    """
    Check that points, cell kinds and connectivity describe a consistent mesh.

    The inputs are not modified; the normalized arrays are returned. Runs in
    O(C + len(connectivity)).

    Parameters
    ----------
    points : array_like
        Point coordinates, flat ``(3N,)`` or ``(N, 3)``.
    cell_kinds : Sequence[CellKind]
        Kind of every cell. Names and XDMF codes are accepted too.
    connectivity : array_like
        Point indices of all cells, concatenated.
    polygon_sizes : Sequence[int], optional
        Node count of every ``POLYGON`` cell, in order.

    Returns
    -------
    Tuple
        ``(points (N, 3), cell_kinds, connectivity (M,), polygon_sizes)``

    Raises
    ------
    EmptyMesh
        No points or no cells.
    ShapeMismatch
        Points are not 3D, polygon sizes do not match the polygons, or the
        connectivity length differs from the node counts of the cells.
    IndexOutOfBounds
        A connectivity entry is negative or not smaller than the point count.
    """
    pts = _points_array(points)
    kinds = tuple(CellKind.parse(k) for k in cell_kinds)
    if not kinds:
        raise EmptyMesh("At least one cell is required")

    sizes = tuple(int(s) for s in polygon_sizes)
    num_poly = sum(1 for k in kinds if is_variable_length(k))
    if len(sizes) != num_poly:
        raise ShapeMismatch(
            f"Expected {num_poly} polygon sizes for the given cell kinds, got {len(sizes)}"
        )
    if any(s < 3 for s in sizes):
        raise ShapeMismatch("Polygons must have at least 3 nodes")

    conn = _connectivity_array(connectivity)
    exp_num_points = int(cell_sizes(kinds, sizes).sum())
    if conn.size != exp_num_points:
        raise ShapeMismatch(
            "Size of connectivities not match the expected number based on the cell types: "
            f"{conn.size} != {exp_num_points}"
        )

    num_points = pts.shape[0]
    if conn.size:
        max_index = int(conn.max())
        min_index = int(conn.min())
        if max_index >= num_points:
            raise IndexOutOfBounds(
                "Connectivity indices out of bounds for the given points, "
                f"max index: {max_index}, but number of points is {num_points}"
            )
        if min_index < 0:
            raise IndexOutOfBounds(
                f"Connectivity indices must not be negative, min index: {min_index}"
            )

    return pts, kinds, conn, sizes


@dataclass(frozen=True, slots=True)
class Mesh:
    """
    Validated unstructured mesh. Immutable once created.

    Example
    -------
    >>> mesh = Mesh.create(
    >>>     points=[0, 0, 0, 1, 0, 0, 0, 1, 0],
    >>>     connectivity=[0, 1, 0, 2, 1],
    >>>     cell_kinds=[CellKind.EDGE, CellKind.TRIANGLE],
    >>> )
    >>> mesh.num_points, mesh.num_cells
    (3, 2)
    """

    points: np.ndarray
    """Point coordinates, shape ``(N, 3)``. Floating point type of the input is kept."""

    cell_kinds: Tuple[CellKind, ...]
    """Kind of every cell, length ``C``."""

    connectivity: np.ndarray
    """Concatenated point indices of all cells."""

    polygon_sizes: Tuple[int, ...] = ()
    """Node count of every ``POLYGON`` cell, in order."""

    @classmethod
    def create(
        cls,
        points: Any,
        connectivity: Any,
        cell_kinds: Sequence[CellKind | str | int],
        polygon_sizes: Sequence[int] = (),
    ) -> "Mesh":
        """Validate the inputs (see :func:`validate_mesh`) and build the mesh."""
        pts, kinds, conn, sizes = validate_mesh(points, cell_kinds, connectivity, polygon_sizes)
        # read-only views; the caller's arrays keep their flags
        pts, conn = pts.view(), conn.view()
        for arr in (pts, conn):
            arr.flags.writeable = False
        return cls(points=pts, cell_kinds=kinds, connectivity=conn, polygon_sizes=sizes)

    @property
    def num_points(self) -> int:
        return self.points.shape[0]

    @property
    def num_cells(self) -> int:
        return len(self.cell_kinds)

    def cell_sizes(self) -> np.ndarray:
        """Node count of every cell."""
        return cell_sizes(self.cell_kinds, self.polygon_sizes)

    def mixed_topology(self) -> np.ndarray:
        """Topology array in the XDMF ``Mixed`` layout (``uint64``)."""
        return mixed_topology(self.cell_kinds, self.connectivity, self.polygon_sizes)


__all__ = ["Mesh", "validate_mesh"]
