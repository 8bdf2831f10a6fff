# SPDX-License-Identifier: BSD-3-Clause
# Part of the pyxdmf project – https://github.com/pyxdmf/pyxdmf
"""
Catalog of the supported cell kinds.

Node orderings follow the VTK file-format conventions and are never renumbered
by the writer. The enum values are the XDMF type codes used in a ``Mixed``
topology array.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

import numpy as np


class CellKind(enum.IntEnum):
    """Cell kinds, valued by their XDMF mixed-topology code."""

    VERTEX = 1
    EDGE = 2
    POLYGON = 3
    TRIANGLE = 4
    QUADRILATERAL = 5
    TETRAHEDRON = 6
    PYRAMID = 7
    WEDGE = 8
    HEXAHEDRON = 9
    EDGE3 = 34
    QUADRILATERAL9 = 35
    TRIANGLE6 = 36
    QUADRILATERAL8 = 37
    TETRAHEDRON10 = 38
    PYRAMID13 = 39
    WEDGE15 = 40
    WEDGE18 = 41
    HEXAHEDRON20 = 48
    HEXAHEDRON24 = 49
    HEXAHEDRON27 = 50

    @classmethod
    def parse(cls, kind: "CellKind | str | int") -> "CellKind":
        """
        Convert a name (``"triangle"``, ``"Hexahedron20"``) or an XDMF type code
        into a :class:`CellKind`.
        """
        if isinstance(kind, cls):
            return kind
        if isinstance(kind, str):
            try:
                return cls[kind.strip().upper()]
            except KeyError:
                raise ValueError(
                    f"Unknown cell kind '{kind}'. Available: {[k.name.lower() for k in cls]}"
                ) from None
        if isinstance(kind, (int, np.integer)) and not isinstance(kind, bool):
            return cls(int(kind))
        raise TypeError(f"Cannot interpret {kind!r} as a cell kind")


@dataclass(frozen=True, slots=True)
class CellInfo:
    nodes: Optional[int]
    """Number of connectivity indices, ``None`` for variable-length kinds."""

    count_prefix: bool
    """Whether the mixed topology array stores the node count after the type code."""

    vtk_type: int
    """VTK cell type id with the same node ordering."""


# VTK ids are spelled out so the catalog does not import vtk.
_CATALOG: Dict[CellKind, CellInfo] = {
    CellKind.VERTEX: CellInfo(1, True, 1),
    CellKind.EDGE: CellInfo(2, True, 3),
    CellKind.POLYGON: CellInfo(None, True, 7),
    CellKind.TRIANGLE: CellInfo(3, False, 5),
    CellKind.QUADRILATERAL: CellInfo(4, False, 9),
    CellKind.TETRAHEDRON: CellInfo(4, False, 10),
    CellKind.PYRAMID: CellInfo(5, False, 14),
    CellKind.WEDGE: CellInfo(6, False, 13),
    CellKind.HEXAHEDRON: CellInfo(8, False, 12),
    CellKind.EDGE3: CellInfo(3, False, 21),
    CellKind.QUADRILATERAL9: CellInfo(9, False, 28),
    CellKind.TRIANGLE6: CellInfo(6, False, 22),
    CellKind.QUADRILATERAL8: CellInfo(8, False, 23),
    CellKind.TETRAHEDRON10: CellInfo(10, False, 24),
    CellKind.PYRAMID13: CellInfo(13, False, 27),
    CellKind.WEDGE15: CellInfo(15, False, 26),
    CellKind.WEDGE18: CellInfo(18, False, 32),
    CellKind.HEXAHEDRON20: CellInfo(20, False, 25),
    CellKind.HEXAHEDRON24: CellInfo(24, False, 33),
    CellKind.HEXAHEDRON27: CellInfo(27, False, 29),
}


def node_count(kind: CellKind) -> int:
    """
    Number of connectivity indices consumed by one cell of `kind`.

    Raises
    ------
    ValueError
        For variable-length kinds, whose size is given per cell.
    """
    nodes = _CATALOG[kind].nodes
    if nodes is None:
        raise ValueError(f"{kind.name} cells have a variable number of nodes")
    return nodes


def is_variable_length(kind: CellKind) -> bool:
    return _CATALOG[kind].nodes is None


def has_count_prefix(kind: CellKind) -> bool:
    return _CATALOG[kind].count_prefix


def vtk_cell_type(kind: CellKind) -> int:
    return _CATALOG[kind].vtk_type


def cell_sizes(
    cell_kinds: Sequence[CellKind], polygon_sizes: Sequence[int] = ()
) -> np.ndarray:
    """
    Node count of every cell, taking variable-length sizes from
    `polygon_sizes` in order. The caller checks that enough sizes are given.
    """
    sizes = np.empty(len(cell_kinds), dtype=np.int64)
    poly = iter(polygon_sizes)
    for i, kind in enumerate(cell_kinds):
        nodes = _CATALOG[kind].nodes
        sizes[i] = next(poly) if nodes is None else nodes
    return sizes


def mixed_topology(
    cell_kinds: Sequence[CellKind],
    connectivity: np.ndarray,
    polygon_sizes: Sequence[int] = (),
) -> np.ndarray:
    """
    Build the XDMF ``Mixed`` topology array.

    Every cell is written as its type code, followed by its node count for
    count-prefixed kinds, followed by its connectivity indices.

    Example
    -------
    >>> mixed_topology([CellKind.EDGE, CellKind.TRIANGLE], np.array([0, 1, 0, 2, 1]))
    array([2, 2, 0, 1, 4, 0, 2, 1], dtype=uint64)
    """
    sizes = cell_sizes(cell_kinds, polygon_sizes)
    prefixed = np.array([_CATALOG[k].count_prefix for k in cell_kinds], dtype=bool)

    out = np.empty(len(connectivity) + len(cell_kinds) + int(prefixed.sum()), dtype=np.uint64)
    pos = 0
    start = 0
    for kind, size, prefix in zip(cell_kinds, sizes, prefixed):
        out[pos] = int(kind)
        pos += 1
        if prefix:
            out[pos] = size
            pos += 1
        out[pos : pos + size] = connectivity[start : start + size]
        pos += size
        start += size
    return out


__all__ = [
    "CellKind",
    "CellInfo",
    "node_count",
    "is_variable_length",
    "has_count_prefix",
    "vtk_cell_type",
    "cell_sizes",
    "mixed_topology",
]
