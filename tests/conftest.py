"""Pytest fixtures for pyxdmf tests."""

import xml.etree.ElementTree as ET

import numpy as np
import pytest

from pyxdmf import CellKind, Mesh, StorageKind, TimeSeriesWriter


@pytest.fixture
def mesh_inputs():
    """Three points, an edge and a triangle."""
    points = [0.0, 0.0, 0.0, 1.0, 0.0, 0.0, 0.0, 1.0, 0.0]
    connectivity = [0, 1, 0, 2, 1]
    cell_kinds = [CellKind.EDGE, CellKind.TRIANGLE]
    return points, connectivity, cell_kinds


@pytest.fixture
def mesh(mesh_inputs):
    """Validated mesh built from ``mesh_inputs``."""
    points, connectivity, cell_kinds = mesh_inputs
    return Mesh.create(points, connectivity, cell_kinds)


@pytest.fixture
def mixed_mesh():
    """One cell of every first-order kind, a polygon included, on a unit cube."""
    points = np.array(
        [
            [0, 0, 0],
            [1, 0, 0],
            [1, 1, 0],
            [0, 1, 0],
            [0, 0, 1],
            [1, 0, 1],
            [1, 1, 1],
            [0, 1, 1],
            [0.5, 0.5, 2.0],
        ],
        dtype=np.float64,
    )
    kinds = [
        CellKind.VERTEX,
        CellKind.EDGE,
        CellKind.TRIANGLE,
        CellKind.QUADRILATERAL,
        CellKind.POLYGON,
        CellKind.TETRAHEDRON,
        CellKind.PYRAMID,
        CellKind.WEDGE,
        CellKind.HEXAHEDRON,
    ]
    connectivity = (
        [8]
        + [0, 1]
        + [0, 1, 2]
        + [0, 1, 2, 3]
        + [0, 1, 5, 6, 2]
        + [0, 1, 3, 4]
        + [4, 5, 6, 7, 8]
        + [0, 1, 3, 4, 5, 7]
        + [0, 1, 2, 3, 4, 5, 6, 7]
    )
    return Mesh.create(points, connectivity, kinds, polygon_sizes=[5])


@pytest.fixture(params=[k.value for k in StorageKind])
def storage_key(request):
    """Every storage backend key."""
    return request.param


@pytest.fixture
def base_name(tmp_path):
    """Base name of a series inside a fresh directory."""
    return tmp_path / "series"


@pytest.fixture
def writer_factory(base_name):
    """Create writers and close them at teardown."""
    writers = []

    def make(storage, **kw):
        writer = TimeSeriesWriter(base_name, storage=storage, **kw)
        writers.append(writer)
        return writer

    yield make
    for writer in writers:
        writer.close()


@pytest.fixture
def read_document():
    """Parse an XDMF document into its root element."""

    def read(path):
        return ET.parse(path).getroot()

    return read


@pytest.fixture
def files_under():
    """List the regular files below a directory, relative and sorted."""

    def list_files(path):
        return sorted(p.relative_to(path).as_posix() for p in path.rglob("*") if p.is_file())

    return list_files
