"""Tests for mesh validation."""

import numpy as np
import pytest

from pyxdmf import (
    CellKind,
    EmptyMesh,
    IndexOutOfBounds,
    Mesh,
    ShapeMismatch,
    ValidationError,
    validate_mesh,
)


class TestValidMesh:
    """Tests for meshes that pass validation."""

    def test_counts(self, mesh):
        """Test point and cell counts of the small mesh."""
        assert mesh.num_points == 3
        assert mesh.num_cells == 2
        assert mesh.points.shape == (3, 3)
        assert mesh.cell_kinds == (CellKind.EDGE, CellKind.TRIANGLE)

    def test_points_2d_input(self):
        """Test that (N, 3) points are accepted as given."""
        points = np.zeros((4, 3))
        mesh = Mesh.create(points, [0, 1, 2, 3], [CellKind.QUADRILATERAL])
        assert mesh.num_points == 4

    def test_float32_points_are_kept(self):
        """Test that single precision points are not widened."""
        points = np.zeros(9, dtype=np.float32)
        mesh = Mesh.create(points, [0, 1, 2], ["triangle"])
        assert mesh.points.dtype == np.float32

    def test_integer_points_become_float(self):
        """Test that integer coordinates are stored as float64."""
        mesh = Mesh.create([0, 0, 0, 1, 0, 0], [0, 1], [CellKind.EDGE])
        assert mesh.points.dtype == np.float64

    def test_arrays_are_read_only(self, mesh):
        """Test that the mesh cannot be modified after creation."""
        with pytest.raises(ValueError):
            mesh.points[0, 0] = 5.0
        with pytest.raises(ValueError):
            mesh.connectivity[0] = 2

    def test_caller_arrays_stay_writable(self):
        """Test that creating a mesh does not lock the caller's arrays."""
        points = np.zeros((3, 3))
        conn = np.array([0, 1, 2])
        Mesh.create(points, conn, [CellKind.TRIANGLE])
        points[0, 0] = 1.0
        conn[0] = 1

    def test_polygons(self, mixed_mesh):
        """Test a mesh mixing polygons with fixed-size cells."""
        assert mixed_mesh.num_cells == 9
        assert mixed_mesh.polygon_sizes == (5,)
        assert mixed_mesh.cell_sizes().sum() == mixed_mesh.connectivity.size

    def test_validation_is_idempotent(self, mesh_inputs):
        """Test that validating twice gives the same result and keeps the inputs."""
        points, connectivity, kinds = mesh_inputs
        before = (list(points), list(connectivity), list(kinds))
        first = validate_mesh(points, kinds, connectivity)
        second = validate_mesh(points, kinds, connectivity)
        np.testing.assert_array_equal(first[0], second[0])
        np.testing.assert_array_equal(first[2], second[2])
        assert first[1] == second[1]
        assert (points, connectivity, kinds) == before


class TestInvalidMesh:
    """Tests for meshes rejected by validation."""

    def test_short_connectivity(self, mesh_inputs):
        """Test that a missing index is a shape mismatch."""
        points, _, kinds = mesh_inputs
        with pytest.raises(ShapeMismatch, match="4 != 5"):
            Mesh.create(points, [0, 1, 0, 2], kinds)

    def test_long_connectivity(self, mesh_inputs):
        """Test that an extra index is a shape mismatch."""
        points, _, kinds = mesh_inputs
        with pytest.raises(ShapeMismatch, match="6 != 5"):
            Mesh.create(points, [0, 1, 0, 2, 1, 0], kinds)

    def test_index_out_of_bounds(self, mesh_inputs):
        """Test that indices must address existing points."""
        points, _, kinds = mesh_inputs
        with pytest.raises(IndexOutOfBounds, match="max index: 3"):
            Mesh.create(points, [0, 1, 0, 3, 1], kinds)

    def test_negative_index(self, mesh_inputs):
        """Test that negative indices are rejected, not wrapped."""
        points, _, kinds = mesh_inputs
        with pytest.raises(IndexOutOfBounds):
            Mesh.create(points, [0, 1, 0, -1, 1], kinds)

    def test_no_points(self):
        """Test that a mesh needs points."""
        with pytest.raises(EmptyMesh, match="point"):
            Mesh.create([], [], [])

    def test_no_cells(self, mesh_inputs):
        """Test that a mesh needs cells."""
        points, _, _ = mesh_inputs
        with pytest.raises(EmptyMesh, match="cell"):
            Mesh.create(points, [], [])

    def test_points_not_3d(self):
        """Test that the flat point array must hold triples."""
        with pytest.raises(ShapeMismatch, match="3 dimensions"):
            Mesh.create([0.0, 0.0, 1.0, 1.0], [0], [CellKind.VERTEX])

    def test_points_2d_wrong_width(self):
        """Test that 2D points are rejected."""
        with pytest.raises(ShapeMismatch):
            Mesh.create(np.zeros((3, 2)), [0, 1, 2], [CellKind.TRIANGLE])

    def test_missing_polygon_size(self):
        """Test that every polygon needs a size."""
        with pytest.raises(ShapeMismatch, match="polygon sizes"):
            Mesh.create(np.zeros((4, 3)), [0, 1, 2, 3], [CellKind.POLYGON])

    def test_polygon_too_small(self):
        """Test that polygons have at least three nodes."""
        with pytest.raises(ShapeMismatch, match="at least 3"):
            Mesh.create(np.zeros((4, 3)), [0, 1], [CellKind.POLYGON], polygon_sizes=[2])

    def test_float_connectivity(self):
        """Test that connectivity must be integral."""
        with pytest.raises(TypeError):
            Mesh.create(np.zeros((3, 3)), [0.0, 1.0, 2.0], [CellKind.TRIANGLE])

    def test_errors_are_value_errors(self, mesh_inputs):
        """Test that validation errors can be caught as ValueError."""
        points, _, kinds = mesh_inputs
        with pytest.raises(ValueError):
            Mesh.create(points, [0, 1], kinds)
        assert issubclass(ShapeMismatch, ValidationError)
