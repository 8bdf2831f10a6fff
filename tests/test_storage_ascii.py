"""Tests for the text storage backends."""

import numpy as np
import pytest

from pyxdmf import StorageInitError, StorageStateError
from pyxdmf.storage import AsciiInlineStorage, AsciiStorage, MeshScope, StepScope


class TestAsciiInline:
    """Tests for values embedded in the document."""

    def test_reference_holds_text(self, base_name):
        """Test that the reference content is the rendered values."""
        storage = AsciiInlineStorage(base_name=base_name)
        ref = storage.persist("points", MeshScope(), np.array([[0.0, 1.0, 2.0]]))
        assert ref.format == "XML"
        assert not ref.include
        assert ref.dimensions == (1, 3)
        assert ref.number_type == "Float"
        assert ref.precision == 8
        assert ref.content.split() == [
            "0.0000000000000000e+00",
            "1.0000000000000000e+00",
            "2.0000000000000000e+00",
        ]

    def test_writes_no_files(self, base_name, tmp_path, files_under):
        """Test that nothing is written to disk."""
        storage = AsciiInlineStorage(base_name=base_name)
        scope = StepScope(0, "0.0")
        with storage.container(scope):
            storage.persist("cell_data/T", scope, np.arange(5, dtype=np.int32))
        storage.close()
        assert files_under(tmp_path) == []

    def test_closed(self, base_name):
        """Test that a closed backend refuses to persist."""
        storage = AsciiInlineStorage(base_name=base_name)
        storage.close()
        storage.close()
        with pytest.raises(StorageStateError, match="closed"):
            storage.persist("points", MeshScope(), [0.0, 0.0, 0.0])


class TestAscii:
    """Tests for one text file per array."""

    def test_file_names(self, base_name, tmp_path, files_under):
        """Test mesh and step file naming inside <base>.txt/."""
        storage = AsciiStorage(base_name=base_name)
        mesh_scope = MeshScope()
        with storage.container(mesh_scope):
            storage.persist("points", mesh_scope, np.zeros((3, 3)))
            storage.persist("cells", mesh_scope, np.arange(8, dtype=np.uint64))
        step = StepScope(2, "0.5")
        with storage.container(step):
            ref = storage.persist("point_data/v", step, np.ones((3, 3)))

        assert files_under(tmp_path) == [
            "series.txt/cells.txt",
            "series.txt/points.txt",
            "series.txt/step_000002_point_data_v.txt",
        ]
        assert ref.include
        assert ref.content == "series.txt/step_000002_point_data_v.txt"
        assert ref.dimensions == (3, 3)

    def test_one_entity_per_line(self, base_name):
        """Test the text layout of a vector attribute."""
        storage = AsciiStorage(base_name=base_name)
        scope = StepScope(0, "0")
        with storage.container(scope):
            storage.persist("point_data/v", scope, np.array([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]]))
        lines = (storage.directory / "step_000000_point_data_v.txt").read_text().splitlines()
        assert len(lines) == 2
        np.testing.assert_allclose([float(x) for x in lines[1].split()], [4.0, 5.0, 6.0])

    def test_integers_written_exactly(self, base_name):
        """Test that integer arrays are written without a decimal part."""
        storage = AsciiStorage(base_name=base_name)
        with storage.container(MeshScope()):
            storage.persist("cells", MeshScope(), np.array([4, 0, 1, 2], dtype=np.uint64))
        assert (storage.directory / "cells.txt").read_text().split() == ["4", "0", "1", "2"]

    def test_failed_scope_removes_its_files(self, base_name, tmp_path, files_under):
        """Test that a scope failing half way leaves no files behind."""
        storage = AsciiStorage(base_name=base_name)
        scope = StepScope(0, "0")
        with pytest.raises(RuntimeError):
            with storage.container(scope):
                storage.persist("cell_data/a", scope, np.zeros(2))
                raise RuntimeError("interrupted")
        assert files_under(tmp_path) == []

    def test_init_fails_when_directory_cannot_be_created(self, tmp_path):
        """Test that a file in place of a parent directory fails construction."""
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        with pytest.raises(StorageInitError):
            AsciiStorage(base_name=blocker / "series")
