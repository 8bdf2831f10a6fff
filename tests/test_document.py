"""Tests for the light-data document."""

import xml.etree.ElementTree as ET

import numpy as np
import pytest

from pyxdmf import AttributeShape, LightDataDocument, MeshAlreadyWritten, MeshNotYetWritten
from pyxdmf.document import XINCLUDE_NS
from pyxdmf.storage import DataReference, Slab

XI_INCLUDE = f"{{{XINCLUDE_NS}}}include"


def inline(values):
    arr = np.asarray(values)
    return DataReference.for_array("XML", arr, " ".join(str(v) for v in arr.ravel()))


@pytest.fixture
def document(mesh):
    doc = LightDataDocument(storage_name="AsciiInline", version="0.1.0")
    doc.emit_static_blocks(
        mesh,
        inline(np.asarray(mesh.points)),
        inline(mesh.mixed_topology()),
    )
    return doc


class TestStaticBlocks:
    """Tests for the document before the first step."""

    def test_mesh_grid(self, document):
        """Test that the domain holds a single uniform grid."""
        root = document.to_element()
        assert root.tag == "Xdmf"
        assert root.get("Version") == "2.0"
        (grid,) = root.findall("Domain/Grid")
        assert grid.get("Name") == "mesh"
        assert grid.get("GridType") == "Uniform"
        assert grid.find("Topology").get("TopologyType") == "Mixed"
        assert grid.find("Topology").get("NumberOfElements") == "2"
        assert grid.find("Geometry").get("GeometryType") == "XYZ"

    def test_named_items(self, document):
        """Test the shared geometry and topology items."""
        items = document.to_element().findall("Domain/DataItem")
        assert [i.get("Name") for i in items] == ["coords", "connectivity"]
        coords, connectivity = items
        assert coords.get("Dimensions") == "3 3"
        assert coords.get("NumberType") == "Float"
        assert coords.get("Precision") == "8"
        assert connectivity.get("Dimensions") == "8"
        assert connectivity.get("NumberType") == "UInt"
        assert connectivity.text.split() == ["2", "2", "0", "1", "4", "0", "2", "1"]

    def test_information(self, document):
        """Test the storage and version information."""
        info = {i.get("Name"): i.get("Value") for i in document.to_element().findall("Information")}
        assert info == {"data_storage": "AsciiInline", "version": "0.1.0"}

    def test_mesh_only_once(self, document, mesh):
        """Test that the static blocks are emitted once."""
        with pytest.raises(MeshAlreadyWritten):
            document.emit_static_blocks(mesh, inline([0.0]), inline([0]))

    def test_step_before_mesh(self):
        """Test that steps need the mesh."""
        doc = LightDataDocument(storage_name="Ascii", version="0.1.0")
        with pytest.raises(MeshNotYetWritten):
            doc.append_time_step("0", {}, {"T": (AttributeShape.SCALAR, inline([1.0, 2.0]))})
        with pytest.raises(MeshNotYetWritten):
            doc.to_element()


class TestTimeSteps:
    """Tests for the temporal collection."""

    def test_collection(self, document):
        """Test one grid per step with time, geometry and topology references."""
        document.append_time_step("0.0", {}, {"T": (AttributeShape.SCALAR, inline([1.0, 2.0]))})
        document.append_time_step("0.5", {}, {"T": (AttributeShape.SCALAR, inline([3.0, 4.0]))})
        root = document.to_element()

        (collection,) = root.findall("Domain/Grid")
        assert collection.get("GridType") == "Collection"
        assert collection.get("CollectionType") == "Temporal"
        grids = collection.findall("Grid")
        assert [g.get("Name") for g in grids] == ["time_series-t0.0", "time_series-t0.5"]
        assert [g.find("Time").get("Value") for g in grids] == ["0.0", "0.5"]
        for grid in grids:
            geometry = grid.find("Geometry/DataItem")
            topology = grid.find("Topology/DataItem")
            assert geometry.get("Reference") == "XML"
            assert geometry.text == '/Xdmf/Domain/DataItem[@Name="coords"]'
            assert topology.text == '/Xdmf/Domain/DataItem[@Name="connectivity"]'
        # mesh data is stored once
        assert len(root.findall("Domain/DataItem")) == 2

    def test_attributes(self, document):
        """Test attribute type, center and inline values."""
        document.append_time_step(
            "1",
            {"v": (AttributeShape.VECTOR, inline(np.zeros((3, 3))))},
            {"T": (AttributeShape.SCALAR, inline([1.5, 2.5]))},
        )
        grid = document.to_element().find("Domain/Grid/Grid")
        attributes = grid.findall("Attribute")
        assert [(a.get("Name"), a.get("AttributeType"), a.get("Center")) for a in attributes] == [
            ("v", "Vector", "Node"),
            ("T", "Scalar", "Cell"),
        ]
        assert attributes[0].find("DataItem").get("Dimensions") == "3 3"
        assert attributes[1].find("DataItem").text.split() == ["1.5", "2.5"]

    def test_include(self, document):
        """Test that text files are pulled in with xi:include."""
        arr = np.array([1.0, 2.0])
        ref = DataReference.for_array("XML", arr, "series.txt/step_000000_cell_data_T.txt", include=True)
        document.append_time_step("0", {}, {"T": (AttributeShape.SCALAR, ref)})
        item = document.to_element().find("Domain/Grid/Grid/Attribute/DataItem")
        include = item.find(XI_INCLUDE)
        assert include.get("href") == "series.txt/step_000000_cell_data_T.txt"
        assert include.get("parse") == "text"
        assert item.get("Format") == "XML"

    def test_hyperslab(self, document):
        """Test slab selection and the current extent of the source dataset."""
        arr = np.zeros(2)
        for i in range(3):
            ref = DataReference.for_array(
                "HDF", arr, "series.h5:/cell_data/T", slab=Slab(i, (i + 1, 2))
            )
            document.append_time_step(str(i), {}, {"T": (AttributeShape.SCALAR, ref)})

        grids = document.to_element().findall("Domain/Grid/Grid")
        for i, grid in enumerate(grids):
            item = grid.find("Attribute/DataItem")
            assert item.get("ItemType") == "HyperSlab"
            assert item.get("Dimensions") == "2"
            selection, source = item.findall("DataItem")
            assert selection.get("Dimensions") == "3 2"
            assert selection.text.split("\n") == [f"{i} 0", "1 1", "1 2"]
            assert source.get("Dimensions") == "3 2"
            assert source.get("Format") == "HDF"
            assert source.text == "series.h5:/cell_data/T"

    def test_extents(self, document):
        """Test that the largest extent per dataset is reported."""
        arr = np.zeros(2)
        for i in (0, 1):
            ref = DataReference.for_array("HDF", arr, "f.h5:/cell_data/T", slab=Slab(i, (i + 1, 2)))
            document.append_time_step(str(i), {}, {"T": (AttributeShape.SCALAR, ref)})
        assert document.dataset_extents() == {"f.h5:/cell_data/T": (2, 2)}

    def test_step_count(self, document):
        """Test that steps are kept in call order, duplicates included."""
        for label in ("2", "1", "1"):
            document.append_time_step(label, {}, {"T": (AttributeShape.SCALAR, inline([0.0, 0.0]))})
        assert document.step_count == 3
        assert [s.label for s in document.steps] == ["2", "1", "1"]


class TestSerialization:
    """Tests for writing the document."""

    def test_indentation(self, document):
        """Test 4 space indentation and the XML declaration."""
        text = document.to_string()
        assert text.startswith("<?xml")
        lines = text.splitlines()
        assert any(line.startswith("    <Domain>") for line in lines)
        assert any(line.startswith("        <Grid") for line in lines)

    def test_write(self, document, tmp_path):
        """Test that writing leaves only the document behind."""
        path = tmp_path / "run.xdmf"
        document.write(path)
        document.write(path)
        assert [p.name for p in tmp_path.iterdir()] == ["run.xdmf"]
        root = ET.parse(path).getroot()
        assert root.find("Domain/Grid").get("Name") == "mesh"
