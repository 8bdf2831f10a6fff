# SPDX-License-Identifier: BSD-3-Clause
# Part of the pyxdmf project – https://github.com/pyxdmf/pyxdmf
"""
Light-data document: the XDMF XML that describes the series and points at the
heavy data.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

from .attributes import AttributeShape, Center
from .errors import MeshAlreadyWritten, MeshNotYetWritten
from .storage import DataReference
from .utils.fs import publish_atomic

logger = logging.getLogger(__name__)

XINCLUDE_NS = "http://www.w3.org/2001/XInclude"
ET.register_namespace("xi", XINCLUDE_NS)

#: XPath prefix of the shared data items.
DOMAIN_ITEMS = "/Xdmf/Domain/DataItem"

GEOMETRY_ITEM = "coords"
TOPOLOGY_ITEM = "connectivity"

AttributeRefs = Mapping[str, Tuple[AttributeShape, DataReference]]


def _dims(dims: Tuple[int, ...]) -> str:
    return " ".join(str(d) for d in dims)


def data_item(
    ref: DataReference,
    parent: ET.Element,
    name: Optional[str] = None,
    dataset_dimensions: Optional[Tuple[int, ...]] = None,
) -> ET.Element:
    """
    Append the ``DataItem`` for `ref` to `parent`.

    Slabs of extensible datasets become a ``HyperSlab`` item holding the
    selection (start, stride, count) and the source dataset. The source is
    declared with `dataset_dimensions` when given (the dataset's current
    extent), otherwise with the extent at the time the slab was written.
    """
    if ref.slab is not None:
        slab = ref.slab
        if dataset_dimensions is not None:
            slab = replace(slab, dataset_dimensions=dataset_dimensions)
        item = ET.SubElement(
            parent, "DataItem", ItemType="HyperSlab", Dimensions=_dims(ref.dimensions), Type="HyperSlab"
        )
        if name is not None:
            item.set("Name", name)
        selection = ET.SubElement(
            item, "DataItem", Dimensions=f"3 {len(slab.dataset_dimensions)}", Format="XML"
        )
        selection.text = "\n".join(_dims(v) for v in (slab.start, slab.stride, slab.count))
        source = ET.SubElement(
            item,
            "DataItem",
            Dimensions=_dims(slab.dataset_dimensions),
            NumberType=ref.number_type,
            Format=ref.format,
            Precision=str(ref.precision),
        )
        source.text = ref.content
        return item

    item = ET.SubElement(parent, "DataItem")
    if name is not None:
        item.set("Name", name)
    item.set("Dimensions", _dims(ref.dimensions))
    item.set("NumberType", ref.number_type)
    item.set("Format", ref.format)
    item.set("Precision", str(ref.precision))
    if ref.include:
        ET.SubElement(item, f"{{{XINCLUDE_NS}}}include", href=ref.content, parse="text")
    else:
        item.text = ref.content
    return item


def reference_item(parent: ET.Element, item_name: str) -> ET.Element:
    item = ET.SubElement(parent, "DataItem", Reference="XML")
    item.text = f'{DOMAIN_ITEMS}[@Name="{item_name}"]'
    return item


@dataclass(frozen=True, slots=True)
class AttributeEntry:
    name: str
    center: Center
    shape: AttributeShape
    ref: DataReference


@dataclass(frozen=True, slots=True)
class StepEntry:
    label: str
    attributes: Tuple[AttributeEntry, ...]


@dataclass
class LightDataDocument:
    """
    Append-only model of the XDMF document.

    The mesh is stored once as two named data items in the domain. Every step
    grid refers to them by XPath, so the document grows by a few lightweight
    entries per step and never copies mesh data. Entries are immutable once
    added; the XML tree is rebuilt from them on demand.

    Example
    -------
    >>> doc = LightDataDocument(storage_name="AsciiInline", version="0.1.0")
    >>> doc.emit_static_blocks(mesh, coords_ref, connectivity_ref)
    >>> doc.append_time_step("0.0", {"p": (AttributeShape.SCALAR, p_ref)}, {})
    >>> doc.write("out/run.xdmf")
    """

    storage_name: str
    """Value of the ``data_storage`` information, e.g. ``Hdf5SingleFile``."""

    version: str
    """Value of the ``version`` information."""

    series_name: str = "time_series"

    _geometry: Optional[DataReference] = field(default=None, init=False, repr=False)
    _topology: Optional[DataReference] = field(default=None, init=False, repr=False)
    _num_cells: int = field(default=0, init=False, repr=False)
    _steps: Tuple[StepEntry, ...] = field(default=(), init=False, repr=False)

    @property
    def has_mesh(self) -> bool:
        return self._geometry is not None

    @property
    def step_count(self) -> int:
        return len(self._steps)

    @property
    def steps(self) -> Tuple[StepEntry, ...]:
        return self._steps

    def emit_static_blocks(self, mesh, geometry_ref: DataReference, topology_ref: DataReference) -> None:
        """
        Record the shared geometry and topology. Called once, after the mesh
        arrays were persisted.

        Raises
        ------
        MeshAlreadyWritten
        """
        if self.has_mesh:
            raise MeshAlreadyWritten("The static mesh blocks have already been written")
        self._geometry = geometry_ref
        self._topology = topology_ref
        self._num_cells = mesh.num_cells

    def append_time_step(
        self,
        step_id: str,
        point_attr_refs: Optional[AttributeRefs] = None,
        cell_attr_refs: Optional[AttributeRefs] = None,
    ) -> StepEntry:
        """
        Append the grid of one step. Only called once all of the step's arrays
        are persisted.

        Raises
        ------
        MeshNotYetWritten
        """
        if not self.has_mesh:
            raise MeshNotYetWritten("The mesh must be written before any time step")
        entries = []
        for center, refs in ((Center.POINT, point_attr_refs), (Center.CELL, cell_attr_refs)):
            for name, (shape, ref) in (refs or {}).items():
                entries.append(AttributeEntry(name, center, shape, ref))
        step = StepEntry(str(step_id), tuple(entries))
        self._steps = (*self._steps, step)
        return step

    def truncate(self, step_count: int) -> None:
        """Drop every step after the first `step_count`."""
        if not 0 <= step_count <= len(self._steps):
            raise ValueError(
                f"Cannot truncate {len(self._steps)} step(s) to {step_count}"
            )
        self._steps = self._steps[:step_count]

    def _uniform_grid(self, parent: ET.Element, name: str) -> ET.Element:
        grid = ET.SubElement(parent, "Grid", Name=name, GridType="Uniform")
        geometry = ET.SubElement(grid, "Geometry", GeometryType="XYZ")
        reference_item(geometry, GEOMETRY_ITEM)
        topology = ET.SubElement(
            grid, "Topology", TopologyType="Mixed", NumberOfElements=str(self._num_cells)
        )
        reference_item(topology, TOPOLOGY_ITEM)
        return grid

    def _step_grid(
        self, parent: ET.Element, step: StepEntry, extents: Dict[str, Tuple[int, ...]]
    ) -> ET.Element:
        grid = self._uniform_grid(parent, f"{self.series_name}-t{step.label}")
        ET.SubElement(grid, "Time", Value=step.label)
        for entry in step.attributes:
            attribute = ET.SubElement(
                grid,
                "Attribute",
                Name=entry.name,
                AttributeType=entry.shape.xdmf_type,
                Center=entry.center.value,
            )
            data_item(entry.ref, attribute, dataset_dimensions=extents.get(entry.ref.content))
        return grid

    def dataset_extents(self) -> Dict[str, Tuple[int, ...]]:
        """Largest known extent of every extensible dataset, by reference."""
        extents: Dict[str, Tuple[int, ...]] = {}
        for step in self._steps:
            for entry in step.attributes:
                slab = entry.ref.slab
                if slab is None:
                    continue
                known = extents.get(entry.ref.content)
                if known is None or known[0] < slab.dataset_dimensions[0]:
                    extents[entry.ref.content] = slab.dataset_dimensions
        return extents

    def to_element(self) -> ET.Element:
        """
        Build the XML tree.

        Before the first step the domain holds the plain mesh grid, afterwards a
        temporal collection with one grid per step.

        Raises
        ------
        MeshNotYetWritten
        """
        if not self.has_mesh:
            raise MeshNotYetWritten("The mesh must be written before the document")

        root = ET.Element("Xdmf", Version="2.0")
        domain = ET.SubElement(root, "Domain")
        if self._steps:
            collection = ET.SubElement(
                domain,
                "Grid",
                Name=self.series_name,
                GridType="Collection",
                CollectionType="Temporal",
            )
            extents = self.dataset_extents()
            for step in self._steps:
                self._step_grid(collection, step, extents)
        else:
            self._uniform_grid(domain, "mesh")

        data_item(self._geometry, domain, name=GEOMETRY_ITEM)
        data_item(self._topology, domain, name=TOPOLOGY_ITEM)

        ET.SubElement(root, "Information", Name="data_storage", Value=self.storage_name)
        ET.SubElement(root, "Information", Name="version", Value=self.version)
        return root

    def to_tree(self) -> ET.ElementTree:
        tree = ET.ElementTree(self.to_element())
        ET.indent(tree, space="    ")
        return tree

    def to_string(self) -> str:
        """Pretty-printed XML, indented by 4 spaces."""
        return ET.tostring(self.to_tree().getroot(), encoding="unicode", xml_declaration=True)

    def write(self, path: Path | str) -> None:
        """
        Write the document to `path`, replacing the previous version atomically.

        Raises
        ------
        IoError
        """
        tree = self.to_tree()
        publish_atomic(
            Path(path), lambda fh: tree.write(fh, encoding="utf-8", xml_declaration=True)
        )
        logger.debug("wrote %s with %d step(s)", path, self.step_count)


__all__ = [
    "LightDataDocument",
    "AttributeEntry",
    "StepEntry",
    "data_item",
    "reference_item",
    "XINCLUDE_NS",
]
