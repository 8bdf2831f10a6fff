# SPDX-License-Identifier: BSD-3-Clause
# Part of the pyxdmf project – https://github.com/pyxdmf/pyxdmf
"""
Named datasets bound to the points or the cells of a mesh.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar, Dict, Mapping, Tuple

import numpy as np

from .errors import AttributeShapeMismatch, InvalidName
from .values import as_array

if TYPE_CHECKING:  # pragma: no cover
    from .mesh import Mesh


_DATA_NAME = re.compile(r"[A-Za-z0-9_-]+")


class Center(enum.Enum):
    """Entity an attribute is bound to. Values are the XDMF ``Center`` names."""

    POINT = "Node"
    CELL = "Cell"

    @property
    def tag(self) -> str:
        """Prefix used for heavy-data names, e.g. ``point_data``."""
        return "point_data" if self is Center.POINT else "cell_data"

    @property
    def label(self) -> str:
        return "point" if self is Center.POINT else "cell"

    def entity_count(self, mesh: "Mesh") -> int:
        return mesh.num_points if self is Center.POINT else mesh.num_cells


@dataclass(frozen=True, slots=True)
class AttributeShape:
    """
    Layout of one entity's value: its XDMF ``AttributeType`` and the number of
    components.

    Symmetric tensors, matrices and generic k-component values are all written
    as ``Matrix``, which is how readers detect a 6 component symmetric tensor.
    """

    xdmf_type: str
    components: int

    SCALAR: ClassVar["AttributeShape"]
    VECTOR: ClassVar["AttributeShape"]
    TENSOR: ClassVar["AttributeShape"]
    TENSOR6: ClassVar["AttributeShape"]

    def __post_init__(self):
        if self.components < 1:
            raise ValueError(f"An attribute needs at least one component, got {self.components}")

    @classmethod
    def matrix(cls, n: int, m: int) -> "AttributeShape":
        return cls("Matrix", int(n) * int(m))

    @classmethod
    def generic(cls, k: int) -> "AttributeShape":
        return cls("Matrix", int(k))

    @classmethod
    def parse(cls, shape: "AttributeShape | str | int") -> "AttributeShape":
        """
        Accept a shape, one of the names ``scalar``/``vector``/``tensor``/``tensor6``
        (case insensitive), or a component count.
        """
        if isinstance(shape, cls):
            return shape
        if isinstance(shape, str):
            try:
                return _NAMED_SHAPES[shape.strip().lower()]
            except KeyError:
                raise ValueError(
                    f"Unknown attribute shape '{shape}'. Available: {list(_NAMED_SHAPES)}"
                ) from None
        if isinstance(shape, (int, np.integer)) and not isinstance(shape, bool):
            return _BY_COMPONENTS.get(int(shape)) or cls.generic(int(shape))
        raise TypeError(f"Cannot interpret {shape!r} as an attribute shape")

    def dimensions(self, entities: int) -> Tuple[int, ...]:
        """XDMF dimensions of an attribute over `entities` points or cells."""
        if self.xdmf_type == "Scalar":
            return (entities,)
        return (entities, self.components)


AttributeShape.SCALAR = AttributeShape("Scalar", 1)
AttributeShape.VECTOR = AttributeShape("Vector", 3)
AttributeShape.TENSOR = AttributeShape("Tensor", 9)
AttributeShape.TENSOR6 = AttributeShape("Matrix", 6)

_NAMED_SHAPES: Dict[str, AttributeShape] = {
    "scalar": AttributeShape.SCALAR,
    "vector": AttributeShape.VECTOR,
    "tensor": AttributeShape.TENSOR,
    "tensor6": AttributeShape.TENSOR6,
}
_BY_COMPONENTS: Dict[int, AttributeShape] = {s.components: s for s in _NAMED_SHAPES.values()}


@dataclass(frozen=True, slots=True)
class Attribute:
    """One named dataset of a time step."""

    name: str
    center: Center
    shape: AttributeShape
    values: np.ndarray
    """Values in C order, flattened. Numeric type of the input is kept."""

    @classmethod
    def create(
        cls, name: str, center: Center | str, shape: AttributeShape | str | int, values: Any
    ) -> "Attribute":
        if isinstance(center, str):
            center = Center[center.strip().upper()]
        arr = as_array(values).ravel().view()
        arr.flags.writeable = False
        return cls(name=name, center=center, shape=AttributeShape.parse(shape), values=arr)

    def reshaped(self) -> np.ndarray:
        """Values shaped as ``(entities,)`` or ``(entities, components)``."""
        if self.shape.xdmf_type == "Scalar":
            return self.values
        return self.values.reshape(-1, self.shape.components)


def validate_data_name(name: str, center: Center) -> None:
    if not isinstance(name, str) or _DATA_NAME.fullmatch(name) is None:
        raise InvalidName(
            f"Data name '{name}' of {center.label}-data is not valid, must be non-empty "
            "and contain only alphanumeric characters, underscores or dashes"
        )


def validate_attribute(attribute: Attribute, mesh: "Mesh") -> None:
    """
    Check the attribute name and that it holds exactly
    ``components * entities`` values.

    Raises
    ------
    InvalidName
        The name is empty or has characters other than ``[A-Za-z0-9_-]``.
    AttributeShapeMismatch
        The number of values does not match the mesh.
    """
    validate_data_name(attribute.name, attribute.center)
    exp_size = attribute.shape.components * attribute.center.entity_count(mesh)
    if attribute.values.size != exp_size:
        raise AttributeShapeMismatch(
            f"Size of {attribute.center.label}-data '{attribute.name}' must be "
            f"{exp_size}, but is {attribute.values.size}"
        )


def attributes_from_mapping(
    data: Mapping[str, Any] | None, center: Center
) -> Tuple[Attribute, ...]:
    """
    Build attributes from a ``{name: (shape, values)}`` mapping. Names are
    sorted so heavy-data files and document entries have a stable order.

    :class:`Attribute` values are accepted if their name is the mapping key
    and they are bound to `center`; otherwise :class:`InvalidName` or
    :class:`ValueError` is raised.
    """
    if not data:
        return ()
    out = []
    for name in sorted(data):
        item = data[name]
        if isinstance(item, Attribute):
            if item.name != name:
                raise InvalidName(
                    f"{center.label}-data '{name}' is given an attribute named '{item.name}'"
                )
            if item.center is not center:
                raise ValueError(
                    f"{center.label}-data '{name}' is given an attribute bound to "
                    f"{item.center.label}s"
                )
            out.append(item)
            continue
        try:
            shape, values = item
        except (TypeError, ValueError):
            raise TypeError(
                f"{center.label}-data '{name}' must be given as (shape, values), got {type(item).__name__}"
            ) from None
        out.append(Attribute.create(name, center, shape, values))
    return tuple(out)


__all__ = [
    "Center",
    "AttributeShape",
    "Attribute",
    "validate_data_name",
    "validate_attribute",
    "attributes_from_mapping",
]
