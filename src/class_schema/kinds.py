"""
Property kinds and class descriptors.

A PropertyKind is decided once by the type resolver; everything downstream
(schema building, instantiation) dispatches on its tag.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum as PyEnum
from typing import Dict, Optional, Tuple

from .reflection import TypeTag


class KindTag(PyEnum):
    BOOL = 'bool'
    INTEGER = 'integer'
    FLOAT = 'float'
    STRING = 'string'
    STRUCT = 'struct'
    ENUM = 'enum'
    OBJECT = 'object'
    DICTIONARY = 'dictionary'
    ARRAY = 'array'


@dataclass(frozen=True)
class PropertyKind:
    tag: KindTag
    # OBJECT: referenced class. ENUM: owning class.
    class_name: Optional[str] = None
    enum_name: Optional[str] = None
    is_bitflags: bool = False
    struct: Optional[TypeTag] = None
    # ARRAY only; None means untyped
    element: Optional["PropertyKind"] = None
    # ARRAY only; exact number of items
    length: Optional[int] = None
    # ARRAY only; packed array type the items are stored as
    packed: Optional[TypeTag] = None

    @classmethod
    def boolean(cls) -> "PropertyKind":
        return cls(KindTag.BOOL)

    @classmethod
    def integer(cls) -> "PropertyKind":
        return cls(KindTag.INTEGER)

    @classmethod
    def number(cls) -> "PropertyKind":
        return cls(KindTag.FLOAT)

    @classmethod
    def string(cls) -> "PropertyKind":
        return cls(KindTag.STRING)

    @classmethod
    def dictionary(cls) -> "PropertyKind":
        return cls(KindTag.DICTIONARY)

    @classmethod
    def struct_of(cls, type_tag: TypeTag) -> "PropertyKind":
        if type_tag not in STRUCT_LAYOUTS:
            raise ValueError(f"{type_tag!r} is not a struct type")
        return cls(KindTag.STRUCT, struct=type_tag)

    @classmethod
    def enum(cls, owner_class: str, enum_name: str, is_bitflags: bool = False) -> "PropertyKind":
        return cls(KindTag.ENUM, class_name=owner_class, enum_name=enum_name, is_bitflags=is_bitflags)

    @classmethod
    def object_of(cls, class_name: str) -> "PropertyKind":
        return cls(KindTag.OBJECT, class_name=class_name)

    @classmethod
    def array(cls, element: Optional["PropertyKind"] = None, length: Optional[int] = None) -> "PropertyKind":
        return cls(KindTag.ARRAY, element=element, length=length)

    @classmethod
    def packed_array(cls, type_tag: TypeTag) -> "PropertyKind":
        if type_tag not in PACKED_ELEMENTS:
            raise ValueError(f"{type_tag!r} is not a packed array type")
        return cls(KindTag.ARRAY, element=PACKED_ELEMENTS[type_tag], packed=type_tag)

    @property
    def enum_path(self) -> str:
        return f"{self.class_name}.{self.enum_name}"

    def describe(self) -> str:
        if self.tag == KindTag.OBJECT:
            return f"Object<{self.class_name}>"
        if self.tag == KindTag.ENUM:
            prefix = "Flags" if self.is_bitflags else "Enum"
            return f"{prefix}<{self.enum_path}>"
        if self.tag == KindTag.STRUCT:
            return STRUCT_NAMES[self.struct]
        if self.tag == KindTag.ARRAY:
            if self.packed is not None:
                return PACKED_NAMES[self.packed]
            described = f"Array<{self.element.describe()}>" if self.element else "Array"
            return f"{described}[{self.length}]" if self.length is not None else described
        return self.tag.value


@dataclass(frozen=True)
class PropertyDescriptor:
    name: str
    kind: PropertyKind
    description: Optional[str] = None


@dataclass(frozen=True)
class ClassDescriptor:
    name: str
    properties: Tuple[PropertyDescriptor, ...] = ()

    @property
    def property_names(self) -> Tuple[str, ...]:
        return tuple(prop.name for prop in self.properties)

    def get(self, property_name: str) -> Optional[PropertyDescriptor]:
        for prop in self.properties:
            if prop.name == property_name:
                return prop
        return None


@dataclass(frozen=True)
class EnumDescriptor:
    owner_class: str
    enum_name: str
    # ordered (member_name, host value)
    members: Tuple[Tuple[str, int], ...] = field(default_factory=tuple)
    is_bitflags: bool = False

    @property
    def member_names(self) -> Tuple[str, ...]:
        return tuple(name for name, _ in self.members)

    def lookup(self, member_name: str) -> Optional[int]:
        for name, value in self.members:
            if name == member_name:
                return value
        return None


def _struct(type_tag: TypeTag) -> PropertyKind:
    return PropertyKind(KindTag.STRUCT, struct=type_tag)


# Fixed component layouts of the value structs.
STRUCT_LAYOUTS: Dict[TypeTag, Tuple[Tuple[str, PropertyKind], ...]] = {
    TypeTag.VECTOR2: (("x", PropertyKind.number()), ("y", PropertyKind.number())),
    TypeTag.VECTOR2I: (("x", PropertyKind.integer()), ("y", PropertyKind.integer())),
    TypeTag.VECTOR3: tuple((axis, PropertyKind.number()) for axis in "xyz"),
    TypeTag.VECTOR3I: tuple((axis, PropertyKind.integer()) for axis in "xyz"),
    TypeTag.VECTOR4: tuple((axis, PropertyKind.number()) for axis in "xyzw"),
    TypeTag.VECTOR4I: tuple((axis, PropertyKind.integer()) for axis in "xyzw"),
    TypeTag.QUATERNION: tuple((axis, PropertyKind.number()) for axis in "xyzw"),
    TypeTag.COLOR: tuple((channel, PropertyKind.number()) for channel in "rgba"),
    TypeTag.RECT2: (("position", _struct(TypeTag.VECTOR2)), ("size", _struct(TypeTag.VECTOR2))),
    TypeTag.RECT2I: (("position", _struct(TypeTag.VECTOR2I)), ("size", _struct(TypeTag.VECTOR2I))),
    TypeTag.AABB: (("position", _struct(TypeTag.VECTOR3)), ("size", _struct(TypeTag.VECTOR3))),
    TypeTag.PLANE: (("normal", _struct(TypeTag.VECTOR3)), ("d", PropertyKind.number())),
    TypeTag.TRANSFORM2D: tuple((column, _struct(TypeTag.VECTOR2)) for column in ("x", "y", "origin")),
    # Matrix rows and columns are fixed-length arrays of vectors
    TypeTag.BASIS: (("rows", PropertyKind.array(_struct(TypeTag.VECTOR3), length=3)),),
    TypeTag.PROJECTION: (("columns", PropertyKind.array(_struct(TypeTag.VECTOR4), length=4)),),
    TypeTag.TRANSFORM3D: (("basis", _struct(TypeTag.BASIS)), ("origin", _struct(TypeTag.VECTOR3))),
}

STRUCT_NAMES: Dict[TypeTag, str] = {
    TypeTag.VECTOR2: "Vector2",
    TypeTag.VECTOR2I: "Vector2i",
    TypeTag.RECT2: "Rect2",
    TypeTag.RECT2I: "Rect2i",
    TypeTag.VECTOR3: "Vector3",
    TypeTag.VECTOR3I: "Vector3i",
    TypeTag.TRANSFORM2D: "Transform2D",
    TypeTag.VECTOR4: "Vector4",
    TypeTag.VECTOR4I: "Vector4i",
    TypeTag.PLANE: "Plane",
    TypeTag.QUATERNION: "Quaternion",
    TypeTag.AABB: "AABB",
    TypeTag.BASIS: "Basis",
    TypeTag.TRANSFORM3D: "Transform3D",
    TypeTag.PROJECTION: "Projection",
    TypeTag.COLOR: "Color",
}

# Item kind of each packed array type
PACKED_ELEMENTS: Dict[TypeTag, PropertyKind] = {
    TypeTag.PACKED_BYTE_ARRAY: PropertyKind.integer(),
    TypeTag.PACKED_INT32_ARRAY: PropertyKind.integer(),
    TypeTag.PACKED_INT64_ARRAY: PropertyKind.integer(),
    TypeTag.PACKED_FLOAT32_ARRAY: PropertyKind.number(),
    TypeTag.PACKED_FLOAT64_ARRAY: PropertyKind.number(),
    TypeTag.PACKED_STRING_ARRAY: PropertyKind.string(),
    TypeTag.PACKED_VECTOR2_ARRAY: _struct(TypeTag.VECTOR2),
    TypeTag.PACKED_VECTOR3_ARRAY: _struct(TypeTag.VECTOR3),
    TypeTag.PACKED_COLOR_ARRAY: _struct(TypeTag.COLOR),
    TypeTag.PACKED_VECTOR4_ARRAY: _struct(TypeTag.VECTOR4),
}

PACKED_NAMES: Dict[TypeTag, str] = {
    TypeTag.PACKED_BYTE_ARRAY: "PackedByteArray",
    TypeTag.PACKED_INT32_ARRAY: "PackedInt32Array",
    TypeTag.PACKED_INT64_ARRAY: "PackedInt64Array",
    TypeTag.PACKED_FLOAT32_ARRAY: "PackedFloat32Array",
    TypeTag.PACKED_FLOAT64_ARRAY: "PackedFloat64Array",
    TypeTag.PACKED_STRING_ARRAY: "PackedStringArray",
    TypeTag.PACKED_VECTOR2_ARRAY: "PackedVector2Array",
    TypeTag.PACKED_VECTOR3_ARRAY: "PackedVector3Array",
    TypeTag.PACKED_COLOR_ARRAY: "PackedColorArray",
    TypeTag.PACKED_VECTOR4_ARRAY: "PackedVector4Array",
}

# Inclusive item range of packed arrays with fixed-width integer items
PACKED_INTEGER_RANGES: Dict[TypeTag, Tuple[int, int]] = {
    TypeTag.PACKED_BYTE_ARRAY: (0, 255),
    TypeTag.PACKED_INT32_ARRAY: (-2**31, 2**31 - 1),
    TypeTag.PACKED_INT64_ARRAY: (-2**63, 2**63 - 1),
}
