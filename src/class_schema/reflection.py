"""
Reflection protocol consumed by the schema engine.

The engine never touches a host object model directly. A host exposes its
classes through a ReflectionSource: property lists with type tags and hints,
construction of empty instances, property assignment and enum member lists.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import IntEnum, IntFlag
from typing import Any, Dict, List, Optional, Tuple


class TypeTag(IntEnum):
    NIL = 0
    BOOL = 1
    INT = 2
    FLOAT = 3
    STRING = 4
    VECTOR2 = 5
    VECTOR2I = 6
    RECT2 = 7
    RECT2I = 8
    VECTOR3 = 9
    VECTOR3I = 10
    VECTOR4 = 11
    VECTOR4I = 12
    COLOR = 13
    OBJECT = 14
    DICTIONARY = 15
    ARRAY = 16
    TRANSFORM2D = 17
    PLANE = 18
    QUATERNION = 19
    AABB = 20
    BASIS = 21
    TRANSFORM3D = 22
    PROJECTION = 23
    RID = 24
    PACKED_BYTE_ARRAY = 25
    PACKED_INT32_ARRAY = 26
    PACKED_INT64_ARRAY = 27
    PACKED_FLOAT32_ARRAY = 28
    PACKED_FLOAT64_ARRAY = 29
    PACKED_STRING_ARRAY = 30
    PACKED_VECTOR2_ARRAY = 31
    PACKED_VECTOR3_ARRAY = 32
    PACKED_COLOR_ARRAY = 33
    PACKED_VECTOR4_ARRAY = 34


class PropertyHint(IntEnum):
    NONE = 0
    ARRAY_TYPE = 1


class PropertyUsage(IntFlag):
    NONE = 0
    CLASS_IS_ENUM = 1
    CLASS_IS_BITFIELD = 2


class PropertyInfo:
    """One entry of a class property list, as reported by the host."""

    __slots__ = ("name", "type", "class_name", "hint", "hint_string", "usage", "description")

    def __init__(
        self,
        name: str,
        type: TypeTag,
        class_name: str = "",
        hint: PropertyHint = PropertyHint.NONE,
        hint_string: str = "",
        usage: PropertyUsage = PropertyUsage.NONE,
        description: Optional[str] = None,
    ) -> None:
        self.name = name
        self.type = TypeTag(type)
        self.class_name = class_name or ""
        self.hint = PropertyHint(hint)
        self.hint_string = hint_string or ""
        self.usage = PropertyUsage(usage)
        self.description = description

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PropertyInfo):
            return NotImplemented
        return all(getattr(self, slot) == getattr(other, slot) for slot in self.__slots__)

    def __repr__(self) -> str:
        return (
            f"PropertyInfo(name={self.name!r}, type={self.type.name}, class_name={self.class_name!r}, "
            f"hint={self.hint.name}, hint_string={self.hint_string!r}, usage={self.usage!r})"
        )


class ReflectionSource(ABC):
    """Capability interface a host object model implements once."""

    @abstractmethod
    def class_exists(self, class_name: str) -> bool:
        """Return True if class_name names a user class known to the host."""

    @abstractmethod
    def list_properties(self, class_name: str) -> List[PropertyInfo]:
        """Return the ordered properties of class_name and its user-defined ancestors.

        Raises UnknownClassError if the class is unknown.
        """

    @abstractmethod
    def construct(self, class_name: str) -> Any:
        """Return a new, empty instance of class_name.

        Raises UnknownClassError or ConstructionError.
        """

    @abstractmethod
    def set_property(self, obj: Any, property_name: str, value: Any) -> None:
        """Assign value to obj.property_name.

        Raises UnknownPropertyError or PropertyAssignmentError.
        """

    @abstractmethod
    def resolve_enum_members(self, owner_class: str, enum_name: str) -> List[Tuple[str, int]]:
        """Return the ordered (member_name, integer_value) pairs of owner_class.enum_name.

        The value may be a host enum member as long as it is an int.
        Raises UnknownClassError or UnsupportedTypeError.
        """

    @abstractmethod
    def construct_struct(self, type_tag: TypeTag, components: Dict[str, Any]) -> Any:
        """Build a host value struct (Vector2, Color...) from its converted components."""

    def construct_packed_array(self, type_tag: TypeTag, items: List[Any]) -> Any:
        """Build a host packed array from its converted items. Hosts without packed types keep the list."""
        return items
