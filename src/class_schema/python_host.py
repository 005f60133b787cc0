"""
Reflection source over plain Python classes.

Classes are registered by name and described by their type annotations:

    registry = HostClassRegistry()

    @registry.register
    class Fact:
        text: Annotated[str, "The fact, in one sentence"] = ""
        is_password_related: bool = False

    @registry.register
    class Person:
        class Gender(IntEnum):
            Male = 0
            Female = 1

        first_name: str = ""
        gender: Gender = Gender.Male
        facts: list[Fact] = []

Annotation mapping:
    bool, int, float, str, dict    -> scalar tags (dict is an opaque Dictionary)
    bytes                          -> PackedByteArray
    Rid                            -> RID (an integer id)
    list                           -> untyped Array
    list[X]                        -> Array with an ARRAY_TYPE hint naming X
    registered class               -> Object
    IntEnum nested in a registered class -> Int flagged CLASS_IS_ENUM
    IntFlag nested in a registered class -> Int flagged CLASS_IS_BITFIELD
    Vector2, Color, Basis ...      -> value struct tags
    Annotated[T, "text"]           -> T, with "text" as the property description
"""

from __future__ import annotations

import inspect
import logging
import typing
from dataclasses import dataclass, field
from enum import IntEnum, IntFlag
from typing import Annotated, Any, ClassVar, Dict, List, Optional, Tuple

from .errors import (
    ConstructionError,
    PropertyAssignmentError,
    UnknownClassError,
    UnknownPropertyError,
    UnsupportedTypeError,
)
from .kinds import STRUCT_NAMES
from .reflection import PropertyHint, PropertyInfo, PropertyUsage, ReflectionSource, TypeTag

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Vector2:
    x: float = 0.0
    y: float = 0.0


@dataclass(frozen=True)
class Vector2i:
    x: int = 0
    y: int = 0


@dataclass(frozen=True)
class Vector3:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


@dataclass(frozen=True)
class Vector3i:
    x: int = 0
    y: int = 0
    z: int = 0


@dataclass(frozen=True)
class Vector4:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 0.0


@dataclass(frozen=True)
class Vector4i:
    x: int = 0
    y: int = 0
    z: int = 0
    w: int = 0


@dataclass(frozen=True)
class Color:
    r: float = 0.0
    g: float = 0.0
    b: float = 0.0
    a: float = 1.0


@dataclass(frozen=True)
class Rect2:
    position: Vector2 = field(default_factory=Vector2)
    size: Vector2 = field(default_factory=Vector2)


@dataclass(frozen=True)
class Rect2i:
    position: Vector2i = field(default_factory=Vector2i)
    size: Vector2i = field(default_factory=Vector2i)


@dataclass(frozen=True)
class Transform2D:
    x: Vector2 = field(default_factory=lambda: Vector2(1.0, 0.0))
    y: Vector2 = field(default_factory=lambda: Vector2(0.0, 1.0))
    origin: Vector2 = field(default_factory=Vector2)


@dataclass(frozen=True)
class Plane:
    normal: Vector3 = field(default_factory=Vector3)
    d: float = 0.0


@dataclass(frozen=True)
class Quaternion:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    w: float = 1.0


@dataclass(frozen=True)
class AABB:
    position: Vector3 = field(default_factory=Vector3)
    size: Vector3 = field(default_factory=Vector3)


@dataclass(frozen=True)
class Basis:
    rows: Tuple[Vector3, Vector3, Vector3] = (Vector3(1.0, 0.0, 0.0), Vector3(0.0, 1.0, 0.0), Vector3(0.0, 0.0, 1.0))


@dataclass(frozen=True)
class Transform3D:
    basis: Basis = field(default_factory=Basis)
    origin: Vector3 = field(default_factory=Vector3)


@dataclass(frozen=True)
class Projection:
    columns: Tuple[Vector4, Vector4, Vector4, Vector4] = (
        Vector4(1.0, 0.0, 0.0, 0.0),
        Vector4(0.0, 1.0, 0.0, 0.0),
        Vector4(0.0, 0.0, 1.0, 0.0),
        Vector4(0.0, 0.0, 0.0, 1.0),
    )


# Opaque resource id
Rid = typing.NewType("Rid", int)


STRUCT_TYPES: Dict[TypeTag, type] = {
    TypeTag.VECTOR2: Vector2,
    TypeTag.VECTOR2I: Vector2i,
    TypeTag.VECTOR3: Vector3,
    TypeTag.VECTOR3I: Vector3i,
    TypeTag.VECTOR4: Vector4,
    TypeTag.VECTOR4I: Vector4i,
    TypeTag.COLOR: Color,
    TypeTag.RECT2: Rect2,
    TypeTag.RECT2I: Rect2i,
    TypeTag.TRANSFORM2D: Transform2D,
    TypeTag.PLANE: Plane,
    TypeTag.QUATERNION: Quaternion,
    TypeTag.AABB: AABB,
    TypeTag.BASIS: Basis,
    TypeTag.TRANSFORM3D: Transform3D,
    TypeTag.PROJECTION: Projection,
}
_STRUCT_TAGS: Dict[type, TypeTag] = {struct_type: tag for tag, struct_type in STRUCT_TYPES.items()}

_SCALAR_TAGS: Dict[type, TypeTag] = {
    bool: TypeTag.BOOL,
    int: TypeTag.INT,
    float: TypeTag.FLOAT,
    str: TypeTag.STRING,
    dict: TypeTag.DICTIONARY,
    bytes: TypeTag.PACKED_BYTE_ARRAY,
    Rid: TypeTag.RID,
}

_ELEMENT_HINTS: Dict[type, str] = {
    bool: "bool",
    int: "int",
    float: "float",
    str: "String",
    dict: "Dictionary",
    list: "Array",
    bytes: "PackedByteArray",
    Rid: "int",
}

_SKIPPED_BASES = ("builtins", "typing", "abc")


class HostClassRegistry(ReflectionSource):
    """Reflection source for Python classes registered by name."""

    def __init__(self) -> None:
        # registered name -> class
        self.__classes: Dict[str, type] = {}
        self.__names: Dict[type, str] = {}

    def register(self, cls: Optional[type] = None, name: Optional[str] = None) -> Any:
        """
        Register a class, directly or as a decorator.

            registry.register(Person)
            @registry.register
            @registry.register(name="Customer")
        """
        def decorator(klass: type) -> type:
            class_name = name or klass.__name__
            if class_name in STRUCT_NAMES.values():
                raise ValueError(f"Class name '{class_name}' is reserved for the built-in value struct")
            previous = self.__classes.get(class_name)
            if previous is not None and previous is not klass:
                logger.info("Re-registering class name '%s'; replacing %s", class_name, previous.__qualname__)
                self.__names.pop(previous, None)
            self.__classes[class_name] = klass
            self.__names[klass] = class_name
            logger.debug("Registered class '%s'", class_name)
            return klass

        if cls is None:
            return decorator
        return decorator(cls)

    def registered_name(self, cls: type) -> Optional[str]:
        return self.__names.get(cls)

    def get_class(self, class_name: str) -> type:
        cls = self.__classes.get(class_name)
        if cls is None:
            raise UnknownClassError(class_name)
        return cls

    # ----------------------------- ReflectionSource ----------------------------

    def class_exists(self, class_name: str) -> bool:
        return class_name in self.__classes

    def list_properties(self, class_name: str) -> List[PropertyInfo]:
        cls = self.get_class(class_name)
        return [self._property_info(prop_name, hint) for prop_name, hint in self._annotated_properties(cls)]

    def construct(self, class_name: str) -> Any:
        cls = self.get_class(class_name)
        try:
            return cls()
        except TypeError as e:
            raise ConstructionError(class_name, str(e)) from e

    def set_property(self, obj: Any, property_name: str, value: Any) -> None:
        class_name = self.__names.get(type(obj))
        if class_name is None:
            raise UnknownClassError(type(obj).__name__)
        declared = [prop_name for prop_name, _ in self._annotated_properties(type(obj))]
        if property_name not in declared:
            raise UnknownPropertyError(class_name, property_name)
        try:
            setattr(obj, property_name, value)
        except (AttributeError, TypeError, ValueError) as e:
            raise PropertyAssignmentError(class_name, property_name, str(e)) from e

    def resolve_enum_members(self, owner_class: str, enum_name: str) -> List[Tuple[str, int]]:
        cls = self.get_class(owner_class)
        enum_cls = getattr(cls, enum_name, None)
        if not (inspect.isclass(enum_cls) and issubclass(enum_cls, (IntEnum, IntFlag))):
            raise UnsupportedTypeError(f"'{owner_class}.{enum_name}' is not an IntEnum or IntFlag declared in the class")
        return [(member.name, member) for member in enum_cls]

    def construct_struct(self, type_tag: TypeTag, components: Dict[str, Any]) -> Any:
        struct_type = STRUCT_TYPES.get(type_tag)
        if struct_type is None:
            raise UnsupportedTypeError(f"{TypeTag(type_tag).name} is not a value struct")
        # Fixed-length components (Basis rows...) are stored as tuples
        return struct_type(**{
            component: tuple(value) if isinstance(value, list) else value
            for component, value in components.items()
        })

    def construct_packed_array(self, type_tag: TypeTag, items: List[Any]) -> Any:
        if type_tag == TypeTag.PACKED_BYTE_ARRAY:
            return bytes(items)
        return items

    # ----------------------------- Annotations ---------------------------------

    def _annotated_properties(self, cls: type) -> List[Tuple[str, Any]]:
        """(name, type hint) of every public annotated attribute, base classes first."""
        try:
            hints = typing.get_type_hints(cls, include_extras=True)
        except (NameError, TypeError, SyntaxError) as e:
            class_name = self.__names.get(cls, cls.__name__)
            raise UnsupportedTypeError(f"Cannot resolve the annotations of class '{class_name}': {e}") from e
        properties = []
        seen = set()
        for klass in reversed(cls.__mro__):
            if klass.__module__ in _SKIPPED_BASES:
                continue
            for prop_name in inspect.get_annotations(klass):
                if prop_name.startswith("_") or prop_name in seen:
                    continue
                hint = hints.get(prop_name)
                if typing.get_origin(hint) is ClassVar or hint is ClassVar:
                    continue
                seen.add(prop_name)
                properties.append((prop_name, hint))
        return properties

    def _property_info(self, prop_name: str, hint: Any) -> PropertyInfo:
        description = None
        if typing.get_origin(hint) is Annotated:
            args = typing.get_args(hint)
            hint = args[0]
            description = next((arg for arg in args[1:] if isinstance(arg, str)), None)

        if hint in _SCALAR_TAGS:
            return PropertyInfo(prop_name, _SCALAR_TAGS[hint], description=description)

        origin = typing.get_origin(hint)
        if origin is dict:
            return PropertyInfo(prop_name, TypeTag.DICTIONARY, description=description)

        if hint is list or (origin is list and not typing.get_args(hint)):
            return PropertyInfo(prop_name, TypeTag.ARRAY, description=description)

        if origin is list:
            return PropertyInfo(
                prop_name,
                TypeTag.ARRAY,
                hint=PropertyHint.ARRAY_TYPE,
                hint_string=self._element_hint(typing.get_args(hint)[0]),
                description=description,
            )

        if hint in _STRUCT_TAGS:
            return PropertyInfo(prop_name, _STRUCT_TAGS[hint], description=description)

        if inspect.isclass(hint) and hint in self.__names:
            return PropertyInfo(prop_name, TypeTag.OBJECT, class_name=self.__names[hint], description=description)

        if inspect.isclass(hint) and issubclass(hint, IntFlag):
            return PropertyInfo(
                prop_name, TypeTag.INT, class_name=self._enum_path(hint),
                usage=PropertyUsage.CLASS_IS_BITFIELD, description=description,
            )

        if inspect.isclass(hint) and issubclass(hint, IntEnum):
            return PropertyInfo(
                prop_name, TypeTag.INT, class_name=self._enum_path(hint),
                usage=PropertyUsage.CLASS_IS_ENUM, description=description,
            )

        # Unknown annotations are reported by the type resolver
        return PropertyInfo(prop_name, TypeTag.NIL, class_name=_type_name(hint), description=description)

    def _element_hint(self, element: Any) -> str:
        if typing.get_origin(element) is Annotated:
            element = typing.get_args(element)[0]
        if element in _ELEMENT_HINTS:
            return _ELEMENT_HINTS[element]
        if typing.get_origin(element) in (list, dict):
            return _ELEMENT_HINTS[typing.get_origin(element)]
        if element in _STRUCT_TAGS:
            return STRUCT_NAMES[_STRUCT_TAGS[element]]
        if inspect.isclass(element) and element in self.__names:
            return self.__names[element]
        if inspect.isclass(element) and issubclass(element, (IntEnum, IntFlag)):
            return self._enum_path(element)
        return _type_name(element)

    def _enum_path(self, enum_cls: type) -> str:
        """
        "Owner.Enum" with the registered name of the owning class.

        Enums declared at module level keep their bare name and are rejected
        as global enums by the type resolver.
        """
        owner_qualname, _, enum_name = enum_cls.__qualname__.rpartition(".")
        if not owner_qualname:
            return enum_name
        for klass, class_name in self.__names.items():
            if klass.__qualname__ == owner_qualname and klass.__module__ == enum_cls.__module__:
                return f"{class_name}.{enum_name}"
        return f"{owner_qualname}.{enum_name}"


def _type_name(hint: Any) -> str:
    return getattr(hint, "__name__", None) or str(hint)
