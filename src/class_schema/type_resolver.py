"""
TypeInfo resolver: decides which PropertyKind a reflected property represents.

Decision table (type tag + class name + hint + usage flags):

- BOOL / INT / FLOAT / STRING / DICTIONARY map to their scalar kinds and RID
  is an INTEGER; value struct tags (VECTOR2, COLOR, BASIS...) map to STRUCT.
- PACKED_*_ARRAY tags are typed arrays of their fixed item kind.
- INT with CLASS_IS_ENUM or CLASS_IS_BITFIELD and a class name of the form
  "Owner.Enum" is an ENUM owned by a user class. Global enums are rejected.
- OBJECT with the name of a known class is an OBJECT (the hint string is
  consulted when the class name is empty).
- ARRAY without an ARRAY_TYPE hint is untyped; with a hint the element kind is
  resolved from the hint string: primitive name, known class, or "Owner.Enum".

Anything else is an UnsupportedTypeError naming the offending tag or hint.
"""

from __future__ import annotations

import logging
from typing import Dict

from .descriptions import clean_description
from .errors import SchemaLibraryError, UnknownClassError, UnsupportedTypeError
from .kinds import (
    PACKED_ELEMENTS,
    PACKED_NAMES,
    STRUCT_LAYOUTS,
    STRUCT_NAMES,
    ClassDescriptor,
    PropertyDescriptor,
    PropertyKind,
)
from .reflection import PropertyHint, PropertyInfo, PropertyUsage, ReflectionSource, TypeTag

logger = logging.getLogger(__name__)


_SCALAR_TAGS: Dict[TypeTag, PropertyKind] = {
    TypeTag.BOOL: PropertyKind.boolean(),
    TypeTag.INT: PropertyKind.integer(),
    TypeTag.FLOAT: PropertyKind.number(),
    TypeTag.STRING: PropertyKind.string(),
    TypeTag.DICTIONARY: PropertyKind.dictionary(),
    TypeTag.RID: PropertyKind.integer(),
}

# Element type names accepted in an ARRAY_TYPE hint string
PRIMITIVE_HINTS: Dict[str, PropertyKind] = {
    "bool": PropertyKind.boolean(),
    "int": PropertyKind.integer(),
    "float": PropertyKind.number(),
    "String": PropertyKind.string(),
    "Dictionary": PropertyKind.dictionary(),
    "Array": PropertyKind.array(),
}
PRIMITIVE_HINTS.update({name: PropertyKind.struct_of(tag) for tag, name in STRUCT_NAMES.items()})
PRIMITIVE_HINTS.update({name: PropertyKind.packed_array(tag) for tag, name in PACKED_NAMES.items()})


def resolve_property_kind(info: PropertyInfo, reflection: ReflectionSource) -> PropertyKind:
    """Map one reflected property to its PropertyKind or raise UnsupportedTypeError."""
    is_enum_usage = bool(info.usage & (PropertyUsage.CLASS_IS_ENUM | PropertyUsage.CLASS_IS_BITFIELD))

    if info.type == TypeTag.INT and is_enum_usage:
        return _resolve_enum_path(
            info.class_name,
            reflection,
            is_bitflags=bool(info.usage & PropertyUsage.CLASS_IS_BITFIELD),
        )

    if info.type == TypeTag.OBJECT:
        return _resolve_object(info, reflection)

    if info.type == TypeTag.ARRAY:
        if info.hint != PropertyHint.ARRAY_TYPE or not info.hint_string:
            return PropertyKind.array()
        return PropertyKind.array(_resolve_hint_string(info.hint_string, reflection))

    if info.type in _SCALAR_TAGS:
        return _SCALAR_TAGS[info.type]

    if info.type in STRUCT_LAYOUTS:
        return PropertyKind.struct_of(info.type)

    if info.type in PACKED_ELEMENTS:
        return PropertyKind.packed_array(info.type)

    raise UnsupportedTypeError(
        f"Unsupported property type {info.type.name} "
        f"(class_name={info.class_name!r}, hint={info.hint.name}, hint_string={info.hint_string!r})"
    )


def _resolve_object(info: PropertyInfo, reflection: ReflectionSource) -> PropertyKind:
    if info.class_name and reflection.class_exists(info.class_name):
        return PropertyKind.object_of(info.class_name)
    if not info.class_name and info.hint_string and reflection.class_exists(info.hint_string):
        return PropertyKind.object_of(info.hint_string)

    referenced = info.class_name or info.hint_string
    if not referenced:
        raise UnsupportedTypeError("Object property does not name a class")
    raise UnsupportedTypeError(f"Object property references unknown class '{referenced}'")


def _resolve_hint_string(hint_string: str, reflection: ReflectionSource) -> PropertyKind:
    if hint_string in PRIMITIVE_HINTS:
        return PRIMITIVE_HINTS[hint_string]

    if reflection.class_exists(hint_string):
        return PropertyKind.object_of(hint_string)

    if "." in hint_string:
        return _resolve_enum_path(hint_string, reflection, is_bitflags=False)

    raise UnsupportedTypeError(
        f"Array element hint '{hint_string}' is neither a primitive type, a known class nor a 'Class.Enum' path"
    )


def _resolve_enum_path(enum_path: str, reflection: ReflectionSource, is_bitflags: bool) -> PropertyKind:
    parts = enum_path.split(".") if enum_path else []
    if len(parts) < 2:
        raise UnsupportedTypeError(
            f"Cannot resolve enum '{enum_path}': global enums are not supported, "
            "the enum must be declared inside a user class"
        )
    if len(parts) != 2 or not all(parts):
        raise UnsupportedTypeError(f"Expected enum path of the form 'ClassName.EnumName', got '{enum_path}'")

    owner_class, enum_name = parts
    if not reflection.class_exists(owner_class):
        raise UnsupportedTypeError(f"Enum '{enum_path}' is owned by unknown class '{owner_class}'")
    return PropertyKind.enum(owner_class, enum_name, is_bitflags=is_bitflags)


def describe_class(reflection: ReflectionSource, class_name: str) -> ClassDescriptor:
    """Resolve every property of class_name into a ClassDescriptor.

    Raises:
        UnknownClassError: class_name is not known to the reflection source.
        SchemaLibraryError: a property failed to resolve; the error is annotated
            with the owning class and property name.
    """
    if not reflection.class_exists(class_name):
        raise UnknownClassError(class_name)
    if class_name in STRUCT_NAMES.values():
        raise UnsupportedTypeError(f"Class '{class_name}' has the name of a built-in value struct")

    properties = []
    for info in reflection.list_properties(class_name):
        try:
            kind = resolve_property_kind(info, reflection)
        except SchemaLibraryError as e:
            raise e.annotate(class_name, info.name)
        properties.append(PropertyDescriptor(info.name, kind, clean_description(info.description)))

    logger.debug("Described class '%s' with %d properties", class_name, len(properties))
    return ClassDescriptor(class_name, tuple(properties))
