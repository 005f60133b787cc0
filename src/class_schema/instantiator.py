"""
Instantiator: turns decoded JSON into host values, driven by a CompiledSchema.

Conversion dispatches on the PropertyKind tag through a registry of
converters. Objects are created through the reflection source only after all
of their children converted successfully, so a failure never leaves a
partially populated object behind.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Dict, List, Optional

from .compiled_schema import CompiledSchema
from .errors import (
    SchemaLibraryError,
    SchemaNotFoundError,
    UnknownEnumMemberError,
    UnknownPropertyError,
    ValidationFailedError,
    ValidationReason,
)
from .kinds import PACKED_INTEGER_RANGES, PACKED_NAMES, STRUCT_LAYOUTS, STRUCT_NAMES, KindTag, PropertyKind
from .reflection import ReflectionSource
from .validator import json_pointer

logger = logging.getLogger(__name__)


# Function registry of value converters, keyed by kind tag
__converters_registry: Dict[KindTag, Callable] = {}


def _register_converter(kind_tag: KindTag):
    """Decorator to register a JSON-to-host converter for a property kind."""
    def decorator(func: Callable):
        __converters_registry[kind_tag] = func
        return func
    return decorator


def _get_converter(kind_tag: KindTag) -> Optional[Callable]:
    return __converters_registry.get(kind_tag)


def _type_mismatch(path: List[Any], expected: str, value: Any) -> ValidationFailedError:
    return ValidationFailedError(
        json_pointer(path),
        ValidationReason.TYPE_MISMATCH,
        f"Expected {expected}, got {type(value).__name__}",
    )


@_register_converter(KindTag.BOOL)
def convert_bool(instantiator: "Instantiator", kind: PropertyKind, value: Any, path: List[Any]) -> bool:
    if not isinstance(value, bool):
        raise _type_mismatch(path, "boolean", value)
    return value


@_register_converter(KindTag.INTEGER)
def convert_integer(instantiator: "Instantiator", kind: PropertyKind, value: Any, path: List[Any]) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _type_mismatch(path, "integer", value)
    if isinstance(value, float):
        if not value.is_integer():
            raise _type_mismatch(path, "integer", value)
        return int(value)
    return value


@_register_converter(KindTag.FLOAT)
def convert_float(instantiator: "Instantiator", kind: PropertyKind, value: Any, path: List[Any]) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise _type_mismatch(path, "number", value)
    return float(value)


@_register_converter(KindTag.STRING)
def convert_string(instantiator: "Instantiator", kind: PropertyKind, value: Any, path: List[Any]) -> str:
    if not isinstance(value, str):
        raise _type_mismatch(path, "string", value)
    return value


@_register_converter(KindTag.DICTIONARY)
def convert_dictionary(instantiator: "Instantiator", kind: PropertyKind, value: Any, path: List[Any]) -> dict:
    if not isinstance(value, dict):
        raise _type_mismatch(path, "object", value)
    return copy.deepcopy(value)


@_register_converter(KindTag.ARRAY)
def convert_array(instantiator: "Instantiator", kind: PropertyKind, value: Any, path: List[Any]) -> list:
    if not isinstance(value, list):
        raise _type_mismatch(path, "array", value)
    if kind.length is not None and len(value) != kind.length:
        raise ValidationFailedError(
            json_pointer(path),
            ValidationReason.CONSTRAINT,
            f"Expected exactly {kind.length} items, got {len(value)}",
        )
    if kind.element is None:
        return copy.deepcopy(value)
    items = [instantiator.convert(kind.element, item, path + [index]) for index, item in enumerate(value)]
    if kind.packed is None:
        return items

    if kind.packed in PACKED_INTEGER_RANGES:
        minimum, maximum = PACKED_INTEGER_RANGES[kind.packed]
        for index, item in enumerate(items):
            if not minimum <= item <= maximum:
                raise ValidationFailedError(
                    json_pointer(path + [index]),
                    ValidationReason.CONSTRAINT,
                    f"{item} is outside the {PACKED_NAMES[kind.packed]} item range [{minimum}, {maximum}]",
                )
    return instantiator.reflection.construct_packed_array(kind.packed, items)


@_register_converter(KindTag.ENUM)
def convert_enum(instantiator: "Instantiator", kind: PropertyKind, value: Any, path: List[Any]) -> Any:
    descriptor = instantiator.schema.enums.get(kind.enum_path)
    if descriptor is None:
        raise SchemaNotFoundError(kind.enum_path)

    def lookup(member_name: Any, member_path: List[Any]) -> Any:
        host_value = descriptor.lookup(member_name) if isinstance(member_name, str) else None
        if host_value is None:
            raise UnknownEnumMemberError(kind.enum_name, member_name, descriptor.member_names, json_pointer(member_path))
        return host_value

    if not kind.is_bitflags:
        return lookup(value, path)

    if not isinstance(value, list):
        raise _type_mismatch(path, "array of flag names", value)
    # `value & 0` keeps the host flag type for an empty set
    flags = descriptor.members[0][1] & 0
    for index, member_name in enumerate(value):
        flags |= lookup(member_name, path + [index])
    return flags


@_register_converter(KindTag.STRUCT)
def convert_struct(instantiator: "Instantiator", kind: PropertyKind, value: Any, path: List[Any]) -> Any:
    if not isinstance(value, dict):
        raise _type_mismatch(path, STRUCT_NAMES[kind.struct], value)
    components = {}
    for component, component_kind in STRUCT_LAYOUTS[kind.struct]:
        if component not in value:
            raise ValidationFailedError(
                json_pointer(path + [component]),
                ValidationReason.MISSING_REQUIRED,
                f"Missing required property '{component}'",
            )
        components[component] = instantiator.convert(component_kind, value[component], path + [component])
    return instantiator.reflection.construct_struct(kind.struct, components)


@_register_converter(KindTag.OBJECT)
def convert_object(instantiator: "Instantiator", kind: PropertyKind, value: Any, path: List[Any]) -> Any:
    class_name = kind.class_name
    descriptor = instantiator.schema.classes.get(class_name)
    if descriptor is None:
        raise SchemaNotFoundError(class_name)
    if not isinstance(value, dict):
        raise _type_mismatch(path, f"object '{class_name}'", value)

    for key in value:
        if descriptor.get(key) is None:
            raise UnknownPropertyError(class_name, key)

    converted = []
    for prop in descriptor.properties:
        try:
            if prop.name not in value:
                raise ValidationFailedError(
                    json_pointer(path + [prop.name]),
                    ValidationReason.MISSING_REQUIRED,
                    f"Missing required property '{prop.name}'",
                )
            converted.append((prop.name, instantiator.convert(prop.kind, value[prop.name], path + [prop.name])))
        except SchemaLibraryError as e:
            raise e.annotate(class_name, prop.name)

    obj = instantiator.reflection.construct(class_name)
    for property_name, property_value in converted:
        try:
            instantiator.reflection.set_property(obj, property_name, property_value)
        except SchemaLibraryError as e:
            raise e.annotate(class_name, property_name)
    return obj


class Instantiator:
    """Builds one host value from JSON that matches a CompiledSchema."""

    def __init__(self, reflection: ReflectionSource, schema: CompiledSchema) -> None:
        self.__reflection = reflection
        self.__schema = schema

    @property
    def reflection(self) -> ReflectionSource:
        return self.__reflection

    @property
    def schema(self) -> CompiledSchema:
        return self.__schema

    def instantiate(self, value: Any) -> Any:
        if self.__schema.value_wrapped:
            if not isinstance(value, dict) or "value" not in value:
                raise ValidationFailedError("/value", ValidationReason.MISSING_REQUIRED, "Missing required property 'value'")
            return self.convert(self.__schema.root_kind, value["value"], ["value"])
        return self.convert(self.__schema.root_kind, value, [])

    def convert(self, kind: PropertyKind, value: Any, path: List[Any]) -> Any:
        converter = _get_converter(kind.tag)
        if converter is None:
            raise ValidationFailedError(
                json_pointer(path), ValidationReason.CONSTRAINT, f"No converter for property kind '{kind.describe()}'"
            )
        return converter(self, kind, value, path)
