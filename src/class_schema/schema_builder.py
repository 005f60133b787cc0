"""
Schema Node Builder.

Walks ClassDescriptors and emits JSON Schema (Draft 2020-12) fragments.
Classes, enums and value structs are hoisted into "$defs" and referenced with
"$ref": "#/$defs/<Name>". A name that is already present in the accumulator
(including a class whose node is still being built) is referenced without
descending into it again, which keeps schemas of cyclic class graphs finite.

Example for a Person class with a nested Gender enum and a list of Facts:

{
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "$defs": {
        "Fact": {"type": "object", "properties": {...}, "required": [...], "additionalProperties": false},
        "Gender": {"type": "string", "enum": ["Male", "Female"]}
    },
    "type": "object",
    "properties": {
        "first_name": {"type": "string"},
        "gender": {"$ref": "#/$defs/Gender"},
        "facts": {"type": "array", "items": {"$ref": "#/$defs/Fact"}}
    },
    "required": ["first_name", "gender", "facts"],
    "additionalProperties": false
}
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Dict, Optional, Tuple

from .compiled_schema import CompiledSchema
from .errors import SchemaLibraryError, UnsupportedTypeError
from .kinds import (
    PACKED_INTEGER_RANGES,
    STRUCT_LAYOUTS,
    STRUCT_NAMES,
    ClassDescriptor,
    EnumDescriptor,
    KindTag,
    PropertyKind,
)
from .reflection import PropertyInfo, ReflectionSource
from .type_resolver import describe_class, resolve_property_kind

logger = logging.getLogger(__name__)

JSON_SCHEMA_DIALECT = "https://json-schema.org/draft/2020-12/schema"
DEFS_KEY = "$defs"


def ref_to(def_name: str) -> Dict[str, str]:
    return {"$ref": f"#/{DEFS_KEY}/{def_name}"}


class SchemaDefinitions:
    """
    Accumulator of shared definitions for one schema document.

    A reserved name maps to None until its node is stored; lookups treat
    reserved names as present so recursion stops at them.
    """

    def __init__(self) -> None:
        self.__defs: Dict[str, Optional[Dict[str, Any]]] = {}
        # def name -> identity of the thing it holds, e.g. ("class", "Person")
        self.__owners: Dict[str, Tuple[str, str]] = {}
        self.__referenced: set = set()
        self.__classes: Dict[str, ClassDescriptor] = {}
        self.__enums: Dict[str, EnumDescriptor] = {}
        self.__enum_keys: Dict[str, str] = {}

    def __contains__(self, def_name: str) -> bool:
        return def_name in self.__defs

    def owner_of(self, def_name: str) -> Optional[Tuple[str, str]]:
        return self.__owners.get(def_name)

    def reserve(self, def_name: str, owner: Tuple[str, str]) -> None:
        if def_name in self.__defs:
            raise ValueError(f"Definition '{def_name}' is already reserved")
        self.__defs[def_name] = None
        self.__owners[def_name] = owner

    def store(self, def_name: str, node: Dict[str, Any]) -> None:
        self.__defs[def_name] = node

    def discard(self, def_name: str) -> None:
        self.__defs.pop(def_name, None)
        self.__owners.pop(def_name, None)

    def ref(self, def_name: str) -> Dict[str, str]:
        self.__referenced.add(def_name)
        return ref_to(def_name)

    def is_referenced(self, def_name: str) -> bool:
        return def_name in self.__referenced

    def add_class(self, descriptor: ClassDescriptor) -> None:
        self.__classes[descriptor.name] = descriptor

    def add_enum(self, descriptor: EnumDescriptor, def_name: str) -> None:
        path = f"{descriptor.owner_class}.{descriptor.enum_name}"
        self.__enums[path] = descriptor
        self.__enum_keys[path] = def_name

    def enum_def_name(self, enum_path: str) -> Optional[str]:
        return self.__enum_keys.get(enum_path)

    @property
    def classes(self) -> Dict[str, ClassDescriptor]:
        return dict(self.__classes)

    @property
    def enums(self) -> Dict[str, EnumDescriptor]:
        return dict(self.__enums)

    def to_defs(self) -> Dict[str, Dict[str, Any]]:
        """Stored definitions sorted by name; unfinished reservations are left out."""
        return {name: self.__defs[name] for name in sorted(self.__defs) if self.__defs[name] is not None}


# Function registry of property node builders, keyed by kind tag
__node_builders_registry: Dict[KindTag, Callable] = {}


def _register_node_builder(kind_tag: KindTag):
    """Decorator to register a node builder function for a property kind."""
    def decorator(func: Callable):
        __node_builders_registry[kind_tag] = func
        return func
    return decorator


def _get_node_builder(kind_tag: KindTag) -> Optional[Callable]:
    return __node_builders_registry.get(kind_tag)


@_register_node_builder(KindTag.BOOL)
def boolean_node(builder: "SchemaBuilder", kind: PropertyKind, definitions: SchemaDefinitions) -> Dict[str, Any]:
    return {"type": "boolean"}


@_register_node_builder(KindTag.INTEGER)
def integer_node(builder: "SchemaBuilder", kind: PropertyKind, definitions: SchemaDefinitions) -> Dict[str, Any]:
    return {"type": "integer"}


@_register_node_builder(KindTag.FLOAT)
def number_node(builder: "SchemaBuilder", kind: PropertyKind, definitions: SchemaDefinitions) -> Dict[str, Any]:
    return {"type": "number"}


@_register_node_builder(KindTag.STRING)
def string_node(builder: "SchemaBuilder", kind: PropertyKind, definitions: SchemaDefinitions) -> Dict[str, Any]:
    return {"type": "string"}


@_register_node_builder(KindTag.DICTIONARY)
def dictionary_node(builder: "SchemaBuilder", kind: PropertyKind, definitions: SchemaDefinitions) -> Dict[str, Any]:
    # Keys and values of a Dictionary are not known statically
    return {"type": "object"}


@_register_node_builder(KindTag.ARRAY)
def array_node(builder: "SchemaBuilder", kind: PropertyKind, definitions: SchemaDefinitions) -> Dict[str, Any]:
    node: Dict[str, Any] = {"type": "array"}
    if kind.element is not None:
        items = builder.node_for(kind.element, definitions)
        if kind.packed in PACKED_INTEGER_RANGES:
            minimum, maximum = PACKED_INTEGER_RANGES[kind.packed]
            items = dict(items, minimum=minimum, maximum=maximum)
        node["items"] = items
    if kind.length is not None:
        node["minItems"] = kind.length
        node["maxItems"] = kind.length
    return node


@_register_node_builder(KindTag.OBJECT)
def object_node(builder: "SchemaBuilder", kind: PropertyKind, definitions: SchemaDefinitions) -> Dict[str, Any]:
    class_name = kind.class_name
    owner = definitions.owner_of(class_name)
    if owner is not None and owner != ("class", class_name):
        raise UnsupportedTypeError(f"Class '{class_name}' clashes with the {owner[0]} definition '{owner[1]}'")
    if class_name in definitions:
        return definitions.ref(class_name)

    definitions.reserve(class_name, ("class", class_name))
    descriptor = describe_class(builder.reflection, class_name)
    definitions.add_class(descriptor)
    definitions.store(class_name, builder.build(descriptor, definitions))
    return definitions.ref(class_name)


@_register_node_builder(KindTag.ENUM)
def enum_node(builder: "SchemaBuilder", kind: PropertyKind, definitions: SchemaDefinitions) -> Dict[str, Any]:
    def_name = definitions.enum_def_name(kind.enum_path)
    if def_name is None:
        def_name = builder.enum_def_name(kind, definitions)
        definitions.reserve(def_name, ("enum", kind.enum_path))
        members = builder.reflection.resolve_enum_members(kind.class_name, kind.enum_name)
        if not members:
            definitions.discard(def_name)
            raise UnsupportedTypeError(f"Enum '{kind.enum_path}' has no members")
        descriptor = EnumDescriptor(
            kind.class_name,
            kind.enum_name,
            tuple((member_name, value) for member_name, value in members),
            kind.is_bitflags,
        )
        definitions.add_enum(descriptor, def_name)
        definitions.store(def_name, {"type": "string", "enum": list(descriptor.member_names)})

    if kind.is_bitflags:
        # A set of flags is sent as the list of its member names
        return {"type": "array", "items": definitions.ref(def_name)}
    return definitions.ref(def_name)


@_register_node_builder(KindTag.STRUCT)
def struct_node(builder: "SchemaBuilder", kind: PropertyKind, definitions: SchemaDefinitions) -> Dict[str, Any]:
    struct_name = STRUCT_NAMES[kind.struct]
    if struct_name in definitions:
        return definitions.ref(struct_name)

    definitions.reserve(struct_name, ("struct", struct_name))
    layout = STRUCT_LAYOUTS[kind.struct]
    definitions.store(struct_name, {
        "type": "object",
        "properties": {component: builder.node_for(component_kind, definitions) for component, component_kind in layout},
        "required": [component for component, _ in layout],
        "additionalProperties": False,
    })
    return definitions.ref(struct_name)


class SchemaBuilder:
    """Builds schema documents for classes, bare types and arrays of either."""

    def __init__(self, reflection: ReflectionSource) -> None:
        self.__reflection = reflection

    @property
    def reflection(self) -> ReflectionSource:
        return self.__reflection

    def node_for(self, kind: PropertyKind, definitions: SchemaDefinitions) -> Dict[str, Any]:
        node_builder = _get_node_builder(kind.tag)
        if node_builder is None:
            raise UnsupportedTypeError(f"No schema node builder for property kind '{kind.describe()}'")
        return node_builder(self, kind, definitions)

    def build(self, descriptor: ClassDescriptor, definitions: SchemaDefinitions) -> Dict[str, Any]:
        """Return the object node of one class, registering everything it references in definitions."""
        properties: Dict[str, Any] = {}
        for prop in descriptor.properties:
            try:
                node = self.node_for(prop.kind, definitions)
            except SchemaLibraryError as e:
                raise e.annotate(descriptor.name, prop.name)
            if prop.description:
                node = dict(node)
                node["description"] = prop.description
            properties[prop.name] = node

        return {
            "type": "object",
            "properties": properties,
            "required": list(descriptor.property_names),
            "additionalProperties": False,
        }

    def enum_def_name(self, kind: PropertyKind, definitions: SchemaDefinitions) -> str:
        """Short enum name unless it clashes with another definition, a class or a struct."""
        short_name = kind.enum_name
        owner = definitions.owner_of(short_name)
        clashes = (
            (owner is not None and owner != ("enum", kind.enum_path))
            or self.__reflection.class_exists(short_name)
            or short_name in STRUCT_NAMES.values()
        )
        if clashes:
            logger.debug("Enum '%s' clashes with an existing definition, using its qualified name", kind.enum_path)
            return kind.enum_path
        return short_name

    def build_class_schema(self, class_name: str, name: Optional[str] = None) -> CompiledSchema:
        """Build the schema document rooted at class_name."""
        definitions = SchemaDefinitions()
        # The root is reserved so that back references to it stop recursion
        definitions.reserve(class_name, ("class", class_name))
        descriptor = describe_class(self.__reflection, class_name)
        definitions.add_class(descriptor)
        root = self.build(descriptor, definitions)

        if definitions.is_referenced(class_name):
            definitions.store(class_name, copy.deepcopy(root))
        else:
            definitions.discard(class_name)

        document = self._assemble(definitions.to_defs(), root)
        logger.debug("Built schema for class '%s' with %d definitions", class_name, len(document[DEFS_KEY]))
        return CompiledSchema(
            name or class_name,
            document,
            PropertyKind.object_of(class_name),
            classes=definitions.classes,
            enums=definitions.enums,
        )

    def build_type_info_schema(self, info: PropertyInfo) -> CompiledSchema:
        """
        Build a schema for a bare type described by a PropertyInfo.

        Object types produce the class schema. Dictionary is used as the root
        as is. Every other kind is wrapped as {"value": <node>} so that the
        root stays an object.
        """
        kind = resolve_property_kind(info, self.__reflection)
        if kind.tag == KindTag.OBJECT:
            return self.build_class_schema(kind.class_name)

        name = info.name or kind.describe()
        if kind.tag == KindTag.DICTIONARY:
            return CompiledSchema(name, self._assemble({}, {"type": "object"}), kind)

        definitions = SchemaDefinitions()
        try:
            node = self.node_for(kind, definitions)
        except SchemaLibraryError as e:
            raise e.annotate(name, "value")
        root = {
            "type": "object",
            "properties": {"value": node},
            "required": ["value"],
            "additionalProperties": False,
        }
        return CompiledSchema(
            name,
            self._assemble(definitions.to_defs(), root),
            kind,
            classes=definitions.classes,
            enums=definitions.enums,
            value_wrapped=True,
        )

    def build_array_schema(self, item_schema: CompiledSchema, wrapper_name: str) -> CompiledSchema:
        """
        Wrap an item schema as an array.

        The item "$defs" are reused unmodified and the item root node (without
        "$schema" and "$defs") becomes "items". A value-wrapped item contributes
        its inner value node.
        """
        item_document = item_schema.document
        defs = item_document.pop(DEFS_KEY, {})
        item_document.pop("$schema", None)
        if item_schema.value_wrapped:
            item_document = item_document["properties"]["value"]

        root = {"type": "array", "items": item_document}
        return CompiledSchema(
            wrapper_name,
            self._assemble(defs, root),
            PropertyKind.array(item_schema.root_kind),
            classes=item_schema.classes,
            enums=item_schema.enums,
        )

    @staticmethod
    def _assemble(defs: Dict[str, Any], root: Dict[str, Any]) -> Dict[str, Any]:
        document: Dict[str, Any] = {"$schema": JSON_SCHEMA_DIALECT, DEFS_KEY: defs}
        document.update(root)
        return document
