"""Immutable compiled schema value shared by the library, the validator and the instantiator."""

from __future__ import annotations

import json
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from .kinds import ClassDescriptor, EnumDescriptor, PropertyKind
from .validator import SchemaValidator


class CompiledSchema:
    """
    A generated schema document together with everything needed to use it.

    Two compiled schemas are equal when their names and serialized JSON text
    are equal. The document is never handed out directly: `document` returns a
    fresh copy on every call.
    """

    def __init__(
        self,
        name: str,
        document: Dict[str, Any],
        root_kind: PropertyKind,
        classes: Optional[Mapping[str, ClassDescriptor]] = None,
        enums: Optional[Mapping[str, EnumDescriptor]] = None,
        value_wrapped: bool = False,
    ) -> None:
        self.__name = name
        self.__json = json.dumps(document, indent=2)
        self.__document = json.loads(self.__json)
        self.__root_kind = root_kind
        self.__classes = MappingProxyType(dict(classes or {}))
        self.__enums = MappingProxyType(dict(enums or {}))
        self.__value_wrapped = value_wrapped
        self.__validator = SchemaValidator(self.__document, self.__enums)

    @property
    def name(self) -> str:
        return self.__name

    @property
    def json(self) -> str:
        return self.__json

    @property
    def document(self) -> Dict[str, Any]:
        return json.loads(self.__json)

    @property
    def root_kind(self) -> PropertyKind:
        return self.__root_kind

    @property
    def classes(self) -> Mapping[str, ClassDescriptor]:
        return self.__classes

    @property
    def enums(self) -> Mapping[str, EnumDescriptor]:
        """Enum descriptors keyed by "Owner.Enum"."""
        return self.__enums

    @property
    def value_wrapped(self) -> bool:
        return self.__value_wrapped

    @property
    def validator(self) -> SchemaValidator:
        return self.__validator

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CompiledSchema):
            return NotImplemented
        return self.__name == other.name and self.__json == other.json

    def __hash__(self) -> int:
        return hash((self.__name, self.__json))

    def __repr__(self) -> str:
        return f"CompiledSchema(name={self.__name!r}, root_kind={self.__root_kind.describe()})"
