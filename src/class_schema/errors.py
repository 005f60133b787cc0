"""
Error taxonomy for schema generation, validation and instantiation.

All errors derive from SchemaLibraryError. Inner layers raise them; the
SchemaLibrary boundary converts them into (None, error) results so callers
branch on the returned error instead of catching exceptions.
"""

from __future__ import annotations

from enum import Enum as PyEnum
from typing import Any, List, Optional, Sequence


class ValidationReason(PyEnum):
    MISSING_REQUIRED = 'missing_required'
    UNEXPECTED_PROPERTY = 'unexpected_property'
    TYPE_MISMATCH = 'type_mismatch'
    ENUM_MISMATCH = 'enum_mismatch'
    CONSTRAINT = 'constraint'


class SchemaLibraryError(Exception):
    """Base class of every structured error returned by the library."""

    code = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        # "Owner.property" frames, innermost first
        self.context: List[str] = []

    def annotate(self, owner_class: str, property_name: str) -> "SchemaLibraryError":
        """Record that this error happened while handling owner_class.property_name."""
        self.context.append(f"{owner_class}.{property_name}")
        return self

    @property
    def owner_class(self) -> Optional[str]:
        if not self.context:
            return None
        return self.context[0].rsplit(".", 1)[0]

    @property
    def property_name(self) -> Optional[str]:
        if not self.context:
            return None
        return self.context[0].rsplit(".", 1)[1]

    def describe(self) -> str:
        if not self.context:
            return f"[{self.code}] {self.message}"
        location = " <- ".join(self.context)
        return f"[{self.code}] {location}: {self.message}"

    def __str__(self) -> str:
        return self.describe()


class UnknownClassError(SchemaLibraryError):
    code = "unknown_class"

    def __init__(self, class_name: str, message: Optional[str] = None) -> None:
        super().__init__(message or f"Class '{class_name}' is not registered with the reflection source")
        self.class_name = class_name


class UnknownPropertyError(SchemaLibraryError):
    code = "unknown_property"

    def __init__(self, class_name: str, property_name: str) -> None:
        super().__init__(f"Class '{class_name}' has no property '{property_name}'")
        self.class_name = class_name
        self.unknown_property = property_name


class UnsupportedTypeError(SchemaLibraryError):
    """The resolver could not map a type tag / hint combination to a property kind."""

    code = "unsupported_type"


class SchemaNotFoundError(SchemaLibraryError):
    code = "schema_not_found"

    def __init__(self, class_name: str) -> None:
        super().__init__(f"No schema found for class '{class_name}'. Generate it before instantiating.")
        self.class_name = class_name


class ValidationFailedError(SchemaLibraryError):
    code = "validation_failed"

    def __init__(self, path: str, reason: ValidationReason, message: str) -> None:
        super().__init__(message)
        self.path = path
        self.reason = reason

    def describe(self) -> str:
        pointer = self.path or "/"
        return f"[{self.code}:{self.reason.value}] {pointer}: {self.message}"


class UnknownEnumMemberError(ValidationFailedError):
    code = "unknown_enum_member"

    def __init__(self, enum_name: str, given_value: Any, members: Sequence[str], path: str = "") -> None:
        accepted = ", ".join(members)
        super().__init__(
            path,
            ValidationReason.ENUM_MISMATCH,
            f"Unknown member {given_value!r} for enum '{enum_name}'. Expected one of: {accepted}",
        )
        self.enum_name = enum_name
        self.given_value = given_value
        self.members = list(members)

    def describe(self) -> str:
        described = super().describe()
        if self.context:
            return f"{described} (at {' <- '.join(self.context)})"
        return described


class MalformedJsonError(SchemaLibraryError):
    code = "malformed_json"


class PropertyAssignmentError(SchemaLibraryError):
    code = "property_assignment_failed"

    def __init__(self, class_name: str, property_name: str, reason: str) -> None:
        super().__init__(f"Could not assign property '{property_name}' on '{class_name}': {reason}")
        self.class_name = class_name
        self.rejected_property = property_name


class ConstructionError(SchemaLibraryError):
    code = "construction_failed"

    def __init__(self, class_name: str, reason: str) -> None:
        super().__init__(f"Could not construct an instance of '{class_name}': {reason}")
        self.class_name = class_name
