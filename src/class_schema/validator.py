"""
Validator: checks decoded JSON against a schema document before anything is constructed.

Backed by jsonschema's Draft202012Validator. Every jsonschema error is mapped
to a ValidationFailedError carrying a JSON pointer, a ValidationReason and a
message. A missing required key gets the pointer of the key itself, and every
unexpected key gets its own error.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import jsonschema
from jsonschema import Draft202012Validator

from .errors import UnknownEnumMemberError, ValidationFailedError, ValidationReason
from .kinds import EnumDescriptor

logger = logging.getLogger(__name__)


_REASONS: Dict[str, ValidationReason] = {
    "required": ValidationReason.MISSING_REQUIRED,
    "additionalProperties": ValidationReason.UNEXPECTED_PROPERTY,
    "type": ValidationReason.TYPE_MISMATCH,
    "enum": ValidationReason.ENUM_MISMATCH,
}


def json_pointer(path: Iterable[Any]) -> str:
    """RFC 6901 pointer for a sequence of keys and indexes; the root is ''."""
    parts = [str(part).replace("~", "~0").replace("/", "~1") for part in path]
    return "".join(f"/{part}" for part in parts)


class SchemaValidator:

    def __init__(self, document: Dict[str, Any], enums: Optional[Mapping[str, EnumDescriptor]] = None) -> None:
        Draft202012Validator.check_schema(document)
        self.__validator = Draft202012Validator(document)
        self.__enums = dict(enums or {})

    def validate(self, value: Any) -> Tuple[bool, List[ValidationFailedError]]:
        """Validate a decoded JSON value.

        Returns:
            Tuple of (is_valid, errors). Errors are ordered by pointer depth, then pointer.
        """
        errors: List[ValidationFailedError] = []
        seen = set()
        for err in self.__validator.iter_errors(value):
            for failure in self._map_error(err):
                key = (failure.path, failure.reason, failure.message)
                if key in seen:
                    continue
                seen.add(key)
                errors.append(failure)

        errors.sort(key=lambda failure: (failure.path.count("/"), failure.path))
        if errors:
            logger.debug("Validation found %d errors, first: %s", len(errors), errors[0].describe())
        return len(errors) == 0, errors

    def check(self, value: Any) -> None:
        """Raise the first ValidationFailedError, if any."""
        is_valid, errors = self.validate(value)
        if not is_valid:
            raise errors[0]

    def _map_error(self, err: jsonschema.exceptions.ValidationError) -> List[ValidationFailedError]:
        path = list(err.absolute_path)
        pointer = json_pointer(path)

        if err.validator == "required" and isinstance(err.instance, dict):
            return [
                ValidationFailedError(
                    json_pointer(path + [key]),
                    ValidationReason.MISSING_REQUIRED,
                    f"Missing required property '{key}'",
                )
                for key in err.validator_value
                if key not in err.instance
            ]

        if err.validator == "additionalProperties" and isinstance(err.instance, dict):
            declared = err.schema.get("properties", {})
            return [
                ValidationFailedError(
                    json_pointer(path + [key]),
                    ValidationReason.UNEXPECTED_PROPERTY,
                    f"Unexpected property '{key}'",
                )
                for key in err.instance
                if key not in declared
            ]

        if err.validator == "enum":
            return [UnknownEnumMemberError(self._enum_name(err.validator_value), err.instance, err.validator_value, pointer)]

        reason = _REASONS.get(err.validator, ValidationReason.CONSTRAINT)
        return [ValidationFailedError(pointer, reason, err.message)]

    def _enum_name(self, members: List[Any]) -> str:
        for descriptor in self.__enums.values():
            if list(descriptor.member_names) == list(members):
                return descriptor.enum_name
        return "enum"
