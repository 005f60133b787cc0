"""
Schema Library: the public entry point of the engine.

    library = SchemaLibrary(registry)
    schema, err = library.generate_named_class_schema("Person")
    response_format = library.open_ai_response_format(schema, "person")
    ...
    person, err = library.instantiate_named_class("Person", completion_text)
    if err:
        logger.error(err.describe())

Operations never raise SchemaLibraryError across this boundary. They return
(value, None) on success and (None, error) on failure, and log the failure.
Operations on the same class name are serialized; distinct names proceed
independently.
"""

from __future__ import annotations

import json
import logging
import re
import threading
from typing import Any, Dict, List, Optional, Tuple, Union

from .compiled_schema import CompiledSchema
from .errors import (
    MalformedJsonError,
    SchemaLibraryError,
    SchemaNotFoundError,
    ValidationFailedError,
    ValidationReason,
)
from .instantiator import Instantiator
from .reflection import PropertyHint, PropertyInfo, PropertyUsage, ReflectionSource, TypeTag
from .response_format import open_ai_response_format
from .schema_builder import SchemaBuilder

logger = logging.getLogger(__name__)

_FENCED_JSON = re.compile(r"^```[a-zA-Z]*\s*\n?(.*?)\s*```$", re.DOTALL)


def parse_json_text(json_text: Union[str, bytes]) -> Any:
    """Decode JSON text, unwrapping a single markdown code fence around it.

    Raises:
        MalformedJsonError: the text is not valid UTF-8 or JSON, or nests too deeply.
    """
    if isinstance(json_text, bytes):
        try:
            json_text = json_text.decode("utf-8")
        except UnicodeDecodeError as e:
            raise MalformedJsonError(f"JSON bytes are not valid UTF-8 at position {e.start}: {e.reason}") from e
    if not isinstance(json_text, str):
        raise MalformedJsonError(f"Expected JSON text, got {type(json_text).__name__}")

    text = json_text.strip()
    fenced = _FENCED_JSON.match(text)
    if fenced:
        text = fenced.group(1)
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedJsonError(f"Invalid JSON at line {e.lineno} column {e.colno}: {e.msg}") from e
    except RecursionError as e:
        raise MalformedJsonError("JSON nesting too deep") from e


class SchemaLibrary:
    """Registry of generated class schemas over one reflection source."""

    def __init__(self, reflection: ReflectionSource) -> None:
        self.__reflection = reflection
        self.__builder = SchemaBuilder(reflection)
        # class name -> CompiledSchema
        self.__schemas: Dict[str, CompiledSchema] = {}
        self.__registry_lock = threading.Lock()
        self.__key_locks: Dict[str, threading.RLock] = {}

    def _lock_for(self, class_name: str) -> threading.RLock:
        with self.__registry_lock:
            lock = self.__key_locks.get(class_name)
            if lock is None:
                lock = threading.RLock()
                self.__key_locks[class_name] = lock
            return lock

    def _drop_lock(self, class_name: str) -> None:
        """Forget the lock of a name that has no stored schema."""
        with self.__registry_lock:
            if class_name not in self.__schemas:
                self.__key_locks.pop(class_name, None)

    # ----------------------------- Schemas ------------------------------------

    def generate_named_class_schema(self, class_name: str) -> Tuple[Optional[CompiledSchema], Optional[SchemaLibraryError]]:
        """Generate the schema of class_name and store it, replacing any earlier one."""
        with self._lock_for(class_name):
            try:
                schema = self.__builder.build_class_schema(class_name)
            except SchemaLibraryError as e:
                logger.error("Failed to generate schema for class '%s': %s", class_name, e.describe())
                self._drop_lock(class_name)
                return None, e

            with self.__registry_lock:
                replaced = class_name in self.__schemas
                self.__schemas[class_name] = schema
            if replaced:
                logger.info("Regenerated schema for class '%s'; replacing previous schema", class_name)
            else:
                logger.info("Generated schema for class '%s'", class_name)
            return schema, None

    def get_named_class_schema(self, class_name: str) -> Optional[CompiledSchema]:
        with self.__registry_lock:
            return self.__schemas.get(class_name)

    def generate_type_info_schema(
        self,
        type: TypeTag,
        class_name: str = "",
        hint: PropertyHint = PropertyHint.NONE,
        hint_string: str = "",
        usage: PropertyUsage = PropertyUsage.NONE,
    ) -> Tuple[Optional[CompiledSchema], Optional[SchemaLibraryError]]:
        """Schema for a bare type. The result is returned to the caller, not stored."""
        try:
            info = PropertyInfo("", TypeTag(type), class_name, PropertyHint(hint), hint_string, PropertyUsage(usage))
            return self.__builder.build_type_info_schema(info), None
        except SchemaLibraryError as e:
            logger.error("Failed to generate schema for type %s '%s': %s", TypeTag(type).name, class_name or hint_string, e.describe())
            return None, e

    def get_array_schema(
        self,
        class_or_schema: Union[str, CompiledSchema],
        wrapper_name: str,
    ) -> Tuple[Optional[CompiledSchema], Optional[SchemaLibraryError]]:
        """Wrap a stored class schema (by name) or any compiled schema as an array of it."""
        if isinstance(class_or_schema, CompiledSchema):
            item_schema = class_or_schema
        else:
            item_schema = self.get_named_class_schema(class_or_schema)
            if item_schema is None:
                err = SchemaNotFoundError(class_or_schema)
                logger.error("Failed to build array schema '%s': %s", wrapper_name, err.describe())
                return None, err
        return self.__builder.build_array_schema(item_schema, wrapper_name), None

    def list_schemas(self) -> List[str]:
        with self.__registry_lock:
            return list(self.__schemas.keys())

    def remove_schema(self, class_name: str) -> bool:
        with self._lock_for(class_name):
            with self.__registry_lock:
                removed = self.__schemas.pop(class_name, None) is not None
                self.__key_locks.pop(class_name, None)
        if removed:
            logger.info("Removed schema for class '%s'", class_name)
        return removed

    def clear(self) -> None:
        with self.__registry_lock:
            self.__schemas.clear()
            self.__key_locks.clear()
        logger.info("Cleared all schemas")

    # ----------------------------- Instantiation ------------------------------

    def instantiate_named_class(self, class_name: str, json_text: Union[str, bytes]) -> Tuple[Any, Optional[SchemaLibraryError]]:
        """Validate json_text against the stored schema of class_name and build an instance from it."""
        schema = self.get_named_class_schema(class_name)
        if schema is not None:
            with self._lock_for(class_name):
                schema = self.get_named_class_schema(class_name)
                if schema is not None:
                    return self.instantiate(schema, json_text)

        self._drop_lock(class_name)
        err = SchemaNotFoundError(class_name)
        logger.error("Failed to instantiate '%s': %s", class_name, err.describe())
        return None, err

    def instantiate(self, schema: CompiledSchema, json_text: Union[str, bytes]) -> Tuple[Any, Optional[SchemaLibraryError]]:
        """Validate json_text against any compiled schema and build the value it describes."""
        try:
            value = parse_json_text(json_text)
            schema.validator.check(value)
            result = Instantiator(self.__reflection, schema).instantiate(value)
        except SchemaLibraryError as e:
            logger.error("Failed to instantiate '%s': %s", schema.name, e.describe())
            return None, e
        except RecursionError:
            err = ValidationFailedError("", ValidationReason.CONSTRAINT, "JSON value nests too deeply to validate")
            logger.error("Failed to instantiate '%s': %s", schema.name, err.describe())
            return None, err
        logger.debug("Instantiated '%s'", schema.name)
        return result, None

    # ----------------------------- Response format ----------------------------

    @staticmethod
    def open_ai_response_format(schema: Union[CompiledSchema, Dict[str, Any]], name: str) -> Dict[str, Any]:
        return open_ai_response_format(schema, name)
