"""
End-to-end structured output: schema -> response_format -> chat completion -> instance.

    library = SchemaLibrary(registry)
    client = ChatCompletionClient("openai")
    person, err = request_structured_output(library, client, "Person", "Make up a person named Charlie ...")

Chat failures (ChatCompletionError, openai errors) propagate to the caller;
schema and instantiation failures come back as (None, error) like every
SchemaLibrary operation.
"""

from __future__ import annotations

import logging
import re
from typing import Any, Optional, Tuple, Union

from .chat_client import ChatCompletionClient, CompletionCallback, build_messages
from .compiled_schema import CompiledSchema
from .errors import SchemaLibraryError
from .schema_library import SchemaLibrary

logger = logging.getLogger(__name__)


def _resolve_schema(
    library: SchemaLibrary, target: Union[str, CompiledSchema]
) -> Tuple[Optional[CompiledSchema], Optional[SchemaLibraryError]]:
    if isinstance(target, CompiledSchema):
        return target, None
    schema = library.get_named_class_schema(target)
    if schema is not None:
        return schema, None
    return library.generate_named_class_schema(target)


def _format_name(schema: CompiledSchema, format_name: Optional[str]) -> str:
    if format_name:
        return format_name
    return re.sub(r"[^a-zA-Z0-9_-]", "_", schema.name)[:64]


def request_structured_output(
    library: SchemaLibrary,
    client: ChatCompletionClient,
    target: Union[str, CompiledSchema],
    user_prompt: str,
    system_prompt: Optional[str] = None,
    format_name: Optional[str] = None,
) -> Tuple[Any, Optional[SchemaLibraryError]]:
    """Ask the model for a value of target (a class name or a compiled schema) and instantiate it."""
    schema, err = _resolve_schema(library, target)
    if err:
        return None, err

    response_format = library.open_ai_response_format(schema, _format_name(schema, format_name))
    text = client.complete(build_messages(user_prompt, system_prompt), response_format)
    return library.instantiate(schema, text)


async def arequest_structured_output(
    library: SchemaLibrary,
    client: ChatCompletionClient,
    target: Union[str, CompiledSchema],
    user_prompt: str,
    system_prompt: Optional[str] = None,
    format_name: Optional[str] = None,
    callback: Optional[CompletionCallback] = None,
) -> Tuple[Any, Optional[SchemaLibraryError]]:
    """Async variant of request_structured_output; the schema work runs before and after the awaited request."""
    schema, err = _resolve_schema(library, target)
    if err:
        return None, err

    response_format = library.open_ai_response_format(schema, _format_name(schema, format_name))
    text = await client.acomplete(build_messages(user_prompt, system_prompt), response_format, callback=callback)
    return library.instantiate(schema, text)
