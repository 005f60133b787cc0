"""Response-format adapter: wraps a schema document in the OpenAI structured-output envelope."""

import json
import logging
import re
from typing import Any, Dict, Union

from .compiled_schema import CompiledSchema

logger = logging.getLogger(__name__)

# Names OpenAI accepts for json_schema.name
_VALID_NAME = re.compile(r"^[a-zA-Z0-9_-]{1,64}$")


def open_ai_response_format(schema: Union[CompiledSchema, Dict[str, Any]], name: str) -> Dict[str, Any]:
    """
    Build the response_format argument of a chat completion request.

    Returns:
        {"type": "json_schema", "json_schema": {"name": name, "schema": <document>, "strict": True}}
    """
    if isinstance(schema, CompiledSchema):
        document = schema.document
    elif isinstance(schema, dict):
        document = json.loads(json.dumps(schema))
    else:
        raise ValueError(f"schema must be a CompiledSchema or a dict, got {type(schema).__name__}")

    if not _VALID_NAME.match(name or ""):
        logger.warning("Response format name '%s' does not match %s and may be rejected by the provider", name, _VALID_NAME.pattern)

    return {
        "type": "json_schema",
        "json_schema": {
            "name": name,
            "schema": document,
            "strict": True,
        },
    }


def response_format_json(schema: Union[CompiledSchema, Dict[str, Any]], name: str) -> str:
    """Compact JSON text of the envelope."""
    return json.dumps(open_ai_response_format(schema, name), separators=(",", ":"))
