"""Cleaning of property descriptions before they are embedded in a schema sent to an LLM."""

import re
from typing import Any, Optional

_HTML_TAG = re.compile(r"<[^>]+>")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f-\x9f]")


def clean_description(text: Any) -> Optional[str]:
    """
    Strip markup and control characters from a description; return None if nothing is left.

    Quotes and brackets are kept: descriptions are serialized with json.dumps,
    which escapes them.

    Examples:
        >>> clean_description('<b>First</b> name\\n of the person')
        'First name of the person'
        >>> clean_description('   ')
        >>> clean_description(None)
    """
    if text is None:
        return None
    if not isinstance(text, str):
        text = str(text)

    clean_text = _HTML_TAG.sub("", text)
    clean_text = _CONTROL_CHARS.sub(" ", clean_text)
    clean_text = " ".join(clean_text.split())
    return clean_text or None
