"""Pull structured data out of free-form model output.

Models wrap JSON in prose or markdown fences. We take the span from the
first opening bracket to the last matching closing bracket. If the payload
itself is broken the span may swallow trailing prose; the caller's parse
step reports that as invalid structured data.
"""

import json
from typing import Any

from pydantic import BaseModel, TypeAdapter, ValidationError

from ..errors import ModelOutputError


_CLOSERS = {"{": "}", "[": "]"}


def extract_json(text: str) -> str:
    """Return the first {...} or [...] span in text.

    Args:
        text: Raw model response

    Returns:
        Substring from the first opener to the last matching closer

    Raises:
        ModelOutputError: If no such span exists
    """
    if text:
        last = {closer: text.rfind(closer) for closer in _CLOSERS.values()}
        for start, char in enumerate(text):
            closer = _CLOSERS.get(char)
            if closer is None:
                continue
            end = last[closer]
            if end > start:
                return text[start:end + 1]

    raise ModelOutputError(f"No JSON found in model response: {text!r:.200}", raw_text=text)


def parse_model_json(
    text: str, schema: type[BaseModel] | TypeAdapter | None = None
) -> Any:
    """Extract and parse JSON, optionally validating against a schema.

    Args:
        text: Raw model response
        schema: Pydantic model class or TypeAdapter for the expected shape

    Raises:
        ModelOutputError: If extraction, parsing or validation fails
    """
    payload = extract_json(text)
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise ModelOutputError(
            f"Model returned invalid structured data: {e}", raw_text=text
        ) from e

    if schema is None:
        return data

    try:
        if isinstance(schema, TypeAdapter):
            return schema.validate_python(data)
        return schema.model_validate(data)
    except ValidationError as e:
        raise ModelOutputError(
            f"Model returned invalid structured data: {e}", raw_text=text
        ) from e
