"""
Reading JSON objects out of free-form model text.

The model is told to answer with a bare JSON object, but replies sometimes
arrive wrapped in a Markdown fence, with a sentence of prose before or after,
or with raw newlines inside string values. extract_json_object() tries, in
order: the whole text, the greedy first-"{" to last-"}" span, then every "{"
as the start of an object. When nothing decodes it raises ModelOutputError
naming the reason, so callers decide between a fallback and an error response.
"""

import json
import re
from typing import TypeVar

from pydantic import BaseModel, ValidationError


ModelT = TypeVar("ModelT", bound=BaseModel)

_FENCE = re.compile(r"^```[a-zA-Z]*\s*(.*?)\s*```$", re.DOTALL)
_OBJECT_SPAN = re.compile(r"\{[\s\S]*\}")

# strict=False lets control characters (raw newlines) appear inside strings
_DECODER = json.JSONDecoder(strict=False)


class ModelOutputError(ValueError):
    """Model text did not contain a usable JSON object."""

    def __init__(self, reason: str, raw: str = ""):
        super().__init__(reason)
        self.reason = reason
        self.raw = raw


def _decode_object(text: str):
    try:
        value = _DECODER.decode(text)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, dict) else None


def extract_json_object(text: str) -> dict:
    """
    Extract the JSON object a model reply carries.

    Args:
        text: Raw message content

    Returns:
        The decoded object

    Raises:
        ModelOutputError: If the text is empty or holds no decodable object
    """
    if not text or not text.strip():
        raise ModelOutputError("empty model response", text or "")

    candidate = text.strip()
    fenced = _FENCE.match(candidate)
    if fenced:
        candidate = fenced.group(1)

    value = _decode_object(candidate)
    if value is not None:
        return value

    span = _OBJECT_SPAN.search(candidate)
    if span is None:
        raise ModelOutputError("no JSON object found in model response", text)

    value = _decode_object(span.group(0))
    if value is not None:
        return value

    for brace in re.finditer(r"\{", candidate):
        try:
            value, _ = _DECODER.raw_decode(candidate, brace.start())
        except json.JSONDecodeError:
            continue
        if isinstance(value, dict):
            return value

    raise ModelOutputError("model response contains no decodable JSON object", text)


def parse_model_output(text: str, model: type[ModelT]) -> ModelT:
    """
    Extract a JSON object from model text and validate it into model.

    Raises:
        ModelOutputError: If extraction or validation fails
    """
    data = extract_json_object(text)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in e.errors())
        raise ModelOutputError(
            f"model JSON failed {model.__name__} validation ({fields})", text
        ) from e
