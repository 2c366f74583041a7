"""JSON serialization of cached values."""

import json
from enum import Enum
from typing import Any

from .errors import SerializationError

try:
    from pydantic import BaseModel  # type: ignore
except ImportError:
    BaseModel = None


def json_serializer(obj: Any) -> Any:
    """
    Fallback hook for json.dumps that handles:
    - Pydantic BaseModel objects (dumped in JSON mode)
    - Enum members (their value)
    """
    if BaseModel is not None and isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    elif isinstance(obj, Enum):
        return obj.value
    raise TypeError(f"Cannot serialize object {obj!r} of type {type(obj).__name__}")


def encode_value(value: Any) -> bytes:
    """Encode a JSON-representable value."""
    try:
        return json.dumps(
            value, default=json_serializer, allow_nan=False, separators=(",", ":")
        ).encode()
    except (TypeError, ValueError, RecursionError) as e:
        raise SerializationError(
            "Unable to serialise the given value as JSON string."
        ) from e


def decode_value(data: bytes | str) -> Any:
    """Decode a value produced by encode_value."""
    try:
        return json.loads(data)
    except (TypeError, ValueError, UnicodeDecodeError) as e:
        raise SerializationError(
            "An error occurred while parsing the serialised data."
        ) from e
