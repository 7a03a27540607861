"""
Cache value serializer.

Values are stored as UTF-8 JSON. Reads decode into the shape the
caller asks for (any type pydantic can validate), or into plain
JSON when no shape is given.
"""

import json
from functools import lru_cache
from typing import Any, Optional, Type

from pydantic import TypeAdapter, ValidationError
from pydantic_core import PydanticSerializationError, to_json

from ...domain.cache.exceptions import (
    CacheDeserializationException,
    CacheSerializationException,
)


@lru_cache(maxsize=256)
def _adapter(model: Any) -> TypeAdapter:
    return TypeAdapter(model)


class JsonCacheSerializer:
    """Symmetric JSON codec for cache payloads."""

    def serialize(self, key: str, value: Any) -> str:
        try:
            return to_json(value).decode("utf-8")
        except (PydanticSerializationError, TypeError, ValueError) as e:
            raise CacheSerializationException(key, original_error=e) from e

    def deserialize(self, key: str, payload: str, model: Optional[Type[Any]] = None) -> Any:
        try:
            if model is None:
                return json.loads(payload)
            return _adapter(model).validate_json(payload)
        except (ValidationError, ValueError, TypeError) as e:
            raise CacheDeserializationException(
                key, model=model, original_error=e
            ) from e
