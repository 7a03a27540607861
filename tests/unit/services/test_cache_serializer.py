"""
Unit tests for JsonCacheSerializer.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List

import pytest
from pydantic import BaseModel

from tagcache.domain.cache.exceptions import (
    CacheDeserializationException,
    CacheSerializationException,
)
from tagcache.services.cache.serializer import JsonCacheSerializer


class ProductDto(BaseModel):
    id: int
    title: str
    created_at: datetime


@dataclass
class Point:
    x: int
    y: int


@pytest.fixture
def serializer():
    return JsonCacheSerializer()


class TestSerialize:
    def test_plain_values(self, serializer):
        assert serializer.serialize("k", {"a": [1, 2]}) == '{"a":[1,2]}'
        assert serializer.serialize("k", None) == "null"

    def test_model_and_dataclass(self, serializer):
        product = ProductDto(id=1, title="Lamp", created_at=datetime(2024, 1, 2, 3, 4, 5))

        payload = serializer.serialize("k", product)

        assert '"created_at":"2024-01-02T03:04:05"' in payload
        assert serializer.serialize("k", Point(1, 2)) == '{"x":1,"y":2}'

    def test_unencodable(self, serializer):
        with pytest.raises(CacheSerializationException) as exc_info:
            serializer.serialize("k", object())

        assert exc_info.value.details["key"] == "k"


class TestDeserialize:
    def test_without_model(self, serializer):
        assert serializer.deserialize("k", '{"a":1}') == {"a": 1}

    def test_with_shapes(self, serializer):
        product = serializer.deserialize(
            "k", '{"id":1,"title":"Lamp","created_at":"2024-01-02T03:04:05"}', ProductDto
        )
        assert product.created_at == datetime(2024, 1, 2, 3, 4, 5)
        assert serializer.deserialize("k", '[{"x":1,"y":2}]', List[Point]) == [Point(1, 2)]
        assert serializer.deserialize("k", '{"a":1}', Dict[str, int]) == {"a": 1}

    def test_shape_mismatch(self, serializer):
        with pytest.raises(CacheDeserializationException) as exc_info:
            serializer.deserialize("k", '{"id":"x"}', ProductDto)

        assert exc_info.value.details["model"] == "ProductDto"

    def test_malformed_payload(self, serializer):
        with pytest.raises(CacheDeserializationException):
            serializer.deserialize("k", "{not json")
