"""
Cache Value Objects

Immutable value objects for the cache domain.
Provides type safety and validation for keys, tags and expiry.
"""

from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from typing import Generic, Optional, TypeVar, Union

from ...constants import MAX_KEY_LENGTH, MAX_TAG_LENGTH

T = TypeVar("T")


class LookupStatus(str, Enum):
    """Outcome of a cache lookup."""

    HIT = "hit"
    MISS = "miss"
    ERROR = "error"


@dataclass(frozen=True)
class CacheKey:
    """
    Immutable cache key value object.

    Keys are opaque strings; only emptiness, length and whitespace
    are checked here. Reserved index prefixes are enforced by the
    repository, which owns them.
    """

    value: str

    def __post_init__(self) -> None:
        """Validate cache key format."""
        if not isinstance(self.value, str) or not self.value:
            raise ValueError("Cache key cannot be empty")

        if len(self.value) > MAX_KEY_LENGTH:
            raise ValueError(f"Cache key too long (max {MAX_KEY_LENGTH} characters)")

        if any(char.isspace() for char in self.value):
            raise ValueError("Cache key cannot contain whitespace")

    @classmethod
    def build(cls, namespace: str, *parts: object) -> "CacheKey":
        """
        Build a colon-joined key, e.g. ``CacheKey.build("category", 5)``.

        None parts are rendered as an empty segment so that optional
        filters still produce distinct, stable keys.
        """
        segments = [namespace] + ["" if p is None else str(p) for p in parts]
        return cls(":".join(segments))

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class CacheTag:
    """
    Cache tag value object for cache invalidation groups.

    Allows invalidating multiple cache entries by tag.
    """

    value: str

    def __post_init__(self) -> None:
        """Validate tag value."""
        if not isinstance(self.value, str) or not self.value:
            raise ValueError("Cache tag cannot be empty")
        if len(self.value) > MAX_TAG_LENGTH:
            raise ValueError(f"Cache tag too long (max {MAX_TAG_LENGTH} characters)")
        if any(char.isspace() for char in self.value):
            raise ValueError("Cache tag cannot contain whitespace")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class TTL:
    """
    Time To Live value object for cache expiration.

    Provides type-safe TTL configuration with validation.
    """

    seconds: float

    def __post_init__(self) -> None:
        """Validate TTL value."""
        if self.seconds <= 0:
            raise ValueError("TTL must be positive")

    @classmethod
    def minutes(cls, minutes: float) -> "TTL":
        """Create TTL from minutes."""
        return cls(minutes * 60)

    @classmethod
    def hours(cls, hours: float) -> "TTL":
        """Create TTL from hours."""
        return cls(hours * 3600)

    @classmethod
    def days(cls, days: float) -> "TTL":
        """Create TTL from days."""
        return cls(days * 86400)

    @classmethod
    def coerce(cls, value: Union["TTL", timedelta, int, float]) -> "TTL":
        """Accept a TTL, a timedelta or a number of seconds."""
        if isinstance(value, TTL):
            return value
        if isinstance(value, timedelta):
            return cls(value.total_seconds())
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"Unsupported expiry type: {type(value).__name__}")
        return cls(value)

    @property
    def milliseconds(self) -> int:
        # PX granularity; never round a sub-millisecond TTL down to 0
        return max(1, int(round(self.seconds * 1000)))

    def to_timedelta(self) -> timedelta:
        return timedelta(seconds=self.seconds)


@dataclass(frozen=True)
class CacheLookup(Generic[T]):
    """
    Result of a cache lookup that keeps a miss and a failure apart.

    ``CacheManager.get`` collapses both into ``None``; callers that
    need to tell them apart use ``CacheManager.lookup``.
    """

    status: LookupStatus
    value: Optional[T] = None
    error: Optional[str] = None

    @classmethod
    def hit(cls, value: T) -> "CacheLookup[T]":
        return cls(LookupStatus.HIT, value)

    @classmethod
    def miss(cls) -> "CacheLookup[T]":
        return cls(LookupStatus.MISS)

    @classmethod
    def failed(cls, error: Union[str, Exception]) -> "CacheLookup[T]":
        return cls(LookupStatus.ERROR, error=str(error))

    @property
    def is_hit(self) -> bool:
        return self.status == LookupStatus.HIT

    @property
    def is_error(self) -> bool:
        return self.status == LookupStatus.ERROR
