"""
Cache Repository Interfaces

Abstract contract for a tag-indexed key/value store.
Implementations raise on store failure; degrading to safe
defaults is the caller's concern.
"""

from abc import ABC, abstractmethod
from datetime import timedelta
from typing import AsyncIterator, Optional, Sequence, Set, Tuple

from .value_objects import TTL


class TaggedCacheRepository(ABC):
    """
    Key/value store with expiry and a bidirectional key <-> tag index.

    Every value may carry tags. The key's tag-set expires with the
    value; a tag's member-set never expires and is only cleaned by
    explicit removal or pruning.
    """

    @property
    def reserved_prefixes(self) -> Tuple[str, ...]:
        """Key prefixes owned by the index; caller keys must avoid them."""
        return ()

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the serialized value, or None if absent or expired."""

    @abstractmethod
    async def set(
        self, key: str, payload: str, ttl: TTL, tags: Optional[Sequence[str]] = None
    ) -> bool:
        """
        Write a value with expiry, indexing it under tags.

        Returns False when the store reported a failed batch.
        """

    @abstractmethod
    async def remove(self, key: str) -> bool:
        """Delete a value and excise it from every tag it carried."""

    @abstractmethod
    async def remove_by_tag(self, tag: str) -> int:
        """Delete every value carrying tag. Returns number of keys removed."""

    @abstractmethod
    async def remove_by_tags(self, tags: Sequence[str]) -> int:
        """Delete every value carrying any of tags, each exactly once."""

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check if a value exists."""

    @abstractmethod
    async def get_ttl(self, key: str) -> Optional[timedelta]:
        """Remaining lifetime, or None if absent or persistent."""

    @abstractmethod
    async def get_tags(self, key: str) -> Set[str]:
        """Tags currently recorded for key."""

    @abstractmethod
    async def prune_tag(self, tag: str) -> int:
        """Drop member references whose value no longer exists."""

    @abstractmethod
    def iter_tags(self) -> AsyncIterator[str]:
        """Iterate over every tag that currently has a member-set."""
