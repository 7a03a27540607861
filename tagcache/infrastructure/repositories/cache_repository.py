"""
Redis Tagged Cache Repository Implementation

Infrastructure implementation of the tagged cache repository using Redis.

Layout:
    {key}                      -> serialized value, PX expiry
    {key_tags_prefix}{key}     -> SET of tags, same PX expiry as the value
    {tag_prefix}{tag}          -> SET of keys, no expiry

Multi-step mutations run as one MULTI/EXEC batch. Errors are raised as
RedisException subclasses; nothing is swallowed here.
"""

import logging
from datetime import timedelta
from typing import (
    Any,
    AsyncIterator,
    Awaitable,
    Callable,
    Dict,
    List,
    Optional,
    Sequence,
    Set,
    Tuple,
    TypeVar,
)

from redis.asyncio import Redis
from redis.asyncio.client import Pipeline
from redis.exceptions import WatchError

from ...constants import KEY_TAGS_PREFIX, TAG_PREFIX
from ...domain.cache.repository_interfaces import TaggedCacheRepository
from ...domain.cache.value_objects import TTL
from ..redis.exceptions import (
    RedisBatchException,
    RedisException,
    RedisOperationException,
)
from ..redis.redis_service import RedisService

logger = logging.getLogger(__name__)

T = TypeVar("T")

_GLOB_SPECIAL = set("*?[]\\")


def _glob_escape(value: str) -> str:
    """Escape a literal for use in a SCAN MATCH pattern."""
    return "".join("\\" + ch if ch in _GLOB_SPECIAL else ch for ch in value)


def _unique(values: Optional[Sequence[str]]) -> List[str]:
    """Drop duplicates, keeping first-seen order."""
    return list(dict.fromkeys(values or ()))


class RedisTaggedCacheRepository(TaggedCacheRepository):
    """Redis implementation of the tagged cache repository."""

    def __init__(
        self,
        redis_service: RedisService,
        tag_prefix: str = TAG_PREFIX,
        key_tags_prefix: str = KEY_TAGS_PREFIX,
        scan_count: int = 100,
        prune_attempts: int = 3,
    ):
        self._redis = redis_service
        self.tag_prefix = tag_prefix
        self.key_tags_prefix = key_tags_prefix
        self.scan_count = scan_count
        self.prune_attempts = prune_attempts

    @property
    def reserved_prefixes(self) -> Tuple[str, ...]:
        return (self.tag_prefix, self.key_tags_prefix)

    def _tag_key(self, tag: str) -> str:
        return f"{self.tag_prefix}{tag}"

    def _key_tags_key(self, key: str) -> str:
        return f"{self.key_tags_prefix}{key}"

    async def _run(
        self,
        operation: str,
        func: Callable[[Redis], Awaitable[T]],
        key: Optional[str] = None,
    ) -> T:
        """Execute one round-trip, wrapping client errors."""
        try:
            return await self._redis.execute(func)
        except RedisException:
            raise
        except Exception as e:
            raise RedisOperationException(operation, key=key, original_error=e) from e

    async def _execute_batch(
        self,
        operation: str,
        build: Callable[[Pipeline], None],
        key: Optional[str] = None,
    ) -> Optional[List[Any]]:
        """
        Queue commands with ``build`` and run them as one MULTI/EXEC.

        Returns the EXEC replies, or None if any queued command failed
        inside EXEC. No rollback is attempted; Redis does not offer one.
        """

        async def _batch(client: Redis) -> List[Any]:
            async with client.pipeline(transaction=True) as pipe:
                build(pipe)
                return await pipe.execute(raise_on_error=False)

        results = await self._run(operation, _batch, key)
        errors: Dict[int, str] = {
            index: str(result)
            for index, result in enumerate(results)
            if isinstance(result, Exception)
        }
        if errors:
            batch_error = RedisBatchException(operation, errors)
            logger.warning(
                batch_error.message,
                extra={"operation": operation, "key": key, "errors": errors},
            )
            return None
        return results

    async def _members(self, set_key: str, operation: str) -> Set[str]:
        return set(await self._run(operation, lambda c: c.smembers(set_key), set_key))

    async def get(self, key: str) -> Optional[str]:
        """Get serialized value by key."""
        return await self._run("get", lambda c: c.get(key), key)

    async def set(
        self, key: str, payload: str, ttl: TTL, tags: Optional[Sequence[str]] = None
    ) -> bool:
        """
        Store value with expiry and optional tags.

        A tagged write replaces the key's tag-set and moves the key out
        of the member-sets of tags it no longer carries.
        """
        px = ttl.milliseconds
        tags = _unique(tags)

        if not tags:
            result = await self._run(
                "set", lambda c: c.set(key, payload, px=px), key
            )
            return bool(result)

        key_tags = self._key_tags_key(key)
        previous = await self._members(key_tags, "set.read_tags")
        dropped = previous.difference(tags)

        def build(pipe: Pipeline) -> None:
            pipe.set(key, payload, px=px)
            pipe.delete(key_tags)
            pipe.sadd(key_tags, *tags)
            pipe.pexpire(key_tags, px)
            for tag in tags:
                pipe.sadd(self._tag_key(tag), key)
            for tag in dropped:
                pipe.srem(self._tag_key(tag), key)

        ok = await self._execute_batch("set", build, key) is not None
        if ok:
            logger.debug(
                f"Stored tagged cache entry: {key}",
                extra={"key": key, "tags": tags, "dropped_tags": sorted(dropped)},
            )
        return ok

    async def remove(self, key: str) -> bool:
        """Delete value, excise key from its tags, delete its tag-set."""
        key_tags = self._key_tags_key(key)
        tags = await self._members(key_tags, "remove.read_tags")

        def build(pipe: Pipeline) -> None:
            pipe.unlink(key)
            for tag in tags:
                pipe.srem(self._tag_key(tag), key)
            pipe.unlink(key_tags)

        return await self._execute_batch("remove", build, key) is not None

    async def remove_by_tag(self, tag: str) -> int:
        """
        Delete every member of tag, their tag-sets, then the tag itself.

        Returns the number of values actually deleted; members that had
        already expired are not counted.
        """
        tag_key = self._tag_key(tag)
        members = await self._members(tag_key, "remove_by_tag.read_members")

        if not members:
            return 0

        return await self._cascade("remove_by_tag", members, [tag])

    async def remove_by_tags(self, tags: Sequence[str]) -> int:
        """Delete the union of members across tags, each key once."""
        tags = _unique(tags)
        if not tags:
            return 0

        tag_keys = [self._tag_key(tag) for tag in tags]
        members = set(
            await self._run(
                "remove_by_tags.read_members", lambda c: c.sunion(*tag_keys)
            )
        )

        if not members:
            return 0

        return await self._cascade("remove_by_tags", members, tags)

    async def _cascade(
        self, operation: str, members: Set[str], tags: Sequence[str]
    ) -> int:
        """Unlink members, their tag-sets and the tags; count deleted values."""
        ordered = sorted(members)

        def build(pipe: Pipeline) -> None:
            # Member-sets of sibling tags keep stale references; pruning clears them
            for member in ordered:
                pipe.unlink(member)
                pipe.unlink(self._key_tags_key(member))
            pipe.unlink(*[self._tag_key(tag) for tag in tags])

        results = await self._execute_batch(operation, build)
        if results is None:
            return 0
        # Replies alternate value / tag-set per member; the tag UNLINK is last
        return sum(int(reply) for reply in results[0 : 2 * len(ordered) : 2])

    async def exists(self, key: str) -> bool:
        """Check if value exists (expiry-aware)."""
        return await self._run("exists", lambda c: c.exists(key), key) > 0

    async def get_ttl(self, key: str) -> Optional[timedelta]:
        """Remaining TTL; None for a missing (-2) or persistent (-1) key."""
        millis = await self._run("pttl", lambda c: c.pttl(key), key)
        if millis is None or millis < 0:
            return None
        return timedelta(milliseconds=millis)

    async def get_tags(self, key: str) -> Set[str]:
        """Tags recorded for key."""
        return await self._members(self._key_tags_key(key), "get_tags")

    async def prune_tag(self, tag: str) -> int:
        """
        Remove references to keys that no longer exist from a tag.

        The tag and its members are WATCHed before the EXISTS probe, so
        the SREM only commits if no member was re-set and the tag was
        not touched in between. A conflicting write aborts the EXEC and
        the pass is retried with fresh members.
        """
        tag_key = self._tag_key(tag)

        for attempt in range(1, self.prune_attempts + 1):
            members = sorted(await self._members(tag_key, "prune_tag.read_members"))
            if not members:
                return 0

            stale = await self._run(
                "prune_tag",
                lambda c, members=members: self._prune_watched(c, tag_key, members),
                tag_key,
            )
            if stale is None:
                logger.debug(
                    f"Tag changed while pruning, retrying: {tag}",
                    extra={"tag": tag, "attempt": attempt},
                )
                continue

            if stale:
                logger.debug(
                    f"Pruned {len(stale)} stale references from tag: {tag}",
                    extra={"tag": tag, "stale": len(stale), "members": len(members)},
                )
            return len(stale)

        logger.warning(
            f"Gave up pruning tag after {self.prune_attempts} conflicting writes: {tag}",
            extra={"tag": tag, "attempts": self.prune_attempts},
        )
        return 0

    async def _prune_watched(
        self, client: Redis, tag_key: str, members: List[str]
    ) -> Optional[List[str]]:
        """SREM vanished members under WATCH; None if a watched key changed."""
        async with client.pipeline(transaction=True) as pipe:
            try:
                await pipe.watch(tag_key, *members)
                flags = await self._probe_exists(client, members)
                stale = [member for member, alive in zip(members, flags) if not alive]
                if not stale:
                    return []
                pipe.multi()
                pipe.srem(tag_key, *stale)
                await pipe.execute()
                return stale
            except WatchError:
                return None

    async def _probe_exists(self, client: Redis, members: List[str]) -> List[Any]:
        """EXISTS for every member in one non-transactional pipeline."""
        async with client.pipeline(transaction=False) as pipe:
            for member in members:
                pipe.exists(member)
            return await pipe.execute()

    async def iter_tags(self) -> AsyncIterator[str]:
        """Yield every tag that has a member-set, via SCAN ... TYPE set."""
        pattern = f"{_glob_escape(self.tag_prefix)}*"
        prefix_length = len(self.tag_prefix)
        cursor = 0
        while True:
            cursor, tag_keys = await self._run(
                "iter_tags",
                lambda c, cursor=cursor: c.scan(
                    cursor=cursor, match=pattern, count=self.scan_count, _type="set"
                ),
            )
            for tag_key in tag_keys:
                yield tag_key[prefix_length:]
            if int(cursor) == 0:
                break
