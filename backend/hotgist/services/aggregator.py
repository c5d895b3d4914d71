"""Engagement roll-up: reaction counts per type and comment activity per post."""

from __future__ import annotations

import asyncio
import json
import logging
import weakref
from datetime import datetime
from typing import Any, Awaitable, Callable

from redis.exceptions import RedisError

from hotgist.domain import models
from hotgist.infra.redis import RedisProxy, redis_client
from hotgist.infra.storage import COMMENTS, POSTS, REACTIONS, StorageAdapter, StorageRecord
from hotgist.obs import metrics as obs_metrics

LOGGER = logging.getLogger(__name__)

EngagementBuilder = Callable[[], Awaitable[models.Engagement]]


def _record_time(record: StorageRecord) -> datetime | None:
    raw = record.get("createdAt") or record.get("timestamp")
    if not raw:
        return None
    try:
        return models.ensure_utc(datetime.fromisoformat(str(raw).replace("Z", "+00:00")))
    except ValueError:
        return None


def tally_reactions(records: list[StorageRecord]) -> dict[str, int]:
    """Count reactions per known type; unknown or missing types are skipped."""

    counts = models.empty_reaction_counts()
    for record in records:
        kind = record.get("type")
        if kind in counts:
            counts[kind] += 1
    return counts


class EngagementCache:
    """Redis JSON cache for per-post engagement with per-key singleflight.

    Cache faults degrade to a miss so aggregation keeps working without Redis.
    """

    def __init__(self, redis: RedisProxy | None = None, *, ttl: int = 30, namespace: str = "hotgist:eng:") -> None:
        self.redis = redis or redis_client
        self.ttl = ttl
        self.namespace = namespace
        # entries vanish once no caller holds the lock
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def _key(self, post_id: str) -> str:
        return f"{self.namespace}{post_id}"

    def _lock(self, post_id: str) -> asyncio.Lock:
        lock = self._locks.get(post_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[post_id] = lock
        return lock

    async def get(self, post_id: str) -> models.Engagement | None:
        try:
            raw = await self.redis.get(self._key(post_id))
        except (RedisError, OSError):
            LOGGER.warning("engagement_cache_read_failed", extra={"post_id": post_id}, exc_info=True)
            return None
        if not raw:
            return None
        try:
            return models.Engagement.from_payload(json.loads(raw))
        except (ValueError, TypeError):
            return None

    async def set(self, post_id: str, engagement: models.Engagement) -> None:
        try:
            await self.redis.set(self._key(post_id), json.dumps(engagement.to_payload()), ex=self.ttl)
        except (RedisError, OSError):
            LOGGER.warning("engagement_cache_write_failed", extra={"post_id": post_id}, exc_info=True)

    async def invalidate(self, post_id: str) -> None:
        try:
            await self.redis.delete(self._key(post_id))
        except (RedisError, OSError):
            LOGGER.warning("engagement_cache_invalidate_failed", extra={"post_id": post_id}, exc_info=True)

    async def get_or_build(self, post_id: str, *, builder: EngagementBuilder) -> models.Engagement:
        cached = await self.get(post_id)
        if cached is not None:
            obs_metrics.record_cache(True)
            return cached
        async with self._lock(post_id):
            cached = await self.get(post_id)
            if cached is not None:
                obs_metrics.record_cache(True)
                return cached
            obs_metrics.record_cache(False)
            value = await builder()
            await self.set(post_id, value)
            return value


class EngagementAggregator:
    """Derives engagement for a post from its live Reaction and Comment records.

    Storage errors propagate unchanged (``StorageUnavailable``); retrying is the
    caller's decision.
    """

    def __init__(self, storage: StorageAdapter, *, cache: EngagementCache | None = None) -> None:
        self.storage = storage
        self.cache = cache

    async def aggregate(self, post_id: str) -> models.Engagement:
        if self.cache is not None:
            return await self.cache.get_or_build(post_id, builder=lambda: self.compute(post_id))
        return await self.compute(post_id)

    async def compute(self, post_id: str) -> models.Engagement:
        reactions = await self.storage.find_by_field(REACTIONS, "postId", post_id)
        comments = await self.storage.find_by_field(COMMENTS, "postId", post_id)
        comment_times = tuple(
            created for created in (_record_time(comment) for comment in comments) if created is not None
        )
        return models.Engagement(
            reactions=tally_reactions(reactions),
            comment_count=len(comments),
            comment_times=comment_times,
        )

    async def invalidate(self, post_id: str) -> None:
        if self.cache is not None:
            await self.cache.invalidate(post_id)

    async def sync_post_counters(self, post_id: str) -> models.Engagement:
        """Refresh the denormalized counters on a post after a reaction or comment write.

        Plain read-modify-write: two concurrent writers may each store a stale
        count until the next write. Reads never trust these counters.
        """

        await self.invalidate(post_id)
        engagement = await self.compute(post_id)
        partial: dict[str, Any] = {
            "reactionCount": engagement.total_reactions,
            "commentCount": engagement.comment_count,
            "updatedAt": models.utcnow().isoformat(),
        }
        await self.storage.update(POSTS, post_id, partial)
        if self.cache is not None:
            await self.cache.set(post_id, engagement)
        return engagement


__all__ = ["EngagementAggregator", "EngagementCache", "tally_reactions"]
