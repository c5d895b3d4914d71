"""Windowed top-posts and top-authors views."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional

from hotgist.domain import models
from hotgist.infra.storage import USERS
from hotgist.services.feed import FeedAssembler, FeedItem, clamp_limit
from hotgist.services.scoring import ReactionsPerHourScorer, rank

LOGGER = logging.getLogger(__name__)

TIME_RANGES: dict[str, timedelta] = {
    "1h": timedelta(hours=1),
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}
DEFAULT_TIME_RANGE = "24h"
DEFAULT_USERS_TIME_RANGE = "7d"
USER_TIME_RANGES = ("24h", "7d", "30d")

DEFAULT_LIMIT = 10
MAX_LIMIT = 50


@dataclass(slots=True)
class TrendingPosts:
    items: list[FeedItem]
    time_range: str
    limit: int
    total_posts: int
    posts_with_reactions: int
    total_reactions: int
    generated_at: datetime


@dataclass(slots=True)
class AuthorStats:
    user_id: str
    display_name: str = "Anonymous"
    photo_url: Optional[str] = None
    bio: str = ""
    post_count: int = 0
    total_reactions: int = 0
    total_comments: int = 0


@dataclass(slots=True)
class TrendingAuthors:
    users: list[AuthorStats] = field(default_factory=list)
    time_range: str = DEFAULT_USERS_TIME_RANGE
    limit: int = DEFAULT_LIMIT
    generated_at: Optional[datetime] = None


def window_for(time_range: Optional[str], *, allowed=tuple(TIME_RANGES), default: str = DEFAULT_TIME_RANGE) -> str:
    """Unknown ranges fall back to the default rather than failing."""

    if time_range in allowed:
        return time_range
    return default


class TrendingService:
    """Top posts by reactions per hour, and authors by reactions received."""

    def __init__(self, assembler: FeedAssembler, *, max_limit: int = MAX_LIMIT, default_limit: int = DEFAULT_LIMIT) -> None:
        self.assembler = assembler
        self.default_limit = default_limit
        self.storage = assembler.storage
        self.max_limit = max_limit
        self.scorer = ReactionsPerHourScorer()

    async def _posts_since(self, since: datetime) -> list[models.Post]:
        candidates = await self.assembler.load_candidates(None)
        return [post for post in candidates if post.created_at >= since]

    async def get_trending(self, limit: Optional[int] = None, time_range: Optional[str] = None) -> TrendingPosts:
        time_range = window_for(time_range)
        limit = clamp_limit(limit, self.max_limit, default=self.default_limit)
        now = self.assembler.clock()
        posts = await self._posts_since(now - TIME_RANGES[time_range])
        enriched = await self.assembler.enrich(posts)
        reacted = [item for item in enriched if item.engagement.total_reactions > 0]
        ranked = rank(reacted, self.scorer, now)
        result = TrendingPosts(
            items=ranked[:limit],
            time_range=time_range,
            limit=limit,
            total_posts=len(posts),
            posts_with_reactions=len(reacted),
            total_reactions=sum(item.engagement.total_reactions for item in reacted),
            generated_at=now,
        )
        LOGGER.info(
            "trending_posts_ranked",
            extra={"time_range": time_range, "count": len(result.items), "total": result.total_posts},
        )
        return result

    async def get_trending_users(self, limit: Optional[int] = None, time_range: Optional[str] = None) -> TrendingAuthors:
        time_range = window_for(time_range, allowed=USER_TIME_RANGES, default=DEFAULT_USERS_TIME_RANGE)
        limit = clamp_limit(limit, self.max_limit, default=self.default_limit)
        now = self.assembler.clock()
        posts = [post for post in await self._posts_since(now - TIME_RANGES[time_range]) if post.author_id]

        stats: dict[str, AuthorStats] = {}
        for item in await self.assembler.enrich(posts):
            author_id = item.post.author_id
            entry = stats.setdefault(author_id, AuthorStats(user_id=author_id))
            entry.post_count += 1
            entry.total_reactions += item.engagement.total_reactions
            entry.total_comments += item.engagement.comment_count

        users: list[AuthorStats] = []
        for author_id, entry in stats.items():
            record = await self.storage.get_by_id(USERS, author_id)
            if record is None:
                continue
            entry.display_name = record.get("displayName") or "Anonymous"
            entry.photo_url = record.get("photoURL") or record.get("photoUrl")
            entry.bio = record.get("bio") or ""
            users.append(entry)
        users.sort(key=lambda entry: (entry.total_reactions, entry.post_count, entry.user_id), reverse=True)
        return TrendingAuthors(users=users[:limit], time_range=time_range, limit=limit, generated_at=now)


__all__ = ["AuthorStats", "TIME_RANGES", "TrendingAuthors", "TrendingPosts", "TrendingService", "window_for"]
