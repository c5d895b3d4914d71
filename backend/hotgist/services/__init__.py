"""Service wiring shared by the API routers."""

from __future__ import annotations

from dataclasses import dataclass

from hotgist.infra.storage import StorageAdapter
from hotgist.services.aggregator import EngagementAggregator, EngagementCache
from hotgist.services.comments import CommentService
from hotgist.services.feed import FeedAssembler
from hotgist.services.posts import PostService
from hotgist.services.reactions import ReactionService
from hotgist.services.trending import TrendingService
from hotgist.settings import Settings


@dataclass(slots=True)
class ServiceContainer:
    storage: StorageAdapter
    aggregator: EngagementAggregator
    feed: FeedAssembler
    trending: TrendingService
    posts: PostService
    comments: CommentService
    reactions: ReactionService

    @classmethod
    def build(cls, storage: StorageAdapter, config: Settings) -> "ServiceContainer":
        cache = EngagementCache(ttl=config.engagement_cache_ttl_seconds) if config.engagement_cache_enabled else None
        aggregator = EngagementAggregator(storage, cache=cache)
        feed = FeedAssembler(
            storage,
            aggregator,
            max_limit=config.feed_max_limit,
            concurrency=config.feed_fanout_concurrency,
            deadline=config.feed_deadline_seconds,
        )
        return cls(
            storage=storage,
            aggregator=aggregator,
            feed=feed,
            trending=TrendingService(
                feed,
                max_limit=config.trending_max_limit,
                default_limit=config.trending_default_limit,
            ),
            posts=PostService(storage, feed, aggregator),
            comments=CommentService(storage, aggregator),
            reactions=ReactionService(storage, aggregator),
        )


__all__ = ["ServiceContainer"]
