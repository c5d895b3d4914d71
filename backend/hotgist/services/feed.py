"""Feed assembly for campus timelines.

One request is one pipeline: load candidates, enrich them (bounded fan-out with
a barrier), score, sort and slice. Recency feeds slice before enriching so only
the returned page pays for aggregation; trending feeds must score every
candidate before they can be ordered.
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from time import perf_counter
from typing import Any, Callable, Dict, Optional, Sequence

from pydantic import ValidationError as PydanticValidationError

from hotgist.domain import campuses, models
from hotgist.domain.exceptions import (
    FeedTimeout,
    HotGistError,
    InvalidFilter,
    NotFoundError,
    PartialEnrichmentFailure,
    StorageUnavailable,
)
from hotgist.infra.storage import POSTS, USERS, StorageAdapter, StorageRecord
from hotgist.obs import metrics as obs_metrics
from hotgist.services.aggregator import EngagementAggregator
from hotgist.services.scoring import (
    get_scorer,
    order_by_recency,
    rank,
    recency_key,
    trending_key,
)

LOGGER = logging.getLogger(__name__)

DEFAULT_LIMIT = 20
MAX_LIMIT = 100
DEFAULT_CONCURRENCY = 8
DEFAULT_DEADLINE_SECONDS = 10.0

RECENCY_MODE = "recency"


@dataclass(slots=True)
class FeedQuery:
    campus: Optional[str] = None
    limit: int = DEFAULT_LIMIT
    offset: Optional[int] = None
    cursor: Optional[str] = None
    trending: bool = False
    mode: Optional[str] = None
    deadline: Optional[float] = None


@dataclass(slots=True)
class FeedItem:
    """A post with everything a client renders next to it."""

    post: models.Post
    engagement: models.Engagement
    author: Optional[models.Author]
    score: Optional[float] = None

    @property
    def id(self) -> str:
        return self.post.id

    @property
    def created_at(self) -> datetime:
        return self.post.created_at


@dataclass(slots=True)
class FeedPage:
    items: list[FeedItem]
    total: int
    limit: int
    has_more: bool
    offset: Optional[int] = None
    next_cursor: Optional[str] = None
    last_doc_id: Optional[str] = None
    dropped: list[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.items)


@dataclass(slots=True)
class CursorState:
    post_id: str
    created_at: datetime
    score: float = 0.0

    def key(self) -> tuple[float, float, str]:
        return (self.score, self.created_at.timestamp(), self.post_id)


def encode_cursor(item: Any, *, score: Optional[float] = None) -> str:
    payload = {
        "id": item.id,
        "created_at": item.created_at.isoformat(),
        "score": score or 0.0,
    }
    blob = json.dumps(payload, separators=(",", ":"))
    return base64.urlsafe_b64encode(blob.encode("utf-8")).decode("ascii")


def decode_cursor(value: str) -> CursorState:
    try:
        decoded = base64.urlsafe_b64decode(value.encode("ascii")).decode("utf-8")
        data: Dict[str, Any] = json.loads(decoded)
        return CursorState(
            post_id=str(data["id"]),
            created_at=models.ensure_utc(datetime.fromisoformat(data["created_at"])),
            score=float(data.get("score") or 0.0),
        )
    except (KeyError, ValueError, TypeError, UnicodeError) as exc:
        raise InvalidFilter("Malformed pagination cursor") from exc


def clamp_limit(limit: Optional[int], maximum: int, default: int = DEFAULT_LIMIT) -> int:
    if limit is None:
        limit = default
    return max(1, min(int(limit), maximum))


def _start_index(ordered: Sequence[Any], cursor: Optional[CursorState], offset: Optional[int], key) -> int:
    if cursor is None:
        return offset or 0
    for index, item in enumerate(ordered):
        if item.id == cursor.post_id:
            return index + 1
    # cursor post vanished: resume after its last known sort position
    cursor_key = cursor.key()
    for index, item in enumerate(ordered):
        if key(item) < cursor_key:
            return index
    return len(ordered)


class FeedAssembler:
    """Builds ranked, paginated post listings over any storage adapter."""

    def __init__(
        self,
        storage: StorageAdapter,
        aggregator: EngagementAggregator | None = None,
        *,
        max_limit: int = MAX_LIMIT,
        concurrency: int = DEFAULT_CONCURRENCY,
        deadline: Optional[float] = DEFAULT_DEADLINE_SECONDS,
        clock: Callable[[], datetime] = models.utcnow,
    ) -> None:
        self.storage = storage
        self.aggregator = aggregator or EngagementAggregator(storage)
        self.max_limit = max_limit
        self.concurrency = max(1, concurrency)
        self.deadline = deadline
        self.clock = clock

    async def get_feed(self, query: FeedQuery) -> FeedPage:
        mode = (query.mode or "decay") if query.trending else RECENCY_MODE
        start = perf_counter()
        try:
            page = await self._assemble(query)
        except HotGistError:
            obs_metrics.record_feed(mode, "error")
            raise
        elapsed_ms = (perf_counter() - start) * 1000.0
        obs_metrics.record_feed(mode, "ok")
        obs_metrics.FEED_RANK_DURATION.observe(elapsed_ms)
        LOGGER.info(
            "feed_assembled",
            extra={
                "campus": query.campus or campuses.ALL_CAMPUSES,
                "mode": mode,
                "count": page.count,
                "total": page.total,
                "dropped": len(page.dropped),
                "duration_ms": round(elapsed_ms, 3),
            },
        )
        return page

    async def _assemble(self, query: FeedQuery) -> FeedPage:
        limit = clamp_limit(query.limit, self.max_limit)
        if query.offset is not None and query.cursor is not None:
            raise InvalidFilter("Pass either offset or cursor, not both")
        if query.offset is not None and query.offset < 0:
            raise InvalidFilter("offset must be zero or greater")
        cursor = decode_cursor(query.cursor) if query.cursor else None
        scorer = get_scorer(query.mode) if query.trending else None

        candidates = await self.load_candidates(query.campus)
        now = self.clock()
        dropped: list[str] = []

        if scorer is None:
            ordered_posts = order_by_recency(candidates)
            start_index = _start_index(ordered_posts, cursor, query.offset, recency_key)
            window: Sequence[Any] = ordered_posts[start_index : start_index + limit]
            items = order_by_recency(await self.enrich(window, deadline=query.deadline, dropped=dropped))
        else:
            enriched = await self.enrich(candidates, deadline=query.deadline, dropped=dropped)
            ordered_items = rank(enriched, scorer, now)
            start_index = _start_index(ordered_items, cursor, query.offset, trending_key)
            window = ordered_items[start_index : start_index + limit]
            items = list(window)
            if items:
                top = items[:20]
                obs_metrics.FEED_RANK_SCORE_AVG.set(sum(item.score or 0.0 for item in top) / len(top))

        last = window[-1] if window else None
        next_cursor = None
        if last is not None:
            next_cursor = encode_cursor(last, score=getattr(last, "score", None))
        return FeedPage(
            items=items,
            total=len(candidates),
            limit=limit,
            has_more=len(window) == limit,
            offset=None if cursor is not None else start_index + len(window),
            next_cursor=next_cursor,
            last_doc_id=last.id if last is not None else None,
            dropped=dropped,
        )

    async def load_candidates(self, campus: Optional[str]) -> list[models.Post]:
        """Read every post of the requested campus (or all campuses), tagged with its campus."""

        campus_ids = await campuses.resolve_campus_filter(self.storage, campus)
        posts: list[models.Post] = []
        for campus_id in campus_ids:
            for record in await self.storage.find_by_field(POSTS, "campus", campus_id):
                post = self._parse_post(record, campus_id)
                if post is not None:
                    posts.append(post)
        obs_metrics.FEED_RANK_CANDIDATES.inc(len(posts))
        return posts

    @staticmethod
    def _parse_post(record: StorageRecord, campus_id: str) -> Optional[models.Post]:
        try:
            return models.Post.model_validate({**record, "campus": campus_id})
        except PydanticValidationError:
            LOGGER.warning("feed_candidate_invalid", extra={"post_id": record.get("id"), "campus": campus_id})
            return None

    async def enrich(
        self,
        posts: Sequence[models.Post],
        *,
        deadline: Optional[float] = None,
        dropped: Optional[list[str]] = None,
    ) -> list[FeedItem]:
        """Aggregate engagement and resolve authors for ``posts`` concurrently.

        At most ``concurrency`` posts are in flight. Posts whose enrichment fails
        are left out; if every post failed on storage the whole call fails.
        """

        if not posts:
            return []
        semaphore = asyncio.Semaphore(self.concurrency)

        async def _enrich_one(post: models.Post) -> FeedItem:
            async with semaphore:
                try:
                    return await self.build_item(post)
                except Exception as exc:
                    raise PartialEnrichmentFailure(post.id, str(exc)) from exc

        timeout = self.deadline if deadline is None else deadline
        gathered = asyncio.gather(*(_enrich_one(post) for post in posts), return_exceptions=True)
        try:
            results = await asyncio.wait_for(gathered, timeout=timeout if timeout and timeout > 0 else None)
        except asyncio.TimeoutError:
            LOGGER.warning("feed_enrichment_timeout", extra={"candidates": len(posts), "deadline": timeout})
            raise FeedTimeout(f"Feed enrichment exceeded {timeout}s deadline") from None

        items: list[FeedItem] = []
        failures: list[PartialEnrichmentFailure] = []
        for result in results:
            if isinstance(result, PartialEnrichmentFailure):
                failures.append(result)
                continue
            if isinstance(result, BaseException):
                raise result
            items.append(result)

        for failure in failures:
            obs_metrics.FEED_ENRICHMENT_DROPPED.inc()
            LOGGER.warning(
                "feed_enrichment_dropped",
                extra={"post_id": failure.post_id, "error": failure.detail},
            )
            if dropped is not None:
                dropped.append(failure.post_id)
        if failures and not items and all(isinstance(f.__cause__, StorageUnavailable) for f in failures):
            raise StorageUnavailable("Engagement lookups failed for every post")
        return items

    async def build_item(self, post: models.Post) -> FeedItem:
        engagement = await self.aggregator.aggregate(post.id)
        author = await self.resolve_author(post)
        return FeedItem(post=post, engagement=engagement, author=author)

    async def resolve_author(self, post: models.Post) -> Optional[models.Author]:
        """Registered authors come from ``users``; a deleted account yields ``None``."""

        if post.author_id:
            record = await self.storage.get_by_id(USERS, post.author_id)
            if record is None:
                return None
            return models.Author(
                uid=str(record.get("id") or post.author_id),
                display_name=record.get("displayName") or "Anonymous",
                photo_url=record.get("photoURL") or record.get("photoUrl"),
            )
        if post.author_name:
            return models.Author(display_name=post.author_name)
        return None

    async def get_post(self, post_id: str) -> FeedItem:
        record = await self.storage.get_by_id(POSTS, post_id)
        if record is None:
            raise NotFoundError("Post not found")
        post = models.Post.model_validate(record)
        return await self.build_item(post)


__all__ = [
    "CursorState",
    "FeedAssembler",
    "FeedItem",
    "FeedPage",
    "FeedQuery",
    "clamp_limit",
    "decode_cursor",
    "encode_cursor",
]
