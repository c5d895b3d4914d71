"""Post lifecycle: create, read, delete with cascade and anonymous likes."""

from __future__ import annotations

import logging
from typing import Optional
from uuid import uuid4

from hotgist.domain import campuses, models
from hotgist.domain.exceptions import NotFoundError, ValidationError
from hotgist.infra.storage import COMMENTS, POSTS, REACTIONS, StorageAdapter
from hotgist.services.aggregator import EngagementAggregator
from hotgist.services.feed import FeedAssembler, FeedItem
from hotgist.services.scoring import order_by_recency

LOGGER = logging.getLogger(__name__)

MAX_POST_LENGTH = 1000
MAX_ANONYMOUS_POST_LENGTH = 500
ANONYMOUS_AUTHOR = "Anonymous"


def clean_content(content: Optional[str], *, max_length: int, label: str = "Content") -> str:
    text = (content or "").strip()
    if not text:
        raise ValidationError(f"{label} is required")
    if len(text) > max_length:
        raise ValidationError(f"{label} must be {max_length} characters or fewer")
    return text


class PostService:
    def __init__(self, storage: StorageAdapter, assembler: FeedAssembler, aggregator: EngagementAggregator) -> None:
        self.storage = storage
        self.assembler = assembler
        self.aggregator = aggregator

    async def _require_post(self, post_id: str) -> models.Post:
        record = await self.storage.get_by_id(POSTS, post_id)
        if record is None:
            raise NotFoundError("Post not found")
        return models.Post.model_validate(record)

    async def create_post(
        self,
        content: str,
        *,
        campus: Optional[str] = None,
        author_id: Optional[str] = None,
        author_name: Optional[str] = None,
        image_url: Optional[str] = None,
    ) -> FeedItem:
        limit = MAX_POST_LENGTH if author_id else MAX_ANONYMOUS_POST_LENGTH
        text = clean_content(content, max_length=limit)
        campus = (campus or "").strip() or models.GENERAL_CAMPUS
        if campus not in await campuses.known_campus_ids(self.storage):
            raise ValidationError(f"Unknown campus: {campus}")

        now = models.utcnow()
        post = models.Post(
            id=str(uuid4()),
            content=text,
            campus=campus,
            author_id=author_id or None,
            author_name=None if author_id else ((author_name or "").strip() or ANONYMOUS_AUTHOR),
            image_url=image_url or None,
            created_at=now,
            updated_at=now,
        )
        await self.storage.insert(POSTS, post.to_record())
        LOGGER.info("post_created", extra={"post_id": post.id, "campus": campus})
        author = await self.assembler.resolve_author(post)
        return FeedItem(post=post, engagement=models.Engagement(), author=author)

    async def get_post(self, post_id: str) -> FeedItem:
        return await self.assembler.get_post(post_id)

    async def delete_post(self, post_id: str) -> None:
        """Remove a post with its reactions and comments."""
        await self._require_post(post_id)
        for collection in (REACTIONS, COMMENTS):
            for record in await self.storage.find_by_field(collection, "postId", post_id):
                await self.storage.delete(collection, record["id"])
        await self.storage.delete(POSTS, post_id)
        await self.aggregator.invalidate(post_id)
        LOGGER.info("post_deleted", extra={"post_id": post_id})

    async def like_post(self, post_id: str) -> models.Engagement:
        """Anonymous like: stored as a ``fire`` reaction without a user."""
        await self._require_post(post_id)
        now = models.utcnow().isoformat()
        await self.storage.insert(REACTIONS, {"postId": post_id, "type": "fire", "createdAt": now, "updatedAt": now})
        return await self.aggregator.sync_post_counters(post_id)

    async def list_campus_posts(self, campus: str) -> list[FeedItem]:
        if campus not in await campuses.known_campus_ids(self.storage):
            raise NotFoundError("Campus not found")
        posts = await self.assembler.load_candidates(campus)
        return order_by_recency(await self.assembler.enrich(posts))


__all__ = ["PostService", "clean_content"]
