"""Comments on posts."""

from __future__ import annotations

import logging
from typing import Optional
from uuid import uuid4

from hotgist.domain import models
from hotgist.domain.exceptions import NotFoundError
from hotgist.infra.storage import COMMENTS, POSTS, StorageAdapter
from hotgist.services.aggregator import EngagementAggregator
from hotgist.services.posts import ANONYMOUS_AUTHOR, clean_content

LOGGER = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 300


class CommentService:
    def __init__(self, storage: StorageAdapter, aggregator: EngagementAggregator) -> None:
        self.storage = storage
        self.aggregator = aggregator

    async def _require_post(self, post_id: str) -> None:
        if await self.storage.get_by_id(POSTS, post_id) is None:
            raise NotFoundError("Post not found")

    async def add_comment(
        self,
        post_id: str,
        content: str,
        *,
        author_id: Optional[str] = None,
        author_name: Optional[str] = None,
    ) -> models.Comment:
        text = clean_content(content, max_length=MAX_COMMENT_LENGTH, label="Comment")
        await self._require_post(post_id)
        comment = models.Comment(
            id=str(uuid4()),
            post_id=post_id,
            author_id=author_id or None,
            author_name=None if author_id else ((author_name or "").strip() or ANONYMOUS_AUTHOR),
            content=text,
            created_at=models.utcnow(),
        )
        await self.storage.insert(COMMENTS, comment.to_record())
        await self.aggregator.sync_post_counters(post_id)
        LOGGER.info("comment_added", extra={"post_id": post_id, "comment_id": comment.id})
        return comment

    async def list_comments(self, post_id: str) -> list[models.Comment]:
        """Comments of a post, oldest first."""
        await self._require_post(post_id)
        records = await self.storage.find_by_field(COMMENTS, "postId", post_id)
        comments = [models.Comment.model_validate(record) for record in records]
        comments.sort(key=lambda comment: (comment.created_at, comment.id))
        return comments

    async def delete_comment(self, comment_id: str) -> None:
        record = await self.storage.get_by_id(COMMENTS, comment_id)
        if record is None:
            raise NotFoundError("Comment not found")
        await self.storage.delete(COMMENTS, comment_id)
        post_id = record.get("postId")
        if post_id:
            await self.aggregator.sync_post_counters(post_id)
        LOGGER.info("comment_deleted", extra={"post_id": post_id, "comment_id": comment_id})


__all__ = ["CommentService", "MAX_COMMENT_LENGTH"]
