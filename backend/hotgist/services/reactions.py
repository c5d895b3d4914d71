"""Per-user reactions with toggle semantics.

A user holds at most one live reaction per post. Sending the same type again
removes it, a different type replaces it in place.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from hotgist.domain import models
from hotgist.domain.exceptions import NotFoundError, ValidationError
from hotgist.infra.storage import POSTS, REACTIONS, StorageAdapter, StorageRecord
from hotgist.obs import metrics as obs_metrics
from hotgist.services.aggregator import EngagementAggregator, tally_reactions

LOGGER = logging.getLogger(__name__)

ADDED = "added"
UPDATED = "updated"
REMOVED = "removed"


@dataclass(slots=True)
class ToggleResult:
    post_id: str
    user_id: str
    action: str
    user_reaction: Optional[str]
    engagement: models.Engagement


@dataclass(slots=True)
class ReactionSummary:
    post_id: str
    reactions: dict[str, int]
    user_reaction: Optional[str] = None
    details: list[models.Reaction] = field(default_factory=list)

    @property
    def total_reactions(self) -> int:
        return sum(self.reactions.values())


def _oldest_first(records: list[StorageRecord]) -> list[StorageRecord]:
    return sorted(records, key=lambda record: (str(record.get("createdAt") or ""), str(record.get("id"))))


class ReactionService:
    def __init__(self, storage: StorageAdapter, aggregator: EngagementAggregator) -> None:
        self.storage = storage
        self.aggregator = aggregator

    async def _require_post(self, post_id: str) -> None:
        if await self.storage.get_by_id(POSTS, post_id) is None:
            raise NotFoundError("Post not found")

    async def _user_reactions(self, post_id: str, user_id: str) -> list[StorageRecord]:
        records = await self.storage.find_by_field(REACTIONS, "postId", post_id)
        return _oldest_first([record for record in records if record.get("userId") == user_id])

    async def toggle_reaction(self, post_id: str, user_id: str, reaction_type: str) -> ToggleResult:
        if not (user_id or "").strip():
            raise ValidationError("User ID is required")
        if reaction_type not in models.REACTION_TYPES:
            raise ValidationError("Reaction type must be one of: fire, laugh, shock")
        await self._require_post(post_id)

        existing = await self._user_reactions(post_id, user_id)
        # older duplicates from racing writers collapse onto the first record
        for duplicate in existing[1:]:
            await self.storage.delete(REACTIONS, duplicate["id"])

        now = models.utcnow().isoformat()
        if existing and existing[0].get("type") == reaction_type:
            await self.storage.delete(REACTIONS, existing[0]["id"])
            action, user_reaction = REMOVED, None
        elif existing:
            await self.storage.update(REACTIONS, existing[0]["id"], {"type": reaction_type, "updatedAt": now})
            action, user_reaction = UPDATED, reaction_type
        else:
            await self.storage.insert(
                REACTIONS,
                {"postId": post_id, "userId": user_id, "type": reaction_type, "createdAt": now, "updatedAt": now},
            )
            action, user_reaction = ADDED, reaction_type

        obs_metrics.REACTION_TOGGLES.labels(action=action).inc()
        engagement = await self.aggregator.sync_post_counters(post_id)
        LOGGER.info("reaction_toggled", extra={"post_id": post_id, "action": action, "type": reaction_type})
        return ToggleResult(
            post_id=post_id,
            user_id=user_id,
            action=action,
            user_reaction=user_reaction,
            engagement=engagement,
        )

    async def get_reactions(self, post_id: str, user_id: Optional[str] = None) -> ReactionSummary:
        await self._require_post(post_id)
        records = _oldest_first(await self.storage.find_by_field(REACTIONS, "postId", post_id))
        user_reaction = None
        if user_id:
            for record in records:
                if record.get("userId") == user_id:
                    user_reaction = record.get("type")
        details = [models.Reaction.model_validate(record) for record in records if record.get("createdAt")]
        return ReactionSummary(
            post_id=post_id,
            reactions=tally_reactions(records),
            user_reaction=user_reaction,
            details=details,
        )

    async def remove_reaction(self, post_id: str, user_id: str) -> models.Engagement:
        if not (user_id or "").strip():
            raise ValidationError("User ID is required")
        existing = await self._user_reactions(post_id, user_id)
        if not existing:
            raise NotFoundError("Reaction not found")
        for record in existing:
            await self.storage.delete(REACTIONS, record["id"])
        obs_metrics.REACTION_TOGGLES.labels(action=REMOVED).inc()
        return await self.aggregator.sync_post_counters(post_id)


__all__ = ["ADDED", "REMOVED", "ReactionService", "ReactionSummary", "ToggleResult", "UPDATED"]
