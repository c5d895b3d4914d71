"""Reaction toggle endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from hotgist.api.deps import get_container
from hotgist.api.schemas import (
	ReactionRemovedResponse,
	ReactionRequest,
	ReactionSummaryResponse,
	ReactionToggleResponse,
)
from hotgist.services import ServiceContainer

router = APIRouter(prefix="/reactions", tags=["reactions"])


@router.post("", response_model=ReactionToggleResponse)
async def toggle_reaction(
	payload: ReactionRequest,
	container: ServiceContainer = Depends(get_container),
) -> ReactionToggleResponse:
	result = await container.reactions.toggle_reaction(payload.post_id, payload.user_id, payload.type)
	return ReactionToggleResponse.from_result(result)


@router.get("/{post_id}", response_model=ReactionSummaryResponse)
async def get_reactions(
	post_id: str,
	user_id: Optional[str] = Query(default=None, alias="userId"),
	container: ServiceContainer = Depends(get_container),
) -> ReactionSummaryResponse:
	summary = await container.reactions.get_reactions(post_id, user_id)
	return ReactionSummaryResponse.from_summary(summary)


@router.delete("/{post_id}", response_model=ReactionRemovedResponse)
async def remove_reaction(
	post_id: str,
	user_id: str = Query(default="", alias="userId"),
	container: ServiceContainer = Depends(get_container),
) -> ReactionRemovedResponse:
	engagement = await container.reactions.remove_reaction(post_id, user_id)
	return ReactionRemovedResponse(
		post_id=post_id,
		user_id=user_id,
		reactions=dict(engagement.reactions),
		total_reactions=engagement.total_reactions,
	)
