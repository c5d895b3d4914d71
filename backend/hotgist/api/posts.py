"""Feed, post and comment endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from hotgist.api.deps import get_container, int_param
from hotgist.api.schemas import (
	CommentCreateRequest,
	CommentListResponse,
	CommentResponse,
	CommentView,
	FeedResponse,
	LikeResponse,
	PostCreateRequest,
	PostResponse,
	PostView,
)
from hotgist.domain import campuses
from hotgist.services import ServiceContainer
from hotgist.services.feed import FeedQuery
from hotgist.services.scoring import DEFAULT_MODE
from hotgist.settings import settings

router = APIRouter(tags=["posts"])


@router.get("/posts", response_model=FeedResponse)
async def list_posts(
	campus: Optional[str] = Query(default=None),
	limit: Optional[str] = Query(default=None),
	offset: Optional[str] = Query(default=None),
	cursor: Optional[str] = Query(default=None),
	trending: bool = Query(default=False),
	mode: Optional[str] = Query(default=None),
	container: ServiceContainer = Depends(get_container),
) -> FeedResponse:
	"""Recent or trending posts across one campus or all of them."""
	limit_value = int_param("limit", limit)
	query = FeedQuery(
		campus=campus,
		limit=settings.feed_default_limit if limit_value is None else limit_value,
		offset=int_param("offset", offset),
		cursor=cursor,
		trending=trending,
		mode=mode or DEFAULT_MODE,
	)
	page = await container.feed.get_feed(query)
	return FeedResponse.from_page(
		page,
		campus=campus or campuses.ALL_CAMPUSES,
		trending=trending,
		mode=query.mode,
	)


@router.post("/posts", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
	payload: PostCreateRequest,
	container: ServiceContainer = Depends(get_container),
) -> PostResponse:
	item = await container.posts.create_post(
		payload.content,
		campus=payload.campus,
		author_id=payload.author_id,
		author_name=payload.author_name,
		image_url=payload.image_url,
	)
	return PostResponse(post=PostView.from_item(item))


@router.get("/posts/{post_id}", response_model=PostResponse)
async def get_post(post_id: str, container: ServiceContainer = Depends(get_container)) -> PostResponse:
	item = await container.posts.get_post(post_id)
	return PostResponse(post=PostView.from_item(item))


@router.delete("/posts/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(post_id: str, container: ServiceContainer = Depends(get_container)) -> Response:
	await container.posts.delete_post(post_id)
	return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/posts/{post_id}/like", response_model=LikeResponse)
async def like_post(post_id: str, container: ServiceContainer = Depends(get_container)) -> LikeResponse:
	engagement = await container.posts.like_post(post_id)
	return LikeResponse(post_id=post_id, reactions=dict(engagement.reactions), likes=engagement.total_reactions)


@router.get("/posts/{post_id}/comments", response_model=CommentListResponse)
async def list_comments(post_id: str, container: ServiceContainer = Depends(get_container)) -> CommentListResponse:
	comments = await container.comments.list_comments(post_id)
	return CommentListResponse(
		post_id=post_id,
		count=len(comments),
		comments=[CommentView.from_model(comment) for comment in comments],
	)


@router.post("/posts/{post_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def add_comment(
	post_id: str,
	payload: CommentCreateRequest,
	container: ServiceContainer = Depends(get_container),
) -> CommentResponse:
	comment = await container.comments.add_comment(
		post_id,
		payload.content,
		author_id=payload.author_id,
		author_name=payload.author_name,
	)
	return CommentResponse(comment=CommentView.from_model(comment))


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(comment_id: str, container: ServiceContainer = Depends(get_container)) -> Response:
	await container.comments.delete_comment(comment_id)
	return Response(status_code=status.HTTP_204_NO_CONTENT)
