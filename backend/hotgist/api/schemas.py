"""Request and response bodies for the HotGist HTTP API (camelCase on the wire)."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from hotgist.domain import models
from hotgist.services.feed import FeedItem, FeedPage
from hotgist.services.reactions import ReactionSummary, ToggleResult
from hotgist.services.trending import AuthorStats, TrendingAuthors, TrendingPosts


class ApiModel(BaseModel):
	model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PostCreateRequest(ApiModel):
	content: str = Field(..., min_length=1, max_length=1000)
	campus: Optional[str] = None
	author_id: Optional[str] = None
	author_name: Optional[str] = Field(default=None, max_length=80)
	image_url: Optional[str] = None


class CommentCreateRequest(ApiModel):
	content: str = Field(..., min_length=1, max_length=300, validation_alias=AliasChoices("content", "text"))
	author_id: Optional[str] = None
	author_name: Optional[str] = Field(default=None, max_length=80)


class ReactionRequest(ApiModel):
	post_id: str = Field(..., min_length=1)
	user_id: str = Field(..., min_length=1)
	type: str


class AuthorView(ApiModel):
	uid: Optional[str] = None
	display_name: str = "Anonymous"
	photo_url: Optional[str] = Field(default=None, serialization_alias="photoURL")


class PostView(ApiModel):
	id: str
	content: str
	campus: str
	author_id: Optional[str] = None
	author_name: Optional[str] = None
	author: Optional[AuthorView] = None
	image_url: Optional[str] = None
	reactions: dict[str, int]
	reaction_count: int
	comment_count: int
	trending_score: Optional[float] = None
	created_at: datetime
	updated_at: Optional[datetime] = None

	@classmethod
	def from_item(cls, item: FeedItem) -> "PostView":
		post = item.post
		author = None
		if item.author is not None:
			author = AuthorView(
				uid=item.author.uid,
				display_name=item.author.display_name,
				photo_url=item.author.photo_url,
			)
		return cls(
			id=post.id,
			content=post.content,
			campus=post.campus,
			author_id=post.author_id,
			author_name=post.author_name,
			author=author,
			image_url=post.image_url,
			reactions=dict(item.engagement.reactions),
			reaction_count=item.engagement.total_reactions,
			comment_count=item.engagement.comment_count,
			trending_score=round(item.score, 4) if item.score is not None else None,
			created_at=post.created_at,
			updated_at=post.updated_at,
		)


class FeedResponse(ApiModel):
	success: bool = True
	posts: list[PostView]
	has_more: bool
	last_doc_id: Optional[str] = None
	next_cursor: Optional[str] = None
	offset: Optional[int] = None
	total: int
	count: int
	limit: int
	campus: str
	trending: bool
	mode: Optional[str] = None

	@classmethod
	def from_page(cls, page: FeedPage, *, campus: str, trending: bool, mode: Optional[str]) -> "FeedResponse":
		return cls(
			posts=[PostView.from_item(item) for item in page.items],
			has_more=page.has_more,
			last_doc_id=page.last_doc_id,
			next_cursor=page.next_cursor,
			offset=page.offset,
			total=page.total,
			count=page.count,
			limit=page.limit,
			campus=campus,
			trending=trending,
			mode=mode if trending else None,
		)


class PostResponse(ApiModel):
	success: bool = True
	post: PostView


class PostListResponse(ApiModel):
	success: bool = True
	campus: str
	count: int
	posts: list[PostView]


class LikeResponse(ApiModel):
	success: bool = True
	post_id: str
	reactions: dict[str, int]
	likes: int


class CommentView(ApiModel):
	id: str
	post_id: str
	author_id: Optional[str] = None
	author_name: Optional[str] = None
	content: str
	created_at: datetime

	@classmethod
	def from_model(cls, comment: models.Comment) -> "CommentView":
		return cls(
			id=comment.id,
			post_id=comment.post_id,
			author_id=comment.author_id,
			author_name=comment.author_name,
			content=comment.content,
			created_at=comment.created_at,
		)


class CommentResponse(ApiModel):
	success: bool = True
	comment: CommentView


class CommentListResponse(ApiModel):
	success: bool = True
	post_id: str
	count: int
	comments: list[CommentView]


class ReactionToggleResponse(ApiModel):
	success: bool = True
	post_id: str
	user_id: str
	action: str
	user_reaction: Optional[str] = None
	reactions: dict[str, int]
	total_reactions: int

	@classmethod
	def from_result(cls, result: ToggleResult) -> "ReactionToggleResponse":
		return cls(
			post_id=result.post_id,
			user_id=result.user_id,
			action=result.action,
			user_reaction=result.user_reaction,
			reactions=dict(result.engagement.reactions),
			total_reactions=result.engagement.total_reactions,
		)


class ReactionDetail(ApiModel):
	id: str
	user_id: Optional[str] = None
	type: str
	created_at: datetime


class ReactionSummaryResponse(ApiModel):
	success: bool = True
	post_id: str
	reactions: dict[str, int]
	total_reactions: int
	user_reaction: Optional[str] = None
	details: list[ReactionDetail]

	@classmethod
	def from_summary(cls, summary: ReactionSummary) -> "ReactionSummaryResponse":
		return cls(
			post_id=summary.post_id,
			reactions=dict(summary.reactions),
			total_reactions=summary.total_reactions,
			user_reaction=summary.user_reaction,
			details=[
				ReactionDetail(id=reaction.id, user_id=reaction.user_id, type=reaction.type, created_at=reaction.created_at)
				for reaction in summary.details
			],
		)


class ReactionRemovedResponse(ApiModel):
	success: bool = True
	post_id: str
	user_id: str
	reactions: dict[str, int]
	total_reactions: int


class TrendingMetadata(ApiModel):
	time_range: str
	limit: int
	total_posts: int
	posts_with_reactions: int
	total_reactions: int
	generated_at: datetime


class TrendingResponse(ApiModel):
	success: bool = True
	posts: list[PostView]
	metadata: TrendingMetadata

	@classmethod
	def from_result(cls, result: TrendingPosts) -> "TrendingResponse":
		return cls(
			posts=[PostView.from_item(item) for item in result.items],
			metadata=TrendingMetadata(
				time_range=result.time_range,
				limit=result.limit,
				total_posts=result.total_posts,
				posts_with_reactions=result.posts_with_reactions,
				total_reactions=result.total_reactions,
				generated_at=result.generated_at,
			),
		)


class TrendingUserView(ApiModel):
	user_id: str
	display_name: str
	photo_url: Optional[str] = Field(default=None, serialization_alias="photoURL")
	bio: str = ""
	post_count: int
	total_reactions: int
	total_comments: int

	@classmethod
	def from_stats(cls, stats: AuthorStats) -> "TrendingUserView":
		return cls(
			user_id=stats.user_id,
			display_name=stats.display_name,
			photo_url=stats.photo_url,
			bio=stats.bio,
			post_count=stats.post_count,
			total_reactions=stats.total_reactions,
			total_comments=stats.total_comments,
		)


class TrendingUsersMetadata(ApiModel):
	time_range: str
	limit: int
	total_users: int
	generated_at: Optional[datetime] = None


class TrendingUsersResponse(ApiModel):
	success: bool = True
	users: list[TrendingUserView]
	metadata: TrendingUsersMetadata

	@classmethod
	def from_result(cls, result: TrendingAuthors) -> "TrendingUsersResponse":
		users = [TrendingUserView.from_stats(stats) for stats in result.users]
		return cls(
			users=users,
			metadata=TrendingUsersMetadata(
				time_range=result.time_range,
				limit=result.limit,
				total_users=len(users),
				generated_at=result.generated_at,
			),
		)


class CampusView(ApiModel):
	id: str
	code: str
	name: str
	location: Optional[str] = None


class CampusListResponse(ApiModel):
	success: bool = True
	campuses: list[CampusView]


class HealthResponse(ApiModel):
	status: str
	service: str
	storage: str
	storage_ok: bool
	timestamp: datetime


class ErrorResponse(ApiModel):
	success: bool = False
	error: str
	message: str
	request_id: Optional[str] = None
