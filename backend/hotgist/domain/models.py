"""Domain models for posts, reactions, comments and campuses."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

GENERAL_CAMPUS = "General"
REACTION_TYPES: tuple[str, ...] = ("fire", "laugh", "shock")


def utcnow() -> datetime:
	return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
	if value.tzinfo is None:
		return value.replace(tzinfo=timezone.utc)
	return value.astimezone(timezone.utc)


def empty_reaction_counts() -> dict[str, int]:
	return {kind: 0 for kind in REACTION_TYPES}


class Record(BaseModel):
	"""Base for persisted records: snake_case in Python, camelCase at rest."""

	model_config = ConfigDict(
		alias_generator=to_camel,
		populate_by_name=True,
		from_attributes=True,
		extra="ignore",
	)

	def to_record(self) -> dict[str, Any]:
		return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class Post(Record):
	"""A post in a campus feed.

	``reaction_count`` and ``comment_count`` are denormalized counters kept
	for the write path; reads always recompute engagement from Reaction and
	Comment records.
	"""

	id: str
	content: str
	campus: str = GENERAL_CAMPUS
	author_id: Optional[str] = None
	author_name: Optional[str] = None
	image_url: Optional[str] = None
	created_at: datetime = Field(
		validation_alias=AliasChoices("createdAt", "created_at", "timestamp"),
		serialization_alias="createdAt",
	)
	updated_at: Optional[datetime] = None
	reaction_count: int = Field(
		default=0,
		validation_alias=AliasChoices("reactionCount", "reaction_count", "likes"),
		serialization_alias="reactionCount",
	)
	comment_count: int = 0

	@field_validator("created_at", "updated_at")
	@classmethod
	def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
		return ensure_utc(value) if value is not None else None


class Reaction(Record):
	"""A single user's reaction on a post. ``type`` is left unvalidated so
	legacy records load; aggregation ignores unknown types."""

	id: str
	post_id: str
	user_id: Optional[str] = None
	type: str
	created_at: datetime
	updated_at: Optional[datetime] = None

	@field_validator("created_at", "updated_at")
	@classmethod
	def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
		return ensure_utc(value) if value is not None else None


class Comment(Record):
	"""Represents a comment on a post."""

	id: str
	post_id: str
	author_id: Optional[str] = None
	author_name: Optional[str] = None
	content: str = Field(validation_alias=AliasChoices("content", "text"), serialization_alias="content")
	created_at: datetime = Field(
		validation_alias=AliasChoices("createdAt", "created_at", "timestamp"),
		serialization_alias="createdAt",
	)

	@field_validator("created_at")
	@classmethod
	def _utc(cls, value: datetime) -> datetime:
		return ensure_utc(value)


class Campus(Record):
	"""Static campus reference data."""

	id: str
	code: str
	name: str
	location: Optional[str] = None


class Author(Record):
	"""Author metadata attached to feed posts."""

	uid: Optional[str] = None
	display_name: str = "Anonymous"
	photo_url: Optional[str] = Field(
		default=None,
		validation_alias=AliasChoices("photoURL", "photoUrl", "photo_url"),
		serialization_alias="photoURL",
	)


@dataclass(slots=True)
class Engagement:
	"""Reaction and comment roll-up for one post."""

	reactions: dict[str, int] = field(default_factory=empty_reaction_counts)
	comment_count: int = 0
	comment_times: tuple[datetime, ...] = ()

	@property
	def total_reactions(self) -> int:
		return sum(self.reactions.values())

	def to_payload(self) -> dict[str, Any]:
		return {
			"reactions": dict(self.reactions),
			"commentCount": self.comment_count,
			"commentTimes": [value.isoformat() for value in self.comment_times],
		}

	@classmethod
	def from_payload(cls, payload: dict[str, Any]) -> "Engagement":
		reactions = empty_reaction_counts()
		for kind, count in (payload.get("reactions") or {}).items():
			if kind in reactions:
				reactions[kind] = int(count)
		times = tuple(ensure_utc(datetime.fromisoformat(value)) for value in payload.get("commentTimes") or [])
		return cls(reactions=reactions, comment_count=int(payload.get("commentCount", 0)), comment_times=times)


__all__ = [
	"Author",
	"Campus",
	"Comment",
	"Engagement",
	"GENERAL_CAMPUS",
	"Post",
	"REACTION_TYPES",
	"Reaction",
	"Record",
	"empty_reaction_counts",
	"ensure_utc",
	"utcnow",
]
