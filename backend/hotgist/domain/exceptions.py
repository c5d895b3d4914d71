"""Domain errors raised by the feed, storage and engagement layers."""

from __future__ import annotations

from fastapi import status

if hasattr(status, "HTTP_422_UNPROCESSABLE_CONTENT"):
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_CONTENT
else:  # pragma: no cover - older Starlette builds
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_ENTITY


class HotGistError(Exception):
	"""Base class carrying an HTTP status, a stable code and a readable message."""

	status_code: int = status.HTTP_400_BAD_REQUEST
	code: str = "hotgist_error"
	detail: str = "Request failed"

	def __init__(self, detail: str | None = None) -> None:
		super().__init__(detail or self.detail)
		if detail:
			self.detail = detail


class InvalidFilter(HotGistError):
	"""Bad campus, limit, offset or cursor supplied by the caller."""

	code = "invalid_filter"
	detail = "Invalid feed filter"


class ValidationError(HotGistError):
	"""Raised for input problems not covered by schema validation."""

	status_code = _HTTP_422
	code = "validation_error"
	detail = "Invalid input"


class NotFoundError(HotGistError):
	"""A post, comment, reaction or campus has no record."""

	status_code = status.HTTP_404_NOT_FOUND
	code = "not_found"
	detail = "Not found"


class StorageUnavailable(HotGistError):
	"""The storage adapter failed; the whole request may be retried."""

	status_code = status.HTTP_502_BAD_GATEWAY
	code = "storage_unavailable"
	detail = "Storage backend unavailable"


class FeedTimeout(StorageUnavailable):
	"""The feed deadline expired before every post was enriched."""

	status_code = status.HTTP_504_GATEWAY_TIMEOUT
	code = "feed_timeout"
	detail = "Feed assembly timed out"


class PartialEnrichmentFailure(HotGistError):
	"""Enrichment of a single post failed.

	Never leaves the feed assembler: the post is dropped from the page instead.
	"""

	status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
	code = "partial_enrichment_failure"
	detail = "Post enrichment failed"

	def __init__(self, post_id: str, detail: str | None = None) -> None:
		super().__init__(detail or f"enrichment failed for post {post_id}")
		self.post_id = post_id
