"""Storage adapter contract shared by the document and per-campus file backends.

Records are plain dicts keyed in camelCase, exactly as persisted. Adapters make
no ordering promises: callers sort whatever comes back.
"""

from __future__ import annotations

import abc
from pathlib import Path
from typing import Any, Optional

POSTS = "posts"
REACTIONS = "reactions"
COMMENTS = "comments"
CAMPUSES = "campuses"
USERS = "users"

COLLECTIONS: tuple[str, ...] = (POSTS, REACTIONS, COMMENTS, CAMPUSES, USERS)

StorageRecord = dict[str, Any]


class StorageAdapter(abc.ABC):
	"""Collection-scoped CRUD with equality lookups.

	Every backend failure surfaces as ``StorageUnavailable``; a missing record is
	``None`` from ``get_by_id`` and ``NotFoundError`` from ``update``.
	"""

	backend: str = "abstract"

	@abc.abstractmethod
	async def find_by_field(self, collection: str, field: str, value: Any) -> list[StorageRecord]:
		"""Return every record whose ``field`` equals ``value``."""

	@abc.abstractmethod
	async def get_by_id(self, collection: str, record_id: str) -> Optional[StorageRecord]:
		...

	@abc.abstractmethod
	async def insert(self, collection: str, record: StorageRecord) -> str:
		"""Persist ``record`` and return its id (generated when missing)."""

	@abc.abstractmethod
	async def update(self, collection: str, record_id: str, partial: StorageRecord) -> None:
		...

	@abc.abstractmethod
	async def delete(self, collection: str, record_id: str) -> None:
		"""Remove a record. Deleting a missing record is a no-op."""

	@abc.abstractmethod
	async def scan(self, collection: str) -> list[StorageRecord]:
		"""Return every record of a collection (reference data, roll-ups)."""

	async def ping(self) -> bool:
		return True

	async def close(self) -> None:
		return None


def build_storage(backend: str, *, data_dir: str | Path | None = None) -> StorageAdapter:
	"""Instantiate the adapter named by ``backend`` (``redis`` or ``json``)."""
	if backend == "json":
		from hotgist.infra.json_files import JsonFileStorage

		return JsonFileStorage(Path(data_dir or "./data"))
	if backend == "redis":
		from hotgist.infra.document_store import DocumentStorage
		from hotgist.infra.redis import redis_client

		return DocumentStorage(redis_client)
	raise ValueError(f"unknown storage backend: {backend}")


__all__ = [
	"CAMPUSES",
	"COLLECTIONS",
	"COMMENTS",
	"POSTS",
	"REACTIONS",
	"USERS",
	"StorageAdapter",
	"StorageRecord",
	"build_storage",
]
