"""Document store adapter backed by Redis.

Each record is a JSON blob under ``{ns}{collection}:{id}``. Collection
membership lives in ``{ns}{collection}:ids`` and equality lookups on indexed
fields use ``{ns}{collection}:idx:{field}:{value}`` sets. Lookups on fields
without an index fall back to a scan of the collection.
"""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional
from uuid import uuid4

from redis.exceptions import RedisError

from hotgist.domain.exceptions import NotFoundError, StorageUnavailable
from hotgist.infra.redis import RedisProxy
from hotgist.infra.storage import (
	CAMPUSES,
	COMMENTS,
	POSTS,
	REACTIONS,
	USERS,
	StorageAdapter,
	StorageRecord,
)

LOGGER = logging.getLogger(__name__)

INDEXED_FIELDS: dict[str, tuple[str, ...]] = {
	POSTS: ("campus", "authorId"),
	REACTIONS: ("postId", "userId"),
	COMMENTS: ("postId", "authorId"),
	CAMPUSES: ("code",),
	USERS: (),
}


@contextmanager
def _storage_errors(operation: str, collection: str) -> Iterator[None]:
	try:
		yield
	except (RedisError, OSError, ValueError) as exc:
		LOGGER.warning(
			"document_store_error",
			extra={"operation": operation, "collection": collection, "error": str(exc)},
		)
		raise StorageUnavailable(f"document store {operation} on {collection} failed") from exc


class DocumentStorage(StorageAdapter):
	"""Redis-backed document collections."""

	backend = "redis"

	def __init__(self, redis: RedisProxy, *, namespace: str = "hotgist:") -> None:
		self.redis = redis
		self.namespace = namespace

	def _doc_key(self, collection: str, record_id: str) -> str:
		return f"{self.namespace}{collection}:{record_id}"

	def _ids_key(self, collection: str) -> str:
		return f"{self.namespace}{collection}:ids"

	def _index_key(self, collection: str, field: str, value: Any) -> str:
		return f"{self.namespace}{collection}:idx:{field}:{value}"

	def _index_entries(self, collection: str, record: StorageRecord) -> list[str]:
		keys: list[str] = []
		for field in INDEXED_FIELDS.get(collection, ()):
			value = record.get(field)
			if value is None:
				continue
			keys.append(self._index_key(collection, field, value))
		return keys

	async def _load_many(self, collection: str, ids: list[str]) -> list[StorageRecord]:
		if not ids:
			return []
		raw_values = await self.redis.mget([self._doc_key(collection, record_id) for record_id in ids])
		records: list[StorageRecord] = []
		for raw in raw_values:
			# index entries can briefly outlive their document
			if raw is None:
				continue
			records.append(json.loads(raw))
		return records

	async def find_by_field(self, collection: str, field: str, value: Any) -> list[StorageRecord]:
		with _storage_errors("find", collection):
			if field in INDEXED_FIELDS.get(collection, ()):
				ids = await self.redis.smembers(self._index_key(collection, field, value))
				return await self._load_many(collection, sorted(ids))
			records = await self._load_many(collection, sorted(await self.redis.smembers(self._ids_key(collection))))
		return [record for record in records if record.get(field) == value]

	async def get_by_id(self, collection: str, record_id: str) -> Optional[StorageRecord]:
		with _storage_errors("get", collection):
			raw = await self.redis.get(self._doc_key(collection, record_id))
			if raw is None:
				return None
			return json.loads(raw)

	async def scan(self, collection: str) -> list[StorageRecord]:
		with _storage_errors("scan", collection):
			ids = await self.redis.smembers(self._ids_key(collection))
			return await self._load_many(collection, sorted(ids))

	async def insert(self, collection: str, record: StorageRecord) -> str:
		record_id = str(record.get("id") or uuid4())
		stored = {**record, "id": record_id}
		with _storage_errors("insert", collection):
			pipe = self.redis.pipeline()
			pipe.set(self._doc_key(collection, record_id), json.dumps(stored))
			pipe.sadd(self._ids_key(collection), record_id)
			for key in self._index_entries(collection, stored):
				pipe.sadd(key, record_id)
			await pipe.execute()
		return record_id

	async def update(self, collection: str, record_id: str, partial: StorageRecord) -> None:
		current = await self.get_by_id(collection, record_id)
		if current is None:
			raise NotFoundError(f"{collection} record {record_id} not found")
		merged = {**current, **partial, "id": record_id}
		old_index = set(self._index_entries(collection, current))
		new_index = set(self._index_entries(collection, merged))
		with _storage_errors("update", collection):
			pipe = self.redis.pipeline()
			pipe.set(self._doc_key(collection, record_id), json.dumps(merged))
			for key in old_index - new_index:
				pipe.srem(key, record_id)
			for key in new_index - old_index:
				pipe.sadd(key, record_id)
			await pipe.execute()

	async def delete(self, collection: str, record_id: str) -> None:
		current = await self.get_by_id(collection, record_id)
		if current is None:
			return
		with _storage_errors("delete", collection):
			pipe = self.redis.pipeline()
			pipe.delete(self._doc_key(collection, record_id))
			pipe.srem(self._ids_key(collection), record_id)
			for key in self._index_entries(collection, current):
				pipe.srem(key, record_id)
			await pipe.execute()

	async def ping(self) -> bool:
		try:
			return bool(await self.redis.ping())
		except (RedisError, OSError):
			LOGGER.warning("document_store_ping_failed", exc_info=True)
			return False


__all__ = ["DocumentStorage", "INDEXED_FIELDS"]
