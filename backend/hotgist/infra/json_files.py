"""Per-campus JSON file adapter.

Layout under ``data_dir``::

    campuses.json          {"campuses": [...]}
    users.json             {"users": [...]}
    posts/<campus>.json    {"posts": [...]}

Comments and reactions are embedded in their parent post (``comments`` and
``reactions`` lists), so deleting a post removes its children with it. The
adapter holds its own in-memory copy of the files; nothing is shared between
instances.

File IO is synchronous and runs on the event loop: every write rewrites the
whole campus file. Each write is flushed to disk before the in-memory copy
changes, so a failed save leaves reads unchanged. This backend suits a small
single-process deployment; use the Redis backend when writes are frequent.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional
from uuid import uuid4

from hotgist.domain.exceptions import NotFoundError, StorageUnavailable
from hotgist.domain.models import GENERAL_CAMPUS
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

_EMBEDDED = (COMMENTS, REACTIONS)
_FLAT = (CAMPUSES, USERS)


@contextmanager
def _storage_errors(operation: str, target: str) -> Iterator[None]:
	try:
		yield
	except (OSError, ValueError) as exc:
		LOGGER.warning(
			"json_store_error",
			extra={"operation": operation, "target": target, "error": str(exc)},
		)
		raise StorageUnavailable(f"file store {operation} on {target} failed") from exc


def _public_post(post: StorageRecord, campus: str) -> StorageRecord:
	record = {key: value for key, value in post.items() if key not in _EMBEDDED}
	record["campus"] = campus
	return record


def _public_child(child: StorageRecord, post_id: str) -> StorageRecord:
	return {**child, "postId": post_id}


def _replace(records: list[StorageRecord], old: StorageRecord, new: StorageRecord) -> list[StorageRecord]:
	return [new if record is old else record for record in records]


class JsonFileStorage(StorageAdapter):
	"""Campus-partitioned JSON documents kept in memory and flushed on every write."""

	backend = "json"

	def __init__(self, data_dir: Path) -> None:
		self.data_dir = Path(data_dir)
		self.posts_dir = self.data_dir / "posts"
		self._campus_posts: dict[str, list[StorageRecord]] = {}
		self._flat: dict[str, list[StorageRecord]] = {}
		self._loaded = False
		self._lock = asyncio.Lock()

	# -- file io -----------------------------------------------------------

	def _flat_path(self, collection: str) -> Path:
		return self.data_dir / f"{collection}.json"

	def _campus_path(self, campus: str) -> Path:
		return self.posts_dir / f"{campus}.json"

	@staticmethod
	def _read(path: Path, key: str) -> list[StorageRecord]:
		if not path.exists():
			return []
		content = path.read_text(encoding="utf-8")
		if not content.strip():
			return []
		return list(json.loads(content).get(key) or [])

	@staticmethod
	def _write(path: Path, key: str, records: list[StorageRecord]) -> None:
		path.parent.mkdir(parents=True, exist_ok=True)
		tmp_path = path.with_suffix(".json.tmp")
		tmp_path.write_text(json.dumps({key: records}, indent=2), encoding="utf-8")
		os.replace(tmp_path, path)

	async def _ensure_loaded(self) -> None:
		if self._loaded:
			return
		async with self._lock:
			if self._loaded:
				return
			with _storage_errors("load", str(self.data_dir)):
				for collection in _FLAT:
					self._flat[collection] = self._read(self._flat_path(collection), collection)
				if self.posts_dir.exists():
					for path in sorted(self.posts_dir.glob("*.json")):
						self._campus_posts[path.stem] = self._read(path, POSTS)
			total = sum(len(posts) for posts in self._campus_posts.values())
			LOGGER.info("json_store_loaded", extra={"campuses": len(self._campus_posts), "posts": total})
			self._loaded = True

	def _commit_campus(self, campus: str, posts: list[StorageRecord]) -> None:
		"""Flush ``posts`` to disk, then make it the live list; a failed write leaves memory untouched."""
		with _storage_errors("save", campus):
			self._write(self._campus_path(campus), POSTS, posts)
		self._campus_posts[campus] = posts

	def _commit_flat(self, collection: str, records: list[StorageRecord]) -> None:
		with _storage_errors("save", collection):
			self._write(self._flat_path(collection), collection, records)
		self._flat[collection] = records

	# -- lookups -----------------------------------------------------------

	def _locate_post(self, post_id: str) -> Optional[tuple[str, StorageRecord]]:
		for campus, posts in self._campus_posts.items():
			for post in posts:
				if post.get("id") == post_id:
					return campus, post
		return None

	def _locate_child(self, collection: str, record_id: str) -> Optional[tuple[str, StorageRecord, StorageRecord]]:
		for campus, posts in self._campus_posts.items():
			for post in posts:
				for child in post.get(collection) or []:
					if child.get("id") == record_id:
						return campus, post, child
		return None

	def _all_posts(self) -> list[StorageRecord]:
		return [_public_post(post, campus) for campus, posts in self._campus_posts.items() for post in posts]

	def _all_children(self, collection: str) -> list[StorageRecord]:
		return [
			_public_child(child, post["id"])
			for posts in self._campus_posts.values()
			for post in posts
			for child in post.get(collection) or []
		]

	async def find_by_field(self, collection: str, field: str, value: Any) -> list[StorageRecord]:
		await self._ensure_loaded()
		if collection == POSTS and field == "campus":
			return [_public_post(post, value) for post in self._campus_posts.get(value, [])]
		if collection in _EMBEDDED and field == "postId":
			located = self._locate_post(value)
			if located is None:
				return []
			_, post = located
			return [_public_child(child, value) for child in post.get(collection) or []]
		return [record for record in await self.scan(collection) if record.get(field) == value]

	async def get_by_id(self, collection: str, record_id: str) -> Optional[StorageRecord]:
		await self._ensure_loaded()
		if collection == POSTS:
			located = self._locate_post(record_id)
			return _public_post(located[1], located[0]) if located else None
		if collection in _EMBEDDED:
			child = self._locate_child(collection, record_id)
			return _public_child(child[2], child[1]["id"]) if child else None
		for record in self._flat.get(collection, []):
			if record.get("id") == record_id:
				return dict(record)
		return None

	async def scan(self, collection: str) -> list[StorageRecord]:
		await self._ensure_loaded()
		if collection == POSTS:
			return self._all_posts()
		if collection in _EMBEDDED:
			return self._all_children(collection)
		return [dict(record) for record in self._flat.get(collection, [])]

	# -- writes ------------------------------------------------------------

	async def insert(self, collection: str, record: StorageRecord) -> str:
		await self._ensure_loaded()
		record_id = str(record.get("id") or uuid4())
		async with self._lock:
			if collection == POSTS:
				campus = record.get("campus") or GENERAL_CAMPUS
				stored = {**record, "id": record_id, "campus": campus, "comments": [], "reactions": []}
				# newest first, matching the on-disk order clients expect
				self._commit_campus(campus, [stored, *self._campus_posts.get(campus, [])])
			elif collection in _EMBEDDED:
				post_id = record.get("postId")
				located = self._locate_post(post_id) if post_id else None
				if located is None:
					raise NotFoundError(f"post {post_id} not found")
				campus, post = located
				child = {key: value for key, value in record.items() if key != "postId"}
				children = [*(post.get(collection) or []), {**child, "id": record_id}]
				self._commit_campus(campus, _replace(self._campus_posts[campus], post, {**post, collection: children}))
			else:
				records = [*self._flat.get(collection, []), {**record, "id": record_id}]
				self._commit_flat(collection, records)
		return record_id

	async def update(self, collection: str, record_id: str, partial: StorageRecord) -> None:
		await self._ensure_loaded()
		changes = {key: value for key, value in partial.items() if key not in ("id", "campus", "postId", *_EMBEDDED)}
		async with self._lock:
			if collection == POSTS:
				located = self._locate_post(record_id)
				if located is None:
					raise NotFoundError(f"post {record_id} not found")
				campus, post = located
				self._commit_campus(campus, _replace(self._campus_posts[campus], post, {**post, **changes}))
				return
			if collection in _EMBEDDED:
				child = self._locate_child(collection, record_id)
				if child is None:
					raise NotFoundError(f"{collection} record {record_id} not found")
				campus, post, record = child
				children = _replace(post[collection], record, {**record, **changes})
				self._commit_campus(campus, _replace(self._campus_posts[campus], post, {**post, collection: children}))
				return
			records = self._flat.get(collection, [])
			for record in records:
				if record.get("id") == record_id:
					self._commit_flat(collection, _replace(records, record, {**record, **changes}))
					return
		raise NotFoundError(f"{collection} record {record_id} not found")

	async def delete(self, collection: str, record_id: str) -> None:
		await self._ensure_loaded()
		async with self._lock:
			if collection == POSTS:
				located = self._locate_post(record_id)
				if located is None:
					return
				campus, post = located
				self._commit_campus(campus, [entry for entry in self._campus_posts[campus] if entry is not post])
				return
			if collection in _EMBEDDED:
				child = self._locate_child(collection, record_id)
				if child is None:
					return
				campus, post, record = child
				children = [entry for entry in post[collection] if entry is not record]
				self._commit_campus(campus, _replace(self._campus_posts[campus], post, {**post, collection: children}))
				return
			records = self._flat.get(collection, [])
			remaining = [record for record in records if record.get("id") != record_id]
			if len(remaining) != len(records):
				self._commit_flat(collection, remaining)

	async def ping(self) -> bool:
		try:
			await self._ensure_loaded()
		except StorageUnavailable:
			return False
		return True


__all__ = ["JsonFileStorage"]
