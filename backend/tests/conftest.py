import sys
from datetime import datetime
from pathlib import Path
from typing import Optional
from uuid import uuid4

import pytest
import pytest_asyncio
from fakeredis.aioredis import FakeRedis
from httpx import ASGITransport, AsyncClient

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

from hotgist.domain import models
from hotgist.domain.campuses import ensure_seeded
from hotgist.infra.document_store import DocumentStorage
from hotgist.infra.redis import redis_client, set_redis_client
from hotgist.infra.storage import COMMENTS, POSTS, REACTIONS, USERS
from hotgist.main import app
from hotgist.services import ServiceContainer
from hotgist.settings import settings


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	original = redis_client.client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest_asyncio.fixture
async def storage(fake_redis):
	store = DocumentStorage(redis_client)
	await ensure_seeded(store)
	return store


@pytest_asyncio.fixture
async def container(storage):
	return ServiceContainer.build(storage, settings)


@pytest_asyncio.fixture
async def api_client(container):
	app.state.container = container
	transport = ASGITransport(app=app)
	try:
		async with AsyncClient(transport=transport, base_url="http://testserver") as client:
			yield client
	finally:
		app.state.container = None


@pytest.fixture
def make_post(storage):
	async def _make(
		*,
		campus: str = "GCTU",
		created_at: Optional[datetime] = None,
		content: str = "Library wifi is down again",
		author_id: Optional[str] = None,
		post_id: Optional[str] = None,
	) -> models.Post:
		post = models.Post(
			id=post_id or str(uuid4()),
			content=content,
			campus=campus,
			author_id=author_id,
			author_name=None if author_id else "Anonymous",
			created_at=created_at or models.utcnow(),
		)
		await storage.insert(POSTS, post.to_record())
		return post

	return _make


@pytest.fixture
def add_reactions(storage):
	async def _add(post_id: str, count: int, *, kind: str = "fire") -> None:
		for index in range(count):
			await storage.insert(
				REACTIONS,
				{
					"postId": post_id,
					"userId": f"{kind}-user-{index}",
					"type": kind,
					"createdAt": models.utcnow().isoformat(),
				},
			)

	return _add


@pytest.fixture
def add_comments(storage):
	async def _add(post_id: str, count: int, *, at: Optional[datetime] = None) -> None:
		for index in range(count):
			await storage.insert(
				COMMENTS,
				{
					"postId": post_id,
					"authorName": f"student-{index}",
					"content": "same here",
					"createdAt": (at or models.utcnow()).isoformat(),
				},
			)

	return _add


@pytest.fixture
def add_user(storage):
	async def _add(user_id: str, display_name: str = "Ama", **extra) -> None:
		await storage.insert(USERS, {"id": user_id, "displayName": display_name, **extra})

	return _add
