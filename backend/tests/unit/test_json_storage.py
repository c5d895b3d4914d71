from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest

from hotgist.domain.campuses import ensure_seeded
from hotgist.domain.exceptions import NotFoundError, StorageUnavailable
from hotgist.infra.json_files import JsonFileStorage
from hotgist.infra.storage import CAMPUSES, COMMENTS, POSTS, REACTIONS, build_storage
from hotgist.services.aggregator import EngagementAggregator
from hotgist.services.feed import FeedAssembler, FeedQuery

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_posts_are_partitioned_per_campus_with_embedded_children(tmp_path):
    store = JsonFileStorage(tmp_path)
    post_id = await store.insert(POSTS, {"content": "hi", "campus": "UG", "createdAt": NOW.isoformat()})
    await store.insert(REACTIONS, {"postId": post_id, "userId": "u1", "type": "fire"})
    comment_id = await store.insert(COMMENTS, {"postId": post_id, "content": "hey"})

    on_disk = json.loads((tmp_path / "posts" / "UG.json").read_text())
    stored = on_disk["posts"][0]
    assert stored["id"] == post_id
    assert stored["reactions"][0]["type"] == "fire"
    assert "postId" not in stored["comments"][0]

    assert (await store.get_by_id(COMMENTS, comment_id))["postId"] == post_id
    assert [record["type"] for record in await store.find_by_field(REACTIONS, "postId", post_id)] == ["fire"]
    assert "reactions" not in await store.get_by_id(POSTS, post_id)


@pytest.mark.asyncio
async def test_reads_legacy_files_written_by_older_deployments(tmp_path):
    (tmp_path / "posts").mkdir()
    legacy = {
        "posts": [
            {
                "id": "legacy-1",
                "content": "exams next week",
                "timestamp": "2024-11-02T08:00:00.000Z",
                "likes": 4,
                "comments": [{"id": "c1", "text": "good luck", "timestamp": "2024-11-02T09:00:00.000Z"}],
            }
        ]
    }
    (tmp_path / "posts" / "GCTU.json").write_text(json.dumps(legacy))
    store = JsonFileStorage(tmp_path)
    await ensure_seeded(store)

    assembler = FeedAssembler(store, EngagementAggregator(store), clock=lambda: NOW)
    page = await assembler.get_feed(FeedQuery(campus="GCTU"))

    [item] = page.items
    assert item.post.campus == "GCTU"
    assert item.post.reaction_count == 4
    assert item.engagement.total_reactions == 0
    assert item.engagement.comment_count == 1


@pytest.mark.asyncio
async def test_update_and_delete(tmp_path):
    store = JsonFileStorage(tmp_path)
    post_id = await store.insert(POSTS, {"content": "hi", "campus": "General", "createdAt": NOW.isoformat()})
    reaction_id = await store.insert(REACTIONS, {"postId": post_id, "userId": "u1", "type": "fire"})

    await store.update(REACTIONS, reaction_id, {"type": "laugh"})
    await store.update(POSTS, post_id, {"reactionCount": 1, "campus": "UG"})
    assert (await store.get_by_id(REACTIONS, reaction_id))["type"] == "laugh"
    assert (await store.get_by_id(POSTS, post_id))["campus"] == "General"

    with pytest.raises(NotFoundError):
        await store.update(POSTS, "missing", {"content": "x"})

    await store.delete(POSTS, post_id)
    await store.delete(POSTS, post_id)
    assert await store.get_by_id(REACTIONS, reaction_id) is None


@pytest.mark.asyncio
async def test_changes_persist_across_instances(tmp_path):
    first = JsonFileStorage(tmp_path)
    await ensure_seeded(first)
    post_id = await first.insert(POSTS, {"content": "persist", "campus": "UDS", "createdAt": NOW.isoformat()})

    second = JsonFileStorage(tmp_path)
    assert (await second.get_by_id(POSTS, post_id))["content"] == "persist"
    assert len(await second.scan(CAMPUSES)) == 8


@pytest.mark.asyncio
async def test_child_for_missing_post_is_not_found(tmp_path):
    store = JsonFileStorage(tmp_path)
    with pytest.raises(NotFoundError):
        await store.insert(COMMENTS, {"postId": "nope", "content": "x"})


@pytest.mark.asyncio
async def test_corrupt_file_is_storage_unavailable(tmp_path):
    (tmp_path / "posts").mkdir()
    (tmp_path / "posts" / "UG.json").write_text("{not json")
    store = JsonFileStorage(tmp_path)

    with pytest.raises(StorageUnavailable):
        await store.scan(POSTS)
    assert await store.ping() is False


@pytest.mark.asyncio
async def test_failed_save_leaves_memory_unchanged(tmp_path, monkeypatch):
    store = JsonFileStorage(tmp_path)
    await ensure_seeded(store)
    post_id = await store.insert(POSTS, {"content": "kept", "campus": "GCTU", "createdAt": NOW.isoformat()})
    reaction_id = await store.insert(REACTIONS, {"postId": post_id, "userId": "u1", "type": "fire"})

    def _disk_full(path, key, records):
        raise OSError("no space left on device")

    monkeypatch.setattr(store, "_write", _disk_full)

    with pytest.raises(StorageUnavailable):
        await store.insert(POSTS, {"id": "p1", "content": "x", "campus": "GCTU", "createdAt": NOW.isoformat()})
    with pytest.raises(StorageUnavailable):
        await store.insert(COMMENTS, {"postId": post_id, "content": "lost"})
    with pytest.raises(StorageUnavailable):
        await store.update(POSTS, post_id, {"content": "changed"})
    with pytest.raises(StorageUnavailable):
        await store.update(REACTIONS, reaction_id, {"type": "laugh"})
    with pytest.raises(StorageUnavailable):
        await store.delete(REACTIONS, reaction_id)
    with pytest.raises(StorageUnavailable):
        await store.delete(POSTS, post_id)
    with pytest.raises(StorageUnavailable):
        await store.insert(CAMPUSES, {"id": "NEW", "code": "NEW", "name": "New"})

    assert await store.get_by_id(POSTS, "p1") is None
    assert (await store.get_by_id(POSTS, post_id))["content"] == "kept"
    assert await store.find_by_field(COMMENTS, "postId", post_id) == []
    assert (await store.get_by_id(REACTIONS, reaction_id))["type"] == "fire"
    assert await store.get_by_id(CAMPUSES, "NEW") is None
    assert len(await store.scan(CAMPUSES)) == 8

    monkeypatch.undo()
    reloaded = JsonFileStorage(tmp_path)
    assert [post["id"] for post in await reloaded.scan(POSTS)] == [post_id]


def test_build_storage_selects_backend(tmp_path):
    assert isinstance(build_storage("json", data_dir=tmp_path), JsonFileStorage)
    assert build_storage("redis").backend == "redis"
    with pytest.raises(ValueError):
        build_storage("sqlite")


@pytest.mark.asyncio
async def test_feed_over_json_files_sorts_across_campuses(tmp_path):
    store = JsonFileStorage(tmp_path)
    await ensure_seeded(store)
    ids = []
    for offset, campus in enumerate(("UG", "General", "KNUST")):
        created = NOW - timedelta(minutes=offset)
        ids.append(await store.insert(POSTS, {"content": campus, "campus": campus, "createdAt": created.isoformat()}))

    page = await FeedAssembler(store, clock=lambda: NOW).get_feed(FeedQuery())

    assert [item.id for item in page.items] == ids
