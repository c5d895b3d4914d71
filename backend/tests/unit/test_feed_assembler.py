from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from hotgist.domain import models
from hotgist.domain.exceptions import FeedTimeout, InvalidFilter, StorageUnavailable
from hotgist.services.aggregator import EngagementAggregator
from hotgist.services.feed import FeedAssembler, FeedQuery, decode_cursor, encode_cursor

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def _assembler(storage, aggregator=None, **kwargs) -> FeedAssembler:
    return FeedAssembler(storage, aggregator or EngagementAggregator(storage), clock=lambda: NOW, **kwargs)


class _FailingAggregator(EngagementAggregator):
    def __init__(self, storage, failing: set[str], exc: Exception) -> None:
        super().__init__(storage)
        self.failing = failing
        self.exc = exc

    async def aggregate(self, post_id: str) -> models.Engagement:
        if post_id in self.failing:
            raise self.exc
        return await super().aggregate(post_id)


class _SlowAggregator(EngagementAggregator):
    def __init__(self, storage, delay: float) -> None:
        super().__init__(storage)
        self.delay = delay
        self.in_flight = 0
        self.peak = 0
        self.calls = 0

    async def aggregate(self, post_id: str) -> models.Engagement:
        self.calls += 1
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            return await super().aggregate(post_id)
        finally:
            self.in_flight -= 1


async def _seed_timeline(make_post, count: int, campus: str = "GCTU") -> list[models.Post]:
    return [await make_post(campus=campus, created_at=NOW - timedelta(minutes=index)) for index in range(count)]


@pytest.mark.asyncio
async def test_offset_pagination_splits_35_posts_into_20_and_15(storage, make_post):
    posts = await _seed_timeline(make_post, 35)
    assembler = _assembler(storage)

    first = await assembler.get_feed(FeedQuery(campus="GCTU", limit=20, offset=0))
    second = await assembler.get_feed(FeedQuery(campus="GCTU", limit=20, offset=first.offset))

    assert first.count == 20 and first.has_more is True and first.offset == 20
    assert second.count == 15 and second.has_more is False and second.offset == 35
    assert first.total == second.total == 35
    returned = [item.id for item in first.items + second.items]
    assert returned == [post.id for post in posts]


@pytest.mark.asyncio
async def test_cursor_pagination_matches_offset_pagination(storage, make_post):
    await _seed_timeline(make_post, 12)
    assembler = _assembler(storage)

    by_offset = await assembler.get_feed(FeedQuery(campus="GCTU", limit=5, offset=5))
    first = await assembler.get_feed(FeedQuery(campus="GCTU", limit=5))
    by_cursor = await assembler.get_feed(FeedQuery(campus="GCTU", limit=5, cursor=first.next_cursor))

    assert [item.id for item in by_cursor.items] == [item.id for item in by_offset.items]
    assert by_cursor.offset is None
    assert by_cursor.last_doc_id == by_cursor.items[-1].id


@pytest.mark.asyncio
async def test_cursor_survives_deletion_of_its_post(storage, make_post):
    posts = await _seed_timeline(make_post, 6)
    assembler = _assembler(storage)
    first = await assembler.get_feed(FeedQuery(campus="GCTU", limit=3))
    await storage.delete("posts", first.last_doc_id)

    second = await assembler.get_feed(FeedQuery(campus="GCTU", limit=3, cursor=first.next_cursor))

    assert [item.id for item in second.items] == [post.id for post in posts[3:]]


@pytest.mark.asyncio
async def test_trending_pagination_with_cursor_has_no_gaps(storage, make_post, add_reactions):
    posts = await _seed_timeline(make_post, 7)
    for index, post in enumerate(posts):
        await add_reactions(post.id, index)
    assembler = _assembler(storage)

    seen: list[str] = []
    cursor = None
    while True:
        page = await assembler.get_feed(FeedQuery(campus="GCTU", limit=3, cursor=cursor, trending=True))
        seen.extend(item.id for item in page.items)
        if not page.has_more:
            break
        cursor = page.next_cursor

    assert sorted(seen) == sorted(post.id for post in posts)
    assert len(seen) == len(set(seen))


@pytest.mark.asyncio
async def test_trending_scenario_orders_fresh_engagement_first(storage, make_post, add_reactions):
    fresh = await make_post(created_at=NOW)
    hour_old = await make_post(created_at=NOW - timedelta(hours=1))
    quiet = await make_post(created_at=NOW - timedelta(hours=2))
    await add_reactions(fresh.id, 10)
    await add_reactions(hour_old.id, 10)

    page = await _assembler(storage).get_feed(FeedQuery(campus="GCTU", limit=10, trending=True))

    assert [item.id for item in page.items] == [fresh.id, hour_old.id, quiet.id]
    assert page.items[0].score == pytest.approx(11.0)
    assert page.items[1].score == pytest.approx(10.5 * 0.5 ** (1 / 12))
    assert page.items[2].score == pytest.approx(0.1)


@pytest.mark.asyncio
async def test_equal_scores_fall_back_to_newest_first(storage, make_post):
    older = await make_post(created_at=NOW - timedelta(hours=30))
    newer = await make_post(created_at=NOW - timedelta(hours=20))

    page = await _assembler(storage).get_feed(FeedQuery(campus="GCTU", trending=True))

    assert [item.score for item in page.items] == [pytest.approx(0.1), pytest.approx(0.1)]
    assert [item.id for item in page.items] == [newer.id, older.id]


@pytest.mark.asyncio
async def test_all_campuses_union_includes_general_and_tags_campus(storage, make_post):
    gctu = await make_post(campus="GCTU", created_at=NOW - timedelta(minutes=3))
    ug = await make_post(campus="UG", created_at=NOW - timedelta(minutes=2))
    general = await make_post(campus="General", created_at=NOW - timedelta(minutes=1))
    assembler = _assembler(storage)

    for campus in (None, "all", ""):
        page = await assembler.get_feed(FeedQuery(campus=campus))
        assert [(item.id, item.post.campus) for item in page.items] == [
            (general.id, "General"),
            (ug.id, "UG"),
            (gctu.id, "GCTU"),
        ]


@pytest.mark.asyncio
async def test_unknown_campus_is_invalid_filter(storage):
    with pytest.raises(InvalidFilter):
        await _assembler(storage).get_feed(FeedQuery(campus="Hogwarts"))


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "query",
    [
        FeedQuery(offset=-1),
        FeedQuery(cursor="not-a-cursor"),
        FeedQuery(offset=0, cursor="abc"),
        FeedQuery(trending=True, mode="viral"),
    ],
)
async def test_bad_paging_arguments_are_invalid_filter(storage, query):
    with pytest.raises(InvalidFilter):
        await _assembler(storage).get_feed(query)


@pytest.mark.asyncio
async def test_limit_is_clamped(storage, make_post):
    await _seed_timeline(make_post, 3)
    assembler = _assembler(storage, max_limit=2)

    assert (await assembler.get_feed(FeedQuery(campus="GCTU", limit=500))).limit == 2
    zero = await assembler.get_feed(FeedQuery(campus="GCTU", limit=0))
    assert zero.limit == 1 and zero.count == 1


@pytest.mark.asyncio
async def test_empty_campus_returns_empty_page(storage):
    page = await _assembler(storage).get_feed(FeedQuery(campus="UDS"))
    assert page.items == []
    assert page.has_more is False
    assert page.next_cursor is None


@pytest.mark.asyncio
async def test_failed_enrichment_drops_only_that_post(storage, make_post, caplog):
    posts = await _seed_timeline(make_post, 4)
    broken = posts[1].id
    aggregator = _FailingAggregator(storage, {broken}, RuntimeError("bad record"))

    with caplog.at_level("WARNING", logger="hotgist"):
        page = await _assembler(storage, aggregator).get_feed(FeedQuery(campus="GCTU"))

    assert [item.id for item in page.items] == [posts[0].id, posts[2].id, posts[3].id]
    assert page.dropped == [broken]
    assert any(record.getMessage() == "feed_enrichment_dropped" for record in caplog.records)


@pytest.mark.asyncio
async def test_storage_failure_for_every_post_fails_the_request(storage, make_post):
    posts = await _seed_timeline(make_post, 3)
    aggregator = _FailingAggregator(storage, {post.id for post in posts}, StorageUnavailable("redis gone"))

    with pytest.raises(StorageUnavailable):
        await _assembler(storage, aggregator).get_feed(FeedQuery(campus="GCTU"))


@pytest.mark.asyncio
async def test_candidate_fetch_failure_is_storage_unavailable(storage, monkeypatch):
    async def _boom(*args, **kwargs):
        raise StorageUnavailable("scan failed")

    monkeypatch.setattr(storage, "find_by_field", _boom)
    with pytest.raises(StorageUnavailable):
        await _assembler(storage).get_feed(FeedQuery(campus="GCTU"))


@pytest.mark.asyncio
async def test_deadline_expiry_raises_feed_timeout(storage, make_post):
    await _seed_timeline(make_post, 3)
    aggregator = _SlowAggregator(storage, delay=1.0)

    with pytest.raises(FeedTimeout) as excinfo:
        await _assembler(storage, aggregator, deadline=0.05).get_feed(FeedQuery(campus="GCTU"))

    assert isinstance(excinfo.value, StorageUnavailable)
    assert excinfo.value.status_code == 504


@pytest.mark.asyncio
async def test_fanout_respects_concurrency_bound(storage, make_post):
    await _seed_timeline(make_post, 10)
    aggregator = _SlowAggregator(storage, delay=0.01)

    page = await _assembler(storage, aggregator, concurrency=3).get_feed(FeedQuery(campus="GCTU", trending=True))

    assert page.count == 10
    assert aggregator.peak <= 3


@pytest.mark.asyncio
async def test_recency_feed_only_enriches_requested_page(storage, make_post):
    await _seed_timeline(make_post, 10)
    aggregator = _SlowAggregator(storage, delay=0)

    await _assembler(storage, aggregator).get_feed(FeedQuery(campus="GCTU", limit=4))

    assert aggregator.calls == 4


@pytest.mark.asyncio
async def test_author_resolution(storage, make_post, add_user):
    await add_user("u-1", "Kojo", photoURL="https://img/kojo.png")
    registered = await make_post(author_id="u-1", created_at=NOW - timedelta(minutes=1))
    deleted = await make_post(author_id="u-gone", created_at=NOW - timedelta(minutes=2))
    anonymous = await make_post(created_at=NOW - timedelta(minutes=3))

    page = await _assembler(storage).get_feed(FeedQuery(campus="GCTU"))
    authors = {item.id: item.author for item in page.items}

    assert authors[registered.id].display_name == "Kojo"
    assert authors[registered.id].uid == "u-1"
    assert authors[registered.id].photo_url == "https://img/kojo.png"
    assert authors[deleted.id] is None
    assert authors[anonymous.id].display_name == "Anonymous"
    assert authors[anonymous.id].uid is None


@pytest.mark.asyncio
async def test_engagement_is_recomputed_not_read_from_counters(storage, make_post, add_reactions):
    post = await make_post()
    await storage.update("posts", post.id, {"reactionCount": 99})
    await add_reactions(post.id, 2)

    item = await _assembler(storage).get_post(post.id)

    assert item.engagement.total_reactions == 2


def test_cursor_encoding_keeps_sort_key():
    post = models.Post(id="p-9", content="x", created_at=NOW)
    state = decode_cursor(encode_cursor(post, score=4.5))
    assert state.post_id == "p-9"
    assert state.created_at == NOW
    assert state.score == pytest.approx(4.5)
