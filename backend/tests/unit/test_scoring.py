from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from hotgist.domain import models
from hotgist.domain.exceptions import InvalidFilter
from hotgist.services import scoring

NOW = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def _post(*, hours_old: float = 0.0, post_id: str = "p1") -> models.Post:
    return models.Post(id=post_id, content="hi", campus="GCTU", created_at=NOW - timedelta(hours=hours_old))


def _engagement(*, fire: int = 0, laugh: int = 0, shock: int = 0, comments: int = 0, comment_age_hours: float = 10.0) -> models.Engagement:
    return models.Engagement(
        reactions={"fire": fire, "laugh": laugh, "shock": shock},
        comment_count=comments,
        comment_times=tuple(NOW - timedelta(hours=comment_age_hours) for _ in range(comments)),
    )


def test_zero_engagement_past_recency_window_scores_floor():
    scorer = scoring.DecayTrendingScorer()
    assert scorer.score(_post(hours_old=30), _engagement(), NOW) == pytest.approx(0.1)
    assert scorer.score(_post(hours_old=2), _engagement(), NOW) == pytest.approx(0.1)


def test_zero_engagement_brand_new_post_keeps_recency_boost():
    scorer = scoring.DecayTrendingScorer()
    assert scorer.score(_post(hours_old=0), _engagement(), NOW) == pytest.approx(1.0)


def test_decay_factor_halves_every_twelve_hours():
    assert scoring.decay_factor(0) == pytest.approx(1.0)
    assert scoring.decay_factor(12) == pytest.approx(0.5)
    assert scoring.decay_factor(24) == pytest.approx(0.25)


def test_recency_boost_window():
    assert scoring.recency_boost(0) == pytest.approx(1.0)
    assert scoring.recency_boost(1) == pytest.approx(0.5)
    assert scoring.recency_boost(2) == 0
    assert scoring.recency_boost(5) == 0


def test_score_decreases_with_age_for_same_engagement():
    scorer = scoring.DecayTrendingScorer()
    engagement = _engagement(fire=5, laugh=2, comments=3)
    scores = [scorer.score(_post(hours_old=age), engagement, NOW) for age in (0, 1, 3, 6, 12, 24, 48)]
    assert scores == sorted(scores, reverse=True)
    assert len(set(scores)) == len(scores)


def test_full_formula_with_recent_comments():
    scorer = scoring.DecayTrendingScorer()
    engagement = _engagement(fire=4, shock=1, comments=2, comment_age_hours=1)
    # base 5 + 2*2, recency (2-1)*0.5, velocity 2*1.5, decay 0.5 ** (1/12)
    expected = (9 + 0.5 + 3.0) * 0.5 ** (1 / 12)
    assert scorer.score(_post(hours_old=1), engagement, NOW) == pytest.approx(expected)


def test_old_comments_do_not_add_velocity():
    scorer = scoring.DecayTrendingScorer()
    fresh = _engagement(comments=2, comment_age_hours=1)
    stale = _engagement(comments=2, comment_age_hours=7)
    assert scorer.score(_post(hours_old=8), fresh, NOW) > scorer.score(_post(hours_old=8), stale, NOW)


def test_future_created_at_is_treated_as_brand_new():
    scorer = scoring.DecayTrendingScorer()
    assert scorer.score(_post(hours_old=-3), _engagement(fire=1), NOW) == pytest.approx(2.0)


def test_reactions_per_hour_uses_one_hour_minimum_and_rounds():
    scorer = scoring.ReactionsPerHourScorer()
    assert scorer.score(_post(hours_old=0.25), _engagement(fire=3), NOW) == pytest.approx(3.0)
    assert scorer.score(_post(hours_old=3), _engagement(fire=10), NOW) == pytest.approx(3.33)


def test_get_scorer_defaults_to_decay_and_rejects_unknown_modes():
    assert scoring.get_scorer().mode == "decay"
    assert scoring.get_scorer("per_hour").mode == "per_hour"
    with pytest.raises(InvalidFilter):
        scoring.get_scorer("viral")


def test_order_by_score_breaks_ties_by_newest_then_id():
    older = SimpleNamespace(id="a", score=2.0, created_at=NOW - timedelta(hours=2))
    newer = SimpleNamespace(id="b", score=2.0, created_at=NOW)
    same_time_low_id = SimpleNamespace(id="c", score=2.0, created_at=NOW - timedelta(hours=1))
    same_time_high_id = SimpleNamespace(id="d", score=2.0, created_at=NOW - timedelta(hours=1))
    top = SimpleNamespace(id="z", score=5.0, created_at=NOW - timedelta(days=1))

    ordered = scoring.order_by_score([older, same_time_low_id, top, newer, same_time_high_id])

    assert [item.id for item in ordered] == ["z", "b", "d", "c", "a"]


def test_rank_scores_items_in_place():
    items = [
        SimpleNamespace(id="quiet", post=_post(hours_old=5, post_id="quiet"), engagement=_engagement(), score=None),
        SimpleNamespace(id="loud", post=_post(hours_old=5, post_id="loud"), engagement=_engagement(fire=9), score=None),
    ]
    for item in items:
        item.created_at = item.post.created_at

    ranked = scoring.rank(items, scoring.DecayTrendingScorer(), NOW)

    assert [item.id for item in ranked] == ["loud", "quiet"]
    assert all(item.score is not None for item in ranked)
