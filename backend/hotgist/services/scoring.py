"""Trending score strategies for campus feeds."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Protocol, Sequence, TypeVar

from hotgist.domain import models
from hotgist.domain.exceptions import InvalidFilter

HALF_LIFE_HOURS = 12.0
RECENCY_WINDOW_HOURS = 2.0
RECENCY_BOOST_PER_HOUR = 0.5
VELOCITY_WINDOW_HOURS = 6.0
VELOCITY_BOOST_PER_COMMENT = 1.5
COMMENT_WEIGHT = 2
SCORE_FLOOR = 0.1


class TrendingScorer(Protocol):
    """Strategy turning a post's engagement snapshot into a ranking score."""

    mode: str

    def score(self, post: models.Post, engagement: models.Engagement, now: datetime) -> float:
        ...


def age_in_hours(created_at: datetime, now: datetime) -> float:
    """Hours between ``created_at`` and ``now``; future timestamps count as age 0."""

    return max((now - created_at).total_seconds() / 3600.0, 0.0)


def decay_factor(age_hours: float) -> float:
    return 0.5 ** (age_hours / HALF_LIFE_HOURS)


def recency_boost(age_hours: float) -> float:
    if age_hours < RECENCY_WINDOW_HOURS:
        return (RECENCY_WINDOW_HOURS - age_hours) * RECENCY_BOOST_PER_HOUR
    return 0.0


def velocity_boost(comment_times: Iterable[datetime], now: datetime) -> float:
    recent = sum(1 for created in comment_times if (now - created).total_seconds() / 3600.0 < VELOCITY_WINDOW_HOURS)
    return recent * VELOCITY_BOOST_PER_COMMENT


class DecayTrendingScorer:
    """Engagement with a 12 hour half-life, a first-hours boost and a comment velocity bonus.

    ``(reactions + 2 * comments + recency + velocity) * 0.5 ** (age / 12)``,
    floored at 0.1.
    """

    mode = "decay"

    def score(self, post: models.Post, engagement: models.Engagement, now: datetime) -> float:
        age = age_in_hours(post.created_at, now)
        base = engagement.total_reactions + engagement.comment_count * COMMENT_WEIGHT
        raw = (base + recency_boost(age) + velocity_boost(engagement.comment_times, now)) * decay_factor(age)
        return max(raw, SCORE_FLOOR)


class ReactionsPerHourScorer:
    """Reactions per hour since creation, used by the windowed top-posts view."""

    mode = "per_hour"

    def score(self, post: models.Post, engagement: models.Engagement, now: datetime) -> float:
        hours = max(1.0, (now - post.created_at).total_seconds() / 3600.0)
        return round(engagement.total_reactions / hours, 2)


SCORERS: dict[str, TrendingScorer] = {
    DecayTrendingScorer.mode: DecayTrendingScorer(),
    ReactionsPerHourScorer.mode: ReactionsPerHourScorer(),
}

DEFAULT_MODE = DecayTrendingScorer.mode


def get_scorer(mode: str | None = None) -> TrendingScorer:
    try:
        return SCORERS[mode or DEFAULT_MODE]
    except KeyError:
        raise InvalidFilter(f"Unknown trending mode: {mode}") from None


class Ranked(Protocol):
    score: float | None
    created_at: datetime
    id: str


R = TypeVar("R", bound=Ranked)


def trending_key(item: Ranked) -> tuple[float, float, str]:
    return (item.score or 0.0, item.created_at.timestamp(), item.id)


def recency_key(item: Ranked) -> tuple[float, float, str]:
    return (0.0, item.created_at.timestamp(), item.id)


def order_by_score(items: Sequence[R]) -> list[R]:
    """Highest score first; equal scores fall back to newest, then id."""

    return sorted(items, key=trending_key, reverse=True)


def order_by_recency(items: Sequence[R]) -> list[R]:
    return sorted(items, key=recency_key, reverse=True)


def rank(items: Sequence[Any], scorer: TrendingScorer, now: datetime) -> list[Any]:
    """Score enriched items in place (``post``/``engagement``/``score``) and order them."""

    for item in items:
        item.score = scorer.score(item.post, item.engagement, now)
    return order_by_score(items)


__all__ = [
    "DecayTrendingScorer",
    "ReactionsPerHourScorer",
    "TrendingScorer",
    "age_in_hours",
    "decay_factor",
    "get_scorer",
    "order_by_recency",
    "order_by_score",
    "rank",
    "recency_boost",
    "recency_key",
    "trending_key",
    "velocity_boost",
]
