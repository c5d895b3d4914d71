"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

REQUEST_COUNTER = Counter(
	"hotgist_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"hotgist_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

FEED_REQUESTS = Counter(
	"hotgist_feed_requests_total",
	"Feed pages assembled",
	["mode", "result"],
)

FEED_RANK_CANDIDATES = Counter(
	"hotgist_feed_rank_candidates_total",
	"Candidate posts considered while assembling feeds",
)

FEED_RANK_DURATION = Histogram(
	"hotgist_feed_rank_duration_ms",
	"Feed assembly duration",
	buckets=[5, 10, 20, 40, 80, 160, 320, 640, 1280],
)

FEED_RANK_SCORE_AVG = Gauge(
	"hotgist_feed_rank_score_avg",
	"Average trending score of the top 20 posts of the last ranked feed",
)

FEED_ENRICHMENT_DROPPED = Counter(
	"hotgist_feed_enrichment_dropped_total",
	"Posts dropped from a page because their enrichment failed",
)

ENGAGEMENT_CACHE = Counter(
	"hotgist_engagement_cache_total",
	"Engagement cache lookups",
	["result"],
)

REACTION_TOGGLES = Counter(
	"hotgist_reaction_toggles_total",
	"Reaction toggles by resulting action",
	["action"],
)

STORAGE_UP = Gauge(
	"hotgist_storage_up",
	"Storage adapter reachability (1=up)",
	["backend"],
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def mark_storage(backend: str, ok: bool) -> None:
	STORAGE_UP.labels(backend=backend).set(1 if ok else 0)


def record_feed(mode: str, result: str) -> None:
	FEED_REQUESTS.labels(mode=mode, result=result).inc()


def record_cache(hit: bool) -> None:
	ENGAGEMENT_CACHE.labels(result="hit" if hit else "miss").inc()
