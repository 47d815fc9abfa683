import math

from agentdocs import benchmarks
from agentdocs.benchmarks import (
    RECOMMEND_BEST_VALUE, RECOMMEND_HIGHEST_QUALITY, RECOMMEND_FASTEST,
    RecommendationThresholds,
)


def _snippet(status="passed", latency=None, cost=None, quality=None):
    return {
        "verification_status": status,
        "benchmark_latency_ms": latency,
        "benchmark_cost_usd": cost,
        "benchmark_quality_score": quality,
    }


def _stats(quality=None, cost=None, latency=None):
    return {"avg_quality_score": quality, "avg_cost_usd": cost, "avg_latency_ms": latency}


def test_mean_skips_missing_values():
    assert benchmarks.mean_of_present([90, 95, None]) == 92.5
    assert benchmarks.mean_of_present([None, float("nan")]) is None
    assert benchmarks.mean_of_present([]) is None


def test_mean_counts_zero():
    assert benchmarks.mean_of_present([0, 10]) == 5.0


def test_recommend_rules_in_order():
    # cheap and good beats highest-quality even at 96
    assert benchmarks.recommend(_stats(quality=96, cost=0.005)) == RECOMMEND_BEST_VALUE
    assert benchmarks.recommend(_stats(quality=96, cost=0.02)) == RECOMMEND_HIGHEST_QUALITY
    assert benchmarks.recommend(_stats(quality=80, cost=0.02, latency=50)) == RECOMMEND_FASTEST
    assert benchmarks.recommend(_stats(quality=80, cost=0.02, latency=100)) is None


def test_recommend_needs_quality():
    assert benchmarks.recommend(_stats(quality=None, cost=0.001, latency=10)) is None


def test_recommend_thresholds_are_boundaries():
    assert benchmarks.recommend(_stats(quality=90, cost=0.0099)) == RECOMMEND_BEST_VALUE
    assert benchmarks.recommend(_stats(quality=89.9, cost=0.0099)) is None
    assert benchmarks.recommend(_stats(quality=95, cost=0.01)) == RECOMMEND_HIGHEST_QUALITY
    assert benchmarks.recommend(_stats(quality=90, cost=0.0)) == RECOMMEND_BEST_VALUE


def test_recommend_custom_thresholds():
    strict = RecommendationThresholds(best_value_min_quality=99.0)
    assert benchmarks.recommend(_stats(quality=96, cost=0.005), strict) == RECOMMEND_HIGHEST_QUALITY


def test_aggregate_uses_only_verified_snippets():
    service = {"slug": "deepgram", "name": "Deepgram", "website": "https://deepgram.com"}
    snippets = [
        _snippet(latency=800, cost=0.004, quality=94),
        _snippet(latency=900, cost=None, quality=None),
        _snippet(status="pending", latency=1, cost=100.0, quality=1),
        _snippet(status="failed"),
    ]
    entry = benchmarks.aggregate_service(service, snippets)

    assert entry["slug"] == "deepgram"
    assert entry["snippet_count"] == 4
    assert entry["verified_count"] == 2
    assert entry["avg_latency_ms"] == 850
    assert math.isclose(entry["avg_cost_usd"], 0.004)
    assert entry["avg_quality_score"] == 94
    assert entry["recommendation"] == RECOMMEND_BEST_VALUE
    assert entry["logo_url"] is None


def test_aggregate_without_verified_snippets():
    entry = benchmarks.aggregate_service({"slug": "x", "name": "X"}, [_snippet(status="pending")])
    assert entry["verified_count"] == 0
    assert entry["avg_latency_ms"] is None
    assert entry["avg_cost_usd"] is None
    assert entry["avg_quality_score"] is None
    assert entry["recommendation"] is None


def test_rank_services_missing_quality_sorts_as_zero():
    entries = [
        {"slug": "none", "avg_quality_score": None},
        {"slug": "mid", "avg_quality_score": 50.0},
        {"slug": "top", "avg_quality_score": 92.0},
        {"slug": "none-2", "avg_quality_score": None},
    ]
    ranked = benchmarks.rank_services(entries)
    assert [e["slug"] for e in ranked] == ["top", "mid", "none", "none-2"]
    assert ranked[-1]["avg_quality_score"] is None


def test_transcription_scenario():
    deepgram = benchmarks.aggregate_service(
        {"slug": "deepgram", "name": "Deepgram"}, [_snippet(latency=850, cost=0.0043, quality=94)]
    )
    whisper = benchmarks.aggregate_service(
        {"slug": "openai-whisper", "name": "OpenAI Whisper"}, [_snippet(latency=1200, cost=0.006, quality=92)]
    )
    ranked = benchmarks.rank_services([whisper, deepgram])
    assert [e["slug"] for e in ranked] == ["deepgram", "openai-whisper"]
    assert all(e["recommendation"] == RECOMMEND_BEST_VALUE for e in ranked)
