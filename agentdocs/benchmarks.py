# agentdocs/benchmarks.py
"""
Benchmark aggregation for the use-case comparison view.

Provides:
- mean_of_present(values) -> mean over non-missing values, or None
- aggregate_service(service, snippets) -> per-service stats + recommendation
- recommend(stats) -> "best-value" | "highest-quality" | "fastest" | None
- rank_services(entries) -> entries ordered by average quality, best first

Only snippets whose verification passed contribute to the averages. A metric
with no values is None, never 0 or NaN.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from agentdocs.models import STATUS_PASSED

RECOMMEND_BEST_VALUE = "best-value"
RECOMMEND_HIGHEST_QUALITY = "highest-quality"
RECOMMEND_FASTEST = "fastest"


@dataclass(frozen=True)
class RecommendationThresholds:
    best_value_min_quality: float = 90.0
    best_value_max_cost_usd: float = 0.01  # exclusive
    highest_quality_min_quality: float = 95.0
    fastest_max_latency_ms: float = 100.0  # exclusive


DEFAULT_THRESHOLDS = RecommendationThresholds()


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def mean_of_present(values: Iterable[Any]) -> Optional[float]:
    present = [float(v) for v in values if not _is_missing(v)]
    if not present:
        return None
    return math.fsum(present) / len(present)


def recommend(stats: Dict[str, Any], thresholds: RecommendationThresholds = DEFAULT_THRESHOLDS) -> Optional[str]:
    """
    Label a service from its averages. Rules are checked in order and the
    first match wins, so a cheap service at quality 96 is "best-value",
    not "highest-quality".
    """
    quality = stats.get("avg_quality_score")
    cost = stats.get("avg_cost_usd")
    latency = stats.get("avg_latency_ms")

    if quality is None:
        return None
    if (quality >= thresholds.best_value_min_quality
            and cost is not None and cost < thresholds.best_value_max_cost_usd):
        return RECOMMEND_BEST_VALUE
    if quality >= thresholds.highest_quality_min_quality:
        return RECOMMEND_HIGHEST_QUALITY
    if latency is not None and latency < thresholds.fastest_max_latency_ms:
        return RECOMMEND_FASTEST
    return None


def aggregate_service(service: Dict[str, Any], snippets: List[Dict[str, Any]],
                      thresholds: RecommendationThresholds = DEFAULT_THRESHOLDS) -> Dict[str, Any]:
    verified = [s for s in snippets if s.get("verification_status") == STATUS_PASSED]
    entry = {
        "slug": service["slug"],
        "name": service["name"],
        "website": service.get("website"),
        "docs_url": service.get("docs_url"),
        "logo_url": service.get("logo_url"),
        "snippet_count": len(snippets),
        "verified_count": len(verified),
        "avg_latency_ms": mean_of_present(s.get("benchmark_latency_ms") for s in verified),
        "avg_cost_usd": mean_of_present(s.get("benchmark_cost_usd") for s in verified),
        "avg_quality_score": mean_of_present(s.get("benchmark_quality_score") for s in verified),
    }
    entry["recommendation"] = recommend(entry, thresholds)
    return entry


def rank_services(entries: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    # missing quality sorts as 0; the displayed value stays None
    return sorted(entries, key=lambda e: e["avg_quality_score"] or 0.0, reverse=True)
