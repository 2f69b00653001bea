"""
esprovisioner Search: Verification Query Battery
================================================

The fixed set of read-only queries run against a freshly provisioned
index, and helpers to summarise and print their responses.

Queries:
    basic        multi-field match, ranked by score then recency
    filtered     match restricted to published documents
    aggregation  tag and status distributions
    range        documents with priority >= 2
    fuzzy        typo-tolerant multi-field match
"""

from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence

from .models import HitSummary, VerificationOutcome

SEARCH_FIELDS = ["title", "content", "tags"]
TEXT_FIELDS = ["title", "content"]
AGGREGATION_FIELDS = ["tags", "status"]
PUBLISHED_STATUS = "published"
MIN_PRIORITY = 2


@dataclass(frozen=True)
class VerificationQuery:
    name: str
    description: str
    body: Mapping[str, Any]


def build_suite(query: str) -> List[VerificationQuery]:
    """
    Build the verification battery for a free-text query.

    Args:
        query: Text searched by the match-based queries

    Returns:
        Queries in execution order
    """
    match_text = {"multi_match": {"query": query, "fields": TEXT_FIELDS}}

    return [
        VerificationQuery(
            name="basic",
            description=f"multi-field match for '{query}'",
            body={
                "query": {"multi_match": {"query": query, "fields": SEARCH_FIELDS}},
                "size": 10,
                "sort": [
                    {"_score": {"order": "desc"}},
                    {"created_at": {"order": "desc", "unmapped_type": "date"}},
                ],
            },
        ),
        VerificationQuery(
            name="filtered",
            description=f"match for '{query}' with status={PUBLISHED_STATUS}",
            body={
                "query": {
                    "bool": {
                        "must": [match_text],
                        "filter": [{"term": {"status": PUBLISHED_STATUS}}],
                    }
                },
                "size": 5,
            },
        ),
        VerificationQuery(
            name="aggregation",
            description="terms aggregation over " + ", ".join(AGGREGATION_FIELDS),
            body={
                "size": 0,
                "aggs": {
                    f"{field}_counts": {"terms": {"field": field, "size": 10}}
                    for field in AGGREGATION_FIELDS
                },
            },
        ),
        VerificationQuery(
            name="range",
            description=f"priority >= {MIN_PRIORITY}",
            body={
                "query": {
                    "bool": {
                        "filter": [{"range": {"priority": {"gte": MIN_PRIORITY}}}],
                    }
                },
                "size": 5,
                "track_total_hits": True,
            },
        ),
        VerificationQuery(
            name="fuzzy",
            description=f"fuzzy match for '{query}'",
            body={
                "query": {
                    "multi_match": {
                        "query": query,
                        "fields": TEXT_FIELDS,
                        "fuzziness": "AUTO",
                    }
                },
                "size": 5,
            },
        ),
    ]


def total_hits(response: Mapping[str, Any]) -> int:
    total = response.get("hits", {}).get("total", 0)
    if isinstance(total, dict):
        return int(total.get("value", 0))
    return int(total or 0)


def summarize(
    name: str,
    response: Mapping[str, Any],
    elapsed_ms: float,
    top_n: int = 5
) -> VerificationOutcome:
    """Turn a search response into a VerificationOutcome."""
    hits = response.get("hits", {}).get("hits", [])
    top_hits = tuple(
        HitSummary(
            id=str(hit.get("_id", "")),
            score=hit.get("_score"),
            title=str(hit.get("_source", {}).get("title", "")),
        )
        for hit in hits[:top_n]
    )

    buckets = {
        agg_name: tuple((str(b["key"]), int(b["doc_count"])) for b in agg.get("buckets", []))
        for agg_name, agg in response.get("aggregations", {}).items()
    }

    return VerificationOutcome(
        name=name,
        elapsed_ms=elapsed_ms,
        hit_count=total_hits(response),
        took_ms=response.get("took"),
        top_hits=top_hits,
        buckets=buckets,
    )


def format_outcome(outcome: VerificationOutcome) -> List[str]:
    """Render an outcome as printable lines."""
    if outcome.error is not None:
        return [f"[{outcome.name}] FAILED: {outcome.error}"]

    took = f"{outcome.took_ms}ms" if outcome.took_ms is not None else "?"
    lines = [
        f"[{outcome.name}] {outcome.hit_count} hits "
        f"(took {took}, round trip {outcome.elapsed_ms:.1f}ms)"
    ]
    for hit in outcome.top_hits:
        score = f"{hit.score:.2f}" if hit.score is not None else "-"
        lines.append(f"  • {hit.title or hit.id} (Score: {score})")
    for agg_name, buckets in outcome.buckets.items():
        lines.append(f"  {agg_name}:")
        for key, count in buckets:
            lines.append(f"    • {key}: {count} documents")
    return lines


def print_summary_table(outcomes: Sequence[VerificationOutcome]) -> None:
    """Print a one-row-per-query table."""
    print(f"\n{'Query':<14} {'Status':<8} {'Hits':>8} {'Time (ms)':>12}")
    print("-" * 45)
    for o in outcomes:
        status = "ok" if o.ok else "FAILED"
        print(f"{o.name:<14} {status:<8} {o.hit_count:>8,} {o.elapsed_ms:>12.1f}")


def failed(outcomes: Sequence[VerificationOutcome]) -> List[VerificationOutcome]:
    return [o for o in outcomes if not o.ok]


def find(outcomes: Sequence[VerificationOutcome], name: str) -> Optional[VerificationOutcome]:
    for o in outcomes:
        if o.name == name:
            return o
    return None

