from esprovisioner.errors import ValidationError
from esprovisioner.models import VerificationOutcome
from esprovisioner.search import build_suite, format_outcome, summarize, total_hits


def test_suite_shapes():
    suite = {q.name: q.body for q in build_suite('say "hi"')}

    assert list(suite) == ["basic", "filtered", "aggregation", "range", "fuzzy"]
    assert suite["basic"]["query"]["multi_match"]["query"] == 'say "hi"'
    assert suite["basic"]["sort"][1]["created_at"]["unmapped_type"] == "date"
    assert suite["filtered"]["query"]["bool"]["filter"] == [{"term": {"status": "published"}}]
    assert suite["aggregation"]["size"] == 0
    assert set(suite["aggregation"]["aggs"]) == {"tags_counts", "status_counts"}
    assert suite["range"]["query"]["bool"]["filter"] == [{"range": {"priority": {"gte": 2}}}]
    assert suite["fuzzy"]["query"]["multi_match"]["fuzziness"] == "AUTO"


def test_total_hits_formats():
    assert total_hits({"hits": {"total": {"value": 7, "relation": "eq"}}}) == 7
    assert total_hits({"hits": {"total": 3}}) == 3
    assert total_hits({}) == 0


def test_summarize():
    response = {
        "took": 4,
        "hits": {
            "total": {"value": 2},
            "hits": [
                {"_id": "1", "_score": 1.5, "_source": {"title": "One"}},
                {"_id": "2", "_score": 0.5, "_source": {}},
            ],
        },
        "aggregations": {"status_counts": {"buckets": [{"key": "published", "doc_count": 2}]}},
    }

    outcome = summarize("basic", response, 12.0, top_n=1)

    assert outcome.hit_count == 2
    assert outcome.took_ms == 4
    assert [h.id for h in outcome.top_hits] == ["1"]
    assert outcome.buckets == {"status_counts": (("published", 2),)}

    lines = format_outcome(outcome)
    assert lines[0].startswith("[basic] 2 hits (took 4ms")
    assert "  • One (Score: 1.50)" in lines
    assert "    • published: 2 documents" in lines


def test_format_failed_outcome():
    outcome = VerificationOutcome(name="range", elapsed_ms=1.0, error=ValidationError("bad query"))

    assert format_outcome(outcome) == ["[range] FAILED: bad query"]
