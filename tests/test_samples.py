import json

import pytest

from esprovisioner.samples import SAMPLE_DOCUMENTS, default_index_spec, load_seed_file


def test_default_spec():
    spec = default_index_spec()

    assert spec.name == "test-index"
    assert (spec.shard_count, spec.replica_count) == (3, 1)
    assert spec.properties()["priority"] == {"type": "integer"}
    assert spec.properties()["metadata"] == {"type": "object", "dynamic": True}
    assert [d.id for d in spec.seed_documents] == ["1", "2", "3", "4", "5"]
    assert [d.fields["priority"] for d in SAMPLE_DOCUMENTS] == [1, 2, 3, 1, 2]


def test_default_spec_without_documents():
    assert default_index_spec("x", documents=[]).seed_documents == ()


def test_load_jsonl(tmp_path):
    path = tmp_path / "seed.jsonl"
    path.write_text('{"id": "a", "priority": 1}\n\n{"id": "b", "priority": 2}\n', encoding="utf-8")

    docs = load_seed_file(path)

    assert [d.id for d in docs] == ["a", "b"]
    assert docs[1].fields["priority"] == 2


def test_load_json_array(tmp_path):
    path = tmp_path / "seed.json"
    path.write_text(json.dumps([{"id": 1, "title": "t"}]), encoding="utf-8")

    assert load_seed_file(path)[0].source() == {"id": 1, "title": "t"}


def test_load_reports_bad_line(tmp_path):
    path = tmp_path / "seed.jsonl"
    path.write_text('{"id": "a"}\n{oops\n', encoding="utf-8")

    with pytest.raises(ValueError, match=":2:"):
        load_seed_file(path)
