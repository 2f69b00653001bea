import pytest

from esprovisioner import (
    AlreadyExists,
    Created,
    Document,
    ExistsAction,
    Failed,
    FieldDefinition,
    IndexSpec,
    ProvisionReport,
    UserSpec,
)
from esprovisioner.models import describe, documents_from_dicts


def test_user_spec_body():
    spec = UserSpec("alice", "pw", ["monitoring_user", " kibana_user ", ""])

    assert spec.roles == frozenset({"kibana_user", "monitoring_user"})
    assert spec.body() == {
        "password": "pw",
        "roles": ["kibana_user", "monitoring_user"],
        "full_name": "alice",
        "email": "alice@example.com",
    }


def test_user_spec_single_role_string():
    assert UserSpec("alice", "pw", "kibana_user").roles == frozenset({"kibana_user"})


def test_user_spec_matches_ignores_password():
    spec = UserSpec("alice", "pw", {"kibana_user"})
    record = {"roles": ["kibana_user"], "full_name": "alice", "email": "alice@example.com"}

    assert spec.matches(record)
    assert not spec.matches(dict(record, roles=["superuser"]))


def test_user_spec_requires_name():
    with pytest.raises(ValueError):
        UserSpec(" ", "pw")


def test_index_spec_body_parts():
    spec = IndexSpec(
        "articles",
        shard_count=2,
        replica_count=0,
        mapping=[FieldDefinition("title", "text", {"analyzer": "standard"}), FieldDefinition("n", "integer")],
    )

    assert spec.properties() == {"title": {"type": "text", "analyzer": "standard"}, "n": {"type": "integer"}}
    assert list(spec.properties()) == ["title", "n"]
    assert spec.settings()["number_of_shards"] == 2
    assert spec.settings()["number_of_replicas"] == 0
    assert spec.settings()["index"]["refresh_interval"] == "1s"


@pytest.mark.parametrize("kwargs", [
    {"name": "Upper"},
    {"name": "_hidden"},
    {"name": "ok", "shard_count": 0},
    {"name": "ok", "replica_count": -1},
    {"name": "ok", "mapping": (FieldDefinition("a", "text"), FieldDefinition("a", "keyword"))},
])
def test_index_spec_validation(kwargs):
    with pytest.raises(ValueError):
        IndexSpec(**kwargs)


def test_specs_are_immutable():
    doc = Document(7, {"a": 1})

    assert doc.id == "7"
    with pytest.raises(TypeError):
        doc.fields["a"] = 2
    with pytest.raises(AttributeError):
        doc.id = "8"


def test_results_and_report():
    results = (
        Created("index", "a"),
        AlreadyExists("document", "1", ExistsAction.RECREATED),
        Failed("document", "2", "bad priority"),
    )
    report = ProvisionReport(results=results)

    assert [r.ok for r in results] == [True, True, False]
    assert not report.ok
    assert report.failures == [results[2]]
    assert describe(results[0]) == "index 'a' created"
    assert describe(results[1]) == "document '1' already exists (recreated)"
    assert describe(results[2]) == "document '2' failed: bad priority"


def test_documents_from_dicts_requires_id():
    assert documents_from_dicts([{"id": 1, "x": "y"}])[0].id == "1"
    with pytest.raises(ValueError):
        documents_from_dicts([{"x": "y"}])
