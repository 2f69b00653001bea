import pytest

from esprovisioner import NotFoundError, OnExists
from esprovisioner.samples import default_index_spec


def test_health(manager):
    assert manager.health()["status"] == "green"


def test_indices_hide_system(manager, provisioner, cluster):
    provisioner.provision(None, default_index_spec("b-index"))
    provisioner.ensure_index(default_index_spec("a-index", documents=[]))
    cluster.indices[".security"] = {"settings": {}, "properties": {}, "docs": {}}

    names = [i["name"] for i in manager.indices()]

    assert names == ["a-index", "b-index"]
    assert ".security" in [i["name"] for i in manager.indices(include_system=True)]
    assert manager.indices()[1]["docs_count"] == 5


def test_users(manager, cluster):
    names = [u["name"] for u in manager.users()]
    assert names == ["elastic"]


def test_mapping_and_stats(manager, provisioner):
    provisioner.provision(None, default_index_spec("test-index"), OnExists.SKIP)

    props = manager.mapping("test-index")
    stats = manager.get_stats("test-index")

    assert props["title"] == {"type": "text", "analyzer": "standard"}
    assert stats["docs_count"] == 5


def test_mapping_of_missing_index(manager):
    with pytest.raises(NotFoundError):
        manager.mapping("nope")


def test_node_stats(manager, cluster):
    cluster.nodes["node-0"] = {"name": "es-0", "roles": ["data"], "heap_used_percent": 17}

    nodes = manager.node_stats()

    assert [n["name"] for n in nodes] == ["es-0", "es-1"]
    assert nodes[1] == {"name": "es-1", "roles": ["master", "data"], "heap_used_percent": 42}
    assert cluster.ops("nodes.stats") == [{"metric": "jvm"}]
