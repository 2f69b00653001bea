import pytest

from esprovisioner import ClusterConfig, ClusterManager, Provisioner

from fakes import FakeCluster


@pytest.fixture
def config():
    return ClusterConfig(
        url="http://localhost:9200",
        username="elastic",
        password="elastic",
        max_attempts=3,
        backoff_base=0.5,
    )


@pytest.fixture
def cluster():
    return FakeCluster(admin=("elastic", "elastic"))


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def provisioner(config, cluster, sleeps):
    return Provisioner(config, client=cluster.client(), sleep=sleeps.append)


@pytest.fixture
def manager(config, cluster, sleeps):
    return ClusterManager(config, client=cluster.client(), sleep=sleeps.append)
