import pytest

from esprovisioner import ClusterConfig


def test_defaults_from_empty_env():
    config = ClusterConfig.from_env(env={})

    assert config.url == "http://localhost:9200"
    assert config.basic_auth == ("elastic", "elastic")
    assert config.request_timeout == 10.0
    assert config.max_attempts == 3


def test_values_from_env():
    config = ClusterConfig.from_env(env={
        "ELASTIC_URL": "https://es.local:9200/",
        "ELASTIC_USERNAME": "admin",
        "ELASTIC_PASSWORD": "pw",
        "ES_REQUEST_TIMEOUT": "2.5",
        "ES_MAX_ATTEMPTS": "5",
        "ES_VERIFY_CERTS": "false",
    })

    assert config.url == "https://es.local:9200"
    assert config.basic_auth == ("admin", "pw")
    assert config.request_timeout == 2.5
    assert config.max_attempts == 5
    assert config.verify_certs is False


def test_invalid_number_in_env():
    with pytest.raises(ValueError, match="ES_MAX_ATTEMPTS"):
        ClusterConfig.from_env(env={"ES_MAX_ATTEMPTS": "many"})


def test_rejects_zero_attempts():
    with pytest.raises(ValueError):
        ClusterConfig(max_attempts=0)


def test_backoff_doubles_and_caps():
    config = ClusterConfig(backoff_base=1.0, backoff_max=3.0)

    assert [config.backoff_delay(n) for n in (1, 2, 3, 4)] == [1.0, 2.0, 3.0, 3.0]


def test_with_overrides_ignores_none():
    config = ClusterConfig().with_overrides(username="ops", password=None)

    assert config.username == "ops"
    assert config.password == "elastic"


def test_client_kwargs_disable_transport_retries():
    kwargs = ClusterConfig(request_timeout=4).client_kwargs()

    assert kwargs["hosts"] == ["http://localhost:9200"]
    assert kwargs["max_retries"] == 0
    assert kwargs["request_timeout"] == 4
    assert "verify_certs" not in kwargs
    assert ClusterConfig(url="https://x:9200", verify_certs=False).client_kwargs()["verify_certs"] is False
