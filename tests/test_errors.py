import pytest
from elasticsearch import AuthorizationException, ConflictError as ClientConflictError

from esprovisioner import ClusterConfig
from esprovisioner.errors import (
    AuthError,
    ClusterConnectionError,
    ConflictError,
    NotFoundError,
    ProvisionError,
    ValidationError,
    translate,
)
from esprovisioner.transport import call_with_retry

from fakes import api_error, bad_request, connection_refused, not_found, timed_out, unauthorized


@pytest.mark.parametrize("exc, expected", [
    (unauthorized(), AuthError),
    (api_error(AuthorizationException, 403, "security_exception"), AuthError),
    (bad_request("mapper_parsing_exception"), ValidationError),
    (bad_request("resource_already_exists_exception"), ConflictError),
    (api_error(ClientConflictError, 409, "version_conflict_engine_exception"), ConflictError),
    (not_found("index_not_found_exception"), NotFoundError),
    (connection_refused(), ClusterConnectionError),
    (timed_out(), ClusterConnectionError),
])
def test_translate(exc, expected):
    error = translate(exc, "do thing")

    assert type(error) is expected
    assert error.retryable is (expected is ClusterConnectionError)
    assert str(error).startswith("do thing")


def test_translate_keeps_body_and_status():
    error = translate(bad_request("mapper_parsing_exception", "no handler for type [txt]"), "create")

    assert error.status == 400
    assert error.body["error"]["reason"] == "no handler for type [txt]"
    assert "no handler for type [txt]" in str(error)


def test_translate_propagates_unrelated_exceptions():
    with pytest.raises(KeyError):
        translate(KeyError("x"), "lookup")


class Flaky:
    def __init__(self, *errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0

    def __call__(self, **kwargs):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


def test_retry_recovers_from_connection_errors():
    sleeps = []
    fn = Flaky(connection_refused(), connection_refused())

    result = call_with_retry(ClusterConfig(max_attempts=3), "ping", fn, sleep=sleeps.append)

    assert result == "ok"
    assert fn.calls == 3
    assert sleeps == [0.5, 1.0]


def test_retry_recovers_from_timeouts():
    sleeps = []
    fn = Flaky(timed_out())

    result = call_with_retry(ClusterConfig(max_attempts=3), "ping", fn, sleep=sleeps.append)

    assert result == "ok"
    assert fn.calls == 2
    assert sleeps == [0.5]


def test_retry_gives_up_after_budget():
    fn = Flaky(*[connection_refused() for _ in range(5)])

    with pytest.raises(ClusterConnectionError):
        call_with_retry(ClusterConfig(max_attempts=2), "ping", fn, sleep=lambda _: None)
    assert fn.calls == 2


@pytest.mark.parametrize("exc", [unauthorized(), bad_request("parsing_exception")])
def test_no_retry_for_api_errors(exc):
    fn = Flaky(exc)

    with pytest.raises(ProvisionError):
        call_with_retry(ClusterConfig(), "put", fn, sleep=lambda _: pytest.fail("slept"))
    assert fn.calls == 1
