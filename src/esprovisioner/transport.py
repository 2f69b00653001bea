"""
esprovisioner Transport: Client Construction and Retries
========================================================

Builds the ``elasticsearch`` client from a ``ClusterConfig`` and wraps
individual calls with a bounded exponential-backoff retry for connection
failures. API errors (401/403/400/...) are translated and surfaced on the
first attempt.
"""

import logging
import time
from typing import Any, Callable, TypeVar

from elasticsearch import Elasticsearch

from .config import ClusterConfig
from .errors import translate

logger = logging.getLogger(__name__)

T = TypeVar("T")


def build_client(config: ClusterConfig) -> Elasticsearch:
    """Create an Elasticsearch client authenticated with the config's credentials."""
    return Elasticsearch(**config.client_kwargs())


def call_with_retry(
    config: ClusterConfig,
    context: str,
    fn: Callable[..., T],
    *args: Any,
    sleep: Callable[[float], None] = time.sleep,
    **kwargs: Any
) -> T:
    """
    Invoke ``fn(*args, **kwargs)``, retrying connection failures.

    Args:
        config: Supplies ``max_attempts`` and the backoff schedule
        context: Description used in log lines and error messages
        fn: Client method to call
        sleep: Delay function (replaceable in tests)

    Returns:
        Whatever ``fn`` returns

    Raises:
        ProvisionError: translated failure after the retry budget is spent,
            or immediately for non-retryable failures
    """
    attempt = 1
    while True:
        try:
            return fn(*args, **kwargs)
        except Exception as exc:
            error = translate(exc, context)
            if not error.retryable or attempt >= config.max_attempts:
                raise error from exc

            delay = config.backoff_delay(attempt)
            logger.warning(
                "%s failed (attempt %d/%d), retrying in %.1fs: %s",
                context, attempt, config.max_attempts, delay, error
            )
            sleep(delay)
            attempt += 1


def response_body(resp: Any) -> Any:
    """Plain body of a client response (``ObjectApiResponse`` or dict)."""
    return getattr(resp, "body", resp)
