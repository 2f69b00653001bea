"""
esprovisioner Config: Cluster Connection Settings
=================================================

Connection, credential and retry settings for one Elasticsearch cluster.
A ``ClusterConfig`` is built once (usually from the environment and an
optional ``.env`` file) and handed to every component that talks to the
cluster; nothing here is process-global.

Environment variables:
    ELASTIC_URL          Cluster endpoint (default: http://localhost:9200)
    ELASTIC_USERNAME     Admin username (default: elastic)
    ELASTIC_PASSWORD     Admin password (default: elastic)
    ES_REQUEST_TIMEOUT   Per-request timeout in seconds (default: 10)
    ES_MAX_ATTEMPTS      Attempts for connection failures (default: 3)
    ES_VERIFY_CERTS      Verify TLS certificates (default: true)
"""

import os
from dataclasses import dataclass, replace
from typing import Dict, Optional, Any, Mapping

from dotenv import load_dotenv

DEFAULT_URL = "http://localhost:9200"
DEFAULT_USERNAME = "elastic"
DEFAULT_PASSWORD = "elastic"


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid {name}; must be an integer") from exc


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"Invalid {name}; must be a number") from exc


def _bool_env(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class ClusterConfig:
    """
    Runtime configuration for cluster calls.

    Attributes:
        url: Cluster endpoint including scheme
        username: Basic-auth username used for provisioning
        password: Basic-auth password
        verify_certs: Verify TLS certificates
        request_timeout: Seconds before a single request is abandoned
        max_attempts: Total attempts for connection failures (>= 1)
        backoff_base: First retry delay in seconds; doubles per attempt
        backoff_max: Upper bound on a single retry delay
    """

    url: str = DEFAULT_URL
    username: str = DEFAULT_USERNAME
    password: str = DEFAULT_PASSWORD
    verify_certs: bool = True
    request_timeout: float = 10.0
    max_attempts: int = 3
    backoff_base: float = 0.5
    backoff_max: float = 8.0

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive")
        if self.backoff_base < 0 or self.backoff_max < 0:
            raise ValueError("backoff delays must not be negative")

    @property
    def basic_auth(self) -> tuple:
        return (self.username, self.password)

    def backoff_delay(self, attempt: int) -> float:
        """Delay to wait after the given failed attempt (1-based)."""
        return min(self.backoff_base * (2 ** (attempt - 1)), self.backoff_max)

    def with_overrides(self, **overrides: Any) -> "ClusterConfig":
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self

    @staticmethod
    def from_env(
        env: Optional[Mapping[str, str]] = None,
        dotenv_path: Optional[str] = None
    ) -> "ClusterConfig":
        """
        Build a config from environment variables.

        Args:
            env: Mapping to read instead of ``os.environ`` (no ``.env`` loading)
            dotenv_path: Explicit ``.env`` file; default searches upwards from cwd

        Returns:
            ClusterConfig
        """
        if env is None:
            load_dotenv(dotenv_path=dotenv_path)
            env = os.environ

        url = (env.get("ELASTIC_URL") or DEFAULT_URL).strip().rstrip("/")

        return ClusterConfig(
            url=url,
            username=env.get("ELASTIC_USERNAME") or DEFAULT_USERNAME,
            password=env.get("ELASTIC_PASSWORD") or DEFAULT_PASSWORD,
            verify_certs=_bool_env(env, "ES_VERIFY_CERTS", True),
            request_timeout=_float_env(env, "ES_REQUEST_TIMEOUT", 10.0),
            max_attempts=_int_env(env, "ES_MAX_ATTEMPTS", 3),
        )

    def client_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for ``elasticsearch.Elasticsearch``."""
        conn_kwargs: Dict[str, Any] = {
            "hosts": [self.url],
            "basic_auth": self.basic_auth,
            "request_timeout": self.request_timeout,
            # Retries are owned by transport.call_with_retry
            "max_retries": 0,
            "retry_on_timeout": False,
        }
        if self.url.startswith("https://"):
            conn_kwargs["verify_certs"] = self.verify_certs
        return conn_kwargs
