"""
esprovisioner Cluster: Read-Only Cluster Inspection
===================================================

Health, index, user and mapping lookups used by the command-line
``health``, ``indices``, ``users`` and ``mapping`` commands and by the
post-verification report. Nothing here mutates the cluster.

Unlike the Provisioner, these helpers raise ``ProvisionError`` on failure.
"""

import time
from typing import Any, Callable, Dict, List, Optional

from elasticsearch import Elasticsearch

from .config import ClusterConfig
from .transport import build_client, call_with_retry, response_body


class ClusterManager:
    """
    Elasticsearch cluster inspection utilities.

    Example:
        manager = ClusterManager(ClusterConfig.from_env())
        print(manager.health())
        print(manager.indices())
    """

    def __init__(
        self,
        config: ClusterConfig,
        client: Optional[Elasticsearch] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize cluster manager.

        Args:
            config: Connection, credential and retry settings
            client: Pre-built client (built from config if None)
            sleep: Backoff delay function
        """
        self.config = config
        self._client = client if client is not None else build_client(config)
        self._sleep = sleep

    def _get(self, context: str, fn: Callable[..., Any], **kwargs: Any) -> Any:
        resp = call_with_retry(self.config, context, fn, sleep=self._sleep, **kwargs)
        return response_body(resp)

    def health(self) -> dict:
        """
        Get cluster health status (``GET /_cluster/health``).

        Returns:
            Dict with cluster health information
        """
        return dict(self._get("cluster health", self._client.cluster.health))

    def node_stats(self) -> List[dict]:
        """
        Per-node JVM heap usage (``GET /_nodes/stats/jvm``).

        Returns:
            List of dicts with name, roles and heap_used_percent, sorted by name
        """
        stats = self._get("node stats", self._client.nodes.stats, metric="jvm")
        nodes = [
            {
                "name": info.get("name", node_id),
                "roles": list(info.get("roles", [])),
                "heap_used_percent": info.get("jvm", {}).get("mem", {}).get("heap_used_percent"),
            }
            for node_id, info in stats.get("nodes", {}).items()
        ]
        return sorted(nodes, key=lambda n: n["name"])

    def indices(self, include_system: bool = False) -> List[dict]:
        """
        List indices with document counts and sizes.

        Args:
            include_system: Also list dot-prefixed system indices

        Returns:
            List of index info dicts sorted by name
        """
        cat_indices = self._get("list indices", self._client.cat.indices, format="json")
        rows = [
            {
                "name": idx["index"],
                "health": idx.get("health", "unknown"),
                "status": idx.get("status", "unknown"),
                "docs_count": int(idx.get("docs.count") or 0),
                "size": idx.get("store.size") or "0b",
                "pri_shards": int(idx.get("pri") or 0),
                "rep_shards": int(idx.get("rep") or 0)
            }
            for idx in cat_indices
            if include_system or not idx["index"].startswith(".")
        ]
        return sorted(rows, key=lambda r: r["name"])

    def users(self) -> List[dict]:
        """
        List native-realm and reserved users.

        Returns:
            List of dicts with name, roles, full name and enabled flag
        """
        users = self._get("list users", self._client.security.get_user)
        return [
            {
                "name": name,
                "roles": list(info.get("roles", [])),
                "full_name": info.get("full_name") or "",
                "enabled": bool(info.get("enabled", True)),
            }
            for name, info in sorted(users.items())
        ]

    def mapping(self, index: str) -> Dict[str, Any]:
        """
        Get the field properties of an index (``GET /{index}/_mapping``).

        Args:
            index: Index name

        Returns:
            The ``mappings.properties`` dict of the index
        """
        resp = self._get(f"mapping of '{index}'", self._client.indices.get_mapping, index=index)
        node = resp.get(index)
        if node is None and len(resp) == 1:
            # Alias lookups answer with the concrete index name
            node = next(iter(resp.values()))
        return dict((node or {}).get("mappings", {}).get("properties", {}))

    def get_stats(self, index: str) -> dict:
        """
        Get document count and store size of an index.

        Args:
            index: Index name

        Returns:
            Dict with docs_count, docs_deleted and size_bytes
        """
        stats = self._get(f"stats of '{index}'", self._client.indices.stats, index=index)
        primary = stats["_all"]["primaries"]

        return {
            "docs_count": primary["docs"]["count"],
            "docs_deleted": primary["docs"]["deleted"],
            "size_bytes": primary["store"]["size_in_bytes"],
        }

    def close(self):
        """Close the Elasticsearch client connection."""
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
