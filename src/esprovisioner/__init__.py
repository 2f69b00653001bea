"""
esprovisioner: Idempotent Elasticsearch Provisioning
====================================================

Brings a development Elasticsearch cluster into a known state: a user
with the requested roles, an index with a mapping and seed documents,
and a battery of read-only queries that confirm the data is searchable.

Every step is idempotent. Applying the same specs twice with the SKIP
policy leaves the cluster unchanged; RECREATE drops and rebuilds an
index, reporting a distinct partial failure if the rebuild step fails.

Usage:
    from esprovisioner import ClusterConfig, Provisioner, OnExists, UserSpec
    from esprovisioner.samples import default_index_spec

    config = ClusterConfig.from_env()
    with Provisioner(config) as prov:
        report = prov.provision(
            UserSpec("testuser", "testpass", {"kibana_user"}),
            default_index_spec("articles"),
            OnExists.SKIP,
        )
        outcomes = prov.run_verification_suite("articles", "elasticsearch")

License: MIT
"""

__version__ = "0.1.0"

from .config import ClusterConfig
from .core import Provisioner
from .cluster import ClusterManager
from .errors import (
    AuthError,
    ClusterConnectionError,
    ConflictError,
    NotFoundError,
    PartialFailure,
    ProvisionError,
    ValidationError,
)
from .models import (
    AlreadyExists,
    Created,
    Document,
    ExistsAction,
    Failed,
    FieldDefinition,
    IndexSpec,
    OnExists,
    ProvisionReport,
    UserSpec,
    VerificationOutcome,
)

__all__ = [
    "ClusterConfig",
    "Provisioner",
    "ClusterManager",
    "ProvisionError",
    "ClusterConnectionError",
    "AuthError",
    "ValidationError",
    "ConflictError",
    "NotFoundError",
    "PartialFailure",
    "UserSpec",
    "IndexSpec",
    "FieldDefinition",
    "Document",
    "OnExists",
    "ExistsAction",
    "Created",
    "AlreadyExists",
    "Failed",
    "ProvisionReport",
    "VerificationOutcome",
]
