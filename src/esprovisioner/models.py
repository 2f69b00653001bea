"""
esprovisioner Models: Resource Specs and Results
================================================

Immutable descriptions of what should exist on the cluster, and the
tagged results produced when reconciling them.

Specs:
    UserSpec, IndexSpec (with FieldDefinition mapping and Document seeds)

Results (one per applied spec, never mutated):
    Created | AlreadyExists(action) | Failed(reason, error)
"""

import enum
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple, Union

from .errors import ProvisionError


class OnExists(enum.Enum):
    """What ensure_index does when the index is already present."""

    SKIP = "skip"
    RECREATE = "recreate"


class ExistsAction(enum.Enum):
    SKIPPED = "skipped"
    RECREATED = "recreated"


class ResourceState(enum.Enum):
    """Lifecycle of a resource while it is being reconciled."""

    ABSENT = "absent"
    CREATING = "creating"
    PRESENT = "present"
    DELETING = "deleting"


def _frozen_mapping(data: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return MappingProxyType(dict(data or {}))


@dataclass(frozen=True)
class UserSpec:
    """A native-realm user that should exist."""

    name: str
    password: str
    roles: FrozenSet[str] = frozenset()
    full_name: Optional[str] = None
    email: Optional[str] = None

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("user name must not be empty")
        # A bare string is one role, not an iterable of characters
        roles = (self.roles,) if isinstance(self.roles, str) else self.roles
        object.__setattr__(self, "roles", frozenset(r.strip() for r in roles if r.strip()))

    @property
    def display_name(self) -> str:
        return self.full_name or self.name

    @property
    def contact_email(self) -> str:
        return self.email or f"{self.name}@example.com"

    def body(self) -> Dict[str, Any]:
        """Request body for ``PUT /_security/user/{name}``."""
        return {
            "password": self.password,
            "roles": sorted(self.roles),
            "full_name": self.display_name,
            "email": self.contact_email,
        }

    def matches(self, existing: Mapping[str, Any]) -> bool:
        """True when a user record from the cluster has the same roles, name and email."""
        return (
            frozenset(existing.get("roles") or ()) == self.roles
            and existing.get("full_name") == self.display_name
            and existing.get("email") == self.contact_email
        )


@dataclass(frozen=True)
class FieldDefinition:
    """One mapped field: name, type and any extra mapping parameters."""

    name: str
    type: str
    options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "options", _frozen_mapping(self.options))

    def to_property(self) -> Dict[str, Any]:
        prop = {"type": self.type}
        prop.update(self.options)
        return prop


@dataclass(frozen=True)
class Document:
    """A seed document: cluster id plus its source fields."""

    id: str
    fields: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "id", str(self.id))
        object.__setattr__(self, "fields", _frozen_mapping(self.fields))

    def source(self) -> Dict[str, Any]:
        return dict(self.fields)


@dataclass(frozen=True)
class IndexSpec:
    """An index that should exist, with settings, mapping and seed data."""

    name: str
    shard_count: int = 1
    replica_count: int = 1
    mapping: Tuple[FieldDefinition, ...] = ()
    seed_documents: Tuple[Document, ...] = ()
    refresh_interval: str = "1s"
    max_result_window: int = 10000

    def __post_init__(self):
        if not self.name or self.name != self.name.lower() or self.name.startswith(("_", "-", "+")):
            raise ValueError(f"invalid index name: {self.name!r}")
        if self.shard_count < 1:
            raise ValueError("shard_count must be at least 1")
        if self.replica_count < 0:
            raise ValueError("replica_count must not be negative")

        object.__setattr__(self, "mapping", tuple(self.mapping))
        object.__setattr__(self, "seed_documents", tuple(self.seed_documents))

        names = [f.name for f in self.mapping]
        if len(names) != len(set(names)):
            raise ValueError(f"duplicate field in mapping for index {self.name!r}")

    def properties(self) -> Dict[str, Any]:
        return {f.name: f.to_property() for f in self.mapping}

    def settings(self) -> Dict[str, Any]:
        return {
            "number_of_shards": self.shard_count,
            "number_of_replicas": self.replica_count,
            "index": {
                "refresh_interval": self.refresh_interval,
                "max_result_window": self.max_result_window,
            },
        }


@dataclass(frozen=True)
class Created:
    kind: str
    name: str
    ok = True


@dataclass(frozen=True)
class AlreadyExists:
    kind: str
    name: str
    action: ExistsAction = ExistsAction.SKIPPED
    ok = True


@dataclass(frozen=True)
class Failed:
    kind: str
    name: str
    reason: str
    error: Optional[ProvisionError] = None
    ok = False


ReconcileResult = Union[Created, AlreadyExists, Failed]


def describe(result: ReconcileResult) -> str:
    """One-line human description of a result."""
    label = f"{result.kind} '{result.name}'"
    if isinstance(result, Created):
        return f"{label} created"
    if isinstance(result, AlreadyExists):
        return f"{label} already exists ({result.action.value})"
    return f"{label} failed: {result.reason}"


@dataclass(frozen=True)
class HitSummary:
    id: str
    score: Optional[float]
    title: str = ""


@dataclass(frozen=True)
class VerificationOutcome:
    """Summary of one read-only verification query."""

    name: str
    elapsed_ms: float
    hit_count: int = 0
    took_ms: Optional[int] = None
    top_hits: Tuple[HitSummary, ...] = ()
    buckets: Mapping[str, Tuple[Tuple[str, int], ...]] = field(default_factory=dict)
    error: Optional[ProvisionError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ProvisionReport:
    """Results of a full provisioning run (user, index, seeds, refresh)."""

    results: Tuple[ReconcileResult, ...]
    refresh_error: Optional[ProvisionError] = None

    @property
    def ok(self) -> bool:
        return all(r.ok for r in self.results)

    @property
    def failures(self) -> List[Failed]:
        return [r for r in self.results if isinstance(r, Failed)]


def documents_from_dicts(records: Iterable[Mapping[str, Any]], id_field: str = "id") -> List[Document]:
    """Build Documents from plain dicts, taking the id from ``id_field``."""
    docs = []
    for rec in records:
        if id_field not in rec:
            raise ValueError(f"record has no {id_field!r} field: {dict(rec)!r}")
        docs.append(Document(id=str(rec[id_field]), fields=rec))
    return docs
