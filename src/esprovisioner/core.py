"""
esprovisioner Core: Idempotent Cluster Provisioning
===================================================

Reconciles declarative resource specs against a live Elasticsearch
cluster:

    ensure_user            create or update a native-realm user
    ensure_index           create an index (skip or recreate if present)
    seed_documents         index documents one by one, best effort
    refresh                make seeded documents searchable
    run_verification_suite read-only query battery

Every public operation returns a result value instead of raising. The
existence check in ensure_index (HEAD then PUT) is not atomic; a second
provisioner racing on the same index can interleave between the two
calls. This is accepted for a single-operator development tool.

Per-resource lifecycle:

    ABSENT -> CREATING -> PRESENT
    PRESENT -> DELETING -> ABSENT -> CREATING -> PRESENT   (recreate)
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

from elasticsearch import Elasticsearch

from .config import ClusterConfig
from .errors import (
    AuthError,
    ConflictError,
    NotFoundError,
    PartialFailure,
    ProvisionError,
    ValidationError,
    translate,
)
from .models import (
    AlreadyExists,
    Created,
    Document,
    ExistsAction,
    Failed,
    IndexSpec,
    OnExists,
    ProvisionReport,
    ReconcileResult,
    ResourceState,
    UserSpec,
    VerificationOutcome,
)
from .search import build_suite, summarize
from .transport import build_client, call_with_retry, response_body

logger = logging.getLogger(__name__)

PARTIAL_RECREATE_REASON = "partial: deleted, not recreated"


class Provisioner:
    """
    Applies UserSpec and IndexSpec resources to one cluster.

    Example:
        config = ClusterConfig.from_env()
        with Provisioner(config) as prov:
            prov.ensure_user(UserSpec("testuser", "testpass", {"kibana_user"}))
            result = prov.ensure_index(default_index_spec("articles"), OnExists.SKIP)
            prov.seed_documents("articles", SAMPLE_DOCUMENTS)
            prov.refresh("articles")
            outcomes = prov.run_verification_suite("articles", "elasticsearch")
    """

    def __init__(
        self,
        config: ClusterConfig,
        client: Optional[Elasticsearch] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize the provisioner.

        Args:
            config: Connection, credential and retry settings
            client: Pre-built client (built from config if None)
            sleep: Backoff delay function
        """
        self.config = config
        self._client = client if client is not None else build_client(config)
        self._sleep = sleep

    def _call(self, context: str, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        return call_with_retry(self.config, context, fn, *args, sleep=self._sleep, **kwargs)

    # ------------------------------------------------------------------
    # Cluster
    # ------------------------------------------------------------------

    def check_cluster(self) -> Optional[ProvisionError]:
        """
        Confirm the cluster answers ``GET /_cluster/health`` with our credentials.

        Returns:
            None when reachable, otherwise the error
        """
        try:
            health = response_body(self._call("cluster health", self._client.cluster.health))
        except ProvisionError as exc:
            logger.error("Cluster check failed: %s", exc)
            return exc
        logger.info("Cluster %s is %s", health.get("cluster_name", "?"), health.get("status", "?"))
        return None

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def _get_user(self, name: str) -> Optional[Dict[str, Any]]:
        try:
            resp = self._call(f"get user '{name}'", self._client.security.get_user, username=name)
        except NotFoundError:
            return None
        return response_body(resp).get(name)

    def ensure_user(self, spec: UserSpec) -> ReconcileResult:
        """
        Create the user, or update it when its roles, name or email differ.

        A user that already exists with identical fields is left untouched
        and reported as ``AlreadyExists(SKIPPED)``. The password cannot be
        read back, so it is not compared.

        Returns:
            Created, AlreadyExists or Failed (AuthError, ValidationError, ...)
        """
        try:
            existing = self._get_user(spec.name)
            if existing is not None and spec.matches(existing):
                logger.info("User '%s' already exists with the same configuration", spec.name)
                return AlreadyExists("user", spec.name, ExistsAction.SKIPPED)

            self._call(
                f"put user '{spec.name}'",
                self._client.security.put_user,
                username=spec.name,
                **spec.body()
            )
        except ProvisionError as exc:
            logger.error("User '%s' not provisioned: %s", spec.name, exc)
            return Failed("user", spec.name, str(exc), exc)

        if existing is None:
            logger.info("User '%s' created with roles %s", spec.name, sorted(spec.roles))
            return Created("user", spec.name)

        logger.info("User '%s' updated with roles %s", spec.name, sorted(spec.roles))
        return AlreadyExists("user", spec.name, ExistsAction.RECREATED)

    def verify_login(self, spec: UserSpec) -> Optional[ProvisionError]:
        """
        Authenticate as the user via ``GET /_security/_authenticate``.

        Returns:
            None on success, AuthError if the credentials are rejected
        """
        user_client = self._client.options(basic_auth=(spec.name, spec.password))
        try:
            resp = self._call(f"authenticate as '{spec.name}'", user_client.security.authenticate)
        except ProvisionError as exc:
            logger.error("Login as '%s' failed: %s", spec.name, exc)
            return exc

        username = response_body(resp).get("username")
        if username != spec.name:
            return AuthError(f"authenticated as {username!r}, expected {spec.name!r}")
        return None

    # ------------------------------------------------------------------
    # Indices
    # ------------------------------------------------------------------

    def index_exists(self, name: str) -> bool:
        """``HEAD /{index}``. Raises ProvisionError if the cluster can't answer."""
        return bool(self._call(f"check index '{name}'", self._client.indices.exists, index=name))

    def _has_mapping(self, spec: IndexSpec) -> bool:
        """True when the live index maps every field of the spec with the same type."""
        try:
            resp = self._call(
                f"mapping of '{spec.name}'", self._client.indices.get_mapping, index=spec.name
            )
        except ProvisionError as exc:
            logger.warning("Could not read mapping of '%s': %s", spec.name, exc)
            return False

        node = response_body(resp).get(spec.name) or {}
        live = node.get("mappings", {}).get("properties", {})
        # Object fields come back without an explicit type
        return all(
            name in live and live[name].get("type", "object") == prop["type"]
            for name, prop in spec.properties().items()
        )

    def _create_index(self, spec: IndexSpec, after_delete: bool = False) -> None:
        attempts = 0

        def create(**kwargs):
            nonlocal attempts
            attempts += 1
            return self._client.indices.create(**kwargs)

        try:
            self._call(
                f"create index '{spec.name}'",
                create,
                index=spec.name,
                settings=spec.settings(),
                mappings={"properties": spec.properties()},
            )
        except ConflictError:
            # A create whose response was lost may already have been applied
            if (attempts > 1 or after_delete) and self._has_mapping(spec):
                logger.info("Index '%s' is present with the requested mapping", spec.name)
                return
            raise

    def _delete_index(self, name: str) -> None:
        try:
            self._call(f"delete index '{name}'", self._client.indices.delete, index=name)
        except NotFoundError:
            logger.info("Index '%s' disappeared before delete", name)

    def ensure_index(self, spec: IndexSpec, on_exists: OnExists = OnExists.SKIP) -> ReconcileResult:
        """
        Make sure the index exists with the requested settings and mapping.

        Args:
            spec: Index to provision (seed documents are not written here)
            on_exists: SKIP leaves a present index alone; RECREATE deletes
                and creates it again

        Returns:
            Created, AlreadyExists(SKIPPED|RECREATED) or Failed. A recreate
            whose create step fails after a successful delete is reported as
            Failed with a PartialFailure error and PARTIAL_RECREATE_REASON.
            A create rejected as already existing counts as ours when it was
            retried (or followed our delete) and the live mapping matches.
        """
        state = ResourceState.ABSENT
        deleted = False

        try:
            if self.index_exists(spec.name):
                state = ResourceState.PRESENT
                if on_exists is OnExists.SKIP:
                    logger.info("Index '%s' already exists, keeping it", spec.name)
                    return AlreadyExists("index", spec.name, ExistsAction.SKIPPED)

                state = ResourceState.DELETING
                logger.info("Deleting existing index '%s'", spec.name)
                self._delete_index(spec.name)
                deleted = True
                state = ResourceState.ABSENT

            state = ResourceState.CREATING
            logger.info(
                "Creating index '%s' (shards=%d, replicas=%d)",
                spec.name, spec.shard_count, spec.replica_count
            )
            self._create_index(spec, after_delete=deleted)
            state = ResourceState.PRESENT

        except ConflictError as exc:
            if not deleted and on_exists is OnExists.SKIP:
                logger.info("Index '%s' was created concurrently, keeping it", spec.name)
                return AlreadyExists("index", spec.name, ExistsAction.SKIPPED)
            return self._index_failure(spec, state, deleted, exc)

        except ProvisionError as exc:
            return self._index_failure(spec, state, deleted, exc)

        if deleted:
            return AlreadyExists("index", spec.name, ExistsAction.RECREATED)
        return Created("index", spec.name)

    def _index_failure(
        self,
        spec: IndexSpec,
        state: ResourceState,
        deleted: bool,
        exc: ProvisionError
    ) -> Failed:
        if deleted and state is ResourceState.CREATING:
            error = PartialFailure(
                f"index '{spec.name}' was deleted but not recreated: {exc}",
                status=exc.status,
                body=exc.body,
            )
            error.__cause__ = exc
            logger.error("Index '%s' left absent: %s", spec.name, exc)
            return Failed("index", spec.name, PARTIAL_RECREATE_REASON, error)

        if state is ResourceState.DELETING:
            reason = f"delete failed, existing index kept: {exc}"
        elif state is ResourceState.CREATING:
            reason = f"create failed: {exc}"
        else:
            reason = str(exc)

        logger.error("Index '%s' not provisioned: %s", spec.name, reason)
        return Failed("index", spec.name, reason, exc)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def seed_documents(self, index: str, docs: Sequence[Document]) -> List[ReconcileResult]:
        """
        Index each document independently.

        A failing document does not stop the remaining ones. Results are
        returned in input order and carry the document id as ``name``.

        Returns:
            One Created / AlreadyExists(RECREATED) / Failed per document
        """
        results: List[ReconcileResult] = []
        seen = set()

        for doc in docs:
            if not doc.id:
                error = ValidationError("document has an empty id")
                results.append(Failed("document", doc.id, str(error), error))
                continue
            if doc.id in seen:
                error = ValidationError(f"duplicate document id '{doc.id}' in batch")
                results.append(Failed("document", doc.id, str(error), error))
                continue
            seen.add(doc.id)

            try:
                resp = self._call(
                    f"index document '{doc.id}' into '{index}'",
                    self._client.index,
                    index=index,
                    id=doc.id,
                    document=doc.source(),
                )
            except ProvisionError as exc:
                logger.warning("Failed to index document %s: %s", doc.id, exc)
                results.append(Failed("document", doc.id, str(exc), exc))
                continue

            if response_body(resp).get("result") == "updated":
                results.append(AlreadyExists("document", doc.id, ExistsAction.RECREATED))
            else:
                results.append(Created("document", doc.id))
            logger.info("Document %s indexed", doc.id)

        return results

    def get_document(self, index: str, doc_id: str) -> Dict[str, Any]:
        """
        Fetch a document's source.

        Raises:
            NotFoundError: no such document
            ProvisionError: any other failure
        """
        resp = self._call(
            f"get document '{doc_id}' from '{index}'",
            self._client.get,
            index=index,
            id=doc_id,
        )
        return dict(response_body(resp)["_source"])

    def refresh(self, index: str) -> Optional[ProvisionError]:
        """
        ``POST /{index}/_refresh``, not retried.

        Failure is logged and returned; callers may carry on since the
        cluster refreshes on its own within about a second.
        """
        try:
            self._client.indices.refresh(index=index)
        except Exception as exc:
            error = translate(exc, f"refresh index '{index}'")
            logger.warning("Refresh of '%s' failed: %s", index, error)
            return error
        logger.info("Index '%s' refreshed", index)
        return None

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def run_verification_suite(
        self,
        index: str,
        query: str,
        top_n: int = 5
    ) -> List[VerificationOutcome]:
        """
        Run the read-only query battery against an index.

        Each query is independent: a failure is recorded in that query's
        outcome and the rest still run.

        Args:
            index: Index to query
            query: Free text for the match-based queries
            top_n: Hits summarised per query

        Returns:
            One VerificationOutcome per query, in battery order
        """
        outcomes = []
        for vq in build_suite(query):
            logger.info("Running %s query: %s", vq.name, vq.description)
            start = time.perf_counter()
            try:
                resp = self._call(
                    f"{vq.name} query on '{index}'",
                    self._client.search,
                    index=index,
                    **vq.body
                )
            except ProvisionError as exc:
                elapsed_ms = (time.perf_counter() - start) * 1000
                logger.warning("Verification query %s failed: %s", vq.name, exc)
                outcomes.append(VerificationOutcome(name=vq.name, elapsed_ms=elapsed_ms, error=exc))
                continue

            elapsed_ms = (time.perf_counter() - start) * 1000
            outcomes.append(summarize(vq.name, response_body(resp), elapsed_ms, top_n=top_n))

        return outcomes

    # ------------------------------------------------------------------
    # Workflow
    # ------------------------------------------------------------------

    def provision(
        self,
        user: Optional[UserSpec],
        index: IndexSpec,
        on_exists: OnExists = OnExists.SKIP
    ) -> ProvisionReport:
        """
        Ensure the user and index, seed the index's documents and refresh.

        Seeding is skipped when the index could not be ensured. Running the
        workflow twice leaves the same documents in the index since seeds
        are written by id.
        """
        results: List[ReconcileResult] = []

        if user is not None:
            results.append(self.ensure_user(user))

        index_result = self.ensure_index(index, on_exists)
        results.append(index_result)

        refresh_error = None
        if index_result.ok and index.seed_documents:
            results.extend(self.seed_documents(index.name, index.seed_documents))
            refresh_error = self.refresh(index.name)

        return ProvisionReport(results=tuple(results), refresh_error=refresh_error)

    def close(self):
        """Close the Elasticsearch client connection."""
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
