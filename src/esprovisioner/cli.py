"""
esprovisioner CLI: Command-Line Interface
=========================================

Command-line interface for provisioning a development cluster.

Usage:
    esprovisioner create-user                       (interactive)
    esprovisioner create-user alice s3cret kibana_user,monitoring_user
    esprovisioner create-index                      (interactive)
    esprovisioner create-index articles 3 1 --recreate
    esprovisioner test-search articles elasticsearch
    esprovisioner setup
    esprovisioner health | metrics | indices | users | mapping articles

Credentials come from ELASTIC_URL / ELASTIC_USERNAME / ELASTIC_PASSWORD
(environment or .env) unless given with --url / --username / --password.
Exit status is 0 on full success and 1 on any failure.
"""

import argparse
import json
import logging
from getpass import getpass
from typing import List, Optional

from .cluster import ClusterManager
from .config import ClusterConfig
from .core import Provisioner
from .errors import ProvisionError
from .models import Failed, OnExists, UserSpec, describe
from .samples import default_index_spec, load_seed_file
from .search import failed, format_outcome, print_summary_table
from .transport import build_client

DEFAULT_USERNAME = "testuser"
DEFAULT_PASSWORD = "testpass"
DEFAULT_ROLES = "kibana_user,monitoring_user"
DEFAULT_INDEX = "test-index"
DEFAULT_SHARDS = 3
DEFAULT_REPLICAS = 1
DEFAULT_QUERY = "elasticsearch"

KNOWN_ROLES = [
    ("kibana_user", "Access to Kibana"),
    ("monitoring_user", "Access to monitoring data"),
    ("watcher_admin", "Manage watchers"),
    ("logstash_admin", "Manage Logstash"),
    ("beats_admin", "Manage Beats"),
    ("rollup_user", "Access to rollup functionality"),
    ("transform_user", "Access to transforms"),
    ("snapshot_user", "Access to snapshots"),
    ("ingest_admin", "Manage ingest pipelines"),
    ("cluster_admin", "Full cluster access"),
    ("superuser", "Superuser access"),
]

logger = logging.getLogger(__name__)


def parse_roles(raw: str) -> List[str]:
    """Parse roles given as "a,b" or as a JSON array '["a", "b"]'."""
    raw = raw.strip()
    if raw.startswith("["):
        roles = json.loads(raw)
        if not isinstance(roles, list):
            raise ValueError("roles must be a JSON array of strings")
        return [str(r).strip() for r in roles if str(r).strip()]
    return [r.strip() for r in raw.split(",") if r.strip()]


def prompt(label: str, default: str) -> str:
    value = input(f"Enter {label} [{default}]: ").strip()
    return value or default


def confirm(question: str) -> bool:
    return input(f"{question} (y/N): ").strip().lower() in ("y", "yes")


def print_failure(result: Failed) -> None:
    print(f"Error: {describe(result)}")
    body = getattr(result.error, "body", None)
    if body:
        print("Response:")
        print(json.dumps(body, indent=2, default=str))


def open_provisioner(config: ClusterConfig) -> Provisioner:
    return Provisioner(config, client=build_client(config))


def open_manager(config: ClusterConfig) -> ClusterManager:
    return ClusterManager(config, client=build_client(config))


def check_or_report(prov: Provisioner) -> bool:
    error = prov.check_cluster()
    if error is not None:
        print(f"Error: Elasticsearch is not running or not accessible: {error}")
        return False
    return True


def cmd_create_user(args, config: ClusterConfig) -> int:
    """Create (or update) a user and test logging in as it."""
    if args.username is None:
        print("Creating Elasticsearch user interactively\n")
        username = prompt("username", DEFAULT_USERNAME)
        password = getpass(f"Enter password [{DEFAULT_PASSWORD}]: ") or DEFAULT_PASSWORD
        print("\nAvailable roles:")
        for role, description in KNOWN_ROLES:
            print(f"  - {role}: {description}")
        roles_raw = prompt("roles (comma-separated)", DEFAULT_ROLES)
    else:
        if args.password is None:
            print("Error: password is required when username is given")
            return 1
        username, password = args.username, args.password
        roles_raw = args.roles or DEFAULT_ROLES

    try:
        spec = UserSpec(username, password, frozenset(parse_roles(roles_raw)))
    except ValueError as exc:
        print(f"Error: {exc}")
        return 1

    with open_provisioner(config) as prov:
        if not check_or_report(prov):
            return 1

        result = prov.ensure_user(spec)
        if isinstance(result, Failed):
            print_failure(result)
            return 1
        print(describe(result))
        print(f"  Roles: {', '.join(sorted(spec.roles))}")

        login_error = prov.verify_login(spec)
        if login_error is not None:
            print(f"Error: login as '{spec.name}' failed: {login_error}")
            return 1
        print("User login test successful")

    print(f"\nTest the connection:\n  curl -u {spec.name}:<password> {config.url}/_cluster/health")
    return 0


def cmd_create_index(args, config: ClusterConfig) -> int:
    """Create an index with the default mapping and seed it."""
    interactive = args.index is None

    if interactive:
        print("Creating Elasticsearch index interactively\n")
        name = prompt("index name", DEFAULT_INDEX)
        try:
            shards = int(prompt("number of shards", str(DEFAULT_SHARDS)))
            replicas = int(prompt("number of replicas", str(DEFAULT_REPLICAS)))
        except ValueError:
            print("Error: shards and replicas must be integers")
            return 1
    else:
        name = args.index
        shards = args.shards if args.shards is not None else DEFAULT_SHARDS
        replicas = args.replicas if args.replicas is not None else DEFAULT_REPLICAS

    try:
        documents = None
        if args.no_seed:
            documents = []
        elif args.seed_file:
            documents = load_seed_file(args.seed_file)
        spec = default_index_spec(name, shards, replicas, documents)
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}")
        return 1

    on_exists = OnExists.RECREATE if args.recreate else OnExists.SKIP

    with open_provisioner(config) as prov:
        if not check_or_report(prov):
            return 1

        if interactive and not args.recreate:
            try:
                exists = prov.index_exists(spec.name)
            except ProvisionError as exc:
                print(f"Error: {exc}")
                return 1
            if exists:
                print(f"Index '{spec.name}' already exists")
                if confirm("Do you want to delete and recreate it?"):
                    on_exists = OnExists.RECREATE
                else:
                    print("Keeping existing index")

        report = prov.provision(None, spec, on_exists)

    for result in report.results:
        if isinstance(result, Failed):
            print_failure(result)
        else:
            print(describe(result))
    if report.refresh_error is not None:
        print(f"Warning: refresh failed: {report.refresh_error}")

    if report.results and report.results[0].ok:
        with open_manager(config) as manager:
            stats = manager.get_stats(spec.name)
        print("\nIndex details:")
        print(f"  Name: {spec.name}")
        print(f"  Shards: {spec.shard_count}")
        print(f"  Replicas: {spec.replica_count}")
        print(f"  Documents: {stats['docs_count']}")

    return 0 if report.ok else 1


def cmd_test_search(args, config: ClusterConfig) -> int:
    """Run the verification query battery."""
    if args.index is None:
        print("Testing Elasticsearch search functionality\n")
        index = prompt("index name", DEFAULT_INDEX)
        query = prompt("search query", DEFAULT_QUERY)
    else:
        index = args.index
        query = args.query or DEFAULT_QUERY

    with open_provisioner(config) as prov:
        if not check_or_report(prov):
            return 1
        try:
            exists = prov.index_exists(index)
        except ProvisionError as exc:
            print(f"Error: {exc}")
            return 1
        if not exists:
            print(f"Error: index '{index}' does not exist")
            print(f"Create it first with: esprovisioner create-index {index}")
            return 1

        outcomes = prov.run_verification_suite(index, query, top_n=args.top)

    print(f"\nQuery: {query}\n")
    for outcome in outcomes:
        for line in format_outcome(outcome):
            print(line)
        print()
    print_summary_table(outcomes)

    with open_manager(config) as manager:
        print(f"\nIndex mapping for '{index}':")
        print(json.dumps(manager.mapping(index), indent=2))
        print("\nCluster health:")
        print(json.dumps(manager.health(), indent=2))

    return 1 if failed(outcomes) else 0


def cmd_setup(args, config: ClusterConfig) -> int:
    """Create the default user and the default index with sample data."""
    user = UserSpec(DEFAULT_USERNAME, DEFAULT_PASSWORD, frozenset(parse_roles(DEFAULT_ROLES)))
    spec = default_index_spec(DEFAULT_INDEX, DEFAULT_SHARDS, DEFAULT_REPLICAS)
    on_exists = OnExists.RECREATE if args.recreate else OnExists.SKIP

    with open_provisioner(config) as prov:
        if not check_or_report(prov):
            return 1
        report = prov.provision(user, spec, on_exists)

    for result in report.results:
        if isinstance(result, Failed):
            print_failure(result)
        else:
            print(describe(result))
    if report.refresh_error is not None:
        print(f"Warning: refresh failed: {report.refresh_error}")

    if not report.ok:
        print(f"\nSetup finished with {len(report.failures)} failure(s)")
        return 1
    print("\nSetup completed")
    return 0


def cmd_health(args, config: ClusterConfig) -> int:
    """Show cluster health."""
    with open_manager(config) as manager:
        health = manager.health()

    print(f"\nCluster: {health.get('cluster_name', '?')}")
    print(f"Status: {health.get('status', '?')}")
    print(f"Nodes: {health.get('number_of_nodes', 0)}")
    print(f"Data nodes: {health.get('number_of_data_nodes', 0)}")
    print(f"Active shards: {health.get('active_shards', 0)}")
    print(f"Unassigned shards: {health.get('unassigned_shards', 0)}")
    return 0


def cmd_metrics(args, config: ClusterConfig) -> int:
    """Show cluster health and per-node heap usage."""
    with open_manager(config) as manager:
        health = manager.health()
        nodes = manager.node_stats()

    print(f"\nCluster: {health.get('cluster_name', '?')} ({health.get('status', '?')})")
    print(f"\n{'Node':<24} {'Heap used':>10}  Roles")
    print("-" * 65)
    for node in nodes:
        heap = node["heap_used_percent"]
        heap_text = "?" if heap is None else f"{heap}%"
        print(f"{node['name']:<24} {heap_text:>10}  {', '.join(node['roles'])}")
    return 0


def cmd_indices(args, config: ClusterConfig) -> int:
    """List all indices."""
    with open_manager(config) as manager:
        indices = manager.indices(include_system=args.all)

    print(f"\n{'Index':<30} {'Health':<8} {'Docs':>12} {'Size':>10}")
    print("-" * 65)

    for idx in indices:
        print(
            f"{idx['name']:<30} "
            f"{idx['health']:<8} "
            f"{idx['docs_count']:>12,} "
            f"{idx['size']:>10}"
        )
    return 0


def cmd_users(args, config: ClusterConfig) -> int:
    """List all users."""
    with open_manager(config) as manager:
        users = manager.users()

    print(f"\n{'User':<24} {'Enabled':<8} Roles")
    print("-" * 65)
    for user in users:
        enabled = "yes" if user["enabled"] else "no"
        print(f"{user['name']:<24} {enabled:<8} {', '.join(user['roles'])}")
    return 0


def cmd_mapping(args, config: ClusterConfig) -> int:
    """Show the mapping of an index."""
    with open_manager(config) as manager:
        properties = manager.mapping(args.index)
    print(json.dumps(properties, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="esprovisioner",
        description="Provision users, indices and sample data on an Elasticsearch cluster"
    )

    # Global options
    parser.add_argument("--url", help="Elasticsearch URL (default: $ELASTIC_URL)", default=None)
    parser.add_argument("--username", help="Admin username (default: $ELASTIC_USERNAME)", default=None)
    parser.add_argument("--password", help="Admin password (default: $ELASTIC_PASSWORD)", default=None)
    parser.add_argument("--timeout", type=float, help="Per-request timeout in seconds", default=None)
    parser.add_argument("--insecure", action="store_true", help="Skip TLS certificate verification")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log each cluster call")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # create-user command
    user_parser = subparsers.add_parser("create-user", help="Create or update a user")
    user_parser.add_argument("username", nargs="?", help="Username (omit for prompts)")
    user_parser.add_argument("password", nargs="?", help="Password")
    user_parser.add_argument("roles", nargs="?", help="Comma-separated roles or JSON array")

    # create-index command
    index_parser = subparsers.add_parser("create-index", help="Create an index with sample data")
    index_parser.add_argument("index", nargs="?", help="Index name (omit for prompts)")
    index_parser.add_argument("shards", nargs="?", type=int, help="Primary shards")
    index_parser.add_argument("replicas", nargs="?", type=int, help="Replica shards")
    index_parser.add_argument("--recreate", action="store_true", help="Delete and recreate if present")
    index_parser.add_argument("--seed-file", dest="seed_file", help="JSON or JSONL seed documents")
    index_parser.add_argument("--no-seed", dest="no_seed", action="store_true", help="Skip seed documents")

    # test-search command
    search_parser = subparsers.add_parser("test-search", help="Run verification queries")
    search_parser.add_argument("index", nargs="?", help="Index name (omit for prompts)")
    search_parser.add_argument("query", nargs="?", help="Search text")
    search_parser.add_argument("--top", type=int, default=5, help="Hits shown per query")

    # setup command
    setup_parser = subparsers.add_parser("setup", help="Create default user and index")
    setup_parser.add_argument("--recreate", action="store_true", help="Recreate the default index")

    # inspection commands
    subparsers.add_parser("health", help="Show cluster health")
    subparsers.add_parser("metrics", help="Show cluster health and node heap usage")
    indices_parser = subparsers.add_parser("indices", help="List indices")
    indices_parser.add_argument("--all", action="store_true", help="Include system indices")
    subparsers.add_parser("users", help="List users")
    mapping_parser = subparsers.add_parser("mapping", help="Show index mapping")
    mapping_parser.add_argument("index", help="Index name")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    if args.command is None:
        parser.print_help()
        return 1

    try:
        config = ClusterConfig.from_env().with_overrides(
            url=args.url.rstrip("/") if args.url else None,
            username=args.username,
            password=args.password,
            request_timeout=args.timeout,
            verify_certs=False if args.insecure else None,
        )
    except ValueError as exc:
        print(f"Error: {exc}")
        return 1

    try:
        if args.command == "create-user":
            return cmd_create_user(args, config)
        elif args.command == "create-index":
            return cmd_create_index(args, config)
        elif args.command == "test-search":
            return cmd_test_search(args, config)
        elif args.command == "setup":
            return cmd_setup(args, config)
        elif args.command == "health":
            return cmd_health(args, config)
        elif args.command == "metrics":
            return cmd_metrics(args, config)
        elif args.command == "indices":
            return cmd_indices(args, config)
        elif args.command == "users":
            return cmd_users(args, config)
        elif args.command == "mapping":
            return cmd_mapping(args, config)
    except ProvisionError as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {exc}")
        return 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
