"""
esprovisioner Samples: Default Mapping and Seed Documents
=========================================================

The article-style mapping and five demonstration documents used when an
index is created without a custom seed file, plus a loader for seed files
(JSONL, one document per line, or a JSON array).
"""

import json
from pathlib import Path
from typing import List, Union

from .models import Document, FieldDefinition, IndexSpec, documents_from_dicts

DATE_FORMAT = "strict_date_optional_time||epoch_millis"

DEFAULT_MAPPING = (
    FieldDefinition("id", "keyword"),
    FieldDefinition("title", "text", {"analyzer": "standard"}),
    FieldDefinition("content", "text", {"analyzer": "standard"}),
    FieldDefinition("tags", "keyword"),
    FieldDefinition("created_at", "date", {"format": DATE_FORMAT}),
    FieldDefinition("updated_at", "date", {"format": DATE_FORMAT}),
    FieldDefinition("status", "keyword"),
    FieldDefinition("priority", "integer"),
    FieldDefinition("metadata", "object", {"dynamic": True}),
)

SAMPLE_RECORDS = [
    {
        "id": "1",
        "title": "Introduction to Elasticsearch",
        "content": "Elasticsearch is a distributed search and analytics engine.",
        "tags": ["elasticsearch", "search", "analytics"],
        "created_at": "2024-01-01T00:00:00Z",
        "status": "published",
        "priority": 1,
        "metadata": {"author": "admin", "category": "tutorial"},
    },
    {
        "id": "2",
        "title": "Kibana Dashboard Guide",
        "content": "Kibana provides visualization and dashboard capabilities.",
        "tags": ["kibana", "dashboard", "visualization"],
        "created_at": "2024-01-02T00:00:00Z",
        "status": "published",
        "priority": 2,
        "metadata": {"author": "admin", "category": "guide"},
    },
    {
        "id": "3",
        "title": "Logstash Data Processing",
        "content": "Logstash processes and transforms data before sending to Elasticsearch.",
        "tags": ["logstash", "data", "processing"],
        "created_at": "2024-01-03T00:00:00Z",
        "status": "draft",
        "priority": 3,
        "metadata": {"author": "user", "category": "tutorial"},
    },
    {
        "id": "4",
        "title": "Elasticsearch Performance Tuning",
        "content": "Tips and tricks for optimizing Elasticsearch performance.",
        "tags": ["elasticsearch", "performance", "optimization"],
        "created_at": "2024-01-04T00:00:00Z",
        "status": "published",
        "priority": 1,
        "metadata": {"author": "expert", "category": "advanced"},
    },
    {
        "id": "5",
        "title": "Monitoring Elasticsearch Cluster",
        "content": "How to monitor your Elasticsearch cluster health and performance.",
        "tags": ["elasticsearch", "monitoring", "cluster"],
        "created_at": "2024-01-05T00:00:00Z",
        "status": "published",
        "priority": 2,
        "metadata": {"author": "admin", "category": "operations"},
    },
]

SAMPLE_DOCUMENTS = tuple(documents_from_dicts(SAMPLE_RECORDS))


def default_index_spec(
    name: str = "test-index",
    shards: int = 3,
    replicas: int = 1,
    documents: Union[List[Document], tuple, None] = None
) -> IndexSpec:
    """
    Index spec with the default mapping.

    Args:
        name: Index name
        shards: Number of primary shards
        replicas: Number of replica shards
        documents: Seed documents (sample documents if None)

    Returns:
        IndexSpec
    """
    return IndexSpec(
        name=name,
        shard_count=shards,
        replica_count=replicas,
        mapping=DEFAULT_MAPPING,
        seed_documents=tuple(SAMPLE_DOCUMENTS if documents is None else documents),
    )


def load_seed_file(path: Union[str, Path], id_field: str = "id") -> List[Document]:
    """
    Load seed documents from a JSON array file or a JSONL file.

    Blank lines in JSONL are skipped. Every record must carry ``id_field``.

    Raises:
        ValueError: on malformed JSON or records without an id
    """
    path = Path(path)
    text = path.read_text(encoding="utf-8")

    if text.lstrip().startswith("["):
        try:
            records = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"{path}: invalid JSON ({exc})") from exc
    else:
        records = []
        for lineno, line in enumerate(text.splitlines(), 1):
            line = line.strip()
            if not line:
                continue
            try:
                records.append(json.loads(line))
            except json.JSONDecodeError as exc:
                raise ValueError(f"{path}:{lineno}: invalid JSON ({exc})") from exc

    if not all(isinstance(rec, dict) for rec in records):
        raise ValueError(f"{path}: every record must be a JSON object")

    return documents_from_dicts(records, id_field=id_field)
