"""Batched MERGE of File nodes and IMPORTS edges."""

from typing import Any, Dict, List, Optional, Sequence

from neo4j import Transaction

from breeze.graph.client import Neo4jClient
from breeze.logging_config import get_logger
from breeze.models import FileRecord
from breeze.pipeline.normalizer import validate_records

logger = get_logger(__name__)

UPSERT_NODES_QUERY = """
UNWIND $files AS file
MERGE (f:File {path: file.path})
SET f.externalImports = file.externalImports,
    f.projectUuid = $projectUuid,
    f.name = file.name,
    f.loc = file.loc,
    f.description = file.description,
    f.id = file.id,
    f.language = file.language
RETURN count(f) AS count
"""

# Endpoints only get projectUuid when this statement creates them
UPSERT_EDGES_QUERY = """
UNWIND $pairs AS pair
MERGE (a:File {path: pair.from})
ON CREATE SET a.projectUuid = $projectUuid
MERGE (b:File {path: pair.to})
ON CREATE SET b.projectUuid = $projectUuid
MERGE (a)-[r:IMPORTS]->(b)
RETURN count(r) AS count
"""


def build_import_pairs(records: Sequence[FileRecord]) -> List[Dict[str, str]]:
    """Flatten every record's ``import_files`` into ``{"from", "to"}`` pairs.

    Records without imports contribute nothing. Repeated pairs are dropped,
    first occurrence order is kept.

    Example:
        >>> build_import_pairs([FileRecord(path="a.js", import_files=["b.js", "b.js"])])
        [{'from': 'a.js', 'to': 'b.js'}]
    """
    seen = set()
    pairs = []
    for record in records:
        for target in record.import_files or []:
            key = (record.path, target)
            if key in seen:
                continue
            seen.add(key)
            pairs.append({"from": record.path, "to": target})
    return pairs


def _run_count(tx: Transaction, query: str, parameters: Dict[str, Any]) -> int:
    record = tx.run(query, parameters).single()
    return int(record["count"]) if record else 0


class GraphUpserter:
    """Writes a batch of file records into the import graph.

    Each operation is a single UNWIND statement inside one write
    transaction, so a batch is either fully committed or not at all.
    """

    def __init__(self, client: Neo4jClient, database: Optional[str] = None):
        """Initialize upserter.

        Args:
            client: Neo4j client instance
            database: Target database (defaults to the client's database)
        """
        self.client = client
        self.database = database

    def upsert_nodes(self, records: Sequence[FileRecord], project_scope: str) -> int:
        """Merge one File node per record and overwrite its attributes.

        Args:
            records: Normalized file records
            project_scope: Value written to ``projectUuid``

        Returns:
            Number of nodes merged

        Raises:
            MalformedRecordError: If the batch violates the record contract
        """
        validate_records(records)
        if not records:
            logger.debug("No records, skipping node upsert")
            return 0

        files = [record.to_node_params() for record in records]
        count = self.client.execute_write(
            _run_count,
            UPSERT_NODES_QUERY,
            {"files": files, "projectUuid": project_scope},
            database=self.database,
        )
        logger.info(f"Upserted {count} File nodes", extra={"project": project_scope, "nodes": count})
        return count

    def upsert_edges(self, records: Sequence[FileRecord], project_scope: str) -> int:
        """Merge one IMPORTS edge per distinct (from, to) pair.

        Missing endpoints are created with only ``path`` and ``projectUuid``.

        Returns:
            Number of import pairs merged
        """
        validate_records(records)
        pairs = build_import_pairs(records)
        if not pairs:
            logger.debug("No import pairs, skipping edge upsert")
            return 0

        count = self.client.execute_write(
            _run_count,
            UPSERT_EDGES_QUERY,
            {"pairs": pairs, "projectUuid": project_scope},
            database=self.database,
        )
        logger.info(f"Upserted {count} IMPORTS edges", extra={"project": project_scope, "edges": count})
        return count
