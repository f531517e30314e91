"""Fan-in/fan-out aggregates stored on File nodes."""

from typing import Optional

from neo4j import Transaction

from breeze.graph.client import Neo4jClient
from breeze.logging_config import get_logger

logger = get_logger(__name__)

DEGREE_COUNTS_QUERY = """
MATCH (f:File)
OPTIONAL MATCH (f)-[out:IMPORTS]->()
WITH f, count(out) AS importCount
OPTIONAL MATCH (f)<-[incoming:IMPORTS]-()
WITH f, importCount, count(incoming) AS importedByCount
SET f.importCount = importCount,
    f.importedByCount = importedByCount
RETURN count(f) AS nodesUpdated
"""


def _recompute(tx: Transaction) -> int:
    record = tx.run(DEGREE_COUNTS_QUERY).single()
    return int(record["nodesUpdated"]) if record else 0


class DegreeAggregator:
    """Recomputes ``importCount`` and ``importedByCount`` on every File node.

    The counts are a snapshot of the committed graph, so this must run after
    the edge upsert of a batch has committed.
    """

    def __init__(self, client: Neo4jClient, database: Optional[str] = None):
        self.client = client
        self.database = database

    def recompute_degree_counts(self) -> int:
        """Overwrite both degree counts on all File nodes.

        Returns:
            Number of nodes updated
        """
        updated = self.client.execute_write(_recompute, database=self.database)
        logger.info(f"Recomputed degree counts on {updated} File nodes", extra={"nodes": updated})
        return updated
