"""Graph schema definition and initialization."""

from typing import List, Optional

from breeze.graph.client import Neo4jClient
from breeze.logging_config import get_logger

logger = get_logger(__name__)


class GraphSchema:
    """Manages the uniqueness constraints and indexes of the import graph.

    Every statement uses ``IF NOT EXISTS``, so running them against a
    database that already has the schema changes nothing. Failures are not
    swallowed: an import must not run against a database whose path
    uniqueness cannot be guaranteed.
    """

    # Uniqueness constraints
    CONSTRAINTS = [
        "CREATE CONSTRAINT file_path_unique IF NOT EXISTS FOR (f:File) REQUIRE f.path IS UNIQUE",
        "CREATE CONSTRAINT file_id_unique IF NOT EXISTS FOR (f:File) REQUIRE f.id IS UNIQUE",
    ]

    # Lookup indexes
    INDEXES = [
        "CREATE INDEX file_project_uuid_idx IF NOT EXISTS FOR (f:File) ON (f.projectUuid)",
        "CREATE INDEX file_cluster_id_idx IF NOT EXISTS FOR (f:File) ON (f.clusterId)",
    ]

    def __init__(self, client: Neo4jClient, database: Optional[str] = None):
        """Initialize schema manager.

        Args:
            client: Neo4j client instance
            database: Target database (defaults to the client's database)
        """
        self.client = client
        self.database = database

    def ensure_constraints(self) -> List[str]:
        """Create the File uniqueness constraints if they are missing.

        Returns:
            Statements that were executed

        Raises:
            neo4j.exceptions.Neo4jError: If the store rejects a statement
        """
        for constraint in self.CONSTRAINTS:
            logger.debug(f"Ensuring constraint: {constraint}")
            self.client.execute_query(constraint, database=self.database)
        logger.info(f"Ensured {len(self.CONSTRAINTS)} constraints")
        return list(self.CONSTRAINTS)

    def create_indexes(self) -> List[str]:
        """Create the File lookup indexes if they are missing."""
        for index in self.INDEXES:
            logger.debug(f"Ensuring index: {index}")
            self.client.execute_query(index, database=self.database)
        logger.info(f"Ensured {len(self.INDEXES)} indexes")
        return list(self.INDEXES)

    def initialize(self) -> None:
        """Initialize complete schema."""
        logger.info("Creating graph schema")
        self.ensure_constraints()
        self.create_indexes()
        logger.info("Schema ready")
