"""Community detection over the import graph using Neo4j GDS.

Louvain runs on an in-memory projection of every File node and IMPORTS
relationship, treated as undirected, and writes the community of each node
back to its ``clusterId`` property. The projection only lives for the
duration of one :meth:`CommunityDetector.detect_communities` call.
"""

from contextlib import contextmanager
from typing import Iterator, Optional

from breeze.graph.client import Neo4jClient
from breeze.logging_config import get_logger
from breeze.models import CommunitySummary, NodeLabel, RelationshipType
from breeze.validation import ValidationError, validate_identifier

logger = get_logger(__name__)

DEFAULT_PROJECTION_NAME = "breeze-imports"

# Cypher aggregation keeps files without imports as isolated nodes and
# works before any IMPORTS relationship exists
PROJECTION_QUERY = f"""
MATCH (source:{NodeLabel.FILE.value})
OPTIONAL MATCH (source)-[:{RelationshipType.IMPORTS.value}]->(target:{NodeLabel.FILE.value})
WITH gds.graph.project(
    $graphName,
    source,
    target,
    {{}},
    {{undirectedRelationshipTypes: ['*']}}
) AS g
RETURN g.graphName AS graphName, g.nodeCount AS nodeCount, g.relationshipCount AS relationshipCount
"""


class CommunityDetectionError(Exception):
    """Raised when a GDS call fails; clusterId values must be treated as stale."""
    pass


class CommunityDetector:
    """Orchestrates the project / Louvain / drop cycle."""

    def __init__(
        self,
        client: Neo4jClient,
        projection_name: str = DEFAULT_PROJECTION_NAME,
        write_property: str = "clusterId",
        max_levels: int = 10,
        tolerance: float = 0.0001,
        database: Optional[str] = None,
    ):
        """Initialize community detector.

        Args:
            client: Neo4j client instance
            projection_name: Reserved name of the in-memory projection
            write_property: Node property receiving the community id
            max_levels: Maximum number of Louvain aggregation levels
            tolerance: Minimum modularity gain to continue iterating
            database: Target database (defaults to the client's database)

        Raises:
            ValidationError: If a name is not a safe identifier
        """
        # Property names cannot be parameters in GDS configuration maps
        self.projection_name = validate_identifier(projection_name, "projection name")
        self.write_property = validate_identifier(write_property, "write property")
        if max_levels < 1:
            raise ValidationError(
                f"max_levels must be at least 1: {max_levels}",
                "Use the default of 10 unless you need coarser communities"
            )
        if tolerance <= 0:
            raise ValidationError(
                f"tolerance must be positive: {tolerance}",
                "Use a small positive value such as 0.0001 (default)"
            )
        self.client = client
        self.max_levels = max_levels
        self.tolerance = tolerance
        self.database = database

    def check_gds_available(self) -> bool:
        """Check if Neo4j GDS plugin is available.

        Returns:
            True if GDS is available, False otherwise
        """
        try:
            result = self.client.execute_query("RETURN gds.version() AS version", database=self.database)
        except Exception as e:
            logger.warning(f"Neo4j GDS not available: {e}")
            return False
        if result:
            logger.info(f"Neo4j GDS version: {result[0]['version']}")
            return True
        return False

    def drop_projection(self) -> None:
        """Drop the reserved projection; missing projections are ignored."""
        self.client.execute_query(
            "CALL gds.graph.drop($graphName, false) YIELD graphName RETURN graphName",
            {"graphName": self.projection_name},
            database=self.database,
        )

    @contextmanager
    def projection(self) -> Iterator[dict]:
        """Create the undirected import projection and drop it on exit.

        Yields:
            Projection statistics (graphName, nodeCount, relationshipCount)
        """
        self.drop_projection()
        result = self.client.execute_query(
            PROJECTION_QUERY,
            {"graphName": self.projection_name},
            database=self.database,
        )
        stats = result[0] if result else {}
        logger.info(
            f"Created projection '{self.projection_name}' with "
            f"{stats.get('nodeCount', 0)} nodes and {stats.get('relationshipCount', 0)} relationships"
        )
        try:
            yield stats
        finally:
            try:
                self.drop_projection()
                logger.debug(f"Dropped projection '{self.projection_name}'")
            except Exception as e:
                logger.warning(f"Failed to drop projection '{self.projection_name}': {e}")

    def _count_files(self) -> int:
        result = self.client.execute_query("MATCH (f:File) RETURN count(f) AS count", database=self.database)
        return result[0]["count"] if result else 0

    def detect_communities(self) -> CommunitySummary:
        """Run Louvain over the current import graph and persist ``clusterId``.

        Returns:
            Summary of the written communities; empty when there are no
            File nodes to cluster

        Raises:
            CommunityDetectionError: If any GDS call fails
        """
        try:
            if self._count_files() == 0:
                logger.info("No File nodes in the graph, skipping community detection")
                return CommunitySummary()

            with self.projection():
                result = self.client.execute_query(
                    f"""
                    CALL gds.louvain.write($graphName, {{
                        writeProperty: '{self.write_property}',
                        maxLevels: $maxLevels,
                        tolerance: $tolerance
                    }})
                    YIELD communityCount, modularity, nodePropertiesWritten, computeMillis
                    RETURN communityCount, modularity, nodePropertiesWritten, computeMillis
                    """,
                    {
                        "graphName": self.projection_name,
                        "maxLevels": self.max_levels,
                        "tolerance": self.tolerance,
                    },
                    database=self.database,
                )
        except Exception as e:
            logger.error(f"Community detection failed, clustering is stale: {e}")
            raise CommunityDetectionError(f"Community detection failed: {e}") from e

        row = result[0] if result else {}
        summary = CommunitySummary(
            community_count=int(row.get("communityCount", 0)),
            modularity=float(row.get("modularity", 0.0)),
            node_properties_written=int(row.get("nodePropertiesWritten", 0)),
            compute_millis=int(row.get("computeMillis", 0)),
        )
        logger.info(
            f"Found {summary.community_count} communities (modularity: {summary.modularity:.3f})",
            extra={"communities": summary.community_count, "nodes": summary.node_properties_written},
        )
        return summary
