"""Graph import pipeline: records in, File/IMPORTS graph with aggregates out."""

import time
from typing import List, Optional, Sequence

from breeze.graph import (
    CommunityDetector,
    DegreeAggregator,
    GraphSchema,
    GraphUpserter,
    Neo4jClient,
    build_import_pairs,
)
from breeze.graph.algorithms import DEFAULT_PROJECTION_NAME
from breeze.logging_config import LogContext, get_logger, log_operation
from breeze.models import FileRecord, ImportResult
from breeze.pipeline.normalizer import normalize_records, validate_records
from breeze.validation import validate_project_scope

logger = get_logger(__name__)


class PipelineStepError(Exception):
    """Raised when one pipeline step fails.

    Attributes:
        step: Name of the failing step
        error: The original exception
        clustering_stale: True when nodes, edges and counts were committed
            but community detection did not complete
    """

    def __init__(self, step: str, error: Exception):
        self.step = step
        self.error = error
        self.clustering_stale = step == GraphImportPipeline.STEP_COMMUNITIES
        super().__init__(f"Step '{step}' failed: {error}")


class GraphImportPipeline:
    """Runs the import steps in order, each committed before the next starts."""

    STEP_NORMALIZE = "normalize"
    STEP_SCHEMA = "ensure_schema"
    STEP_NODES = "upsert_nodes"
    STEP_EDGES = "upsert_edges"
    STEP_AGGREGATES = "recompute_aggregates"
    STEP_COMMUNITIES = "detect_communities"

    def __init__(
        self,
        client: Neo4jClient,
        project_scope: str,
        database: Optional[str] = None,
        detect_communities: bool = True,
        projection_name: str = DEFAULT_PROJECTION_NAME,
        max_levels: int = 10,
        tolerance: float = 0.0001,
    ):
        """Initialize import pipeline.

        Args:
            client: Neo4j database client
            project_scope: Value stored in ``projectUuid`` of written nodes
            database: Target database (defaults to the client's database)
            detect_communities: Whether to run Louvain after the aggregates
            projection_name: Reserved GDS projection name
            max_levels: Louvain maximum levels
            tolerance: Louvain tolerance

        Raises:
            ValidationError: If the project scope or projection name is invalid
        """
        self.client = client
        self.project_scope = validate_project_scope(project_scope)
        self.database = database
        self.detect_communities = detect_communities

        self.schema = GraphSchema(client, database=database)
        self.upserter = GraphUpserter(client, database=database)
        self.aggregator = DegreeAggregator(client, database=database)
        self.detector = CommunityDetector(
            client,
            projection_name=projection_name,
            max_levels=max_levels,
            tolerance=tolerance,
            database=database,
        )

    def _step(self, name: str, func, *args):
        with LogContext(step=name):
            logger.debug(f"Starting step {name}")
            try:
                return func(*args)
            except Exception as e:
                logger.error(f"Step {name} failed: {e}")
                raise PipelineStepError(name, e) from e

    @log_operation("import")
    def run(self, records: Sequence[FileRecord]) -> ImportResult:
        """Import one batch of records.

        Args:
            records: File records as produced by the parsers

        Returns:
            ImportResult summarizing every completed step

        Raises:
            PipelineStepError: On the first failing step; later steps do not run
        """
        start = time.time()
        result = ImportResult(project_scope=self.project_scope, records=len(records))
        completed: List[str] = result.steps_completed

        with LogContext(project=self.project_scope):
            if not records:
                logger.warning("No file records to import")
                result.duration_seconds = time.time() - start
                return result

            def normalize() -> List[FileRecord]:
                normalized = normalize_records(records)
                validate_records(normalized)
                return normalized

            normalized = self._step(self.STEP_NORMALIZE, normalize)
            completed.append(self.STEP_NORMALIZE)

            self._step(self.STEP_SCHEMA, self.schema.ensure_constraints)
            completed.append(self.STEP_SCHEMA)

            result.nodes_upserted = self._step(
                self.STEP_NODES, self.upserter.upsert_nodes, normalized, self.project_scope
            )
            completed.append(self.STEP_NODES)

            result.import_pairs = len(build_import_pairs(normalized))
            self._step(self.STEP_EDGES, self.upserter.upsert_edges, normalized, self.project_scope)
            completed.append(self.STEP_EDGES)

            result.nodes_counted = self._step(
                self.STEP_AGGREGATES, self.aggregator.recompute_degree_counts
            )
            completed.append(self.STEP_AGGREGATES)

            if self.detect_communities:
                result.communities = self._step(
                    self.STEP_COMMUNITIES, self.detector.detect_communities
                )
                completed.append(self.STEP_COMMUNITIES)
            else:
                logger.info("Community detection disabled, clusterId values may be stale")

        result.duration_seconds = time.time() - start
        logger.info(
            "Import complete",
            extra={
                "project": self.project_scope,
                "records": result.records,
                "nodes": result.nodes_upserted,
                "import_pairs": result.import_pairs,
                "duration_seconds": round(result.duration_seconds, 3),
            },
        )
        return result
