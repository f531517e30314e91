"""Graph database client and import-graph operations."""

from breeze.graph.aggregates import DegreeAggregator
from breeze.graph.algorithms import CommunityDetectionError, CommunityDetector
from breeze.graph.client import Neo4jClient
from breeze.graph.conversion import to_native
from breeze.graph.schema import GraphSchema
from breeze.graph.upsert import GraphUpserter, build_import_pairs

__all__ = [
    # Client
    "Neo4jClient",
    "to_native",
    # Schema
    "GraphSchema",
    # Writes
    "GraphUpserter",
    "build_import_pairs",
    "DegreeAggregator",
    # Algorithms
    "CommunityDetector",
    "CommunityDetectionError",
]
