"""
Breeze - Code Import Graph

Imports the file-level import graph of a repository into Neo4j, keeps
fan-in/fan-out counts current and clusters files into communities.
"""

__version__ = "0.1.0"


def __getattr__(name: str):
    """Lazy imports for public API - avoids loading the driver at import time."""
    if name in ("GraphImportPipeline", "PipelineStepError"):
        from breeze.pipeline import ingestion
        return getattr(ingestion, name)
    if name == "Neo4jClient":
        from breeze.graph import Neo4jClient
        return Neo4jClient
    if name in ("FileRecord", "ImportResult", "CommunitySummary"):
        from breeze import models
        return getattr(models, name)
    raise AttributeError(f"module 'breeze' has no attribute {name!r}")


__all__ = [
    "__version__",
    "GraphImportPipeline",
    "PipelineStepError",
    "Neo4jClient",
    "FileRecord",
    "ImportResult",
    "CommunitySummary",
]
