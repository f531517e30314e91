"""Import pipeline for parser file records."""

from breeze.pipeline.loader import load_records
from breeze.pipeline.normalizer import normalize_records, validate_records


def __getattr__(name: str):
    """Lazy imports - the graph layer itself depends on the normalizer."""
    if name in ("GraphImportPipeline", "PipelineStepError"):
        from breeze.pipeline import ingestion
        return getattr(ingestion, name)
    raise AttributeError(f"module 'breeze.pipeline' has no attribute {name!r}")


__all__ = [
    "GraphImportPipeline",
    "PipelineStepError",
    "load_records",
    "normalize_records",
    "validate_records",
]
