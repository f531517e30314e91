"""Data models for Breeze.

This module defines the core data structures used throughout Breeze:
- FileRecord: one source file and its declared imports, as produced by the
  language parsers
- Graph vocabulary: node labels and relationship types written to Neo4j
- Results: summaries returned by the community detector and the pipeline

All models use dataclasses.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class NodeLabel(str, Enum):
    """Labels of nodes in the import graph.

    Example:
        >>> NodeLabel.FILE.value
        'File'
    """
    FILE = "File"


class RelationshipType(str, Enum):
    """Types of relationships in the import graph.

    Attributes:
        IMPORTS: File imports another file of the same repository
    """
    IMPORTS = "IMPORTS"


class MalformedRecordError(ValueError):
    """Raised when an input file record violates the record contract.

    Attributes:
        problems: Human-readable description of every offending record
    """

    def __init__(self, message: str, problems: Optional[List[str]] = None):
        self.problems = problems or []
        full_message = message
        if self.problems:
            full_message += ":\n" + "\n".join(f"  - {p}" for p in self.problems)
        super().__init__(full_message)


class DuplicatePathError(MalformedRecordError):
    """Raised when two records of one batch declare the same path."""
    pass


def _string_list(data: Dict[str, Any], key: str, path: Any) -> List[str]:
    """Read an optional JSON array of strings; missing or null means empty."""
    value = data.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise MalformedRecordError(
            f"{key} of {path!r} must be an array of strings, got {type(value).__name__}"
        )
    for item in value:
        if not isinstance(item, str):
            raise MalformedRecordError(
                f"{key} of {path!r} must be an array of strings, contains {type(item).__name__}"
            )
    return list(value)


@dataclass
class FileRecord:
    """A source file and the imports it declares.

    Attributes:
        path: Path relative to the repository root; identity of the node
        import_files: Paths of other files in the same project this file imports
        external_imports: Names of dependencies outside the repository
        description: Free-text annotation (normalized to "" when absent)
        id: Synthetic unique identifier assigned by the normalizer
        name: Display name, defaults to the basename of the path
        loc: Lines of code
        language: Language tag added by the parser merge step

    Example:
        >>> record = FileRecord.from_dict({"path": "x.js", "importFiles": ["y.js"]})
        >>> record.import_files
        ['y.js']
    """
    path: Optional[str]
    import_files: List[str] = field(default_factory=list)
    external_imports: List[str] = field(default_factory=list)
    description: Optional[str] = None
    id: Optional[str] = None
    name: Optional[str] = None
    loc: Optional[int] = None
    language: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileRecord":
        """Build a record from a parser JSON object (camelCase keys).

        Args:
            data: Decoded JSON object

        Returns:
            FileRecord instance

        Raises:
            MalformedRecordError: If importFiles or externalImports is not
                an array of strings
        """
        path = data.get("path")
        return cls(
            path=path,
            import_files=_string_list(data, "importFiles", path),
            external_imports=_string_list(data, "externalImports", path),
            description=data.get("description"),
            id=data.get("id"),
            name=data.get("name"),
            loc=data.get("loc"),
            language=data.get("language"),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert back to the parser JSON shape."""
        return {
            "path": self.path,
            "importFiles": list(self.import_files),
            "externalImports": list(self.external_imports),
            "description": self.description,
            "id": self.id,
            "name": self.name,
            "loc": self.loc,
            "language": self.language,
        }

    def to_node_params(self) -> Dict[str, Any]:
        """Properties sent to the node upsert statement."""
        return {
            "path": self.path,
            "id": self.id,
            "externalImports": list(self.external_imports),
            "name": self.name,
            "loc": self.loc,
            "description": self.description,
            "language": self.language,
        }


@dataclass
class CommunitySummary:
    """Outcome of a Louvain run written back to the graph.

    Attributes:
        community_count: Number of communities found
        modularity: Final modularity score
        node_properties_written: Nodes that received a clusterId
        compute_millis: Algorithm runtime reported by GDS
    """
    community_count: int = 0
    modularity: float = 0.0
    node_properties_written: int = 0
    compute_millis: int = 0


@dataclass
class ImportResult:
    """Summary of one pipeline run."""
    project_scope: str
    records: int = 0
    nodes_upserted: int = 0
    import_pairs: int = 0
    nodes_counted: int = 0
    communities: Optional[CommunitySummary] = None
    steps_completed: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0
