"""Conversion of Neo4j driver values to plain Python values.

Results leave the graph layer as JSON-ready data: exact ``int``/``float``,
``str``, ``bool``, ``None``, lists and dicts. Graph entities collapse to
their properties, temporal values to ISO-8601 strings, points to
coordinate lists.
"""

from typing import Any

from neo4j.graph import Node, Path, Relationship
from neo4j.spatial import Point
from neo4j.time import Date, DateTime, Duration, Time


def to_native(value: Any) -> Any:
    """Recursively convert a driver value into plain Python data.

    Args:
        value: Value taken from a result record

    Returns:
        Equivalent value built only from builtin types

    Example:
        >>> to_native({"count": 3, "tags": ("a", "b")})
        {'count': 3, 'tags': ['a', 'b']}
    """
    if value is None or isinstance(value, (str, bool)):
        return value
    if isinstance(value, int):
        # int subclasses (e.g. IntEnum) come back as exact ints
        return int(value)
    if isinstance(value, float):
        return float(value)
    if isinstance(value, (Node, Relationship)):
        return {key: to_native(v) for key, v in value.items()}
    if isinstance(value, Path):
        return [to_native(node) for node in value.nodes]
    if isinstance(value, (Date, DateTime, Time, Duration)):
        return value.iso_format()
    if isinstance(value, Point):
        return [to_native(coordinate) for coordinate in value]
    if isinstance(value, dict):
        return {str(key): to_native(v) for key, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_native(item) for item in value]
    if isinstance(value, (bytes, bytearray)):
        return list(value)
    return value


def record_to_dict(record: Any) -> dict:
    """Convert one result record (or mapping) to a plain dict."""
    return {key: to_native(value) for key, value in dict(record).items()}
