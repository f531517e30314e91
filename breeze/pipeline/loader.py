"""Reading parser output files."""

import json
from pathlib import Path
from typing import Any, List, Union

from breeze.logging_config import get_logger
from breeze.models import FileRecord, MalformedRecordError

logger = get_logger(__name__)


def load_records(path: Union[str, Path]) -> List[FileRecord]:
    """Load file records from a parser output file.

    Accepts either a bare JSON array of records or the merged analysis
    document ``{"projectMetaData": {...}, "files": [...]}``.

    Args:
        path: JSON file to read

    Returns:
        Parsed records, not yet normalized

    Raises:
        MalformedRecordError: If the document is not a list of objects
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data: Any = json.load(f)
    except json.JSONDecodeError as e:
        raise MalformedRecordError(f"Invalid JSON in {path}: {e}") from e

    if isinstance(data, dict) and "files" in data:
        metadata = data.get("projectMetaData") or {}
        if metadata:
            logger.debug(f"Loaded project metadata: {metadata}")
        data = data["files"]

    if not isinstance(data, list):
        raise MalformedRecordError(
            f"Expected a JSON array of file records in {path}, got {type(data).__name__}"
        )

    records = []
    problems = []
    for index, entry in enumerate(data):
        if not isinstance(entry, dict):
            problems.append(f"entry {index} is a {type(entry).__name__}, not an object")
            continue
        try:
            records.append(FileRecord.from_dict(entry))
        except MalformedRecordError as e:
            problems.append(f"entry {index}: {e}")
    if problems:
        raise MalformedRecordError(f"Malformed file records in {path}", problems)

    logger.info(f"Loaded {len(records)} file records from {path}")
    return records
