"""Identity assignment and contract checks for parser file records."""

import posixpath
import time
import uuid
from collections import Counter
from dataclasses import replace
from typing import Any, Iterable, List, Sequence

from breeze.models import DuplicatePathError, FileRecord, MalformedRecordError


def generate_record_id() -> str:
    """Return a unique id: millisecond timestamp plus a random suffix."""
    return f"{int(time.time() * 1000)}-{uuid.uuid4().hex[:12]}"


def _copy_list(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return value


def normalize_records(records: Iterable[FileRecord]) -> List[FileRecord]:
    """Give every record an ``id`` and a non-null ``description``.

    Returns new records in input order; the inputs are left untouched.
    ``name`` falls back to the basename of ``path``. A record without a
    string path keeps it as is so that :func:`validate_records` can reject it.

    Example:
        >>> [r.description for r in normalize_records([FileRecord(path="src/a.js")])]
        ['']
    """
    normalized = []
    for record in records:
        name = record.name
        if not name and isinstance(record.path, str) and record.path:
            name = posixpath.basename(record.path.replace("\\", "/"))
        normalized.append(
            replace(
                record,
                import_files=_copy_list(record.import_files),
                external_imports=_copy_list(record.external_imports),
                description=record.description if record.description is not None else "",
                id=generate_record_id(),
                name=name,
            )
        )
    return normalized


def validate_records(records: Sequence[FileRecord]) -> None:
    """Reject a batch that cannot be written without silent data loss.

    Raises:
        MalformedRecordError: If a record has no path, an import list that
            is not a list of strings, an empty import target or a
            non-integer ``loc``
        DuplicatePathError: If two records share a path
    """
    problems = []
    for index, record in enumerate(records):
        if not isinstance(record.path, str) or not record.path.strip():
            problems.append(f"record {index} has no path")
            continue
        if not _is_string_list(record.import_files):
            problems.append(f"record {index} ({record.path}) importFiles is not a list of strings")
        else:
            for target in record.import_files or []:
                if not target.strip():
                    problems.append(f"record {index} ({record.path}) imports an empty path")
        if not _is_string_list(record.external_imports):
            problems.append(f"record {index} ({record.path}) externalImports is not a list of strings")
        if record.loc is not None and (isinstance(record.loc, bool) or not isinstance(record.loc, int)):
            problems.append(f"record {index} ({record.path}) loc is not an integer: {record.loc!r}")
    if problems:
        raise MalformedRecordError("Malformed file records", problems)

    duplicates = [path for path, count in Counter(r.path for r in records).items() if count > 1]
    if duplicates:
        raise DuplicatePathError(
            "Duplicate paths in one batch",
            [f"{path} appears more than once" for path in duplicates],
        )


def _is_string_list(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, list) and all(isinstance(item, str) for item in value)
