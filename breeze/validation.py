"""Input validation utilities with helpful error messages."""

import os
import re
from pathlib import Path
from typing import Optional, Tuple
from urllib.parse import urlparse

from breeze.logging_config import get_logger

logger = get_logger(__name__)

VALID_NEO4J_SCHEMES = {
    "bolt",
    "bolt+s",
    "bolt+ssc",
    "neo4j",
    "neo4j+s",
    "neo4j+ssc",
}


class ValidationError(Exception):
    """Raised when input validation fails.

    This exception includes helpful error messages and suggestions for fixing the issue.
    """
    def __init__(self, message: str, suggestion: Optional[str] = None):
        self.message = message
        self.suggestion = suggestion
        full_message = message
        if suggestion:
            full_message += f"\n\nSuggestion: {suggestion}"
        super().__init__(full_message)


def validate_input_path(input_path: str) -> Path:
    """Validate the parser output file exists and is readable.

    Args:
        input_path: Path to the JSON file of file records

    Returns:
        Resolved Path object

    Raises:
        ValidationError: If path is invalid or inaccessible
    """
    if not input_path or not input_path.strip():
        raise ValidationError(
            "Input path cannot be empty",
            "Provide the JSON file produced by the parsers, e.g. project-analysis.json"
        )

    path = Path(input_path).expanduser()

    if not path.exists():
        raise ValidationError(
            f"Input file does not exist: {input_path}",
            "Check the path and try again"
        )

    if path.is_dir():
        raise ValidationError(
            f"Input path is a directory, not a file: {input_path}",
            "Point at the JSON array of file records, not its directory"
        )

    if not os.access(path, os.R_OK):
        raise ValidationError(
            f"Input file is not readable: {input_path}",
            f"Check file permissions. Try: chmod +r {input_path}"
        )

    return path.resolve()


def validate_neo4j_uri(uri: str) -> str:
    """Validate a Neo4j connection URI.

    Args:
        uri: Connection URI, e.g. bolt://localhost:7687

    Returns:
        Validated URI

    Raises:
        ValidationError: If the URI is malformed or uses an unsupported scheme
    """
    if not uri or not uri.strip():
        raise ValidationError(
            "Neo4j URI cannot be empty",
            "Use a URI such as bolt://localhost:7687"
        )

    parsed = urlparse(uri.strip())

    if parsed.scheme not in VALID_NEO4J_SCHEMES:
        raise ValidationError(
            f"Invalid Neo4j URI scheme: {parsed.scheme or '(none)'}",
            f"Use one of: {', '.join(sorted(VALID_NEO4J_SCHEMES))}\n"
            f"Example: bolt://localhost:7687"
        )

    if not parsed.hostname:
        raise ValidationError(
            f"Neo4j URI has no host: {uri}",
            "Include a host name, e.g. bolt://localhost:7687"
        )

    try:
        port = parsed.port
    except ValueError:
        raise ValidationError(
            f"Neo4j URI has an invalid port: {uri}",
            "Use a numeric port between 1 and 65535 (default: 7687)"
        )
    if port is not None and not 1 <= port <= 65535:
        raise ValidationError(
            f"Neo4j URI port out of range: {port}",
            "Use a port between 1 and 65535 (default: 7687)"
        )

    return uri.strip()


def validate_neo4j_credentials(username: Optional[str], password: Optional[str]) -> Tuple[str, str]:
    """Validate Neo4j credentials are present.

    Args:
        username: Database user
        password: Database password

    Returns:
        Tuple of (username, password)

    Raises:
        ValidationError: If either value is missing
    """
    if not username or not username.strip():
        raise ValidationError(
            "Neo4j username cannot be empty",
            "Pass --neo4j-user or set BREEZE_NEO4J_USERNAME (default: neo4j)"
        )

    if not password:
        raise ValidationError(
            "Neo4j password cannot be empty",
            "Pass --neo4j-password or set BREEZE_NEO4J_PASSWORD"
        )

    return username.strip(), password


def validate_project_scope(project_scope: str) -> str:
    """Validate the project scope tag stored in ``projectUuid``.

    Args:
        project_scope: Identifier partitioning one analyzed repository

    Returns:
        Stripped project scope

    Raises:
        ValidationError: If the scope is empty or too long
    """
    if project_scope is None or not str(project_scope).strip():
        raise ValidationError(
            "Project scope cannot be empty",
            "Pass --project with the identifier of the analyzed repository"
        )

    project_scope = str(project_scope).strip()
    if len(project_scope) > 200:
        raise ValidationError(
            f"Project scope is too long: {len(project_scope)} characters",
            "Use a shorter identifier (max 200 characters), e.g. a UUID"
        )

    return project_scope


def validate_retry_config(max_retries: int, backoff_factor: float, base_delay: float) -> tuple[int, float, float]:
    """Validate connection retry configuration parameters.

    Args:
        max_retries: Maximum number of retry attempts
        backoff_factor: Exponential backoff multiplier
        base_delay: Base delay in seconds

    Returns:
        Tuple of validated parameters

    Raises:
        ValidationError: If parameters are invalid
    """
    if max_retries < 0:
        raise ValidationError(
            f"Max retries cannot be negative: {max_retries}",
            "Use 0 to disable retries, or a positive number (recommended: 3)"
        )

    if max_retries > 10:
        raise ValidationError(
            f"Max retries is unusually high: {max_retries}",
            "Consider using fewer retries to fail faster.\n"
            "Recommended: 3 (default), 5 (patient), 10 (very patient)"
        )

    if backoff_factor < 1.0:
        raise ValidationError(
            f"Backoff factor must be >= 1.0: {backoff_factor}",
            "Use at least 1.0 for linear backoff, 2.0 for exponential (recommended)"
        )

    if backoff_factor > 10.0:
        raise ValidationError(
            f"Backoff factor is unusually large: {backoff_factor}",
            "Consider using a smaller factor to avoid very long delays.\n"
            "Recommended: 2.0 (default), 1.5 (gentle), 3.0 (aggressive)"
        )

    if base_delay <= 0:
        raise ValidationError(
            f"Base delay must be positive: {base_delay}",
            "Use a positive value in seconds, e.g., 1.0 (default)"
        )

    return max_retries, backoff_factor, base_delay


def validate_identifier(name: str, context: str = "identifier") -> str:
    """Validate identifier is safe for use in Cypher queries.

    GDS procedure options and property names cannot always be passed as
    parameters, so names are restricted to alphanumeric characters,
    underscores, and hyphens.

    Args:
        name: Identifier to validate (e.g., projection name, property name)
        context: Description of what this identifier is used for (for error messages)

    Returns:
        Validated identifier string

    Raises:
        ValidationError: If identifier contains invalid characters

    Examples:
        >>> validate_identifier("breeze-imports", "projection name")
        'breeze-imports'
        >>> validate_identifier("bad'; DROP", "name")
        ValidationError: Invalid name: bad'; DROP
    """
    if not name or not name.strip():
        raise ValidationError(
            f"{context.capitalize()} cannot be empty",
            f"Provide a valid {context}"
        )

    if not re.match(r'^[a-zA-Z0-9_-]+$', name):
        raise ValidationError(
            f"Invalid {context}: {name}",
            f"{context.capitalize()} must contain only letters, numbers, underscores, and hyphens.\n"
            f"Examples of valid {context}s: 'breeze-imports', 'import_graph', 'test123'"
        )

    if len(name) > 100:
        raise ValidationError(
            f"{context.capitalize()} is too long: {len(name)} characters",
            f"Use a shorter {context} (max 100 characters)"
        )

    return name
