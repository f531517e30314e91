"""Global pytest configuration and fixtures.

This module provides shared fixtures and configuration for all tests.
"""

import json
import os
import sys
from pathlib import Path
from unittest.mock import MagicMock

import pytest


# =============================================================================
# Path Setup
# =============================================================================

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


# =============================================================================
# Environment Detection
# =============================================================================


def _has_neo4j_connection() -> bool:
    """Check if a Neo4j test database is configured."""
    uri = os.getenv("BREEZE_NEO4J_URI", "")
    return bool(uri.strip())


# =============================================================================
# Skip Markers
# =============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (may require external services)"
    )
    config.addinivalue_line(
        "markers", "neo4j: Tests requiring Neo4j with the GDS plugin"
    )


def pytest_collection_modifyitems(config, items):
    """Skip Neo4j tests when no database is configured."""
    skip_neo4j = pytest.mark.skip(reason="BREEZE_NEO4J_URI not set")

    if _has_neo4j_connection():
        return
    for item in items:
        if "neo4j" in item.keywords:
            item.add_marker(skip_neo4j)


# =============================================================================
# Shared Fixtures
# =============================================================================


@pytest.fixture
def mock_client():
    """A Neo4jClient double whose execute_write runs the work on a mock transaction.

    ``mock_client.tx`` is the transaction handed to the work function; its
    ``run().single()`` returns ``{"count": 0, "nodesUpdated": 0}`` unless a
    test overrides it.
    """
    client = MagicMock()
    tx = MagicMock()
    tx.run.return_value.single.return_value = {"count": 0, "nodesUpdated": 0}

    def execute_write(work, *args, database=None, **kwargs):
        return work(tx, *args, **kwargs)

    client.execute_write.side_effect = execute_write
    client.execute_query.return_value = []
    client.tx = tx
    return client


@pytest.fixture
def sample_records_data():
    """Parser output for a small project."""
    return [
        {"path": "src/a.js", "importFiles": ["src/b.js", "src/c.js"], "externalImports": ["react"]},
        {"path": "src/b.js", "importFiles": [], "externalImports": [], "loc": 12},
        {"path": "src/d.js", "importFiles": ["src/b.js"], "externalImports": ["lodash"], "description": "Utilities"},
    ]


@pytest.fixture
def records_file(tmp_path: Path, sample_records_data) -> Path:
    """Write the sample records to a JSON file."""
    path = tmp_path / "project-analysis.json"
    path.write_text(json.dumps(sample_records_data))
    return path
