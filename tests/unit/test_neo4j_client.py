"""Unit tests for Neo4jClient."""

from unittest.mock import MagicMock, patch

import pytest
from neo4j.exceptions import AuthError, ServiceUnavailable

from breeze.graph.client import Neo4jClient


@pytest.fixture
def mock_driver():
    """Create a mock Neo4j driver."""
    driver = MagicMock()
    session = MagicMock()
    tx = MagicMock()
    result = MagicMock()

    # driver -> session (context manager) -> transaction (context manager)
    driver.session.return_value.__enter__.return_value = session
    driver.session.return_value.__exit__.return_value = None
    session.begin_transaction.return_value.__enter__.return_value = tx
    session.begin_transaction.return_value.__exit__.return_value = None
    session.run.return_value = result
    result.__iter__.return_value = iter([])

    return driver


@pytest.fixture
def client(mock_driver):
    """Create a Neo4jClient with mocked driver."""
    with patch('breeze.graph.client.GraphDatabase') as mock_gd:
        mock_gd.driver.return_value = mock_driver
        client = Neo4jClient(
            uri="bolt://localhost:7687",
            username="neo4j",
            password="test",
            database="imports",
        )
        yield client
        client.close()


def _session(driver):
    return driver.session.return_value.__enter__.return_value


def _tx(driver):
    return _session(driver).begin_transaction.return_value.__enter__.return_value


class TestConnection:
    """Test database connection management."""

    def test_client_initialization(self, mock_driver):
        with patch('breeze.graph.client.GraphDatabase') as mock_gd:
            mock_gd.driver.return_value = mock_driver

            Neo4jClient(uri="bolt://test:7687", username="testuser", password="testpass")

            mock_gd.driver.assert_called_once()
            call_args = mock_gd.driver.call_args
            assert call_args[0][0] == "bolt://test:7687"
            assert call_args[1]["auth"] == ("testuser", "testpass")
            mock_driver.verify_connectivity.assert_called_once()

    def test_retries_connection_with_backoff(self, mock_driver):
        mock_driver.verify_connectivity.side_effect = [ServiceUnavailable("down"), None]

        with patch('breeze.graph.client.GraphDatabase') as mock_gd, \
                patch('breeze.graph.client.time.sleep') as mock_sleep:
            mock_gd.driver.return_value = mock_driver

            Neo4jClient(password="test", retry_base_delay=0.5)

            assert mock_gd.driver.call_count == 2
            mock_sleep.assert_called_once_with(0.5)

    def test_gives_up_after_max_retries(self, mock_driver):
        mock_driver.verify_connectivity.side_effect = ServiceUnavailable("down")

        with patch('breeze.graph.client.GraphDatabase') as mock_gd, \
                patch('breeze.graph.client.time.sleep') as mock_sleep:
            mock_gd.driver.return_value = mock_driver

            with pytest.raises(ServiceUnavailable, match="after 2 retries"):
                Neo4jClient(password="test", max_retries=2)

            assert mock_gd.driver.call_count == 3
            assert [c.args[0] for c in mock_sleep.call_args_list] == [1.0, 2.0]

    def test_auth_error_not_retried(self, mock_driver):
        mock_driver.verify_connectivity.side_effect = AuthError("bad credentials")

        with patch('breeze.graph.client.GraphDatabase') as mock_gd:
            mock_gd.driver.return_value = mock_driver

            with pytest.raises(AuthError):
                Neo4jClient(password="wrong")

            assert mock_gd.driver.call_count == 1

    def test_context_manager_closes_driver(self, mock_driver):
        with patch('breeze.graph.client.GraphDatabase') as mock_gd:
            mock_gd.driver.return_value = mock_driver

            with Neo4jClient(password="test"):
                pass

            mock_driver.close.assert_called_once()


class TestExecuteWrite:
    """Test transactional writes."""

    def test_commits_after_work_returns(self, client, mock_driver):
        work = MagicMock(return_value=5)

        result = client.execute_write(work, "a", key="b")

        tx = _tx(mock_driver)
        work.assert_called_once_with(tx, "a", key="b")
        tx.commit.assert_called_once()
        assert result == 5

    def test_uses_default_database(self, client, mock_driver):
        client.execute_write(MagicMock())
        mock_driver.session.assert_called_once_with(database="imports")

    def test_database_override(self, client, mock_driver):
        client.execute_write(MagicMock(), database="other")
        mock_driver.session.assert_called_once_with(database="other")

    def test_failure_skips_commit_and_propagates(self, client, mock_driver):
        work = MagicMock(side_effect=RuntimeError("constraint violated"))

        with pytest.raises(RuntimeError, match="constraint violated"):
            client.execute_write(work)

        tx = _tx(mock_driver)
        tx.commit.assert_not_called()
        # leaving the transaction block with an exception rolls it back
        exit_args = _session(mock_driver).begin_transaction.return_value.__exit__.call_args[0]
        assert exit_args[0] is RuntimeError

    def test_session_released_once_on_success(self, client, mock_driver):
        client.execute_write(MagicMock())
        assert mock_driver.session.return_value.__exit__.call_count == 1

    def test_session_released_once_on_failure(self, client, mock_driver):
        with pytest.raises(ValueError):
            client.execute_write(MagicMock(side_effect=ValueError("boom")))
        assert mock_driver.session.return_value.__exit__.call_count == 1


class TestExecuteQuery:
    """Test auto-commit statements."""

    def test_returns_converted_records(self, client, mock_driver):
        _session(mock_driver).run.return_value.__iter__.return_value = iter([
            {"path": "a.js", "importCount": 2},
        ])

        records = client.execute_query("MATCH (f:File) RETURN f.path AS path", {"x": 1})

        assert records == [{"path": "a.js", "importCount": 2}]
        _session(mock_driver).run.assert_called_once_with("MATCH (f:File) RETURN f.path AS path", {"x": 1})

    def test_parameters_default_to_empty(self, client, mock_driver):
        client.execute_query("RETURN 1")
        _session(mock_driver).run.assert_called_once_with("RETURN 1", {})

    def test_error_propagates_and_session_released(self, client, mock_driver):
        _session(mock_driver).run.side_effect = ServiceUnavailable("gone")

        with pytest.raises(ServiceUnavailable):
            client.execute_query("RETURN 1")
        assert mock_driver.session.return_value.__exit__.call_count == 1


def test_get_stats(client):
    with patch.object(client, "execute_query", return_value=[{"count": 4}]) as mock_query:
        stats = client.get_stats()

    assert stats == {
        "total_files": 4,
        "total_imports": 4,
        "total_projects": 4,
        "clustered_files": 4,
        "total_clusters": 4,
    }
    assert mock_query.call_count == 5
