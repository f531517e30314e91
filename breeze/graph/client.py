"""Neo4j database client."""

import time
from typing import Any, Callable, Dict, List, Optional, TypeVar

from neo4j import Driver, GraphDatabase, Result
from neo4j.exceptions import AuthError, ServiceUnavailable

from breeze.graph.conversion import record_to_dict
from breeze.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar('T')


class Neo4jClient:
    """Client owning one Neo4j driver and the sessions opened on it.

    Every operation opens its own session on the target database and closes
    it before returning, on success and on error alike. Write statements run
    inside an explicit transaction that is rolled back when anything inside
    it raises. Statements are never retried.

    Example:
        >>> with Neo4jClient(uri="bolt://localhost:7687", password="secret") as client:
        ...     client.execute_query("MATCH (f:File) RETURN count(f) AS count")
        [{'count': 12}]
    """

    def __init__(
        self,
        uri: str = "bolt://localhost:7687",
        username: str = "neo4j",
        password: str = "password",
        database: Optional[str] = None,
        max_retries: int = 3,
        retry_backoff_factor: float = 2.0,
        retry_base_delay: float = 1.0,
        max_connection_pool_size: int = 50,
        connection_timeout: float = 30.0,
        encrypted: bool = False,
    ):
        """Initialize Neo4j client.

        Args:
            uri: Neo4j connection URI
            username: Database username
            password: Database password
            database: Default database name (None uses the server default)
            max_retries: Maximum number of connection attempts after the first (default: 3)
            retry_backoff_factor: Exponential backoff multiplier (default: 2.0)
            retry_base_delay: Base delay in seconds between connection attempts (default: 1.0)
            max_connection_pool_size: Maximum number of connections in pool (default: 50)
            connection_timeout: Timeout for acquiring connection in seconds (default: 30.0)
            encrypted: Whether to use encrypted connection (default: False for local dev)

        Raises:
            AuthError: If the credentials are rejected
            ServiceUnavailable: If the server cannot be reached after max retries
        """
        self.uri = uri
        self.username = username
        self.password = password
        self.database = database
        self.max_retries = max_retries
        self.retry_backoff_factor = retry_backoff_factor
        self.retry_base_delay = retry_base_delay
        self.max_connection_pool_size = max_connection_pool_size
        self.connection_timeout = connection_timeout
        self.encrypted = encrypted

        self.driver: Driver = self._connect_with_retry()
        logger.info(
            f"Connected to Neo4j at {uri} "
            f"(database={database or 'default'}, "
            f"pool_size={max_connection_pool_size}, "
            f"encrypted={encrypted})"
        )

    def close(self) -> None:
        """Close database connection."""
        self.driver.close()
        logger.info("Closed Neo4j connection")

    def __enter__(self) -> "Neo4jClient":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def _connect_with_retry(self) -> Driver:
        """Establish connection with retry logic and exponential backoff.

        Returns:
            Neo4j Driver instance

        Raises:
            AuthError: Immediately, credentials are not retried
            ServiceUnavailable: If connection fails after max retries
        """
        attempt = 0

        while True:
            driver = GraphDatabase.driver(
                self.uri,
                auth=(self.username, self.password),
                max_connection_pool_size=self.max_connection_pool_size,
                connection_acquisition_timeout=self.connection_timeout,
                connection_timeout=self.connection_timeout,
                keep_alive=True,
                encrypted=self.encrypted,
            )
            try:
                driver.verify_connectivity()
                if attempt > 0:
                    logger.info(f"Successfully connected to Neo4j at {self.uri} after {attempt} retries")
                return driver
            except AuthError:
                driver.close()
                logger.error(f"Neo4j rejected the credentials for user '{self.username}'")
                raise
            except ServiceUnavailable as e:
                driver.close()
                attempt += 1

                if attempt > self.max_retries:
                    logger.error(
                        f"Failed to connect to Neo4j at {self.uri} after {self.max_retries} retries: {e}"
                    )
                    raise ServiceUnavailable(
                        f"Could not connect to Neo4j at {self.uri} after {self.max_retries} retries. "
                        f"Please check that Neo4j is running and accessible. Last error: {e}"
                    ) from e

                delay = self.retry_base_delay * (self.retry_backoff_factor ** (attempt - 1))
                logger.warning(
                    f"Connection attempt {attempt}/{self.max_retries} failed: {e}. "
                    f"Retrying in {delay:.1f}s..."
                )
                time.sleep(delay)

    def execute_write(
        self,
        work: Callable[..., T],
        *args: Any,
        database: Optional[str] = None,
        **kwargs: Any,
    ) -> T:
        """Run ``work(tx, *args, **kwargs)`` inside one write transaction.

        The transaction commits only if ``work`` returns normally; any
        exception rolls it back and propagates unchanged. The session is
        released exactly once whatever happens.

        Args:
            work: Function receiving the open transaction as first argument
            database: Database name (defaults to the client's database)

        Returns:
            Whatever ``work`` returns
        """
        with self.driver.session(database=database or self.database) as session:
            with session.begin_transaction() as tx:
                result = work(tx, *args, **kwargs)
                tx.commit()
                return result

    def execute_query(
        self,
        query: str,
        parameters: Optional[Dict] = None,
        database: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Execute a Cypher statement in an auto-commit transaction.

        Used for reads, schema statements and GDS procedure calls.

        Args:
            query: Cypher query string
            parameters: Query parameters
            database: Database name (defaults to the client's database)

        Returns:
            List of result records as plain dictionaries
        """
        with self.driver.session(database=database or self.database) as session:
            result: Result = session.run(query, parameters or {})
            return [record_to_dict(record) for record in result]

    def get_stats(self, database: Optional[str] = None) -> Dict[str, int]:
        """Get import graph statistics.

        Returns:
            Dictionary with node/relationship counts
        """
        queries = {
            "total_files": "MATCH (f:File) RETURN count(f) AS count",
            "total_imports": "MATCH (:File)-[r:IMPORTS]->(:File) RETURN count(r) AS count",
            "total_projects": "MATCH (f:File) WHERE f.projectUuid IS NOT NULL RETURN count(DISTINCT f.projectUuid) AS count",
            "clustered_files": "MATCH (f:File) WHERE f.clusterId IS NOT NULL RETURN count(f) AS count",
            "total_clusters": "MATCH (f:File) WHERE f.clusterId IS NOT NULL RETURN count(DISTINCT f.clusterId) AS count",
        }

        stats = {}
        for key, query in queries.items():
            result = self.execute_query(query, database=database)
            stats[key] = result[0]["count"] if result else 0

        return stats
