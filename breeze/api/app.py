"""FastAPI query proxy over the import graph.

``POST /api/run-query`` runs an arbitrary Cypher statement and returns the
records as plain JSON, for visualization front ends that cannot speak Bolt.
"""

from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from breeze import __version__
from breeze.config import BreezeConfig
from breeze.graph.client import Neo4jClient
from breeze.logging_config import get_logger

logger = get_logger(__name__)


class RunQueryRequest(BaseModel):
    """Body of a query proxy request."""

    query: Optional[str] = Field(None, description="Cypher statement to run")
    params: Dict[str, Any] = Field(default_factory=dict, description="Statement parameters")


def _connect(config: BreezeConfig) -> Neo4jClient:
    db = config.database
    return Neo4jClient(
        uri=db.uri,
        username=db.username,
        password=db.password or "",
        database=db.database,
        max_retries=db.max_retries,
        retry_backoff_factor=db.retry_backoff_factor,
        retry_base_delay=db.retry_base_delay,
        max_connection_pool_size=db.max_connection_pool_size,
        connection_timeout=db.connection_timeout,
        encrypted=db.encrypted,
    )


def get_client(request: Request) -> Neo4jClient:
    """Dependency returning the client owned by the application."""
    return request.app.state.client


def create_app(
    config: Optional[BreezeConfig] = None,
    client: Optional[Neo4jClient] = None,
) -> FastAPI:
    """Build the query proxy application.

    Args:
        config: Configuration; defaults are used when omitted
        client: Existing client to serve from. When omitted a client is
            opened from ``config`` at startup and closed at shutdown.

    Returns:
        FastAPI application
    """
    config = config or BreezeConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owns_client = client is None
        app.state.client = client if client is not None else _connect(config)
        logger.info("Query proxy started")
        try:
            yield
        finally:
            if owns_client:
                app.state.client.close()
            logger.info("Query proxy stopped")

    app = FastAPI(
        title="Breeze Query API",
        description="Read and write the code import graph with Cypher",
        version=__version__,
        lifespan=lifespan,
    )
    # Tests drive the app without the lifespan
    app.state.client = client

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.api.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["Health"])
    async def health_check() -> Dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy", "version": __version__}

    @app.post("/api/run-query", tags=["Query"])
    def run_query(body: RunQueryRequest, db: Neo4jClient = Depends(get_client)):
        """Run a Cypher statement and return its records."""
        if not body.query or not body.query.strip():
            return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": "Missing query"})

        try:
            records: List[Dict[str, Any]] = db.execute_query(body.query, body.params)
        except Exception as e:
            logger.error(f"Query failed: {e}")
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content={"error": str(e)},
            )
        logger.debug(f"Query returned {len(records)} records")
        return records

    return app
