"""Command-line interface for Breeze."""

import sys
from typing import Optional

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from breeze import __version__
from breeze.config import BreezeConfig, ConfigError, generate_config_template, load_config
from breeze.graph import CommunityDetectionError, CommunityDetector, GraphSchema, Neo4jClient
from breeze.logging_config import LogContext, configure_logging, get_logger
from breeze.models import ImportResult, MalformedRecordError
from breeze.pipeline import load_records
from breeze.pipeline.ingestion import GraphImportPipeline, PipelineStepError
from breeze.validation import (
    ValidationError,
    validate_identifier,
    validate_input_path,
    validate_neo4j_credentials,
    validate_neo4j_uri,
    validate_project_scope,
    validate_retry_config,
)

console = Console()
logger = get_logger(__name__)


def _fail(message: str, detail: Optional[str] = None) -> None:
    console.print(f"\n[red]❌ {escape(message)}[/red]")
    if detail:
        console.print(f"[yellow]{escape(detail)}[/yellow]")
    sys.exit(1)


def _open_client(
    config: BreezeConfig,
    neo4j_uri: Optional[str] = None,
    neo4j_user: Optional[str] = None,
    neo4j_password: Optional[str] = None,
    database: Optional[str] = None,
) -> Neo4jClient:
    """Validate connection settings (CLI options override config) and connect."""
    db = config.database
    try:
        uri = validate_neo4j_uri(neo4j_uri or db.uri)
        user, password = validate_neo4j_credentials(neo4j_user or db.username, neo4j_password or db.password)
        max_retries, backoff, base_delay = validate_retry_config(
            db.max_retries, db.retry_backoff_factor, db.retry_base_delay
        )
    except ValidationError as e:
        _fail(f"Validation Error: {e.message}", e.suggestion)

    console.print(f"[dim]Connecting to {uri}...[/dim]")
    try:
        return Neo4jClient(
            uri=uri,
            username=user,
            password=password,
            database=database or db.database,
            max_retries=max_retries,
            retry_backoff_factor=backoff,
            retry_base_delay=base_delay,
            max_connection_pool_size=db.max_connection_pool_size,
            connection_timeout=db.connection_timeout,
            encrypted=db.encrypted,
        )
    except Exception as e:
        logger.error(f"Could not connect to Neo4j: {e}")
        _fail("Could not connect to Neo4j", str(e))


def _connection_options(func):
    """Neo4j connection options shared by every graph command."""
    options = [
        click.option("--neo4j-uri", default=None, help="Neo4j connection URI (overrides config)"),
        click.option("--neo4j-user", default=None, help="Neo4j username (overrides config)"),
        click.option("--neo4j-password", default=None, help="Neo4j password (overrides config)"),
        click.option("--database", default=None, help="Neo4j database name (overrides config)"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True),
    default=None,
    help="Path to config file (.breezerc or breeze.toml)",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    default=None,
    help="Set logging level (overrides config file)",
)
@click.option(
    "--log-format",
    type=click.Choice(["json", "human"], case_sensitive=False),
    default=None,
    help="Log output format (overrides config file)",
)
@click.option(
    "--log-file",
    type=click.Path(),
    default=None,
    help="Write logs to file (overrides config file)",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[str],
    log_level: Optional[str],
    log_format: Optional[str],
    log_file: Optional[str],
) -> None:
    """Breeze - import code dependency graphs into Neo4j.

    Configuration priority (highest to lowest):
    1. Command-line options
    2. Environment variables (BREEZE_*)
    3. Config file (--config, .breezerc, breeze.toml)
    4. Built-in defaults
    """
    try:
        loaded = load_config(config_file=config)
    except ConfigError as e:
        console.print(f"[yellow]⚠️  Config error: {e}[/yellow]")
        console.print("[dim]Using default configuration[/dim]\n")
        loaded = BreezeConfig()

    configure_logging(
        level=log_level or loaded.logging.level,
        json_output=((log_format or loaded.logging.format) == "json"),
        log_file=log_file or loaded.logging.file,
    )

    ctx.ensure_object(dict)
    ctx.obj['config'] = loaded


@cli.command("import-graph")
@click.argument("json_path", type=click.Path())
@click.option("--project", "-p", "project", required=True, help="Project scope stored in projectUuid")
@_connection_options
@click.option(
    "--skip-communities",
    is_flag=True,
    default=False,
    help="Do not run Louvain community detection after the import",
)
@click.pass_context
def import_graph(
    ctx: click.Context,
    json_path: str,
    project: str,
    neo4j_uri: Optional[str],
    neo4j_user: Optional[str],
    neo4j_password: Optional[str],
    database: Optional[str],
    skip_communities: bool,
) -> None:
    """Import a JSON list of file records into the graph.

    JSON_PATH holds either an array of {path, importFiles, externalImports}
    objects or a merged analysis document with a "files" array.
    """
    config: BreezeConfig = ctx.obj['config']

    try:
        input_path = validate_input_path(json_path)
        project = validate_project_scope(project)
        projection_name = validate_identifier(config.communities.projection_name, "projection name")
    except ValidationError as e:
        _fail(f"Validation Error: {e.message}", e.suggestion)

    try:
        records = load_records(input_path)
    except (MalformedRecordError, OSError) as e:
        _fail(f"Could not read {json_path}", str(e))

    detect = config.communities.enabled and not skip_communities
    console.print("\n[bold cyan]🌬️  Breeze Graph Import[/bold cyan]\n")
    console.print(f"Input: {input_path}")
    console.print(f"Project: {project}")
    console.print(f"Records: {len(records)}")
    console.print(f"Community detection: {'on' if detect else 'off'}\n")

    client = _open_client(config, neo4j_uri, neo4j_user, neo4j_password, database)
    try:
        with LogContext(operation="import_graph", project=project):
            pipeline = GraphImportPipeline(
                client,
                project,
                detect_communities=detect,
                projection_name=projection_name,
                max_levels=config.communities.max_levels,
                tolerance=config.communities.tolerance,
            )
            result = pipeline.run(records)
    except PipelineStepError as e:
        detail = str(e.error)
        if e.clustering_stale:
            detail += "\nNodes, edges and counts were imported; clusterId values are stale."
        _fail(f"Import failed at step '{e.step}'", detail)
    except ValidationError as e:
        _fail(f"Validation Error: {e.message}", e.suggestion)
    finally:
        client.close()

    _print_import_result(result)


def _print_import_result(result: ImportResult) -> None:
    table = Table(title="Import Results")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Records", str(result.records))
    table.add_row("Nodes Upserted", str(result.nodes_upserted))
    table.add_row("Import Pairs", str(result.import_pairs))
    table.add_row("Nodes Counted", str(result.nodes_counted))
    if result.communities is not None:
        table.add_row("Communities", str(result.communities.community_count))
        table.add_row("Modularity", f"{result.communities.modularity:.3f}")
    table.add_row("Duration", f"{result.duration_seconds:.2f}s")

    console.print(table)
    console.print("[green]✓[/green] Import complete")


@cli.command()
@_connection_options
@click.pass_context
def communities(
    ctx: click.Context,
    neo4j_uri: Optional[str],
    neo4j_user: Optional[str],
    neo4j_password: Optional[str],
    database: Optional[str],
) -> None:
    """Rerun Louvain community detection on the current graph."""
    config: BreezeConfig = ctx.obj['config']
    client = _open_client(config, neo4j_uri, neo4j_user, neo4j_password, database)
    try:
        detector = CommunityDetector(
            client,
            projection_name=config.communities.projection_name,
            max_levels=config.communities.max_levels,
            tolerance=config.communities.tolerance,
        )
        if not detector.check_gds_available():
            _fail("Neo4j Graph Data Science is not available", "Install the GDS plugin on the server")
        summary = detector.detect_communities()
    except CommunityDetectionError as e:
        _fail("Community detection failed", f"{e}\nclusterId values are stale.")
    except ValidationError as e:
        _fail(f"Validation Error: {e.message}", e.suggestion)
    finally:
        client.close()

    console.print(
        f"[green]✓[/green] {summary.community_count} communities written to "
        f"{summary.node_properties_written} files (modularity {summary.modularity:.3f})"
    )


@cli.command()
@_connection_options
@click.pass_context
def stats(
    ctx: click.Context,
    neo4j_uri: Optional[str],
    neo4j_user: Optional[str],
    neo4j_password: Optional[str],
    database: Optional[str],
) -> None:
    """Show import graph statistics."""
    config: BreezeConfig = ctx.obj['config']
    client = _open_client(config, neo4j_uri, neo4j_user, neo4j_password, database)
    try:
        graph_stats = client.get_stats()
    except Exception as e:
        logger.error(f"Could not read statistics: {e}")
        _fail("Could not read statistics", str(e))
    finally:
        client.close()

    table = Table(title="Graph Statistics")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", style="green")
    for key, value in graph_stats.items():
        table.add_row(key.replace("_", " ").title(), str(value))
    console.print(table)


@cli.command("init-schema")
@_connection_options
@click.pass_context
def init_schema(
    ctx: click.Context,
    neo4j_uri: Optional[str],
    neo4j_user: Optional[str],
    neo4j_password: Optional[str],
    database: Optional[str],
) -> None:
    """Create the File constraints and indexes if they are missing."""
    config: BreezeConfig = ctx.obj['config']
    client = _open_client(config, neo4j_uri, neo4j_user, neo4j_password, database)
    try:
        GraphSchema(client).initialize()
    except Exception as e:
        logger.error(f"Schema initialization failed: {e}")
        _fail("Schema initialization failed", str(e))
    finally:
        client.close()

    console.print("[green]✓[/green] Schema ready")


@cli.command()
@click.option("--host", default=None, help="Bind address (overrides config)")
@click.option("--port", type=int, default=None, help="Port (overrides config)")
@click.pass_context
def serve(ctx: click.Context, host: Optional[str], port: Optional[int]) -> None:
    """Run the HTTP query proxy."""
    import uvicorn

    from breeze.api.app import create_app

    config: BreezeConfig = ctx.obj['config']
    final_host = host or config.api.host
    final_port = port or config.api.port

    console.print(f"[bold cyan]Breeze query API[/bold cyan] on http://{final_host}:{final_port}")
    uvicorn.run(create_app(config), host=final_host, port=final_port)


@cli.command("config-init")
@click.option(
    "--format",
    "-f",
    "fmt",
    type=click.Choice(["yaml", "json", "toml"], case_sensitive=False),
    default="yaml",
    help="Config file format (default: yaml)",
)
@click.option("--output", "-o", type=click.Path(), default=None, help="Output file path")
@click.option("--force", is_flag=True, default=False, help="Overwrite existing config file")
def config_init(fmt: str, output: Optional[str], force: bool) -> None:
    """Write a starter configuration file."""
    from pathlib import Path

    output_path = Path(output) if output else Path("breeze.toml" if fmt == "toml" else ".breezerc")
    if output_path.exists() and not force:
        _fail(f"Config file already exists: {output_path}", "Use --force to overwrite")

    output_path.write_text(generate_config_template(format=fmt))
    console.print(f"[green]✓[/green] Wrote {output_path}")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
