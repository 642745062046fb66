"""CLI interface for TravelQL."""

import logging
from typing import Optional

import click
import duckdb

from .config import get_settings
from .core import TravelQL
from .database import create_schema, list_tables
from .exceptions import TravelQLError
from .execution import quote_identifier

settings = get_settings()


def _report(e: TravelQLError, verbose: bool) -> None:
    click.echo(f"\n❌ {e.error_code}: {e.message}", err=True)
    if e.context:
        click.echo(f"📍 Context: {e.context}", err=True)
    if e.suggestions:
        click.echo("\n💡 Suggestions:", err=True)
        for suggestion in e.suggestions:
            click.echo(f"   • {suggestion}", err=True)
    if verbose:
        click.echo(f"\n🔍 Correlation ID: {e.correlation_id}", err=True)


@click.group()
def cli():
    """TravelQL - GraphQL API for a DuckDB travel database."""
    pass


@cli.command()
@click.argument('database', default=settings.database)
@click.option('--host', default=settings.host, help='Host to bind to')
@click.option('--port', default=settings.port, type=int, help='Port to bind to')
@click.option('--path', default=settings.path, help='GraphQL endpoint path')
@click.option('--debug/--no-debug', default=settings.debug, help='Enable debug mode')
@click.option('--init/--no-init', default=False, help='Create missing tables before serving')
@click.option('--log-queries/--no-log-queries', default=settings.log_queries, help='Log all SQL queries')
@click.option('--slow-query-ms', default=settings.slow_query_ms, type=int,
              help='Slow query threshold in milliseconds')
@click.option('--max-depth', default=settings.max_query_depth, type=int, help='Maximum query depth allowed')
@click.option('--max-connections', default=settings.max_connections, type=int, help='Connection pool size')
@click.option('--enable-metrics/--disable-metrics', default=settings.enable_metrics,
              help='Enable metrics collection')
@click.option('--verbose', '-v', is_flag=True, help='Verbose error output')
def serve(database: str, host: str, port: int, path: str, debug: bool, init: bool, log_queries: bool,
          slow_query_ms: int, max_depth: Optional[int], max_connections: int, enable_metrics: bool,
          verbose: bool):
    """Start the GraphQL server for a travel database."""
    logging.basicConfig(
        level=logging.DEBUG if log_queries else logging.INFO if debug else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    click.echo(f"🦆 Connecting to database: {database}")

    try:
        server = TravelQL.from_settings(
            settings,
            connection=database,
            log_queries=log_queries,
            slow_query_ms=slow_query_ms,
            max_query_depth=max_depth,
            max_connections=max_connections,
            enable_metrics=enable_metrics,
            init_schema=init
        )

        tables = list_tables(server.pool.root)
        click.echo(f"📊 Found {len(tables)} tables: {', '.join(tables)}")

        if max_depth:
            click.echo(f"🛡️  Query depth limit: {max_depth}")
        if enable_metrics:
            click.echo(f"📊 Metrics endpoint: http://{host}:{port}/metrics")

        click.echo(f"🚀 Starting GraphQL server at http://{host}:{port}{path}")
        server.serve(host=host, port=port, path=path, debug=debug)

    except TravelQLError as e:
        _report(e, verbose)
        raise click.Abort()


@cli.command('init-db')
@click.argument('database')
def init_db(database: str):
    """Create the travel tables in a DuckDB database."""
    try:
        conn = duckdb.connect(database)
    except duckdb.Error as e:
        click.echo(f"❌ Error: {e}", err=True)
        raise click.Abort()

    try:
        create_schema(conn)
        click.echo(f"✅ Initialized {database} ({len(list_tables(conn))} tables)")
    finally:
        conn.close()


@cli.command()
@click.argument('database', type=click.Path(exists=True))
def schema(database: str):
    """Print the GraphQL schema (SDL)."""
    try:
        server = TravelQL(database, enable_metrics=False)
    except TravelQLError as e:
        _report(e, verbose=False)
        raise click.Abort()

    try:
        click.echo(str(server.get_schema()))
    finally:
        server.close()


@cli.command()
@click.argument('database', type=click.Path(exists=True))
def tables(database: str):
    """List all tables in a DuckDB database."""
    try:
        conn = duckdb.connect(database, read_only=True)
    except duckdb.Error as e:
        click.echo(f"❌ Error: {e}", err=True)
        raise click.Abort()

    try:
        click.echo("📊 Tables:")
        for table in list_tables(conn):
            count = conn.execute(f"SELECT COUNT(*) FROM {quote_identifier(table)}").fetchone()[0]
            click.echo(f"  - {table} ({count} rows)")
    finally:
        conn.close()


if __name__ == '__main__':
    cli()
