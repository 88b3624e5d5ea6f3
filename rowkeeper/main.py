from __future__ import annotations

import importlib
from typing import Optional

import psycopg
import typer

from rowkeeper.config import get_settings
from rowkeeper.drivers.postgres import PostgresDriver
from rowkeeper.entity import Registry
from rowkeeper.errors import DriverError
from rowkeeper.query.ast import Limit
from rowkeeper.reporter import print_entities, print_records
from rowkeeper.utils.logging import configure_logging

app = typer.Typer(help="rowkeeper ORM core CLI.")


def _load_registry(module: str) -> Registry:
    """Import ``module`` and return its frozen ``registry`` attribute."""
    loaded = importlib.import_module(module)
    registry = getattr(loaded, "registry", None)
    if not isinstance(registry, Registry):
        raise typer.BadParameter(f"{module} does not define a 'registry' Registry")
    return registry.freeze()


@app.callback()
def main() -> None:
    settings = get_settings()
    configure_logging(
        level=settings.log_level, json_logs=settings.log_json, log_sql=settings.log_sql
    )


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"pool={settings.db_pool_min_size}-{settings.db_pool_max_size} "
        f"statement_timeout_ms={settings.db_statement_timeout_ms} env={settings.app_env}"
    )


@app.command()
def ping(
    dsn: Optional[str] = typer.Option(None, "--dsn", help="Override the DSN built from settings."),
) -> None:
    """
    Check that PostgreSQL is reachable.
    """
    try:
        ok = PostgresDriver().ping(dsn)
    except psycopg.Error as exc:
        typer.echo(f"unreachable: {exc}", err=True)
        raise typer.Exit(code=1)
    typer.echo("ok" if ok else "unexpected response")


@app.command()
def entities(
    module: str = typer.Argument(..., help="Module defining a 'registry' attribute."),
) -> None:
    """
    List the entities, fields and relations registered by MODULE.
    """
    print_entities(_load_registry(module))


@app.command()
def show(
    module: str = typer.Argument(..., help="Module defining a 'registry' attribute."),
    entity: str = typer.Argument(..., help="Entity name."),
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum number of records."),
    offset: int = typer.Option(0, "--offset", help="Number of records to skip."),
) -> None:
    """
    Print records of ENTITY.
    """
    registry = _load_registry(module)
    if entity not in registry:
        raise typer.BadParameter(f"unknown entity {entity!r}")
    bound = registry[entity]
    try:
        records = bound.find(extras=Limit(limit, offset=offset or None))
    except DriverError as exc:
        typer.echo(f"query failed: {exc}", err=True)
        raise typer.Exit(code=1)
    print_records(bound, records)


if __name__ == "__main__":
    app()
