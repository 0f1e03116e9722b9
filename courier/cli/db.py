"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Courier, a product of Garudex Labs

Database management commands for Courier.

Provides CLI commands for request log database initialization and status checks.
"""

import logging
import sys

import click

from courier.cli.context import pass_context
from courier.core.records import LogRecordKind
from courier.db import DatabaseConnectionManager, SqlLogStore
from courier.exceptions import CourierError, StorageError

logger = logging.getLogger(__name__)


def get_connection_manager_from_context(ctx) -> DatabaseConnectionManager:
    """
    Build and initialize a connection manager from the CLI context.

    Args:
        ctx: CLI context with loaded configuration

    Returns:
        Initialized DatabaseConnectionManager

    Raises:
        click.ClickException: If the database is not configured or unreachable
    """
    db_config = ctx.config.database
    if not db_config.url:
        raise click.ClickException(
            "Database URL not configured. "
            "Please add a 'database' section with a 'url' to the config file."
        )

    manager = DatabaseConnectionManager(db_config)
    try:
        manager.initialize()
    except StorageError as e:
        raise click.ClickException(str(e)) from e
    return manager


@click.group('db')
def db():
    """Manage the request log database."""
    pass


@db.command('init')
@pass_context
def init(ctx):
    """
    Create the request log tables.

    Safe to run repeatedly; existing tables and rows are kept.

    Example:

        courier db init
    """
    manager = get_connection_manager_from_context(ctx)
    try:
        click.echo(f"Request log database ready: {ctx.config.database.url}")
    finally:
        manager.close()


@db.command('status')
@pass_context
def status(ctx):
    """
    Show request log database health and record counts.

    Example:

        courier db status
    """
    manager = get_connection_manager_from_context(ctx)
    try:
        healthy = manager.health_check()
        click.echo(f"Database: {ctx.config.database.url}")
        click.echo(f"Status:   {'healthy' if healthy else 'unreachable'}")
        if not healthy:
            sys.exit(1)

        store = SqlLogStore(manager)
        click.echo()
        for kind in LogRecordKind:
            click.echo(f"  {kind.value:<20} {store.count(kind)}")
        click.echo(f"  {'total':<20} {store.count()}")
    except CourierError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    finally:
        manager.close()
