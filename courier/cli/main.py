"""
CLI entry point for Courier.

Provides command-line interface for sending requests through the dispatcher
and for inspecting the request log.
"""

import logging
import sys
from pathlib import Path
from typing import Optional

import click

from courier._version import __version__
from courier.cli.context import CLIContext, pass_context
from courier.config.settings import get_default_config_path, load_config
from courier.exceptions import InvalidConfigurationError
from courier.logging_config import setup_logging


@click.group()
@click.option(
    '--config',
    '-c',
    type=click.Path(exists=False, dir_okay=False, path_type=Path),
    default=None,
    help=f'Path to configuration file (default: {get_default_config_path()})',
)
@click.option(
    '--log-level',
    '-l',
    type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'], case_sensitive=False),
    default=None,
    help='Set logging level (default: from config)',
)
@click.option(
    '--verbose',
    '-v',
    is_flag=True,
    help='Enable verbose output',
)
@click.version_option(version=__version__, prog_name='courier')
@pass_context
def cli(ctx: CLIContext, config: Optional[Path], log_level: Optional[str], verbose: bool):
    """
    Courier - Outbound API request dispatcher.

    Sends requests with reachability gating, audit logging and error
    classification, and manages the persistent request log.
    """
    ctx.verbose = verbose
    ctx.config_path = str(config) if config else None

    try:
        ctx.config = load_config(ctx.config_path)
    except InvalidConfigurationError as e:
        click.echo(f"Error: Invalid configuration: {e}", err=True)
        sys.exit(1)

    effective_log_level = log_level.upper() if log_level else ctx.config.logging.level
    log_file = Path(ctx.config.logging.file) if ctx.config.logging.file else None
    setup_logging(
        level=effective_log_level,
        log_file=log_file,
        json_format=ctx.config.logging.format == "json",
    )

    if verbose:
        logger = logging.getLogger("courier")
        logger.info(f"Loaded configuration from: {ctx.config_path or 'defaults'}")
        logger.info(f"Log level: {effective_log_level}")


from courier.cli.db import db
from courier.cli.logs import logs
from courier.cli.request import request

cli.add_command(request)
cli.add_command(logs)
cli.add_command(db)


if __name__ == '__main__':
    cli()
