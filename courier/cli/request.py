"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Courier, a product of Garudex Labs

CLI command for issuing a single request through the dispatcher.
"""

import asyncio
import json
import sys
from typing import Any, Optional, Tuple

import click

from courier.cli.console import (
    ConsoleNoticeSystem,
    ConsoleSessionOwner,
    SpinnerProgressIndicator,
)
from courier.cli.context import pass_context
from courier.config.settings import CourierConfig
from courier.core.audit import InMemoryLogStore
from courier.core.factory import build_dispatcher, build_reachability_monitor
from courier.core.reachability import ProbeReachabilityMonitor
from courier.core.target import Endpoint, SessionConfig
from courier.db import DatabaseConnectionManager, SqlLogStore
from courier.exceptions import DecodeError, StorageError, TransportError, TransportErrorKind
from courier.logging_config import get_logger
from courier.transport.http import HttpTransport

logger = get_logger(__name__)


def parse_headers(values: Tuple[str, ...]) -> dict:
    """
    Parse ``Name: value`` header options.

    Raises:
        click.BadParameter: If a header has no colon
    """
    headers = {}
    for value in values:
        name, sep, content = value.partition(":")
        if not sep or not name.strip():
            raise click.BadParameter(f"Header must look like 'Name: value', got {value!r}")
        headers[name.strip()] = content.strip()
    return headers


def parse_body(data: Optional[str]) -> Any:
    """JSON bodies are sent as JSON; anything else is sent as text."""
    if data is None:
        return None
    try:
        return json.loads(data)
    except json.JSONDecodeError:
        return data


async def run_request(
    config: CourierConfig,
    target: Endpoint,
    raw: bool,
    log_store,
) -> Any:
    """Dispatch ``target`` once with terminal collaborators and return the result."""
    transport = HttpTransport(config.transport)
    monitor = build_reachability_monitor(config)
    if isinstance(monitor, ProbeReachabilityMonitor):
        await monitor.probe()

    dispatcher = build_dispatcher(
        config,
        notices=ConsoleNoticeSystem(),
        session_owner=ConsoleSessionOwner(),
        progress_indicator=SpinnerProgressIndicator(),
        log_store=log_store,
        monitor=monitor,
        transport=transport,
    )
    # HEAD responses carry no body to decode
    shape = bytes if raw or target.method == "HEAD" else Any
    try:
        return await dispatcher.fetch(target, shape)
    finally:
        await transport.aclose()
        if isinstance(log_store, SqlLogStore):
            await log_store.flush()


@click.command('request')
@click.argument('url')
@click.option(
    '--method',
    '-X',
    type=click.Choice(['GET', 'POST', 'PUT', 'PATCH', 'DELETE', 'HEAD', 'OPTIONS'], case_sensitive=False),
    default='GET',
    help='HTTP method (default: GET)',
)
@click.option(
    '--header',
    '-H',
    multiple=True,
    help='Request header as "Name: value" (repeatable)',
)
@click.option(
    '--data',
    '-d',
    default=None,
    help='Request body; sent as JSON when it parses as JSON',
)
@click.option(
    '--timeout',
    '-t',
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help='Request timeout in seconds (default: from config)',
)
@click.option(
    '--server',
    '-s',
    default='default',
    help='Server name whose configured overrides apply (default: default)',
)
@click.option(
    '--raw',
    is_flag=True,
    help='Print the response body as-is instead of decoding JSON',
)
@pass_context
def request(
    ctx,
    url: str,
    method: str,
    header: Tuple[str, ...],
    data: Optional[str],
    timeout: Optional[float],
    server: str,
    raw: bool,
):
    """
    Send one request and print the response.

    The call goes through the full pipeline: reachability gate, audit
    records, error banners and session invalidation.

    Examples:

        courier request https://api.example.com/rates

        courier request https://api.example.com/login -X POST -d '{"user": "a"}'
    """
    config = ctx.config
    target = Endpoint(
        base_url=url,
        method=method.upper(),
        server_name=server,
        session_config=SessionConfig(timeout=timeout),
        group="cli",
        variant=method.upper(),
        body=parse_body(data),
        headers=parse_headers(header),
    )

    manager = None
    log_store = InMemoryLogStore()
    if config.database.url:
        manager = DatabaseConnectionManager(config.database)
        try:
            manager.initialize()
            log_store = SqlLogStore(manager)
        except StorageError as e:
            click.echo(f"Warning: request log unavailable, not persisting: {e}", err=True)
            manager = None

    try:
        result = asyncio.run(run_request(config, target, raw, log_store))
    except TransportError as e:
        if e.kind is TransportErrorKind.OFFLINE:
            click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    except DecodeError:
        sys.exit(1)
    finally:
        if manager is not None:
            log_store.close()
            manager.close()

    if isinstance(result, bytes):
        if result:
            click.echo(result.decode("utf-8", errors="replace"))
    else:
        click.echo(json.dumps(result, indent=2))
