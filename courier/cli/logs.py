"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Courier, a product of Garudex Labs

CLI commands for the request log.

Provides commands for listing and exporting audit records.
"""

import csv
import json
import sys
from typing import List, Optional

import click

from courier.cli.context import pass_context
from courier.cli.db import get_connection_manager_from_context
from courier.core.records import LogRecord, LogRecordKind
from courier.db import SqlLogStore
from courier.exceptions import CourierError

EXPORT_FIELDS = [
    "kind",
    "url",
    "request_time",
    "response_time",
    "error_code",
    "error_description",
]

_KIND_CHOICES = [kind.value for kind in LogRecordKind]


def _query(ctx, kind: Optional[str], url: Optional[str], limit: int) -> List[LogRecord]:
    manager = get_connection_manager_from_context(ctx)
    try:
        store = SqlLogStore(manager)
        return store.query(
            kind=LogRecordKind(kind) if kind else None,
            url_contains=url,
            limit=limit,
        )
    finally:
        manager.close()


@click.group('logs')
def logs():
    """Inspect the request log."""
    pass


@logs.command('list')
@click.option(
    '--kind',
    '-k',
    type=click.Choice(_KIND_CHOICES, case_sensitive=False),
    default=None,
    help='Filter by record kind (optional)',
)
@click.option(
    '--url',
    '-u',
    default=None,
    help='Only records whose URL contains this text (optional)',
)
@click.option(
    '--limit',
    '-n',
    type=click.IntRange(min=1),
    default=50,
    show_default=True,
    help='Maximum number of records',
)
@click.option(
    '--format',
    '-f',
    type=click.Choice(['table', 'json'], case_sensitive=False),
    default='table',
    help='Output format (default: table)',
)
@pass_context
def list_logs(ctx, kind: Optional[str], url: Optional[str], limit: int, format: str):
    """
    List the most recent request log records.

    Examples:

        courier logs list

        courier logs list --kind request_error --limit 10

        courier logs list --format json
    """
    try:
        records = _query(ctx, kind, url, limit)
    except CourierError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if not records:
        click.echo("No records found matching the specified filters.")
        return

    if format.lower() == 'json':
        click.echo(json.dumps([record.to_dict() for record in records], indent=2))
        return

    rows = []
    for record in records:
        data = record.to_dict()
        when = data.get("request_time") or data.get("response_time") or ""
        rows.append((data["kind"], when, data.get("error_code", ""), data["url"]))

    kind_width = max(max(len(row[0]) for row in rows), len("Kind"))
    time_width = max(max(len(row[1]) for row in rows), len("Time"))
    code_width = max(max(len(row[2]) for row in rows), len("Code"))

    header = (
        f"{'Kind':<{kind_width}}  "
        f"{'Time':<{time_width}}  "
        f"{'Code':<{code_width}}  "
        f"URL"
    )
    click.echo(f"Total records: {len(rows)}")
    click.echo()
    click.echo(header)
    click.echo("-" * len(header))
    for row_kind, when, code, row_url in rows:
        click.echo(
            f"{row_kind:<{kind_width}}  "
            f"{when:<{time_width}}  "
            f"{code:<{code_width}}  "
            f"{row_url}"
        )


@logs.command('export')
@click.option(
    '--format',
    '-f',
    type=click.Choice(['json', 'csv'], case_sensitive=False),
    default='json',
    help='Export format (default: json)',
)
@click.option(
    '--output',
    '-o',
    type=click.File('w'),
    default='-',
    help='Output file (default: stdout)',
)
@click.option(
    '--kind',
    '-k',
    type=click.Choice(_KIND_CHOICES, case_sensitive=False),
    default=None,
    help='Filter by record kind (optional)',
)
@click.option(
    '--limit',
    '-n',
    type=click.IntRange(min=1),
    default=10000,
    show_default=True,
    help='Maximum number of records',
)
@pass_context
def export(ctx, format: str, output, kind: Optional[str], limit: int):
    """
    Export request log records for support staff.

    Examples:

        courier logs export --format csv -o requests.csv
    """
    try:
        records = _query(ctx, kind, None, limit)
    except CourierError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    if format.lower() == 'csv':
        writer = csv.DictWriter(output, fieldnames=EXPORT_FIELDS, restval="")
        writer.writeheader()
        for record in records:
            writer.writerow(record.to_dict())
    else:
        output.write(json.dumps([record.to_dict() for record in records], indent=2))
        output.write("\n")
