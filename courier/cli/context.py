"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Courier, a product of Garudex Labs

CLI context for Courier.

Provides shared context object and decorators for CLI commands.
"""

from typing import Optional

import click

from courier.config.settings import CourierConfig


class CLIContext:
    """Context object for CLI commands."""

    def __init__(self):
        self.config: Optional[CourierConfig] = None
        self.config_path: Optional[str] = None
        self.verbose = False


pass_context = click.make_pass_decorator(CLIContext, ensure=True)
