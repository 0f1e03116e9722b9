"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Courier, a product of Garudex Labs

Transports.
"""

from courier.transport.base import BaseTransport, Completion, Failure, Outcome, Success
from courier.transport.hooks import Activity, ActivityHookRegistry
from courier.transport.http import HttpTransport
from courier.transport.mock import MockTransport

__all__ = [
    "Activity",
    "ActivityHookRegistry",
    "BaseTransport",
    "Completion",
    "Failure",
    "HttpTransport",
    "MockTransport",
    "Outcome",
    "Success",
]
