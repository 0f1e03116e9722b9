"""
Database module for Courier.

This module provides the request log model, connection management and the
SQL-backed log store.
"""

from courier.db.connection import DatabaseConnectionManager
from courier.db.log_store import SqlLogStore
from courier.db.models import Base, RequestLogEntry

__all__ = [
    "Base",
    "DatabaseConnectionManager",
    "RequestLogEntry",
    "SqlLogStore",
]
