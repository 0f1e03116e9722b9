"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Courier, a product of Garudex Labs

SQL-backed request log store.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Set

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from courier.core.records import LogRecord, LogRecordKind
from courier.db.connection import DatabaseConnectionManager
from courier.db.models import RequestLogEntry
from courier.exceptions import LogStoreError

logger = logging.getLogger(__name__)

FailureCallback = Callable[[Exception], None]


class SqlLogStore:
    """
    Persists request log records through SQLAlchemy.

    Called from a running event loop, ``write`` hands the insert to a single
    background thread and returns at once; records are still written in the
    order they were submitted. Without a running loop it writes inline.

    Writes never raise: database errors are handed to the caller's
    ``failure`` callback (or logged when there is none), so a broken log
    store cannot break a request. Background failures are reported on the
    loop thread.
    """

    def __init__(self, manager: DatabaseConnectionManager):
        self.manager = manager
        self._executor: Optional[ThreadPoolExecutor] = None
        self._pending: Set["asyncio.Future[None]"] = set()

    def write(
        self,
        record: LogRecord,
        failure: Optional[FailureCallback] = None,
    ) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is None:
            try:
                self._persist(record)
            except LogStoreError as error:
                self._report(error, failure)
            return

        if self._executor is None:
            # One worker keeps inserts in submission order
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="courier-log-store"
            )
        future = loop.run_in_executor(self._executor, self._persist, record)
        self._pending.add(future)

        def _done(finished: "asyncio.Future[None]") -> None:
            self._pending.discard(finished)
            if finished.cancelled():
                return
            error = finished.exception()
            if error is not None:
                self._report(error, failure)

        future.add_done_callback(_done)

    async def flush(self) -> None:
        """Wait until every background write submitted so far has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def close(self) -> None:
        """Stop the background writer, finishing queued writes first."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def _persist(self, record: LogRecord) -> None:
        try:
            with self.manager.session_scope() as session:
                session.add(RequestLogEntry.from_record(record))
        except Exception as e:
            raise LogStoreError(f"Failed to write {record.kind.value} record: {e}") from e

    @staticmethod
    def _report(error: BaseException, failure: Optional[FailureCallback]) -> None:
        if failure is not None:
            failure(error)
        else:
            logger.error("%s", error)

    def query(
        self,
        kind: Optional[LogRecordKind] = None,
        url_contains: Optional[str] = None,
        limit: int = 100,
    ) -> List[LogRecord]:
        """
        Return the most recent records, oldest first.

        Args:
            kind: Only records of this kind
            url_contains: Only records whose URL contains this text
            limit: Maximum number of records

        Raises:
            LogStoreError: If the database cannot be read
        """
        statement = select(RequestLogEntry)
        if kind is not None:
            statement = statement.where(RequestLogEntry.kind == kind.value)
        if url_contains:
            statement = statement.where(RequestLogEntry.url.contains(url_contains))
        statement = statement.order_by(RequestLogEntry.entry_id.desc()).limit(limit)

        try:
            with self.manager.session_scope() as session:
                entries = session.execute(statement).scalars().all()
                records = [entry.to_record() for entry in entries]
        except SQLAlchemyError as e:
            raise LogStoreError(f"Failed to query request log: {e}") from e

        records.reverse()
        return records

    def count(self, kind: Optional[LogRecordKind] = None) -> int:
        statement = select(func.count(RequestLogEntry.entry_id))
        if kind is not None:
            statement = statement.where(RequestLogEntry.kind == kind.value)
        try:
            with self.manager.session_scope() as session:
                return int(session.execute(statement).scalar_one())
        except SQLAlchemyError as e:
            raise LogStoreError(f"Failed to count request log: {e}") from e
