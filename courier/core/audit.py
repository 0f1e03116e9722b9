"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Courier, a product of Garudex Labs

Request audit logging.

Turns request lifecycle events into log records, mirrors them to the
structured application log and persists them to the configured log store.
Persistence is fire-and-forget: a failing store never disturbs a request.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, List, Optional

from courier.core.interfaces import LogStore
from courier.core.records import (
    LogRecord,
    LogRecordKind,
    RequestError,
    RequestSent,
    RequestSucceeded,
)
from courier.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class AuditLogger:
    """
    Records request lifecycle events.

    Args:
        store: Persistent log store
        timestamp_format: ``strftime`` format for record timestamps
    """

    def __init__(
        self,
        store: LogStore,
        timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT,
    ) -> None:
        self.store = store
        self.timestamp_format = timestamp_format

    def format_time(self, moment: datetime) -> str:
        return moment.strftime(self.timestamp_format)

    def request_sent(self, url: str, request_time: datetime) -> RequestSent:
        record = RequestSent(url=url, request_time=self.format_time(request_time))
        self.record(record)
        return record

    def request_succeeded(self, url: str, response_time: datetime) -> RequestSucceeded:
        record = RequestSucceeded(url=url, response_time=self.format_time(response_time))
        self.record(record)
        return record

    def request_error(
        self,
        url: str,
        error_code: str,
        error_description: str,
        request_time: datetime,
        response_time: datetime,
    ) -> RequestError:
        record = RequestError(
            url=url,
            error_code=error_code,
            error_description=error_description,
            request_time=self.format_time(request_time),
            response_time=self.format_time(response_time),
        )
        self.record(record)
        return record

    def record(self, record: LogRecord) -> None:
        """
        Persist a record and mirror it to the application log.

        Store failures, whether raised or reported through the failure
        callback, are logged and otherwise ignored.
        """
        if record.kind is LogRecordKind.REQUEST_ERROR:
            logger.warning(record.kind.value, **record.to_dict())
        else:
            logger.debug(record.kind.value, **record.to_dict())

        try:
            self.store.write(record, failure=self._on_store_failure)
        except Exception as exc:
            self._on_store_failure(exc)

    def _on_store_failure(self, exc: Exception) -> None:
        logger.warning(
            "log_store_write_failed",
            error=str(exc),
            error_type=type(exc).__name__,
        )


class InMemoryLogStore:
    """Log store that keeps records in a list; for tests and embedding."""

    def __init__(self) -> None:
        self._records: List[LogRecord] = []

    def write(
        self,
        record: LogRecord,
        failure: Optional[Callable[[Exception], None]] = None,
    ) -> None:
        self._records.append(record)

    @property
    def records(self) -> List[LogRecord]:
        return list(self._records)

    def of_kind(self, kind: LogRecordKind) -> List[LogRecord]:
        return [r for r in self._records if r.kind is kind]

    def clear(self) -> None:
        self._records.clear()
