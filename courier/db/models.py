"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Courier, a product of Garudex Labs

SQLAlchemy models for the persistent request log.
"""

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Column,
    DateTime,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base

from courier.core.records import (
    LogRecord,
    LogRecordKind,
    RequestError,
    RequestSent,
    RequestSucceeded,
)

Base = declarative_base()


class RequestLogEntry(Base):
    """
    One audit record of an outbound request.

    Rows are append-only. Timestamps are kept exactly as the audit logger
    formatted them; ``logged_at`` is the insertion instant and orders the log.
    """

    __tablename__ = "request_logs"

    entry_id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)

    kind = Column(String(32), nullable=False, index=True)
    url = Column(String(2048), nullable=False)

    request_time = Column(String(64), nullable=True)
    response_time = Column(String(64), nullable=True)

    error_code = Column(String(255), nullable=True)
    error_description = Column(Text, nullable=True)

    logged_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index("ix_request_logs_logged_at", "logged_at"),
    )

    @classmethod
    def from_record(cls, record: LogRecord) -> "RequestLogEntry":
        data = record.to_dict()
        return cls(
            kind=data["kind"],
            url=data["url"],
            request_time=data.get("request_time"),
            response_time=data.get("response_time"),
            error_code=data.get("error_code"),
            error_description=data.get("error_description"),
        )

    def to_record(self) -> LogRecord:
        kind = LogRecordKind(self.kind)
        if kind is LogRecordKind.REQUEST_SENT:
            return RequestSent(url=self.url, request_time=self.request_time or "")
        if kind is LogRecordKind.REQUEST_SUCCEEDED:
            return RequestSucceeded(url=self.url, response_time=self.response_time or "")
        return RequestError(
            url=self.url,
            error_code=self.error_code or "",
            error_description=self.error_description or "",
            request_time=self.request_time or "",
            response_time=self.response_time or "",
        )

    def __repr__(self) -> str:
        return f"<RequestLogEntry(entry_id={self.entry_id}, kind={self.kind}, url={self.url})>"
