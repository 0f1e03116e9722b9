"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Courier, a product of Garudex Labs

Request log records.

One immutable record is produced for each lifecycle event of a dispatched
call. Timestamps are stored already formatted, exactly as they are shown to
support staff reading the request log.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, ClassVar, Dict, Union


class LogRecordKind(str, Enum):
    """Lifecycle event a log record describes."""
    REQUEST_SENT = "request_sent"
    REQUEST_SUCCEEDED = "request_succeeded"
    REQUEST_ERROR = "request_error"


@dataclass(frozen=True)
class RequestSent:
    """A call was handed to the transport."""
    url: str
    request_time: str

    kind: ClassVar[LogRecordKind] = LogRecordKind.REQUEST_SENT

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, **asdict(self)}


@dataclass(frozen=True)
class RequestSucceeded:
    """The transport returned a response body for a call."""
    url: str
    response_time: str

    kind: ClassVar[LogRecordKind] = LogRecordKind.REQUEST_SUCCEEDED

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, **asdict(self)}


@dataclass(frozen=True)
class RequestError:
    """A call ended in a transport or decode failure."""
    url: str
    error_code: str
    error_description: str
    request_time: str
    response_time: str

    kind: ClassVar[LogRecordKind] = LogRecordKind.REQUEST_ERROR

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, **asdict(self)}


LogRecord = Union[RequestSent, RequestSucceeded, RequestError]

_RECORD_TYPES = {
    LogRecordKind.REQUEST_SENT: RequestSent,
    LogRecordKind.REQUEST_SUCCEEDED: RequestSucceeded,
    LogRecordKind.REQUEST_ERROR: RequestError,
}


def record_from_dict(data: Dict[str, Any]) -> LogRecord:
    """
    Rebuild a log record from its ``to_dict`` form.

    Args:
        data: Mapping with a ``kind`` key plus the record's fields

    Returns:
        The matching record instance

    Raises:
        ValueError: If ``kind`` is unknown
    """
    fields = dict(data)
    kind = LogRecordKind(fields.pop("kind"))
    return _RECORD_TYPES[kind](**fields)

