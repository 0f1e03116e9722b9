"""
Exception hierarchy for Courier.

All custom exceptions inherit from CourierError base class.
"""

import json
from enum import Enum
from typing import Any, Dict, Optional


class CourierError(Exception):
    """Base exception for all Courier errors."""
    pass


# Transport Errors
class TransportErrorKind(str, Enum):
    """Where in the transport a call failed."""
    STATUS = "status"  # Server answered with a non-2xx status
    NETWORK = "network"  # Connection could not be established or was dropped
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    OFFLINE = "offline"  # Reachability gate refused the call
    UNDERLYING = "underlying"  # Anything else raised by the transport library


class TransportError(CourierError):
    """
    Raised (or delivered) when a remote call fails at the network/HTTP layer.

    Attributes:
        kind: Failure category
        url: Full URL of the failed call, when known
        status_code: HTTP status code for STATUS failures
        body: Raw response body, when the server sent one
    """

    def __init__(
        self,
        message: str,
        kind: TransportErrorKind = TransportErrorKind.UNDERLYING,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        body: Optional[bytes] = None,
    ):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.url = url
        self.status_code = status_code
        self.body = body

    @classmethod
    def status(cls, url: str, status_code: int, body: Optional[bytes] = None) -> "TransportError":
        return cls(
            f"Status code {status_code} returned by {url}",
            kind=TransportErrorKind.STATUS,
            url=url,
            status_code=status_code,
            body=body,
        )

    @classmethod
    def cancelled(cls, url: Optional[str] = None) -> "TransportError":
        return cls("Request was cancelled", kind=TransportErrorKind.CANCELLED, url=url)

    @classmethod
    def offline(cls, url: Optional[str] = None) -> "TransportError":
        return cls("Network is not reachable", kind=TransportErrorKind.OFFLINE, url=url)

    @property
    def is_cancelled(self) -> bool:
        return self.kind is TransportErrorKind.CANCELLED

    def payload(self) -> Optional[Dict[str, Any]]:
        """
        Decode the embedded response body as a JSON object.

        Returns:
            The decoded object, or None when there is no body or it is not
            a JSON object.
        """
        if not self.body:
            return None
        try:
            decoded = json.loads(self.body)
        except (ValueError, UnicodeDecodeError, RecursionError):
            # RecursionError: nesting deeper than the parser can follow
            return None
        return decoded if isinstance(decoded, dict) else None

    def __repr__(self) -> str:
        return (
            f"TransportError(kind={self.kind.value!r}, url={self.url!r}, "
            f"status_code={self.status_code!r})"
        )


class DecodeError(CourierError):
    """Raised when a successful response body does not match the expected shape."""

    def __init__(self, code: str, description: str):
        super().__init__(description)
        self.code = code
        self.description = description


# Configuration Errors
class ConfigurationError(CourierError):
    """Base exception for configuration-related errors."""
    pass


class InvalidConfigurationError(ConfigurationError):
    """Raised when configuration is invalid or malformed."""
    pass


class ConfigurationLoadError(ConfigurationError):
    """Raised when loading configuration fails."""
    pass


# Storage and Persistence Errors
class StorageError(CourierError):
    """Base exception for storage-related errors."""
    pass


class LogStoreError(StorageError):
    """Raised when writing to or reading from the request log store fails."""
    pass
