"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Courier, a product of Garudex Labs

Transport error classification.

Extracts the server's machine-readable error code from a failed call,
resolves the message shown to the user, and recognises authentication
failures that must invalidate the session.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional

from courier.config.settings import DEFAULT_AUTH_FAILURE_CODES, ClassifierConfig
from courier.exceptions import TransportError, TransportErrorKind
from courier.logging_config import get_logger

logger = get_logger(__name__)


_KIND_MESSAGES = {
    TransportErrorKind.TIMEOUT: "The server took too long to respond.",
    TransportErrorKind.NETWORK: "Could not connect to the server.",
    TransportErrorKind.CANCELLED: "The request was cancelled.",
    TransportErrorKind.OFFLINE: "No network connection.",
}

_MESSAGE_FIELDS = ("message", "description", "detail")


@dataclass(frozen=True)
class Classification:
    """Result of classifying one transport error."""
    code: str
    message: str
    is_authentication_failure: bool = False


class ErrorClassifier:
    """
    Classifies transport errors.

    Args:
        code_fields: Payload keys that may carry the error code, in lookup order
        messages: Error code to user-facing message overrides
        auth_failure_codes: Codes that mean the session is no longer valid
        default_message: Message used when nothing better is known
    """

    def __init__(
        self,
        code_fields: Iterable[str] = ("code", "errorCode", "error_code"),
        messages: Optional[Mapping[str, str]] = None,
        auth_failure_codes: Iterable[str] = DEFAULT_AUTH_FAILURE_CODES,
        default_message: str = ClassifierConfig.default_message,
    ) -> None:
        self.code_fields = tuple(code_fields)
        self.messages: Dict[str, str] = dict(messages or {})
        self.auth_failure_codes = frozenset(auth_failure_codes)
        self.default_message = default_message

    @classmethod
    def from_config(cls, config: ClassifierConfig) -> "ErrorClassifier":
        return cls(
            code_fields=config.code_fields,
            messages=config.messages,
            auth_failure_codes=config.auth_failure_codes,
            default_message=config.default_message,
        )

    def classify(self, error: TransportError) -> Classification:
        code = self.extract_code(error)
        classification = Classification(
            code=code,
            message=self.message_for(error, code),
            is_authentication_failure=self.is_authentication_failure(code),
        )
        logger.debug(
            "transport_error_classified",
            url=error.url,
            kind=error.kind.value,
            code=code,
            is_authentication_failure=classification.is_authentication_failure,
        )
        return classification

    def extract_code(self, error: TransportError) -> str:
        """
        Find the machine-readable code in the error's response body.

        Looks at the top level of the JSON body first, then inside a nested
        ``error`` object. Returns an empty string when there is no code.
        """
        payload = error.payload()
        if payload is None:
            return ""

        code = self._lookup(payload, self.code_fields)
        if code is None and isinstance(payload.get("error"), dict):
            code = self._lookup(payload["error"], self.code_fields)
        return code or ""

    def message_for(self, error: TransportError, code: str) -> str:
        if code and code in self.messages:
            return self.messages[code]

        payload = error.payload()
        if payload is not None:
            message = self._lookup(payload, _MESSAGE_FIELDS)
            if message is None and isinstance(payload.get("error"), dict):
                message = self._lookup(payload["error"], _MESSAGE_FIELDS)
            if message:
                return message

        if error.kind in _KIND_MESSAGES:
            return _KIND_MESSAGES[error.kind]
        if error.kind is TransportErrorKind.STATUS and error.status_code is not None:
            return f"{self.default_message} (HTTP {error.status_code})"
        return self.default_message

    def is_authentication_failure(self, code: str) -> bool:
        return code in self.auth_failure_codes

    @staticmethod
    def _lookup(data: Dict[str, Any], keys: Iterable[str]) -> Optional[str]:
        for key in keys:
            value = data.get(key)
            if value is not None and not isinstance(value, (dict, list)):
                return str(value)
        return None
