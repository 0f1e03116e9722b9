"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Courier, a product of Garudex Labs

API target descriptors.

A target describes one remote endpoint: where it lives, which server and
session settings it uses, and which (group, variant) it belongs to for
loading-indicator rules. Concrete target sets are usually enums mixing in
``BaseTarget``; one-off calls can use the ``Endpoint`` dataclass.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from courier.core.records import LogRecord
    from courier.exceptions import TransportError


@dataclass(frozen=True)
class SessionConfig:
    """
    Per-target-family HTTP session settings.

    ``None`` fields inherit the transport-wide configuration.
    """
    timeout: Optional[float] = None
    headers: Mapping[str, str] = field(default_factory=dict)
    verify: Optional[bool] = None
    follow_redirects: bool = False

    def __hash__(self) -> int:
        return hash((self.timeout, tuple(sorted(self.headers.items())), self.verify, self.follow_redirects))


DEFAULT_SESSION_CONFIG = SessionConfig()


@runtime_checkable
class TargetDescriptor(Protocol):
    """Everything the dispatcher needs to know about one API call."""

    @property
    def base_url(self) -> str:
        ...

    @property
    def path(self) -> str:
        ...

    @property
    def method(self) -> str:
        ...

    @property
    def server_name(self) -> str:
        ...

    @property
    def session_config(self) -> SessionConfig:
        ...

    @property
    def group(self) -> str:
        ...

    @property
    def variant(self) -> str:
        ...

    @property
    def params(self) -> Optional[Dict[str, Any]]:
        ...

    @property
    def body(self) -> Optional[Any]:
        ...

    @property
    def headers(self) -> Dict[str, str]:
        ...

    def error_log_record(
        self,
        error: "TransportError",
        request_time: str,
        response_time: str,
    ) -> Optional["LogRecord"]:
        ...


def target_url(target: TargetDescriptor) -> str:
    """Join a target's base URL and path with exactly one slash."""
    base = target.base_url.rstrip("/")
    path = target.path.lstrip("/")
    return f"{base}/{path}" if path else base


class BaseTarget:
    """
    Defaults for ``TargetDescriptor`` implementations.

    Meant to be mixed into an ``Enum`` whose members are the API calls.
    Class-level settings go on an intermediate class so ``Enum`` does not
    turn them into members::

        class FinanceTarget(BaseTarget):
            server_name = "finance"
            base_url = "https://api.example.com"

        class FinanceService(FinanceTarget, Enum):
            OPERATIONS = "/operations"
            OPERATIONS_CHAIN = "/operations/chain"

            @property
            def path(self):
                return self.value

    Subclasses must provide ``base_url`` and ``path``. The group defaults to
    the class name and the variant to the enum member name (or the class name
    for non-enum targets).
    """

    method: str = "GET"
    server_name: str = "default"
    session_config: SessionConfig = DEFAULT_SESSION_CONFIG

    @property
    def group(self) -> str:
        return type(self).__name__

    @property
    def variant(self) -> str:
        return getattr(self, "name", type(self).__name__)

    @property
    def params(self) -> Optional[Dict[str, Any]]:
        return None

    @property
    def body(self) -> Optional[Any]:
        return None

    @property
    def headers(self) -> Dict[str, str]:
        return {}

    def error_log_record(
        self,
        error: "TransportError",
        request_time: str,
        response_time: str,
    ) -> Optional["LogRecord"]:
        """Target-specific error record; ``None`` lets the dispatcher write the generic one."""
        return None


@dataclass(frozen=True)
class Endpoint:
    """A standalone, immutable target for ad-hoc calls."""
    base_url: str
    path: str = ""
    method: str = "GET"
    server_name: str = "default"
    session_config: SessionConfig = DEFAULT_SESSION_CONFIG
    group: str = "endpoint"
    variant: str = "default"
    params: Optional[Dict[str, Any]] = None
    body: Optional[Any] = None
    headers: Dict[str, str] = field(default_factory=dict)

    def error_log_record(
        self,
        error: "TransportError",
        request_time: str,
        response_time: str,
    ) -> Optional["LogRecord"]:
        return None
