"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Courier, a product of Garudex Labs

Collaborator interfaces.

The dispatcher talks to its surroundings only through these protocols.
Concrete implementations are passed in by whatever composes the system.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from courier.core.notices import MessagePriority, MessageSeverity
    from courier.core.records import LogRecord


@runtime_checkable
class LogStore(Protocol):
    """Persistent store for request log records."""

    def write(
        self,
        record: "LogRecord",
        failure: Optional[Callable[[Exception], None]] = None,
    ) -> None:
        """Persist one record; report problems through ``failure`` if given."""
        ...


@runtime_checkable
class UserNoticeSystem(Protocol):
    """User-facing banner notifications."""

    def display_message(
        self,
        text: str,
        severity: "MessageSeverity",
        priority: "MessagePriority",
        identifier: str,
    ) -> None:
        ...


@runtime_checkable
class SessionOwner(Protocol):
    """Owner of the authenticated session."""

    def invalidate_session(self) -> None:
        """Called when the server rejected the session's credentials."""
        ...


@runtime_checkable
class ProgressIndicator(Protocol):
    """Visible loading indicator."""

    def start_loading(self) -> None:
        ...

    def stop_loading(self) -> None:
        ...


@runtime_checkable
class ReachabilityMonitor(Protocol):
    """Source of the current network reachability state."""

    @property
    def is_reachable(self) -> bool:
        ...
