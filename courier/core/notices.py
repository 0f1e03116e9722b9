"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Courier, a product of Garudex Labs

User notice primitives.
"""

from __future__ import annotations

import asyncio
from enum import Enum

from courier.core.interfaces import UserNoticeSystem
from courier.logging_config import get_logger

logger = get_logger(__name__)


# UI automation locates the error banner by this identifier
BANNER_IDENTIFIER = "RestErrorNotificationBanner"


class MessageSeverity(str, Enum):
    """Banner severity."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class MessagePriority(str, Enum):
    """Banner priority; REST-initiated banners may pre-empt normal ones."""
    NORMAL = "normal"
    REST_INITIATED = "rest_initiated"


class LoggingNoticeSystem:
    """Notice system for headless use: banners become structured log lines."""

    def display_message(
        self,
        text: str,
        severity: MessageSeverity,
        priority: MessagePriority,
        identifier: str,
    ) -> None:
        log = logger.error if severity is MessageSeverity.ERROR else logger.info
        log(
            "user_notice",
            text=text,
            severity=severity.value,
            priority=priority.value,
            identifier=identifier,
        )


class MarshalledNoticeSystem:
    """
    Forwards banners to a notice system that must run on a specific event loop.

    Dispatcher completions run on the transport's loop; UI toolkits often
    require their own thread. Calls are handed over with
    ``loop.call_soon_threadsafe`` and never block the caller.

    Args:
        inner: Notice system that owns the UI
        loop: Event loop the inner system must be called on
    """

    def __init__(self, inner: UserNoticeSystem, loop: asyncio.AbstractEventLoop) -> None:
        self._inner = inner
        self._loop = loop

    def display_message(
        self,
        text: str,
        severity: MessageSeverity,
        priority: MessagePriority,
        identifier: str,
    ) -> None:
        if self._loop.is_closed():
            logger.warning("notice_dropped_loop_closed", text=text, identifier=identifier)
            return
        self._loop.call_soon_threadsafe(
            self._inner.display_message, text, severity, priority, identifier
        )
