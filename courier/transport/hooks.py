"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Courier, a product of Garudex Labs

Transport activity hook registry.

Subscribers are told when a call begins and ends on the wire. The loading
indicator is driven from here; metrics and tracing can hook in the same way
without touching the dispatcher.

Available hooks:
- on_activity: Fired with (Activity.BEGAN | Activity.ENDED, target)
- on_error: Fired when an activity callback itself raises
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Callable, List

from courier.logging_config import get_logger

if TYPE_CHECKING:
    from courier.core.target import TargetDescriptor

logger = get_logger(__name__)


class Activity(str, Enum):
    """Transport call phase."""
    BEGAN = "began"
    ENDED = "ended"


ActivityCallback = Callable[[Activity, "TargetDescriptor"], None]
ErrorCallback = Callable[[Exception], None]


class ActivityHookRegistry:
    """
    Manages transport activity hooks.

    Multiple callbacks per hook are supported and executed in registration
    order. A failing callback is logged and never interrupts the call or the
    remaining callbacks.
    """

    def __init__(self) -> None:
        self._activity_callbacks: List[ActivityCallback] = []
        self._error_callbacks: List[ErrorCallback] = []

    # -- Registration methods ------------------------------------------------

    def on_activity(self, callback: ActivityCallback) -> None:
        """Register a callback fired when a call begins and when it ends."""
        self._activity_callbacks.append(callback)
        logger.debug("Registered on_activity hook")

    def on_error(self, callback: ErrorCallback) -> None:
        """Register a callback fired when an activity hook raises."""
        self._error_callbacks.append(callback)
        logger.debug("Registered on_error hook")

    # -- Firing methods (called by the transport) ----------------------------

    def fire_activity(self, activity: Activity, target: "TargetDescriptor") -> None:
        """Fire all registered on_activity callbacks."""
        for cb in self._activity_callbacks:
            try:
                cb(activity, target)
            except Exception as exc:
                logger.error(f"on_activity hook error: {exc}", exc_info=True)
                self.fire_error(exc)

    def fire_error(self, error: Exception) -> None:
        """Fire all on_error callbacks."""
        for cb in self._error_callbacks:
            try:
                cb(error)
            except Exception:
                # Avoid infinite recursion; just log
                logger.error("on_error hook itself raised an exception", exc_info=True)
