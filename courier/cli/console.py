"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Courier, a product of Garudex Labs

Terminal implementations of the dispatcher's user-facing collaborators.

Color System:
- Green (#00d787): Success
- Yellow (#ffd700): Warning, session invalidated
- Red (#ff5f5f): Error banners
- Gray (#808080): Secondary text
"""

from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.status import Status
from rich.style import Style

from courier.core.notices import MessagePriority, MessageSeverity
from courier.logging_config import get_logger

logger = get_logger(__name__)


class Colors:
    """Semantic color definitions."""

    SUCCESS = "#00d787"
    WARNING = "#ffd700"
    ERROR = "#ff5f5f"
    INFO = "#d787ff"
    DIM = "#808080"


_SEVERITY_COLORS = {
    MessageSeverity.INFO: Colors.INFO,
    MessageSeverity.WARNING: Colors.WARNING,
    MessageSeverity.ERROR: Colors.ERROR,
}


class ConsoleNoticeSystem:
    """Shows banners as panels on stderr."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(stderr=True)

    def display_message(
        self,
        text: str,
        severity: MessageSeverity,
        priority: MessagePriority,
        identifier: str,
    ) -> None:
        color = _SEVERITY_COLORS.get(severity, Colors.INFO)
        self.console.print(
            Panel(
                text,
                title=severity.value.upper(),
                subtitle=identifier if priority is MessagePriority.REST_INITIATED else None,
                border_style=Style(color=color),
            )
        )


class ConsoleSessionOwner:
    """Session owner for one-shot CLI calls; remembers that it was invalidated."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console(stderr=True)
        self.invalidated = False

    def invalidate_session(self) -> None:
        self.invalidated = True
        logger.warning("session_invalidated")
        self.console.print(
            "Session is no longer valid; sign in again before retrying.",
            style=Style(color=Colors.WARNING, bold=True),
        )


class SpinnerProgressIndicator:
    """
    Loading indicator backed by a rich status spinner.

    Overlapping calls share one spinner; it stops when the last one ends.
    """

    def __init__(self, console: Optional[Console] = None, message: str = "Waiting for server..."):
        self.console = console or Console(stderr=True)
        self.message = message
        self._active = 0
        self._status: Optional[Status] = None

    @property
    def active(self) -> int:
        return self._active

    def start_loading(self) -> None:
        self._active += 1
        if self._status is None:
            self._status = self.console.status(self.message)
            self._status.start()

    def stop_loading(self) -> None:
        if self._active == 0:
            return
        self._active -= 1
        if self._active == 0 and self._status is not None:
            self._status.stop()
            self._status = None
