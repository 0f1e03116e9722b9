"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Courier, a product of Garudex Labs

Transport base class and outcome types.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, List, Optional, Set, Union

from courier.core.target import TargetDescriptor, target_url
from courier.exceptions import TransportError, TransportErrorKind
from courier.logging_config import get_logger
from courier.transport.hooks import Activity, ActivityHookRegistry

logger = get_logger(__name__)


@dataclass(frozen=True)
class Success:
    """The server answered with a 2xx status; ``data`` is the raw body."""
    data: bytes


@dataclass(frozen=True)
class Failure:
    """The call failed on the wire (or was cancelled)."""
    error: TransportError


Outcome = Union[Success, Failure]
Completion = Callable[[Outcome], None]


class BaseTransport(ABC):
    """
    Abstract base for all transports.

    Subclasses implement :meth:`send`. The base class runs each call as an
    ``asyncio.Task``, fires activity hooks around it, converts every ending
    (including cancellation) into exactly one :data:`Outcome`, and keeps the
    registry of outstanding tasks used by :meth:`cancel_all`.

    All task bookkeeping happens on the event loop thread, so the registry
    needs no lock. :meth:`cancel_all` may be called from other threads; it
    hops onto the loop first.
    """

    def __init__(self, hooks: Optional[ActivityHookRegistry] = None) -> None:
        self.hooks = hooks or ActivityHookRegistry()
        self._tasks: Set[asyncio.Task] = set()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @abstractmethod
    async def send(self, target: TargetDescriptor) -> bytes:
        """Perform the call and return the body, or raise ``TransportError``."""
        ...

    async def aclose(self) -> None:
        """Release transport resources."""
        return None

    def request(self, target: TargetDescriptor, completion: Completion) -> asyncio.Task:
        """
        Start a call in the background.

        Must be called from the event loop thread.

        Args:
            target: Call to perform
            completion: Receives the call's outcome exactly once

        Returns:
            The task running the call; cancelling it cancels the call.
        """
        loop = asyncio.get_running_loop()
        self._loop = loop
        url = target_url(target)
        delivered = False

        def deliver(outcome: Outcome) -> None:
            nonlocal delivered
            if delivered:
                return
            delivered = True
            completion(outcome)

        def on_done(task: asyncio.Task) -> None:
            self._tasks.discard(task)
            # A task cancelled before its first step never enters _perform
            if task.cancelled() and not delivered:
                deliver(Failure(TransportError.cancelled(url)))

        task = loop.create_task(
            self._perform(target, deliver),
            name=f"courier {target.method} {url}",
        )
        self._tasks.add(task)
        task.add_done_callback(on_done)
        return task

    @property
    def outstanding(self) -> List[asyncio.Task]:
        """Tasks that have not finished yet."""
        return [task for task in self._tasks if not task.done()]

    def cancel_all(self) -> int:
        """
        Cancel every outstanding call without waiting for them to settle.

        The task calling this (typically a completion that detected an
        authentication failure) is left alone.

        Returns:
            Number of tasks that were asked to cancel.
        """
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if self._loop is not None and running is not self._loop:
            if self._loop.is_closed():
                return 0
            pending = len(self.outstanding)
            self._loop.call_soon_threadsafe(self.cancel_all)
            return pending

        current = asyncio.current_task() if running is not None else None
        cancelled = 0
        for task in list(self._tasks):
            if task is current or task.done():
                continue
            task.cancel()
            cancelled += 1

        if cancelled:
            logger.info("transport_tasks_cancelled", count=cancelled)
        return cancelled

    async def _perform(self, target: TargetDescriptor, completion: Completion) -> None:
        url = target_url(target)
        try:
            self.hooks.fire_activity(Activity.BEGAN, target)
            try:
                data = await self.send(target)
            finally:
                self.hooks.fire_activity(Activity.ENDED, target)
        except asyncio.CancelledError:
            completion(Failure(TransportError.cancelled(url)))
            raise
        except TransportError as exc:
            if exc.url is None:
                exc.url = url
            completion(Failure(exc))
        except Exception as exc:
            logger.error("transport_unexpected_error", url=url, exc_info=True)
            wrapped = TransportError(
                str(exc) or type(exc).__name__,
                kind=TransportErrorKind.UNDERLYING,
                url=url,
            )
            wrapped.__cause__ = exc
            completion(Failure(wrapped))
        else:
            completion(Success(data))
