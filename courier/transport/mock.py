"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Courier, a product of Garudex Labs

Mock transport for local testing.
"""

from __future__ import annotations

import asyncio
import copy
import inspect
import json
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

from courier.core.target import TargetDescriptor, target_url
from courier.exceptions import TransportError
from courier.transport.base import BaseTransport
from courier.transport.hooks import ActivityHookRegistry

MockResponse = Union[bytes, dict, list, TransportError, Callable[[TargetDescriptor], Union[bytes, Awaitable[bytes]]]]


class MockTransport(BaseTransport):
    """In-memory mock transport for unit tests.

    Args:
        responses: Mapping from ``(method, path)`` tuples to a body (bytes, or
            a dict/list that is JSON-encoded), a ``TransportError`` (a fresh
            copy is raised on each call), or a callable (plain or async)
            producing the body.
        delay: Seconds each call stays in flight before answering.

    Example::

        transport = MockTransport({
            ("GET", "/rates"): {"usd": 1.0},
            ("POST", "/login"): TransportError.status("https://x/login", 401),
        })
    """

    def __init__(
        self,
        responses: Optional[Dict[Tuple[str, str], MockResponse]] = None,
        delay: float = 0.0,
        hooks: Optional[ActivityHookRegistry] = None,
    ) -> None:
        super().__init__(hooks=hooks)
        self._responses: Dict[Tuple[str, str], MockResponse] = dict(responses or {})
        self.delay = delay
        self._sent: List[TargetDescriptor] = []

    def add_response(self, method: str, path: str, response: MockResponse) -> None:
        self._responses[(method.upper(), path)] = response

    async def send(self, target: TargetDescriptor) -> bytes:
        self._sent.append(target)
        if self.delay:
            await asyncio.sleep(self.delay)

        key = (target.method.upper(), target.path)
        if key not in self._responses:
            raise TransportError.status(
                target_url(target), 404, json.dumps({"error": "not mocked"}).encode()
            )

        response: Any = self._responses[key]
        if isinstance(response, TransportError):
            # Fresh instance per call; the transport fills in url and traceback
            raise copy.copy(response)
        if callable(response):
            result = response(target)
            if inspect.isawaitable(result):
                result = await result
            return result
        if isinstance(response, (dict, list)):
            return json.dumps(response).encode()
        return response

    @property
    def sent_targets(self) -> List[TargetDescriptor]:
        """All targets that have been sent through this transport."""
        return list(self._sent)
