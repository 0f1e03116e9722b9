"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Courier, a product of Garudex Labs

HTTP/REST transport (default).
"""

from __future__ import annotations

from typing import Dict, Optional, Tuple

import httpx

from courier.config.settings import ServerConfig, TransportConfig
from courier.core.target import SessionConfig, TargetDescriptor, target_url
from courier.exceptions import TransportError, TransportErrorKind
from courier.logging_config import get_logger
from courier.transport.base import BaseTransport
from courier.transport.hooks import ActivityHookRegistry

logger = get_logger(__name__)


class HttpTransport(BaseTransport):
    """Default HTTP transport using ``httpx.AsyncClient``.

    One client is kept per (server name, session config) pair, so targets of
    the same family share a connection pool and headers.

    Args:
        config: Transport-wide settings and per-server overrides.
        hooks: Activity hook registry; a fresh one is created if omitted.
        transport: Optional ``httpx`` transport, e.g. ``httpx.MockTransport``
            in tests.
    """

    def __init__(
        self,
        config: Optional[TransportConfig] = None,
        hooks: Optional[ActivityHookRegistry] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(hooks=hooks)
        self.config = config or TransportConfig()
        self._transport = transport
        self._clients: Dict[Tuple[str, SessionConfig], httpx.AsyncClient] = {}

    def _client_for(self, target: TargetDescriptor) -> httpx.AsyncClient:
        key = (target.server_name, target.session_config)
        client = self._clients.get(key)
        if client is not None:
            return client

        server = self.config.servers.get(target.server_name, ServerConfig())
        session = target.session_config

        headers = {**self.config.headers, **server.headers, **session.headers}
        timeout = next(
            value for value in (session.timeout, server.timeout, self.config.timeout)
            if value is not None
        )
        verify = next(
            value for value in (session.verify, server.verify, self.config.verify)
            if value is not None
        )

        client = httpx.AsyncClient(
            headers=headers,
            timeout=httpx.Timeout(timeout, connect=min(timeout, self.config.connect_timeout)),
            verify=verify,
            follow_redirects=session.follow_redirects,
            limits=httpx.Limits(max_connections=self.config.max_connections),
            transport=self._transport,
        )
        self._clients[key] = client
        logger.info(
            "http_session_created",
            server_name=target.server_name,
            timeout=timeout,
            verify=verify,
        )
        return client

    async def send(self, target: TargetDescriptor) -> bytes:
        url = target_url(target)
        client = self._client_for(target)

        body = target.body
        content = body if isinstance(body, (bytes, str)) else None
        json_body = None if content is not None else body

        try:
            response = await client.request(
                target.method,
                url,
                params=target.params,
                headers=target.headers or None,
                content=content,
                json=json_body,
            )
        except httpx.TimeoutException as exc:
            raise TransportError(
                f"Request to {url} timed out",
                kind=TransportErrorKind.TIMEOUT,
                url=url,
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(
                f"Request to {url} failed: {exc}",
                kind=TransportErrorKind.NETWORK,
                url=url,
            ) from exc

        logger.debug(
            "http_response",
            url=url,
            status_code=response.status_code,
            bytes=len(response.content),
        )

        if not response.is_success:
            raise TransportError.status(url, response.status_code, response.content)
        return response.content

    async def aclose(self) -> None:
        clients = list(self._clients.values())
        self._clients.clear()
        for client in clients:
            await client.aclose()
