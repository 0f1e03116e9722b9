"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Courier, a product of Garudex Labs

Reachability gating.

The gate is a pure query of a monitor's current state. Monitors own any
probing; the gate never caches or refreshes anything itself.
"""

from __future__ import annotations

import asyncio
from typing import Optional

from courier.config.settings import ReachabilityConfig
from courier.core.interfaces import ReachabilityMonitor
from courier.logging_config import get_logger

logger = get_logger(__name__)


class ReachabilityGate:
    """Answers "may a request be issued right now?"."""

    def __init__(self, monitor: ReachabilityMonitor) -> None:
        self.monitor = monitor

    def is_reachable(self) -> bool:
        return bool(self.monitor.is_reachable)


class StaticReachabilityMonitor:
    """Monitor whose state is set explicitly by its owner."""

    def __init__(self, reachable: bool = True) -> None:
        self._reachable = reachable

    @property
    def is_reachable(self) -> bool:
        return self._reachable

    def set_reachable(self, reachable: bool) -> None:
        if reachable != self._reachable:
            logger.info("reachability_changed", reachable=reachable)
        self._reachable = reachable


class ProbeReachabilityMonitor:
    """
    Monitor that tracks the result of the last TCP probe to a host.

    Call :meth:`probe` (e.g. periodically or before a batch of calls) to
    refresh the state. Until the first probe the host is assumed reachable.

    Args:
        host: Host to open a TCP connection to
        port: Port to connect to
        timeout: Seconds to wait for the connection
    """

    def __init__(self, host: str, port: int = 443, timeout: float = 3.0) -> None:
        self.host = host
        self.port = port
        self.timeout = timeout
        self._reachable = True
        self._last_error: Optional[str] = None

    @classmethod
    def from_config(cls, config: ReachabilityConfig) -> "ProbeReachabilityMonitor":
        return cls(host=config.host, port=config.port, timeout=config.timeout)

    @property
    def is_reachable(self) -> bool:
        return self._reachable

    @property
    def last_error(self) -> Optional[str]:
        return self._last_error

    async def probe(self) -> bool:
        """Open (and immediately close) a TCP connection to the host."""
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(self.host, self.port),
                timeout=self.timeout,
            )
        except (OSError, asyncio.TimeoutError) as exc:
            self._last_error = str(exc) or type(exc).__name__
            reachable = False
        else:
            writer.close()
            try:
                await writer.wait_closed()
            except OSError as exc:
                logger.debug("probe_close_failed", host=self.host, error=str(exc))
            self._last_error = None
            reachable = True

        if reachable != self._reachable:
            logger.info(
                "reachability_changed",
                host=self.host,
                port=self.port,
                reachable=reachable,
                error=self._last_error,
            )
        self._reachable = reachable
        return reachable
