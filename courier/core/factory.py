"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Courier, a product of Garudex Labs

Dispatcher composition from configuration.
"""

from __future__ import annotations

from typing import Optional

from courier.config.settings import CourierConfig
from courier.core.audit import AuditLogger, InMemoryLogStore
from courier.core.classifier import ErrorClassifier
from courier.core.dispatcher import RequestDispatcher
from courier.core.interfaces import (
    LogStore,
    ProgressIndicator,
    ReachabilityMonitor,
    SessionOwner,
    UserNoticeSystem,
)
from courier.core.progress import ProgressNotifier
from courier.core.reachability import (
    ProbeReachabilityMonitor,
    ReachabilityGate,
    StaticReachabilityMonitor,
)
from courier.logging_config import get_logger
from courier.monitoring.metrics import MetricsRegistry
from courier.transport.base import BaseTransport
from courier.transport.http import HttpTransport

logger = get_logger(__name__)


def build_reachability_monitor(config: CourierConfig) -> ReachabilityMonitor:
    """Probe the configured host, or assume reachable when none is set."""
    if config.reachability.host:
        return ProbeReachabilityMonitor.from_config(config.reachability)
    return StaticReachabilityMonitor(reachable=True)


def build_dispatcher(
    config: CourierConfig,
    *,
    notices: UserNoticeSystem,
    session_owner: SessionOwner,
    progress_indicator: Optional[ProgressIndicator] = None,
    log_store: Optional[LogStore] = None,
    monitor: Optional[ReachabilityMonitor] = None,
    transport: Optional[BaseTransport] = None,
    metrics: Optional[MetricsRegistry] = None,
) -> RequestDispatcher:
    """
    Wire a dispatcher and its collaborators from configuration.

    Args:
        config: Loaded configuration
        notices: User-facing banner system
        session_owner: Invalidated on authentication failures
        progress_indicator: Loading indicator driven by transport activity
        log_store: Request log store (in-memory when omitted)
        monitor: Reachability monitor (built from config when omitted)
        transport: Transport (HTTP from config when omitted)
        metrics: Optional Prometheus metrics

    Returns:
        Ready-to-use dispatcher
    """
    transport = transport or HttpTransport(config.transport)

    if progress_indicator is not None:
        notifier = ProgressNotifier.from_suppress_list(
            progress_indicator, config.progress.suppress
        )
        transport.hooks.on_activity(notifier.on_activity)

    dispatcher = RequestDispatcher(
        transport=transport,
        reachability=ReachabilityGate(monitor or build_reachability_monitor(config)),
        audit=AuditLogger(
            log_store if log_store is not None else InMemoryLogStore(),
            timestamp_format=config.dispatcher.timestamp_format,
        ),
        classifier=ErrorClassifier.from_config(config.classifier),
        notices=notices,
        session_owner=session_owner,
        offline_policy=config.dispatcher.offline_policy,
        banner_identifier=config.dispatcher.banner_identifier,
        metrics=metrics,
    )
    logger.info(
        "dispatcher_built",
        transport=type(transport).__name__,
        offline_policy=config.dispatcher.offline_policy,
        suppressed=len(config.progress.suppress),
    )
    return dispatcher
