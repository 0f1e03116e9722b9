"""
Pytest configuration and shared fixtures for Courier tests.
"""

import tempfile
from enum import Enum
from pathlib import Path
from typing import Generator, List, Optional, Tuple

import pytest
from prometheus_client import CollectorRegistry

from courier.core.audit import AuditLogger, InMemoryLogStore
from courier.core.classifier import ErrorClassifier
from courier.core.dispatcher import RequestDispatcher
from courier.core.notices import MessagePriority, MessageSeverity
from courier.core.reachability import ReachabilityGate, StaticReachabilityMonitor
from courier.core.records import RequestError
from courier.core.target import BaseTarget
from courier.monitoring.metrics import MetricsRegistry
from courier.transport.mock import MockTransport


# ---------------------------------------------------------------------------
# Sample targets
# ---------------------------------------------------------------------------

class FinanceTarget(BaseTarget):
    base_url = "https://finance.example.com/api"
    server_name = "finance"


class FinanceService(FinanceTarget, Enum):
    OPERATIONS = "/operations"
    EXCHANGE = "/exchange"
    PROFILE = "/profile"

    @property
    def path(self):
        return self.value


class PaymentTarget(BaseTarget):
    base_url = "https://payments.example.com"
    server_name = "payments"
    method = "POST"


class PaymentService(PaymentTarget, Enum):
    TRANSFER = "/transfer"

    @property
    def path(self):
        return self.value

    def error_log_record(self, error, request_time, response_time):
        return RequestError(
            url="https://payments.example.com/transfer",
            error_code="PAYMENT_FAILED",
            error_description=f"transfer rejected ({error.status_code})",
            request_time=request_time,
            response_time=response_time,
        )


# ---------------------------------------------------------------------------
# Recording collaborators
# ---------------------------------------------------------------------------

class RecordingNoticeSystem:
    """Remembers every banner it was asked to show."""

    def __init__(self):
        self.messages: List[Tuple[str, MessageSeverity, MessagePriority, str]] = []

    def display_message(self, text, severity, priority, identifier):
        self.messages.append((text, severity, priority, identifier))


class RecordingSessionOwner:
    def __init__(self):
        self.invalidations = 0

    def invalidate_session(self):
        self.invalidations += 1


class RecordingProgressIndicator:
    def __init__(self):
        self.events: List[str] = []

    def start_loading(self):
        self.events.append("start")

    def stop_loading(self):
        self.events.append("stop")


class DispatcherHarness:
    """A dispatcher wired to in-memory collaborators that tests can inspect."""

    def __init__(
        self,
        transport: MockTransport,
        reachable: bool = True,
        offline_policy: str = "drop",
    ):
        self.transport = transport
        self.monitor = StaticReachabilityMonitor(reachable)
        self.store = InMemoryLogStore()
        self.notices = RecordingNoticeSystem()
        self.session_owner = RecordingSessionOwner()
        self.metrics = MetricsRegistry(CollectorRegistry())
        self.dispatcher = RequestDispatcher(
            transport=transport,
            reachability=ReachabilityGate(self.monitor),
            audit=AuditLogger(self.store),
            classifier=ErrorClassifier(),
            notices=self.notices,
            session_owner=self.session_owner,
            offline_policy=offline_policy,
            metrics=self.metrics,
        )

    @property
    def kinds(self) -> List[str]:
        return [record.kind.value for record in self.store.records]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory(prefix="courier_test_") as directory:
        yield Path(directory)


@pytest.fixture
def make_harness():
    """Factory for dispatcher harnesses around a mock transport."""
    def _make(
        responses: Optional[dict] = None,
        delay: float = 0.0,
        reachable: bool = True,
        offline_policy: str = "drop",
    ) -> DispatcherHarness:
        return DispatcherHarness(
            MockTransport(responses, delay=delay),
            reachable=reachable,
            offline_policy=offline_policy,
        )
    return _make
