"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Courier, a product of Garudex Labs

Request dispatcher.

Single entry point for outbound API calls. For every call it:
1. Consults the reachability gate (unreachable calls are never sent)
2. Writes a RequestSent record and hands the call to the transport
3. On success writes RequestSucceeded and decodes the body into the
   caller's shape
4. On failure classifies the error, invalidates the session on
   authentication failures, shows one error banner and writes RequestError

Exactly one of the caller's callbacks fires per call, at most once.
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime
from typing import Any, Callable, Generic, Optional, Type, TypeVar

from courier.core.audit import AuditLogger
from courier.core.classifier import Classification, ErrorClassifier
from courier.core.decoding import decode_payload
from courier.core.interfaces import SessionOwner, UserNoticeSystem
from courier.core.notices import BANNER_IDENTIFIER, MessagePriority, MessageSeverity
from courier.core.reachability import ReachabilityGate
from courier.core.target import TargetDescriptor, target_url
from courier.exceptions import DecodeError, TransportError, TransportErrorKind
from courier.logging_config import (
    correlation_id_var,
    get_logger,
    log_authentication_failure,
    log_request_dispatched,
    log_transport_failure,
    new_correlation_id,
)
from courier.monitoring.metrics import MetricsRegistry, RequestOutcome
from courier.transport.base import BaseTransport, Outcome, Success

logger = get_logger(__name__)

T = TypeVar("T")
TargetT = TypeVar("TargetT", bound=TargetDescriptor)

SuccessCallback = Callable[[Any], None]
FailureCallback = Callable[[Optional[TransportError]], None]


class _CallbackGuard:
    """Lets one of the caller's callbacks run, once."""

    def __init__(
        self,
        url: str,
        on_success: Optional[SuccessCallback] = None,
        on_failure: Optional[FailureCallback] = None,
    ) -> None:
        self.url = url
        self._on_success = on_success
        self._on_failure = on_failure
        self._fired = False

    def _claim(self) -> bool:
        if self._fired:
            logger.warning("completion_already_delivered", url=self.url)
            return False
        self._fired = True
        return True

    def succeed(self, value: Any) -> None:
        if self._claim() and self._on_success is not None:
            self._invoke("on_success", self._on_success, value)

    def fail_transport(self, error: TransportError) -> None:
        if self._claim() and self._on_failure is not None:
            self._invoke("on_failure", self._on_failure, error)

    def fail_decode(self, error: DecodeError) -> None:
        # Decode errors are not transport errors; the caller gets None
        if self._claim() and self._on_failure is not None:
            self._invoke("on_failure", self._on_failure, None)

    def _invoke(self, name: str, callback: Callable[[Any], None], argument: Any) -> None:
        try:
            callback(argument)
        except Exception:
            logger.error("completion_callback_failed", callback=name, url=self.url, exc_info=True)


class _FutureGuard(_CallbackGuard):
    """Resolves an asyncio future instead of calling callbacks."""

    def __init__(self, url: str, future: "asyncio.Future[Any]") -> None:
        super().__init__(url)
        self._future = future

    def succeed(self, value: Any) -> None:
        if self._claim() and not self._future.done():
            self._future.set_result(value)

    def fail_transport(self, error: TransportError) -> None:
        if self._claim() and not self._future.done():
            self._future.set_exception(error)

    def fail_decode(self, error: DecodeError) -> None:
        if self._claim() and not self._future.done():
            self._future.set_exception(error)


class RequestDispatcher(Generic[TargetT]):
    """
    Dispatches calls to any family of targets implementing ``TargetDescriptor``.

    Args:
        transport: Transport that performs the calls and owns their tasks
        reachability: Gate consulted before every call
        audit: Audit logger for the request log
        classifier: Transport error classifier
        notices: User-facing banner system
        session_owner: Told to invalidate the session on authentication failures
        offline_policy: ``"drop"`` silently skips unreachable calls;
            ``"fail"`` reports them to ``on_failure`` as an OFFLINE error
        banner_identifier: Identifier attached to error banners
        metrics: Optional Prometheus metrics
        clock: Source of request/response instants
    """

    def __init__(
        self,
        transport: BaseTransport,
        reachability: ReachabilityGate,
        audit: AuditLogger,
        classifier: ErrorClassifier,
        notices: UserNoticeSystem,
        session_owner: SessionOwner,
        offline_policy: str = "drop",
        banner_identifier: str = BANNER_IDENTIFIER,
        metrics: Optional[MetricsRegistry] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        if offline_policy not in ("drop", "fail"):
            raise ValueError(f"offline_policy must be 'drop' or 'fail', got {offline_policy!r}")
        self.transport = transport
        self.reachability = reachability
        self.audit = audit
        self.classifier = classifier
        self.notices = notices
        self.session_owner = session_owner
        self.offline_policy = offline_policy
        self.banner_identifier = banner_identifier
        self.metrics = metrics
        self._clock = clock

    # -- Public API ----------------------------------------------------------

    def dispatch(
        self,
        target: TargetT,
        shape: Type[T],
        on_success: Callable[[T], None],
        on_failure: Optional[FailureCallback] = None,
    ) -> Optional[asyncio.Task]:
        """
        Issue a call and return immediately.

        Must be called on the event loop thread.

        Args:
            target: Call to perform
            shape: Type the response body is decoded into
            on_success: Receives the decoded value
            on_failure: Receives the ``TransportError``, or ``None`` when the
                body could not be decoded

        Returns:
            The task running the call (its cancellation handle), or ``None``
            when the network is unreachable and nothing was sent.
        """
        url = target_url(target)
        return self._start(target, shape, _CallbackGuard(url, on_success, on_failure))

    async def fetch(self, target: TargetT, shape: Type[T]) -> T:
        """
        Issue a call and wait for its decoded result.

        Runs the same pipeline as :meth:`dispatch` (audit records, banners,
        session invalidation). Cancelling the awaiting coroutine cancels the
        call.

        Raises:
            TransportError: If the call failed, including OFFLINE when the
                network is unreachable
            DecodeError: If the body did not match ``shape``
        """
        url = target_url(target)
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        task = self._start(target, shape, _FutureGuard(url, future))

        if task is None:
            if not future.done():
                future.set_exception(TransportError.offline(url))
            return await future

        try:
            return await future
        except asyncio.CancelledError:
            task.cancel()
            raise

    def cancel_all(self) -> int:
        """
        Cancel every call in flight on the transport, without waiting.

        Handles already given to callers must be treated as invalid.

        Returns:
            Number of calls asked to cancel.
        """
        return self.transport.cancel_all()

    # -- Pipeline ------------------------------------------------------------

    def _start(
        self,
        target: TargetT,
        shape: Type[Any],
        guard: _CallbackGuard,
    ) -> Optional[asyncio.Task]:
        # Fail fast (before any audit record) when called off the event loop
        asyncio.get_running_loop()
        url = guard.url

        if not self.reachability.is_reachable():
            self._handle_offline(target, url, guard)
            return None

        token = correlation_id_var.set(correlation_id_var.get() or new_correlation_id())
        try:
            request_time = self._clock()
            self.audit.request_sent(url, request_time)
            log_request_dispatched(logger, url, target.method, target.server_name)
            if self.metrics is not None:
                self.metrics.record_dispatched()
            started = time.monotonic()

            def completion(outcome: Outcome) -> None:
                self._complete(target, url, shape, guard, request_time, started, outcome)

            # The task copies the current context, correlation id included
            return self.transport.request(target, completion)
        finally:
            correlation_id_var.reset(token)

    def _complete(
        self,
        target: TargetT,
        url: str,
        shape: Type[Any],
        guard: _CallbackGuard,
        request_time: datetime,
        started: float,
        outcome: Outcome,
    ) -> None:
        if isinstance(outcome, Success):
            self.audit.request_succeeded(url, self._clock())
            try:
                value = decode_payload(outcome.data, shape)
            except DecodeError as exc:
                guard.fail_decode(exc)
                self._handle_decode_error(url, exc, request_time)
                result = RequestOutcome.DECODE_ERROR
            else:
                guard.succeed(value)
                result = RequestOutcome.SUCCEEDED
        else:
            error = outcome.error
            guard.fail_transport(error)
            self._handle_transport_error(target, url, error, request_time)
            result = (
                RequestOutcome.CANCELLED if error.is_cancelled else RequestOutcome.TRANSPORT_ERROR
            )

        if self.metrics is not None:
            self.metrics.record_completed(target.server_name, result, time.monotonic() - started)

    def _handle_offline(self, target: TargetT, url: str, guard: _CallbackGuard) -> None:
        logger.warning(
            "request_dropped_offline",
            url=url,
            server_name=target.server_name,
            offline_policy=self.offline_policy,
        )
        if self.metrics is not None:
            self.metrics.record_dropped(target.server_name)
        if self.offline_policy == "fail":
            guard.fail_transport(TransportError.offline(url))

    def _handle_transport_error(
        self,
        target: TargetT,
        url: str,
        error: TransportError,
        request_time: datetime,
    ) -> None:
        try:
            classification = self.classifier.classify(error)
        except Exception:
            logger.error("error_classification_failed", url=url, exc_info=True)
            classification = Classification(code="", message=self.classifier.default_message)
        log_transport_failure(
            logger,
            url,
            error.kind.value,
            classification.code,
            status_code=error.status_code,
        )

        if classification.is_authentication_failure:
            self._invalidate_session(url, classification)

        self._show_banner(classification.message, MessagePriority.REST_INITIATED)

        response_time = self._clock()
        try:
            record = target.error_log_record(
                error,
                self.audit.format_time(request_time),
                self.audit.format_time(response_time),
            )
        except Exception:
            logger.error("error_log_record_failed", url=url, exc_info=True)
            record = None
        if record is not None:
            self.audit.record(record)
        else:
            self.audit.request_error(
                url,
                classification.code or _fallback_code(error),
                classification.message,
                request_time,
                response_time,
            )

    def _handle_decode_error(self, url: str, error: DecodeError, request_time: datetime) -> None:
        logger.error("response_decode_failed", url=url, code=error.code, description=error.description)
        self._show_banner(error.description, MessagePriority.NORMAL)
        self.audit.request_error(url, error.code, error.description, request_time, self._clock())

    def _invalidate_session(self, url: str, classification: Classification) -> None:
        cancelled = self.cancel_all()
        log_authentication_failure(logger, url, classification.code, cancelled)
        if self.metrics is not None:
            self.metrics.record_auth_failure(classification.code)
        try:
            self.session_owner.invalidate_session()
        except Exception:
            logger.error("session_invalidation_failed", url=url, exc_info=True)

    def _show_banner(self, text: str, priority: MessagePriority) -> None:
        try:
            self.notices.display_message(
                text,
                MessageSeverity.ERROR,
                priority,
                self.banner_identifier,
            )
        except Exception:
            logger.error("user_notice_failed", text=text, exc_info=True)


def _fallback_code(error: TransportError) -> str:
    if error.kind is TransportErrorKind.STATUS and error.status_code is not None:
        return str(error.status_code)
    return error.kind.value
