"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Courier, a product of Garudex Labs

Unit tests for the request dispatcher.
"""

import asyncio
import json
from typing import Any, Dict, List

import pytest
from pydantic import BaseModel

from conftest import FinanceService, PaymentService
from courier.core.notices import BANNER_IDENTIFIER, MessagePriority, MessageSeverity
from courier.core.records import LogRecordKind
from courier.exceptions import DecodeError, TransportError, TransportErrorKind
from courier.transport.hooks import Activity

OPERATIONS_URL = "https://finance.example.com/api/operations"
PROFILE_URL = "https://finance.example.com/api/profile"


class Operation(BaseModel):
    id: int
    amount: float


def auth_failure(url: str = PROFILE_URL) -> TransportError:
    body = json.dumps({"code": "AUTHENTICATION_FAILED", "message": "Session expired"}).encode()
    return TransportError.status(url, 401, body)


async def hang(target):
    await asyncio.sleep(3600)
    return b"{}"


# ---------------------------------------------------------------------------
# Reachability
# ---------------------------------------------------------------------------

class TestOffline:
    @pytest.mark.asyncio
    async def test_drop_policy_sends_nothing(self, make_harness):
        """Unreachable calls return no handle and leave no trace."""
        h = make_harness({("GET", "/operations"): []}, reachable=False)
        results, failures = [], []

        handle = h.dispatcher.dispatch(
            FinanceService.OPERATIONS, List[Operation], results.append, failures.append
        )

        assert handle is None
        await asyncio.sleep(0)
        assert results == []
        assert failures == []
        assert h.store.records == []
        assert h.notices.messages == []
        assert h.transport.sent_targets == []
        assert h.metrics.registry.get_sample_value(
            "courier_requests_dropped_total", {"server_name": "finance"}
        ) == 1.0

    @pytest.mark.asyncio
    async def test_fail_policy_reports_offline_once(self, make_harness):
        """With the fail policy the caller hears about the dropped call."""
        h = make_harness({("GET", "/operations"): []}, reachable=False, offline_policy="fail")
        failures = []

        handle = h.dispatcher.dispatch(FinanceService.OPERATIONS, list, lambda _: None, failures.append)

        assert handle is None
        assert len(failures) == 1
        assert failures[0].kind is TransportErrorKind.OFFLINE
        assert failures[0].url == OPERATIONS_URL
        assert h.store.records == []
        assert h.notices.messages == []

    @pytest.mark.asyncio
    async def test_reachability_is_checked_per_call(self, make_harness):
        h = make_harness({("GET", "/operations"): []}, reachable=False)
        assert h.dispatcher.dispatch(FinanceService.OPERATIONS, list, lambda _: None) is None

        h.monitor.set_reachable(True)
        handle = h.dispatcher.dispatch(FinanceService.OPERATIONS, list, lambda _: None)
        assert handle is not None
        await handle

    def test_invalid_offline_policy(self, make_harness):
        with pytest.raises(ValueError, match="offline_policy"):
            make_harness(offline_policy="queue")


# ---------------------------------------------------------------------------
# Success path
# ---------------------------------------------------------------------------

class TestSuccess:
    @pytest.mark.asyncio
    async def test_decoded_value_delivered(self, make_harness):
        """A 2xx body is decoded into the requested shape."""
        h = make_harness({("GET", "/operations"): [{"id": 1, "amount": 10.5}]})
        results, failures = [], []

        handle = h.dispatcher.dispatch(
            FinanceService.OPERATIONS, List[Operation], results.append, failures.append
        )
        await handle

        assert results == [[Operation(id=1, amount=10.5)]]
        assert failures == []
        assert h.kinds == ["request_sent", "request_succeeded"]
        assert all(record.url == OPERATIONS_URL for record in h.store.records)
        assert h.notices.messages == []
        assert h.session_owner.invalidations == 0

    @pytest.mark.asyncio
    async def test_sent_record_precedes_transport_activity(self, make_harness):
        """RequestSent is written before the call reaches the wire."""
        h = make_harness({("GET", "/operations"): []})
        seen_at_start = []

        def on_activity(activity, target):
            if activity is Activity.BEGAN:
                seen_at_start.append(list(h.kinds))

        h.transport.hooks.on_activity(on_activity)
        handle = h.dispatcher.dispatch(FinanceService.OPERATIONS, list, lambda _: None)

        assert h.kinds == ["request_sent"]
        await handle
        assert seen_at_start == [["request_sent"]]

    @pytest.mark.asyncio
    async def test_timestamps_use_clock(self, make_harness):
        from datetime import datetime

        h = make_harness({("GET", "/operations"): []})
        h.dispatcher._clock = lambda: datetime(2024, 3, 9, 8, 5, 1)

        await h.dispatcher.dispatch(FinanceService.OPERATIONS, list, lambda _: None)

        sent, succeeded = h.store.records
        assert sent.request_time == "2024-03-09 08:05:01"
        assert succeeded.response_time == "2024-03-09 08:05:01"

    @pytest.mark.asyncio
    async def test_raising_success_callback_does_not_trigger_failure(self, make_harness):
        h = make_harness({("GET", "/operations"): []})
        failures = []

        def explode(_value):
            raise ValueError("caller bug")

        await h.dispatcher.dispatch(FinanceService.OPERATIONS, list, explode, failures.append)

        assert failures == []
        assert h.kinds == ["request_sent", "request_succeeded"]

    @pytest.mark.asyncio
    async def test_success_metrics(self, make_harness):
        h = make_harness({("GET", "/operations"): []})

        await h.dispatcher.dispatch(FinanceService.OPERATIONS, list, lambda _: None)

        registry = h.metrics.registry
        assert registry.get_sample_value(
            "courier_requests_total", {"server_name": "finance", "outcome": "succeeded"}
        ) == 1.0
        assert registry.get_sample_value("courier_requests_in_flight") == 0.0


# ---------------------------------------------------------------------------
# Decode failures
# ---------------------------------------------------------------------------

class TestDecodeFailure:
    @pytest.mark.asyncio
    async def test_mismatched_body(self, make_harness):
        """A body that does not fit the shape fails with no transport error."""
        h = make_harness({("GET", "/operations"): {"unexpected": True}})
        results, failures = [], []

        await h.dispatcher.dispatch(FinanceService.OPERATIONS, Operation, results.append, failures.append)

        assert results == []
        assert failures == [None]
        assert h.kinds == ["request_sent", "request_succeeded", "request_error"]

        error = h.store.records[-1]
        assert error.error_code == "missing"
        assert error.url == OPERATIONS_URL

        assert len(h.notices.messages) == 1
        text, severity, priority, identifier = h.notices.messages[0]
        assert text == error.error_description
        assert severity is MessageSeverity.ERROR
        assert priority is MessagePriority.NORMAL
        assert identifier == BANNER_IDENTIFIER

    @pytest.mark.asyncio
    async def test_invalid_json(self, make_harness):
        h = make_harness({("GET", "/operations"): b"<html>oops</html>"})
        failures = []

        await h.dispatcher.dispatch(FinanceService.OPERATIONS, Dict[str, Any], lambda _: None, failures.append)

        assert failures == [None]
        assert h.store.records[-1].error_code == "json_invalid"
        assert h.metrics.registry.get_sample_value(
            "courier_requests_total", {"server_name": "finance", "outcome": "decode_error"}
        ) == 1.0

    @pytest.mark.asyncio
    async def test_undecodable_shape_fails_the_call(self, make_harness):
        """A shape pydantic cannot build a schema for is a decode failure."""

        class Opaque:
            pass

        h = make_harness({("GET", "/profile"): {"name": "Ada"}})
        results, failures = [], []

        task = h.dispatcher.dispatch(FinanceService.PROFILE, Opaque, results.append, failures.append)
        await task

        assert task.exception() is None
        assert results == []
        assert failures == [None]
        assert h.kinds == ["request_sent", "request_succeeded", "request_error"]
        assert h.store.records[-1].error_code == "schema-for-unknown-type"
        assert len(h.notices.messages) == 1


# ---------------------------------------------------------------------------
# Transport failures
# ---------------------------------------------------------------------------

class TestTransportFailure:
    @pytest.mark.asyncio
    async def test_status_error_with_server_message(self, make_harness):
        body = json.dumps({"code": "SERVER_BUSY", "message": "Try again in a minute"}).encode()
        h = make_harness({("GET", "/operations"): TransportError.status(OPERATIONS_URL, 503, body)})
        results, failures = [], []

        await h.dispatcher.dispatch(FinanceService.OPERATIONS, list, results.append, failures.append)

        assert results == []
        assert len(failures) == 1
        assert failures[0].status_code == 503
        assert h.session_owner.invalidations == 0

        assert h.notices.messages == [
            ("Try again in a minute", MessageSeverity.ERROR, MessagePriority.REST_INITIATED, BANNER_IDENTIFIER)
        ]
        assert h.kinds == ["request_sent", "request_error"]
        error = h.store.records[-1]
        assert error.error_code == "SERVER_BUSY"
        assert error.error_description == "Try again in a minute"

    @pytest.mark.asyncio
    async def test_network_error_without_payload(self, make_harness):
        error = TransportError("connection refused", kind=TransportErrorKind.NETWORK)
        h = make_harness({("GET", "/operations"): error})
        failures = []

        await h.dispatcher.dispatch(FinanceService.OPERATIONS, list, lambda _: None, failures.append)

        assert failures[0].kind is TransportErrorKind.NETWORK
        assert str(failures[0]) == "connection refused"
        assert failures[0].url == OPERATIONS_URL
        assert h.notices.messages[0][0] == "Could not connect to the server."
        assert h.store.records[-1].error_code == "network"

    @pytest.mark.asyncio
    async def test_target_supplied_error_record(self, make_harness):
        """Targets may replace the generic error record with their own."""
        url = "https://payments.example.com/transfer"
        h = make_harness({("POST", "/transfer"): TransportError.status(url, 402, b"{}")})

        await h.dispatcher.dispatch(PaymentService.TRANSFER, dict, lambda _: None)

        assert h.kinds == ["request_sent", "request_error"]
        error = h.store.records[-1]
        assert error.error_code == "PAYMENT_FAILED"
        assert error.error_description == "transfer rejected (402)"

    @pytest.mark.asyncio
    async def test_unexpected_exception_is_wrapped(self, make_harness):
        def broken(target):
            raise KeyError("boom")

        h = make_harness({("GET", "/operations"): broken})
        failures = []

        await h.dispatcher.dispatch(FinanceService.OPERATIONS, list, lambda _: None, failures.append)

        assert failures[0].kind is TransportErrorKind.UNDERLYING
        assert isinstance(failures[0].__cause__, KeyError)
        assert h.kinds == ["request_sent", "request_error"]

    @pytest.mark.asyncio
    async def test_failing_banner_does_not_stop_logging(self, make_harness):
        h = make_harness({("GET", "/operations"): TransportError.status(OPERATIONS_URL, 500)})

        def broken_banner(*args):
            raise RuntimeError("ui gone")

        h.notices.display_message = broken_banner
        await h.dispatcher.dispatch(FinanceService.OPERATIONS, list, lambda _: None)

        assert h.kinds == ["request_sent", "request_error"]

    @pytest.mark.asyncio
    async def test_deeply_nested_error_body(self, make_harness):
        """A body too deep to parse still gets a banner and an error record."""
        body = b"[" * 100000 + b"]" * 100000
        h = make_harness({("GET", "/operations"): TransportError.status(OPERATIONS_URL, 500, body)})
        failures = []

        task = h.dispatcher.dispatch(FinanceService.OPERATIONS, list, lambda _: None, failures.append)
        await task

        assert task.exception() is None
        assert len(failures) == 1
        assert h.kinds == ["request_sent", "request_error"]
        assert h.store.records[-1].error_code == "500"
        assert len(h.notices.messages) == 1
        assert "HTTP 500" in h.notices.messages[0][0]

    @pytest.mark.asyncio
    async def test_failing_classifier_falls_back_to_generic_error(self, make_harness):
        h = make_harness({("GET", "/operations"): TransportError.status(OPERATIONS_URL, 503)})

        def broken_classify(error):
            raise RuntimeError("classifier bug")

        h.dispatcher.classifier.classify = broken_classify
        failures = []

        await h.dispatcher.dispatch(FinanceService.OPERATIONS, list, lambda _: None, failures.append)

        assert len(failures) == 1
        assert h.session_owner.invalidations == 0
        assert h.notices.messages == [(
            h.dispatcher.classifier.default_message,
            MessageSeverity.ERROR,
            MessagePriority.REST_INITIATED,
            BANNER_IDENTIFIER,
        )]
        error = h.store.records[-1]
        assert error.error_code == "503"
        assert error.error_description == h.dispatcher.classifier.default_message

    @pytest.mark.asyncio
    async def test_failing_target_record_falls_back_to_generic_error(self, make_harness, monkeypatch):
        url = "https://payments.example.com/transfer"
        h = make_harness({("POST", "/transfer"): TransportError.status(url, 402, b"{}")})

        def broken_record(self, error, request_time, response_time):
            raise ValueError("bad record")

        monkeypatch.setattr(PaymentService, "error_log_record", broken_record)

        await h.dispatcher.dispatch(PaymentService.TRANSFER, dict, lambda _: None)

        assert h.kinds == ["request_sent", "request_error"]
        assert h.store.records[-1].error_code == "402"
        assert len(h.notices.messages) == 1


# ---------------------------------------------------------------------------
# Authentication failures and cancellation
# ---------------------------------------------------------------------------

class TestAuthenticationFailure:
    @pytest.mark.asyncio
    async def test_session_invalidated(self, make_harness):
        h = make_harness({("GET", "/profile"): auth_failure()})
        failures = []

        await h.dispatcher.dispatch(FinanceService.PROFILE, dict, lambda _: None, failures.append)

        assert len(failures) == 1
        assert h.session_owner.invalidations == 1
        assert h.notices.messages == [
            ("Session expired", MessageSeverity.ERROR, MessagePriority.REST_INITIATED, BANNER_IDENTIFIER)
        ]
        error = h.store.records[-1]
        assert error.kind is LogRecordKind.REQUEST_ERROR
        assert error.error_code == "AUTHENTICATION_FAILED"
        assert h.metrics.registry.get_sample_value(
            "courier_auth_failures_total", {"error_code": "AUTHENTICATION_FAILED"}
        ) == 1.0

    @pytest.mark.asyncio
    async def test_external_device_code_also_invalidates(self, make_harness):
        body = json.dumps({"errorCode": "EXTERNAL_DEVICE_AUTHENTICATION_FAILED"}).encode()
        h = make_harness({("GET", "/profile"): TransportError.status(PROFILE_URL, 403, body)})

        await h.dispatcher.dispatch(FinanceService.PROFILE, dict, lambda _: None)

        assert h.session_owner.invalidations == 1

    @pytest.mark.asyncio
    async def test_in_flight_calls_cancelled(self, make_harness):
        """An authentication failure cancels the other calls in flight."""
        h = make_harness({
            ("GET", "/exchange"): hang,
            ("GET", "/profile"): auth_failure(),
        })
        slow_results, slow_failures = [], []

        slow = h.dispatcher.dispatch(FinanceService.EXCHANGE, dict, slow_results.append, slow_failures.append)
        await asyncio.sleep(0)
        failing = h.dispatcher.dispatch(FinanceService.PROFILE, dict, lambda _: None)

        await failing
        await asyncio.gather(slow, return_exceptions=True)

        assert slow.cancelled()
        assert slow_results == []
        assert len(slow_failures) == 1
        assert slow_failures[0].kind is TransportErrorKind.CANCELLED
        assert h.session_owner.invalidations == 1

        banners = [message[0] for message in h.notices.messages]
        assert banners == ["Session expired", "The request was cancelled."]
        assert h.kinds.count("request_error") == 2


class TestCancelAll:
    @pytest.mark.asyncio
    async def test_cancel_two_in_flight_calls(self, make_harness):
        h = make_harness({("GET", "/exchange"): hang, ("GET", "/operations"): hang})
        failures = []

        first = h.dispatcher.dispatch(FinanceService.EXCHANGE, dict, lambda _: None, failures.append)
        second = h.dispatcher.dispatch(FinanceService.OPERATIONS, list, lambda _: None, failures.append)
        await asyncio.sleep(0)

        assert h.dispatcher.cancel_all() == 2
        await asyncio.gather(first, second, return_exceptions=True)

        assert first.cancelled() and second.cancelled()
        assert [failure.kind for failure in failures] == [TransportErrorKind.CANCELLED] * 2
        assert h.session_owner.invalidations == 0
        assert h.kinds.count("request_sent") == 2
        assert h.kinds.count("request_error") == 2
        assert h.transport.outstanding == []

    @pytest.mark.asyncio
    async def test_cancel_before_call_started(self, make_harness):
        """A call cancelled before it ran still reports exactly one failure."""
        h = make_harness({("GET", "/exchange"): hang})
        failures = []

        handle = h.dispatcher.dispatch(FinanceService.EXCHANGE, dict, lambda _: None, failures.append)
        handle.cancel()
        await asyncio.gather(handle, return_exceptions=True)

        assert len(failures) == 1
        assert failures[0].kind is TransportErrorKind.CANCELLED
        assert h.transport.sent_targets == []

    @pytest.mark.asyncio
    async def test_cancel_with_nothing_in_flight(self, make_harness):
        h = make_harness()
        assert h.dispatcher.cancel_all() == 0


# ---------------------------------------------------------------------------
# Calling conventions
# ---------------------------------------------------------------------------

class TestCallingConventions:
    def test_dispatch_requires_running_loop(self, make_harness):
        h = make_harness({("GET", "/operations"): []})

        with pytest.raises(RuntimeError):
            h.dispatcher.dispatch(FinanceService.OPERATIONS, list, lambda _: None)
        assert h.store.records == []

    @pytest.mark.asyncio
    async def test_fetch_returns_value(self, make_harness):
        h = make_harness({("GET", "/operations"): [{"id": 7, "amount": 1}]})

        result = await h.dispatcher.fetch(FinanceService.OPERATIONS, List[Operation])

        assert result == [Operation(id=7, amount=1.0)]
        assert h.kinds == ["request_sent", "request_succeeded"]

    @pytest.mark.asyncio
    async def test_fetch_raises_transport_error(self, make_harness):
        h = make_harness({("GET", "/profile"): auth_failure()})

        with pytest.raises(TransportError) as exc_info:
            await h.dispatcher.fetch(FinanceService.PROFILE, dict)

        assert exc_info.value.status_code == 401
        assert h.session_owner.invalidations == 1

    @pytest.mark.asyncio
    async def test_fetch_raises_decode_error(self, make_harness):
        h = make_harness({("GET", "/operations"): {"id": "not a number"}})

        with pytest.raises(DecodeError):
            await h.dispatcher.fetch(FinanceService.OPERATIONS, Operation)

    @pytest.mark.asyncio
    async def test_fetch_offline(self, make_harness):
        h = make_harness(reachable=False)

        with pytest.raises(TransportError) as exc_info:
            await h.dispatcher.fetch(FinanceService.OPERATIONS, list)

        assert exc_info.value.kind is TransportErrorKind.OFFLINE
        assert h.store.records == []

    @pytest.mark.asyncio
    async def test_cancelling_fetch_cancels_call(self, make_harness):
        h = make_harness({("GET", "/exchange"): hang})

        waiter = asyncio.ensure_future(h.dispatcher.fetch(FinanceService.EXCHANGE, dict))
        await asyncio.sleep(0.01)
        waiter.cancel()

        with pytest.raises(asyncio.CancelledError):
            await waiter
        await asyncio.sleep(0.01)
        assert h.transport.outstanding == []
