import pytest

from sentry_core.consts import SPANSTATUS
from sentry_core.event import EventType
from sentry_core.hub import Hub
from sentry_core.tracing import (
    DynamicSamplingContext,
    PropagationContext,
    Span,
    Transaction,
    TransactionSource,
)


def test_propagation_context_ids():
    context = PropagationContext()

    assert len(context.trace_id) == 32
    assert len(context.span_id) == 16
    assert context.get_trace_context() == {
        "trace_id": context.trace_id,
        "span_id": context.span_id,
    }

    child = PropagationContext(trace_id=context.trace_id, parent_span_id="b" * 16)
    assert child.get_trace_context()["parent_span_id"] == "b" * 16


def test_frozen_dynamic_sampling_context():
    dsc = DynamicSamplingContext()
    dsc.set("trace_id", "a" * 32)
    dsc.set("release", None)
    dsc.freeze()
    dsc.set("environment", "dev")

    assert dsc.is_frozen()
    assert dsc.get_entries() == {"trace_id": "a" * 32}
    assert dsc.get("environment") is None


def test_url_source_has_no_transaction_name():
    transaction = Transaction(name="/users/42", source=TransactionSource.URL)

    dsc = transaction.get_dynamic_sampling_context()

    assert dsc.get("transaction") is None
    assert dsc.is_frozen()


def test_child_spans():
    transaction = Transaction(name="job", sampled=True)
    child = transaction.start_child(op="http.client", description="GET /")
    grandchild = child.start_child(op="db")

    assert child.trace_id == transaction.trace_id
    assert child.parent_span_id == transaction.span_id
    assert grandchild.parent_span_id == child.span_id
    assert grandchild.sampled is True

    grandchild.finish()
    child.finish()

    assert transaction.finished_spans == [grandchild, child]


def test_finish_is_idempotent():
    span = Span()
    span.finish(end_timestamp=10.0)
    span.finish(end_timestamp=20.0)

    assert span.timestamp == 10.0
    assert span.is_finished()


@pytest.mark.parametrize(
    "http_status,status",
    [
        (200, SPANSTATUS.OK),
        (401, SPANSTATUS.UNAUTHENTICATED),
        (403, SPANSTATUS.PERMISSION_DENIED),
        (404, SPANSTATUS.NOT_FOUND),
        (429, SPANSTATUS.RESOURCE_EXHAUSTED),
        (418, SPANSTATUS.INVALID_ARGUMENT),
        (503, SPANSTATUS.UNAVAILABLE),
        (500, SPANSTATUS.INTERNAL_ERROR),
    ],
)
def test_set_http_status(http_status, status):
    span = Span()
    span.set_http_status(http_status)

    assert span.status == status
    assert span.to_json()["tags"] == {"http.status_code": str(http_status)}
    assert span.to_json()["data"] == {"http.response.status_code": http_status}


def test_finish_sends_sampled_transaction(sentry_init, capture_events):
    hub = Hub(sentry_init(traces_sample_rate=1.0, release="1.0"))
    events = capture_events()

    transaction = hub.start_transaction(name="job", op="task")
    transaction.set_tag("queue", "default")
    transaction.set_context("task", {"retries": 0})
    transaction.start_child(op="db").finish()
    event_id = transaction.finish()

    (event,) = events
    assert event_id == event.event_id
    assert event.type == EventType.TRANSACTION
    assert event.transaction == "job"
    assert event.tags == {"queue": "default"}
    assert event.contexts["trace"]["op"] == "task"
    assert event.contexts["task"] == {"retries": 0}
    assert len(event.spans) == 1

    dsc = event.get_sdk_metadata("dynamic_sampling_context")
    assert dsc.get("release") == "1.0"
    assert dsc.get("sampled") == "true"
    assert dsc.get("sample_rate") == "1.0"


def test_unsampled_transaction_is_not_sent(sentry_init, capture_events):
    hub = Hub(sentry_init())
    events = capture_events()

    transaction = hub.start_transaction(name="job")

    assert transaction.finish() is None
    assert events == []


def test_events_inside_transaction_share_trace(sentry_init, capture_events):
    hub = Hub(sentry_init(traces_sample_rate=1.0))
    events = capture_events()

    transaction = hub.start_transaction(name="job")
    hub.get_scope().set_span(transaction)
    hub.capture_message("hello")

    (event,) = events
    assert event.get_trace_id() == transaction.trace_id
    assert event.get_sdk_metadata("dynamic_sampling_context") is (
        transaction.get_dynamic_sampling_context()
    )
