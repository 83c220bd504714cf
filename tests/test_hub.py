import pytest

from sentry_core.crons import CheckIn, CheckInStatus
from sentry_core.event import EventType
from sentry_core.hub import Hub
from sentry_core.scope import Scope


@pytest.fixture
def hub(sentry_init):
    client = sentry_init()
    return Hub(client)


def test_no_client_captures_nothing():
    hub = Hub()

    assert hub.capture_message("hello") is None
    assert hub.capture_exception(ValueError()) is None
    assert hub.last_event_id() is None
    assert not hub.add_breadcrumb(message="dropped")
    assert not hub.flush()


def test_capture_message_sets_last_event_id(hub, capture_events):
    events = capture_events()

    event_id = hub.capture_message("hello", level="warning")

    (event,) = events
    assert event_id == event.event_id
    assert hub.last_event_id() == event_id
    assert event.message == "hello"
    assert event.level == "warning"


def test_capture_exception_from_exc_info(hub, monkeypatch):
    events = []
    monkeypatch.setattr(hub.client, "capture_event", _recorder(events))

    try:
        1 / 0
    except ZeroDivisionError:
        event_id = hub.capture_exception()

    (event,) = events
    assert event_id == event.event_id
    assert event.exceptions[0]["type"] == "ZeroDivisionError"
    assert event.level == "error"


def test_capture_exception_without_active_exception(hub):
    assert hub.capture_exception() is None


def test_push_and_pop_scope(hub):
    base = hub.get_scope()
    base.set_tag("base", "yes")

    scope = hub.push_scope()
    assert hub.get_scope() is scope
    assert scope is not base
    assert scope._tags == {"base": "yes"}
    assert hub.client is not None

    assert hub.pop_scope()
    assert hub.get_scope() is base
    assert not hub.pop_scope()
    assert hub.get_scope() is base


def test_with_scope_pops_on_error(hub):
    base = hub.get_scope()

    def callback(scope):
        scope.set_tag("inner", "yes")
        raise ValueError()

    with pytest.raises(ValueError):
        hub.with_scope(callback)

    assert hub.get_scope() is base
    assert base._tags == {}


def test_configure_scope_requires_client():
    hub = Hub()
    calls = []

    hub.configure_scope(calls.append)
    assert calls == []

    with hub.configure_scope() as scope:
        scope.set_tag("lost", "yes")

    assert hub.get_scope()._tags == {}


def test_configure_scope_with_client(hub):
    hub.configure_scope(lambda scope: scope.set_tag("a", "b"))

    with hub.configure_scope() as scope:
        scope.set_tag("c", "d")

    assert hub.get_scope()._tags == {"a": "b", "c": "d"}


def test_bind_client_only_affects_top_layer(hub):
    client = hub.client
    hub.push_scope()
    hub.bind_client(None)

    assert hub.client is None

    hub.pop_scope()
    assert hub.client is client


def test_capture_with_explicit_scope(hub, capture_events):
    events = capture_events()
    hub.get_scope().set_tag("hub", "yes")

    scope = Scope()
    scope.set_tag("explicit", "yes")

    hub.capture_message("hello", scope=scope)

    (event,) = events
    assert event.tags == {"hub": "yes", "explicit": "yes"}
    assert hub.get_scope()._tags == {"hub": "yes"}


def test_add_breadcrumb_defaults(hub):
    assert hub.add_breadcrumb(message="hello", category="test")

    (crumb,) = hub.get_scope().breadcrumbs
    assert crumb["message"] == "hello"
    assert crumb["category"] == "test"
    assert crumb["type"] == "default"
    assert crumb["timestamp"] is not None


def test_add_breadcrumb_respects_max_breadcrumbs(sentry_init):
    hub = Hub(sentry_init(max_breadcrumbs=2))

    for i in range(4):
        hub.add_breadcrumb(message=str(i))

    assert [crumb["message"] for crumb in hub.get_scope().breadcrumbs] == ["2", "3"]


def test_add_breadcrumb_disabled(sentry_init):
    hub = Hub(sentry_init(max_breadcrumbs=0))

    assert not hub.add_breadcrumb(message="hello")
    assert hub.get_scope().breadcrumbs == []


def test_before_breadcrumb(sentry_init):
    def before_breadcrumb(crumb, hint):
        if crumb["message"] == "drop":
            return None
        crumb["data"] = {"hint": hint.get("foo")}
        return crumb

    hub = Hub(sentry_init(before_breadcrumb=before_breadcrumb))

    assert not hub.add_breadcrumb(message="drop")
    assert hub.add_breadcrumb({"message": "keep"}, hint={"foo": 42})

    (crumb,) = hub.get_scope().breadcrumbs
    assert crumb["message"] == "keep"
    assert crumb["data"] == {"hint": 42}


def test_capture_check_in(hub, monkeypatch):
    events = []
    monkeypatch.setattr(hub.client, "capture_event", _recorder(events))

    check_in = CheckIn("my-monitor", CheckInStatus.OK)
    event_id = hub.capture_check_in(check_in)

    (event,) = events
    assert event_id == event.event_id
    assert event.type == EventType.CHECK_IN
    assert event.check_in is check_in


def test_start_transaction_without_sample_rate(hub):
    transaction = hub.start_transaction(name="job")

    assert transaction.sampled is False
    assert transaction._hub is hub


def test_start_transaction_samples(sentry_init):
    hub = Hub(sentry_init(traces_sample_rate=1.0))

    transaction = hub.start_transaction(name="job")

    assert transaction.sampled is True
    assert transaction.sample_rate == 1.0


def test_start_transaction_keeps_decision(sentry_init):
    hub = Hub(sentry_init(traces_sample_rate=1.0))

    transaction = hub.start_transaction(name="job", sampled=False)

    assert transaction.sampled is False


def test_internal_errors_do_not_escape(hub, monkeypatch, internal_exceptions):
    def broken(event, hint=None, scope=None):
        raise ZeroDivisionError()

    monkeypatch.setattr(hub.client, "capture_event", broken)

    assert hub.capture_message("hello") is None

    (exc_info,) = internal_exceptions
    assert exc_info[0] is ZeroDivisionError
    del internal_exceptions[:]


def _recorder(events):
    def capture_event(event, hint=None, scope=None):
        events.append(event)
        return event.event_id

    return capture_event


def test_capture_with_explicit_scope_trims_breadcrumbs(sentry_init, capture_events):
    hub = Hub(sentry_init(max_breadcrumbs=3))
    events = capture_events()
    for i in range(3):
        hub.add_breadcrumb(message="hub", timestamp=float(i * 2))

    scope = Scope()
    for i in range(3):
        scope.add_breadcrumb({"message": "explicit", "timestamp": float(i * 2 + 1)})

    hub.capture_message("hi", scope=scope)

    (event,) = events
    assert [crumb["timestamp"] for crumb in event.breadcrumbs] == [3.0, 4.0, 5.0]
    assert len(hub.get_scope().breadcrumbs) == 3
