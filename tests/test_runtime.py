import pytest

import sentry_core
from sentry_core.hub import Hub
from sentry_core.runtime import GLOBAL_CONTEXT_ID, RuntimeContextManager
from sentry_core.tracing import Span

from tests.conftest import TestTransport


@pytest.fixture
def manager(sentry_init):
    client = sentry_init(enable_logs=True)
    return RuntimeContextManager(Hub(client))


def test_global_context_is_created_lazily(manager):
    context = manager.get_current_context()

    assert context.id == GLOBAL_CONTEXT_ID
    assert manager.get_current_context() is context
    assert not manager.has_active_context()


def test_start_and_end_context(manager):
    base_hub = manager.get_current_hub()
    base_hub.get_scope().set_tag("inherited", "yes")

    manager.start_context()
    assert manager.has_active_context()

    context = manager.get_current_context()
    assert context.id != GLOBAL_CONTEXT_ID
    assert context.hub is not base_hub
    assert context.hub.get_client() is base_hub.get_client()
    assert context.hub.get_scope()._tags == {"inherited": "yes"}

    context.hub.get_scope().set_tag("request", "yes")
    assert base_hub.get_scope()._tags == {"inherited": "yes"}

    manager.end_context()
    assert not manager.has_active_context()
    assert manager.get_current_hub() is base_hub


def test_start_context_is_idempotent(manager):
    manager.start_context()
    context = manager.get_current_context()

    manager.start_context()
    assert manager.get_current_context() is context


def test_end_context_without_active_context(manager):
    manager.end_context()
    assert manager.get_current_context().id == GLOBAL_CONTEXT_ID


def test_new_context_does_not_inherit_span(manager):
    manager.get_current_hub().get_scope().set_span(Span())

    manager.start_context()

    assert manager.get_current_hub().get_scope().span is None


def test_set_current_hub_without_active_context(manager):
    hub = Hub()

    assert not manager.set_current_hub(hub)
    assert manager.get_current_hub() is hub

    manager.start_context()
    assert manager.get_current_hub().get_client() is None


def test_set_current_hub_with_active_context(manager):
    base_hub = manager.get_current_hub()
    manager.start_context()
    hub = Hub()

    assert manager.set_current_hub(hub)
    assert manager.get_current_hub() is hub

    manager.end_context()
    assert manager.get_current_hub() is base_hub


def test_end_context_flushes_logs(manager, capture_events):
    events = capture_events()
    manager.start_context()

    context = manager.get_current_context()
    assert context.logs.add("info", "hello")
    assert events == []

    manager.end_context()

    (event,) = events
    assert [log["body"] for log in event.logs] == ["hello"]


def test_stale_execution_key_is_dropped(manager):
    manager.start_context()
    context = manager.get_current_context()
    del manager._active_contexts[context.id]

    assert not manager.has_active_context()
    assert manager._execution_keys == {}


def test_end_context_never_raises(manager, monkeypatch):
    manager.start_context()
    context = manager.get_current_context()

    def broken(*args, **kwargs):
        raise RuntimeError("broken")

    monkeypatch.setattr(context.logs, "flush", broken)
    monkeypatch.setattr(context.metrics, "flush", broken)
    monkeypatch.setattr(context.hub.get_client(), "flush", broken)

    manager.end_context()

    assert not manager.has_active_context()


def test_api_uses_runtime_contexts():
    sentry_core.init(transport=TestTransport(), enable_logs=True)
    base_hub = sentry_core.get_current_hub()

    sentry_core.start_context()
    try:
        assert sentry_core.get_current_hub() is not base_hub
        sentry_core.set_tag("request", "yes")
        assert base_hub.get_scope()._tags == {}
    finally:
        sentry_core.end_context()

    assert sentry_core.get_current_hub() is base_hub
