import pytest

import sentry_core
import sentry_core.utils
from sentry_core import api
from sentry_core.hub import Hub
from sentry_core.http_client import Response
from sentry_core.integrations import (  # noqa: F401
    _installed_integrations,
    _processed_integrations,
)
from sentry_core.runtime import RuntimeContextManager
from sentry_core.scope_manager import ScopeManager
from sentry_core.serializer import PayloadSerializer
from sentry_core.transport import Result, ResultStatus, Transport
from sentry_core.utils import reraise


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "tests_internal_exceptions: let internal errors be logged instead of reraised",
    )


@pytest.fixture(autouse=True)
def clean_runtime(monkeypatch):
    """
    Gives every test its own runtime context manager and scope manager to
    avoid leaking hubs and scopes between tests.
    """
    monkeypatch.setattr(api, "_runtime_context_manager", RuntimeContextManager(Hub()))
    monkeypatch.setattr(api, "_scope_manager", ScopeManager())


@pytest.fixture(autouse=True)
def internal_exceptions(request, monkeypatch):
    errors = []
    if "tests_internal_exceptions" in request.keywords:
        return

    def _capture_internal_exception(exc_info):
        errors.append(exc_info)

    @request.addfinalizer
    def _():
        # reraise the errors so that this just acts as a pass-through (that
        # happens to keep track of the errors which pass through it)
        for e in errors:
            reraise(*e)

    monkeypatch.setattr(
        sentry_core.utils, "capture_internal_exception", _capture_internal_exception
    )

    return errors


@pytest.fixture
def reset_integrations():
    """
    Use with caution, sometimes we really need to start
    with a clean slate to ensure setup_once runs again.
    """
    _processed_integrations.clear()
    _installed_integrations.clear()


class TestTransport(Transport):
    __test__ = False

    def __init__(self, options=None):
        Transport.__init__(self, options)

    def send(self, event):
        return Result(ResultStatus.SUCCESS, event)


@pytest.fixture
def sentry_init():
    def inner(*a, **kw):
        kw.setdefault("transport", TestTransport())
        client = sentry_core.Client(*a, **kw)
        sentry_core.get_current_hub().bind_client(client)
        return client

    return inner


@pytest.fixture
def capture_events(monkeypatch):
    def inner():
        events = []
        test_client = sentry_core.get_current_hub().get_client()
        old_send = test_client.transport.send

        def append_event(event):
            events.append(event)
            return old_send(event)

        monkeypatch.setattr(test_client.transport, "send", append_event)

        return events

    return inner


@pytest.fixture
def capture_envelopes(monkeypatch):
    def inner():
        envelopes = []
        test_client = sentry_core.get_current_hub().get_client()
        serializer = PayloadSerializer(test_client.get_options())
        old_send = test_client.transport.send

        def append_envelope(event):
            envelopes.append(serializer.to_envelope(event))
            return old_send(event)

        monkeypatch.setattr(test_client.transport, "send", append_envelope)

        return envelopes

    return inner


class FakeHttpClient:
    """Records request bodies and answers with canned responses. An
    exception in the responses is raised instead."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def send_request(self, body):
        self.requests.append(body)
        response = self.responses.pop(0) if self.responses else Response(200)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture
def fake_http_client():
    return FakeHttpClient
