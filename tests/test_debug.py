import logging

from sentry_core.debug import _HubBasedClientFilter
from sentry_core.utils import logger


def make_record():
    return logging.LogRecord(
        "sentry_core.errors", logging.INFO, __file__, 1, "hello", (), None
    )


def test_logger_is_configured():
    assert logger.handlers
    assert any(isinstance(f, _HubBasedClientFilter) for f in logger.filters)


def test_filter_without_client():
    assert not _HubBasedClientFilter().filter(make_record())


def test_filter_follows_debug_option(sentry_init):
    sentry_init(debug=False)
    assert not _HubBasedClientFilter().filter(make_record())

    sentry_init(debug=True)
    assert _HubBasedClientFilter().filter(make_record())
