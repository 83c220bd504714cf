import pytest

from sentry_core.event import EventType
from sentry_core.http_client import Response
from sentry_core.ratelimit import RateLimiter

NOW = 1000.0


@pytest.fixture
def limiter(monkeypatch):
    monkeypatch.setattr("sentry_core.ratelimit.now", lambda: NOW)
    return RateLimiter()


def test_no_headers(limiter):
    assert not limiter.handle_response(Response(200))
    assert not limiter.is_rate_limited(EventType.EVENT)


def test_rate_limits_header_for_category(limiter):
    response = Response(429, {"X-Sentry-Rate-Limits": "60:error:org"})

    assert limiter.handle_response(response)
    assert limiter.get_disabled_until(EventType.EVENT) == NOW + 60
    assert limiter.is_rate_limited(EventType.EVENT)
    assert not limiter.is_rate_limited(EventType.TRANSACTION)


def test_rate_limits_header_is_case_insensitive(limiter):
    response = Response(429, {"x-sentry-rate-limits": "60:transaction"})

    assert limiter.handle_response(response)
    assert limiter.is_rate_limited(EventType.TRANSACTION)


def test_multiple_categories_and_limits(limiter):
    response = Response(
        200,
        {"X-Sentry-Rate-Limits": "30:error;transaction:org, 120:monitor:project"},
    )

    assert limiter.handle_response(response)
    assert limiter.get_disabled_until(EventType.EVENT) == NOW + 30
    assert limiter.get_disabled_until(EventType.TRANSACTION) == NOW + 30
    assert limiter.get_disabled_until(EventType.CHECK_IN) == NOW + 120
    assert not limiter.is_rate_limited(EventType.LOG)


def test_empty_category_limits_everything(limiter):
    limiter.handle_response(Response(429, {"X-Sentry-Rate-Limits": "60::org"}))

    for event_type in EventType:
        assert limiter.is_rate_limited(event_type)


def test_unparsable_delay_uses_default(limiter):
    limiter.handle_response(Response(429, {"X-Sentry-Rate-Limits": "soon:error"}))

    assert limiter.get_disabled_until(EventType.EVENT) == NOW + 60


def test_category_mapping(limiter):
    limiter.handle_response(
        Response(429, {"X-Sentry-Rate-Limits": "10:log_item, 20:trace_metric"})
    )

    assert limiter.get_disabled_until(EventType.LOG) == NOW + 10
    assert limiter.get_disabled_until(EventType.METRIC) == NOW + 20


@pytest.mark.parametrize(
    "namespaces,limited",
    [("", True), ("custom", True), ("custom;other", True), ("other", False)],
)
def test_metric_bucket_namespaces(limiter, namespaces, limited):
    limiter.handle_response(
        Response(
            429,
            {"X-Sentry-Rate-Limits": "60:metric_bucket:org:quota:%s" % namespaces},
        )
    )

    assert limiter.is_rate_limited(EventType.METRIC) is limited


def test_retry_after_seconds(limiter):
    assert limiter.handle_response(Response(429, {"Retry-After": "30"}))

    assert limiter.get_disabled_until(EventType.EVENT) == NOW + 30
    assert limiter.get_disabled_until(EventType.CHECK_IN) == NOW + 30


def test_retry_after_http_date(limiter):
    # 1000 seconds past the epoch plus 50
    limiter.handle_response(
        Response(429, {"Retry-After": "Thu, 01 Jan 1970 00:17:30 GMT"})
    )

    assert limiter.get_disabled_until(EventType.EVENT) == NOW + 50


def test_retry_after_garbage_uses_default(limiter):
    limiter.handle_response(Response(429, {"Retry-After": "whenever"}))

    assert limiter.get_disabled_until(EventType.EVENT) == NOW + 60


def test_rate_limits_header_wins_over_retry_after(limiter):
    limiter.handle_response(
        Response(
            429,
            {"X-Sentry-Rate-Limits": "10:error", "Retry-After": "100"},
        )
    )

    assert limiter.get_disabled_until(EventType.EVENT) == NOW + 10
    assert not limiter.is_rate_limited(EventType.TRANSACTION)


def test_limit_expires(limiter, monkeypatch):
    limiter.handle_response(Response(429, {"X-Sentry-Rate-Limits": "60:error"}))
    assert limiter.is_rate_limited(EventType.EVENT)

    monkeypatch.setattr("sentry_core.ratelimit.now", lambda: NOW + 61)
    assert not limiter.is_rate_limited(EventType.EVENT)


@pytest.mark.parametrize(
    "elapsed,limited",
    [(59.999, True), (60, False)],
)
def test_limit_boundary(limiter, monkeypatch, elapsed, limited):
    limiter.handle_response(Response(429, {"Retry-After": "60"}))

    monkeypatch.setattr("sentry_core.ratelimit.now", lambda: NOW + elapsed)
    assert limiter.is_rate_limited(EventType.EVENT) is limited
    assert limiter.is_rate_limited(EventType.TRANSACTION) is limited
