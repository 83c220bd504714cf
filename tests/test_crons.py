import asyncio

import pytest

import sentry_core
from sentry_core.crons import (
    CheckIn,
    CheckInStatus,
    MonitorConfig,
    MonitorSchedule,
    MonitorScheduleUnit,
    capture_checkin,
)
from sentry_core.event import EventType
from sentry_core.hub import Hub


@sentry_core.monitor(monitor_slug="abc123")
def _hello_world(name):
    return "Hello, {}".format(name)


@sentry_core.monitor(monitor_slug="def456")
def _break_world(name):
    1 / 0
    return "Hello, {}".format(name)


@sentry_core.monitor(monitor_slug="ghi789")
async def _hello_world_async(name):
    return "Hello, {}".format(name)


def test_schedule_to_dict():
    assert MonitorSchedule.crontab("0 0 * * *").to_dict() == {
        "type": "crontab",
        "value": "0 0 * * *",
    }
    assert MonitorSchedule.interval(10, MonitorScheduleUnit.MINUTE).to_dict() == {
        "type": "interval",
        "value": 10,
        "unit": "minute",
    }


def test_invalid_schedule():
    with pytest.raises(ValueError):
        MonitorSchedule("weekly", 1)

    with pytest.raises(ValueError):
        MonitorSchedule(MonitorSchedule.TYPE_INTERVAL, 1)


def test_monitor_config_to_dict():
    config = MonitorConfig(
        MonitorSchedule.interval(1, MonitorScheduleUnit.HOUR),
        max_runtime=30,
        timezone="Europe/Vienna",
    )

    assert config.to_dict() == {
        "schedule": {"type": "interval", "value": 1, "unit": "hour"},
        "max_runtime": 30,
        "timezone": "Europe/Vienna",
    }


def test_check_in_generates_id():
    check_in = CheckIn("abc", CheckInStatus.OK)

    assert len(check_in.id) == 32
    assert CheckIn("abc", CheckInStatus.OK, id="x" * 32).id == "x" * 32


def test_capture_checkin_simple(sentry_init, capture_events):
    sentry_init(release="1.0", environment="dev")
    events = capture_events()

    check_in_id = capture_checkin(
        monitor_slug="abc123",
        check_in_id="112233",
        status="in_progress",
        duration=None,
    )

    (event,) = events
    assert check_in_id == "112233"
    assert event.type == EventType.CHECK_IN
    assert event.check_in.id == "112233"
    assert event.check_in.monitor_slug == "abc123"
    assert event.check_in.status == CheckInStatus.IN_PROGRESS
    assert event.check_in.release == "1.0"
    assert event.check_in.environment == "dev"
    assert list(event.contexts) == ["trace"]


def test_capture_checkin_without_client():
    assert capture_checkin(monitor_slug="abc123") is None


def test_capture_checkin_with_explicit_hub(sentry_init, capture_events):
    client = sentry_init()
    events = capture_events()

    assert capture_checkin(monitor_slug="abc123", hub=Hub(client)) is not None
    assert len(events) == 1


def test_capture_checkin_not_sent(sentry_init):
    sentry_init(before_send=lambda event, hint: None)

    # before_send does not apply to check-ins
    assert capture_checkin(monitor_slug="abc123") is not None


def test_decorator(sentry_init, capture_events):
    sentry_init()
    events = capture_events()

    assert _hello_world("Grace") == "Hello, Grace"

    start, end = events
    assert start.check_in.monitor_slug == "abc123"
    assert start.check_in.status == CheckInStatus.IN_PROGRESS
    assert end.check_in.status == CheckInStatus.OK
    assert end.check_in.id == start.check_in.id
    assert end.check_in.duration >= 0


def test_decorator_error(sentry_init, capture_events):
    sentry_init()
    events = capture_events()

    with pytest.raises(ZeroDivisionError):
        _break_world("Grace")

    start, end = events
    assert start.check_in.status == CheckInStatus.IN_PROGRESS
    assert end.check_in.status == CheckInStatus.ERROR
    assert end.check_in.id == start.check_in.id


def test_decorator_async(sentry_init, capture_events):
    sentry_init()
    events = capture_events()

    assert asyncio.run(_hello_world_async("Grace")) == "Hello, Grace"

    start, end = events
    assert start.check_in.monitor_slug == "ghi789"
    assert end.check_in.status == CheckInStatus.OK


def test_context_manager_with_config(sentry_init, capture_events):
    sentry_init()
    events = capture_events()
    config = MonitorConfig(MonitorSchedule.crontab("*/5 * * * *"))

    with sentry_core.monitor(monitor_slug="jkl000", monitor_config=config):
        pass

    start, end = events
    assert start.check_in.monitor_config is config
    assert end.check_in.monitor_config is config
