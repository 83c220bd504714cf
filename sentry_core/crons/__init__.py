from sentry_core.crons.api import capture_checkin
from sentry_core.crons.checkin import (
    CheckIn,
    CheckInStatus,
    MonitorConfig,
    MonitorSchedule,
    MonitorScheduleUnit,
)
from sentry_core.crons.decorator import monitor


__all__ = [
    "capture_checkin",
    "CheckIn",
    "CheckInStatus",
    "MonitorConfig",
    "MonitorSchedule",
    "MonitorScheduleUnit",
    "monitor",
]
