from enum import Enum

from sentry_core.utils import uuid4_hex

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any
    from typing import Dict
    from typing import Optional
    from typing import Union


class CheckInStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    OK = "ok"
    ERROR = "error"

    def __str__(self) -> str:
        return self.value


class MonitorScheduleUnit(str, Enum):
    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"

    def __str__(self) -> str:
        return self.value


class MonitorSchedule:
    TYPE_CRONTAB = "crontab"
    TYPE_INTERVAL = "interval"

    def __init__(
        self,
        type: str,
        value: "Union[str, int]",
        unit: "Optional[MonitorScheduleUnit]" = None,
    ) -> None:
        if type not in (self.TYPE_CRONTAB, self.TYPE_INTERVAL):
            raise ValueError("Unsupported schedule type %r" % (type,))
        if type == self.TYPE_INTERVAL and unit is None:
            raise ValueError("An interval schedule needs a unit")

        self.type = type
        self.value = value
        self.unit = unit

    @classmethod
    def crontab(cls, value: str) -> "MonitorSchedule":
        return cls(cls.TYPE_CRONTAB, value)

    @classmethod
    def interval(cls, value: int, unit: "MonitorScheduleUnit") -> "MonitorSchedule":
        return cls(cls.TYPE_INTERVAL, value, unit)

    def to_dict(self) -> "Dict[str, Any]":
        rv: "Dict[str, Any]" = {
            "type": self.type,
            "value": self.value,
        }
        if self.unit is not None:
            rv["unit"] = str(self.unit)
        return rv


class MonitorConfig:
    def __init__(
        self,
        schedule: "MonitorSchedule",
        checkin_margin: "Optional[int]" = None,
        max_runtime: "Optional[int]" = None,
        timezone: "Optional[str]" = None,
        failure_issue_threshold: "Optional[int]" = None,
        recovery_threshold: "Optional[int]" = None,
    ) -> None:
        self.schedule = schedule
        self.checkin_margin = checkin_margin
        self.max_runtime = max_runtime
        self.timezone = timezone
        self.failure_issue_threshold = failure_issue_threshold
        self.recovery_threshold = recovery_threshold

    def to_dict(self) -> "Dict[str, Any]":
        rv: "Dict[str, Any]" = {"schedule": self.schedule.to_dict()}
        for key in (
            "checkin_margin",
            "max_runtime",
            "timezone",
            "failure_issue_threshold",
            "recovery_threshold",
        ):
            value = getattr(self, key)
            if value is not None:
                rv[key] = value
        return rv


class CheckIn:
    """A single check-in of a monitor. Reusing the id of an in-progress
    check-in updates it."""

    def __init__(
        self,
        monitor_slug: str,
        status: "CheckInStatus",
        id: "Optional[str]" = None,
        release: "Optional[str]" = None,
        environment: "Optional[str]" = None,
        duration: "Optional[float]" = None,
        monitor_config: "Optional[MonitorConfig]" = None,
    ) -> None:
        self.monitor_slug = monitor_slug
        self.status = status
        self.id = id or uuid4_hex()
        self.release = release
        self.environment = environment
        self.duration = duration
        self.monitor_config = monitor_config

    def __repr__(self) -> str:
        return "<CheckIn id=%s monitor_slug=%s status=%s>" % (
            self.id,
            self.monitor_slug,
            self.status,
        )
