from functools import wraps
from inspect import iscoroutinefunction

from sentry_core.crons.api import capture_checkin
from sentry_core.crons.checkin import CheckInStatus
from sentry_core.utils import now

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types import TracebackType
    from typing import (
        Any,
        Callable,
        Optional,
        Type,
        TypeVar,
    )

    from sentry_core.crons.checkin import MonitorConfig

    F = TypeVar("F", bound=Callable[..., Any])


class monitor:  # noqa: N801
    """
    Decorator/context manager to capture check-in events for a monitor.

    Usage (as decorator):
    ```
    import sentry_core

    @sentry_core.monitor(monitor_slug='my-fancy-slug')
    def test(arg):
        print(arg)
    ```

    Usage (as context manager):
    ```
    import sentry_core

    def test(arg):
        with sentry_core.monitor(monitor_slug='my-fancy-slug'):
            print(arg)
    ```
    """

    def __init__(
        self,
        monitor_slug: str,
        monitor_config: "Optional[MonitorConfig]" = None,
    ) -> None:
        self.monitor_slug = monitor_slug
        self.monitor_config = monitor_config

    def __enter__(self) -> None:
        self.start_timestamp = now()
        self.check_in_id = capture_checkin(
            monitor_slug=self.monitor_slug,
            status=CheckInStatus.IN_PROGRESS,
            monitor_config=self.monitor_config,
        )

    def __exit__(
        self,
        exc_type: "Optional[Type[BaseException]]",
        exc_value: "Optional[BaseException]",
        traceback: "Optional[TracebackType]",
    ) -> None:
        duration_s = now() - self.start_timestamp

        if exc_type is None and exc_value is None and traceback is None:
            status = CheckInStatus.OK
        else:
            status = CheckInStatus.ERROR

        capture_checkin(
            monitor_slug=self.monitor_slug,
            check_in_id=self.check_in_id,
            status=status,
            duration=duration_s,
            monitor_config=self.monitor_config,
        )

    def __call__(self, fn: "F") -> "F":
        if iscoroutinefunction(fn):

            @wraps(fn)
            async def inner(*args: "Any", **kwargs: "Any") -> "Any":
                with self:
                    return await fn(*args, **kwargs)

        else:

            @wraps(fn)
            def inner(*args: "Any", **kwargs: "Any") -> "Any":
                with self:
                    return fn(*args, **kwargs)

        return inner  # type: ignore
