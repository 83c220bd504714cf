import sentry_core
from sentry_core.crons.checkin import CheckIn, CheckInStatus
from sentry_core.utils import logger

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Optional
    from typing import Union

    from sentry_core.crons.checkin import MonitorConfig
    from sentry_core.hub import Hub


def capture_checkin(
    monitor_slug: str,
    status: "Union[CheckInStatus, str]" = CheckInStatus.OK,
    check_in_id: "Optional[str]" = None,
    duration: "Optional[float]" = None,
    monitor_config: "Optional[MonitorConfig]" = None,
    hub: "Optional[Hub]" = None,
) -> "Optional[str]":
    """Captures a check-in for the given monitor and returns its id, or
    ``None`` if it was not sent."""
    if hub is None:
        hub = sentry_core.get_current_hub()

    client = hub.get_client()
    if client is None:
        return None

    options = client.get_options()
    check_in = CheckIn(
        monitor_slug=monitor_slug,
        status=CheckInStatus(status),
        id=check_in_id,
        release=options.get("release"),
        environment=options.get("environment"),
        duration=duration,
        monitor_config=monitor_config,
    )

    event_id = hub.capture_check_in(check_in)

    logger.debug(
        "[Crons] Captured check-in (%s): %s -> %s",
        check_in.id,
        check_in.monitor_slug,
        check_in.status,
    )

    if event_id is None:
        return None

    return check_in.id
