from email.utils import parsedate_to_datetime

from sentry_core.consts import DEFAULT_RATE_LIMIT_DELAY
from sentry_core.event import EventType
from sentry_core.utils import format_timestamp, logger, now

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Dict
    from typing import Iterable
    from typing import Tuple
    from typing import Union

    from sentry_core._types import EventDataCategory
    from sentry_core.http_client import Response


RATE_LIMITS_HEADER = "X-Sentry-Rate-Limits"
RETRY_AFTER_HEADER = "Retry-After"

# The only metric namespace the SDK emits into
METRIC_NAMESPACE = "custom"

_CATEGORIES_BY_EVENT_TYPE = {
    EventType.EVENT: ("error",),
    EventType.TRANSACTION: ("transaction",),
    EventType.CHECK_IN: ("monitor",),
    EventType.LOG: ("log_item",),
    EventType.METRIC: ("trace_metric", "metric_bucket"),
    EventType.PROFILE: ("profile",),
    EventType.PROFILE_CHUNK: ("profile_chunk",),
    EventType.ATTACHMENT: ("attachment",),
}


def _parse_delay(value: str) -> int:
    value = value.strip()
    if value.isdigit():
        return int(value)
    return DEFAULT_RATE_LIMIT_DELAY


def _parse_rate_limits(
    header: str, now: float
) -> "Iterable[Tuple[EventDataCategory, float]]":
    for limit in header.split(","):
        # delay:categories:scope:reason_code:namespaces
        parameters = limit.strip().split(":", 4)
        retry_after = now + _parse_delay(parameters[0])
        categories = parameters[1] if len(parameters) > 1 else ""

        for category in categories.split(";"):
            if category == "metric_bucket":
                namespaces = []
                if len(parameters) > 4 and parameters[4]:
                    namespaces = parameters[4].split(";")

                # Limits scoped to namespaces the SDK never writes to are
                # not ours to honor.
                if namespaces and METRIC_NAMESPACE not in namespaces:
                    continue

            yield category or "all", retry_after


def _parse_retry_after(value: str, now: float) -> int:
    value = value.strip()
    if value.isdigit():
        return int(value)

    try:
        retry_at = parsedate_to_datetime(value).timestamp()
    except (TypeError, ValueError, IndexError):
        return DEFAULT_RATE_LIMIT_DELAY

    if retry_at >= now:
        return int(retry_at - now)

    return DEFAULT_RATE_LIMIT_DELAY


class RateLimiter:
    """Keeps track of the categories the server asked us to stop sending.

    Every category maps to the epoch second until which it is disabled, the
    ``all`` category disables everything.
    """

    def __init__(self) -> None:
        self._disabled_until: "Dict[str, float]" = {}

    def handle_response(self, response: "Response") -> bool:
        """Updates the rate limits from the headers of a response and returns
        whether any limit was recorded."""
        current = now()

        # Relay sends the detailed limits no matter the status code. When they
        # are present the plain Retry-After header is not looked at.
        if response.has_header(RATE_LIMITS_HEADER):
            recorded = False
            for category, retry_after in _parse_rate_limits(
                response.get_header_line(RATE_LIMITS_HEADER), current
            ):
                self._disabled_until[category] = retry_after
                logger.warning(
                    'Rate limited exceeded for category "%s", backing off until "%s".',
                    category,
                    format_timestamp(retry_after),
                )
                recorded = True

            return recorded

        if response.has_header(RETRY_AFTER_HEADER):
            retry_after = current + _parse_retry_after(
                response.get_header_line(RETRY_AFTER_HEADER), current
            )
            self._disabled_until["all"] = retry_after
            logger.warning(
                'Rate limited exceeded for all categories, backing off until "%s".',
                format_timestamp(retry_after),
            )
            return True

        return False

    def get_disabled_until(self, event_type: "Union[EventType, str]") -> float:
        categories = _CATEGORIES_BY_EVENT_TYPE.get(
            event_type, (str(event_type),)  # type: ignore[call-overload]
        )
        return max(
            [self._disabled_until.get("all", 0)]
            + [self._disabled_until.get(category, 0) for category in categories]
        )

    def is_rate_limited(self, event_type: "Union[EventType, str]") -> bool:
        return self.get_disabled_until(event_type) > now()
