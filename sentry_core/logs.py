"""
Structured logs. Records are buffered per runtime context and sent as a
single ``log`` envelope item on flush.
"""

from enum import Enum

from sentry_core.consts import LOGS_BUFFER_SIZE
from sentry_core.event import Event
from sentry_core.utils import format_message, logger, now, safe_repr

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any
    from typing import Callable
    from typing import Dict
    from typing import List
    from typing import Optional
    from typing import Sequence

    from sentry_core._types import Attributes, Log
    from sentry_core.hub import Hub


class LogLevel(str, Enum):
    TRACE = "trace"
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"

    @property
    def severity_number(self) -> int:
        return _SEVERITY_NUMBERS[self]

    def __str__(self) -> str:
        return self.value


# https://opentelemetry.io/docs/specs/otel/logs/data-model
_SEVERITY_NUMBERS = {
    LogLevel.TRACE: 1,
    LogLevel.DEBUG: 5,
    LogLevel.INFO: 9,
    LogLevel.WARN: 13,
    LogLevel.ERROR: 17,
    LogLevel.FATAL: 21,
}


def _normalize_attribute(value: "Any") -> "Any":
    if value is None or isinstance(value, (str, int, bool, float)):
        return value
    return safe_repr(value)


class LogsAggregator:
    """Buffers the logs of one runtime context.

    `hub_provider` returns the hub the logs are captured with, which can
    change over the lifetime of the context.
    """

    def __init__(self, hub_provider: "Callable[[], Hub]") -> None:
        self._hub_provider = hub_provider
        self._logs: "List[Log]" = []

    def __len__(self) -> int:
        return len(self._logs)

    def add(
        self,
        level: "LogLevel",
        message: str,
        values: "Optional[Sequence[Any]]" = None,
        attributes: "Optional[Dict[str, Any]]" = None,
    ) -> bool:
        """Records a log. `message` is a %-style template filled with
        `values`. Returns whether the log was kept."""
        timestamp = now()
        level = LogLevel(level)

        hub = self._hub_provider()
        client = hub.get_client()

        # There is no need to continue if there is no client or if logs are disabled
        if client is None or not client.get_options()["enable_logs"]:
            return False

        options = client.get_options()
        scope = hub.get_scope()
        values = list(values or ())

        span = scope.span
        if span is not None:
            trace_id = span.trace_id
        else:
            trace_id = scope.propagation_context.trace_id

        log_attributes: "Attributes" = {
            "sentry.release": options["release"],
            "sentry.environment": options["environment"],
            "sentry.server.address": options["server_name"],
            "sentry.message.template": message,
            "sentry.sdk.name": client.sdk_identifier,
            "sentry.sdk.version": client.sdk_version,
        }
        if span is not None:
            log_attributes["sentry.trace.parent_span_id"] = span.span_id

        for i, value in enumerate(values):
            log_attributes["sentry.message.parameter.%d" % i] = _normalize_attribute(
                value
            )

        for key, value in (attributes or {}).items():
            log_attributes[key] = _normalize_attribute(value)

        log: "Optional[Log]" = {
            "timestamp": timestamp,
            "trace_id": trace_id,
            "level": str(level),
            "severity_number": level.severity_number,
            "body": format_message(message, values),
            "attributes": log_attributes,
        }

        before_send_log = options["before_send_log"]
        if before_send_log is not None:
            log = before_send_log(log)

        if log is None:
            logger.info(
                'Log will be discarded because the "before_send_log" callback returned "None".'
            )
            return False

        self._logs.append(log)

        if len(self._logs) >= LOGS_BUFFER_SIZE:
            self.flush(hub)

        return True

    def flush(self, hub: "Optional[Hub]" = None) -> "Optional[str]":
        """Captures all buffered logs as one event and returns its id."""
        if not self._logs:
            return None

        if hub is None:
            hub = self._hub_provider()

        event = Event.create_logs()
        event.logs = self._logs
        self._logs = []

        return hub.capture_event(event)
