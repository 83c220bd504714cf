from enum import Enum

from sentry_core.consts import SDK_NAME, VERSION
from sentry_core.http_client import HttpClient
from sentry_core.ratelimit import RateLimiter
from sentry_core.serializer import PayloadSerializer
from sentry_core.utils import Dsn, logger

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any
    from typing import Callable
    from typing import Dict
    from typing import Optional
    from typing import Type

    from sentry_core.event import Event


class ResultStatus(Enum):
    """How the delivery of an event ended."""

    SUCCESS = "success"
    FAILED = "failed"
    INVALID = "invalid"
    RATE_LIMIT = "rate_limit"
    SKIPPED = "skipped"
    UNKNOWN = "unknown"

    @classmethod
    def from_http_status(cls, status_code: int) -> "ResultStatus":
        if 200 <= status_code < 300:
            return cls.SUCCESS

        if status_code == 429:
            return cls.RATE_LIMIT

        if 400 <= status_code < 500:
            return cls.INVALID

        if status_code >= 500:
            return cls.FAILED

        return cls.UNKNOWN

    def __str__(self) -> str:
        return self.value


class Result:
    """The status of a send, with the event attached when it went out."""

    __slots__ = ("status", "event")

    def __init__(
        self, status: "ResultStatus", event: "Optional[Event]" = None
    ) -> None:
        self.status = status
        self.event = event

    def __repr__(self) -> str:
        return "<Result status=%s event=%r>" % (self.status, self.event)


class Transport:
    """Baseclass for all transports.

    A transport is used to send an event to the server.
    """

    parsed_dsn: "Optional[Dsn]" = None

    def __init__(self, options: "Optional[Dict[str, Any]]" = None) -> None:
        self.options = options
        if options and options.get("dsn"):
            self.parsed_dsn = Dsn(options["dsn"])
        else:
            self.parsed_dsn = None

    def send(self, event: "Event") -> "Result":
        """
        This gets invoked with the event when it should be sent to the
        server.
        """
        raise NotImplementedError()

    def close(self, timeout: "Optional[float]" = None) -> "Result":
        """Waits at most `timeout` seconds for pending events. Synchronous
        transports have nothing pending."""
        return Result(ResultStatus.SUCCESS)


class HttpTransport(Transport):
    """The default HTTP transport. Sends are blocking and never retried."""

    def __init__(
        self,
        options: "Dict[str, Any]",
        http_client: "Optional[HttpClient]" = None,
        payload_serializer: "Optional[PayloadSerializer]" = None,
        rate_limiter: "Optional[RateLimiter]" = None,
    ) -> None:
        Transport.__init__(self, options)
        self.options = options

        if http_client is None and self.parsed_dsn is not None:
            http_client = HttpClient(options, SDK_NAME, VERSION)

        self.http_client = http_client
        self.payload_serializer = payload_serializer or PayloadSerializer(options)
        self.rate_limiter = rate_limiter or RateLimiter()

    def send(self, event: "Event") -> "Result":
        if self.parsed_dsn is None or self.http_client is None:
            logger.debug("No DSN configured, skipping event %s", event.event_id)
            return Result(ResultStatus.SKIPPED, event)

        if self.rate_limiter.is_rate_limited(event.type):
            logger.warning(
                'Rate limit exceeded for sending requests of type "%s".', event.type
            )
            return Result(ResultStatus.RATE_LIMIT)

        try:
            payload = self.payload_serializer.serialize(event)
        except Exception:
            logger.error(
                "Failed to serialize event %s", event.event_id, exc_info=True
            )
            return Result(ResultStatus.FAILED)

        logger.debug(
            "Sending event, type:%s level:%s event_id:%s project:%s host:%s",
            event.type,
            event.level or "null",
            event.event_id,
            self.parsed_dsn.project_id,
            self.parsed_dsn.host,
        )

        try:
            response = self.http_client.send_request(payload)
        except Exception as e:
            logger.warning("Failed to send the event to Sentry. Reason: %s", e)
            return Result(ResultStatus.FAILED)

        self.rate_limiter.handle_response(response)

        if response.is_success:
            return Result(ResultStatus.SUCCESS, event)

        if response.has_error():
            logger.warning(
                "Failed to send the event to Sentry. Reason: %s", response.error
            )

        return Result(ResultStatus.from_http_status(response.status_code))


class _FunctionTransport(Transport):
    def __init__(self, func: "Callable[[Event], None]") -> None:
        Transport.__init__(self)
        self._func = func

    def send(self, event: "Event") -> "Result":
        self._func(event)
        return Result(ResultStatus.SUCCESS, event)


def make_transport(options: "Dict[str, Any]") -> "Optional[Transport]":
    ref_transport = options["transport"]

    # If no transport is given, we use the http transport class
    if ref_transport is None:
        transport_cls: "Type[Transport]" = HttpTransport
    elif isinstance(ref_transport, Transport):
        return ref_transport
    elif isinstance(ref_transport, type) and issubclass(ref_transport, Transport):
        transport_cls = ref_transport
    elif callable(ref_transport):
        return _FunctionTransport(ref_transport)
    else:
        raise TypeError("Unsupported transport %r" % (ref_transport,))

    # if a transport class is given only instantiate it if the dsn is not
    # empty or None
    if options["dsn"]:
        return transport_cls(options)

    return None
