import itertools
from enum import Enum
from typing import TYPE_CHECKING

DEFAULT_MAX_BREADCRUMBS = 100
MAX_BREADCRUMBS_LIMIT = 100
DEFAULT_RATE_LIMIT_DELAY = 60
DEFAULT_TIMEOUT = 5
DEFAULT_SHUTDOWN_TIMEOUT = 2
LOGS_BUFFER_SIZE = 1000
METRICS_BUFFER_SIZE = 1000


class EndpointType(Enum):
    """
    The type of an endpoint. Only the envelope endpoint is supported, the enum
    keeps the url builder open for new endpoints.
    """

    ENVELOPE = "envelope"


class SPANSTATUS:
    """
    The status of a span or transaction, as understood by the product.
    """

    OK = "ok"
    CANCELLED = "cancelled"
    DEADLINE_EXCEEDED = "deadline_exceeded"
    INTERNAL_ERROR = "internal_error"
    INVALID_ARGUMENT = "invalid_argument"
    NOT_FOUND = "not_found"
    PERMISSION_DENIED = "permission_denied"
    RESOURCE_EXHAUSTED = "resource_exhausted"
    UNAUTHENTICATED = "unauthenticated"
    UNAVAILABLE = "unavailable"
    UNKNOWN_ERROR = "unknown_error"


if TYPE_CHECKING:
    import sentry_core

    from typing import Optional
    from typing import Callable
    from typing import Union
    from typing import List
    from typing import Type
    from typing import Any
    from typing import Sequence

    from sentry_core._types import (
        BreadcrumbProcessor,
        EventProcessor,
        LogProcessor,
        MetricProcessor,
    )


# This type exists to trick mypy and PyCharm into thinking `init` and `Client`
# take these arguments (even though they take opaque **kwargs)
class ClientConstructor:
    def __init__(
        self,
        dsn=None,  # type: Optional[str]
        *,
        max_breadcrumbs=DEFAULT_MAX_BREADCRUMBS,  # type: int
        release=None,  # type: Optional[str]
        environment=None,  # type: Optional[str]
        server_name=None,  # type: Optional[str]
        dist=None,  # type: Optional[str]
        shutdown_timeout=DEFAULT_SHUTDOWN_TIMEOUT,  # type: float
        integrations=[],  # type: Sequence[sentry_core.integrations.Integration]  # noqa: B006
        default_integrations=True,  # type: bool
        in_app_include=[],  # type: List[str]  # noqa: B006
        in_app_exclude=[],  # type: List[str]  # noqa: B006
        transport=None,  # type: Optional[Union[sentry_core.transport.Transport, Type[sentry_core.transport.Transport], Callable[..., Any]]]
        sample_rate=1.0,  # type: float
        traces_sample_rate=None,  # type: Optional[float]
        trace_lifecycle="static",  # type: str
        http_proxy=None,  # type: Optional[str]
        https_proxy=None,  # type: Optional[str]
        ca_certs=None,  # type: Optional[str]
        timeout=DEFAULT_TIMEOUT,  # type: float
        http_compression=True,  # type: bool
        ignore_errors=[],  # type: Sequence[Union[type, str]]  # noqa: B006
        before_send=None,  # type: Optional[EventProcessor]
        before_send_transaction=None,  # type: Optional[EventProcessor]
        before_breadcrumb=None,  # type: Optional[BreadcrumbProcessor]
        debug=False,  # type: bool
        attach_stacktrace=False,  # type: bool
        enable_logs=False,  # type: bool
        before_send_log=None,  # type: Optional[LogProcessor]
        enable_metrics=True,  # type: bool
        before_send_metric=None,  # type: Optional[MetricProcessor]
    ):
        # type: (...) -> None
        """Initialize the SDK with the given parameters. All parameters described here can be used in a call to `sentry_core.init()`.

        :param dsn: The DSN tells the SDK where to send the events. If this
            option is not set, the SDK will not send any data. It takes
            precedence over the `SENTRY_DSN` environment variable.

        :param max_breadcrumbs: How many breadcrumbs a scope keeps before the
            oldest ones are evicted. Must be between 0 and 100.

        :param release: The release, falls back to `SENTRY_RELEASE`.

        :param environment: The environment, falls back to `SENTRY_ENVIRONMENT`
            and then to `production`.

        :param sample_rate: The probability (0.0 to 1.0) an error event is sent.

        :param transport: A `Transport` instance, a `Transport` subclass or a
            callable receiving the event. When unset the HTTP transport is used.

        :param http_compression: Gzip envelope bodies before sending them.

        :param before_send: Called with every error event and its hint. Return
            `None` to drop the event.

        :param before_send_transaction: Like `before_send`, for transactions.

        :param before_breadcrumb: Called with every breadcrumb and its hint.
            Return `None` to drop the breadcrumb.

        :param trace_lifecycle: `static` embeds the spans of a transaction into
            its payload, `stream` sends them as a separate span batch item.

        :param enable_logs: Record structured logs through the logs aggregator.

        :param before_send_log: Called with every log record. Return `None` to
            drop the log.

        :param enable_metrics: Record metrics through the metrics aggregator.

        :param before_send_metric: Called with every metric. Return `None` to
            drop the metric.
        """
        pass


def _get_default_options():
    # type: () -> dict[str, Any]
    import inspect

    a = inspect.getfullargspec(ClientConstructor.__init__)
    defaults = a.defaults or ()
    kwonlydefaults = a.kwonlydefaults or {}

    return dict(
        itertools.chain(
            zip(a.args[-len(defaults) :], defaults),
            kwonlydefaults.items(),
        )
    )


DEFAULT_OPTIONS = _get_default_options()
del _get_default_options


VERSION = "1.0.0"
SDK_NAME = "sentry.python.core"
SDK_INFO = {
    "name": SDK_NAME,
    "version": VERSION,
}
