from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types import TracebackType
    from typing import Any
    from typing import Callable
    from typing import Dict
    from typing import Optional
    from typing import Type
    from typing import Union

    from typing_extensions import Literal
    from typing_extensions import TypedDict

    from sentry_core.event import Event

    # "critical" is an alias of "fatal"
    LogLevelStr = Literal["fatal", "critical", "error", "warning", "info", "debug"]

    # Billing categories a rate limit can apply to
    EventDataCategory = Literal[
        "all",
        "error",
        "transaction",
        "monitor",
        "log_item",
        "log_byte",
        "trace_metric",
        "metric_bucket",
        "profile",
        "profile_chunk",
        "span",
        "attachment",
        "default",
    ]

    ExcInfo = Union[
        tuple[Type[BaseException], BaseException, Optional[TracebackType]],
        tuple[None, None, None],
    ]

    Hint = Dict[str, Any]

    # A breadcrumb as the protocol expects it: type, category, level, message,
    # timestamp and data are understood.
    Breadcrumb = Dict[str, Any]
    BreadcrumbHint = Dict[str, Any]

    AttributeValue = Union[str, bool, float, int]
    Attributes = Dict[str, AttributeValue]

    Log = TypedDict(
        "Log",
        {
            "timestamp": float,
            "trace_id": Optional[str],
            "level": str,
            "severity_number": int,
            "body": str,
            "attributes": Attributes,
        },
    )

    MetricType = Literal["counter", "gauge", "distribution"]

    Metric = TypedDict(
        "Metric",
        {
            "timestamp": float,
            "trace_id": Optional[str],
            "span_id": Optional[str],
            "name": str,
            "type": MetricType,
            "value": float,
            "unit": Optional[str],
            "attributes": Attributes,
        },
    )

    EventProcessor = Callable[[Event, Hint], Optional[Event]]
    BreadcrumbProcessor = Callable[[Breadcrumb, BreadcrumbHint], Optional[Breadcrumb]]
    LogProcessor = Callable[[Log], Optional[Log]]
    MetricProcessor = Callable[[Metric], Optional[Metric]]
