"""
Builders turning an :py:class:`sentry_core.event.Event` into envelope items.

Every body is assembled field by field: a field whose value is empty or
absent is left out of the payload instead of being sent as ``null``.
"""

from sentry_core.envelope import Item, PayloadRef
from sentry_core.utils import format_message, safe_repr

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any
    from typing import Dict
    from typing import List
    from typing import Optional

    from sentry_core._types import Breadcrumb, Log, Metric
    from sentry_core.event import Event


PLATFORM = "python"

LOG_CONTENT_TYPE = "application/vnd.sentry.items.log+json"
TRACE_METRIC_CONTENT_TYPE = "application/vnd.sentry.items.trace-metric+json"
SPAN_CONTENT_TYPE = "application/vnd.sentry.items.span.v2+json"

EMPTY_TRACE_ID = "00000000000000000000000000000000"


def format_attribute(value: "Any") -> "Dict[str, Any]":
    """Wraps an attribute value into its typed wire representation."""
    if isinstance(value, bool):
        return {"type": "boolean", "value": value}
    if isinstance(value, int):
        return {"type": "integer", "value": value}
    if isinstance(value, float):
        return {"type": "double", "value": value}
    if isinstance(value, str):
        return {"type": "string", "value": value}
    return {"type": "string", "value": safe_repr(value)}


def serialize_frame(frame: "Dict[str, Any]") -> "Dict[str, Any]":
    rv: "Dict[str, Any]" = {
        "filename": frame.get("filename"),
        "lineno": frame.get("lineno"),
        "in_app": bool(frame.get("in_app", False)),
    }

    for key in ("abs_path", "module", "function", "raw_function"):
        if frame.get(key) is not None:
            rv[key] = frame[key]

    if frame.get("pre_context"):
        rv["pre_context"] = frame["pre_context"]

    if frame.get("context_line") is not None:
        rv["context_line"] = frame["context_line"]

    if frame.get("post_context"):
        rv["post_context"] = frame["post_context"]

    if frame.get("vars"):
        rv["vars"] = frame["vars"]

    return rv


def serialize_stacktrace(stacktrace: "Dict[str, Any]") -> "Dict[str, Any]":
    return {
        "frames": [serialize_frame(frame) for frame in stacktrace.get("frames") or ()]
    }


def serialize_exception(exception: "Dict[str, Any]") -> "Dict[str, Any]":
    rv: "Dict[str, Any]" = {
        "type": exception.get("type"),
        "value": exception.get("value"),
    }

    if exception.get("module") is not None:
        rv["module"] = exception["module"]

    if exception.get("stacktrace") is not None:
        rv["stacktrace"] = serialize_stacktrace(exception["stacktrace"])

    mechanism = exception.get("mechanism")
    if mechanism is not None:
        rv["mechanism"] = {
            "type": mechanism.get("type", "generic"),
            "handled": mechanism.get("handled", True),
        }
        if mechanism.get("data"):
            rv["mechanism"]["data"] = mechanism["data"]

    return rv


def serialize_breadcrumb(crumb: "Breadcrumb") -> "Dict[str, Any]":
    rv: "Dict[str, Any]" = {
        "type": crumb.get("type") or "default",
        "category": crumb.get("category") or "default",
        "level": crumb.get("level") or "info",
        "timestamp": crumb.get("timestamp"),
    }

    if crumb.get("message") is not None:
        rv["message"] = crumb["message"]

    if crumb.get("data"):
        rv["data"] = crumb["data"]

    return rv


def _serialize_message(event: "Event") -> "Any":
    if not event.message_params:
        return event.message

    formatted = event.message_formatted
    if formatted is None:
        formatted = format_message(event.message or "", event.message_params)

    return {
        "message": event.message,
        "params": event.message_params,
        "formatted": formatted,
    }


def event_to_dict(event: "Event") -> "Dict[str, Any]":
    """Returns the wire payload of an error or transaction event."""
    rv: "Dict[str, Any]" = {
        "timestamp": event.timestamp,
        "platform": PLATFORM,
        "sdk": {
            "name": event.sdk_identifier,
            "version": event.sdk_version,
        },
    }

    if event.start_timestamp is not None:
        rv["start_timestamp"] = event.start_timestamp

    if event.level is not None:
        rv["level"] = str(event.level)

    for key in (
        "logger",
        "transaction",
        "server_name",
        "release",
        "dist",
        "environment",
    ):
        value = getattr(event, key)
        if value is not None:
            rv[key] = value

    for key in ("fingerprint", "modules", "extra", "tags"):
        value = getattr(event, key)
        if value:
            rv[key] = value

    if event.user:
        rv["user"] = event.user

    if event.contexts:
        rv["contexts"] = event.contexts

    if event.breadcrumbs:
        rv["breadcrumbs"] = {
            "values": [serialize_breadcrumb(crumb) for crumb in event.breadcrumbs]
        }

    if event.request:
        rv["request"] = event.request

    if event.message is not None:
        rv["message"] = _serialize_message(event)

    if event.exceptions:
        rv["exception"] = {
            "values": [
                serialize_exception(exception)
                for exception in reversed(event.exceptions)
            ]
        }

    if event.stacktrace is not None:
        rv["stacktrace"] = serialize_stacktrace(event.stacktrace)

    return rv


def event_item(event: "Event") -> "Item":
    return Item(
        type="event",
        content_type="application/json",
        payload=PayloadRef(json=event_to_dict(event)),
    )


def transaction_item(event: "Event", include_spans: bool = True) -> "Item":
    payload = event_to_dict(event)
    if include_spans and event.spans:
        payload["spans"] = event.spans

    transaction_metadata = event.get_sdk_metadata("transaction_metadata")
    if transaction_metadata:
        payload["transaction_info"] = transaction_metadata

    return Item(
        type="transaction",
        content_type="application/json",
        payload=PayloadRef(json=payload),
    )


def profile_item(event: "Event") -> "Optional[Item]":
    profile = event.get_sdk_metadata("profile")
    if profile is None:
        return None

    payload = profile.get_formatted_data(event)
    if not payload:
        return None

    return Item(
        type="profile",
        content_type="application/json",
        payload=PayloadRef(json=payload),
    )


def check_in_item(event: "Event") -> "Item":
    payload: "Dict[str, Any]" = {}

    check_in = event.check_in
    if check_in is not None:
        payload["check_in_id"] = check_in.id
        payload["monitor_slug"] = check_in.monitor_slug
        payload["status"] = str(check_in.status)

        for key in ("duration", "release", "environment"):
            value = getattr(check_in, key)
            if value is not None:
                payload[key] = value

        if check_in.monitor_config is not None:
            payload["monitor_config"] = check_in.monitor_config.to_dict()

        trace = event.contexts.get("trace")
        if trace:
            payload["contexts"] = {"trace": trace}

    return Item(
        type="check_in",
        content_type="application/json",
        payload=PayloadRef(json=payload),
    )


def _log_to_transport_format(log: "Log") -> "Dict[str, Any]":
    return {
        "timestamp": log["timestamp"],
        "trace_id": log.get("trace_id") or EMPTY_TRACE_ID,
        "level": str(log["level"]),
        "body": log["body"],
        "attributes": {
            key: format_attribute(value)
            for key, value in log["attributes"].items()
            if value is not None
        },
    }


def logs_item(event: "Event") -> "Item":
    return Item(
        type="log",
        content_type=LOG_CONTENT_TYPE,
        headers={"item_count": len(event.logs)},
        payload=PayloadRef(
            json={"items": [_log_to_transport_format(log) for log in event.logs]}
        ),
    )


def _metric_to_transport_format(metric: "Metric") -> "Dict[str, Any]":
    rv: "Dict[str, Any]" = {
        "timestamp": metric["timestamp"],
        "trace_id": metric.get("trace_id") or EMPTY_TRACE_ID,
        "name": metric["name"],
        "value": metric["value"],
        "type": metric["type"],
        "attributes": {
            key: format_attribute(value)
            for key, value in metric["attributes"].items()
            if value is not None
        },
    }

    if metric.get("span_id") is not None:
        rv["span_id"] = metric["span_id"]

    if metric.get("unit") is not None:
        rv["unit"] = metric["unit"]

    return rv


def metrics_item(event: "Event") -> "Item":
    return Item(
        type="trace_metric",
        content_type=TRACE_METRIC_CONTENT_TYPE,
        headers={"item_count": len(event.metrics)},
        payload=PayloadRef(
            json={
                "items": [
                    _metric_to_transport_format(metric) for metric in event.metrics
                ]
            }
        ),
    )


def spans_item(event: "Event") -> "Optional[Item]":
    """Returns the spans of a transaction as a standalone span batch."""
    if not event.spans:
        return None

    os_context = event.contexts.get("os") or {}
    defaults = {
        "sentry.release": event.release,
        "sentry.environment": event.environment,
        "os.name": os_context.get("name"),
        "sentry.sdk.name": event.sdk_identifier,
        "sentry.sdk.version": event.sdk_version,
        "sentry.segment.name": event.transaction,
    }

    items: "List[Dict[str, Any]]" = []
    for span in event.spans:
        attributes = dict(span.get("data") or {})
        for key, value in defaults.items():
            attributes.setdefault(key, value)

        items.append(
            {
                "trace_id": span.get("trace_id"),
                "parent_span_id": span.get("parent_span_id"),
                "span_id": span.get("span_id"),
                "name": span.get("description") or span.get("op") or "",
                "status": "ok" if span.get("status") in (None, "ok") else "error",
                "is_remote": False,
                "kind": "server",
                "start_timestamp": span.get("start_timestamp"),
                "end_timestamp": span.get("timestamp"),
                "attributes": {
                    key: format_attribute(value)
                    for key, value in attributes.items()
                    if value is not None
                },
            }
        )

    return Item(
        type="span",
        content_type=SPAN_CONTENT_TYPE,
        headers={"item_count": len(items)},
        payload=PayloadRef(json={"items": items}),
    )
