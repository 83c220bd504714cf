from collections import deque

from sentry_core.consts import METRICS_BUFFER_SIZE
from sentry_core.event import Event
from sentry_core.utils import logger, now, safe_repr

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any
    from typing import Callable
    from typing import Deque
    from typing import Dict
    from typing import Optional

    from sentry_core._types import Attributes, Metric, MetricType
    from sentry_core.hub import Hub


class MetricsAggregator:
    """Keeps the latest metrics of one runtime context in a ring buffer.
    Once full, the oldest metric is overwritten."""

    def __init__(self, hub_provider: "Callable[[], Hub]") -> None:
        self._hub_provider = hub_provider
        self._metrics: "Deque[Metric]" = deque(maxlen=METRICS_BUFFER_SIZE)

    def __len__(self) -> int:
        return len(self._metrics)

    def count(
        self,
        name: str,
        value: float,
        unit: "Optional[str]" = None,
        attributes: "Optional[Dict[str, Any]]" = None,
    ) -> bool:
        return self._add("counter", name, value, unit, attributes)

    def gauge(
        self,
        name: str,
        value: float,
        unit: "Optional[str]" = None,
        attributes: "Optional[Dict[str, Any]]" = None,
    ) -> bool:
        return self._add("gauge", name, value, unit, attributes)

    def distribution(
        self,
        name: str,
        value: float,
        unit: "Optional[str]" = None,
        attributes: "Optional[Dict[str, Any]]" = None,
    ) -> bool:
        return self._add("distribution", name, value, unit, attributes)

    def _add(
        self,
        metric_type: "MetricType",
        name: str,
        value: float,
        unit: "Optional[str]",
        attributes: "Optional[Dict[str, Any]]",
    ) -> bool:
        hub = self._hub_provider()
        client = hub.get_client()
        if client is None:
            return False

        options = client.get_options()
        if not options["enable_metrics"]:
            return False

        attrs: "Attributes" = {}
        for k, v in (attributes or {}).items():
            attrs[k] = (
                v
                if (
                    isinstance(v, str)
                    or isinstance(v, int)
                    or isinstance(v, bool)
                    or isinstance(v, float)
                )
                else safe_repr(v)
            )

        attrs.setdefault("sentry.sdk.name", client.sdk_identifier)
        attrs.setdefault("sentry.sdk.version", client.sdk_version)
        attrs.setdefault("sentry.environment", options["environment"])
        if options["release"] is not None:
            attrs.setdefault("sentry.release", options["release"])

        scope = hub.get_scope()
        span = scope.span
        if span is not None:
            trace_id = span.trace_id
            span_id: "Optional[str]" = span.span_id
        else:
            trace_id = scope.propagation_context.trace_id
            span_id = scope.propagation_context.span_id

        metric: "Optional[Metric]" = {
            "timestamp": now(),
            "trace_id": trace_id,
            "span_id": span_id,
            "name": name,
            "type": metric_type,
            "value": float(value),
            "unit": unit,
            "attributes": attrs,
        }

        before_send_metric = options["before_send_metric"]
        if before_send_metric is not None:
            metric = before_send_metric(metric)

        if metric is None:
            logger.info("before_send_metric dropped metric (%s)", name)
            return False

        self._metrics.append(metric)
        return True

    def flush(self, hub: "Optional[Hub]" = None) -> "Optional[str]":
        """Captures all buffered metrics as one event and returns its id."""
        if not self._metrics:
            return None

        if hub is None:
            hub = self._hub_provider()

        event = Event.create_metrics()
        event.metrics = list(self._metrics)
        self._metrics.clear()

        return hub.capture_event(event)
