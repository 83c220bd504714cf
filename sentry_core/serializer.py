from sentry_core import envelope_items
from sentry_core.envelope import Envelope
from sentry_core.event import EventType
from sentry_core.utils import format_timestamp

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any
    from typing import Dict

    from sentry_core.event import Event


class PayloadSerializer:
    """Turns events into the envelope wire format.

    The envelope header carries the event id, the time the envelope was
    serialized, the DSN, the SDK and, when the event has a dynamic sampling
    context with entries, the ``trace`` header. It is followed by the items
    for the event type.
    """

    def __init__(self, options: "Dict[str, Any]") -> None:
        self.options = options

    def _envelope_headers(self, event: "Event") -> "Dict[str, Any]":
        headers: "Dict[str, Any]" = {
            "event_id": event.event_id,
            "sent_at": format_timestamp(),
        }

        dsn = self.options.get("dsn")
        if dsn:
            headers["dsn"] = str(dsn)

        headers["sdk"] = {
            "name": event.sdk_identifier,
            "version": event.sdk_version,
        }

        dynamic_sampling_context = event.get_sdk_metadata("dynamic_sampling_context")
        if dynamic_sampling_context is not None:
            entries = dynamic_sampling_context.get_entries()
            if entries:
                headers["trace"] = entries

        return headers

    def to_envelope(self, event: "Event") -> "Envelope":
        envelope = Envelope(headers=self._envelope_headers(event))

        if event.type == EventType.TRANSACTION:
            if self.options.get("trace_lifecycle") == "stream":
                spans = envelope_items.spans_item(event)
                envelope.add_item(
                    envelope_items.transaction_item(event, include_spans=False)
                )
                if spans is not None:
                    envelope.add_item(spans)
            else:
                envelope.add_item(envelope_items.transaction_item(event))

            profile = envelope_items.profile_item(event)
            if profile is not None:
                envelope.add_item(profile)
        elif event.type == EventType.CHECK_IN:
            envelope.add_item(envelope_items.check_in_item(event))
        elif event.type == EventType.LOG:
            envelope.add_item(envelope_items.logs_item(event))
        elif event.type == EventType.METRIC:
            envelope.add_item(envelope_items.metrics_item(event))
        else:
            envelope.add_item(envelope_items.event_item(event))

        return envelope

    def serialize(self, event: "Event") -> bytes:
        return self.to_envelope(event).serialize()
