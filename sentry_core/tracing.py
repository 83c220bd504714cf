from enum import Enum

from sentry_core.consts import SPANSTATUS
from sentry_core.event import Event
from sentry_core.utils import Dsn, now, span_id_hex, uuid4_hex

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any
    from typing import Dict
    from typing import List
    from typing import Optional

    import sentry_core


_FLAGS_CAPACITY = 10


class TransactionSource(str, Enum):
    COMPONENT = "component"
    CUSTOM = "custom"
    ROUTE = "route"
    TASK = "task"
    URL = "url"
    VIEW = "view"

    def __str__(self) -> str:
        return self.value


class PropagationContext:
    """
    The trace a scope belongs to when no span is active on it.
    """

    __slots__ = ("trace_id", "span_id", "parent_span_id", "dynamic_sampling_context")

    def __init__(
        self,
        trace_id: "Optional[str]" = None,
        span_id: "Optional[str]" = None,
        parent_span_id: "Optional[str]" = None,
        dynamic_sampling_context: "Optional[DynamicSamplingContext]" = None,
    ) -> None:
        self.trace_id = trace_id or uuid4_hex()
        self.span_id = span_id or span_id_hex()
        self.parent_span_id = parent_span_id
        self.dynamic_sampling_context = dynamic_sampling_context

    def get_trace_context(self) -> "Dict[str, Any]":
        rv = {
            "trace_id": self.trace_id,
            "span_id": self.span_id,
        }
        if self.parent_span_id is not None:
            rv["parent_span_id"] = self.parent_span_id
        return rv

    def __repr__(self) -> str:
        return "<PropagationContext trace_id=%s span_id=%s>" % (
            self.trace_id,
            self.span_id,
        )


class DynamicSamplingContext:
    """The trace level data that is sent along with events in the ``trace``
    envelope header."""

    def __init__(self, entries: "Optional[Dict[str, str]]" = None) -> None:
        self._entries: "Dict[str, str]" = dict(entries or {})
        self._frozen = False

    def set(self, key: str, value: "Optional[str]") -> None:
        if self._frozen or value is None:
            return
        self._entries[key] = value

    def get(self, key: str) -> "Optional[str]":
        return self._entries.get(key)

    def get_entries(self) -> "Dict[str, str]":
        return dict(self._entries)

    def has_entries(self) -> bool:
        return bool(self._entries)

    def freeze(self) -> None:
        self._frozen = True

    def is_frozen(self) -> bool:
        return self._frozen

    @classmethod
    def from_transaction(
        cls,
        transaction: "Transaction",
        options: "Optional[Dict[str, Any]]" = None,
    ) -> "DynamicSamplingContext":
        rv = cls()
        rv.set("trace_id", transaction.trace_id)
        if transaction.sample_rate is not None:
            rv.set("sample_rate", str(transaction.sample_rate))
        if transaction.sampled is not None:
            rv.set("sampled", "true" if transaction.sampled else "false")

        if transaction.source not in (TransactionSource.URL,):
            rv.set("transaction", transaction.name)

        if options is not None:
            dsn = options.get("dsn")
            if dsn:
                rv.set("public_key", Dsn(dsn).public_key)
            rv.set("release", options.get("release"))
            rv.set("environment", options.get("environment"))

        rv.freeze()
        return rv

    @classmethod
    def from_options(
        cls,
        options: "Dict[str, Any]",
        trace_id: str,
    ) -> "DynamicSamplingContext":
        """Builds the context of a trace no transaction of this process
        belongs to."""
        rv = cls()
        rv.set("trace_id", trace_id)

        dsn = options.get("dsn")
        if dsn:
            rv.set("public_key", Dsn(dsn).public_key)

        traces_sample_rate = options.get("traces_sample_rate")
        if traces_sample_rate is not None:
            rv.set("sample_rate", str(traces_sample_rate))

        rv.set("release", options.get("release"))
        rv.set("environment", options.get("environment"))

        rv.freeze()
        return rv


class Span:
    """A timed operation within a trace.

    A span knows its parent only through ``parent_span_id``. Finished spans
    are recorded into the list they were handed on creation, which the
    transaction owning the trace shares with all of its descendants.
    """

    __slots__ = (
        "trace_id",
        "span_id",
        "parent_span_id",
        "same_process_as_parent",
        "sampled",
        "op",
        "description",
        "status",
        "start_timestamp",
        "timestamp",
        "_tags",
        "_data",
        "_recorder",
    )

    def __init__(
        self,
        trace_id: "Optional[str]" = None,
        span_id: "Optional[str]" = None,
        parent_span_id: "Optional[str]" = None,
        same_process_as_parent: bool = True,
        sampled: "Optional[bool]" = None,
        op: "Optional[str]" = None,
        description: "Optional[str]" = None,
        status: "Optional[str]" = None,
        start_timestamp: "Optional[float]" = None,
        recorder: "Optional[List[Span]]" = None,
    ) -> None:
        self.trace_id = trace_id or uuid4_hex()
        self.span_id = span_id or span_id_hex()
        self.parent_span_id = parent_span_id
        self.same_process_as_parent = same_process_as_parent
        self.sampled = sampled
        self.op = op
        self.description = description
        self.status = status
        self.start_timestamp: float = (
            start_timestamp if start_timestamp is not None else now()
        )
        self.timestamp: "Optional[float]" = None
        self._tags: "Dict[str, str]" = {}
        self._data: "Dict[str, Any]" = {}
        self._recorder = recorder

    def __repr__(self) -> str:
        return "<%s(op=%r, description=%r, trace_id=%r, span_id=%r, parent_span_id=%r, sampled=%r)>" % (
            self.__class__.__name__,
            self.op,
            self.description,
            self.trace_id,
            self.span_id,
            self.parent_span_id,
            self.sampled,
        )

    def start_child(self, **kwargs: "Any") -> "Span":
        """
        Start a sub-span from the current span or transaction.

        Takes the same arguments as the initializer of :py:class:`Span`. The
        trace id, sampling decision and recorder are inherited.
        """
        kwargs.setdefault("sampled", self.sampled)

        return Span(
            trace_id=self.trace_id,
            parent_span_id=self.span_id,
            recorder=self._recorder,
            **kwargs,
        )

    def set_tag(self, key: str, value: "Any") -> None:
        self._tags[key] = value

    def set_data(self, key: str, value: "Any") -> None:
        self._data[key] = value

    def set_flag(self, flag: str, result: bool) -> None:
        key = "flag.evaluation." + flag
        flag_count = sum(1 for k in self._data if k.startswith("flag.evaluation."))
        if key in self._data or flag_count < _FLAGS_CAPACITY:
            self.set_data(key, result)

    def set_status(self, value: str) -> None:
        self.status = value

    def set_http_status(self, http_status: int) -> None:
        self.set_tag("http.status_code", str(http_status))
        self.set_data("http.response.status_code", http_status)

        if http_status < 400:
            self.set_status(SPANSTATUS.OK)
        elif http_status == 401:
            self.set_status(SPANSTATUS.UNAUTHENTICATED)
        elif http_status == 403:
            self.set_status(SPANSTATUS.PERMISSION_DENIED)
        elif http_status == 404:
            self.set_status(SPANSTATUS.NOT_FOUND)
        elif http_status == 429:
            self.set_status(SPANSTATUS.RESOURCE_EXHAUSTED)
        elif http_status < 500:
            self.set_status(SPANSTATUS.INVALID_ARGUMENT)
        elif http_status == 503:
            self.set_status(SPANSTATUS.UNAVAILABLE)
        else:
            self.set_status(SPANSTATUS.INTERNAL_ERROR)

    def is_success(self) -> bool:
        return self.status == SPANSTATUS.OK

    def is_finished(self) -> bool:
        return self.timestamp is not None

    def finish(
        self,
        hub: "Optional[sentry_core.Hub]" = None,
        end_timestamp: "Optional[float]" = None,
    ) -> "Optional[str]":
        if self.timestamp is not None:
            # This span is already finished, ignore.
            return None

        self.timestamp = end_timestamp if end_timestamp is not None else now()

        if self._recorder is not None:
            self._recorder.append(self)

        return None

    def to_json(self) -> "Dict[str, Any]":
        rv: "Dict[str, Any]" = {
            "trace_id": self.trace_id,
            "span_id": self.span_id,
            "parent_span_id": self.parent_span_id,
            "same_process_as_parent": self.same_process_as_parent,
            "op": self.op,
            "description": self.description,
            "start_timestamp": self.start_timestamp,
            "timestamp": self.timestamp,
        }

        if self.status:
            rv["status"] = self.status

        if self._tags:
            rv["tags"] = self._tags

        if self._data:
            rv["data"] = self._data

        return rv

    def get_trace_context(self) -> "Dict[str, Any]":
        rv: "Dict[str, Any]" = {
            "trace_id": self.trace_id,
            "span_id": self.span_id,
        }

        for key in ("parent_span_id", "op", "description", "status"):
            value = getattr(self, key)
            if value is not None:
                rv[key] = value

        if self._data:
            rv["data"] = self._data

        return rv


class Transaction(Span):
    """The root span of a trace captured by this process. Finishing it
    captures a transaction event with all finished descendants."""

    __slots__ = (
        "name",
        "source",
        "sample_rate",
        "_hub",
        "_profile",
        "_dynamic_sampling_context",
        "_contexts",
    )

    def __init__(
        self,
        name: str = "<unlabeled transaction>",
        source: "TransactionSource" = TransactionSource.CUSTOM,
        hub: "Optional[sentry_core.Hub]" = None,
        sample_rate: "Optional[float]" = None,
        **kwargs: "Any",
    ) -> None:
        kwargs.setdefault("recorder", [])
        Span.__init__(self, **kwargs)
        self.name = name
        self.source = source
        self.sample_rate = sample_rate
        self._hub = hub
        self._profile: "Optional[Any]" = None
        self._dynamic_sampling_context: "Optional[DynamicSamplingContext]" = None
        self._contexts: "Dict[str, Any]" = {}

    def __repr__(self) -> str:
        return "<%s(name=%r, op=%r, trace_id=%r, span_id=%r, parent_span_id=%r, sampled=%r, source=%r)>" % (
            self.__class__.__name__,
            self.name,
            self.op,
            self.trace_id,
            self.span_id,
            self.parent_span_id,
            self.sampled,
            self.source,
        )

    def set_profile(self, profile: "Any") -> None:
        """Attaches a profile. It must provide a ``get_formatted_data(event)``
        method returning the profile payload or ``None``."""
        self._profile = profile

    def set_context(self, key: str, value: "Dict[str, Any]") -> None:
        self._contexts[key] = value

    def get_dynamic_sampling_context(
        self, options: "Optional[Dict[str, Any]]" = None
    ) -> "DynamicSamplingContext":
        if self._dynamic_sampling_context is None:
            self._dynamic_sampling_context = DynamicSamplingContext.from_transaction(
                self, options
            )
        return self._dynamic_sampling_context

    def set_dynamic_sampling_context(self, dsc: "DynamicSamplingContext") -> None:
        self._dynamic_sampling_context = dsc

    @property
    def finished_spans(self) -> "List[Span]":
        return [
            span for span in (self._recorder or ()) if span.span_id != self.span_id
        ]

    def to_event(
        self, options: "Optional[Dict[str, Any]]" = None
    ) -> "Event":
        event = Event.create_transaction()
        event.transaction = self.name
        event.start_timestamp = self.start_timestamp
        event.timestamp = self.timestamp if self.timestamp is not None else now()
        event.tags = dict(self._tags)
        event.contexts = dict(self._contexts)
        event.contexts["trace"] = self.get_trace_context()
        event.spans = [span.to_json() for span in self.finished_spans]
        event.set_sdk_metadata(
            "dynamic_sampling_context", self.get_dynamic_sampling_context(options)
        )
        event.set_sdk_metadata("transaction_metadata", {"source": str(self.source)})

        if self._profile is not None:
            event.set_sdk_metadata("profile", self._profile)

        return event

    def finish(
        self,
        hub: "Optional[sentry_core.Hub]" = None,
        end_timestamp: "Optional[float]" = None,
    ) -> "Optional[str]":
        if self.timestamp is not None:
            # This transaction is already finished, ignore.
            return None

        hub = hub or self._hub
        Span.finish(self, hub, end_timestamp)

        if not self.sampled:
            return None

        if hub is None:
            return None

        client = hub.get_client()
        options = client.get_options() if client is not None else None

        return hub.capture_event(self.to_event(options))
