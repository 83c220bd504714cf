from enum import Enum

from sentry_core.consts import SDK_NAME, VERSION
from sentry_core.utils import now, uuid4_hex

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any
    from typing import Dict
    from typing import List
    from typing import Optional

    from sentry_core._types import Breadcrumb, LogLevelStr, Log, Metric
    from sentry_core.crons import CheckIn


class EventType(str, Enum):
    """The kind of payload an event carries. The value doubles as the
    envelope item type."""

    EVENT = "event"
    TRANSACTION = "transaction"
    CHECK_IN = "check_in"
    LOG = "log"
    METRIC = "metric"
    PROFILE = "profile"
    PROFILE_CHUNK = "profile_chunk"
    ATTACHMENT = "attachment"

    def __str__(self) -> str:
        return self.value


class Event:
    """One reportable occurrence.

    Events are created through the ``create_*`` factories, enriched by the
    scope, the integrations and the ``before_send`` callbacks, and then handed
    to the transport. Empty fields are left out of the wire payload.
    """

    __slots__ = (
        "event_id",
        "type",
        "timestamp",
        "start_timestamp",
        "level",
        "logger",
        "transaction",
        "server_name",
        "release",
        "dist",
        "environment",
        "message",
        "message_params",
        "message_formatted",
        "fingerprint",
        "modules",
        "tags",
        "extra",
        "user",
        "contexts",
        "breadcrumbs",
        "request",
        "exceptions",
        "stacktrace",
        "spans",
        "check_in",
        "logs",
        "metrics",
        "sdk_identifier",
        "sdk_version",
        "_sdk_metadata",
    )

    def __init__(
        self,
        event_id: "Optional[str]" = None,
        type: "EventType" = EventType.EVENT,
    ) -> None:
        self.event_id: str = event_id or uuid4_hex()
        self.type = type
        self.timestamp: float = now()
        self.start_timestamp: "Optional[float]" = None
        self.level: "Optional[LogLevelStr]" = None
        self.logger: "Optional[str]" = None
        self.transaction: "Optional[str]" = None
        self.server_name: "Optional[str]" = None
        self.release: "Optional[str]" = None
        self.dist: "Optional[str]" = None
        self.environment: "Optional[str]" = None
        self.message: "Optional[str]" = None
        self.message_params: "List[Any]" = []
        self.message_formatted: "Optional[str]" = None
        self.fingerprint: "List[str]" = []
        self.modules: "Dict[str, str]" = {}
        self.tags: "Dict[str, str]" = {}
        self.extra: "Dict[str, Any]" = {}
        self.user: "Optional[Dict[str, Any]]" = None
        self.contexts: "Dict[str, Dict[str, Any]]" = {}
        self.breadcrumbs: "List[Breadcrumb]" = []
        self.request: "Dict[str, Any]" = {}
        self.exceptions: "List[Dict[str, Any]]" = []
        self.stacktrace: "Optional[Dict[str, Any]]" = None
        self.spans: "List[Dict[str, Any]]" = []
        self.check_in: "Optional[CheckIn]" = None
        self.logs: "List[Log]" = []
        self.metrics: "List[Metric]" = []
        self.sdk_identifier: str = SDK_NAME
        self.sdk_version: str = VERSION
        self._sdk_metadata: "Dict[str, Any]" = {}

    @classmethod
    def create_event(cls, event_id: "Optional[str]" = None) -> "Event":
        return cls(event_id, EventType.EVENT)

    @classmethod
    def create_transaction(cls, event_id: "Optional[str]" = None) -> "Event":
        return cls(event_id, EventType.TRANSACTION)

    @classmethod
    def create_check_in(cls, event_id: "Optional[str]" = None) -> "Event":
        return cls(event_id, EventType.CHECK_IN)

    @classmethod
    def create_logs(cls, event_id: "Optional[str]" = None) -> "Event":
        return cls(event_id, EventType.LOG)

    @classmethod
    def create_metrics(cls, event_id: "Optional[str]" = None) -> "Event":
        return cls(event_id, EventType.METRIC)

    def get_sdk_metadata(self, name: str) -> "Any":
        return self._sdk_metadata.get(name)

    def set_sdk_metadata(self, name: str, data: "Any") -> None:
        self._sdk_metadata[name] = data

    def get_trace_id(self) -> "Optional[str]":
        trace = self.contexts.get("trace")
        if trace is None:
            return None
        return trace.get("trace_id")

    def __repr__(self) -> str:
        return "<%s id=%s type=%s>" % (
            self.__class__.__name__,
            self.event_id,
            self.type,
        )
