from copy import copy
from collections import deque
from enum import Enum
from itertools import chain

from sentry_core.consts import DEFAULT_MAX_BREADCRUMBS
from sentry_core.event import EventType
from sentry_core.feature_flags import FlagBuffer
from sentry_core.tracing import (
    DynamicSamplingContext,
    PropagationContext,
    Transaction,
)
from sentry_core.utils import logger

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any
    from typing import Deque
    from typing import Dict
    from typing import List
    from typing import Mapping
    from typing import Optional

    from sentry_core._types import (
        Breadcrumb,
        EventProcessor,
        Hint,
        LogLevelStr,
    )
    from sentry_core.event import Event
    from sentry_core.tracing import Span


global_event_processors: "List[EventProcessor]" = []


def add_global_event_processor(processor: "EventProcessor") -> None:
    """Registers a processor that runs on every event, before the processors
    of the scope."""
    global_event_processors.append(processor)


class ScopeType(Enum):
    CURRENT = "current"
    ISOLATION = "isolation"
    GLOBAL = "global"
    MERGED = "merged"


class Scope:
    """The scope holds extra information that should be sent with all
    events that belong to it.
    """

    __slots__ = (
        "_level",
        "_fingerprint",
        "_user",
        "_tags",
        "_contexts",
        "_extras",
        "_breadcrumbs",
        "_flags",
        "_event_processors",
        "_span",
        "_transaction",
        "_propagation_context",
        "_type",
    )

    def __init__(self, ty: "Optional[ScopeType]" = None) -> None:
        self._type = ty
        self._event_processors: "List[EventProcessor]" = []

        self.clear()

    def __copy__(self) -> "Scope":
        """
        Returns a copy of this scope.
        This also creates a copy of all referenced data structures.
        """
        rv: "Scope" = object.__new__(self.__class__)

        rv._type = self._type
        rv._level = self._level
        rv._fingerprint = list(self._fingerprint)
        rv._user = self._user

        rv._tags = self._tags.copy()
        rv._contexts = self._contexts.copy()
        rv._extras = self._extras.copy()

        rv._breadcrumbs = copy(self._breadcrumbs)
        rv._flags = copy(self._flags) if self._flags is not None else None
        rv._event_processors = self._event_processors.copy()

        rv._span = self._span
        rv._transaction = self._transaction
        rv._propagation_context = self._propagation_context

        return rv

    def fork(self) -> "Scope":
        """Returns a fork of this scope."""
        return copy(self)

    @property
    def type(self) -> "Optional[ScopeType]":
        return self._type

    def clear(self) -> None:
        """Clears the entire scope. The type of the scope is kept."""
        self._level: "Optional[LogLevelStr]" = None
        self._fingerprint: "List[str]" = []
        self._user: "Optional[Dict[str, Any]]" = None

        self._tags: "Dict[str, Any]" = {}
        self._contexts: "Dict[str, Dict[str, Any]]" = {}
        self._extras: "Dict[str, Any]" = {}

        self.clear_breadcrumbs()
        self._flags: "Optional[FlagBuffer]" = None
        del self._event_processors[:]

        self._span: "Optional[Span]" = None
        self._transaction: "Optional[Transaction]" = None

        self._propagation_context = PropagationContext()

    def set_level(self, value: "LogLevelStr") -> None:
        """
        Sets the level for the scope.

        :param value: The level to set.
        """
        self._level = value

    def set_fingerprint(self, value: "List[str]") -> None:
        """Sets the fingerprint used to group events of this scope."""
        self._fingerprint = list(value)

    def set_user(self, value: "Optional[Dict[str, Any]]") -> None:
        """Sets a user for the scope."""
        self._user = value

    @property
    def span(self) -> "Optional[Span]":
        """Get/set current tracing span or transaction."""
        return self._span

    @span.setter
    def span(self, span: "Optional[Span]") -> None:
        self.set_span(span)

    def set_span(self, span: "Optional[Span]") -> None:
        self._span = span
        if span is None:
            self._transaction = None
        elif isinstance(span, Transaction):
            self._transaction = span

    @property
    def transaction(self) -> "Optional[Transaction]":
        """Return the transaction (root span) in the scope, if any."""
        return self._transaction

    @property
    def propagation_context(self) -> "PropagationContext":
        return self._propagation_context

    def set_propagation_context(self, context: "PropagationContext") -> None:
        self._propagation_context = context

    def set_tag(self, key: str, value: "Any") -> None:
        """
        Sets a tag for a key to a specific value.

        :param key: Key of the tag to set.

        :param value: Value of the tag to set.
        """
        self._tags[key] = value

    def set_tags(self, tags: "Mapping[str, object]") -> None:
        """Sets multiple tags at once. `scope.set_tags({})` is a no-op."""
        self._tags.update(tags)

    def remove_tag(self, key: str) -> None:
        """
        Removes a specific tag.

        :param key: Key of the tag to remove.
        """
        self._tags.pop(key, None)

    def set_context(
        self,
        key: str,
        value: "Dict[str, Any]",
    ) -> None:
        """
        Binds a context at a certain key to a specific value.
        """
        self._contexts[key] = value

    def remove_context(
        self,
        key: str,
    ) -> None:
        """Removes a context."""
        self._contexts.pop(key, None)

    def set_extra(
        self,
        key: str,
        value: "Any",
    ) -> None:
        """Sets an extra key to a specific value."""
        self._extras[key] = value

    def remove_extra(
        self,
        key: str,
    ) -> None:
        """Removes a specific extra key."""
        self._extras.pop(key, None)

    def clear_breadcrumbs(self) -> None:
        """Clears breadcrumb buffer."""
        self._breadcrumbs: "Deque[Breadcrumb]" = deque()

    def add_breadcrumb(
        self,
        crumb: "Breadcrumb",
        max_breadcrumbs: int = DEFAULT_MAX_BREADCRUMBS,
    ) -> None:
        """
        Adds a breadcrumb, evicting the oldest ones beyond `max_breadcrumbs`.

        Callbacks such as `before_breadcrumb` are applied by the hub before
        the breadcrumb ends up here.
        """
        self._breadcrumbs.append(crumb)

        while len(self._breadcrumbs) > max_breadcrumbs:
            self._breadcrumbs.popleft()

    @property
    def breadcrumbs(self) -> "List[Breadcrumb]":
        return list(self._breadcrumbs)

    @property
    def flags(self) -> "FlagBuffer":
        if self._flags is None:
            self._flags = FlagBuffer()
        return self._flags

    def add_feature_flag(self, flag: str, result: bool) -> None:
        """Records a flag evaluation on the scope and on its active span."""
        self.flags.set(flag, result)
        if self._span is not None:
            self._span.set_flag(flag, result)

    def add_event_processor(
        self,
        func: "EventProcessor",
    ) -> None:
        """Register a scope local event processor on the scope.

        :param func: This function behaves like `before_send.`
        """
        self._event_processors.append(func)

    def get_trace_context(self) -> "Dict[str, Any]":
        """
        Returns the Sentry "trace" context from the active span or, without
        one, from the propagation context.
        """
        if self._span is not None:
            return self._span.get_trace_context()

        return self._propagation_context.get_trace_context()

    def _apply_level_to_event(self, event: "Event") -> None:
        if self._level is not None:
            event.level = self._level

    def _apply_fingerprint_to_event(self, event: "Event") -> None:
        if self._fingerprint:
            event.fingerprint = event.fingerprint + self._fingerprint

    def _apply_tags_to_event(self, event: "Event") -> None:
        if self._tags:
            tags = dict(self._tags)
            tags.update(event.tags)
            event.tags = tags

    def _apply_extra_to_event(self, event: "Event") -> None:
        if self._extras:
            extra = dict(self._extras)
            extra.update(event.extra)
            event.extra = extra

    def _apply_user_to_event(self, event: "Event") -> None:
        if self._user is None:
            return

        user = dict(self._user)
        if event.user is not None:
            user.update(event.user)
        event.user = user

    def _apply_contexts_to_event(self, event: "Event") -> None:
        if self._contexts:
            contexts = dict(self._contexts)
            contexts.update(event.contexts)
            event.contexts = contexts

    def _apply_flags_to_event(self, event: "Event") -> None:
        if self._flags:
            event.contexts["flags"] = {"values": self._flags.get()}

    def _apply_breadcrumbs_to_event(self, event: "Event") -> None:
        if not event.breadcrumbs:
            event.breadcrumbs = list(self._breadcrumbs)

    def _apply_trace_to_event(
        self, event: "Event", options: "Optional[Dict[str, Any]]"
    ) -> None:
        if "trace" not in event.contexts:
            event.contexts["trace"] = self.get_trace_context()

        # Transactions bring their own sampling context
        if event.get_sdk_metadata("dynamic_sampling_context") is not None:
            return

        if self._span is not None:
            if self._transaction is not None:
                event.set_sdk_metadata(
                    "dynamic_sampling_context",
                    self._transaction.get_dynamic_sampling_context(options),
                )
            return

        dynamic_sampling_context = self._propagation_context.dynamic_sampling_context
        if dynamic_sampling_context is None and options is not None:
            dynamic_sampling_context = DynamicSamplingContext.from_options(
                options, self._propagation_context.trace_id
            )

        if dynamic_sampling_context is not None:
            event.set_sdk_metadata("dynamic_sampling_context", dynamic_sampling_context)

    def _drop(self, cause: "Any", ty: str) -> "Optional[Any]":
        logger.info("%s (%s) dropped event", ty, cause)
        return None

    def run_event_processors(self, event: "Event", hint: "Hint") -> "Optional[Event]":
        """
        Runs the event processors on the event and returns the modified event.
        Exceptions raised by a processor are not caught.
        """
        event_processors = chain(global_event_processors, self._event_processors)
        for event_processor in event_processors:
            new_event = event_processor(event, hint)
            if new_event is None:
                return self._drop(event_processor, "event processor")
            event = new_event

        return event

    def apply_to_event(
        self,
        event: "Event",
        hint: "Optional[Hint]" = None,
        options: "Optional[Dict[str, Any]]" = None,
    ) -> "Optional[Event]":
        """Applies the information contained on the scope to the given event."""
        is_transaction = event.type == EventType.TRANSACTION
        is_check_in = event.type == EventType.CHECK_IN

        if hint is None:
            hint = {}

        if not is_check_in:
            self._apply_level_to_event(event)
            self._apply_fingerprint_to_event(event)
            self._apply_tags_to_event(event)
            self._apply_extra_to_event(event)
            self._apply_user_to_event(event)
            self._apply_contexts_to_event(event)
            self._apply_flags_to_event(event)

        if not is_transaction and not is_check_in:
            self._apply_breadcrumbs_to_event(event)

        self._apply_trace_to_event(event, options)

        if is_check_in:
            # Check-ins only support the trace context, strip all others
            event.contexts = {"trace": event.contexts.get("trace", {})}

        return self.run_event_processors(event, hint)

    def update_from_scope(self, scope: "Scope") -> None:
        """Update the scope with another scope's data.

        Fingerprints and breadcrumbs are concatenated, users are merged key
        by key. The propagation context of a current scope is not taken over.
        """
        if scope._level is not None:
            self._level = scope._level
        if scope._fingerprint:
            self._fingerprint = self._fingerprint + scope._fingerprint
        if scope._user is not None:
            user = dict(self._user or ())
            user.update(scope._user)
            self._user = user
        if scope._tags:
            self._tags.update(scope._tags)
        if scope._contexts:
            self._contexts.update(scope._contexts)
        if scope._extras:
            self._extras.update(scope._extras)
        if scope._breadcrumbs:
            self._breadcrumbs.extend(scope._breadcrumbs)
        if scope._flags is not None:
            for flag in scope._flags.get():
                self.flags.set(flag["flag"], flag["result"])
        if scope._event_processors:
            self._event_processors.extend(scope._event_processors)
        if scope._span is not None:
            self._span = scope._span
            self._transaction = scope._transaction
        if (
            scope._propagation_context is not None
            and scope._type != ScopeType.CURRENT
        ):
            self._propagation_context = scope._propagation_context

    def sort_breadcrumbs_by_timestamp(self) -> None:
        """Orders the breadcrumbs by timestamp, as merging scopes interleaves
        them."""
        if len(self._breadcrumbs) > 1:
            self._breadcrumbs = deque(
                sorted(
                    self._breadcrumbs,
                    key=lambda crumb: crumb.get("timestamp") or 0,
                )
            )

    def trim_breadcrumbs(self, max_breadcrumbs: int) -> None:
        """Keeps only the newest `max_breadcrumbs` breadcrumbs."""
        if max_breadcrumbs <= 0:
            self.clear_breadcrumbs()
            return

        while len(self._breadcrumbs) > max_breadcrumbs:
            self._breadcrumbs.popleft()

    def __repr__(self) -> str:
        return "<%s id=%s type=%s>" % (
            self.__class__.__name__,
            hex(id(self)),
            self._type,
        )
