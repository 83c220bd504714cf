import random
import sys
from contextlib import contextmanager

from sentry_core.event import Event
from sentry_core.scope import Scope
from sentry_core.tracing import Transaction
from sentry_core.utils import (
    capture_internal_exceptions,
    logger,
    now,
)

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any
    from typing import Callable
    from typing import Generator
    from typing import List
    from typing import Optional
    from typing import Type
    from typing import TypeVar
    from typing import Union

    from sentry_core._types import Breadcrumb, BreadcrumbHint, Hint, LogLevelStr
    from sentry_core.client import Client
    from sentry_core.crons import CheckIn
    from sentry_core.integrations import Integration

    T = TypeVar("T")


class Layer:
    """A client paired with the scope it captures with."""

    __slots__ = ("client", "scope")

    def __init__(self, client: "Optional[Client]", scope: "Scope") -> None:
        self.client = client
        self.scope = scope

    def __repr__(self) -> str:
        return "<Layer client=%r scope=%r>" % (self.client, self.scope)


class Hub:
    """The hub wraps the concurrency management of the SDK.  It keeps a stack
    of layers, each binding a client to a scope.  The bottom layer is never
    popped.
    """

    def __init__(
        self,
        client: "Optional[Client]" = None,
        scope: "Optional[Scope]" = None,
    ) -> None:
        if scope is None:
            scope = Scope()

        self._stack: "List[Layer]" = [Layer(client, scope)]
        self._last_event_id: "Optional[str]" = None

    @property
    def client(self) -> "Optional[Client]":
        """Returns the current client on the hub."""
        return self._stack[-1].client

    def get_client(self) -> "Optional[Client]":
        return self._stack[-1].client

    def get_scope(self) -> "Scope":
        return self._stack[-1].scope

    def last_event_id(self) -> "Optional[str]":
        """Returns the last event ID."""
        return self._last_event_id

    def bind_client(self, new: "Optional[Client]") -> None:
        """Binds a new client to the hub."""
        self._stack[-1].client = new

    def get_integration(
        self, name_or_class: "Union[str, Type[Integration]]"
    ) -> "Optional[Integration]":
        """Returns the integration for this hub by name or class.  If there
        is no client bound or the client does not have that integration
        then `None` is returned.
        """
        client = self.get_client()
        if client is None:
            return None

        return client.get_integration(name_or_class)

    def push_scope(self) -> "Scope":
        """Pushes a new layer on the scope stack and returns its scope. The
        new scope is a fork of the current one."""
        layer = self._stack[-1]
        scope = layer.scope.fork()
        self._stack.append(Layer(layer.client, scope))
        return scope

    def pop_scope(self) -> bool:
        """Pops a scope layer from the stack. The last layer is kept and
        `False` is returned in that case."""
        if len(self._stack) <= 1:
            return False

        self._stack.pop()
        return True

    def with_scope(self, callback: "Callable[[Scope], T]") -> "T":
        """Runs `callback` with a freshly pushed scope and pops it again,
        even if the callback raises."""
        scope = self.push_scope()

        try:
            return callback(scope)
        finally:
            self.pop_scope()

    def configure_scope(
        self, callback: "Optional[Callable[[Scope], None]]" = None
    ) -> "Any":
        """Reconfigures the scope. The callback is only invoked when a client
        is bound. Without a callback a context manager is returned."""
        layer = self._stack[-1]
        if callback is not None:
            if layer.client is not None:
                callback(layer.scope)

            return None

        @contextmanager
        def inner() -> "Generator[Scope, None, None]":
            if layer.client is not None:
                yield layer.scope
            else:
                yield Scope()

        return inner()

    def _merge_scope(self, scope: "Optional[Scope]") -> "Scope":
        top = self._stack[-1].scope
        if scope is None:
            return top

        merged = top.fork()
        merged.update_from_scope(scope)
        merged.sort_breadcrumbs_by_timestamp()

        client = self.get_client()
        if client is not None:
            merged.trim_breadcrumbs(client.get_options()["max_breadcrumbs"])
        return merged

    def capture_event(
        self,
        event: "Event",
        hint: "Optional[Hint]" = None,
        scope: "Optional[Scope]" = None,
    ) -> "Optional[str]":
        """Captures an event.  The return value is the ID of the event.

        Optionally an event hint dict can be passed that is used by processors
        to extract additional information from it. Typically the event hint
        object would contain exception information.
        """
        client = self.get_client()
        if client is None:
            return None

        rv = None
        with capture_internal_exceptions():
            rv = client.capture_event(event, hint, self._merge_scope(scope))

        if rv is not None:
            self._last_event_id = rv
        return rv

    def capture_message(
        self,
        message: str,
        level: "Optional[LogLevelStr]" = None,
        hint: "Optional[Hint]" = None,
        scope: "Optional[Scope]" = None,
    ) -> "Optional[str]":
        """Captures a message.  If no level is provided the default level is
        `info`.
        """
        client = self.get_client()
        if client is None:
            return None

        rv = None
        with capture_internal_exceptions():
            rv = client.capture_message(
                message, level=level, hint=hint, scope=self._merge_scope(scope)
            )

        if rv is not None:
            self._last_event_id = rv
        return rv

    def capture_exception(
        self,
        error: "Optional[BaseException]" = None,
        hint: "Optional[Hint]" = None,
        scope: "Optional[Scope]" = None,
    ) -> "Optional[str]":
        """Captures an exception.

        The argument passed can be `None` in which case the last exception
        will be reported, otherwise an exception object or an `exc_info`
        tuple.
        """
        client = self.get_client()
        if client is None:
            return None

        if error is None:
            error = sys.exc_info()[1]
            if error is None:
                return None

        rv = None
        with capture_internal_exceptions():
            rv = client.capture_exception(
                error, hint=hint, scope=self._merge_scope(scope)
            )

        if rv is not None:
            self._last_event_id = rv
        return rv

    def capture_check_in(self, check_in: "CheckIn") -> "Optional[str]":
        """Captures a cron check-in and returns the id of the event."""
        event = Event.create_check_in()
        event.check_in = check_in
        return self.capture_event(event)

    def add_breadcrumb(
        self,
        crumb: "Optional[Breadcrumb]" = None,
        hint: "Optional[BreadcrumbHint]" = None,
        **kwargs: "Any",
    ) -> bool:
        """Adds a breadcrumb.  The breadcrumbs are a dictionary with the
        data as the protocol expects.  `hint` is an optional value that can
        be used by `before_breadcrumb` to customize the breadcrumbs that are
        emitted.  Returns whether the breadcrumb was recorded.
        """
        layer = self._stack[-1]
        client = layer.client
        if client is None:
            logger.info("Dropped breadcrumb because no client bound")
            return False

        options = client.get_options()

        crumb = dict(crumb or ())
        crumb.update(kwargs)
        if not crumb:
            return False

        hint = dict(hint or ())

        if crumb.get("timestamp") is None:
            crumb["timestamp"] = now()
        if crumb.get("type") is None:
            crumb["type"] = "default"

        max_breadcrumbs: int = options["max_breadcrumbs"]
        if max_breadcrumbs <= 0:
            return False

        before_breadcrumb = options["before_breadcrumb"]
        if before_breadcrumb is not None:
            new_crumb = before_breadcrumb(crumb, hint)
        else:
            new_crumb = crumb

        if new_crumb is None:
            logger.info("before breadcrumb dropped breadcrumb (%s)", crumb)
            return False

        layer.scope.add_breadcrumb(new_crumb, max_breadcrumbs)
        return True

    def start_transaction(
        self,
        transaction: "Optional[Transaction]" = None,
        **kwargs: "Any",
    ) -> "Transaction":
        """
        Start and return a transaction bound to this hub.

        Without an explicit sampling decision the transaction is sampled
        according to the `traces_sample_rate` option. Finish the transaction
        to send it.
        """
        if transaction is None:
            kwargs.setdefault("hub", self)
            transaction = Transaction(**kwargs)
        elif transaction._hub is None:
            transaction._hub = self

        if transaction.sampled is None:
            client = self.get_client()
            sample_rate = None
            if client is not None:
                sample_rate = client.get_options()["traces_sample_rate"]

            if sample_rate is None:
                transaction.sampled = False
            else:
                transaction.sample_rate = float(sample_rate)
                transaction.sampled = random.random() < transaction.sample_rate

        return transaction

    def flush(self, timeout: "Optional[float]" = None) -> bool:
        """
        Alias for :py:meth:`sentry_core.client.Client.flush`
        """
        client = self.get_client()
        if client is None:
            return False

        return client.flush(timeout=timeout)

    def __repr__(self) -> str:
        return "<%s id=%s depth=%d client=%r>" % (
            self.__class__.__name__,
            hex(id(self)),
            len(self._stack),
            self.client,
        )
