import inspect

from sentry_core.client import Client
from sentry_core.crons import capture_checkin
from sentry_core.hub import Hub
from sentry_core.runtime import RuntimeContextManager
from sentry_core.scope import Scope
from sentry_core.scope_manager import ScopeManager

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any
    from typing import Callable
    from typing import Dict
    from typing import Optional
    from typing import Sequence
    from typing import TypeVar
    from typing import Union

    from sentry_core._types import (
        Breadcrumb,
        BreadcrumbHint,
        ExcInfo,
        Hint,
        LogLevelStr,
    )
    from sentry_core.event import Event
    from sentry_core.logs import LogLevel
    from sentry_core.runtime import RuntimeContext
    from sentry_core.tracing import Transaction

    T = TypeVar("T")
    F = TypeVar("F", bound=Callable[..., Any])


# When changing this, update __all__ in __init__.py too
__all__ = [
    "init",
    "get_runtime_context_manager",
    "get_scope_manager",
    "get_current_hub",
    "set_current_hub",
    "get_current_context",
    "start_context",
    "end_context",
    "add_breadcrumb",
    "capture_checkin",
    "capture_event",
    "capture_exception",
    "capture_log",
    "capture_message",
    "configure_scope",
    "count",
    "distribution",
    "flush",
    "gauge",
    "last_event_id",
    "set_context",
    "set_extra",
    "set_level",
    "set_tag",
    "set_user",
    "start_transaction",
    "with_scope",
]


_runtime_context_manager = RuntimeContextManager(Hub())
_scope_manager = ScopeManager()


def hubmethod(f: "F") -> "F":
    f.__doc__ = "%s\n\n%s" % (
        "Alias for :py:meth:`sentry_core.Hub.%s`" % f.__name__,
        inspect.getdoc(getattr(Hub, f.__name__)),
    )
    return f


def scopemethod(f: "F") -> "F":
    f.__doc__ = "%s\n\n%s" % (
        "Alias for :py:meth:`sentry_core.Scope.%s`" % f.__name__,
        inspect.getdoc(getattr(Scope, f.__name__)),
    )
    return f


class _InitGuard:
    def __init__(self, client: "Client") -> None:
        self._client = client

    def __enter__(self) -> "_InitGuard":
        return self

    def __exit__(self, exc_type: "Any", exc_value: "Any", tb: "Any") -> None:
        c = self._client
        if c is not None:
            c.close()


def init(*args: "Optional[str]", **kwargs: "Any") -> "_InitGuard":
    """Initializes the SDK and optionally integrations.

    This takes the same arguments as the client constructor. The client is
    bound to the current hub.
    """
    client = Client(*args, **kwargs)
    get_current_hub().bind_client(client)
    return _InitGuard(client)


def get_runtime_context_manager() -> "RuntimeContextManager":
    return _runtime_context_manager


def get_scope_manager() -> "ScopeManager":
    return _scope_manager


def get_current_hub() -> "Hub":
    """Returns the hub of the active runtime context."""
    return _runtime_context_manager.get_current_hub()


def set_current_hub(hub: "Hub") -> bool:
    return _runtime_context_manager.set_current_hub(hub)


def get_current_context() -> "RuntimeContext":
    return _runtime_context_manager.get_current_context()


def start_context() -> None:
    """Starts an isolated runtime context, for example at the beginning of
    a request."""
    _runtime_context_manager.start_context()


def end_context(timeout: "Optional[float]" = None) -> None:
    """Flushes and ends the runtime context started by `start_context`."""
    _runtime_context_manager.end_context(timeout)


@hubmethod
def capture_event(
    event: "Event",
    hint: "Optional[Hint]" = None,
    scope: "Optional[Scope]" = None,
) -> "Optional[str]":
    return get_current_hub().capture_event(event, hint, scope=scope)


@hubmethod
def capture_message(
    message: str,
    level: "Optional[LogLevelStr]" = None,
    hint: "Optional[Hint]" = None,
    scope: "Optional[Scope]" = None,
) -> "Optional[str]":
    return get_current_hub().capture_message(message, level, hint=hint, scope=scope)


@hubmethod
def capture_exception(
    error: "Optional[Union[BaseException, ExcInfo]]" = None,
    hint: "Optional[Hint]" = None,
    scope: "Optional[Scope]" = None,
) -> "Optional[str]":
    return get_current_hub().capture_exception(error, hint=hint, scope=scope)


@hubmethod
def add_breadcrumb(
    crumb: "Optional[Breadcrumb]" = None,
    hint: "Optional[BreadcrumbHint]" = None,
    **kwargs: "Any",
) -> bool:
    return get_current_hub().add_breadcrumb(crumb, hint, **kwargs)


@hubmethod
def configure_scope(callback: "Optional[Callable[[Scope], None]]" = None) -> "Any":
    return get_current_hub().configure_scope(callback)


@hubmethod
def with_scope(callback: "Callable[[Scope], T]") -> "T":
    return get_current_hub().with_scope(callback)


@hubmethod
def start_transaction(
    transaction: "Optional[Transaction]" = None, **kwargs: "Any"
) -> "Transaction":
    return get_current_hub().start_transaction(transaction, **kwargs)


@hubmethod
def last_event_id() -> "Optional[str]":
    return get_current_hub().last_event_id()


def flush(timeout: "Optional[float]" = None) -> bool:
    """Sends the buffered logs and metrics of the current runtime context,
    then flushes the client of the current hub."""
    context = get_current_context()
    context.logs.flush(context.hub)
    context.metrics.flush(context.hub)
    return context.hub.flush(timeout=timeout)


@scopemethod
def set_tag(key: str, value: "Any") -> None:
    get_current_hub().configure_scope(lambda scope: scope.set_tag(key, value))


@scopemethod
def set_extra(key: str, value: "Any") -> None:
    get_current_hub().configure_scope(lambda scope: scope.set_extra(key, value))


@scopemethod
def set_user(value: "Optional[Dict[str, Any]]") -> None:
    get_current_hub().configure_scope(lambda scope: scope.set_user(value))


@scopemethod
def set_context(key: str, value: "Dict[str, Any]") -> None:
    get_current_hub().configure_scope(lambda scope: scope.set_context(key, value))


@scopemethod
def set_level(value: "LogLevelStr") -> None:
    get_current_hub().configure_scope(lambda scope: scope.set_level(value))


def capture_log(
    level: "Union[LogLevel, str]",
    message: str,
    values: "Optional[Sequence[Any]]" = None,
    attributes: "Optional[Dict[str, Any]]" = None,
) -> bool:
    """Buffers a structured log in the current runtime context. Logs are
    sent when the context ends."""
    return get_current_context().logs.add(level, message, values, attributes)


def count(
    name: str,
    value: float = 1,
    unit: "Optional[str]" = None,
    attributes: "Optional[Dict[str, Any]]" = None,
) -> bool:
    return get_current_context().metrics.count(name, value, unit, attributes)


def gauge(
    name: str,
    value: float,
    unit: "Optional[str]" = None,
    attributes: "Optional[Dict[str, Any]]" = None,
) -> bool:
    return get_current_context().metrics.gauge(name, value, unit, attributes)


def distribution(
    name: str,
    value: float,
    unit: "Optional[str]" = None,
    attributes: "Optional[Dict[str, Any]]" = None,
) -> bool:
    return get_current_context().metrics.distribution(name, value, unit, attributes)
