import os
import random
import socket

from sentry_core.consts import (
    DEFAULT_OPTIONS,
    MAX_BREADCRUMBS_LIMIT,
    SDK_NAME,
    VERSION,
    ClientConstructor,
)
from sentry_core.event import Event, EventType
from sentry_core.integrations import setup_integrations
from sentry_core.transport import ResultStatus, make_transport
from sentry_core.utils import (
    Dsn,
    current_stacktrace,
    event_hint_with_exc_info,
    exc_info_from_error,
    exceptions_from_error_tuple,
    get_type_name,
    logger,
    set_in_app_in_frames,
)

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any
    from typing import Dict
    from typing import List
    from typing import Optional
    from typing import Type
    from typing import Union

    from sentry_core._types import ExcInfo, Hint, LogLevelStr
    from sentry_core.integrations import Integration
    from sentry_core.scope import Scope
    from sentry_core.transport import Transport


_TRACE_LIFECYCLES = ("static", "stream")


def _check_rate(options: "Dict[str, Any]", key: str) -> None:
    value = options[key]
    if value is None:
        return
    if not 0.0 <= float(value) <= 1.0:
        raise ValueError(
            "The %r option must be a number between 0.0 and 1.0, got %r"
            % (key, value)
        )


def _get_options(*args: "Optional[str]", **kwargs: "Any") -> "Dict[str, Any]":
    if args and (isinstance(args[0], (bytes, str)) or args[0] is None):
        dsn: "Optional[str]" = args[0]
        args = args[1:]
    else:
        dsn = None

    if len(args) > 1:
        raise TypeError("Only single positional argument is expected")

    rv = dict(DEFAULT_OPTIONS)
    options = dict(*args, **kwargs)
    if dsn is not None and options.get("dsn") is None:
        options["dsn"] = dsn

    for key, value in options.items():
        if key not in rv:
            raise TypeError("Unknown option %r" % (key,))

        rv[key] = value

    if rv["dsn"] is None:
        rv["dsn"] = os.environ.get("SENTRY_DSN")

    if rv["release"] is None:
        rv["release"] = os.environ.get("SENTRY_RELEASE")

    if rv["environment"] is None:
        rv["environment"] = os.environ.get("SENTRY_ENVIRONMENT") or "production"

    if rv["server_name"] is None and hasattr(socket, "gethostname"):
        rv["server_name"] = socket.gethostname()

    if rv["dsn"]:
        # Raises BadDsn for malformed values
        Dsn(rv["dsn"])

    _check_rate(rv, "sample_rate")
    _check_rate(rv, "traces_sample_rate")

    if not 0 <= rv["max_breadcrumbs"] <= MAX_BREADCRUMBS_LIMIT:
        raise ValueError(
            "The 'max_breadcrumbs' option must be between 0 and %d, got %r"
            % (MAX_BREADCRUMBS_LIMIT, rv["max_breadcrumbs"])
        )

    if rv["trace_lifecycle"] not in _TRACE_LIFECYCLES:
        raise ValueError(
            "Invalid value for trace_lifecycle. Must be one of %s"
            % (_TRACE_LIFECYCLES,)
        )

    return rv


class _Client:
    """The client is internally responsible for capturing the events and
    forwarding them to sentry through the configured transport.  It takes
    the client options as keyword arguments and optionally the DSN as first
    argument.
    """

    def __init__(self, *args: "Any", **kwargs: "Any") -> None:
        self.options: "Dict[str, Any]" = get_options(*args, **kwargs)
        self.transport: "Optional[Transport]" = make_transport(self.options)
        self.integrations: "Dict[str, Integration]" = setup_integrations(
            self.options["integrations"],
            with_defaults=self.options["default_integrations"],
        )

    @property
    def dsn(self) -> "Optional[str]":
        """Returns the configured DSN as string."""
        return self.options["dsn"]

    @property
    def sdk_identifier(self) -> str:
        return SDK_NAME

    @property
    def sdk_version(self) -> str:
        return VERSION

    def get_options(self) -> "Dict[str, Any]":
        return self.options

    def get_transport(self) -> "Optional[Transport]":
        return self.transport

    def get_integration(
        self, name_or_class: "Union[str, Type[Integration]]"
    ) -> "Optional[Integration]":
        """Returns the integration for this client by name or class.
        If the client does not have that integration then `None` is returned.
        """
        if isinstance(name_or_class, str):
            integration_name = name_or_class
        elif name_or_class.identifier is not None:
            integration_name = name_or_class.identifier
        else:
            raise ValueError("Integration has no name")

        return self.integrations.get(integration_name)

    def _apply_in_app(self, event: "Event") -> None:
        in_app_exclude = self.options["in_app_exclude"]
        in_app_include = self.options["in_app_include"]

        stacktraces: "List[Dict[str, Any]]" = [
            exception["stacktrace"]
            for exception in event.exceptions
            if exception.get("stacktrace") is not None
        ]
        if event.stacktrace is not None:
            stacktraces.append(event.stacktrace)

        for stacktrace in stacktraces:
            set_in_app_in_frames(
                stacktrace.get("frames") or [], in_app_exclude, in_app_include
            )

    def _prepare_event(
        self,
        event: "Event",
        hint: "Optional[Hint]",
        scope: "Optional[Scope]",
    ) -> "Optional[Event]":
        hint = dict(hint or ())

        if scope is not None:
            event_ = scope.apply_to_event(event, hint, self.options)
            if event_ is None:
                logger.debug(
                    "The event will be discarded because one of the event "
                    "processors returned None."
                )
                return None
            event = event_

        for key in "release", "environment", "server_name", "dist":
            if getattr(event, key) is None and self.options[key] is not None:
                setattr(event, key, str(self.options[key]).strip())

        event.sdk_identifier = self.sdk_identifier
        event.sdk_version = self.sdk_version

        if event.type == EventType.EVENT:
            if (
                self.options["attach_stacktrace"]
                and not event.exceptions
                and event.stacktrace is None
            ):
                event.stacktrace = current_stacktrace()

            self._apply_in_app(event)

        if event.type in (EventType.EVENT, EventType.TRANSACTION):
            for integration in self.integrations.values():
                new_event = integration.process_event(event, hint)
                if new_event is None:
                    logger.info(
                        "integration %s dropped event", integration.identifier
                    )
                    return None
                event = new_event

        if event.type == EventType.TRANSACTION:
            before_send = self.options["before_send_transaction"]
            callback_name = "before_send_transaction"
        elif event.type == EventType.EVENT:
            before_send = self.options["before_send"]
            callback_name = "before_send"
        else:
            before_send = None

        if before_send is not None:
            new_event = before_send(event, hint)
            if new_event is None:
                logger.info("%s dropped event (%s)", callback_name, event)
                return None
            event = new_event

        return event

    def _is_ignored_error(self, hint: "Hint") -> bool:
        exc_info = hint.get("exc_info")
        if exc_info is None:
            return False

        error_type = exc_info[0]
        if error_type is None:
            return False

        type_name = get_type_name(error_type)
        full_name = "%s.%s" % (error_type.__module__, type_name)

        for errcls in self.options["ignore_errors"]:
            # String types are matched against the type name in the
            # exception only
            if isinstance(errcls, str):
                if errcls == full_name or errcls == type_name:
                    return True
            else:
                if issubclass(error_type, errcls):
                    return True

        return False

    def _should_capture(
        self,
        event: "Event",
        hint: "Hint",
    ) -> bool:
        if event.type != EventType.EVENT:
            return True

        sample_rate = self.options["sample_rate"]
        if sample_rate < 1.0 and random.random() >= sample_rate:
            logger.info("Discarded event due to sampling (sample_rate: %s)", sample_rate)
            return False

        if self._is_ignored_error(hint):
            logger.info("Discarded event because its error type is ignored")
            return False

        return True

    def capture_event(
        self,
        event: "Event",
        hint: "Optional[Hint]" = None,
        scope: "Optional[Scope]" = None,
    ) -> "Optional[str]":
        """Captures an event.

        This takes the ready made event and an optional hint and scope.  The
        hint is internally used to further customize the representation of the
        error.  When provided it's a dictionary of optional information such
        as exception info.

        If the transport is not set nothing happens, otherwise the return
        value of this function will be the ID of the captured event.
        """
        if self.transport is None:
            return None

        hint = dict(hint or ())

        if not self._should_capture(event, hint):
            return None

        prepared_event = self._prepare_event(event, hint, scope)
        if prepared_event is None:
            return None

        result = self.transport.send(prepared_event)
        if result.status != ResultStatus.SUCCESS:
            return None

        return prepared_event.event_id

    def capture_message(
        self,
        message: str,
        level: "Optional[LogLevelStr]" = None,
        hint: "Optional[Hint]" = None,
        scope: "Optional[Scope]" = None,
    ) -> "Optional[str]":
        """Captures a message.  If no level is provided the default level is
        `info`."""
        event = Event.create_event()
        event.message = message
        event.level = level or "info"

        return self.capture_event(event, hint, scope)

    def capture_exception(
        self,
        error: "Union[BaseException, ExcInfo]",
        hint: "Optional[Hint]" = None,
        scope: "Optional[Scope]" = None,
    ) -> "Optional[str]":
        """Captures an exception object or an `exc_info` tuple."""
        exc_info = exc_info_from_error(error)

        event = Event.create_event()
        event.level = "error"
        event.exceptions = exceptions_from_error_tuple(
            exc_info, mechanism={"type": "generic", "handled": True}
        )

        event_hint = event_hint_with_exc_info(exc_info)
        event_hint.update(hint or ())

        return self.capture_event(event, event_hint, scope)

    def flush(self, timeout: "Optional[float]" = None) -> bool:
        """
        Wait `timeout` seconds for the current events to be sent. If no
        `timeout` is provided, the `shutdown_timeout` option value is used.
        Returns whether the transport reported success.
        """
        if self.transport is None:
            return False

        if timeout is None:
            timeout = self.options["shutdown_timeout"]

        result = self.transport.close(timeout)
        return result.status == ResultStatus.SUCCESS

    def close(self, timeout: "Optional[float]" = None) -> None:
        """
        Close the client and shut down the transport. Arguments have the same
        semantics as `self.flush()`.
        """
        if self.transport is not None:
            self.flush(timeout=timeout)
            self.transport = None

    def __repr__(self) -> str:
        return "<%s dsn=%r>" % (self.__class__.__name__, self.dsn)

    def __enter__(self) -> "_Client":
        return self

    def __exit__(self, exc_type: "Any", exc_value: "Any", tb: "Any") -> None:
        self.close()


if TYPE_CHECKING:
    # Make mypy, PyCharm and other static analyzers think `get_options` is a
    # type to have nicer autocompletion for params.
    #
    # Use `ClientConstructor` to define the argument types of `init` and
    # `Dict[str, Any]` to tell static analyzers about the return type.

    class get_options(ClientConstructor, Dict[str, Any]):  # noqa: N801
        pass

    class Client(ClientConstructor, _Client):
        pass

else:
    # Alias `get_options` for actual usage. Go through the lambda indirection
    # to throw PyCharm off of the weakly typed signature (it would otherwise
    # discover both the weakly typed signature of `_init` and our faked `init`
    # type).

    get_options = (lambda: _get_options)()
    Client = (lambda: _Client)()
