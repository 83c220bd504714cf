import json
import logging
import os
import sys
import time
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from urllib.parse import urlsplit

from sentry_core.consts import EndpointType

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types import FrameType
    from types import TracebackType
    from typing import Any
    from typing import Dict
    from typing import Iterator
    from typing import List
    from typing import Optional
    from typing import Set
    from typing import Type
    from typing import Union

    from sentry_core._types import ExcInfo, Hint


# The logger is created here but initialized in the debug support module
logger = logging.getLogger("sentry_core.errors")


def capture_internal_exception(exc_info: "ExcInfo") -> None:
    """Capture an exception that is likely caused by a bug in the SDK
    itself."""
    logger.error("Internal error in sentry_core", exc_info=exc_info)


@contextmanager
def capture_internal_exceptions() -> "Iterator[None]":
    try:
        yield
    except Exception:
        capture_internal_exception(sys.exc_info())


def reraise(
    tp: "Optional[Type[BaseException]]",
    value: "Optional[BaseException]",
    tb: "Optional[TracebackType]" = None,
) -> None:
    assert value is not None
    if value.__traceback__ is not tb:
        raise value.with_traceback(tb)
    raise value


def json_dumps(data: "Any") -> bytes:
    """Serialize data into a compact JSON representation encoded as UTF-8."""
    return json.dumps(
        data, allow_nan=False, separators=(",", ":"), default=safe_str
    ).encode("utf-8")


def now() -> float:
    """Returns the current time as fractional epoch seconds."""
    return time.time()


def format_timestamp(value: "Optional[float]" = None) -> str:
    """Formats epoch seconds as an UTC timestamp with second precision."""
    if value is None:
        value = now()
    return datetime.fromtimestamp(value, timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def uuid4_hex() -> str:
    return uuid.uuid4().hex


def span_id_hex() -> str:
    return uuid.uuid4().hex[16:]


class BadDsn(ValueError):
    """Raised on invalid DSNs."""


class Dsn:
    """Represents a DSN."""

    def __init__(self, value: "Union[Dsn, str]") -> None:
        if isinstance(value, Dsn):
            self.__dict__ = dict(value.__dict__)
            return
        parts = urlsplit(str(value))

        if parts.scheme not in ("http", "https"):
            raise BadDsn("Unsupported scheme %r" % parts.scheme)
        self.scheme = parts.scheme

        if parts.hostname is None:
            raise BadDsn("Missing hostname")

        self.host = parts.hostname

        try:
            port = parts.port
        except ValueError:
            raise BadDsn("Invalid port in DSN (%r)" % parts.netloc)
        if port is None:
            port = self.scheme == "https" and 443 or 80
        self.port = port

        if not parts.username:
            raise BadDsn("Missing public key")

        self.public_key = parts.username
        self.secret_key = parts.password

        path = parts.path.rsplit("/", 1)

        try:
            self.project_id = str(int(path.pop()))
        except (ValueError, TypeError):
            raise BadDsn("Invalid project in DSN (%r)" % (parts.path or "")[1:])

        self.path = "/".join(path) + "/"

    @property
    def netloc(self) -> str:
        """The netloc part of a DSN."""
        rv = self.host
        if (self.scheme, self.port) not in (("http", 80), ("https", 443)):
            rv = "%s:%s" % (rv, self.port)
        return rv

    def to_auth(self, client: "Optional[Any]" = None) -> "Auth":
        """Returns the auth info object for this dsn."""
        return Auth(
            scheme=self.scheme,
            host=self.netloc,
            path=self.path,
            project_id=self.project_id,
            public_key=self.public_key,
            secret_key=self.secret_key,
            client=client,
        )

    def __eq__(self, other: "Any") -> bool:
        return isinstance(other, Dsn) and str(self) == str(other)

    def __str__(self) -> str:
        return "%s://%s%s@%s%s%s" % (
            self.scheme,
            self.public_key,
            self.secret_key and "@" + self.secret_key or "",
            self.netloc,
            self.path,
            self.project_id,
        )


class Auth:
    """Helper object that represents the auth info."""

    def __init__(
        self,
        scheme: str,
        host: str,
        project_id: str,
        public_key: str,
        secret_key: "Optional[str]" = None,
        version: int = 7,
        client: "Optional[Any]" = None,
        path: str = "/",
    ) -> None:
        self.scheme = scheme
        self.host = host
        self.path = path
        self.project_id = project_id
        self.public_key = public_key
        self.secret_key = secret_key
        self.version = version
        self.client = client

    def get_api_url(self, type: "EndpointType" = EndpointType.ENVELOPE) -> str:
        """Returns the API url for the given endpoint type."""
        return "%s://%s%sapi/%s/%s/" % (
            self.scheme,
            self.host,
            self.path,
            self.project_id,
            type.value,
        )

    def to_header(self) -> str:
        """Returns the auth header a string."""
        rv = [("sentry_key", self.public_key), ("sentry_version", self.version)]
        if self.client is not None:
            rv.append(("sentry_client", self.client))
        if self.secret_key is not None:
            rv.append(("sentry_secret", self.secret_key))
        return "Sentry " + ", ".join("%s=%s" % (key, value) for key, value in rv)


def get_type_name(cls: "Optional[type]") -> "Optional[str]":
    return getattr(cls, "__qualname__", None) or getattr(cls, "__name__", None)


def get_type_module(cls: "Optional[type]") -> "Optional[str]":
    mod = getattr(cls, "__module__", None)
    if mod not in (None, "builtins", "__builtins__"):
        return mod
    return None


def should_hide_frame(frame: "FrameType") -> bool:
    try:
        mod = frame.f_globals["__name__"]
        if mod.startswith("sentry_core."):
            return True
    except (AttributeError, KeyError):
        pass

    for flag_name in "__traceback_hide__", "__tracebackhide__":
        try:
            if frame.f_locals[flag_name]:
                return True
        except Exception:
            pass

    return False


def iter_stacks(tb: "Optional[TracebackType]") -> "Iterator[TracebackType]":
    tb_: "Optional[TracebackType]" = tb
    while tb_ is not None:
        if not should_hide_frame(tb_.tb_frame):
            yield tb_
        tb_ = tb_.tb_next


def safe_str(value: "Any") -> str:
    try:
        return str(value)
    except Exception:
        return safe_repr(value)


def safe_repr(value: "Any") -> str:
    try:
        return repr(value)
    except Exception:
        return "<broken repr>"


def filename_for_module(
    module: "Optional[str]", abs_path: "Optional[str]"
) -> "Optional[str]":
    if not abs_path or not module:
        return abs_path

    try:
        if abs_path.endswith(".pyc"):
            abs_path = abs_path[:-1]

        base_module = module.split(".", 1)[0]
        if base_module == module:
            return os.path.basename(abs_path)

        base_module_path = sys.modules[base_module].__file__
        if not base_module_path:
            return abs_path

        return abs_path.split(base_module_path.rsplit(os.sep, 2)[0], 1)[-1].lstrip(
            os.sep
        )
    except Exception:
        return abs_path


def serialize_frame(
    frame: "FrameType", tb_lineno: "Optional[int]" = None
) -> "Dict[str, Any]":
    """Turns a python frame into a frame record. Source lines are not
    read, so the context fields are left unset."""
    f_code = getattr(frame, "f_code", None)
    if not f_code:
        abs_path = None
        function = None
    else:
        abs_path = frame.f_code.co_filename
        function = frame.f_code.co_name
    try:
        module = frame.f_globals["__name__"]
    except Exception:
        module = None

    if tb_lineno is None:
        tb_lineno = frame.f_lineno

    return {
        "filename": filename_for_module(module, abs_path) or "<unknown>",
        "abs_path": os.path.abspath(abs_path) if abs_path else None,
        "function": function or "<unknown>",
        "module": module,
        "lineno": tb_lineno or 0,
    }


def stacktrace_from_traceback(
    tb: "Optional[TracebackType]" = None,
) -> "Dict[str, List[Dict[str, Any]]]":
    return {
        "frames": [
            serialize_frame(tb.tb_frame, tb_lineno=tb.tb_lineno)
            for tb in iter_stacks(tb)
        ]
    }


def current_stacktrace() -> "Dict[str, List[Dict[str, Any]]]":
    __tracebackhide__ = True
    frames = []

    f: "Optional[FrameType]" = sys._getframe()
    while f is not None:
        if not should_hide_frame(f):
            frames.append(serialize_frame(f))
        f = f.f_back

    frames.reverse()

    return {"frames": frames}


def single_exception_from_error_tuple(
    exc_type: "Optional[type]",
    exc_value: "Optional[BaseException]",
    tb: "Optional[TracebackType]",
    mechanism: "Optional[Dict[str, Any]]" = None,
) -> "Dict[str, Any]":
    rv: "Dict[str, Any]" = {
        "module": get_type_module(exc_type),
        "type": get_type_name(exc_type),
        "value": safe_str(exc_value),
        "stacktrace": stacktrace_from_traceback(tb),
    }
    if mechanism is not None:
        rv["mechanism"] = dict(mechanism)
    return rv


def walk_exception_chain(exc_info: "ExcInfo") -> "Iterator[ExcInfo]":
    exc_type, exc_value, tb = exc_info

    seen_exceptions = []
    seen_exception_ids: "Set[int]" = set()

    while (
        exc_type is not None
        and exc_value is not None
        and id(exc_value) not in seen_exception_ids
    ):
        yield exc_type, exc_value, tb

        # Avoid hashing random types we don't know anything
        # about. Use the list to keep a ref so that the `id` is
        # not used for another object.
        seen_exceptions.append(exc_value)
        seen_exception_ids.add(id(exc_value))

        if exc_value.__suppress_context__:
            cause = exc_value.__cause__
        else:
            cause = exc_value.__context__
        if cause is None:
            break
        exc_type = type(cause)
        exc_value = cause
        tb = getattr(cause, "__traceback__", None)


def exceptions_from_error_tuple(
    exc_info: "ExcInfo",
    mechanism: "Optional[Dict[str, Any]]" = None,
) -> "List[Dict[str, Any]]":
    """Returns the exception records of the chain, outermost first. Only the
    outermost exception carries the mechanism."""
    rv = []
    for exc_type, exc_value, tb in walk_exception_chain(exc_info):
        rv.append(
            single_exception_from_error_tuple(
                exc_type, exc_value, tb, mechanism if not rv else None
            )
        )

    return rv


def _module_in_list(name: "Optional[str]", items: "Optional[List[str]]") -> bool:
    if name is None or not items:
        return False
    for item in items:
        if item == name or name.startswith(item + "."):
            return True
    return False


def set_in_app_in_frames(
    frames: "List[Dict[str, Any]]",
    in_app_exclude: "Optional[List[str]]",
    in_app_include: "Optional[List[str]]",
) -> "List[Dict[str, Any]]":
    for frame in frames:
        # if frame has already been marked as in_app, skip it
        if frame.get("in_app") is not None:
            continue

        module = frame.get("module")

        # check if module in frame is in the list of modules to include
        if _module_in_list(module, in_app_include):
            frame["in_app"] = True
            continue

        # check if module in frame is in the list of modules to exclude
        if _module_in_list(module, in_app_exclude):
            frame["in_app"] = False
            continue

        abs_path = frame.get("abs_path") or ""
        frame["in_app"] = not (
            "site-packages" in abs_path or "dist-packages" in abs_path
        )

    return frames


def exc_info_from_error(error: "Union[BaseException, ExcInfo]") -> "ExcInfo":
    if isinstance(error, tuple) and len(error) == 3:
        exc_type, exc_value, tb = error
    elif isinstance(error, BaseException):
        tb = getattr(error, "__traceback__", None)
        if tb is not None:
            exc_type = type(error)
            exc_value = error
        else:
            exc_type, exc_value, tb = sys.exc_info()
            if exc_value is not error:
                tb = None
                exc_value = error
                exc_type = type(error)

    else:
        raise ValueError("Expected Exception object to report, got %s!" % type(error))

    exc_info = (exc_type, exc_value, tb)

    if TYPE_CHECKING:
        # This cast is safe because exc_type and exc_value are either both
        # None or both not None.
        from typing import cast

        exc_info = cast("ExcInfo", exc_info)

    return exc_info


def event_hint_with_exc_info(
    exc_info: "Optional[ExcInfo]" = None,
) -> "Hint":
    """Creates a hint with the exc info filled in."""
    if exc_info is None:
        exc_info = sys.exc_info()
    else:
        exc_info = exc_info_from_error(exc_info)
    if exc_info[0] is None:
        return {"exc_info": None}
    return {"exc_info": exc_info}


def format_message(message: str, params: "Optional[List[Any]]") -> str:
    """Formats a message template with positional parameters, falling back
    to the raw template if they do not fit."""
    if not params:
        return message
    try:
        return message % tuple(params)
    except (TypeError, ValueError):
        return message

