from sentry_core.hub import Hub
from sentry_core.scope import Scope
from sentry_core.scope_manager import ScopeManager
from sentry_core.transport import Transport, HttpTransport
from sentry_core.client import Client

from sentry_core.api import *  # noqa

from sentry_core.consts import VERSION  # noqa

from sentry_core.crons import monitor  # noqa

__all__ = [  # noqa
    "Hub",
    "Scope",
    "ScopeManager",
    "Client",
    "Transport",
    "HttpTransport",
    "integrations",
    "monitor",
    # From sentry_core.api
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

# Initialize the debug support after everything is loaded
from sentry_core.debug import init_debug_support

init_debug_support()
del init_debug_support
