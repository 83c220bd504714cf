import platform
import sys

from sentry_core.integrations import Integration

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any
    from typing import Dict
    from typing import Optional

    from sentry_core._types import Hint
    from sentry_core.event import Event


_RUNTIME_CONTEXT = {
    "name": platform.python_implementation(),
    "version": "%s.%s.%s" % (sys.version_info[:3]),
    "build": sys.version,
}


def _get_os_context() -> "Dict[str, Any]":
    return {
        "name": platform.system(),
        "version": platform.release(),
        "build": platform.version(),
        "kernel_version": platform.platform(),
        "machine_type": platform.machine(),
    }


class EnvironmentIntegration(Integration):
    """Fills the ``os`` and ``runtime`` contexts unless they are already
    present on the event."""

    identifier = "environment"

    @staticmethod
    def setup_once() -> None:
        pass

    def process_event(self, event: "Event", hint: "Hint") -> "Optional[Event]":
        contexts = event.contexts
        if "runtime" not in contexts:
            contexts["runtime"] = dict(_RUNTIME_CONTEXT)
        if "os" not in contexts:
            contexts["os"] = _get_os_context()
        return event
