from importlib import metadata

from sentry_core.event import EventType
from sentry_core.integrations import Integration

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Dict
    from typing import Iterator
    from typing import Optional
    from typing import Tuple

    from sentry_core._types import Hint
    from sentry_core.event import Event


_installed_modules: "Optional[Dict[str, str]]" = None


def _normalize_module_name(name: str) -> str:
    return name.lower()


def _generate_installed_modules() -> "Iterator[Tuple[str, str]]":
    for dist in metadata.distributions():
        name = dist.metadata["Name"]
        # `metadata` values may be `None`, see:
        # https://github.com/python/cpython/issues/91216
        # and
        # https://github.com/python/importlib_metadata/issues/371
        if name is not None:
            version = dist.version
            if version is not None:
                yield _normalize_module_name(name), version


def _get_installed_modules() -> "Dict[str, str]":
    global _installed_modules
    if _installed_modules is None:
        _installed_modules = dict(_generate_installed_modules())
    return _installed_modules


class ModulesIntegration(Integration):
    """Attaches the installed distributions and their versions to error
    events."""

    identifier = "modules"

    @staticmethod
    def setup_once() -> None:
        pass

    def process_event(self, event: "Event", hint: "Hint") -> "Optional[Event]":
        if event.type != EventType.EVENT:
            return event

        if not event.modules:
            event.modules = dict(_get_installed_modules())
        return event
