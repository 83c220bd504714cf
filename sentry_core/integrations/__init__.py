from abc import ABC, abstractmethod
from threading import Lock

from sentry_core.utils import logger

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Dict
    from typing import Iterator
    from typing import List
    from typing import Optional
    from typing import Set
    from typing import Type

    from sentry_core._types import Hint
    from sentry_core.event import Event


_installer_lock = Lock()

# Set of all integration identifiers we have attempted to install
_processed_integrations: "Set[str]" = set()

# Set of all integration identifiers we have actually installed
_installed_integrations: "Set[str]" = set()


_DEFAULT_INTEGRATIONS = [
    "sentry_core.integrations.environment.EnvironmentIntegration",
    "sentry_core.integrations.modules.ModulesIntegration",
]


def iter_default_integrations() -> "Iterator[Type[Integration]]":
    """Returns an iterator of the default integration classes."""
    from importlib import import_module

    for import_string in _DEFAULT_INTEGRATIONS:
        try:
            module, cls = import_string.rsplit(".", 1)
            yield getattr(import_module(module), cls)
        except (DidNotEnable, SyntaxError) as e:
            logger.debug("Did not import default integration %s: %s", import_string, e)


def setup_integrations(
    integrations: "Optional[List[Integration]]",
    with_defaults: bool = True,
) -> "Dict[str, Integration]":
    """
    Given a list of integration instances, this installs them all.

    When `with_defaults` is set to `True` all default integrations are added
    unless they were already provided before.
    """
    integrations_by_id = {
        integration.identifier: integration for integration in integrations or ()
    }

    logger.debug("Setting up integrations (with default = %s)", with_defaults)

    # Integrations that are not explicitly set up by the user.
    used_as_default_integration = set()

    if with_defaults:
        for integration_cls in iter_default_integrations():
            if integration_cls.identifier not in integrations_by_id:
                instance = integration_cls()
                integrations_by_id[instance.identifier] = instance
                used_as_default_integration.add(instance.identifier)

    for identifier, integration in integrations_by_id.items():
        with _installer_lock:
            if identifier not in _processed_integrations:
                logger.debug(
                    "Setting up previously not enabled integration %s", identifier
                )
                try:
                    type(integration).setup_once()
                except DidNotEnable as e:
                    if identifier not in used_as_default_integration:
                        raise

                    logger.debug(
                        "Did not enable default integration %s: %s", identifier, e
                    )
                else:
                    _installed_integrations.add(identifier)

                _processed_integrations.add(identifier)

    integrations_by_id = {
        identifier: integration
        for identifier, integration in integrations_by_id.items()
        if identifier in _installed_integrations
    }

    for identifier in integrations_by_id:
        logger.debug("Enabling integration %s", identifier)

    return integrations_by_id


class DidNotEnable(Exception):  # noqa: N818
    """
    The integration could not be enabled due to a trivial user error.

    This exception is silently swallowed for default integrations, but reraised
    for explicitly enabled integrations.
    """


class Integration(ABC):
    """Baseclass for all integrations.

    To accept options for an integration, implement your own constructor that
    saves those options on `self`.
    """

    identifier: str = None  # type: ignore
    """String unique ID of integration type"""

    @staticmethod
    @abstractmethod
    def setup_once() -> None:
        """
        Initialize the integration.

        This function is only called once, ever. Configuration is not available
        at this point.
        """
        pass

    def process_event(self, event: "Event", hint: "Hint") -> "Optional[Event]":
        """
        Called by every client the integration is enabled on, before
        `before_send`. Returning `None` drops the event.
        """
        return event
