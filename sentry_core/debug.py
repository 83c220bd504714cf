import sys
import logging

from sentry_core.utils import logger
from logging import LogRecord


class _HubBasedClientFilter(logging.Filter):
    def filter(self, record: "LogRecord") -> bool:
        from sentry_core.api import get_current_hub

        client = get_current_hub().get_client()
        if client is None:
            return False

        return bool(client.get_options()["debug"])


def init_debug_support() -> None:
    if not logger.handlers:
        configure_logger()


def configure_logger() -> None:
    _handler = logging.StreamHandler(sys.stderr)
    _handler.setFormatter(logging.Formatter(" [sentry] %(levelname)s: %(message)s"))
    logger.addHandler(_handler)
    logger.setLevel(logging.DEBUG)
    logger.addFilter(_HubBasedClientFilter())
