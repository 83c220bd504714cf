"""
Runtime contexts hold the state of a single unit of work, like a request, a
queue job or a worker task: its hub and its log and metric buffers.

Without an explicitly started context everything runs in the lazily created
global context.
"""

import os

from sentry_core.hub import Hub
from sentry_core.logs import LogsAggregator
from sentry_core.metrics import MetricsAggregator
from sentry_core.utils import logger, uuid4_hex

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Dict
    from typing import Optional


GLOBAL_CONTEXT_ID = "global"


class RuntimeContext:
    def __init__(self, id: str, hub: "Hub") -> None:
        self.id = id
        self.hub = hub
        self.logs = LogsAggregator(lambda: self.hub)
        self.metrics = MetricsAggregator(lambda: self.hub)

    def __repr__(self) -> str:
        return "<RuntimeContext id=%s hub=%r>" % (self.id, self.hub)


class RuntimeContextManager:
    """Maps the current execution key to its active runtime context.

    `start_context` isolates a new context for the current key and
    `end_context` flushes and removes it again.
    """

    def __init__(self, base_hub: "Hub") -> None:
        self._base_hub = base_hub
        self._global_context: "Optional[RuntimeContext]" = None
        self._active_contexts: "Dict[str, RuntimeContext]" = {}
        self._execution_keys: "Dict[str, str]" = {}

    def _get_execution_context_key(self) -> str:
        # A single context per process
        return "process-%d" % os.getpid()

    def _get_global_context(self) -> "RuntimeContext":
        if self._global_context is None:
            self._global_context = RuntimeContext(GLOBAL_CONTEXT_ID, self._base_hub)

        return self._global_context

    def _get_active_context_id(self, key: str) -> "Optional[str]":
        context_id = self._execution_keys.get(key)
        if context_id is None:
            return None

        if context_id not in self._active_contexts:
            # Stale mapping to a context that was already removed
            del self._execution_keys[key]
            return None

        return context_id

    def has_active_context(self) -> bool:
        return self._get_active_context_id(self._get_execution_context_key()) is not None

    def get_current_context(self) -> "RuntimeContext":
        context_id = self._get_active_context_id(self._get_execution_context_key())
        if context_id is not None:
            return self._active_contexts[context_id]

        return self._get_global_context()

    def get_current_hub(self) -> "Hub":
        return self.get_current_context().hub

    def set_current_hub(self, hub: "Hub") -> bool:
        """
        Sets the hub of the active context. Without an active context the
        base hub, and with it the global context, is replaced instead.

        Returns whether the hub was set on an active context.
        """
        context_id = self._get_active_context_id(self._get_execution_context_key())
        if context_id is not None:
            self._active_contexts[context_id].hub = hub
            return True

        self._base_hub = hub
        if self._global_context is not None:
            self._global_context.hub = hub

        return False

    def _create_hub_from_base_hub(self) -> "Hub":
        scope = self._base_hub.get_scope().fork()
        # Do not inherit active spans into a new runtime context.
        scope.set_span(None)
        return Hub(self._base_hub.get_client(), scope)

    def start_context(self) -> None:
        """Starts an isolated context for the current execution key. Nested
        calls are a no-op."""
        key = self._get_execution_context_key()
        if self._get_active_context_id(key) is not None:
            return

        context = RuntimeContext(uuid4_hex(), self._create_hub_from_base_hub())
        self._active_contexts[context.id] = context
        self._execution_keys[key] = context.id

    def end_context(self, timeout: "Optional[float]" = None) -> None:
        """Flushes and removes the active context of the current execution
        key. Without one this is a no-op. Never raises."""
        key = self._get_execution_context_key()
        context_id = self._get_active_context_id(key)
        if context_id is None:
            return

        del self._execution_keys[key]
        context = self._active_contexts.pop(context_id)

        for other_key, mapped_id in list(self._execution_keys.items()):
            if mapped_id == context_id:
                del self._execution_keys[other_key]

        self._flush_context(context, timeout)

    def _flush_context(
        self, context: "RuntimeContext", timeout: "Optional[float]"
    ) -> None:
        hub = context.hub

        try:
            context.logs.flush(hub)
        except Exception:
            logger.error(
                "Failed to flush logs while ending runtime context %s.",
                context.id,
                exc_info=True,
            )

        try:
            context.metrics.flush(hub)
        except Exception:
            logger.error(
                "Failed to flush trace metrics while ending runtime context %s.",
                context.id,
                exc_info=True,
            )

        client = hub.get_client()
        if client is None:
            return

        try:
            client.flush(timeout)
        except Exception:
            logger.error(
                "Failed to flush the client transport while ending runtime context %s.",
                context.id,
                exc_info=True,
            )
