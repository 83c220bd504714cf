from copy import copy
from contextlib import contextmanager

from sentry_core.consts import DEFAULT_MAX_BREADCRUMBS
from sentry_core.scope import Scope, ScopeType

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Callable
    from typing import Generator
    from typing import List
    from typing import Optional
    from typing import TypeVar

    T = TypeVar("T")


class ScopeManager:
    """Owns the global scope and the stacks of isolation and current scopes.

    The stacks are created lazily with a single scope and never shrink below
    it afterwards.
    """

    def __init__(self) -> None:
        self._global_scope: "Optional[Scope]" = None
        self._isolation_scopes: "List[Scope]" = []
        self._current_scopes: "List[Scope]" = []

    def get_global_scope(self) -> "Scope":
        if self._global_scope is None:
            self._global_scope = Scope(ty=ScopeType.GLOBAL)

        return self._global_scope

    def get_isolation_scope(self) -> "Scope":
        if not self._isolation_scopes:
            self._isolation_scopes.append(Scope(ty=ScopeType.ISOLATION))

        return self._isolation_scopes[-1]

    def get_current_scope(self) -> "Scope":
        if not self._current_scopes:
            self._current_scopes.append(Scope(ty=ScopeType.CURRENT))

        return self._current_scopes[-1]

    def _push_current_scope(self) -> "Scope":
        scope = self.get_current_scope().fork()
        scope._type = ScopeType.CURRENT
        self._current_scopes.append(scope)
        return scope

    def _pop_current_scope(self) -> bool:
        if len(self._current_scopes) <= 1:
            return False

        self._current_scopes.pop()
        return True

    def _push_isolation_scope(self) -> "Scope":
        scope = self.get_isolation_scope().fork()
        scope._type = ScopeType.ISOLATION
        self._isolation_scopes.append(scope)
        return scope

    def _pop_isolation_scope(self) -> bool:
        if len(self._isolation_scopes) <= 1:
            return False

        self._isolation_scopes.pop()
        return True

    def with_scope(self, callback: "Callable[[Scope], T]") -> "T":
        """
        Forks the current scope, runs `callback` with the fork and restores
        the previous scope afterwards, even if `callback` raises.
        """
        scope = self._push_current_scope()

        try:
            return callback(scope)
        finally:
            self._pop_current_scope()

    def with_isolation_scope(self, callback: "Callable[[Scope], T]") -> "T":
        """
        Forks the isolation scope, runs `callback` with it and restores the
        previous scopes afterwards. The current scope is forked as well so no
        data bleeds into the existing one.
        """
        self._push_current_scope()
        scope = self._push_isolation_scope()

        try:
            return callback(scope)
        finally:
            self._pop_isolation_scope()
            self._pop_current_scope()

    @contextmanager
    def new_scope(self) -> "Generator[Scope, None, None]":
        """
        Context manager that forks the current scope and runs the wrapped code in it.
        After the wrapped code is executed, the original scope is restored.

        Example Usage:

        .. code-block:: python

            with scope_manager.new_scope() as scope:
                scope.set_tag("color", "green")
                hub.capture_message("hello") # will include `color` tag.

            hub.capture_message("hello, again") # will NOT include `color` tag.

        """
        scope = self._push_current_scope()

        try:
            yield scope
        finally:
            self._pop_current_scope()

    @contextmanager
    def isolation_scope(self) -> "Generator[Scope, None, None]":
        """
        Context manager that forks the current isolation scope and runs the wrapped code in it.
        The current scope is also forked to not bleed data into the existing current scope.
        After the wrapped code is executed, the original scopes are restored.
        """
        self._push_current_scope()
        scope = self._push_isolation_scope()

        try:
            yield scope
        finally:
            self._pop_isolation_scope()
            self._pop_current_scope()

    def reset_scopes(self) -> None:
        """Drops the isolation and current scopes. The global scope is kept."""
        self._isolation_scopes = []
        self._current_scopes = []

    def merge_scopes(
        self,
        additional_scope: "Optional[Scope]" = None,
        max_breadcrumbs: int = DEFAULT_MAX_BREADCRUMBS,
    ) -> "Scope":
        """
        Merges global, isolation and current scope into a new scope and
        adds the given additional scope to it. The merged breadcrumbs are
        ordered by timestamp and only the newest `max_breadcrumbs` are kept.
        """
        final_scope = copy(self.get_global_scope())
        final_scope._type = ScopeType.MERGED

        if self._isolation_scopes:
            final_scope.update_from_scope(self._isolation_scopes[-1])

        if self._current_scopes:
            final_scope.update_from_scope(self._current_scopes[-1])

        if additional_scope is not None:
            final_scope.update_from_scope(additional_scope)

        final_scope.sort_breadcrumbs_by_timestamp()
        final_scope.trim_breadcrumbs(max_breadcrumbs)

        return final_scope

    def __repr__(self) -> str:
        return "<%s isolation_depth=%d current_depth=%d>" % (
            self.__class__.__name__,
            len(self._isolation_scopes),
            len(self._current_scopes),
        )
