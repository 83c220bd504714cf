import pytest

from sentry_core.scope import ScopeType
from sentry_core.scope_manager import ScopeManager


def test_scopes_are_created_lazily():
    manager = ScopeManager()

    assert manager.get_global_scope().type == ScopeType.GLOBAL
    assert manager.get_isolation_scope().type == ScopeType.ISOLATION
    assert manager.get_current_scope().type == ScopeType.CURRENT

    assert manager.get_global_scope() is manager.get_global_scope()
    assert manager.get_current_scope() is manager.get_current_scope()


def test_new_scope_restores_previous_scope():
    manager = ScopeManager()
    outer = manager.get_current_scope()
    outer.set_tag("outer", "yes")

    with manager.new_scope() as scope:
        assert manager.get_current_scope() is scope
        assert scope is not outer
        assert scope._tags == {"outer": "yes"}
        scope.set_tag("inner", "yes")

    assert manager.get_current_scope() is outer
    assert outer._tags == {"outer": "yes"}


def test_with_scope_restores_on_error():
    manager = ScopeManager()
    outer = manager.get_current_scope()

    def callback(scope):
        assert manager.get_current_scope() is scope
        raise ValueError("oops")

    with pytest.raises(ValueError):
        manager.with_scope(callback)

    assert manager.get_current_scope() is outer


def test_with_scope_returns_callback_result():
    manager = ScopeManager()
    assert manager.with_scope(lambda scope: 42) == 42


def test_isolation_scope_forks_both_stacks():
    manager = ScopeManager()
    isolation = manager.get_isolation_scope()
    current = manager.get_current_scope()

    with manager.isolation_scope() as scope:
        assert manager.get_isolation_scope() is scope
        assert scope.type == ScopeType.ISOLATION
        assert manager.get_current_scope() is not current
        manager.get_current_scope().set_tag("leak", "no")

    assert manager.get_isolation_scope() is isolation
    assert manager.get_current_scope() is current
    assert current._tags == {}


def test_with_isolation_scope():
    manager = ScopeManager()
    isolation = manager.get_isolation_scope()

    def callback(scope):
        scope.set_tag("inner", "yes")
        return scope

    scope = manager.with_isolation_scope(callback)

    assert scope is not isolation
    assert manager.get_isolation_scope() is isolation
    assert isolation._tags == {}


def test_pop_never_removes_base_scope():
    manager = ScopeManager()
    base = manager.get_current_scope()

    assert not manager._pop_current_scope()
    assert not manager._pop_isolation_scope()
    assert manager.get_current_scope() is base


def test_reset_scopes_keeps_global_scope():
    manager = ScopeManager()
    global_scope = manager.get_global_scope()
    current = manager.get_current_scope()

    manager.reset_scopes()

    assert manager.get_global_scope() is global_scope
    assert manager.get_current_scope() is not current


def test_merge_scopes_precedence():
    manager = ScopeManager()
    manager.get_global_scope().set_tag("level", "global")
    manager.get_global_scope().set_tag("global", "yes")
    manager.get_isolation_scope().set_tag("level", "isolation")
    manager.get_isolation_scope().set_tag("isolation", "yes")
    manager.get_current_scope().set_tag("level", "current")

    merged = manager.merge_scopes()

    assert merged.type == ScopeType.MERGED
    assert merged._tags == {
        "level": "current",
        "global": "yes",
        "isolation": "yes",
    }
    assert manager.get_global_scope()._tags == {"level": "global", "global": "yes"}


def test_merge_scopes_with_additional_scope():
    manager = ScopeManager()
    manager.get_current_scope().set_tag("level", "current")

    with manager.new_scope() as additional:
        additional.set_tag("level", "additional")
        merged = manager.merge_scopes(additional)

    assert merged._tags["level"] == "additional"


def test_merge_scopes_keeps_newest_breadcrumbs():
    manager = ScopeManager()
    for i in range(100):
        manager.get_global_scope().add_breadcrumb(
            {"message": "global", "timestamp": float(i * 2)}
        )
        manager.get_isolation_scope().add_breadcrumb(
            {"message": "isolation", "timestamp": float(i * 2 + 1)}
        )

    merged = manager.merge_scopes()

    timestamps = [crumb["timestamp"] for crumb in merged.breadcrumbs]
    assert len(timestamps) == 100
    assert timestamps == sorted(timestamps)
    assert timestamps[0] == 100.0
    assert timestamps[-1] == 199.0


def test_merge_scopes_trims_to_max_breadcrumbs():
    manager = ScopeManager()
    manager.get_global_scope().add_breadcrumb({"message": "a", "timestamp": 3.0})
    manager.get_isolation_scope().add_breadcrumb({"message": "b", "timestamp": 1.0})
    manager.get_current_scope().add_breadcrumb({"message": "c", "timestamp": 2.0})

    merged = manager.merge_scopes(max_breadcrumbs=2)

    assert [crumb["message"] for crumb in merged.breadcrumbs] == ["c", "a"]
    assert len(manager.get_global_scope().breadcrumbs) == 1


def test_merge_scopes_concatenates_fingerprints():
    manager = ScopeManager()
    manager.get_global_scope().set_fingerprint(["a"])
    manager.get_isolation_scope().set_fingerprint(["b"])

    assert manager.merge_scopes()._fingerprint == ["a", "b"]


def test_merge_scopes_skips_current_propagation_context():
    manager = ScopeManager()
    isolation = manager.get_isolation_scope()
    manager.get_current_scope()

    merged = manager.merge_scopes()

    assert merged.propagation_context is isolation.propagation_context
