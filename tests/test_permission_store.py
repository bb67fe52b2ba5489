"""
Tests for the custom permission store.
"""
import pytest

from app.core.permission_store import PermissionStore
from app.core.permissions import InvalidPermissionError, Permission


def test_unknown_user_has_empty_overlay():
    store = PermissionStore()
    assert store.get_custom_permissions("nobody") == frozenset()
    assert store.get_custom_permissions(None) == frozenset()
    assert "nobody" not in store


def test_add_is_idempotent():
    store = PermissionStore()
    store.add_custom_permission("u1", "question:create")
    once = store.get_custom_permissions("u1")
    store.add_custom_permission("u1", "question:create")
    assert store.get_custom_permissions("u1") == once == frozenset({"question:create"})


def test_add_accepts_enum_member():
    store = PermissionStore()
    store.add_custom_permission("u1", Permission.ANALYTICS_ADVANCED)
    assert store.get_custom_permissions("u1") == frozenset({"analytics:advanced"})


def test_add_rejects_invalid_token():
    store = PermissionStore()
    with pytest.raises(InvalidPermissionError):
        store.add_custom_permission("u1", "question:fly")
    assert "u1" not in store


def test_remove_after_add_restores_previous_state():
    store = PermissionStore()
    store.add_custom_permission("u1", "report:view")
    before = store.get_custom_permissions("u1")

    store.add_custom_permission("u1", "report:create")
    store.remove_custom_permission("u1", "report:create")

    assert store.get_custom_permissions("u1") == before


def test_removing_last_permission_deletes_entry():
    store = PermissionStore()
    store.add_custom_permission("u1", "report:view")
    store.remove_custom_permission("u1", "report:view")

    assert store.get_custom_permissions("u1") == frozenset()
    assert "u1" not in store
    assert len(store) == 0


def test_remove_missing_permission_is_noop():
    store = PermissionStore()
    store.remove_custom_permission("u1", "report:view")
    store.add_custom_permission("u2", "report:view")
    store.remove_custom_permission("u2", "report:export")
    assert "u1" not in store
    assert store.get_custom_permissions("u2") == frozenset({"report:view"})


def test_set_replaces_overlay():
    store = PermissionStore()
    store.add_custom_permission("u1", "report:view")
    store.set_custom_permissions("u1", ["test:grade", "plan:assign"])
    assert store.get_custom_permissions("u1") == frozenset({"test:grade", "plan:assign"})


def test_set_with_invalid_token_is_atomic():
    """One bad token rejects the whole list and leaves the prior overlay untouched."""
    store = PermissionStore()
    store.set_custom_permissions("u1", ["report:view"])

    with pytest.raises(InvalidPermissionError) as exc_info:
        store.set_custom_permissions("u1", ["question:create", "not:a:real:permission"])

    assert exc_info.value.invalid == ["not:a:real:permission"]
    assert "not:a:real:permission" in str(exc_info.value)
    assert store.get_custom_permissions("u1") == frozenset({"report:view"})


def test_set_names_every_invalid_token():
    store = PermissionStore()
    with pytest.raises(InvalidPermissionError) as exc_info:
        store.set_custom_permissions("u1", ["bad:one", "question:read", "bad:two"])
    assert exc_info.value.invalid == ["bad:one", "bad:two"]
    assert "u1" not in store


def test_set_rejects_non_list():
    store = PermissionStore()
    with pytest.raises(InvalidPermissionError):
        store.set_custom_permissions("u1", "question:read")
    with pytest.raises(InvalidPermissionError):
        store.set_custom_permissions("u1", None)


def test_set_empty_list_clears_entry():
    store = PermissionStore()
    store.add_custom_permission("u1", "report:view")
    store.set_custom_permissions("u1", [])
    assert "u1" not in store


def test_instances_do_not_share_state():
    first = PermissionStore()
    second = PermissionStore()
    first.add_custom_permission("u1", "report:view")
    assert second.get_custom_permissions("u1") == frozenset()


def test_listener_receives_every_write():
    calls = []
    store = PermissionStore(on_change=lambda user_id, perms: calls.append((user_id, perms)))

    store.add_custom_permission("u1", "report:view")
    store.add_custom_permission("u1", "report:view")  # no change, no call
    store.set_custom_permissions("u1", ["test:grade", "report:view"])
    store.remove_custom_permission("u1", "test:grade")
    store.remove_custom_permission("u1", "report:view")

    assert calls == [
        ("u1", ["report:view"]),
        ("u1", ["report:view", "test:grade"]),
        ("u1", ["report:view"]),
        ("u1", []),
    ]


def test_listener_failure_is_swallowed():
    def failing_listener(user_id, perms):
        raise RuntimeError("storage offline")

    store = PermissionStore(on_change=failing_listener)
    store.add_custom_permission("u1", "report:view")

    assert store.get_custom_permissions("u1") == frozenset({"report:view"})


def test_load_skips_unknown_tokens_and_empty_lists():
    store = PermissionStore()
    store.add_custom_permission("stale", "report:view")

    loaded = store.load([
        ("u1", ["question:create", "retired:permission"]),
        ("u2", []),
        ("u3", None),
    ])

    assert loaded == 1
    assert store.users() == ["u1"]
    assert store.get_custom_permissions("u1") == frozenset({"question:create"})


def test_forget_drops_overlay_without_listener():
    calls = []
    store = PermissionStore()
    store.add_custom_permission("u1", "report:view")
    store.on_change = lambda user_id, perms: calls.append(user_id)

    store.forget("u1")
    store.forget("u1")

    assert "u1" not in store
    assert calls == []


def test_set_without_change_skips_listener():
    calls = []
    store = PermissionStore(on_change=lambda user_id, perms: calls.append(user_id))

    store.set_custom_permissions("u1", [])
    store.add_custom_permission("u2", "report:view")
    store.set_custom_permissions("u2", ["report:view", "report:view"])

    assert calls == ["u2"]
    assert "u1" not in store
