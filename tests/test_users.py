"""
Tests for user management and custom permission endpoints.
"""
from unittest.mock import patch

from fastapi import status

from app.core.permission_store import PermissionStore
from app.models.activity_log import ActivityLog
from app.models.user import User
from app.services.permission_service import hydrate_permission_store


def _stored_permissions(db_session, user_id):
    db_session.expire_all()
    return db_session.query(User).filter(User.user_id == user_id).one().custom_permissions


def test_grant_custom_permission(client, store, db_session, admin_headers, trainee_headers):
    """Granted permissions take effect and are mirrored to the user record."""
    response = client.post(
        "/api/v1/users/12345/permissions/custom",
        headers=admin_headers,
        json={"permission": "question:create"},
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["custom_permissions"] == ["question:create"]
    assert store.get_custom_permissions("12345") == frozenset({"question:create"})
    assert _stored_permissions(db_session, "12345") == ["question:create"]

    me = client.get("/api/v1/auth/me", headers=trainee_headers)
    assert "question:create" in me.json()["permissions"]


def test_grant_twice_is_idempotent(client, admin_headers, trainee_headers):
    for _ in range(2):
        response = client.post(
            "/api/v1/users/12345/permissions/custom",
            headers=admin_headers,
            json={"permission": "report:view"},
        )
    assert response.json()["custom_permissions"] == ["report:view"]


def test_grant_invalid_permission(client, store, admin_headers, trainee_headers):
    response = client.post(
        "/api/v1/users/12345/permissions/custom",
        headers=admin_headers,
        json={"permission": "question:fly"},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"]["invalid"] == ["question:fly"]
    assert "12345" not in store


def test_grant_permission_already_in_role(client, admin_headers, trainee_headers):
    response = client.post(
        "/api/v1/users/12345/permissions/custom",
        headers=admin_headers,
        json={"permission": "question:read"},
    )
    assert response.status_code == status.HTTP_409_CONFLICT


def test_grant_for_unknown_user(client, admin_headers):
    response = client.post(
        "/api/v1/users/nobody/permissions/custom",
        headers=admin_headers,
        json={"permission": "report:view"},
    )
    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_instructor_cannot_manage_permissions(client, instructor_headers, trainee_headers):
    response = client.post(
        "/api/v1/users/12345/permissions/custom",
        headers=instructor_headers,
        json={"permission": "report:view"},
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_set_custom_permissions_rejects_whole_list(client, store, db_session, admin_headers, trainee_headers):
    store.set_custom_permissions("12345", ["report:view"])

    response = client.put(
        "/api/v1/users/12345/permissions/custom",
        headers=admin_headers,
        json={"permissions": ["question:create", "not:a:real:permission"]},
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"]["invalid"] == ["not:a:real:permission"]
    assert store.get_custom_permissions("12345") == frozenset({"report:view"})
    assert _stored_permissions(db_session, "12345") == ["report:view"]


def test_set_custom_permissions(client, store, db_session, admin_headers, trainee_headers):
    response = client.put(
        "/api/v1/users/12345/permissions/custom",
        headers=admin_headers,
        json={"permissions": ["test:grade", "plan:assign"]},
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["custom_permissions"] == ["plan:assign", "test:grade"]
    assert _stored_permissions(db_session, "12345") == ["plan:assign", "test:grade"]


def test_remove_custom_permission(client, store, db_session, admin_headers, trainee_headers):
    store.add_custom_permission("12345", "report:view")

    response = client.delete(
        "/api/v1/users/12345/permissions/custom/report:view",
        headers=admin_headers,
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["custom_permissions"] == []
    assert "12345" not in store
    assert _stored_permissions(db_session, "12345") == []


def test_remove_missing_permission_is_noop(client, admin_headers, trainee_headers):
    response = client.delete(
        "/api/v1/users/12345/permissions/custom/report:view",
        headers=admin_headers,
    )
    assert response.status_code == status.HTTP_200_OK
    assert response.json()["custom_permissions"] == []


def test_user_permissions_view(client, store, admin_headers, trainee_headers):
    store.add_custom_permission("12345", "analytics:view")

    response = client.get("/api/v1/users/12345/permissions", headers=admin_headers)

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["custom_permissions"] == ["analytics:view"]
    by_key = {item["key"]: item for item in data["permissions"]}
    assert by_key["question:read"]["from_role"] is True
    assert by_key["question:read"]["custom"] is False
    assert by_key["analytics:view"]["custom"] is True
    assert by_key["analytics:view"]["active"] is True
    assert by_key["system:backup"]["active"] is False
    assert by_key["analytics:view"]["description"] == "צפייה באנליטיקה"


def test_mirror_failure_keeps_in_memory_grant(client, store, db_session, admin_headers, trainee_headers):
    """A failed write to the user record is logged and the grant still applies."""
    with patch(
        "app.services.permission_service.UserPermissionSync.__call__",
        side_effect=RuntimeError("database offline"),
    ):
        response = client.post(
            "/api/v1/users/12345/permissions/custom",
            headers=admin_headers,
            json={"permission": "question:create"},
        )

    assert response.status_code == status.HTTP_200_OK
    assert store.get_custom_permissions("12345") == frozenset({"question:create"})
    assert _stored_permissions(db_session, "12345") == []

    # The user view follows the store, not the stale record
    user = client.get("/api/v1/users/12345", headers=admin_headers)
    assert user.json()["custom_permissions"] == ["question:create"]


def test_hydrate_store_from_records(db_session, make_user):
    make_user("a", custom_permissions=["question:create"])
    make_user("b", custom_permissions=[])
    make_user("c", custom_permissions=["report:view", "retired:permission"])

    store = PermissionStore()
    loaded = hydrate_permission_store(db_session, store)

    assert loaded == 2
    assert store.get_custom_permissions("a") == frozenset({"question:create"})
    assert store.get_custom_permissions("c") == frozenset({"report:view"})


def test_create_user(client, admin_headers):
    response = client.post(
        "/api/v1/users/",
        headers=admin_headers,
        json={"user_id": "new1", "full_name": "שרה לוי", "email": "sara@example.com"},
    )

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["role"] == "trainee"
    assert data["custom_permissions"] == []


def test_create_user_with_admin_email(client, admin_headers):
    response = client.post(
        "/api/v1/users/",
        headers=admin_headers,
        json={"user_id": "boss", "full_name": "Boss", "email": "SNIR@snir-ai.com", "role": "trainee"},
    )
    assert response.json()["role"] == "admin"


def test_create_user_rejects_unknown_role(client, admin_headers):
    response = client.post(
        "/api/v1/users/",
        headers=admin_headers,
        json={"user_id": "x", "full_name": "X", "role": "wizard"},
    )
    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_create_duplicate_user(client, admin_headers):
    response = client.post(
        "/api/v1/users/",
        headers=admin_headers,
        json={"user_id": "admin1", "full_name": "Again"},
    )
    assert response.status_code == status.HTTP_409_CONFLICT


def test_change_role(client, db_session, admin_headers, trainee_headers):
    response = client.patch(
        "/api/v1/users/12345/role",
        headers=admin_headers,
        json={"role": "instructor"},
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["role"] == "instructor"

    me = client.get("/api/v1/auth/me", headers=trainee_headers)
    assert "question:create" in me.json()["permissions"]


def test_delete_user_drops_overlay(client, store, admin_headers, trainee_headers):
    store.add_custom_permission("12345", "report:view")

    response = client.delete("/api/v1/users/12345", headers=admin_headers)

    assert response.status_code == status.HTTP_200_OK
    assert "12345" not in store
    assert client.get("/api/v1/users/12345", headers=admin_headers).status_code == status.HTTP_404_NOT_FOUND


def test_admin_cannot_delete_self(client, admin_headers):
    response = client.delete("/api/v1/users/admin1", headers=admin_headers)
    assert response.status_code == status.HTTP_409_CONFLICT


def test_permission_changes_are_audited(client, db_session, admin_headers, trainee_headers):
    client.post(
        "/api/v1/users/12345/permissions/custom",
        headers=admin_headers,
        json={"permission": "report:view"},
    )
    client.delete("/api/v1/users/12345/permissions/custom/report:view", headers=admin_headers)

    actions = [log.action for log in db_session.query(ActivityLog).order_by(ActivityLog.id).all()]
    assert actions == ["permission_grant", "permission_revoke"]

    response = client.get("/api/v1/activity/", headers=admin_headers, params={"resource_id": "12345"})
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["total"] == 2
    assert data["items"][0]["actor_user_id"] == "admin1"
